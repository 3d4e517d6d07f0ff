import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.features.scan.models.guidance_level import GuidanceLevel

logger = logging.getLogger(__name__)


DEFAULT_GUIDANCE_LEVELS = [
    {"name": "WCAG 2.0 A", "tags": ["wcag2a"], "description": "WCAG 2.0 Level A success criteria"},
    {"name": "WCAG 2.0 AA", "tags": ["wcag2a", "wcag2aa"], "description": "WCAG 2.0 Levels A and AA"},
    {
        "name": "WCAG 2.0 AAA",
        "tags": ["wcag2a", "wcag2aa", "wcag2aaa"],
        "description": "WCAG 2.0 Levels A, AA and AAA",
    },
    {
        "name": "WCAG 2.1 AA",
        "tags": ["wcag2a", "wcag2aa", "wcag21a", "wcag21aa"],
        "description": "WCAG 2.0 and 2.1 up to Level AA",
    },
    {
        "name": "WCAG 2.2 AA",
        "tags": ["wcag2a", "wcag2aa", "wcag21a", "wcag21aa", "wcag22aa"],
        "description": "WCAG 2.0, 2.1 and 2.2 up to Level AA",
    },
    {"name": "Section 508", "tags": ["section508"], "description": "US Section 508 rules"},
    {"name": "Best Practices", "tags": ["best-practice"], "description": "axe-core best-practice rules"},
]


def seed_default_guidance_levels(db: Session) -> int:
    """Insert the built-in guidance levels when none exist. Returns how many were added."""
    if db.execute(select(GuidanceLevel.id).limit(1)).first():
        return 0

    for order, level in enumerate(DEFAULT_GUIDANCE_LEVELS):
        db.add(GuidanceLevel(sort_order=order, **level))
    db.commit()
    logger.info(f"Seeded {len(DEFAULT_GUIDANCE_LEVELS)} default guidance levels")
    return len(DEFAULT_GUIDANCE_LEVELS)


def get_guidance_levels(db: Session) -> List[GuidanceLevel]:
    return list(db.execute(select(GuidanceLevel).order_by(GuidanceLevel.sort_order)).scalars().all())
