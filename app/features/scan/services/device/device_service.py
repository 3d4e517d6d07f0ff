import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.features.scan.exceptions import DeviceConfigNotFoundError
from app.features.scan.models.device_config import DeviceConfig
from app.features.scan.schemas.device import DeviceProfile

logger = logging.getLogger(__name__)


DEFAULT_DEVICE_CONFIGS = [
    {"name": "Desktop", "width": 1920, "height": 1080},
    {"name": "Laptop", "width": 1366, "height": 768},
    {
        "name": "iPad",
        "width": 810,
        "height": 1080,
        "device_scale_factor": 2,
        "is_mobile": True,
        "has_touch": True,
        "user_agent": (
            "Mozilla/5.0 (iPad; CPU OS 15_0 like Mac OS X) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Version/15.0 Mobile/15E148 Safari/604.1"
        ),
    },
    {
        "name": "iPhone 12",
        "width": 390,
        "height": 844,
        "device_scale_factor": 3,
        "is_mobile": True,
        "has_touch": True,
        "user_agent": (
            "Mozilla/5.0 (iPhone; CPU iPhone OS 15_0 like Mac OS X) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Version/15.0 Mobile/15E148 Safari/604.1"
        ),
    },
    {
        "name": "Pixel 5",
        "width": 393,
        "height": 851,
        "device_scale_factor": 2.75,
        "is_mobile": True,
        "has_touch": True,
        "user_agent": (
            "Mozilla/5.0 (Linux; Android 11; Pixel 5) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/114.0.0.0 Mobile Safari/537.36"
        ),
    },
]


def seed_default_device_configs(db: Session) -> int:
    """Insert the built-in device profiles when none exist. Returns how many were added."""
    existing = db.execute(select(DeviceConfig.id).limit(1)).first()
    if existing:
        return 0

    for config in DEFAULT_DEVICE_CONFIGS:
        db.add(DeviceConfig(**config))
    db.commit()
    logger.info(f"Seeded {len(DEFAULT_DEVICE_CONFIGS)} default device configurations")
    return len(DEFAULT_DEVICE_CONFIGS)


def get_device_configs(db: Session) -> List[DeviceConfig]:
    return list(db.execute(select(DeviceConfig).order_by(DeviceConfig.name)).scalars().all())


def get_device_profile(db: Session, device_name: str) -> DeviceProfile:
    """
    Resolve a device configuration name to a concrete emulation profile.

    Raises:
        DeviceConfigNotFoundError: no configuration with that name exists
    """
    config = db.execute(
        select(DeviceConfig).where(DeviceConfig.name == device_name)
    ).scalar_one_or_none()

    if config is None:
        raise DeviceConfigNotFoundError(device_name)

    return DeviceProfile.model_validate(config)
