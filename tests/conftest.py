"""
Test configuration and fixtures for the Accessibility Scanner API.

Database tests run against a private in-memory SQLite database per test.
Browser-driven code runs against FakeBrowsingSession, a scripted stand-in
for the Selenium-backed BrowsingSession.
"""

import copy
import os
import tempfile
from contextlib import contextmanager
from typing import Generator

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

load_dotenv()

# The app's own engine is created at import time, so point it somewhere harmless first
test_db_path = tempfile.mktemp(suffix=".db")
os.environ["DATABASE_URL"] = f"sqlite:///{test_db_path}"

from app.features.scan.exceptions import (  # noqa: E402
    AnalysisError,
    NavigationError,
    NavigationSettleTimeout,
    StepTimeoutError,
)
from app.features.scan.models.scan_request import ScanRequest, ScanRequestStatus  # noqa: E402
from app.features.scan.services.device.device_service import seed_default_device_configs  # noqa: E402
from app.features.scan.services.guidance.guidance_service import seed_default_guidance_levels  # noqa: E402
from app.platform.db.session import get_db, init_db  # noqa: E402


def axe_result(passes: int = 1, violations: int = 0, incomplete: int = 0) -> dict:
    """A minimal axe-core result with the given bucket sizes."""
    def findings(prefix, count):
        return [
            {
                "id": f"{prefix}-{i}",
                "tags": ["wcag2a"],
                "impact": "serious" if prefix == "violation" else None,
                "description": f"{prefix} rule {i}",
                "help": f"Fix {prefix} {i}",
                "helpUrl": f"https://dequeuniversity.com/rules/axe/4.8/{prefix}-{i}",
                "nodes": [],
            }
            for i in range(count)
        ]

    return {
        "violations": findings("violation", violations),
        "passes": findings("pass", passes),
        "incomplete": findings("incomplete", incomplete),
        "inapplicable": [],
        "testEnvironment": {"userAgent": "FakeBrowser/1.0", "windowWidth": 1920, "windowHeight": 1080},
    }


class FakeBrowsingSession:
    """
    Scripted browsing session.

    pages: url -> HTML returned by content()
    analysis: url -> axe result returned by run_analysis()
    elements: selector values that resolve()
    click_targets: selector value -> URL the browser lands on after a click
    failing_urls / unsettled_urls / broken_analysis_urls: URLs that fail to
    load, never settle, or make the analyzer fail
    """

    def __init__(
        self,
        pages=None,
        analysis=None,
        elements=(),
        click_targets=None,
        failing_urls=(),
        unsettled_urls=(),
        broken_analysis_urls=(),
    ):
        self.pages = pages or {}
        self.analysis = analysis or {}
        self.elements = set(elements)
        self.click_targets = click_targets or {}
        self.failing_urls = set(failing_urls)
        self.unsettled_urls = set(unsettled_urls)
        self.broken_analysis_urls = set(broken_analysis_urls)

        self.current_url = "about:blank"
        self.default_timeout_ms = None
        self.visited = []
        self.emulated = []
        self.actions = []
        self.analyzed = []
        self.resolve_timeouts = []
        self.closed = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.closed += 1

    def set_default_timeout(self, timeout_ms):
        self.default_timeout_ms = timeout_ms

    @contextmanager
    def timeout_override(self, timeout_ms):
        self.set_default_timeout(timeout_ms)
        try:
            yield self
        finally:
            self.set_default_timeout(None)

    def navigate(self, url, wait_policy=None, timeout=None):
        if url in self.failing_urls:
            raise NavigationError(f"Failed to load {url}: net::ERR_NAME_NOT_RESOLVED")
        self.current_url = url
        self.visited.append(url)

    def wait_for_settle(self, wait_policy=None, timeout=None):
        if self.current_url in self.unsettled_urls:
            raise NavigationSettleTimeout(f"{self.current_url} did not settle")

    @contextmanager
    def expect_navigation(self, wait_policy=None, timeout=None):
        before = self.current_url
        yield
        if self.current_url == before:
            raise NavigationSettleTimeout("No navigation happened")

    def emulate(self, profile):
        self.emulated.append(profile.name)

    def content(self):
        return self.pages.get(self.current_url, "")

    def resolve(self, query, timeout=None):
        self.resolve_timeouts.append(self.default_timeout_ms)
        if query.value not in self.elements:
            raise StepTimeoutError(f"Timeout waiting for selector: {query.value}")
        return query.value

    def click(self, element):
        self.actions.append(("click", element))
        target = self.click_targets.get(element)
        if target:
            self.current_url = target
            self.visited.append(target)

    def type_text(self, element, text):
        self.actions.append(("type", element, text))

    def select(self, element, option):
        self.actions.append(("select", element, option))

    def run_analysis(self, tags=None):
        if self.current_url in self.broken_analysis_urls:
            raise AnalysisError("axe.run failed: boom")
        self.analyzed.append((self.current_url, list(tags or [])))
        return copy.deepcopy(self.analysis.get(self.current_url, axe_result()))


@pytest.fixture
def fake_browser():
    """The FakeBrowsingSession class, for tests to script their own browser."""
    return FakeBrowsingSession


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    """A session on a fresh database seeded with the default devices and guidance levels."""
    session = session_factory()
    seed_default_device_configs(session)
    seed_default_guidance_levels(session)
    yield session
    session.close()


@pytest.fixture
def make_scan_request(db):
    """Insert a scan request directly, bypassing discovery."""
    def _make(
        url="https://example.com",
        urls=("https://example.com", "https://example.com/about"),
        guidance=("wcag2a", "wcag2aa"),
        device="Desktop",
        steps=(),
        **fields,
    ):
        scan_request = ScanRequest(
            url=url,
            urls=list(urls),
            guidance=list(guidance),
            depth=fields.pop("depth", 1),
            device=device,
            steps=list(steps),
            status=fields.pop("status", ScanRequestStatus.incomplete),
            **fields,
        )
        db.add(scan_request)
        db.commit()
        db.refresh(scan_request)
        return scan_request

    return _make


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app, session_factory, db) -> Generator[TestClient, None, None]:
    """
    Test client whose routes use the per-test database.
    """
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    test_app.dependency_overrides[get_db] = override_get_db
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.clear()
