import logging
from typing import List, Optional, Set, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from app.features.scan.exceptions import CrawlFetchError, NavigationError, NavigationSettleTimeout
from app.features.scan.services.browser.browsing_session import BrowsingSession, WaitPolicy

logger = logging.getLogger(__name__)


class UrlDiscoveryService:
    """
    Bounded same-host crawl used when a scan is created.

    A URL is accepted at traversal depth ``d`` only when its structural depth
    (slash count minus 2) is exactly ``d``. This is a path-shape heuristic,
    not link distance from the seed, and it is kept as-is because the set of
    scanned pages depends on it.
    """

    def __init__(self, session: BrowsingSession):
        self.session = session

    def discover(self, seed: str, max_depth: int) -> List[str]:
        """
        Crawl from ``seed`` and return accepted URLs in discovery order.

        Args:
            seed: Starting URL, evaluated at depth 0
            max_depth: Deepest traversal depth that is still evaluated

        Returns:
            Duplicate-free list of same-host URLs
        """
        if max_depth < 0:
            raise ValueError("max_depth must be non-negative")

        seed_host = self.hostname(seed)
        accepted: List[str] = []
        visited: Set[str] = set()
        worklist: List[Tuple[str, int]] = [(seed, 0)]

        while worklist:
            url, depth = worklist.pop()
            if depth > max_depth:
                continue
            if not self.should_accept(url, depth, seed_host, visited):
                continue

            visited.add(url)
            accepted.append(url)
            logger.info(f"Added URL {url} at depth {depth}")

            if depth == max_depth:
                # Children would be evaluated past max_depth
                continue

            try:
                children = self.fetch_child_urls(url)
            except CrawlFetchError as e:
                logger.warning(str(e))
                continue

            # Reversed so the stack pops children in document order
            for child in reversed(children):
                worklist.append((child, depth + 1))

        logger.info(f"Discovered {len(accepted)} URLs from {seed} (max depth {max_depth})")
        return accepted

    @classmethod
    def should_accept(cls, url: str, depth: int, seed_host: Optional[str], visited: Set[str]) -> bool:
        return (
            url not in visited
            and cls.is_same_host(url, seed_host)
            and not url.endswith("/#")
            and cls.structural_depth(url) == depth
        )

    def fetch_child_urls(self, url: str) -> List[str]:
        try:
            self.session.navigate(url, WaitPolicy.load)
            html = self.session.content()
        except (NavigationError, NavigationSettleTimeout) as e:
            raise CrawlFetchError(url, str(e)) from e
        return self.extract_child_urls(html, url)

    @staticmethod
    def extract_child_urls(html: str, page_url: str) -> List[str]:
        """Every anchor href in ``html``, resolved against ``page_url``."""
        soup = BeautifulSoup(html or "", "html.parser")
        child_urls = []
        for tag in soup.find_all("a", href=True):
            href = tag["href"].strip()
            if not href:
                continue
            try:
                child_url = urljoin(page_url, href)
            except ValueError as e:
                logger.warning(f"Skipping malformed link {href!r} on {page_url}: {e}")
                continue
            # urljoin drops an empty fragment; keep it so "page/#" links stay rejectable
            if href.endswith("#") and not child_url.endswith("#"):
                child_url += "#"
            child_urls.append(child_url)
        return child_urls

    @staticmethod
    def count_slashes(url: str) -> int:
        return url.count("/")

    @classmethod
    def structural_depth(cls, url: str) -> int:
        return cls.count_slashes(url) - 2

    @staticmethod
    def hostname(url: str) -> Optional[str]:
        try:
            return urlparse(url).hostname
        except ValueError:
            return None

    @classmethod
    def is_same_host(cls, url: str, seed_host: Optional[str]) -> bool:
        host = cls.hostname(url)
        return bool(host) and host == seed_host

    @staticmethod
    def extract_base_url(url: str) -> str:
        """Scheme and host of ``url``, e.g. https://example.com."""
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}"
