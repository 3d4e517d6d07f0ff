from urllib.parse import urlparse
from typing import Tuple


def normalize_url(url: str) -> Tuple[str, bool]:
    """Add an https scheme to bare hostnames. Returns the URL and whether it changed."""
    url = url.strip()

    parsed = urlparse(url)

    if not parsed.scheme:
        return f"https://{url}", True

    return url, False


def validate_url(url: str) -> Tuple[bool, str, str]:
    """
    Check that a scan target is an absolute http(s) URL.

    Returns:
        (is_valid, normalized_url, error_message)
    """
    if not url or not url.strip():
        return False, "", "URL cannot be empty"

    normalized_url, _ = normalize_url(url)

    try:
        parsed = urlparse(normalized_url)
    except ValueError as e:
        return False, normalized_url, f"URL parsing error: {str(e)}"

    if parsed.scheme not in ["http", "https"]:
        return False, normalized_url, f"Invalid URL scheme: {parsed.scheme} (must be http or https)"

    if not parsed.netloc:
        return False, normalized_url, "Invalid URL format: missing domain"

    return True, normalized_url, ""
