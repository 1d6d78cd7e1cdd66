"""Domain normalisation shared by SERP matching and competitor analysis."""

from urllib.parse import urlparse


def normalize_domain(value: str | None) -> str:
    """Reduce a URL or domain to a bare lowercase host without ``www.``.

    >>> normalize_domain("https://www.Example.com/shoes?x=1")
    'example.com'
    """
    if not value:
        return ""
    candidate = value.strip().lower()
    if not candidate:
        return ""
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    parsed = urlparse(candidate)
    host = (parsed.netloc or parsed.path).split(":")[0]
    if host.startswith("www."):
        host = host[4:]
    return host


def domain_matches(result_host: str, target: str) -> bool:
    """Exact or substring match in either direction between two normalised hosts."""
    if not result_host or not target:
        return False
    return result_host == target or target in result_host or result_host in target
