from __future__ import annotations

import json
import re
from typing import Any, Optional

_JSONLD_SCRIPT_RE = re.compile(
    r"<script[^>]*type=[\"']application/ld\+json[\"'][^>]*>(.*?)</script>",
    re.IGNORECASE | re.DOTALL,
)
_ISO_DURATION_RE = re.compile(r"P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?")

_STRIP_PATTERNS = [
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<!--.*?-->", re.DOTALL),
    re.compile(r"<nav[^>]*>.*?</nav>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<footer[^>]*>.*?</footer>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<header[^>]*>.*?</header>", re.IGNORECASE | re.DOTALL),
]
_WHITESPACE_RE = re.compile(r"\s+")

HTML_LIMIT_WITH_JSONLD = 15000
HTML_LIMIT_WITHOUT_JSONLD = 25000


def _is_recipe(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    kind = item.get("@type")
    if isinstance(kind, list):
        return "Recipe" in kind
    return kind == "Recipe"


def _find_recipe(parsed: Any) -> Optional[dict]:
    items = parsed if isinstance(parsed, list) else [parsed]
    for item in items:
        if _is_recipe(item):
            return item
        graph = item.get("@graph") if isinstance(item, dict) else None
        if isinstance(graph, list):
            for node in graph:
                if _is_recipe(node):
                    return node
    return None


def extract_jsonld_recipe(html: str) -> Optional[dict]:
    """First schema.org Recipe object embedded as JSON-LD, or None."""
    for match in _JSONLD_SCRIPT_RE.finditer(html):
        try:
            parsed = json.loads(match.group(1).strip())
        except json.JSONDecodeError:
            continue
        recipe = _find_recipe(parsed)
        if recipe is not None:
            return recipe
    return None


def parse_iso_duration(value: Optional[str]) -> Optional[int]:
    """Minutes in an ISO 8601 duration such as PT1H30M."""
    if not value:
        return None
    match = _ISO_DURATION_RE.search(value)
    if not match or not any(match.groups()):
        return None
    days, hours, minutes = (int(g or 0) for g in match.groups())
    return days * 24 * 60 + hours * 60 + minutes


def clean_html(html: str, max_length: int) -> str:
    cleaned = html
    for pattern in _STRIP_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length] + "\n... [truncated]"
    return cleaned
