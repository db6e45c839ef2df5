"""
Value sanitizers shared by the pipeline stages and the path-param dependency.

strip_operator_keys:
    Removes mapping keys that a document database would read as a query
    operator or a nested path: keys starting with "$" or containing ".".
    `{"email": {"$gt": ""}}` becomes `{"email": {}}`.

escape_html:
    Neutralizes markup in every string: "<" becomes "&lt;", so
    `<script>alert(1)</script>` can never reach a template or the database
    as a live tag.
"""

import logging
from typing import Any, List, Tuple

logger = logging.getLogger(__name__)


def is_operator_key(key: str) -> bool:
    return key.startswith("$") or "." in key


def strip_operator_keys(value: Any, _path: str = "") -> Tuple[Any, List[str]]:
    """
    Return a copy of `value` without operator-like keys, plus the removed paths.

    Recurses through dicts and lists; scalars are returned unchanged.
    """
    removed: List[str] = []
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            key_path = f"{_path}.{key}" if _path else str(key)
            if isinstance(key, str) and is_operator_key(key):
                removed.append(key_path)
                continue
            cleaned[key], nested = strip_operator_keys(item, key_path)
            removed.extend(nested)
        return cleaned, removed
    if isinstance(value, list):
        items = []
        for index, item in enumerate(value):
            cleaned_item, nested = strip_operator_keys(item, f"{_path}[{index}]")
            items.append(cleaned_item)
            removed.extend(nested)
        return items, removed
    return value, removed


def escape_html(value: Any) -> Any:
    """Return a copy of `value` with markup escaped in every string."""
    if isinstance(value, str):
        return value.replace("<", "&lt;")
    if isinstance(value, dict):
        return {key: escape_html(item) for key, item in value.items()}
    if isinstance(value, list):
        return [escape_html(item) for item in value]
    return value


def sanitize_values(value: Any) -> Any:
    """Apply both sanitizers; used where no pipeline stage runs (path params)."""
    cleaned, removed = strip_operator_keys(value)
    if removed:
        logger.warning("Stripped operator keys from path params: %s", ", ".join(removed))
    return escape_html(cleaned)
