"""
Nested query-string parsing and encoding.

Query strings and URL-encoded bodies use bracket notation for structure:

    price[gte]=500&difficulty=easy&difficulty=medium&tags[]=a

parses to

    {"price": {"gte": "500"}, "difficulty": ["easy", "medium"], "tags": ["a"]}

A key that repeats becomes a list; the parameter-pollution stage decides
afterwards which lists survive. `encode_nested` is the inverse used when the
sanitized values are written back into the request.
"""

import re
from typing import Any, Dict, Iterable, List, Tuple, Union
from urllib.parse import parse_qsl, urlencode

MAX_DEPTH = 5

_SEGMENT = re.compile(r"\[([^\[\]]*)\]")

Nested = Dict[str, Any]


def _split_key(raw_key: str) -> List[str]:
    bracket = raw_key.find("[")
    if bracket <= 0:
        return [raw_key]
    base, rest = raw_key[:bracket], raw_key[bracket:]
    segments = _SEGMENT.findall(rest)
    # Anything that is not a clean run of [..] groups stays a flat key
    if "".join(f"[{s}]" for s in segments) != rest:
        return [raw_key]
    return [base] + segments[:MAX_DEPTH]


def _assign(container: Union[Nested, List[Any]], path: List[str], value: str) -> None:
    key, rest = path[0], path[1:]

    if isinstance(container, list):
        if not rest:
            container.append(value)
            return
        child: Union[Nested, List[Any]] = [] if rest[0] == "" else {}
        container.append(child)
        _assign(child, rest, value)
        return

    if not rest:
        if key not in container:
            container[key] = value
        elif isinstance(container[key], list):
            container[key].append(value)
        elif isinstance(container[key], dict):
            # a[b]=1&a=2: the structured form wins
            return
        else:
            container[key] = [container[key], value]
        return

    existing = container.get(key)
    if existing is None:
        existing = [] if rest[0] == "" else {}
        container[key] = existing
    elif isinstance(existing, list) and rest[0] != "":
        existing = {str(i): item for i, item in enumerate(existing)}
        container[key] = existing
    elif not isinstance(existing, (dict, list)):
        # a=1&a[b]=2: keep the first scalar
        return
    _assign(existing, rest, value)


def parse_pairs(pairs: Iterable[Tuple[str, str]]) -> Nested:
    """Build a nested mapping from decoded (key, value) pairs."""
    result: Nested = {}
    for raw_key, value in pairs:
        if not raw_key:
            continue
        _assign(result, _split_key(raw_key), value)
    return result


def parse_nested(query_string: Union[str, bytes]) -> Nested:
    """Parse a raw query string (or URL-encoded body) into nested values."""
    if isinstance(query_string, bytes):
        query_string = query_string.decode("latin-1")
    return parse_pairs(parse_qsl(query_string, keep_blank_values=True))


def _flatten(prefix: str, value: Any, out: List[Tuple[str, str]]) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            _flatten(f"{prefix}[{key}]", item, out)
    elif isinstance(value, list):
        for index, item in enumerate(value):
            if isinstance(item, (dict, list)):
                _flatten(f"{prefix}[{index}]", item, out)
            else:
                out.append((prefix, _scalar(item)))
    else:
        out.append((prefix, _scalar(value)))


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_nested(data: Nested) -> str:
    """Encode nested values back to bracket notation; lists repeat the key."""
    pairs: List[Tuple[str, str]] = []
    for key, value in data.items():
        _flatten(key, value, pairs)
    return urlencode(pairs)
