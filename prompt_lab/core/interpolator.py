"""
Template interpolation over the run's data store.

Placeholders look like ``{{path.to.value}}``. A template that is exactly one
placeholder returns the referenced value unchanged (type preserved); any
other template becomes a string with each resolved value embedded. Missing
keys never raise: the placeholder is left in place.
"""

import json
import re
from typing import Any, List, Mapping, MutableMapping

_SINGLE_PLACEHOLDER = re.compile(r"^\{\{\s*([\w.]+)\s*\}\}$")
_PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")

_MISSING = object()


def get_nested(obj: Any, path: str, default: Any = None) -> Any:
    """
    Safe dotted-path lookup.

    Walks mappings by key and lists by integer index. Any missing segment,
    ``None`` or non-container encountered mid-path yields ``default``.
    """
    current = obj
    for part in path.split("."):
        if current is None:
            return default
        if isinstance(current, Mapping):
            if part not in current:
                return default
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.lstrip("-").isdigit():
            index = int(part)
            if not -len(current) <= index < len(current):
                return default
            current = current[index]
        else:
            return default
    return current


def has_nested(obj: Any, path: str) -> bool:
    return get_nested(obj, path, _MISSING) is not _MISSING


def set_nested(store: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Write ``value`` at a dotted path, creating intermediate mappings."""
    parts = path.split(".")
    current = store
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, MutableMapping):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def extract_placeholders(template: Any) -> List[str]:
    """Paths referenced by a template, in order of first appearance."""
    if not isinstance(template, str):
        return []
    seen: List[str] = []
    for match in _PLACEHOLDER.finditer(template):
        if match.group(1) not in seen:
            seen.append(match.group(1))
    return seen


def stringify(value: Any) -> str:
    """Text form of a value embedded in a mixed template."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    return str(value)


def interpolate(template: str, store: Mapping[str, Any]) -> Any:
    """
    Resolve ``{{path}}`` placeholders in ``template`` against ``store``.

    >>> interpolate("{{a.b}}", {"a": {"b": 42}})
    42
    >>> interpolate("val={{a.b}}", {"a": {"b": 42}})
    'val=42'
    >>> interpolate("{{a.b}}", {})
    '{{a.b}}'
    """
    single = _SINGLE_PLACEHOLDER.match(template.strip())
    if single:
        value = get_nested(store, single.group(1), _MISSING)
        return template if value is _MISSING else value

    def _replace(match: "re.Match[str]") -> str:
        value = get_nested(store, match.group(1))
        if value is None:
            return match.group(0)
        return stringify(value)

    return _PLACEHOLDER.sub(_replace, template)
