"""Configuration parsing and coercion utilities.

Helpers for reading external configuration sources like ``pyproject.toml``
and environment variables.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Sequence, Tuple

try:
    import tomllib as _tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as _tomllib  # type: ignore[no-redef]

_TRUE_LABELS = frozenset({"1", "true", "yes", "on", "enable"})
_FALSE_LABELS = frozenset({"0", "false", "no", "off", "disable"})


def read_pyproject_section(path: Sequence[str], *, root: Path | None = None) -> Dict[str, Any]:
    """Return a mapping from the requested ``pyproject.toml`` section.

    Parameters
    ----------
    path : Sequence[str]
        Nested keys to traverse in the pyproject.toml structure.
        For example, ``("tool", "snapcache")`` will navigate to
        ``[tool.snapcache]``.
    root : Path, optional
        Directory holding ``pyproject.toml``. Defaults to the current
        working directory.

    Returns
    -------
    Dict[str, Any]
        Dictionary containing the requested configuration section,
        or an empty dict if the file does not exist or cannot be parsed.
    """
    candidate = (root if root is not None else Path.cwd()) / "pyproject.toml"
    if not candidate.exists():
        return {}
    try:
        with candidate.open("rb") as fh:
            data = _tomllib.load(fh)
    except (OSError, _tomllib.TOMLDecodeError):  # pragma: no cover - permissive fallback
        return {}

    cursor: Any = data
    for key in path:
        if isinstance(cursor, dict) and key in cursor:
            cursor = cursor[key]
        else:
            return {}
    if isinstance(cursor, dict):
        return dict(cursor)
    return {}


def coerce_bool(value: str | bool | None) -> bool | None:
    """Coerce a configuration toggle into a boolean.

    Returns ``None`` when the value is missing or not a recognised label so
    callers can keep their own default.

    Examples
    --------
    >>> coerce_bool("on"), coerce_bool("No"), coerce_bool("maybe")
    (True, False, None)
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    label = str(value).strip().lower()
    if label in _TRUE_LABELS:
        return True
    if label in _FALSE_LABELS:
        return False
    return None


def split_csv(value: str | None) -> Tuple[str, ...]:
    """Split a comma-separated environment variable into a tuple of strings.

    Examples
    --------
    >>> split_csv("on, max_items=10 , ")
    ('on', 'max_items=10')

    >>> split_csv(None)
    ()
    """
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


__all__ = ["coerce_bool", "read_pyproject_section", "split_csv"]
