"""npm-style semantic version helpers built on semantic_version."""

import logging
import re
from typing import Iterable, List, Optional, Sequence, TypeVar, Union

import semantic_version

logger = logging.getLogger(__name__)

T = TypeVar("T")

_LEADING_V_RE = re.compile(r"^[=v\s]+", re.IGNORECASE)


def normalize_version(version: Optional[str]) -> Optional[str]:
    """Strip a leading ``v`` (as in git tags ``v1.2.0``) and surrounding blanks."""
    if version is None:
        return None
    return _LEADING_V_RE.sub("", version).strip()


def parse_version(version: Optional[str]) -> Optional[semantic_version.Version]:
    """Return a Version for a strict semver string, None otherwise."""
    if not version:
        return None
    try:
        return semantic_version.Version(normalize_version(version))
    except ValueError:
        return None


def valid(version: Optional[str]) -> Optional[str]:
    """Return the normalized version string when valid, None otherwise."""
    parsed = parse_version(version)
    return str(parsed) if parsed is not None else None


def parse_range(version_range: str) -> Optional[semantic_version.NpmSpec]:
    try:
        return semantic_version.NpmSpec(version_range.strip())
    except ValueError:
        return None


def satisfies(version: Optional[str], version_range: Optional[str]) -> bool:
    """Return True when ``version`` is inside the npm ``version_range``.

    An empty range accepts any version. Exact string equality also satisfies,
    which covers branch names and locked refs that are not semver.
    """
    if not version_range:
        return True
    if version is not None and version == version_range:
        return True
    parsed = parse_version(version)
    spec = parse_range(version_range)
    if parsed is None or spec is None:
        return False
    return spec.match(parsed)


def is_conflict(a: Optional[str], b: Optional[str]) -> bool:
    """Return True when installing ``b`` over ``a`` (or vice versa) may break callers.

    Two different versions conflict unless both are valid semver sharing the
    same major version. For 0.x versions the minor version is the breaking
    boundary.
    """
    va, vb = parse_version(a), parse_version(b)
    if va is not None and vb is not None and va.major == vb.major:
        return va.major == 0 and va.minor != vb.minor
    return bool(a) and bool(b) and a != b


def is_newer(a: Optional[str], b: Optional[str]) -> bool:
    """Return True when ``a`` is greater than ``b``.

    Unparseable input compares as newer so that resolution falls through to a
    fresh fetch.
    """
    va, vb = parse_version(a), parse_version(b)
    if va is None or vb is None:
        logger.debug("compare %s - %s: not comparable, treat as newer", a, b)
        return True
    return va > vb


def max_satisfy_version(candidates: Sequence[str], allow_version: Optional[str]) -> Optional[str]:
    """Pick the greatest candidate inside ``allow_version``.

    An exact candidate match wins, so tags and branches can be requested by name.
    """
    if allow_version in candidates:
        return allow_version
    if not allow_version:
        return None
    spec = parse_range(allow_version)
    if spec is None:
        logger.debug("invalid version range: %s", allow_version)
        return None

    matched = []
    for item in candidates:
        parsed = parse_version(item)
        if parsed is not None and spec.match(parsed):
            matched.append((parsed, item))
    if not matched:
        return None
    matched.sort(key=lambda pair: pair[0])
    return matched[-1][1]


def _version_key(value: str):
    parsed = parse_version(value)
    # valid versions sort before anything that only compares as text
    if parsed is not None:
        return (1, parsed, "")
    return (0, semantic_version.Version("0.0.0"), value)


def sort_versions(
    items: Iterable[T],
    key: Union[str, None] = None,
    descending: bool = False,
) -> List[T]:
    """Sort version strings, or dicts/objects by their ``key`` attribute.

    Valid semver values compare semantically; the rest compare as text.
    """
    def extract(item):
        if key is None:
            return item
        if isinstance(item, dict):
            return item.get(key) or ""
        return getattr(item, key, None) or ""

    return sorted(items, key=lambda item: _version_key(extract(item)), reverse=descending)
