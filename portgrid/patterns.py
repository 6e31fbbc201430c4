"""Glob-style pattern matching for device filtering and section assignment.

Patterns only know one wildcard, ``*``, meaning "any sequence of characters".
Everything else is matched literally, case-insensitively, against the whole
candidate string.
"""
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

Predicate = Callable[[str], bool]


@lru_cache(maxsize=512)
def _compile_regex(pattern: str) -> "re.Pattern[str]":
    escaped = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.compile(escaped, flags=re.IGNORECASE | re.DOTALL)


def compile_pattern(pattern: str) -> Predicate:
    """Compile a glob pattern into a full-match, case-insensitive predicate.

    Examples:
        compile_pattern("10.2.50.*")("10.2.50.100") -> True
        compile_pattern("switch*")("SWITCH01") -> True
    """
    regex = _compile_regex(pattern)
    return lambda value: regex.fullmatch(value) is not None


def matches_any(value: Optional[str], patterns: Sequence[str]) -> bool:
    """True if any pattern fully matches value; False for empty value or no patterns."""
    if not value or not patterns:
        return False
    return any(compile_pattern(p)(value) for p in patterns)


def parse_patterns(raw: object) -> List[str]:
    """Parse a comma-separated string (or a list of strings) into trimmed patterns.

    Blank entries are dropped, so an empty or missing value yields [].
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        items: Iterable[object] = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = raw
    else:
        raise TypeError(f"patterns must be a string or a list, got {type(raw).__name__}")

    out: List[str] = []
    for item in items:
        s = str(item).strip()
        if s:
            out.append(s)
    return out


@dataclass(frozen=True)
class DeviceFilter:
    """Device-level include/exclude filter.

    A device passes when it matches an include pattern (only enforced when
    include patterns exist) and matches no exclude pattern. Hostname and IP are
    both candidates. Exclude always wins.
    """

    include: Sequence[str] = field(default_factory=tuple)
    exclude: Sequence[str] = field(default_factory=tuple)

    @property
    def active(self) -> bool:
        return bool(self.include) or bool(self.exclude)

    def allows(self, hostname: Optional[str], ip: Optional[str] = None) -> bool:
        candidates = [v for v in (hostname, ip) if v]

        if self.include and not any(matches_any(v, self.include) for v in candidates):
            logger.debug("Device %s (%s) filtered out: no include pattern matches", hostname, ip)
            return False

        if any(matches_any(v, self.exclude) for v in candidates):
            logger.debug("Device %s (%s) filtered out: exclude pattern matches", hostname, ip)
            return False

        return True
