"""
Wide-Match Resolver

On a cache miss for a paginated query, looks for an already cached key of
the same base query whose window contains the requested one, so the page
can be cut out of the cached ID list instead of querying MongoDB.

Selection:
    1. Ranged candidates [cs, ce) with cs <= rs and ce >= re qualify
    2. The smallest qualifying window (ce - cs) wins; ties go to the
       larger cs, then to the key text
    3. The unranged base key (whole result set) is the last resort

The winner is translated into a local window inside the cached list:
    local_start = rs - cs
    local_end   = local_start + (re - rs)

Author: System Architect
Date: 2026-10-13
"""

from collections.abc import Iterable
from dataclasses import dataclass

from fireferret.core.config.constants import RANGE_DELIMITER, Stage
from fireferret.core.exceptions import KeyParseError
from fireferret.core.interfaces import KeyValueStore
from fireferret.core.logging import get_logger, log_stage
from fireferret.indexing.options import PaginationRange
from fireferret.indexing.query_key import QueryKey, parse_range_suffix

logger = get_logger(__name__)

_GLOB_SPECIAL = frozenset("*?[]\\")


@dataclass(frozen=True)
class LocalRange:
    """Half-open window [start, end) inside the target list."""

    start: int
    end: int


@dataclass(frozen=True)
class WideMatch:
    """A cached key that can serve the requested page."""

    target_key: str
    local_range: LocalRange


def escape_glob(text: str) -> str:
    """Escape Redis glob metacharacters so text matches literally in SCAN MATCH."""
    return "".join("\\" + char if char in _GLOB_SPECIAL else char for char in text)


def select_wide_match(
    candidates: Iterable[str],
    base_key: str,
    requested: PaginationRange,
    exclude: str | None = None,
) -> WideMatch | None:
    """
    Pick the minimal cached superset of the requested window.

    Args:
        candidates: Keys found in the cache (other queries are ignored)
        base_key: Base key of the requested query
        requested: Requested window
        exclude: Key to skip (normally the requested key itself)

    Returns:
        WideMatch, or None when nothing contains the window
    """
    rs, re_ = requested.start, requested.end
    prefix = base_key + RANGE_DELIMITER

    best: tuple[int, int, str] | None = None
    has_whole = False

    for key in candidates:
        if key == exclude or not (key == base_key or key.startswith(prefix)):
            continue

        try:
            window = parse_range_suffix(key, base_key)
        except KeyParseError as e:
            logger.warning(
                "Skipping unparsable wide-match candidate",
                stage=Stage.WIDE_MATCH.value,
                key=key,
                error=e.message,
            )
            continue

        if window is None:
            has_whole = True
            continue

        cs, ce = window
        if cs <= rs and ce >= re_:
            rank = (ce - cs, -cs, key)
            if best is None or rank < best:
                best = rank

    if best is not None:
        _, neg_cs, key = best
        local_start = rs + neg_cs
        return WideMatch(key, LocalRange(local_start, local_start + (re_ - rs)))

    if has_whole:
        return WideMatch(base_key, LocalRange(rs, re_))

    return None


class WideMatchResolver:
    """
    Enumerates sibling keys with SCAN and selects a wide match.

    Usage:
        resolver = WideMatchResolver(cache, scan_count=1000)
        match = await resolver.resolve(query_key)
    """

    def __init__(self, cache: KeyValueStore, scan_count: int | None = None):
        self._cache = cache
        self._scan_count = scan_count

    async def resolve(self, query_key: QueryKey) -> WideMatch | None:
        """
        Find a cached superset for a paginated query key.

        Returns:
            WideMatch, or None when the key is unpaginated or nothing matches
        """
        requested = query_key.pagination
        if requested is None:
            return None

        pattern = escape_glob(query_key.base_key) + "*"
        candidates = await self._cache.scan_keys(pattern, count=self._scan_count)

        match = select_wide_match(candidates, query_key.base_key, requested, exclude=query_key.key)

        if match is None:
            log_stage(
                logger,
                Stage.WIDE_MATCH,
                "No wide match",
                key=query_key.key,
                candidates=len(candidates),
            )
        else:
            log_stage(
                logger,
                Stage.WIDE_MATCH,
                "Wide match found",
                key=query_key.key,
                target_key=match.target_key,
                local_start=match.local_range.start,
                local_end=match.local_range.end,
            )
        return match
