from collections.abc import Sequence
from difflib import get_close_matches

from ..core.errors import AmbiguousError
from ..core.models import ScheduledOccurrence

__all__ = ["find_in_pool", "find_in_pool_exact"]

FUZZY_MATCH_CUTOFF = 0.8


def _match_id(ref: str, pool: Sequence[ScheduledOccurrence]) -> ScheduledOccurrence | None:
    exact = next((item for item in pool if item.id == ref), None)
    if exact:
        return exact
    ref_lower = ref.lower()
    matches = [item for item in pool if item.id.lower().startswith(ref_lower)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [item.id for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_substring(ref: str, pool: Sequence[ScheduledOccurrence]) -> ScheduledOccurrence | None:
    ref_lower = ref.lower()
    exact = [item for item in pool if item.title.lower() == ref_lower]
    if len(exact) == 1:
        return exact[0]
    matches = exact or [item for item in pool if ref_lower in item.title.lower()]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [f"{item.title} [{item.id[:8]}]" for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_fuzzy(ref: str, pool: Sequence[ScheduledOccurrence]) -> ScheduledOccurrence | None:
    titles = [item.title.lower() for item in pool]
    matches = get_close_matches(ref.lower(), titles, n=1, cutoff=FUZZY_MATCH_CUTOFF)
    if matches:
        return pool[titles.index(matches[0])]
    return None


def find_in_pool(ref: str, pool: Sequence[ScheduledOccurrence]) -> ScheduledOccurrence | None:
    if not pool:
        return None
    return _match_id(ref, pool) or _match_substring(ref, pool) or _match_fuzzy(ref, pool)


def find_in_pool_exact(ref: str, pool: Sequence[ScheduledOccurrence]) -> ScheduledOccurrence | None:
    if not pool:
        return None
    return _match_id(ref, pool) or _match_substring(ref, pool)
