"""Reporting periods and their fallback chains."""

from collections.abc import Iterable, Mapping

from loguru import logger

BROADEST_PERIOD = "this_year"

_DAY = ("this_week", "this_month", "this_year")
_WEEK = ("this_month", "this_year")
_MONTH = ("this_quarter", "this_year")
_QUARTER = ("this_year",)

# Narrower -> broader. The first period present in the snapshot wins.
DEFAULT_FALLBACKS: dict[str, tuple[str, ...]] = {
    "today": _DAY,
    "yesterday": _DAY,
    "this_week": _WEEK,
    "last_week": _WEEK,
    "last_7_days": _WEEK,
    "this_month": _MONTH,
    "last_month": _MONTH,
    "last_30_days": _MONTH,
    "this_quarter": _QUARTER,
    "last_quarter": _QUARTER,
    "last_90_days": _QUARTER,
}


def fallback_chain(period: str, fallbacks: Mapping[str, Iterable[str]] | None = None) -> list[str]:
    """Configured fallbacks for a period (empty for unknown periods)."""
    table = DEFAULT_FALLBACKS if fallbacks is None else fallbacks
    return list(table.get(period, ()))


def resolve_period(
    period: str,
    available: Iterable[str],
    fallbacks: Mapping[str, Iterable[str]] | None = None,
    broadest: str = BROADEST_PERIOD,
) -> str | None:
    """Pick the period that satisfies a request, or None if nothing does."""
    present = set(available)
    if period in present:
        return period

    for candidate in fallback_chain(period, fallbacks):
        if candidate in present:
            logger.info("Time range '{}' not in snapshot, falling back to '{}'", period, candidate)
            return candidate

    if broadest in present:
        logger.info("Time range '{}' not in snapshot, using broadest '{}'", period, broadest)
        return broadest
    return None
