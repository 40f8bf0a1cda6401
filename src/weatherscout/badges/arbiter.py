"""
Badge arbitration (global constraints).

Per-candidate rules only say who *could* hold a badge. This module runs once over the
whole scored candidate set and decides who actually does:

1. Budget winner-take-all: highest efficiency wins `WORTH_THE_DRIVE_BUDGET`; the winner
   leaves the `WORTH_THE_DRIVE` pool (exclusivity).
2. Worth the Drive: warmest first, capped, spaced.
3. Beach Paradise / 4. Sunny Streak: temp + attractiveness score, capped (Sunny also spaced).
5. Snow King: snow/cold composite, capped overall and per country.
6. Warm & Dry: warmest first, capped.
7. Weather Miracle / Heatwave: every eligible candidate keeps the badge.

Budget must run before Worth the Drive. The remaining steps touch disjoint badge types.
All knobs (caps, spacing, per-country caps) come from `settings.badges.<type>`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from weatherscout.badges.catalog import badge_rule
from weatherscout.config.settings import Settings
from weatherscout.core.spatial_index import SpatialGridIndex
from weatherscout.domain.models import BADGE_ORDER, BadgeType, ScoredCandidate

logger = logging.getLogger(__name__)

SortKey = Callable[[ScoredCandidate], tuple[float, ...]]


def _temp_then_rank(badge: BadgeType) -> SortKey:
    return lambda s: (-s.candidate.temperature, -s.evaluations[badge].rank_score)


def _rank_then_temp(badge: BadgeType) -> SortKey:
    return lambda s: (-s.evaluations[badge].rank_score, -s.candidate.temperature)


def _temp_only(_: BadgeType) -> SortKey:
    return lambda s: (-s.candidate.temperature,)


@dataclass(frozen=True)
class ArbitrationStep:
    badge: BadgeType
    sort_key: Callable[[BadgeType], SortKey]
    excludes: tuple[BadgeType, ...] = ()


# Fixed order. `excludes`: holders of these badges drop out of this badge's pool.
ARBITRATION_STEPS: tuple[ArbitrationStep, ...] = (
    ArbitrationStep(BadgeType.WORTH_THE_DRIVE_BUDGET, _rank_then_temp),
    ArbitrationStep(BadgeType.WORTH_THE_DRIVE, _temp_then_rank, excludes=(BadgeType.WORTH_THE_DRIVE_BUDGET,)),
    ArbitrationStep(BadgeType.BEACH_PARADISE, _rank_then_temp),
    ArbitrationStep(BadgeType.SUNNY_STREAK, _rank_then_temp),
    ArbitrationStep(BadgeType.SNOW_KING, _rank_then_temp),
    ArbitrationStep(BadgeType.WARM_AND_DRY, _temp_only),
    ArbitrationStep(BadgeType.WEATHER_MIRACLE, _rank_then_temp),
    ArbitrationStep(BadgeType.HEATWAVE, _rank_then_temp),
)


def _greedy_accept(
    pool: Iterable[int],
    scored: list[ScoredCandidate],
    *,
    cap: int | None,
    min_spacing_km: float | None,
    per_country_cap: int | None,
) -> list[int]:
    """Accept candidates in pool order subject to cap, spacing and per-country cap.

    Candidates without a country code are not subject to the per-country cap.
    """
    accepted: list[int] = []
    per_country: dict[str, int] = {}
    spacing = float(min_spacing_km or 0)
    index: SpatialGridIndex[int] | None = None
    if spacing > 0:
        index = SpatialGridIndex(
            get_latlon=lambda i: (scored[i].candidate.location.lat, scored[i].candidate.location.lon),
            cell_size_km=spacing,
        )

    for i in pool:
        if cap is not None and len(accepted) >= cap:
            break
        candidate = scored[i].candidate
        country = candidate.country_code
        if per_country_cap is not None and country and per_country.get(country, 0) >= per_country_cap:
            continue
        if index is not None and index.any_closer_than(
            lat=candidate.location.lat, lon=candidate.location.lon, distance_km=spacing
        ):
            continue
        accepted.append(i)
        if country:
            per_country[country] = per_country.get(country, 0) + 1
        if index is not None:
            index.add(i)
    return accepted


def arbitrate_badges(scored: list[ScoredCandidate], *, settings: Settings) -> list[ScoredCandidate]:
    """Resolve caps, spacing, winner-take-all and exclusivity over the whole set.

    Returns new records (same order) with final `badges`; input records are untouched.
    Sorting is stable, so exact ties keep input order.
    """
    awards: list[set[BadgeType]] = [set() for _ in scored]

    for step in ARBITRATION_STEPS:
        rule = badge_rule(step.badge, settings=settings)
        pool = [
            i
            for i, s in enumerate(scored)
            if s.is_eligible(step.badge) and not awards[i].intersection(step.excludes)
        ]
        key = step.sort_key(step.badge)
        pool.sort(key=lambda i: key(scored[i]))
        winners = _greedy_accept(
            pool,
            scored,
            cap=rule.cap,
            min_spacing_km=rule.min_spacing_km,
            per_country_cap=rule.per_country_cap,
        )
        for i in winners:
            awards[i].add(step.badge)

        excluded = [
            i for i, s in enumerate(scored) if s.is_eligible(step.badge) and awards[i].intersection(step.excludes)
        ]
        for i in excluded:
            logger.debug("%s: %s withheld (holds %s)", scored[i].id, step.badge.value, sorted(b.value for b in step.excludes))
        logger.debug(
            "%s: %d eligible, %d awarded (cap=%s spacing=%s per_country=%s)",
            step.badge.value,
            len(pool),
            len(winners),
            rule.cap,
            rule.min_spacing_km,
            rule.per_country_cap,
        )

    return [
        s.model_copy(update={"badges": sorted(awards[i], key=BADGE_ORDER.__getitem__)})
        for i, s in enumerate(scored)
    ]


def badge_counts(scored: Iterable[ScoredCandidate]) -> dict[str, int]:
    """Number of holders per badge type (all types present, declaration order)."""
    counts = {b.value: 0 for b in BadgeType}
    for s in scored:
        for b in s.badges:
            counts[b.value] += 1
    return counts
