"""
Badge display metadata and config lookup.

Each badge type has an icon, a color, a stacking `priority` (lower renders first) and a
`map_visible` flag. Badges with `map_visible: false` are detail-only: they stay in a
candidate's `badges` but never render as map glyphs and never count as "has badges"
for marker selection.
"""

from __future__ import annotations

from typing import Any, Iterable

from weatherscout.config.settings import BadgeRuleSettings, Settings
from weatherscout.domain.models import BADGE_ORDER, BadgeType


def badge_rule(badge: BadgeType, *, settings: Settings) -> BadgeRuleSettings:
    """Settings block for one badge type (`settings.badges.<lower_snake_name>`)."""
    return getattr(settings.badges, badge.settings_key)


def map_visible_badges(badges: Iterable[BadgeType], *, settings: Settings) -> list[BadgeType]:
    return [b for b in badges if badge_rule(b, settings=settings).map_visible]


def map_glyphs(badges: Iterable[BadgeType], *, settings: Settings) -> list[BadgeType]:
    """Map-visible badges in stacking order, limited to the per-marker glyph budget.

    Equal priorities fall back to declaration order.
    """
    visible = map_visible_badges(badges, settings=settings)
    visible.sort(key=lambda b: (badge_rule(b, settings=settings).priority, BADGE_ORDER[b]))
    return visible[: settings.selection.max_glyphs_per_marker]


def badge_metadata(*, settings: Settings) -> list[dict[str, Any]]:
    """Display metadata for every badge type, in declaration order."""
    out: list[dict[str, Any]] = []
    for badge in BadgeType:
        rule = badge_rule(badge, settings=settings)
        out.append(
            {
                "badge": badge.value,
                "icon": rule.icon,
                "color": rule.color,
                "priority": rule.priority,
                "map_visible": rule.map_visible,
                "cap": rule.cap,
                "min_spacing_km": rule.min_spacing_km,
                "per_country_cap": rule.per_country_cap,
            }
        )
    return out
