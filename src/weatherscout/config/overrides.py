from __future__ import annotations


# Overrides arrive as JSON payloads (dict-like objects), so typing stays flexible here
# and the error messages carry the dotted key path.
from typing import Any, Mapping

from weatherscout.config.settings import Settings

"""
Per-request settings overrides (safe subset).

The API and CLI can send `settings_overrides` to tune badge thresholds, caps and
selection constants for a single map run. This module:
- validates the override payload against a whitelist,
- deep-merges the safe subset onto current settings,
- re-validates with Pydantic to ensure types/ranges remain correct.

File paths (`catalog.path`) and `app` settings are never overridable per request.
"""

# Which parts of the global Settings object can be overridden per request.
#
# How to read this structure:
# - A value of True means "allow any keys under this subtree".
# - A nested dict means "only allow the listed keys, recursively".
ALLOWED_SETTINGS_OVERRIDES_TREE: dict[str, Any] = {
    # Badge thresholds, caps, spacing and display metadata are pure math/presentation knobs.
    "badges": True,
    "selection": True,
    # `derived_stability` shapes catalog adaption at load time, not a single run.
    "weather": {
        "comfort_temperature_c": True,
        "temperature_penalty_per_c": True,
        "condition_scores": True,
        "unknown_condition_score": True,
        "wind_penalty_per_kmh": True,
        "score_weights": True,
        "default_stability": True,
        "default_wind_speed_kmh": True,
        "default_attractiveness": True,
        "average_speed_kmh": True,
        "min_eta_hours": True,
        "fallback_origin_temperature_c": True,
    },
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    # New dict: the caller's `base` is shared via lru_cache and must stay untouched.
    merged: dict[str, Any] = dict(base)
    for key, override_value in override.items():
        # Both sides are mappings: merge recursively so nested keys override cleanly.
        if isinstance(override_value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), override_value)
            continue
        # Otherwise the override replaces the base value (lists are replaced, not appended).
        merged[key] = override_value
    return merged


def _filter_overrides(
    overrides: Mapping[str, Any],
    *,
    allowed_tree: Mapping[str, Any],
    path: tuple[str, ...] = (),
) -> dict[str, Any]:
    filtered: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in allowed_tree:
            dotted_path = ".".join((*path, key))
            raise ValueError(
                f"settings_overrides contains a disallowed key: '{dotted_path}'"
            )

        allowed = allowed_tree[key]
        if allowed is True:
            filtered[key] = value
            continue

        if not isinstance(value, Mapping):
            dotted_path = ".".join((*path, key))
            raise ValueError(
                f"settings_overrides key '{dotted_path}' must be a mapping"
            )

        filtered[key] = _filter_overrides(
            value, allowed_tree=allowed, path=(*path, key)
        )
    return filtered


def apply_settings_overrides(
    settings: Settings, overrides: Mapping[str, Any] | None
) -> Settings:
    """Return `settings` with a whitelisted override payload merged in (re-validated)."""
    if not overrides:
        return settings

    safe_overrides = _filter_overrides(
        overrides, allowed_tree=ALLOWED_SETTINGS_OVERRIDES_TREE
    )

    merged_payload = _deep_merge(settings.model_dump(mode="python"), safe_overrides)

    # Re-validate so a run never proceeds with an invalid Settings object.
    return Settings.model_validate(merged_payload)
