"""
WeatherScout CLI entrypoint.

This CLI is intended for quick local demos and debugging without a map frontend.
It delegates all map logic to `weatherscout.recommender.pipeline.build_map`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from weatherscout.badges.catalog import badge_metadata
from weatherscout.catalog.loader import load_catalog_rows
from weatherscout.config.settings import get_settings
from weatherscout.core.logging import configure_logging
from weatherscout.domain.models import GeoPoint, MarkerRequest, Origin, Viewport
from weatherscout.recommender.pipeline import build_map


def _cmd_markers(args: argparse.Namespace) -> int:
    """Handle the `markers` subcommand."""
    settings = get_settings()
    rows = load_catalog_rows(args.catalog) if args.catalog else None

    overrides = json.loads(args.overrides) if args.overrides else None

    request = MarkerRequest(
        origin=Origin(
            location=GeoPoint(lat=float(args.origin_lat), lon=float(args.origin_lon)),
            temperature=float(args.origin_temp) if args.origin_temp is not None else None,
            condition=args.origin_condition,
        ),
        viewport=Viewport(zoom_level=int(args.zoom), radius_km=float(args.radius_km)),
        candidates=rows,
        condition_filter=args.condition,
        settings_overrides=overrides,
    )

    result = build_map(request, settings=settings)

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    print(f"Generated at: {result.generated_at.isoformat()}")
    for w in result.meta.get("warnings", []):
        print(f"! {w['code']}: {w['message']}")
    print(f"Markers ({len(result.markers)}/{result.meta['selection']['max_markers']}):")
    for i, m in enumerate(result.markers, start=1):
        temp = "?" if m.temperature is None else f"{m.temperature:.0f}°C"
        badges = ", ".join(b.value for b in m.badges)
        line = f"{i:>3}. {m.name or m.id}  {temp} {m.condition or '-'}  {m.distance_km:.0f} km  [{m.selection}]"
        print(f"{line}  {badges}" if badges else line)
    return 0


def _cmd_badges(args: argparse.Namespace) -> int:
    settings = get_settings()
    rows = badge_metadata(settings=settings)
    if args.json:
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0
    for row in rows:
        visibility = "map" if row["map_visible"] else "detail-only"
        cap = "-" if row["cap"] is None else row["cap"]
        print(f"{row['icon']} {row['badge']:<24} priority={row['priority']} cap={cap} {visibility}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the WeatherScout CLI."""
    parser = argparse.ArgumentParser(prog="weatherscout")
    sub = parser.add_subparsers(dest="command", required=True)

    mk = sub.add_parser("markers", help="Score, badge and declutter a candidate catalog for one map view.")
    mk.add_argument("--origin-lat", required=True, type=float)
    mk.add_argument("--origin-lon", required=True, type=float)
    mk.add_argument("--origin-temp", type=float, default=None, help="Omit to synthesize from candidates")
    mk.add_argument("--origin-condition", type=str, default=None)
    mk.add_argument("--zoom", type=int, default=6)
    mk.add_argument("--radius-km", type=float, default=500.0)
    mk.add_argument("--catalog", type=str, default=None, help="JSON catalog path (default: settings.catalog.path)")
    mk.add_argument("--condition", type=str, default=None, help="Only keep candidates with this condition")
    mk.add_argument("--overrides", type=str, default=None, help="settings_overrides as a JSON object")
    mk.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    mk.set_defaults(func=_cmd_markers)

    bd = sub.add_parser("badges", help="List badge types with display metadata and caps.")
    bd.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    bd.set_defaults(func=_cmd_badges)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m weatherscout.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
