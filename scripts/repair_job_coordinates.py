#!/usr/bin/env python3
"""
Find jobs with unusable coordinates and repair them from their address.

For every job whose lat/lng is missing, 0/0 or outside the service area:
- no address and stray coordinates -> coordinates are cleared
- address geocodes to usable coordinates -> coordinates are written
- geocoding fails -> stray coordinates are cleared, otherwise left alone

Dry run by default; pass --apply to write.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from config import get_config  # noqa: E402
from db.jobs_reader import get_connection, query_job_coordinates  # noqa: E402
from db.jobs_writer import JobsWriter  # noqa: E402
from models.errors import ToolError  # noqa: E402
from utils.coords_policy import (  # noqa: E402
    build_address_query_variants,
    is_usable_job_coords,
    normalize_address_text,
    parse_coord,
)
from utils.geocode_adapter import GeocodeAdapter, GoogleGeocoder  # noqa: E402
from utils.validation import get_current_utc_timestamp  # noqa: E402

DEFAULT_LIMIT = 500
MAX_SAMPLES = 20


def parse_args():
    parser = argparse.ArgumentParser(description="Repair unusable job coordinates by geocoding addresses.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--dry-run",
        dest="apply",
        action="store_false",
        help="Report planned changes only (default).",
    )
    mode.add_argument(
        "--apply",
        dest="apply",
        action="store_true",
        help="Write repaired coordinates to the database.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_LIMIT,
        help=f"Max jobs to examine (default: {DEFAULT_LIMIT}).",
    )
    parser.add_argument("--db", default=None, help="SQLite DB path override.")
    parser.set_defaults(apply=False)
    return parser.parse_args()


def build_geocoder() -> GeocodeAdapter:
    config = get_config()
    fallback = None
    if config.geocode_fallback_api_key:
        fallback = GoogleGeocoder(
            api_key=config.geocode_fallback_api_key,
            user_agent=config.http_user_agent,
            timeout_seconds=config.http_timeout_seconds,
        )
    # Query variants already carry the country suffixes
    return GeocodeAdapter(
        base_url=config.geocode_base_url,
        user_agent=config.http_user_agent,
        timeout_seconds=config.http_timeout_seconds,
        fallback=fallback,
    )


def has_any_coords(lat: Any, lng: Any) -> bool:
    return parse_coord(lat) is not None or parse_coord(lng) is not None


def same_coords(job: Dict[str, Any], lat: float, lng: float) -> bool:
    return parse_coord(job.get("lat")) == lat and parse_coord(job.get("lng")) == lng


def geocode_variants(geocoder: GeocodeAdapter, address: str) -> Optional[Dict[str, Any]]:
    """Try each query variant until one resolves to usable coordinates."""
    for query in build_address_query_variants(address):
        try:
            result = geocoder.geocode(query)
        except ToolError:
            continue
        if result and is_usable_job_coords(result["lat"], result["lng"]):
            return result
    return None


def plan_repairs(
    jobs: List[Dict[str, Any]], geocoder: GeocodeAdapter, limit: int
) -> List[Dict[str, Any]]:
    """
    Decide an action for each job with unusable coordinates.

    Returns:
        Plans of {"id", "action", "lat", "lng", "provider"?}; action is one of
        fixed, nulled_no_address, nulled_after_geocode_fail, skipped,
        geocode_failed_no_change
    """
    candidates = [job for job in jobs if not is_usable_job_coords(job.get("lat"), job.get("lng"))]
    plans = []

    for job in candidates[:limit]:
        stray = has_any_coords(job.get("lat"), job.get("lng"))
        address = normalize_address_text(job.get("address_text"))

        if not address:
            action = "nulled_no_address" if stray else "skipped"
            plans.append({"id": job["id"], "action": action, "lat": None, "lng": None})
            continue

        geo = geocode_variants(geocoder, address)
        if geo is not None:
            if same_coords(job, geo["lat"], geo["lng"]):
                plans.append({"id": job["id"], "action": "skipped", "lat": None, "lng": None})
            else:
                plans.append(
                    {
                        "id": job["id"],
                        "action": "fixed",
                        "lat": geo["lat"],
                        "lng": geo["lng"],
                        "provider": geo["provider"],
                    }
                )
            continue

        action = "nulled_after_geocode_fail" if stray else "geocode_failed_no_change"
        plans.append({"id": job["id"], "action": action, "lat": None, "lng": None})

    return plans


def summarize(plans: List[Dict[str, Any]]) -> Dict[str, int]:
    summary = {"scanned": len(plans), "fixed": 0, "nulled": 0, "failed": 0, "skipped": 0}
    for plan in plans:
        action = plan["action"]
        if action == "fixed":
            summary["fixed"] += 1
        elif action.startswith("nulled"):
            summary["nulled"] += 1
        elif action == "geocode_failed_no_change":
            summary["failed"] += 1
        else:
            summary["skipped"] += 1
    return summary


def apply_repairs(plans: List[Dict[str, Any]], db_path: Optional[str]) -> None:
    timestamp = get_current_utc_timestamp()
    with JobsWriter(db_path) as writer:
        for plan in plans:
            if plan["action"] == "fixed" or plan["action"].startswith("nulled"):
                writer.update_job_coordinates(plan["id"], plan["lat"], plan["lng"], timestamp)
        writer.commit()


def main() -> int:
    args = parse_args()
    get_config().setup_logging()

    with get_connection(args.db) as conn:
        jobs = query_job_coordinates(conn)

    plans = plan_repairs(jobs, build_geocoder(), max(1, args.limit))
    if args.apply:
        apply_repairs(plans, args.db)

    print(
        json.dumps(
            {
                "mode": "apply" if args.apply else "dry-run",
                "summary": summarize(plans),
                "samples": [plan for plan in plans if plan["action"] != "skipped"][:MAX_SAMPLES],
            },
            ensure_ascii=False,
            indent=2,
        )
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
