"""Command line interface for refreshing the lead feeds once."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from .config import ConfigurationError, load_configuration
from .factory import build_coordinator
from .ingestion import export_snapshot, load_lead_patches
from .metrics import DashboardMetrics
from .models import FeedStatus, LeadPatch


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Refresh every dashboard lead feed, then print metrics and optionally export the merged leads",
    )
    parser.add_argument("config", help="Path to the sync configuration file (YAML or JSON)")
    parser.add_argument(
        "--output",
        default=None,
        help="Write the merged lead snapshot to this CSV or XLSX file",
    )
    parser.add_argument(
        "--fallback",
        default=None,
        help="Known-good lead dataset merged for any feed that times out (overrides 'fallback_dataset')",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each feed before falling back (overrides 'bounded_wait_seconds')",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    return parser


def parse_args(argv: list[str] | None = None, *, prog: str | None = None) -> argparse.Namespace:
    return build_parser(prog).parse_args(argv)


def metrics_to_dict(metrics: DashboardMetrics) -> Dict[str, Any]:
    return {
        "total": metrics.total,
        "new_today": metrics.new_today,
        "booked": metrics.booked,
        "completed": metrics.completed,
        "revenue": metrics.revenue,
        "calls_made": metrics.calls_made,
        "calls_answered": metrics.calls_answered,
        "answer_rate": round(metrics.answer_rate, 4),
        "messages_total": metrics.messages_total,
        "by_status": {status.value: count for status, count in metrics.by_status.items()},
    }


def main(argv: list[str] | None = None, *, prog: str | None = None) -> int:
    args = parse_args(argv, prog=prog)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        config = load_configuration(args.config)
    except ConfigurationError as exc:
        logging.error("%s", exc)
        return 2
    if args.timeout is not None:
        config["bounded_wait_seconds"] = args.timeout

    fallback: List[LeadPatch] = []
    fallback_path = args.fallback or config.get("fallback_dataset")
    if fallback_path:
        try:
            fallback = load_lead_patches(fallback_path)
        except (OSError, ValueError) as exc:
            logging.error("Could not load fallback dataset %s: %s", fallback_path, exc)
            return 2
        logging.info("Loaded %s fallback leads from %s", len(fallback), fallback_path)

    with build_coordinator(config, fallback=fallback) as coordinator:
        if not coordinator.feeds:
            logging.warning("No feeds are enabled - nothing to do")
            return 0

        coordinator.refresh_all().wait()
        states = coordinator.feed_states()
        for name, state in states.items():
            if state.status is FeedStatus.OK:
                logging.info("Feed %s: %s leads merged", name, state.lead_count)
            else:
                logging.warning("Feed %s: %s (%s)", name, state.status.value, state.error)

        snapshot = coordinator.snapshot()
        print(json.dumps(metrics_to_dict(coordinator.metrics()), indent=2))

    if args.output:
        destination = export_snapshot(snapshot, args.output)
        logging.info("Lead snapshot written to %s", Path(destination).resolve())

    if all(state.status is not FeedStatus.OK for state in states.values()):
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
