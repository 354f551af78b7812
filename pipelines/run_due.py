"""One-shot trigger for due scouts and monitors; meant to run from cron."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import Any

from app.api.dependencies import ServiceContainer, build_services
from app.config import settings
from app.services.errors import ServiceError

logger = logging.getLogger("pipelines.run_due")


def run_once(
    services: ServiceContainer,
    *,
    scouts: bool = True,
    monitors: bool = True,
) -> dict[str, list[dict[str, Any]]]:
    """Run every due scout and check every due monitor exactly once."""
    report: dict[str, list[dict[str, Any]]] = {"scouts": [], "monitors": []}
    if scouts:
        report["scouts"] = asyncio.run(services.scouts.run_due())
    if monitors:
        report["monitors"] = services.monitors.check_due()
    for kind, outcomes in report.items():
        failures = sum(1 for outcome in outcomes if not outcome.get("success"))
        logger.info("Processed %s due %s (%s failed).", len(outcomes), kind, failures)
    return report


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Run due scouts and check due monitors once.")
    parser.add_argument("--skip-scouts", action="store_true", help="Do not run scouts.")
    parser.add_argument("--skip-monitors", action="store_true", help="Do not check monitors.")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint for the due trigger."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv or sys.argv[1:])
    services = build_services(settings)
    try:
        report = run_once(
            services,
            scouts=not args.skip_scouts,
            monitors=not args.skip_monitors,
        )
    except ServiceError as exc:
        logger.error("Due run failed: %s (code=%s)", exc, exc.code)
        return 1
    finally:
        services.close()
    failed = any(not outcome.get("success") for outcomes in report.values() for outcome in outcomes)
    return 1 if failed else 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
