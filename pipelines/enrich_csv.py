"""Bulk-enrich a CSV of leads and write an enriched copy."""

from __future__ import annotations

import argparse
import csv
import logging
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from app.api.dependencies import build_services
from app.config import settings
from app.services.batch import MAPPING_FIELDS, BatchCoordinator, RowResult, map_row, suggest_mapping
from app.services.errors import ServiceError

logger = logging.getLogger("pipelines.enrich_csv")

ENRICHED_HEADERS = (
    "enriched_company_name",
    "enriched_industry",
    "enriched_size",
    "enriched_website",
    "enriched_linkedin",
    "enriched_twitter",
    "enriched_emails",
    "enriched_phones",
    "enriched_funding",
    "enriched_tech_stack",
    "enrichment_status",
)
_LIST_SEPARATOR = "; "


class CsvEnrichmentError(RuntimeError):
    """Raised when the input file cannot be enriched at all."""

    def __init__(self, message: str, code: str = "CSV_INVALID") -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class CsvEnrichmentSummary:
    batch_id: str
    output: Path
    total: int
    completed: int
    failed: int


def read_rows(path: Path) -> tuple[list[str], list[dict[str, str]]]:
    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        headers = list(reader.fieldnames or [])
        rows = [dict(row) for row in reader]
    return headers, rows


def resolve_mapping(
    headers: Sequence[str],
    overrides: Mapping[str, str] | None = None,
) -> dict[str, str | None]:
    """Auto-detect the column mapping, then apply explicit overrides."""
    mapping = suggest_mapping(headers)
    for key, column in (overrides or {}).items():
        if key not in MAPPING_FIELDS:
            raise CsvEnrichmentError(f"Unknown mapping field: {key}", code="CSV_MAPPING")
        if column not in headers:
            raise CsvEnrichmentError(f"Column not found in CSV: {column}", code="CSV_MAPPING")
        mapping[key] = column
    if not mapping.get("domain") and not mapping.get("email"):
        raise CsvEnrichmentError("A domain or email column is required", code="CSV_MAPPING")
    return mapping


def enriched_values(result: RowResult) -> list[str]:
    enriched: dict[str, Any] = result.enriched or {}

    def text(key: str) -> str:
        value = enriched.get(key)
        return "" if value is None else str(value)

    def joined(key: str) -> str:
        return _LIST_SEPARATOR.join(str(item) for item in enriched.get(key) or [])

    return [
        text("company_name"),
        text("company_industry"),
        text("company_size"),
        text("company_website"),
        text("linkedin_url"),
        text("twitter_url"),
        joined("contact_emails"),
        joined("contact_phones"),
        text("funding_total"),
        joined("tech_stack"),
        result.status,
    ]


def write_rows(
    path: Path,
    headers: Sequence[str],
    rows: Sequence[Mapping[str, str]],
    results: Sequence[RowResult],
) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle, quoting=csv.QUOTE_ALL)
        writer.writerow([*headers, *ENRICHED_HEADERS])
        for row, result in zip(rows, results):
            writer.writerow([*(row.get(h) or "" for h in headers), *enriched_values(result)])


def run_pipeline(
    input_path: Path,
    output_path: Path,
    *,
    coordinator: BatchCoordinator,
    mapping_overrides: Mapping[str, str] | None = None,
    max_workers: int = 4,
    delay_seconds: float = 0.0,
) -> CsvEnrichmentSummary:
    headers, rows = read_rows(input_path)
    if not rows:
        raise CsvEnrichmentError("CSV contains no data rows", code="CSV_EMPTY")
    mapping = resolve_mapping(headers, mapping_overrides)
    logger.info("Column mapping: %s", {k: v for k, v in mapping.items() if v})

    ticket = coordinator.create_batch(rows, mapping)

    def report(index: int, result: RowResult) -> None:
        logger.info(
            "Row %s/%s %s%s",
            index + 1,
            len(rows),
            result.status,
            f" ({result.error})" if result.error else "",
        )

    results = coordinator.process_rows(
        ticket.batch_id,
        [map_row(row, mapping) for row in rows],
        max_workers=max_workers,
        delay_seconds=delay_seconds,
        on_result=report,
    )
    write_rows(output_path, headers, rows, results)
    completed = sum(1 for result in results if result.ok)
    summary = CsvEnrichmentSummary(
        batch_id=str(ticket.batch_id),
        output=output_path,
        total=len(results),
        completed=completed,
        failed=len(results) - completed,
    )
    logger.info(
        "Enriched %s/%s rows (batch %s) -> %s",
        summary.completed,
        summary.total,
        summary.batch_id,
        output_path,
    )
    return summary


def _parse_mapping(values: Sequence[str]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for value in values:
        key, sep, column = value.partition("=")
        if not sep or not key or not column:
            raise argparse.ArgumentTypeError(f"Mapping must look like field=column, got {value!r}")
        overrides[key.strip()] = column.strip()
    return overrides


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Enrich a CSV of leads with company data.")
    parser.add_argument("input", type=Path, help="CSV file with a domain or email column.")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output CSV path (default: <input>-enriched.csv).",
    )
    parser.add_argument(
        "--map",
        dest="mapping",
        action="append",
        default=[],
        metavar="FIELD=COLUMN",
        help=f"Override the detected column for one of: {', '.join(MAPPING_FIELDS)}.",
    )
    parser.add_argument("--workers", type=int, default=settings.batch_max_workers, help="Worker threads.")
    parser.add_argument(
        "--delay",
        type=float,
        default=settings.batch_row_delay_seconds,
        help="Per-worker pause between rows, in seconds.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint for CSV enrichment."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv or sys.argv[1:])
    output = args.output or args.input.with_name(f"{args.input.stem}-enriched.csv")
    try:
        overrides = _parse_mapping(args.mapping)
    except argparse.ArgumentTypeError as exc:
        logger.error("%s", exc)
        return 2

    services = build_services(settings)
    try:
        run_pipeline(
            args.input,
            output,
            coordinator=services.batch,
            mapping_overrides=overrides,
            max_workers=args.workers,
            delay_seconds=args.delay,
        )
    except CsvEnrichmentError as exc:
        logger.error("CSV enrichment failed: %s (code=%s)", exc, exc.code)
        return 1
    except ServiceError as exc:
        logger.error("CSV enrichment failed: %s (code=%s)", exc, exc.code)
        return 1
    except OSError as exc:
        logger.error("Could not read or write CSV: %s", exc)
        return 1
    finally:
        services.close()
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
