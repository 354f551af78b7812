from __future__ import annotations

import csv
from pathlib import Path

import pytest

from pipelines import enrich_csv
from pipelines.enrich_csv import (
    ENRICHED_HEADERS,
    CsvEnrichmentError,
    resolve_mapping,
    run_pipeline,
)


def _write_csv(path: Path, rows: list[list[str]]) -> Path:
    with path.open("w", newline="", encoding="utf-8") as handle:
        csv.writer(handle).writerows(rows)
    return path


def _read_csv(path: Path) -> list[list[str]]:
    with path.open(newline="", encoding="utf-8") as handle:
        return list(csv.reader(handle))


def test_pipeline_appends_enriched_columns(tmp_path, services):
    source = _write_csv(
        tmp_path / "leads.csv",
        [
            ["Name", "Domain", "Email"],
            ["Patrick", "stripe.com", ""],
            ["Jane", "", "jane@acme.io"],
            ["Nobody", "", ""],
        ],
    )
    output = tmp_path / "out" / "leads-enriched.csv"

    summary = run_pipeline(source, output, coordinator=services.batch, max_workers=1)

    assert (summary.total, summary.completed, summary.failed) == (3, 2, 1)
    header, *rows = _read_csv(output)
    assert header == ["Name", "Domain", "Email", *ENRICHED_HEADERS]
    stripe = dict(zip(header, rows[0]))
    assert stripe["enriched_company_name"] == "Stripe"
    assert stripe["enriched_emails"] == "sales@stripe.com; support@stripe.com; sales@stripe.com"
    assert stripe["enriched_tech_stack"] == "Ruby; Go; React"
    assert stripe["enrichment_status"] == "completed"
    assert dict(zip(header, rows[1]))["enrichment_status"] == "completed"
    failed = dict(zip(header, rows[2]))
    assert failed["enrichment_status"] == "failed"
    assert failed["enriched_company_name"] == ""
    assert services.batch.get_batch(summary.batch_id).completed == 2


def test_mapping_overrides_select_columns(tmp_path, services):
    source = _write_csv(tmp_path / "leads.csv", [["Website", "Org"], ["stripe.com", "Stripe"]])

    summary = run_pipeline(
        source,
        tmp_path / "out.csv",
        coordinator=services.batch,
        mapping_overrides={"domain": "Website"},
        max_workers=1,
    )

    assert summary.completed == 1


def test_mapping_requires_domain_or_email():
    with pytest.raises(CsvEnrichmentError) as exc:
        resolve_mapping(["Website", "Org"])

    assert exc.value.code == "CSV_MAPPING"


@pytest.mark.parametrize(
    "overrides",
    [{"industry": "Domain"}, {"domain": "Missing"}],
)
def test_invalid_overrides(overrides):
    with pytest.raises(CsvEnrichmentError):
        resolve_mapping(["Domain"], overrides)


def test_empty_csv_is_rejected(tmp_path, services):
    source = _write_csv(tmp_path / "empty.csv", [["Domain"]])

    with pytest.raises(CsvEnrichmentError) as exc:
        run_pipeline(source, tmp_path / "out.csv", coordinator=services.batch)

    assert exc.value.code == "CSV_EMPTY"


def test_main_rejects_malformed_mapping(tmp_path):
    assert enrich_csv.main([str(tmp_path / "leads.csv"), "--map", "domain"]) == 2


def test_parse_args_defaults(tmp_path):
    args = enrich_csv.parse_args([str(tmp_path / "leads.csv"), "--map", "email=Work Email"])

    assert args.output is None
    assert args.mapping == ["email=Work Email"]
    assert enrich_csv._parse_mapping(args.mapping) == {"email": "Work Email"}
