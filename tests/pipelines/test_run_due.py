from __future__ import annotations

from app.clients.firecrawl import FirecrawlError
from pipelines.run_due import parse_args, run_once


def test_run_once_processes_due_scouts_and_monitors(services):
    services.scouts.create(name="Manual", search_query="manual")
    daily = services.scouts.create(name="Daily", search_query="acme", schedule="daily")
    monitor = services.monitors.create(name="Pricing", url="https://acme.io/pricing")

    report = run_once(services)

    assert [outcome["id"] for outcome in report["scouts"]] == [str(daily.id)]
    assert report["scouts"][0]["new_results"] == 3
    assert report["monitors"] == [
        {
            "id": str(monitor.id),
            "success": True,
            "changed": False,
            "new_hash": report["monitors"][0]["new_hash"],
        }
    ]

    second = run_once(services)
    assert second == {"scouts": [], "monitors": []}


def test_run_once_can_skip_kinds(services):
    services.scouts.create(name="Daily", search_query="acme", schedule="daily")

    report = run_once(services, scouts=False)

    assert report["scouts"] == []


def test_failed_checks_are_reported(services, firecrawl):
    firecrawl.errors["markdown"] = FirecrawlError("timeout")
    monitor = services.monitors.create(name="Pricing", url="https://acme.io/pricing")

    report = run_once(services, scouts=False)

    assert report["monitors"] == [{"id": str(monitor.id), "success": False, "error": "Failed to scrape URL"}]


def test_parse_args_flags():
    args = parse_args(["--skip-scouts"])

    assert args.skip_scouts is True
    assert args.skip_monitors is False
