from __future__ import annotations

from app.clients.firecrawl import FirecrawlError


def test_brand_recon_returns_branding(client, firecrawl):
    response = client.post("/api/brand-recon", json={"input": "hello@stripe.com"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["domain"] == "stripe.com"
    assert data["branding"]["colors"]["primary"] == "#635BFF"
    assert data["screenshot"] == "https://cdn.firecrawl.dev/shot.png"
    assert data["metadata"]["title"] == "Stripe | Payments"
    assert data["id"]
    assert firecrawl.calls[0]["url"] == "https://stripe.com"


def test_brand_recon_history_flattens_columns(client):
    client.post("/api/brand-recon", json={"input": "stripe.com"})

    rows = client.get("/api/brand-recon", params={"domain": "stripe.com"}).json()["data"]

    assert len(rows) == 1
    row = rows[0]
    assert row["status"] == "completed"
    assert row["color_scheme"] == "light"
    assert row["logo_url"] == "https://stripe.com/img/logo.svg"
    assert row["site_title"] == "Stripe | Payments"
    assert row["screenshot_url"] == "https://cdn.firecrawl.dev/shot.png"


def test_brand_recon_requires_input(client):
    response = client.post("/api/brand-recon", json={})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid input: URL or email required"}


def test_brand_recon_failure_is_recorded(client, firecrawl):
    firecrawl.errors["branding"] = FirecrawlError("Site blocked")

    response = client.post("/api/brand-recon", json={"input": "stripe.com"})

    assert response.status_code == 422
    assert response.json() == {"success": False, "error": "Site blocked"}
    rows = client.get("/api/brand-recon").json()["data"]
    assert [(row["status"], row["error_message"]) for row in rows] == [("failed", "Site blocked")]


def test_missing_branding_is_a_failure(client, firecrawl):
    firecrawl.branding = None

    response = client.post("/api/brand-recon", json={"input": "stripe.com"})

    assert response.status_code == 422
    assert response.json()["error"] == "Failed to extract brand identity"
