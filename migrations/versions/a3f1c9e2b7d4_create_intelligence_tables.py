"""Create enrichment, brand, scout and monitor tables.

Composite (domain, created_at) indexes back the 7-day enrichment cache lookup
and the newest-first history listings.
"""

from __future__ import annotations

import logging

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "a3f1c9e2b7d4"
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger(__name__)

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")
NOW = sa.text("CURRENT_TIMESTAMP")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=NOW),
    ]


def upgrade() -> None:
    op.create_table(
        "enrichment_batches",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("column_mapping", JSON_TYPE, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.PrimaryKeyConstraint("id", name="pk_enrichment_batches"),
    )

    op.create_table(
        "enrichment_jobs",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("input_type", sa.String(length=32), nullable=False),
        sa.Column("input_value", sa.Text(), nullable=False),
        sa.Column("normalized_url", sa.Text(), nullable=True),
        sa.Column("domain", sa.String(length=255), nullable=True),
        sa.Column("company_name", sa.Text(), nullable=True),
        sa.Column("company_description", sa.Text(), nullable=True),
        sa.Column("company_logo", sa.Text(), nullable=True),
        sa.Column("company_industry", sa.Text(), nullable=True),
        sa.Column("company_size", sa.Text(), nullable=True),
        sa.Column("company_founded", sa.Text(), nullable=True),
        sa.Column("company_headquarters", sa.Text(), nullable=True),
        sa.Column("company_website", sa.Text(), nullable=True),
        sa.Column("linkedin_url", sa.Text(), nullable=True),
        sa.Column("twitter_url", sa.Text(), nullable=True),
        sa.Column("facebook_url", sa.Text(), nullable=True),
        sa.Column("crunchbase_url", sa.Text(), nullable=True),
        sa.Column("contact_emails", JSON_TYPE, nullable=True),
        sa.Column("contact_phones", JSON_TYPE, nullable=True),
        sa.Column("tech_stack", JSON_TYPE, nullable=True),
        sa.Column("funding_total", sa.Text(), nullable=True),
        sa.Column("investors", JSON_TYPE, nullable=True),
        sa.Column("key_people", JSON_TYPE, nullable=True),
        sa.Column("raw_response", JSON_TYPE, nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("batch_id", sa.Uuid(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_enrichment_jobs"),
    )
    op.create_index(
        "ix_enrichment_jobs_domain_created", "enrichment_jobs", ["domain", "created_at"], unique=False
    )
    op.create_index("ix_enrichment_jobs_batch_id", "enrichment_jobs", ["batch_id"], unique=False)

    op.create_table(
        "usage_events",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("module", sa.String(length=64), nullable=False),
        sa.Column("input_value", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("duration_ms", sa.Integer(), nullable=False),
        sa.Column("metadata", JSON_TYPE, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.PrimaryKeyConstraint("id", name="pk_usage_events"),
    )
    op.create_index("ix_usage_events_module", "usage_events", ["module"], unique=False)

    op.create_table(
        "brand_extractions",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("input_url", sa.Text(), nullable=False),
        sa.Column("normalized_url", sa.Text(), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("color_scheme", sa.String(length=16), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("colors", JSON_TYPE, nullable=True),
        sa.Column("fonts", JSON_TYPE, nullable=True),
        sa.Column("typography", JSON_TYPE, nullable=True),
        sa.Column("spacing", JSON_TYPE, nullable=True),
        sa.Column("components", JSON_TYPE, nullable=True),
        sa.Column("images", JSON_TYPE, nullable=True),
        sa.Column("animations", JSON_TYPE, nullable=True),
        sa.Column("layout", JSON_TYPE, nullable=True),
        sa.Column("personality", JSON_TYPE, nullable=True),
        sa.Column("site_title", sa.Text(), nullable=True),
        sa.Column("site_description", sa.Text(), nullable=True),
        sa.Column("screenshot_url", sa.Text(), nullable=True),
        sa.Column("raw_response", JSON_TYPE, nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_brand_extractions"),
    )
    op.create_index(
        "ix_brand_extractions_domain_created",
        "brand_extractions",
        ["domain", "created_at"],
        unique=False,
    )

    op.create_table(
        "scouts",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("search_query", sa.Text(), nullable=False),
        sa.Column("schedule", sa.String(length=16), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notification_email", sa.String(length=255), nullable=True),
        sa.Column("seen_urls", JSON_TYPE, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_scouts"),
    )

    op.create_table(
        "scout_results",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("scout_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("snippet", sa.Text(), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=True),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column("metadata", JSON_TYPE, nullable=True),
        sa.ForeignKeyConstraint(["scout_id"], ["scouts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="pk_scout_results"),
    )
    op.create_index(
        "ix_scout_results_scout_seen", "scout_results", ["scout_id", "first_seen_at"], unique=False
    )

    op.create_table(
        "monitors",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("check_interval_seconds", sa.Integer(), nullable=False, server_default="86400"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_checked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_content_hash", sa.String(length=32), nullable=True),
        sa.Column("last_excerpt", sa.Text(), nullable=True),
        sa.Column("notification_email", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_monitors"),
    )

    op.create_table(
        "monitor_changes",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("monitor_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("old_hash", sa.String(length=32), nullable=True),
        sa.Column("new_hash", sa.String(length=32), nullable=True),
        sa.Column("old_excerpt", sa.Text(), nullable=True),
        sa.Column("new_excerpt", sa.Text(), nullable=True),
        sa.Column("ai_summary", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.ForeignKeyConstraint(["monitor_id"], ["monitors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="pk_monitor_changes"),
    )
    op.create_index(
        "ix_monitor_changes_monitor_created",
        "monitor_changes",
        ["monitor_id", "created_at"],
        unique=False,
    )
    logger.info("intelligence.migration.applied", extra={"revision": revision})


def downgrade() -> None:
    op.drop_index("ix_monitor_changes_monitor_created", table_name="monitor_changes")
    op.drop_table("monitor_changes")
    op.drop_table("monitors")
    op.drop_index("ix_scout_results_scout_seen", table_name="scout_results")
    op.drop_table("scout_results")
    op.drop_table("scouts")
    op.drop_index("ix_brand_extractions_domain_created", table_name="brand_extractions")
    op.drop_table("brand_extractions")
    op.drop_index("ix_usage_events_module", table_name="usage_events")
    op.drop_table("usage_events")
    op.drop_index("ix_enrichment_jobs_batch_id", table_name="enrichment_jobs")
    op.drop_index("ix_enrichment_jobs_domain_created", table_name="enrichment_jobs")
    op.drop_table("enrichment_jobs")
    op.drop_table("enrichment_batches")
