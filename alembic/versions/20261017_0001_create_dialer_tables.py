"""create dialer report, kpi, breakdown and alert tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def _float(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Float(), nullable=nullable)


def _jsonb(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), nullable=nullable)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "dialer_reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("filename", sa.String(length=512), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False, comment="manual or email"),
        sa.Column(
            "report_type",
            sa.String(length=64),
            nullable=True,
            comment="ReportCategory value; NULL when the category is unknown",
        ),
        sa.Column("report_date", sa.Date(), nullable=True, comment="End date of the covered range"),
        sa.Column("date_range_start", sa.Date(), nullable=True),
        sa.Column("date_range_end", sa.Date(), nullable=True),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "parsed_payload",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Decoded typed rows used for recomputation",
        ),
        sa.Column(
            "processed_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Set when the row was folded into a daily computation",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("report_date", "report_type", name="uq_dialer_reports_date_type"),
    )
    op.create_index("ix_dialer_reports_report_date", "dialer_reports", ["report_date"], unique=False)
    op.create_index("ix_dialer_reports_status", "dialer_reports", ["status"], unique=False)
    op.create_index("ix_dialer_reports_created_at", "dialer_reports", ["created_at"], unique=False)

    op.create_table(
        "dialer_daily_kpis",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("total_agents", sa.Integer(), nullable=False),
        sa.Column("agents_with_transfers", sa.Integer(), nullable=False),
        _float("total_dials"),
        _float("total_connects"),
        _float("total_contacts"),
        _float("total_transfers"),
        _float("total_man_hours"),
        _float("total_talk_time_min"),
        _float("total_wait_time_min"),
        _float("total_wrap_time_min"),
        _float("connect_rate"),
        _float("contact_rate"),
        _float("conversion_rate"),
        _float("transfers_per_hour"),
        _float("dials_per_hour"),
        _float("dead_air_ratio"),
        _float("hung_up_ratio"),
        _float("waste_rate"),
        _float("transfer_success_rate"),
        sa.Column("total_campaigns", sa.Integer(), nullable=False),
        _float("total_system_dials"),
        _float("total_system_connects"),
        _float("prev_day_transfers", nullable=True),
        _float("prev_day_tph", nullable=True),
        _float("delta_transfers", nullable=True),
        _float("delta_tph", nullable=True),
        _jsonb("dispositions"),
        _jsonb("distribution", nullable=True),
        _jsonb("raw_data"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("report_date", name="uq_dialer_daily_kpis_report_date"),
    )

    op.create_table(
        "dialer_skill_summaries",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("skill", sa.String(length=255), nullable=False),
        sa.Column("agent_count", sa.Integer(), nullable=False),
        _float("total_connects"),
        _float("total_contacts"),
        _float("total_transfers"),
        _float("total_man_hours"),
        _float("avg_tph"),
        _float("conversion_rate"),
        _jsonb("dispositions"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("report_date", "skill", name="uq_dialer_skill_summaries_date_skill"),
    )
    op.create_index(
        "ix_dialer_skill_summaries_report_date",
        "dialer_skill_summaries",
        ["report_date"],
        unique=False,
    )

    op.create_table(
        "dialer_agent_performance",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("agent_name", sa.String(length=255), nullable=False),
        sa.Column("skill", sa.String(length=255), nullable=True),
        _float("dials"),
        _float("connects"),
        _float("contacts"),
        _float("transfers"),
        _float("hours_worked"),
        _float("talk_time_min"),
        _float("wait_time_min"),
        _float("wrap_time_min"),
        _float("logged_in_time_min"),
        _float("tph"),
        _float("connects_per_hour"),
        _float("connect_rate"),
        _float("conversion_rate"),
        _float("dead_air_ratio"),
        _jsonb("dispositions"),
        sa.Column("tph_rank", sa.Integer(), nullable=True),
        sa.Column("conversion_rank", sa.Integer(), nullable=True),
        sa.Column("dials_rank", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "report_date",
            "agent_name",
            name="uq_dialer_agent_performance_date_agent",
        ),
    )
    op.create_index(
        "ix_dialer_agent_performance_report_date",
        "dialer_agent_performance",
        ["report_date"],
        unique=False,
    )

    op.create_table(
        "dialer_alert_rules",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("metric", sa.String(length=64), nullable=False),
        sa.Column("operator", sa.String(length=8), nullable=False),
        _float("warning_threshold"),
        _float("critical_threshold"),
        sa.Column("scope", sa.String(length=32), nullable=False),
        sa.Column("min_hours_filter", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "dialer_alerts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("rule_id", sa.Integer(), nullable=False),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("subject", sa.String(length=300), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("agent_name", sa.String(length=255), nullable=True),
        sa.Column("skill", sa.String(length=255), nullable=True),
        sa.Column("metric_name", sa.String(length=64), nullable=False),
        _float("metric_value"),
        _float("threshold_value"),
        sa.Column("message", sa.Text(), nullable=False),
        _jsonb("details"),
        sa.Column("acknowledged", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("acknowledged_by", sa.String(length=255), nullable=True),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["rule_id"], ["dialer_alert_rules.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "report_date",
            "rule_id",
            "subject",
            name="uq_dialer_alerts_date_rule_subject",
        ),
    )
    op.create_index("ix_dialer_alerts_report_date", "dialer_alerts", ["report_date"], unique=False)
    op.create_index("ix_dialer_alerts_created_at", "dialer_alerts", ["created_at"], unique=False)
    op.create_index("ix_dialer_alerts_acknowledged", "dialer_alerts", ["acknowledged"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_dialer_alerts_acknowledged", table_name="dialer_alerts")
    op.drop_index("ix_dialer_alerts_created_at", table_name="dialer_alerts")
    op.drop_index("ix_dialer_alerts_report_date", table_name="dialer_alerts")
    op.drop_table("dialer_alerts")
    op.drop_table("dialer_alert_rules")
    op.drop_index("ix_dialer_agent_performance_report_date", table_name="dialer_agent_performance")
    op.drop_table("dialer_agent_performance")
    op.drop_index("ix_dialer_skill_summaries_report_date", table_name="dialer_skill_summaries")
    op.drop_table("dialer_skill_summaries")
    op.drop_table("dialer_daily_kpis")
    op.drop_index("ix_dialer_reports_created_at", table_name="dialer_reports")
    op.drop_index("ix_dialer_reports_status", table_name="dialer_reports")
    op.drop_index("ix_dialer_reports_report_date", table_name="dialer_reports")
    op.drop_table("dialer_reports")
