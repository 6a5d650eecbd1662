"""seed default dialer alert rules

Revision ID: 20261017_0002
Revises: 20261017_0001
Create Date: 2026-10-17 09:30:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261017_0002"
down_revision = "20261017_0001"
branch_labels = None
depends_on = None

# Frozen copy of alerts.rules.DEFAULT_RULES at the time of this revision.
_RULES = [
    {
        "name": "High Dead Air Ratio",
        "description": "Agent dead air calls as a share of connects",
        "metric": "dead_air_ratio",
        "operator": "gte",
        "warning_threshold": 30.0,
        "critical_threshold": 50.0,
        "scope": "agent",
        "min_hours_filter": 2.0,
    },
    {
        "name": "High Hung Up Ratio",
        "description": "Transfers the customer hung up on, as a share of connects",
        "metric": "hung_up_ratio",
        "operator": "gte",
        "warning_threshold": 10.0,
        "critical_threshold": 30.0,
        "scope": "agent",
        "min_hours_filter": 2.0,
    },
    {
        "name": "Zero Transfers",
        "description": "Agent worked a full shift without a transfer",
        "metric": "zero_transfers",
        "operator": "eq",
        "warning_threshold": 0.0,
        "critical_threshold": 0.0,
        "scope": "agent",
        "min_hours_filter": 4.0,
    },
    {
        "name": "Low Transfers Per Hour",
        "description": "Agent TPH below the coaching floor",
        "metric": "tph",
        "operator": "lte",
        "warning_threshold": 0.5,
        "critical_threshold": 0.2,
        "scope": "agent",
        "min_hours_filter": 4.0,
    },
    {
        "name": "Low Daily Connect Rate",
        "description": "Floor-wide connect rate",
        "metric": "connect_rate",
        "operator": "lte",
        "warning_threshold": 3.0,
        "critical_threshold": 2.0,
        "scope": "daily_aggregate",
        "min_hours_filter": 0.0,
    },
    {
        "name": "Transfer Volume Drop",
        "description": "Day-over-day change in total transfers, in percent",
        "metric": "transfer_volume_delta",
        "operator": "lte",
        "warning_threshold": -15.0,
        "critical_threshold": -30.0,
        "scope": "daily_aggregate",
        "min_hours_filter": 0.0,
    },
    {
        "name": "TPH Trend Drop",
        "description": "Floor TPH against its trailing average, in percent",
        "metric": "transfers_per_hour",
        "operator": "lte",
        "warning_threshold": -20.0,
        "critical_threshold": -35.0,
        "scope": "trend",
        "min_hours_filter": 0.0,
    },
]

_alert_rules = sa.table(
    "dialer_alert_rules",
    sa.column("name", sa.String),
    sa.column("description", sa.Text),
    sa.column("metric", sa.String),
    sa.column("operator", sa.String),
    sa.column("warning_threshold", sa.Float),
    sa.column("critical_threshold", sa.Float),
    sa.column("scope", sa.String),
    sa.column("min_hours_filter", sa.Float),
    sa.column("is_active", sa.Boolean),
)


def upgrade() -> None:
    op.bulk_insert(_alert_rules, [{**rule, "is_active": True} for rule in _RULES])


def downgrade() -> None:
    op.execute(
        _alert_rules.delete().where(_alert_rules.c.name.in_([rule["name"] for rule in _RULES]))
    )
