"""add connect filter to alert rules and seed the TPH outlier rule

Revision ID: 20261017_0003
Revises: 20261017_0002
Create Date: 2026-10-17 14:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261017_0003"
down_revision = "20261017_0002"
branch_labels = None
depends_on = None

_CONNECT_FILTERED = ("High Dead Air Ratio", "High Hung Up Ratio")

_OUTLIER_RULE = {
    "name": "Low TPH Outlier",
    "description": "Agent TPH in standard deviations from the qualified floor mean",
    "metric": "tph_zscore",
    "operator": "lt",
    "warning_threshold": -2.0,
    "critical_threshold": -3.0,
    "scope": "agent",
    "min_hours_filter": 4.0,
    "min_connects_filter": 0.0,
}

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
    sa.column("min_connects_filter", sa.Float),
    sa.column("is_active", sa.Boolean),
)


def upgrade() -> None:
    op.add_column(
        "dialer_alert_rules",
        sa.Column("min_connects_filter", sa.Float(), server_default=sa.text("0"), nullable=False),
    )
    op.execute(
        _alert_rules.update()
        .where(_alert_rules.c.name.in_(_CONNECT_FILTERED))
        .values(min_connects_filter=50.0)
    )
    op.bulk_insert(_alert_rules, [{**_OUTLIER_RULE, "is_active": True}])


def downgrade() -> None:
    op.execute(_alert_rules.delete().where(_alert_rules.c.name == _OUTLIER_RULE["name"]))
    op.drop_column("dialer_alert_rules", "min_connects_filter")
