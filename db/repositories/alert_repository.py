"""
db/repositories/alert_repository.py

Persistence layer for alert rules and alerts.

The caller controls commit/rollback; this repository never commits.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.base import utc_now
from db.models.alert import Alert, AlertRule
from db.repositories.upsert import dialect_insert

_ALERT_KEY_COLUMNS = ["report_date", "rule_id", "subject"]


class AlertRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def list_active_rules(self) -> list[AlertRule]:
        stmt = select(AlertRule).where(AlertRule.is_active.is_(True)).order_by(AlertRule.id)
        return list(self._session.scalars(stmt).all())

    def rule_names(self, rule_ids: Iterable[int]) -> dict[int, str]:
        ids = sorted(set(rule_ids))
        if not ids:
            return {}
        stmt = select(AlertRule.id, AlertRule.name).where(AlertRule.id.in_(ids))
        return {row.id: row.name for row in self._session.execute(stmt)}

    # ------------------------------------------------------------------
    # Alerts: write
    # ------------------------------------------------------------------

    def insert_alerts(self, rows: Sequence[dict[str, Any]]) -> int:
        """
        Insert alerts, skipping any whose ``(report_date, rule_id, subject)``
        already exists. Existing alerts, including their acknowledgement,
        are never modified.

        Returns
        -------
        int
            Number of newly inserted alerts.
        """
        if not rows:
            return 0
        now = utc_now()
        payloads = [
            {
                "id": uuid.uuid4(),
                "acknowledged": False,
                "created_at": now,
                **row,
            }
            for row in rows
        ]
        stmt = (
            dialect_insert(self._session, Alert)
            .values(payloads)
            .on_conflict_do_nothing(index_elements=_ALERT_KEY_COLUMNS)
            .returning(Alert.id)
        )
        return len(self._session.scalars(stmt).all())

    # ------------------------------------------------------------------
    # Alerts: read
    # ------------------------------------------------------------------

    def get(self, alert_id: uuid.UUID) -> Alert | None:
        return self._session.get(Alert, alert_id)

    def list_alerts(
        self,
        *,
        report_date: date | None = None,
        unacknowledged_only: bool = False,
        limit: int = 50,
    ) -> list[Alert]:
        """Alerts newest first, bounded by *limit*."""
        stmt: Select[tuple[Alert]] = select(Alert)
        if report_date is not None:
            stmt = stmt.where(Alert.report_date == report_date)
        if unacknowledged_only:
            stmt = stmt.where(Alert.acknowledged.is_(False))
        stmt = stmt.order_by(Alert.created_at.desc(), Alert.id).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())
