"""
app/services/alert_service.py

Alert listing, acknowledgement, and conversion of stored rules for the engine.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from functools import lru_cache

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from alerts.base import OPERATORS, SCOPES, AlertRuleDefinition
from db.base import utc_now
from db.models.alert import Alert, AlertRule
from db.repositories.alert_repository import AlertRepository
from db.repositories.errors import AlertNotFoundError

logger = logging.getLogger(__name__)


class AlertPersistenceError(RuntimeError):
    """Raised when an acknowledgement cannot be committed (after rollback)."""


@dataclass(frozen=True)
class AlertView:
    """An alert paired with its rule name; ``rule_name`` is None when unresolved."""

    alert: Alert
    rule_name: str | None


def rule_definitions(rows: Iterable[AlertRule]) -> list[AlertRuleDefinition]:
    """
    Convert stored rules into engine definitions.

    Rules with a scope or operator the engine does not implement are
    skipped with a warning so one bad row cannot block a computation.
    """
    definitions: list[AlertRuleDefinition] = []
    for row in rows:
        if row.scope not in SCOPES or row.operator not in OPERATORS:
            logger.warning(
                "Skipping alert rule id=%s name=%r: unsupported scope=%r operator=%r",
                row.id,
                row.name,
                row.scope,
                row.operator,
            )
            continue
        definitions.append(
            AlertRuleDefinition(
                rule_id=row.id,
                name=row.name,
                description=row.description or "",
                metric=row.metric,
                operator=row.operator,
                warning_threshold=row.warning_threshold,
                critical_threshold=row.critical_threshold,
                scope=row.scope,
                min_hours_filter=row.min_hours_filter or 0.0,
                min_connects_filter=row.min_connects_filter or 0.0,
            )
        )
    return definitions


class AlertService:
    def list_alerts(
        self,
        db: Session,
        *,
        report_date: date | None = None,
        unacknowledged_only: bool = False,
        limit: int = 50,
    ) -> list[AlertView]:
        """
        Alerts newest first with their rule names.

        Rule names are a convenience: if the lookup fails the alerts are
        still returned with ``rule_name=None``.
        """
        repository = AlertRepository(db)
        alerts = repository.list_alerts(
            report_date=report_date,
            unacknowledged_only=unacknowledged_only,
            limit=limit,
        )
        try:
            names = repository.rule_names({a.rule_id for a in alerts})
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Rule name lookup failed; returning alerts without names: %s", exc)
            names = {}
        return [AlertView(alert=a, rule_name=names.get(a.rule_id)) for a in alerts]

    def acknowledge(
        self,
        db: Session,
        alert_id: uuid.UUID | str,
        acknowledged_by: str,
        notes: str | None = None,
    ) -> Alert:
        """
        Mark an alert acknowledged.

        Acknowledgement is terminal: an alert that is already acknowledged
        is returned unchanged.

        Raises
        ------
        AlertNotFoundError
            If no alert has *alert_id*, including ids that are not UUIDs.
        AlertPersistenceError
            If the update cannot be committed.
        """
        if not isinstance(alert_id, uuid.UUID):
            try:
                alert_id = uuid.UUID(alert_id)
            except ValueError as exc:
                raise AlertNotFoundError(alert_id) from exc

        repository = AlertRepository(db)
        alert = repository.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        if alert.acknowledged:
            logger.info("Alert %s already acknowledged by %r; unchanged", alert_id, alert.acknowledged_by)
            return alert

        alert.acknowledged = True
        alert.acknowledged_by = acknowledged_by
        alert.acknowledged_at = utc_now()
        alert.notes = notes
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Acknowledging alert %s failed: %s", alert_id, exc, exc_info=True)
            raise AlertPersistenceError(f"Failed to acknowledge alert {alert_id}: {exc}") from exc
        logger.info("Alert %s acknowledged by %r", alert_id, acknowledged_by)
        return alert


@lru_cache(maxsize=1)
def get_alert_service() -> AlertService:
    return AlertService()
