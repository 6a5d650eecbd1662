"""
alerts/base.py

Rule and anomaly containers, and the abstract base class for scope evaluators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

SEVERITY_WARNING = "warning"
SEVERITY_CRITICAL = "critical"

OPERATORS: frozenset[str] = frozenset({"gte", "lte", "gt", "lt", "eq"})
SCOPES: frozenset[str] = frozenset({"daily_aggregate", "trend", "skill", "agent"})


@dataclass(frozen=True)
class AlertRuleDefinition:
    """
    One configured alert rule, detached from the database.

    ``rule_id`` is None for rules that have not been persisted (e.g. the
    built-in defaults used in tests).
    ``min_connects_filter`` skips agents with fewer connects (``agent``
    scope only).
    """

    name: str
    metric: str
    operator: str
    warning_threshold: float
    critical_threshold: float
    scope: str
    min_hours_filter: float = 0.0
    min_connects_filter: float = 0.0
    description: str = ""
    rule_id: int | None = None


@dataclass(frozen=True)
class Anomaly:
    """A single rule firing for one subject (the day, a skill or an agent)."""

    rule_name: str
    rule_id: int | None
    severity: str
    subject: str
    metric_name: str
    metric_value: float
    threshold_value: float
    message: str
    agent_name: str | None = None
    skill: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DetectionContext:
    """Everything a scope evaluator may look at for one report date."""

    daily: Mapping[str, Any]
    skills: Sequence[Mapping[str, Any]] = ()
    agents: Sequence[Mapping[str, Any]] = ()
    history: Sequence[Mapping[str, Any]] = ()


class BaseScopeEvaluator(ABC):
    """
    Contract for scope evaluators.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`evaluate`.
    """

    @abstractmethod
    def evaluate(self, rule: AlertRuleDefinition, context: DetectionContext) -> list[Anomaly]:
        """
        Apply *rule* to the subjects of this scope found in *context*.

        Returns
        -------
        list[Anomaly]
            One entry per subject that crossed a threshold; empty otherwise.
        """
