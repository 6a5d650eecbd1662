"""
alerts/engine.py

Routes each alert rule to the evaluator registered for its scope.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from alerts.base import AlertRuleDefinition, Anomaly, BaseScopeEvaluator, DetectionContext
from alerts.rules import AgentEvaluator, DailyAggregateEvaluator, SkillEvaluator, TrendEvaluator


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_EVALUATORS: dict[str, BaseScopeEvaluator] = {
    "daily_aggregate": DailyAggregateEvaluator(),
    "trend":           TrendEvaluator(),
    "skill":           SkillEvaluator(),
    "agent":           AgentEvaluator(),
}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class AlertEngine:
    """
    Evaluates alert rules against one day's computed metrics.

    Evaluators are stateless and shared across calls. The engine performs
    no I/O; persisting the returned anomalies is the caller's job.
    """

    def detect(
        self,
        daily_kpis: Mapping[str, Any],
        skill_summary: Sequence[Mapping[str, Any]],
        history: Sequence[Mapping[str, Any]],
        *,
        agents: Sequence[Mapping[str, Any]] = (),
        rules: Iterable[AlertRuleDefinition],
    ) -> list[Anomaly]:
        """
        Run every rule and collect the anomalies in rule order.

        Parameters
        ----------
        daily_kpis:
            DailyKPI column values for the date being evaluated.
        skill_summary:
            SkillSummary rows for the same date.
        history:
            DailyKPI values of earlier computed dates, used by ``trend``
            rules as the trailing window.
        agents:
            AgentPerformance rows for the same date.
        rules:
            Active rule definitions.

        Raises
        ------
        ValueError
            If a rule names a scope or operator that has no implementation.
        """
        context = DetectionContext(
            daily=daily_kpis,
            skills=tuple(skill_summary),
            agents=tuple(agents),
            history=tuple(history),
        )
        anomalies: list[Anomaly] = []
        for rule in rules:
            evaluator = _EVALUATORS.get(rule.scope)
            if evaluator is None:
                raise ValueError(
                    f"Unsupported alert scope {rule.scope!r} on rule {rule.name!r}. "
                    f"Supported: {sorted(_EVALUATORS)}"
                )
            anomalies.extend(evaluator.evaluate(rule, context))
        return anomalies
