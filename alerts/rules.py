"""
alerts/rules.py

Deterministic threshold checks and the per-scope evaluators.

Scopes
------
daily_aggregate  absolute bound on a daily metric
trend            % change of a daily metric against its trailing average
skill            bound on a skill summary metric, man-hours filtered
agent            bound on an agent metric or its TPH z-score, hours and
                 connects filtered, QA/HR skipped
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from alerts.base import (
    SEVERITY_CRITICAL,
    SEVERITY_WARNING,
    AlertRuleDefinition,
    Anomaly,
    BaseScopeEvaluator,
    DetectionContext,
)
from kpi.dialer_enrichment import is_non_productive_account

DAILY_SUBJECT = "daily"

# tph_zscore needs strictly more qualified agents than this.
MIN_ZSCORE_PEERS = 5


# ---------------------------------------------------------------------------
# Default rules (mirrored by the seed migration)
# ---------------------------------------------------------------------------

DEFAULT_RULES: tuple[AlertRuleDefinition, ...] = (
    AlertRuleDefinition(
        name="High Dead Air Ratio",
        description="Agent dead air calls as a share of connects",
        metric="dead_air_ratio", operator="gte",
        warning_threshold=30, critical_threshold=50,
        scope="agent", min_hours_filter=2, min_connects_filter=50,
    ),
    AlertRuleDefinition(
        name="High Hung Up Ratio",
        description="Transfers the customer hung up on, as a share of connects",
        metric="hung_up_ratio", operator="gte",
        warning_threshold=10, critical_threshold=30,
        scope="agent", min_hours_filter=2, min_connects_filter=50,
    ),
    AlertRuleDefinition(
        name="Zero Transfers",
        description="Agent worked a full shift without a transfer",
        metric="zero_transfers", operator="eq",
        warning_threshold=0, critical_threshold=0,
        scope="agent", min_hours_filter=4,
    ),
    AlertRuleDefinition(
        name="Low Transfers Per Hour",
        description="Agent TPH below the coaching floor",
        metric="tph", operator="lte",
        warning_threshold=0.5, critical_threshold=0.2,
        scope="agent", min_hours_filter=4,
    ),
    AlertRuleDefinition(
        name="Low TPH Outlier",
        description="Agent TPH in standard deviations from the qualified floor mean",
        metric="tph_zscore", operator="lt",
        warning_threshold=-2, critical_threshold=-3,
        scope="agent", min_hours_filter=4,
    ),
    AlertRuleDefinition(
        name="Low Daily Connect Rate",
        description="Floor-wide connect rate",
        metric="connect_rate", operator="lte",
        warning_threshold=3, critical_threshold=2,
        scope="daily_aggregate",
    ),
    AlertRuleDefinition(
        name="Transfer Volume Drop",
        description="Day-over-day change in total transfers, in percent",
        metric="transfer_volume_delta", operator="lte",
        warning_threshold=-15, critical_threshold=-30,
        scope="daily_aggregate",
    ),
    AlertRuleDefinition(
        name="TPH Trend Drop",
        description="Floor TPH against its trailing average, in percent",
        metric="transfers_per_hour", operator="lte",
        warning_threshold=-20, critical_threshold=-35,
        scope="trend",
    ),
)


# ---------------------------------------------------------------------------
# Threshold check
# ---------------------------------------------------------------------------


def compare(value: float, operator: str, threshold: float) -> bool:
    if operator == "gte":
        return value >= threshold
    if operator == "lte":
        return value <= threshold
    if operator == "gt":
        return value > threshold
    if operator == "lt":
        return value < threshold
    if operator == "eq":
        return value == threshold
    raise ValueError(f"Unknown alert operator {operator!r}.")


def check_threshold(value: float, rule: AlertRuleDefinition) -> tuple[str, float] | None:
    """
    Return ``(severity, threshold)`` for the first crossed threshold.

    The critical threshold is tested first, so a value past both bounds is
    reported once, as critical.
    """
    if compare(value, rule.operator, rule.critical_threshold):
        return SEVERITY_CRITICAL, rule.critical_threshold
    if compare(value, rule.operator, rule.warning_threshold):
        return SEVERITY_WARNING, rule.warning_threshold
    return None


def _numeric(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _anomaly(
    rule: AlertRuleDefinition,
    *,
    subject: str,
    value: float,
    severity: str,
    threshold: float,
    agent_name: str | None = None,
    skill: str | None = None,
    message: str | None = None,
    details: dict[str, Any] | None = None,
) -> Anomaly:
    return Anomaly(
        rule_name=rule.name,
        rule_id=rule.rule_id,
        severity=severity,
        subject=subject,
        metric_name=rule.metric,
        metric_value=value,
        threshold_value=threshold,
        message=message or f"{rule.name}: {rule.metric} is {value:.2f} (threshold: {threshold:g})",
        agent_name=agent_name,
        skill=skill,
        details={"rule_name": rule.name, "scope": rule.scope, **(details or {})},
    )


# ---------------------------------------------------------------------------
# Scope evaluators
# ---------------------------------------------------------------------------


class DailyAggregateEvaluator(BaseScopeEvaluator):
    def evaluate(self, rule: AlertRuleDefinition, context: DetectionContext) -> list[Anomaly]:
        value = self._metric_value(rule.metric, context.daily)
        if value is None:
            return []
        hit = check_threshold(value, rule)
        if hit is None:
            return []
        severity, threshold = hit
        return [_anomaly(rule, subject=DAILY_SUBJECT, value=value, severity=severity, threshold=threshold)]

    @staticmethod
    def _metric_value(metric: str, daily: Mapping[str, Any]) -> float | None:
        if metric != "transfer_volume_delta":
            return _numeric(daily.get(metric))
        delta = _numeric(daily.get("delta_transfers"))
        if delta is None:
            return None
        if not delta:
            return 0.0
        previous = _numeric(daily.get("prev_day_transfers")) or 1.0
        return delta / max(previous, 1.0) * 100


class TrendEvaluator(BaseScopeEvaluator):
    """
    Percent change of a daily metric against the mean of *history*.

    Nothing fires without history or when the trailing average is zero.
    """

    def evaluate(self, rule: AlertRuleDefinition, context: DetectionContext) -> list[Anomaly]:
        current = _numeric(context.daily.get(rule.metric))
        past = [v for v in (_numeric(row.get(rule.metric)) for row in context.history) if v is not None]
        if current is None or not past:
            return []
        average = float(np.mean(past))
        if average == 0:
            return []
        change = (current - average) / average * 100
        hit = check_threshold(change, rule)
        if hit is None:
            return []
        severity, threshold = hit
        return [
            _anomaly(
                rule,
                subject=DAILY_SUBJECT,
                value=round(change, 2),
                severity=severity,
                threshold=threshold,
                message=(
                    f"{rule.name}: {rule.metric} is {current:.2f}, {change:+.1f}% vs "
                    f"{len(past)}-day average {average:.2f} (threshold: {threshold:g}%)"
                ),
                details={"current": current, "trailing_average": round(average, 4), "window": len(past)},
            )
        ]


class SkillEvaluator(BaseScopeEvaluator):
    def evaluate(self, rule: AlertRuleDefinition, context: DetectionContext) -> list[Anomaly]:
        anomalies: list[Anomaly] = []
        for skill in context.skills:
            if (skill.get("total_man_hours") or 0) < rule.min_hours_filter:
                continue
            value = _numeric(skill.get(rule.metric))
            if value is None:
                continue
            hit = check_threshold(value, rule)
            if hit is None:
                continue
            severity, threshold = hit
            anomalies.append(
                _anomaly(
                    rule,
                    subject=f"skill:{skill['skill']}",
                    value=value,
                    severity=severity,
                    threshold=threshold,
                    skill=skill["skill"],
                )
            )
        return anomalies


class AgentEvaluator(BaseScopeEvaluator):
    """
    Per-agent checks. ``zero_transfers`` is a presence rule: it fires as a
    warning whenever a qualified agent has no transfers.

    ``tph_zscore`` compares each agent's TPH with every agent meeting the
    rule's hours filter, using the population standard deviation. It needs
    more than :data:`MIN_ZSCORE_PEERS` peers and a non-zero spread.
    """

    def evaluate(self, rule: AlertRuleDefinition, context: DetectionContext) -> list[Anomaly]:
        peers = _tph_spread(context.agents, rule.min_hours_filter) if rule.metric == "tph_zscore" else None
        if rule.metric == "tph_zscore" and peers is None:
            return []

        anomalies: list[Anomaly] = []
        for agent in context.agents:
            name = agent["agent_name"]
            hours = agent.get("hours_worked") or 0.0
            if hours < rule.min_hours_filter or is_non_productive_account(name):
                continue
            if (agent.get("connects") or 0) < rule.min_connects_filter:
                continue
            subject = f"agent:{name.lower()}"

            if rule.metric == "zero_transfers":
                if (agent.get("transfers") or 0) == 0:
                    anomalies.append(
                        _anomaly(
                            rule,
                            subject=subject,
                            value=0.0,
                            severity=SEVERITY_WARNING,
                            threshold=0.0,
                            agent_name=name,
                            skill=agent.get("skill"),
                            message=f"{name} worked {hours:.1f}h with zero transfers",
                            details={
                                "hours_worked": hours,
                                "dials": agent.get("dials", 0),
                                "contacts": agent.get("contacts", 0),
                            },
                        )
                    )
                continue

            if peers is not None:
                anomaly = self._zscore_anomaly(rule, agent, subject, peers)
                if anomaly is not None:
                    anomalies.append(anomaly)
                continue

            value = self._metric_value(rule.metric, agent)
            if value is None:
                continue
            hit = check_threshold(value, rule)
            if hit is None:
                continue
            severity, threshold = hit
            anomalies.append(
                _anomaly(
                    rule,
                    subject=subject,
                    value=value,
                    severity=severity,
                    threshold=threshold,
                    agent_name=name,
                    skill=agent.get("skill"),
                )
            )
        return anomalies

    @staticmethod
    def _zscore_anomaly(
        rule: AlertRuleDefinition,
        agent: Mapping[str, Any],
        subject: str,
        peers: tuple[float, float],
    ) -> Anomaly | None:
        mean, std = peers
        tph = _agent_tph(agent)
        zscore = round((tph - mean) / std, 2)
        hit = check_threshold(zscore, rule)
        if hit is None:
            return None
        severity, threshold = hit
        name = agent["agent_name"]
        return _anomaly(
            rule,
            subject=subject,
            value=zscore,
            severity=severity,
            threshold=threshold,
            agent_name=name,
            skill=agent.get("skill"),
            message=(
                f"{rule.name}: {name} TPH {tph:.2f} is {zscore:+.2f} std from the "
                f"floor mean {mean:.2f} (threshold: {threshold:g})"
            ),
            details={
                "tph": round(tph, 2),
                "mean_tph": round(mean, 2),
                "std_tph": round(std, 2),
                "tph_floor": round(mean + threshold * std, 2),
                "hours_worked": agent.get("hours_worked"),
            },
        )

    @staticmethod
    def _metric_value(metric: str, agent: Mapping[str, Any]) -> float | None:
        if metric != "hung_up_ratio":
            return _numeric(agent.get(metric))
        connects = agent.get("connects") or 0
        if not connects:
            return 0.0
        hung_up = (agent.get("dispositions") or {}).get("hung_up_transfer", 0)
        return hung_up / connects * 100


def _agent_tph(agent: Mapping[str, Any]) -> float:
    hours = agent.get("hours_worked") or 0.0
    return (agent.get("transfers") or 0) / hours if hours else 0.0


def _tph_spread(agents: Sequence[Mapping[str, Any]], min_hours: float) -> tuple[float, float] | None:
    """``(mean, std)`` of TPH over agents with *min_hours*, or None when too few or flat."""
    values = [_agent_tph(a) for a in agents if (a.get("hours_worked") or 0.0) >= min_hours]
    if len(values) <= MIN_ZSCORE_PEERS:
        return None
    array = np.asarray(values, dtype=float)
    std = float(array.std())
    if std == 0:
        return None
    return float(array.mean()), std
