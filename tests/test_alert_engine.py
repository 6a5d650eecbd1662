"""
tests/test_alert_engine.py

Pure tests for threshold checks, the scope evaluators and AlertEngine.
"""

from __future__ import annotations

import pytest

from alerts import DEFAULT_RULES, AlertEngine, AlertRuleDefinition, check_threshold
from alerts.base import SEVERITY_CRITICAL, SEVERITY_WARNING
from alerts.rules import compare


def _rule(**overrides) -> AlertRuleDefinition:
    values = dict(
        name="Low Daily Connect Rate",
        metric="connect_rate",
        operator="lte",
        warning_threshold=3,
        critical_threshold=2,
        scope="daily_aggregate",
        rule_id=1,
    )
    values.update(overrides)
    return AlertRuleDefinition(**values)


@pytest.fixture()
def engine() -> AlertEngine:
    return AlertEngine()


# ---------------------------------------------------------------------------
# Threshold checks
# ---------------------------------------------------------------------------


class TestThreshold:
    @pytest.mark.parametrize(
        "value, operator, threshold, expected",
        [
            (5, "gte", 5, True),
            (4.9, "gte", 5, False),
            (5, "gt", 5, False),
            (1, "lte", 1, True),
            (1, "lt", 1, False),
            (0, "eq", 0, True),
        ],
    )
    def test_compare(self, value, operator, threshold, expected) -> None:
        assert compare(value, operator, threshold) is expected

    def test_unknown_operator_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown alert operator"):
            compare(1, "between", 2)

    def test_critical_wins_over_warning(self) -> None:
        assert check_threshold(1.5, _rule()) == (SEVERITY_CRITICAL, 2)

    def test_warning_only(self) -> None:
        assert check_threshold(2.5, _rule()) == (SEVERITY_WARNING, 3)

    def test_no_breach(self) -> None:
        assert check_threshold(10, _rule()) is None


# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------


class TestDailyAggregate:
    def test_connect_rate_breach(self, engine: AlertEngine) -> None:
        (anomaly,) = engine.detect({"connect_rate": 1.8}, [], [], rules=[_rule()])
        assert anomaly.subject == "daily"
        assert anomaly.severity == SEVERITY_CRITICAL
        assert anomaly.threshold_value == 2
        assert anomaly.message == "Low Daily Connect Rate: connect_rate is 1.80 (threshold: 2)"
        assert anomaly.details["scope"] == "daily_aggregate"

    def test_transfer_volume_delta(self, engine: AlertEngine) -> None:
        rule = _rule(
            name="Transfer Volume Drop", metric="transfer_volume_delta",
            warning_threshold=-15, critical_threshold=-30,
        )
        daily = {"delta_transfers": -20, "prev_day_transfers": 100}
        (anomaly,) = engine.detect(daily, [], [], rules=[rule])
        assert anomaly.metric_value == -20.0
        assert anomaly.severity == SEVERITY_WARNING

    def test_transfer_volume_delta_without_previous_day(self, engine: AlertEngine) -> None:
        rule = _rule(metric="transfer_volume_delta", warning_threshold=-15, critical_threshold=-30)
        assert engine.detect({"delta_transfers": None}, [], [], rules=[rule]) == []

    def test_missing_metric_is_skipped(self, engine: AlertEngine) -> None:
        assert engine.detect({}, [], [], rules=[_rule()]) == []


class TestTrend:
    RULE = _rule(
        name="TPH Trend Drop", metric="transfers_per_hour", scope="trend",
        warning_threshold=-20, critical_threshold=-35,
    )

    def test_drop_against_trailing_average(self, engine: AlertEngine) -> None:
        history = [{"transfers_per_hour": 1.0}, {"transfers_per_hour": 1.2}, {"transfers_per_hour": 0.8}]
        (anomaly,) = engine.detect({"transfers_per_hour": 0.7}, [], history, rules=[self.RULE])
        assert anomaly.metric_value == -30.0
        assert anomaly.severity == SEVERITY_WARNING
        assert anomaly.details["window"] == 3

    def test_no_history_no_alert(self, engine: AlertEngine) -> None:
        assert engine.detect({"transfers_per_hour": 0.1}, [], [], rules=[self.RULE]) == []

    def test_zero_average_no_alert(self, engine: AlertEngine) -> None:
        history = [{"transfers_per_hour": 0.0}]
        assert engine.detect({"transfers_per_hour": 0.1}, [], history, rules=[self.RULE]) == []


class TestSkill:
    def test_filtered_by_man_hours(self, engine: AlertEngine) -> None:
        rule = _rule(
            name="Low Skill TPH", metric="avg_tph", scope="skill",
            warning_threshold=0.5, critical_threshold=0.2, min_hours_filter=10,
        )
        skills = [
            {"skill": "Medicare", "avg_tph": 0.1, "total_man_hours": 14},
            {"skill": "Final Expense", "avg_tph": 0.0, "total_man_hours": 3},
        ]
        (anomaly,) = engine.detect({}, skills, [], rules=[rule])
        assert anomaly.subject == "skill:Medicare"
        assert anomaly.skill == "Medicare"


class TestAgent:
    def _agent(self, name: str, **values) -> dict:
        agent = {
            "agent_name": name,
            "skill": "Medicare",
            "hours_worked": 8,
            "transfers": 5,
            "connects": 50,
            "tph": 0.6,
            "dead_air_ratio": 10.0,
            "dispositions": {},
        }
        agent.update(values)
        return agent

    def test_zero_transfers_is_warning_with_hours_in_message(self, engine: AlertEngine) -> None:
        rule = next(r for r in DEFAULT_RULES if r.metric == "zero_transfers")
        agents = [self._agent("Dave", transfers=0, hours_worked=6.5)]
        (anomaly,) = engine.detect({}, [], [], agents=agents, rules=[rule])
        assert anomaly.severity == SEVERITY_WARNING
        assert anomaly.subject == "agent:dave"
        assert anomaly.message == "Dave worked 6.5h with zero transfers"

    def test_hours_floor_and_non_productive_accounts(self, engine: AlertEngine) -> None:
        rule = next(r for r in DEFAULT_RULES if r.metric == "zero_transfers")
        agents = [
            self._agent("Erin", transfers=0, hours_worked=3),
            self._agent("QA Frank", transfers=0),
            self._agent("hr desk", transfers=0),
        ]
        assert engine.detect({}, [], [], agents=agents, rules=[rule]) == []

    def test_hung_up_ratio_from_dispositions(self, engine: AlertEngine) -> None:
        rule = next(r for r in DEFAULT_RULES if r.metric == "hung_up_ratio")
        agents = [self._agent("Gina", connects=50, dispositions={"hung_up_transfer": 20})]
        (anomaly,) = engine.detect({}, [], [], agents=agents, rules=[rule])
        assert anomaly.metric_value == 40.0
        assert anomaly.severity == SEVERITY_CRITICAL

    def test_agent_metric_threshold(self, engine: AlertEngine) -> None:
        rule = next(r for r in DEFAULT_RULES if r.metric == "dead_air_ratio")
        agents = [self._agent("Hal", dead_air_ratio=35.0), self._agent("Ivy", dead_air_ratio=5.0)]
        (anomaly,) = engine.detect({}, [], [], agents=agents, rules=[rule])
        assert anomaly.agent_name == "Hal"
        assert anomaly.severity == SEVERITY_WARNING

    def test_connect_floor_skips_thin_samples(self, engine: AlertEngine) -> None:
        rule = next(r for r in DEFAULT_RULES if r.metric == "dead_air_ratio")
        agents = [self._agent("Jo", connects=49, dead_air_ratio=60.0), self._agent("Kai", dead_air_ratio=60.0)]
        (anomaly,) = engine.detect({}, [], [], agents=agents, rules=[rule])
        assert anomaly.agent_name == "Kai"
        assert anomaly.severity == SEVERITY_CRITICAL

    def _floor(self, size: int, *outliers: dict) -> list[dict]:
        floor = [self._agent(f"Rep{i}", transfers=8) for i in range(size - len(outliers))]
        return floor + [self._agent(**outlier) for outlier in outliers]

    def test_tph_outlier_warning(self, engine: AlertEngine) -> None:
        rule = next(r for r in DEFAULT_RULES if r.metric == "tph_zscore")
        agents = self._floor(7, {"name": "Lou", "transfers": 0})
        (anomaly,) = engine.detect({}, [], [], agents=agents, rules=[rule])
        assert anomaly.subject == "agent:lou"
        assert anomaly.severity == SEVERITY_WARNING
        assert anomaly.metric_value == -2.45
        assert anomaly.details["mean_tph"] == 0.86
        assert anomaly.details["std_tph"] == 0.35

    def test_tph_outlier_critical(self, engine: AlertEngine) -> None:
        rule = next(r for r in DEFAULT_RULES if r.metric == "tph_zscore")
        agents = self._floor(12, {"name": "Max", "transfers": 0})
        (anomaly,) = engine.detect({}, [], [], agents=agents, rules=[rule])
        assert anomaly.agent_name == "Max"
        assert anomaly.severity == SEVERITY_CRITICAL
        assert anomaly.metric_value == -3.32

    def test_tph_outlier_needs_more_than_five_qualified_agents(self, engine: AlertEngine) -> None:
        rule = next(r for r in DEFAULT_RULES if r.metric == "tph_zscore")
        agents = self._floor(5, {"name": "Ned", "transfers": 0})
        agents.append(self._agent("Part Timer", transfers=0, hours_worked=3))
        assert engine.detect({}, [], [], agents=agents, rules=[rule]) == []

    def test_tph_outlier_flat_floor(self, engine: AlertEngine) -> None:
        rule = next(r for r in DEFAULT_RULES if r.metric == "tph_zscore")
        assert engine.detect({}, [], [], agents=self._floor(8), rules=[rule]) == []


class TestEngine:
    def test_unknown_scope_raises(self, engine: AlertEngine) -> None:
        with pytest.raises(ValueError, match="Unsupported alert scope"):
            engine.detect({}, [], [], rules=[_rule(scope="campaign")])

    def test_anomalies_follow_rule_order(self, engine: AlertEngine) -> None:
        daily = {
            "connect_rate": 1.0,
            "delta_transfers": -50,
            "prev_day_transfers": 100,
        }
        anomalies = engine.detect(daily, [], [], rules=DEFAULT_RULES)
        assert [a.rule_name for a in anomalies] == ["Low Daily Connect Rate", "Transfer Volume Drop"]
        assert all(a.rule_id is None for a in anomalies)

    def test_default_rules_cover_each_scope(self) -> None:
        assert {rule.scope for rule in DEFAULT_RULES} == {"agent", "daily_aggregate", "trend"}
        assert len({rule.name for rule in DEFAULT_RULES}) == len(DEFAULT_RULES)
