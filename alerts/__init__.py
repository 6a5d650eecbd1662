from alerts.base import AlertRuleDefinition, Anomaly
from alerts.engine import AlertEngine
from alerts.rules import DEFAULT_RULES, check_threshold

__all__ = [
    "AlertEngine",
    "AlertRuleDefinition",
    "Anomaly",
    "DEFAULT_RULES",
    "check_threshold",
]
