"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.agent_performance import AgentPerformance
from db.models.alert import Alert, AlertRule, AlertSeverity
from db.models.daily_kpi import DailyKPI
from db.models.report_file import ReportFile, ReportSource, ReportStatus
from db.models.skill_summary import SkillSummary

__all__ = [
    "ReportFile",
    "ReportSource",
    "ReportStatus",
    "DailyKPI",
    "SkillSummary",
    "AgentPerformance",
    "AlertRule",
    "Alert",
    "AlertSeverity",
]
