"""
Repository layer exports.
"""

from db.repositories.alert_repository import AlertRepository
from db.repositories.breakdown_repository import AgentPerformanceRepository, SkillSummaryRepository
from db.repositories.daily_kpi_repository import DailyKPIRepository
from db.repositories.errors import AlertNotFoundError, DialerRepositoryError, UnsupportedDialectError
from db.repositories.report_repository import ReportRepository

__all__ = [
    "AgentPerformanceRepository",
    "AlertNotFoundError",
    "AlertRepository",
    "DailyKPIRepository",
    "DialerRepositoryError",
    "ReportRepository",
    "SkillSummaryRepository",
    "UnsupportedDialectError",
]
