"""
app/services package marker.
"""

from app.services.alert_service import AlertService, get_alert_service
from app.services.batch_ingestion_service import BatchIngestionService, get_batch_ingestion_service
from app.services.checklist_service import ChecklistService, ChecklistStatus, get_checklist_service
from app.services.kpi_orchestrator import (
    DayComputation,
    IncompleteSet,
    KPIAggregationError,
    KPIOrchestrator,
    KPIPersistenceError,
    get_kpi_orchestrator,
)
from app.services.report_ingestion_service import (
    IngestFailure,
    IngestSuccess,
    ReportIngestionService,
    ReportPersistenceError,
    get_report_ingestion_service,
)

__all__ = [
    "AlertService",
    "get_alert_service",
    "BatchIngestionService",
    "get_batch_ingestion_service",
    "ChecklistService",
    "ChecklistStatus",
    "get_checklist_service",
    "DayComputation",
    "IncompleteSet",
    "KPIAggregationError",
    "KPIOrchestrator",
    "KPIPersistenceError",
    "get_kpi_orchestrator",
    "IngestFailure",
    "IngestSuccess",
    "ReportIngestionService",
    "ReportPersistenceError",
    "get_report_ingestion_service",
]
