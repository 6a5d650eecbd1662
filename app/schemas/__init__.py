"""
app/schemas package marker.
"""

from app.schemas.dialer import (
    AcknowledgeRequest,
    AgentListResponse,
    AlertListResponse,
    AlertResponse,
    ChecklistResponse,
    DailyKPIResponse,
    EmailIngestRequest,
    IngestResponse,
    ReportFileResponse,
    SkillListResponse,
)

__all__ = [
    "AcknowledgeRequest",
    "AgentListResponse",
    "AlertListResponse",
    "AlertResponse",
    "ChecklistResponse",
    "DailyKPIResponse",
    "EmailIngestRequest",
    "IngestResponse",
    "ReportFileResponse",
    "SkillListResponse",
]
