"""
app/api/routers/dialer_query.py

Read endpoints for checklists, daily KPIs, breakdowns, the ingestion log
and alerts, plus alert acknowledgement.
"""

from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.schemas.dialer import (
    AcknowledgeRequest,
    AgentListResponse,
    AgentPerformanceResponse,
    AlertListResponse,
    AlertResponse,
    ChecklistResponse,
    DailyKPIResponse,
    ReportFileResponse,
    SkillListResponse,
    SkillSummaryResponse,
)
from app.services.alert_service import AlertPersistenceError, AlertService, get_alert_service
from app.services.checklist_service import ChecklistService, get_checklist_service
from db.base import utc_now
from db.repositories.breakdown_repository import AgentPerformanceRepository, SkillSummaryRepository
from db.repositories.daily_kpi_repository import DailyKPIRepository
from db.repositories.errors import AlertNotFoundError
from db.repositories.report_repository import ReportRepository
from db.session import get_db

router = APIRouter(prefix="/dialer", tags=["dialer"])

DEFAULT_KPI_WINDOW_DAYS = 7


@router.get("/checklist", response_model=ChecklistResponse)
def get_checklist(
    report_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
    checklist: ChecklistService = Depends(get_checklist_service),
) -> ChecklistResponse:
    return ChecklistResponse.from_status(checklist.status(db, report_date))


@router.get("/kpis", response_model=list[DailyKPIResponse])
def list_daily_kpis(
    report_date: date | None = Query(default=None, alias="date"),
    days: int | None = Query(default=None, ge=1, le=366),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
) -> list[DailyKPIResponse]:
    """
    Daily KPIs for one date, an explicit range, or the trailing *days*
    (default 7). Newest first unless ``order=asc``.
    """

    repository = DailyKPIRepository(db)
    if report_date is not None:
        row = repository.get_by_date(report_date)
        return [DailyKPIResponse.model_validate(row)] if row is not None else []

    if start is not None or end is not None:
        if start is None or end is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Both start and end are required for a range.",
            )
        if start > end:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="start must not be after end.",
            )
    else:
        end = utc_now().date()
        start = end - timedelta(days=(days or DEFAULT_KPI_WINDOW_DAYS) - 1)

    rows = repository.list_range(start, end, newest_first=order == "desc")
    return [DailyKPIResponse.model_validate(row) for row in rows]


@router.get("/skills", response_model=SkillListResponse)
def list_skills(
    report_date: date | None = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
) -> SkillListResponse:
    """Skill summary for a date (default: latest computed date)."""

    target = report_date or DailyKPIRepository(db).latest_report_date()
    if target is None:
        return SkillListResponse(date=None, skills=[])
    rows = SkillSummaryRepository(db).list_for_date(target)
    return SkillListResponse(
        date=target,
        skills=[SkillSummaryResponse.model_validate(row) for row in rows],
    )


@router.get("/agents", response_model=AgentListResponse)
def list_agents(
    report_date: date | None = Query(default=None, alias="date"),
    skill: str | None = Query(default=None),
    sort: str = Query(default="tph"),
    ranking: str = Query(default="top"),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> AgentListResponse:
    target = report_date or DailyKPIRepository(db).latest_report_date()
    if target is None:
        return AgentListResponse(date=None, agents=[])
    try:
        rows = AgentPerformanceRepository(db).list_for_date(
            target, skill=skill, sort=sort, ranking=ranking, limit=limit
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return AgentListResponse(
        date=target,
        agents=[AgentPerformanceResponse.model_validate(row) for row in rows],
    )


@router.get("/reports", response_model=list[ReportFileResponse])
def list_reports(
    report_date: date | None = Query(default=None, alias="date"),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[ReportFileResponse]:
    """Ingestion log, newest first."""

    rows = ReportRepository(db).list_recent(limit=limit, report_date=report_date)
    return [ReportFileResponse.model_validate(row) for row in rows]


@router.get("/alerts", response_model=AlertListResponse)
def list_alerts(
    report_date: date | None = Query(default=None, alias="date"),
    unacknowledged: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    alert_service: AlertService = Depends(get_alert_service),
) -> AlertListResponse:
    views = alert_service.list_alerts(
        db,
        report_date=report_date,
        unacknowledged_only=unacknowledged,
        limit=limit,
    )
    return AlertListResponse(
        alerts=[
            AlertResponse.model_validate(view.alert).model_copy(update={"rule_name": view.rule_name})
            for view in views
        ]
    )


@router.post("/alerts/ack", response_model=AlertResponse)
def acknowledge_alert(
    payload: AcknowledgeRequest,
    db: Session = Depends(get_db),
    alert_service: AlertService = Depends(get_alert_service),
) -> AlertResponse:
    try:
        alert = alert_service.acknowledge(
            db,
            payload.alert_id,
            payload.acknowledged_by,
            payload.notes,
        )
    except AlertNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except AlertPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to acknowledge alert.",
        ) from exc
    return AlertResponse.model_validate(alert)
