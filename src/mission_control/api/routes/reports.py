"""Shareable report endpoints.

Endpoints:
  POST  /api/reports/generate         Freeze a report for a date range behind a share token
  GET   /api/reports/shared/{token}   Read a report while unexpired (no session required)
  GET   /api/reports/export?token=    Render a stored report as a PDF attachment
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mission_control.adapters.pdf_renderer import ReportPdfRenderer
from mission_control.adapters.repositories import (
    ActivityRepository,
    SharedReportRepository,
    UsageSnapshotRepository,
)
from mission_control.api.dependencies import (
    ClockDep,
    SettingsDep,
    get_activities_session,
    get_reports_session,
    get_usage_session,
    require_session,
)
from mission_control.api.schemas import GenerateReportRequest, GenerateReportResponse, ReportPayloadResponse
from mission_control.core.services import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])

_guard = [Depends(require_session)]


def _get_report_service(
    activities_session: Annotated[AsyncSession, Depends(get_activities_session)],
    reports_session: Annotated[AsyncSession, Depends(get_reports_session)],
    usage_session: Annotated[AsyncSession | None, Depends(get_usage_session)],
    settings: SettingsDep,
    clock: ClockDep,
) -> ReportService:
    return ReportService(
        activity_repo=ActivityRepository(activities_session),
        usage_repo=UsageSnapshotRepository(usage_session) if usage_session is not None else None,
        report_repo=SharedReportRepository(reports_session),
        renderer=ReportPdfRenderer(),
        settings=settings,
        clock=clock,
    )


ReportServiceDep = Annotated[ReportService, Depends(_get_report_service)]


@router.post(
    "/generate",
    response_model=GenerateReportResponse,
    dependencies=_guard,
    summary="Generate a shareable report",
)
async def generate_report(request: GenerateReportRequest, service: ReportServiceDep) -> GenerateReportResponse:
    """Aggregate activities and costs for an inclusive date range and store the result.

    The stored payload never changes; the token expires after
    ``report_expiry_days``.
    """
    return GenerateReportResponse(**await service.generate(request.start_date, request.end_date))


@router.get("/shared/{token}", response_model=ReportPayloadResponse, summary="Read a shared report")
async def get_shared_report(token: str, service: ReportServiceDep) -> ReportPayloadResponse:
    return ReportPayloadResponse(**await service.require_report(token))


@router.get(
    "/export",
    response_class=Response,
    dependencies=_guard,
    responses={200: {"content": {"application/pdf": {}}}},
    summary="Export a report as PDF",
)
async def export_report(
    service: ReportServiceDep,
    token: Annotated[str | None, Query()] = None,
) -> Response:
    filename, pdf = await service.export_pdf(token)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
