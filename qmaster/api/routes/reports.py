from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from qmaster.dependencies.auth import AdminUser
from qmaster.dependencies.queue import QueueServiceDep, get_gemini_client
from qmaster.insights import GeminiClient, ReportRange, build_report_prompt
from qmaster.queue.errors import QueueError

from ..errors import to_http_exception

router = APIRouter(prefix="/reports", tags=["reports"])


class ReportStatisticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    range: ReportRange
    total: int
    by_status: dict[str, int]
    average_wait_minutes: float | None = None
    average_service_minutes: float | None = None
    peak_hour: int | None = None


class InsightsRequest(BaseModel):
    range: ReportRange = ReportRange.WEEK


class InsightsResponse(BaseModel):
    range: ReportRange
    report: str


@router.get("/summary", response_model=ReportStatisticsResponse)
async def summary(
    service: QueueServiceDep,
    user: AdminUser,
    report_range: ReportRange = Query(default=ReportRange.WEEK, alias="range"),
) -> ReportStatisticsResponse:
    try:
        _, statistics = service.report(report_range, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return ReportStatisticsResponse.model_validate(statistics)


@router.post("/insights", response_model=InsightsResponse, summary="AI written performance report")
async def insights(
    payload: InsightsRequest,
    service: QueueServiceDep,
    gemini: Annotated[GeminiClient, Depends(get_gemini_client)],
    user: AdminUser,
) -> InsightsResponse:
    try:
        rows, _ = service.report(payload.range, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    report = await gemini.generate_report(build_report_prompt(rows, payload.range))
    return InsightsResponse(range=payload.range, report=report)
