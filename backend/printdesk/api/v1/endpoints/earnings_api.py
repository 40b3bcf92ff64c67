# printdesk/api/v1/endpoints/earnings_api.py
# Agent earnings: delivery completion and period reports

from datetime import datetime
from fastapi import APIRouter, Query
from typing import Annotated, Optional

from printdesk.api.deps import EarningsServiceDep
from printdesk.db.schemas.earnings_schemas import DeliveryCompletionRequest, DeliveryCompletionResult, EarningsReport

router = APIRouter()


@router.get("/earnings", response_model=EarningsReport, summary="Agent Earnings Report")
async def get_earnings_report(
    earnings_service: EarningsServiceDep,
    agent_id: Annotated[str, Query(alias="agentId", min_length=1)],
    period: Annotated[str, Query(description="daily | weekly | monthly | yearly")] = "monthly",
    start_date: Annotated[Optional[datetime], Query(alias="startDate")] = None,
    end_date: Annotated[Optional[datetime], Query(alias="endDate")] = None,
):
    """Explicit startDate/endDate take precedence over period."""
    return await earnings_service.compute_earnings_report(agent_id, period, start_date, end_date)


@router.post("/earnings", response_model=DeliveryCompletionResult, summary="Record Delivery Completion")
async def record_delivery_completion(body: DeliveryCompletionRequest, earnings_service: EarningsServiceDep):
    return await earnings_service.record_delivery_completion(body)
