# intake/routes/intake.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from intake.db.session import get_session
from intake.schemas.lead_intake import IntakeStatusResponse, LeadIntakeRequest, LeadIntakeResponse
from intake.services.consent import isoformat_utc
from intake.services.lead_intake import process_lead_intake
from intake.services.request_context import RequestContext, utcnow

router = APIRouter(tags=["intake"])

SERVICE_NAME = "lead-intake"


@router.post(
    "/intake/lead",
    response_model=LeadIntakeResponse,
    status_code=status.HTTP_200_OK,
    summary="Submit a lead with TCPA consent",
)
async def submit_lead(
    payload: LeadIntakeRequest,
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> LeadIntakeResponse:
    ctx = RequestContext.from_request(request, payload, now=utcnow())
    outcome = await process_lead_intake(session, ctx)
    return LeadIntakeResponse(success=True, lead_id=outcome.lead_id, message=outcome.message)


@router.get("/intake/lead", response_model=IntakeStatusResponse, summary="Liveness probe")
async def intake_status() -> IntakeStatusResponse:
    return IntakeStatusResponse(
        service=SERVICE_NAME,
        status="ok",
        timestamp=isoformat_utc(utcnow()),
    )
