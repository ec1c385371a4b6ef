"""Human-in-the-loop approval routes."""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from mathtutor.api.schemas import (
    ApprovalDecisionRequest,
    ApprovalStatusResponse,
    SuccessResponse,
)
from mathtutor.errors import MathTutorError
from mathtutor.services.approval_store import ApprovalStore, get_approval_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/approval", tags=["approval"])


@router.post("", response_model=SuccessResponse)
def submit_approval(
    payload: ApprovalDecisionRequest,
    store: ApprovalStore = Depends(get_approval_store),
) -> SuccessResponse:
    """Record a decision for a pending approval request."""
    if not payload.approval_id:
        raise MathTutorError.from_code("E-1001", field="approvalId")
    if payload.approved is None:
        raise MathTutorError.from_code("E-1001", field="approved")
    store.store(payload.approval_id, payload.approved)
    logger.info("Approval %s recorded: approved=%s", payload.approval_id, payload.approved)
    return SuccessResponse()


@router.get("", response_model=ApprovalStatusResponse)
def get_approval(
    approval_id: str | None = Query(default=None, alias="approvalId"),
    store: ApprovalStore = Depends(get_approval_store),
):
    """Return the stored decision, or 404 with ``approved: null``."""
    if not approval_id:
        raise MathTutorError.from_code("E-1001", field="approvalId")
    decision = store.check(approval_id)
    if decision is None:
        return JSONResponse(status_code=404, content={"approved": None})
    return ApprovalStatusResponse(approved=decision)
