"""
Authorization Case API Routes

Endpoints for the authorization workflow.
Each operation is timed at the moment the request is handled; callers
cannot supply their own timestamps.
"""
from typing import Dict, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_actor
from ..models.db_models import AttachmentKind, CaseKind
from ..services.workflow import (
    WorkflowEngine, WorkflowError, Unauthorized, CaseNotFound, DuplicateCase,
    InvalidPhase, WindowExpired, SuspensionConflict, MissingPrerequisite,
    AlreadyDecided, StaleCase,
)


router = APIRouter(prefix="/cases", tags=["cases"])


ERROR_STATUS = {
    Unauthorized: 403,
    CaseNotFound: 404,
    DuplicateCase: 409,
    InvalidPhase: 409,
    SuspensionConflict: 409,
    AlreadyDecided: 409,
    StaleCase: 409,
    WindowExpired: 422,
    MissingPrerequisite: 422,
}


def to_http_exception(error: WorkflowError) -> HTTPException:
    """Map a workflow error to an HTTP error carrying its stable code."""
    return HTTPException(
        status_code=ERROR_STATUS.get(type(error), 400),
        detail=error.to_dict(),
    )


def get_engine(db: Session = Depends(get_db)) -> WorkflowEngine:
    """Dependency - workflow engine bound to the request's session."""
    return WorkflowEngine(db)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SubmitCaseRequest(BaseModel):
    """Request to open an application or acquisition notification."""
    case_kind: CaseKind = Field(..., description="LICENSING_APPLICATION or QUALIFYING_ACQUISITION")
    target_entity: str = Field(..., min_length=1, description="Service provider the case concerns")
    cross_border: bool = Field(default=False, description="Subject established outside the home jurisdiction")
    attachments: Dict[AttachmentKind, str] = Field(default_factory=dict, description="Evidence references by kind")


class AttachRequest(BaseModel):
    kind: AttachmentKind
    reference: str = Field(..., min_length=1, description="Content-addressed reference")


class FlagIssueRequest(BaseModel):
    reference: str = Field(..., min_length=1)


class RequestInformationRequest(BaseModel):
    """Suspension length; omitted means the statutory maximum."""
    duration_days: Optional[int] = Field(None, gt=0)


class SubmitInformationRequest(BaseModel):
    reference: str = Field(..., min_length=1)


class DecisionRequest(BaseModel):
    """Approve or reject. Rejection requires a reason reference."""
    approve: bool
    reason_ref: Optional[str] = Field(None, description="Required when rejecting")


# =============================================================================
# APPLICANT ENDPOINTS
# =============================================================================

@router.post("", response_model=dict)
async def submit_case(
    request: SubmitCaseRequest,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    """Open a case. The caller becomes its subject."""
    try:
        return engine.submit(
            actor_id=actor_id,
            case_kind=request.case_kind,
            target_entity=request.target_entity,
            cross_border=request.cross_border,
            attachments=request.attachments,
        )
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/{case_key}/attachments", response_model=dict)
async def attach_evidence(
    case_key: str,
    request: AttachRequest,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    try:
        return engine.attach(case_key, actor_id, request.kind, request.reference)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/{case_key}/submit-information", response_model=dict)
async def submit_information(
    case_key: str,
    request: SubmitInformationRequest,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    """Answer an information request and resume the review clock."""
    try:
        return engine.submit_additional_info(case_key, actor_id, request.reference)
    except WorkflowError as e:
        raise to_http_exception(e)


# =============================================================================
# DECISION AUTHORITY ENDPOINTS
# =============================================================================

@router.post("/{case_key}/acknowledge", response_model=dict)
async def acknowledge_case(
    case_key: str,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    try:
        return engine.acknowledge(case_key, actor_id)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/{case_key}/confirm-completeness", response_model=dict)
async def confirm_completeness(
    case_key: str,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    try:
        return engine.confirm_completeness(case_key, actor_id)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/{case_key}/flag-issue", response_model=dict)
async def flag_issue(
    case_key: str,
    request: FlagIssueRequest,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    try:
        return engine.flag_issue(case_key, actor_id, request.reference)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/{case_key}/request-information", response_model=dict)
async def request_information(
    case_key: str,
    request: RequestInformationRequest,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    """Suspend the review clock pending additional information."""
    try:
        return engine.request_additional_info(case_key, actor_id, request.duration_days)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/{case_key}/decision", response_model=dict)
async def decide_case(
    case_key: str,
    request: DecisionRequest,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    try:
        return engine.decide(case_key, actor_id, request.approve, request.reason_ref)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/{case_key}/notify-oversight", response_model=dict)
async def notify_oversight(
    case_key: str,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    try:
        return engine.notify_oversight(case_key, actor_id)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/{case_key}/finalize-deemed-approval", response_model=dict)
async def finalize_deemed_approval(
    case_key: str,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    """Record silence past the review expiry as approval. Open to any recognized actor."""
    try:
        return engine.finalize_deemed_approval(case_key, actor_id)
    except WorkflowError as e:
        raise to_http_exception(e)


# =============================================================================
# READ ENDPOINTS
# =============================================================================

@router.get("/{case_key}", response_model=dict)
async def get_case_status(
    case_key: str,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    """Case state with deemed approval evaluated as of now."""
    try:
        if not engine.authorization.is_recognized(actor_id):
            raise Unauthorized(f"Actor {actor_id} is not a recognized actor", case_key=case_key)
        return engine.case_status(case_key)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.get("/{case_key}/transitions", response_model=dict)
async def get_transitions(
    case_key: str,
    engine: WorkflowEngine = Depends(get_engine),
    actor_id: str = Depends(get_current_actor),
):
    try:
        if not engine.authorization.is_recognized(actor_id):
            raise Unauthorized(f"Actor {actor_id} is not a recognized actor", case_key=case_key)
        history = engine.transition_history(case_key)
    except WorkflowError as e:
        raise to_http_exception(e)

    return {
        "case_key": case_key,
        "count": len(history),
        "transitions": history,
    }
