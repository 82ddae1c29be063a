"""
Internal Deadline API Routes

Read-only monitoring of review deadlines.
Nothing here changes a case: deemed approvals are reported, never finalized.
"""
import os
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Header

from .cases import get_engine
from ..services.workflow import WorkflowEngine


router = APIRouter(prefix="/internal", tags=["internal"])


# =============================================================================
# INTERNAL API KEY VALIDATION
# =============================================================================

INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "regauth-internal-key-change-in-production")


async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for monitoring endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


@router.get("/deadlines", response_model=dict)
async def get_upcoming_deadlines(
    days_ahead: int = 7,
    engine: WorkflowEngine = Depends(get_engine),
    _: bool = Depends(verify_internal_key),
):
    """Undecided cases due within days_ahead, overdue ones included."""
    deadlines = engine.upcoming_deadlines(days_ahead=days_ahead)

    return {
        "run_date": datetime.now(timezone.utc).isoformat(),
        "days_ahead": days_ahead,
        "count": len(deadlines),
        "deadlines": deadlines,
    }
