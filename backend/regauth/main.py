"""
Regulatory Authorization Engine - FastAPI Application

Main entry point for the authorization workflow backend.

Architecture:
- ActorAuthorization → who may call what
- CaseStore → one CaseDB row per case, compare-and-set updates
- DeadlineTracker → windows, suspension tolling, deemed approval
- WorkflowEngine → phase transitions
- AuditTrail → one transition notice per successful operation
"""
import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import cases_router, scheduler_router
from .database import init_db

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging for the service."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and initialize database on startup."""
    configure_logging()
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Regulatory Authorization Engine",
    description="""
    Regulatory Authorization Engine - Deadline-Bound Approval Workflow

    Administers licensing applications and qualifying-acquisition
    notifications that must be decided within statutory windows.

    ## Lifecycle
    1. **Submit**: applicant opens a case
    2. **Acknowledge**: authority confirms receipt, review clock starts
    3. **Confirm completeness**: required evidence present
    4. **Decide**: approve or reject before the review expiry
    5. **Notify oversight**: decision reported to the oversight authority

    ## Key Principles
    - Information requests suspend (toll) the review clock
    - Silence past the review expiry is deemed approval
    - Deadlines are evaluated when a case is touched, never by a sweep
    - Every operation is all-or-nothing
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(cases_router)
app.include_router(scheduler_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Regulatory Authorization Engine",
        "version": "1.0.0",
        "description": "Deadline-bound approval workflow",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m regauth.main
if __name__ == "__main__":
    import uvicorn
    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8001)
