# ==============================================
# File: specguard/server.py
# Description: Compliance decision engine FastAPI server
# ==============================================

import asyncio
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

from specguard import __version__
from specguard.config import settings
from specguard.logging_config import setup_logging, TraceContext, log_event, get_current_trace_id
from specguard.models import (
    CoachingRequest,
    CoachingResponse,
    ComplianceRequest,
    ErrorResponse,
    VerdictResponse,
)
from specguard.rules import get_auto_compliance_patterns, get_critical_rules, get_knowledge_base
from specguard.services.decision_engine import get_coaching_service, get_decision_engine
from specguard.services.event_client import EventAPIClient

load_dotenv()

# Setup structured logging
setup_logging(log_file=settings.log_file, level=settings.log_level, json_logs=settings.json_logs)
logger = logging.getLogger(__name__)

event_client = EventAPIClient()

# Audit deliveries still in flight; holds references until each task finishes
pending_events: set = set()


def schedule_audit_event(workspace_id: str, user_id: str, verdict) -> asyncio.Task:
    """Send the compliance-check event without holding up the response"""
    task = asyncio.create_task(event_client.log_compliance_check(workspace_id, user_id, verdict))
    pending_events.add(task)
    task.add_done_callback(pending_events.discard)
    return task


# ---------------------------
# Lifespan
# ---------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the catalog once at startup so a broken deployment fails fast"""
    log_event(logger, "catalog_loaded", "server", {
        "documents": len(get_knowledge_base()),
        "critical_rules": len(get_critical_rules()),
        "patterns": len(get_auto_compliance_patterns()),
    })
    logger.info("[PACKAGE] Server startup complete")
    yield
    if pending_events:
        log_event(logger, "draining_audit_events", "server", {"pending": len(pending_events)})
        await asyncio.wait(set(pending_events), timeout=settings.event_timeout_seconds)
    logger.info("[PACKAGE] Server shutdown complete")


# ---------------------------
# Create FastAPI App
# ---------------------------
app = FastAPI(
    title="SpecGuard Compliance Engine",
    description="Pre-generation compliance decisions for project specifications",
    version=__version__,
    lifespan=lifespan
)


# ---------------------------
# API Endpoints
# ---------------------------
@app.post("/compliance/analyze", response_model=VerdictResponse, responses={500: {"model": ErrorResponse}})
async def analyze(request: ComplianceRequest):
    """
    Analyze a project before specification generation.

    Always answers with a verdict: oracle trouble degrades the verdict
    instead of failing the request. Callers must not generate when
    overallCompliance is "blocking-violations".
    """
    with TraceContext():
        log_event(logger, "analysis_requested", "server", {
            "workspace_id": request.workspaceId,
            "title_length": len(request.title),
            "description_length": len(request.description),
        })
        try:
            verdict = await get_decision_engine().analyze_compliance(request.title, request.description)
        except Exception as e:
            log_event(logger, "unexpected_error", "server", {"error": str(e)}, level="ERROR")
            logger.exception("Unexpected error occurred", exc_info=True)
            raise HTTPException(
                status_code=500,
                detail={
                    "error": "Compliance analysis failed",
                    "error_type": "unexpected_error",
                    "details": {"trace_id": get_current_trace_id()},
                },
            )

        if request.workspaceId and request.userId:
            schedule_audit_event(request.workspaceId, request.userId, verdict)

        return verdict.to_dict()


@app.post("/compliance/coaching", response_model=CoachingResponse, responses={502: {"model": ErrorResponse}})
async def coaching(request: CoachingRequest):
    """Expand a violation into remediation guidance"""
    with TraceContext():
        try:
            text = await get_coaching_service().generate_coaching(request)
        except Exception as e:
            log_event(logger, "coaching_failed", "server", {
                "code": request.code,
                "error": str(e),
                "error_type": type(e).__name__,
            }, level="ERROR")
            raise HTTPException(
                status_code=502,
                detail={
                    "error": "Coaching is currently unavailable",
                    "error_type": "oracle_unavailable",
                    "details": {"code": request.code, "trace_id": get_current_trace_id()},
                },
            )
        return CoachingResponse(coaching=text)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Welcome to the SpecGuard Compliance Engine API!",
        "version": __version__,
        "features": [
            "Critical violation blocking",
            "Auto-compliance requirement bundles",
            "AI-assisted compliance analysis",
            "Violation coaching"
        ]
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "llm_provider": settings.llm_provider,
        "llm_configured": bool(settings.llm_api_key or settings.google_api_key),
        "event_api": "configured" if event_client.configured else "not configured",
        "catalog_documents": len(get_knowledge_base()),
    }


# ---------------------------
# Entry Point
# ---------------------------
if __name__ == "__main__":
    import uvicorn
    logger.info("[START] Starting uvicorn server on port 8000")
    uvicorn.run(app, host="0.0.0.0", port=8000)
