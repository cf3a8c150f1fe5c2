"""Job endpoints, callable by an external cron or the web app.

Both accept POST without a body and answer a bare OPTIONS preflight with an
empty 200.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.orm import Session

from fpcp.db.database import get_sync_db
from fpcp.notifications.errors import JobError
from fpcp.scheduler.jobs import dispatch_pending_emails, scan_deadline_reminders

router = APIRouter(prefix="/functions/v1", tags=["functions"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _error_response(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message}, headers=CORS_HEADERS)


@router.options("/deadline-reminders")
@router.options("/send-emails")
def preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/deadline-reminders")
def deadline_reminders(db: Session = Depends(get_sync_db)):
    try:
        summary = scan_deadline_reminders(db)
    except JobError as e:
        logger.error(f"Error in deadline-reminders function: {e}")
        return _error_response(str(e))
    return JSONResponse(content={"success": True, **summary}, headers=CORS_HEADERS)


@router.post("/send-emails")
def send_emails(db: Session = Depends(get_sync_db)):
    try:
        summary = dispatch_pending_emails(db)
    except JobError as e:
        logger.error(f"Error in send-emails function: {e}")
        return _error_response(str(e))
    return JSONResponse(content={"success": True, **summary}, headers=CORS_HEADERS)
