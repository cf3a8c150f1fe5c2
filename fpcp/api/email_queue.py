from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fpcp.config import get_settings
from fpcp.db.database import get_db
from fpcp.models.email_queue import EmailStatus, QueuedEmail

router = APIRouter(prefix="/api", tags=["email-queue"])


class QueuedEmailResponse(BaseModel):
    id: int
    to_email: str
    subject: str
    template_type: str
    status: str
    metadata: Dict[str, Any]
    created_at: str
    sent_at: Optional[str] = None


def require_admin(x_admin_key: Optional[str] = Header(None)):
    settings = get_settings()
    if not settings.is_production:
        return
    if not settings.admin_api_key:
        raise HTTPException(status_code=503, detail="Admin API not configured")
    if x_admin_key != settings.admin_api_key:
        raise HTTPException(status_code=401, detail="Invalid admin key")


@router.get("/email-queue", dependencies=[Depends(require_admin)])
async def list_email_queue(
    status: Optional[EmailStatus] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(QueuedEmail).order_by(QueuedEmail.created_at.desc(), QueuedEmail.id.desc())
    if status:
        stmt = stmt.where(QueuedEmail.status == status)
    result = await db.execute(stmt.limit(limit))
    emails = result.scalars().all()
    return {
        "items": [
            QueuedEmailResponse(
                id=e.id,
                to_email=e.to_email,
                subject=e.subject,
                template_type=e.template_type.value,
                status=e.status.value,
                metadata=e.payload or {},
                created_at=e.created_at.isoformat(),
                sent_at=e.sent_at.isoformat() if e.sent_at else None,
            )
            for e in emails
        ]
    }


@router.get("/email-queue/stats", dependencies=[Depends(require_admin)])
async def email_queue_stats(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(QueuedEmail.status, func.count(QueuedEmail.id)).group_by(QueuedEmail.status)
    )
    counts = {status.value: 0 for status in EmailStatus}
    for status, count in result.all():
        counts[status.value] = count
    return counts
