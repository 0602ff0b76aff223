"""/api/logs - audit trail browsing and administration"""

import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from escompte_gateway.api.dependencies import get_audit_writer, get_request_id
from escompte_gateway.api.v1.schemas import LogEntryCreate, LogEntrySchema, LogListResponse, LogStatsResponse
from escompte_gateway.config import settings
from escompte_gateway.domain.models import LogEntry, LogSeverity
from escompte_gateway.domain.stores import LogQuery
from escompte_gateway.infrastructure.audit import AuditWriter
from escompte_gateway.infrastructure.database.repositories import AuditLogRepository
from escompte_gateway.infrastructure.database.session import get_db
from escompte_gateway.utils.date_utils import utc_now

router = APIRouter()


@router.get("/logs", response_model=LogListResponse)
def list_logs(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    severity: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None, alias="entityType"),
    date_start: Optional[date] = Query(None, alias="dateStart"),
    date_end: Optional[date] = Query(None, alias="dateEnd"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    """Audit entries, newest first"""
    result = AuditLogRepository(db).search(
        LogQuery(
            search=search,
            category=category,
            action=action,
            severity=severity,
            entity_type=entity_type,
            date_start=date_start,
            date_end=date_end,
            page=page,
            limit=limit,
        )
    )
    return LogListResponse(
        logs=[LogEntrySchema.model_validate(entry) for entry in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/logs/stats", response_model=LogStatsResponse)
def get_log_stats(db: Session = Depends(get_db)):
    return LogStatsResponse.model_validate(AuditLogRepository(db).stats())


@router.post("/logs", response_model=LogEntrySchema, status_code=201)
def create_log(
    body: LogEntryCreate,
    request: Request,
    writer: AuditWriter = Depends(get_audit_writer),
):
    """Append a client-side entry (UI actions, logins, exports done in the browser)"""
    description = body.description or body.message
    if not body.action or not body.category or not description:
        raise HTTPException(status_code=400, detail="Fields action, category and description are required")

    entry = writer.append(
        LogEntry(
            id=body.id or str(uuid.uuid4()),
            timestamp=body.timestamp or utc_now(),
            action=body.action,
            category=body.category,
            severity=body.severity or LogSeverity.LOW.value,
            description=description,
            entity_type=body.entity_type,
            entity_id=body.entity_id,
            changes=body.changes,
            metadata=body.metadata or {},
            user_id=body.user_id,
        )
    )
    logging.info("Client log entry stored", extra={"request_id": get_request_id(request), "log_id": entry.id})
    return LogEntrySchema.model_validate(entry)


@router.delete("/logs/{log_id}")
def delete_log(log_id: str, db: Session = Depends(get_db)):
    repository = AuditLogRepository(db)
    if not repository.delete(log_id):
        raise HTTPException(status_code=404, detail="Log entry not found")
    repository.commit()
    return {"success": True}


@router.delete("/logs")
def clear_logs(
    request: Request,
    confirm: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Delete every entry; requires ?confirm=true"""
    if confirm != "true":
        raise HTTPException(status_code=400, detail="Confirmation required: add ?confirm=true to delete all logs")

    repository = AuditLogRepository(db)
    deleted = repository.clear()
    repository.commit()
    logging.warning("Audit log cleared", extra={"request_id": get_request_id(request), "deleted": deleted})
    return {"success": True, "deleted": deleted, "message": f"{deleted} log entries deleted"}
