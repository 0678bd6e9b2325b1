"""
Admin routes: audit trail and cron job control.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from ..database import get_db
from ..exceptions import NotFoundException
from ..core.pagination import ApiResponse, PageParams, PageResponse, build_page
from ..core.audit_service import get_audit_logs
from ..auth.models import User
from ..auth.dependencies import require_permission
from ..core.permissions import Permission
from ..cron.registry import CronJobRegistry
from ..cron.jobs import get_cron_registry

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Admin"])

class AuditLogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True

class CronJobResponse(BaseModel):
    name: str
    schedule: str
    description: str
    run_on_startup: bool
    running: bool

class CronRunResponse(BaseModel):
    ran: bool

@router.get(
    "/audit-logs",
    response_model=ApiResponse[PageResponse[AuditLogResponse]],
    summary="Audit trail, newest first",
)
async def audit_logs_route(
    action: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    page_params: PageParams = Depends(),
    admin: User = Depends(require_permission(Permission.VIEW_AUDIT_LOGS)),
    db: Session = Depends(get_db),
):
    items, total = get_audit_logs(
        db, page_params.offset, page_params.size, action=action, user_id=user_id
    )
    return ApiResponse(
        data=build_page([AuditLogResponse.model_validate(item) for item in items], total, page_params)
    )

@router.get(
    "/admin/cron-jobs",
    response_model=ApiResponse[List[CronJobResponse]],
    summary="Registered cron jobs",
)
async def cron_jobs_route(
    admin: User = Depends(require_permission(Permission.MANAGE_CRON_JOBS)),
    registry: CronJobRegistry = Depends(get_cron_registry),
):
    jobs = [
        CronJobResponse(
            name=definition.name,
            schedule=definition.schedule,
            description=definition.description,
            run_on_startup=definition.run_on_startup,
            running=registry.is_running(definition.name),
        )
        for definition in registry.definitions
    ]
    return ApiResponse(data=jobs)

@router.post(
    "/admin/cron-jobs/{name}/run",
    response_model=ApiResponse[CronRunResponse],
    summary="Run a cron job now",
)
async def run_cron_job_route(
    name: str,
    admin: User = Depends(require_permission(Permission.MANAGE_CRON_JOBS)),
    registry: CronJobRegistry = Depends(get_cron_registry),
):
    """
    Trigger a job immediately. ran is false when a run is already in progress.
    """
    if registry.get(name) is None:
        raise NotFoundException(f"Cron job '{name}' not found")

    logger.info(f"🛠️ Admin {admin.id} triggered cron job '{name}'")
    ran = await registry.run_job(name, trigger="manual")
    return ApiResponse(
        data=CronRunResponse(ran=ran),
        message="Job completed" if ran else "Job is already running",
    )
