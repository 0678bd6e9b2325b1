from sqlalchemy.orm import Session
from fastapi import Request
from typing import Optional, Dict, Any, Tuple, List, Union

from .audit_models import AuditLog, AuditAction

def create_audit_log(
    db: Session,
    action: Union[AuditAction, str],
    user_id: Optional[int] = None,
    request: Optional[Request] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None,
    commit: bool = True,
) -> AuditLog:
    """
    Creates an audit log entry.

    Args:
        db: The database session.
        action: The action performed (e.g. AuditAction.IMPERSONATE_START).
        user_id: The ID of the user who performed the action (if applicable).
        request: The FastAPI request object to extract IP address (if available).
        resource_type: Kind of record the action touched (e.g. 'order').
        resource_id: Identifier of that record.
        details: Additional context. Must not contain PHI.
        commit: Commit immediately; pass False to join the caller's transaction.

    Returns:
        The created AuditLog object.
    """
    ip_address = None
    if request and request.client:
        ip_address = request.client.host

    audit_entry = AuditLog(
        user_id=user_id,
        action=action.value if isinstance(action, AuditAction) else action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        ip_address=ip_address,
        details=details
    )
    db.add(audit_entry)
    if commit:
        db.commit()
        db.refresh(audit_entry)
    else:
        db.flush()
    return audit_entry

def get_audit_logs(
    db: Session,
    offset: int,
    limit: int,
    action: Optional[str] = None,
    user_id: Optional[int] = None,
) -> Tuple[List[AuditLog], int]:
    """Newest-first page of audit entries with optional filters."""
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)

    total = query.count()
    items = (
        query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total
