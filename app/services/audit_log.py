"""Append-only audit log service. Never update or delete - immutable audit trail."""
from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any

from fastapi import Request
from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog
from app.models.user import User

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"
ACTION_STATUS_CHANGE = "status_change"
ACTION_REFUND = "refund"

RESOURCE_BOOKING = "booking"
RESOURCE_USER = "user"
RESOURCE_WORKSPACE = "workspace"
RESOURCE_MENU_ITEM = "menu_item"
RESOURCE_ORDER = "order"
RESOURCE_MEMBERSHIP = "membership"

# Column limits (match model)
_ACTION_LEN = 32
_RESOURCE_LEN = 32
_TITLE_LEN = 255
_ACTOR_EMAIL_LEN = 255
_IP_LEN = 64
_USER_AGENT_LEN = 500
_MESSAGE_LEN = 100_000  # avoid unbounded Text blobs


def _sanitize_meta_value(v: Any) -> Any:
    """Convert to JSON-serializable value so meta never raises on INSERT."""
    if v is None:
        return None
    if isinstance(v, (str, int, float, bool)):
        return v
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    if isinstance(v, enum.Enum):
        return getattr(v, "value", str(v))
    if isinstance(v, dict):
        return {str(k): _sanitize_meta_value(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_sanitize_meta_value(x) for x in v]
    return str(v)


def _sanitize_meta(meta: dict[str, Any] | None) -> dict[str, Any] | None:
    if meta is None:
        return None
    return {str(k): _sanitize_meta_value(v) for k, v in meta.items()}


def request_context(request: Request | None) -> tuple[str | None, str | None]:
    """(ip, user_agent) for the audit trail."""
    if request is None:
        return None, None
    ip = request.client.host if request.client else None
    ua = (request.headers.get("user-agent") or "").strip() or None
    return ip, ua


def diff_changes(before: dict[str, Any], after: dict[str, Any]) -> dict[str, Any]:
    """{field: {"old": x, "new": y}} for fields whose value changed."""
    changes = {}
    for key, new in after.items():
        old = before.get(key)
        if old != new:
            changes[key] = {"old": old, "new": new}
    return changes


def create_log(
    db: Session,
    action: str,
    resource_type: str,
    title: str,
    message: str,
    *,
    resource_id: int | None = None,
    actor: User | None = None,
    request: Request | None = None,
    meta: dict[str, Any] | None = None,
) -> AuditLog:
    """Append one immutable audit log record. All timestamps are UTC (server_default).
    String fields are truncated to column limits; meta is sanitized for JSON."""
    act = (action or "")[:_ACTION_LEN].strip() or ACTION_UPDATE
    res = (resource_type or "")[:_RESOURCE_LEN].strip() or "unknown"
    tit = (title or "")[:_TITLE_LEN].strip() or "-"
    msg = (message or "")[:_MESSAGE_LEN].strip() or "-"
    actor_em = (actor.email[:_ACTOR_EMAIL_LEN] if actor and actor.email else None) or None
    ip, ua = request_context(request)
    ip = (ip[:_IP_LEN] if ip else None) or None
    ua = (str(ua)[:_USER_AGENT_LEN] if ua else None) or None

    entry = AuditLog(
        action=act,
        resource_type=res,
        resource_id=resource_id,
        title=tit,
        message=msg,
        actor_user_id=actor.id if actor else None,
        actor_email=actor_em,
        ip_address=ip,
        user_agent=ua,
        meta=_sanitize_meta(meta),
    )
    db.add(entry)
    db.flush()  # get entry.id if caller needs it; commit remains with caller
    return entry


def list_logs(
    db: Session,
    *,
    resource_type: str | None = None,
    resource_id: int | None = None,
    actor_user_id: int | None = None,
    action: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[AuditLog], int]:
    q = db.query(AuditLog)
    if resource_type:
        q = q.filter(AuditLog.resource_type == resource_type)
    if resource_id is not None:
        q = q.filter(AuditLog.resource_id == resource_id)
    if actor_user_id is not None:
        q = q.filter(AuditLog.actor_user_id == actor_user_id)
    if action:
        q = q.filter(AuditLog.action == action)
    total = q.count()
    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(offset).limit(limit).all()
    return rows, total
