# backend/utils/audit.py
from datetime import datetime
from typing import List, Optional, Tuple

from fastapi import Request
from sqlalchemy.orm import Session

from models.log import Log
from utils.tokenJWT import Principal


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None or request.client is None:
        return None
    return request.client.host


def write_log(db: Session, *, actor: Optional[Principal], action, resource, status="SUCCESS", ip=None, meta=None,
              commit=True):
    """Append an audit entry. With commit=False the entry joins the caller's transaction."""
    entry = Log(
        user_id=actor.user_id if actor else None,
        action=action, resource=resource, status=status, ip=ip, meta=meta or {},
    )
    db.add(entry)
    if commit:
        db.commit()
    return entry


def search_logs(
    db: Session,
    *,
    action: Optional[str] = None,
    user_id: Optional[str] = None,
    resource: Optional[str] = None,
    status: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[Log], int]:
    """Newest entries first; action and resource match on substrings."""
    query = db.query(Log)
    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)
    if status:
        query = query.filter(Log.status == status.upper())
    if since:
        query = query.filter(Log.ts >= since)
    if until:
        query = query.filter(Log.ts <= until)

    total = query.count()
    entries = (
        query.order_by(Log.ts.desc(), Log.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return entries, total
