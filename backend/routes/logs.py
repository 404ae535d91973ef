# backend/routes/logs.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from utils.audit import search_logs
from utils.tokenJWT import Principal, role_required
from schemas.log import LogPage

router = APIRouter(prefix="/logs", tags=["Logs"])


# Audit trail, admins only
@router.get("", response_model=LogPage)
def get_logs(
    action: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    resource: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="SUCCESS or FAIL"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Principal = Depends(role_required("admin")),
):
    entries, total = search_logs(
        db, action=action, user_id=user_id, resource=resource, status=status,
        since=date_from, until=date_to, page=page, page_size=page_size,
    )
    return {"items": entries, "total": total, "page": page, "page_size": page_size}
