from pydantic import BaseModel
from datetime import datetime
from typing import Any, List, Optional

from schemas.product import ORMBase


class LogOut(ORMBase):
    id: int
    ts: Optional[datetime] = None
    user_id: Optional[str] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    meta: Optional[Any] = None


class LogPage(BaseModel):
    items: List[LogOut]
    total: int
    page: int
    page_size: int
