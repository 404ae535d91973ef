# backend/routes/attributes.py
from typing import List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import Principal, get_current_user
from utils.audit import write_log, client_ip
from services.catalog import CatalogService
import schemas.attribute as attribute_schemas

router = APIRouter(tags=["Attributes"])


@router.get("/sizes", response_model=List[attribute_schemas.SizeOut])
def list_sizes(db: Session = Depends(get_db)):
    return CatalogService(db).list_sizes()


@router.post("/sizes", response_model=attribute_schemas.SizeOut, status_code=201)
def create_size(
    payload: attribute_schemas.SizeCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    size = CatalogService(db).create_size(current_user, payload)
    write_log(db, actor=current_user, action="SIZE_CREATE", resource="sizes", ip=client_ip(request), meta={"id": size.id})
    return size


@router.get("/colors", response_model=List[attribute_schemas.ColorOut])
def list_colors(db: Session = Depends(get_db)):
    return CatalogService(db).list_colors()


@router.post("/colors", response_model=attribute_schemas.ColorOut, status_code=201)
def create_color(
    payload: attribute_schemas.ColorCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    color = CatalogService(db).create_color(current_user, payload)
    write_log(db, actor=current_user, action="COLOR_CREATE", resource="colors", ip=client_ip(request), meta={"id": color.id})
    return color
