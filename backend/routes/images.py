# backend/routes/images.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import Principal, get_current_user
from utils.audit import write_log, client_ip
from services.images import ImageService
import schemas.image as image_schemas

router = APIRouter(prefix="/images", tags=["Images"])


# Reorder an image or change its alt text
@router.patch("/{image_id}", response_model=image_schemas.ImageOut)
def edit_image(
    image_id: int,
    payload: image_schemas.ImageUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    image = ImageService(db).update_image(current_user, image_id, payload)
    write_log(
        db, actor=current_user, action="IMAGE_EDIT", resource="images",
        ip=client_ip(request), meta={"id": image.id, "sort_order": image.sort_order},
    )
    return image


@router.delete("/{image_id}", response_model=image_schemas.ImageOut)
def deactivate_image(
    image_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    image = ImageService(db).deactivate_image(current_user, image_id)
    write_log(
        db, actor=current_user, action="IMAGE_DEACTIVATE", resource="images",
        ip=client_ip(request), meta={"id": image.id},
    )
    return image
