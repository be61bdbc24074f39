"""
Routes API pour la gestion des biens
"""
from dataclasses import asdict
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from database import get_db
from auth import get_current_user, require_roles
from models import User
from enums import Role, CompletionStatus
from services.property_service import PropertyService
from services.completion_service import CompletionService
from error_handlers import NotFoundError
from constants import ERROR_MESSAGES, DEFAULT_PAGE_SIZE
import schemas

router = APIRouter(prefix="/api/properties", tags=["properties"])


@router.get("/")
async def list_properties(
    owner_id: Optional[int] = None,
    completion_status: Optional[CompletionStatus] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    result = PropertyService.list_properties(db, owner_id, completion_status, page, page_size)
    result["items"] = [schemas.PropertyOut.model_validate(p) for p in result["items"]]
    return result


@router.post("/", response_model=schemas.PropertyOut, status_code=status.HTTP_201_CREATED)
async def create_property(
    data: schemas.PropertyCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    prop = PropertyService.create_property(db, data, user_id=current_user.id)
    db.refresh(prop)
    return prop


@router.get("/{property_id}", response_model=schemas.PropertyOut)
async def get_property(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return PropertyService.get_property(db, property_id)


@router.put("/{property_id}", response_model=schemas.PropertyOut)
async def update_property(
    property_id: int,
    data: schemas.PropertyUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    prop = PropertyService.update_property(db, property_id, data, user_id=current_user.id)
    db.refresh(prop)
    return prop


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_property(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    PropertyService.delete_property(db, property_id, user_id=current_user.id)


@router.get("/{property_id}/completion", response_model=schemas.CompletionCheckOut)
async def get_property_completion(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    PropertyService.get_property(db, property_id)
    return asdict(CompletionService.check_property_completion(db, property_id))


@router.patch("/{property_id}/completion-status", response_model=schemas.CompletionUpdateOut)
async def set_property_completion_status(
    property_id: int,
    data: schemas.CompletionStatusUpdate,
    current_user: User = Depends(require_roles(Role.ADMINISTRATEUR, Role.REVIEWER)),
    db: Session = Depends(get_db)
):
    result = CompletionService.set_property_completion_status(
        db, property_id, data.completion_status, actor_id=current_user.id
    )
    if result.old_status is None:
        raise NotFoundError(ERROR_MESSAGES["property_not_found"], details={"property_id": property_id})
    return asdict(result)
