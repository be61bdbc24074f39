"""
Routes API pour la gestion des baux
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from database import get_db
from auth import get_current_user
from models import User
from enums import BailStatus
from services.lease_service import LeaseService
from constants import DEFAULT_PAGE_SIZE
import schemas

router = APIRouter(prefix="/api/leases", tags=["leases"])


@router.get("/")
async def list_leases(
    status: Optional[BailStatus] = None,
    property_id: Optional[int] = None,
    client_id: Optional[int] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    result = LeaseService.list_bails(db, status, property_id, client_id, page, page_size)
    result["items"] = [schemas.BailOut.model_validate(b) for b in result["items"]]
    return result


@router.post("/", response_model=schemas.BailOut, status_code=status.HTTP_201_CREATED)
async def create_lease(
    data: schemas.BailCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    bail = LeaseService.create_bail(db, data, user_id=current_user.id)
    return LeaseService.get_bail(db, bail.id)


@router.get("/{bail_id}", response_model=schemas.BailOut)
async def get_lease(
    bail_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return LeaseService.get_bail(db, bail_id)


@router.put("/{bail_id}", response_model=schemas.BailOut)
async def update_lease(
    bail_id: int,
    data: schemas.BailUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    LeaseService.update_bail(db, bail_id, data, user_id=current_user.id)
    return LeaseService.get_bail(db, bail_id)


@router.post("/{bail_id}/transition", response_model=schemas.BailOut)
async def transition_lease(
    bail_id: int,
    data: schemas.BailTransition,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Changement manuel de statut (signature, résiliation, annulation...)
    """
    LeaseService.transition_bail(db, bail_id, data.next_status, current_user)
    return LeaseService.get_bail(db, bail_id)


@router.delete("/{bail_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lease(
    bail_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    LeaseService.delete_bail(db, bail_id, user_id=current_user.id)
