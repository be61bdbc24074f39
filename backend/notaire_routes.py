"""
Routes API notaires : comptes, dossiers assignés, demandes et messagerie
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from auth import get_current_user, require_roles
from models import User
from enums import Role
from services.notaire_service import NotaireService
import schemas

router = APIRouter(prefix="/api/notaires", tags=["notaires"])


@router.get("/", response_model=List[schemas.UserOut])
async def list_notaires(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotaireService.list_notaires(db)


@router.post("/", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
async def create_notaire(
    data: schemas.NotaireCreate,
    current_user: User = Depends(require_roles(Role.ADMINISTRATEUR)),
    db: Session = Depends(get_db)
):
    return NotaireService.create_notaire(db, data, user_id=current_user.id)


# ==================== DOSSIERS ====================

@router.get("/assignments", response_model=List[schemas.AssignmentOut])
async def list_assignments(
    notaire_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Un notaire ne liste que ses propres dossiers"""
    if current_user.role == Role.NOTAIRE:
        notaire_id = current_user.id
    return NotaireService.list_assignments(db, notaire_id)


@router.post("/assignments", response_model=schemas.AssignmentOut, status_code=status.HTTP_201_CREATED)
async def assign_dossier(
    data: schemas.AssignmentCreate,
    current_user: User = Depends(require_roles(Role.ADMINISTRATEUR)),
    db: Session = Depends(get_db)
):
    return NotaireService.assign_dossier(db, data, user_id=current_user.id)


@router.get("/assignments/{assignment_id}", response_model=schemas.AssignmentOut)
async def get_dossier(
    assignment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotaireService.get_dossier(db, assignment_id, current_user)


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_assignment(
    assignment_id: int,
    current_user: User = Depends(require_roles(Role.ADMINISTRATEUR)),
    db: Session = Depends(get_db)
):
    NotaireService.revoke_assignment(db, assignment_id, user_id=current_user.id)


# ==================== DEMANDES ====================

@router.get("/assignments/{assignment_id}/requests", response_model=List[schemas.NotaireRequestOut])
async def list_requests(
    assignment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotaireService.list_requests(db, assignment_id, current_user)


@router.post("/assignments/{assignment_id}/requests", response_model=schemas.NotaireRequestOut,
             status_code=status.HTTP_201_CREATED)
async def create_request(
    assignment_id: int,
    data: schemas.NotaireRequestCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotaireService.create_request(db, assignment_id, data, current_user)


@router.patch("/requests/{request_id}", response_model=schemas.NotaireRequestOut)
async def update_request_status(
    request_id: int,
    data: schemas.NotaireRequestStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotaireService.update_request_status(db, request_id, data.status, current_user)


# ==================== MESSAGERIE ====================

@router.get("/leases/{bail_id}/messages", response_model=List[schemas.BailMessageOut])
async def list_messages(
    bail_id: int,
    party_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotaireService.list_messages(db, bail_id, current_user, party_id)


@router.post("/leases/{bail_id}/messages", response_model=schemas.BailMessageOut,
             status_code=status.HTTP_201_CREATED)
async def send_message(
    bail_id: int,
    data: schemas.BailMessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotaireService.send_message(db, bail_id, data, current_user)


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    NotaireService.delete_message(db, message_id, current_user)
