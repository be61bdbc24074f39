"""
Routes API pour la gestion des clients et de leur complétude
"""
from dataclasses import asdict
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from database import get_db
from auth import get_current_user, require_roles
from models import User
from enums import Role, ProfilType, CompletionStatus
from services.client_service import ClientService
from services.completion_service import CompletionService
from error_handlers import NotFoundError
from constants import ERROR_MESSAGES, DEFAULT_PAGE_SIZE
import schemas

router = APIRouter(prefix="/api/clients", tags=["clients"])


@router.get("/", response_model=schemas.ClientList)
async def list_clients(
    profil_type: Optional[ProfilType] = None,
    completion_status: Optional[CompletionStatus] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ClientService.list_clients(db, profil_type, completion_status, page, page_size)


@router.post("/", response_model=schemas.ClientOut, status_code=status.HTTP_201_CREATED)
async def create_client(
    data: schemas.ClientCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    client = ClientService.create_client(db, data, user_id=current_user.id)
    return ClientService.get_client(db, client.id)


@router.get("/{client_id}", response_model=schemas.ClientOut)
async def get_client(
    client_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ClientService.get_client(db, client_id)


@router.put("/{client_id}", response_model=schemas.ClientOut)
async def update_client(
    client_id: int,
    data: schemas.ClientUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ClientService.update_client(db, client_id, data, user_id=current_user.id)
    return ClientService.get_client(db, client_id)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ClientService.delete_client(db, client_id, user_id=current_user.id)


# ==================== PERSONNES ====================

@router.post("/{client_id}/persons", response_model=schemas.PersonOut, status_code=status.HTTP_201_CREATED)
async def add_person(
    client_id: int,
    data: schemas.PersonCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ClientService.add_person(db, client_id, data, user_id=current_user.id)


@router.put("/{client_id}/persons/{person_id}", response_model=schemas.PersonOut)
async def update_person(
    client_id: int,
    person_id: int,
    data: schemas.PersonUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ClientService.update_person(db, client_id, person_id, data, user_id=current_user.id)


@router.delete("/{client_id}/persons/{person_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_person(
    client_id: int,
    person_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ClientService.remove_person(db, client_id, person_id, user_id=current_user.id)


# ==================== COMPLÉTUDE ====================

@router.get("/{client_id}/completion", response_model=schemas.DetailedCompletionOut)
async def get_client_completion(
    client_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Détail des champs et pièces manquants, par personne et pour le client
    """
    ClientService.get_client(db, client_id)
    check = CompletionService.check_client_completion_detailed(db, client_id)
    return asdict(check)


@router.post("/{client_id}/completion/refresh", response_model=schemas.CompletionUpdateOut)
async def refresh_client_completion(
    client_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ClientService.get_client(db, client_id)
    return asdict(CompletionService.update_client_completion_status(db, client_id, actor_id=current_user.id))


@router.patch("/{client_id}/completion-status", response_model=schemas.CompletionUpdateOut)
async def set_client_completion_status(
    client_id: int,
    data: schemas.CompletionStatusUpdate,
    current_user: User = Depends(require_roles(Role.ADMINISTRATEUR, Role.REVIEWER)),
    db: Session = Depends(get_db)
):
    """
    Validation manuelle du dossier client (seule voie vers COMPLETED)
    """
    result = CompletionService.set_client_completion_status(
        db, client_id, data.completion_status, actor_id=current_user.id
    )
    if result.old_status is None:
        raise NotFoundError(ERROR_MESSAGES["client_not_found"], details={"client_id": client_id})
    return asdict(result)
