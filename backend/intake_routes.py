"""
Routes API des formulaires de collecte (intake)
Les routes /public/{token} sont accessibles sans authentification.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional

from database import get_db
from auth import get_current_user
from models import User
from enums import IntakeStatus, IntakeTarget
from services.intake_service import IntakeService
from constants import DEFAULT_PAGE_SIZE
import schemas

router = APIRouter(prefix="/api/intakes", tags=["intakes"])


def get_intake_service(db: Session = Depends(get_db)) -> IntakeService:
    return IntakeService(db)


@router.get("/")
async def list_intake_links(
    status: Optional[IntakeStatus] = None,
    target: Optional[IntakeTarget] = None,
    client_id: Optional[int] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    current_user: User = Depends(get_current_user),
    service: IntakeService = Depends(get_intake_service)
):
    result = service.list_links(status, target, client_id, page, page_size)
    result["items"] = [schemas.IntakeLinkOut.model_validate(link) for link in result["items"]]
    return result


@router.post("/", response_model=schemas.IntakeLinkOut, status_code=status.HTTP_201_CREATED)
async def create_intake_link(
    data: schemas.IntakeLinkCreate,
    current_user: User = Depends(get_current_user),
    service: IntakeService = Depends(get_intake_service)
):
    return service.create_link(data, user_id=current_user.id)


@router.post("/{intake_id}/revoke", response_model=schemas.IntakeLinkOut)
async def revoke_intake_link(
    intake_id: int,
    current_user: User = Depends(get_current_user),
    service: IntakeService = Depends(get_intake_service)
):
    return service.revoke(intake_id, user_id=current_user.id)


@router.post("/{intake_id}/regenerate", response_model=schemas.IntakeLinkOut)
async def regenerate_intake_token(
    intake_id: int,
    current_user: User = Depends(get_current_user),
    service: IntakeService = Depends(get_intake_service)
):
    return service.regenerate_token(intake_id, user_id=current_user.id)


# ==================== ACCÈS PUBLIC ====================

@router.get("/public/{token}", response_model=schemas.IntakeLinkOut)
async def get_public_intake(token: str, service: IntakeService = Depends(get_intake_service)):
    return service.get_by_token(token)


@router.post("/public/{token}/submit", response_model=schemas.IntakeSubmissionOut)
async def submit_intake(
    token: str,
    payload: Dict[str, Any],
    service: IntakeService = Depends(get_intake_service)
):
    """
    Soumission définitive du formulaire : le lien ne pourra plus être réutilisé
    """
    return service.submit(token, payload, final=True)


@router.put("/public/{token}/draft", response_model=schemas.IntakeSubmissionOut)
async def save_intake_draft(
    token: str,
    payload: Dict[str, Any],
    service: IntakeService = Depends(get_intake_service)
):
    return service.submit(token, payload, final=False)
