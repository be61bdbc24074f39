"""
Contrôleur pour l'authentification de l'équipe et des notaires
"""
from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from typing import Dict, Any

from database import get_db
from auth import authenticate_user, create_access_token, get_current_user
from models import User
from enums import ActionType, EntityType
from audit_logger import AuditLogger
from error_handlers import PermissionErrorHandler
from constants import ERROR_MESSAGES
import schemas

router = APIRouter(prefix="/auth", tags=["Authentification"])


@router.post("/login")
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Connexion utilisateur
    """
    user = authenticate_user(db, form_data.username, form_data.password)

    if not user:
        AuditLogger.log_error(
            db=db,
            description=f"Tentative de connexion échouée pour: {form_data.username}",
            error_details="Identifiants incorrects",
            request=request,
            status_code=401
        )
        return PermissionErrorHandler.unauthorized(ERROR_MESSAGES["invalid_credentials"]).to_json_response()

    access_token = create_access_token(data={"sub": user.email, "role": user.role.value})

    AuditLogger.log_crud_action(
        db=db,
        action=ActionType.LOGIN,
        entity_type=EntityType.USER,
        entity_id=user.id,
        user_id=user.id,
        description=f"Connexion réussie: {user.email}",
        request=request
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": schemas.UserOut.model_validate(user)
    }


@router.get("/me", response_model=schemas.UserOut)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """
    Récupère les informations de l'utilisateur connecté
    """
    return current_user
