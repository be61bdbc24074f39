from sqlalchemy.orm import Session
from fastapi import Request
from typing import Optional, Dict, Any
from datetime import date, datetime
from decimal import Decimal
import enum
import json
import logging

import models
from enums import ActionType, EntityType

logger = logging.getLogger(__name__)


class AuditLogger:
    """Journal d'audit des actions métier (création, modification, changement de statut...)"""

    @staticmethod
    def log_action(
        db: Session,
        action: ActionType,
        entity_type: EntityType,
        description: str,
        user_id: Optional[int] = None,
        entity_id: Optional[int] = None,
        details: Optional[Dict[Any, Any]] = None,
        request: Optional[Request] = None,
        status_code: Optional[int] = None
    ):
        """
        Enregistre une action dans la table audit_logs

        Args:
            db: Session de base de données
            action: Type d'action (CREATE, UPDATE, STATUS_CHANGE...)
            entity_type: Type d'entité concernée (CLIENT, PROPERTY, BAIL...)
            description: Description de l'action
            user_id: ID de l'utilisateur à l'origine de l'action (None pour un formulaire public)
            entity_id: ID de l'entité concernée
            details: Détails supplémentaires (avant/après, erreurs...)
            request: Requête FastAPI pour l'IP, le user-agent et l'endpoint
            status_code: Code de statut HTTP
        """
        ip_address = None
        user_agent = None
        endpoint = None
        method = None

        if request:
            ip_address = request.client.host if request.client else None
            user_agent = request.headers.get("user-agent")
            endpoint = str(request.url.path)
            method = request.method

        details_json = None
        if details:
            try:
                details_json = json.dumps(details, default=str, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                details_json = f"Erreur de sérialisation: {str(e)}"

        audit_log = models.AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description[:500],
            details=details_json,
            ip_address=ip_address,
            user_agent=user_agent,
            endpoint=endpoint,
            method=method,
            status_code=status_code
        )

        db.add(audit_log)
        try:
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Erreur lors de l'enregistrement du log d'audit: {e}")

    @staticmethod
    def log_crud_action(db: Session, action: ActionType, entity_type: EntityType,
                        entity_id: int, user_id: Optional[int], description: str,
                        before_data: Dict = None, after_data: Dict = None, request: Request = None):
        """Log spécialisé pour les actions CRUD"""
        details = {}
        if before_data:
            details["before"] = before_data
        if after_data:
            details["after"] = after_data

        AuditLogger.log_action(
            db=db,
            action=action,
            entity_type=entity_type,
            description=description,
            user_id=user_id,
            entity_id=entity_id,
            details=details,
            request=request,
            status_code=200
        )

    @staticmethod
    def log_status_change(db: Session, entity_type: EntityType, entity_id: int,
                          old_status, new_status, user_id: Optional[int] = None,
                          field: str = "completion_status"):
        """Log spécialisé pour les changements de statut (complétion ou bail)"""
        old_value = old_status.value if isinstance(old_status, enum.Enum) else old_status
        new_value = new_status.value if isinstance(new_status, enum.Enum) else new_status
        AuditLogger.log_action(
            db=db,
            action=ActionType.STATUS_CHANGE,
            entity_type=entity_type,
            description=f"{entity_type.value} #{entity_id}: {field} {old_value} → {new_value}",
            user_id=user_id,
            entity_id=entity_id,
            details={"field": field, "old": old_value, "new": new_value}
        )

    @staticmethod
    def log_error(db: Session, description: str, user_id: int = None,
                  error_details: Any = None, request: Request = None, status_code: int = 500,
                  entity_type: EntityType = EntityType.USER):
        """Log spécialisé pour les erreurs"""
        details = {"error": error_details} if error_details else None

        AuditLogger.log_action(
            db=db,
            action=ActionType.ERROR,
            entity_type=entity_type,
            description=description,
            user_id=user_id,
            details=details,
            request=request,
            status_code=status_code
        )

    @staticmethod
    def log_access_denied(db: Session, description: str, user_id: int = None, request: Request = None):
        """Log spécialisé pour les tentatives d'accès refusées"""
        AuditLogger.log_action(
            db=db,
            action=ActionType.ACCESS_DENIED,
            entity_type=EntityType.USER,
            description=description,
            user_id=user_id,
            request=request,
            status_code=403
        )


def get_model_data(obj) -> Dict:
    """
    Convertit un objet SQLAlchemy en dictionnaire pour le logging
    """
    if obj is None:
        return {}

    data = {}
    for column in obj.__table__.columns:
        value = getattr(obj, column.name)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = str(value)
        elif isinstance(value, enum.Enum):
            value = value.value
        data[column.name] = value
    return data
