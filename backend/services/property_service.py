"""
Service de gestion des biens immobiliers
"""
from sqlalchemy.orm import Session, selectinload
from typing import Any, Dict, Optional
import logging

from models import Property, Client, IntakeLink
from enums import ProfilType, CompletionStatus, NotificationType, ActionType, EntityType
from error_handlers import NotFoundError, BusinessRuleError, DeletionBlockedError
from audit_logger import AuditLogger, get_model_data
from constants import ERROR_MESSAGES, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from services.completion_service import CompletionService
from services.notification_service import NotificationService
import schemas

logger = logging.getLogger(__name__)


class PropertyService:

    @staticmethod
    def get_property(db: Session, property_id: int) -> Property:
        prop = db.query(Property).filter(Property.id == property_id).first()
        if prop is None:
            raise NotFoundError(ERROR_MESSAGES["property_not_found"], details={"property_id": property_id})
        return prop

    @staticmethod
    def list_properties(
        db: Session,
        owner_id: Optional[int] = None,
        completion_status: Optional[CompletionStatus] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> Dict[str, Any]:
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

        query = db.query(Property)
        if owner_id:
            query = query.filter(Property.owner_id == owner_id)
        if completion_status:
            query = query.filter(Property.completion_status == completion_status)

        total = query.count()
        items = query.order_by(Property.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
        return {"items": items, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def create_property(db: Session, data: schemas.PropertyCreate, user_id: Optional[int] = None,
                        created_by_form: bool = False) -> Property:
        owner = db.query(Client).filter(Client.id == data.owner_id).first()
        if owner is None:
            raise NotFoundError(ERROR_MESSAGES["client_not_found"], details={"client_id": data.owner_id})
        if owner.profil_type == ProfilType.LOCATAIRE:
            raise BusinessRuleError("Un locataire ne peut pas être propriétaire d'un bien")

        prop = Property(**data.model_dump(), created_by_id=user_id)
        db.add(prop)
        db.commit()
        db.refresh(prop)

        AuditLogger.log_crud_action(
            db, ActionType.CREATE, EntityType.PROPERTY, prop.id, user_id,
            f"Création du bien {prop.label or prop.full_address}", after_data=get_model_data(prop)
        )
        NotificationService.create_for_all_users(
            db, NotificationType.PROPERTY_CREATED, "PROPERTY", prop.id, created_by_id=user_id,
            metadata={"created_by_form": created_by_form}
        )

        CompletionService.update_property_completion_status(db, prop.id, actor_id=user_id)
        return prop

    @staticmethod
    def update_property(db: Session, property_id: int, data: schemas.PropertyUpdate,
                        user_id: Optional[int] = None) -> Property:
        prop = PropertyService.get_property(db, property_id)
        before = get_model_data(prop)

        for key, value in data.model_dump(exclude_unset=True).items():
            if key == "full_address" and not (value or "").strip():
                raise BusinessRuleError("L'adresse du bien est obligatoire")
            setattr(prop, key, value)

        db.commit()
        db.refresh(prop)

        AuditLogger.log_crud_action(
            db, ActionType.UPDATE, EntityType.PROPERTY, prop.id, user_id,
            f"Modification du bien {prop.label or prop.full_address}",
            before_data=before, after_data=get_model_data(prop)
        )
        NotificationService.create_for_all_users(
            db, NotificationType.PROPERTY_UPDATED, "PROPERTY", prop.id, created_by_id=user_id
        )

        CompletionService.update_property_completion_status(db, prop.id, actor_id=user_id)
        return prop

    @staticmethod
    def delete_property(db: Session, property_id: int, user_id: Optional[int] = None):
        prop = db.query(Property).options(selectinload(Property.bails)).filter(Property.id == property_id).first()
        if prop is None:
            raise NotFoundError(ERROR_MESSAGES["property_not_found"], details={"property_id": property_id})
        if prop.bails:
            raise DeletionBlockedError(
                "Impossible de supprimer ce bien: des baux y sont rattachés",
                blocking_entities=[{"type": "BAIL", "id": b.id, "status": b.status.value} for b in prop.bails]
            )

        label = prop.label or prop.full_address
        before = get_model_data(prop)
        db.query(IntakeLink).filter(IntakeLink.property_id == property_id).update(
            {IntakeLink.property_id: None}, synchronize_session=False
        )
        db.delete(prop)
        db.commit()

        AuditLogger.log_crud_action(
            db, ActionType.DELETE, EntityType.PROPERTY, property_id, user_id,
            f"Suppression du bien {label}", before_data=before
        )
        NotificationService.create_for_all_users(
            db, NotificationType.PROPERTY_DELETED, "PROPERTY", property_id, created_by_id=user_id,
            metadata={"label": label}
        )
