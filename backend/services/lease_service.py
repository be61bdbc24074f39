"""
Service de gestion des baux
"""
from sqlalchemy.orm import Session, selectinload
from typing import Any, Dict, Optional
import logging

from models import Bail, Client, Property, User, IntakeLink
from enums import ProfilType, BailStatus, NotificationType, ActionType, EntityType
from error_handlers import NotFoundError, BusinessRuleError, ForbiddenError
from audit_logger import AuditLogger, get_model_data
from constants import ERROR_MESSAGES, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from lease_rules import (
    calculate_bail_end_date, deposit_error, missing_furniture_for, can_transition,
    roles_for_transition
)
from services.completion_service import CompletionService
from services.notification_service import NotificationService
import schemas

logger = logging.getLogger(__name__)


class LeaseService:
    """
    Création, modification et cycle de vie des baux
    """

    @staticmethod
    def get_bail(db: Session, bail_id: int) -> Bail:
        bail = db.query(Bail).options(
            selectinload(Bail.parties),
            selectinload(Bail.property),
        ).filter(Bail.id == bail_id).first()
        if bail is None:
            raise NotFoundError(ERROR_MESSAGES["bail_not_found"], details={"bail_id": bail_id})
        return bail

    @staticmethod
    def list_bails(
        db: Session,
        status: Optional[BailStatus] = None,
        property_id: Optional[int] = None,
        client_id: Optional[int] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> Dict[str, Any]:
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

        query = db.query(Bail).options(selectinload(Bail.parties))
        if status:
            query = query.filter(Bail.status == status)
        if property_id:
            query = query.filter(Bail.property_id == property_id)
        if client_id:
            query = query.filter(Bail.parties.any(Client.id == client_id))

        total = query.count()
        items = query.order_by(Bail.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
        return {"items": items, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def _get_tenant(db: Session, tenant_id: int) -> Client:
        tenant = db.query(Client).filter(Client.id == tenant_id).first()
        if tenant is None:
            raise NotFoundError("Locataire introuvable", details={"client_id": tenant_id})
        if tenant.profil_type != ProfilType.LOCATAIRE:
            raise BusinessRuleError("Le client choisi n'est pas un locataire")
        return tenant

    @staticmethod
    def _check_furniture(prop: Property, bail_type):
        missing = missing_furniture_for(prop, bail_type)
        if missing:
            raise BusinessRuleError(
                "Le bien ne comporte pas tout le mobilier obligatoire pour un bail meublé",
                details={"missing_furniture": missing}
            )

    @staticmethod
    def create_bail(db: Session, data: schemas.BailCreate, user_id: Optional[int] = None,
                    created_by_form: bool = False) -> Bail:
        prop = db.query(Property).filter(Property.id == data.property_id).first()
        if prop is None:
            raise NotFoundError(ERROR_MESSAGES["property_not_found"], details={"property_id": data.property_id})

        LeaseService._check_furniture(prop, data.bail_type)

        parties = [prop.owner]
        if data.tenant_id is not None:
            parties.append(LeaseService._get_tenant(db, data.tenant_id))

        bail = Bail(
            bail_type=data.bail_type,
            bail_family=data.bail_family,
            status=BailStatus.DRAFT,
            rent_amount=data.rent_amount,
            monthly_charges=data.monthly_charges,
            security_deposit=data.security_deposit,
            effective_date=data.effective_date,
            end_date=data.end_date or calculate_bail_end_date(data.effective_date, data.bail_type),
            payment_day=data.payment_day,
            property_id=prop.id,
            created_by_id=user_id,
        )
        bail.parties = parties
        db.add(bail)
        db.commit()
        db.refresh(bail)

        AuditLogger.log_crud_action(
            db, ActionType.CREATE, EntityType.BAIL, bail.id, user_id,
            f"Création du bail #{bail.id} pour {prop.label or prop.full_address}",
            after_data=get_model_data(bail)
        )
        NotificationService.create_for_all_users(
            db, NotificationType.BAIL_CREATED, "BAIL", bail.id, created_by_id=user_id,
            metadata={"created_by_form": created_by_form}
        )

        # Les parties peuvent déjà être complètes
        CompletionService.propagate_bail_status(db, property_id=prop.id, actor_id=user_id)
        return bail

    @staticmethod
    def update_bail(db: Session, bail_id: int, data: schemas.BailUpdate, user_id: Optional[int] = None) -> Bail:
        bail = LeaseService.get_bail(db, bail_id)
        before = get_model_data(bail)
        values = data.model_dump(exclude_unset=True)
        tenant_id = values.pop("tenant_id", None)

        bail_type = values.get("bail_type", bail.bail_type)
        message = deposit_error(
            values.get("rent_amount", bail.rent_amount),
            values.get("security_deposit", bail.security_deposit),
            bail_type
        )
        if message:
            raise BusinessRuleError(message)
        if "bail_type" in values:
            LeaseService._check_furniture(bail.property, bail_type)

        for key, value in values.items():
            setattr(bail, key, value)

        if "end_date" not in values and ("effective_date" in values or "bail_type" in values):
            bail.end_date = calculate_bail_end_date(bail.effective_date, bail.bail_type)

        if tenant_id is not None:
            tenant = LeaseService._get_tenant(db, tenant_id)
            bail.parties = [c for c in bail.parties if c.profil_type != ProfilType.LOCATAIRE] + [tenant]

        db.commit()
        db.refresh(bail)

        AuditLogger.log_crud_action(
            db, ActionType.UPDATE, EntityType.BAIL, bail.id, user_id,
            f"Modification du bail #{bail.id}", before_data=before, after_data=get_model_data(bail)
        )
        NotificationService.create_for_all_users(
            db, NotificationType.BAIL_UPDATED, "BAIL", bail.id, created_by_id=user_id
        )

        if bail.property_id:
            CompletionService.propagate_bail_status(db, property_id=bail.property_id, actor_id=user_id)
        return bail

    @staticmethod
    def transition_bail(db: Session, bail_id: int, next_status: BailStatus, user: User) -> Bail:
        """
        Changement manuel de statut, soumis aux rôles et aux transitions autorisées
        """
        allowed_roles = roles_for_transition(next_status)
        if allowed_roles and user.role not in allowed_roles:
            raise ForbiddenError(
                ERROR_MESSAGES["insufficient_permissions"],
                details={"allowed_roles": sorted(r.value for r in allowed_roles)}
            )

        bail = LeaseService.get_bail(db, bail_id)
        old_status = bail.status
        if not can_transition(old_status, next_status):
            raise BusinessRuleError(
                f"Transition impossible: {old_status.value} → {next_status.value}",
                error_code="INVALID_STATUS_TRANSITION",
                details={"current_status": old_status.value, "target_status": next_status.value}
            )

        bail.status = next_status
        db.commit()
        db.refresh(bail)
        logger.info(f"Bail {bail.id}: {old_status.value} → {next_status.value} par l'utilisateur {user.id}")

        AuditLogger.log_status_change(db, EntityType.BAIL, bail.id, old_status, next_status,
                                      user_id=user.id, field="status")
        NotificationService.create_for_all_users(
            db, NotificationType.BAIL_STATUS_CHANGED, "BAIL", bail.id, created_by_id=user.id,
            metadata={"old_status": old_status.value, "new_status": next_status.value}
        )
        return bail

    @staticmethod
    def delete_bail(db: Session, bail_id: int, user_id: Optional[int] = None):
        bail = LeaseService.get_bail(db, bail_id)
        before = get_model_data(bail)
        db.query(IntakeLink).filter(IntakeLink.bail_id == bail_id).update(
            {IntakeLink.bail_id: None}, synchronize_session=False
        )
        db.delete(bail)
        db.commit()

        AuditLogger.log_crud_action(
            db, ActionType.DELETE, EntityType.BAIL, bail_id, user_id,
            f"Suppression du bail #{bail_id}", before_data=before
        )
        NotificationService.create_for_all_users(
            db, NotificationType.BAIL_DELETED, "BAIL", bail_id, created_by_id=user_id
        )
