"""
Service notaires : comptes, assignation des dossiers, demandes et messagerie par bail
"""
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional
import logging

from models import User, Bail, DossierNotaireAssignment, NotaireRequest, BailMessage, Document
from enums import Role, NotaireRequestStatus, NotificationType, ActionType, EntityType
from error_handlers import NotFoundError, BusinessRuleError, ForbiddenError, ConflictError
from audit_logger import AuditLogger
from email_service import email_service
from constants import ERROR_MESSAGES, APP_URL
from services.notification_service import NotificationService
import schemas

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({Role.ADMINISTRATEUR, Role.OPERATEUR, Role.REVIEWER})


class NotaireService:

    # ==================== COMPTES ====================

    @staticmethod
    def list_notaires(db: Session) -> List[User]:
        return db.query(User).filter(User.role == Role.NOTAIRE).order_by(User.name, User.id).all()

    @staticmethod
    def create_notaire(db: Session, data: schemas.NotaireCreate, user_id: Optional[int] = None) -> User:
        """
        Crée le compte notaire ou promeut un utilisateur existant.
        L'email de bienvenue n'est envoyé qu'à la création.
        """
        email = data.email.strip().lower()
        user = db.query(User).filter(User.email == email).first()

        if user is not None:
            if user.role != Role.NOTAIRE:
                user.role = Role.NOTAIRE
                user.name = data.name or user.name
                db.commit()
                AuditLogger.log_crud_action(
                    db, ActionType.UPDATE, EntityType.USER, user.id, user_id,
                    f"Passage de {email} au rôle notaire"
                )
            return user

        user = User(email=email, name=data.name, role=Role.NOTAIRE, is_active=True)
        db.add(user)
        db.commit()
        db.refresh(user)

        AuditLogger.log_crud_action(
            db, ActionType.CREATE, EntityType.USER, user.id, user_id, f"Création du notaire {email}"
        )
        email_service.dispatch(email_service.send_notaire_welcome_email(
            to=user.email, name=user.name, interface_url=f"{APP_URL}/notaire/login"
        ))
        return user

    @staticmethod
    def _get_notaire(db: Session, notaire_id: int) -> User:
        notaire = db.query(User).filter(User.id == notaire_id, User.role == Role.NOTAIRE).first()
        if notaire is None:
            raise NotFoundError(ERROR_MESSAGES["notaire_not_found"], details={"notaire_id": notaire_id})
        return notaire

    # ==================== ASSIGNATIONS ====================

    @staticmethod
    def assign_dossier(db: Session, data: schemas.AssignmentCreate, user_id: Optional[int] = None) -> DossierNotaireAssignment:
        notaire = NotaireService._get_notaire(db, data.notaire_id)

        bail = db.query(Bail).options(selectinload(Bail.property)).filter(Bail.id == data.bail_id).first()
        if bail is None:
            raise NotFoundError(ERROR_MESSAGES["bail_not_found"], details={"bail_id": data.bail_id})
        if bail.property is None:
            raise BusinessRuleError("Le bail doit être associé à une propriété")

        existing = db.query(DossierNotaireAssignment).filter(
            DossierNotaireAssignment.bail_id == bail.id,
            DossierNotaireAssignment.notaire_id == notaire.id,
        ).first()
        if existing is not None:
            raise ConflictError(ERROR_MESSAGES["assignment_exists"], details={"assignment_id": existing.id})

        assignment = DossierNotaireAssignment(
            bail_id=bail.id,
            notaire_id=notaire.id,
            client_id=bail.property.owner_id,
            property_id=bail.property_id,
            assigned_by_id=user_id,
            notes=data.notes,
        )
        db.add(assignment)
        db.commit()
        db.refresh(assignment)

        AuditLogger.log_crud_action(
            db, ActionType.CREATE, EntityType.NOTAIRE_ASSIGNMENT, assignment.id, user_id,
            f"Bail #{bail.id} assigné au notaire {notaire.email}"
        )

        # L'échec de l'envoi ne remet pas en cause l'assignation
        email_service.dispatch(email_service.send_notaire_assignment_email(
            to=notaire.email,
            name=notaire.name,
            property_address=bail.property.full_address,
            dossier_url=f"{APP_URL}/notaire/dossiers/{assignment.id}",
        ))
        return assignment

    @staticmethod
    def revoke_assignment(db: Session, assignment_id: int, user_id: Optional[int] = None):
        assignment = db.query(DossierNotaireAssignment).filter(DossierNotaireAssignment.id == assignment_id).first()
        if assignment is None:
            raise NotFoundError(ERROR_MESSAGES["assignment_not_found"], details={"assignment_id": assignment_id})

        bail_id = assignment.bail_id
        db.delete(assignment)
        db.commit()

        AuditLogger.log_crud_action(
            db, ActionType.DELETE, EntityType.NOTAIRE_ASSIGNMENT, assignment_id, user_id,
            f"Retrait de l'assignation du bail #{bail_id}"
        )

    @staticmethod
    def list_assignments(db: Session, notaire_id: Optional[int] = None) -> List[DossierNotaireAssignment]:
        query = db.query(DossierNotaireAssignment)
        if notaire_id is not None:
            query = query.filter(DossierNotaireAssignment.notaire_id == notaire_id)
        return query.order_by(DossierNotaireAssignment.assigned_at.desc(), DossierNotaireAssignment.id.desc()).all()

    @staticmethod
    def get_dossier(db: Session, assignment_id: int, user: User) -> DossierNotaireAssignment:
        """Un notaire ne voit que ses propres dossiers"""
        assignment = db.query(DossierNotaireAssignment).filter(DossierNotaireAssignment.id == assignment_id).first()
        if assignment is None:
            raise NotFoundError(ERROR_MESSAGES["assignment_not_found"], details={"assignment_id": assignment_id})
        NotaireService._check_dossier_access(assignment, user)
        return assignment

    @staticmethod
    def _check_dossier_access(assignment: DossierNotaireAssignment, user: User):
        if user.role == Role.NOTAIRE and assignment.notaire_id != user.id:
            raise ForbiddenError("Non autorisé")
        if user.role not in STAFF_ROLES and user.role != Role.NOTAIRE:
            raise ForbiddenError("Non autorisé")

    # ==================== DEMANDES ====================

    @staticmethod
    def create_request(db: Session, assignment_id: int, data: schemas.NotaireRequestCreate, user: User) -> NotaireRequest:
        if user.role not in (Role.NOTAIRE, Role.ADMINISTRATEUR):
            raise ForbiddenError("Non autorisé")
        assignment = NotaireService.get_dossier(db, assignment_id, user)

        request = NotaireRequest(
            dossier_id=assignment.id,
            type=data.type,
            title=data.title.strip(),
            content=data.content.strip(),
            status=NotaireRequestStatus.PENDING,
            target_proprietaire=data.target_proprietaire,
            target_locataire=data.target_locataire,
            created_by_id=user.id,
        )
        db.add(request)
        db.commit()
        db.refresh(request)

        AuditLogger.log_crud_action(
            db, ActionType.CREATE, EntityType.NOTAIRE_REQUEST, request.id, user.id,
            f"Demande « {request.title} » sur le bail #{assignment.bail_id}"
        )
        NotificationService.create_for_all_users(
            db, NotificationType.NOTAIRE_REQUEST_CREATED, "BAIL", assignment.bail_id, created_by_id=user.id
        )
        return request

    @staticmethod
    def list_requests(db: Session, assignment_id: int, user: User) -> List[NotaireRequest]:
        assignment = NotaireService.get_dossier(db, assignment_id, user)
        return db.query(NotaireRequest).filter(
            NotaireRequest.dossier_id == assignment.id
        ).order_by(NotaireRequest.created_at, NotaireRequest.id).all()

    @staticmethod
    def update_request_status(db: Session, request_id: int, status: NotaireRequestStatus, user: User) -> NotaireRequest:
        if user.role not in (Role.NOTAIRE, Role.ADMINISTRATEUR):
            raise ForbiddenError("Non autorisé")

        request = db.query(NotaireRequest).filter(NotaireRequest.id == request_id).first()
        if request is None:
            raise NotFoundError(ERROR_MESSAGES["request_not_found"], details={"request_id": request_id})
        if user.role == Role.NOTAIRE and request.dossier.notaire_id != user.id:
            raise ForbiddenError("Non autorisé")

        old_status = request.status
        request.status = status
        db.commit()
        db.refresh(request)

        AuditLogger.log_status_change(
            db, EntityType.NOTAIRE_REQUEST, request.id, old_status, status, user_id=user.id, field="status"
        )
        return request

    # ==================== MESSAGERIE ====================

    @staticmethod
    def _check_bail_access(db: Session, bail: Bail, user: User):
        if user.role in STAFF_ROLES:
            return
        if user.role == Role.NOTAIRE:
            assigned = db.query(DossierNotaireAssignment).filter(
                DossierNotaireAssignment.bail_id == bail.id,
                DossierNotaireAssignment.notaire_id == user.id,
            ).first()
            if assigned is not None:
                return
        raise ForbiddenError("Non autorisé")

    @staticmethod
    def list_messages(db: Session, bail_id: int, user: User, party_id: Optional[int] = None) -> List[BailMessage]:
        bail = db.query(Bail).filter(Bail.id == bail_id).first()
        if bail is None:
            raise NotFoundError(ERROR_MESSAGES["bail_not_found"], details={"bail_id": bail_id})
        NotaireService._check_bail_access(db, bail, user)

        query = db.query(BailMessage).filter(BailMessage.bail_id == bail_id)
        if party_id is not None:
            query = query.filter(BailMessage.recipient_party_id == party_id)
        return query.order_by(BailMessage.created_at, BailMessage.id).all()

    @staticmethod
    def send_message(db: Session, bail_id: int, data: schemas.BailMessageCreate, user: User) -> BailMessage:
        bail = db.query(Bail).options(selectinload(Bail.parties)).filter(Bail.id == bail_id).first()
        if bail is None:
            raise NotFoundError(ERROR_MESSAGES["bail_not_found"], details={"bail_id": bail_id})
        NotaireService._check_bail_access(db, bail, user)

        if user.role == Role.NOTAIRE and data.recipient_party_id is None:
            raise BusinessRuleError("Le destinataire est requis pour les messages du notaire")
        if data.recipient_party_id is not None and data.recipient_party_id not in {c.id for c in bail.parties}:
            raise BusinessRuleError("Le destinataire doit être une partie du bail")
        if data.document_id is not None:
            document = db.query(Document).filter(Document.id == data.document_id).first()
            if document is None or document.bail_id != bail.id:
                raise BusinessRuleError("Document introuvable ou non associé à ce bail")

        message = BailMessage(
            bail_id=bail.id,
            sender_id=user.id,
            recipient_party_id=data.recipient_party_id,
            content=data.content.strip() if data.content else None,
            document_id=data.document_id,
        )
        db.add(message)
        db.commit()
        db.refresh(message)

        NotificationService.create_for_all_users(
            db, NotificationType.MESSAGE_RECEIVED, "BAIL", bail.id, created_by_id=user.id,
            send_email=False
        )
        return message

    @staticmethod
    def delete_message(db: Session, message_id: int, user: User):
        message = db.query(BailMessage).filter(BailMessage.id == message_id).first()
        if message is None:
            raise NotFoundError(ERROR_MESSAGES["message_not_found"], details={"message_id": message_id})
        if message.sender_id != user.id and user.role != Role.ADMINISTRATEUR:
            raise ForbiddenError("Seul l'auteur peut supprimer ce message")

        bail_id = message.bail_id
        db.delete(message)
        db.commit()
        AuditLogger.log_crud_action(
            db, ActionType.DELETE, EntityType.BAIL_MESSAGE, message_id, user.id,
            f"Suppression d'un message du bail #{bail_id}"
        )
