"""
Service de gestion des clients (bailleurs, locataires, prospects)
Chaque modification relance le calcul de complétion du client
"""
from sqlalchemy.orm import Session, selectinload
from typing import Any, Dict, List, Optional
import logging

from models import Client, Person, Entreprise, Document, IntakeLink
from enums import (
    ClientType, ProfilType, CompletionStatus, NotificationType, ActionType,
    EntityType
)
from error_handlers import NotFoundError, BusinessRuleError, DeletionBlockedError
from audit_logger import AuditLogger, get_model_data
from constants import ERROR_MESSAGES, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from services.completion_service import CompletionService
from services.notification_service import NotificationService
import schemas

logger = logging.getLogger(__name__)


class ClientService:
    """
    Opérations sur les clients et leurs personnes / entreprise
    """

    @staticmethod
    def get_client(db: Session, client_id: int) -> Client:
        client = db.query(Client).options(
            selectinload(Client.persons),
            selectinload(Client.entreprise),
        ).filter(Client.id == client_id).first()
        if client is None:
            raise NotFoundError(ERROR_MESSAGES["client_not_found"], details={"client_id": client_id})
        return client

    @staticmethod
    def list_clients(
        db: Session,
        profil_type: Optional[ProfilType] = None,
        completion_status: Optional[CompletionStatus] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> Dict[str, Any]:
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

        query = db.query(Client).options(
            selectinload(Client.persons),
            selectinload(Client.entreprise),
        )
        if profil_type:
            query = query.filter(Client.profil_type == profil_type)
        if completion_status:
            query = query.filter(Client.completion_status == completion_status)

        total = query.count()
        items = query.order_by(Client.created_at.desc(), Client.id.desc()).offset(
            (page - 1) * page_size
        ).limit(page_size).all()

        return {"items": items, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def find_client_by_email(db: Session, email: str) -> Optional[Client]:
        """Client dont la personne principale ou l'entreprise porte cet email"""
        if not email:
            return None
        normalized = email.strip().lower()
        person = db.query(Person).filter(Person.email == normalized).order_by(Person.id).first()
        if person:
            return person.client
        entreprise = db.query(Entreprise).filter(Entreprise.email == normalized).first()
        return entreprise.client if entreprise else None

    @staticmethod
    def create_client(db: Session, data: schemas.ClientCreate, user_id: Optional[int] = None,
                      created_by_form: bool = False) -> Client:
        client = Client(
            type=data.type,
            profil_type=data.profil_type,
            completion_status=CompletionStatus.NOT_STARTED,
            created_by_id=user_id
        )

        persons = list(data.persons)
        if persons and not any(p.is_primary for p in persons):
            persons[0] = persons[0].model_copy(update={"is_primary": True})
        for person_data in persons:
            client.persons.append(Person(**ClientService._person_values(person_data)))

        if data.entreprise is not None:
            client.entreprise = Entreprise(**ClientService._entreprise_values(data.entreprise))

        db.add(client)
        db.commit()
        db.refresh(client)

        AuditLogger.log_crud_action(
            db, ActionType.CREATE, EntityType.CLIENT, client.id, user_id,
            f"Création du client {client.display_name}", after_data=get_model_data(client)
        )
        notification_type = (
            NotificationType.LEAD_CREATED if client.profil_type == ProfilType.LEAD
            else NotificationType.CLIENT_CREATED
        )
        NotificationService.create_for_all_users(
            db, notification_type, "CLIENT", client.id, created_by_id=user_id,
            metadata={"created_by_form": created_by_form}
        )

        CompletionService.update_client_completion_status(db, client.id, actor_id=user_id)
        return client

    @staticmethod
    def update_client(db: Session, client_id: int, data: schemas.ClientUpdate, user_id: Optional[int] = None) -> Client:
        client = ClientService.get_client(db, client_id)
        before = get_model_data(client)
        old_profil = client.profil_type

        if data.profil_type is not None:
            client.profil_type = data.profil_type

        if data.entreprise is not None:
            if client.type != ClientType.PERSONNE_MORALE:
                raise BusinessRuleError("Seule une personne morale peut avoir une entreprise")
            ClientService._apply_entreprise(client, data.entreprise)

        db.commit()
        db.refresh(client)

        AuditLogger.log_crud_action(
            db, ActionType.UPDATE, EntityType.CLIENT, client.id, user_id,
            f"Modification du client {client.display_name}",
            before_data=before, after_data=get_model_data(client)
        )

        if old_profil == ProfilType.LEAD and client.profil_type != ProfilType.LEAD:
            NotificationService.create_for_all_users(
                db, NotificationType.LEAD_CONVERTED, "CLIENT", client.id, created_by_id=user_id,
                metadata={"new_profil_type": client.profil_type.value}
            )
        else:
            NotificationService.create_for_all_users(
                db, NotificationType.CLIENT_UPDATED, "CLIENT", client.id, created_by_id=user_id
            )

        CompletionService.update_client_completion_status(db, client.id, actor_id=user_id)
        return client

    # ==================== PERSONNES ====================

    @staticmethod
    def add_person(db: Session, client_id: int, data: schemas.PersonCreate, user_id: Optional[int] = None) -> Person:
        client = ClientService.get_client(db, client_id)
        if client.type != ClientType.PERSONNE_PHYSIQUE:
            raise BusinessRuleError("Une personne morale ne peut pas avoir de personnes rattachées")

        person = Person(**ClientService._person_values(data))
        if not client.persons:
            person.is_primary = True
        elif person.is_primary:
            for other in client.persons:
                other.is_primary = False
        client.persons.append(person)
        db.commit()
        db.refresh(person)

        CompletionService.update_client_completion_status(db, client_id, actor_id=user_id)
        return person

    @staticmethod
    def update_person(db: Session, client_id: int, person_id: int, data: schemas.PersonUpdate,
                      user_id: Optional[int] = None) -> Person:
        person = db.query(Person).filter(Person.id == person_id, Person.client_id == client_id).first()
        if person is None:
            raise NotFoundError("Personne introuvable", details={"person_id": person_id})

        if data.is_primary:
            for other in person.client.persons:
                other.is_primary = other.id == person.id
        ClientService._apply_person(person, data)

        db.commit()
        db.refresh(person)

        CompletionService.update_client_completion_status(db, client_id, actor_id=user_id)
        return person

    @staticmethod
    def remove_person(db: Session, client_id: int, person_id: int, user_id: Optional[int] = None):
        client = ClientService.get_client(db, client_id)
        person = next((p for p in client.persons if p.id == person_id), None)
        if person is None:
            raise NotFoundError("Personne introuvable", details={"person_id": person_id})
        if person.is_primary and len(client.persons) > 1:
            raise BusinessRuleError("Désignez une autre personne principale avant de supprimer celle-ci")

        client.persons.remove(person)
        db.commit()

        CompletionService.update_client_completion_status(db, client_id, actor_id=user_id)

    # ==================== SUPPRESSION ====================

    @staticmethod
    def get_blocking_entities(db: Session, client: Client) -> List[Dict[str, Any]]:
        blocking = []
        for bail in client.bails:
            blocking.append({"type": "BAIL", "id": bail.id, "status": bail.status.value})
        for prop in client.owned_properties:
            blocking.append({"type": "PROPERTY", "id": prop.id, "label": prop.label or prop.full_address})
        return blocking

    @staticmethod
    def delete_client(db: Session, client_id: int, user_id: Optional[int] = None):
        """
        Supprime un client. Un prospect est supprimé avec ses liens de formulaire
        et ses documents ; sinon la suppression est refusée tant que des baux ou
        des biens le référencent.
        """
        client = ClientService.get_client(db, client_id)
        blocking = ClientService.get_blocking_entities(db, client)
        if blocking:
            raise DeletionBlockedError(
                "Impossible de supprimer ce client: des baux ou des biens y sont rattachés",
                blocking_entities=blocking
            )

        name = client.display_name
        before = get_model_data(client)

        db.query(IntakeLink).filter(IntakeLink.client_id == client.id).delete(synchronize_session=False)
        db.query(Document).filter(Document.client_id == client.id).delete(synchronize_session=False)
        db.delete(client)
        db.commit()

        AuditLogger.log_crud_action(
            db, ActionType.DELETE, EntityType.CLIENT, client_id, user_id,
            f"Suppression du client {name}", before_data=before
        )
        NotificationService.create_for_all_users(
            db, NotificationType.CLIENT_DELETED, "CLIENT", client_id, created_by_id=user_id,
            metadata={"name": name}
        )

    # ==================== OUTILS ====================

    @staticmethod
    def _person_values(data) -> Dict[str, Any]:
        values = data.model_dump(exclude_unset=False)
        if values.get("email"):
            values["email"] = values["email"].lower()
        return {k: v for k, v in values.items() if k in Person.SCALAR_FIELDS or k == "is_primary"}

    @staticmethod
    def _entreprise_values(data) -> Dict[str, Any]:
        values = data.model_dump(exclude_unset=False)
        if values.get("email"):
            values["email"] = values["email"].lower()
        return {k: v for k, v in values.items() if k in Entreprise.SCALAR_FIELDS}

    @staticmethod
    def _apply_entreprise(client: Client, data) -> Entreprise:
        values = data.model_dump(exclude_unset=True)
        if values.get("email"):
            values["email"] = values["email"].lower()
        if client.entreprise is None:
            client.entreprise = Entreprise(**values)
        else:
            for key, value in values.items():
                setattr(client.entreprise, key, value)
        return client.entreprise

    @staticmethod
    def _apply_person(person: Person, data) -> Person:
        values = data.model_dump(exclude_unset=True)
        if values.get("email"):
            values["email"] = values["email"].lower()
        for key, value in values.items():
            if key in Person.SCALAR_FIELDS:
                setattr(person, key, value)
        return person
