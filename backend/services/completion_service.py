"""
Service de complétude des dossiers
Vérifie les champs et pièces exigés, calcule le statut de complétion des clients
et des biens, le persiste et fait avancer les baux qui en dépendent
"""
from dataclasses import dataclass, field
from typing import List, Optional, Set
import logging

from sqlalchemy.orm import Session, selectinload

from models import Client, Person, Entreprise, Property, Bail
from enums import (
    ClientType, CompletionStatus, BailStatus, DocumentKind, NotificationType,
    EntityType
)
from required_fields import (
    BASE_IDENTITY_FIELDS, SPECIAL_DOCUMENT_KINDS, PROPERTY_DATA_FIELDS,
    RequiredSet, get_required_client_fields, get_required_property_fields,
    is_field_missing
)
from constants import APP_URL, CLIENT_DASHBOARD_PATH
from email_service import email_service
from audit_logger import AuditLogger
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

# Baux encore en phase de constitution du dossier
OPEN_BAIL_STATUSES = (BailStatus.DRAFT, BailStatus.PENDING_VALIDATION)


@dataclass
class CompletionCheck:
    """Résultat de la vérification d'un client ou d'un bien"""
    has_all_fields: bool = False
    has_all_documents: bool = False
    missing_fields: List[str] = field(default_factory=list)
    missing_documents: List[DocumentKind] = field(default_factory=list)


@dataclass
class PersonCompletion:
    person_id: int
    name: str
    is_primary: bool
    missing_fields: List[str] = field(default_factory=list)
    missing_documents: List[DocumentKind] = field(default_factory=list)


@dataclass
class EntrepriseCompletion:
    entreprise_id: Optional[int]
    name: str
    missing_fields: List[str] = field(default_factory=list)
    missing_documents: List[DocumentKind] = field(default_factory=list)


@dataclass
class DetailedCompletionCheck(CompletionCheck):
    """Vérification détaillée : manques par personne, par entreprise et au niveau du client"""
    persons: List[PersonCompletion] = field(default_factory=list)
    entreprise: Optional[EntrepriseCompletion] = None
    client_missing_documents: List[DocumentKind] = field(default_factory=list)
    required_documents_count: int = 0


@dataclass
class UpdateResult:
    """Résultat d'une mise à jour de statut de complétion"""
    old_status: Optional[CompletionStatus]
    new_status: Optional[CompletionStatus]
    changed: bool = False
    bails_transitioned: List[int] = field(default_factory=list)


def _ordered(kinds: Set[DocumentKind], required: RequiredSet) -> List[DocumentKind]:
    """Restitue les pièces manquantes dans l'ordre des exigences"""
    return [kind for kind in required.required_documents if kind in kinds]


def _missing_fields(obj, names) -> List[str]:
    if obj is None:
        return list(names)
    return [name for name in names if is_field_missing(getattr(obj, name, None))]


def _kinds(documents) -> Set[DocumentKind]:
    return {doc.kind for doc in documents}


def _person_name(person: Person) -> str:
    name = " ".join(p for p in [person.first_name, person.last_name] if p)
    return name or f"Personne #{person.id}"


class CompletionService:
    """
    Calcul et propagation des statuts de complétion
    """

    # ==================== LECTURE ====================

    @staticmethod
    def _load_client(db: Session, client_id: int) -> Optional[Client]:
        return db.query(Client).options(
            selectinload(Client.persons).selectinload(Person.documents),
            selectinload(Client.entreprise).selectinload(Entreprise.documents),
            selectinload(Client.documents),
        ).filter(Client.id == client_id).first()

    @staticmethod
    def _load_property(db: Session, property_id: int) -> Optional[Property]:
        return db.query(Property).options(
            selectinload(Property.documents),
            selectinload(Property.owner).selectinload(Client.persons),
            selectinload(Property.owner).selectinload(Client.entreprise),
        ).filter(Property.id == property_id).first()

    # ==================== VÉRIFICATION ====================

    @staticmethod
    def _evaluate_client(client: Client) -> DetailedCompletionCheck:
        primary = client.primary_person
        required = get_required_client_fields(
            client.type,
            client.profil_type,
            primary.family_status if primary else None,
            primary.matrimonial_regime if primary else None,
        )

        client_kinds = _kinds(client.documents)
        all_kinds = set(client_kinds)
        for person in client.persons:
            all_kinds |= _kinds(person.documents)
        if client.entreprise:
            all_kinds |= _kinds(client.entreprise.documents)

        result = DetailedCompletionCheck(required_documents_count=len(required.required_documents))
        missing_fields: List[str] = []
        missing_kinds: Set[DocumentKind] = set()

        if client.type == ClientType.PERSONNE_MORALE:
            entreprise = client.entreprise
            ent_missing_fields = _missing_fields(entreprise, required.required_fields)
            ent_kinds = _kinds(entreprise.documents) if entreprise else set()
            ent_missing_docs = [
                kind for kind in (DocumentKind.KBIS, DocumentKind.STATUTES)
                if kind in required.required_documents
                and kind not in ent_kinds and kind not in client_kinds
            ]
            result.entreprise = EntrepriseCompletion(
                entreprise_id=entreprise.id if entreprise else None,
                name=(entreprise.legal_name or entreprise.name or "") if entreprise else "",
                missing_fields=ent_missing_fields,
                missing_documents=ent_missing_docs,
            )
            missing_fields.extend(ent_missing_fields)
            missing_kinds.update(ent_missing_docs)
        else:
            if primary is None:
                missing_fields.extend(required.required_fields)
                if (DocumentKind.ID_IDENTITY in required.required_documents
                        and DocumentKind.ID_IDENTITY not in client_kinds):
                    missing_kinds.add(DocumentKind.ID_IDENTITY)

            for person in client.persons:
                is_primary = person is primary
                names = required.required_fields if is_primary else [
                    name for name in BASE_IDENTITY_FIELDS if name in required.required_fields
                ]
                person_missing_fields = _missing_fields(person, names)
                person_missing_docs = []
                if DocumentKind.ID_IDENTITY in required.required_documents:
                    person_kinds = _kinds(person.documents)
                    has_id = DocumentKind.ID_IDENTITY in person_kinds or (
                        is_primary and DocumentKind.ID_IDENTITY in client_kinds
                    )
                    if not has_id:
                        person_missing_docs.append(DocumentKind.ID_IDENTITY)
                        missing_kinds.add(DocumentKind.ID_IDENTITY)

                result.persons.append(PersonCompletion(
                    person_id=person.id,
                    name=_person_name(person),
                    is_primary=is_primary,
                    missing_fields=person_missing_fields,
                    missing_documents=person_missing_docs,
                ))
                for name in person_missing_fields:
                    if name not in missing_fields:
                        missing_fields.append(name)

            for kind in (DocumentKind.LIVRET_DE_FAMILLE, DocumentKind.CONTRAT_DE_PACS):
                if kind in required.required_documents and kind not in all_kinds:
                    missing_kinds.add(kind)
                    result.client_missing_documents.append(kind)

        # Pièces générales : une seule occurrence suffit, où qu'elle soit rattachée
        for kind in required.required_documents:
            if kind in SPECIAL_DOCUMENT_KINDS:
                continue
            if kind not in all_kinds:
                missing_kinds.add(kind)
                result.client_missing_documents.append(kind)

        result.missing_fields = missing_fields
        result.missing_documents = _ordered(missing_kinds, required)
        result.has_all_fields = not result.missing_fields
        result.has_all_documents = not result.missing_documents
        return result

    @staticmethod
    def check_client_completion_detailed(db: Session, client_id: int) -> DetailedCompletionCheck:
        """
        Vérification détaillée d'un client. Un client inconnu donne un résultat
        négatif vide, sans lever d'erreur.
        """
        client = CompletionService._load_client(db, client_id)
        if client is None:
            return DetailedCompletionCheck()
        return CompletionService._evaluate_client(client)

    @staticmethod
    def check_client_completion(db: Session, client_id: int) -> CompletionCheck:
        detailed = CompletionService.check_client_completion_detailed(db, client_id)
        return CompletionCheck(
            has_all_fields=detailed.has_all_fields,
            has_all_documents=detailed.has_all_documents,
            missing_fields=detailed.missing_fields,
            missing_documents=detailed.missing_documents,
        )

    @staticmethod
    def _evaluate_property(prop: Property) -> CompletionCheck:
        required = get_required_property_fields(prop.legal_status)
        kinds = _kinds(prop.documents)
        missing_fields = _missing_fields(prop, required.required_fields)
        missing_documents = [kind for kind in required.required_documents if kind not in kinds]
        return CompletionCheck(
            has_all_fields=not missing_fields,
            has_all_documents=not missing_documents,
            missing_fields=missing_fields,
            missing_documents=missing_documents,
        )

    @staticmethod
    def check_property_completion(db: Session, property_id: int) -> CompletionCheck:
        prop = CompletionService._load_property(db, property_id)
        if prop is None:
            return CompletionCheck()
        return CompletionService._evaluate_property(prop)

    # ==================== CALCUL DU STATUT ====================

    @staticmethod
    def _status_from_check(check: CompletionCheck, has_any_data: bool, required_documents_count: int) -> CompletionStatus:
        has_any_document = len(check.missing_documents) < required_documents_count
        if not has_any_data and not has_any_document:
            return CompletionStatus.NOT_STARTED
        if check.has_all_fields and check.has_all_documents:
            return CompletionStatus.PENDING_CHECK
        return CompletionStatus.PARTIAL

    @staticmethod
    def _client_has_any_data(client: Client) -> bool:
        if client.type == ClientType.PERSONNE_MORALE:
            return client.entreprise is not None and client.entreprise.has_any_data()
        primary = client.primary_person
        return primary is not None and primary.has_any_data()

    @staticmethod
    def calculate_client_completion_status(db: Session, client_id: int) -> CompletionStatus:
        """
        Statut de complétion d'un client. COMPLETED et PENDING_CHECK ne sont
        jamais rétrogradés par le calcul automatique.
        """
        client = CompletionService._load_client(db, client_id)
        if client is None:
            return CompletionStatus.NOT_STARTED

        if client.completion_status in (CompletionStatus.COMPLETED, CompletionStatus.PENDING_CHECK):
            return client.completion_status

        check = CompletionService._evaluate_client(client)
        return CompletionService._status_from_check(
            check,
            CompletionService._client_has_any_data(client),
            check.required_documents_count,
        )

    @staticmethod
    def calculate_property_completion_status(db: Session, property_id: int) -> CompletionStatus:
        prop = CompletionService._load_property(db, property_id)
        if prop is None:
            return CompletionStatus.NOT_STARTED

        if prop.completion_status in (CompletionStatus.COMPLETED, CompletionStatus.PENDING_CHECK):
            return prop.completion_status

        check = CompletionService._evaluate_property(prop)
        has_any_data = any(
            not is_field_missing(getattr(prop, name, None)) for name in PROPERTY_DATA_FIELDS
        )
        required = get_required_property_fields(prop.legal_status)
        return CompletionService._status_from_check(check, has_any_data, len(required.required_documents))

    # ==================== MISE À JOUR ====================

    @staticmethod
    def update_client_completion_status(db: Session, client_id: int, actor_id: Optional[int] = None) -> UpdateResult:
        """
        Recalcule et persiste le statut d'un client, prévient le client en cas de
        changement puis réévalue les baux où il est partie.
        """
        client = db.query(Client).filter(Client.id == client_id).first()
        if client is None:
            logger.warning(f"Mise à jour de complétion ignorée: client {client_id} introuvable")
            return UpdateResult(old_status=None, new_status=None)

        old_status = client.completion_status
        new_status = CompletionService.calculate_client_completion_status(db, client_id)
        result = UpdateResult(old_status=old_status, new_status=new_status, changed=old_status != new_status)

        if result.changed:
            CompletionService._apply_client_status(db, client, old_status, new_status, actor_id)

        result.bails_transitioned = CompletionService.propagate_bail_status(db, client_id=client_id, actor_id=actor_id)
        return result

    @staticmethod
    def update_property_completion_status(db: Session, property_id: int, actor_id: Optional[int] = None) -> UpdateResult:
        prop = db.query(Property).filter(Property.id == property_id).first()
        if prop is None:
            logger.warning(f"Mise à jour de complétion ignorée: bien {property_id} introuvable")
            return UpdateResult(old_status=None, new_status=None)

        old_status = prop.completion_status
        new_status = CompletionService.calculate_property_completion_status(db, property_id)
        result = UpdateResult(old_status=old_status, new_status=new_status, changed=old_status != new_status)

        if result.changed:
            CompletionService._apply_property_status(db, prop, old_status, new_status, actor_id)

        result.bails_transitioned = CompletionService.propagate_bail_status(db, property_id=property_id, actor_id=actor_id)
        return result

    @staticmethod
    def set_client_completion_status(db: Session, client_id: int, status: CompletionStatus,
                                     actor_id: Optional[int] = None) -> UpdateResult:
        """
        Forçage manuel du statut d'un client (validation par l'équipe).
        Seule voie permettant d'atteindre COMPLETED ou de revenir en arrière.
        """
        client = db.query(Client).filter(Client.id == client_id).first()
        if client is None:
            return UpdateResult(old_status=None, new_status=None)

        old_status = client.completion_status
        result = UpdateResult(old_status=old_status, new_status=status, changed=old_status != status)
        if result.changed:
            CompletionService._apply_client_status(db, client, old_status, status, actor_id)

        result.bails_transitioned = CompletionService.propagate_bail_status(db, client_id=client_id, actor_id=actor_id)
        return result

    @staticmethod
    def set_property_completion_status(db: Session, property_id: int, status: CompletionStatus,
                                       actor_id: Optional[int] = None) -> UpdateResult:
        prop = db.query(Property).filter(Property.id == property_id).first()
        if prop is None:
            return UpdateResult(old_status=None, new_status=None)

        old_status = prop.completion_status
        result = UpdateResult(old_status=old_status, new_status=status, changed=old_status != status)
        if result.changed:
            CompletionService._apply_property_status(db, prop, old_status, status, actor_id)

        result.bails_transitioned = CompletionService.propagate_bail_status(db, property_id=property_id, actor_id=actor_id)
        return result

    @staticmethod
    def _apply_client_status(db: Session, client: Client, old_status, new_status, actor_id):
        client.completion_status = new_status
        db.commit()
        logger.info(f"Client {client.id}: complétion {old_status.value} → {new_status.value}")

        AuditLogger.log_status_change(db, EntityType.CLIENT, client.id, old_status, new_status, user_id=actor_id)
        NotificationService.create_for_all_users(
            db,
            NotificationType.COMPLETION_STATUS_CHANGED,
            "CLIENT",
            client.id,
            created_by_id=actor_id,
            metadata={
                "entity_type": "CLIENT",
                "old_status": old_status.value,
                "new_status": new_status.value,
            },
        )
        CompletionService._send_status_email(
            client=client,
            entity_type="client",
            entity_name=client.display_name,
            old_status=old_status,
            new_status=new_status,
        )

    @staticmethod
    def _apply_property_status(db: Session, prop: Property, old_status, new_status, actor_id):
        prop.completion_status = new_status
        db.commit()
        logger.info(f"Bien {prop.id}: complétion {old_status.value} → {new_status.value}")

        AuditLogger.log_status_change(db, EntityType.PROPERTY, prop.id, old_status, new_status, user_id=actor_id)
        NotificationService.create_for_all_users(
            db,
            NotificationType.COMPLETION_STATUS_CHANGED,
            "PROPERTY",
            prop.id,
            created_by_id=actor_id,
            metadata={
                "entity_type": "PROPERTY",
                "old_status": old_status.value,
                "new_status": new_status.value,
            },
        )
        if prop.owner is not None:
            CompletionService._send_status_email(
                client=prop.owner,
                entity_type="property",
                entity_name=prop.label or prop.full_address,
                old_status=old_status,
                new_status=new_status,
            )

    @staticmethod
    def _send_status_email(client: Client, entity_type: str, entity_name: str, old_status, new_status):
        to = client.contact_email
        if not to:
            logger.info(f"Pas d'email pour le client {client.id}, notification de statut non envoyée")
            return

        email_service.dispatch(email_service.send_completion_status_email(
            to=to,
            client_name=client.display_name,
            entity_type=entity_type,
            entity_name=entity_name,
            old_status=old_status.value if old_status else None,
            new_status=new_status.value,
            dashboard_url=f"{APP_URL}{CLIENT_DASHBOARD_PATH}",
            profil_type=client.profil_type.value if client.profil_type else None,
        ))

    # ==================== PROPAGATION AUX BAUX ====================

    @staticmethod
    def propagate_bail_status(db: Session, client_id: Optional[int] = None,
                              property_id: Optional[int] = None,
                              actor_id: Optional[int] = None) -> List[int]:
        """
        Fait avancer les baux ouverts liés à un client ou à un bien :
        - propriétaire, locataire et bien COMPLETED → READY_FOR_NOTARY
        - tous trois PENDING_CHECK et bail DRAFT → PENDING_VALIDATION
        Retourne les identifiants des baux modifiés.
        """
        query = db.query(Bail).options(
            selectinload(Bail.parties),
            selectinload(Bail.property),
        ).filter(Bail.status.in_(OPEN_BAIL_STATUSES))

        if client_id is not None:
            query = query.filter(Bail.parties.any(Client.id == client_id))
        elif property_id is not None:
            query = query.filter(Bail.property_id == property_id)
        else:
            return []

        transitioned = []
        for bail in query.order_by(Bail.id).all():
            owner, tenant, prop = bail.owner_party, bail.tenant_party, bail.property
            if owner is None or tenant is None or prop is None:
                logger.debug(f"Bail {bail.id} incomplet (parties ou bien manquants), ignoré")
                continue

            statuses = {owner.completion_status, tenant.completion_status, prop.completion_status}
            new_status = None
            if statuses == {CompletionStatus.COMPLETED}:
                new_status = BailStatus.READY_FOR_NOTARY
            elif statuses == {CompletionStatus.PENDING_CHECK} and bail.status == BailStatus.DRAFT:
                new_status = BailStatus.PENDING_VALIDATION

            if new_status is None or new_status == bail.status:
                continue

            old_status = bail.status
            bail.status = new_status
            db.commit()
            logger.info(f"Bail {bail.id}: {old_status.value} → {new_status.value}")

            AuditLogger.log_status_change(db, EntityType.BAIL, bail.id, old_status, new_status,
                                          user_id=actor_id, field="status")
            NotificationService.create_for_all_users(
                db,
                NotificationType.BAIL_STATUS_CHANGED,
                "BAIL",
                bail.id,
                created_by_id=actor_id,
                metadata={"old_status": old_status.value, "new_status": new_status.value},
            )
            transitioned.append(bail.id)

        return transitioned

