"""
Service des pièces justificatives
Le fichier vit dans le stockage externe ; seule sa référence est enregistrée.
"""
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from models import Document, Client, Person, Entreprise, Property, Bail
from enums import NotificationType, ActionType, EntityType
from error_handlers import NotFoundError
from audit_logger import AuditLogger, get_model_data
from constants import ERROR_MESSAGES, DOCUMENT_KIND_LABELS
from services.completion_service import CompletionService
from services.notification_service import NotificationService
import schemas

logger = logging.getLogger(__name__)

# Entité de rattachement -> (modèle, message d'erreur)
_OWNER_MODELS = {
    "client_id": (Client, "Client introuvable"),
    "person_id": (Person, "Personne introuvable"),
    "entreprise_id": (Entreprise, "Entreprise introuvable"),
    "property_id": (Property, "Bien introuvable"),
    "bail_id": (Bail, "Bail introuvable"),
}


class DocumentService:

    @staticmethod
    def get_document(db: Session, document_id: int) -> Document:
        document = db.query(Document).filter(Document.id == document_id).first()
        if document is None:
            raise NotFoundError(ERROR_MESSAGES["document_not_found"], details={"document_id": document_id})
        return document

    @staticmethod
    def list_documents(
        db: Session,
        client_id: Optional[int] = None,
        property_id: Optional[int] = None,
        bail_id: Optional[int] = None
    ) -> List[Document]:
        query = db.query(Document)
        if client_id:
            # Documents du client, de ses personnes et de son entreprise
            person_ids = db.query(Person.id).filter(Person.client_id == client_id)
            entreprise_ids = db.query(Entreprise.id).filter(Entreprise.client_id == client_id)
            query = query.filter(
                (Document.client_id == client_id)
                | Document.person_id.in_(person_ids)
                | Document.entreprise_id.in_(entreprise_ids)
            )
        if property_id:
            query = query.filter(Document.property_id == property_id)
        if bail_id:
            query = query.filter(Document.bail_id == bail_id)
        return query.order_by(Document.created_at, Document.id).all()

    @staticmethod
    def create_document(db: Session, data: schemas.DocumentCreate, user_id: Optional[int] = None) -> Document:
        values = data.model_dump()
        for field, (model, message) in _OWNER_MODELS.items():
            owner_id = values.get(field)
            if owner_id is not None and db.query(model.id).filter(model.id == owner_id).first() is None:
                raise NotFoundError(message, details={field: owner_id})

        document = Document(**values, uploaded_by_id=user_id)
        db.add(document)
        db.commit()
        db.refresh(document)

        label = document.label or DOCUMENT_KIND_LABELS.get(document.kind.value, document.kind.value)
        AuditLogger.log_crud_action(
            db, ActionType.CREATE, EntityType.DOCUMENT, document.id, user_id,
            f"Ajout du document {label}", after_data=get_model_data(document)
        )
        NotificationService.create_for_all_users(
            db, NotificationType.DOCUMENT_CREATED, "DOCUMENT", document.id, created_by_id=user_id,
            metadata={"kind": document.kind.value}, send_email=False
        )

        DocumentService._refresh_owner_status(db, document.owning_client_id(), document.property_id, user_id)
        return document

    @staticmethod
    def delete_document(db: Session, document_id: int, user_id: Optional[int] = None):
        document = DocumentService.get_document(db, document_id)
        client_id = document.owning_client_id()
        property_id = document.property_id
        before = get_model_data(document)

        db.delete(document)
        db.commit()

        AuditLogger.log_crud_action(
            db, ActionType.DELETE, EntityType.DOCUMENT, document_id, user_id,
            f"Suppression du document #{document_id}", before_data=before
        )
        DocumentService._refresh_owner_status(db, client_id, property_id, user_id)

    @staticmethod
    def _refresh_owner_status(db: Session, client_id: Optional[int], property_id: Optional[int],
                              user_id: Optional[int]):
        if client_id:
            CompletionService.update_client_completion_status(db, client_id, actor_id=user_id)
        if property_id:
            CompletionService.update_property_completion_status(db, property_id, actor_id=user_id)
