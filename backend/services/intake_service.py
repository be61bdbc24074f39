"""
Service des liens de formulaire (intake) envoyés aux bailleurs et locataires
"""
from typing import Any, Dict, Optional, Union
from datetime import datetime
import secrets
import logging

from pydantic import BaseModel
from sqlalchemy.orm import Session

from models import IntakeLink, Client, Person, Property, Bail
from enums import (
    IntakeTarget, IntakeStatus, ClientType, ProfilType, PropertyStatus, BailStatus,
    NotificationType, ActionType, EntityType
)
from error_handlers import NotFoundError, BusinessRuleError, ConflictError, IntakeError, BailNotarieError
from audit_logger import AuditLogger
from email_service import EmailService, email_service as default_email_service
from constants import (
    ERROR_MESSAGES, APP_URL, INTAKE_FORM_PATH, INTAKE_TOKEN_BYTES, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
)
from lease_rules import calculate_bail_end_date, missing_furniture_for
from services.client_service import ClientService
from services.completion_service import CompletionService
from services.notification_service import NotificationService
import schemas

logger = logging.getLogger(__name__)


class IntakeService:
    """Création des liens, soumission des formulaires publics et suivi"""

    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        self.db = db
        self.email_service = email_service or default_email_service

    def generate_token(self) -> str:
        """Jeton hexadécimal de 64 caractères"""
        return secrets.token_hex(INTAKE_TOKEN_BYTES)

    @staticmethod
    def form_url(token: str) -> str:
        return f"{APP_URL}{INTAKE_FORM_PATH}/{token}"

    # ==================== GESTION DES LIENS ====================

    def get_link(self, intake_id: int) -> IntakeLink:
        link = self.db.query(IntakeLink).filter(IntakeLink.id == intake_id).first()
        if link is None:
            raise NotFoundError(ERROR_MESSAGES["intake_not_found"], details={"intake_id": intake_id})
        return link

    def get_by_token(self, token: str) -> IntakeLink:
        link = self.db.query(IntakeLink).filter(IntakeLink.token == token).first()
        if link is None:
            raise NotFoundError(ERROR_MESSAGES["intake_not_found"])
        return link

    def list_links(
        self,
        status: Optional[IntakeStatus] = None,
        target: Optional[IntakeTarget] = None,
        client_id: Optional[int] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> Dict[str, Any]:
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

        query = self.db.query(IntakeLink)
        if status:
            query = query.filter(IntakeLink.status == status)
        if target:
            query = query.filter(IntakeLink.target == target)
        if client_id:
            query = query.filter(IntakeLink.client_id == client_id)

        total = query.count()
        items = query.order_by(IntakeLink.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
        return {"items": items, "total": total, "page": page, "page_size": page_size}

    def create_link(self, data: schemas.IntakeLinkCreate, user_id: Optional[int] = None) -> IntakeLink:
        client = self.db.query(Client).filter(Client.id == data.client_id).first()
        if client is None:
            raise NotFoundError(ERROR_MESSAGES["client_not_found"], details={"client_id": data.client_id})
        if data.target == IntakeTarget.OWNER and client.profil_type == ProfilType.LOCATAIRE:
            raise BusinessRuleError("Un locataire ne peut pas recevoir le formulaire bailleur")
        if data.target == IntakeTarget.TENANT and client.profil_type == ProfilType.PROPRIETAIRE:
            raise BusinessRuleError("Un propriétaire ne peut pas recevoir le formulaire locataire")

        link = IntakeLink(
            token=self.generate_token(),
            target=data.target,
            status=IntakeStatus.PENDING,
            client_id=client.id,
            property_id=data.property_id,
            bail_id=data.bail_id,
            created_by_id=user_id,
        )
        self.db.add(link)
        self.db.commit()
        self.db.refresh(link)

        AuditLogger.log_crud_action(
            self.db, ActionType.CREATE, EntityType.INTAKE_LINK, link.id, user_id,
            f"Création d'un lien de formulaire {link.target.value} pour {client.display_name}"
        )

        if data.send_email:
            self._send_link_email(client, link)
        return link

    def revoke(self, intake_id: int, user_id: Optional[int] = None) -> IntakeLink:
        link = self.get_link(intake_id)
        link.status = IntakeStatus.REVOKED
        self.db.commit()
        self.db.refresh(link)

        AuditLogger.log_status_change(
            self.db, EntityType.INTAKE_LINK, link.id, IntakeStatus.PENDING, IntakeStatus.REVOKED,
            user_id=user_id, field="status"
        )
        NotificationService.create_for_all_users(
            self.db, NotificationType.INTAKE_REVOKED, "INTAKE", link.id, created_by_id=user_id,
            metadata={"intake_target": link.target.value}
        )
        return link

    def regenerate_token(self, intake_id: int, user_id: Optional[int] = None) -> IntakeLink:
        """Nouveau jeton, le lien redevient utilisable"""
        link = self.get_link(intake_id)
        link.token = self.generate_token()
        link.status = IntakeStatus.PENDING
        self.db.commit()
        self.db.refresh(link)

        AuditLogger.log_crud_action(
            self.db, ActionType.UPDATE, EntityType.INTAKE_LINK, link.id, user_id,
            f"Régénération du jeton du lien #{link.id}"
        )
        return link

    def _send_link_email(self, client: Client, link: IntakeLink):
        to = client.contact_email
        if not to:
            logger.info(f"Lien {link.id}: pas d'email pour le client {client.id}")
            return
        self.email_service.dispatch(self.email_service.send_intake_link_email(
            to=to,
            name=client.display_name,
            form_url=self.form_url(link.token),
            target=link.target.value,
        ))

    # ==================== SOUMISSION ====================

    def _get_usable_link(self, token: str, target: IntakeTarget, final: bool) -> IntakeLink:
        link = self.get_by_token(token)
        if link.status == IntakeStatus.REVOKED:
            raise IntakeError(ERROR_MESSAGES["intake_revoked"])
        if final and link.status != IntakeStatus.PENDING:
            raise IntakeError(ERROR_MESSAGES["intake_already_used"])
        if link.target != target:
            raise IntakeError("Ce formulaire ne correspond pas au lien", details={"target": link.target.value})
        if link.client is None:
            raise IntakeError("Aucun client n'est rattaché à ce lien")
        return link

    def _check_email_available(self, email: Optional[str], client: Client):
        existing = ClientService.find_client_by_email(self.db, email)
        if existing is not None and existing.id != client.id:
            raise ConflictError(ERROR_MESSAGES["email_already_used"], details={"email": email})

    def submit(self, token: str, payload: Dict[str, Any], final: bool = True) -> Dict[str, Any]:
        """
        Point d'entrée public : le formulaire est interprété selon la cible du lien.
        final=False enregistre un brouillon sans clôturer le lien.
        """
        link = self.get_by_token(token)
        if link.target == IntakeTarget.OWNER:
            return self.submit_owner_form(token, schemas.OwnerIntakeForm.model_validate(payload), final=final)
        return self.submit_tenant_form(token, schemas.TenantIntakeForm.model_validate(payload), final=final)

    def submit_owner_form(self, token: str, form: schemas.OwnerIntakeForm, final: bool = True) -> Dict[str, Any]:
        link = self._get_usable_link(token, IntakeTarget.OWNER, final)
        try:
            return self._submit_owner(link, form, final)
        except BailNotarieError:
            self.db.rollback()
            raise

    def _submit_owner(self, link: IntakeLink, form: schemas.OwnerIntakeForm, final: bool) -> Dict[str, Any]:
        owner = link.client

        if owner.type == ClientType.PERSONNE_MORALE:
            if form.entreprise is None:
                raise BusinessRuleError("Les informations de l'entreprise sont obligatoires")
            self._check_email_available(form.entreprise.email, owner)
            ClientService._apply_entreprise(owner, form.entreprise)
        else:
            if form.person is None:
                raise BusinessRuleError("Les informations du bailleur sont obligatoires")
            self._check_email_available(form.person.email, owner)
            self._apply_primary_person(owner, form.person)

        if owner.profil_type == ProfilType.LEAD:
            owner.profil_type = ProfilType.PROPRIETAIRE

        prop = self._upsert_property(link, owner, form.property)
        bail = self._upsert_bail(link, owner, prop, form.bail)

        tenant = None
        tenant_link = None
        if form.tenant_email:
            tenant = self._find_or_create_tenant(form.tenant_email, owner)
            for previous in bail.parties:
                if previous.profil_type == ProfilType.LOCATAIRE and previous is not tenant:
                    self._revoke_tenant_links(previous, bail)
            bail.parties = [c for c in bail.parties if c.profil_type != ProfilType.LOCATAIRE] + [tenant]
            tenant_link = self._ensure_tenant_link(tenant, prop, bail, link.created_by_id)

        self._close_link(link, form, final)
        self.db.commit()

        if final and tenant_link is not None:
            self._send_link_email(tenant, tenant_link)

        CompletionService.update_client_completion_status(self.db, owner.id)
        CompletionService.update_property_completion_status(self.db, prop.id)
        if tenant is not None:
            CompletionService.update_client_completion_status(self.db, tenant.id)

        if final:
            self._notify_submitted(link)

        return {
            "intake_id": link.id,
            "client_id": owner.id,
            "property_id": prop.id,
            "bail_id": bail.id,
            "tenant_client_id": tenant.id if tenant else None,
            "tenant_intake_token": tenant_link.token if tenant_link else None,
        }

    def submit_tenant_form(self, token: str, form: schemas.TenantIntakeForm, final: bool = True) -> Dict[str, Any]:
        link = self._get_usable_link(token, IntakeTarget.TENANT, final)
        tenant = link.client

        if tenant.type == ClientType.PERSONNE_MORALE:
            if form.entreprise is None:
                raise BusinessRuleError("Les informations de l'entreprise sont obligatoires")
            self._check_email_available(form.entreprise.email, tenant)
            ClientService._apply_entreprise(tenant, form.entreprise)
        else:
            if not form.persons:
                raise BusinessRuleError("Au moins une personne doit être renseignée")
            for person_data in form.persons:
                self._check_email_available(person_data.email, tenant)
            existing = sorted(tenant.persons, key=lambda p: (not p.is_primary, p.id or 0))
            for index, person_data in enumerate(form.persons):
                if index < len(existing):
                    ClientService._apply_person(existing[index], person_data)
                else:
                    values = ClientService._person_values(person_data)
                    values["is_primary"] = not tenant.persons
                    tenant.persons.append(Person(**values))

        if tenant.profil_type == ProfilType.LEAD:
            tenant.profil_type = ProfilType.LOCATAIRE

        self._close_link(link, form, final)
        self.db.commit()

        CompletionService.update_client_completion_status(self.db, tenant.id)
        if final:
            self._notify_submitted(link)

        return {
            "intake_id": link.id,
            "client_id": tenant.id,
            "property_id": link.property_id,
            "bail_id": link.bail_id,
        }

    # ==================== OUTILS ====================

    @staticmethod
    def _apply_primary_person(client: Client, data) -> Person:
        person = client.primary_person
        if person is None:
            values = ClientService._person_values(data)
            values["is_primary"] = True
            person = Person(**values)
            client.persons.append(person)
            return person
        return ClientService._apply_person(person, data)

    def _upsert_property(self, link: IntakeLink, owner: Client, data: schemas.PropertyData) -> Property:
        values = data.model_dump()
        prop = link.property
        if prop is None:
            prop = Property(owner=owner, status=PropertyStatus.NON_LOUER, **values)
            self.db.add(prop)
            link.property = prop
        else:
            for key, value in values.items():
                setattr(prop, key, value)
        return prop

    def _upsert_bail(self, link: IntakeLink, owner: Client, prop: Property,
                     terms: Optional[schemas.BailTerms]) -> Bail:
        values = terms.model_dump() if terms is not None else {}
        bail = link.bail
        if bail is None:
            bail = Bail(status=BailStatus.DRAFT, property=prop, **values)
            bail.parties = [owner]
            self.db.add(bail)
            link.bail = bail
        else:
            for key, value in values.items():
                setattr(bail, key, value)
            if owner not in bail.parties:
                bail.parties.append(owner)

        missing = missing_furniture_for(prop, bail.bail_type)
        if missing:
            raise BusinessRuleError(
                "Le bien ne comporte pas tout le mobilier obligatoire pour un bail meublé",
                details={"missing_furniture": missing}
            )
        if bail.effective_date:
            bail.end_date = calculate_bail_end_date(bail.effective_date, bail.bail_type)
        return bail

    def _find_or_create_tenant(self, email: str, owner: Client) -> Client:
        email = email.strip().lower()
        tenant = ClientService.find_client_by_email(self.db, email)
        if tenant is not None:
            if tenant.id == owner.id:
                raise ConflictError("Le locataire ne peut pas être le bailleur", details={"email": email})
            if tenant.profil_type == ProfilType.PROPRIETAIRE:
                raise ConflictError(ERROR_MESSAGES["email_already_used"], details={"email": email})
            tenant.profil_type = ProfilType.LOCATAIRE
            return tenant

        tenant = Client(type=ClientType.PERSONNE_PHYSIQUE, profil_type=ProfilType.LOCATAIRE)
        tenant.persons.append(Person(email=email, is_primary=True))
        self.db.add(tenant)
        self.db.flush()
        logger.info(f"Locataire {tenant.id} créé depuis le formulaire bailleur")
        return tenant

    def _ensure_tenant_link(self, tenant: Client, prop: Property, bail: Bail,
                            created_by_id: Optional[int]) -> IntakeLink:
        existing = self.db.query(IntakeLink).filter(
            IntakeLink.client_id == tenant.id,
            IntakeLink.target == IntakeTarget.TENANT,
            IntakeLink.status == IntakeStatus.PENDING,
        ).first()
        if existing is not None:
            existing.property = prop
            existing.bail = bail
            return existing

        link = IntakeLink(
            token=self.generate_token(),
            target=IntakeTarget.TENANT,
            status=IntakeStatus.PENDING,
            client=tenant,
            property=prop,
            bail=bail,
            created_by_id=created_by_id,
        )
        self.db.add(link)
        return link

    def _revoke_tenant_links(self, tenant: Client, bail: Bail):
        """Le locataire remplacé ne peut plus compléter ce bail"""
        links = self.db.query(IntakeLink).filter(
            IntakeLink.client_id == tenant.id,
            IntakeLink.target == IntakeTarget.TENANT,
            IntakeLink.status == IntakeStatus.PENDING,
            IntakeLink.bail_id == bail.id,
        ).all()
        for link in links:
            link.status = IntakeStatus.REVOKED
            logger.info(f"Lien locataire {link.id} révoqué : locataire remplacé sur le bail {bail.id}")

    @staticmethod
    def _close_link(link: IntakeLink, form: Union[BaseModel, Dict[str, Any]], final: bool):
        link.raw_payload = form.model_dump(mode="json") if isinstance(form, BaseModel) else form
        if final:
            link.status = IntakeStatus.SUBMITTED
            link.submitted_at = datetime.utcnow()

    def _notify_submitted(self, link: IntakeLink):
        AuditLogger.log_status_change(
            self.db, EntityType.INTAKE_LINK, link.id, IntakeStatus.PENDING, IntakeStatus.SUBMITTED,
            field="status"
        )
        NotificationService.create_for_all_users(
            self.db, NotificationType.INTAKE_SUBMITTED, "INTAKE", link.id,
            metadata={"intake_target": link.target.value}
        )
