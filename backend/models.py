from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, Enum, DateTime, Date, Text,
    Numeric, Float, JSON, Table, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from database import Base
from model_mixins import TimestampMixin, IdentityFieldsMixin
import datetime

# Import centralisé des enums
from enums import (
    Role, ClientType, ProfilType, CompletionStatus, FamilyStatus,
    MatrimonialRegime, BienType, BienLegalStatus, PropertyStatus, BailType,
    BailFamille, BailStatus, DocumentKind, IntakeTarget, IntakeStatus,
    NotaireRequestType, NotaireRequestStatus, NotificationType, ActionType,
    EntityType
)


# Parties d'un bail : un propriétaire et au plus un locataire
bail_parties = Table(
    "bail_parties",
    Base.metadata,
    Column("bail_id", Integer, ForeignKey("baux.id", ondelete="CASCADE"), primary_key=True),
    Column("client_id", Integer, ForeignKey("clients.id", ondelete="CASCADE"), primary_key=True),
)


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=True)  # Nullable pour les notaires invités
    role = Column(Enum(Role), default=Role.UTILISATEUR, nullable=False)
    is_active = Column(Boolean, default=True)

    notifications = relationship(
        "Notification", back_populates="recipient",
        foreign_keys="Notification.recipient_id", cascade="all, delete-orphan"
    )
    notaire_assignments = relationship(
        "DossierNotaireAssignment", back_populates="notaire",
        foreign_keys="DossierNotaireAssignment.notaire_id"
    )


class Client(TimestampMixin, Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(Enum(ClientType), default=ClientType.PERSONNE_PHYSIQUE, nullable=False)
    profil_type = Column(Enum(ProfilType), default=ProfilType.LEAD, nullable=False)
    completion_status = Column(Enum(CompletionStatus), default=CompletionStatus.NOT_STARTED, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    persons = relationship("Person", back_populates="client", cascade="all, delete-orphan", order_by="Person.id")
    entreprise = relationship("Entreprise", back_populates="client", uselist=False, cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="client", foreign_keys="Document.client_id")
    intake_links = relationship("IntakeLink", back_populates="client")
    owned_properties = relationship("Property", back_populates="owner")
    bails = relationship("Bail", secondary=bail_parties, back_populates="parties")

    __table_args__ = (
        Index('idx_client_profil', 'profil_type'),
        Index('idx_client_completion', 'completion_status'),
    )

    @property
    def primary_person(self):
        """Personne principale : la première marquée is_primary, sinon la première"""
        for person in self.persons:
            if person.is_primary:
                return person
        return self.persons[0] if self.persons else None

    @property
    def display_name(self) -> str:
        if self.type == ClientType.PERSONNE_MORALE and self.entreprise:
            return self.entreprise.legal_name or self.entreprise.name or f"Client #{self.id}"
        person = self.primary_person
        if person:
            name = " ".join(p for p in [person.first_name, person.last_name] if p)
            if name:
                return name
        return f"Client #{self.id}"

    @property
    def contact_email(self):
        if self.type == ClientType.PERSONNE_MORALE:
            return self.entreprise.email if self.entreprise else None
        person = self.primary_person
        return person.email if person else None


class Person(IdentityFieldsMixin, TimestampMixin, Base):
    __tablename__ = "persons"

    SCALAR_FIELDS = (
        "first_name", "last_name", "profession", "nationality", "birth_date",
        "birth_place", "email", "phone", "full_address", "family_status",
        "matrimonial_regime",
    )

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    is_primary = Column(Boolean, default=False)

    # Identité
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    profession = Column(String(200), nullable=True)
    nationality = Column(String(100), nullable=True)
    birth_date = Column(Date, nullable=True)
    birth_place = Column(String(200), nullable=True)

    # Contact
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(50), nullable=True)
    full_address = Column(String(500), nullable=True)

    # Situation familiale
    family_status = Column(Enum(FamilyStatus), nullable=True)
    matrimonial_regime = Column(Enum(MatrimonialRegime), nullable=True)

    client = relationship("Client", back_populates="persons")
    documents = relationship("Document", back_populates="person", cascade="all, delete-orphan")


class Entreprise(IdentityFieldsMixin, TimestampMixin, Base):
    __tablename__ = "entreprises"

    SCALAR_FIELDS = (
        "legal_name", "name", "registration", "nationality", "email", "phone",
        "full_address",
    )

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), unique=True, nullable=False)
    legal_name = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    registration = Column(String(50), nullable=True)  # SIREN / SIRET
    nationality = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(50), nullable=True)
    full_address = Column(String(500), nullable=True)

    client = relationship("Client", back_populates="entreprise")
    documents = relationship("Document", back_populates="entreprise", cascade="all, delete-orphan")


class Property(TimestampMixin, Base):
    __tablename__ = "properties"

    # Équipements exigés pour un bail meublé
    FURNITURE_FLAGS = (
        "has_literie", "has_rideaux", "has_plaques_cuisson", "has_four",
        "has_refrigerateur", "has_congelateur", "has_vaisselle",
        "has_ustensiles_cuisine", "has_table", "has_sieges",
        "has_etageres_rangement", "has_luminaires", "has_materiel_entretien",
    )

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String(255), nullable=True)
    full_address = Column(String(500), nullable=False)
    surface_m2 = Column(Numeric(10, 2), nullable=True)
    type = Column(Enum(BienType), nullable=True)
    legal_status = Column(Enum(BienLegalStatus), nullable=True)
    status = Column(Enum(PropertyStatus), default=PropertyStatus.NON_LOUER, nullable=False)
    completion_status = Column(Enum(CompletionStatus), default=CompletionStatus.NOT_STARTED, nullable=False)
    owner_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Mobilier
    has_literie = Column(Boolean, default=False)
    has_rideaux = Column(Boolean, default=False)
    has_plaques_cuisson = Column(Boolean, default=False)
    has_four = Column(Boolean, default=False)
    has_refrigerateur = Column(Boolean, default=False)
    has_congelateur = Column(Boolean, default=False)
    has_vaisselle = Column(Boolean, default=False)
    has_ustensiles_cuisine = Column(Boolean, default=False)
    has_table = Column(Boolean, default=False)
    has_sieges = Column(Boolean, default=False)
    has_etageres_rangement = Column(Boolean, default=False)
    has_luminaires = Column(Boolean, default=False)
    has_materiel_entretien = Column(Boolean, default=False)

    # Géolocalisation (renseignée par le service d'adresse externe)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    insee_code = Column(String(10), nullable=True)
    is_tight_zone = Column(Boolean, default=False)
    has_rent_control = Column(Boolean, default=False)

    owner = relationship("Client", back_populates="owned_properties")
    documents = relationship("Document", back_populates="property", cascade="all, delete-orphan")
    bails = relationship("Bail", back_populates="property")

    __table_args__ = (
        Index('idx_property_owner', 'owner_id'),
        Index('idx_property_completion', 'completion_status'),
    )

    @property
    def missing_furniture(self) -> list:
        return [flag for flag in self.FURNITURE_FLAGS if not getattr(self, flag)]


class Bail(TimestampMixin, Base):
    __tablename__ = "baux"

    id = Column(Integer, primary_key=True, index=True)
    bail_type = Column(Enum(BailType), default=BailType.BAIL_NU_3_ANS, nullable=False)
    bail_family = Column(Enum(BailFamille), default=BailFamille.HABITATION, nullable=False)
    status = Column(Enum(BailStatus), default=BailStatus.DRAFT, nullable=False)
    rent_amount = Column(Numeric(10, 2), nullable=True)
    monthly_charges = Column(Numeric(10, 2), nullable=True)
    security_deposit = Column(Numeric(10, 2), nullable=True)
    effective_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    payment_day = Column(Integer, nullable=True)  # 1 à 31
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    def _party(self, profil_type: ProfilType):
        for client in self.parties:
            if client.profil_type == profil_type:
                return client
        return None

    @property
    def owner_party(self):
        return self._party(ProfilType.PROPRIETAIRE)

    @property
    def tenant_party(self):
        return self._party(ProfilType.LOCATAIRE)

    property = relationship("Property", back_populates="bails")
    parties = relationship("Client", secondary=bail_parties, back_populates="bails")
    documents = relationship("Document", back_populates="bail", cascade="all, delete-orphan")
    assignments = relationship("DossierNotaireAssignment", back_populates="bail", cascade="all, delete-orphan")
    messages = relationship(
        "BailMessage", back_populates="bail", cascade="all, delete-orphan",
        order_by="BailMessage.created_at"
    )

    __table_args__ = (
        Index('idx_bail_status', 'status'),
        Index('idx_bail_property', 'property_id'),
    )


class Document(TimestampMixin, Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(Enum(DocumentKind), nullable=False)
    label = Column(String(255), nullable=True)
    file_key = Column(String(500), nullable=False)  # Clé dans le stockage externe
    mime_type = Column(String(100), nullable=True)
    size = Column(Integer, nullable=True)
    uploaded_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Un seul rattachement renseigné
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=True)
    person_id = Column(Integer, ForeignKey("persons.id", ondelete="CASCADE"), nullable=True)
    entreprise_id = Column(Integer, ForeignKey("entreprises.id", ondelete="CASCADE"), nullable=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=True)
    bail_id = Column(Integer, ForeignKey("baux.id", ondelete="CASCADE"), nullable=True)
    notaire_request_id = Column(Integer, ForeignKey("notaire_requests.id"), nullable=True)

    client = relationship("Client", back_populates="documents", foreign_keys=[client_id])
    person = relationship("Person", back_populates="documents")
    entreprise = relationship("Entreprise", back_populates="documents")
    property = relationship("Property", back_populates="documents")
    bail = relationship("Bail", back_populates="documents")
    notaire_request = relationship("NotaireRequest", back_populates="documents")

    __table_args__ = (
        Index('idx_document_kind', 'kind'),
    )

    def owning_client_id(self):
        """Client concerné par ce document, directement ou via une personne/entreprise"""
        if self.client_id:
            return self.client_id
        if self.person is not None:
            return self.person.client_id
        if self.entreprise is not None:
            return self.entreprise.client_id
        return None


class IntakeLink(TimestampMixin, Base):
    __tablename__ = "intake_links"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(64), unique=True, index=True, nullable=False)
    target = Column(Enum(IntakeTarget), nullable=False)
    status = Column(Enum(IntakeStatus), default=IntakeStatus.PENDING, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=True)
    bail_id = Column(Integer, ForeignKey("baux.id"), nullable=True)
    raw_payload = Column(JSON, nullable=True)  # Données brutes soumises
    submitted_at = Column(DateTime, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    client = relationship("Client", back_populates="intake_links")
    property = relationship("Property")
    bail = relationship("Bail")


class DossierNotaireAssignment(Base):
    __tablename__ = "dossier_notaire_assignments"

    id = Column(Integer, primary_key=True, index=True)
    bail_id = Column(Integer, ForeignKey("baux.id", ondelete="CASCADE"), nullable=False)
    notaire_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=True)
    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    notes = Column(Text, nullable=True)
    assigned_at = Column(DateTime, default=datetime.datetime.utcnow)

    bail = relationship("Bail", back_populates="assignments")
    notaire = relationship("User", back_populates="notaire_assignments", foreign_keys=[notaire_id])
    assigned_by = relationship("User", foreign_keys=[assigned_by_id])
    client = relationship("Client")
    property = relationship("Property")
    requests = relationship(
        "NotaireRequest", back_populates="dossier", cascade="all, delete-orphan",
        order_by="NotaireRequest.created_at"
    )

    __table_args__ = (
        UniqueConstraint('bail_id', 'notaire_id', name='uq_bail_notaire'),
    )


class NotaireRequest(TimestampMixin, Base):
    __tablename__ = "notaire_requests"

    id = Column(Integer, primary_key=True, index=True)
    dossier_id = Column(Integer, ForeignKey("dossier_notaire_assignments.id", ondelete="CASCADE"), nullable=False)
    type = Column(Enum(NotaireRequestType), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    status = Column(Enum(NotaireRequestStatus), default=NotaireRequestStatus.PENDING, nullable=False)
    target_proprietaire = Column(Boolean, default=False)
    target_locataire = Column(Boolean, default=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    dossier = relationship("DossierNotaireAssignment", back_populates="requests")
    documents = relationship("Document", back_populates="notaire_request")


class BailMessage(TimestampMixin, Base):
    __tablename__ = "bail_messages"

    id = Column(Integer, primary_key=True, index=True)
    bail_id = Column(Integer, ForeignKey("baux.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    recipient_party_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    content = Column(Text, nullable=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)

    bail = relationship("Bail", back_populates="messages")
    sender = relationship("User")
    recipient_party = relationship("Client")
    document = relationship("Document")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(Enum(NotificationType), nullable=False)
    target_type = Column(String(50), nullable=False)  # CLIENT, PROPERTY, BAIL, INTAKE...
    target_id = Column(Integer, nullable=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    notification_metadata = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    recipient = relationship("User", back_populates="notifications", foreign_keys=[recipient_id])
    created_by = relationship("User", foreign_keys=[created_by_id])

    __table_args__ = (
        Index('idx_notification_recipient_read', 'recipient_id', 'is_read'),
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # Null pour les actions publiques (formulaires)
    action = Column(Enum(ActionType))
    entity_type = Column(Enum(EntityType))
    entity_id = Column(Integer, nullable=True)
    description = Column(String(500))
    details = Column(Text, nullable=True)  # Détails JSON de l'action
    ip_address = Column(String(50), nullable=True)
    user_agent = Column(String(500), nullable=True)
    endpoint = Column(String(200), nullable=True)
    method = Column(String(10), nullable=True)
    status_code = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    user = relationship("User")
