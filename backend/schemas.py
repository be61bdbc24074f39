from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from decimal import Decimal
import re

# Import centralisé des enums
from enums import (
    Role, ClientType, ProfilType, CompletionStatus, FamilyStatus,
    MatrimonialRegime, BienType, BienLegalStatus, PropertyStatus, BailType,
    BailFamille, BailStatus, DocumentKind, IntakeTarget, IntakeStatus,
    NotaireRequestType, NotaireRequestStatus, NotificationType
)
from constants import (
    MIN_PAYMENT_DAY, MAX_PAYMENT_DAY, MAX_FILE_SIZE, ALLOWED_DOCUMENT_TYPES
)
from lease_rules import deposit_error

PHONE_PATTERN = re.compile(r'^[0-9+\s\-\.\(\)]{6,20}$')
REGISTRATION_PATTERN = re.compile(r'^[0-9]{9}([0-9]{5})?$')


# ==================== UTILISATEURS ====================

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None
    role: Role


# ==================== PERSONNES / ENTREPRISES ====================

class PersonBase(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100, description="Prénom")
    last_name: Optional[str] = Field(None, max_length=100, description="Nom de famille")
    profession: Optional[str] = Field(None, max_length=200)
    nationality: Optional[str] = Field(None, max_length=100)
    birth_date: Optional[date] = None
    birth_place: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    full_address: Optional[str] = Field(None, max_length=500)
    family_status: Optional[FamilyStatus] = None
    matrimonial_regime: Optional[MatrimonialRegime] = None

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        if v and not PHONE_PATTERN.match(v):
            raise ValueError('Le numéro de téléphone contient des caractères invalides')
        return v

    @field_validator('birth_date')
    @classmethod
    def validate_birth_date(cls, v):
        if v and v > date.today():
            raise ValueError('La date de naissance ne peut pas être dans le futur')
        return v


class PersonCreate(PersonBase):
    is_primary: bool = False


class PersonUpdate(PersonBase):
    is_primary: Optional[bool] = None


class PersonOut(PersonBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_primary: bool
    email: Optional[str] = None


class EntrepriseBase(BaseModel):
    legal_name: Optional[str] = Field(None, max_length=255, description="Raison sociale")
    name: Optional[str] = Field(None, max_length=255, description="Nom commercial")
    registration: Optional[str] = Field(None, max_length=50, description="SIREN ou SIRET")
    nationality: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    full_address: Optional[str] = Field(None, max_length=500)

    @field_validator('registration')
    @classmethod
    def validate_registration(cls, v):
        if v:
            compact = v.replace(' ', '')
            if not REGISTRATION_PATTERN.match(compact):
                raise ValueError('Le SIREN doit contenir 9 chiffres (14 pour un SIRET)')
            return compact
        return v


class EntrepriseOut(EntrepriseBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: Optional[str] = None


# ==================== CLIENTS ====================

class ClientCreate(BaseModel):
    type: ClientType = ClientType.PERSONNE_PHYSIQUE
    profil_type: ProfilType = ProfilType.LEAD
    persons: List[PersonCreate] = Field(default_factory=list)
    entreprise: Optional[EntrepriseBase] = None

    @model_validator(mode='after')
    def validate_identity(self):
        if self.type == ClientType.PERSONNE_MORALE and self.persons:
            raise ValueError("Une personne morale se décrit par son entreprise, pas par des personnes")
        if self.type == ClientType.PERSONNE_PHYSIQUE and self.entreprise is not None:
            raise ValueError("Une personne physique ne peut pas avoir d'entreprise")
        if sum(1 for p in self.persons if p.is_primary) > 1:
            raise ValueError("Une seule personne principale par client")
        return self


class ClientUpdate(BaseModel):
    profil_type: Optional[ProfilType] = None
    entreprise: Optional[EntrepriseBase] = None


class CompletionStatusUpdate(BaseModel):
    completion_status: CompletionStatus


class ClientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: ClientType
    profil_type: ProfilType
    completion_status: CompletionStatus
    display_name: str
    persons: List[PersonOut] = []
    entreprise: Optional[EntrepriseOut] = None
    created_at: Optional[datetime] = None


class ClientList(BaseModel):
    items: List[ClientOut]
    total: int
    page: int
    page_size: int


# ==================== COMPLÉTUDE ====================

class CompletionCheckOut(BaseModel):
    has_all_fields: bool
    has_all_documents: bool
    missing_fields: List[str]
    missing_documents: List[DocumentKind]


class PersonCompletionOut(BaseModel):
    person_id: int
    name: str
    is_primary: bool
    missing_fields: List[str]
    missing_documents: List[DocumentKind]


class EntrepriseCompletionOut(BaseModel):
    entreprise_id: Optional[int] = None
    name: str
    missing_fields: List[str]
    missing_documents: List[DocumentKind]


class DetailedCompletionOut(CompletionCheckOut):
    persons: List[PersonCompletionOut] = []
    entreprise: Optional[EntrepriseCompletionOut] = None
    client_missing_documents: List[DocumentKind] = []


class CompletionUpdateOut(BaseModel):
    old_status: Optional[CompletionStatus] = None
    new_status: Optional[CompletionStatus] = None
    changed: bool
    bails_transitioned: List[int] = []


# ==================== BIENS ====================

class FurnitureFlags(BaseModel):
    has_literie: bool = False
    has_rideaux: bool = False
    has_plaques_cuisson: bool = False
    has_four: bool = False
    has_refrigerateur: bool = False
    has_congelateur: bool = False
    has_vaisselle: bool = False
    has_ustensiles_cuisine: bool = False
    has_table: bool = False
    has_sieges: bool = False
    has_etageres_rangement: bool = False
    has_luminaires: bool = False
    has_materiel_entretien: bool = False


class PropertyData(FurnitureFlags):
    full_address: str = Field(..., min_length=1, max_length=500, description="Adresse complète")
    label: Optional[str] = Field(None, max_length=255)
    surface_m2: Optional[Decimal] = Field(None, ge=0, le=10000)
    type: Optional[BienType] = None
    legal_status: Optional[BienLegalStatus] = None

    @field_validator('full_address')
    @classmethod
    def validate_full_address(cls, v):
        if not v.strip():
            raise ValueError("L'adresse du bien est obligatoire")
        return v.strip()


class PropertyCreate(PropertyData):
    owner_id: int
    status: PropertyStatus = PropertyStatus.NON_LOUER
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    insee_code: Optional[str] = Field(None, max_length=10)
    is_tight_zone: bool = False
    has_rent_control: bool = False


class PropertyUpdate(BaseModel):
    full_address: Optional[str] = Field(None, min_length=1, max_length=500)
    label: Optional[str] = Field(None, max_length=255)
    surface_m2: Optional[Decimal] = Field(None, ge=0, le=10000)
    type: Optional[BienType] = None
    legal_status: Optional[BienLegalStatus] = None
    status: Optional[PropertyStatus] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    insee_code: Optional[str] = Field(None, max_length=10)
    is_tight_zone: Optional[bool] = None
    has_rent_control: Optional[bool] = None
    has_literie: Optional[bool] = None
    has_rideaux: Optional[bool] = None
    has_plaques_cuisson: Optional[bool] = None
    has_four: Optional[bool] = None
    has_refrigerateur: Optional[bool] = None
    has_congelateur: Optional[bool] = None
    has_vaisselle: Optional[bool] = None
    has_ustensiles_cuisine: Optional[bool] = None
    has_table: Optional[bool] = None
    has_sieges: Optional[bool] = None
    has_etageres_rangement: Optional[bool] = None
    has_luminaires: Optional[bool] = None
    has_materiel_entretien: Optional[bool] = None


class PropertyOut(FurnitureFlags):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_address: str
    label: Optional[str] = None
    surface_m2: Optional[Decimal] = None
    type: Optional[BienType] = None
    legal_status: Optional[BienLegalStatus] = None
    status: PropertyStatus
    completion_status: CompletionStatus
    owner_id: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    insee_code: Optional[str] = None
    is_tight_zone: bool = False
    has_rent_control: bool = False


# ==================== BAUX ====================

class BailTerms(BaseModel):
    bail_type: BailType = BailType.BAIL_NU_3_ANS
    bail_family: BailFamille = BailFamille.HABITATION
    rent_amount: Optional[Decimal] = Field(None, ge=0, description="Loyer hors charges")
    monthly_charges: Optional[Decimal] = Field(None, ge=0)
    security_deposit: Optional[Decimal] = Field(None, ge=0)
    effective_date: Optional[date] = None
    payment_day: Optional[int] = Field(None, ge=MIN_PAYMENT_DAY, le=MAX_PAYMENT_DAY)

    @model_validator(mode='after')
    def validate_deposit(self):
        message = deposit_error(self.rent_amount, self.security_deposit, self.bail_type)
        if message:
            raise ValueError(message)
        return self


class BailCreate(BailTerms):
    property_id: int
    tenant_id: Optional[int] = None
    end_date: Optional[date] = None

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date and self.effective_date and self.end_date <= self.effective_date:
            raise ValueError("La date de fin doit être postérieure à la date d'effet")
        return self


class BailUpdate(BaseModel):
    bail_type: Optional[BailType] = None
    bail_family: Optional[BailFamille] = None
    rent_amount: Optional[Decimal] = Field(None, ge=0)
    monthly_charges: Optional[Decimal] = Field(None, ge=0)
    security_deposit: Optional[Decimal] = Field(None, ge=0)
    effective_date: Optional[date] = None
    end_date: Optional[date] = None
    payment_day: Optional[int] = Field(None, ge=MIN_PAYMENT_DAY, le=MAX_PAYMENT_DAY)
    tenant_id: Optional[int] = None


class BailTransition(BaseModel):
    next_status: BailStatus


class BailPartyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    profil_type: ProfilType
    completion_status: CompletionStatus
    display_name: str


class BailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    bail_type: BailType
    bail_family: BailFamille
    status: BailStatus
    rent_amount: Optional[Decimal] = None
    monthly_charges: Optional[Decimal] = None
    security_deposit: Optional[Decimal] = None
    effective_date: Optional[date] = None
    end_date: Optional[date] = None
    payment_day: Optional[int] = None
    property_id: Optional[int] = None
    parties: List[BailPartyOut] = []


# ==================== DOCUMENTS ====================

class DocumentCreate(BaseModel):
    kind: DocumentKind
    label: Optional[str] = Field(None, max_length=255)
    file_key: str = Field(..., min_length=1, max_length=500, description="Clé du fichier dans le stockage")
    mime_type: Optional[str] = Field(None, max_length=100)
    size: Optional[int] = Field(None, ge=0)
    client_id: Optional[int] = None
    person_id: Optional[int] = None
    entreprise_id: Optional[int] = None
    property_id: Optional[int] = None
    bail_id: Optional[int] = None

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v):
        if v and v not in ALLOWED_DOCUMENT_TYPES:
            raise ValueError('Type de fichier non autorisé')
        return v

    @field_validator('size')
    @classmethod
    def validate_size(cls, v):
        if v is not None and v > MAX_FILE_SIZE:
            raise ValueError(f'Fichier trop volumineux (maximum {MAX_FILE_SIZE // (1024 * 1024)} MB)')
        return v

    @model_validator(mode='after')
    def validate_owner(self):
        owners = [self.client_id, self.person_id, self.entreprise_id, self.property_id, self.bail_id]
        if sum(1 for o in owners if o is not None) != 1:
            raise ValueError("Un document doit être rattaché à exactement un client, une personne, une entreprise, un bien ou un bail")
        return self


class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: DocumentKind
    label: Optional[str] = None
    file_key: str
    mime_type: Optional[str] = None
    size: Optional[int] = None
    client_id: Optional[int] = None
    person_id: Optional[int] = None
    entreprise_id: Optional[int] = None
    property_id: Optional[int] = None
    bail_id: Optional[int] = None
    created_at: Optional[datetime] = None


# ==================== FORMULAIRES (INTAKE) ====================

class IntakeLinkCreate(BaseModel):
    target: IntakeTarget
    client_id: int
    property_id: Optional[int] = None
    bail_id: Optional[int] = None
    send_email: bool = False


class IntakeLinkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    token: str
    target: IntakeTarget
    status: IntakeStatus
    client_id: Optional[int] = None
    property_id: Optional[int] = None
    bail_id: Optional[int] = None
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class OwnerIntakeForm(BaseModel):
    """Formulaire bailleur : identité, bien, conditions du bail et email du locataire"""
    person: Optional[PersonBase] = None
    entreprise: Optional[EntrepriseBase] = None
    property: PropertyData
    bail: Optional[BailTerms] = None
    tenant_email: Optional[EmailStr] = None


class TenantIntakeForm(BaseModel):
    """Formulaire locataire : une ou plusieurs personnes, ou une entreprise"""
    persons: List[PersonBase] = Field(default_factory=list)
    entreprise: Optional[EntrepriseBase] = None

    @model_validator(mode='after')
    def validate_not_empty(self):
        if not self.persons and self.entreprise is None:
            raise ValueError("Le formulaire doit contenir au moins une personne ou une entreprise")
        return self


class IntakeSubmissionOut(BaseModel):
    intake_id: int
    client_id: Optional[int] = None
    property_id: Optional[int] = None
    bail_id: Optional[int] = None
    tenant_client_id: Optional[int] = None
    tenant_intake_token: Optional[str] = None


# ==================== NOTAIRES ====================

class NotaireCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)


class AssignmentCreate(BaseModel):
    bail_id: int
    notaire_id: int
    notes: Optional[str] = None


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    bail_id: int
    notaire_id: int
    client_id: Optional[int] = None
    property_id: Optional[int] = None
    notes: Optional[str] = None
    assigned_at: Optional[datetime] = None


class NotaireRequestCreate(BaseModel):
    type: NotaireRequestType
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    target_proprietaire: bool = False
    target_locataire: bool = False

    @model_validator(mode='after')
    def validate_target(self):
        if not self.target_proprietaire and not self.target_locataire:
            raise ValueError("La demande doit viser le propriétaire, le locataire ou les deux")
        return self


class NotaireRequestStatusUpdate(BaseModel):
    status: NotaireRequestStatus


class NotaireRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    dossier_id: int
    type: NotaireRequestType
    title: str
    content: str
    status: NotaireRequestStatus
    target_proprietaire: bool
    target_locataire: bool
    created_at: Optional[datetime] = None


class BailMessageCreate(BaseModel):
    content: Optional[str] = Field(None, max_length=10000)
    document_id: Optional[int] = None
    recipient_party_id: Optional[int] = None

    @model_validator(mode='after')
    def validate_content(self):
        if not (self.content and self.content.strip()) and self.document_id is None:
            raise ValueError("Le message doit contenir du texte ou une pièce jointe")
        return self


class BailMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    bail_id: int
    sender_id: int
    recipient_party_id: Optional[int] = None
    content: Optional[str] = None
    document_id: Optional[int] = None
    created_at: Optional[datetime] = None


# ==================== NOTIFICATIONS ====================

class NotificationOut(BaseModel):
    id: int
    type: NotificationType
    target_type: str
    target_id: Optional[int] = None
    message: str
    link: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None


class NotificationList(BaseModel):
    notifications: List[NotificationOut]
    total_count: int
    unread_count: int
    has_more: bool


class MarkReadRequest(BaseModel):
    notification_ids: List[int] = Field(default_factory=list)
    mark_all: bool = False
