"""
Enums partagés pour l'application BailNotarie
Centralisation de toutes les énumérations pour éviter la duplication
"""
import enum


class Role(str, enum.Enum):
    """Rôles des utilisateurs de l'espace interne"""
    ADMINISTRATEUR = "ADMINISTRATEUR"
    OPERATEUR = "OPERATEUR"
    REVIEWER = "REVIEWER"
    NOTAIRE = "NOTAIRE"
    UTILISATEUR = "UTILISATEUR"


class ClientType(str, enum.Enum):
    """Nature juridique d'un client"""
    PERSONNE_PHYSIQUE = "PERSONNE_PHYSIQUE"
    PERSONNE_MORALE = "PERSONNE_MORALE"


class ProfilType(str, enum.Enum):
    """Rôle du client dans un dossier"""
    PROPRIETAIRE = "PROPRIETAIRE"
    LOCATAIRE = "LOCATAIRE"
    LEAD = "LEAD"  # Prospect non converti


class CompletionStatus(str, enum.Enum):
    """Avancement du dossier d'un client ou d'un bien"""
    NOT_STARTED = "NOT_STARTED"
    PARTIAL = "PARTIAL"
    PENDING_CHECK = "PENDING_CHECK"  # Complet, en attente de vérification
    COMPLETED = "COMPLETED"          # Vérifié par l'équipe


class FamilyStatus(str, enum.Enum):
    """Situation familiale"""
    CELIBATAIRE = "CELIBATAIRE"
    MARIE = "MARIE"
    PACS = "PACS"
    DIVORCE = "DIVORCE"
    VEUF = "VEUF"


class MatrimonialRegime(str, enum.Enum):
    """Régimes matrimoniaux"""
    COMMUNAUTE_REDUITE_AUX_ACQUETS = "COMMUNAUTE_REDUITE_AUX_ACQUETS"
    SEPARATION_DE_BIENS = "SEPARATION_DE_BIENS"
    PARTICIPATION_AUX_ACQUETS = "PARTICIPATION_AUX_ACQUETS"
    COMMUNAUTE_UNIVERSELLE = "COMMUNAUTE_UNIVERSELLE"


class BienType(str, enum.Enum):
    """Types de biens"""
    APPARTEMENT = "APPARTEMENT"
    MAISON = "MAISON"


class BienLegalStatus(str, enum.Enum):
    """Statut juridique d'un bien"""
    PLEIN_PROPRIETE = "PLEIN_PROPRIETE"
    CO_PROPRIETE = "CO_PROPRIETE"
    LOTISSEMENT = "LOTISSEMENT"


class PropertyStatus(str, enum.Enum):
    """Statut commercial d'un bien"""
    NON_LOUER = "NON_LOUER"
    PROSPECT = "PROSPECT"
    IN_PROGRESS = "IN_PROGRESS"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class BailType(str, enum.Enum):
    """Types de baux d'habitation"""
    BAIL_NU_3_ANS = "BAIL_NU_3_ANS"
    BAIL_NU_6_ANS = "BAIL_NU_6_ANS"        # Bailleur personne morale
    BAIL_MEUBLE_1_ANS = "BAIL_MEUBLE_1_ANS"
    BAIL_MEUBLE_9_MOIS = "BAIL_MEUBLE_9_MOIS"  # Étudiant


class BailFamille(str, enum.Enum):
    """Famille de bail"""
    HABITATION = "HABITATION"
    COMMERCIAL = "COMMERCIAL"


class BailStatus(str, enum.Enum):
    """Cycle de vie d'un bail"""
    DRAFT = "DRAFT"
    PENDING_VALIDATION = "PENDING_VALIDATION"
    READY_FOR_NOTARY = "READY_FOR_NOTARY"
    CLIENT_CONTACTED = "CLIENT_CONTACTED"
    SIGNED = "SIGNED"
    TERMINATED = "TERMINATED"
    CANCELED = "CANCELED"


class DocumentKind(str, enum.Enum):
    """Types de pièces justificatives"""
    ID_IDENTITY = "ID_IDENTITY"
    BIRTH_CERT = "BIRTH_CERT"
    KBIS = "KBIS"
    STATUTES = "STATUTES"
    LIVRET_DE_FAMILLE = "LIVRET_DE_FAMILLE"
    CONTRAT_DE_PACS = "CONTRAT_DE_PACS"
    INSURANCE = "INSURANCE"
    RIB = "RIB"
    DIAGNOSTICS = "DIAGNOSTICS"
    TITLE_DEED = "TITLE_DEED"
    REGLEMENT_COPROPRIETE = "REGLEMENT_COPROPRIETE"
    CAHIER_DE_CHARGE_LOTISSEMENT = "CAHIER_DE_CHARGE_LOTISSEMENT"
    STATUT_DE_LASSOCIATION_SYNDICALE = "STATUT_DE_LASSOCIATION_SYNDICALE"
    CHAT_PIECE_JOINTE = "CHAT_PIECE_JOINTE"
    OTHER = "OTHER"


class IntakeTarget(str, enum.Enum):
    """Destinataire d'un formulaire de collecte"""
    OWNER = "OWNER"
    TENANT = "TENANT"


class IntakeStatus(str, enum.Enum):
    """Statut d'un lien de formulaire"""
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    REVOKED = "REVOKED"


class NotaireRequestType(str, enum.Enum):
    """Nature d'une demande du notaire"""
    DOCUMENT = "DOCUMENT"
    DATA = "DATA"


class NotaireRequestStatus(str, enum.Enum):
    """Statut d'une demande du notaire"""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class NotificationType(str, enum.Enum):
    """Types de notifications in-app"""
    CLIENT_CREATED = "CLIENT_CREATED"
    CLIENT_UPDATED = "CLIENT_UPDATED"
    CLIENT_DELETED = "CLIENT_DELETED"
    PROPERTY_CREATED = "PROPERTY_CREATED"
    PROPERTY_UPDATED = "PROPERTY_UPDATED"
    PROPERTY_DELETED = "PROPERTY_DELETED"
    BAIL_CREATED = "BAIL_CREATED"
    BAIL_UPDATED = "BAIL_UPDATED"
    BAIL_DELETED = "BAIL_DELETED"
    BAIL_STATUS_CHANGED = "BAIL_STATUS_CHANGED"
    INTAKE_SUBMITTED = "INTAKE_SUBMITTED"
    INTAKE_REVOKED = "INTAKE_REVOKED"
    COMPLETION_STATUS_CHANGED = "COMPLETION_STATUS_CHANGED"
    LEAD_CREATED = "LEAD_CREATED"
    LEAD_CONVERTED = "LEAD_CONVERTED"
    DOCUMENT_CREATED = "DOCUMENT_CREATED"
    NOTAIRE_REQUEST_CREATED = "NOTAIRE_REQUEST_CREATED"
    MESSAGE_RECEIVED = "MESSAGE_RECEIVED"


class ActionType(str, enum.Enum):
    """Types d'actions pour l'audit logging"""
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_CHANGE = "STATUS_CHANGE"
    LOGIN = "LOGIN"
    ACCESS_DENIED = "ACCESS_DENIED"
    ERROR = "ERROR"


class EntityType(str, enum.Enum):
    """Types d'entités dans l'application"""
    USER = "USER"
    CLIENT = "CLIENT"
    PROPERTY = "PROPERTY"
    BAIL = "BAIL"
    DOCUMENT = "DOCUMENT"
    INTAKE_LINK = "INTAKE_LINK"
    NOTAIRE_ASSIGNMENT = "NOTAIRE_ASSIGNMENT"
    NOTAIRE_REQUEST = "NOTAIRE_REQUEST"
    BAIL_MESSAGE = "BAIL_MESSAGE"
