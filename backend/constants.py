"""
Constantes centralisées pour l'application BailNotarie
Standardisation des valeurs et conventions utilisées dans l'application
"""
import os

from dotenv import load_dotenv

load_dotenv()

# ==================== CONFIGURATION GÉNÉRALE ====================

APP_NAME = "BailNotarie"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Gestion des baux d'habitation notariés"

APP_URL = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")
CLIENT_DASHBOARD_PATH = "/client"
INTERFACE_PATH = "/interface"
INTAKE_FORM_PATH = "/intakes"

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

# ==================== CONFIGURATION DE SÉCURITÉ ====================

DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES = 60
JWT_ALGORITHM = "HS256"

# Jeton des liens de formulaire : 32 octets aléatoires en hexadécimal
INTAKE_TOKEN_BYTES = 32

# ==================== CONFIGURATION DE FICHIERS ====================

MAX_FILE_SIZE = 20 * 1024 * 1024  # 20 MB
ALLOWED_DOCUMENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

# ==================== CONFIGURATION D'EMAIL ====================

RESEND_API_URL = "https://api.resend.com/emails"
DEFAULT_EMAIL_FROM = "Support BailNotarie <support@bailnotarie.fr>"
EMAIL_TIMEOUT_SECONDS = 30.0

# ==================== LIBELLÉS ====================

COMPLETION_STATUS_LABELS = {
    "NOT_STARTED": "Non commencé",
    "PARTIAL": "Partiel",
    "PENDING_CHECK": "En vérification",
    "COMPLETED": "Complété",
}

DOCUMENT_KIND_LABELS = {
    "ID_IDENTITY": "Pièce d'identité",
    "BIRTH_CERT": "Acte de naissance",
    "KBIS": "Extrait Kbis",
    "STATUTES": "Statuts",
    "LIVRET_DE_FAMILLE": "Livret de famille",
    "CONTRAT_DE_PACS": "Contrat de PACS",
    "INSURANCE": "Attestation d'assurance",
    "RIB": "RIB",
    "DIAGNOSTICS": "Diagnostics techniques",
    "TITLE_DEED": "Titre de propriété",
    "REGLEMENT_COPROPRIETE": "Règlement de copropriété",
    "CAHIER_DE_CHARGE_LOTISSEMENT": "Cahier des charges du lotissement",
    "STATUT_DE_LASSOCIATION_SYNDICALE": "Statuts de l'association syndicale",
    "CHAT_PIECE_JOINTE": "Pièce jointe",
    "OTHER": "Autre document",
}

# ==================== RÈGLES MÉTIER ====================

# Dépôt de garantie maximal en mois de loyer hors charges
MAX_DEPOSIT_MONTHS_UNFURNISHED = 1
MAX_DEPOSIT_MONTHS_FURNISHED = 2

MIN_PAYMENT_DAY = 1
MAX_PAYMENT_DAY = 31

# ==================== PAGINATION ====================

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# ==================== MESSAGES D'ERREUR STANDARDISÉS ====================

ERROR_MESSAGES = {
    "client_not_found": "Client introuvable",
    "property_not_found": "Bien introuvable",
    "bail_not_found": "Bail introuvable",
    "document_not_found": "Document introuvable",
    "intake_not_found": "Lien de formulaire introuvable",
    "intake_already_used": "Ce lien a déjà été utilisé",
    "intake_revoked": "Ce lien a été révoqué",
    "notaire_not_found": "Notaire introuvable",
    "assignment_exists": "Ce bail est déjà assigné à ce notaire",
    "assignment_not_found": "Assignation introuvable",
    "request_not_found": "Demande introuvable",
    "message_not_found": "Message introuvable",
    "email_already_used": "Cet email est déjà utilisé par un autre client",
    "insufficient_permissions": "Permissions insuffisantes",
    "invalid_credentials": "Email ou mot de passe incorrect",
    "invalid_file_type": "Type de fichier non autorisé",
    "file_too_large": "Fichier trop volumineux",
}
