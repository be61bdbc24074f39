"""
Règles de complétude des dossiers
Champs et pièces exigés selon la nature du client, son profil et sa situation familiale
"""
from dataclasses import dataclass, field
from typing import List, Optional

from enums import (
    ClientType, ProfilType, FamilyStatus, MatrimonialRegime,
    BienLegalStatus, DocumentKind
)


# Identité minimale exigée de chaque personne physique (y compris co-occupants)
BASE_IDENTITY_FIELDS = ("first_name", "last_name", "nationality", "birth_date", "birth_place")

# Pièces vérifiées de façon spécifique (par personne, par entreprise ou une fois par client)
SPECIAL_DOCUMENT_KINDS = frozenset({
    DocumentKind.ID_IDENTITY,
    DocumentKind.LIVRET_DE_FAMILLE,
    DocumentKind.CONTRAT_DE_PACS,
    DocumentKind.KBIS,
    DocumentKind.STATUTES,
})

# Champs examinés pour savoir si la saisie d'un bien a commencé
PROPERTY_DATA_FIELDS = ("full_address", "label", "surface_m2", "type", "legal_status")


@dataclass
class RequiredSet:
    """Champs et pièces exigés pour un client ou un bien"""
    required_fields: List[str] = field(default_factory=list)
    required_documents: List[DocumentKind] = field(default_factory=list)

    def add_fields(self, *names: str):
        for name in names:
            if name not in self.required_fields:
                self.required_fields.append(name)

    def add_documents(self, *kinds: DocumentKind):
        for kind in kinds:
            if kind not in self.required_documents:
                self.required_documents.append(kind)


def get_required_client_fields(
    client_type: Optional[ClientType],
    profil_type: Optional[ProfilType],
    family_status: Optional[FamilyStatus] = None,
    matrimonial_regime: Optional[MatrimonialRegime] = None,
) -> RequiredSet:
    """
    Retourne les champs et pièces exigés pour un client.

    Un prospect (LEAD) n'a aucune exigence. Les valeurs inconnues ou absentes
    n'ajoutent rien. Le régime matrimonial est exigé pour toute personne mariée,
    qu'il soit déjà renseigné ou non.
    """
    required = RequiredSet()

    if profil_type == ProfilType.LEAD:
        return required

    if client_type == ClientType.PERSONNE_PHYSIQUE:
        required.add_fields(*BASE_IDENTITY_FIELDS)
        required.add_fields("email")
        required.add_documents(DocumentKind.ID_IDENTITY)

        if family_status == FamilyStatus.MARIE:
            required.add_fields("matrimonial_regime")
            required.add_documents(DocumentKind.LIVRET_DE_FAMILLE)
        elif family_status == FamilyStatus.PACS:
            required.add_documents(DocumentKind.CONTRAT_DE_PACS)

    elif client_type == ClientType.PERSONNE_MORALE:
        required.add_fields("legal_name", "registration", "email")
        required.add_documents(DocumentKind.KBIS, DocumentKind.STATUTES)

    if profil_type == ProfilType.PROPRIETAIRE:
        # L'assurance et le RIB du bailleur sont rattachés au bien
        required.add_fields("phone", "full_address")
    elif profil_type == ProfilType.LOCATAIRE:
        required.add_fields("phone", "full_address")
        required.add_documents(DocumentKind.INSURANCE, DocumentKind.RIB)

    return required


def get_required_property_fields(legal_status: Optional[BienLegalStatus]) -> RequiredSet:
    """Retourne les champs et pièces exigés pour un bien"""
    required = RequiredSet()
    required.add_fields("full_address")
    required.add_documents(
        DocumentKind.DIAGNOSTICS,
        DocumentKind.TITLE_DEED,
        DocumentKind.INSURANCE,
        DocumentKind.RIB,
    )

    if legal_status == BienLegalStatus.CO_PROPRIETE:
        required.add_documents(DocumentKind.REGLEMENT_COPROPRIETE)
    elif legal_status == BienLegalStatus.LOTISSEMENT:
        required.add_documents(
            DocumentKind.CAHIER_DE_CHARGE_LOTISSEMENT,
            DocumentKind.STATUT_DE_LASSOCIATION_SYNDICALE,
        )

    return required


def is_field_missing(value) -> bool:
    """Un champ est manquant s'il est absent ou réduit à des espaces"""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False
