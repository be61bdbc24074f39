from enums import ClientType, ProfilType, FamilyStatus, MatrimonialRegime, BienLegalStatus, DocumentKind
from required_fields import (
    BASE_IDENTITY_FIELDS, get_required_client_fields, get_required_property_fields, is_field_missing
)


def test_lead_requires_nothing():
    required = get_required_client_fields(ClientType.PERSONNE_PHYSIQUE, ProfilType.LEAD, FamilyStatus.MARIE)

    assert required.required_fields == []
    assert required.required_documents == []


def test_moral_owner_requires_kbis_and_statutes_only():
    required = get_required_client_fields(ClientType.PERSONNE_MORALE, ProfilType.PROPRIETAIRE, None, None)

    assert required.required_documents == [DocumentKind.KBIS, DocumentKind.STATUTES]
    assert {"legal_name", "registration", "email", "phone", "full_address"} == set(required.required_fields)


def test_physical_owner_baseline():
    required = get_required_client_fields(ClientType.PERSONNE_PHYSIQUE, ProfilType.PROPRIETAIRE, FamilyStatus.CELIBATAIRE)

    assert required.required_documents == [DocumentKind.ID_IDENTITY]
    for name in BASE_IDENTITY_FIELDS:
        assert name in required.required_fields
    assert "email" in required.required_fields
    assert "matrimonial_regime" not in required.required_fields


def test_married_person_requires_regime_and_livret():
    required = get_required_client_fields(
        ClientType.PERSONNE_PHYSIQUE, ProfilType.PROPRIETAIRE,
        FamilyStatus.MARIE, MatrimonialRegime.SEPARATION_DE_BIENS
    )

    assert "matrimonial_regime" in required.required_fields
    assert DocumentKind.LIVRET_DE_FAMILLE in required.required_documents


def test_married_person_without_regime_still_requires_it():
    required = get_required_client_fields(ClientType.PERSONNE_PHYSIQUE, ProfilType.PROPRIETAIRE, FamilyStatus.MARIE)

    assert "matrimonial_regime" in required.required_fields


def test_pacs_requires_contract():
    required = get_required_client_fields(ClientType.PERSONNE_PHYSIQUE, ProfilType.LOCATAIRE, FamilyStatus.PACS)

    assert DocumentKind.CONTRAT_DE_PACS in required.required_documents
    assert DocumentKind.LIVRET_DE_FAMILLE not in required.required_documents
    assert "matrimonial_regime" not in required.required_fields


def test_tenant_requires_insurance_and_rib():
    required = get_required_client_fields(ClientType.PERSONNE_PHYSIQUE, ProfilType.LOCATAIRE)

    assert required.required_documents == [DocumentKind.ID_IDENTITY, DocumentKind.INSURANCE, DocumentKind.RIB]


def test_unknown_client_type_adds_only_profile_requirements():
    required = get_required_client_fields(None, ProfilType.PROPRIETAIRE)

    assert required.required_fields == ["phone", "full_address"]
    assert required.required_documents == []


def test_property_requirements_by_legal_status():
    base = get_required_property_fields(None)
    copro = get_required_property_fields(BienLegalStatus.CO_PROPRIETE)
    lotissement = get_required_property_fields(BienLegalStatus.LOTISSEMENT)

    assert base.required_fields == ["full_address"]
    assert base.required_documents == [
        DocumentKind.DIAGNOSTICS, DocumentKind.TITLE_DEED, DocumentKind.INSURANCE, DocumentKind.RIB
    ]
    assert copro.required_documents[-1] == DocumentKind.REGLEMENT_COPROPRIETE
    assert DocumentKind.CAHIER_DE_CHARGE_LOTISSEMENT in lotissement.required_documents
    assert DocumentKind.STATUT_DE_LASSOCIATION_SYNDICALE in lotissement.required_documents


def test_blank_strings_count_as_missing():
    assert is_field_missing(None)
    assert is_field_missing("   ")
    assert not is_field_missing("Lyon")
    assert not is_field_missing(0)
