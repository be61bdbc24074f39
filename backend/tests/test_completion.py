from enums import (
    ProfilType, CompletionStatus, FamilyStatus, MatrimonialRegime, DocumentKind, ClientType
)
from models import Client
from email_service import email_service
from services.completion_service import CompletionService

from factories import (
    person_data, make_client, add_document, make_property, complete_property_documents,
    completion_emails
)


def _married_owner(db):
    return make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data(
        "jeanne@example.fr",
        family_status=FamilyStatus.MARIE,
        matrimonial_regime=MatrimonialRegime.COMMUNAUTE_REDUITE_AUX_ACQUETS,
    )])


# ==================== VÉRIFICATION ====================

def test_married_owner_with_all_documents_is_complete(db):
    owner = _married_owner(db)
    add_document(db, DocumentKind.ID_IDENTITY, person_id=owner.persons[0].id)
    add_document(db, DocumentKind.LIVRET_DE_FAMILLE, client_id=owner.id)

    check = CompletionService.check_client_completion(db, owner.id)

    assert check.has_all_fields
    assert check.has_all_documents
    assert check.missing_fields == []
    assert check.missing_documents == []


def test_married_owner_without_livret_misses_exactly_livret(db):
    owner = _married_owner(db)
    add_document(db, DocumentKind.ID_IDENTITY, person_id=owner.persons[0].id)

    check = CompletionService.check_client_completion(db, owner.id)

    assert check.has_all_fields
    assert not check.has_all_documents
    assert check.missing_documents == [DocumentKind.LIVRET_DE_FAMILLE]


def test_client_level_identity_counts_for_primary_person(db):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("paul@example.fr")])
    add_document(db, DocumentKind.ID_IDENTITY, client_id=owner.id)

    check = CompletionService.check_client_completion(db, owner.id)

    assert check.has_all_documents


def test_co_occupant_needs_own_identity_document(db):
    tenant = make_client(db, ProfilType.LOCATAIRE, persons=[
        person_data("alice@example.fr"),
        person_data(None, first_name="Bruno", phone=None, full_address=None),
    ])
    primary, second = tenant.persons
    add_document(db, DocumentKind.ID_IDENTITY, person_id=primary.id)
    add_document(db, DocumentKind.INSURANCE, client_id=tenant.id)
    add_document(db, DocumentKind.RIB, client_id=tenant.id)

    detailed = CompletionService.check_client_completion_detailed(db, tenant.id)

    # Le co-occupant n'est contrôlé que sur l'identité de base
    assert detailed.has_all_fields
    assert detailed.missing_documents == [DocumentKind.ID_IDENTITY]
    by_id = {p.person_id: p for p in detailed.persons}
    assert by_id[primary.id].missing_documents == []
    assert by_id[second.id].missing_documents == [DocumentKind.ID_IDENTITY]


def test_co_occupant_missing_identity_field_is_reported(db):
    tenant = make_client(db, ProfilType.LOCATAIRE, persons=[
        person_data("alice@example.fr"),
        person_data(None, birth_place="  "),
    ])

    detailed = CompletionService.check_client_completion_detailed(db, tenant.id)

    assert "birth_place" in detailed.missing_fields
    assert detailed.persons[1].missing_fields == ["birth_place"]


def test_moral_person_documents_on_entreprise(db):
    company = make_client(db, ProfilType.PROPRIETAIRE, entreprise={
        "legal_name": "SCI Bellecour",
        "registration": "123456789",
        "email": "contact@sci-bellecour.fr",
        "phone": "0478000000",
        "full_address": "1 quai Saint-Antoine, 69002 Lyon",
    })
    add_document(db, DocumentKind.KBIS, entreprise_id=company.entreprise.id)

    detailed = CompletionService.check_client_completion_detailed(db, company.id)

    assert detailed.has_all_fields
    assert detailed.missing_documents == [DocumentKind.STATUTES]
    assert detailed.entreprise.missing_documents == [DocumentKind.STATUTES]


def test_unknown_client_gives_empty_negative_result(db):
    check = CompletionService.check_client_completion(db, 9999)

    assert not check.has_all_fields
    assert not check.has_all_documents
    assert check.missing_fields == []


def test_property_checker_lists_missing_documents(db):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("owner@example.fr")])
    prop = make_property(db, owner)
    add_document(db, DocumentKind.TITLE_DEED, property_id=prop.id)

    check = CompletionService.check_property_completion(db, prop.id)

    assert check.has_all_fields
    assert check.missing_documents == [DocumentKind.DIAGNOSTICS, DocumentKind.INSURANCE, DocumentKind.RIB]


# ==================== CALCUL DU STATUT ====================

def test_completed_client_stays_completed(db):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("x@example.fr", first_name=None)],
                        completion_status=CompletionStatus.COMPLETED)

    assert CompletionService.calculate_client_completion_status(db, owner.id) == CompletionStatus.COMPLETED


def test_pending_check_survives_a_cleared_field(db):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("x@example.fr")],
                        completion_status=CompletionStatus.PENDING_CHECK)
    owner.persons[0].last_name = None
    db.commit()

    assert CompletionService.calculate_client_completion_status(db, owner.id) == CompletionStatus.PENDING_CHECK


def test_empty_lead_is_not_started(db):
    lead = make_client(db, ProfilType.LEAD)

    assert CompletionService.calculate_client_completion_status(db, lead.id) == CompletionStatus.NOT_STARTED


def test_lead_with_data_waits_for_check(db):
    lead = make_client(db, ProfilType.LEAD, persons=[{"email": "prospect@example.fr"}])

    assert CompletionService.calculate_client_completion_status(db, lead.id) == CompletionStatus.PENDING_CHECK


def test_partial_then_pending_check(db):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("x@example.fr")])
    assert CompletionService.calculate_client_completion_status(db, owner.id) == CompletionStatus.PARTIAL

    add_document(db, DocumentKind.ID_IDENTITY, person_id=owner.persons[0].id)
    assert CompletionService.calculate_client_completion_status(db, owner.id) == CompletionStatus.PENDING_CHECK


def test_only_documents_is_partial(db):
    owner = make_client(db, ProfilType.PROPRIETAIRE, client_type=ClientType.PERSONNE_PHYSIQUE)
    add_document(db, DocumentKind.ID_IDENTITY, client_id=owner.id)

    assert CompletionService.calculate_client_completion_status(db, owner.id) == CompletionStatus.PARTIAL


def test_property_status_never_reaches_completed_automatically(db):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("x@example.fr")])
    prop = make_property(db, owner)
    complete_property_documents(db, prop)

    assert CompletionService.calculate_property_completion_status(db, prop.id) == CompletionStatus.PENDING_CHECK


def test_unknown_property_is_not_started(db):
    assert CompletionService.calculate_property_completion_status(db, 4242) == CompletionStatus.NOT_STARTED


# ==================== MISE À JOUR ====================

def test_update_persists_and_emails_once(db, sent_emails):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("owner@example.fr")])
    prop = make_property(db, owner)
    complete_property_documents(db, prop)

    first = CompletionService.update_property_completion_status(db, prop.id)
    second = CompletionService.update_property_completion_status(db, prop.id)

    assert first.changed
    assert first.old_status == CompletionStatus.NOT_STARTED
    assert first.new_status == CompletionStatus.PENDING_CHECK
    assert not second.changed
    emails = completion_emails(sent_emails)
    assert len(emails) == 1
    assert emails[0]["to"] == ["owner@example.fr"]
    assert emails[0]["subject"].startswith("🔵")


def test_update_unknown_client_is_a_no_op(db, sent_emails):
    result = CompletionService.update_client_completion_status(db, 123456)

    assert result.old_status is None
    assert not result.changed
    assert sent_emails == []


def test_client_without_email_changes_status_silently(db, sent_emails):
    client = make_client(db, ProfilType.PROPRIETAIRE, persons=[{"first_name": "Sans", "last_name": "Email"}])

    result = CompletionService.update_client_completion_status(db, client.id)

    assert result.changed
    assert result.new_status == CompletionStatus.PARTIAL
    assert completion_emails(sent_emails) == []


def test_email_failure_keeps_status_change(db, monkeypatch):
    async def failing_send_email(recipients, message, sender_email=None):
        raise RuntimeError("Resend indisponible")

    monkeypatch.setattr(email_service, "send_email", failing_send_email)
    client = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("owner@example.fr")])

    result = CompletionService.update_client_completion_status(db, client.id)

    assert result.changed
    db.expire_all()
    assert db.get(Client, client.id).completion_status == result.new_status


def test_admin_override_reaches_completed(db, sent_emails):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("owner@example.fr")],
                        completion_status=CompletionStatus.PENDING_CHECK)

    result = CompletionService.set_client_completion_status(db, owner.id, CompletionStatus.COMPLETED)

    db.refresh(owner)
    assert result.changed
    assert owner.completion_status == CompletionStatus.COMPLETED
    assert completion_emails(sent_emails)[0]["subject"].startswith("✅")
