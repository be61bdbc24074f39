from datetime import date

import pytest

from models import IntakeLink, Property, Bail, Client, Notification
from enums import IntakeTarget, IntakeStatus, ProfilType, BailStatus, NotificationType
from error_handlers import IntakeError, ConflictError, BusinessRuleError, NotFoundError
from services.intake_service import IntakeService
import schemas

from factories import person_data, make_client


def _owner_payload(email="owner@example.fr", tenant_email="Locataire@Example.fr", **bail):
    terms = {
        "bail_type": "BAIL_NU_3_ANS",
        "rent_amount": "850",
        "security_deposit": "850",
        "effective_date": "2026-03-01",
    }
    terms.update(bail)
    payload = {
        "person": {
            "first_name": "Jeanne",
            "last_name": "Martin",
            "profession": "Architecte",
            "nationality": "Française",
            "birth_date": "1985-04-12",
            "birth_place": "Lyon",
            "email": email,
            "phone": "0601020304",
            "full_address": "12 rue des Lilas, 69003 Lyon",
            "family_status": "CELIBATAIRE",
        },
        "property": {"full_address": "3 place Bellecour, 69002 Lyon", "label": "T3 Bellecour"},
        "bail": terms,
    }
    if tenant_email:
        payload["tenant_email"] = tenant_email
    return payload


@pytest.fixture
def service(db):
    return IntakeService(db)


@pytest.fixture
def lead(db):
    return make_client(db, ProfilType.LEAD, persons=[{"email": "owner@example.fr"}])


@pytest.fixture
def owner_link(service, lead):
    return service.create_link(schemas.IntakeLinkCreate(target=IntakeTarget.OWNER, client_id=lead.id))


# ==================== LIENS ====================

def test_token_is_64_hex_characters(owner_link):
    assert len(owner_link.token) == 64
    int(owner_link.token, 16)
    assert owner_link.status == IntakeStatus.PENDING


def test_link_email_is_sent_on_request(service, lead, sent_emails):
    link = service.create_link(schemas.IntakeLinkCreate(
        target=IntakeTarget.OWNER, client_id=lead.id, send_email=True
    ))

    intake = [e for e in sent_emails if e["category"] == "intake"]
    assert len(intake) == 1
    assert intake[0]["to"] == ["owner@example.fr"]
    assert link.token in service.form_url(link.token)


def test_tenant_cannot_receive_owner_form(service, db):
    tenant = make_client(db, ProfilType.LOCATAIRE, persons=[person_data("tenant@example.fr")])

    with pytest.raises(BusinessRuleError):
        service.create_link(schemas.IntakeLinkCreate(target=IntakeTarget.OWNER, client_id=tenant.id))


def test_unknown_token_is_not_found(service):
    with pytest.raises(NotFoundError):
        service.submit("0" * 64, _owner_payload())


def test_regenerate_reopens_link(service, owner_link):
    old_token = owner_link.token
    service.revoke(owner_link.id)

    link = service.regenerate_token(owner_link.id)

    assert link.token != old_token
    assert link.status == IntakeStatus.PENDING


# ==================== FORMULAIRE BAILLEUR ====================

def test_owner_submission_builds_the_dossier(service, db, lead, owner_link):
    result = service.submit(owner_link.token, _owner_payload())

    owner = db.get(Client, lead.id)
    prop = db.get(Property, result["property_id"])
    bail = db.get(Bail, result["bail_id"])
    tenant = db.get(Client, result["tenant_client_id"])
    link = db.get(IntakeLink, owner_link.id)

    assert owner.profil_type == ProfilType.PROPRIETAIRE
    assert owner.primary_person.last_name == "Martin"
    assert prop.owner_id == owner.id
    assert bail.status == BailStatus.DRAFT
    assert bail.property_id == prop.id
    assert bail.end_date == date(2029, 3, 1)
    assert bail.owner_party.id == owner.id
    assert bail.tenant_party.id == tenant.id
    assert tenant.profil_type == ProfilType.LOCATAIRE
    assert tenant.contact_email == "locataire@example.fr"

    assert link.status == IntakeStatus.SUBMITTED
    assert link.submitted_at is not None
    assert link.raw_payload["property"]["label"] == "T3 Bellecour"

    tenant_link = db.query(IntakeLink).filter(IntakeLink.token == result["tenant_intake_token"]).one()
    assert tenant_link.target == IntakeTarget.TENANT
    assert tenant_link.status == IntakeStatus.PENDING
    assert tenant_link.bail_id == bail.id


def test_owner_submission_sends_tenant_link_and_notifies(service, db, owner_link, admin, sent_emails):
    service.submit(owner_link.token, _owner_payload())

    intake_emails = [e for e in sent_emails if e["category"] == "intake"]
    assert [e["to"] for e in intake_emails] == [["locataire@example.fr"]]
    submitted = db.query(Notification).filter(Notification.type == NotificationType.INTAKE_SUBMITTED).all()
    assert len(submitted) == 1
    assert submitted[0].notification_metadata == {"intake_target": "OWNER"}


def test_submitted_link_cannot_be_reused(service, owner_link):
    service.submit(owner_link.token, _owner_payload())

    with pytest.raises(IntakeError):
        service.submit(owner_link.token, _owner_payload())


def test_revoked_link_refuses_submission_and_draft(service, owner_link):
    service.revoke(owner_link.id)

    with pytest.raises(IntakeError):
        service.submit(owner_link.token, _owner_payload())
    with pytest.raises(IntakeError):
        service.submit(owner_link.token, _owner_payload(), final=False)


def test_email_of_another_client_is_refused(service, db, owner_link):
    make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("taken@example.fr")])

    with pytest.raises(ConflictError):
        service.submit(owner_link.token, _owner_payload(email="taken@example.fr"))

    assert db.query(Property).count() == 0
    assert db.get(IntakeLink, owner_link.id).status == IntakeStatus.PENDING


def test_owner_email_as_tenant_is_refused(service, owner_link):
    with pytest.raises(ConflictError):
        service.submit(owner_link.token, _owner_payload(tenant_email="owner@example.fr"))


def test_draft_keeps_link_open_and_final_reuses_property(service, db, owner_link):
    draft = service.submit(owner_link.token, _owner_payload(tenant_email=None), final=False)

    link = db.get(IntakeLink, owner_link.id)
    assert link.status == IntakeStatus.PENDING
    assert link.raw_payload is not None

    final = service.submit(owner_link.token, _owner_payload(tenant_email=None))

    assert final["property_id"] == draft["property_id"]
    assert final["bail_id"] == draft["bail_id"]
    assert db.query(Property).count() == 1
    assert db.get(IntakeLink, owner_link.id).status == IntakeStatus.SUBMITTED


def test_furnished_lease_requires_furniture(service, db, owner_link):
    with pytest.raises(BusinessRuleError):
        service.submit(owner_link.token, _owner_payload(bail_type="BAIL_MEUBLE_1_ANS", security_deposit="1700"))

    assert db.query(Bail).count() == 0


def test_owner_form_on_tenant_link_is_refused(service, db):
    tenant = make_client(db, ProfilType.LOCATAIRE, persons=[person_data("tenant@example.fr")])
    link = service.create_link(schemas.IntakeLinkCreate(target=IntakeTarget.TENANT, client_id=tenant.id))

    with pytest.raises(IntakeError):
        service.submit_owner_form(link.token, schemas.OwnerIntakeForm.model_validate(_owner_payload()))


# ==================== FORMULAIRE LOCATAIRE ====================

def test_tenant_submission_fills_persons(service, db, owner_link):
    result = service.submit(owner_link.token, _owner_payload())
    token = result["tenant_intake_token"]

    payload = {"persons": [
        {"first_name": "Alice", "last_name": "Durand", "email": "locataire@example.fr"},
        {"first_name": "Bruno", "last_name": "Durand"},
    ]}
    tenant_result = service.submit(token, payload)

    tenant = db.get(Client, result["tenant_client_id"])
    assert tenant_result["client_id"] == tenant.id
    assert tenant_result["bail_id"] == result["bail_id"]
    assert [p.first_name for p in tenant.persons] == ["Alice", "Bruno"]
    assert tenant.primary_person.first_name == "Alice"
    link = db.query(IntakeLink).filter(IntakeLink.token == token).one()
    assert link.status == IntakeStatus.SUBMITTED


def test_replaced_tenant_link_is_revoked(service, db, owner_link):
    first = service.submit(owner_link.token, _owner_payload(tenant_email="alice@example.fr"), final=False)
    second = service.submit(owner_link.token, _owner_payload(tenant_email="bruno@example.fr"), final=False)

    old_link = db.query(IntakeLink).filter(IntakeLink.token == first["tenant_intake_token"]).one()
    new_link = db.query(IntakeLink).filter(IntakeLink.token == second["tenant_intake_token"]).one()
    assert old_link.status == IntakeStatus.REVOKED
    assert new_link.status == IntakeStatus.PENDING
    bail = db.get(Bail, second["bail_id"])
    assert second["tenant_client_id"] in [c.id for c in bail.parties]
    assert first["tenant_client_id"] not in [c.id for c in bail.parties]

    with pytest.raises(IntakeError):
        service.submit(first["tenant_intake_token"], {"persons": [{"first_name": "Alice", "last_name": "Durand"}]})


def test_empty_tenant_form_is_invalid(service, db):
    tenant = make_client(db, ProfilType.LEAD, persons=[{"email": "lead@example.fr"}])
    link = service.create_link(schemas.IntakeLinkCreate(target=IntakeTarget.TENANT, client_id=tenant.id))

    with pytest.raises(ValueError):
        service.submit(link.token, {"persons": []})


def test_lead_tenant_is_converted(service, db):
    lead = make_client(db, ProfilType.LEAD, persons=[{"email": "lead@example.fr"}])
    link = service.create_link(schemas.IntakeLinkCreate(target=IntakeTarget.TENANT, client_id=lead.id))

    service.submit(link.token, {"persons": [person_data("lead@example.fr", birth_date="1990-01-01",
                                                        family_status="CELIBATAIRE")]})

    assert db.get(Client, lead.id).profil_type == ProfilType.LOCATAIRE
