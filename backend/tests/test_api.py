from enums import ProfilType, CompletionStatus, BailStatus, Role, ActionType, NotificationType
from models import Client, Notification, AuditLog
from services.notification_service import NotificationService

from factories import person_data, make_client, make_property, make_bail, make_user


def _owner(db, email="owner@example.fr"):
    return make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data(email)])


def _tenant(db, email="tenant@example.fr"):
    return make_client(db, ProfilType.LOCATAIRE, persons=[person_data(email)])


# ==================== FORMAT DES ERREURS ====================

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_not_found_uses_standard_error_body(client):
    response = client.get("/api/clients/999")

    assert response.status_code == 404
    body = response.json()
    assert body["error"] is True
    assert body["error_code"] == "RESOURCE_NOT_FOUND"
    assert body["message"] == "Client introuvable"


def test_validation_errors_are_reported_in_french(client):
    response = client.post("/api/clients/", json={
        "type": "PERSONNE_PHYSIQUE",
        "profil_type": "PROPRIETAIRE",
        "persons": [{"first_name": "Jeanne", "phone": "abc"}],
    })

    assert response.status_code == 422
    body = response.json()
    assert body["type"] == "validation_error"
    errors = body["errors"]["persons.0.phone"]
    assert errors[0]["field"] == "Téléphone"
    assert "caractères invalides" in errors[0]["message"]


# ==================== CLIENTS ====================

def test_create_client_computes_completion(client, db):
    response = client.post("/api/clients/", json={
        "type": "PERSONNE_PHYSIQUE",
        "profil_type": "PROPRIETAIRE",
        "persons": [{"first_name": "Jeanne", "last_name": "Martin", "email": "Jeanne@Example.fr"}],
    })

    assert response.status_code == 201
    body = response.json()
    assert body["persons"][0]["is_primary"] is True
    assert body["persons"][0]["email"] == "jeanne@example.fr"
    assert db.get(Client, body["id"]).completion_status == CompletionStatus.PARTIAL


def test_client_completion_detail(client, db):
    owner = _owner(db)

    response = client.get(f"/api/clients/{owner.id}/completion")

    assert response.status_code == 200
    body = response.json()
    assert body["has_all_fields"] is True
    assert body["missing_documents"] == ["ID_IDENTITY"]
    assert body["persons"][0]["missing_documents"] == ["ID_IDENTITY"]


def test_client_with_property_cannot_be_deleted(client, db):
    owner = _owner(db)
    prop = make_property(db, owner)

    response = client.delete(f"/api/clients/{owner.id}")

    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "DELETION_BLOCKED"
    assert body["details"]["blocking_entities"] == [
        {"type": "PROPERTY", "id": prop.id, "label": "T3 Bellecour"}
    ]


def test_lead_can_be_deleted(client, db):
    lead = make_client(db, ProfilType.LEAD, persons=[{"email": "lead@example.fr"}])

    response = client.delete(f"/api/clients/{lead.id}")

    assert response.status_code == 204
    assert db.get(Client, lead.id) is None


def test_completion_override_requires_reviewer_or_admin(client, db, operateur, login_as):
    owner = _owner(db)

    login_as(operateur)
    denied = client.patch(f"/api/clients/{owner.id}/completion-status", json={"completion_status": "COMPLETED"})
    assert denied.status_code == 403

    reviewer = make_user(db, "reviewer@bailnotarie.fr", Role.REVIEWER)
    login_as(reviewer)
    accepted = client.patch(f"/api/clients/{owner.id}/completion-status", json={"completion_status": "COMPLETED"})

    assert accepted.status_code == 200
    assert accepted.json()["new_status"] == "COMPLETED"
    db.refresh(owner)
    assert owner.completion_status == CompletionStatus.COMPLETED


def test_completion_override_on_unknown_client(client):
    response = client.patch("/api/clients/4242/completion-status", json={"completion_status": "COMPLETED"})

    assert response.status_code == 404


# ==================== DOCUMENTS ====================

def test_document_upload_recomputes_client_status(client, db):
    owner = _owner(db)
    owner.completion_status = CompletionStatus.PARTIAL
    db.commit()

    response = client.post("/api/documents/", json={
        "kind": "ID_IDENTITY",
        "file_key": "clients/cni.pdf",
        "mime_type": "application/pdf",
        "person_id": owner.persons[0].id,
    })

    assert response.status_code == 201
    db.refresh(owner)
    assert owner.completion_status == CompletionStatus.PENDING_CHECK


def test_document_needs_exactly_one_owner(client, db):
    owner = _owner(db)
    prop = make_property(db, owner)

    response = client.post("/api/documents/", json={
        "kind": "RIB",
        "file_key": "rib.pdf",
        "client_id": owner.id,
        "property_id": prop.id,
    })

    assert response.status_code == 422


def test_document_on_unknown_property(client):
    response = client.post("/api/documents/", json={"kind": "RIB", "file_key": "rib.pdf", "property_id": 77})

    assert response.status_code == 404


def test_list_client_documents_includes_person_documents(client, db):
    owner = _owner(db)
    client.post("/api/documents/", json={
        "kind": "ID_IDENTITY", "file_key": "cni.pdf", "person_id": owner.persons[0].id,
    })
    client.post("/api/documents/", json={"kind": "OTHER", "file_key": "note.pdf", "client_id": owner.id})

    response = client.get("/api/documents/", params={"client_id": owner.id})

    assert sorted(d["kind"] for d in response.json()) == ["ID_IDENTITY", "OTHER"]


# ==================== BAUX ====================

def test_create_lease_computes_end_date(client, db):
    owner = _owner(db)
    tenant = _tenant(db)
    prop = make_property(db, owner)

    response = client.post("/api/leases/", json={
        "property_id": prop.id,
        "tenant_id": tenant.id,
        "bail_type": "BAIL_NU_3_ANS",
        "rent_amount": "800",
        "security_deposit": "800",
        "effective_date": "2026-01-31",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "DRAFT"
    assert body["end_date"] == "2029-01-31"
    assert {p["id"] for p in body["parties"]} == {owner.id, tenant.id}


def test_deposit_above_legal_ceiling_is_rejected(client, db):
    prop = make_property(db, _owner(db))

    response = client.post("/api/leases/", json={
        "property_id": prop.id,
        "bail_type": "BAIL_NU_3_ANS",
        "rent_amount": "800",
        "security_deposit": "1600",
    })

    assert response.status_code == 422
    assert "dépôt de garantie" in str(response.json()["errors"])


def test_furnished_lease_requires_furniture(client, db):
    prop = make_property(db, _owner(db))

    response = client.post("/api/leases/", json={
        "property_id": prop.id,
        "bail_type": "BAIL_MEUBLE_1_ANS",
        "rent_amount": "800",
        "security_deposit": "1600",
    })

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "BUSINESS_RULE_VIOLATION"
    assert "has_literie" in body["details"]["missing_furniture"]


def test_owner_cannot_be_chosen_as_tenant(client, db):
    owner = _owner(db)
    prop = make_property(db, owner)

    response = client.post("/api/leases/", json={"property_id": prop.id, "tenant_id": owner.id})

    assert response.status_code == 400


def test_lease_creation_with_completed_parties_is_ready(client, db):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("owner@example.fr")],
                        completion_status=CompletionStatus.COMPLETED)
    tenant = make_client(db, ProfilType.LOCATAIRE, persons=[person_data("tenant@example.fr")],
                         completion_status=CompletionStatus.COMPLETED)
    prop = make_property(db, owner, completion_status=CompletionStatus.COMPLETED)

    response = client.post("/api/leases/", json={"property_id": prop.id, "tenant_id": tenant.id})

    assert response.json()["status"] == "READY_FOR_NOTARY"


def test_signature_is_reserved_to_notary_or_admin(client, db, operateur, login_as):
    owner = _owner(db)
    bail = make_bail(db, make_property(db, owner), owner, _tenant(db), status=BailStatus.READY_FOR_NOTARY)

    login_as(operateur)
    response = client.post(f"/api/leases/{bail.id}/transition", json={"next_status": "SIGNED"})

    assert response.status_code == 403
    assert response.json()["error_code"] == "ACCESS_DENIED"


def test_invalid_transition_is_refused(client, db):
    owner = _owner(db)
    bail = make_bail(db, make_property(db, owner), owner)

    response = client.post(f"/api/leases/{bail.id}/transition", json={"next_status": "SIGNED"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_STATUS_TRANSITION"


def test_notary_signs_ready_lease(client, db, notaire, login_as):
    owner = _owner(db)
    bail = make_bail(db, make_property(db, owner), owner, _tenant(db), status=BailStatus.READY_FOR_NOTARY)

    login_as(notaire)
    response = client.post(f"/api/leases/{bail.id}/transition", json={"next_status": "SIGNED"})

    assert response.status_code == 200
    assert response.json()["status"] == "SIGNED"


# ==================== NOTAIRES ====================

def _assigned_bail(client, db, notaire):
    owner = _owner(db)
    tenant = _tenant(db)
    bail = make_bail(db, make_property(db, owner), owner, tenant, status=BailStatus.READY_FOR_NOTARY)
    response = client.post("/api/notaires/assignments", json={"bail_id": bail.id, "notaire_id": notaire.id})
    assert response.status_code == 201
    return bail, owner, tenant, response.json()


def test_assignment_links_owner_and_refuses_duplicates(client, db, notaire):
    bail, owner, _, assignment = _assigned_bail(client, db, notaire)

    assert assignment["client_id"] == owner.id
    assert assignment["property_id"] == bail.property_id

    duplicate = client.post("/api/notaires/assignments", json={"bail_id": bail.id, "notaire_id": notaire.id})
    assert duplicate.status_code == 409


def test_assignment_is_reserved_to_admin(client, db, notaire, operateur, login_as):
    owner = _owner(db)
    bail = make_bail(db, make_property(db, owner), owner, _tenant(db), status=BailStatus.READY_FOR_NOTARY)
    login_as(operateur)

    response = client.post("/api/notaires/assignments", json={"bail_id": bail.id, "notaire_id": notaire.id})

    assert response.status_code == 403


def test_notary_only_sees_own_dossiers(client, db, notaire, login_as):
    _assigned_bail(client, db, notaire)
    other = make_user(db, "autre@etude.fr", Role.NOTAIRE)

    login_as(other)
    response = client.get("/api/notaires/assignments")

    assert response.json() == []


def test_notary_cannot_open_foreign_dossier(client, db, notaire, login_as):
    _, _, _, assignment = _assigned_bail(client, db, notaire)
    other = make_user(db, "autre@etude.fr", Role.NOTAIRE)

    login_as(other)
    response = client.get(f"/api/notaires/assignments/{assignment['id']}")

    assert response.status_code == 403


def test_notary_request_on_dossier(client, db, notaire, login_as):
    _, _, _, assignment = _assigned_bail(client, db, notaire)

    login_as(notaire)
    created = client.post(f"/api/notaires/assignments/{assignment['id']}/requests", json={
        "type": "DOCUMENT",
        "title": "Diagnostics",
        "content": "Merci de fournir le DPE",
        "target_proprietaire": True,
    })
    assert created.status_code == 201
    assert created.json()["status"] == "PENDING"

    updated = client.patch(f"/api/notaires/requests/{created.json()['id']}", json={"status": "COMPLETED"})
    assert updated.json()["status"] == "COMPLETED"


def test_notary_message_rules(client, db, notaire, operateur, login_as):
    bail, owner, _, _ = _assigned_bail(client, db, notaire)
    outsider = _owner(db, "outsider@example.fr")
    url = f"/api/notaires/leases/{bail.id}/messages"

    login_as(notaire)
    assert client.post(url, json={"content": "Bonjour"}).status_code == 400
    assert client.post(url, json={"content": "Bonjour", "recipient_party_id": outsider.id}).status_code == 400

    sent = client.post(url, json={"content": "  Bonjour  ", "recipient_party_id": owner.id})
    assert sent.status_code == 201
    assert sent.json()["content"] == "Bonjour"

    login_as(operateur)
    assert client.delete(f"/api/notaires/messages/{sent.json()['id']}").status_code == 403

    login_as(notaire)
    assert client.delete(f"/api/notaires/messages/{sent.json()['id']}").status_code == 204
    assert client.get(url).json() == []


def test_empty_message_is_invalid(client, db, notaire):
    bail, _, _, _ = _assigned_bail(client, db, notaire)

    response = client.post(f"/api/notaires/leases/{bail.id}/messages", json={"content": "   "})

    assert response.status_code == 422


# ==================== NOTIFICATIONS ====================

def test_notifications_listing_and_mark_read(client, db, admin, operateur, login_as):
    login_as(operateur)
    client.post("/api/clients/", json={"profil_type": "LEAD", "persons": [{"email": "lead@example.fr"}]})

    login_as(admin)
    listing = client.get("/api/notifications/").json()
    assert listing["unread_count"] >= 1
    lead_created = [n for n in listing["notifications"] if n["type"] == "LEAD_CREATED"]
    assert lead_created[0]["message"] == "Nouveau lead créé"

    marked = client.post(f"/api/notifications/{lead_created[0]['id']}/read").json()
    assert marked == {"updated": 1}

    client.post("/api/notifications/mark-read", json={"mark_all": True})
    assert client.get("/api/notifications/", params={"unread_only": True}).json()["total_count"] == 0


def test_author_is_not_notified_of_own_action(client, db, admin):
    client.post("/api/clients/", json={"profil_type": "LEAD", "persons": [{"email": "lead@example.fr"}]})

    assert db.query(Notification).filter(Notification.recipient_id == admin.id).count() == 0


def test_notification_limit_is_bounded(client):
    assert client.get("/api/notifications/", params={"limit": 500}).status_code == 422


# ==================== FORMULAIRES PUBLICS ====================

def test_public_intake_submission_is_single_use(client, db):
    lead = make_client(db, ProfilType.LEAD, persons=[{"email": "owner@example.fr"}])
    link = client.post("/api/intakes/", json={"target": "OWNER", "client_id": lead.id}).json()
    payload = {
        "person": {"first_name": "Jeanne", "last_name": "Martin", "email": "owner@example.fr"},
        "property": {"full_address": "3 place Bellecour, 69002 Lyon"},
    }

    public = client.get(f"/api/intakes/public/{link['token']}")
    assert public.json()["status"] == "PENDING"

    first = client.post(f"/api/intakes/public/{link['token']}/submit", json=payload)
    assert first.status_code == 200
    assert first.json()["property_id"] is not None

    second = client.post(f"/api/intakes/public/{link['token']}/submit", json=payload)
    assert second.status_code == 410
    assert second.json()["error_code"] == "INTAKE_UNAVAILABLE"


def test_refused_role_is_audited(client, db, operateur, login_as):
    login_as(operateur)
    client.post("/api/notaires/", json={"email": "nouveau@etude.fr"})

    denied = db.query(AuditLog).filter(AuditLog.action == ActionType.ACCESS_DENIED).all()
    assert len(denied) == 1
    assert denied[0].user_id == operateur.id


def test_single_user_notification(db, admin, operateur):
    NotificationService.create_for_user(
        db, operateur.id, NotificationType.BAIL_STATUS_CHANGED, "BAIL", 12, created_by_id=admin.id,
        metadata={"old_status": "DRAFT", "new_status": "PENDING_VALIDATION"}
    )

    listing = NotificationService.get_user_notifications(db, operateur.id)
    assert listing["unread_count"] == 1
    assert listing["notifications"][0]["message"] == "Bail en attente de validation par bailnotarie"
    assert listing["notifications"][0]["link"].endswith("/baux/12")
    assert NotificationService.get_user_notifications(db, admin.id)["total_count"] == 0
