import itertools

import pytest

from models import AuditLog, Bail, Notification
from enums import (
    ProfilType, CompletionStatus, BailStatus, ActionType, EntityType, NotificationType
)
from services.completion_service import CompletionService

from factories import person_data, make_client, make_property, make_bail, make_user


@pytest.fixture
def dossier(db):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("owner@example.fr")])
    tenant = make_client(db, ProfilType.LOCATAIRE, persons=[person_data("tenant@example.fr")])
    prop = make_property(db, owner)
    bail = make_bail(db, prop, owner, tenant)
    return {"owner": owner, "tenant": tenant, "property": prop, "bail": bail}


def _complete(db, dossier, name):
    if name == "property":
        return CompletionService.set_property_completion_status(db, dossier["property"].id, CompletionStatus.COMPLETED)
    return CompletionService.set_client_completion_status(db, dossier[name].id, CompletionStatus.COMPLETED)


def _bail_status_changes(db, bail_id):
    return db.query(AuditLog).filter(
        AuditLog.entity_type == EntityType.BAIL,
        AuditLog.entity_id == bail_id,
        AuditLog.action == ActionType.STATUS_CHANGE,
    ).count()


@pytest.mark.parametrize("order", list(itertools.permutations(["owner", "tenant", "property"])))
def test_ready_for_notary_exactly_once_whatever_the_order(db, dossier, order):
    bail_id = dossier["bail"].id

    first = _complete(db, dossier, order[0])
    second = _complete(db, dossier, order[1])
    assert first.bails_transitioned == []
    assert second.bails_transitioned == []
    assert db.get(Bail, bail_id).status == BailStatus.DRAFT

    third = _complete(db, dossier, order[2])

    assert third.bails_transitioned == [bail_id]
    assert db.get(Bail, bail_id).status == BailStatus.READY_FOR_NOTARY
    assert _bail_status_changes(db, bail_id) == 1

    # Un nouveau passage ne refait pas la transition
    again = CompletionService.update_client_completion_status(db, dossier["owner"].id)
    assert again.bails_transitioned == []
    assert _bail_status_changes(db, bail_id) == 1


def test_all_pending_check_moves_draft_to_pending_validation(db, dossier):
    bail_id = dossier["bail"].id
    for name in ("owner", "tenant"):
        CompletionService.set_client_completion_status(db, dossier[name].id, CompletionStatus.PENDING_CHECK)
    result = CompletionService.set_property_completion_status(
        db, dossier["property"].id, CompletionStatus.PENDING_CHECK
    )

    assert result.bails_transitioned == [bail_id]
    assert db.get(Bail, bail_id).status == BailStatus.PENDING_VALIDATION


def test_pending_validation_then_completed_reaches_ready(db, dossier):
    bail = dossier["bail"]
    bail.status = BailStatus.PENDING_VALIDATION
    db.commit()

    for name in ("owner", "tenant", "property"):
        _complete(db, dossier, name)

    assert db.get(Bail, bail.id).status == BailStatus.READY_FOR_NOTARY


def test_mixed_statuses_leave_bail_untouched(db, dossier):
    bail_id = dossier["bail"].id
    _complete(db, dossier, "owner")
    _complete(db, dossier, "tenant")
    CompletionService.set_property_completion_status(db, dossier["property"].id, CompletionStatus.PENDING_CHECK)

    assert db.get(Bail, bail_id).status == BailStatus.DRAFT


def test_signed_bail_is_never_moved(db, dossier):
    bail = dossier["bail"]
    bail.status = BailStatus.SIGNED
    db.commit()

    for name in ("owner", "tenant", "property"):
        _complete(db, dossier, name)

    assert db.get(Bail, bail.id).status == BailStatus.SIGNED


def test_bail_without_tenant_is_skipped(db):
    owner = make_client(db, ProfilType.PROPRIETAIRE, persons=[person_data("owner@example.fr")],
                        completion_status=CompletionStatus.COMPLETED)
    prop = make_property(db, owner, completion_status=CompletionStatus.COMPLETED)
    bail = make_bail(db, prop, owner)

    assert CompletionService.propagate_bail_status(db, property_id=prop.id) == []
    assert db.get(Bail, bail.id).status == BailStatus.DRAFT


def test_propagate_without_scope_does_nothing(db, dossier):
    assert CompletionService.propagate_bail_status(db) == []


def test_transition_notifies_staff(db, dossier):
    make_user(db, "staff@bailnotarie.fr")
    for name in ("owner", "tenant", "property"):
        _complete(db, dossier, name)

    notifications = db.query(Notification).filter(
        Notification.type == NotificationType.BAIL_STATUS_CHANGED
    ).all()
    assert len(notifications) == 1
    assert notifications[0].notification_metadata == {
        "old_status": "DRAFT",
        "new_status": "READY_FOR_NOTARY",
    }
