"""
Fabriques de données pour les tests
"""
from datetime import date
from decimal import Decimal

from models import User, Client, Person, Entreprise, Property, Bail, Document
from enums import (
    Role, ClientType, ProfilType, CompletionStatus, FamilyStatus, BailStatus, BailType,
    DocumentKind
)


def person_data(email, **overrides):
    """Identité complète d'une personne physique"""
    data = {
        "first_name": "Jeanne",
        "last_name": "Martin",
        "profession": "Architecte",
        "nationality": "Française",
        "birth_date": date(1985, 4, 12),
        "birth_place": "Lyon",
        "email": email,
        "phone": "0601020304",
        "full_address": "12 rue des Lilas, 69003 Lyon",
        "family_status": FamilyStatus.CELIBATAIRE,
    }
    data.update(overrides)
    return data


def make_user(db, email, role=Role.OPERATEUR):
    user = User(email=email, name=email.split("@")[0], role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_client(db, profil_type=ProfilType.PROPRIETAIRE, persons=None, entreprise=None,
                client_type=None, completion_status=CompletionStatus.NOT_STARTED):
    if client_type is None:
        client_type = ClientType.PERSONNE_MORALE if entreprise else ClientType.PERSONNE_PHYSIQUE
    client = Client(type=client_type, profil_type=profil_type, completion_status=completion_status)
    for index, data in enumerate(persons or []):
        client.persons.append(Person(is_primary=index == 0, **data))
    if entreprise:
        client.entreprise = Entreprise(**entreprise)
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


def add_document(db, kind, **owner):
    document = Document(kind=kind, file_key=f"tests/{kind.value.lower()}.pdf", mime_type="application/pdf", **owner)
    db.add(document)
    db.commit()
    db.refresh(document)
    return document


def make_property(db, owner, completion_status=CompletionStatus.NOT_STARTED, **fields):
    values = {"full_address": "3 place Bellecour, 69002 Lyon", "label": "T3 Bellecour"}
    values.update(fields)
    prop = Property(owner_id=owner.id, completion_status=completion_status, **values)
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


def make_bail(db, prop, owner, tenant=None, status=BailStatus.DRAFT, bail_type=BailType.BAIL_NU_3_ANS):
    bail = Bail(
        bail_type=bail_type,
        status=status,
        rent_amount=Decimal("900.00"),
        security_deposit=Decimal("900.00"),
        effective_date=date(2026, 1, 1),
        property_id=prop.id,
    )
    bail.parties = [owner] + ([tenant] if tenant is not None else [])
    db.add(bail)
    db.commit()
    db.refresh(bail)
    return bail


def complete_property_documents(db, prop):
    for kind in (DocumentKind.DIAGNOSTICS, DocumentKind.TITLE_DEED, DocumentKind.INSURANCE, DocumentKind.RIB):
        add_document(db, kind, property_id=prop.id)


def completion_emails(sent):
    return [e for e in sent if e["category"] == "completion_status"]
