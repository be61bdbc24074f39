"""
Règles métier des baux d'habitation
Durées légales, plafond du dépôt de garantie, mobilier obligatoire et transitions de statut
"""
from calendar import monthrange
from datetime import date
from decimal import Decimal
from typing import Dict, FrozenSet, List, Optional

from enums import BailType, BailStatus, Role
from constants import MAX_DEPOSIT_MONTHS_UNFURNISHED, MAX_DEPOSIT_MONTHS_FURNISHED


FURNISHED_BAIL_TYPES = frozenset({BailType.BAIL_MEUBLE_1_ANS, BailType.BAIL_MEUBLE_9_MOIS})

# Durée en mois par type de bail
BAIL_DURATION_MONTHS = {
    BailType.BAIL_NU_3_ANS: 36,
    BailType.BAIL_NU_6_ANS: 72,
    BailType.BAIL_MEUBLE_1_ANS: 12,
    BailType.BAIL_MEUBLE_9_MOIS: 9,
}
DEFAULT_DURATION_MONTHS = 36

ALLOWED_TRANSITIONS: Dict[BailStatus, FrozenSet[BailStatus]] = {
    BailStatus.DRAFT: frozenset({BailStatus.PENDING_VALIDATION, BailStatus.READY_FOR_NOTARY, BailStatus.CANCELED}),
    BailStatus.PENDING_VALIDATION: frozenset({BailStatus.DRAFT, BailStatus.READY_FOR_NOTARY, BailStatus.CANCELED}),
    BailStatus.READY_FOR_NOTARY: frozenset({BailStatus.CLIENT_CONTACTED, BailStatus.SIGNED, BailStatus.CANCELED}),
    BailStatus.CLIENT_CONTACTED: frozenset({BailStatus.SIGNED, BailStatus.CANCELED}),
    BailStatus.SIGNED: frozenset({BailStatus.TERMINATED}),
    BailStatus.TERMINATED: frozenset({BailStatus.DRAFT}),
    BailStatus.CANCELED: frozenset({BailStatus.DRAFT}),
}

# Rôles autorisés par statut cible ; absent = tout utilisateur authentifié
TRANSITION_ROLES: Dict[BailStatus, FrozenSet[Role]] = {
    BailStatus.READY_FOR_NOTARY: frozenset({Role.ADMINISTRATEUR, Role.OPERATEUR, Role.REVIEWER}),
    BailStatus.SIGNED: frozenset({Role.ADMINISTRATEUR, Role.NOTAIRE}),
    BailStatus.TERMINATED: frozenset({Role.ADMINISTRATEUR, Role.NOTAIRE, Role.OPERATEUR}),
    BailStatus.CANCELED: frozenset({Role.ADMINISTRATEUR, Role.NOTAIRE, Role.OPERATEUR}),
}


def is_furnished(bail_type: Optional[BailType]) -> bool:
    return bail_type in FURNISHED_BAIL_TYPES


def add_months(start: date, months: int) -> date:
    """Ajoute des mois à une date en ramenant au dernier jour du mois si besoin"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, monthrange(year, month)[1])
    return date(year, month, day)


def calculate_bail_end_date(effective_date: Optional[date], bail_type: Optional[BailType]) -> Optional[date]:
    """Date de fin d'un bail à partir de sa date d'effet"""
    if effective_date is None:
        return None
    return add_months(effective_date, BAIL_DURATION_MONTHS.get(bail_type, DEFAULT_DURATION_MONTHS))


def max_security_deposit(rent_amount: Optional[Decimal], bail_type: Optional[BailType]) -> Optional[Decimal]:
    """Plafond légal du dépôt de garantie : 1 mois de loyer (nu) ou 2 mois (meublé)"""
    if rent_amount is None:
        return None
    months = MAX_DEPOSIT_MONTHS_FURNISHED if is_furnished(bail_type) else MAX_DEPOSIT_MONTHS_UNFURNISHED
    return Decimal(rent_amount) * months


def deposit_error(rent_amount, security_deposit, bail_type) -> Optional[str]:
    """Message d'erreur si le dépôt dépasse le plafond, sinon None"""
    if security_deposit is None:
        return None
    ceiling = max_security_deposit(rent_amount, bail_type)
    if ceiling is None or Decimal(security_deposit) <= ceiling:
        return None
    months = MAX_DEPOSIT_MONTHS_FURNISHED if is_furnished(bail_type) else MAX_DEPOSIT_MONTHS_UNFURNISHED
    return (
        f"Le dépôt de garantie ne peut pas dépasser {months} mois de loyer "
        f"hors charges ({ceiling} €)"
    )


def missing_furniture_for(property_obj, bail_type: Optional[BailType]) -> List[str]:
    """Équipements manquants pour louer le bien en meublé (liste vide si bail nu)"""
    if not is_furnished(bail_type) or property_obj is None:
        return []
    return property_obj.missing_furniture


def can_transition(current: BailStatus, target: BailStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def roles_for_transition(target: BailStatus) -> Optional[FrozenSet[Role]]:
    return TRANSITION_ROLES.get(target)
