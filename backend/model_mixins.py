"""
Mixins pour les modèles SQLAlchemy
"""
from sqlalchemy import Column, DateTime
from sqlalchemy.sql import func


class TimestampMixin:
    """
    Mixin pour ajouter des timestamps automatiques
    """
    created_at = Column(DateTime, default=func.now(), nullable=False, comment="Date de création")
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False, comment="Date de dernière modification")


class IdentityFieldsMixin:
    """
    Accès générique aux champs scalaires d'une personne ou d'une entreprise.
    Utilisé par le calcul de complétion pour savoir si une saisie a commencé.
    """
    SCALAR_FIELDS: tuple = ()

    def has_any_data(self) -> bool:
        for field in self.SCALAR_FIELDS:
            value = getattr(self, field, None)
            if isinstance(value, str):
                if value.strip():
                    return True
            elif value is not None:
                return True
        return False
