"""
Gestionnaires d'erreurs centralisés pour l'application BailNotarie
Standardisation de la gestion et du format des erreurs
"""
from typing import Dict, Any, List
from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, DataError


class ErrorResponse:
    """Structure standardisée pour les réponses d'erreur"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        status_code: int = 400
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convertit en dictionnaire pour la réponse JSON"""
        response = {
            "error": True,
            "message": self.message
        }

        if self.error_code:
            response["error_code"] = self.error_code

        if self.details:
            response["details"] = self.details

        return response

    def to_json_response(self) -> JSONResponse:
        """Retourne une JSONResponse FastAPI"""
        return JSONResponse(
            status_code=self.status_code,
            content=self.to_dict()
        )


# ==================== ERREURS MÉTIER ====================

class BailNotarieError(Exception):
    """Erreur métier levée par les services, traduite en réponse JSON par l'application"""

    error_code = "BUSINESS_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Dict[str, Any] = None, error_code: str = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_error_response(self) -> ErrorResponse:
        return ErrorResponse(
            message=self.message,
            error_code=self.error_code,
            details=self.details,
            status_code=self.status_code
        )


class NotFoundError(BailNotarieError):
    error_code = "RESOURCE_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class BusinessRuleError(BailNotarieError):
    error_code = "BUSINESS_RULE_VIOLATION"
    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(BailNotarieError):
    error_code = "ACCESS_DENIED"
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(BailNotarieError):
    error_code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT


class IntakeError(BailNotarieError):
    """Lien de formulaire inutilisable (déjà soumis, révoqué, mauvaise cible)"""
    error_code = "INTAKE_UNAVAILABLE"
    status_code = status.HTTP_410_GONE


class DeletionBlockedError(ConflictError):
    """Suppression refusée tant que des entités dépendantes existent"""
    error_code = "DELETION_BLOCKED"

    def __init__(self, message: str, blocking_entities: List[Dict[str, Any]]):
        super().__init__(message, details={"blocking_entities": blocking_entities})
        self.blocking_entities = blocking_entities


class DatabaseErrorHandler:
    """Gestionnaire pour les erreurs de base de données"""

    @staticmethod
    def handle_integrity_error(
        error: IntegrityError,
        db_session = None,
        request: Request = None
    ) -> ErrorResponse:
        """
        Gère les erreurs d'intégrité de la base de données (MySQL et SQLite)
        """
        error_message = str(error.orig)
        lowered = error_message.lower()

        if "duplicate entry" in lowered or "unique constraint failed" in lowered:
            if "email" in lowered:
                return ErrorResponse(
                    message="Cette adresse email est déjà utilisée",
                    error_code="EMAIL_ALREADY_EXISTS",
                    status_code=status.HTTP_409_CONFLICT
                )
            if "uq_bail_notaire" in lowered or "bail_id, dossier_notaire_assignments.notaire_id" in lowered:
                return ErrorResponse(
                    message="Ce bail est déjà assigné à ce notaire",
                    error_code="ASSIGNMENT_ALREADY_EXISTS",
                    status_code=status.HTTP_409_CONFLICT
                )
            return ErrorResponse(
                message="Cette valeur existe déjà dans la base de données",
                error_code="DUPLICATE_ENTRY",
                status_code=status.HTTP_409_CONFLICT
            )

        elif "foreign key constraint fails" in lowered and "parent row" in lowered:
            return ErrorResponse(
                message="Impossible de supprimer: des éléments dépendants existent",
                error_code="PARENT_ROW_CONSTRAINT",
                status_code=status.HTTP_409_CONFLICT
            )

        elif "foreign key constraint" in lowered:
            return ErrorResponse(
                message="Référence invalide: l'élément lié n'existe pas",
                error_code="FOREIGN_KEY_VIOLATION",
                status_code=status.HTTP_400_BAD_REQUEST
            )

        elif "not null constraint" in lowered or "cannot be null" in lowered:
            return ErrorResponse(
                message="Un champ requis est manquant",
                error_code="REQUIRED_FIELD_MISSING",
                status_code=status.HTTP_400_BAD_REQUEST
            )

        return ErrorResponse(
            message="Erreur de contrainte de base de données",
            error_code="INTEGRITY_ERROR",
            details={"technical_message": error_message},
            status_code=status.HTTP_400_BAD_REQUEST
        )

    @staticmethod
    def handle_data_error(
        error: DataError,
        db_session = None,
        request: Request = None
    ) -> ErrorResponse:
        """
        Gère les erreurs de données de la base de données
        """
        error_message = str(error.orig)

        if "Data too long" in error_message:
            return ErrorResponse(
                message="Données trop longues pour le champ spécifié",
                error_code="DATA_TOO_LONG",
                status_code=status.HTTP_400_BAD_REQUEST
            )

        elif "Incorrect" in error_message and "value" in error_message:
            return ErrorResponse(
                message="Format de données incorrect",
                error_code="INVALID_DATA_FORMAT",
                status_code=status.HTTP_400_BAD_REQUEST
            )

        return ErrorResponse(
            message="Erreur de format de données",
            error_code="DATA_ERROR",
            details={"technical_message": error_message},
            status_code=status.HTTP_400_BAD_REQUEST
        )



class PermissionErrorHandler:
    """Gestionnaire pour les erreurs d'authentification"""

    @staticmethod
    def unauthorized(message: str = "Authentification requise") -> ErrorResponse:
        return ErrorResponse(
            message=message,
            error_code="UNAUTHORIZED",
            status_code=status.HTTP_401_UNAUTHORIZED
        )
