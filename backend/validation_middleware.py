"""
Gestionnaires d'exceptions de l'application avec messages détaillés en français
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, DataError
import logging

from error_handlers import BailNotarieError, DatabaseErrorHandler

logger = logging.getLogger(__name__)

# Traduction des noms de champs pour les messages d'erreur
FIELD_TRANSLATIONS = {
    'email': 'Email',
    'password': 'Mot de passe',
    'first_name': 'Prénom',
    'last_name': 'Nom',
    'phone': 'Téléphone',
    'full_address': 'Adresse',
    'nationality': 'Nationalité',
    'birth_date': 'Date de naissance',
    'birth_place': 'Lieu de naissance',
    'legal_name': 'Raison sociale',
    'registration': 'SIREN / SIRET',
    'rent_amount': 'Loyer',
    'monthly_charges': 'Charges mensuelles',
    'security_deposit': 'Dépôt de garantie',
    'payment_day': 'Jour de paiement',
    'effective_date': "Date d'effet",
    'surface_m2': 'Surface',
    'tenant_email': 'Email du locataire',
}


class ValidationErrorHandler:
    """Gestionnaire d'erreurs de validation personnalisé"""

    @staticmethod
    def format_validation_error(validation_error) -> dict:
        """
        Formate les erreurs de validation Pydantic en messages utilisateur lisibles
        """
        errors = {}

        for error in validation_error.errors():
            loc = [str(x) for x in error['loc'] if x not in ('body', 'query', 'path')]
            field_path = '.'.join(loc)
            error_type = error['type']
            error_msg = error['msg']
            ctx = error.get('ctx') or {}

            if error_type == 'missing':
                message = 'Ce champ est requis'
            elif error_type == 'value_error' and 'email' in error_msg.lower():
                message = "Format d'email invalide"
            elif error_type == 'string_too_long':
                message = f"Ne peut pas dépasser {ctx.get('max_length', 'N/A')} caractères"
            elif error_type == 'string_too_short':
                message = f"Doit contenir au moins {ctx.get('min_length', 'N/A')} caractères"
            elif error_type in ('greater_than_equal', 'greater_than'):
                message = f"Doit être supérieur ou égal à {ctx.get('ge', ctx.get('gt', 'N/A'))}"
            elif error_type in ('less_than_equal', 'less_than'):
                message = f"Doit être inférieur ou égal à {ctx.get('le', ctx.get('lt', 'N/A'))}"
            elif error_type in ('int_parsing', 'int_type'):
                message = 'Doit être un nombre entier'
            elif error_type in ('bool_parsing', 'bool_type'):
                message = 'Doit être vrai ou faux'
            elif error_type == 'enum':
                message = f"Valeur invalide, attendue : {ctx.get('expected', 'N/A')}"
            elif error_type == 'value_error':
                # Message de nos validateurs, sans le préfixe ajouté par Pydantic
                message = error_msg.removeprefix('Value error, ')
            else:
                message = error_msg

            field_name = FIELD_TRANSLATIONS.get(loc[-1] if loc else field_path, field_path)

            errors.setdefault(field_path, []).append({
                'field': field_name,
                'message': message,
                'type': error_type
            })

        return {
            'detail': 'Erreurs de validation',
            'errors': errors,
            'type': 'validation_error'
        }


async def validation_exception_handler(request: Request, exc: ValidationError):
    """
    Gestionnaire d'exceptions pour les erreurs de validation Pydantic
    """
    logger.warning(f"Validation error on {request.url}: {exc}")
    return JSONResponse(
        status_code=422,
        content=ValidationErrorHandler.format_validation_error(exc)
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Gestionnaire d'exceptions pour les erreurs de validation de requête FastAPI
    """
    logger.warning(f"Request validation error on {request.url}: {exc}")
    return JSONResponse(
        status_code=422,
        content=ValidationErrorHandler.format_validation_error(exc)
    )


async def business_exception_handler(request: Request, exc: BailNotarieError):
    """
    Gestionnaire des erreurs métier levées par les services
    """
    logger.info(f"Business error on {request.url}: {exc.error_code} {exc.message}")
    return exc.to_error_response().to_json_response()


async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.url}: {exc.orig}")
    return DatabaseErrorHandler.handle_integrity_error(exc, request=request).to_json_response()


async def data_exception_handler(request: Request, exc: DataError):
    logger.warning(f"Data error on {request.url}: {exc.orig}")
    return DatabaseErrorHandler.handle_data_error(exc, request=request).to_json_response()


async def general_exception_handler(request: Request, exc: Exception):
    """
    Gestionnaire d'exceptions général pour toutes les autres erreurs
    """
    logger.exception(f"Unhandled error on {request.url}: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            'detail': 'Erreur interne du serveur',
            'type': 'server_error'
        }
    )
