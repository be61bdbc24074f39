"""
Configuration centralisée de l'application BailNotarie
Organisation des routes, middleware et configuration
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, DataError
from pydantic import ValidationError

from database import engine
import models

from middleware import RequestLoggingMiddleware
from error_handlers import BailNotarieError
from validation_middleware import (
    validation_exception_handler, request_validation_exception_handler,
    business_exception_handler, integrity_exception_handler, data_exception_handler,
    general_exception_handler
)

from controllers.auth_controller import router as auth_router
import client_routes
import property_routes
import lease_routes
import document_routes
import intake_routes
import notaire_routes
import notification_routes

from constants import APP_NAME, APP_VERSION, APP_DESCRIPTION, CORS_ORIGINS


class AppConfigurator:
    """
    Configurateur centralisé pour l'application FastAPI
    """

    @staticmethod
    def create_app(create_tables: bool = True) -> FastAPI:
        """
        Crée et configure l'application FastAPI
        """
        if create_tables:
            models.Base.metadata.create_all(bind=engine)

        app = FastAPI(
            title=APP_NAME,
            version=APP_VERSION,
            description=APP_DESCRIPTION
        )

        AppConfigurator._configure_middlewares(app)
        AppConfigurator._configure_exception_handlers(app)
        AppConfigurator._configure_routes(app)

        return app

    @staticmethod
    def _configure_middlewares(app: FastAPI):
        app.add_middleware(
            CORSMiddleware,
            allow_origins=CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
        app.add_middleware(RequestLoggingMiddleware)

    @staticmethod
    def _configure_exception_handlers(app: FastAPI):
        """
        Configure tous les gestionnaires d'exceptions
        """
        app.add_exception_handler(ValidationError, validation_exception_handler)
        app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
        app.add_exception_handler(BailNotarieError, business_exception_handler)
        app.add_exception_handler(IntegrityError, integrity_exception_handler)
        app.add_exception_handler(DataError, data_exception_handler)
        app.add_exception_handler(Exception, general_exception_handler)

    @staticmethod
    def _configure_routes(app: FastAPI):
        app.include_router(auth_router)

        # Routes métier
        app.include_router(client_routes.router)
        app.include_router(property_routes.router)
        app.include_router(lease_routes.router)
        app.include_router(document_routes.router)
        app.include_router(intake_routes.router)
        app.include_router(notaire_routes.router)
        app.include_router(notification_routes.router)

        @app.get("/health", tags=["health"])
        async def health():
            return {"status": "ok", "app": APP_NAME}
