"""
Point d'entrée de l'API BailNotarie
Lancement : uvicorn main:app --reload
"""
import logging
import os

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)

from app_config import AppConfigurator  # noqa: E402
from constants import APP_NAME, APP_VERSION  # noqa: E402

# Créer l'application avec la configuration centralisée
app = AppConfigurator.create_app()


@app.get("/")
async def root():
    """Point d'entrée de l'API"""
    return {
        "message": f"API {APP_NAME}",
        "version": APP_VERSION,
        "status": "active"
    }
