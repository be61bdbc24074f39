"""
Service d'envoi d'emails via l'API Resend
Les envois sont lancés sans être attendus : un échec est journalisé, jamais propagé
"""
from typing import List, Optional, Awaitable
from dataclasses import dataclass
import asyncio
import logging
import os

import httpx

from constants import (
    APP_NAME, RESEND_API_URL, DEFAULT_EMAIL_FROM, EMAIL_TIMEOUT_SECONDS,
    COMPLETION_STATUS_LABELS
)

logger = logging.getLogger(__name__)


@dataclass
class EmailRecipient:
    """Destinataire d'un email"""
    email: str
    name: Optional[str] = None


@dataclass
class EmailMessage:
    """Message email"""
    subject: str
    html_content: str
    text_content: Optional[str] = None
    category: Optional[str] = None  # completion_status, notification, notaire...


class EmailService:
    """Service d'envoi d'emails (mode journalisation seule tant qu'il n'est pas activé)"""

    def __init__(self, api_key: Optional[str] = None, sender: Optional[str] = None, enabled: Optional[bool] = None):
        self.api_key = api_key if api_key is not None else os.getenv("RESEND_API_KEY")
        self.sender = sender or os.getenv("EMAIL_FROM", DEFAULT_EMAIL_FROM)
        if enabled is None:
            enabled = os.getenv("EMAIL_ENABLED", "false").lower() == "true"
        self.enabled = bool(enabled and self.api_key)
        self._pending = set()
        if not self.enabled:
            logger.info("EmailService initialisé en mode développement (envois désactivés)")

    async def send_email(
        self,
        recipients: List[EmailRecipient],
        message: EmailMessage,
        sender_email: Optional[str] = None
    ) -> bool:
        """
        Envoie un email aux destinataires
        En mode dev, log seulement le message
        """
        if not self.enabled:
            logger.info("[DEV MODE] Email non envoyé:")
            logger.info(f"  Destinataires: {[r.email for r in recipients]}")
            logger.info(f"  Sujet: {message.subject}")
            return True

        payload = {
            "from": sender_email or self.sender,
            "to": [r.email for r in recipients],
            "subject": message.subject,
            "html": message.html_content,
        }
        if message.text_content:
            payload["text"] = message.text_content

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        async with httpx.AsyncClient() as client:
            response = await client.post(
                RESEND_API_URL,
                headers=headers,
                json=payload,
                timeout=EMAIL_TIMEOUT_SECONDS
            )

        if response.status_code >= 400:
            logger.error(f"Resend a refusé l'email '{message.subject}': {response.status_code} {response.text}")
            return False
        return True

    def dispatch(self, send: Awaitable) -> None:
        """
        Lance un envoi sans l'attendre.
        Dans une boucle asyncio active, l'envoi devient une tâche ; sinon il est
        exécuté immédiatement. Les erreurs sont journalisées.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self._guarded(send))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        else:
            asyncio.run(self._guarded(send))

    async def _guarded(self, send: Awaitable):
        try:
            await send
        except Exception as e:
            logger.error(f"Erreur lors de l'envoi d'email: {e}")

    # ==================== GABARITS ====================

    async def send_completion_status_email(
        self,
        to: str,
        client_name: str,
        entity_type: str,
        entity_name: str,
        old_status: Optional[str],
        new_status: str,
        dashboard_url: str,
        profil_type: Optional[str] = None
    ) -> bool:
        """Informe le client d'un changement de statut de complétion (client ou bien)"""
        old_label = COMPLETION_STATUS_LABELS.get(old_status, old_status or "-")
        new_label = COMPLETION_STATUS_LABELS.get(new_status, new_status)

        if new_status == "COMPLETED":
            subject = f"✅ Vérification complétée - {APP_NAME}"
        elif new_status == "PENDING_CHECK":
            subject = f"🔵 Vérification en cours - {APP_NAME}"
        else:
            subject = f"Statut de vérification mis à jour : {old_label} → {new_label}"

        what = "votre dossier" if entity_type == "client" else f"le bien « {entity_name} »"
        html_content = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #2563eb;">{APP_NAME}</h1>
            <p>Bonjour {client_name},</p>
            <p>Le statut de vérification de {what} est passé de
               <strong>{old_label}</strong> à <strong>{new_label}</strong>.</p>
            <p><a href="{dashboard_url}">Accéder à mon espace</a></p>
        </div>
        """
        text_content = (
            f"Bonjour {client_name},\n\n"
            f"Le statut de vérification de {what} est passé de {old_label} à {new_label}.\n"
            f"Accéder à mon espace : {dashboard_url}\n"
        )

        return await self.send_email(
            [EmailRecipient(email=to, name=client_name)],
            EmailMessage(
                subject=subject,
                html_content=html_content,
                text_content=text_content,
                category="completion_status"
            )
        )

    async def send_notification_email(self, to: str, user_name: Optional[str], message: str, link: Optional[str]) -> bool:
        """Copie par email d'une notification in-app"""
        link_html = f'<p><a href="{link}">Voir dans l\'interface</a></p>' if link else ""
        return await self.send_email(
            [EmailRecipient(email=to, name=user_name)],
            EmailMessage(
                subject=f"{message} - {APP_NAME}",
                html_content=f"<p>Bonjour {user_name or ''},</p><p>{message}</p>{link_html}",
                text_content=f"{message}\n{link or ''}",
                category="notification"
            )
        )

    async def send_notaire_welcome_email(self, to: str, name: Optional[str], interface_url: str) -> bool:
        return await self.send_email(
            [EmailRecipient(email=to, name=name)],
            EmailMessage(
                subject=f"Bienvenue sur {APP_NAME}",
                html_content=(
                    f"<p>Bonjour {name or ''},</p>"
                    f"<p>Un compte notaire vient d'être créé pour vous sur {APP_NAME}.</p>"
                    f'<p><a href="{interface_url}">Accéder à l\'interface</a></p>'
                ),
                category="notaire"
            )
        )

    async def send_notaire_assignment_email(self, to: str, name: Optional[str], property_address: str, dossier_url: str) -> bool:
        return await self.send_email(
            [EmailRecipient(email=to, name=name)],
            EmailMessage(
                subject=f"Nouveau dossier assigné - {APP_NAME}",
                html_content=(
                    f"<p>Bonjour {name or ''},</p>"
                    f"<p>Un nouveau dossier vous a été assigné : {property_address}.</p>"
                    f'<p><a href="{dossier_url}">Consulter le dossier</a></p>'
                ),
                category="notaire"
            )
        )

    async def send_intake_link_email(self, to: str, name: Optional[str], form_url: str, target: str) -> bool:
        role = "bailleur" if target == "OWNER" else "locataire"
        return await self.send_email(
            [EmailRecipient(email=to, name=name)],
            EmailMessage(
                subject=f"Complétez votre dossier {role} - {APP_NAME}",
                html_content=(
                    f"<p>Bonjour {name or ''},</p>"
                    f"<p>Merci de compléter vos informations de {role} via le formulaire suivant :</p>"
                    f'<p><a href="{form_url}">{form_url}</a></p>'
                ),
                category="intake"
            )
        )


# Instance globale
email_service = EmailService()
