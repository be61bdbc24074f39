"""
Service de notifications in-app
Système de cloche pour informer l'équipe des événements sur les dossiers
"""
from sqlalchemy.orm import Session
from sqlalchemy import desc, func
from typing import Dict, Any, List, Optional
from datetime import datetime
import logging

from models import Notification, User
from enums import NotificationType, BailStatus
from constants import APP_URL, INTERFACE_PATH
from email_service import email_service

logger = logging.getLogger(__name__)


# Libellés des transitions de bail connues
BAIL_TRANSITION_MESSAGES = {
    (BailStatus.DRAFT.value, BailStatus.PENDING_VALIDATION.value): "Bail en attente de validation par bailnotarie",
    (BailStatus.PENDING_VALIDATION.value, BailStatus.READY_FOR_NOTARY.value): "Bail prêt a être assigné au notaire",
    (BailStatus.DRAFT.value, BailStatus.READY_FOR_NOTARY.value): "Bail prêt a être assigné au notaire",
    (BailStatus.READY_FOR_NOTARY.value, BailStatus.SIGNED.value): "Bail signé",
    (BailStatus.SIGNED.value, BailStatus.TERMINATED.value): "Bail terminé",
    (BailStatus.TERMINATED.value, BailStatus.DRAFT.value): "Bail réinitialisé",
}

SIMPLE_MESSAGES = {
    NotificationType.CLIENT_UPDATED: "Client modifié",
    NotificationType.CLIENT_DELETED: "Client supprimé",
    NotificationType.PROPERTY_UPDATED: "Bien modifié",
    NotificationType.PROPERTY_DELETED: "Bien supprimé",
    NotificationType.BAIL_UPDATED: "Bail modifié",
    NotificationType.BAIL_DELETED: "Bail supprimé",
    NotificationType.INTAKE_REVOKED: "Lien d'intake révoqué",
    NotificationType.LEAD_CREATED: "Nouveau lead créé",
    NotificationType.DOCUMENT_CREATED: "Nouveau document ajouté",
    NotificationType.NOTAIRE_REQUEST_CREATED: "Nouvelle demande du notaire",
    NotificationType.MESSAGE_RECEIVED: "Nouveau message sur un bail",
}


class NotificationService:
    """
    Service de gestion des notifications utilisateur
    """

    @staticmethod
    def build_message(notification_type: NotificationType, metadata: Optional[Dict[str, Any]] = None) -> str:
        """
        Texte affiché pour une notification, dérivé du type et des métadonnées
        """
        metadata = metadata or {}

        if notification_type in (
            NotificationType.CLIENT_CREATED,
            NotificationType.PROPERTY_CREATED,
            NotificationType.BAIL_CREATED,
        ):
            noun = {
                NotificationType.CLIENT_CREATED: "client",
                NotificationType.PROPERTY_CREATED: "bien",
                NotificationType.BAIL_CREATED: "bail",
            }[notification_type]
            suffix = " via formulaire" if metadata.get("created_by_form") else ""
            return f"Nouveau {noun} créé{suffix}"

        if notification_type == NotificationType.BAIL_STATUS_CHANGED:
            key = (metadata.get("old_status"), metadata.get("new_status"))
            return BAIL_TRANSITION_MESSAGES.get(key, "Statut du bail modifié")

        if notification_type == NotificationType.INTAKE_SUBMITTED:
            who = "propriétaire" if metadata.get("intake_target") == "OWNER" else "locataire"
            return f"Formulaire {who} soumis"

        if notification_type == NotificationType.COMPLETION_STATUS_CHANGED:
            entity = "client" if metadata.get("entity_type") == "CLIENT" else "bien"
            return (
                f"Statut de complétion du {entity} changé: "
                f"{metadata.get('old_status')} → {metadata.get('new_status')}"
            )

        if notification_type == NotificationType.LEAD_CONVERTED:
            role = "propriétaire" if metadata.get("new_profil_type") == "PROPRIETAIRE" else "locataire"
            return f"Lead converti en {role}"

        return SIMPLE_MESSAGES.get(notification_type, "Nouvelle notification")

    @staticmethod
    def build_link(target_type: Optional[str], target_id: Optional[int]) -> str:
        """
        Lien vers la page de l'interface concernée par la notification
        """
        base = f"{APP_URL}{INTERFACE_PATH}"
        if target_type == "INTAKE":
            return f"{base}/intakes"
        if target_id:
            path = {"CLIENT": "clients", "PROPERTY": "properties", "BAIL": "baux"}.get(target_type)
            if path:
                return f"{base}/{path}/{target_id}"
        return f"{base}/notifications"

    @staticmethod
    def create_for_users(
        db: Session,
        user_ids: List[int],
        notification_type: NotificationType,
        target_type: str,
        target_id: Optional[int] = None,
        created_by_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        send_email: bool = True
    ) -> List[Notification]:
        """
        Crée une notification par destinataire et envoie la copie par email
        """
        if not user_ids:
            return []

        notifications = [
            Notification(
                type=notification_type,
                target_type=target_type,
                target_id=target_id,
                recipient_id=user_id,
                created_by_id=created_by_id,
                notification_metadata=metadata
            )
            for user_id in user_ids
        ]
        db.add_all(notifications)
        db.commit()

        if send_email:
            message = NotificationService.build_message(notification_type, metadata)
            link = NotificationService.build_link(target_type, target_id)
            recipients = db.query(User).filter(User.id.in_(user_ids), User.is_active == True).all()
            for user in recipients:
                email_service.dispatch(
                    email_service.send_notification_email(user.email, user.name, message, link)
                )

        return notifications

    @staticmethod
    def create_for_user(
        db: Session,
        user_id: int,
        notification_type: NotificationType,
        target_type: str,
        target_id: Optional[int] = None,
        created_by_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[Notification]:
        notifications = NotificationService.create_for_users(
            db, [user_id], notification_type, target_type, target_id, created_by_id, metadata
        )
        return notifications[0] if notifications else None

    @staticmethod
    def create_for_all_users(
        db: Session,
        notification_type: NotificationType,
        target_type: str,
        target_id: Optional[int] = None,
        created_by_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        send_email: bool = True
    ) -> List[Notification]:
        """
        Notifie tous les utilisateurs actifs, sauf l'auteur de l'action
        """
        query = db.query(User.id).filter(User.is_active == True)
        if created_by_id:
            query = query.filter(User.id != created_by_id)
        user_ids = [row.id for row in query.all()]

        logger.debug(f"Notification {notification_type.value} pour {len(user_ids)} utilisateur(s)")
        return NotificationService.create_for_users(
            db, user_ids, notification_type, target_type, target_id, created_by_id, metadata, send_email
        )

    @staticmethod
    def get_user_notifications(
        db: Session,
        user_id: int,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> Dict[str, Any]:
        """
        Récupère les notifications d'un utilisateur
        """
        query = db.query(Notification).filter(Notification.recipient_id == user_id)

        if unread_only:
            query = query.filter(Notification.is_read == False)

        total_count = query.count()

        notifications = query.order_by(
            desc(Notification.created_at), desc(Notification.id)
        ).offset(offset).limit(limit).all()

        unread_count = db.query(func.count(Notification.id)).filter(
            Notification.recipient_id == user_id,
            Notification.is_read == False
        ).scalar()

        notifications_data = []
        for notif in notifications:
            notifications_data.append({
                "id": notif.id,
                "type": notif.type,
                "target_type": notif.target_type,
                "target_id": notif.target_id,
                "message": NotificationService.build_message(notif.type, notif.notification_metadata),
                "link": NotificationService.build_link(notif.target_type, notif.target_id),
                "is_read": notif.is_read,
                "created_at": notif.created_at,
                "read_at": notif.read_at,
                "metadata": notif.notification_metadata
            })

        return {
            "notifications": notifications_data,
            "total_count": total_count,
            "unread_count": unread_count,
            "has_more": (offset + limit) < total_count
        }

    @staticmethod
    def mark_as_read(
        db: Session,
        user_id: int,
        notification_ids: List[int] = None,
        mark_all: bool = False
    ) -> int:
        """
        Marque des notifications comme lues
        Retourne le nombre de notifications mises à jour
        """
        query = db.query(Notification).filter(
            Notification.recipient_id == user_id,
            Notification.is_read == False
        )

        if not mark_all:
            if not notification_ids:
                return 0
            query = query.filter(Notification.id.in_(notification_ids))

        count = query.update({
            Notification.is_read: True,
            Notification.read_at: datetime.utcnow()
        }, synchronize_session=False)

        db.commit()
        return count
