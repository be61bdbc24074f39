"""
Routes API des notifications de l'utilisateur connecté
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Any, Dict

from database import get_db
from auth import get_current_user
from models import User
from services.notification_service import NotificationService
import schemas

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/", response_model=schemas.NotificationList)
async def get_my_notifications(
    unread_only: bool = Query(False, description="Uniquement les notifications non lues"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotificationService.get_user_notifications(db, current_user.id, unread_only, limit, offset)


@router.post("/mark-read")
async def mark_notifications_read(
    data: schemas.MarkReadRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    count = NotificationService.mark_as_read(db, current_user.id, data.notification_ids, data.mark_all)
    return {"updated": count}


@router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    count = NotificationService.mark_as_read(db, current_user.id, [notification_id])
    return {"updated": count}
