"""
Routes API pour les pièces justificatives
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from auth import get_current_user
from models import User
from services.document_service import DocumentService
import schemas

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("/", response_model=List[schemas.DocumentOut])
async def list_documents(
    client_id: Optional[int] = None,
    property_id: Optional[int] = None,
    bail_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return DocumentService.list_documents(db, client_id, property_id, bail_id)


@router.post("/", response_model=schemas.DocumentOut, status_code=status.HTTP_201_CREATED)
async def create_document(
    data: schemas.DocumentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Enregistre un document déjà déposé dans le stockage et recalcule la
    complétude du client ou du bien concerné
    """
    document = DocumentService.create_document(db, data, user_id=current_user.id)
    db.refresh(document)
    return document


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    DocumentService.delete_document(db, document_id, user_id=current_user.id)
