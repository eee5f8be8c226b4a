from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.models.user import User
from app.models.lead import ContactMessage, Quote
from app.schemas.lead import ContactMessage as ContactSchema, Quote as QuoteSchema
from app.schemas.common import PaginatedResponse, paginate

contacts_router = APIRouter(prefix="/admin/contacts", tags=["Admin - Leads"])
quotes_router = APIRouter(prefix="/admin/quotes", tags=["Admin - Leads"])


@contacts_router.get("/", response_model=PaginatedResponse[ContactSchema])
def list_contacts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    query = db.query(ContactMessage)
    total = query.count()
    contacts = query.order_by(ContactMessage.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return PaginatedResponse(**paginate(contacts, total, page, limit))


@quotes_router.get("/", response_model=PaginatedResponse[QuoteSchema])
def list_quotes(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    query = db.query(Quote)
    total = query.count()
    quotes = query.order_by(Quote.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return PaginatedResponse(**paginate(quotes, total, page, limit))


@quotes_router.get("/{id}", response_model=QuoteSchema)
def get_quote(
    id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    quote = db.query(Quote).filter(Quote.id == id).first()
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return quote


@quotes_router.delete("/{id}", status_code=status.HTTP_200_OK)
def delete_quote(
    id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    quote = db.query(Quote).filter(Quote.id == id).first()
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    db.delete(quote)
    db.commit()
    return {"id": str(id), "message": "Quote deleted successfully"}
