import logging
from html import escape
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_user, get_optional_user
from app.core.config import settings
from app.core.exceptions import EmailDeliveryError
from app.models.user import User
from app.models.property import Property
from app.models.lead import ContactMessage, Quote
from app.schemas.lead import (
    ContactCreate,
    ContactSubmitted,
    QuoteCreate,
    QuoteSubmitted,
    Quote as QuoteSchema,
)
from app.services.mailer import Mailer, get_mailer

logger = logging.getLogger(__name__)

contact_router = APIRouter(prefix="/contact", tags=["Contact"])
quotes_router = APIRouter(prefix="/quotes", tags=["Quotes"])


# ---------------------------------------------------------------------------
# Contact form
# ---------------------------------------------------------------------------


@contact_router.post("/", response_model=ContactSubmitted, status_code=status.HTTP_201_CREATED)
def submit_contact(data: ContactCreate, db: Session = Depends(get_db)):
    contact = ContactMessage(**data.model_dump())
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return {
        "message": (
            "Thank you for contacting us! Your message has been received and "
            "our real estate team will get in touch shortly."
        ),
        "contact": contact,
    }


# ---------------------------------------------------------------------------
# Quote requests
# ---------------------------------------------------------------------------


def _notify_quote(mailer: Mailer, quote: Quote) -> None:
    """Email the admin and the requester. Delivery failures do not fail the request."""
    pid = str(quote.property_id) if quote.property_id else None
    details = (
        f"<p><strong>Name:</strong> {escape(quote.name)}</p>"
        f"<p><strong>Email:</strong> {escape(quote.email)}</p>"
        f"<p><strong>Contact Number:</strong> {escape(quote.contact_number)}</p>"
        f"<p><strong>Message:</strong> {escape(quote.message)}</p>"
    )
    if pid:
        details += f"<p><strong>Property ID:</strong> {pid}</p>"

    if settings.ADMIN_EMAIL:
        try:
            mailer.send(
                to=settings.ADMIN_EMAIL,
                subject=f"New Quote Request for Property {pid}" if pid else "New Quote Request",
                html=f"<h3>New Quote Request</h3>{details}",
                from_name="Quote Request",
            )
        except EmailDeliveryError:
            logger.exception("Admin notification for quote %s failed", quote.id)

    regarding = f"Property ID: {pid}" if pid else "our properties"
    try:
        mailer.send(
            to=quote.email,
            subject="Your Quote Request Received",
            html=(
                "<h3>Thank you for your quote request!</h3>"
                f"<p>Hi {escape(quote.name)},</p>"
                f"<p>We have received your request regarding {regarding}.</p>"
                "<p>Our team will contact you shortly.</p>"
                "<p>Here's a copy of your message:</p>"
                f"<p>{escape(quote.message)}</p>"
            ),
            from_name="Property Quotes",
        )
    except EmailDeliveryError:
        logger.exception("Confirmation email for quote %s failed", quote.id)


@quotes_router.post("/", response_model=QuoteSubmitted, status_code=status.HTTP_201_CREATED)
def create_quote(
    data: QuoteCreate,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    mailer: Mailer = Depends(get_mailer),
):
    if data.property_id and not db.query(Property.id).filter(Property.id == data.property_id).first():
        raise HTTPException(status_code=404, detail="Property not found")

    quote = Quote(**data.model_dump(), user_id=current_user.id if current_user else None)
    db.add(quote)
    db.commit()
    db.refresh(quote)

    _notify_quote(mailer, quote)
    return {"message": "Quote request submitted successfully", "quote": quote}


@quotes_router.get("/my", response_model=List[QuoteSchema])
def my_quotes(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Quotes filed while logged in, or anonymously with the same email."""
    return (
        db.query(Quote)
        .filter(or_(Quote.user_id == current_user.id, Quote.email == current_user.email))
        .order_by(Quote.created_at.desc())
        .all()
    )
