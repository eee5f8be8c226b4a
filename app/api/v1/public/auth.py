import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.config import settings
from app.core.exceptions import EmailDeliveryError
from app.core.security import (
    create_access_token,
    generate_otp,
    generate_reset_token,
    get_password_hash,
    verify_password,
)
from app.api.deps import get_current_user, get_optional_user
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.user import (
    UserCreate,
    AdminCreate,
    LoginRequest,
    Token,
    OTPRequest,
    OTPVerify,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    NewsletterSubscribe,
    User as UserSchema,
)
from app.services.mailer import Mailer, get_mailer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _build_token_response(user: User) -> Token:
    access_token = create_access_token(subject=str(user.id), role=user.role)
    return Token(
        access_token=access_token,
        token_type="bearer",
        user=UserSchema.model_validate(user),
    )


def _authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email.lower()).first()
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )
    return user


def _create_user(db: Session, body: UserCreate, role: str) -> User:
    email = body.email.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing and not existing.is_newsletter_only:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )
    # A newsletter-only subscriber becomes a full account on signup
    user = existing or User(email=email)
    user.name = body.name
    user.phone = body.phone
    user.password_hash = get_password_hash(body.password)
    user.role = role
    if existing:
        user.is_newsletter_only = False
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _is_expired(expires_at: Optional[datetime]) -> bool:
    if expires_at is None:
        return True
    # SQLite hands back naive datetimes
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < _now()


# ---------------------------------------------------------------------------
# Signup / login
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=Token, status_code=status.HTTP_201_CREATED)
def signup(body: UserCreate, db: Session = Depends(get_db)):
    user = _create_user(db, body, role="user")
    return _build_token_response(user)


@router.post("/admin/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def admin_register(body: AdminCreate, db: Session = Depends(get_db)):
    if body.admin_secret != settings.ADMIN_SECRET_KEY:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin secret",
        )
    user = _create_user(db, body, role="admin")
    return _build_token_response(user)


@router.post("/login", response_model=Token)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    return _build_token_response(_authenticate(db, body.email, body.password))


@router.post("/token", response_model=Token)
def login_form(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """OAuth2 password flow, used by the interactive docs."""
    return _build_token_response(_authenticate(db, form_data.username, form_data.password))


@router.get("/me", response_model=Optional[UserSchema])
def read_me(current_user: Optional[User] = Depends(get_optional_user)):
    """Current user for frontend auto-fill; null for anonymous requests."""
    return current_user


@router.post("/logout", status_code=status.HTTP_200_OK)
def logout(current_user: User = Depends(get_current_user)):
    """
    Logout the current user.
    Since we are using stateless JWTs, the client should discard the token.
    """
    return {"message": "Successfully logged out"}


# ---------------------------------------------------------------------------
# One-time password login
# ---------------------------------------------------------------------------


@router.post("/otp/send", response_model=MessageResponse)
def send_login_otp(
    body: OTPRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    user = db.query(User).filter(User.email == body.email.lower()).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    otp = generate_otp()
    user.otp = otp
    user.otp_expires_at = _now() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
    db.commit()

    mailer.send(
        to=user.email,
        subject="Your Login OTP",
        text=f"Your OTP is {otp}. It expires in {settings.OTP_EXPIRE_MINUTES} minutes.",
    )
    return {"message": "OTP sent successfully. Check your email."}


@router.post("/otp/verify", response_model=Token)
def verify_login_otp(body: OTPVerify, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.lower()).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.otp or user.otp != body.otp:
        raise HTTPException(status_code=400, detail="Invalid OTP")
    if _is_expired(user.otp_expires_at):
        raise HTTPException(status_code=400, detail="OTP has expired")

    user.otp = None
    user.otp_expires_at = None
    db.commit()
    db.refresh(user)
    return _build_token_response(user)


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    email = body.email.lower()
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    token = generate_reset_token()
    user.reset_token = token
    user.reset_token_expires_at = _now() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    if user.is_newsletter_only:
        user.is_newsletter_only = False
        user.newsletter = True
    db.commit()

    reset_url = f"{settings.FRONTEND_URL}/user/reset-password?token={token}&email={email}"
    try:
        mailer.send(
            to=email,
            subject="Password Reset Request",
            text=f"You requested a password reset. Click here: {reset_url}",
        )
    except EmailDeliveryError:
        logger.error("Could not deliver password reset link to %s", email)
        raise
    return {"message": "Reset link sent to your email. Please check your inbox and spam folder."}


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(body: ResetPasswordRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.reset_token == body.token).first()
    if not user:
        raise HTTPException(status_code=400, detail="Invalid token")
    if _is_expired(user.reset_token_expires_at):
        raise HTTPException(status_code=400, detail="Token has expired")

    user.password_hash = get_password_hash(body.password)
    user.reset_token = None
    user.reset_token_expires_at = None
    if user.is_newsletter_only:
        user.is_newsletter_only = False
        user.newsletter = True
    db.commit()
    return {"message": "Password has been reset successfully"}


# ---------------------------------------------------------------------------
# Newsletter
# ---------------------------------------------------------------------------


@router.post("/newsletter", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def subscribe_newsletter(
    body: NewsletterSubscribe,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    email = body.email.lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        if not user.newsletter:
            user.newsletter = True
            db.commit()
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"message": "You are already subscribed to our newsletter."},
        )

    # Newsletter-only accounts get an unusable random password until they reset it
    user = User(
        name=body.name or "Newsletter Subscriber",
        email=email,
        password_hash=get_password_hash(generate_reset_token()),
        newsletter=True,
        is_newsletter_only=True,
    )
    db.add(user)
    db.commit()

    try:
        mailer.send(
            to=email,
            subject="Subscribed to Newsletter",
            text="Thanks for subscribing to our newsletter!",
        )
    except EmailDeliveryError:
        logger.warning("Newsletter confirmation email to %s failed", email, exc_info=True)
    return {"message": "Subscribed successfully!"}
