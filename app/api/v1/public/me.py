from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_user
from app.core.security import get_password_hash, verify_password
from app.models.user import User
from app.models.property import Property
from app.schemas.user import User as UserSchema, UserUpdate
from app.schemas.property import Property as PropertySchema, FavoriteToggle

router = APIRouter(prefix="/me", tags=["Me"])


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/", response_model=UserSchema)
def get_me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return current_user


@router.patch("/", response_model=UserSchema)
def update_me(
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update name, email and phone; changing the password requires the current one."""
    updates = data.model_dump(exclude_unset=True, exclude={"current_password", "password"})

    if data.password:
        if not data.current_password:
            raise HTTPException(status_code=400, detail="Current password is required")
        if not verify_password(data.current_password, current_user.password_hash):
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        current_user.password_hash = get_password_hash(data.password)

    if updates.get("email"):
        email = updates["email"].lower()
        taken = db.query(User.id).filter(User.email == email, User.id != current_user.id).first()
        if taken:
            raise HTTPException(status_code=400, detail="Email already registered")
        updates["email"] = email

    for field, value in updates.items():
        if value is not None:
            setattr(current_user, field, value)
    db.commit()
    db.refresh(current_user)
    return current_user


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------


@router.get("/favorites", response_model=List[PropertySchema])
def list_favorites(current_user: User = Depends(get_current_user)):
    return current_user.favorites


@router.post("/favorites", response_model=List[PropertySchema])
def toggle_favorite(
    data: FavoriteToggle,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add the property to favorites, or remove it if it is already there."""
    prop = db.query(Property).filter(Property.id == data.property_id).first()
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")

    if prop in current_user.favorites:
        current_user.favorites.remove(prop)
    else:
        current_user.favorites.append(prop)
    db.commit()
    db.refresh(current_user)
    return current_user.favorites


@router.delete("/favorites", response_model=List[PropertySchema])
def clear_favorites(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    current_user.favorites = []
    db.commit()
    return []
