from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.models.user import User
from app.schemas.user import User as UserSchema, UserAdminView
from app.schemas.common import PaginatedResponse, paginate

router = APIRouter(prefix="/admin/users", tags=["Admin - Users"])


@router.get("/profile", response_model=UserSchema)
def admin_profile(current_user: User = Depends(get_current_admin_user)):
    return current_user


@router.get("/", response_model=PaginatedResponse[UserAdminView])
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    query = db.query(User)
    total = query.count()
    users = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return PaginatedResponse(**paginate(users, total, page, limit))
