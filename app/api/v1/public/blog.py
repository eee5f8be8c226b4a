from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.blog_post import BlogPost
from app.schemas.blog import BlogPost as BlogPostSchema, BlogPostSummary
from app.schemas.common import PaginatedResponse, paginate

router = APIRouter(prefix="/blog", tags=["Blog"])


@router.get("/", response_model=PaginatedResponse[BlogPostSummary])
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    query = db.query(BlogPost).filter(BlogPost.published == True)  # noqa: E712
    total = query.count()
    posts = query.order_by(BlogPost.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return PaginatedResponse(**paginate(posts, total, page, limit))


@router.get("/id/{id}", response_model=BlogPostSchema)
def get_post_by_id(id: UUID, db: Session = Depends(get_db)):
    post = db.query(BlogPost).filter(BlogPost.id == id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.get("/{slug}", response_model=BlogPostSchema)
def get_post_by_slug(slug: str, db: Session = Depends(get_db)):
    post = db.query(BlogPost).filter(BlogPost.slug == slug).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post
