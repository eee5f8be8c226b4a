import logging
from uuid import UUID
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.core.exceptions import CatalogueError, ImageHostError
from app.models.user import User
from app.models.blog_post import BlogPost
from app.schemas.blog import BlogPost as BlogPostSchema
from app.services.images import ImageHost, BLOG_FOLDER, get_image_host
from app.services.slugs import save_with_unique_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/blog", tags=["Admin - Blog"])

TITLE_MAX_LENGTH = BlogPost.__table__.c.title.type.length


def _parse_tags(tags: Optional[str]) -> List[str]:
    if not tags:
        return []
    return [t.strip() for t in tags.split(",") if t.strip()]


def _get_post_or_404(db: Session, id: UUID) -> BlogPost:
    post = db.query(BlogPost).filter(BlogPost.id == id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def _destroy_unshared_image(db: Session, image_host: ImageHost, url: str, owner_id: UUID) -> None:
    """Destroy ``url`` unless a post other than ``owner_id`` still uses it."""
    shared = (
        db.query(BlogPost.id)
        .filter(BlogPost.id != owner_id, BlogPost.feature_image == url)
        .first()
    )
    if shared:
        logger.info("Keeping image %s, still used by post %s", url, shared.id)
        return
    image_host.destroy(url, BLOG_FOLDER)


@router.post("/", response_model=BlogPostSchema, status_code=status.HTTP_201_CREATED)
def create_post(
    title: Optional[str] = Form(None, max_length=TITLE_MAX_LENGTH),
    content: Optional[str] = Form(None),
    excerpt: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    tags: Optional[str] = Form(None, description="Comma-separated tags"),
    published: bool = Form(True),
    feature_image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
    image_host: ImageHost = Depends(get_image_host),
):
    if not title or not content:
        raise HTTPException(status_code=400, detail="Title and content are required")

    image_url = None
    if feature_image is not None and feature_image.filename:
        image_url = image_host.upload(feature_image.file, feature_image.filename, BLOG_FOLDER)

    post = BlogPost(
        title=title.strip(),
        content=content,
        excerpt=excerpt,
        author=author or "Admin",
        tags=_parse_tags(tags),
        feature_image=image_url,
        published=published,
    )
    try:
        post = save_with_unique_slug(db, post, title, "blog_post")
    except CatalogueError:
        if image_url:
            image_host.destroy(image_url, BLOG_FOLDER)
        raise
    logger.info("Blog post %s created with slug %s", post.id, post.slug)
    return post


@router.put("/{id}", response_model=BlogPostSchema)
def update_post(
    id: UUID,
    title: Optional[str] = Form(None, max_length=TITLE_MAX_LENGTH),
    content: Optional[str] = Form(None),
    excerpt: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    published: Optional[bool] = Form(None),
    feature_image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
    image_host: ImageHost = Depends(get_image_host),
):
    post = _get_post_or_404(db, id)
    old_image = post.feature_image

    changes = {}
    if content:
        changes["content"] = content
    if excerpt:
        changes["excerpt"] = excerpt
    if author:
        changes["author"] = author
    if tags is not None:
        changes["tags"] = _parse_tags(tags)
    if published is not None:
        changes["published"] = published

    new_image = None
    if feature_image is not None and feature_image.filename:
        new_image = image_host.upload(feature_image.file, feature_image.filename, BLOG_FOLDER)
        changes["feature_image"] = new_image

    renamed = title is not None and title.strip() != post.title
    try:
        if renamed:
            changes["title"] = title.strip()
            post = save_with_unique_slug(db, post, title, "blog_post", changes=changes, exclude_id=post.id)
        else:
            for field, value in changes.items():
                setattr(post, field, value)
            db.commit()
            db.refresh(post)
    except CatalogueError:
        if new_image:
            image_host.destroy(new_image, BLOG_FOLDER)
        raise

    if new_image and old_image:
        _destroy_unshared_image(db, image_host, old_image, post.id)
    return post


@router.post("/{id}/duplicate", response_model=BlogPostSchema, status_code=status.HTTP_201_CREATED)
def duplicate_post(
    id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
    image_host: ImageHost = Depends(get_image_host),
):
    original = _get_post_or_404(db, id)

    image_url = original.feature_image
    if image_url:
        try:
            image_url = image_host.copy(image_url, BLOG_FOLDER)
        except ImageHostError:
            logger.warning("Failed to duplicate feature image %s", image_url, exc_info=True)

    suffix = " Copy"
    copy_title = f"{original.title[:TITLE_MAX_LENGTH - len(suffix)]}{suffix}"
    duplicate = BlogPost(
        title=copy_title,
        content=original.content,
        excerpt=original.excerpt,
        author=original.author,
        tags=list(original.tags or []),
        feature_image=image_url,
        published=original.published,
    )
    return save_with_unique_slug(db, duplicate, copy_title, "blog_post")


@router.delete("/{id}", status_code=status.HTTP_200_OK)
def delete_post(
    id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
    image_host: ImageHost = Depends(get_image_host),
):
    post = _get_post_or_404(db, id)
    image_url = post.feature_image

    db.delete(post)
    db.commit()

    if image_url:
        _destroy_unshared_image(db, image_host, image_url, id)
    return {"id": str(id), "message": "Post deleted successfully"}
