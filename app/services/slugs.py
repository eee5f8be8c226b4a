"""Slug allocation wired to the database."""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ConstraintViolation, InvalidInput
from app.models.blog_post import BlogPost
from app.models.property import Property
from app.utils.slug import SlugAllocator, SqlSlugOracle, insert_with_unique_slug

logger = logging.getLogger(__name__)

# Narrowest slug column among the slugged tables
SLUG_MAX_LENGTH = min(model.__table__.c.slug.type.length for model in (Property, BlogPost))

SLUGGED_MODELS = {
    "property": Property,
    "blog_post": BlogPost,
}


def slug_allocator(db: Session) -> SlugAllocator:
    return SlugAllocator(
        SqlSlugOracle(db, SLUGGED_MODELS),
        max_attempts=settings.SLUG_MAX_ATTEMPTS,
        max_length=SLUG_MAX_LENGTH,
    )


def commit_with_slug(db: Session, instance, slug: str, changes: Optional[Dict[str, Any]] = None):
    """
    Apply ``changes`` and ``slug`` to ``instance`` and commit.

    A unique-constraint failure rolls back and is raised as ConstraintViolation.
    Changes are re-applied on every call because the rollback expires them.
    """
    for field, value in (changes or {}).items():
        setattr(instance, field, value)
    instance.slug = slug
    db.add(instance)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConstraintViolation(slug=slug, context={"table": instance.__tablename__}) from e
    db.refresh(instance)
    return instance


def save_with_unique_slug(
    db: Session,
    instance,
    display_name: str,
    entity_type: str,
    changes: Optional[Dict[str, Any]] = None,
    exclude_id: Optional[UUID] = None,
    field: str = "title",
):
    """
    Allocate a slug for ``display_name`` and persist ``instance`` with it, retrying on races.

    ``field`` names the input the display name came from in InvalidInput errors.
    """
    try:
        return insert_with_unique_slug(
            slug_allocator(db),
            display_name,
            entity_type,
            lambda slug: commit_with_slug(db, instance, slug, changes),
            exclude_id=exclude_id,
            retries=settings.SLUG_INSERT_RETRIES,
        )
    except InvalidInput as e:
        e.field = field
        e.context["field"] = field
        raise
