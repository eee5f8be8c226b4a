"""
Slug allocation.

A slug is derived from a display name and must be unique among records of
the same entity type. ``SlugAllocator`` normalizes the name and probes a
uniqueness oracle with ``base``, ``base-1``, ``base-2``, ... until a free
candidate is found. The oracle answers are only true as of the last check:
two requests can still pick the same slug, so every slugged table carries a
unique constraint and writers go through ``insert_with_unique_slug``, which
re-allocates when the store reports a ``ConstraintViolation``.
"""

import logging
import re
import unicodedata
from typing import Callable, Dict, Optional, Protocol, Type, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ConstraintViolation, InvalidInput, OracleUnavailable, SlugExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def generate_slug(text: str) -> str:
    """Convert text to a URL-safe slug: lowercase ASCII, single hyphens, no special chars."""
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


class SlugOracle(Protocol):
    def exists(self, entity_type: str, slug: str, exclude_id: Optional[UUID] = None) -> bool:
        ...


class SlugAllocator:
    """
    Produce a slug that is unique among sibling records at the moment of the check.

    ``max_attempts`` caps the number of oracle queries for one allocation;
    ``None`` means no cap. ``max_length`` is the width of the slug column:
    the base is cut so that it fits, and cut again to make room for a suffix.
    """

    def __init__(self, oracle: SlugOracle, max_attempts: Optional[int] = None,
                 max_length: Optional[int] = None):
        self.oracle = oracle
        self.max_attempts = max_attempts
        self.max_length = max_length

    def _fit(self, base: str, suffix: str = "") -> str:
        if self.max_length is None:
            return f"{base}{suffix}"
        room = self.max_length - len(suffix)
        if room < 1:
            raise SlugExhausted(base, 0)
        return f"{base[:room].rstrip('-')}{suffix}"

    def allocate(self, display_name: Optional[str], entity_type: str, exclude_id: Optional[UUID] = None) -> str:
        if display_name is None or not display_name.strip():
            raise InvalidInput("Name must not be empty")

        base = generate_slug(display_name)
        if not base:
            raise InvalidInput(
                "Name must contain at least one letter or digit",
                context={"display_name": display_name},
            )
        base = self._fit(base)

        candidate = base
        attempts = 0
        while True:
            attempts += 1
            if not self.oracle.exists(entity_type, candidate, exclude_id):
                return candidate
            if self.max_attempts is not None and attempts >= self.max_attempts:
                raise SlugExhausted(base, attempts)
            logger.debug("Slug %r taken for %s, trying suffix %d", candidate, entity_type, attempts)
            candidate = self._fit(base, f"-{attempts}")


def insert_with_unique_slug(
    allocator: SlugAllocator,
    display_name: str,
    entity_type: str,
    insert: Callable[[str], T],
    exclude_id: Optional[UUID] = None,
    retries: int = 3,
) -> T:
    """
    Allocate a slug and hand it to ``insert``; on ``ConstraintViolation``
    allocate again and retry, at most ``retries`` more times.
    """
    attempt = 0
    while True:
        slug = allocator.allocate(display_name, entity_type, exclude_id)
        try:
            return insert(slug)
        except ConstraintViolation:
            if attempt >= retries:
                raise
            attempt += 1
            logger.warning(
                "Slug %r for %s was taken concurrently, re-allocating (retry %d/%d)",
                slug, entity_type, attempt, retries,
            )


# ---------------------------------------------------------------------------
# Oracles
# ---------------------------------------------------------------------------


class InMemorySlugOracle:
    """Oracle over a dict of entity_type -> {slug: record id}."""

    def __init__(self, records: Optional[Dict[str, Dict[str, object]]] = None):
        self.records: Dict[str, Dict[str, object]] = records if records is not None else {}
        self.queries = 0

    def add(self, entity_type: str, slug: str, record_id: object = None) -> None:
        self.records.setdefault(entity_type, {})[slug] = record_id

    def exists(self, entity_type: str, slug: str, exclude_id: Optional[object] = None) -> bool:
        self.queries += 1
        owners = self.records.get(entity_type, {})
        if slug not in owners:
            return False
        return exclude_id is None or owners[slug] != exclude_id


class SqlSlugOracle:
    """Indexed slug lookups against the mapped class registered for each entity type."""

    def __init__(self, db: Session, models: Dict[str, Type]):
        self.db = db
        self.models = models

    def exists(self, entity_type: str, slug: str, exclude_id: Optional[UUID] = None) -> bool:
        model = self.models[entity_type]
        query = self.db.query(model.id).filter(model.slug == slug)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        try:
            return query.first() is not None
        except SQLAlchemyError as e:
            raise OracleUnavailable(context={"entity_type": entity_type, "slug": slug, "error": str(e)}) from e
