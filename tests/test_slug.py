"""Unit tests for app/utils/slug.py and the database-backed slug helpers."""

import re
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ConstraintViolation, InvalidInput, OracleUnavailable, SlugExhausted
from app.models.blog_post import BlogPost
from app.services import slugs
from app.services.slugs import SLUG_MAX_LENGTH, SLUGGED_MODELS, commit_with_slug, save_with_unique_slug
from app.utils.slug import (
    InMemorySlugOracle,
    SlugAllocator,
    SqlSlugOracle,
    generate_slug,
    insert_with_unique_slug,
)

SLUG_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


class RecordingOracle(InMemorySlugOracle):
    def __init__(self, records=None):
        super().__init__(records)
        self.checked = []

    def exists(self, entity_type, slug, exclude_id=None):
        self.checked.append(slug)
        return super().exists(entity_type, slug, exclude_id)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("text,expected", [
    ("Sunset Villa", "sunset-villa"),
    ("  leading and trailing  ", "leading-and-trailing"),
    ("my_file_name", "my-file-name"),
    ("multiple---hyphens", "multiple-hyphens"),
    ("3 BHK @ Whitefield, Bangalore!", "3-bhk-whitefield-bangalore"),
    ("Crème Brûlée Résidence", "creme-brulee-residence"),
    ("--Villa--", "villa"),
    ("!!!", ""),
])
def test_generate_slug(text, expected):
    assert generate_slug(text) == expected


@pytest.mark.parametrize("name", [
    "Sunset Villa",
    "  Ocean   View  Apartment ",
    "Penthouse #12 / Tower-B",
    "Ünïcödé Hôtel",
    "a_b__c",
    "2BHK---Flat!!",
])
def test_allocated_slug_character_set(name):
    slug = SlugAllocator(InMemorySlugOracle()).allocate(name, "property")
    assert SLUG_RE.match(slug)


# ---------------------------------------------------------------------------
# Invalid input
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("name", ["", "  ", "\t\n", None, "!!!", "日本"])
def test_unusable_names_raise_invalid_input_without_queries(name):
    oracle = InMemorySlugOracle()
    with pytest.raises(InvalidInput):
        SlugAllocator(oracle).allocate(name, "property")
    assert oracle.queries == 0


# ---------------------------------------------------------------------------
# Collision resolution
# ---------------------------------------------------------------------------


def test_free_base_is_returned_as_is():
    assert SlugAllocator(InMemorySlugOracle()).allocate("Sunset Villa", "property") == "sunset-villa"


def test_taken_base_gets_first_suffix():
    oracle = InMemorySlugOracle()
    oracle.add("property", "sunset-villa", 1)
    assert SlugAllocator(oracle).allocate("Sunset Villa", "property") == "sunset-villa-1"


def test_taken_suffix_moves_to_next():
    oracle = InMemorySlugOracle()
    oracle.add("property", "sunset-villa", 1)
    oracle.add("property", "sunset-villa-1", 2)
    assert SlugAllocator(oracle).allocate("Sunset Villa", "property") == "sunset-villa-2"


def test_villa_and_villa_1_taken():
    oracle = InMemorySlugOracle()
    oracle.add("property", "villa", 1)
    oracle.add("property", "villa-1", 2)
    assert SlugAllocator(oracle).allocate("Villa", "property") == "villa-2"


def test_first_free_suffix_is_chosen_even_with_gaps():
    oracle = InMemorySlugOracle()
    for slug in ("villa", "villa-1", "villa-3"):
        oracle.add("property", slug)
    assert SlugAllocator(oracle).allocate("Villa", "property") == "villa-2"


def test_candidates_are_checked_sequentially_in_ascending_order():
    oracle = RecordingOracle()
    for slug in ("villa", "villa-1", "villa-2"):
        oracle.add("property", slug)
    assert SlugAllocator(oracle).allocate("VILLA", "property") == "villa-3"
    assert oracle.checked == ["villa", "villa-1", "villa-2", "villa-3"]


def test_same_base_names_get_ascending_suffixes_in_arrival_order():
    oracle = InMemorySlugOracle()
    allocator = SlugAllocator(oracle)
    allocated = []
    for name in ("Sea View", "sea view", "SEA-VIEW!", "  Sea   View "):
        slug = allocator.allocate(name, "property")
        oracle.add("property", slug)
        allocated.append(slug)
    assert allocated == ["sea-view", "sea-view-1", "sea-view-2", "sea-view-3"]


def test_entity_types_do_not_collide():
    oracle = InMemorySlugOracle()
    oracle.add("blog_post", "villa")
    assert SlugAllocator(oracle).allocate("Villa", "property") == "villa"


def test_rename_excludes_own_record():
    oracle = InMemorySlugOracle()
    oracle.add("property", "villa", 42)
    assert SlugAllocator(oracle).allocate("villa", "property", exclude_id=42) == "villa"


def test_rename_still_avoids_other_records():
    oracle = InMemorySlugOracle()
    oracle.add("property", "villa", 7)
    assert SlugAllocator(oracle).allocate("Villa", "property", exclude_id=42) == "villa-1"


def test_max_attempts_bounds_the_search():
    oracle = InMemorySlugOracle()
    for slug in ("villa", "villa-1", "villa-2"):
        oracle.add("property", slug)
    with pytest.raises(SlugExhausted) as exc:
        SlugAllocator(oracle, max_attempts=3).allocate("Villa", "property")
    assert exc.value.attempts == 3
    assert oracle.queries == 3


def test_oracle_failure_propagates_without_retry():
    oracle = MagicMock()
    oracle.exists.side_effect = OracleUnavailable()
    with pytest.raises(OracleUnavailable):
        SlugAllocator(oracle).allocate("Villa", "property")
    assert oracle.exists.call_count == 1


# ---------------------------------------------------------------------------
# Retry on constraint violation
# ---------------------------------------------------------------------------


class SnapshotOracle:
    """Answers from a stale snapshot until switched to the live store."""

    def __init__(self, store, snapshot):
        self.store = store
        self.snapshot = snapshot
        self.live = False

    def exists(self, entity_type, slug, exclude_id=None):
        return slug in (self.store if self.live else self.snapshot)


def test_racing_allocations_end_with_distinct_slugs():
    n = 5
    store = set()
    snapshot = frozenset(store)  # every request checks before anyone writes
    retries = 0
    results = []

    for _ in range(n):
        oracle = SnapshotOracle(store, snapshot)

        def insert(slug, oracle=oracle):
            nonlocal retries
            if slug in store:
                oracle.live = True
                retries += 1
                raise ConstraintViolation(slug=slug)
            store.add(slug)
            return slug

        results.append(insert_with_unique_slug(SlugAllocator(oracle), "Villa", "property", insert, retries=n))

    assert len(set(results)) == n
    assert sorted(results) == ["villa", "villa-1", "villa-2", "villa-3", "villa-4"]
    assert retries <= n - 1


def test_insert_gives_up_after_retry_bound():
    calls = []

    def insert(slug):
        calls.append(slug)
        raise ConstraintViolation(slug=slug)

    with pytest.raises(ConstraintViolation):
        insert_with_unique_slug(SlugAllocator(InMemorySlugOracle()), "Villa", "property", insert, retries=2)
    assert len(calls) == 3


def test_insert_does_not_retry_invalid_input():
    insert = MagicMock()
    with pytest.raises(InvalidInput):
        insert_with_unique_slug(SlugAllocator(InMemorySlugOracle()), "   ", "property", insert)
    insert.assert_not_called()


# ---------------------------------------------------------------------------
# Database-backed oracle and persistence
# ---------------------------------------------------------------------------


def _post(db, slug, title="Villa"):
    post = BlogPost(title=title, slug=slug, content="body")
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


def test_sql_oracle_exists(db):
    post = _post(db, "villa")
    oracle = SqlSlugOracle(db, SLUGGED_MODELS)
    assert oracle.exists("blog_post", "villa")
    assert not oracle.exists("blog_post", "villa-1")
    assert not oracle.exists("property", "villa")
    assert not oracle.exists("blog_post", "villa", exclude_id=post.id)


def test_sql_oracle_wraps_database_errors():
    session = MagicMock()
    session.query.return_value.filter.return_value.first.side_effect = OperationalError(
        "SELECT", {}, Exception("connection refused")
    )
    with pytest.raises(OracleUnavailable):
        SqlSlugOracle(session, SLUGGED_MODELS).exists("blog_post", "villa")


def test_commit_with_slug_reports_unique_violation(db):
    _post(db, "villa")
    with pytest.raises(ConstraintViolation) as exc:
        commit_with_slug(db, BlogPost(title="Villa", content="other"), "villa")
    assert exc.value.slug == "villa"


def test_save_with_unique_slug_recovers_from_stale_check(db, monkeypatch):
    _post(db, "villa")

    class StaleOnce(SqlSlugOracle):
        stale = True

        def exists(self, entity_type, slug, exclude_id=None):
            if self.stale:
                self.stale = False
                return False
            return super().exists(entity_type, slug, exclude_id)

    monkeypatch.setattr(slugs, "slug_allocator", lambda session: SlugAllocator(StaleOnce(session, SLUGGED_MODELS)))

    post = save_with_unique_slug(db, BlogPost(title="Villa", content="second"), "Villa", "blog_post")
    assert post.slug == "villa-1"
    assert db.query(BlogPost).count() == 2


def test_save_with_unique_slug_rename_keeps_own_slug(db):
    post = _post(db, "villa")
    renamed = save_with_unique_slug(
        db, post, "VILLA", "blog_post", changes={"title": "VILLA"}, exclude_id=post.id
    )
    assert renamed.slug == "villa"
    assert renamed.title == "VILLA"


# ---------------------------------------------------------------------------
# Column width
# ---------------------------------------------------------------------------


def test_colliding_long_name_fits_column():
    oracle = InMemorySlugOracle()
    oracle.add("property", "a" * 255)
    slug = SlugAllocator(oracle, max_length=255).allocate("a" * 255, "property")
    assert slug == "a" * 253 + "-1"


def test_transliteration_expansion_fits_column():
    # Each "㎒" decomposes to "mhz"
    slug = SlugAllocator(InMemorySlugOracle(), max_length=255).allocate("㎒" * 100, "property")
    assert len(slug) <= 255
    assert SLUG_RE.match(slug)


def test_cut_never_leaves_a_trailing_hyphen():
    oracle = InMemorySlugOracle()
    allocator = SlugAllocator(oracle, max_length=8)
    assert allocator.allocate("ab ab ab ab", "property") == "ab-ab-ab"
    oracle.add("property", "ab-ab-ab")
    assert allocator.allocate("ab ab ab ab", "property") == "ab-ab-1"


def test_allocator_errors_do_not_name_a_field():
    with pytest.raises(InvalidInput) as exc:
        SlugAllocator(InMemorySlugOracle()).allocate("  ", "property")
    assert exc.value.field is None


def test_save_with_unique_slug_names_the_field(db):
    with pytest.raises(InvalidInput) as exc:
        save_with_unique_slug(db, BlogPost(title="?", content="x"), "?", "blog_post", field="headline")
    assert exc.value.field == "headline"
    assert exc.value.context["field"] == "headline"


def test_save_with_unique_slug_caps_to_column_width(db):
    title = "b" * 255
    _post(db, title, title=title)
    post = save_with_unique_slug(db, BlogPost(title=title, content="x"), title, "blog_post")
    assert len(post.slug) <= SLUG_MAX_LENGTH == 255
    assert post.slug.endswith("-1")
