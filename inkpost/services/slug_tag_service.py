"""
Inkpost Backend: Slug & Tag Manager
=====================================

What:  Everything that keeps slugs unique and the tag tables tidy.
Why:   Post create/update/delete all need the same bookkeeping; keeping it
       here means PostService only orchestrates.
Who:   PostService, and GET /posts/tags through list_tag_names().

Responsibilities:
    derive_slug()           title → lowercase-hyphenated slug (pure)
    ensure_slug_available() Conflict if another post holds the slug
    normalize_tags()        trim, drop blanks/non-strings, dedupe (pure)
    attach_tags()           upsert tags + link them to a post, all-or-nothing
    detach_all_tags()       remove every link of one post
    prune_orphan_tags()     delete tags no post references

Transaction Model:
    The request's AsyncSession is one transaction (see database.py). When a
    tag step fails the manager rolls that session back before raising
    DatabaseError, so a half-written tag set can never be committed, and the
    post row written earlier in the same request goes with it.

Uniqueness races:
    Pre-checks (ensure_slug_available, the existing-tag lookup) give clear
    errors in the common case. Concurrent writers are settled by the UNIQUE
    constraints: tag and link inserts use ON CONFLICT DO NOTHING, and a slug
    violation is translated to ConflictError by PostService.
"""

import logging
import re
import unicodedata
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inkpost.config import settings
from inkpost.exceptions import BadRequestError, ConflictError, DatabaseError
from inkpost.models.post import Post
from inkpost.models.tag import TAG_NAME_MAX_LENGTH, PostTag, Tag, tag_key

logger = logging.getLogger(__name__)

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s_-]")
_SLUG_SEPARATORS = re.compile(r"[\s_-]+")
_WHITESPACE = re.compile(r"\s+")

# Slugs that collide with fixed routes under /posts
RESERVED_SLUGS = frozenset({"tags"})


def derive_slug(title: str) -> str:
    """
    Derive the URL slug for a post title.

    How:
        1. NFKD-normalize and drop combining marks ("Café" → "Cafe")
        2. Lowercase
        3. Drop everything that is not a letter, digit, space, _ or -
        4. Collapse runs of spaces/underscores/hyphens into one hyphen
        5. Trim hyphens from both ends

    Examples:
        "Hello World"           → "hello-world"
        "  Olá, Mundo!  "       → "ola-mundo"
        "C++ -- the good parts" → "c-the-good-parts"

    Raises:
        BadRequestError: nothing sluggable is left (e.g. "!!!")
    """
    decomposed = unicodedata.normalize("NFKD", title or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = _NON_SLUG_CHARS.sub("", stripped.lower())
    slug = _SLUG_SEPARATORS.sub("-", slug).strip("-")
    if not slug:
        raise BadRequestError(
            "Title must contain at least one letter or digit",
            field="title",
        )
    return slug


def normalize_tags(
    raw_tags: Optional[Iterable[Any]],
    title_case: Optional[bool] = None,
) -> List[str]:
    """
    Clean a client-supplied tag list into an ordered, duplicate-free list.

    - Non-string and blank entries are dropped; tags are optional, so None or
      an empty list simply yields [].
    - Whitespace is trimmed and inner runs collapse to one space.
    - Duplicates are detected case-insensitively; the first spelling wins
      (["JS", "js", " "] → ["JS"]).
    - With title_case (default: TAG_TITLE_CASE setting) names are title-cased
      before deduplication.

    Idempotent: normalize_tags(normalize_tags(x)) == normalize_tags(x).

    Raises:
        BadRequestError: a tag is longer than the tags.name column allows
    """
    if raw_tags is None:
        return []
    if isinstance(raw_tags, str):
        raw_tags = [raw_tags]
    if title_case is None:
        title_case = settings.tag_title_case

    seen = set()
    names: List[str] = []
    for item in raw_tags:
        if not isinstance(item, str):
            continue
        name = _WHITESPACE.sub(" ", item).strip()
        if not name:
            continue
        if title_case:
            name = name.title()
        if len(name) > TAG_NAME_MAX_LENGTH:
            raise BadRequestError(
                f"Tag '{name[:20]}...' is longer than {TAG_NAME_MAX_LENGTH} characters",
                field="tags",
            )
        key = tag_key(name)
        if key in seen:
            continue
        seen.add(key)
        names.append(name)
    return names


def _insert_ignoring_conflicts(db: AsyncSession, model, rows: List[Dict[str, Any]]):
    """INSERT ... ON CONFLICT DO NOTHING for the dialects we deploy on."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model).values(rows).on_conflict_do_nothing()
    if dialect == "sqlite":
        return sqlite.insert(model).values(rows).on_conflict_do_nothing()
    # Other backends rely on the pre-filtering done by the callers
    return insert(model).values(rows)


class SlugTagManager:
    """
    Stateless helper; every method takes the caller's session.

    The pure helpers are exposed as static methods so services can call
    everything through one object.
    """

    derive_slug = staticmethod(derive_slug)
    normalize_tags = staticmethod(normalize_tags)

    async def ensure_slug_available(
        self,
        db: AsyncSession,
        slug: str,
        exclude_post_id: Optional[int] = None,
    ) -> None:
        """
        Fail with ConflictError if a post other than exclude_post_id owns slug,
        or if the slug is reserved for a fixed route (GET /posts/tags).

        exclude_post_id is the post being updated: re-saving a post under its
        own slug is not a conflict.
        """
        if slug in RESERVED_SLUGS:
            raise ConflictError("Slug is reserved", context={"slug": slug})
        try:
            result = await db.execute(select(Post.id).where(Post.slug == slug).limit(1))
            owner_id = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error checking slug '%s': %s", slug, str(e))
            raise DatabaseError(context={"slug": slug, "error_type": type(e).__name__})

        if owner_id is not None and owner_id != exclude_post_id:
            raise ConflictError("Slug already in use", context={"slug": slug, "owner_id": owner_id})

    async def attach_tags(
        self,
        db: AsyncSession,
        post_id: int,
        tag_names: Iterable[Any],
    ) -> int:
        """
        Link a post to the given tags, creating tags that do not exist yet.

        Steps (one unit of work):
            1. Look up existing tags by name_key
            2. Insert the missing names, ignoring unique conflicts
            3. Resolve every submitted name to its tag id
            4. Insert (post_id, tag_id) links, ignoring existing links

        Calling it twice with the same names leaves the same rows behind.

        Returns:
            Number of tags the post is now linked to from this call.

        Raises:
            DatabaseError: any storage failure; the session is rolled back
                           first so no partial tag/link state survives.
        """
        names = normalize_tags(tag_names)
        if not names:
            return 0
        keys = [tag_key(name) for name in names]

        try:
            result = await db.execute(
                select(Tag.name_key).where(Tag.name_key.in_(keys))
            )
            existing = set(result.scalars().all())

            missing = [name for name in names if tag_key(name) not in existing]
            if missing:
                await db.execute(
                    _insert_ignoring_conflicts(
                        db, Tag, [{"name": name, "name_key": tag_key(name)} for name in missing]
                    )
                )

            result = await db.execute(
                select(Tag.id).where(Tag.name_key.in_(keys))
            )
            tag_ids = list(result.scalars().all())

            if tag_ids:
                await db.execute(
                    _insert_ignoring_conflicts(
                        db,
                        PostTag,
                        [{"post_id": post_id, "tag_id": tag_id} for tag_id in tag_ids],
                    )
                )
        except SQLAlchemyError as e:
            logger.error(
                "Failed to associate tags %s to post %s: %s", names, post_id, str(e),
                exc_info=True,
            )
            await db.rollback()
            raise DatabaseError(
                "Failed to associate tags to post",
                context={"post_id": post_id, "error_type": type(e).__name__},
            )

        logger.info("Post %s linked to %d tag(s)", post_id, len(tag_ids))
        return len(tag_ids)

    async def detach_all_tags(self, db: AsyncSession, post_id: int) -> int:
        """Delete every link of post_id. Tag rows are left for the orphan sweep."""
        try:
            result = await db.execute(
                delete(PostTag)
                .where(PostTag.post_id == post_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to detach tags from post %s: %s", post_id, str(e))
            await db.rollback()
            raise DatabaseError(context={"post_id": post_id, "error_type": type(e).__name__})
        return result.rowcount or 0

    async def prune_orphan_tags(self, db: AsyncSession) -> int:
        """
        Delete every tag that no post references.

        Must run after anything that removes links (tag replacement, post
        delete). Safe to call when nothing is orphaned: returns 0.
        """
        referenced = select(PostTag.tag_id).where(PostTag.tag_id == Tag.id).exists()
        try:
            result = await db.execute(
                delete(Tag).where(~referenced).execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to prune orphan tags: %s", str(e))
            await db.rollback()
            raise DatabaseError(context={"error_type": type(e).__name__})

        removed = result.rowcount or 0
        if removed:
            logger.info("Pruned %d orphan tag(s)", removed)
        return removed

    async def get_post_tags(
        self,
        db: AsyncSession,
        post_ids: Iterable[int],
    ) -> Dict[int, List[str]]:
        """Tag names per post id, alphabetical. Posts without tags are absent."""
        ids = list(post_ids)
        if not ids:
            return {}
        try:
            result = await db.execute(
                select(PostTag.post_id, Tag.name)
                .join(Tag, Tag.id == PostTag.tag_id)
                .where(PostTag.post_id.in_(ids))
                .order_by(Tag.name_key)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error loading tags for posts %s: %s", ids, str(e))
            raise DatabaseError(
                "Failed to load post tags",
                context={"post_ids": ids, "error_type": type(e).__name__},
            )
        tags: Dict[int, List[str]] = {}
        for post_id, name in rows:
            tags.setdefault(post_id, []).append(name)
        return tags

    async def list_tag_names(self, db: AsyncSession) -> List[str]:
        """Every stored tag name, alphabetical. Orphans never appear here."""
        try:
            result = await db.execute(select(Tag.name).order_by(Tag.name_key))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing tags: %s", str(e))
            raise DatabaseError(
                "Could not retrieve tags. Please try again.",
                context={"error_type": type(e).__name__},
            )


slug_tag_manager = SlugTagManager()
