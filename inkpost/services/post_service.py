"""
Inkpost Backend: Post Service
===============================

What:  Create, list, fetch, update and delete posts.
Why:   Routes stay thin; every rule about posts (slug regeneration, tag
       replacement, orphan cleanup) lives here and can be tested without HTTP.
How:   Composes SlugTagManager with SQLAlchemy queries on the request session.

Create Flow:
    ┌──────────┐   ┌──────────────┐   ┌──────────────┐   ┌──────────────┐
    │ Derive   │──▶│ Slug free?   │──▶│ Insert post  │──▶│ Attach tags  │
    │ slug     │   │ (pre-check)  │   │ (+ flush)    │   │ (if any)     │
    └──────────┘   └──────────────┘   └──────────────┘   └──────────────┘

    The pre-check and the insert are not atomic against concurrent writers,
    so a unique violation raised by the flush is also turned into Conflict.

Error Handling Strategy:
    Our own exceptions propagate unchanged. Unexpected SQLAlchemy errors are
    wrapped in DatabaseError, which hides driver details from the client.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inkpost.config import settings
from inkpost.exceptions import (
    BadRequestError,
    ConflictError,
    DatabaseError,
    InkpostError,
    NotFoundError,
)
from inkpost.models.post import POST_STATUSES, Post
from inkpost.models.tag import PostTag, Tag, tag_key
from inkpost.schemas.post import PostResponse, PostSummary
from inkpost.services.slug_tag_service import slug_tag_manager

logger = logging.getLogger(__name__)

# Columns a partial update may touch directly; "tags" is handled separately
# because it is a relation, not a column
UPDATABLE_SCALARS = ("title", "content", "excerpt", "status")
UPDATABLE_FIELDS = UPDATABLE_SCALARS + ("tags",)


def _is_slug_violation(error: IntegrityError) -> bool:
    # PostgreSQL names the constraint (posts_slug_key), SQLite the column
    # (posts.slug); both mention "slug"
    return "slug" in str(error.orig).lower()


class PostService:
    """
    Business logic layer for post operations.

    Responsibilities:
        - create():               insert a post with a fresh slug and its tags
        - list_posts():           newest-first summaries, optional tag filter
        - get_by_slug_or_title(): single post, NotFound when absent
        - update():               partial update, slug and tags kept consistent
        - delete():               remove a post and any tags it orphaned
    """

    def __init__(self, tags=slug_tag_manager):
        self.tags = tags

    async def _to_response(self, db: AsyncSession, post: Post) -> PostResponse:
        tags = await self.tags.get_post_tags(db, [post.id])
        return PostResponse(
            id=post.id,
            title=post.title,
            slug=post.slug,
            excerpt=post.excerpt,
            content=post.content,
            status=post.status,
            author_id=post.author_id,
            created_at=post.created_at,
            updated_at=post.updated_at,
            tags=tags.get(post.id, []),
        )

    async def _find(self, db: AsyncSession, identifier: str) -> Optional[Post]:
        """
        Look a post up by slug, by exact title, or by the slug its identifier
        would derive to ("Hello World" finds "hello-world").
        """
        conditions = [Post.slug == identifier, Post.title == identifier]
        try:
            conditions.append(Post.slug == slug_tag_manager.derive_slug(identifier))
        except BadRequestError:
            pass  # identifier has no sluggable characters; match on the rest
        result = await db.execute(
            select(Post).where(or_(*conditions)).order_by(Post.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        title: str,
        content: str,
        excerpt: str,
        author_id: int,
        tags: Optional[List[Any]] = None,
        status: str = "draft",
    ) -> PostResponse:
        """
        Create a post and attach its tags.

        Args:
            db: Async database session (injected by FastAPI)
            title, content, excerpt: Post fields (already schema-validated)
            author_id: Id of the authenticated admin creating the post
            tags: Raw tag names from the request; normalized here
            status: "draft" or "published"

        Returns:
            PostResponse with the stored slug and normalized tags

        Raises:
            BadRequestError: unsluggable title, bad status, oversized tag
            ConflictError:   the slug is taken (pre-check or unique violation)
            DatabaseError:   any other storage failure
        """
        if status not in POST_STATUSES:
            raise BadRequestError(f"Invalid status '{status}'", field="status")
        slug = self.tags.derive_slug(title)
        tag_names = self.tags.normalize_tags(tags)

        await self.tags.ensure_slug_available(db, slug)

        post = Post(
            title=title,
            slug=slug,
            content=content,
            excerpt=excerpt or "",
            author_id=author_id,
            status=status,
        )
        try:
            db.add(post)
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            if _is_slug_violation(e):
                logger.info("Slug '%s' taken by a concurrent writer", slug)
                raise ConflictError("Slug already in use", context={"slug": slug})
            logger.error("Integrity error creating post '%s': %s", slug, str(e))
            raise DatabaseError(
                "Database internal error while creating post",
                context={"error_type": type(e).__name__},
            )
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error creating post '%s': %s", slug, str(e), exc_info=True)
            raise DatabaseError(
                "Database internal error while creating post",
                context={"error_type": type(e).__name__},
            )

        if tag_names:
            await self.tags.attach_tags(db, post.id, tag_names)

        logger.info("Post %s created with slug '%s' (%d tags)", post.id, slug, len(tag_names))
        return await self._to_response(db, post)

    async def list_posts(
        self,
        db: AsyncSession,
        limit: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> List[PostSummary]:
        """
        List post summaries, newest first.

        Query plan:
            SELECT posts.* FROM posts
            [JOIN post_tags JOIN tags WHERE tags.name_key = :tag_key]
            ORDER BY created_at DESC, id DESC LIMIT :limit
            → idx_posts_created_at serves the ordering

        Args:
            limit: 1..POSTS_MAX_LIMIT, default POSTS_DEFAULT_LIMIT
            tag:   optional tag name, matched case-insensitively

        Raises:
            BadRequestError: limit out of range
            DatabaseError:   query failed
        """
        if limit is None:
            limit = settings.posts_default_limit
        if not 1 <= limit <= settings.posts_max_limit:
            raise BadRequestError(
                f"limit must be between 1 and {settings.posts_max_limit}",
                field="limit",
            )

        query = select(Post)
        tag = (tag or "").strip()
        if tag:
            query = (
                query.join(PostTag, PostTag.post_id == Post.id)
                .join(Tag, Tag.id == PostTag.tag_id)
                .where(Tag.name_key == tag_key(tag))
            )
        query = query.order_by(Post.created_at.desc(), Post.id.desc()).limit(limit)

        try:
            result = await db.execute(query)
            posts = list(result.scalars().all())
            tags_by_post = await self.tags.get_post_tags(db, [p.id for p in posts])
        except SQLAlchemyError as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise DatabaseError(
                "Database internal error while listing posts",
                context={"error_type": type(e).__name__},
            )

        return [
            PostSummary(
                id=p.id,
                title=p.title,
                slug=p.slug,
                excerpt=p.excerpt,
                status=p.status,
                author_id=p.author_id,
                created_at=p.created_at,
                updated_at=p.updated_at,
                tags=tags_by_post.get(p.id, []),
            )
            for p in posts
        ]

    async def get_by_slug_or_title(self, db: AsyncSession, identifier: str) -> PostResponse:
        """
        Fetch one post by slug or title.

        Raises:
            NotFoundError: no post matches
            DatabaseError: query failed
        """
        try:
            post = await self._find(db, identifier)
            if post is None:
                raise NotFoundError(resource="post", resource_id=identifier)
            return await self._to_response(db, post)
        except InkpostError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error fetching post '%s': %s", identifier, str(e))
            raise DatabaseError(
                "Failed to fetch post",
                context={"identifier": identifier, "error_type": type(e).__name__},
            )

    async def update(
        self,
        db: AsyncSession,
        identifier: str,
        fields: Dict[str, Any],
    ) -> PostResponse:
        """
        Apply a partial update.

        Rules:
            - Empty or unknown fields → BadRequestError
            - Missing post → NotFoundError
            - Title change → new slug, checked against every OTHER post before
              anything is written (ConflictError leaves the post untouched)
            - "tags" present → detach all, attach the normalized set, prune
              orphans. An empty list clears the post's tags.
            - Scalar changes and updated_at go out as one UPDATE of the
              changed columns only

        Returns:
            The updated PostResponse
        """
        if not fields:
            raise BadRequestError("No fields provided to update")
        unknown = sorted(set(fields) - set(UPDATABLE_FIELDS))
        if unknown:
            raise BadRequestError(f"Unknown fields: {', '.join(unknown)}")
        for name in UPDATABLE_SCALARS:
            if name in fields and fields[name] is None:
                raise BadRequestError(f"{name} cannot be null", field=name)
        if "status" in fields and fields["status"] not in POST_STATUSES:
            raise BadRequestError(f"Invalid status '{fields['status']}'", field="status")

        try:
            post = await self._find(db, identifier)
        except SQLAlchemyError as e:
            logger.error("Database error fetching post '%s': %s", identifier, str(e))
            raise DatabaseError(context={"identifier": identifier})
        if post is None:
            raise NotFoundError(resource="post", resource_id=identifier)

        changes = {name: fields[name] for name in UPDATABLE_SCALARS if name in fields}
        if "title" in changes and changes["title"] != post.title:
            new_slug = self.tags.derive_slug(changes["title"])
            await self.tags.ensure_slug_available(db, new_slug, exclude_post_id=post.id)
            changes["slug"] = new_slug

        tag_names = None
        if "tags" in fields:
            tag_names = self.tags.normalize_tags(fields["tags"])

        if changes:
            for name, value in changes.items():
                setattr(post, name, value)
            post.updated_at = datetime.now(timezone.utc)
            try:
                await db.flush()
            except IntegrityError as e:
                await db.rollback()
                if _is_slug_violation(e):
                    raise ConflictError("Slug already in use", context={"slug": changes.get("slug")})
                raise DatabaseError(context={"post_id": post.id, "error_type": type(e).__name__})
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error("Database error updating post %s: %s", post.id, str(e), exc_info=True)
                raise DatabaseError(context={"post_id": post.id, "error_type": type(e).__name__})

        if tag_names is not None:
            await self.tags.detach_all_tags(db, post.id)
            await self.tags.attach_tags(db, post.id, tag_names)
            await self.tags.prune_orphan_tags(db)
            if not changes:
                post.updated_at = datetime.now(timezone.utc)
                try:
                    await db.flush()
                except SQLAlchemyError as e:
                    await db.rollback()
                    logger.error("Database error touching post %s: %s", post.id, str(e))
                    raise DatabaseError(context={"post_id": post.id, "error_type": type(e).__name__})

        logger.info("Post %s updated: %s", post.id, sorted(fields))
        return await self._to_response(db, post)

    async def delete(self, db: AsyncSession, identifier: str) -> bool:
        """
        Delete a post, then sweep tags it was the last user of.

        Links are removed explicitly before the row; the FK cascade would do
        the same, but not every backend enforces foreign keys by default.

        Returns:
            True if a post row was deleted.

        Raises:
            NotFoundError: no post matches
            DatabaseError: storage failure
        """
        try:
            post = await self._find(db, identifier)
        except SQLAlchemyError as e:
            logger.error("Database error fetching post '%s': %s", identifier, str(e))
            raise DatabaseError(context={"identifier": identifier})
        if post is None:
            raise NotFoundError(resource="post", resource_id=identifier)

        post_id = post.id
        await self.tags.detach_all_tags(db, post_id)
        try:
            result = await db.execute(delete(Post).where(Post.id == post_id))
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error deleting post %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(
                "Database internal error while deleting post",
                context={"post_id": post_id, "error_type": type(e).__name__},
            )
        deleted = (result.rowcount or 0) > 0
        pruned = await self.tags.prune_orphan_tags(db)

        logger.info("Post %s deleted (%d orphan tags pruned)", post_id, pruned)
        return deleted


post_service = PostService()
