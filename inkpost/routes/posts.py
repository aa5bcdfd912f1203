"""
Inkpost Backend: Post Route Handlers
======================================

What:  Public reads and admin-gated writes for posts, plus the tag list.
Who:   Blog frontend (reads) and the admin editor (writes).

Route order matters: /posts/tags is declared before /posts/{identifier} so
"tags" is never treated as a post identifier.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from inkpost.config import settings
from inkpost.database import get_db_session
from inkpost.routes.deps import require_admin
from inkpost.schemas.common import ErrorResponse
from inkpost.schemas.post import PostCreate, PostResponse, PostSummary, PostUpdate
from inkpost.schemas.user import UserContext
from inkpost.services.post_service import post_service
from inkpost.services.slug_tag_service import slug_tag_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])

ADMIN_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Admin privileges required", "model": ErrorResponse},
}


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **ADMIN_ERRORS,
        409: {"description": "Slug already in use", "model": ErrorResponse},
    },
    summary="Create a post",
)
async def create_post(
    body: PostCreate,
    current_user: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.create(
        db,
        title=body.title,
        content=body.content,
        excerpt=body.excerpt,
        author_id=current_user.id,
        tags=body.tags,
        status=body.status,
    )


@router.get(
    "",
    response_model=List[PostSummary],
    summary="List posts, newest first",
)
async def list_posts(
    limit: int = Query(
        default=settings.posts_default_limit,
        ge=1,
        le=settings.posts_max_limit,
        description="Maximum number of posts to return",
    ),
    tag: Optional[str] = Query(default=None, description="Only posts carrying this tag"),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostSummary]:
    return await post_service.list_posts(db, limit=limit, tag=tag)


@router.get(
    "/tags",
    response_model=List[str],
    summary="List every tag in use",
)
async def list_tags(db: AsyncSession = Depends(get_db_session)) -> List[str]:
    return await slug_tag_manager.list_tag_names(db)


@router.get(
    "/{identifier}",
    response_model=PostResponse,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Get a post by slug or title",
)
async def get_post(
    identifier: str,
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.get_by_slug_or_title(db, identifier)


@router.patch(
    "/{identifier}",
    response_model=PostResponse,
    responses={
        **ADMIN_ERRORS,
        400: {"description": "Nothing to update", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
        409: {"description": "Slug already in use", "model": ErrorResponse},
    },
    summary="Partially update a post",
)
async def update_post(
    identifier: str,
    body: PostUpdate,
    current_user: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    fields = body.model_dump(exclude_unset=True)
    return await post_service.update(db, identifier, fields)


@router.delete(
    "/{identifier}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        **ADMIN_ERRORS,
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Delete a post",
)
async def delete_post(
    identifier: str,
    current_user: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await post_service.delete(db, identifier)
    logger.info("Post '%s' deleted by user %s", identifier, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
