"""
Inkpost Backend: Post Schemas
===============================

What:  Request bodies for create/update and the full/summary projections.

Design Decision:
    PostSummary omits `content` so listing stays cheap no matter how long the
    posts are. Clients fetch GET /posts/{identifier} for the body.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field

from inkpost.schemas.common import CamelModel

PostStatus = Literal["draft", "published"]


class PostCreate(CamelModel):
    title: str = Field(min_length=3, max_length=150, examples=["How to learn JavaScript"])
    content: str = Field(min_length=10, examples=["Start with the basics..."])
    excerpt: str = Field(default="", max_length=500)
    tags: Optional[List[str]] = Field(default=None, examples=[["JavaScript", "Beginners"]])
    status: PostStatus = "draft"


class PostUpdate(CamelModel):
    """
    Partial update. Only keys present in the request body are applied;
    unknown keys are rejected with 422.
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=3, max_length=150)
    content: Optional[str] = Field(default=None, min_length=10)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    tags: Optional[List[str]] = None
    status: Optional[PostStatus] = None


class PostSummary(CamelModel):
    id: int
    title: str
    slug: str
    excerpt: str
    status: str
    author_id: int
    created_at: datetime
    updated_at: datetime
    tags: List[str] = Field(default_factory=list)


class PostResponse(PostSummary):
    content: str
