"""
Inkpost Backend: Post SQLAlchemy Model
========================================

What:  ORM model for the `posts` table.
Who:   PostService for CRUD, SlugTagManager for slug lookups, Alembic.

Table Design Rationale:
    - slug: derived from title, UNIQUE. The constraint is the final word on
      uniqueness; the service pre-check only produces a friendlier error.
    - excerpt: short teaser returned in listings instead of content.
    - status: draft or published. Stored as a short string rather than a
      database enum so adding a state needs no type migration.
    - author_id: FK to users with ON DELETE CASCADE.

    Index on created_at DESC:
        Listing is always newest first.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from inkpost.database import Base

POST_STATUSES = ("draft", "published")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Post(Base):
    """A blog post. Tags are linked through `post_tags` (see models.tag)."""

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(150), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    excerpt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        server_default=text("'draft'"),
    )
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # UTC everywhere; conversion to local time is the client's job
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_posts_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, slug='{self.slug}', status='{self.status}')>"
