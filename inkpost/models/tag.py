"""
Inkpost Backend: Tag and PostTag SQLAlchemy Models
====================================================

What:  ORM models for `tags` and the `post_tags` association table.
Who:   SlugTagManager, which owns every write to these tables.

Tag lifecycle:
    A tag row is created the first time any post uses the name and deleted
    by the orphan sweep once no post references it.

name_key:
    The lowercased name, computed in Python and UNIQUE. Every lookup and the
    uniqueness rule go through it, so "JS" and "js", or "Ética" and "ética",
    are the same tag on every backend (SQLite's lower() only folds ASCII)
    even when two writers insert them concurrently.

PostTag:
    Composite primary key (post_id, tag_id) makes a duplicate link
    impossible. Both foreign keys cascade, so deleting a post or a tag
    removes its links.
"""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from inkpost.database import Base

TAG_NAME_MAX_LENGTH = 50

# Lowercasing can lengthen a few characters ("İ" becomes two code points)
TAG_KEY_MAX_LENGTH = TAG_NAME_MAX_LENGTH * 2


def tag_key(name: str) -> str:
    return name.lower()


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(TAG_NAME_MAX_LENGTH), nullable=False, unique=True)
    name_key: Mapped[str] = mapped_column(
        String(TAG_KEY_MAX_LENGTH), nullable=False, unique=True, index=True
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}')>"


class PostTag(Base):
    __tablename__ = "post_tags"

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<PostTag(post_id={self.post_id}, tag_id={self.tag_id})>"
