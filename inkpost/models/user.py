"""
Inkpost Backend: User SQLAlchemy Model
========================================

What:  ORM model for the `users` table.
Who:   UserService (registration, login, token authentication) and Alembic.

Lifecycle:
    Created at registration; read at login and on every authenticated
    request. Users are never updated or deleted through the API. The
    is_admin flag is set at registration for bootstrap emails or by hand in
    the database.
"""

from sqlalchemy import Boolean, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from inkpost.database import Base


class User(Base):
    """A registered account. Admins may create, edit and delete posts."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(30), nullable=False)
    last_name: Mapped[str] = mapped_column(String(30), nullable=False)

    # Stored lowercased; the unique constraint is what settles duplicate
    # registrations racing each other
    email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)

    # bcrypt hash including salt and cost; never returned by any schema
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', is_admin={self.is_admin})>"
