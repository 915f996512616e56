"""
SQLAlchemy database models for the reference library.

This module defines the ORM models for persisting bibliographic
references, researcher profiles and user roles.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base
from .models import DocumentType, TechnicalDomain


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enum values rather than member names."""
    return [member.value for member in enum_cls]


class Role(enum.Enum):
    """Application role granted to a user."""

    ADMIN = "admin"
    USER = "user"


class Reference(Base):
    """
    Bibliographic record for one uploaded document.

    Owned by the user who created it. Authors and affiliations are
    stored as ordered JSON arrays.
    """

    __tablename__ = "references"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    abstract: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    journal: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
    )
    doi: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    authors: Mapped[list] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    affiliations: Mapped[list] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    document_type: Mapped[DocumentType] = mapped_column(
        Enum(DocumentType, values_callable=_enum_values, name="document_type"),
        default=DocumentType.ARTICLE_SCIENTIFIQUE,
        nullable=False,
    )
    technical_domain: Mapped[TechnicalDomain | None] = mapped_column(
        Enum(TechnicalDomain, values_callable=_enum_values, name="technical_domain"),
        nullable=True,
    )
    publication_year: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    review_status: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Free text, e.g. indexed or peer-reviewed",
    )
    source_verification: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Web link or physical location used to verify the reference",
    )
    pdf_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    pdf_filename: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Reference(id={self.id}, title='{self.title[:40]}')>"


class Profile(Base):
    """
    Public academic identity of a user.

    One row per user, created on signup and edited by its owner.
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        unique=True,
        index=True,
    )
    full_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    institute: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="UFR or institute",
    )
    department: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    research_team: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    bio: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Profile(user_id={self.user_id}, full_name='{self.full_name}')>"


class UserRole(Base):
    """Role assignment; a user holding the admin role can export references."""

    __tablename__ = "user_roles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )
    role: Mapped[Role] = mapped_column(
        Enum(Role, values_callable=_enum_values, name="app_role"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_role"),
    )

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role={self.role.value})>"
