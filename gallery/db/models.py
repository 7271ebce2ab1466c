from __future__ import annotations

import enum
from datetime import datetime

from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gallery.core.db import Base


class MediaKind(str, enum.Enum):
    image = "image"
    video = "video"


class Studio(Base):
    __tablename__ = "studios"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    logo_thumb_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    models: Mapped[List["Model"]] = relationship(back_populates="studio", passive_deletes=True)


class Model(Base):
    __tablename__ = "models"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    studio_id: Mapped[int | None] = mapped_column(ForeignKey("studios.id", ondelete="SET NULL"), nullable=True)
    profile_image_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    profile_thumb_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    studio: Mapped[Optional[Studio]] = relationship(back_populates="models")
    sets: Mapped[List["MediaSet"]] = relationship(back_populates="model", passive_deletes=True)


class MediaSet(Base):
    __tablename__ = "sets"
    __table_args__ = (Index("ix_sets_model_id_name", "model_id", "name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    model_id: Mapped[int] = mapped_column(ForeignKey("models.id", ondelete="CASCADE"), nullable=False)
    release_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    cover_image_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    cover_thumb_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    image_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    video_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_size_bytes: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    model: Mapped[Model] = relationship(back_populates="sets")
    media: Mapped[List["Media"]] = relationship(back_populates="media_set", passive_deletes=True)


class Media(Base):
    __tablename__ = "media"
    __table_args__ = (
        UniqueConstraint("set_id", "hash", name="uq_media_set_hash"),
        Index("ix_media_set_id_sort_order", "set_id", "sort_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    set_id: Mapped[int] = mapped_column(ForeignKey("sets.id", ondelete="CASCADE"), nullable=False)
    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    original_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    display_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    thumb_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    file_type: Mapped[MediaKind] = mapped_column(Enum(MediaKind), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    filesize: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    hash_algo: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    media_set: Mapped[MediaSet] = relationship(back_populates="media")


__all__ = [
    "MediaKind",
    "Studio",
    "Model",
    "MediaSet",
    "Media",
]
