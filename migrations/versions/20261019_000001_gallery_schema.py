from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261019_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    media_kind_enum = sa.Enum("image", "video", name="mediakind")

    op.create_table(
        "studios",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("logo_path", sa.String(length=1024), nullable=True),
        sa.Column("logo_thumb_path", sa.String(length=1024), nullable=True),
        sa.Column("website_url", sa.String(length=1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "models",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("studio_id", sa.Integer(), sa.ForeignKey("studios.id", ondelete="SET NULL"), nullable=True),
        sa.Column("profile_image_path", sa.String(length=1024), nullable=True),
        sa.Column("profile_thumb_path", sa.String(length=1024), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "sets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("model_id", sa.Integer(), sa.ForeignKey("models.id", ondelete="CASCADE"), nullable=False),
        sa.Column("release_date", sa.String(length=10), nullable=True),
        sa.Column("cover_image_path", sa.String(length=1024), nullable=True),
        sa.Column("cover_thumb_path", sa.String(length=1024), nullable=True),
        sa.Column("image_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("video_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_size_bytes", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_sets_model_id_name", "sets", ["model_id", "name"])

    op.create_table(
        "media",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("set_id", sa.Integer(), sa.ForeignKey("sets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("filename", sa.String(length=512), nullable=False),
        sa.Column("original_path", sa.String(length=1024), nullable=False),
        sa.Column("display_path", sa.String(length=1024), nullable=True),
        sa.Column("thumb_path", sa.String(length=1024), nullable=True),
        sa.Column("file_type", media_kind_enum, nullable=False),
        sa.Column("mime_type", sa.String(length=128), nullable=True),
        sa.Column("filesize", sa.BigInteger(), nullable=True),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("hash", sa.String(length=128), nullable=True),
        sa.Column("hash_algo", sa.String(length=16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("set_id", "hash", name="uq_media_set_hash"),
    )
    op.create_index("ix_media_set_id_sort_order", "media", ["set_id", "sort_order"])


def downgrade() -> None:
    op.drop_index("ix_media_set_id_sort_order", table_name="media")
    op.drop_table("media")
    op.drop_index("ix_sets_model_id_name", table_name="sets")
    op.drop_table("sets")
    op.drop_table("models")
    op.drop_table("studios")
    sa.Enum(name="mediakind").drop(op.get_bind(), checkfirst=True)
