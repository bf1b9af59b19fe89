"""File model - file metadata (actual bytes live in blob storage under `src`)."""
from sqlalchemy import String, Index
from sqlalchemy.orm import Mapped, mapped_column
from drive.models.base import Base, TimestampMixin, OwnerMixin, generate_id


class File(Base, TimestampMixin, OwnerMixin):
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    folder_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    src: Mapped[str] = mapped_column(String(1000), nullable=False)

    __table_args__ = (
        Index("idx_files_owner_folder", "owner_id", "folder_id"),
    )
