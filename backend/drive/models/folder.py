"""Folder model - one node of an owner's folder tree."""
from sqlalchemy import String, Index
from sqlalchemy.orm import Mapped, mapped_column
from drive.models.base import Base, TimestampMixin, OwnerMixin, generate_id


class Folder(Base, TimestampMixin, OwnerMixin):
    __tablename__ = "folders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Not a foreign key: a shallow folder delete leaves children pointing at the removed parent
    parent_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    __table_args__ = (
        Index("idx_folders_owner_parent", "owner_id", "parent_id"),
    )
