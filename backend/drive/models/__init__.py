"""Import all models so SQLAlchemy metadata knows about them."""
from drive.models.base import Base
from drive.models.folder import Folder
from drive.models.file import File

__all__ = ["Base", "Folder", "File"]
