from .archive_repository import ArchiveRepository
from .build_repository import BuildRepository

__all__ = ["ArchiveRepository", "BuildRepository"]
