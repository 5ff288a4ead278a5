"""Storage interfaces."""
from .index_store import IndexStore, IndexUnitOfWork
from .source_directory import SourceDirectory

__all__ = ["IndexStore", "IndexUnitOfWork", "SourceDirectory"]
