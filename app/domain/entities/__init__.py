"""Domain entities package."""
from .index_entry import IndexEntry, ResourceMetadata, SourceRecord

__all__ = ["IndexEntry", "ResourceMetadata", "SourceRecord"]
