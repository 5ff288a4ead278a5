"""Change detection for employee photos.

Decides, without any I/O, whether a directory record needs to be re-indexed.
Signals are checked from cheapest to most expensive: URL identity, then HTTP
resource metadata, then (after the caller downloads the image) fingerprint
equality against every entry already stored for the identity.
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from app.domain.entities.index_entry import IndexEntry, ResourceMetadata
from app.domain.value_objects.reconciliation import ChangeClassification, ChangeDecision


def resolve_image_url(base_url: str, image_reference: str) -> str:
    """Build the absolute URL of a directory photo reference."""
    reference = image_reference.strip()
    if reference.startswith(("http://", "https://")):
        return reference
    return f"{base_url.rstrip('/')}/{reference.lstrip('/')}"


def classify_change(
    image_url: str,
    existing_entries: List[IndexEntry],
    current_metadata: ResourceMetadata,
) -> ChangeDecision:
    """Classify a source record against the active entries of its identity.

    Args:
        image_url: Resolved URL of the record's photo
        existing_entries: Active entries for the identity, in creation order
        current_metadata: Result of the metadata probe (possibly empty)

    Returns:
        ChangeDecision carrying the classification and the URL-matched entry
    """
    active = [entry for entry in existing_entries if entry.active]
    url_match = next((e for e in active if e.image_source_url == image_url), None)

    if url_match is not None:
        if url_match.fingerprint and url_match.resource_metadata.matches(current_metadata):
            classification = ChangeClassification.UNCHANGED
        else:
            # Same URL but the headers moved (or were never seen): only pixels can tell
            classification = ChangeClassification.METADATA_REFRESH_NEEDED
    elif not active:
        classification = ChangeClassification.NEW_IDENTITY
    else:
        classification = ChangeClassification.URL_CHANGED

    return ChangeDecision(
        classification=classification,
        image_url=image_url,
        current_metadata=current_metadata,
        existing_entries=active,
        url_match=url_match,
    )


def find_fingerprint_match(fingerprint: str, entries: Iterable[IndexEntry]) -> Optional[IndexEntry]:
    """Return the first entry whose stored fingerprint equals ``fingerprint``."""
    for entry in entries:
        if entry.fingerprint and entry.fingerprint == fingerprint:
            return entry
    return None


def select_superseded_duplicates(entries: Iterable[IndexEntry]) -> List[IndexEntry]:
    """Return every active entry that is not the newest for its identity.

    The newest entry is the one with the highest surrogate id.
    """
    by_identity: Dict[str, List[IndexEntry]] = defaultdict(list)
    for entry in entries:
        if entry.active:
            by_identity[entry.identity].append(entry)

    superseded: List[IndexEntry] = []
    for group in by_identity.values():
        newest = max(group, key=lambda e: e.entry_id)
        superseded.extend(e for e in group if e.entry_id != newest.entry_id)
    return sorted(superseded, key=lambda e: e.entry_id)


def group_by_identity(entries: Iterable[IndexEntry]) -> Dict[str, List[IndexEntry]]:
    """Group entries per identity, each group in creation order."""
    grouped: Dict[str, List[IndexEntry]] = defaultdict(list)
    for entry in sorted(entries, key=lambda e: e.entry_id):
        grouped[entry.identity].append(entry)
    return dict(grouped)
