from __future__ import annotations
"""Directory listings rebuilt from the store's version listing.

Delimiter based listing on SeaweedFS can duplicate or drop entries and says
nothing about deleted keys, so each page is rebuilt from
``list_object_versions``: folders are inferred from key prefixes and every
key is collapsed onto its latest version or delete marker.
"""
import logging
from typing import Iterable, Optional, Protocol, TypeVar, Union

from .models import (
    DeleteMarker,
    DirectoryEntry,
    FileEntry,
    Page,
    VersionListing,
    VersionRecord,
)
from .store import sort_timestamp

LOGGER = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000
DEFAULT_DELIMITER = "/"

_Record = TypeVar("_Record", bound=Union[VersionRecord, DeleteMarker])


class VersionLister(Protocol):
    def list_object_versions(
        self,
        bucket: str,
        prefix: str = "",
        key_marker: str | None = None,
        max_keys: int = DEFAULT_PAGE_SIZE,
    ) -> VersionListing:
        ...


def index_latest(records: Iterable[_Record]) -> dict[str, _Record]:
    """Index records flagged as latest by key.

    A well formed response has one latest record per key. If the store
    reports more, the newest ``last_modified`` wins and the first one seen
    wins a tie, so the same input always gives the same index.
    """

    latest: dict[str, _Record] = {}
    for record in records:
        if not record.is_latest:
            continue
        current = latest.get(record.key)
        if current is None or sort_timestamp(record.last_modified) > sort_timestamp(
            current.last_modified
        ):
            latest[record.key] = record
    return latest


def index_newest(records: Iterable[VersionRecord]) -> dict[str, VersionRecord]:
    """Index the newest version of each key regardless of ``is_latest``."""

    newest: dict[str, VersionRecord] = {}
    for record in records:
        current = newest.get(record.key)
        if current is None or sort_timestamp(record.last_modified) > sort_timestamp(
            current.last_modified
        ):
            newest[record.key] = record
    return newest


class ListingReconciler:
    """Builds one page of a folder view from a version listing."""

    def __init__(self, store: VersionLister, *, delimiter: str = DEFAULT_DELIMITER):
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self._store = store
        self._delimiter = delimiter

    def reconcile(
        self,
        bucket: str,
        prefix: str = "",
        cursor: Optional[str] = None,
        page_size_hint: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        """Return the folders and files directly under ``prefix``.

        ``cursor`` is the ``next_cursor`` of a previous page for the same
        prefix and is handed back to the store untouched.

        Raises:
            InvalidCursor: when the store rejects ``cursor``.
            StoreUnavailable: when the listing call fails.
        """

        prefix = prefix or ""
        listing = self._store.list_object_versions(bucket, prefix, cursor, page_size_hint)
        page = self.build_page(listing, prefix)
        LOGGER.debug(
            "Reconciled %d folder(s) and %d file(s) under '%s' in bucket '%s' (truncated=%s)",
            len(page.prefixes),
            len(page.entries) - len(page.prefixes),
            prefix,
            bucket,
            page.is_truncated,
        )
        return page

    def build_page(self, listing: VersionListing, prefix: str = "") -> Page:
        latest_versions = index_latest(listing.versions)
        latest_markers = index_latest(listing.delete_markers)
        known_versions = index_newest(listing.versions)

        folders: set[str] = set()
        files: dict[str, FileEntry] = {}
        for key in {*latest_versions, *latest_markers}:
            if key == prefix:
                continue
            relative = key[len(prefix):]
            separator_index = relative.find(self._delimiter)
            if separator_index != -1:
                folders.add(prefix + relative[: separator_index + len(self._delimiter)])
                continue
            entry = self._file_entry(key, latest_versions, latest_markers, known_versions)
            if entry is not None:
                files[key] = entry

        prefixes = sorted(folders)
        entries: list[Union[DirectoryEntry, FileEntry]] = [DirectoryEntry(key=p) for p in prefixes]
        entries.extend(files[key] for key in sorted(files))
        return Page(
            entries=entries,
            prefixes=prefixes,
            is_truncated=listing.is_truncated,
            next_cursor=listing.next_key_marker,
        )

    @staticmethod
    def _file_entry(
        key: str,
        latest_versions: dict[str, VersionRecord],
        latest_markers: dict[str, DeleteMarker],
        known_versions: dict[str, VersionRecord],
    ) -> FileEntry | None:
        version = latest_versions.get(key)
        marker = latest_markers.get(key)
        if marker is not None:
            last_known = version or known_versions.get(key)
            return FileEntry(
                key=key,
                size=last_known.size if last_known else 0,
                last_modified=marker.last_modified,
                etag=last_known.etag if last_known else None,
                is_deleted=True,
            )
        if version is None:
            return None
        return FileEntry(
            key=key,
            size=version.size,
            last_modified=version.last_modified,
            etag=version.etag,
            is_deleted=False,
        )
