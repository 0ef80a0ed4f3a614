from __future__ import annotations
"""Data models representing object store listings."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

NULL_VERSION_ID = "null"


@dataclass(frozen=True)
class VersionRecord:
    """A single stored version of a key."""

    key: str
    version_id: str = NULL_VERSION_ID
    is_latest: bool = False
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None


@dataclass(frozen=True)
class DeleteMarker:
    """Tombstone left by a delete on a versioned bucket."""

    key: str
    version_id: str = NULL_VERSION_ID
    is_latest: bool = False
    last_modified: Optional[datetime] = None


@dataclass
class VersionListing:
    """Typed response of a list-object-versions call."""

    versions: list[VersionRecord] = field(default_factory=list)
    delete_markers: list[DeleteMarker] = field(default_factory=list)
    is_truncated: bool = False
    next_key_marker: Optional[str] = None


@dataclass(frozen=True)
class DirectoryEntry:
    """Folder inferred from the keys sharing a prefix."""

    key: str

    @property
    def is_folder(self) -> bool:
        return True


@dataclass(frozen=True)
class FileEntry:
    """Current state of a key directly inside the listed prefix."""

    key: str
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    is_deleted: bool = False

    @property
    def is_folder(self) -> bool:
        return False


Entry = Union[DirectoryEntry, FileEntry]


@dataclass
class Page:
    """One page of a reconciled directory listing."""

    entries: list[Entry] = field(default_factory=list)
    prefixes: list[str] = field(default_factory=list)
    is_truncated: bool = False
    next_cursor: Optional[str] = None

    @property
    def folders(self) -> list[DirectoryEntry]:
        return [entry for entry in self.entries if isinstance(entry, DirectoryEntry)]

    @property
    def files(self) -> list[FileEntry]:
        return [entry for entry in self.entries if isinstance(entry, FileEntry)]


@dataclass
class ObjectVersion:
    """Row in the version history of a single key."""

    key: str
    version_id: str
    is_latest: bool
    last_modified: Optional[datetime] = None
    size: int = 0
    etag: Optional[str] = None
    is_delete_marker: bool = False


@dataclass
class BucketInfo:
    name: str
    creation_date: Optional[datetime] = None


@dataclass
class AclGrant:
    grantee: str
    permission: str


@dataclass
class ObjectAcl:
    """Access control summary of one object."""

    owner: str
    is_public: bool = False
    grants: list[AclGrant] = field(default_factory=list)
