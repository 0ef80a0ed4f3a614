from __future__ import annotations
"""Controller that binds saved profiles and settings to store operations."""

import logging
from typing import Any, Callable, Mapping, Optional

from .errors import NotConnectedError
from .handlers import handle_list_objects
from .models import BucketInfo, ObjectAcl, ObjectVersion, Page
from .profiles import ConnectionProfile, ProfileStorage
from .reconciler import ListingReconciler
from .settings import ConsoleSettings
from .store import DEFAULT_REGION, ObjectStoreClient, StoreCredentials

LOGGER = logging.getLogger(__name__)

StoreFactory = Callable[[StoreCredentials], ObjectStoreClient]


class ConsoleController:
    """Coordinates user actions with per-request :class:`ObjectStoreClient` instances.

    Only the credentials are remembered between calls; every operation
    builds a fresh store client from them.
    """

    def __init__(
        self,
        store_factory: StoreFactory | None = None,
        storage: ProfileStorage | None = None,
        settings: ConsoleSettings | None = None,
    ):
        self._store_factory = store_factory or ObjectStoreClient
        self._storage = storage or ProfileStorage()
        self._settings = settings or ConsoleSettings()
        self._credentials: StoreCredentials | None = None
        self._profiles: list[ConnectionProfile] = self._storage.load()
        self._selected_profile: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._credentials is not None

    @property
    def selected_profile(self) -> str | None:
        return self._selected_profile

    @property
    def settings(self) -> ConsoleSettings:
        return self._settings

    def list_profiles(self) -> list[ConnectionProfile]:
        return list(self._profiles)

    def save_profile(self, profile: ConnectionProfile, *, original_name: str | None = None) -> None:
        if original_name and original_name != profile.name:
            self._profiles = [p for p in self._profiles if p.name != original_name]
        self._upsert_profile(profile)
        self._storage.save(self._profiles)

    def delete_profile(self, name: str) -> None:
        before = len(self._profiles)
        self._profiles = [p for p in self._profiles if p.name != name]
        if len(self._profiles) == before:
            raise ValueError(f"Profile '{name}' does not exist")
        if self._selected_profile == name:
            self._selected_profile = None
        self._storage.save(self._profiles)

    def get_profile(self, name: str) -> ConnectionProfile:
        for profile in self._profiles:
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' does not exist")

    def connect_with_profile(self, name: str, *, verify: bool = True) -> list[BucketInfo]:
        profile = self.get_profile(name)
        buckets = self.connect(profile.to_credentials(), verify=verify)
        self._selected_profile = name
        return buckets

    def connect(self, credentials: StoreCredentials, *, verify: bool = True) -> list[BucketInfo]:
        """Keep ``credentials`` for later calls.

        With ``verify`` the buckets are listed first, so bad credentials raise
        here and nothing is kept.
        """

        if not credentials.region:
            credentials = StoreCredentials(
                endpoint_url=credentials.endpoint_url,
                access_key=credentials.access_key,
                secret_key=credentials.secret_key,
                region=self._settings.region or DEFAULT_REGION,
            )
        LOGGER.debug("Connecting to %s", credentials.endpoint_url)
        buckets = self._store_factory(credentials).list_buckets() if verify else []
        self._credentials = credentials
        LOGGER.debug("Connected to %s (%d buckets)", credentials.endpoint_url, len(buckets))
        return buckets

    def disconnect(self) -> None:
        self._credentials = None
        self._selected_profile = None

    def store(self) -> ObjectStoreClient:
        """Return a new store client for the current connection."""

        if self._credentials is None:
            raise NotConnectedError("Not connected to the object store")
        return self._store_factory(self._credentials)

    def test_connection(self) -> bool:
        return self.store().test_connection()

    def refresh_buckets(self) -> list[BucketInfo]:
        return self.store().list_buckets()

    def list_objects(
        self,
        *,
        bucket_name: str,
        prefix: str = "",
        continuation_token: Optional[str] = None,
    ) -> Page:
        reconciler = ListingReconciler(self.store(), delimiter=self._settings.delimiter)
        return reconciler.reconcile(
            bucket_name,
            prefix,
            continuation_token,
            self._settings.page_size,
        )

    def list_objects_response(self, query: Mapping[str, Optional[str]]) -> tuple[int, dict[str, Any]]:
        """Serve a listing request using the JSON contract of :func:`handle_list_objects`."""

        return handle_list_objects(
            query,
            self.store,
            page_size=self._settings.page_size,
            delimiter=self._settings.delimiter,
        )

    def list_versions(self, *, bucket_name: str, key: str) -> list[ObjectVersion]:
        return self.store().list_key_versions(bucket_name, key)

    def get_versioning(self, bucket_name: str) -> str:
        return self.store().get_bucket_versioning(bucket_name)

    def set_versioning(self, bucket_name: str, enabled: bool) -> None:
        self.store().set_bucket_versioning(bucket_name, enabled)

    def bucket_exists(self, bucket_name: str) -> bool:
        return self.store().bucket_exists(bucket_name)

    def create_bucket(self, bucket_name: str) -> None:
        self.store().create_bucket(bucket_name)

    def delete_bucket(self, bucket_name: str) -> None:
        self.store().delete_bucket(bucket_name)

    def create_folder(self, *, bucket_name: str, path: str) -> str:
        return self.store().create_folder(bucket_name, path)

    def delete_object(self, *, bucket_name: str, key: str) -> None:
        self.store().delete_object(bucket_name, key)

    def copy_object(self, *, source_bucket: str, source_key: str, dest_bucket: str, dest_key: str) -> None:
        self.store().copy_object(source_bucket, source_key, dest_bucket, dest_key)

    def rename_object(self, *, bucket_name: str, source_key: str, dest_key: str) -> None:
        self.store().rename_object(bucket_name, source_key, dest_key)

    def generate_presigned_url(
        self,
        *,
        bucket_name: str,
        key: str,
        method: str = "get",
        expires_in: int = 3600,
        version_id: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> str:
        return self.store().generate_presigned_url(
            bucket_name,
            key,
            method=method,
            expires_in=expires_in,
            version_id=version_id,
            content_type=content_type,
        )

    def get_object_acl(self, *, bucket_name: str, key: str) -> ObjectAcl:
        return self.store().get_object_acl(bucket_name, key)

    def set_object_acl(self, *, bucket_name: str, key: str, acl: str) -> None:
        self.store().set_object_acl(bucket_name, key, acl)

    def _upsert_profile(self, profile: ConnectionProfile) -> None:
        for idx, existing in enumerate(self._profiles):
            if existing.name == profile.name:
                self._profiles[idx] = profile
                break
        else:
            self._profiles.append(profile)
