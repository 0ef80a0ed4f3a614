from __future__ import annotations
"""boto3 adapter for the S3-compatible object store."""
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Callable, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import FolderNotEmptyError, InvalidCursor, StoreUnavailable
from .models import (
    NULL_VERSION_ID,
    AclGrant,
    BucketInfo,
    DeleteMarker,
    ObjectAcl,
    ObjectVersion,
    VersionListing,
    VersionRecord,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
INVALID_CURSOR_CODES = frozenset(
    {"InvalidArgument", "InvalidToken", "InvalidMarker", "InvalidKeyMarker"}
)
VERSIONING_STATES = ("Enabled", "Suspended", "Disabled")
CANNED_ACLS = ("private", "public-read", "public-read-write", "authenticated-read")
PUBLIC_GRANTEE_URIS = frozenset(
    {
        "http://acs.amazonaws.com/groups/global/AllUsers",
        "http://acs.amazonaws.com/groups/global/AuthenticatedUsers",
    }
)
MIN_PRESIGN_EXPIRY = 60
MAX_PRESIGN_EXPIRY = 604800

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class StoreCredentials:
    """Connection settings used to build a store client for one request."""

    endpoint_url: str
    access_key: str
    secret_key: str
    region: str = DEFAULT_REGION

    def __repr__(self) -> str:
        return (
            f"StoreCredentials(endpoint_url={self.endpoint_url!r}, "
            f"access_key={self.access_key!r}, region={self.region!r})"
        )


def _error_code(exc: ClientError) -> str | None:
    return (getattr(exc, "response", None) or {}).get("Error", {}).get("Code")


def sort_timestamp(value: Optional[datetime]) -> datetime:
    """Return a comparable timestamp; missing values sort as the oldest."""

    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ObjectStoreClient:
    """Thin wrapper around a boto3 S3 client bound to explicit credentials."""

    def __init__(
        self,
        credentials: StoreCredentials,
        client_factory: Callable[..., object] | None = None,
    ):
        self._credentials = credentials
        self._client_factory = client_factory or boto3.client
        self._client = self._create_client()

    @property
    def credentials(self) -> StoreCredentials:
        return self._credentials

    def _create_client(self):
        # Retries stay with the caller; a retried page may differ under concurrent writes.
        config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"max_attempts": 1, "mode": "standard"},
        )
        return self._client_factory(
            "s3",
            endpoint_url=self._credentials.endpoint_url,
            region_name=self._credentials.region or DEFAULT_REGION,
            aws_access_key_id=self._credentials.access_key,
            aws_secret_access_key=self._credentials.secret_key,
            config=config,
        )

    def _call(self, operation: str, **params):
        LOGGER.debug("Calling %s with %s", operation, sorted(params))
        try:
            return getattr(self._client, operation)(**params)
        except ClientError as exc:
            raise StoreUnavailable(str(exc), code=_error_code(exc)) from exc
        except BotoCoreError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def list_object_versions(
        self,
        bucket: str,
        prefix: str = "",
        key_marker: str | None = None,
        max_keys: int = 1000,
    ) -> VersionListing:
        """Return one page of versions and delete markers under ``prefix``.

        Raises:
            InvalidCursor: when the store rejects ``key_marker``.
            StoreUnavailable: for any other failure, including malformed responses.
        """

        params: dict[str, object] = {"Bucket": bucket, "MaxKeys": max_keys}
        if prefix:
            params["Prefix"] = prefix
        if key_marker:
            params["KeyMarker"] = key_marker
        try:
            response = self._call("list_object_versions", **params)
        except StoreUnavailable as exc:
            if key_marker and exc.code in INVALID_CURSOR_CODES:
                raise InvalidCursor(str(exc), code=exc.code) from exc.__cause__
            raise
        return parse_version_listing(response)

    def list_buckets(self) -> list[BucketInfo]:
        response = self._call("list_buckets")
        return [
            BucketInfo(name=bucket.get("Name", ""), creation_date=bucket.get("CreationDate"))
            for bucket in response.get("Buckets") or []
        ]

    def create_bucket(self, bucket: str) -> None:
        self._call("create_bucket", Bucket=bucket)

    def delete_bucket(self, bucket: str) -> None:
        self._call("delete_bucket", Bucket=bucket)

    def bucket_exists(self, bucket: str) -> bool:
        try:
            self._call("head_bucket", Bucket=bucket)
        except StoreUnavailable:
            return False
        return True

    def test_connection(self) -> bool:
        try:
            self._call("list_buckets")
        except StoreUnavailable:
            LOGGER.debug("Connection test failed for %s", self._credentials.endpoint_url)
            return False
        return True

    def create_folder(self, bucket: str, path: str) -> str:
        key = path if path.endswith("/") else f"{path}/"
        self._call("put_object", Bucket=bucket, Key=key, Body=b"")
        return key

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete ``key``; folder placeholders must be empty first."""

        if key.endswith("/"):
            contents = self._call("list_objects_v2", Bucket=bucket, Prefix=key, MaxKeys=2)
            if any(obj.get("Key") != key for obj in contents.get("Contents") or []):
                raise FolderNotEmptyError(f"Folder '{key}' is not empty")
        self._call("delete_object", Bucket=bucket, Key=key)

    def copy_object(self, source_bucket: str, source_key: str, dest_bucket: str, dest_key: str) -> None:
        self._call(
            "copy_object",
            Bucket=dest_bucket,
            Key=dest_key,
            CopySource={"Bucket": source_bucket, "Key": source_key},
        )

    def rename_object(self, bucket: str, source_key: str, dest_key: str) -> None:
        self.move_object(bucket, source_key, bucket, dest_key)

    def move_object(self, source_bucket: str, source_key: str, dest_bucket: str, dest_key: str) -> None:
        self.copy_object(source_bucket, source_key, dest_bucket, dest_key)
        self.delete_object(source_bucket, source_key)

    def get_bucket_versioning(self, bucket: str) -> str:
        response = self._call("get_bucket_versioning", Bucket=bucket)
        status = response.get("Status")
        return status if status in VERSIONING_STATES else "Disabled"

    def set_bucket_versioning(self, bucket: str, enabled: bool) -> None:
        self._call(
            "put_bucket_versioning",
            Bucket=bucket,
            VersioningConfiguration={"Status": "Enabled" if enabled else "Suspended"},
        )

    def list_key_versions(self, bucket: str, key: str) -> list[ObjectVersion]:
        """Return every version and delete marker of ``key``, newest first."""

        listing = parse_version_listing(
            self._call("list_object_versions", Bucket=bucket, Prefix=key)
        )
        versions = [
            ObjectVersion(
                key=record.key,
                version_id=record.version_id,
                is_latest=record.is_latest,
                last_modified=record.last_modified,
                size=record.size,
                etag=record.etag,
            )
            for record in listing.versions
            if record.key == key
        ]
        versions.extend(
            ObjectVersion(
                key=marker.key,
                version_id=marker.version_id,
                is_latest=marker.is_latest,
                last_modified=marker.last_modified,
                is_delete_marker=True,
            )
            for marker in listing.delete_markers
            if marker.key == key
        )
        versions.sort(key=lambda version: sort_timestamp(version.last_modified), reverse=True)
        return versions

    def generate_presigned_url(
        self,
        bucket: str,
        key: str,
        *,
        method: str = "get",
        expires_in: int = 3600,
        version_id: str | None = None,
        content_type: str | None = None,
    ) -> str:
        """Create a presigned URL for downloading or uploading ``key``.

        ``version_id`` shares one specific version on GET. Uploads must name
        their ``content_type`` since it becomes part of the signature.
        """

        operation = method.strip().lower()
        if operation not in {"get", "put"}:
            raise ValueError("method must be either 'get' or 'put'")
        if not MIN_PRESIGN_EXPIRY <= expires_in <= MAX_PRESIGN_EXPIRY:
            raise ValueError(
                f"expires_in must be between {MIN_PRESIGN_EXPIRY} and {MAX_PRESIGN_EXPIRY} seconds"
            )

        params: dict[str, str] = {"Bucket": bucket, "Key": key}
        if operation == "get":
            client_method = "get_object"
            if version_id:
                params["VersionId"] = version_id
        else:
            client_method = "put_object"
            if not content_type:
                raise ValueError("content_type is required for uploads")
            params["ContentType"] = content_type
        return self._call(
            "generate_presigned_url",
            ClientMethod=client_method,
            Params=params,
            ExpiresIn=expires_in,
        )

    def get_object_acl(self, bucket: str, key: str) -> ObjectAcl:
        response = self._call("get_object_acl", Bucket=bucket, Key=key)
        owner = response.get("Owner") or {}
        grants: list[AclGrant] = []
        is_public = False
        for grant in response.get("Grants") or []:
            grantee = grant.get("Grantee") or {}
            if grantee.get("URI") in PUBLIC_GRANTEE_URIS:
                is_public = True
            grants.append(
                AclGrant(
                    grantee=grantee.get("DisplayName") or grantee.get("URI") or grantee.get("ID") or "unknown",
                    permission=grant.get("Permission") or "UNKNOWN",
                )
            )
        return ObjectAcl(
            owner=owner.get("DisplayName") or owner.get("ID") or "unknown",
            is_public=is_public,
            grants=grants,
        )

    def set_object_acl(self, bucket: str, key: str, acl: str) -> None:
        if acl not in CANNED_ACLS:
            raise ValueError(f"acl must be one of {', '.join(CANNED_ACLS)}")
        self._call("put_object_acl", Bucket=bucket, Key=key, ACL=acl)


def _require_list(response: dict, field_name: str) -> list:
    value = response.get(field_name)
    if value is None:
        return []
    if not isinstance(value, list):
        raise StoreUnavailable(f"Malformed list_object_versions response: {field_name} is not a list")
    return value


def parse_version_listing(response: object) -> VersionListing:
    """Map a raw ``list_object_versions`` response onto :class:`VersionListing`.

    Records without a key are dropped. Absent collections become empty lists.
    """

    if not isinstance(response, dict):
        raise StoreUnavailable("Malformed list_object_versions response")
    try:
        return _build_version_listing(response)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise StoreUnavailable(f"Malformed list_object_versions response: {exc}") from exc


def _build_version_listing(response: dict) -> VersionListing:
    versions = [
        VersionRecord(
            key=item["Key"],
            version_id=item.get("VersionId") or NULL_VERSION_ID,
            is_latest=bool(item.get("IsLatest", False)),
            size=int(item.get("Size") or 0),
            last_modified=item.get("LastModified"),
            etag=item.get("ETag"),
        )
        for item in _require_list(response, "Versions")
        if item.get("Key")
    ]
    delete_markers = [
        DeleteMarker(
            key=item["Key"],
            version_id=item.get("VersionId") or NULL_VERSION_ID,
            is_latest=bool(item.get("IsLatest", False)),
            last_modified=item.get("LastModified"),
        )
        for item in _require_list(response, "DeleteMarkers")
        if item.get("Key")
    ]
    return VersionListing(
        versions=versions,
        delete_markers=delete_markers,
        is_truncated=bool(response.get("IsTruncated", False)),
        next_key_marker=response.get("NextKeyMarker") or None,
    )
