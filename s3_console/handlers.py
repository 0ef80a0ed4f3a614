from __future__ import annotations
"""JSON request handlers for the directory listing endpoint."""
from datetime import datetime, timezone
import logging
from typing import Any, Callable, Mapping, Optional

from botocore.exceptions import BotoCoreError

from .errors import ConsoleError, InvalidCursor, StoreUnavailable, ValidationError
from .models import DirectoryEntry, Page
from .reconciler import DEFAULT_DELIMITER, DEFAULT_PAGE_SIZE, ListingReconciler, VersionLister

LOGGER = logging.getLogger(__name__)

Response = tuple[int, dict[str, Any]]


def error_body(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"error": error}


def _format_timestamp(value: Optional[datetime], fallback: datetime) -> str:
    return (value or fallback).isoformat()


def serialize_page(page: Page, *, now: Optional[datetime] = None) -> dict[str, Any]:
    """Render a :class:`Page` using the camelCase JSON shape of the web console.

    Folders have no timestamp of their own and are stamped with ``now``.
    """

    now = now or datetime.now(timezone.utc)
    objects: list[dict[str, Any]] = []
    for entry in page.entries:
        if isinstance(entry, DirectoryEntry):
            objects.append(
                {
                    "key": entry.key,
                    "size": 0,
                    "lastModified": now.isoformat(),
                    "isFolder": True,
                    "isDeleted": False,
                }
            )
            continue
        item: dict[str, Any] = {
            "key": entry.key,
            "size": entry.size,
            "lastModified": _format_timestamp(entry.last_modified, now),
            "isFolder": False,
            "isDeleted": entry.is_deleted,
        }
        if entry.etag:
            item["etag"] = entry.etag
        objects.append(item)

    body: dict[str, Any] = {
        "objects": objects,
        "prefixes": list(page.prefixes),
        "isTruncated": page.is_truncated,
    }
    if page.next_cursor:
        body["continuationToken"] = page.next_cursor
    return body


def parse_list_query(query: Mapping[str, Optional[str]]) -> tuple[str, str, Optional[str]]:
    """Validate listing query parameters; empty values count as absent."""

    bucket = (query.get("bucket") or "").strip()
    if not bucket:
        raise ValidationError("Bucket is required")
    prefix = query.get("prefix") or ""
    token = query.get("continuationToken") or None
    return bucket, prefix, token


def handle_list_objects(
    query: Mapping[str, Optional[str]],
    store: VersionLister | Callable[[], VersionLister],
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    delimiter: str = DEFAULT_DELIMITER,
) -> Response:
    """Serve one listing page as ``(status, body)``.

    ``store`` may be a factory so no client is created for invalid requests.
    """

    try:
        bucket, prefix, token = parse_list_query(query)
    except ValidationError as exc:
        return 400, error_body("VALIDATION_ERROR", str(exc))

    try:
        lister = store if hasattr(store, "list_object_versions") else store()
    except (ConsoleError, ValueError, BotoCoreError):
        LOGGER.exception("Could not open a store client for bucket '%s'", bucket)
        return 500, error_body("S3_ERROR", "Failed to list objects")

    try:
        page = ListingReconciler(lister, delimiter=delimiter).reconcile(
            bucket, prefix, token, page_size
        )
    except InvalidCursor:
        LOGGER.exception("Continuation token rejected for bucket '%s'", bucket)
        return 500, error_body(
            "S3_ERROR",
            "Failed to list objects",
            {"reason": "invalid_cursor"},
        )
    except StoreUnavailable:
        LOGGER.exception("List objects error for bucket '%s'", bucket)
        return 500, error_body("S3_ERROR", "Failed to list objects")

    return 200, {"data": serialize_page(page)}
