import unittest
from datetime import datetime, timezone

from s3_console.errors import InvalidCursor, NotConnectedError, StoreUnavailable
from s3_console.handlers import handle_list_objects, serialize_page
from s3_console.models import DeleteMarker, DirectoryEntry, FileEntry, Page, VersionListing, VersionRecord

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
NOW = datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc)


class FakeLister:
    def __init__(self, listing=None, error=None):
        self.listing = listing or VersionListing()
        self.error = error
        self.calls = []

    def list_object_versions(self, bucket, prefix="", key_marker=None, max_keys=1000):
        self.calls.append((bucket, prefix, key_marker, max_keys))
        if self.error is not None:
            raise self.error
        return self.listing


class HandleListObjectsTests(unittest.TestCase):
    def test_missing_bucket_is_validation_error(self):
        lister = FakeLister()
        factory_calls = []

        def factory():
            factory_calls.append(True)
            return lister

        for query in ({}, {"bucket": ""}, {"bucket": None, "prefix": "a/"}):
            status, body = handle_list_objects(query, factory)
            self.assertEqual(400, status)
            self.assertEqual("VALIDATION_ERROR", body["error"]["code"])

        self.assertEqual([], factory_calls)
        self.assertEqual([], lister.calls)

    def test_returns_page_as_json(self):
        listing = VersionListing(
            versions=[
                VersionRecord(key="docs/report.pdf", is_latest=True, size=1024, last_modified=T0),
                VersionRecord(key="readme.txt", is_latest=True, size=42, last_modified=T0, etag='"abc"'),
            ],
            delete_markers=[DeleteMarker(key="old.txt", is_latest=True, last_modified=T0)],
            is_truncated=True,
            next_key_marker="readme.txt",
        )
        lister = FakeLister(listing)

        status, body = handle_list_objects({"bucket": "bucket-one"}, lister, page_size=100)

        self.assertEqual(200, status)
        data = body["data"]
        self.assertEqual(["docs/"], data["prefixes"])
        self.assertTrue(data["isTruncated"])
        self.assertEqual("readme.txt", data["continuationToken"])
        by_key = {item["key"]: item for item in data["objects"]}
        self.assertTrue(by_key["docs/"]["isFolder"])
        self.assertEqual(0, by_key["docs/"]["size"])
        self.assertEqual(
            {
                "key": "readme.txt",
                "size": 42,
                "lastModified": T0.isoformat(),
                "etag": '"abc"',
                "isFolder": False,
                "isDeleted": False,
            },
            by_key["readme.txt"],
        )
        self.assertTrue(by_key["old.txt"]["isDeleted"])
        self.assertNotIn("etag", by_key["old.txt"])
        self.assertEqual([("bucket-one", "", None, 100)], lister.calls)

    def test_empty_token_and_prefix_are_absent(self):
        lister = FakeLister()

        status, body = handle_list_objects(
            {"bucket": "bucket-one", "prefix": "", "continuationToken": ""},
            lister,
        )

        self.assertEqual(200, status)
        self.assertNotIn("continuationToken", body["data"])
        self.assertEqual([("bucket-one", "", None, 1000)], lister.calls)

    def test_token_is_forwarded(self):
        lister = FakeLister()

        handle_list_objects({"bucket": "bucket-one", "prefix": "a/", "continuationToken": "a/x"}, lister)

        self.assertEqual([("bucket-one", "a/", "a/x", 1000)], lister.calls)

    def test_store_failure_is_s3_error(self):
        with self.assertLogs("s3_console.handlers", level="ERROR"):
            status, body = handle_list_objects(
                {"bucket": "bucket-one"},
                FakeLister(error=StoreUnavailable("down")),
            )

        self.assertEqual(500, status)
        self.assertEqual({"error": {"code": "S3_ERROR", "message": "Failed to list objects"}}, body)

    def test_store_factory_failure_is_s3_error(self):
        def bad_endpoint():
            raise ValueError("Invalid endpoint: not a url")

        def disconnected():
            raise NotConnectedError("Not connected to the object store")

        for factory in (bad_endpoint, disconnected):
            with self.assertLogs("s3_console.handlers", level="ERROR"):
                status, body = handle_list_objects({"bucket": "bucket-one"}, factory)

            self.assertEqual(500, status)
            self.assertEqual({"error": {"code": "S3_ERROR", "message": "Failed to list objects"}}, body)

    def test_callable_lister_is_not_treated_as_factory(self):
        class CallableLister(FakeLister):
            def __call__(self):
                raise AssertionError("lister must not be called")

        lister = CallableLister()

        status, _ = handle_list_objects({"bucket": "bucket-one"}, lister)

        self.assertEqual(200, status)
        self.assertEqual([("bucket-one", "", None, 1000)], lister.calls)

    def test_invalid_cursor_is_reported_in_details(self):
        with self.assertLogs("s3_console.handlers", level="ERROR"):
            status, body = handle_list_objects(
                {"bucket": "bucket-one", "continuationToken": "expired"},
                FakeLister(error=InvalidCursor("expired", code="InvalidArgument")),
            )

        self.assertEqual(500, status)
        self.assertEqual("S3_ERROR", body["error"]["code"])
        self.assertEqual({"reason": "invalid_cursor"}, body["error"]["details"])


class SerializePageTests(unittest.TestCase):
    def test_defaults_for_folders_and_undated_files(self):
        page = Page(
            entries=[DirectoryEntry(key="a/"), FileEntry(key="b.txt")],
            prefixes=["a/"],
        )

        body = serialize_page(page, now=NOW)

        self.assertEqual(NOW.isoformat(), body["objects"][0]["lastModified"])
        self.assertEqual(NOW.isoformat(), body["objects"][1]["lastModified"])
        self.assertEqual(["a/"], body["prefixes"])
        self.assertFalse(body["isTruncated"])
        self.assertNotIn("continuationToken", body)


if __name__ == "__main__":
    unittest.main()
