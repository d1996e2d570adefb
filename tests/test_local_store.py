import os
import tempfile
import unittest
from pathlib import Path

from s3_bucket_helpers.errors import BulkDeleteError, InvalidBucketNameError, ScanDirectoryNotFoundError
from s3_bucket_helpers.local_store import LocalDirectoryClient
from s3_bucket_helpers.models import Entry, ListParams
from s3_bucket_helpers.services import clear_bucket, delete_entries, list_all_objects


class LocalDirectoryClientTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.client = LocalDirectoryClient(self.root)

    def tearDown(self):
        self._tmp.cleanup()

    async def seed(self, bucket, *keys):
        for key in keys:
            await self.client.put_object(Bucket=bucket, Key=key, Body=f"data for {key}")

    async def test_lists_files_and_empty_directories_sorted(self):
        await self.seed("photos", "b.jpg", "2024/a.jpg", "empty/", "a.jpg")

        response = await self.client.list_objects_v2(Bucket="photos")

        keys = [item["Key"] for item in response["Contents"]]
        self.assertEqual(["2024/a.jpg", "a.jpg", "b.jpg", "empty/"], keys)
        self.assertFalse(response["IsTruncated"])
        self.assertEqual(len("data for a.jpg"), response["Contents"][1]["Size"])
        self.assertTrue(response["Contents"][1]["ETag"].startswith('"'))

    async def test_paginates_with_continuation_tokens(self):
        await self.seed("photos", "a", "b", "c")

        first = await self.client.list_objects_v2(Bucket="photos", MaxKeys=2)
        second = await self.client.list_objects_v2(
            Bucket="photos",
            MaxKeys=2,
            ContinuationToken=first["NextContinuationToken"],
        )

        self.assertEqual(["a", "b"], [item["Key"] for item in first["Contents"]])
        self.assertTrue(first["IsTruncated"])
        self.assertEqual(["c"], [item["Key"] for item in second["Contents"]])
        self.assertFalse(second["IsTruncated"])
        self.assertNotIn("NextContinuationToken", second)

    async def test_filters_by_prefix(self):
        await self.seed("logs", "2024/01.log", "2025/01.log")

        response = await self.client.list_objects_v2(Bucket="logs", Prefix="2025/")

        self.assertEqual(["2025/01.log"], [item["Key"] for item in response["Contents"]])

    async def test_missing_bucket_directory_raises(self):
        with self.assertRaises(ScanDirectoryNotFoundError):
            await self.client.list_objects_v2(Bucket="missing")

    async def test_unreadable_entry_is_not_a_missing_bucket(self):
        await self.seed("photos", "a.jpg")
        os.symlink(self.root / "nowhere", self.root / "photos" / "dangling")

        with self.assertRaises(FileNotFoundError) as ctx:
            await self.client.list_objects_v2(Bucket="photos")

        self.assertNotIsInstance(ctx.exception, ScanDirectoryNotFoundError)

    async def test_rejects_invalid_bucket_names(self):
        with self.assertRaises(InvalidBucketNameError):
            await self.client.list_objects_v2(Bucket="..")

    async def test_rejects_keys_escaping_the_bucket(self):
        with self.assertRaises(ValueError):
            await self.client.put_object(Bucket="photos", Key="../outside.txt", Body=b"x")

    async def test_delete_prunes_emptied_directories(self):
        await self.seed("photos", "2024/jan/a.jpg", "b.jpg")

        await self.client.delete_object(Bucket="photos", Key="2024/jan/a.jpg")

        self.assertFalse((self.root / "photos" / "2024").exists())
        self.assertTrue((self.root / "photos").is_dir())

    async def test_delete_of_missing_key_succeeds(self):
        await self.seed("photos", "a.jpg")

        await self.client.delete_object(Bucket="photos", Key="nope.jpg")

        self.assertTrue((self.root / "photos" / "a.jpg").exists())


class LocalBucketHelpersTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.client = LocalDirectoryClient(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    async def test_lists_every_page(self):
        for index in range(7):
            await self.client.put_object(Bucket="data", Key=f"part-{index}.csv", Body=b"1,2")

        entries = await list_all_objects(ListParams(bucket="data", max_keys=3), client=self.client)

        self.assertEqual([f"part-{index}.csv" for index in range(7)], [entry.key for entry in entries])

    async def test_bucket_without_directory_lists_as_empty(self):
        entries = await list_all_objects(ListParams(bucket="not-created-yet"), client=self.client)

        self.assertEqual([], entries)

    async def test_clear_bucket_keeps_directory_markers(self):
        await self.client.put_object(Bucket="data", Key="a.txt", Body=b"a")
        await self.client.put_object(Bucket="data", Key="nested/b.txt", Body=b"b")
        await self.client.put_object(Bucket="data", Key="placeholder/")

        deleted = await clear_bucket("data", client=self.client)
        remaining = await list_all_objects(ListParams(bucket="data"), client=self.client)

        self.assertEqual(["a.txt", "nested/b.txt"], deleted)
        self.assertEqual(["placeholder/"], [entry.key for entry in remaining])

    async def test_dangling_entry_aborts_listing_and_clearing(self):
        await self.client.put_object(Bucket="data", Key="a.txt", Body=b"a")
        await self.client.put_object(Bucket="data", Key="b.txt", Body=b"b")
        bucket_path = Path(self._tmp.name) / "data"
        os.symlink(bucket_path / "missing-target", bucket_path / "dangling")

        with self.assertRaises(FileNotFoundError):
            await list_all_objects(ListParams(bucket="data"), client=self.client)
        with self.assertRaises(FileNotFoundError):
            await clear_bucket("data", client=self.client)

        self.assertTrue((bucket_path / "a.txt").exists())
        self.assertTrue((bucket_path / "b.txt").exists())

    async def test_clear_bucket_on_missing_bucket_returns_empty(self):
        deleted = await clear_bucket("not-created-yet", client=self.client)

        self.assertEqual([], deleted)

    async def test_delete_from_missing_bucket_fails_per_key(self):
        with self.assertRaises(BulkDeleteError) as ctx:
            await delete_entries("not-created-yet", [Entry(key="a.txt")], client=self.client)

        self.assertEqual(["a.txt"], ctx.exception.failed_keys)
        self.assertIsInstance(ctx.exception.errors[0].error, FileNotFoundError)


if __name__ == "__main__":
    unittest.main()
