"""Tests for the sync engine."""

import os
import time

import pytest

from bucketsync.exceptions import (
    ConnectivityError,
    DeletionError,
    ReconcileErrors,
    TransferError,
    TraversalError,
)
from bucketsync.output import OutputFormatter
from bucketsync.sync import (
    ErrorPolicy,
    PipelineStage,
    SyncConfig,
    SyncDirection,
    SyncEngine,
)

from .conftest import md5_hex, read_tree, write_tree


def _push(local, **kwargs):
    return SyncConfig(
        local=local, bucket="test-bucket", direction=SyncDirection.UPLOAD, **kwargs
    )


def _pull(local, **kwargs):
    return SyncConfig(
        local=local, bucket="test-bucket", direction=SyncDirection.DOWNLOAD, **kwargs
    )


def _objects(store):
    return {k: v.decode() for k, v in store.buckets["test-bucket"].items()}


class TestPush:
    """Local directory to bucket."""

    @pytest.fixture
    def engine(self, store, mock_output):
        return SyncEngine(store, mock_output)

    def test_push_new_and_changed_files(self, engine, store, temp_dir):
        """New and changed files are uploaded, unchanged ones skipped."""
        write_tree(temp_dir, {"a.txt": "same", "b.txt": "new", "sub/c.txt": "c"})
        store.buckets["test-bucket"].update({"a.txt": b"same", "b.txt": b"old"})

        report = engine.sync(_push(temp_dir))

        assert report.ok
        assert report.stage == PipelineStage.DONE
        assert sorted(report.transferred) == ["b.txt", "sub/c.txt"]
        assert report.unchanged == ["a.txt"]
        assert store.put_calls.count("a.txt") == 0
        assert _objects(store) == {"a.txt": "same", "b.txt": "new", "sub/c.txt": "c"}

    def test_extra_objects_kept_without_delete(self, engine, store, temp_dir):
        """Destination-only objects survive when deletion is off."""
        write_tree(temp_dir, {"a.txt": "a"})
        store.buckets["test-bucket"]["old.txt"] = b"old"

        report = engine.sync(_push(temp_dir))

        assert "old.txt" in store.buckets["test-bucket"]
        assert report.destination_only == ["old.txt"]
        assert report.deleted == []
        assert store.delete_calls == []

    def test_extra_objects_deleted_with_delete(self, engine, store, temp_dir):
        write_tree(temp_dir, {"a.txt": "a"})
        store.buckets["test-bucket"].update({"old.txt": b"1", "dir/older.txt": b"2"})

        report = engine.sync(_push(temp_dir, delete_extra=True))

        assert _objects(store) == {"a.txt": "a"}
        assert sorted(report.deleted) == ["dir/older.txt", "old.txt"]

    def test_second_run_is_a_no_op(self, engine, store, temp_dir):
        """Syncing an already-synced pair transfers and deletes nothing."""
        write_tree(temp_dir, {"a.txt": "a", "sub/b.txt": "b"})
        engine.sync(_push(temp_dir, delete_extra=True))
        store.put_calls.clear()

        report = engine.sync(_push(temp_dir, delete_extra=True))

        assert report.transferred == []
        assert report.deleted == []
        assert sorted(report.unchanged) == ["a.txt", "sub/b.txt"]
        assert store.put_calls == []
        assert store.delete_calls == []

    def test_multipart_tag_always_transfers(self, engine, store, temp_dir):
        """A non-MD5 tag never matches, so the file is uploaded again."""
        write_tree(temp_dir, {"big.bin": "payload"})
        store.buckets["test-bucket"]["big.bin"] = b"payload"
        store.tag_overrides["big.bin"] = md5_hex("payload") + "-2"

        report = engine.sync(_push(temp_dir))

        assert report.transferred == ["big.bin"]

    def test_missing_local_root_fails_before_store_access(
        self, engine, store, temp_dir
    ):
        """Source traversal errors end the run before the bucket is touched."""
        with pytest.raises(TraversalError) as exc_info:
            engine.sync(_push(temp_dir / "missing"))

        report = exc_info.value.report
        assert report.stage == PipelineStage.FAILED
        assert report.failed_stage == PipelineStage.BUILD_SOURCE
        assert store.put_calls == []

    def test_missing_bucket_is_created(self, engine, store, temp_dir):
        write_tree(temp_dir, {"a.txt": "a"})
        del store.buckets["test-bucket"]

        report = engine.sync(_push(temp_dir, create_bucket=True))

        assert store.created_buckets == ["test-bucket"]
        assert report.transferred == ["a.txt"]
        assert _objects(store) == {"a.txt": "a"}

    def test_missing_bucket_without_create_fails(self, engine, store, temp_dir):
        write_tree(temp_dir, {"a.txt": "a"})
        del store.buckets["test-bucket"]

        with pytest.raises(ConnectivityError, match="Bucket does not exist"):
            engine.sync(_push(temp_dir))

        assert store.created_buckets == []

    def test_transfer_failure_stops_before_delete(self, engine, store, temp_dir):
        """A failed transfer phase ends the run; deletion never starts."""
        write_tree(temp_dir, {"a.txt": "a", "b.txt": "b", "c.txt": "c"})
        store.buckets["test-bucket"]["extra.txt"] = b"x"
        store.fail_put.add("b.txt")

        with pytest.raises(TransferError) as exc_info:
            engine.sync(_push(temp_dir, delete_extra=True))

        report = exc_info.value.report
        assert report.failed_stage == PipelineStage.TRANSFER
        assert report.transferred == ["a.txt"]
        assert store.put_calls == ["a.txt", "b.txt"]
        assert "extra.txt" in store.buckets["test-bucket"]
        # Already applied work stays applied
        assert store.buckets["test-bucket"]["a.txt"] == b"a"

    def test_collect_policy_attempts_all_then_fails(self, engine, store, temp_dir):
        write_tree(temp_dir, {"a.txt": "a", "b.txt": "b", "c.txt": "c"})
        store.fail_put.update({"a.txt", "c.txt"})

        with pytest.raises(ReconcileErrors) as exc_info:
            engine.sync(_push(temp_dir, error_policy=ErrorPolicy.COLLECT))

        assert sorted(e.key for e in exc_info.value.errors) == ["a.txt", "c.txt"]
        assert exc_info.value.report.transferred == ["b.txt"]
        assert _objects(store) == {"b.txt": "b"}

    def test_delete_failure_reports_delete_stage(self, engine, store, temp_dir):
        write_tree(temp_dir, {"a.txt": "a"})
        store.buckets["test-bucket"]["extra.txt"] = b"x"
        store.fail_delete.add("extra.txt")

        with pytest.raises(DeletionError) as exc_info:
            engine.sync(_push(temp_dir, delete_extra=True))

        assert exc_info.value.report.failed_stage == PipelineStage.DELETE
        assert exc_info.value.report.transferred == ["a.txt"]

    def test_parallel_workers(self, engine, store, temp_dir):
        files = {f"f{i}.txt": str(i) for i in range(12)}
        write_tree(temp_dir, files)

        report = engine.sync(_push(temp_dir, max_workers=4))

        assert sorted(report.transferred) == sorted(files)
        assert _objects(store) == files

    def test_dry_run_changes_nothing(self, engine, store, temp_dir):
        write_tree(temp_dir, {"a.txt": "a", "b.txt": "new"})
        store.buckets["test-bucket"].update({"b.txt": b"old", "x.txt": b"x"})

        report = engine.sync(_push(temp_dir, delete_extra=True, dry_run=True))

        assert report.ok
        assert report.planned_transfers == ["a.txt", "b.txt"]
        assert report.planned_deletions == ["x.txt"]
        assert report.transferred == []
        assert store.put_calls == []
        assert store.delete_calls == []
        assert _objects(store) == {"b.txt": "old", "x.txt": "x"}

    def test_dry_run_does_not_create_bucket(self, engine, store, temp_dir):
        write_tree(temp_dir, {"a.txt": "a"})
        del store.buckets["test-bucket"]

        report = engine.sync(_push(temp_dir, create_bucket=True, dry_run=True))

        assert report.planned_transfers == ["a.txt"]
        assert store.created_buckets == []


class TestPull:
    """Bucket to local directory."""

    @pytest.fixture
    def engine(self, store, mock_output):
        return SyncEngine(store, mock_output)

    def test_pull_into_missing_directory(self, engine, store, temp_dir):
        """The local root is created when it does not exist."""
        store.buckets["test-bucket"].update({"a.txt": b"a", "x/y/z.txt": b"z"})
        target = temp_dir / "new" / "root"

        report = engine.sync(_pull(target))

        assert sorted(report.transferred) == ["a.txt", "x/y/z.txt"]
        assert read_tree(target) == {"a.txt": "a", "x/y/z.txt": "z"}

    def test_content_wins_over_recency(self, engine, store, temp_dir):
        """A newer local file with different content is still overwritten."""
        write_tree(temp_dir, {"a.txt": "local edit"})
        future = time.time() + 3600
        os.utime(temp_dir / "a.txt", (future, future))
        store.buckets["test-bucket"]["a.txt"] = b"remote"

        report = engine.sync(_pull(temp_dir))

        assert report.transferred == ["a.txt"]
        assert (temp_dir / "a.txt").read_text() == "remote"

    def test_local_extras_deleted_with_delete(self, engine, store, temp_dir):
        write_tree(temp_dir, {"keep.txt": "k", "stale.txt": "s", "d/old.txt": "o"})
        store.buckets["test-bucket"]["keep.txt"] = b"k"

        report = engine.sync(_pull(temp_dir, delete_extra=True))

        assert read_tree(temp_dir) == {"keep.txt": "k"}
        assert sorted(report.deleted) == ["d/old.txt", "stale.txt"]
        assert report.unchanged == ["keep.txt"]

    def test_local_extras_kept_without_delete(self, engine, store, temp_dir):
        write_tree(temp_dir, {"mine.txt": "m"})
        store.buckets["test-bucket"]["theirs.txt"] = b"t"

        engine.sync(_pull(temp_dir))

        assert read_tree(temp_dir) == {"mine.txt": "m", "theirs.txt": "t"}

    def test_missing_bucket_fails_without_local_changes(
        self, engine, store, temp_dir
    ):
        """Pull never creates buckets and touches nothing on failure."""
        write_tree(temp_dir, {"a.txt": "a"})
        del store.buckets["test-bucket"]

        with pytest.raises(ConnectivityError) as exc_info:
            engine.sync(_pull(temp_dir, create_bucket=True, delete_extra=True))

        assert exc_info.value.report.failed_stage == PipelineStage.BUILD_SOURCE
        assert store.created_buckets == []
        assert read_tree(temp_dir) == {"a.txt": "a"}

    def test_listing_failure_is_fatal(self, engine, store, temp_dir):
        write_tree(temp_dir, {"a.txt": "a"})
        store.fail_list = True

        with pytest.raises(ConnectivityError):
            engine.sync(_pull(temp_dir, delete_extra=True))

        assert read_tree(temp_dir) == {"a.txt": "a"}

    def test_dry_run_does_not_create_directory(self, engine, store, temp_dir):
        store.buckets["test-bucket"]["a.txt"] = b"a"
        target = temp_dir / "missing"

        report = engine.sync(_pull(target, dry_run=True))

        assert report.planned_transfers == ["a.txt"]
        assert not target.exists()

    def test_directory_markers_ignored(self, engine, store, temp_dir):
        store.buckets["test-bucket"].update({"folder/": b"", "folder/a.txt": b"a"})

        report = engine.sync(_pull(temp_dir))

        assert report.transferred == ["folder/a.txt"]
        assert read_tree(temp_dir) == {"folder/a.txt": "a"}

    def test_non_canonical_key_never_deleted_after_download(
        self, engine, store, temp_dir
    ):
        """A key that does not map back onto itself is refused on every run."""
        store.buckets["test-bucket"].update(
            {"docs//a.txt": b"payload", "ok.txt": b"ok"}
        )
        pull = _pull(temp_dir, delete_extra=True, error_policy=ErrorPolicy.COLLECT)

        for _ in range(2):
            with pytest.raises(ReconcileErrors) as exc_info:
                engine.sync(pull)

            assert [e.key for e in exc_info.value.errors] == ["docs//a.txt"]
            assert isinstance(exc_info.value.errors[0], TransferError)
            report = exc_info.value.report
            assert report.failed_stage == PipelineStage.TRANSFER
            assert report.deleted == []
            assert read_tree(temp_dir) == {"ok.txt": "ok"}

        assert store.get_calls == ["ok.txt"]


class TestRoundTrip:
    def test_push_then_pull_reproduces_tree(self, store, mock_output, temp_dir):
        """Pushing a tree and pulling it elsewhere yields identical files."""
        engine = SyncEngine(store, mock_output)
        files = {"a.txt": "alpha", "sub/b.txt": "beta", "sub/deep/c.txt": "gamma"}
        write_tree(temp_dir / "src", files)

        engine.sync(_push(temp_dir / "src"))
        report = engine.sync(_pull(temp_dir / "dst"))

        assert read_tree(temp_dir / "dst") == files
        assert sorted(report.transferred) == sorted(files)

        # Both sides now agree, in either direction
        assert engine.sync(_pull(temp_dir / "dst")).transferred == []
        assert engine.sync(_push(temp_dir / "dst")).transferred == []


class TestReport:
    def test_to_dict(self, store, mock_output, temp_dir):
        write_tree(temp_dir, {"a.txt": "a"})
        engine = SyncEngine(store, mock_output)

        data = engine.sync(_push(temp_dir)).to_dict()

        assert data["direction"] == "upload"
        assert data["bucket"] == "test-bucket"
        assert data["stage"] == "done"
        assert data["failedStage"] is None
        assert data["transferred"] == ["a.txt"]
        assert data["error"] is None


class TestOutput:
    """Messages printed for each applied key."""

    def test_push_messages(self, store, temp_dir, capsys):
        write_tree(temp_dir, {"a.txt": "a", "same.txt": "s"})
        store.buckets["test-bucket"].update({"same.txt": b"s", "old.txt": b"o"})
        engine = SyncEngine(store, OutputFormatter())

        engine.sync(_push(temp_dir, delete_extra=True))

        out = capsys.readouterr().out
        assert "Uploaded a.txt to s3://test-bucket/a.txt" in out
        assert "Skipped (unchanged): same.txt" in out
        assert "Deleted s3://test-bucket/old.txt" in out
        assert "Sync complete!" in out

    def test_pull_messages(self, store, temp_dir, capsys):
        write_tree(temp_dir, {"stale.txt": "s"})
        store.buckets["test-bucket"]["a.txt"] = b"a"
        engine = SyncEngine(store, OutputFormatter())

        engine.sync(_pull(temp_dir, delete_extra=True))

        out = capsys.readouterr().out
        assert "Downloaded s3://test-bucket/a.txt to a.txt" in out
        assert "Deleted local file: stale.txt" in out

    def test_quiet_prints_nothing(self, store, temp_dir, capsys):
        write_tree(temp_dir, {"a.txt": "a"})
        engine = SyncEngine(store, OutputFormatter(quiet=True))

        engine.sync(_push(temp_dir))

        assert capsys.readouterr().out == ""

    def test_progress_callback(self, store, mock_output, temp_dir):
        write_tree(temp_dir, {"a.txt": "a", "b.txt": "b"})
        seen = []
        engine = SyncEngine(store, mock_output)

        engine.sync(_push(temp_dir), progress_callback=lambda p, k: seen.append((p, k)))

        assert seen == [("transfer", "a.txt"), ("transfer", "b.txt")]

    def test_phase_callback_receives_planned_totals(
        self, store, mock_output, temp_dir
    ):
        write_tree(temp_dir, {"a.txt": "a", "b.txt": "b", "same.txt": "s"})
        store.buckets["test-bucket"].update({"same.txt": b"s", "old.txt": b"o"})
        phases = []
        engine = SyncEngine(store, mock_output)

        engine.sync(
            _push(temp_dir, delete_extra=True),
            phase_callback=lambda phase, total: phases.append((phase, total)),
        )

        assert phases == [("transfer", 2), ("delete", 1)]
