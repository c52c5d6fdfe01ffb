"""Tests for transient job file allocation and cleanup."""

import dataclasses
import os
import threading

import pytest

from compressor.modules.compression import tempfiles
from compressor.modules.compression.errors import CleanupFailed, FailureKind
from compressor.modules.compression.tempfiles import (
    TransientFileManager,
    next_job_id,
    object_basename,
)


class TestAllocate:
    """Tests for local path allocation."""

    def test_paths_embed_job_id_and_basename(self, tmp_path) -> None:
        files = TransientFileManager(str(tmp_path))

        job = files.allocate("videos", "uploads/2024/video.mov")

        assert job.input_path == os.path.join(str(tmp_path), f"input-{job.job_id}-video.mov")
        assert job.output_path == os.path.join(str(tmp_path), f"output-{job.job_id}-compressed.mp4")
        assert job.output_object_name == "uploads/2024/video_compressed.mp4"
        assert job.input_path != job.output_path

    def test_files_are_not_created(self, tmp_path) -> None:
        files = TransientFileManager(str(tmp_path))

        files.allocate("videos", "video.mov")

        assert list(tmp_path.iterdir()) == []

    def test_defaults_to_system_temp_dir(self) -> None:
        import tempfile

        assert TransientFileManager().temp_dir == tempfile.gettempdir()

    def test_started_at_is_kept(self, tmp_path) -> None:
        job = TransientFileManager(str(tmp_path)).allocate("videos", "video.mov", started_at=12.5)

        assert job.started_at == 12.5

    def test_same_object_gets_distinct_paths(self, tmp_path) -> None:
        files = TransientFileManager(str(tmp_path))

        jobs = [files.allocate("videos", "video.mov") for _ in range(500)]

        paths = [path for job in jobs for path in job.local_paths]
        assert len(set(paths)) == len(paths)


class TestJobIds:
    """Tests for the job ID generator."""

    def test_strictly_increasing(self) -> None:
        ids = [int(next_job_id()) for _ in range(1000)]

        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_unique_across_threads(self) -> None:
        results: list[str] = []
        lock = threading.Lock()

        def worker() -> None:
            local = [next_job_id() for _ in range(200)]
            with lock:
                results.extend(local)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 1600
        assert len(set(results)) == 1600


class TestObjectBasename:
    def test_nested_key(self) -> None:
        assert object_basename("a/b/c.mp4") == "c.mp4"

    def test_plain_key(self) -> None:
        assert object_basename("c.mp4") == "c.mp4"

    def test_key_ending_with_slash(self) -> None:
        assert object_basename("folder/") == "object"

    def test_nul_character_replaced(self) -> None:
        assert object_basename("a\x00b.mov") == "a_b.mov"

    def test_allocated_path_stays_in_temp_dir(self, tmp_path) -> None:
        job = TransientFileManager(str(tmp_path)).allocate("videos", "clips/a\x00b.mov")

        assert "\x00" not in job.input_path
        assert os.path.dirname(job.input_path) == str(tmp_path)
        assert job.output_object_name == "clips/a\x00b_compressed.mp4"


class TestCleanup:
    """Tests for best-effort removal of job files."""

    def test_removes_both_files(self, tmp_path) -> None:
        files = TransientFileManager(str(tmp_path))
        job = files.allocate("videos", "video.mov")
        for path in job.local_paths:
            with open(path, "wb") as f:
                f.write(b"data")

        failures = files.cleanup(job)

        assert failures == []
        assert list(tmp_path.iterdir()) == []

    def test_partial_creation(self, tmp_path) -> None:
        files = TransientFileManager(str(tmp_path))
        job = files.allocate("videos", "video.mov")
        with open(job.input_path, "wb") as f:
            f.write(b"data")

        assert files.cleanup(job) == []
        assert not os.path.exists(job.input_path)

    def test_safe_to_call_twice(self, tmp_path) -> None:
        files = TransientFileManager(str(tmp_path))
        job = files.allocate("videos", "video.mov")
        with open(job.output_path, "wb") as f:
            f.write(b"data")

        assert files.cleanup(job) == []
        assert files.cleanup(job) == []

    def test_removal_errors_are_reported_not_raised(self, tmp_path, monkeypatch) -> None:
        files = TransientFileManager(str(tmp_path))
        job = files.allocate("videos", "video.mov")
        for path in job.local_paths:
            with open(path, "wb") as f:
                f.write(b"data")

        real_remove = os.remove

        def flaky_remove(path):
            if path == job.input_path:
                raise PermissionError(13, "Permission denied", path)
            real_remove(path)

        monkeypatch.setattr(tempfiles.os, "remove", flaky_remove)

        failures = files.cleanup(job)

        assert len(failures) == 1
        assert isinstance(failures[0], CleanupFailed)
        assert failures[0].kind == FailureKind.CLEANUP_FAILED
        assert failures[0].path == job.input_path
        assert "Permission denied" in failures[0].message
        assert not os.path.exists(job.output_path)

    def test_invalid_path_is_reported_not_raised(self, tmp_path) -> None:
        files = TransientFileManager(str(tmp_path))
        job = dataclasses.replace(
            files.allocate("videos", "video.mov"),
            input_path=str(tmp_path / "input-1-a\x00b.mov"),
        )

        failures = files.cleanup(job)

        assert len(failures) == 1
        assert failures[0].path == job.input_path
        assert failures[0].kind == FailureKind.CLEANUP_FAILED
