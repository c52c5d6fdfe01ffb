"""Fixtures for compression tests."""

import pytest

from compressor.modules.compression.service import CompressionService
from compressor.modules.compression.tempfiles import TransientFileManager

from fakes import FakeObjectStore, FakeRunner


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore({("videos", "video.mov"): b"\1" * 1000})


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner(output_size=600)


@pytest.fixture
def files(tmp_path) -> TransientFileManager:
    return TransientFileManager(str(tmp_path))


@pytest.fixture
def service(store, runner, files) -> CompressionService:
    return CompressionService(store=store, runner=runner, files=files)
