import os
import time
import pytest
from tunevault.core.cleanup import StagingCleanupManager


@pytest.fixture
def manager(test_settings):
    os.makedirs(test_settings.UPLOAD_DIR, exist_ok=True)
    return StagingCleanupManager(test_settings)


def stage(directory, name, data=b"abc", age=0):
    path = os.path.join(directory, name)
    with open(path, "wb") as f:
        f.write(data)
    if age:
        stamp = time.time() - age
        os.utime(path, (stamp, stamp))
    return path


@pytest.mark.asyncio
async def test_removes_only_stale_files(manager):
    """Files older than the maximum age are removed, fresh ones stay."""
    stale = stage(manager.staging_dir, "old.mp3", age=manager.max_age + 60)
    fresh = stage(manager.staging_dir, "new.mp3")

    result = await manager.cleanup_files()

    assert result["status"] == "success"
    assert result["cleaned_files"] == [stale]
    assert not os.path.exists(stale)
    assert os.path.exists(fresh)


@pytest.mark.asyncio
async def test_missing_directory(test_settings):
    manager = StagingCleanupManager(test_settings)
    manager.staging_dir = os.path.join(manager.staging_dir, "missing")

    result = await manager.cleanup_files()

    assert result == {"status": "success", "cleaned_files": [], "count": 0}


def test_staging_stats(manager):
    stage(manager.staging_dir, "a.mp3", b"x" * 1024)
    stage(manager.staging_dir, "b.mp3", b"x" * 2048)

    stats = manager.get_staging_stats()

    assert stats["staged_files"] == 2
    assert stats["staging_mb"] == 0.0


def test_staging_stats_without_directory(test_settings):
    manager = StagingCleanupManager(test_settings)
    manager.staging_dir = os.path.join(manager.staging_dir, "missing")
    assert manager.get_staging_stats() == {"staged_files": 0, "staging_mb": 0.0}
