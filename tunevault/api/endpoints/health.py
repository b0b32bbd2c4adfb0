import asyncio
import logging
import os
from fastapi import APIRouter, Depends
from ..deps import get_catalog, get_settings
from ...core.cleanup import StagingCleanupManager
from ...core.config import Settings
from ...core.store import CatalogStore

logger = logging.getLogger(__name__)

router = APIRouter()

async def check_catalog(catalog: CatalogStore) -> tuple[bool, str]:
    """Check that both catalog collections can be read"""
    try:
        songs = await catalog.songs.read()
        playlists = await catalog.playlists.read()
        return True, f"{len(songs)} songs, {len(playlists)} playlists"
    except Exception as e:
        error_details = f"Catalog error: {str(e)}"
        logger.error(error_details)
        return False, error_details

def check_staging(config: Settings) -> tuple[bool, str]:
    """Check that the staging directory exists and is writable"""
    staging_dir = str(config.UPLOAD_DIR)
    try:
        os.makedirs(staging_dir, exist_ok=True)
    except OSError as e:
        return False, f"Staging directory unavailable: {str(e)}"
    if not os.access(staging_dir, os.W_OK):
        return False, f"Staging directory not writable: {staging_dir}"
    return True, "Staging directory writable"

def check_storage_config(config: Settings) -> tuple[bool, str]:
    """Check that remote storage has the settings it needs, without contacting it"""
    if config.STORAGE_PROVIDER == "local":
        return True, f"local storage at {config.LOCAL_STORAGE_PATH}"
    if config.STORAGE_PROVIDER not in ("s3", "r2"):
        return False, f"Unknown storage provider: {config.STORAGE_PROVIDER}"
    missing = [name for name, value in [
        ("STORAGE_BUCKET", config.STORAGE_BUCKET),
        ("STORAGE_ACCESS_KEY_ID", config.STORAGE_ACCESS_KEY_ID),
        ("STORAGE_SECRET_ACCESS_KEY", config.STORAGE_SECRET_ACCESS_KEY),
    ] if not value]
    if missing:
        return False, f"Missing settings: {', '.join(missing)}"
    return True, f"{config.STORAGE_PROVIDER} bucket {config.STORAGE_BUCKET}"

@router.get("")
async def health_check(
    config: Settings = Depends(get_settings),
    catalog: CatalogStore = Depends(get_catalog),
):
    """Health check endpoint for the catalog, staging area and storage configuration"""
    catalog_ok, catalog_msg = await check_catalog(catalog)
    staging_ok, staging_msg = await asyncio.to_thread(check_staging, config)
    storage_ok, storage_msg = check_storage_config(config)
    staging_stats = await asyncio.to_thread(StagingCleanupManager(config).get_staging_stats)

    def component(ok: bool, message: str) -> dict:
        return {"status": "healthy" if ok else "unhealthy", "detail": message}

    return {
        "status": "healthy" if all([catalog_ok, staging_ok, storage_ok]) else "unhealthy",
        "catalog": component(catalog_ok, catalog_msg),
        "staging": {**component(staging_ok, staging_msg), **staging_stats},
        "storage": component(storage_ok, storage_msg),
    }
