import os
import time
import logging
import asyncio
from typing import List, Optional
from .config import settings, Settings

logger = logging.getLogger(__name__)

class StagingCleanupManager:
    """Removes staged uploads left behind by interrupted requests or crashed processes."""

    def __init__(self, config: Optional[Settings] = None):
        config = config or settings
        self.staging_dir = str(config.UPLOAD_DIR)
        self.max_age = config.STAGING_MAX_AGE
        self.cleanup_interval = config.STAGING_CLEANUP_INTERVAL

    async def start_cleanup_task(self):
        """Start the periodic cleanup task"""
        while True:
            try:
                await self.cleanup_files()
                await asyncio.sleep(self.cleanup_interval)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in cleanup task: {str(e)}")
                await asyncio.sleep(60)  # Wait a minute before retrying

    async def cleanup_files(self) -> dict:
        """Clean up stale files from the staging directory"""
        try:
            cleaned = await asyncio.to_thread(self._cleanup_directory, self.staging_dir)
            return {
                "status": "success",
                "cleaned_files": cleaned,
                "count": len(cleaned)
            }
        except Exception as e:
            logger.error(f"Error during cleanup: {str(e)}")
            return {
                "status": "error",
                "message": str(e)
            }

    def _cleanup_directory(self, directory: str) -> List[str]:
        """Remove files older than max_age in a directory"""
        cleaned_files = []
        current_time = time.time()

        if not os.path.isdir(directory):
            return cleaned_files

        for filename in os.listdir(directory):
            filepath = os.path.join(directory, filename)
            if not os.path.isfile(filepath):
                continue

            try:
                file_time = os.path.getmtime(filepath)
            except FileNotFoundError:
                # Finished and removed by its request in the meantime
                continue

            if current_time - file_time > self.max_age:
                try:
                    os.remove(filepath)
                    cleaned_files.append(filepath)
                    logger.info(f"Removed stale staged file: {filepath}")
                except FileNotFoundError:
                    continue
                except OSError as e:
                    logger.error(f"Error removing file {filepath}: {str(e)}")

        return cleaned_files

    def get_staging_stats(self) -> dict:
        """Get staging directory statistics"""
        if not os.path.isdir(self.staging_dir):
            return {"staged_files": 0, "staging_mb": 0.0}
        sizes = []
        for filename in os.listdir(self.staging_dir):
            filepath = os.path.join(self.staging_dir, filename)
            try:
                if os.path.isfile(filepath):
                    sizes.append(os.path.getsize(filepath))
            except FileNotFoundError:
                continue
        return {
            "staged_files": len(sizes),
            "staging_mb": round(sum(sizes) / (1024 * 1024), 2)
        }

# Create global cleanup manager instance
cleanup_manager = StagingCleanupManager()
