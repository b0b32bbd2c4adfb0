from typing import List, Optional
import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Try to load .env file if it exists
env_path = Path(__file__).parent.parent.parent / '.env'
if env_path.exists():
    load_dotenv(str(env_path))

# Base directory is the project root
BASE_DIR: Path = Path(__file__).parent.parent.parent

R2_ENDPOINT_TEMPLATE = "https://{account_id}.r2.cloudflarestorage.com"

class Settings(BaseSettings):
    PROJECT_NAME: str = "TuneVault"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # CORS Settings
    CORS_ORIGINS_RAW: str = "*"
    CORS_METHODS_RAW: str = "GET,POST,PUT,DELETE,OPTIONS"
    CORS_HEADERS_RAW: str = "Content-Type,Authorization,Range"

    # Catalog Settings
    DATA_DIR: Path = BASE_DIR / "data"
    SONGS_FILE: Optional[Path] = None
    PLAYLISTS_FILE: Optional[Path] = None

    # Staging Settings
    UPLOAD_DIR: Optional[Path] = None
    MAX_UPLOAD_SIZE: int = 200 * 1024 * 1024  # 200MB
    UPLOAD_CHUNK_SIZE: int = 1024 * 1024
    STAGING_MAX_AGE: int = 86400  # 24 hours
    STAGING_CLEANUP_INTERVAL: int = 3600  # 1 hour

    # Remote Storage Settings
    STORAGE_PROVIDER: str = "s3"  # s3, r2 or local
    STORAGE_BUCKET: Optional[str] = None
    STORAGE_ENDPOINT_URL: Optional[str] = None
    STORAGE_REGION: Optional[str] = None
    STORAGE_ACCESS_KEY_ID: Optional[str] = None
    STORAGE_SECRET_ACCESS_KEY: Optional[str] = None
    R2_ACCOUNT_ID: Optional[str] = None
    STORAGE_KEY_PREFIX: str = "songs/"
    STORAGE_PUBLIC_READ: bool = True
    LOCAL_STORAGE_PATH: Path = BASE_DIR / "data" / "objects"
    STREAM_CHUNK_SIZE: int = 64 * 1024

    # External API Settings
    ENRICHMENT_ENABLED: bool = True
    MUSICBRAINZ_APP_NAME: str = "tunevault"
    MUSICBRAINZ_APP_VERSION: str = "1.0.0"
    MUSICBRAINZ_CONTACT: str = "admin@example.com"
    COVER_ART_URL_TEMPLATE: str = "https://coverartarchive.org/release/{release_id}/front-500"
    LRCLIB_BASE_URL: str = "https://lrclib.net/api"
    HTTP_TIMEOUT: float = 10.0

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return parse_comma_separated_list(self.CORS_ORIGINS_RAW)

    @property
    def CORS_METHODS(self) -> List[str]:
        return parse_comma_separated_list(self.CORS_METHODS_RAW)

    @property
    def CORS_HEADERS(self) -> List[str]:
        return parse_comma_separated_list(self.CORS_HEADERS_RAW)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)

        # Derive catalog and staging paths from DATA_DIR unless set explicitly
        if self.SONGS_FILE is None:
            self.SONGS_FILE = self.DATA_DIR / "songs.json"
        if self.PLAYLISTS_FILE is None:
            self.PLAYLISTS_FILE = self.DATA_DIR / "playlists.json"
        if self.UPLOAD_DIR is None:
            self.UPLOAD_DIR = self.DATA_DIR / "temp_uploads"

        if self.STORAGE_PROVIDER == "r2" and not self.STORAGE_ENDPOINT_URL and self.R2_ACCOUNT_ID:
            self.STORAGE_ENDPOINT_URL = R2_ENDPOINT_TEMPLATE.format(account_id=self.R2_ACCOUNT_ID)

def parse_comma_separated_list(value: str | List[str] | None) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if value == "*":
        return ["*"]
    return [item.strip() for item in value.split(",") if item.strip()]

def ensure_directories(config: "Settings") -> None:
    """Create the catalog and staging directories if missing."""
    os.makedirs(config.DATA_DIR, exist_ok=True)
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    os.makedirs(os.path.dirname(config.SONGS_FILE), exist_ok=True)
    os.makedirs(os.path.dirname(config.PLAYLISTS_FILE), exist_ok=True)

# Create global settings object
settings = Settings()

# Export constants
PROJECT_NAME = settings.PROJECT_NAME
DEBUG = settings.DEBUG
ENVIRONMENT = settings.ENVIRONMENT
