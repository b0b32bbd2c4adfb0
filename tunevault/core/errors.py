"""
Error taxonomy for the catalog, ingestion pipeline and streaming proxy.

Every error that may reach a caller derives from ``TuneVaultError`` and
carries the HTTP status it maps to. Errors raised by collaborators that are
absorbed internally (``StorageError``, ``TagExtractionError``,
``EnrichmentError``) are plain exceptions and never cross the HTTP boundary.
"""


class TuneVaultError(Exception):
    status_code = 500
    error_code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Input errors

class NoFileProvided(TuneVaultError):
    status_code = 400
    error_code = "no_file_provided"
    default_message = "No file uploaded"


class InvalidPlaylistName(TuneVaultError):
    status_code = 400
    error_code = "invalid_playlist_name"
    default_message = "Playlist name required"


class UploadTooLarge(TuneVaultError):
    status_code = 413
    error_code = "upload_too_large"
    default_message = "Uploaded file exceeds the maximum allowed size"


# Lookup-not-found errors

class SongNotFound(TuneVaultError):
    status_code = 404
    error_code = "song_not_found"
    default_message = "Song not found"


class PlaylistNotFound(TuneVaultError):
    status_code = 404
    error_code = "playlist_not_found"
    default_message = "Playlist not found"


class AudioNotFound(TuneVaultError):
    status_code = 404
    error_code = "audio_not_found"
    default_message = "Audio file not found"


# Capability-acquisition and storage/transport errors

class StorageUnavailable(TuneVaultError):
    error_code = "storage_unavailable"
    default_message = "Failed to initialize remote storage"


class StorageUploadFailed(TuneVaultError):
    error_code = "storage_upload_failed"
    default_message = "Failed to upload to remote storage"


class StreamingFailed(TuneVaultError):
    error_code = "streaming_failed"
    default_message = "Failed to stream audio"


# Internal errors, absorbed or translated before reaching a caller

class StorageError(Exception):
    """Raised by storage providers when a remote operation fails."""


class TagExtractionError(Exception):
    pass


class EnrichmentError(Exception):
    pass
