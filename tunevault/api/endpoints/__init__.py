"""
API endpoints package initialization
"""
from . import songs, stream, playlists, health

# Export all routers
__all__ = ['songs', 'stream', 'playlists', 'health']
