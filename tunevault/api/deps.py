"""
Dependency providers for the routers.

Tests replace any of these through ``app.dependency_overrides``.
"""

from functools import partial
from typing import Callable

from fastapi import Depends

from ..core.config import Settings, settings
from ..core.store import CatalogStore, catalog_store
from ..services.enrichment import MetadataEnricher, metadata_enricher
from ..services.ingestion import IngestionPipeline
from ..services.storage import RemoteStorageClient, get_storage_client
from ..services.streaming import StreamingProxy

StorageFactory = Callable[[], RemoteStorageClient]


def get_settings() -> Settings:
    return settings


def get_catalog() -> CatalogStore:
    return catalog_store


def get_enricher() -> MetadataEnricher:
    return metadata_enricher


def get_storage_factory(config: Settings = Depends(get_settings)) -> StorageFactory:
    return partial(get_storage_client, config)


def get_pipeline(
    config: Settings = Depends(get_settings),
    catalog: CatalogStore = Depends(get_catalog),
    enricher: MetadataEnricher = Depends(get_enricher),
    storage_factory: StorageFactory = Depends(get_storage_factory),
) -> IngestionPipeline:
    return IngestionPipeline(config, catalog, enricher, storage_factory)


def get_streaming_proxy(
    config: Settings = Depends(get_settings),
    catalog: CatalogStore = Depends(get_catalog),
    storage_factory: StorageFactory = Depends(get_storage_factory),
) -> StreamingProxy:
    return StreamingProxy(config, catalog, storage_factory)
