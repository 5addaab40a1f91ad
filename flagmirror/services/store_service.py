# flagmirror/services/store_service.py
"""Construction and lookup of the application's feature store."""


from __future__ import annotations

from flask import current_app

from flagmirror.config import Settings
from flagmirror.repositories.dynamodb_client import DynamoDBClient, create_resource
from flagmirror.repositories.feature_store import FeatureStore
from flagmirror.repositories.memory_client import MemoryStoreClient

EXTENSION_KEY = "feature_store"


def build_feature_store(settings: Settings) -> FeatureStore:
    """Create the feature store selected by ``settings.store_backend``.

    Args:
        settings: Loaded service settings.

    Returns:
        FeatureStore: A store over DynamoDB, or over process memory when
        the ``memory`` backend is configured.
    """
    if settings.store_backend == "memory":
        client = MemoryStoreClient()
    else:
        client = DynamoDBClient(
            create_resource(
                region_name=settings.aws_region,
                endpoint_url=settings.dynamodb_endpoint_url,
            )
        )
    return FeatureStore(client, table_prefix=settings.table_prefix)


def get_feature_store() -> FeatureStore:
    """Return the feature store attached to the current Flask app."""
    return current_app.extensions[EXTENSION_KEY]
