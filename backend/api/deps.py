"""
Trelliso API Dependencies

Dependency injection for the persisted client state, the dashboard store
and the S3 proxy backend client.
"""

from functools import lru_cache

from core.config import get_settings
from dashboard.data_source import DataSourceSelector
from dashboard.recommendations import RecommendationOverlayStore
from dashboard.state import ClientStateStore, JsonFileStateStore
from dashboard.store import DashboardStore
from integrations.backend_api import BackendApiClient
from integrations.s3_client import S3Client


@lru_cache
def get_state_store() -> ClientStateStore:
    """Process-wide persisted client state."""
    return JsonFileStateStore(get_settings().state_file)


def build_dashboard_store(state: ClientStateStore, s3_transport=None) -> DashboardStore:
    """Wire selector, overlays and store so a data source toggle reloads the store."""
    settings = get_settings()
    selector = DataSourceSelector(state, settings)
    store = DashboardStore(
        selector=selector,
        overlays=RecommendationOverlayStore(state),
        s3_client_factory=lambda: S3Client.from_settings(settings, transport=s3_transport),
    )
    selector.on_reload = store.reload
    return store


@lru_cache
def get_dashboard_store() -> DashboardStore:
    return build_dashboard_store(get_state_store())


@lru_cache
def get_backend_api_client() -> BackendApiClient:
    return BackendApiClient.from_settings(get_settings())
