# Remote feed adapters
# Source-specific column names and status rules live here, not in ledger

from .webhook_client import WebhookClient
from .webhook_feeds import FeedLoad, WebhookFeedLoader, build_sync_service

__all__ = ["WebhookClient", "FeedLoad", "WebhookFeedLoader", "build_sync_service"]
