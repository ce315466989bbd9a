"""Subscription collector: fetch, cache, filter and export share links."""

from proxyprobe.integration.export import (
    collect,
    dedupe_by_endpoint,
    export_endpoints,
    filter_by_country,
)
from proxyprobe.integration.subscription import (
    SubscriptionCache,
    SubscriptionClient,
    decode_subscription,
    load_subscription,
)

__all__ = [
    "SubscriptionCache",
    "SubscriptionClient",
    "collect",
    "decode_subscription",
    "dedupe_by_endpoint",
    "export_endpoints",
    "filter_by_country",
    "load_subscription",
]
