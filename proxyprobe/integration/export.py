"""Collector: filter, deduplicate and export parsed endpoints.

``collect`` turns a subscription into the candidate file the validator
reads, plus JSON and CSV views of the same endpoints.
"""

from __future__ import annotations

import csv
import json
import logging
import uuid
from collections.abc import Iterable, Sequence
from pathlib import Path

from proxyprobe.config.probe_policy import ProbePolicy
from proxyprobe.config.settings import ProbeSettings
from proxyprobe.integration.subscription import (
    SubscriptionCache,
    SubscriptionClient,
    decode_subscription,
    load_subscription,
)
from proxyprobe.models.endpoint import Endpoint, Unparseable
from proxyprobe.parsers import build_registry, options_from_policy

logger = logging.getLogger(__name__)

EXPORT_FILES = ("configs.txt", "configs.json", "configs.csv")
CSV_HEADER = ("id", "type", "tag", "server", "port", "raw")


def filter_by_country(endpoints: Iterable[Endpoint], markers: Sequence[str]) -> list[Endpoint]:
    """Keep endpoints whose tag mentions any of *markers*.

    An empty marker list disables the filter.
    """
    if not markers:
        return list(endpoints)
    return [ep for ep in endpoints if any(marker in ep.tag for marker in markers)]


def dedupe_by_endpoint(endpoints: Iterable[Endpoint]) -> list[Endpoint]:
    """Drop repeated (host, port) pairs, keeping the first occurrence."""
    seen: set[tuple[str, int]] = set()
    unique: list[Endpoint] = []
    for endpoint in endpoints:
        key = (endpoint.host.strip().lower(), endpoint.port)
        if key in seen:
            continue
        seen.add(key)
        unique.append(endpoint)
    return unique


def export_endpoints(endpoints: Sequence[Endpoint], directory: str) -> Path:
    """Write ``configs.txt``, ``configs.json`` and ``configs.csv``.

    Previous exports are removed first. Returns the path of the text file.
    """
    out_dir = Path(directory)
    for name in EXPORT_FILES:
        old = out_dir / name
        if old.exists():
            old.unlink()
            logger.debug("Cleared old file: %s", old)
    out_dir.mkdir(parents=True, exist_ok=True)

    rows = [
        {
            "id": str(uuid.uuid4()),
            "type": ep.protocol.value,
            "tag": ep.tag,
            "server": ep.host,
            "port": ep.port,
            "raw": ep.raw,
        }
        for ep in endpoints
    ]

    txt_path = out_dir / "configs.txt"
    with txt_path.open("w", encoding="utf-8", newline="") as fh:
        fh.write("\n".join(ep.raw for ep in endpoints))

    (out_dir / "configs.json").write_text(
        json.dumps(rows, indent=2, ensure_ascii=False), encoding="utf-8"
    )

    with (out_dir / "configs.csv").open("w", encoding="utf-8", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_HEADER, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writeheader()
        writer.writerows(rows)

    logger.info("%d unique configs saved to %s", len(rows), out_dir)
    return txt_path


async def collect(settings: ProbeSettings, policy: ProbePolicy) -> Path:
    """Fetch (or reuse) the subscription and export the usable endpoints.

    Raises
    ------
    SubscriptionFetchError
        If there is no fresh cache and the subscription cannot be fetched.
    """
    client = SubscriptionClient(
        settings.subscription_url,
        timeout_seconds=settings.subscription_timeout_seconds,
        max_retries=settings.subscription_max_retries,
    )
    cache = SubscriptionCache(settings.cache_path, ttl_seconds=settings.cache_ttl_seconds)

    payload = await load_subscription(client, cache)
    lines = decode_subscription(payload)
    logger.info("Total input lines: %d", len(lines))

    registry = build_registry(options_from_policy(policy))
    parsed = [result for result in map(registry.parse, lines) if not isinstance(result, Unparseable)]
    logger.info("Parsed configs: %d", len(parsed))

    selected = filter_by_country(parsed, settings.country_filter)
    logger.info("Configs matching country filter: %d", len(selected))

    if policy.dedupe:
        selected = dedupe_by_endpoint(selected)
        logger.info("Unique configs after deduplication: %d", len(selected))

    return export_endpoints(selected, settings.export_dir)
