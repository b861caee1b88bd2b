"""Chain Resolver: discover the target chain id from the node's chain list."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from launchgate.errors import ChainNotFound
from launchgate.models.result import ChainDiscovery, ChainInfo
from launchgate.node.rpc import JsonRpcClient

logger = logging.getLogger(__name__)

PLATFORM_ENDPOINT = "/ext/bc/P"
CHAIN_NAME_PREFIX = "VEIL"
# Tie-break order; a node may host more than one instance during migration
PREFERRED_NAMES = ("VEIL", "VEIL2")


def select_chain(
    rows: Sequence[ChainInfo],
    vm_ids: Sequence[str],
    node_url: str = "",
) -> ChainDiscovery:
    """Pick the target chain from a blockchain listing.

    Filters by VM-id allow-list, falling back to a name-prefix match, then
    prefers the primary label, the alternate label, and finally the first
    remaining candidate.

    Raises:
        ChainNotFound: If both filters leave no candidates.
    """
    allowed = set(vm_ids)
    vm_matched = [row for row in rows if row.vm_id in allowed]
    if vm_matched:
        candidates, strategy = vm_matched, "vm-id"
    else:
        candidates = [row for row in rows if row.name.upper().startswith(CHAIN_NAME_PREFIX)]
        strategy = "name-fallback"
    if not candidates:
        raise ChainNotFound(node_url)

    preferred = candidates[0]
    for label in PREFERRED_NAMES:
        match = next((row for row in candidates if row.name.upper() == label), None)
        if match is not None:
            preferred = match
            break

    return ChainDiscovery(chain_id=preferred.id, strategy=strategy, discovered=list(candidates))


async def discover_chain(
    node_url: str,
    vm_ids: Sequence[str],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChainDiscovery:
    """Query platform.getBlockchains and select the target chain."""
    client = JsonRpcClient(node_url, transport=transport)
    result = await client.call(PLATFORM_ENDPOINT, "platform.getBlockchains", {})
    raw_rows = result.get("blockchains") if isinstance(result, dict) else None
    rows = [
        ChainInfo.model_validate({k: str(v) for k, v in row.items() if v is not None})
        for row in (raw_rows or [])
        if isinstance(row, dict)
    ]
    discovery = select_chain(rows, vm_ids, node_url)
    logger.info("Chain discovery: %s -> %s", discovery.strategy, discovery.chain_id)
    return discovery
