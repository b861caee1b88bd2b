"""Node access: JSON-RPC client, health resolution, and chain discovery."""

from launchgate.node.chain import discover_chain, select_chain
from launchgate.node.resolver import resolve_healthy_node, wait_for_healthy
from launchgate.node.rpc import JsonRpcClient

__all__ = [
    "JsonRpcClient",
    "discover_chain",
    "resolve_healthy_node",
    "select_chain",
    "wait_for_healthy",
]
