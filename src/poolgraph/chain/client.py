"""Cached Web3 clients per RPC URL."""

from __future__ import annotations

import backoff
import structlog
from web3 import HTTPProvider, Web3

log = structlog.get_logger(__name__)

_web3_clients: dict[str, Web3] = {}


@backoff.on_exception(backoff.expo, ConnectionError, max_tries=5, jitter=None)
def _create_web3_client(rpc_url: str, timeout_sec: float) -> Web3:
    log.info("rpc_connecting", rpc_url=rpc_url)
    w3 = Web3(HTTPProvider(rpc_url, request_kwargs={"timeout": timeout_sec}))
    if not w3.is_connected():
        raise ConnectionError(f"Failed to connect to RPC: {rpc_url}")
    log.info("rpc_connected", rpc_url=rpc_url)
    return w3


def get_web3_client(rpc_url: str, timeout_sec: float = 10.0) -> Web3:
    """Return a cached or newly created Web3 client for rpc_url."""
    if rpc_url not in _web3_clients:
        _web3_clients[rpc_url] = _create_web3_client(rpc_url, timeout_sec)
    return _web3_clients[rpc_url]
