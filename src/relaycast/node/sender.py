"""
Multi-node transaction sender.

Submits the same plain transaction to several independent JSON-RPC nodes
in parallel, and reconciles the account nonce they report.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Union

import httpx
import structlog

from relaycast.account.account import Account
from relaycast.account.nonce import NonceTracker
from relaycast.config import RelaycastConfig, get_config
from relaycast.errors import EndpointError, NoEndpointsConfigured
from relaycast.node.http import HttpNodeClient
from relaycast.node.interface import NodeInterface
from relaycast.outcome import BroadcastOutcome
from relaycast.transport import create_http_client

logger = structlog.get_logger(__name__)

NodeCall = Callable[[NodeInterface], Awaitable[str]]


class MultiNodeTxSender:
    """
    Parallel transaction submission to several JSON-RPC nodes.

    Each node gets one request; every request is awaited and its result
    (transaction hash or error) is returned per node. A failing node never
    affects the others.

    Usage:
        ```python
        async with MultiNodeTxSender(["https://rpc-a", "https://rpc-b"]) as sender:
            await sender.sync_nonce(tracker)
            outcomes = await sender.sign_and_send(tx, account)
        ```
    """

    def __init__(
        self,
        endpoints: Iterable[str] = (),
        config: Optional[RelaycastConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        nodes: Optional[Sequence[NodeInterface]] = None,
    ):
        """
        Initialize the sender.

        Args:
            endpoints: Node URLs; entries not starting with ``http`` are skipped
            config: relaycast configuration
            client: Shared HTTP client (created here if not provided)
            nodes: Prebuilt node clients, used instead of ``endpoints``

        Raises:
            NoEndpointsConfigured: No usable URL was given
        """
        self.config = config or get_config()
        self._owns_client = False
        self._client = client

        if nodes:
            self.nodes: List[NodeInterface] = list(nodes)
            return

        urls: List[str] = []
        for endpoint in endpoints:
            endpoint = (endpoint or "").strip()
            if endpoint.startswith(("http://", "https://")):
                urls.append(endpoint)
            else:
                logger.warning("node_endpoint_skipped", endpoint=endpoint)

        if not urls:
            raise NoEndpointsConfigured()

        if client is None:
            self._client = create_http_client(self.config)
            self._owns_client = True
        self.nodes = [
            HttpNodeClient(url, client=self._client, config=self.config) for url in urls
        ]

    @classmethod
    def from_config(cls, config: Optional[RelaycastConfig] = None) -> "MultiNodeTxSender":
        """Build a sender over the configured ``rpc_endpoints``."""
        config = config or get_config()
        return cls(config.rpc_endpoints, config=config)

    @property
    def endpoints(self) -> List[str]:
        return [node.endpoint for node in self.nodes]

    async def close(self) -> None:
        """Close the shared HTTP client if this sender created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        for node in self.nodes:
            if isinstance(node, HttpNodeClient):
                await node.close()

    async def __aenter__(self) -> "MultiNodeTxSender":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def send_raw_transaction(self, raw_tx: Union[bytes, str]) -> List[BroadcastOutcome]:
        """
        Submit one signed raw transaction to every node.

        Returns:
            One outcome per node; ``result`` holds the transaction hash
        """
        return await self._fan_out(
            "send_raw_transaction",
            lambda node: node.send_raw_transaction(raw_tx),
        )

    async def sign_and_send(self, tx: Dict[str, Any], account: Account) -> List[BroadcastOutcome]:
        """Sign a transaction once, then submit the raw bytes to every node."""
        signed = account.sign_transaction(tx)
        return await self.send_raw_transaction(signed.raw_transaction)

    async def send_transaction(self, tx: Dict[str, Any]) -> List[BroadcastOutcome]:
        """Submit an unsigned transaction for node-side signing to every node."""
        return await self._fan_out(
            "send_transaction",
            lambda node: node.send_transaction(tx),
        )

    async def sync_nonce(self, tracker: NonceTracker) -> int:
        """
        Query the pending nonce from every node and raise the tracker.

        Nodes that fail to answer or report an out-of-range nonce are skipped.

        Returns:
            The tracker's nonce after all observations
        """
        async def observe(node: NodeInterface) -> None:
            try:
                nonce = await node.get_transaction_count(tracker.address)
            except EndpointError as e:
                logger.warning("nonce_query_failed", endpoint=node.endpoint, error=e.reason)
                return
            try:
                tracker.observe(nonce)
            except ValueError as e:
                logger.warning("nonce_rejected", endpoint=node.endpoint, error=str(e))

        async with asyncio.TaskGroup() as group:
            for node in self.nodes:
                group.create_task(observe(node))

        logger.info("nonce_synced", address=tracker.address[:10] + "...", nonce=tracker.current)
        return tracker.current

    async def _fan_out(self, operation: str, call: NodeCall) -> List[BroadcastOutcome]:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(self._attempt(node, call)) for node in self.nodes]
        outcomes = [task.result() for task in tasks]

        accepted = sum(1 for outcome in outcomes if outcome.succeeded)
        logger.info(
            "node_broadcast_complete",
            operation=operation,
            succeeded=accepted,
            failed=len(outcomes) - accepted,
        )
        return outcomes

    async def _attempt(self, node: NodeInterface, call: NodeCall) -> BroadcastOutcome:
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            tx_hash = await call(node)
        except EndpointError as e:
            logger.warning(
                "node_request_failed",
                endpoint=node.endpoint,
                error_kind=type(e).__name__,
                error=e.reason,
            )
            return BroadcastOutcome(
                endpoint=node.endpoint,
                succeeded=False,
                status_code=e.status_code,
                error=e,
                elapsed_ms=(loop.time() - started) * 1000,
            )
        return BroadcastOutcome(
            endpoint=node.endpoint,
            succeeded=True,
            result=tx_hash,
            elapsed_ms=(loop.time() - started) * 1000,
        )
