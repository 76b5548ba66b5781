"""
Bundle broadcaster.

Sends one ``eth_sendBundle`` request per resolved relay endpoint,
concurrently, and waits for all of them.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Sequence, Union

import httpx
import structlog

from relaycast.account.account import Account
from relaycast.config import Network, RelaycastConfig, get_config
from relaycast.errors import EmptyTransactionSet, EndpointError
from relaycast.outcome import BroadcastOutcome
from relaycast.relay.builders import BuilderIdentity, EndpointRegistry
from relaycast.relay.envelope import BundleRequest, to_request_body
from relaycast.transport import create_http_client, post_json_rpc, request_timeout, summarize

logger = structlog.get_logger(__name__)

FLASHBOTS_SIGNATURE_HEADER = "X-Flashbots-Signature"

IdentityLike = Union[str, BuilderIdentity]


class BundleBroadcaster:
    """
    Fans a bundle out to block builder relays.

    Every endpoint is contacted with the identical request body. A failing
    endpoint never aborts its siblings: its failure is logged and recorded
    in the returned outcome list. The call only raises before any request
    is sent (empty bundle, nothing to contact).

    Cancelling the task awaiting a broadcast cancels every in-flight
    endpoint request.

    Usage:
        ```python
        async with BundleBroadcaster() as broadcaster:
            outcomes = await broadcaster.broadcast_bundle(raw_txs, block + 1)
        ```
    """

    def __init__(
        self,
        config: Optional[RelaycastConfig] = None,
        registry: Optional[EndpointRegistry] = None,
        client: Optional[httpx.AsyncClient] = None,
        auth_account: Optional[Account] = None,
    ):
        """
        Initialize the broadcaster.

        Args:
            config: relaycast configuration
            registry: Endpoint registry (default builder table if not provided)
            client: Shared HTTP client (created on connect if not provided)
            auth_account: Account signing the X-Flashbots-Signature header.
                Loaded from config when ``sign_bundle_requests`` is set.
        """
        self.config = config or get_config()
        self.registry = registry or EndpointRegistry()
        self._client = client
        self._owns_client = client is None

        if auth_account is None and self.config.sign_bundle_requests:
            auth_account = Account.from_config(self.config)
        self.auth_account = auth_account

    async def connect(self) -> None:
        """Create the shared HTTP client."""
        if self._client is None:
            self._client = create_http_client(self.config)
            self._owns_client = True

    async def close(self) -> None:
        """Close the HTTP client if this broadcaster created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BundleBroadcaster":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def broadcast_bundle(
        self,
        raw_txs: Sequence[str],
        target_block: int,
        identities: Optional[Iterable[IdentityLike]] = None,
        network: Optional[Union[str, Network]] = None,
        *,
        min_timestamp: Optional[int] = None,
        max_timestamp: Optional[int] = None,
        reverting_tx_hashes: Optional[List[str]] = None,
        replacement_uuid: Optional[str] = None,
    ) -> List[BroadcastOutcome]:
        """
        Broadcast a bundle of raw signed transactions.

        Args:
            raw_txs: Raw signed transactions (0x hex), in execution order
            target_block: Block number the bundle targets
            identities: Builders to contact (configured builders if not provided)
            network: Target network (configured network if not provided)

        Returns:
            One outcome per contacted endpoint, in resolution order

        Raises:
            EmptyTransactionSet: ``raw_txs`` is empty
            NoEndpointForNetwork: No requested builder has an endpoint on the network
        """
        if not raw_txs:
            raise EmptyTransactionSet()

        request = BundleRequest(
            txs=list(raw_txs),
            block_number=target_block,
            min_timestamp=min_timestamp,
            max_timestamp=max_timestamp,
            reverting_tx_hashes=reverting_tx_hashes,
            replacement_uuid=replacement_uuid,
        )
        return await self.broadcast_request(request, identities, network)

    async def broadcast_request(
        self,
        request: BundleRequest,
        identities: Optional[Iterable[IdentityLike]] = None,
        network: Optional[Union[str, Network]] = None,
    ) -> List[BroadcastOutcome]:
        """Broadcast a prebuilt bundle request. See ``broadcast_bundle``."""
        if not request.txs:
            raise EmptyTransactionSet()

        network = Network(network or self.config.network)
        if identities is None:
            identities = self.config.builders

        body = to_request_body(request)
        endpoints = self.registry.resolve_many(identities, network)

        headers: Dict[str, str] = {}
        if self.auth_account is not None:
            headers[FLASHBOTS_SIGNATURE_HEADER] = self.auth_account.flashbots_signature(body)

        await self.connect()

        logger.info(
            "bundle_dispatching",
            network=network.value,
            block_number=hex(request.block_number),
            tx_count=len(request.txs),
            endpoints=len(endpoints),
        )

        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(self._send(url, body, headers))
                for url in endpoints
            ]
        outcomes = [task.result() for task in tasks]

        accepted = sum(1 for outcome in outcomes if outcome.succeeded)
        logger.info(
            "bundle_broadcast_complete",
            block_number=hex(request.block_number),
            succeeded=accepted,
            failed=len(outcomes) - accepted,
        )
        return outcomes

    async def _send(self, url: str, body: str, headers: Dict[str, str]) -> BroadcastOutcome:
        """Send the bundle to one endpoint and classify the reply."""
        loop = asyncio.get_running_loop()
        started = loop.time()

        try:
            reply = await post_json_rpc(
                self._client, url, body, headers, timeout=request_timeout(self.config)
            )
        except EndpointError as e:
            elapsed_ms = (loop.time() - started) * 1000
            logger.warning(
                "bundle_endpoint_failed",
                endpoint=url,
                error_kind=type(e).__name__,
                status=e.status_code,
                error=e.reason,
            )
            return BroadcastOutcome(
                endpoint=url,
                succeeded=False,
                status_code=e.status_code,
                error=e,
                elapsed_ms=elapsed_ms,
            )

        elapsed_ms = (loop.time() - started) * 1000
        result = reply.result
        bundle_hash = result.get("bundleHash") if isinstance(result, dict) else None

        if bundle_hash:
            logger.info("bundle_accepted", endpoint=url, bundle_hash=bundle_hash)
        else:
            logger.info(
                "bundle_response_without_hash",
                endpoint=url,
                response=summarize(reply.payload),
            )

        return BroadcastOutcome(
            endpoint=url,
            succeeded=True,
            status_code=reply.status_code,
            result=bundle_hash,
            response=reply.payload,
            elapsed_ms=elapsed_ms,
        )
