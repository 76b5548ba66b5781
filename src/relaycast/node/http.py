"""
HTTP JSON-RPC node client.

Talks to one Ethereum node through a (possibly shared) httpx client.
"""

from typing import Any, Dict, List, Optional, Union

import httpx
import structlog
from eth_utils import to_hex

from relaycast.account.nonce import MAX_NONCE
from relaycast.config import RelaycastConfig, get_config
from relaycast.errors import EndpointRequestFailed
from relaycast.node.interface import NodeInterface
from relaycast.transport import create_http_client, post_json_rpc, request_timeout, rpc_body

logger = structlog.get_logger(__name__)


class HttpNodeClient(NodeInterface):
    """
    JSON-RPC node client over HTTP.

    Implements the NodeInterface with plain ``eth_*`` calls. Failures raise
    ``EndpointRequestFailed`` / ``ResponseParseFailed``.
    """

    def __init__(
        self,
        endpoint: str,
        client: Optional[httpx.AsyncClient] = None,
        config: Optional[RelaycastConfig] = None,
    ):
        """
        Initialize the node client.

        Args:
            endpoint: Node URL
            client: Shared HTTP client. A private one is created if not provided.
            config: relaycast configuration (timeouts for a private client)
        """
        self._endpoint = endpoint
        self._client = client
        self._owns_client = client is None
        self.config = config or get_config()

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def close(self) -> None:
        """Close the HTTP client if this node client created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _call(self, method: str, params: List[Any]) -> Any:
        """Make a JSON-RPC call and return its ``result``."""
        # A shared client may have been closed by its owner
        if self._client is None or self._client.is_closed:
            self._client = create_http_client(self.config)
            self._owns_client = True

        reply = await post_json_rpc(
            self._client,
            self._endpoint,
            rpc_body(method, params),
            timeout=request_timeout(self.config),
        )
        return reply.result

    async def send_raw_transaction(self, raw_tx: Union[bytes, str]) -> str:
        """Submit a signed transaction with ``eth_sendRawTransaction``."""
        raw_hex = raw_tx if isinstance(raw_tx, str) else to_hex(raw_tx)
        tx_hash = self._expect_hash(await self._call("eth_sendRawTransaction", [raw_hex]))
        logger.info("raw_tx_submitted", endpoint=self._endpoint, tx_hash=tx_hash)
        return tx_hash

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        """Submit an unsigned transaction with ``eth_sendTransaction``."""
        tx_hash = self._expect_hash(await self._call("eth_sendTransaction", [_rpc_tx(tx)]))
        logger.info("tx_submitted", endpoint=self._endpoint, tx_hash=tx_hash)
        return tx_hash

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Get the nonce with ``eth_getTransactionCount``."""
        result = await self._call("eth_getTransactionCount", [address, block])
        try:
            nonce = int(result, 16)
        except (TypeError, ValueError) as e:
            raise EndpointRequestFailed(
                self._endpoint, f"unexpected transaction count: {result!r}"
            ) from e
        if nonce < 0 or nonce > MAX_NONCE:
            raise EndpointRequestFailed(
                self._endpoint, f"transaction count out of range: {result!r}"
            )
        return nonce

    def _expect_hash(self, result: Any) -> str:
        if not isinstance(result, str) or not result.startswith("0x"):
            raise EndpointRequestFailed(self._endpoint, f"unexpected result: {result!r}")
        return result

    def __repr__(self) -> str:
        return f"HttpNodeClient({self._endpoint})"


def _rpc_tx(tx: Dict[str, Any]) -> Dict[str, Any]:
    """Hex-encode integer and byte fields as JSON-RPC expects."""
    encoded = {}
    for key, value in tx.items():
        if isinstance(value, bool):
            encoded[key] = value
        elif isinstance(value, (int, bytes, bytearray)):
            encoded[key] = to_hex(value)
        else:
            encoded[key] = value
    return encoded
