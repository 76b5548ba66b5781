"""
Pytest configuration and shared fixtures for the test suite.
"""

import json
from typing import Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from relaycast.account import Account
from relaycast.config import Network, RelaycastConfig
from relaycast.relay.builders import BuilderIdentity, EndpointRegistry
from relaycast.transport import JSON_HEADERS


# ============================================================================
# Well-known test keys (public development mnemonic, never funded on mainnet)
# ============================================================================

TEST_MNEMONIC = "test test test test test test test test test test test junk"
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"
TEST_ADDRESS_INDEX_1 = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> RelaycastConfig:
    """Create a test configuration."""
    return RelaycastConfig(
        _env_file=None,
        network=Network.MAINNET,
        builders=["all"],
        request_timeout_seconds=2.0,
        connect_timeout_seconds=1.0,
        log_level="DEBUG",
    )


@pytest.fixture
def test_account() -> Account:
    """Account backed by the first development key."""
    return Account.from_private_key(TEST_PRIVATE_KEY)


@pytest.fixture
def sample_tx() -> dict:
    """An EIP-1559 transfer ready to be signed."""
    return {
        "type": 2,
        "chainId": 1,
        "nonce": 0,
        "to": "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
        "value": 10**15,
        "gas": 21000,
        "maxFeePerGas": 30 * 10**9,
        "maxPriorityFeePerGas": 10**9,
    }


# ============================================================================
# Registry Fixtures
# ============================================================================

RELAY_A = "https://relay-a.test/"
RELAY_B = "https://relay-b.test/"
RELAY_C = "https://relay-c.test/"
RELAY_D = "https://relay-d.test/"


@pytest.fixture
def small_registry() -> EndpointRegistry:
    """Registry over four fake relays, one of them also on sepolia."""
    return EndpointRegistry({
        BuilderIdentity.FLASHBOTS: {
            Network.MAINNET: (RELAY_A,),
            Network.SEPOLIA: (RELAY_A,),
        },
        BuilderIdentity.BEAVERBUILD: {Network.MAINNET: (RELAY_B,)},
        BuilderIdentity.RSYNC: {Network.MAINNET: (RELAY_C,)},
        BuilderIdentity.TITAN: {Network.MAINNET: (RELAY_D,)},
    })


# ============================================================================
# Mock HTTP endpoints
# ============================================================================

class EndpointRecorder:
    """
    Scripted HTTP endpoints for httpx.MockTransport.

    Each URL maps to a responder returning an ``httpx.Response`` or raising
    an ``httpx`` exception. Unknown URLs answer with a bundle hash.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responders: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, url: str, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.responders[url] = responder

    def reply(self, url: str, status_code: int = 200, payload: Optional[dict] = None, text: Optional[str] = None) -> None:
        def responder(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status_code, text=text)
            return httpx.Response(status_code, json=payload if payload is not None else {})
        self.on(url, responder)

    def fail_transport(self, url: str) -> None:
        def responder(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)
        self.on(url, responder)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self.responders.get(str(request.url))
        if responder is not None:
            return responder(request)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"bundleHash": "0xbeef"}})

    def bodies(self) -> List[dict]:
        return [json.loads(request.content) for request in self.requests]

    def urls(self) -> List[str]:
        return [str(request.url) for request in self.requests]


@pytest.fixture
def endpoints() -> EndpointRecorder:
    return EndpointRecorder()


@pytest_asyncio.fixture
async def mock_client(endpoints):
    """HTTP client routed through the scripted endpoints."""
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(endpoints.handler),
        headers=JSON_HEADERS,
    )
    yield client
    await client.aclose()
