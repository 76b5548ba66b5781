"""
Test suite for concurrent bundle broadcasting.
"""

import asyncio
from typing import List
from unittest.mock import patch

import httpx
import pytest
from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_hex

from relaycast.account import Account
from relaycast.config import Network
from relaycast.errors import (
    EmptyTransactionSet,
    EndpointRequestFailed,
    NoEndpointForNetwork,
    ResponseParseFailed,
)
from relaycast.outcome import any_succeeded
from relaycast.relay import BundleBroadcaster
from relaycast.relay.broadcaster import FLASHBOTS_SIGNATURE_HEADER
from relaycast.relay.envelope import BundleRequest

from tests.conftest import RELAY_A, RELAY_B, RELAY_C, RELAY_D

RAW_TXS = ["0x02f86b0180843b9aca00", "0x02f86b0101843b9aca00"]


@pytest.fixture
def broadcaster(test_config, small_registry, mock_client) -> BundleBroadcaster:
    return BundleBroadcaster(test_config, registry=small_registry, client=mock_client)


# ============================================================================
# Pre-flight validation
# ============================================================================

class TestPreflight:
    """Failures raised before any request is sent."""

    @pytest.mark.asyncio
    async def test_empty_bundle(self, broadcaster, endpoints):
        with pytest.raises(EmptyTransactionSet):
            await broadcaster.broadcast_bundle([], 100)

        assert endpoints.requests == []

    @pytest.mark.asyncio
    async def test_empty_prebuilt_request(self, broadcaster, endpoints):
        with pytest.raises(EmptyTransactionSet):
            await broadcaster.broadcast_request(BundleRequest(txs=[], block_number=1))

        assert endpoints.requests == []

    @pytest.mark.asyncio
    async def test_no_endpoint_for_network(self, broadcaster, endpoints):
        with pytest.raises(NoEndpointForNetwork):
            await broadcaster.broadcast_bundle(RAW_TXS, 100, ["titan"], Network.SEPOLIA)

        assert endpoints.requests == []

    @pytest.mark.asyncio
    async def test_all_without_endpoints(self, broadcaster, endpoints):
        with pytest.raises(NoEndpointForNetwork):
            await broadcaster.broadcast_bundle(RAW_TXS, 100, ["all"], Network.GOERLI)

        assert endpoints.requests == []


# ============================================================================
# Fan-out
# ============================================================================

class TestBroadcast:
    """Tests for the concurrent dispatch to every endpoint."""

    @pytest.mark.asyncio
    async def test_all_endpoints_receive_identical_body(self, broadcaster, endpoints):
        outcomes = await broadcaster.broadcast_bundle(RAW_TXS, 0x123455)

        assert sorted(endpoints.urls()) == sorted([RELAY_A, RELAY_B, RELAY_C, RELAY_D])
        contents = {request.content for request in endpoints.requests}
        assert len(contents) == 1
        assert endpoints.bodies()[0] == {
            "id": 1,
            "jsonrpc": "2.0",
            "method": "eth_sendBundle",
            "params": [{"txs": RAW_TXS, "blockNumber": "0x123455"}],
        }
        assert all(outcome.succeeded for outcome in outcomes)

    @pytest.mark.asyncio
    async def test_requests_are_json_posts(self, broadcaster, endpoints):
        await broadcaster.broadcast_bundle(RAW_TXS, 1)

        for request in endpoints.requests:
            assert request.method == "POST"
            assert request.headers["content-type"] == "application/json"
            assert FLASHBOTS_SIGNATURE_HEADER not in request.headers

    @pytest.mark.asyncio
    async def test_requests_carry_configured_timeout(self, broadcaster, endpoints):
        await broadcaster.broadcast_bundle(RAW_TXS, 1)

        for request in endpoints.requests:
            assert request.extensions["timeout"] == {
                "connect": 1.0,
                "read": 2.0,
                "write": 2.0,
                "pool": 2.0,
            }

    @pytest.mark.asyncio
    async def test_outcomes_follow_resolution_order(self, broadcaster):
        outcomes = await broadcaster.broadcast_bundle(RAW_TXS, 1)

        assert [outcome.endpoint for outcome in outcomes] == [RELAY_A, RELAY_B, RELAY_C, RELAY_D]

    @pytest.mark.asyncio
    async def test_bundle_hash_is_reported(self, broadcaster, endpoints):
        endpoints.reply(RELAY_B, payload={"jsonrpc": "2.0", "id": 1, "result": {"bundleHash": "0xabc"}})

        outcomes = await broadcaster.broadcast_bundle(RAW_TXS, 1)

        assert outcomes[0].result == "0xbeef"
        assert outcomes[1].result == "0xabc"
        assert outcomes[1].status_code == 200

    @pytest.mark.asyncio
    async def test_success_without_hash(self, broadcaster, endpoints):
        endpoints.reply(RELAY_C, payload={"jsonrpc": "2.0", "id": 1, "result": None})

        outcomes = await broadcaster.broadcast_bundle(RAW_TXS, 1)

        assert outcomes[2].succeeded
        assert outcomes[2].result is None
        assert outcomes[2].response == {"jsonrpc": "2.0", "id": 1, "result": None}

    @pytest.mark.asyncio
    async def test_failures_do_not_abort_siblings(self, broadcaster, endpoints):
        endpoints.reply(RELAY_A, status_code=500, text="internal error")
        endpoints.fail_transport(RELAY_B)
        endpoints.reply(RELAY_C, status_code=200, text="<html>not json</html>")

        outcomes = await broadcaster.broadcast_bundle(RAW_TXS, 1)

        assert len(endpoints.requests) == 4
        assert len(outcomes) == 4

        assert not outcomes[0].succeeded
        assert isinstance(outcomes[0].error, EndpointRequestFailed)
        assert outcomes[0].status_code == 500

        assert not outcomes[1].succeeded
        assert isinstance(outcomes[1].error, EndpointRequestFailed)
        assert outcomes[1].status_code is None

        assert not outcomes[2].succeeded
        assert isinstance(outcomes[2].error, ResponseParseFailed)
        assert outcomes[2].error_kind == "ResponseParseFailed"

        assert outcomes[3].succeeded
        assert any_succeeded(outcomes)

    @pytest.mark.asyncio
    async def test_rpc_error_member_is_failure(self, broadcaster, endpoints):
        endpoints.reply(RELAY_D, payload={
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": -32000, "message": "bundle rejected"},
        })

        outcomes = await broadcaster.broadcast_bundle(RAW_TXS, 1)

        assert not outcomes[3].succeeded
        assert isinstance(outcomes[3].error, EndpointRequestFailed)
        assert "bundle rejected" in outcomes[3].error.reason

    @pytest.mark.asyncio
    async def test_every_endpoint_failing_still_returns(self, broadcaster, endpoints):
        for url in (RELAY_A, RELAY_B, RELAY_C, RELAY_D):
            endpoints.fail_transport(url)

        outcomes = await broadcaster.broadcast_bundle(RAW_TXS, 1)

        assert len(outcomes) == 4
        assert not any_succeeded(outcomes)

    @pytest.mark.asyncio
    async def test_unresolvable_identity_is_skipped(self, broadcaster, endpoints):
        outcomes = await broadcaster.broadcast_bundle(
            RAW_TXS, 1, ["beaverbuild", "flashbots"], Network.SEPOLIA
        )

        assert endpoints.urls() == [RELAY_A]
        assert [outcome.endpoint for outcome in outcomes] == [RELAY_A]

    @pytest.mark.asyncio
    async def test_optional_fields_in_body(self, broadcaster, endpoints):
        await broadcaster.broadcast_bundle(
            RAW_TXS, 16, ["flashbots"], replacement_uuid="6b7c1d0e", max_timestamp=1700000000
        )

        params = endpoints.bodies()[0]["params"][0]
        assert params == {
            "txs": RAW_TXS,
            "blockNumber": "0x10",
            "maxTimestamp": 1700000000,
            "replacementUuid": "6b7c1d0e",
        }

    @pytest.mark.asyncio
    async def test_signature_header(self, test_config, small_registry, mock_client, endpoints, test_account):
        broadcaster = BundleBroadcaster(
            test_config,
            registry=small_registry,
            client=mock_client,
            auth_account=test_account,
        )

        await broadcaster.broadcast_bundle(RAW_TXS, 1, ["flashbots", "titan"])

        assert len(endpoints.requests) == 2
        for request in endpoints.requests:
            header = request.headers[FLASHBOTS_SIGNATURE_HEADER]
            address, signature = header.split(":")
            assert address == test_account.address
            digest = to_hex(keccak(text=request.content.decode()))
            recovered = EthAccount.recover_message(encode_defunct(text=digest), signature=signature)
            assert recovered.lower() == test_account.address

    def test_signing_account_loaded_from_config(self, test_config, small_registry, test_account):
        config = test_config.model_copy(update={"sign_bundle_requests": True})

        with patch.object(Account, "from_config", return_value=test_account) as from_config:
            broadcaster = BundleBroadcaster(config, registry=small_registry)

        from_config.assert_called_once_with(config)
        assert broadcaster.auth_account is test_account

    @pytest.mark.asyncio
    async def test_borrowed_client_stays_open(self, broadcaster, mock_client):
        async with broadcaster:
            await broadcaster.broadcast_bundle(RAW_TXS, 1)

        assert not mock_client.is_closed


# ============================================================================
# Cancellation
# ============================================================================

class TestCancellation:
    """Cancelling a broadcast cancels its in-flight requests."""

    @pytest.mark.asyncio
    async def test_cancel_propagates_to_requests(self, test_config, small_registry):
        started: List[str] = []
        cancelled: List[str] = []
        all_started = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started.append(str(request.url))
            if len(started) == 4:
                all_started.set()
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.append(str(request.url))
                raise
            return httpx.Response(200, json={"result": {"bundleHash": "0x1"}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            broadcaster = BundleBroadcaster(test_config, registry=small_registry, client=client)
            task = asyncio.create_task(broadcaster.broadcast_bundle(RAW_TXS, 1))

            await asyncio.wait_for(all_started.wait(), timeout=5)
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task

        assert sorted(cancelled) == sorted([RELAY_A, RELAY_B, RELAY_C, RELAY_D])
