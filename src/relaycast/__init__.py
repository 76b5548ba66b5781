"""
relaycast

Signs Ethereum transactions and broadcasts them, as plain transactions or
as MEV bundles, concurrently to block builder relays and JSON-RPC nodes
to maximise the chance of on-chain inclusion.
"""

__version__ = "0.1.0"

from relaycast.account import Account, KeyMaterial, NonceTracker
from relaycast.config import Network, RelaycastConfig
from relaycast.node import MultiNodeTxSender
from relaycast.outcome import BroadcastOutcome
from relaycast.relay import BuilderIdentity, BundleBroadcaster, BundleRequest, EndpointRegistry

__all__ = [
    "Account",
    "KeyMaterial",
    "NonceTracker",
    "Network",
    "RelaycastConfig",
    "MultiNodeTxSender",
    "BroadcastOutcome",
    "BuilderIdentity",
    "BundleBroadcaster",
    "BundleRequest",
    "EndpointRegistry",
]
