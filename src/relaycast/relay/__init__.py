"""
Relay layer.

Builder endpoint registry, bundle envelope encoding and the concurrent
bundle broadcaster.
"""

from relaycast.relay.builders import BUILDER_ENDPOINTS, BuilderIdentity, EndpointRegistry
from relaycast.relay.envelope import BundleRequest, encode_bundle_params, to_request_body, wrap_json_rpc
from relaycast.relay.broadcaster import BundleBroadcaster

__all__ = [
    "BUILDER_ENDPOINTS",
    "BuilderIdentity",
    "EndpointRegistry",
    "BundleRequest",
    "encode_bundle_params",
    "wrap_json_rpc",
    "to_request_body",
    "BundleBroadcaster",
]
