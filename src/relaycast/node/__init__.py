"""
Node Integration Layer.

Provides plain JSON-RPC node access and parallel submission of a
transaction to several nodes.
"""

from relaycast.node.interface import NodeInterface
from relaycast.node.http import HttpNodeClient
from relaycast.node.sender import MultiNodeTxSender

__all__ = [
    "NodeInterface",
    "HttpNodeClient",
    "MultiNodeTxSender",
]
