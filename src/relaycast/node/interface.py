"""
Abstract interface for Ethereum JSON-RPC node access.

Defines the contract the multi-node sender relies on. Other components
(contract bindings, scripts) may reuse it to push raw transactions.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Union


class NodeInterface(ABC):
    """
    Abstract interface for a single Ethereum node.

    This interface covers the operations needed for plain transaction
    submission:
    - Raw (pre-signed) transaction submission
    - Node-signed transaction submission
    - Nonce queries
    """

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """URL of the node."""
        pass

    @abstractmethod
    async def send_raw_transaction(self, raw_tx: Union[bytes, str]) -> str:
        """
        Submit a signed transaction.

        Args:
            raw_tx: Raw signed transaction bytes (or 0x hex)

        Returns:
            Transaction hash

        Raises:
            EndpointRequestFailed: The node rejected or did not answer the request
            ResponseParseFailed: The node answered with something other than JSON
        """
        pass

    @abstractmethod
    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        """
        Submit an unsigned transaction for the node to sign.

        Args:
            tx: Transaction fields; ``from`` must be unlocked on the node

        Returns:
            Transaction hash
        """
        pass

    @abstractmethod
    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """
        Get the next nonce for an address.

        Args:
            address: Account address
            block: Block tag to query against

        Returns:
            Transaction count as reported by this node
        """
        pass
