"""
Error taxonomy for relaycast.

Account and pre-flight errors are fatal and raised before any network I/O.
Endpoint errors describe a single failed request; the fan-out senders
catch them per endpoint and report them through ``BroadcastOutcome``.
"""

from typing import Optional


class RelaycastError(Exception):
    """Base class for all relaycast errors."""
    pass


# =============================================================================
# Account construction
# =============================================================================

class AccountError(RelaycastError):
    """Raised when an account cannot be built from its key material."""
    pass


class MissingKeySource(AccountError):
    """Neither a private key nor a mnemonic phrase was supplied."""

    def __init__(self, message: str = "either a private key or a mnemonic phrase is required"):
        super().__init__(message)


class AmbiguousKeySource(AccountError):
    """Both a private key and a mnemonic phrase were supplied."""

    def __init__(self, message: str = "private key and mnemonic phrase are ambiguous, one is enough"):
        super().__init__(message)


class InvalidPrivateKey(AccountError):
    """The private key could not be parsed into a signing key."""
    pass


class InvalidMnemonic(AccountError):
    """The mnemonic phrase could not be turned into a signing key."""
    pass


# =============================================================================
# Pre-flight validation
# =============================================================================

class EmptyTransactionSet(RelaycastError):
    """A bundle was requested with no transactions."""

    def __init__(self, message: str = "bundle must contain at least one transaction"):
        super().__init__(message)


class NoEndpointForNetwork(RelaycastError):
    """No relay endpoint is known for the requested builder and network."""

    def __init__(self, identity: str, network: str):
        super().__init__(f"{identity} has no endpoint for {network}")
        self.identity = identity
        self.network = network


class NoEndpointsConfigured(RelaycastError):
    """A node sender was built without any usable URL."""

    def __init__(self, message: str = "no endpoints available"):
        super().__init__(message)


# =============================================================================
# Per-endpoint failures
# =============================================================================

class EndpointError(RelaycastError):
    """Base class for failures scoped to a single endpoint."""

    def __init__(self, endpoint: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"{endpoint}: {reason}")
        self.endpoint = endpoint
        self.reason = reason
        self.status_code = status_code


class EndpointRequestFailed(EndpointError):
    """Transport error, timeout, non-2xx status or JSON-RPC error response."""
    pass


class ResponseParseFailed(EndpointError):
    """The endpoint answered with a body that is not valid JSON."""
    pass
