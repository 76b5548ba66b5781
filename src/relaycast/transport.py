"""
JSON-RPC over HTTP helpers shared by the relay and node clients.

Every failure of a single request is mapped onto ``EndpointRequestFailed``
or ``ResponseParseFailed`` so the fan-out callers can contain it.
"""

import json
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

import httpx

from relaycast.config import RelaycastConfig, get_config
from relaycast.errors import EndpointRequestFailed, ResponseParseFailed

JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass
class RpcReply:
    """Successful JSON-RPC reply."""
    status_code: int
    payload: Any

    @property
    def result(self) -> Any:
        if isinstance(self.payload, dict):
            return self.payload.get("result")
        return None


def request_timeout(config: Optional[RelaycastConfig] = None) -> httpx.Timeout:
    """Per-request timeout from configuration."""
    config = config or get_config()
    return httpx.Timeout(
        config.request_timeout_seconds,
        connect=config.connect_timeout_seconds,
    )


def create_http_client(config: Optional[RelaycastConfig] = None) -> httpx.AsyncClient:
    """
    Create the HTTP client shared by all concurrent requests.

    Args:
        config: relaycast configuration (timeouts)
    """
    return httpx.AsyncClient(
        headers=JSON_HEADERS,
        timeout=request_timeout(config),
    )


def rpc_body(method: str, params: List[Any], request_id: int = 1) -> str:
    """Serialize a JSON-RPC 2.0 request."""
    return json.dumps(
        {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params},
        separators=(",", ":"),
    )


async def post_json_rpc(
    client: httpx.AsyncClient,
    url: str,
    body: str,
    headers: Optional[Mapping[str, str]] = None,
    timeout: Optional[httpx.Timeout] = None,
) -> RpcReply:
    """
    POST a JSON-RPC body and validate the reply.

    Args:
        client: Shared HTTP client
        url: Endpoint URL
        body: Serialized JSON-RPC request
        headers: Extra request headers
        timeout: Timeout for this request (configured timeout if not provided)

    Raises:
        EndpointRequestFailed: Transport error, timeout, non-2xx status or
            a JSON-RPC ``error`` member in the reply
        ResponseParseFailed: The reply body is not JSON
    """
    try:
        response = await client.post(
            url,
            content=body,
            headers=dict(headers or {}),
            timeout=timeout or request_timeout(),
        )
    except httpx.TimeoutException as e:
        raise EndpointRequestFailed(url, f"timeout: {type(e).__name__}") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise EndpointRequestFailed(url, f"transport error: {e}") from e

    if not response.is_success:
        raise EndpointRequestFailed(
            url,
            f"HTTP {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise ResponseParseFailed(
            url,
            f"invalid JSON response: {response.text[:200]}",
            status_code=response.status_code,
        ) from e

    if isinstance(payload, dict) and payload.get("error"):
        raise EndpointRequestFailed(
            url,
            f"rpc error: {_describe_rpc_error(payload['error'])}",
            status_code=response.status_code,
        )

    return RpcReply(status_code=response.status_code, payload=payload)


def _describe_rpc_error(error: Any) -> str:
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message", "")
        return f"{code} {message}".strip() if code is not None else str(message)
    return str(error)


def summarize(payload: Any, limit: int = 300) -> str:
    """Short printable form of a response payload for logs."""
    text = json.dumps(payload) if isinstance(payload, (dict, list)) else str(payload)
    return text if len(text) <= limit else text[:limit] + "..."
