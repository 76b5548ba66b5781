"""
Bundle envelope codec.

Builds the ``eth_sendBundle`` JSON-RPC request body from structured
bundle parameters. Optional fields are omitted from the wire object when
absent, never sent as null.
"""

import json
from typing import Any, Dict, List, Optional, Union

from eth_utils import to_hex
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

SEND_BUNDLE_METHOD = "eth_sendBundle"


class BundleRequest(BaseModel):
    """
    Parameters of a single bundle submission.

    Attributes:
        txs: Raw signed transactions as 0x hex strings, in execution order
        block_number: Block the bundle targets
        min_timestamp: Earliest block timestamp the bundle is valid for
        max_timestamp: Latest block timestamp the bundle is valid for
        reverting_tx_hashes: Hashes of transactions allowed to revert
        replacement_uuid: Identifier allowing later replacement/cancellation
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    txs: List[str]
    block_number: int = Field(ge=0)

    # Optional params
    min_timestamp: Optional[int] = Field(default=None, ge=0)
    max_timestamp: Optional[int] = Field(default=None, ge=0)
    reverting_tx_hashes: Optional[List[str]] = None
    replacement_uuid: Optional[str] = None

    @field_validator("txs", mode="before")
    @classmethod
    def _normalize_txs(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [to_hex(tx) if isinstance(tx, (bytes, bytearray)) else tx for tx in value]
        return value

    @field_validator("block_number", mode="before")
    @classmethod
    def _parse_block_number(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip().lower()
            return int(text, 16) if text.startswith("0x") else int(text)
        return value

    @field_serializer("block_number")
    def _hex_block_number(self, value: int) -> str:
        return hex(value)

    @classmethod
    def from_params(cls, params: Union[str, Dict[str, Any]]) -> "BundleRequest":
        """Parse a wire-format bundle params object (dict or JSON text)."""
        if isinstance(params, str):
            return cls.model_validate_json(params)
        return cls.model_validate(params)


def encode_bundle_params(request: BundleRequest) -> Dict[str, Any]:
    """
    Encode a bundle request into its wire params object.

    ``blockNumber`` is hex encoded; absent optional fields are dropped.
    """
    return request.model_dump(mode="json", by_alias=True, exclude_none=True)


def wrap_json_rpc(params: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap bundle params into the JSON-RPC 2.0 ``eth_sendBundle`` envelope."""
    return {
        "id": 1,
        "jsonrpc": "2.0",
        "method": SEND_BUNDLE_METHOD,
        "params": [params],
    }


def dumps(payload: Dict[str, Any]) -> str:
    """Serialize a payload compactly, as sent on the wire."""
    return json.dumps(payload, separators=(",", ":"))


def to_request_body(request: BundleRequest) -> str:
    """Full request body for a bundle submission."""
    return dumps(wrap_json_rpc(encode_bundle_params(request)))
