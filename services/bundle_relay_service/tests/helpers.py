"""Transaction builders and small utilities shared by the relay tests."""

from __future__ import annotations

from typing import Any

import rlp
from eth_utils import encode_hex
from prometheus_client import CollectorRegistry

from services.bundle_relay_service.protocols import ErrorReporterProtocol

BACKEND_URL = "http://backend-1.test/rpc"
SECOND_BACKEND_URL = "http://backend-2.test/rpc"
VALID_API_KEY = "valid-api-key"

TO_ADDRESS = bytes.fromhex("5fc8d32690cc91d4c39d9d3abcbd16989f875707")
R_VALUE = 2**255 + 1
S_VALUE = 2**254 + 3


def legacy_tx(gas: int, nonce: int = 0) -> str:
    fields = [nonce, 20 * 10**9, gas, TO_ADDRESS, 10**18, b"", 27, R_VALUE, S_VALUE]
    return encode_hex(rlp.encode(fields))


def access_list_tx(gas: int) -> str:
    fields = [1, 0, 20 * 10**9, gas, TO_ADDRESS, 0, b"", [], 1, R_VALUE, S_VALUE]
    return encode_hex(b"\x01" + rlp.encode(fields))


def dynamic_fee_tx(gas: int, nonce: int = 0) -> str:
    fields = [
        1, nonce, 10**9, 30 * 10**9, gas, TO_ADDRESS, 0, b"\x12\x34", [], 0, R_VALUE, S_VALUE,
    ]
    return encode_hex(b"\x02" + rlp.encode(fields))


def blob_tx_fields(gas: int) -> list[Any]:
    blob_hash = b"\x01" + b"\x00" * 31
    return [
        1, 0, 10**9, 30 * 10**9, gas, TO_ADDRESS, 0, b"", [], 10**9, [blob_hash],
        1, R_VALUE, S_VALUE,
    ]


def blob_tx(gas: int) -> str:
    return encode_hex(b"\x03" + rlp.encode(blob_tx_fields(gas)))


def set_code_tx(gas: int) -> str:
    authorization = [1, TO_ADDRESS, 0, 1, 5, 7]
    fields = [
        1, 0, 10**9, 30 * 10**9, gas, TO_ADDRESS, 0, b"", [], [authorization],
        1, R_VALUE, S_VALUE,
    ]
    return encode_hex(b"\x04" + rlp.encode(fields))


def bundle_request(
    txs: list[str], request_id: Any = 1, method: str = "eth_sendBundle"
) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": method,
        "params": [{"txs": txs, "blockNumber": "0x10"}],
    }


class RecordingErrorReporter(ErrorReporterProtocol):
    def __init__(self) -> None:
        self.captured: list[tuple[BaseException, dict[str, Any]]] = []

    def capture_exception(self, exc: BaseException, **context: Any) -> None:
        self.captured.append((exc, context))


def sample_value(
    registry: CollectorRegistry, name: str, labels: dict[str, str] | None = None
) -> float:
    value = registry.get_sample_value(name, labels or {})
    return 0.0 if value is None else value
