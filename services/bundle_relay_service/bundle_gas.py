"""Gas limit accounting for eth_sendBundle payloads.

Decodes each hex-serialized transaction of a bundle just far enough to read
its declared gas limit. Signatures and other fields are not interpreted.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import rlp
from eth_utils import decode_hex, is_0x_prefixed
from rlp.exceptions import RLPException
from rlp.sedes import big_endian_int

LEGACY_TX_TYPE = None

# (unsigned, signed) field counts and the position of the gas limit field
_TX_LAYOUTS: dict[int | None, tuple[tuple[int, ...], int]] = {
    LEGACY_TX_TYPE: ((6, 9), 2),
    0x01: ((8, 11), 3),  # EIP-2930 access list
    0x02: ((9, 12), 4),  # EIP-1559 dynamic fee
    0x03: ((11, 14), 4),  # EIP-4844 blob
    0x04: ((10, 13), 4),  # EIP-7702 set code
}

_BLOB_NETWORK_WRAPPER_LENGTH = 4


class BundleDecodeError(ValueError):
    """Raised when a bundle or one of its transactions cannot be decoded."""


def decode_gas_limit(raw_tx: str) -> int:
    """Return the gas limit declared by a single hex-serialized transaction."""
    if not isinstance(raw_tx, str) or not is_0x_prefixed(raw_tx):
        raise BundleDecodeError("transaction must be a 0x-prefixed hex string")
    try:
        encoded = decode_hex(raw_tx)
    except ValueError as e:
        raise BundleDecodeError(f"invalid hex: {e}") from e
    if not encoded:
        raise BundleDecodeError("empty transaction")

    tx_type: int | None
    if encoded[0] >= 0xC0:
        tx_type, payload = LEGACY_TX_TYPE, encoded
    elif encoded[0] <= 0x7F:
        tx_type, payload = encoded[0], encoded[1:]
    else:
        raise BundleDecodeError(f"unexpected leading byte 0x{encoded[0]:02x}")

    layout = _TX_LAYOUTS.get(tx_type)
    if layout is None:
        raise BundleDecodeError(f"unsupported transaction type 0x{tx_type:02x}")
    field_counts, gas_index = layout

    try:
        fields = rlp.decode(payload)
    except RLPException as e:
        raise BundleDecodeError(f"invalid rlp: {e}") from e
    if not isinstance(fields, list):
        raise BundleDecodeError("transaction payload is not an rlp list")

    if (
        tx_type == 0x03
        and len(fields) == _BLOB_NETWORK_WRAPPER_LENGTH
        and isinstance(fields[0], list)
    ):
        # [tx_payload_body, blobs, commitments, proofs]
        fields = fields[0]

    if len(fields) not in field_counts:
        raise BundleDecodeError(
            f"expected {' or '.join(map(str, field_counts))} fields, got {len(fields)}"
        )

    gas_field = fields[gas_index]
    if not isinstance(gas_field, bytes):
        raise BundleDecodeError("gas limit field is not a scalar")
    try:
        return big_endian_int.deserialize(gas_field)
    except RLPException as e:
        raise BundleDecodeError(f"invalid gas limit: {e}") from e


def sum_bundle_gas_limit(bundle: Any) -> int:
    """Sum the gas limits of every transaction in a bundle.

    Raises:
        BundleDecodeError: if the bundle is malformed or any transaction fails
            to decode. No partial sum is produced.
    """
    if not isinstance(bundle, Mapping):
        raise BundleDecodeError("bundle must be an object")
    txs = bundle.get("txs")
    if not isinstance(txs, list):
        raise BundleDecodeError("bundle.txs must be a list")
    return sum(decode_gas_limit(tx) for tx in txs)
