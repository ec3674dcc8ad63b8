"""
Account record normalizer.

Turns one raw JSON account payload into a canonical AccountSnapshot. Two
payload schemas are known:

Regular accounts::

    {"account": {"balance": {"dataType": "bi", "value": "0de0b6b3a7640000"},
                 "nonce": {"dataType": "bi", "value": "1"}, ...},
     "accountType": 0, "hash": "...", "timestamp": 1700000000000}

Special (network / node) accounts::

    {"accountType": 13, "id": "...", "nonce": 7, "name": "Foundation", ...}

The regular schema is tried first, then the special one. Numbers are decoded
into Python ints so that equal values compare equal regardless of hex casing
or zero padding.
"""

import json
import re
from typing import Any, Dict, Optional, Union

from account_db_compare.core.exceptions import (
    MalformedNumberError,
    UnrecognizedShapeError,
)
from account_db_compare.core.models import AccountKind, AccountSnapshot

BIGINT_DATA_TYPE = "bi"

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")
_DECIMAL_DIGITS = re.compile(r"[0-9]+")


class _ShapeMismatch(Exception):
    """Payload does not have the structure of the schema being tried."""


def decode_hex(value: Any, field: str) -> int:
    """
    Decode an unsigned hexadecimal string into an int.

    A ``0x`` prefix is tolerated; signs, whitespace and underscores are not.
    """
    if not isinstance(value, str):
        raise MalformedNumberError(f"{field}: expected hex string, got {type(value).__name__}")
    digits = value[2:] if value[:2].lower() == "0x" else value
    if not _HEX_DIGITS.fullmatch(digits):
        raise MalformedNumberError(f"{field}: invalid hex value {value!r}")
    return int(digits, 16)


def decode_decimal(value: Any, field: str) -> int:
    """Decode an unsigned decimal integer given as an int or a digit string."""
    if isinstance(value, bool):
        raise MalformedNumberError(f"{field}: boolean is not a number")
    if isinstance(value, int):
        if value < 0:
            raise MalformedNumberError(f"{field}: negative value {value}")
        return value
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    if isinstance(value, str) and _DECIMAL_DIGITS.fullmatch(value.strip()):
        return int(value.strip())
    raise MalformedNumberError(f"{field}: invalid decimal value {value!r}")


def _decode_tagged(tagged: Any, field: str) -> int:
    if not isinstance(tagged, dict) or "value" not in tagged:
        raise MalformedNumberError(f"{field}: expected a tagged numeric object")
    data_type = tagged.get("dataType")
    if data_type != BIGINT_DATA_TYPE:
        raise MalformedNumberError(f"{field}: unsupported dataType {data_type!r}")
    return decode_hex(tagged["value"], field)


def _is_tagged(value: Any) -> bool:
    return isinstance(value, dict) and "dataType" in value and "value" in value


def _parse_regular(payload: Dict[str, Any], account_id: str, timestamp: Optional[int]) -> AccountSnapshot:
    account = payload.get("account")
    if not isinstance(account, dict):
        raise _ShapeMismatch("no account object")
    if not (_is_tagged(account.get("balance")) or _is_tagged(account.get("nonce"))):
        raise _ShapeMismatch("account object has no tagged balance or nonce")

    balance = None
    if account.get("balance") is not None:
        balance = _decode_tagged(account["balance"], "account.balance")
    nonce = None
    if account.get("nonce") is not None:
        nonce = _decode_tagged(account["nonce"], "account.nonce")

    return AccountSnapshot(
        account_id=account_id,
        kind=AccountKind.REGULAR,
        balance=balance,
        balance_applicable=True,
        nonce=nonce,
        timestamp=timestamp,
        account_hash=_optional_str(payload.get("hash")),
    )


def _parse_special(payload: Dict[str, Any], account_id: str, timestamp: Optional[int]) -> AccountSnapshot:
    if "account" in payload:
        raise _ShapeMismatch("special accounts carry no account object")
    if "nonce" not in payload and "accountType" not in payload:
        raise _ShapeMismatch("no top-level nonce or accountType")

    nonce = None
    if payload.get("nonce") is not None:
        nonce = decode_decimal(payload["nonce"], "nonce")

    return AccountSnapshot(
        account_id=account_id,
        kind=AccountKind.SPECIAL,
        balance=None,
        balance_applicable=False,
        nonce=nonce,
        timestamp=timestamp,
        account_hash=_optional_str(payload.get("hash")),
    )


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _payload_timestamp(payload: Dict[str, Any]) -> Optional[int]:
    value = payload.get("timestamp")
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def normalize(
    raw_json: Union[str, bytes],
    account_id: str = "",
    timestamp: Optional[int] = None,
) -> AccountSnapshot:
    """
    Normalize one raw account payload.

    Args:
        raw_json: JSON text of the account record
        account_id: Identity from the store row; falls back to the payload ``id``
        timestamp: Row timestamp; falls back to the payload ``timestamp``

    Returns:
        Canonical AccountSnapshot

    Raises:
        UnrecognizedShapeError: If the payload matches neither schema
        MalformedNumberError: If a present numeric field cannot be decoded
    """
    try:
        payload = json.loads(raw_json)
    except (TypeError, ValueError) as e:
        raise UnrecognizedShapeError(f"invalid JSON: {e}", account_id) from e
    if not isinstance(payload, dict):
        raise UnrecognizedShapeError(
            f"expected a JSON object, got {type(payload).__name__}", account_id
        )

    if not account_id:
        account_id = _optional_str(payload.get("id")) or ""
    if not account_id:
        raise UnrecognizedShapeError("missing account identity", account_id)
    if timestamp is None:
        timestamp = _payload_timestamp(payload)

    failures = []
    for parser in (_parse_regular, _parse_special):
        try:
            return parser(payload, account_id, timestamp)
        except _ShapeMismatch as e:
            failures.append(str(e))
        except MalformedNumberError as e:
            e.account_id = account_id
            raise

    raise UnrecognizedShapeError(
        f"unrecognized account shape ({'; '.join(failures)})", account_id
    )
