from __future__ import annotations

from eth_utils import (
    event_signature_to_log_topic,
    function_signature_to_4byte_selector,
    is_hex_address,
    to_normalized_address,
)

from .errors import ParseError
from .value_types import Address, Topic0


# Selectors / topic0 (lowercase, with "0x")
TRANSFER_T0          = Topic0("0x" + event_signature_to_log_topic("Transfer(address,address,uint256)").hex())
BALANCE_OF_SELECTOR  = "0x" + function_signature_to_4byte_selector("balanceOf(address)").hex()
GET_RESERVES_SELECTOR = "0x" + function_signature_to_4byte_selector("getReserves()").hex()
TOTAL_SUPPLY_SELECTOR = "0x" + function_signature_to_4byte_selector("totalSupply()").hex()

WORD_HEX = 64   # one 32-byte word, hex chars
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def normalize_address(value: str) -> Address:
    """Canonical 0x-lowercase form; raises ParseError for anything but 20 bytes of hex."""
    if not isinstance(value, str) or not is_hex_address(value.strip()):
        raise ParseError(f"not a 20-byte hex address: {value!r}")
    return Address(to_normalized_address(value.strip()))


def normalize_topic0(value: str) -> Topic0:
    s = str(value).strip().lower()
    if not s.startswith("0x"):
        s = "0x" + s
    if len(s) != 2 + WORD_HEX or not _is_hex(s[2:]):
        raise ParseError(f"invalid topic0: {value!r}")
    return Topic0(s)


def _is_hex(s: str) -> bool:
    return bool(s) and all(c in _HEX_DIGITS for c in s)


def _strip_0x(value: object) -> str:
    if not isinstance(value, str):
        raise ParseError(f"expected hex string, got {type(value).__name__}")
    s = value.strip()
    return s[2:] if s[:2].lower() == "0x" else s


# --------- 32B word slicing ---------------------------------------------------

def address_from_topic(topic: str) -> Address:
    """Indexed address: right-aligned 20 bytes of a 32-byte topic word."""
    h = _strip_0x(topic)
    if len(h) != WORD_HEX or not _is_hex(h):
        raise ParseError(f"topic is not a 32-byte word: {topic!r}")
    return Address("0x" + h[-40:].lower())


def encode_address_word(address: Address) -> str:
    return _strip_0x(address).lower().rjust(WORD_HEX, "0")


def encode_balance_of(holder: Address) -> str:
    return BALANCE_OF_SELECTOR + encode_address_word(holder)


def decode_uint256(value: object) -> int:
    """Big-endian unsigned integer of 1..32 bytes; "0x" and junk are errors."""
    h = _strip_0x(value)
    if not h or len(h) > WORD_HEX or not _is_hex(h):
        raise ParseError(f"not a uint256 hex value: {value!r}")
    return int(h, 16)


def decode_words(value: object, count: int) -> list[int]:
    """First `count` 32-byte words of an ABI return blob."""
    h = _strip_0x(value)
    if len(h) % WORD_HEX or len(h) < count * WORD_HEX or not _is_hex(h):
        raise ParseError(f"expected at least {count} 32-byte words, got {len(h)} hex chars")
    return [int(h[i*WORD_HEX:(i+1)*WORD_HEX], 16) for i in range(count)]


def hex_to_decimal(value: object) -> str:
    """0x-hex amount of any width to a base-10 string."""
    h = _strip_0x(value)
    if not h or not _is_hex(h):
        raise ParseError(f"not a hex amount: {value!r}")
    return str(int(h, 16))
