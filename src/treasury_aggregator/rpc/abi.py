"""Function selectors and decoding of raw ``eth_call`` results."""

TOKEN0 = "0x0dfe1681"
TOKEN1 = "0xd21220a7"
GET_RESERVES = "0x0902f1ac"
TOTAL_SUPPLY = "0x18160ddd"
DECIMALS = "0x313ce567"
SYMBOL = "0x95d89b41"

# Order of the per-pool calls; the batch id of call k for pool i is i * len(POOL_CALLS) + k.
POOL_CALLS = (TOKEN0, TOKEN1, GET_RESERVES, TOTAL_SUPPLY, DECIMALS)

WORD = 64


def _words(result: str | None) -> str:
    """Hex payload without the 0x prefix, empty for a missing or void result."""
    if not result or not isinstance(result, str):
        return ""
    payload = result[2:] if result.startswith("0x") else result
    return payload.lower()


def decode_address(result: str | None) -> str | None:
    """
    Decode an ``address`` return value.

    Parameters
    ----------
    result : str | None
        Raw 32-byte hex result

    Returns
    -------
    str | None
        Lowercase ``0x`` address, None when the result is missing or short

    """
    payload = _words(result)
    if len(payload) < WORD:
        return None
    return "0x" + payload[WORD - 40 : WORD]


def decode_uint(result: str | None, default: int = 0) -> int:
    """Decode the first 32-byte word as an unsigned integer."""
    payload = _words(result)
    if not payload:
        return default
    try:
        return int(payload[:WORD], 16)
    except ValueError:
        return default


def decode_reserves(result: str | None) -> tuple[int, int]:
    """
    Decode ``getReserves()`` into ``(reserve0, reserve1)``.

    The third word (last block timestamp) is ignored.

    Parameters
    ----------
    result : str | None
        Raw hex result

    Returns
    -------
    tuple[int, int]
        Raw reserves, zeros when the result is missing or short

    """
    payload = _words(result)
    if len(payload) < 2 * WORD:
        return 0, 0
    try:
        return int(payload[:WORD], 16), int(payload[WORD : 2 * WORD], 16)
    except ValueError:
        return 0, 0


def decode_string(result: str | None) -> str | None:
    """
    Decode a dynamic ``string`` return value.

    Tokens that return ``bytes32`` instead of an ABI string are decoded as a
    NUL-padded ASCII word.

    Parameters
    ----------
    result : str | None
        Raw hex result

    Returns
    -------
    str | None
        Decoded text, None when nothing printable could be read

    """
    payload = _words(result)
    if len(payload) < WORD:
        return None

    try:
        if len(payload) >= 2 * WORD:
            offset = int(payload[:WORD], 16) * 2
            length = int(payload[offset : offset + WORD], 16)
            raw = bytes.fromhex(payload[offset + WORD : offset + WORD + length * 2])
        else:
            raw = bytes.fromhex(payload[:WORD]).rstrip(b"\x00")
    except ValueError:
        return None

    text = raw.decode("utf-8", errors="ignore").strip("\x00").strip()
    return text or None
