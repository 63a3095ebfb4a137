from hexbytes import HexBytes
from web3.datastructures import AttributeDict

# -----------------------------
# JSON safe serialization
# -----------------------------
def to_json_safe(obj):
    if isinstance(obj, (HexBytes, bytes, bytearray)):
        return HexBytes(obj).to_0x_hex()
    elif isinstance(obj, AttributeDict):
        return {k: to_json_safe(v) for k, v in obj.items()}
    elif isinstance(obj, dict):
        return {k: to_json_safe(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [to_json_safe(v) for v in obj]
    else:
        return obj


def to_int(value) -> int:
    """Quantity fields arrive as int (web3 formatters) or hex strings (raw JSON)."""
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith(("0x", "0X")) else int(value)
    raise TypeError(f"cannot convert {type(value).__name__} to int")


def to_hex(value) -> str:
    """Lowercase 0x-prefixed hex for addresses / topics / hashes."""
    value = to_json_safe(value)
    if not isinstance(value, str):
        raise TypeError(f"cannot convert {type(value).__name__} to hex")
    value = value.lower()
    return value if value.startswith("0x") else "0x" + value
