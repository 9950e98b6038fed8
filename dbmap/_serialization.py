"""JSON encoding helpers backed by msgspec."""

from typing import Any, Literal, overload

import msgspec

__all__ = ("encode_json",)

_encoder = msgspec.json.Encoder(enc_hook=str)


@overload
def encode_json(data: Any, *, as_bytes: Literal[False] = ...) -> str: ...


@overload
def encode_json(data: Any, *, as_bytes: Literal[True]) -> bytes: ...


def encode_json(data: Any, *, as_bytes: bool = False) -> "str | bytes":
    """Encode data to JSON.

    Values msgspec cannot encode natively fall back to ``str()``.

    Args:
        data: Data to encode.
        as_bytes: Whether to return bytes instead of a string.

    Returns:
        JSON string or bytes.
    """
    encoded = _encoder.encode(data)
    if as_bytes:
        return encoded
    return encoded.decode("utf-8")

