"""JSON encoding of stored values.

Values are encoded with pydantic-core, so plain JSON types, pydantic models,
dataclasses, datetimes and UUIDs all round-trip. Decoding validates into the
type requested by the caller.

Encoded bytes are always strict JSON. NaN and infinities are rejected, as are
mapping keys other than strings and integers, since JSON object keys would
silently flatten them.
"""

from typing import Any, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError, from_json, to_json

from kvell.exceptions import DeserializationError, SerializationError

T = TypeVar("T")


def _check_keys(value: Any) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            if isinstance(key, bool) or not isinstance(key, (str, int)):
                raise SerializationError(
                    f"Cannot encode mapping key of type {type(key).__name__}"
                )
            _check_keys(item)
    elif isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            _check_keys(item)


def encode(value: Any) -> bytes:
    """Encode a value to JSON bytes.

    Raises:
        SerializationError: If the value cannot be represented as strict JSON
    """
    _check_keys(value)
    try:
        data = to_json(value)
    except PydanticSerializationError as e:
        raise SerializationError(
            f"Cannot encode value of type {type(value).__name__}: {e}"
        ) from e

    # pydantic-core writes non-finite floats as bare NaN/Infinity tokens.
    try:
        from_json(data, allow_inf_nan=False)
    except ValueError as e:
        raise SerializationError(f"Cannot encode non-finite number: {e}") from e
    return data


def decode(data: bytes | str, type_: type[T] | Any = Any) -> T:
    """Decode JSON bytes into ``type_``.

    Raises:
        DeserializationError: If the data is not valid JSON for ``type_``
    """
    try:
        return TypeAdapter(type_).validate_json(data)
    except PydanticValidationError as e:
        raise DeserializationError(f"Cannot decode stored value: {e}") from e
