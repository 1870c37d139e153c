"""JSON codec for request payloads and response bodies.

Serialization goes through pydantic-core so that BaseModel instances,
dataclasses, datetimes and plain dict/list structures all encode the same way.
Deserialization is driven by a type descriptor: any type pydantic's
TypeAdapter accepts (a BaseModel subclass, dict[str, Any], list[User], ...).
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter
from pydantic_core import to_json


@lru_cache(maxsize=256)
def _adapter(type_descriptor: Any) -> TypeAdapter[Any]:
    """Return a cached TypeAdapter for a type descriptor."""
    return TypeAdapter(type_descriptor)


class JsonCodec:
    """Converts Python objects to JSON bytes and back.

    Both directions raise ValueError subclasses on failure
    (PydanticSerializationError / pydantic.ValidationError), leaving the
    decision of how to report them to the caller.
    """

    def __init__(self, by_alias: bool = True, exclude_none: bool = True) -> None:
        """Initialize the codec.

        Args:
            by_alias: Serialize model fields by their alias (e.g. camelCase wire names).
            exclude_none: Omit model fields whose value is None.
        """
        self._by_alias = by_alias
        self._exclude_none = exclude_none

    def serialize(self, value: Any) -> bytes:
        """Serialize a value to JSON bytes.

        NaN and infinite floats are written as the strings "NaN", "Infinity"
        and "-Infinity"; JSON has no literal for them.

        Raises:
            PydanticSerializationError: If the value (or something nested in it)
                has no JSON representation.
        """
        return to_json(
            value,
            by_alias=self._by_alias,
            exclude_none=self._exclude_none,
            inf_nan_mode="strings",
        )

    def deserialize(self, data: bytes | str, type_descriptor: Any) -> Any:
        """Parse JSON and validate it into the given type.

        Raises:
            pydantic.ValidationError: If data is not valid JSON or does not
                match the shape of type_descriptor.
        """
        return _adapter(type_descriptor).validate_json(data)

    def parse_object(self, data: bytes | str) -> dict[str, Any]:
        """Parse JSON that must be an object (string keys, arbitrary values)."""
        return self.deserialize(data, dict[str, Any])
