"""Valores tipados de canal.

Un TypedValue es una variante cerrada: la etiqueta DataType decide cómo se
compara y cómo se codifica el valor. La etiqueta forma parte de la identidad
OMF del canal (container id y nombre de propiedad).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .errors import UnsupportedValueType

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


class DataType(str, Enum):
    """Etiquetas de tipo de un canal."""
    BOOLEAN = "BOOLEAN"
    INTEGER = "INTEGER"
    LONG = "LONG"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    STRING = "STRING"
    BYTE_ARRAY = "BYTE_ARRAY"


FLOATING_TYPES = frozenset({DataType.FLOAT, DataType.DOUBLE})


@dataclass(frozen=True)
class TypedValue:
    """Valor de canal con su etiqueta de tipo."""

    type: DataType
    value: Union[bool, int, float, str, bytes]

    @classmethod
    def boolean(cls, value: bool) -> "TypedValue":
        return cls(DataType.BOOLEAN, bool(value))

    @classmethod
    def integer(cls, value: int) -> "TypedValue":
        return cls(DataType.INTEGER, int(value))

    @classmethod
    def long(cls, value: int) -> "TypedValue":
        return cls(DataType.LONG, int(value))

    @classmethod
    def float32(cls, value: float) -> "TypedValue":
        return cls(DataType.FLOAT, float(value))

    @classmethod
    def double(cls, value: float) -> "TypedValue":
        return cls(DataType.DOUBLE, float(value))

    @classmethod
    def string(cls, value: str) -> "TypedValue":
        return cls(DataType.STRING, str(value))

    @classmethod
    def byte_array(cls, value: bytes) -> "TypedValue":
        return cls(DataType.BYTE_ARRAY, bytes(value))

    def is_special_floating_point(self) -> bool:
        """True para NaN o ±inf; OMF no puede serializarlos."""
        if self.type in FLOATING_TYPES:
            return math.isnan(self.value) or math.isinf(self.value)
        return False


def new_typed_value(value: Any, property_name: str = "?") -> TypedValue:
    """Infiere la etiqueta de tipo de un valor Python.

    bool → BOOLEAN, int de 32 bits → INTEGER, resto de int → LONG,
    float → DOUBLE, str → STRING, bytes/bytearray → BYTE_ARRAY.

    Raises:
        UnsupportedValueType: para cualquier otro tipo Python
    """
    if isinstance(value, TypedValue):
        return value
    # bool es subclase de int: debe ir primero
    if isinstance(value, bool):
        return TypedValue.boolean(value)
    if isinstance(value, int):
        if INT32_MIN <= value <= INT32_MAX:
            return TypedValue.integer(value)
        return TypedValue.long(value)
    if isinstance(value, float):
        return TypedValue.double(value)
    if isinstance(value, str):
        return TypedValue.string(value)
    if isinstance(value, (bytes, bytearray)):
        return TypedValue.byte_array(value)
    raise UnsupportedValueType(property_name, type(value).__name__)
