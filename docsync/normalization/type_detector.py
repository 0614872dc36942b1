import math
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from bson import Decimal128, ObjectId


class ValueType(Enum):
    """Tag for a decoded document value."""
    NULL = "null"
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    ARRAY = "array"
    OBJECT = "object"

    @property
    def is_scalar(self) -> bool:
        return self not in (ValueType.ARRAY, ValueType.OBJECT)


class TypeDetector:
    DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def detect(cls, value: Any) -> ValueType:
        if value is None:
            return ValueType.NULL

        # bool is a subclass of int, check it first
        if isinstance(value, bool):
            return ValueType.BOOLEAN

        if isinstance(value, int):
            return ValueType.INTEGER

        if isinstance(value, (float, Decimal, Decimal128)):
            return ValueType.NUMBER

        if isinstance(value, (datetime, date)):
            return ValueType.DATETIME

        if isinstance(value, (list, tuple)):
            return ValueType.ARRAY

        if isinstance(value, Mapping):
            return ValueType.OBJECT

        # str, ObjectId, and anything else the driver hands back
        return ValueType.STRING

    @classmethod
    def is_scalar(cls, value: Any) -> bool:
        return cls.detect(value).is_scalar

    @classmethod
    def to_sql_value(cls, value: Any) -> Any:
        """Convert a driver value into something a DB-API driver accepts."""
        if isinstance(value, ObjectId):
            return str(value)
        if isinstance(value, Decimal128):
            return value.to_decimal()
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return value

    @classmethod
    def normalize(cls, value: Any) -> str:
        """
        Normalize a value to a comparable string.

        Used for source/destination field comparison, so both sides
        agree on representation. Content hashing keeps the exact value.

        Examples:
            None                      → ""
            True / False              → "1" / "0"
            30, 30.0, Decimal("30.00") → "30"
            30.5                      → "30.5"
            datetime(2024, 1, 2, 3)   → "2024-01-02 03:00:00"
            "  abc "                  → "abc"
        """
        value = cls.to_sql_value(value)

        if value is None:
            return ""

        if isinstance(value, bool):
            return "1" if value else "0"

        if isinstance(value, int):
            return str(value)

        if isinstance(value, (float, Decimal)):
            return cls._normalize_number(value)

        if isinstance(value, datetime):
            return value.strftime(cls.DATETIME_FORMAT)

        if isinstance(value, date):
            return datetime(value.year, value.month, value.day).strftime(cls.DATETIME_FORMAT)

        if isinstance(value, (bytes, bytearray)):
            # MySQL BIT(1) columns come back as b'\x01'
            if len(value) == 1:
                return "1" if value[0] else "0"
            return value.decode("utf-8", errors="replace").strip()

        return str(value).strip()

    @classmethod
    def _normalize_number(cls, value) -> str:
        try:
            number = Decimal(str(value))
        except ArithmeticError:
            return str(value).strip()
        if not number.is_finite():
            return str(value).strip()
        if number == number.to_integral_value():
            return format(number.to_integral_value(), "f")
        return format(number.normalize(), "f")
