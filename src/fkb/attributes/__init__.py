from .coercion import (
    AttributeValue,
    BooleanValue,
    DateValue,
    NumberValue,
    TextValue,
    ValueCodec,
    ValueType,
    coerce,
    decode,
    encode,
    register_value_type,
)

__all__ = [
    "AttributeValue",
    "BooleanValue",
    "DateValue",
    "NumberValue",
    "TextValue",
    "ValueCodec",
    "ValueType",
    "coerce",
    "decode",
    "encode",
    "register_value_type",
]
