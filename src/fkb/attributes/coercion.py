"""
Typed attribute values and their stored (text, tag) form.

Application code works with tagged variants:

    TextValue("blue"), NumberValue(Decimal("42")), DateValue(date(1990, 5, 1)), BooleanValue(True)

and the store only ever sees the pair produced by `encode()`:

    ("blue", "text"), ("42", "number"), ("1990-05-01", "date"), ("true", "boolean")

Conversion happens at the repository boundary only. Reading is strict: a text
that does not parse under its own tag raises SerializationError instead of
producing a guess.

New tags plug in through `register_value_type()`.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Union

from fkb.exceptions.base import SerializationError

logger = logging.getLogger(__name__)


class ValueType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class TextValue:
    value: str
    tag = ValueType.TEXT.value


@dataclass(frozen=True)
class NumberValue:
    value: Decimal
    tag = ValueType.NUMBER.value


@dataclass(frozen=True)
class DateValue:
    value: date
    tag = ValueType.DATE.value


@dataclass(frozen=True)
class BooleanValue:
    value: bool
    tag = ValueType.BOOLEAN.value


AttributeValue = Union[TextValue, NumberValue, DateValue, BooleanValue]


# =================================================================================================================
# Per-tag codecs
# =================================================================================================================

@dataclass(frozen=True)
class ValueCodec:
    """How one tag is parsed from text, rendered to text and built from Python values."""
    tag: str
    parse: Callable[[str], Any]          # stored text -> variant (raises ValueError on bad text)
    render: Callable[[Any], str]         # variant -> canonical text
    from_python: Callable[[Any], Any]    # python value -> variant (raises ValueError/TypeError)


# longest plain-notation text a number may render to
MAX_NUMBER_LENGTH = 1000


def _finite_decimal(raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise TypeError("booleans are not numbers")
    if isinstance(raw, float):
        raw = repr(raw)
    try:
        number = Decimal(str(raw).strip()) if not isinstance(raw, Decimal) else raw
    except ArithmeticError as exc:
        raise ValueError(f"not a number: {raw!r}") from exc
    if not number.is_finite():
        raise ValueError(f"number must be finite: {raw!r}")

    _, digits, exponent = number.as_tuple()
    if len(digits) + abs(exponent) > MAX_NUMBER_LENGTH:
        raise ValueError(f"number too long to store in plain notation: {raw!r}")
    return number


def _render_number(variant: NumberValue) -> str:
    # plain notation, no exponent, no trailing zeros: 42, 3.5, 0.001, 1200.
    # format() without a precision never rounds
    text = format(variant.value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _parse_bool(text: str) -> BooleanValue:
    normalized = text.strip().lower()
    if normalized == "true":
        return BooleanValue(True)
    if normalized == "false":
        return BooleanValue(False)
    raise ValueError(f"not a boolean: {text!r}")


def _bool_from_python(raw: Any) -> BooleanValue:
    if isinstance(raw, bool):
        return BooleanValue(raw)
    if isinstance(raw, str):
        return _parse_bool(raw)
    raise TypeError(f"cannot store {type(raw).__name__} as boolean")


def _date_from_python(raw: Any) -> DateValue:
    if isinstance(raw, datetime):
        raise TypeError("datetime values are not dates; pass .date() explicitly")
    if isinstance(raw, date):
        return DateValue(raw)
    if isinstance(raw, str):
        return DateValue(date.fromisoformat(raw.strip()))
    raise TypeError(f"cannot store {type(raw).__name__} as date")


def _text_from_python(raw: Any) -> TextValue:
    if not isinstance(raw, str):
        raise TypeError(f"cannot store {type(raw).__name__} as text")
    return TextValue(raw)


_CODECS: dict[str, ValueCodec] = {}


def register_value_type(codec: ValueCodec) -> None:
    """Add (or replace) the codec for a tag."""
    _CODECS[codec.tag] = codec


def registered_value_types() -> list[str]:
    return sorted(_CODECS)


register_value_type(ValueCodec(
    tag=ValueType.TEXT.value,
    parse=TextValue,
    render=lambda v: v.value,
    from_python=_text_from_python,
))
register_value_type(ValueCodec(
    tag=ValueType.NUMBER.value,
    parse=lambda text: NumberValue(_finite_decimal(text)),
    render=_render_number,
    from_python=lambda raw: NumberValue(_finite_decimal(raw)),
))
register_value_type(ValueCodec(
    tag=ValueType.DATE.value,
    parse=lambda text: DateValue(date.fromisoformat(text.strip())),
    render=lambda v: v.value.isoformat(),
    from_python=_date_from_python,
))
register_value_type(ValueCodec(
    tag=ValueType.BOOLEAN.value,
    parse=_parse_bool,
    render=lambda v: "true" if v.value else "false",
    from_python=_bool_from_python,
))


# =================================================================================================================
# Public API
# =================================================================================================================

def _codec_for(tag: str, key: str | None) -> ValueCodec:
    codec = _CODECS.get(tag.value if isinstance(tag, ValueType) else tag)
    if codec is None:
        raise SerializationError(
            f"Unknown value type {tag!r}",
            fields=[key] if key else None,
            value_type=str(tag),
        )
    return codec


def _infer_tag(raw: Any) -> str:
    # bool before numbers: bool is an int subclass
    if isinstance(raw, bool):
        return ValueType.BOOLEAN.value
    if isinstance(raw, (int, float, Decimal)):
        return ValueType.NUMBER.value
    if isinstance(raw, date) and not isinstance(raw, datetime):
        return ValueType.DATE.value
    if isinstance(raw, str):
        return ValueType.TEXT.value
    raise SerializationError(f"Unsupported attribute value of type {type(raw).__name__}")


def coerce(raw: Any, value_type: str | ValueType | None = None, *, key: str | None = None) -> AttributeValue:
    """
    Build a tagged variant from a caller-supplied value.

    - variants are re-checked under their own tag (which must match `value_type`
      if one is given)
    - without `value_type`, the tag is inferred from the Python type
    - with `value_type`, the value is converted under that tag, e.g.
      coerce("42", "number") -> NumberValue(Decimal("42"))

    Raises:
        SerializationError: value not representable under the tag, or unknown tag.
    """
    if isinstance(raw, (TextValue, NumberValue, DateValue, BooleanValue)):
        if value_type is not None and _codec_for(value_type, key).tag != raw.tag:
            raise SerializationError(
                f"Value tagged {raw.tag!r} cannot be stored as {str(getattr(value_type, 'value', value_type))!r}",
                fields=[key] if key else None,
                value_type=raw.tag,
            )
        tag, raw = raw.tag, raw.value
    else:
        tag = _infer_tag(raw) if value_type is None else _codec_for(value_type, key).tag

    codec = _codec_for(tag, key)
    try:
        return codec.from_python(raw)
    except (ValueError, TypeError, ArithmeticError) as exc:
        raise SerializationError(
            f"Cannot store {type(raw).__name__} value as {tag!r}",
            fields=[key] if key else None,
            value_type=tag,
        ) from exc


def encode(variant: AttributeValue) -> tuple[str, str]:
    """Variant -> (canonical text, tag) for the store."""
    codec = _codec_for(variant.tag, None)
    try:
        return codec.render(variant), codec.tag
    except (ValueError, ArithmeticError) as exc:
        raise SerializationError(f"Cannot render value as {codec.tag!r}", value_type=codec.tag) from exc


def decode(text: str | None, tag: str | None, *, key: str | None = None) -> AttributeValue:
    """
    (stored text, tag) -> variant.

    Raises:
        SerializationError: unknown tag, or text that does not parse under its tag.
    """
    codec = _codec_for(tag or ValueType.TEXT.value, key)
    if text is None:
        raise SerializationError("Stored attribute value is missing", fields=[key] if key else None,
                                 value_type=codec.tag)
    try:
        return codec.parse(text)
    except (ValueError, TypeError, ArithmeticError) as exc:
        logger.warning(
            "attribute.decode.failed",
            extra={"key": key, "value_type": codec.tag},
        )
        raise SerializationError(
            f"Stored value for {key or 'attribute'} is not a valid {codec.tag}",
            fields=[key] if key else None,
            value_type=codec.tag,
        ) from exc


__all__ = [
    "ValueType",
    "TextValue",
    "NumberValue",
    "DateValue",
    "BooleanValue",
    "AttributeValue",
    "ValueCodec",
    "register_value_type",
    "registered_value_types",
    "coerce",
    "encode",
    "decode",
]
