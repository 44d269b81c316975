"""SystemConfig aggregate — operator-editable runtime settings.

Values are stored as text and converted on read according to
``value_type``. Numeric settings may carry min/max bounds that every write
is validated against.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, String, Text

from purchasing.domain import purchasing


class ValueType(Enum):
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"


class ConfigCategory(Enum):
    TAX = "tax"
    PAYMENT = "payment"
    SHIPPING = "shipping"
    GENERAL = "general"
    EMAIL = "email"


TAX_RATE = "tax_rate"
FREE_SHIPPING_THRESHOLD = "free_shipping_threshold"
DEFAULT_SHIPPING_COST = "default_shipping_cost"

# Seeded on first start; also the fallback when a record is missing.
DEFAULTS = {
    TAX_RATE: {
        "value": 19,
        "value_type": ValueType.NUMBER.value,
        "category": ConfigCategory.TAX.value,
        "description": "Tax rate applied to the items subtotal, in percent",
        "min_value": 0,
        "max_value": 100,
    },
    FREE_SHIPPING_THRESHOLD: {
        "value": 100000,
        "value_type": ValueType.NUMBER.value,
        "category": ConfigCategory.SHIPPING.value,
        "description": "Items subtotal at or above which delivery is free",
        "min_value": 0,
        "max_value": None,
    },
    DEFAULT_SHIPPING_COST: {
        "value": 5000,
        "value_type": ValueType.NUMBER.value,
        "category": ConfigCategory.SHIPPING.value,
        "description": "Flat delivery charge below the free shipping threshold",
        "min_value": 0,
        "max_value": None,
    },
}

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def _parse(raw, value_type: str):
    if value_type == ValueType.NUMBER.value:
        if isinstance(raw, bool):
            raise ValueError("booleans are not numbers")
        number = float(raw)
        return int(number) if number.is_integer() else number
    if value_type == ValueType.BOOLEAN.value:
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ValueError(f"{raw!r} is not a boolean")
    return str(raw)


@purchasing.event(part_of="SystemConfig")
class ConfigValueChanged:
    __version__ = 1

    key = String(required=True, max_length=100)
    previous_value = Text()
    new_value = Text(required=True)
    changed_by = String(max_length=255)
    changed_at = DateTime(required=True)


@purchasing.aggregate
class SystemConfig:
    key = String(required=True, max_length=100, unique=True)
    value = Text(required=True)
    value_type = String(choices=ValueType, default=ValueType.STRING.value)
    category = String(choices=ConfigCategory, default=ConfigCategory.GENERAL.value)
    description = String(max_length=500)
    min_value = Float()
    max_value = Float()
    is_editable = Boolean(default=True)
    last_modified_by = String(max_length=255)
    updated_at = DateTime()

    @classmethod
    def define(
        cls,
        key,
        value,
        value_type=ValueType.STRING.value,
        category=ConfigCategory.GENERAL.value,
        description=None,
        min_value=None,
        max_value=None,
        is_editable=True,
    ):
        config = cls(
            key=key,
            value=str(value),
            value_type=value_type,
            category=category,
            description=description,
            min_value=min_value,
            max_value=max_value,
            is_editable=is_editable,
            updated_at=datetime.now(UTC),
        )
        config._validate(value)
        return config

    @property
    def typed_value(self):
        """The stored value converted to its declared type."""
        return _parse(self.value, self.value_type)

    def _validate(self, raw):
        try:
            parsed = _parse(raw, self.value_type)
        except (TypeError, ValueError) as exc:
            raise ValidationError({"value": [f"Invalid {self.value_type} value for {self.key}: {exc}"]}) from exc

        if self.value_type == ValueType.NUMBER.value:
            if self.min_value is not None and parsed < self.min_value:
                raise ValidationError({"value": [f"{self.key} must be at least {self.min_value:g}"]})
            if self.max_value is not None and parsed > self.max_value:
                raise ValidationError({"value": [f"{self.key} must be at most {self.max_value:g}"]})
        return parsed

    def update_value(self, raw, modified_by=None):
        """Validate and store a new value, recording who changed it."""
        if not self.is_editable:
            raise ValidationError({"key": [f"{self.key} is not editable"]})

        parsed = self._validate(raw)
        previous = self.value
        now = datetime.now(UTC)

        self.value = str(parsed).lower() if isinstance(parsed, bool) else str(parsed)
        self.last_modified_by = modified_by
        self.updated_at = now

        self.raise_(
            ConfigValueChanged(
                key=self.key,
                previous_value=previous,
                new_value=self.value,
                changed_by=modified_by,
                changed_at=now,
            )
        )
