"""
Approval Queue Configuration Schema (``procurement_config.schema``).

Defines the thresholds that drive approval queue prioritization, bucketing
and statistics, with defaults matching common purchasing practice.
Override by loading a YAML file through ``procurement_config.get_queue_settings``
or by instantiating directly:

    settings = QueueSettings(urgent_amount=Decimal("250000"))
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any

from procurement_kernel.exceptions import InvalidQueueSettingsError
from procurement_kernel.logging_config import get_logger

logger = get_logger("config.queue_settings")

AMOUNT_FIELDS: tuple[str, ...] = (
    "urgent_amount",
    "high_amount",
    "medium_amount",
    "high_value_amount",
    "low_bucket_max",
    "medium_bucket_max",
)

DAY_FIELDS: tuple[str, ...] = (
    "urgent_age_days",
    "high_age_days",
    "overdue_age_days",
    "week_days",
    "month_days",
)


@dataclass(frozen=True)
class QueueSettings:
    """
    Approval queue thresholds.

    Priority:   urgent  if age > urgent_age_days or total > urgent_amount
                high    if age > high_age_days   or total > high_amount
                medium  if total > medium_amount
                low     otherwise
    Buckets:    low <= low_bucket_max < medium <= medium_bucket_max < high
    Stats:      overdue when age > overdue_age_days, high value when
                total > high_value_amount
    Date range: week / month look back week_days / month_days from the
                start of the current day
    """

    # Priority
    urgent_age_days: int = 7
    urgent_amount: Decimal = Decimal("100000")
    high_age_days: int = 3
    high_amount: Decimal = Decimal("50000")
    medium_amount: Decimal = Decimal("10000")

    # Statistics
    overdue_age_days: int = 3
    high_value_amount: Decimal = Decimal("50000")

    # Amount buckets
    low_bucket_max: Decimal = Decimal("10000")
    medium_bucket_max: Decimal = Decimal("50000")

    # Date ranges
    week_days: int = 7
    month_days: int = 30

    def __post_init__(self):
        for name in DAY_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidQueueSettingsError(
                    f"{name} must be a non-negative integer, got {value!r}"
                )
        for name in AMOUNT_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, Decimal) or value < 0:
                raise InvalidQueueSettingsError(
                    f"{name} must be a non-negative Decimal, got {value!r}"
                )

        if self.high_age_days > self.urgent_age_days:
            raise InvalidQueueSettingsError(
                f"high_age_days ({self.high_age_days}) exceeds "
                f"urgent_age_days ({self.urgent_age_days})"
            )
        if not self.medium_amount <= self.high_amount <= self.urgent_amount:
            raise InvalidQueueSettingsError(
                "priority amounts must satisfy medium_amount <= high_amount <= urgent_amount"
            )
        if self.low_bucket_max > self.medium_bucket_max:
            raise InvalidQueueSettingsError(
                f"low_bucket_max ({self.low_bucket_max}) exceeds "
                f"medium_bucket_max ({self.medium_bucket_max})"
            )

        logger.debug(
            "queue_settings_initialized",
            extra={
                "urgent_age_days": self.urgent_age_days,
                "urgent_amount": str(self.urgent_amount),
                "high_age_days": self.high_age_days,
                "high_amount": str(self.high_amount),
                "medium_amount": str(self.medium_amount),
            },
        )

    @classmethod
    def with_defaults(cls) -> QueueSettings:
        """Create settings with the standard thresholds."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueueSettings:
        """Create settings from a mapping, converting amounts to Decimal."""
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key in AMOUNT_FIELDS and not isinstance(value, Decimal):
                if isinstance(value, (bool, float)):
                    raise InvalidQueueSettingsError(
                        f"{key} must be an integer or decimal string, got {value!r}"
                    )
                try:
                    value = Decimal(str(value))
                except ArithmeticError as exc:
                    raise InvalidQueueSettingsError(
                        f"{key} is not a valid amount: {value!r}"
                    ) from exc
            values[key] = value
        return cls(**values)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_QUEUE_SETTINGS = QueueSettings()
