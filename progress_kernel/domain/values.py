"""
Values -- Immutable domain value objects shared by every engine.

Responsibility:
    Provides the small value types that replace bare numbers wherever
    field-progress data appears in domain logic: ``Volume`` (a Decimal
    quantity paired with an opaque unit) and ``MinuteInterval`` (a
    time-of-day span expressed in minute offsets).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by ``progress_kernel.domain.models`` and the engines.

Invariants enforced:
    - Volume.value is always Decimal (never float).
    - Units are opaque strings; no conversion is ever performed and
      arithmetic across different units is rejected.
    - Minute offsets are plain ints; range checks belong to the report
      validator so that bad records can be returned, not raised.

Failure modes:
    - ValueError on construction with a non-numeric volume value.
    - ValueError when arithmetic mixes different units.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

MINUTES_PER_DAY = 1440
LAST_MINUTE_OF_DAY = MINUTES_PER_DAY - 1

RATIO_QUANTUM = Decimal("0.0001")
AMOUNT_QUANTUM = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Normalise a numeric input to Decimal via its string form."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid numeric value: {value!r}") from e


def is_minute_of_day(value: int) -> bool:
    """True when value is a valid minute offset within one calendar day."""
    return 0 <= value <= LAST_MINUTE_OF_DAY


@dataclass(frozen=True, slots=True)
class Volume:
    """
    Volumetric completion target (value + unit).

    Contract:
        Pairs a Decimal value with an opaque unit string ("m3", "m2",
        "point", ...). Used for task targets and reported progress.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - value is always Decimal (never float)
        - Arithmetic operations enforce same-unit constraint

    Non-goals:
        - Does NOT perform unit conversion
        - Does NOT validate against a unit registry
    """

    value: Decimal
    unit: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", to_decimal(self.value))
        object.__setattr__(self, "unit", (self.unit or "").strip())

    @classmethod
    def of(cls, value: Decimal | str | int | float, unit: str) -> Volume:
        """Factory method for creating Volume."""
        return cls(value=to_decimal(value), unit=unit)

    @classmethod
    def zero(cls, unit: str) -> Volume:
        return cls(value=Decimal("0"), unit=unit)

    @property
    def is_zero(self) -> bool:
        return self.value == Decimal("0")

    @property
    def is_positive(self) -> bool:
        return self.value > Decimal("0")

    def __add__(self, other: Volume) -> Volume:
        if not isinstance(other, Volume):
            return NotImplemented
        if self.unit != other.unit:
            raise ValueError(
                f"Cannot add Volume with different units: {self.unit} and {other.unit}"
            )
        return Volume(value=self.value + other.value, unit=self.unit)

    def __str__(self) -> str:
        return f"{self.value} {self.unit}".strip()


@dataclass(frozen=True, slots=True)
class MinuteInterval:
    """
    Time-of-day span as (start, end) minute offsets.

    Overlap is evaluated half-open, ``[start, end)``: an interval ending at
    600 does not overlap one starting at 600.
    """

    start: int
    end: int

    @property
    def is_within_day(self) -> bool:
        return is_minute_of_day(self.start) and is_minute_of_day(self.end)

    @property
    def is_ordered(self) -> bool:
        return self.start <= self.end

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: MinuteInterval) -> bool:
        return self.start < other.end and other.start < self.end

    def as_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)
