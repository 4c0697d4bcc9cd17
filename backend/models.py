"""
Pydantic models used across the backend.

A logged event is a tagged variant: `FeedingEvent` carries an `amount`,
`DiaperEvent` carries a `status`, and the `type` field picks which one a
stored JSON object is. `EventIn` is the input shape the UI submits.

Guidelines:
- Field names match the persisted JSON (`id`, `type`, `time`, `amount`,
    `status`, `note`) so snapshots written by older versions still load.
- Stored events are frozen; the store replaces the sequence, never an
    event in place.
"""

import math
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer, field_validator


class EventKind(str, Enum):
    FEEDING = "feeding"
    DIAPER = "diaper"


class DiaperState(str, Enum):
    WET = "wet"
    DIRTY = "dirty"
    BOTH = "both"
    DRY = "dry"


class RecordFilter(str, Enum):
    ALL = "all"
    FEEDING = "feeding"
    DIAPER = "diaper"


class FeedingEvent(BaseModel):
    """A feeding, with the volume in milliliters.

    `amount` may be NaN when the entered value was not a usable number.
    NaN is written to JSON as `null` and read back as NaN.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["feeding"] = "feeding"
    time: str
    amount: float
    note: str = ""

    @field_validator("amount", mode="before")
    @classmethod
    def _null_amount_is_nan(cls, value):
        return math.nan if value is None else value

    @field_validator("note", mode="before")
    @classmethod
    def _null_note_is_empty(cls, value):
        return "" if value is None else value

    @field_serializer("amount", when_used="json")
    def _nan_amount_is_null(self, value: float) -> Optional[float]:
        return None if math.isnan(value) else value


class DiaperEvent(BaseModel):
    """A diaper change and the state the diaper was in."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["diaper"] = "diaper"
    time: str
    status: DiaperState
    note: str = ""

    @field_validator("note", mode="before")
    @classmethod
    def _null_note_is_empty(cls, value):
        return "" if value is None else value


Event = Annotated[Union[FeedingEvent, DiaperEvent], Field(discriminator="type")]

# Validates a whole persisted snapshot (a JSON array of events).
EventList = TypeAdapter(List[Event])


class EventIn(BaseModel):
    """Input shape for an event submitted by the UI.

    Fields:
    - `type`: which kind of event to record.
    - `amount`: feeding volume; the raw form text is accepted as well and
      coerced by `RecordStore`.
    - `status`: diaper state, defaults to `wet` like the form does.
    - `note`: optional free text.
    """

    type: EventKind
    amount: Optional[Union[float, str]] = None
    status: DiaperState = DiaperState.WET
    note: str = ""
