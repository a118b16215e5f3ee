"""Events streamed to listeners while a batch runs."""

from typing import Literal, Union

from pydantic import BaseModel


class ProgressEvent(BaseModel):
    """Emitted before each item starts, and once more if the run is cancelled."""

    type: Literal["progress"] = "progress"
    current: int
    total: int
    code: str
    status: Literal["downloading", "cancelled"]


class CreditUpdateEvent(BaseModel):
    """Emitted after a credit was consumed for an item."""

    type: Literal["creditUpdate"] = "creditUpdate"
    remaining: int


class BatchCompleteEvent(BaseModel):
    """Emitted exactly once per run."""

    type: Literal["batchComplete"] = "batchComplete"
    total: int
    succeeded: int
    failed: int
    errors: list[str] = []
    error: str | None = None


BatchEvent = Union[ProgressEvent, CreditUpdateEvent, BatchCompleteEvent]
