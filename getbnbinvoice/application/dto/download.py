from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

MAX_BATCH_SIZE = 25


class BatchRequest(BaseModel):
    """Request DTO for the batch download use case."""

    codes: list[str]
    domain: str

    @field_validator("codes", mode="after")
    @classmethod
    def truncate_codes(cls, v: list[str]) -> list[str]:
        """Keep only the first MAX_BATCH_SIZE codes; excess is dropped silently."""
        return v[:MAX_BATCH_SIZE]


class ItemResult(BaseModel):
    """Outcome of one reservation within a run."""

    code: str
    success: bool
    files: list[str] = Field(default_factory=list)
    invoice_count: int = 0
    error: str | None = None

    @model_validator(mode="after")
    def check_outcome(self) -> "ItemResult":
        if self.success:
            if not self.files:
                raise ValueError("successful item must list at least the receipt")
            if self.error is not None:
                raise ValueError("successful item cannot carry an error")
        else:
            if not self.error:
                raise ValueError("failed item must carry an error")
            if self.files:
                raise ValueError("failed item cannot list files")
        return self

    @classmethod
    def failed(cls, code: str, error: str) -> "ItemResult":
        return cls(code=code, success=False, error=error or "unknown error")


class BatchSummary(BaseModel):
    """Result DTO for the batch download use case."""

    total: int
    succeeded: int
    failed: int
    errors: list[str] = []
    error: str | None = None  # stop reason (e.g. out of credits)
    cancelled: bool = False
    results: list[ItemResult] = []

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
