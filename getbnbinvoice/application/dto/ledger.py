from pydantic import BaseModel


class CreditBalance(BaseModel):
    """Balance reported by the ledger for a license key."""

    remaining: int
    total: int | None = None


class RegistrationResult(BaseModel):
    """Outcome of a license registration request."""

    key: str
    credits: int | None = None
    already_registered: bool = False
