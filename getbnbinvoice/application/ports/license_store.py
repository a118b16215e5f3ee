from typing import Protocol, runtime_checkable


@runtime_checkable
class LicenseStorePort(Protocol):
    def get_key(self) -> str | None:
        """Return the stored license key, or None if the user has not activated one."""
        ...

    def set_key(self, key: str) -> None:
        """Store (or replace) the license key."""
        ...

    def clear(self) -> None:
        """Forget the stored license key."""
        ...
