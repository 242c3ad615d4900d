"""Errors raised by the local persistence adapters."""


class StoreError(Exception):
    """A store backend failed to read or write a record."""


class RecordNotFoundError(StoreError):
    """No record exists for the requested key."""

    def __init__(self, key: str):
        super().__init__(f"No record for key '{key}'")
        self.key = key
