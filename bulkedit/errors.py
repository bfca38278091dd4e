"""
Error classes for bulkedit runs.

Only enumeration faults are fatal to a run. Store faults raised while
processing a record are caught at the operation boundary and recorded
against that record alone.
"""


class BulkEditError(Exception):
    """Base exception for bulkedit."""
    pass


class EnumerationError(BulkEditError):
    """
    A page of record identifiers could not be fetched.

    Pages are not retried: a run that continued with a partial record
    set would apply the edit to the wrong records.
    """
    pass


class StoreError(BulkEditError):
    """The record store rejected a call or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PhaseTransitionError(BulkEditError):
    """A run phase was asked to move backwards."""
    pass


class ConfigurationError(BulkEditError):
    """A configuration or run request file is invalid."""
    pass
