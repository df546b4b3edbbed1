"""Exception taxonomy shared by the trackers, the progress service and repos.

Engine errors (ProgressError) are raised before any state is produced, so
a caller that catches one has nothing to persist.  Storage errors
(RecordStoreError) come from the Record Store and are passed through
untouched; the engine never interprets or retries them.
"""

from __future__ import annotations


class ProgressError(Exception):
    pass


class ProgressValidationError(ProgressError, ValueError):
    """Malformed or out-of-range input."""


class AttemptsExhaustedError(ProgressError):
    def __init__(self, *, test_id: str, attempts_allowed: int, attempts_used: int):
        super().__init__(
            f"no attempts left for test {test_id} "
            f"({attempts_used}/{attempts_allowed} used)"
        )
        self.test_id = test_id
        self.attempts_allowed = attempts_allowed
        self.attempts_used = attempts_used


class ReferenceDataError(ProgressError):
    pass


class CourseNotFoundError(ReferenceDataError, LookupError):
    pass


class TestNotFoundError(ReferenceDataError, LookupError):
    __test__ = False


class RecordStoreError(Exception):
    """Storage-layer failure, surfaced to the caller as-is."""


class WriteConflictError(RecordStoreError):
    """Another writer changed the record since it was read."""

    def __init__(self, record: str, key: tuple[str, ...]):
        super().__init__(f"concurrent update of {record} {':'.join(key)}")
        self.record = record
        self.key = key
