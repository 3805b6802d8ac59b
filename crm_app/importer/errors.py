"""Exception hierarchy raised by the record importer."""

from __future__ import annotations


class ImporterError(Exception):
    """Base class for importer failures surfaced to callers."""


class TenantNotFoundError(ImporterError, LookupError):
    """Raised when the target organization does not exist or is inactive."""

    def __init__(self, tenant_id: object) -> None:
        super().__init__(f"Organization {tenant_id!r} does not exist or is inactive.")
        self.tenant_id = tenant_id


class ImportTooLargeError(ImporterError, ValueError):
    """Raised when a batch exceeds ``IMPORTER_MAX_ROWS``."""

    def __init__(self, row_count: int, max_rows: int) -> None:
        super().__init__(
            f"Import batch has {row_count} rows; the configured limit is {max_rows}. "
            "Split the file and submit each part separately."
        )
        self.row_count = row_count
        self.max_rows = max_rows


class ImportPersistenceError(ImporterError):
    """
    Raised when the import transaction fails and is rolled back.

    No records, options or values from the batch are persisted when this is raised.
    """

    def __init__(self, tenant_id: object, row_count: int, cause: BaseException) -> None:
        super().__init__(
            f"Import of {row_count} rows for organization {tenant_id!r} failed and was rolled back: {cause}"
        )
        self.tenant_id = tenant_id
        self.row_count = row_count
