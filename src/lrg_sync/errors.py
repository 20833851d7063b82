"""Exception taxonomy for LRG synchronization.

Configuration errors are raised before anything touches the database.
Precondition, mapping and remote-fetch errors are scoped to one record and
are collected by the batch runner instead of stopping the run.
"""


class LRGSyncError(Exception):
    """Base exception for all lrg-sync errors."""

    def __init__(self, message: str, lrg_id: str = ""):
        super().__init__(message)
        self.lrg_id = lrg_id

    def __str__(self):
        if self.lrg_id:
            return f"{self.lrg_id}: {super().__str__()}"
        return super().__str__()


class ConfigurationError(LRGSyncError):
    """Invalid configuration, credentials or input files."""
    pass


class InvalidIdentifierError(ConfigurationError):
    """Record identifier does not match the LRG_N pattern."""
    pass


class PreconditionError(LRGSyncError):
    """Database state does not allow the requested action for a record."""
    pass


class RecordAlreadyImportedError(PreconditionError):
    """The record's seq_region already exists; it must be cleaned first."""
    pass


class RecordNotImportedError(PreconditionError):
    """The record's seq_region is missing from the database."""
    pass


class NoApplicableMappingError(PreconditionError):
    """No mapping in the record targets the database's assembly."""

    def __init__(self, message: str, lrg_id: str = "", assembly: str = ""):
        super().__init__(message, lrg_id)
        self.assembly = assembly


class MappingError(LRGSyncError):
    """Mapping spans are inconsistent with each other or with the sequences."""
    pass


class RemoteFetchError(LRGSyncError):
    """Listing or document retrieval from the LRG server failed."""

    def __init__(self, message: str, lrg_id: str = "", url: str = ""):
        super().__init__(message, lrg_id)
        self.url = url


class XrefsSupersededError(LRGSyncError):
    """Cross-reference linking was requested but is disabled."""
    pass


class RevertError(LRGSyncError):
    """A watermark refers to a table or column the database does not have."""
    pass
