"""Exception types raised by the ingestion pipeline and its collaborators."""


class IntakeError(Exception):
    pass


class ConfigError(IntakeError):
    pass


class EmptyDatasetError(IntakeError):
    """Raised when a decoded sheet has no data rows."""


class UnsupportedFileError(IntakeError):
    pass


class DecodeError(IntakeError):
    """Raised when file bytes cannot be read as a supported spreadsheet."""


class PersistenceError(IntakeError):
    """Raised when the record store rejects a batch. Nothing is committed."""


class OracleError(IntakeError):
    pass


class OracleUnavailableError(OracleError):
    """Raised when no scoring oracle is configured."""
