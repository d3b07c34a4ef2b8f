"""Exception taxonomy shared by services and handlers."""


class TreasuryError(Exception):
    """Base class for errors surfaced to a handler."""

    status_code: int = 500


class BadRequestError(TreasuryError):
    """Missing or invalid client input."""

    status_code = 400


class ConfigurationError(TreasuryError):
    """A backing service is missing its credentials."""


class StorageError(TreasuryError):
    """The key-value backend rejected or failed a request."""


class UpstreamError(TreasuryError):
    """
    Upstream failure on an endpoint that must surface it.

    Parameters
    ----------
    message : str
        Error message returned to the client
    status_code : int
        HTTP status to answer with

    """

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code
