"""Exception and warning types shared across the dashboard."""


class DashboardError(RuntimeError):
    """Base class for dashboard failures."""


class ConfigurationError(DashboardError):
    """Raised when settings or the dataset registry are missing or malformed."""


class FetchError(DashboardError):
    """Raised when the remote record store cannot be read.

    Covers non-success HTTP status, network failure, undecodable bodies and
    unreadable export files.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EmptyResultWarning(UserWarning):
    """A fetch succeeded but returned zero records."""
