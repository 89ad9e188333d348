class RoundTripError(Exception):
    """Base exception for the PDF round-trip service."""


class EngineUnavailable(RoundTripError):
    """The conversion engine could not be located or initialized.

    Fatal for the session: the loader caches it and never retries on its own.
    """


class StagingProtocolViolation(RoundTripError):
    """A staging slot was used out of order (read before write, etc.)."""


class StagingNotFound(StagingProtocolViolation, FileNotFoundError):
    """A staging slot was read before anyone wrote it."""


class InvalidTransition(RoundTripError):
    """A workflow action was requested in a state that does not allow it."""
