class NeuroevolutionError(Exception):
    """Base class for errors raised by poolneat."""


class DimensionMismatch(NeuroevolutionError, ValueError):
    """The input vector does not match the number of input nodes."""


class ConnectivityInconsistent(NeuroevolutionError):
    """Incoming and outgoing link bookkeeping disagree."""


class InvariantViolation(NeuroevolutionError):
    """A structural edit left the network in an impossible state."""


class MalformedRecord(NeuroevolutionError, ValueError):
    """A persisted network record could not be parsed."""

    def __init__(self, message: str, line_number: int = None, line: str = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        if line is not None:
            message = f"{message} ({line!r})"
        super().__init__(message)
        self.line_number = line_number
        self.line = line
