"""Exception hierarchy for uiforge."""


class UIForgeError(Exception):
    """Base class for all uiforge errors."""


class WorkflowConfigError(UIForgeError):
    """Invalid or unreadable workflow configuration."""


class DiagnosticParseError(UIForgeError):
    """Static-analysis output could not be parsed."""

    def __init__(self, message: str, raw_output: str = ""):
        super().__init__(message)
        self.raw_output = raw_output


class DesignSourceError(UIForgeError):
    """The design source could not supply a specification."""


class SynthesisError(UIForgeError):
    """Error from the code synthesis backend.

    ``status`` carries an HTTP-style status code and ``code`` a transport
    error code (e.g. ``ECONNRESET``) so the batch executor can decide
    whether the call is worth retrying.
    """

    def __init__(self, message: str, status: int | None = None, code: str | None = None):
        super().__init__(message)
        self.status = status
        self.code = code
