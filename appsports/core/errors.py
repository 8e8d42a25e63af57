"""
apps-ports Error Taxonomy

Resolution errors are soft: they are raised close to where a single source,
line or pid goes wrong and absorbed by the pipeline stage that owns it.
Termination errors are hard for one termination attempt and end up on the
TerminationOutcome.
"""


class AppsPortsError(Exception):
    """Base class for every error raised by apps-ports."""


class ResolutionError(AppsPortsError):
    pass


class SourceUnavailable(ResolutionError):
    """An enumeration utility is missing, timed out or exited non-zero."""

    def __init__(self, tool: str, reason: str):
        super().__init__(f"{tool}: {reason}")
        self.tool = tool
        self.reason = reason


class ParseSkipped(ResolutionError):
    """One line of utility output could not be parsed."""


class ProcessVanished(ResolutionError):
    """The pid disappeared between enumeration and inspection or action."""

    def __init__(self, pid: int):
        super().__init__(f"PID {pid} is no longer running")
        self.pid = pid


class AmbiguousContainerMapping(ResolutionError):
    def __init__(self, port: int, container_ids):
        ids = ", ".join(container_ids)
        super().__init__(f"Port {port} is published by several containers ({ids})")
        self.port = port
        self.container_ids = list(container_ids)


class TerminationError(AppsPortsError):
    pass


class PermissionDenied(TerminationError):
    pass


class ElevationDeclined(TerminationError):
    pass


class ElevationFailed(TerminationError):
    pass


class UserAborted(TerminationError):
    """Not a failure: the operator answered no to the confirmation prompt."""
