"""
apps-ports Data Contracts
Defines the records passed between the resolution stages and handed to presentation.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

UNKNOWN_PROCESS = "(unknown)"
ACCESS_DENIED_COMMAND = "(elevated privileges required)"


class AccessLevel(str, Enum):
    FULL = "Full"
    RESTRICTED = "Restricted"      # pid/port seen, name or command unreadable
    UNAVAILABLE = "Unavailable"    # socket seen, no owner observable


class ContainerInfo(BaseModel):
    id: str
    image: str
    name: Optional[str] = None


class RawEntry(BaseModel):
    """One socket as reported by one enumeration utility. Unexposed fields stay None."""
    source: str
    port: int = Field(ge=1, le=65535)
    pid: Optional[int] = Field(default=None, ge=0)
    process_name: Optional[str] = None
    command: Optional[str] = None
    protocol: Optional[str] = None
    local_address: Optional[str] = None


class AdapterUnavailable(BaseModel):
    adapter: str
    reason: str


class SourceOutput(BaseModel):
    adapter: str
    text: str


class ProcessDetails(BaseModel):
    process_name: str
    command: str
    access_level: AccessLevel


class PortRecord(BaseModel):
    """Canonical unit of output: one owner (pid) of one port."""
    port: int = Field(ge=1, le=65535)
    pid: Optional[int] = Field(default=None, ge=0)
    process_name: str = UNKNOWN_PROCESS
    command: str = ""
    protocol: Optional[str] = None
    container: Optional[ContainerInfo] = None
    access_level: AccessLevel = AccessLevel.FULL
    sources: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_access_level(self) -> "PortRecord":
        if self.access_level == AccessLevel.RESTRICTED and self.command != ACCESS_DENIED_COMMAND:
            raise ValueError("Restricted records must carry the access-denied command sentinel")
        if self.access_level == AccessLevel.UNAVAILABLE and self.pid is not None:
            raise ValueError("Unavailable records cannot carry a pid")
        if self.pid is None and self.access_level == AccessLevel.FULL:
            raise ValueError("Records without a pid cannot have Full access")
        return self

    @property
    def key(self):
        return (self.port, self.pid)


class TerminationState(str, Enum):
    RESOLVED = "Resolved"
    AWAITING_CONFIRMATION = "AwaitingConfirmation"
    ABORTED = "Aborted"
    ATTEMPTING_UNPRIVILEGED = "AttemptingUnprivileged"
    ATTEMPTING_ELEVATED = "AttemptingElevated"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    STOPPING_CONTAINER = "StoppingContainer"
    CONTAINER_STOPPED = "ContainerStopped"
    CONTAINER_STOP_FAILED = "ContainerStopFailed"
    OFFERING_CONTAINER_REMOVAL = "OfferingContainerRemoval"
    CONTAINER_REMOVED = "ContainerRemoved"
    CONTAINER_REMOVAL_FAILED = "ContainerRemovalFailed"


FAILED_STATES = {
    TerminationState.FAILED,
    TerminationState.CONTAINER_STOP_FAILED,
    TerminationState.CONTAINER_REMOVAL_FAILED,
}

# Failures that only mean the target is already gone
SOFT_ERRORS = {"ProcessVanished"}


class TerminationOutcome(BaseModel):
    port: int
    pid: Optional[int] = None
    process_name: str = UNKNOWN_PROCESS
    state: TerminationState = TerminationState.RESOLVED
    history: List[TerminationState] = Field(default_factory=list)
    message: str = ""
    error: Optional[str] = None
    container: Optional[ContainerInfo] = None

    @property
    def ok(self) -> bool:
        return self.state not in FAILED_STATES or self.error in SOFT_ERRORS
