"""
apps-ports Smoke Tests
Basic import and schema validation tests for core functionality.
"""
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from pydantic import ValidationError

from appsports.core.schemas import (
    ACCESS_DENIED_COMMAND,
    AccessLevel,
    PortRecord,
    RawEntry,
    TerminationOutcome,
    TerminationState,
)


def test_imports() -> None:
    """Verify every pipeline module can be imported without errors."""
    from appsports.cli import main
    from appsports.core.active_response import TerminationOrchestrator
    from appsports.modules.port_resolver import PortResolver

    assert callable(main)
    assert TerminationOrchestrator and PortResolver


def test_schema_validation() -> None:
    """Verify Pydantic schemas validate data correctly."""
    record = PortRecord(port=3000, pid=12264, process_name="node", command="node server.js")
    assert record.key == (3000, 12264)
    assert record.access_level == AccessLevel.FULL
    assert record.container is None

    with pytest.raises(ValidationError):
        PortRecord(port=70000, pid=1)

    with pytest.raises(ValidationError):
        RawEntry(source="ss", port=0)


def test_restricted_requires_sentinel() -> None:
    """A Restricted record can never carry a real command line."""
    with pytest.raises(ValidationError):
        PortRecord(port=5432, pid=363030, command="postgres -D /data", access_level=AccessLevel.RESTRICTED)

    record = PortRecord(port=5432, pid=363030, command=ACCESS_DENIED_COMMAND,
                        access_level=AccessLevel.RESTRICTED)
    assert record.command == ACCESS_DENIED_COMMAND


def test_unavailable_has_no_pid() -> None:
    with pytest.raises(ValidationError):
        PortRecord(port=9999, pid=10, access_level=AccessLevel.UNAVAILABLE)
    with pytest.raises(ValidationError):
        PortRecord(port=9999, pid=None, access_level=AccessLevel.FULL)

    record = PortRecord(port=9999, pid=None, access_level=AccessLevel.UNAVAILABLE)
    assert record.model_dump(mode="json")["access_level"] == "Unavailable"


def test_outcome_ok_flag() -> None:
    assert TerminationOutcome(port=1, state=TerminationState.ABORTED).ok
    assert not TerminationOutcome(port=1, state=TerminationState.FAILED).ok
    assert not TerminationOutcome(port=1, state=TerminationState.CONTAINER_STOP_FAILED).ok
    assert TerminationOutcome(port=1, state=TerminationState.FAILED, error="ProcessVanished").ok
    assert not TerminationOutcome(port=1, state=TerminationState.FAILED, error="ElevationFailed").ok
