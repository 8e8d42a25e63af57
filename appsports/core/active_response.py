# appsports/core/active_response.py
"""
Termination Orchestrator

Every termination request runs through an explicit state machine:

    Resolved -> AwaitingConfirmation -> Aborted
                                     -> AttemptingUnprivileged -> Succeeded
                                                               -> AttemptingElevated -> Succeeded | Failed
    Succeeded -> StoppingContainer -> ContainerStopped -> OfferingContainerRemoval -> ContainerRemoved
                                                                                   -> ContainerRemovalFailed
                                   -> ContainerStopFailed

Nothing destructive happens before an affirmative answer in AwaitingConfirmation,
and the elevated retry is offered, never automatic.
"""
import subprocess
from typing import Callable, List, Optional, Sequence, Set

import psutil

from appsports.core.config import Config
from appsports.core.errors import (
    ElevationDeclined,
    ElevationFailed,
    PermissionDenied,
    ProcessVanished,
    SourceUnavailable,
    UserAborted,
)
from appsports.core.schemas import (
    FAILED_STATES,
    ContainerInfo,
    PortRecord,
    TerminationOutcome,
    TerminationState,
)
from appsports.modules.container_resolver import ContainerResolver
from appsports.modules.port_resolver import PortResolver
from appsports.utils.commands import run_tool
from appsports.utils.logger import Logger

CONTAINER_TIMEOUT = 60.0


def kill_process_by_pid(pid: int, timeout: float = 3.0) -> None:
    """
    Terminate a process as the invoking user.
    Escalates from SIGTERM (soft kill) to SIGKILL (hard kill) if it outlives `timeout`.

    Raises:
        ProcessVanished: the pid no longer exists.
        PermissionDenied: the OS refused to signal the pid.
    """
    try:
        process = psutil.Process(pid)
        process.terminate()
        try:
            process.wait(timeout=timeout)
        except psutil.TimeoutExpired:
            try:
                process.kill()
            except psutil.NoSuchProcess:
                pass  # exited between the timeout and SIGKILL
    except psutil.NoSuchProcess:
        raise ProcessVanished(pid)
    except psutil.AccessDenied:
        raise PermissionDenied(f"Access denied terminating PID {pid}")


class TerminationOrchestrator:
    """Runs the confirm -> unprivileged -> elevated -> container protocol for port owners."""

    def __init__(self, confirm: Callable[[str], bool], config: Optional[Config] = None, resolver=None):
        self.confirm = confirm
        self.config = config or Config()
        self.logger = Logger()
        self.resolver = resolver
        self.runtime = self.config.container_runtime
        self.elevation_command = self.config.elevation_command
        self.kill_timeout = self.config.kill_timeout
        if resolver is not None:
            self.proxy_check = resolver.container_resolver
        else:
            self.proxy_check = ContainerResolver(runtime=self.runtime, proxy_patterns=self.config.proxy_patterns)

    def _transition(self, outcome: TerminationOutcome, state: TerminationState) -> None:
        outcome.state = state
        outcome.history.append(state)
        self.logger.info(f"Termination port={outcome.port} pid={outcome.pid}: -> {state.value}")

    def _finish(self, outcome: TerminationOutcome, state: TerminationState, message: str,
                error: Optional[Exception] = None) -> TerminationOutcome:
        self._transition(outcome, state)
        outcome.message = f"{outcome.message}; {message}" if outcome.message else message
        if error is not None:
            outcome.error = type(error).__name__
        if not outcome.ok:
            self.logger.error(message)
        elif state in FAILED_STATES:
            self.logger.warning(message)
        else:
            self.logger.success(message)
        return outcome

    def _confirmation_prompt(self, record: PortRecord, kill_container: bool) -> str:
        prompt = f"Kill process {record.process_name} (PID: {record.pid}) on port {record.port}"
        if kill_container and record.container is not None:
            prompt += f" and stop container {record.container.id[:12]} ({record.container.image})"
        return prompt + "? [y/N]: "

    def _kill_elevated(self, pid: int) -> None:
        cmd = self.elevation_command + ["kill", "-TERM", str(pid)]
        try:
            # stdio is inherited so the elevation prompt reaches the user untouched
            result = subprocess.run(cmd)
        except FileNotFoundError:
            raise ElevationFailed(f"Elevation command '{cmd[0]}' not found")
        except OSError as e:
            raise ElevationFailed(f"Could not run '{cmd[0]}': {e}")

        if result.returncode != 0:
            raise ElevationFailed(f"'{' '.join(cmd)}' exited with status {result.returncode}")

    def terminate(self, record: PortRecord, kill_container: bool = False) -> TerminationOutcome:
        """Drive one record through the termination state machine."""
        outcome = TerminationOutcome(
            port=record.port,
            pid=record.pid,
            process_name=record.process_name,
            container=record.container,
        )
        self._transition(outcome, TerminationState.RESOLVED)

        if record.pid is None:
            error = PermissionDenied(
                f"The owner of port {record.port} is not observable; run with elevated privileges to see it"
            )
            return self._finish(outcome, TerminationState.FAILED, f"✗ {error}", error)

        self._transition(outcome, TerminationState.AWAITING_CONFIRMATION)
        if not self.confirm(self._confirmation_prompt(record, kill_container)):
            return self._finish(
                outcome, TerminationState.ABORTED,
                f"Skipped killing process {record.process_name} (PID: {record.pid})",
                UserAborted()
            )

        self._transition(outcome, TerminationState.ATTEMPTING_UNPRIVILEGED)
        elevated = False
        try:
            kill_process_by_pid(record.pid, timeout=self.kill_timeout)
        except ProcessVanished as e:
            return self._finish(outcome, TerminationState.FAILED, f"{e}, nothing to kill", e)
        except PermissionDenied as e:
            self.logger.warning(str(e))
            self._transition(outcome, TerminationState.ATTEMPTING_ELEVATED)
            try:
                if not self.confirm("Try with elevated privileges? [y/N]: "):
                    raise ElevationDeclined(f"Elevated retry for PID {record.pid} declined")
                self._kill_elevated(record.pid)
            except (ElevationDeclined, ElevationFailed) as err:
                return self._finish(
                    outcome, TerminationState.FAILED,
                    f"✗ Failed to kill process {record.process_name} (PID: {record.pid}): {err}",
                    err
                )
            elevated = True

        suffix = " with elevated privileges" if elevated else ""
        self._finish(
            outcome, TerminationState.SUCCEEDED,
            f"✓ Killed process {record.process_name} (PID: {record.pid}){suffix}"
        )

        if kill_container:
            self._container_branch(outcome, record)
        return outcome

    def _container_branch(self, outcome: TerminationOutcome, record: PortRecord) -> None:
        if record.container is None:
            if self.proxy_check.is_proxy(record.process_name):
                outcome.message += "; no container could be resolved for this port, nothing stopped"
            return
        self._stop_container(outcome, record.container)

    def _stop_container(self, outcome: TerminationOutcome, container: ContainerInfo) -> None:
        short_id = container.id[:12]
        self._transition(outcome, TerminationState.STOPPING_CONTAINER)
        try:
            run_tool([self.runtime, "stop", container.id], CONTAINER_TIMEOUT)
        except SourceUnavailable as e:
            self._finish(
                outcome, TerminationState.CONTAINER_STOP_FAILED,
                f"✗ Failed to stop container {short_id}: {e.reason}", e
            )
            return
        self._finish(outcome, TerminationState.CONTAINER_STOPPED,
                     f"✓ Stopped container {short_id} ({container.image})")

        self._transition(outcome, TerminationState.OFFERING_CONTAINER_REMOVAL)
        if not self.confirm("Remove the stopped container? [y/N]: "):
            self._finish(outcome, TerminationState.CONTAINER_STOPPED,
                         f"✓ Stopped container {short_id} ({container.image}); container kept")
            return

        try:
            run_tool([self.runtime, "rm", container.id], CONTAINER_TIMEOUT)
        except SourceUnavailable as e:
            self._finish(
                outcome, TerminationState.CONTAINER_REMOVAL_FAILED,
                f"✗ Failed to remove container {short_id}: {e.reason}", e
            )
            return
        self._finish(outcome, TerminationState.CONTAINER_REMOVED, f"✓ Removed container {short_id}")

    def terminate_all(self, records: Sequence[PortRecord], kill_container: bool = False) -> List[TerminationOutcome]:
        """
        Run one state machine per record, in order.
        Docker starts one proxy per address family, so several records can share a
        container; once that container is stopped its remaining proxies are skipped.
        """
        outcomes = []
        stopped: Set[str] = set()
        for record in records:
            container = record.container
            if kill_container and container is not None and container.id in stopped:
                self.logger.info(
                    f"Skipping PID {record.pid} on port {record.port}: container {container.id[:12]} already stopped"
                )
                continue
            outcome = self.terminate(record, kill_container)
            if container is not None and TerminationState.CONTAINER_STOPPED in outcome.history:
                stopped.add(container.id)
            outcomes.append(outcome)
        return outcomes

    def terminate_port(self, port: int, kill_container: bool = False) -> List[TerminationOutcome]:
        """Resolve the owners of `port` and run the state machines for them."""
        if self.resolver is None:
            self.resolver = PortResolver(self.config)
        return self.terminate_all(self.resolver.find_by_port(port), kill_container)
