# appsports/modules/process_enricher.py
import psutil
from typing import List, Sequence

from appsports.core.errors import ProcessVanished
from appsports.core.schemas import (
    ACCESS_DENIED_COMMAND,
    UNKNOWN_PROCESS,
    AccessLevel,
    PortRecord,
    ProcessDetails,
)
from appsports.utils.logger import Logger


class ProcessEnricher:
    """
    Reads the name and full command line of port owners.
    Keeps "access denied" and "process gone" strictly apart: the first yields
    a Restricted record, the second removes the record from the snapshot.
    """
    def __init__(self):
        self.logger = Logger()

    def enrich(self, pid: int) -> ProcessDetails:
        """
        Inspect one pid.

        Raises:
            ProcessVanished: the pid no longer exists (or is a zombie).
        """
        name = None
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                name = proc.name()
                cmdline = proc.cmdline()
        except psutil.NoSuchProcess:
            raise ProcessVanished(pid)
        except psutil.AccessDenied:
            return ProcessDetails(
                process_name=name or UNKNOWN_PROCESS,
                command=ACCESS_DENIED_COMMAND,
                access_level=AccessLevel.RESTRICTED,
            )

        name = name or UNKNOWN_PROCESS
        command = " ".join(cmdline) if cmdline else f"[{name}]"
        return ProcessDetails(process_name=name, command=command, access_level=AccessLevel.FULL)

    def enrich_record(self, record: PortRecord) -> PortRecord:
        """Fill the gaps of one record. Values already supplied by a source are kept."""
        if record.pid is None:
            return record

        details = self.enrich(record.pid)
        process_name = record.process_name
        if process_name == UNKNOWN_PROCESS:
            process_name = details.process_name

        if record.command:
            # A source already observed the real command line
            return record.model_copy(update={"process_name": process_name})

        return record.model_copy(update={
            "process_name": process_name,
            "command": details.command,
            "access_level": details.access_level,
        })

    def apply(self, records: Sequence[PortRecord]) -> List[PortRecord]:
        """Enrich every record, dropping those whose owner vanished since enumeration."""
        enriched = []
        for record in records:
            try:
                enriched.append(self.enrich_record(record))
            except ProcessVanished as e:
                self.logger.info(f"Dropping port {record.port}: {e}")
        return enriched
