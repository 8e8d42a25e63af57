"""
Container Resolver - Maps container-proxy port owners to their container

When a port is held by a proxy process such as docker-proxy, the process
itself says little. The container runtime is asked which running container
publishes that host port; exactly one match is attached to the record,
anything else leaves the record without a container.
"""
import re
from typing import Dict, List, Optional, Set, Tuple

from appsports.core.errors import AmbiguousContainerMapping, SourceUnavailable
from appsports.core.schemas import ContainerInfo, PortRecord
from appsports.utils.commands import run_tool
from appsports.utils.logger import Logger

PS_FORMAT = "{{.ID}}\t{{.Image}}\t{{.Names}}\t{{.Ports}}"


def parse_published_ports(ports_column: str) -> Set[int]:
    """
    Extract host ports from a `docker ps` Ports column.

    '0.0.0.0:8080->80/tcp, :::8080->80/tcp'      -> {8080}
    '0.0.0.0:5000-5001->5000-5001/tcp'           -> {5000, 5001}
    '80/tcp' (exposed but not published)          -> set()
    """
    published: Set[int] = set()
    for mapping in ports_column.split(","):
        mapping = mapping.strip()
        if "->" not in mapping:
            continue
        host_side = mapping.split("->", 1)[0]
        _, _, port_text = host_side.rpartition(":")
        start, _, end = port_text.partition("-")
        if not start.isdigit() or (end and not end.isdigit()):
            continue
        last = int(end) if end else int(start)
        published.update(range(int(start), last + 1))
    return published


class ContainerResolver:
    """Attaches container id/image to records owned by a container-proxy process."""

    def __init__(self, runtime: str = "docker", proxy_patterns: Optional[List[str]] = None,
                 timeout: float = 5.0):
        self.logger = Logger()
        self.runtime = runtime
        self.timeout = timeout
        self.proxy_patterns = [re.compile(p) for p in (proxy_patterns or [r"^docker-pr(oxy)?$"])]
        self._listing: Optional[List[Tuple[ContainerInfo, Set[int]]]] = None
        self._listing_failed = False

    def is_proxy(self, process_name: str) -> bool:
        return any(p.search(process_name or "") for p in self.proxy_patterns)

    def _containers(self) -> List[Tuple[ContainerInfo, Set[int]]]:
        """Running containers with their published host ports, queried once per resolver."""
        if self._listing is not None:
            return self._listing
        if self._listing_failed:
            raise SourceUnavailable(self.runtime, "container listing already failed")

        try:
            output = run_tool(
                [self.runtime, "ps", "--no-trunc", "--format", PS_FORMAT],
                self.timeout
            )
        except SourceUnavailable:
            self._listing_failed = True
            raise

        by_id: Dict[str, Tuple[ContainerInfo, Set[int]]] = {}
        for line in output.splitlines():
            fields = line.split("\t")
            if len(fields) < 4 or not fields[0].strip():
                continue
            container_id, image, names, ports = (f.strip() for f in fields[:4])
            if container_id in by_id:
                by_id[container_id][1].update(parse_published_ports(ports))
                continue
            info = ContainerInfo(id=container_id, image=image, name=names or None)
            by_id[container_id] = (info, parse_published_ports(ports))

        self._listing = list(by_id.values())
        return self._listing

    def match(self, port: int) -> Optional[ContainerInfo]:
        """
        Find the single container publishing `port`.

        Raises:
            AmbiguousContainerMapping: more than one container publishes the port.
            SourceUnavailable: the runtime is missing or unreachable.
        """
        matches = [info for info, ports in self._containers() if port in ports]
        if len(matches) > 1:
            raise AmbiguousContainerMapping(port, [m.id for m in matches])
        return matches[0] if matches else None

    def resolve(self, record: PortRecord) -> PortRecord:
        if record.container is not None or not self.is_proxy(record.process_name):
            return record

        try:
            container = self.match(record.port)
        except SourceUnavailable as e:
            self.logger.warning(f"Container runtime unavailable, port {record.port} left unresolved: {e}")
            return record
        except AmbiguousContainerMapping as e:
            self.logger.warning(f"{e}; container left unknown")
            return record

        if container is None:
            self.logger.info(f"No running container publishes port {record.port}")
            return record

        return record.model_copy(update={"container": container})
