# appsports/modules/port_resolver.py
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from appsports.core.config import Config
from appsports.core.schemas import AdapterUnavailable, PortRecord, RawEntry
from appsports.modules.container_resolver import ContainerResolver
from appsports.modules.process_enricher import ProcessEnricher
from appsports.modules.reconciler import merge, unresolved_ports
from appsports.modules.source_adapters import FuserAdapter, SourceAdapter, build_adapters
from appsports.utils.logger import Logger


class PortResolver:
    """
    Port ownership resolution pipeline.
    Source Adapters -> Parser -> Reconciler -> owner recovery -> Enricher -> Container Resolver.
    """
    def __init__(self, config: Optional[Config] = None,
                 adapters: Optional[List[SourceAdapter]] = None,
                 enricher: Optional[ProcessEnricher] = None,
                 container_resolver: Optional[ContainerResolver] = None,
                 recovery_adapter: Optional[SourceAdapter] = None):
        self.config = config or Config()
        self.logger = Logger()
        timeout = self.config.command_timeout

        self.adapters = adapters if adapters is not None else build_adapters(self.config.sources, timeout)
        self.enricher = enricher or ProcessEnricher()
        self.container_resolver = container_resolver or ContainerResolver(
            runtime=self.config.container_runtime,
            proxy_patterns=self.config.proxy_patterns,
            timeout=timeout
        )
        if recovery_adapter is None and self.config.recover_with_fuser:
            recovery_adapter = FuserAdapter(timeout=timeout)
        self.recovery_adapter = recovery_adapter

    def collect(self, port: Optional[int] = None) -> Dict[str, List[RawEntry]]:
        """Run every adapter and join all results, keyed in precedence order."""
        if self.config.parallel_sources and len(self.adapters) > 1:
            with ThreadPoolExecutor(max_workers=len(self.adapters), thread_name_prefix="Source") as pool:
                results = list(pool.map(lambda a: a.enumerate(port), self.adapters))
        else:
            results = [adapter.enumerate(port) for adapter in self.adapters]

        collected: Dict[str, List[RawEntry]] = {}
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, AdapterUnavailable):
                continue
            collected[adapter.name] = result

        if not collected:
            self.logger.warning("No socket enumeration source produced output; results will be empty.")
        return collected

    def _recover_owners(self, collected: Dict[str, List[RawEntry]],
                        records: List[PortRecord]) -> List[PortRecord]:
        """Ask the recovery source about ports observed without an owner, then merge again."""
        ports = unresolved_ports(records)
        if not ports or self.recovery_adapter is None:
            return records

        recovered: List[RawEntry] = []
        for port in ports:
            result = self.recovery_adapter.enumerate(port)
            if isinstance(result, AdapterUnavailable):
                continue
            recovered.extend(result)

        if not recovered:
            return records

        self.logger.info(f"Recovered {len(recovered)} owner(s) via {self.recovery_adapter.name}")
        merged_input = dict(collected)
        merged_input[self.recovery_adapter.name] = recovered
        return merge(merged_input)

    def resolve(self, port: Optional[int] = None) -> List[PortRecord]:
        """
        Take one snapshot of port ownership.

        Args:
            port: Restrict the snapshot to a single port, or None for every listening socket.

        Returns:
            Ordered PortRecord list (by port, then pid).
        """
        collected = self.collect(port)
        records = merge(collected)
        records = self._recover_owners(collected, records)
        records = self.enricher.apply(records)
        records = [self.container_resolver.resolve(r) for r in records]

        if port is not None:
            records = [r for r in records if r.port == port]

        self.logger.info(f"Resolved {len(records)} port owner record(s)")
        return records

    def list_all(self) -> List[PortRecord]:
        return self.resolve()

    def find_by_port(self, port: int) -> List[PortRecord]:
        return self.resolve(port)
