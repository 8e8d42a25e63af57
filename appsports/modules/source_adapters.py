"""
apps-ports - Source Adapters

Each adapter wraps exactly one socket enumeration utility. Adapters are
independent, read-only and fail soft: a missing binary or a failing run
becomes an AdapterUnavailable result instead of an exception.
"""
from typing import Dict, List, Optional, Type, Union

from appsports.core.errors import SourceUnavailable
from appsports.core.schemas import AdapterUnavailable, RawEntry, SourceOutput
from appsports.modules.record_parser import parse
from appsports.utils.commands import run_tool
from appsports.utils.logger import Logger


class SourceAdapter:
    """Base adapter: runs its utility, then hands the text to the Record Parser."""

    name = ""
    # Exit status the utility uses for "no matching sockets"
    no_match_status: Optional[int] = None

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self.logger = Logger()

    def arguments(self, port: Optional[int] = None) -> List[List[str]]:
        """Command lines to try in order; the first one that runs wins."""
        raise NotImplementedError

    def query(self, port: Optional[int] = None) -> Union[SourceOutput, AdapterUnavailable]:
        reasons = []
        for cmd in self.arguments(port):
            self.logger.debug(f"Running {' '.join(cmd)}")
            try:
                text = run_tool(cmd, self.timeout, self.no_match_status)
            except SourceUnavailable as e:
                reasons.append(e.reason)
                continue
            return SourceOutput(adapter=self.name, text=text)

        reason = "; ".join(dict.fromkeys(reasons)) or "no invocation available"
        return AdapterUnavailable(adapter=self.name, reason=reason)

    def enumerate(self, port: Optional[int] = None) -> Union[List[RawEntry], AdapterUnavailable]:
        output = self.query(port)
        if isinstance(output, AdapterUnavailable):
            self.logger.warning(f"Source '{self.name}' unavailable: {output.reason}")
            return output
        entries = parse(self.name, output.text, port)
        self.logger.debug(f"Source '{self.name}' reported {len(entries)} entries")
        return entries


class SsAdapter(SourceAdapter):
    name = "ss"

    def arguments(self, port=None):
        base = ["ss", "--tcp", "--udp", "--listening", "--numeric"]
        # --processes is missing from some minimal builds
        return [base + ["--processes"], base]


class NetstatAdapter(SourceAdapter):
    name = "netstat"

    def arguments(self, port=None):
        return [["netstat", "-tulnp"], ["netstat", "-tuln"]]


class LsofAdapter(SourceAdapter):
    name = "lsof"
    no_match_status = 1

    def arguments(self, port=None):
        selector = f"-i:{port}" if port else "-i"
        return [["lsof", "-nP", selector, "-sTCP:LISTEN"]]


class FuserAdapter(SourceAdapter):
    """Owner recovery source: only answers single-port queries."""

    name = "fuser"
    no_match_status = 1

    def arguments(self, port=None):
        if not port:
            return []
        return [["fuser", f"{port}/tcp", f"{port}/udp"]]


ADAPTERS: Dict[str, Type[SourceAdapter]] = {
    "ss": SsAdapter,
    "netstat": NetstatAdapter,
    "lsof": LsofAdapter,
    "fuser": FuserAdapter,
}


def build_adapters(names: List[str], timeout: float) -> List[SourceAdapter]:
    """Instantiate adapters in the given precedence order, skipping unknown names."""
    adapters = []
    for name in names:
        adapter_cls = ADAPTERS.get(name)
        if adapter_cls is None:
            Logger().warning(f"Ignoring unknown source '{name}'")
            continue
        adapters.append(adapter_cls(timeout=timeout))
    return adapters
