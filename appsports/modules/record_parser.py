"""
apps-ports - Record Parser

Turns the raw text of each enumeration utility into RawEntry values.
Parsing is line oriented and tolerant: headers are ignored, a malformed
line raises ParseSkipped and is dropped, and a column a tool does not
print stays unset.
"""
import re
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from appsports.core.errors import ParseSkipped
from appsports.core.schemas import RawEntry
from appsports.utils.logger import Logger

SS_NETIDS = {"tcp", "udp", "raw", "sctp", "dccp", "mptcp"}
SS_USER_RE = re.compile(r'\("((?:[^"\\]|\\.)*)",pid=(\d+)')
NETSTAT_PROGRAM_RE = re.compile(r'^(\d+)/(.*)$')
NETSTAT_STATE_RE = re.compile(r'^[A-Z][A-Z0-9_]*$')
PID_RE = re.compile(r'\b(\d+)')


def split_address(address: str) -> Tuple[str, int]:
    """Split 'host:port' in any of the forms the tools print ([::]:80, :::80, *:80, 127.0.0.53%lo:53)."""
    host, sep, port_text = address.rpartition(":")
    if not sep or not port_text.isdigit():
        raise ParseSkipped(f"no numeric port in address {address!r}")
    port = int(port_text)
    if not 1 <= port <= 65535:
        raise ParseSkipped(f"port {port} out of range")
    return host.strip("[]"), port


def _entry(**fields) -> RawEntry:
    try:
        return RawEntry(**fields)
    except ValidationError as e:
        raise ParseSkipped(str(e)) from e


def parse_ss_line(line: str, port: Optional[int] = None) -> List[RawEntry]:
    """
    Netid State  Recv-Q Send-Q Local Address:Port Peer Address:Port Process
    tcp   LISTEN 0      511    0.0.0.0:3000       0.0.0.0:*         users:(("node",pid=12264,fd=20))
    The Netid column only appears when more than one socket family is requested.
    """
    parts = line.split()
    if parts[0] in ("Netid", "State"):
        return []

    protocol = None
    index = 3
    if parts[0].lower() in SS_NETIDS:
        protocol = parts[0].lower()
        index = 4
    if len(parts) <= index:
        raise ParseSkipped("too few columns")

    local_address = parts[index]
    _, local_port = split_address(local_address)

    owners = []
    seen = set()
    for name, pid_text in SS_USER_RE.findall(line):
        if pid_text in seen:
            continue
        seen.add(pid_text)
        owners.append((name, int(pid_text)))

    if not owners:
        return [_entry(source="ss", port=local_port, protocol=protocol, local_address=local_address)]

    return [
        _entry(source="ss", port=local_port, pid=pid, process_name=name or None,
               protocol=protocol, local_address=local_address)
        for name, pid in owners
    ]


def parse_netstat_line(line: str, port: Optional[int] = None) -> List[RawEntry]:
    """
    Proto Recv-Q Send-Q Local Address  Foreign Address  State   PID/Program name
    tcp        0      0 0.0.0.0:22     0.0.0.0:*        LISTEN  1234/sshd: /usr/sbin
    udp        0      0 0.0.0.0:68     0.0.0.0:*                789/dhclient
    """
    parts = line.split()
    protocol = parts[0].lower()
    if not protocol.startswith(("tcp", "udp")):
        return []
    if len(parts) < 5:
        raise ParseSkipped("too few columns")

    local_address = parts[3]
    _, local_port = split_address(local_address)

    rest = parts[5:]
    if rest and NETSTAT_STATE_RE.match(rest[0]):
        state = rest.pop(0)
        if protocol.startswith("tcp") and state != "LISTEN":
            return []

    program = " ".join(rest)
    if program in ("", "-"):
        return [_entry(source="netstat", port=local_port, protocol=protocol, local_address=local_address)]

    match = NETSTAT_PROGRAM_RE.match(program)
    if not match:
        raise ParseSkipped(f"unrecognised program column {program!r}")

    return [_entry(
        source="netstat",
        port=local_port,
        pid=int(match.group(1)),
        process_name=match.group(2).strip() or None,
        protocol=protocol,
        local_address=local_address,
    )]


def parse_lsof_line(line: str, port: Optional[int] = None) -> List[RawEntry]:
    """
    COMMAND     PID USER  FD   TYPE DEVICE SIZE/OFF NODE NAME
    node      12264 dev   20u  IPv4 123456      0t0  TCP *:3000 (LISTEN)
    The protocol token is located by value because DEVICE and SIZE/OFF can be blank.
    """
    parts = line.split()
    if parts[0] == "COMMAND":
        return []

    proto_index = next((i for i in range(3, len(parts) - 1) if parts[i] in ("TCP", "UDP")), None)
    if proto_index is None:
        raise ParseSkipped("no TCP/UDP column")
    if not parts[1].isdigit():
        raise ParseSkipped(f"invalid pid {parts[1]!r}")

    name = parts[proto_index + 1]
    local_address = name.split("->", 1)[0]

    state = None
    if len(parts) > proto_index + 2 and parts[proto_index + 2].startswith("("):
        state = parts[proto_index + 2].strip("()")
    if parts[proto_index] == "TCP" and state and state != "LISTEN":
        return []

    _, local_port = split_address(local_address)

    protocol = parts[proto_index].lower()
    if "IPv6" in parts[:proto_index]:
        protocol += "6"

    return [_entry(
        source="lsof",
        port=local_port,
        pid=int(parts[1]),
        process_name=parts[0].replace("\\x20", " "),
        protocol=protocol,
        local_address=local_address,
    )]


def parse_fuser_line(line: str, port: Optional[int] = None) -> List[RawEntry]:
    """fuser prints only pids on stdout; the port comes from the query itself."""
    if port is None:
        raise ParseSkipped("fuser output is only meaningful for a single-port query")
    return [_entry(source="fuser", port=port, pid=int(pid)) for pid in PID_RE.findall(line)]


LINE_PARSERS: Dict[str, Callable[[str, Optional[int]], List[RawEntry]]] = {
    "ss": parse_ss_line,
    "netstat": parse_netstat_line,
    "lsof": parse_lsof_line,
    "fuser": parse_fuser_line,
}


def parse(adapter_name: str, raw_text: str, port: Optional[int] = None) -> List[RawEntry]:
    """
    Parse one utility's output into RawEntry values.

    Args:
        adapter_name: Key in LINE_PARSERS ("ss", "netstat", "lsof", "fuser")
        raw_text: Captured standard output
        port: When given, only entries for this port are returned

    Returns:
        List of entries in output order. Unparseable lines are skipped.
    """
    try:
        line_parser = LINE_PARSERS[adapter_name]
    except KeyError:
        raise ValueError(f"No parser registered for adapter '{adapter_name}'")

    logger = Logger()
    entries: List[RawEntry] = []
    for number, line in enumerate(raw_text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            parsed = line_parser(line, port)
        except ParseSkipped as e:
            logger.debug(f"{adapter_name}: skipped line {number} ({e}): {line.strip()}")
            continue
        entries.extend(entry for entry in parsed if port is None or entry.port == port)
    return entries
