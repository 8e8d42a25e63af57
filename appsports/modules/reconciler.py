"""
apps-ports - Reconciler

Merges the entries of every source into one PortRecord per (port, pid).
Sources are visited in precedence order and, field by field, the first
non-empty value wins: later sources only fill gaps, they never overwrite.
"""
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from appsports.core.schemas import AccessLevel, PortRecord, RawEntry, UNKNOWN_PROCESS

MERGED_FIELDS = ("command", "process_name", "protocol")


def _sort_key(record: PortRecord) -> Tuple[int, int]:
    return (record.port, -1 if record.pid is None else record.pid)


def merge(entries_by_adapter: Mapping[str, Sequence[RawEntry]]) -> List[PortRecord]:
    """
    Reconcile per-adapter entries into canonical records.

    Args:
        entries_by_adapter: Adapter name -> entries, iterated in precedence order.

    Returns:
        Records sorted by (port, pid). Ports seen only without an owner yield
        a single Unavailable record with pid None.
    """
    merged: Dict[Tuple[int, int], Dict[str, Optional[str]]] = {}
    sources: Dict[Tuple[int, int], List[str]] = {}
    ownerless: Dict[int, Dict[str, Optional[str]]] = {}
    ownerless_sources: Dict[int, List[str]] = {}
    owned_ports: Set[int] = set()

    for adapter, entries in entries_by_adapter.items():
        for entry in entries:
            if entry.pid is None:
                fields = ownerless.setdefault(entry.port, {})
                seen_by = ownerless_sources.setdefault(entry.port, [])
            else:
                key = (entry.port, entry.pid)
                owned_ports.add(entry.port)
                fields = merged.setdefault(key, {})
                seen_by = sources.setdefault(key, [])

            for field in MERGED_FIELDS:
                value = getattr(entry, field)
                if value and not fields.get(field):
                    fields[field] = value
            if adapter not in seen_by:
                seen_by.append(adapter)

    records = [
        PortRecord(
            port=port,
            pid=pid,
            process_name=fields.get("process_name") or UNKNOWN_PROCESS,
            command=fields.get("command") or "",
            protocol=fields.get("protocol"),
            access_level=AccessLevel.FULL,
            sources=sources[(port, pid)],
        )
        for (port, pid), fields in merged.items()
    ]

    for port, fields in ownerless.items():
        if port in owned_ports:
            continue
        records.append(PortRecord(
            port=port,
            pid=None,
            process_name=UNKNOWN_PROCESS,
            command="",
            protocol=fields.get("protocol"),
            access_level=AccessLevel.UNAVAILABLE,
            sources=ownerless_sources[port],
        ))

    records.sort(key=_sort_key)
    return records


def unresolved_ports(records: Sequence[PortRecord]) -> List[int]:
    """Ports that were observed but whose owner no source could name."""
    return [r.port for r in records if r.pid is None]
