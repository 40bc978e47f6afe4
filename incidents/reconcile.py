"""
Reconciliation of the hospital dashboard's report list.

The list is held newest first.  Every change to it, whether a pushed
change notification or the local echo of a successful accept/reject,
goes through :func:`merge_report`.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

Report = Mapping[str, Any]


def index_of(reports: Iterable[Report], report_id: Any) -> int:
    """Return the position of ``report_id`` in ``reports`` or -1."""
    key = str(report_id)
    for i, entry in enumerate(reports):
        if str(entry.get('id')) == key:
            return i
    return -1


def merge_report(reports: list[Report], incoming: Report) -> list[Report]:
    """Merge one inserted-or-updated report into ``reports``.

    A known id is replaced where it stands, so an update never moves an
    entry.  An unknown id is treated as the newest report and prepended.
    The input list is left untouched.  Merging the same snapshot twice
    gives the same list as merging it once.
    """
    i = index_of(reports, incoming.get('id'))
    if i == -1:
        return [dict(incoming), *reports]
    merged = list(reports)
    merged[i] = dict(incoming)
    return merged


def with_status(report: Report, status: str) -> dict:
    return {**report, 'status': status}
