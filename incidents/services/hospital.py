"""
Hospital side of the dispatch workflow.

:class:`HospitalDashboard` keeps every report in memory, newest first.
The list starts from one bulk fetch and then follows the change feed;
accepting or rejecting a report writes to the store and, once the write
succeeds, echoes the new status locally through the same merge used for
pushed notifications.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from asgiref.sync import sync_to_async

from incidents.exceptions import FetchError, UpdateError
from incidents.models import IncidentReport
from incidents.realtime.feed import ChangeEvent, ReportFeed
from incidents.reconcile import index_of, merge_report, with_status
from incidents.services.audit import log_action
from incidents.session import Identity, IdentityContext
from incidents.store import ReportStore, status_verb

logger = logging.getLogger(__name__)


class HospitalDashboard:
    def __init__(self, store: ReportStore, identity: Identity | IdentityContext | None = None):
        self.store = store
        self.session = identity if isinstance(identity, IdentityContext) else IdentityContext(identity)
        self.reports: list[dict] = []
        self.loading = False
        self.error = ''
        self._in_flight: set[str] = set()
        self._feed: Optional[ReportFeed] = None
        self._stop_watching = self.session.on_change(self._identity_changed)

    @property
    def identity(self) -> Optional[Identity]:
        return self.session.current

    def _identity_changed(self, identity: Optional[Identity]) -> None:
        if identity is not None:
            return
        # signed out: drop what was loaded and let run() wind down
        self.reports = []
        self.error = ''
        if self._feed is not None:
            self._feed.cancel()

    def detach(self) -> None:
        self._stop_watching()

    def load(self) -> list[dict]:
        """Replace the list with a fresh fetch; on failure the list is kept."""
        self.loading = True
        try:
            self.reports = self.store.query_all()
        except FetchError as exc:
            self.error = exc.message
            raise
        finally:
            self.loading = False
        logger.debug("dashboard loaded %d reports", len(self.reports))
        return self.reports

    def apply(self, change: ChangeEvent | dict) -> list[dict]:
        report = change.report if isinstance(change, ChangeEvent) else change
        self.reports = merge_report(self.reports, report)
        return self.reports

    def get(self, report_id: Any) -> Optional[dict]:
        i = index_of(self.reports, report_id)
        return self.reports[i] if i != -1 else None

    def can_decide(self, report_id: Any) -> bool:
        """Accept/reject is offered only for known reports still Pending."""
        report = self.get(report_id)
        return bool(report) and report['status'] == IncidentReport.STATUS_PENDING \
            and str(report_id) not in self._in_flight

    def set_status(self, report_id: Any, status: str) -> dict:
        if status not in IncidentReport.TERMINAL_STATUSES:
            raise UpdateError(f"Unsupported status {status!r}", code='invalid_status', status_code=400)
        key = str(report_id)
        if key in self._in_flight:
            raise UpdateError('This submission is already being updated', code='in_flight')
        report = self.get(key)
        if report is None:
            raise UpdateError('Submission not found', code='not_found', status_code=404)
        if report['status'] != IncidentReport.STATUS_PENDING:
            raise UpdateError(f"Submission is already {report['status']}", code='not_pending')

        self._in_flight.add(key)
        try:
            self.store.update_status(key, status)
        except UpdateError as exc:
            verb = status_verb(status)
            self.error = f"Failed to {verb} submission"
            logger.warning("%s of report %s failed: %s", verb, key, exc.message)
            raise
        finally:
            self._in_flight.discard(key)

        log_action(user=self.identity, action=f"report_{status.lower()}", object_type='incident_report',
                   object_id=key, detail={'status': status})
        # merge the entry as it stands now, a pushed update may have landed meanwhile
        self.apply(with_status(self.get(key) or report, status))
        return self.get(key)

    def accept(self, report_id: Any) -> dict:
        return self.set_status(report_id, IncidentReport.STATUS_ACCEPTED)

    def reject(self, report_id: Any) -> dict:
        return self.set_status(report_id, IncidentReport.STATUS_REJECTED)

    async def follow(self, feed: ReportFeed) -> None:
        """Merge every change from ``feed`` until it is unsubscribed."""
        async for change in feed:
            logger.debug("realtime %s for report %s", change.event, change.report.get('id'))
            self.apply(change)

    async def run(self) -> None:
        # subscribe before fetching so nothing committed during the fetch is missed
        self._feed = self.store.subscribe()
        await self._feed.open()
        try:
            await sync_to_async(self.load)()
            if self._feed.closed and self.identity is None:
                # signed out while the fetch was in flight
                self.reports = []
                return
            await self.follow(self._feed)
        finally:
            await self.close()

    async def close(self) -> None:
        if self._feed is not None:
            await self._feed.unsubscribe()
