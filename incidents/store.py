"""
The submission store: incident reports in the database plus their change feed.

Every method speaks the wire representation produced by
:func:`incidents.serializers.reports.report_payload`, so callers never
hold ORM instances.  Database failures are wrapped in the dispatch error
types; successful writes are broadcast as change notifications.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from django.db import DatabaseError, transaction

from incidents.exceptions import FetchError, SubmissionError, UpdateError
from incidents.models import IncidentReport
from incidents.realtime.feed import EVENT_INSERT, EVENT_UPDATE, ChangeEvent, ReportFeed, publish
from incidents.serializers.reports import report_payload

logger = logging.getLogger(__name__)


class ReportStore:
    def __init__(self, channel_layer: Any = None):
        self.channel_layer = channel_layer

    def insert(self, *, submitter_id: int, location: str, incident_type: str, consciousness_state: str,
               hospital_id: str, hospital_name: str, persons_injured: Optional[int] = None) -> dict:
        """Create one ``Pending`` report and announce it."""
        try:
            with transaction.atomic():
                report = IncidentReport.objects.create(
                    submitter_id=submitter_id,
                    location=location,
                    incident_type=incident_type,
                    persons_injured=persons_injured,
                    consciousness_state=consciousness_state,
                    hospital_id=hospital_id,
                    hospital_name=hospital_name,
                    status=IncidentReport.STATUS_PENDING,
                )
        except DatabaseError as exc:
            logger.error("insert of incident report failed for submitter %s: %s", submitter_id, exc)
            raise SubmissionError() from exc
        payload = report_payload(report)
        logger.info("report %s created by %s for %s", payload['id'], submitter_id, hospital_name)
        publish(ChangeEvent(EVENT_INSERT, payload), self.channel_layer)
        return payload

    def update_status(self, report_id: Any, status: str) -> dict:
        """Move a ``Pending`` report to ``status``; decided reports are left alone."""
        if status not in IncidentReport.TERMINAL_STATUSES:
            raise UpdateError(f"Unsupported status {status!r}", code='invalid_status', status_code=400)
        try:
            pk = uuid.UUID(str(report_id))
        except ValueError:
            raise UpdateError('Submission not found', code='not_found', status_code=404)
        try:
            with transaction.atomic():
                updated = (
                    IncidentReport.objects
                    .filter(id=pk, status=IncidentReport.STATUS_PENDING)
                    .update(status=status)
                )
                report = IncidentReport.objects.filter(id=pk).first()
        except DatabaseError as exc:
            logger.error("status update of report %s to %s failed: %s", report_id, status, exc)
            raise UpdateError(f"Failed to {status_verb(status)} submission", status_code=503) from exc
        if report is None:
            raise UpdateError('Submission not found', code='not_found', status_code=404)
        if not updated:
            raise UpdateError(f"Submission is already {report.status}", code='not_pending')
        payload = report_payload(report)
        logger.info("report %s marked %s", payload['id'], status)
        publish(ChangeEvent(EVENT_UPDATE, payload), self.channel_layer)
        return payload

    def query_all(self) -> list[dict]:
        try:
            return [report_payload(r) for r in IncidentReport.objects.order_by('-created_at')]
        except DatabaseError as exc:
            logger.error("listing incident reports failed: %s", exc)
            raise FetchError() from exc

    def query_latest_by_submitter(self, submitter_id: int) -> Optional[dict]:
        try:
            report = (
                IncidentReport.objects
                .filter(submitter_id=submitter_id)
                .order_by('-created_at')
                .first()
            )
        except DatabaseError as exc:
            logger.error("status lookup for submitter %s failed: %s", submitter_id, exc)
            raise FetchError('Failed to fetch request status') from exc
        return report_payload(report) if report is not None else None

    def subscribe(self) -> ReportFeed:
        return ReportFeed(self.channel_layer)


def status_verb(status: str) -> str:
    """The word used for a decision in messages: accept or reject."""
    return 'accept' if status == IncidentReport.STATUS_ACCEPTED else 'reject'
