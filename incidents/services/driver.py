"""
Driver side of the dispatch workflow.

A :class:`DriverFlow` holds the state of one driver's form and status
view.  Submitting validates against the static hospital sets, writes a
single ``Pending`` report and flips the view to the request status,
which always shows the driver's most recent report.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from django.conf import settings

from incidents import reference
from incidents.exceptions import AuthError, DispatchError, FetchError, ValidationError
from incidents.models import IncidentReport
from incidents.serializers.reports import ReportSubmitSerializer
from incidents.services.audit import log_action
from incidents.session import Identity, IdentityContext
from incidents.store import ReportStore

logger = logging.getLogger(__name__)

VIEW_SUBMIT = 'submit'
VIEW_STATUS = 'status'

FORM_FIELDS = ('location', 'hospital', 'incidentType', 'consciousnessState', 'personsInjured')


class DriverFlow:
    def __init__(self, store: ReportStore, identity: Identity | IdentityContext | None):
        self.store = store
        self.session = identity if isinstance(identity, IdentityContext) else IdentityContext(identity)
        self.form: dict[str, Any] = dict.fromkeys(FORM_FIELDS, '')
        self.active_view = VIEW_SUBMIT
        self.loading = False
        self.error = ''
        self.success_message = ''
        self.request_status: Optional[dict] = None
        self._stop_watching = self.session.on_change(self._identity_changed)

    @property
    def identity(self) -> Optional[Identity]:
        return self.session.current

    def _identity_changed(self, identity: Optional[Identity]) -> None:
        # nothing typed or fetched for the previous driver survives a change of account
        self.form = dict.fromkeys(FORM_FIELDS, '')
        self.request_status = None
        self.success_message = ''
        self.error = ''
        self.active_view = VIEW_SUBMIT

    def detach(self) -> None:
        self._stop_watching()

    def _require_identity(self) -> Identity:
        if self.identity is None:
            raise AuthError('User not authenticated', code='not_authenticated')
        return self.identity

    def set_location(self, location: str) -> None:
        previous = self.form['location']
        self.form['location'] = location
        # a hospital picked for another location is no longer offered
        if location != previous and not reference.find_hospital(location, self.form['hospital']):
            self.form['hospital'] = ''

    def update(self, **fields: Any) -> None:
        """Set form fields; ``location`` is applied first so a hospital given alongside it sticks."""
        unknown = set(fields) - set(FORM_FIELDS)
        if unknown:
            raise KeyError(sorted(unknown)[0])
        if 'location' in fields:
            self.set_location(fields['location'])
        for name, value in fields.items():
            if name != 'location':
                self.form[name] = value

    def submit(self, form: Optional[Mapping[str, Any]] = None) -> dict:
        """Validate and store one report; returns the stored report.

        Raises ValidationError before any write, SubmissionError when the
        store rejects it.  A submit while one is in flight is refused.
        """
        if self.loading:
            raise ValidationError('A request is already being submitted', code='in_flight')
        source = self.form if form is None else form
        # QueryDict.dict() keeps the last value of each form field
        data = source.dict() if hasattr(source, 'dict') else dict(source)
        self.error = ''
        self.success_message = ''
        self.loading = True
        try:
            identity = self._require_identity()
            s = ReportSubmitSerializer(data=data)
            if not s.is_valid():
                raise ValidationError(detail=s.errors)
            vd = s.validated_data
            report = self.store.insert(
                submitter_id=identity.user_id,
                location=vd['location'],
                incident_type=vd['incidentType'],
                consciousness_state=vd['consciousnessState'],
                persons_injured=vd.get('personsInjured'),
                hospital_id=vd['hospital'].id,
                hospital_name=vd['hospital'].name,
            )
        except DispatchError as exc:
            self.error = exc.message
            raise
        finally:
            self.loading = False

        log_action(user=identity, action='report_create', object_type='incident_report', object_id=report['id'],
                   detail={'submitter': report['submitterId'], 'hospital': report['hospitalName']})
        self.success_message = f"Request sent successfully! Status: {report['status']}"
        self.form = dict.fromkeys(FORM_FIELDS, '')
        self.request_status = report
        self.active_view = VIEW_STATUS
        try:
            self.refresh_status()
        except FetchError:
            # the report is stored; the status view shows the banner and can be refreshed
            logger.warning("status refresh after submit failed for %s", identity.user_id)
        return report

    def latest_report(self) -> Optional[dict]:
        """The driver's most recent report, or None when there is none yet."""
        identity = self._require_identity()
        report = self.store.query_latest_by_submitter(identity.user_id)
        if report is not None and report['status'] == IncidentReport.STATUS_ACCEPTED:
            report = {**report, 'navigationUrl': settings.HOSPITAL_NAVIGATION_URL}
        return report

    def refresh_status(self) -> Optional[dict]:
        try:
            self.request_status = self.latest_report()
        except (FetchError, AuthError) as exc:
            self.error = exc.message
            raise
        return self.request_status

    def switch_view(self, view: str) -> None:
        if view not in (VIEW_SUBMIT, VIEW_STATUS):
            raise ValueError(f"unknown view {view!r}")
        self.active_view = view
        if view == VIEW_STATUS:
            self.refresh_status()
