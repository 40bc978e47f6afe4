from datetime import timedelta
from unittest import mock

import pytest
from django.db import DatabaseError
from django.utils import timezone

from incidents.exceptions import AuthError, FetchError, SubmissionError, ValidationError
from incidents.models import AuditEvent, IncidentReport
from incidents.services.driver import VIEW_STATUS, VIEW_SUBMIT, DriverFlow
from incidents.store import ReportStore

pytestmark = pytest.mark.django_db


@pytest.mark.parametrize('missing', ['location', 'hospital'])
def test_empty_location_or_hospital_never_writes(store, driver_identity, banashankari_form, missing):
    flow = DriverFlow(store, driver_identity)
    form = {**banashankari_form, missing: ''}
    with mock.patch.object(ReportStore, 'insert') as insert:
        with pytest.raises(ValidationError) as exc:
            flow.submit(form)
    insert.assert_not_called()
    assert missing in exc.value.detail
    assert flow.error
    assert flow.loading is False
    assert IncidentReport.objects.count() == 0


def test_hospital_outside_location_set_is_rejected(store, driver_identity, banashankari_form):
    flow = DriverFlow(store, driver_identity)
    with mock.patch.object(ReportStore, 'insert') as insert:
        with pytest.raises(ValidationError) as exc:
            flow.submit({**banashankari_form, 'hospital': 'not-a-hospital'})
    insert.assert_not_called()
    assert 'hospital' in exc.value.detail


def test_unknown_location_is_rejected(store, driver_identity, banashankari_form):
    flow = DriverFlow(store, driver_identity)
    with pytest.raises(ValidationError):
        flow.submit({**banashankari_form, 'location': 'Atlantis'})
    assert IncidentReport.objects.count() == 0


def test_successful_submit_stores_pending_report_for_identity(store, driver, driver_identity, banashankari_form):
    flow = DriverFlow(store, driver_identity)
    flow.update(**banashankari_form)
    report = flow.submit()

    stored = IncidentReport.objects.get()
    assert stored.status == IncidentReport.STATUS_PENDING
    assert stored.submitter_id == driver.id
    assert stored.hospital_name == 'Sagar Hospitals'
    assert stored.persons_injured == 2
    assert report['id'] == str(stored.id)
    assert report['status'] == 'Pending'

    # form cleared, status view active and showing the new report
    assert all(v == '' for v in flow.form.values())
    assert flow.active_view == VIEW_STATUS
    assert flow.request_status['id'] == report['id']
    assert flow.success_message == 'Request sent successfully! Status: Pending'
    assert AuditEvent.objects.filter(action='report_create', object_id=report['id']).exists()


def test_persons_injured_is_optional(store, driver_identity, banashankari_form):
    flow = DriverFlow(store, driver_identity)
    form = dict(banashankari_form)
    form['personsInjured'] = ''
    report = flow.submit(form)
    assert report['personsInjured'] is None


def test_hospital_may_be_given_by_name(store, driver_identity, banashankari_form):
    flow = DriverFlow(store, driver_identity)
    report = flow.submit({**banashankari_form, 'hospital': 'Fortis Hospital'})
    assert report['hospitalId'] == '550e8400-e29b-41d4-a716-446655440001'


def test_store_failure_raises_submission_error_and_leaves_no_record(store, driver_identity, banashankari_form):
    flow = DriverFlow(store, driver_identity)
    with mock.patch.object(IncidentReport.objects, 'create', side_effect=DatabaseError('down')):
        with pytest.raises(SubmissionError):
            flow.submit(banashankari_form)
    assert IncidentReport.objects.count() == 0
    assert flow.error == 'Failed to submit form. Please try again.'
    assert flow.active_view == VIEW_SUBMIT
    assert flow.loading is False


def test_submit_without_identity_is_an_auth_error(store, banashankari_form):
    flow = DriverFlow(store, None)
    with pytest.raises(AuthError):
        flow.submit(banashankari_form)
    assert IncidentReport.objects.count() == 0


def test_latest_report_is_none_without_reports(store, driver_identity):
    flow = DriverFlow(store, driver_identity)
    assert flow.latest_report() is None
    flow.switch_view(VIEW_STATUS)
    assert flow.request_status is None
    assert flow.error == ''


def test_latest_report_is_most_recent_of_current_driver(store, driver, other_driver, driver_identity, banashankari_form):
    flow = DriverFlow(store, driver_identity)
    first = flow.submit(banashankari_form)
    second = flow.submit({**banashankari_form, 'incidentType': 'medical'})
    # push the first report back so created_at ordering is unambiguous
    IncidentReport.objects.filter(id=first['id']).update(created_at=timezone.now() - timedelta(hours=1))
    IncidentReport.objects.create(
        submitter=other_driver, location='Banashankari', incident_type='accident',
        consciousness_state='unconscious', hospital_id='x', hospital_name='Fortis Hospital',
    )
    latest = flow.latest_report()
    assert latest['id'] == second['id']
    assert latest['incidentType'] == 'medical'


def test_accepted_report_carries_navigation_link(store, driver_identity, banashankari_form, settings):
    settings.HOSPITAL_NAVIGATION_URL = 'https://maps.example.com/sagar'
    flow = DriverFlow(store, driver_identity)
    report = flow.submit(banashankari_form)
    assert 'navigationUrl' not in flow.latest_report()
    store.update_status(report['id'], IncidentReport.STATUS_ACCEPTED)
    assert flow.latest_report()['navigationUrl'] == 'https://maps.example.com/sagar'


def test_status_fetch_failure_sets_banner(store, driver_identity):
    flow = DriverFlow(store, driver_identity)
    with mock.patch.object(IncidentReport.objects, 'filter', side_effect=DatabaseError('down')):
        with pytest.raises(FetchError):
            flow.switch_view(VIEW_STATUS)
    assert flow.error == 'Failed to fetch request status'


def test_changing_location_clears_hospital(store, driver_identity):
    flow = DriverFlow(store, driver_identity)
    flow.update(location='Banashankari', hospital='550e8400-e29b-41d4-a716-446655440000')
    flow.set_location('Jayanagar')
    assert flow.form['hospital'] == ''


def test_reselecting_same_location_keeps_hospital(store, driver_identity):
    flow = DriverFlow(store, driver_identity)
    flow.update(location='Banashankari', hospital='550e8400-e29b-41d4-a716-446655440000')
    flow.set_location('Banashankari')
    assert flow.form['hospital'] == '550e8400-e29b-41d4-a716-446655440000'


def test_hospital_given_before_location_is_kept(store, driver, driver_identity):
    flow = DriverFlow(store, driver_identity)
    flow.update(hospital='550e8400-e29b-41d4-a716-446655440000', location='Banashankari',
                incidentType='fire', consciousnessState='conscious')
    assert flow.form['hospital'] == '550e8400-e29b-41d4-a716-446655440000'
    report = flow.submit()
    assert report['hospitalName'] == 'Sagar Hospitals'
    assert report['submitterId'] == driver.pk


def test_unknown_form_field_is_refused(store, driver_identity):
    with pytest.raises(KeyError):
        DriverFlow(store, driver_identity).update(severity='high')
