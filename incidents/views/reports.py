"""
Incident report endpoints for drivers and hospitals.

Each handler builds the matching flow for the signed-in identity and
delegates to it, so the HTTP surface and the in-process components share
one implementation of validation, status transitions and the merge of
local updates.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import ValidationError
from ..models import IncidentReport
from ..permissions import IsDriverRole, IsHospitalRole
from ..serializers.reports import StatusChangeSerializer
from ..services.driver import DriverFlow
from ..services.hospital import HospitalDashboard
from ..session import Identity, IdentityContext
from ..store import ReportStore


def _session(request) -> IdentityContext:
    # DRF resolves request.user from the token or JWT, so the context is built per request
    return IdentityContext(Identity.from_user(request.user))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriverRole])
def submit_report(request):
    """File one incident report for the signed-in driver."""
    flow = DriverFlow(ReportStore(), _session(request))
    report = flow.submit(request.data)
    return Response({
        'ok': True,
        'message': flow.success_message,
        'data': report,
        'status': flow.request_status,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDriverRole])
def latest_report(request):
    """Return the driver's most recent report; ``data`` is null when there is none."""
    flow = DriverFlow(ReportStore(), _session(request))
    return Response({'ok': True, 'data': flow.refresh_status()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHospitalRole])
def list_reports(request):
    """All reports, newest first, as the dashboard's initial fetch."""
    dashboard = HospitalDashboard(ReportStore(), _session(request))
    reports = dashboard.load()
    return Response({'ok': True, 'data': reports, 'total': len(reports)})


def _decide(request, report_id, new_status: str) -> Response:
    dashboard = HospitalDashboard(ReportStore(), _session(request))
    dashboard.load()
    report = dashboard.set_status(report_id, new_status)
    return Response({'ok': True, 'data': report})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsHospitalRole])
def accept_report(request, report_id):
    return _decide(request, report_id, IncidentReport.STATUS_ACCEPTED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsHospitalRole])
def reject_report(request, report_id):
    return _decide(request, report_id, IncidentReport.STATUS_REJECTED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsHospitalRole])
def update_report_status(request, report_id):
    """Generic form of accept/reject taking ``{"status": "Accepted"|"Rejected"}``."""
    s = StatusChangeSerializer(data=request.data)
    if not s.is_valid():
        raise ValidationError('Status must be Accepted or Rejected', detail=s.errors)
    return _decide(request, report_id, s.validated_data['status'])
