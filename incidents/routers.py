"""
URL mappings for the dispatch API and the role route trees.

API paths carry no trailing slash; the page trees end in one so that
``/driver/...`` and ``/hospital/...`` match the route gate's prefixes.
"""
from django.urls import path, include

from .auth_views import jwt_refresh_view, login_view, logout_view, me_view, register_view
from .views import health
from .views.pages import driver_home, hospital_home, login_page, reference_data
from .views.reports import (
    accept_report,
    latest_report,
    list_reports,
    reject_report,
    submit_report,
    update_report_status,
)


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', logout_view, name='logout_view'),
    path('api/auth/me', me_view, name='me_view'),
    # Reference data for the driver form
    path('api/reference', reference_data, name='reference_data'),
    # Driver
    path('api/driver/reports', submit_report, name='submit_report'),
    path('api/driver/reports/latest', latest_report, name='latest_report'),
    # Hospital
    path('api/hospital/reports', list_reports, name='list_reports'),
    path('api/hospital/reports/<uuid:report_id>/accept', accept_report, name='accept_report'),
    path('api/hospital/reports/<uuid:report_id>/reject', reject_report, name='reject_report'),
    path('api/hospital/reports/<uuid:report_id>/status', update_report_status, name='update_report_status'),
    # Role route trees
    path('login', login_page, name='login_page'),
    path('driver/', driver_home, name='driver_home'),
    path('hospital/', hospital_home, name='hospital_home'),
]
