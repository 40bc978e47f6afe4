"""
Error taxonomy for the dispatch workflow and the unified API error envelope.

Components raise the typed errors below; the DRF exception handler turns
them (and DRF's own exceptions) into ``{'ok': False, 'error': {...}}``.
"""
from __future__ import annotations

from typing import Any, Optional

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler


class DispatchError(Exception):
    """Base class for failures surfaced to the user at a component boundary."""
    code = 'dispatch_error'
    status_code = 400
    default_message = 'Something went wrong. Please try again.'

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None, detail: Any = None,
                 status_code: Optional[int] = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.detail = detail
        super().__init__(self.message)

    def as_dict(self) -> dict:
        error: dict[str, Any] = {'code': self.code, 'message': self.message}
        if self.detail is not None:
            error['fields'] = self.detail
        return error


class ValidationError(DispatchError):
    """A required field is missing or invalid; no store round trip was made."""
    code = 'validation_error'
    default_message = 'Please select a hospital and type of incident'


class AuthError(DispatchError):
    code = 'auth_error'
    status_code = 401
    default_message = 'An unexpected error occurred. Please try again.'


class SubmissionError(DispatchError):
    code = 'submission_failed'
    status_code = 503
    default_message = 'Failed to submit form. Please try again.'


class UpdateError(DispatchError):
    code = 'update_failed'
    status_code = 409
    default_message = 'Failed to update submission'


class FetchError(DispatchError):
    code = 'fetch_failed'
    status_code = 503
    default_message = 'Failed to load submissions'


def api_exception_handler(exc, context):
    if isinstance(exc, DispatchError):
        return Response({'ok': False, 'error': exc.as_dict()}, status=exc.status_code)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)
