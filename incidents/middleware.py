from django.http import HttpResponseRedirect

from .session import Identity, resolve_route


class RouteGateMiddleware:
    """Attach ``request.identity`` and keep role pages behind sign-in.

    Only page routes are gated here; ``/api/`` endpoints answer with
    401/403 through their DRF permissions instead of redirecting.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.identity = Identity.from_user(getattr(request, 'user', None))
        target = resolve_route(request.path or '/', request.identity)
        if target and target != request.path:
            return HttpResponseRedirect(target)
        return self.get_response(request)
