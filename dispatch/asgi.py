"""
ASGI entry point: Django for HTTP, Channels for the hospital report feed.

``django.setup()`` has to run before the consumers are imported because
they touch the user model.
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dispatch.settings")

import django  # noqa: E402
django.setup()  # noqa: E402

from channels.auth import AuthMiddlewareStack  # noqa: E402
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from django.core.asgi import get_asgi_application  # noqa: E402

from incidents.realtime.middleware import QueryTokenAuthMiddleware  # noqa: E402
from incidents.realtime.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter({
    "http": get_asgi_application(),
    # session cookie first, then ?token= for clients without one
    "websocket": AuthMiddlewareStack(QueryTokenAuthMiddleware(URLRouter(websocket_urlpatterns))),
})
