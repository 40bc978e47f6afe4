"""
Top-level routes: admin, the incidents app and its OpenAPI docs
(``/swagger/``, ``/redoc/``, raw schema at ``/swagger.json``).
"""
from django.contrib import admin
from django.urls import include, path, re_path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

api_info = openapi.Info(
    title="Emergency Dispatch API",
    default_version='v1',
    description=(
        "Drivers file incident reports against a nearby hospital; hospital "
        "desks see every report live and accept or reject it."
    ),
)

schema_view = get_schema_view(api_info, public=True, permission_classes=(permissions.AllowAny,))

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('incidents.routers')),
    re_path(r'^swagger(?P<format>\.json|\.yaml)$', schema_view.without_ui(cache_timeout=0), name='schema-json'),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]
