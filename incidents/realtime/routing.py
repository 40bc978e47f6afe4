from django.urls import path

from incidents.realtime.consumers import ReportFeedConsumer

websocket_urlpatterns = [
    path("ws/reports/", ReportFeedConsumer.as_asgi()),
]
