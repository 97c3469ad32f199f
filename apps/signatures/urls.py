from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import SignatureRequestViewSet, esign_webhook

router = DefaultRouter()
router.register(r"requests", SignatureRequestViewSet, basename="signature-request")

urlpatterns = [
    path("webhook/", esign_webhook, name="esign-webhook"),
    path("", include(router.urls)),
]
