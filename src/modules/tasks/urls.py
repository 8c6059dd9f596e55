"""Task and claim URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.tasks.views import ClaimViewSet, TaskViewSet

router = DefaultRouter(trailing_slash=True)
router.register("tasks", TaskViewSet, basename="task")
router.register("claims", ClaimViewSet, basename="claim")

urlpatterns = router.urls
