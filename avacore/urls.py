# avacore/urls.py
from django.contrib import admin
from django.urls import path, include
from core.views import AdminPageView, AuthUIView

urlpatterns = [
    path("django-admin/", admin.site.urls),

    path("api/", include("core.urls")),

    path("auth/", AuthUIView.as_view(), name="auth"),
    path("admin/", AdminPageView.as_view(), name="admin-area"),
    path("admin/<slug:section>/", AdminPageView.as_view(), name="admin-area-section"),
]
