# core/urls.py
from django.urls import path
from .views import *

urlpatterns = [
    # === Proxy API (identity service) ===
    path("login/", ProxyLoginView.as_view(), name="proxy-login"),
    path("register/", ProxyRegistrationView.as_view(), name="proxy-register"),
    path("recovery/", ProxyRecoveryView.as_view(), name="proxy-recovery"),

    # === Session ===
    path("auth/logout/", LogoutView.as_view(), name="auth-logout"),
    path("auth/session/", SessionView.as_view(), name="auth-session"),
    path("auth/route/", RouteView.as_view(), name="auth-route"),
    path("whoami/", WhoAmIView.as_view(), name="whoami"),

    # === Webhook ===
    path("kratos/hooks/registration/", KratosRegistrationHookView.as_view(), name="kratos-registration-hook"),

    # === Society (admin) ===
    path("admin/setup/", SocietySetupView.as_view(), name="society-setup"),
    path("admin/presignup-setup/", PresignupSetupView.as_view(), name="presignup-setup"),
    path("admin/society/", AdminSocietyView.as_view(), name="admin-society"),
    path("admin/users/", AdminUsersView.as_view(), name="admin-users"),

    # === Profile ===
    path("profile/", ProfileView.as_view(), name="profile"),
]
