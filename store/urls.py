# store/urls.py - every /api/ route of the store
from django.http import JsonResponse
from django.urls import include, path
from rest_framework.routers import DefaultRouter, SimpleRouter

from . import account_views, admin_views, cart, views


def health(_request):
    return JsonResponse({"service": "PakAutoSe Backend", "status": "healthy"})


# ----------------- DRF routers -----------------
router = DefaultRouter()
router.register(r"categories", views.CategoryViewSet, basename="category")
router.register(r"generators", views.GeneratorViewSet, basename="generator")
router.register(r"parts", views.PartViewSet, basename="part")
router.register(r"orders", views.OrderViewSet, basename="order")
router.register(r"services", views.ServiceRequestViewSet, basename="service")

admin_router = SimpleRouter()
admin_router.register(r"orders", admin_views.AdminOrderViewSet, basename="admin-order")
admin_router.register(r"services", admin_views.AdminServiceRequestViewSet, basename="admin-service")
admin_router.register(r"coupons", admin_views.AdminCouponViewSet, basename="admin-coupon")
admin_router.register(r"users", admin_views.AdminUserViewSet, basename="admin-user")
admin_router.register(r"generators", admin_views.AdminGeneratorViewSet, basename="admin-generator")
admin_router.register(r"parts", admin_views.AdminPartViewSet, basename="admin-part")
admin_router.register(r"categories", admin_views.AdminCategoryViewSet, basename="admin-category")


# ----------------- URL patterns -----------------
urlpatterns = [
    path("health", health),
    path("health/", health),

    # Accounts
    path("auth/register/",     account_views.register,     name="auth-register"),
    path("auth/verify-email/", account_views.verify_email, name="auth-verify-email"),
    path("auth/login/",        account_views.login_view,   name="auth-login"),
    path("auth/logout/",       account_views.logout_view,  name="auth-logout"),
    path("auth/me/",           account_views.me,           name="auth-me"),
    path("auth/forgot-password/", account_views.forgot_password, name="auth-forgot-password"),
    path("auth/reset-password/",  account_views.reset_password,  name="auth-reset-password"),

    # Profile
    path("user/profile/",  account_views.profile,         name="user-profile"),
    path("user/password/", account_views.change_password, name="user-password"),

    # Notifications
    path("notifications/",               account_views.notification_list,     name="notification-list"),
    path("notifications/read-all/",      account_views.notification_read_all, name="notification-read-all"),
    path("notifications/<int:pk>/read/", account_views.notification_read,     name="notification-read"),

    # Cart
    path("cart/", cart.cart_view, name="cart"),

    # Coupons
    path("coupons/validate/", views.coupon_validate, name="coupon-validate"),

    # Storefront settings
    path("settings/", views.public_settings, name="public-settings"),

    # Back-office
    path("admin/stats/",    admin_views.admin_stats,    name="admin-stats"),
    path("admin/settings/", admin_views.admin_settings, name="admin-settings"),
    path("admin/", include(admin_router.urls)),

    # Router last
    path("", include(router.urls)),
]
