# store/urls.py — rotas da API (montadas em /api/)
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter(trailing_slash=True)
router.register(r"smartwatches", views.SmartwatchViewSet, basename="smartwatch")
router.register(r"orders", views.OrderViewSet, basename="order")
router.register(r"admin/products", views.AdminProductViewSet, basename="admin-product")
router.register(r"admin/users", views.AdminUserViewSet, basename="admin-user")

urlpatterns = [
    path("health", views.health),
    path("health/", views.health, name="health"),

    # carrinho (revalidação de estoque)
    path("cart/check/", views.cart_check, name="cart-check"),

    # painel admin
    path("admin/dashboard/stats/", views.dashboard, name="dashboard-stats"),
    path("admin/settings/", views.store_settings, name="admin-settings"),

    # sessão admin
    path("auth/login/", views.auth_login, name="auth-login"),
    path("auth/logout/", views.auth_logout, name="auth-logout"),
    path("auth/session/", views.auth_session, name="auth-session"),

    # router por último
    path("", include(router.urls)),
]
