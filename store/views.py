# store/views.py — ViewSets (vitrine, pedidos, produtos e usuários admin) + carrinho, painel, configurações e sessão admin
import logging

from django.contrib.auth import authenticate, get_user_model, login, logout
from django.db.models import ProtectedError
from django.http import HttpRequest, JsonResponse
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response

from . import preferences
from .dashboard import dashboard_stats, parse_period, parse_statuses
from .exceptions import InvalidCredentials, ProductInUse, SelfDeletionNotAllowed
from .models import Product
from .orders import get_order, orders_with_items, place_order, quantities_by_product, update_order
from .serializers import (
    AdminProductSerializer,
    AdminUserSerializer,
    CartCheckSerializer,
    LoginSerializer,
    OrderCreateSerializer,
    OrderReadSerializer,
    OrderUpdateSerializer,
    ProductSerializer,
    StoreSettingsSerializer,
)

logger = logging.getLogger(__name__)


def health(_request: HttpRequest):
    return JsonResponse({"service": "Watch Store Backend", "status": "healthy"})


# -------------------------------------------------
# Vitrine (somente publicados)
# -------------------------------------------------
class SmartwatchViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [AllowAny]
    serializer_class = ProductSerializer
    queryset = Product.objects.filter(is_published=True).prefetch_related("features").order_by("-created_at")
    filter_backends = []
    lookup_value_regex = r"\d+"


# -------------------------------------------------
# Pedidos (criação pública, leitura/atualização admin)
# -------------------------------------------------
class OrderViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = OrderReadSerializer
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ["status", "payment_status", "payment_method"]
    ordering_fields = ["created_at", "grand_total", "status"]
    ordering = ["-created_at"]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return orders_with_items()

    def get_permissions(self):
        if self.action == "create":
            return [AllowAny()]
        return [IsAdminUser()]

    def create(self, request, *args, **kwargs):
        ser = OrderCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        order = place_order(ser.validated_data)
        data = OrderReadSerializer(order, context=self.get_serializer_context()).data
        return Response(data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, *args, **kwargs):
        order = get_order(kwargs["pk"])
        return Response(OrderReadSerializer(order, context=self.get_serializer_context()).data)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        ser = OrderUpdateSerializer(data=request.data, partial=partial)
        ser.is_valid(raise_exception=True)
        order = update_order(kwargs["pk"], ser.validated_data)
        return Response(OrderReadSerializer(order, context=self.get_serializer_context()).data)


# -------------------------------------------------
# Produtos admin: CRUD com features
# -------------------------------------------------
class AdminProductViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAdminUser]
    serializer_class = AdminProductSerializer
    queryset = Product.objects.all().prefetch_related("features").order_by("-created_at")
    filter_backends = [filters.OrderingFilter]
    ordering_fields = ["name", "price", "stock", "created_at"]
    lookup_value_regex = r"\d+"

    def perform_destroy(self, instance):
        try:
            instance.delete()
        except ProtectedError as exc:
            raise ProductInUse() from exc
        logger.info("Produto %s removido", instance.pk)


# -------------------------------------------------
# Carrinho: revalida estoque local do cliente
# -------------------------------------------------
@api_view(["POST"])
@permission_classes([AllowAny])
def cart_check(request):
    """
    Body: {"items": [{"product_id": 1, "quantity": 2}, ...]}
    Retorna cada linha com stock/preço atuais e se o total pedido do produto cabe no estoque.
    """
    ser = CartCheckSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    items = ser.validated_data["items"]

    wanted = quantities_by_product(items)
    products = Product.objects.filter(is_published=True).in_bulk(list(wanted))

    lines = []
    for it in items:
        p = products.get(it["product_id"])
        lines.append({
            "product_id": it["product_id"],
            "quantity": it["quantity"],
            "name": p.name if p else None,
            "price": str(p.price) if p else None,
            "stock": p.stock if p else 0,
            "available": bool(p) and p.stock >= wanted[it["product_id"]],
        })
    return Response({"ok": all(line["available"] for line in lines), "items": lines})


# -------------------------------------------------
# Painel admin
# -------------------------------------------------
@api_view(["GET"])
@permission_classes([IsAdminUser])
def dashboard(request):
    qp = request.query_params
    try:
        start, end = parse_period(qp.get("startDate"), qp.get("endDate"))
        statuses = parse_statuses(qp.get("status"))
    except ValueError as exc:
        raise ValidationError({"period": [str(exc)]})
    return Response(dashboard_stats(start, end, statuses))


# -------------------------------------------------
# Sessão admin (login por e-mail/senha, só staff)
# -------------------------------------------------
@api_view(["POST"])
@permission_classes([AllowAny])
def auth_login(request):
    ser = LoginSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    user = authenticate(
        request,
        username=ser.validated_data["email"].strip().lower(),
        password=ser.validated_data["password"],
    )
    if user is None or not user.is_staff:
        logger.warning("Login admin recusado para %s", ser.validated_data["email"])
        raise InvalidCredentials()
    login(request, user)
    return Response({"authenticated": True, "email": user.email or user.get_username()})


@api_view(["POST"])
@permission_classes([AllowAny])
def auth_logout(request):
    logout(request)
    return Response({"authenticated": False})


@api_view(["GET"])
@permission_classes([AllowAny])
def auth_session(request):
    user = request.user
    if not (user.is_authenticated and user.is_staff):
        return Response({"authenticated": False, "email": None})
    return Response({"authenticated": True, "email": user.email or user.get_username()})


# -------------------------------------------------
# Usuários admin (staff)
# -------------------------------------------------
class AdminUserViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAdminUser]
    serializer_class = AdminUserSerializer
    filter_backends = []
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return get_user_model().objects.filter(is_staff=True).order_by("id")

    def update(self, request, *args, **kwargs):
        # PUT também aceita só e-mail ou só senha
        kwargs["partial"] = True
        return super().update(request, *args, **kwargs)

    def perform_create(self, serializer):
        user = serializer.save()
        logger.info("Usuário admin %s criado por %s", user.email, self.request.user)

    def perform_destroy(self, instance):
        if instance.pk == self.request.user.pk:
            raise SelfDeletionNotAllowed()
        instance.delete()
        logger.info("Usuário admin %s removido por %s", instance.email, self.request.user)


# -------------------------------------------------
# Configurações da loja
# -------------------------------------------------
@api_view(["GET", "PUT"])
@permission_classes([IsAdminUser])
def store_settings(request):
    if request.method == "GET":
        return Response(preferences.load_settings())
    ser = StoreSettingsSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    return Response(preferences.save_settings(ser.validated_data))
