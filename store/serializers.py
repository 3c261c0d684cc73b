# store/serializers.py — catálogo + pedidos com serializers separados p/ escrita/leitura
# Os serializers de escrita só validam o formato; regras de estoque/status ficam em store/orders.py.
from decimal import ROUND_HALF_UP, Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from rest_framework import serializers

from .models import Feature, Order, OrderItem, Product


def format_brl(value) -> str:
    """Decimal(1234.5) -> 'R$ 1.234,50'"""
    cents = int((Decimal(value or 0) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    reais, cent = divmod(cents, 100)
    return f"R$ {reais:,}".replace(",", ".") + f",{cent:02d}"


# --------- Catálogo ---------
class FeatureSerializer(serializers.ModelSerializer):
    class Meta:
        model = Feature
        fields = ("id", "name")


class ProductSerializer(serializers.ModelSerializer):
    features = FeatureSerializer(many=True, read_only=True)
    price_formatted = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = (
            "id",
            "name",
            "brand",
            "description",
            "price",
            "price_formatted",
            "image_url",
            "stock",
            "features",
            "created_at",
        )

    def get_price_formatted(self, obj):
        return format_brl(obj.price)


# --------- Catálogo (admin) ---------
class FeatureWriteSerializer(serializers.Serializer):
    id = serializers.IntegerField(required=False)
    name = serializers.CharField(max_length=120)


class AdminProductSerializer(serializers.ModelSerializer):
    features = FeatureWriteSerializer(many=True, required=False)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0"))
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = (
            "id",
            "name",
            "brand",
            "description",
            "price",
            "image_url",
            "is_published",
            "stock",
            "critical_stock",
            "is_low_stock",
            "features",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "created_at", "updated_at")

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data["features"] = FeatureSerializer(instance.features.all(), many=True).data
        return data

    @transaction.atomic
    def create(self, validated_data):
        features = validated_data.pop("features", [])
        product = Product.objects.create(**validated_data)
        Feature.objects.bulk_create([Feature(product=product, name=f["name"]) for f in features])
        return product

    @transaction.atomic
    def update(self, instance, validated_data):
        features = validated_data.pop("features", None)
        if "stock" in validated_data:
            # edição direta do estoque espera pedidos em andamento no mesmo produto
            Product.objects.select_for_update().get(pk=instance.pk)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        # só as colunas enviadas; o stock da instância pode estar desatualizado
        instance.save(update_fields=[*validated_data, "updated_at"])
        instance.refresh_from_db(fields=["stock"])
        if features is not None:
            self._sync_features(instance, features)
        return instance

    def _sync_features(self, product, features):
        """
        Itens com id existente são renomeados, sem id são criados,
        e os que sumiram do payload são removidos.
        """
        existing = {f.id: f for f in product.features.all()}
        keep = set()
        for item in features:
            fid = item.get("id")
            if fid in existing:
                keep.add(fid)
                feature = existing[fid]
                if feature.name != item["name"]:
                    feature.name = item["name"]
                    feature.save(update_fields=["name"])
            else:
                Feature.objects.create(product=product, name=item["name"])
        product.features.exclude(id__in=keep).filter(id__in=list(existing)).delete()


# ===========================
#  PEDIDO (WRITE)
# ===========================
class OrderLineSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    # preço informado pelo cliente: aceito, mas o total usa o preço do produto
    price = serializers.DecimalField(
        max_digits=None, decimal_places=None, min_value=Decimal("0.01")
    )


class OrderCreateSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=255)
    email = serializers.EmailField(max_length=255)
    phone = serializers.CharField(max_length=40)
    address = serializers.CharField()
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    items = OrderLineSerializer(many=True, allow_empty=False)
    total_amount = serializers.DecimalField(
        max_digits=None, decimal_places=None, min_value=Decimal("0.01")
    )
    shipping_cost = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0")
    )


class OrderUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices)
    payment_status = serializers.ChoiceField(choices=Order.PaymentStatus.choices)
    tracking_code = serializers.CharField(
        max_length=120, required=False, allow_blank=True, allow_null=True
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


# ===========================
#  PEDIDO (READ)
# ===========================
class OrderItemReadSerializer(serializers.ModelSerializer):
    product = ProductSerializer(read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ("id", "product_id", "product", "quantity", "price", "line_total")


class OrderReadSerializer(serializers.ModelSerializer):
    items = OrderItemReadSerializer(many=True, read_only=True)
    grand_total_formatted = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = (
            "id",
            "customer_name",
            "email",
            "phone",
            "address",
            "payment_method",
            "status",
            "payment_status",
            "total_amount",
            "shipping_cost",
            "grand_total",
            "grand_total_formatted",
            "tracking_code",
            "notes",
            "items",
            "created_at",
            "updated_at",
        )

    def get_grand_total_formatted(self, obj):
        return format_brl(obj.grand_total)


# --------- Carrinho (revalidação de estoque) ---------
class CartLineSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class CartCheckSerializer(serializers.Serializer):
    items = CartLineSerializer(many=True, allow_empty=False)


# --------- Sessão admin ---------
class LoginSerializer(serializers.Serializer):
    email = serializers.CharField(max_length=255)
    password = serializers.CharField(trim_whitespace=False)


# --------- Usuários admin ---------
class AdminUserSerializer(serializers.ModelSerializer):
    """Usuário staff identificado pelo e-mail (que também é o username). Senha nunca sai na resposta."""

    email = serializers.EmailField(max_length=150)
    password = serializers.CharField(write_only=True, min_length=6, trim_whitespace=False)
    created_at = serializers.DateTimeField(source="date_joined", read_only=True)

    class Meta:
        model = get_user_model()
        fields = ("id", "email", "password", "created_at")

    def validate_email(self, value):
        value = value.strip().lower()
        User = get_user_model()
        taken = User.objects.filter(Q(username__iexact=value) | Q(email__iexact=value))
        if self.instance is not None:
            taken = taken.exclude(pk=self.instance.pk)
        if taken.exists():
            raise serializers.ValidationError("E-mail já cadastrado.")
        return value

    def create(self, validated_data):
        user = get_user_model()(
            username=validated_data["email"], email=validated_data["email"], is_staff=True
        )
        user.set_password(validated_data["password"])
        user.save()
        return user

    def update(self, instance, validated_data):
        if "email" in validated_data:
            instance.username = instance.email = validated_data["email"]
        if "password" in validated_data:
            instance.set_password(validated_data["password"])
        instance.save()
        return instance


# --------- Configurações da loja ---------
class StoreSettingsSerializer(serializers.Serializer):
    email_notifications = serializers.BooleanField()
    order_notifications = serializers.BooleanField()
    low_stock_alerts = serializers.BooleanField()
    maintenance_mode = serializers.BooleanField()
