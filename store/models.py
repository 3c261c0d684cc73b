# store/models.py — catálogo (Product, Feature) e pedidos (Order, OrderItem)
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


# --------- Produtos (smartwatches) ---------
class Product(models.Model):
    name = models.CharField(max_length=255)
    brand = models.CharField(max_length=120)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))]
    )
    image_url = models.URLField(blank=True, default="")
    is_published = models.BooleanField(default=False)

    # só é alterado pelo motor de pedidos ou pela edição direta do admin
    stock = models.PositiveIntegerField(default=0)
    critical_stock = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=models.Q(stock__gte=0), name="product_stock_non_negative"),
        ]

    def __str__(self):
        return f"{self.brand} {self.name}"

    @property
    def is_low_stock(self) -> bool:
        return self.critical_stock is not None and self.stock <= self.critical_stock


class Feature(models.Model):
    product = models.ForeignKey(Product, related_name="features", on_delete=models.CASCADE)
    name = models.CharField(max_length=120)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return self.name


# --------- Pedidos ---------
class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pendente"
        CONFIRMED = "CONFIRMED", "Confirmado"
        PREPARING = "PREPARING", "Em preparação"
        SHIPPED = "SHIPPED", "Enviado"
        DELIVERED = "DELIVERED", "Entregue"
        CANCELLED = "CANCELLED", "Cancelado"

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", "Pendente"
        PAID = "PAID", "Pago"
        FAILED = "FAILED", "Falhou"
        REFUNDED = "REFUNDED", "Reembolsado"

    class PaymentMethod(models.TextChoices):
        CREDIT_CARD = "CREDIT_CARD", "Cartão de crédito"
        DEBIT_CARD = "DEBIT_CARD", "Cartão de débito"
        PIX = "PIX", "PIX"
        BANK_SLIP = "BANK_SLIP", "Boleto"

    customer_name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255)
    phone = models.CharField(max_length=40)
    address = models.TextField()
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )

    # totais calculados no servidor a partir do preço do produto
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    grand_total = models.DecimalField(max_digits=12, decimal_places=2)

    tracking_code = models.CharField(max_length=120, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Pedido #{self.id} - {self.customer_name}"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey(Product, related_name="order_items", on_delete=models.PROTECT)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    # preço do produto no momento do pedido
    price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.quantity}x {self.product.name} no Pedido #{self.order_id}"

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


# --------- Configurações da loja (chave/valor) ---------
class Setting(models.Model):
    key = models.CharField(max_length=80, unique=True)
    value = models.CharField(max_length=255)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self):
        return f"{self.key}={self.value}"
