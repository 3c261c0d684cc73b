# store/admin.py
from django.contrib import admin
from django.utils.html import format_html

from .models import Feature, Order, OrderItem, Product
from .serializers import format_brl


# ===============================
# Product (+ features inline)
# ===============================
class FeatureInline(admin.TabularInline):
    model = Feature
    extra = 1


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "brand", "price_fmt", "stock", "critical_stock", "low_stock", "is_published", "thumb")
    list_filter = ("brand", "is_published")
    search_fields = ("name", "brand")
    inlines = [FeatureInline]
    readonly_fields = ("created_at", "updated_at")
    fieldsets = (
        (None, {"fields": ("name", "brand", "description", "image_url", "is_published")}),
        ("Preço e estoque", {"fields": ("price", "stock", "critical_stock")}),
        ("Datas", {"fields": ("created_at", "updated_at")}),
    )

    def save_model(self, request, obj, form, change):
        if not change:
            return super().save_model(request, obj, form, change)
        # só os campos alterados: o stock carregado no form pode já estar desatualizado
        changed = [name for name in form.changed_data if name in self._editable_columns()]
        if "stock" in changed:
            Product.objects.select_for_update().get(pk=obj.pk)
        obj.save(update_fields=[*changed, "updated_at"])

    @staticmethod
    def _editable_columns():
        return {f.name for f in Product._meta.concrete_fields if f.editable}

    @admin.display(description="Preço")
    def price_fmt(self, obj):
        return format_brl(obj.price)

    @admin.display(description="Estoque baixo", boolean=True)
    def low_stock(self, obj):
        return obj.is_low_stock

    @admin.display(description="Thumb")
    def thumb(self, obj):
        if not obj.image_url:
            return "—"
        return format_html(
            '<img src="{}" style="height:40px;width:40px;object-fit:cover;border-radius:6px;" />',
            obj.image_url,
        )


# ===============================
# Order / OrderItem (somente leitura)
# (status e estoque mudam só pela API de pedidos)
# ===============================
class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("product", "quantity", "price")
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "customer_name", "status", "payment_status", "payment_method", "grand_total", "created_at")
    list_filter = ("status", "payment_status", "payment_method")
    search_fields = ("customer_name", "email", "tracking_code")
    inlines = [OrderItemInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
