# store/integrations.py — pontos de integração pós-pedido (gateway de pagamento / e-mail)
# Ambos são stubs: só registram em log. Chamados via transaction.on_commit.
import logging

from django.conf import settings

from . import preferences
from .models import Product

logger = logging.getLogger(__name__)


def start_payment(order) -> None:
    logger.info(
        "Pagamento do pedido %s (%s, %s) aguardando integração com gateway",
        order.pk, order.payment_method, order.grand_total,
    )


def notify_new_order(order) -> None:
    recipients = getattr(settings, "NOTIFY_NEW_ORDER_TO", [])
    if not recipients or not preferences.is_enabled("order_notifications"):
        return
    logger.info("Notificação do pedido %s para %s não enviada (e-mail desativado)", order.pk, recipients)


def alert_low_stock(order) -> None:
    if not preferences.is_enabled("low_stock_alerts"):
        return
    products = Product.objects.filter(order_items__order=order).distinct()
    for product in products:
        if product.is_low_stock:
            logger.warning("Estoque baixo: %s (%s unidades)", product, product.stock)


def order_created(order) -> None:
    start_payment(order)
    notify_new_order(order)
    alert_low_stock(order)
