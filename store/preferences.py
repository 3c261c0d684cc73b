# store/preferences.py — toggles da loja guardados como chave/valor na tabela Setting
import logging
from typing import Dict

from django.db import transaction

from .models import Setting

logger = logging.getLogger(__name__)

# valores usados enquanto a chave não foi salva pelo admin
DEFAULTS: Dict[str, bool] = {
    "email_notifications": True,
    "order_notifications": True,
    "low_stock_alerts": True,
    "maintenance_mode": False,
}


def _as_bool(raw: str) -> bool:
    return raw == "true"


def load_settings() -> Dict[str, bool]:
    stored = Setting.objects.filter(key__in=DEFAULTS).values_list("key", "value")
    return {**DEFAULTS, **{key: _as_bool(value) for key, value in stored}}


def is_enabled(key: str) -> bool:
    row = Setting.objects.filter(key=key).values_list("value", flat=True).first()
    return DEFAULTS[key] if row is None else _as_bool(row)


@transaction.atomic
def save_settings(values: Dict[str, bool]) -> Dict[str, bool]:
    for key, value in values.items():
        Setting.objects.update_or_create(key=key, defaults={"value": "true" if value else "false"})
    logger.info("Configurações atualizadas: %s", values)
    return load_settings()
