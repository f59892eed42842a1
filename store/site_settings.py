# store/site_settings.py - key/value settings table with Django-settings fallbacks
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from django.conf import settings

from .models import SiteSetting
from .utils import to_money

logger = logging.getLogger(__name__)

SHIPPING_COST_DEFAULT = "shipping_cost_default"
FREE_SHIPPING_THRESHOLD = "free_shipping_threshold"
TAX_RATE = "tax_rate"

CHECKOUT_KEYS = (SHIPPING_COST_DEFAULT, FREE_SHIPPING_THRESHOLD, TAX_RATE)


def _defaults() -> Dict[str, str]:
    return {
        SHIPPING_COST_DEFAULT: str(getattr(settings, "STORE_DEFAULT_SHIPPING_COST", "500")),
        FREE_SHIPPING_THRESHOLD: str(getattr(settings, "STORE_FREE_SHIPPING_THRESHOLD", "50000")),
        TAX_RATE: str(getattr(settings, "STORE_TAX_RATE", "0")),
    }


def get_values(keys) -> Dict[str, str]:
    stored = dict(SiteSetting.objects.filter(key__in=list(keys)).values_list("key", "value"))
    defaults = _defaults()
    return {k: stored.get(k, defaults.get(k, "")) for k in keys}


def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
    row = SiteSetting.objects.filter(key=key).values_list("value", flat=True).first()
    if row is not None:
        return row
    return _defaults().get(key, default)


def set_value(key: str, value, type_: str = "string", group: str = "general") -> SiteSetting:
    obj, _ = SiteSetting.objects.update_or_create(
        key=key, defaults={"value": str(value), "type": type_, "group": group}
    )
    return obj


def money_setting(values: Dict[str, str], key: str) -> Decimal:
    raw = values.get(key)
    try:
        value = Decimal(str(raw).strip())
        if value.is_finite():
            return to_money(value)
    except (InvalidOperation, ValueError):
        pass
    fallback = _defaults()[key]
    logger.warning(f"Setting {key}={raw!r} is not a number, using {fallback}")
    return to_money(fallback)


# groups the storefront may read without signing in
PUBLIC_GROUPS = ("general", "checkout", "shipping", "social", "seo")


def public_groups() -> Dict[str, Dict[str, str]]:
    grouped: Dict[str, Dict[str, str]] = {}
    for key, value, group in SiteSetting.objects.filter(group__in=PUBLIC_GROUPS).values_list("key", "value", "group"):
        grouped.setdefault(group, {})[key] = value
    return grouped
