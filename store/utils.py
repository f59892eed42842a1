# store/utils.py - reference numbers and money helpers
import secrets
import string
import time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.utils import timezone

_B36 = string.digits + string.ascii_uppercase
CENT = Decimal("0.01")


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def _rand(k: int) -> str:
    return "".join(secrets.choice(_B36) for _ in range(k))


def generate_order_number() -> str:
    return f"ORD-{_base36(int(time.time() * 1000))}-{_rand(4)}"


def generate_service_request_number() -> str:
    return f"SRV-{_base36(int(time.time() * 1000))}-{_rand(4)}"


def generate_invoice_number() -> str:
    now = timezone.localtime()
    return f"INV-{now.year}{now.month:02d}-{_rand(6)}"


def to_money(value, default="0") -> Decimal:
    """Decimal with 2 places; accepts str/int/float/Decimal, falls back to `default`."""
    try:
        d = Decimal(str(value)) if value is not None and str(value).strip() != "" else Decimal(default)
    except (InvalidOperation, ValueError):
        d = Decimal(default)
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


def format_pkr(amount) -> str:
    """Rs. 12,500 (no decimals, like the storefront shows)."""
    value = to_money(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"Rs. {value:,}"
