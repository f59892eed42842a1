"""
Checkout pricing rules.

Everything here is pure arithmetic over Decimal amounts (PKR, 2 places) plus
the coupon eligibility checks, so the same rules back the checkout, the
coupon preview endpoint and the cart summary.

    total = subtotal + shipping + tax - discount
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.utils import timezone

from . import site_settings
from .models import Coupon, ItemType, Order
from .utils import CENT, to_money

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CheckoutConfig:
    """Shipping/tax knobs read from the settings table"""
    default_shipping: Decimal
    free_shipping_threshold: Decimal
    tax_rate: Decimal  # percent, e.g. 17 -> 17%

    @classmethod
    def load(cls) -> "CheckoutConfig":
        values = site_settings.get_values(site_settings.CHECKOUT_KEYS)
        return cls(
            default_shipping=site_settings.money_setting(values, site_settings.SHIPPING_COST_DEFAULT),
            free_shipping_threshold=site_settings.money_setting(values, site_settings.FREE_SHIPPING_THRESHOLD),
            tax_rate=site_settings.money_setting(values, site_settings.TAX_RATE),
        )


@dataclass(frozen=True)
class Quote:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    coupon: Optional[Coupon] = None

    def as_dict(self):
        return {
            "subtotal": str(self.subtotal),
            "shipping_cost": str(self.shipping),
            "tax": str(self.tax),
            "discount": str(self.discount),
            "total": str(self.total),
            "coupon_code": self.coupon.code if self.coupon else "",
        }


def _q(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def shipping_cost(subtotal: Decimal, cfg: CheckoutConfig) -> Decimal:
    if subtotal >= cfg.free_shipping_threshold:
        return ZERO
    return _q(cfg.default_shipping)


def tax_amount(subtotal: Decimal, cfg: CheckoutConfig) -> Decimal:
    return _q(subtotal * cfg.tax_rate / HUNDRED)


def coupon_discount(coupon: Coupon, subtotal: Decimal, shipping: Decimal) -> Decimal:
    """
    PERCENTAGE    -> subtotal * value%, clamped to max_discount when set
    FIXED_AMOUNT  -> value
    FREE_SHIPPING -> the shipping that would otherwise be charged

    Neither of the first two ever exceeds the subtotal they are taken from.
    """
    value = to_money(coupon.value)
    if coupon.type == Coupon.Type.PERCENTAGE:
        amount = _q(subtotal * value / HUNDRED)
        if coupon.max_discount:
            amount = min(amount, to_money(coupon.max_discount))
        return min(amount, subtotal)
    if coupon.type == Coupon.Type.FIXED_AMOUNT:
        return min(value, subtotal)
    if coupon.type == Coupon.Type.FREE_SHIPPING:
        return shipping
    return ZERO


def coupon_uses_by(coupon: Coupon, user) -> int:
    return (
        Order.objects.filter(user=user, coupon_code__iexact=coupon.code)
        .exclude(status__in=[Order.Status.CANCELLED, Order.Status.REFUNDED])
        .count()
    )


def coupon_problem(coupon: Optional[Coupon], subtotal: Decimal, user=None, now=None) -> Optional[str]:
    """Returns why the coupon can't be used, or None when it can."""
    if coupon is None:
        return "Coupon code does not exist"
    now = now or timezone.now()
    if not coupon.is_active:
        return "This coupon is no longer active"
    if coupon.starts_at and coupon.starts_at > now:
        return "This coupon is not yet active"
    if coupon.expires_at and coupon.expires_at < now:
        return "This coupon has expired"
    if coupon.usage_limit and coupon.usage_count >= coupon.usage_limit:
        return "This coupon has reached its usage limit"
    if user is not None and coupon.per_user_limit and coupon.per_user_limit > 0:
        if coupon_uses_by(coupon, user) >= coupon.per_user_limit:
            return f"You have already used this coupon {coupon.per_user_limit} time(s)"
    if coupon.min_order_amount and coupon.min_order_amount > 0 and subtotal < coupon.min_order_amount:
        return f"Minimum order amount is PKR {to_money(coupon.min_order_amount):,.0f}"
    return None


def coupon_is_applicable(coupon: Optional[Coupon], subtotal: Decimal, user=None, now=None) -> bool:
    return coupon_problem(coupon, to_money(subtotal), user=user, now=now) is None


def coupon_covers(coupon: Coupon, item_type: str) -> bool:
    if item_type == ItemType.GENERATOR:
        return coupon.applies_to_generators
    if item_type == ItemType.PART:
        return coupon.applies_to_parts
    return False


def coupon_base(coupon: Optional[Coupon], lines) -> Decimal:
    """Sum of (item_type, line_total) pairs the coupon is allowed to discount."""
    if coupon is None:
        return sum((to_money(total) for _, total in lines), ZERO)
    return sum((to_money(total) for item_type, total in lines if coupon_covers(coupon, item_type)), ZERO)


def find_coupon(code: str) -> Optional[Coupon]:
    code = (code or "").strip()
    if not code:
        return None
    return Coupon.objects.filter(code__iexact=code).first()


def build_quote(subtotal, cfg: CheckoutConfig, coupon: Optional[Coupon] = None, user=None, now=None,
                eligible_subtotal=None) -> Quote:
    """
    Prices an order. A coupon that fails any of its own constraints is
    dropped silently and the quote carries no discount.

    `eligible_subtotal` is the part of the subtotal the coupon may discount
    (see coupon_base); the minimum-order check still uses the full subtotal.
    """
    subtotal = to_money(subtotal)
    shipping = shipping_cost(subtotal, cfg)
    tax = tax_amount(subtotal, cfg)
    base = subtotal if eligible_subtotal is None else min(to_money(eligible_subtotal), subtotal)

    applied = None
    discount = ZERO
    if coupon is not None and coupon_is_applicable(coupon, subtotal, user=user, now=now):
        applied = coupon
        discount = coupon_discount(coupon, base, shipping)

    total = _q(subtotal + shipping + tax - discount)
    return Quote(subtotal=subtotal, shipping=shipping, tax=tax, discount=discount, total=total, coupon=applied)
