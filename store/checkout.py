# store/checkout.py - cart/client items -> priced Order (one transaction, row locks on stock)
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from django.db import transaction
from django.db.models import F

from . import notifications
from .exceptions import CheckoutError
from .models import CartItem, Coupon, Generator, ItemType, Notification, Order, OrderItem, Part, User
from .pricing import CheckoutConfig, Quote, build_quote, coupon_base
from .utils import generate_invoice_number, generate_order_number, format_pkr

logger = logging.getLogger(__name__)

PRODUCT_MODELS = {
    ItemType.GENERATOR: Generator,
    ItemType.PART: Part,
}


def product_model(item_type: str):
    try:
        return PRODUCT_MODELS[ItemType(item_type)]
    except ValueError:
        raise CheckoutError("Invalid item type")


@dataclass
class CheckoutLine:
    item_type: str
    product_id: int
    quantity: int


def _merge(lines: List[CheckoutLine]) -> List[CheckoutLine]:
    """Same product twice -> one line with the summed quantity (first position wins)."""
    merged: Dict[Tuple[str, int], CheckoutLine] = {}
    for line in lines:
        key = (str(line.item_type), int(line.product_id))
        if key in merged:
            merged[key].quantity += int(line.quantity)
        else:
            merged[key] = CheckoutLine(key[0], key[1], int(line.quantity))
    return list(merged.values())


def lines_from_payload(items: List[Dict[str, Any]]) -> List[CheckoutLine]:
    return _merge([
        CheckoutLine(it["item_type"], int(it["product_id"]), int(it["quantity"]))
        for it in items or []
    ])


def lines_from_cart(user) -> List[CheckoutLine]:
    items = CartItem.objects.filter(cart__user=user).order_by("created_at", "id")
    return _merge([CheckoutLine(it.item_type, it.product_id, it.quantity) for it in items if it.product_id])


def _lock_products(lines: List[CheckoutLine]) -> Dict[Tuple[str, int], Any]:
    found: Dict[Tuple[str, int], Any] = {}
    for item_type, model in PRODUCT_MODELS.items():
        ids = [ln.product_id for ln in lines if ln.item_type == item_type]
        if not ids:
            continue
        for p in model.objects.select_for_update().filter(pk__in=ids):
            found[(str(item_type), p.pk)] = p
    return found


@dataclass
class PricedLine:
    item_type: str
    product: Any
    quantity: int

    @property
    def price(self) -> Decimal:
        return self.product.price

    @property
    def total(self) -> Decimal:
        return self.product.price * self.quantity


def price_lines(lines: List[CheckoutLine], lock: bool = False) -> List[PricedLine]:
    """
    Resolves every line against the live catalog. Raises CheckoutError on the
    first unknown/inactive product or short stock, so nothing gets written.
    """
    if lock:
        products = _lock_products(lines)
    else:
        products = {}
        for item_type, model in PRODUCT_MODELS.items():
            ids = [ln.product_id for ln in lines if ln.item_type == item_type]
            for p in model.objects.filter(pk__in=ids):
                products[(str(item_type), p.pk)] = p

    priced: List[PricedLine] = []
    for line in lines:
        product = products.get((str(line.item_type), int(line.product_id)))
        if product is None or not product.is_active:
            raise CheckoutError("Product not found")
        if line.quantity < 1:
            raise CheckoutError("Quantity must be at least 1")
        if product.stock < line.quantity:
            raise CheckoutError(f"{product.name} only has {product.stock} items in stock")
        priced.append(PricedLine(str(line.item_type), product, line.quantity))
    return priced


def _lock_coupon(code: str) -> Optional[Coupon]:
    code = (code or "").strip()
    if not code:
        return None
    return Coupon.objects.select_for_update().filter(code__iexact=code).first()


def _notify_placed(order: Order, buyer) -> None:
    total = format_pkr(order.total)
    notifications.notify(
        buyer,
        Notification.Type.ORDER_PLACED,
        "Order Placed Successfully!",
        f"Your order {order.order_number} has been placed. Total: {total}",
        link=f"/account/orders/{order.id}",
        order=order,
    )
    for admin in notifications.users_with_roles([User.Role.ADMIN]):
        notifications.notify(
            admin,
            Notification.Type.ORDER_PLACED,
            "New Order Received!",
            f"New order {order.order_number} for {total}",
            link=f"/admin/orders/{order.id}",
            order=order,
        )


def _send_order_emails(order_id: int) -> None:
    try:
        order = Order.objects.select_related("user").prefetch_related("items").get(pk=order_id)
        notifications.send_order_confirmation(order)
        notifications.send_admin_new_order(order)
    except Exception as e:
        logger.error(f"Order e-mails for order {order_id} failed: {e}")


def quote_lines(priced: List[PricedLine], coupon: Optional[Coupon] = None, user=None) -> Quote:
    subtotal = sum((ln.total for ln in priced), Decimal("0.00"))
    eligible = coupon_base(coupon, [(ln.item_type, ln.total) for ln in priced])
    return build_quote(subtotal, CheckoutConfig.load(), coupon=coupon, user=user, eligible_subtotal=eligible)


@transaction.atomic
def place_order(user, data: Dict[str, Any]) -> Order:
    """
    Checkout pipeline:
      resolve + lock lines -> validate stock -> price -> coupon (soft) ->
      create order & items -> decrement stock -> bump coupon usage ->
      clear cart -> notifications; e-mails go out after commit.
    `data` is CheckoutSerializer.validated_data.
    """
    items = data.get("items") or []
    lines = lines_from_payload(items) if items else lines_from_cart(user)
    if not lines:
        raise CheckoutError("Your cart is empty")

    priced = price_lines(lines, lock=True)
    coupon = _lock_coupon(data.get("coupon_code", ""))
    quote = quote_lines(priced, coupon=coupon, user=user)
    if coupon is not None and quote.coupon is None:
        logger.info(f"Coupon {coupon.code} skipped for user {user.pk} (constraints not met)")

    order = Order.objects.create(
        order_number=generate_order_number(),
        invoice_number=generate_invoice_number(),
        user=user,
        shipping_name=data["shipping_name"],
        shipping_phone=data["shipping_phone"],
        shipping_email=data["shipping_email"],
        shipping_address_line=data["shipping_address_line"],
        shipping_city=data["shipping_city"],
        shipping_state=data["shipping_state"],
        shipping_postal_code=data["shipping_postal_code"],
        shipping_country=data.get("shipping_country") or "Pakistan",
        subtotal=quote.subtotal,
        shipping_cost=quote.shipping,
        tax=quote.tax,
        discount=quote.discount,
        total=quote.total,
        coupon=quote.coupon,
        coupon_code=quote.coupon.code if quote.coupon else "",
        coupon_discount=quote.discount,
        payment_method=data["payment_method"],
        customer_notes=data.get("customer_notes", "") or "",
    )

    OrderItem.objects.bulk_create([
        OrderItem(
            order=order,
            item_type=ln.item_type,
            generator=ln.product if ln.item_type == ItemType.GENERATOR else None,
            part=ln.product if ln.item_type == ItemType.PART else None,
            name=ln.product.name,
            sku=ln.product.sku or "",
            price=ln.price,
            quantity=ln.quantity,
            total=ln.total,
            image_url=ln.product.image_url or "",
        )
        for ln in priced
    ])

    for ln in priced:
        type(ln.product).objects.filter(pk=ln.product.pk).update(stock=F("stock") - ln.quantity)

    if quote.coupon is not None:
        Coupon.objects.filter(pk=quote.coupon.pk).update(usage_count=F("usage_count") + 1)

    CartItem.objects.filter(cart__user=user).delete()

    _notify_placed(order, user)

    order_id = order.pk
    transaction.on_commit(lambda: _send_order_emails(order_id))
    logger.info(f"Order {order.order_number} placed by user {user.pk}: total {quote.total}")
    return order


def restore_stock(order: Order) -> bool:
    """
    Puts back exactly the quantities sold on this order, at most once.
    The caller must hold the order's row lock. Returns False when the stock
    had already been restored.
    """
    if order.stock_restored:
        logger.info(f"Order {order.order_number}: stock already restored, skipping")
        return False
    for item in order.items.all():
        if item.generator_id:
            Generator.objects.filter(pk=item.generator_id).update(stock=F("stock") + item.quantity)
        elif item.part_id:
            Part.objects.filter(pk=item.part_id).update(stock=F("stock") + item.quantity)
    order.stock_restored = True
    order.save(update_fields=["stock_restored", "updated_at"])
    return True
