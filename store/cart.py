# store/cart.py - server-side cart (one per user): view, add, update quantity, remove, clear
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response

from .checkout import product_model
from .models import Cart, CartItem, ItemType
from .permissions import IsCustomer
from .pricing import CheckoutConfig, build_quote
from .serializers import CartAddSerializer, CartItemSerializer, CartUpdateSerializer


# ======================================================================
# Helpers
# ======================================================================
def _ensure_cart(user) -> Cart:
    cart, _ = Cart.objects.get_or_create(user=user)
    return cart


def _cart_response(cart: Cart) -> Dict[str, Any]:
    items = list(cart.items.select_related("generator", "part"))
    # products removed from the catalog drop out of the cart
    live = [it for it in items if it.product is not None and it.product.is_active]
    subtotal = sum((it.product.price * it.quantity for it in live), Decimal("0.00"))
    quote = build_quote(subtotal, CheckoutConfig.load())
    return {
        "items": CartItemSerializer(live, many=True).data,
        "total_items": sum(it.quantity for it in live),
        "subtotal": str(quote.subtotal),
        "shipping_cost": str(quote.shipping),
        "tax": str(quote.tax),
        "total": str(quote.total),
    }


def _out_of_stock(product, quantity: int):
    if product.stock < quantity:
        raise ValidationError({"detail": f"Only {product.stock} items available"})


def _owned_item(cart: Cart, item_id) -> CartItem:
    try:
        return cart.items.select_related("generator", "part").get(pk=int(item_id))
    except (CartItem.DoesNotExist, TypeError, ValueError):
        raise NotFound("Item not found")


# ---------- Endpoints ----------
@api_view(["GET", "POST", "PATCH", "DELETE"])
@permission_classes([IsCustomer])
def cart_view(request):
    cart = _ensure_cart(request.user)
    if request.method == "POST":
        return _add(request, cart)
    if request.method == "PATCH":
        return _update(request, cart)
    if request.method == "DELETE":
        return _remove(request, cart)
    return Response(_cart_response(cart))


@transaction.atomic
def _add(request, cart: Cart):
    ser = CartAddSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    data = ser.validated_data

    model = product_model(data["item_type"])
    product = model.objects.filter(pk=data["product_id"], is_active=True).first()
    if product is None:
        raise NotFound("Product not found")

    fk = "generator" if data["item_type"] == ItemType.GENERATOR else "part"
    item = cart.items.select_for_update().filter(**{fk: product}).first()
    if item is not None:
        quantity = item.quantity + data["quantity"]
        _out_of_stock(product, quantity)
        item.quantity = quantity
        item.save(update_fields=["quantity", "updated_at"])
    else:
        _out_of_stock(product, data["quantity"])
        CartItem.objects.create(cart=cart, item_type=data["item_type"], quantity=data["quantity"], **{fk: product})

    cart.save(update_fields=["updated_at"])
    return Response(_cart_response(cart), status=status.HTTP_201_CREATED)


def _update(request, cart: Cart):
    ser = CartUpdateSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    item = _owned_item(cart, ser.validated_data["item_id"])
    product = item.product
    if product is None or not product.is_active:
        raise NotFound("Item not found")

    _out_of_stock(product, ser.validated_data["quantity"])
    item.quantity = ser.validated_data["quantity"]
    item.save(update_fields=["quantity", "updated_at"])
    return Response(_cart_response(cart))


def _remove(request, cart: Cart):
    item_id = request.query_params.get("item_id")
    if item_id:
        _owned_item(cart, item_id).delete()
    else:
        cart.items.all().delete()
    return Response(_cart_response(cart))
