# store/views.py - public catalog, buyer orders (checkout/cancel/invoice), coupon preview, service requests, public settings
import logging

from django.conf import settings
from django.db.models import Count, Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from . import checkout, fulfillment, pricing, site_settings
from .filters import GeneratorFilter, PartFilter
from .models import Category, Coupon, Generator, Order, Part, ServiceRequest
from .permissions import IsCustomer
from .serializers import (
    CategorySerializer,
    CheckoutSerializer,
    GeneratorSerializer,
    OrderSerializer,
    OwnerActionSerializer,
    PartSerializer,
    ServiceRequestCreateSerializer,
    ServiceRequestSerializer,
)
from .utils import format_pkr, to_money

logger = logging.getLogger(__name__)


# -------------------------------------------------
# Public catalog (read only, active items)
# -------------------------------------------------
class CategoryViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [AllowAny]
    serializer_class = CategorySerializer
    lookup_field = "slug"
    pagination_class = None

    def get_queryset(self):
        return (
            Category.objects.filter(is_active=True)
            .annotate(
                generator_count=Count("generators", filter=Q(generators__is_active=True), distinct=True),
                part_count=Count("parts", filter=Q(parts__is_active=True), distinct=True),
            )
            .order_by("name")
        )


class CatalogViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [AllowAny]
    lookup_field = "slug"
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    ordering_fields = ["price", "name", "created_at", "stock"]
    ordering = ["-created_at"]

    model = None

    def get_queryset(self):
        return self.model.objects.filter(is_active=True).select_related("category")


class GeneratorViewSet(CatalogViewSet):
    model = Generator
    serializer_class = GeneratorSerializer
    filterset_class = GeneratorFilter
    search_fields = ["name", "sku", "brand", "model_name", "description"]
    ordering_fields = CatalogViewSet.ordering_fields + ["power_kva"]


class PartViewSet(CatalogViewSet):
    model = Part
    serializer_class = PartSerializer
    filterset_class = PartFilter
    search_fields = ["name", "sku", "part_number", "brand", "compatibility", "description"]


# -------------------------------------------------
# Buyer orders
# -------------------------------------------------
class OrderViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    POST /orders/            checkout (client items or the server cart)
    PUT  /orders/<id>/       {"action": "cancel"} while PENDING
    GET  /orders/<id>/invoice/
    """

    permission_classes = [IsCustomer]
    serializer_class = OrderSerializer

    def get_queryset(self):
        qs = Order.objects.filter(user=self.request.user).prefetch_related("items")
        status_ = self.request.query_params.get("status")
        if status_:
            qs = qs.filter(status=status_)
        return qs.order_by("-created_at")

    def create(self, request, *args, **kwargs):
        ser = CheckoutSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        order = checkout.place_order(request.user, ser.validated_data)
        return Response(
            {
                "success": True,
                "order": {
                    "id": order.id,
                    "order_number": order.order_number,
                    "total": str(order.total),
                },
            },
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, *args, **kwargs):
        ser = OwnerActionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        order = fulfillment.cancel_order_by_owner(kwargs["pk"], request.user)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get"])
    def invoice(self, request, pk=None):
        order = self.get_object()
        return Response({
            "store": {
                "name": getattr(settings, "STORE_NAME", "PakAutoSe Generators"),
                "currency": getattr(settings, "STORE_CURRENCY", "PKR"),
            },
            "invoice_number": order.invoice_number,
            "issued_at": order.created_at,
            "order": OrderSerializer(order).data,
            "bill_to": {
                "name": order.shipping_name,
                "email": order.shipping_email,
                "phone": order.shipping_phone,
                "address": ", ".join(
                    p for p in [
                        order.shipping_address_line,
                        order.shipping_city,
                        order.shipping_state,
                        order.shipping_postal_code,
                        order.shipping_country,
                    ] if p
                ),
            },
            "totals": {
                "subtotal": str(order.subtotal),
                "shipping_cost": str(order.shipping_cost),
                "tax": str(order.tax),
                "discount": str(order.discount),
                "total": str(order.total),
                "total_formatted": format_pkr(order.total),
            },
        })


# -------------------------------------------------
# Coupon preview (hard fail with a message)
# -------------------------------------------------
@api_view(["GET"])
@permission_classes([IsCustomer])
def coupon_validate(request):
    """GET /coupons/validate/?code=SAVE10&subtotal=25000"""
    code = (request.query_params.get("code") or "").strip()
    if not code:
        raise ValidationError({"code": "Coupon code is required"})
    subtotal = to_money(request.query_params.get("subtotal"), default="0")

    coupon = pricing.find_coupon(code)
    problem = pricing.coupon_problem(coupon, subtotal, user=request.user)
    if problem:
        raise ValidationError({"detail": problem})

    # shipping isn't known yet, so free shipping previews as 0
    discount = pricing.coupon_discount(coupon, subtotal, shipping=to_money(0))
    if coupon.type == Coupon.Type.FREE_SHIPPING:
        message = "Free shipping applied!"
    else:
        message = f"You save {format_pkr(discount)}!"

    return Response({
        "valid": True,
        "coupon": {
            "code": coupon.code,
            "description": coupon.description,
            "type": coupon.type,
            "value": str(coupon.value),
            "max_discount": str(coupon.max_discount) if coupon.max_discount is not None else None,
            "applies_to_generators": coupon.applies_to_generators,
            "applies_to_parts": coupon.applies_to_parts,
        },
        "discount": str(discount),
        "message": message,
    })


# -------------------------------------------------
# Service requests (buyer)
# -------------------------------------------------
class ServiceRequestViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsCustomer]
    serializer_class = ServiceRequestSerializer

    def get_queryset(self):
        qs = ServiceRequest.objects.filter(user=self.request.user)
        status_ = self.request.query_params.get("status")
        if status_:
            qs = qs.filter(status=status_)
        return qs.order_by("-created_at")

    def create(self, request, *args, **kwargs):
        ser = ServiceRequestCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        sr = fulfillment.create_service_request(request.user, ser.validated_data)
        logger.info(f"Service request {sr.request_number} created by user {request.user.pk}")
        return Response(
            {"success": True, "service_request": ServiceRequestSerializer(sr).data},
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, *args, **kwargs):
        ser = OwnerActionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        sr = fulfillment.cancel_service_request_by_owner(kwargs["pk"], request.user)
        return Response(ServiceRequestSerializer(sr).data)


# -------------------------------------------------
# Storefront settings (public)
# -------------------------------------------------
@api_view(["GET"])
@permission_classes([AllowAny])
def public_settings(request):
    """Shipping/tax numbers the storefront shows before checkout, plus the public setting groups."""
    cfg = pricing.CheckoutConfig.load()
    return Response({
        "store": {
            "name": getattr(settings, "STORE_NAME", "PakAutoSe"),
            "currency": getattr(settings, "STORE_CURRENCY", "PKR"),
        },
        "checkout": {
            "shipping_cost_default": str(cfg.default_shipping),
            "free_shipping_threshold": str(cfg.free_shipping_threshold),
            "tax_rate": str(cfg.tax_rate),
        },
        "settings": site_settings.public_groups(),
    })
