# store/admin_views.py - back-office API for STAFF/ADMIN: orders, services, coupons, users, catalog, stats, settings
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import SAFE_METHODS
from rest_framework.response import Response

from . import fulfillment, site_settings
from .exceptions import Conflict
from .filters import CouponFilter, GeneratorFilter, OrderFilter, PartFilter, ServiceRequestFilter, UserFilter
from .models import AuditLog, Category, Coupon, Generator, Order, Part, ServiceRequest, SiteSetting, User
from .permissions import IsAdminRole, IsStaffOrAdmin
from .pricing import CheckoutConfig
from .serializers import (
    AdminOrderSerializer,
    AdminServiceRequestSerializer,
    AdminUserSerializer,
    AdminUserUpdateSerializer,
    AuditLogSerializer,
    CategorySerializer,
    CouponSerializer,
    GeneratorSerializer,
    OrderUpdateSerializer,
    PartSerializer,
    ServiceRequestUpdateSerializer,
    SiteSettingSerializer,
)

logger = logging.getLogger(__name__)


def client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.META.get("REMOTE_ADDR") or None


def _audit_entries(entity: str, entity_id) -> list:
    logs = AuditLog.objects.filter(entity=entity, entity_id=str(entity_id)).select_related("actor")
    return AuditLogSerializer(logs, many=True).data


def _counts(qs, field: str) -> dict:
    return {row[field]: row["n"] for row in qs.order_by().values(field).annotate(n=Count("id"))}


# -------------------------------------------------
# Orders
# -------------------------------------------------
class AdminOrderViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = AdminOrderSerializer
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total", "status"]
    ordering = ["-created_at"]

    def get_permissions(self):
        if self.action == "destroy":
            return [IsAdminRole()]
        return [IsStaffOrAdmin()]

    def get_queryset(self):
        return Order.objects.select_related("user").prefetch_related("items")

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        data = self.get_serializer(page, many=True).data

        everything = Order.objects.all()
        revenue = everything.filter(payment_status=Order.PaymentStatus.PAID).aggregate(s=Sum("total"))["s"]
        stats = {
            "total_orders": everything.count(),
            "by_status": _counts(everything, "status"),
            "by_payment_status": _counts(everything, "payment_status"),
            "revenue": str(revenue or Decimal("0.00")),
        }
        return self.paginator.get_paginated_response(data, extra={"stats": stats})

    def retrieve(self, request, *args, **kwargs):
        order = self.get_object()
        body = self.get_serializer(order).data
        body["audit_logs"] = _audit_entries("ORDER", order.pk)
        return Response(body)

    def update(self, request, *args, **kwargs):
        ser = OrderUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        order = fulfillment.update_order(kwargs["pk"], request.user, ser.validated_data, ip_address=client_ip(request))
        logger.info(f"Order {order.order_number} updated by {request.user.email}: {dict(ser.validated_data)}")
        return Response({"success": True, "order": AdminOrderSerializer(order).data})

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        fulfillment.delete_order(kwargs["pk"], request.user, ip_address=client_ip(request))
        return Response(status=status.HTTP_204_NO_CONTENT)


# -------------------------------------------------
# Service requests
# -------------------------------------------------
class AdminServiceRequestViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsStaffOrAdmin]
    serializer_class = AdminServiceRequestSerializer
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = ServiceRequestFilter
    ordering_fields = ["created_at", "priority", "status"]
    ordering = ["-created_at"]

    def get_queryset(self):
        return ServiceRequest.objects.select_related("user")

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        data = self.get_serializer(page, many=True).data
        stats = {"by_status": _counts(ServiceRequest.objects.all(), "status")}
        return self.paginator.get_paginated_response(data, extra={"stats": stats})

    def retrieve(self, request, *args, **kwargs):
        sr = self.get_object()
        body = self.get_serializer(sr).data
        body["audit_logs"] = _audit_entries("SERVICE_REQUEST", sr.pk)
        return Response(body)

    def update(self, request, *args, **kwargs):
        ser = ServiceRequestUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        sr = fulfillment.update_service_request(
            kwargs["pk"], request.user, ser.validated_data, ip_address=client_ip(request)
        )
        return Response({"success": True, "service_request": AdminServiceRequestSerializer(sr).data})

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)


# -------------------------------------------------
# Coupons (ADMIN)
# -------------------------------------------------
class AdminCouponViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAdminRole]
    serializer_class = CouponSerializer
    queryset = Coupon.objects.all()
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = CouponFilter
    search_fields = ["code", "description"]
    ordering_fields = ["created_at", "code", "usage_count", "expires_at"]

    def _check_code(self, code, instance=None):
        qs = Coupon.objects.filter(code__iexact=code)
        if instance is not None:
            qs = qs.exclude(pk=instance.pk)
        if qs.exists():
            raise Conflict("A coupon with this code already exists")

    def perform_create(self, serializer):
        self._check_code(serializer.validated_data["code"])
        coupon = serializer.save()
        fulfillment.audit(self.request.user, "CREATE", "COUPON", coupon.pk,
                          new={"code": coupon.code, "type": coupon.type, "value": coupon.value},
                          ip_address=client_ip(self.request))

    def perform_update(self, serializer):
        if "code" in serializer.validated_data:
            self._check_code(serializer.validated_data["code"], serializer.instance)
        old = {"code": serializer.instance.code, "value": serializer.instance.value,
               "is_active": serializer.instance.is_active}
        coupon = serializer.save()
        fulfillment.audit(self.request.user, "UPDATE", "COUPON", coupon.pk, old=old,
                          new={"code": coupon.code, "value": coupon.value, "is_active": coupon.is_active},
                          ip_address=client_ip(self.request))

    def perform_destroy(self, instance):
        fulfillment.audit(self.request.user, "DELETE", "COUPON", instance.pk, old={"code": instance.code},
                          ip_address=client_ip(self.request))
        instance.delete()


# -------------------------------------------------
# Users (reads for STAFF/ADMIN, changes for ADMIN)
# -------------------------------------------------
class AdminUserViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = AdminUserSerializer
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = UserFilter
    ordering_fields = ["created_at", "name", "email", "last_login"]
    ordering = ["-created_at"]

    def get_permissions(self):
        if self.request.method in SAFE_METHODS:
            return [IsStaffOrAdmin()]
        return [IsAdminRole()]

    def get_queryset(self):
        return User.objects.annotate(
            order_count=Count("orders", distinct=True),
            total_spent=Sum("orders__total", filter=Q(orders__payment_status=Order.PaymentStatus.PAID)),
        )

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        data = self.get_serializer(page, many=True).data
        everyone = User.objects.all()
        stats = {
            "by_role": _counts(everyone, "role"),
            "active": everyone.filter(is_active=True).count(),
            "blocked": everyone.filter(is_active=False).count(),
        }
        return self.paginator.get_paginated_response(data, extra={"stats": stats})

    def retrieve(self, request, *args, **kwargs):
        user = self.get_object()
        body = self.get_serializer(user).data
        body["recent_orders"] = [
            {"id": o.id, "order_number": o.order_number, "total": str(o.total), "status": o.status,
             "payment_status": o.payment_status, "created_at": o.created_at}
            for o in user.orders.order_by("-created_at")[:10]
        ]
        body["recent_service_requests"] = [
            {"id": sr.id, "request_number": sr.request_number, "service_type": sr.service_type,
             "status": sr.status, "created_at": sr.created_at}
            for sr in user.service_requests.order_by("-created_at")[:10]
        ]
        return Response(body)

    @transaction.atomic
    def update(self, request, *args, **kwargs):
        ser = AdminUserUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        user = User.objects.select_for_update().filter(pk=kwargs["pk"]).first()
        if user is None:
            raise NotFound("User not found")
        if user.pk == request.user.pk:
            if "role" in data and data["role"] != user.role:
                raise ValidationError({"detail": "You cannot change your own role"})
            if data.get("is_active") is False:
                raise ValidationError({"detail": "You cannot block your own account"})
        if data.get("email") and data["email"] != user.email:
            if User.objects.filter(email__iexact=data["email"]).exclude(pk=user.pk).exists():
                raise Conflict("A user with this email already exists")

        old = {field: getattr(user, field) for field in data}
        for field, value in data.items():
            setattr(user, field, value)
        user.save()
        fulfillment.audit(request.user, "UPDATE", "USER", user.pk, old=old, new=dict(data),
                          ip_address=client_ip(request))
        logger.info(f"User {user.pk} updated by {request.user.email}: {sorted(data)}")
        return Response(self.get_serializer(self.get_queryset().get(pk=user.pk)).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)


# -------------------------------------------------
# Catalog (reads for STAFF/ADMIN, writes for ADMIN)
# -------------------------------------------------
class AdminCatalogViewSet(viewsets.ModelViewSet):
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    ordering_fields = ["created_at", "name", "price", "stock"]
    ordering = ["-created_at"]
    unique_fields = ("slug", "sku")
    entity = ""

    def get_permissions(self):
        if self.request.method in SAFE_METHODS:
            return [IsStaffOrAdmin()]
        return [IsAdminRole()]

    def _check_unique(self, data, instance=None):
        model = self.get_queryset().model
        for field in self.unique_fields:
            value = data.get(field)
            if not value:
                continue
            qs = model.objects.filter(**{field: value})
            if instance is not None:
                qs = qs.exclude(pk=instance.pk)
            if qs.exists():
                raise Conflict(f"{model._meta.verbose_name.capitalize()} with this {field} already exists")

    def perform_create(self, serializer):
        self._check_unique(serializer.validated_data)
        obj = serializer.save()
        fulfillment.audit(self.request.user, "CREATE", self.entity, obj.pk, new={"name": obj.name},
                          ip_address=client_ip(self.request))

    def perform_update(self, serializer):
        self._check_unique(serializer.validated_data, serializer.instance)
        obj = serializer.save()
        fulfillment.audit(self.request.user, "UPDATE", self.entity, obj.pk, new=dict(
            (k, v) for k, v in serializer.validated_data.items() if k != "category"
        ), ip_address=client_ip(self.request))

    def perform_destroy(self, instance):
        fulfillment.audit(self.request.user, "DELETE", self.entity, instance.pk, old={"name": instance.name},
                          ip_address=client_ip(self.request))
        instance.delete()


class AdminGeneratorViewSet(AdminCatalogViewSet):
    serializer_class = GeneratorSerializer
    filterset_class = GeneratorFilter
    search_fields = ["name", "sku", "brand", "model_name"]
    entity = "GENERATOR"

    def get_queryset(self):
        return Generator.objects.select_related("category")


class AdminPartViewSet(AdminCatalogViewSet):
    serializer_class = PartSerializer
    filterset_class = PartFilter
    search_fields = ["name", "sku", "part_number", "brand"]
    entity = "PART"

    def get_queryset(self):
        return Part.objects.select_related("category")


class AdminCategoryViewSet(AdminCatalogViewSet):
    serializer_class = CategorySerializer
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ["name", "slug"]
    ordering_fields = ["name", "created_at"]
    ordering = ["name"]
    unique_fields = ("name", "slug")
    entity = "CATEGORY"

    def get_queryset(self):
        return Category.objects.annotate(
            generator_count=Count("generators", distinct=True),
            part_count=Count("parts", distinct=True),
        )


# -------------------------------------------------
# Dashboard stats (ADMIN)
# -------------------------------------------------
@api_view(["GET"])
@permission_classes([IsAdminRole])
def admin_stats(request):
    now = timezone.now()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    paid = Order.objects.filter(payment_status=Order.PaymentStatus.PAID)

    return Response({
        "orders": {
            "total": Order.objects.count(),
            "pending": Order.objects.filter(status=Order.Status.PENDING).count(),
            "by_status": _counts(Order.objects.all(), "status"),
        },
        "revenue": {
            "total": str(paid.aggregate(s=Sum("total"))["s"] or Decimal("0.00")),
            "this_month": str(paid.filter(created_at__gte=month_start).aggregate(s=Sum("total"))["s"] or Decimal("0.00")),
        },
        "users": {
            "total": User.objects.filter(role=User.Role.USER).count(),
            "new_this_month": User.objects.filter(role=User.Role.USER, created_at__gte=month_start).count(),
        },
        "inventory": {
            "generators": Generator.objects.count(),
            "low_stock_generators": Generator.objects.filter(stock__lte=F("low_stock_threshold")).count(),
            "parts": Part.objects.count(),
            "low_stock_parts": Part.objects.filter(stock__lte=F("low_stock_threshold")).count(),
        },
        "services": {
            "pending": ServiceRequest.objects.filter(
                status__in=[ServiceRequest.Status.PENDING, ServiceRequest.Status.REVIEWING]
            ).count(),
            "by_status": _counts(ServiceRequest.objects.all(), "status"),
        },
    })


# -------------------------------------------------
# Site settings (ADMIN)
# -------------------------------------------------
@api_view(["GET", "PUT"])
@permission_classes([IsAdminRole])
def admin_settings(request):
    """
    GET -> {"settings": {group: {key: value}}, "checkout": {...effective values}}
    PUT {"settings": [{"key", "value", "group"?, "type"?}, ...]}
    """
    if request.method == "PUT":
        ser = SiteSettingSerializer(data=(request.data or {}).get("settings") or [], many=True)
        ser.is_valid(raise_exception=True)
        for row in ser.validated_data:
            key, value = row["key"], str(row["value"]).strip()
            if key not in site_settings.CHECKOUT_KEYS:
                continue
            try:
                ok = Decimal(value).is_finite() and Decimal(value) >= 0
            except InvalidOperation:
                ok = False
            if not ok:
                raise ValidationError({"detail": f"{key} must be a non-negative number"})

        old, new = {}, {}
        for row in ser.validated_data:
            key, value = row["key"], str(row["value"]).strip()
            old[key] = site_settings.get_value(key)
            site_settings.set_value(key, value, type_=row.get("type") or "string", group=row.get("group") or "general")
            new[key] = value
        fulfillment.audit(request.user, "UPDATE", "SETTINGS", "site", old=old, new=new,
                          ip_address=client_ip(request))

    grouped = {}
    for s in SiteSetting.objects.all():
        grouped.setdefault(s.group, {})[s.key] = s.value
    cfg = CheckoutConfig.load()
    return Response({
        "settings": grouped,
        "checkout": {
            "shipping_cost_default": str(cfg.default_shipping),
            "free_shipping_threshold": str(cfg.free_shipping_threshold),
            "tax_rate": str(cfg.tax_rate),
        },
    })
