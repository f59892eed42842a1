# store/filters.py - django-filter sets for catalog and back-office lists
import django_filters
from django.db.models import F, Q
from django.utils import timezone

from .models import Coupon, Generator, Order, Part, ServiceRequest, User


class CatalogFilter(django_filters.FilterSet):
    category = django_filters.CharFilter(field_name="category__slug")
    brand = django_filters.CharFilter(field_name="brand", lookup_expr="iexact")
    min_price = django_filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="price", lookup_expr="lte")
    featured = django_filters.BooleanFilter(field_name="is_featured")
    in_stock = django_filters.BooleanFilter(method="filter_in_stock")
    low_stock = django_filters.BooleanFilter(method="filter_low_stock")

    def filter_in_stock(self, qs, name, value):
        if value is None:
            return qs
        return qs.filter(stock__gt=0) if value else qs.filter(stock=0)

    def filter_low_stock(self, qs, name, value):
        if not value:
            return qs
        return qs.filter(stock__lte=F("low_stock_threshold"))


class GeneratorFilter(CatalogFilter):
    fuel_type = django_filters.ChoiceFilter(choices=Generator.FuelType.choices)
    condition = django_filters.ChoiceFilter(choices=Generator.Condition.choices)
    min_kva = django_filters.NumberFilter(field_name="power_kva", lookup_expr="gte")
    max_kva = django_filters.NumberFilter(field_name="power_kva", lookup_expr="lte")

    class Meta:
        model = Generator
        fields = ["category", "brand", "fuel_type", "condition", "is_active"]


class PartFilter(CatalogFilter):
    class Meta:
        model = Part
        fields = ["category", "brand", "is_active"]


class OrderFilter(django_filters.FilterSet):
    """Back-office order list: ?status=&payment_status=&search=&date_from=&date_to="""

    status = django_filters.ChoiceFilter(choices=Order.Status.choices)
    payment_status = django_filters.ChoiceFilter(choices=Order.PaymentStatus.choices)
    payment_method = django_filters.ChoiceFilter(choices=Order.PaymentMethod.choices)
    date_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Order
        fields = ["status", "payment_status", "payment_method"]

    def filter_search(self, qs, name, value):
        value = (value or "").strip()
        if not value:
            return qs
        return qs.filter(
            Q(order_number__icontains=value)
            | Q(shipping_name__icontains=value)
            | Q(shipping_phone__icontains=value)
            | Q(shipping_email__icontains=value)
            | Q(user__email__icontains=value)
            | Q(user__name__icontains=value)
        )


class ServiceRequestFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=ServiceRequest.Status.choices)
    priority = django_filters.ChoiceFilter(choices=ServiceRequest.Priority.choices)
    service_type = django_filters.ChoiceFilter(choices=ServiceRequest.ServiceType.choices)
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = ServiceRequest
        fields = ["status", "priority", "service_type"]

    def filter_search(self, qs, name, value):
        value = (value or "").strip()
        if not value:
            return qs
        return qs.filter(
            Q(request_number__icontains=value)
            | Q(contact_name__icontains=value)
            | Q(contact_phone__icontains=value)
            | Q(problem_title__icontains=value)
        )


class CouponFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(
        choices=[("active", "active"), ("inactive", "inactive"), ("expired", "expired")],
        method="filter_status",
    )

    class Meta:
        model = Coupon
        fields = ["type"]

    def filter_status(self, qs, name, value):
        now = timezone.now()
        if value == "active":
            return qs.filter(is_active=True).filter(Q(expires_at__isnull=True) | Q(expires_at__gte=now))
        if value == "inactive":
            return qs.filter(is_active=False)
        if value == "expired":
            return qs.filter(expires_at__lt=now)
        return qs


class UserFilter(django_filters.FilterSet):
    """Back-office user list: ?role=&is_active=&search="""

    role = django_filters.ChoiceFilter(choices=User.Role.choices)
    is_active = django_filters.BooleanFilter()
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = User
        fields = ["role", "is_active"]

    def filter_search(self, qs, name, value):
        value = (value or "").strip()
        if not value:
            return qs
        return qs.filter(Q(name__icontains=value) | Q(email__icontains=value) | Q(phone__icontains=value))
