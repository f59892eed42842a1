# store/serializers.py - catalog, cart, checkout, orders, coupons, services, accounts
# Write and read shapes are separate serializers; writes only validate, the
# state changes live in checkout.py / fulfillment.py.
import re
from decimal import Decimal

from rest_framework import serializers

from .models import (
    AuditLog,
    CartItem,
    Category,
    Coupon,
    Generator,
    ItemType,
    Notification,
    Order,
    OrderItem,
    Part,
    ServiceRequest,
    SiteSetting,
    User,
)
from .utils import format_pkr

SLUG_RE = re.compile(r"^[a-z0-9-]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
MIN_AMOUNT = Decimal("0.01")
# duplicates are looked up by the admin views so they can answer 409
UNCHECKED_UNIQUE = {"slug": {"validators": []}, "sku": {"validators": []}}


def _required(message, min_length):
    return serializers.CharField(
        min_length=min_length,
        error_messages={"required": message, "blank": message, "min_length": message},
    )


def _check_password(value):
    if not PASSWORD_RE.match(value):
        raise serializers.ValidationError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


def _new_password():
    return serializers.CharField(min_length=8, write_only=True,
                                 error_messages={"min_length": "Password must be at least 8 characters"})


def _check_slug(value):
    if value and not SLUG_RE.match(value):
        raise serializers.ValidationError("Slug can only contain lowercase letters, numbers, and hyphens")
    return value


# --------- Categories ---------
class CategorySerializer(serializers.ModelSerializer):
    generator_count = serializers.SerializerMethodField()
    part_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ["id", "name", "slug", "description", "is_active", "created_at", "generator_count", "part_count"]
        read_only_fields = ["id", "created_at"]
        extra_kwargs = {"name": {"validators": []}, "slug": {"validators": []}}

    def get_generator_count(self, obj):
        return int(getattr(obj, "generator_count", 0) or 0)

    def get_part_count(self, obj):
        return int(getattr(obj, "part_count", 0) or 0)

    def validate_slug(self, value):
        return _check_slug(value)


class CategoryBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "slug"]


# --------- Catalog ---------
class CatalogItemSerializer(serializers.ModelSerializer):
    category = CategoryBriefSerializer(read_only=True)
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(),
        source="category",
        write_only=True,
        required=False,
        allow_null=True,
    )
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=MIN_AMOUNT)
    price_formatted = serializers.SerializerMethodField()
    is_low_stock = serializers.BooleanField(read_only=True)

    common_fields = [
        "id", "name", "slug", "sku", "description", "short_description",
        "category", "category_id",
        "price", "price_formatted", "compare_at_price", "stock", "low_stock_threshold", "is_low_stock",
        "image_url", "is_active", "is_featured", "created_at", "updated_at",
    ]

    def get_price_formatted(self, obj):
        return format_pkr(obj.price)

    def validate_slug(self, value):
        return _check_slug(value)

    def validate_sku(self, value):
        return value or None


class GeneratorSerializer(CatalogItemSerializer):
    class Meta:
        model = Generator
        fields = CatalogItemSerializer.common_fields + [
            "power_kva", "power_kw", "fuel_type", "brand", "model_name", "condition", "warranty",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        extra_kwargs = UNCHECKED_UNIQUE


class PartSerializer(CatalogItemSerializer):
    class Meta:
        model = Part
        fields = CatalogItemSerializer.common_fields + ["part_number", "brand", "compatibility"]
        read_only_fields = ["id", "created_at", "updated_at"]
        extra_kwargs = UNCHECKED_UNIQUE


# --------- Cart ---------
class CartItemSerializer(serializers.ModelSerializer):
    product = serializers.SerializerMethodField()
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = CartItem
        fields = ["id", "item_type", "product", "quantity", "line_total"]

    def get_product(self, obj):
        p = obj.product
        if p is None:
            return None
        return {
            "id": p.id,
            "name": p.name,
            "slug": p.slug,
            "sku": p.sku,
            "price": str(p.price),
            "stock": p.stock,
            "image_url": p.image_url,
            "is_active": p.is_active,
        }

    def get_line_total(self, obj):
        p = obj.product
        return str(p.price * obj.quantity) if p is not None else "0.00"


class CartAddSerializer(serializers.Serializer):
    item_type = serializers.ChoiceField(choices=ItemType.choices)
    product_id = serializers.IntegerField(error_messages={"required": "Product ID is required"})
    quantity = serializers.IntegerField(default=1, min_value=1, error_messages={"min_value": "Quantity must be at least 1"})


class CartUpdateSerializer(serializers.Serializer):
    item_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, error_messages={"min_value": "Quantity must be at least 1"})


# ===========================
#  CHECKOUT (WRITE)
# ===========================
class CheckoutItemSerializer(serializers.Serializer):
    item_type = serializers.ChoiceField(choices=ItemType.choices)
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, error_messages={"min_value": "Quantity must be at least 1"})


class CheckoutSerializer(serializers.Serializer):
    shipping_name = _required("Name is required", 2)
    shipping_phone = _required("Valid phone number is required", 10)
    shipping_email = serializers.EmailField(error_messages={"invalid": "Valid email is required",
                                                            "required": "Valid email is required"})
    shipping_address_line = _required("Address is required", 5)
    shipping_city = _required("City is required", 2)
    shipping_state = _required("State is required", 2)
    shipping_postal_code = _required("Postal code is required", 4)
    shipping_country = serializers.CharField(required=False, allow_blank=True, default="Pakistan")
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices)
    customer_notes = serializers.CharField(required=False, allow_blank=True, default="")
    coupon_code = serializers.CharField(required=False, allow_blank=True, default="")
    # empty or missing -> the server-side cart is used
    items = CheckoutItemSerializer(many=True, required=False, allow_empty=True)


# ===========================
#  ORDERS (READ)
# ===========================
class OrderItemSerializer(serializers.ModelSerializer):
    product_id = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = ["id", "item_type", "product_id", "name", "sku", "price", "quantity", "total", "image_url"]

    def get_product_id(self, obj):
        return obj.generator_id if obj.item_type == ItemType.GENERATOR else obj.part_id


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    total_formatted = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id", "order_number", "invoice_number",
            "shipping_name", "shipping_phone", "shipping_email", "shipping_address_line",
            "shipping_city", "shipping_state", "shipping_postal_code", "shipping_country",
            "subtotal", "shipping_cost", "tax", "discount", "total", "total_formatted",
            "coupon_code", "coupon_discount",
            "status", "payment_status", "payment_method", "paid_at",
            "tracking_number", "carrier", "estimated_delivery", "delivered_at",
            "customer_notes", "admin_notes",
            "items", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_total_formatted(self, obj):
        return format_pkr(obj.total)


class UserBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "name", "email", "phone", "role"]


class AuditLogSerializer(serializers.ModelSerializer):
    actor = UserBriefSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ["id", "actor", "action", "entity", "entity_id", "old_values", "new_values", "ip_address", "created_at"]


class AdminOrderSerializer(OrderSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ["user", "internal_notes"]
        read_only_fields = fields


class OrderUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices, required=False)
    payment_status = serializers.ChoiceField(choices=Order.PaymentStatus.choices, required=False)
    tracking_number = serializers.CharField(required=False, allow_blank=True)
    carrier = serializers.CharField(required=False, allow_blank=True)
    estimated_delivery = serializers.DateTimeField(required=False, allow_null=True)
    admin_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    internal_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class OwnerActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=[("cancel", "cancel")], error_messages={"invalid_choice": "Invalid action"})


# --------- Coupons ---------
class CouponSerializer(serializers.ModelSerializer):
    code = serializers.CharField(min_length=3, max_length=40,
                                 error_messages={"min_length": "Code must be at least 3 characters"})
    value = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=MIN_AMOUNT,
                                     error_messages={"min_value": "Value must be positive"})

    class Meta:
        model = Coupon
        fields = [
            "id", "code", "description", "type", "value", "min_order_amount", "max_discount",
            "usage_limit", "usage_count", "per_user_limit", "starts_at", "expires_at", "is_active",
            "applies_to_generators", "applies_to_parts", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "usage_count", "created_at", "updated_at"]

    def validate_code(self, value):
        return value.strip().upper()

    def validate(self, attrs):
        type_ = attrs.get("type", getattr(self.instance, "type", None))
        value = attrs.get("value", getattr(self.instance, "value", None))
        if type_ == Coupon.Type.PERCENTAGE and value is not None and value > 100:
            raise serializers.ValidationError({"value": "Percentage cannot exceed 100"})
        return attrs


# --------- Service requests ---------
class ServiceRequestCreateSerializer(serializers.Serializer):
    contact_name = _required("Name is required", 2)
    contact_phone = _required("Valid phone number is required", 10)
    contact_email = serializers.EmailField(error_messages={"invalid": "Valid email is required",
                                                           "required": "Valid email is required"})
    service_address = _required("Service address is required", 5)
    service_city = _required("City is required", 2)
    service_state = _required("State is required", 2)
    service_type = serializers.ChoiceField(choices=ServiceRequest.ServiceType.choices)
    generator_brand = serializers.CharField(required=False, allow_blank=True)
    generator_model = serializers.CharField(required=False, allow_blank=True)
    generator_serial = serializers.CharField(required=False, allow_blank=True)
    problem_title = _required("Problem title is required", 5)
    problem_description = _required("Please describe the problem in detail", 20)
    preferred_date = serializers.DateTimeField(required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=ServiceRequest.Priority.choices, required=False)


class ServiceRequestSerializer(serializers.ModelSerializer):
    class Meta:
        model = ServiceRequest
        fields = [
            "id", "request_number",
            "contact_name", "contact_phone", "contact_email",
            "service_address", "service_city", "service_state", "service_type",
            "generator_brand", "generator_model", "generator_serial",
            "problem_title", "problem_description",
            "status", "priority", "admin_notes", "diagnosis",
            "estimated_cost", "quoted_price", "quoted_at", "final_cost",
            "preferred_date", "scheduled_date", "completed_at", "assigned_to",
            "created_at", "updated_at",
        ]
        read_only_fields = fields


class AdminServiceRequestSerializer(ServiceRequestSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta(ServiceRequestSerializer.Meta):
        fields = ServiceRequestSerializer.Meta.fields + ["user", "internal_notes"]
        read_only_fields = fields


class ServiceRequestUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ServiceRequest.Status.choices, required=False)
    priority = serializers.ChoiceField(choices=ServiceRequest.Priority.choices, required=False)
    admin_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    internal_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    diagnosis = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    estimated_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=MIN_AMOUNT,
                                              required=False, allow_null=True)
    quoted_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=MIN_AMOUNT,
                                            required=False, allow_null=True)
    final_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=MIN_AMOUNT,
                                          required=False, allow_null=True)
    scheduled_date = serializers.DateTimeField(required=False, allow_null=True)
    completed_at = serializers.DateTimeField(required=False, allow_null=True)
    assigned_to = serializers.CharField(required=False, allow_blank=True, allow_null=True)


# --------- Accounts ---------
class UserSerializer(serializers.ModelSerializer):
    email_verified = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "email", "name", "phone", "role", "email_verified", "created_at"]
        read_only_fields = fields

    def get_email_verified(self, obj):
        return obj.email_verified_at is not None


class RegisterSerializer(serializers.Serializer):
    name = _required("Name must be at least 2 characters", 2)
    email = serializers.EmailField(error_messages={"invalid": "Please enter a valid email address"})
    password = _new_password()
    confirm_password = serializers.CharField(write_only=True)
    phone = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_email(self, value):
        return value.strip().lower()

    def validate_password(self, value):
        return _check_password(value)

    def validate(self, attrs):
        if attrs["password"] != attrs["confirm_password"]:
            raise serializers.ValidationError({"confirm_password": "Passwords don't match"})
        return attrs


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={"invalid": "Please enter a valid email address"})
    password = serializers.CharField(error_messages={"blank": "Password is required", "required": "Password is required"})


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={"invalid": "Please enter a valid email address",
                                                   "required": "Email is required"})


class ResetPasswordSerializer(serializers.Serializer):
    uid = serializers.CharField(error_messages={"required": "Reset token is required"})
    token = serializers.CharField(error_messages={"required": "Reset token is required",
                                                  "blank": "Reset token is required"})
    password = _new_password()

    def validate_password(self, value):
        return _check_password(value)


class ProfileSerializer(serializers.ModelSerializer):
    name = _required("Name must be at least 2 characters", 2)
    email_verified = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "email", "name", "phone", "role", "email_verified", "created_at"]
        read_only_fields = ["id", "email", "role", "created_at"]

    def get_email_verified(self, obj):
        return obj.email_verified_at is not None

    def validate_name(self, value):
        return value.strip()

    def validate_phone(self, value):
        return (value or "").strip()


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True, error_messages={
        "required": "Current password and new password are required",
        "blank": "Current password and new password are required",
    })
    new_password = _new_password()

    def validate_new_password(self, value):
        return _check_password(value)

    def validate(self, attrs):
        user = self.context["request"].user
        if not user.check_password(attrs["current_password"]):
            raise serializers.ValidationError({"current_password": "Current password is incorrect"})
        if attrs["current_password"] == attrs["new_password"]:
            raise serializers.ValidationError({"new_password": "New password must be different from current password"})
        return attrs


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ["id", "type", "title", "message", "link", "is_read", "read_at", "order", "service_request", "created_at"]
        read_only_fields = fields


class SiteSettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = SiteSetting
        fields = ["key", "value", "type", "group", "updated_at"]
        read_only_fields = ["updated_at"]
        extra_kwargs = {"key": {"validators": []}}


# --------- Users (back-office) ---------
class AdminUserSerializer(serializers.ModelSerializer):
    email_verified = serializers.SerializerMethodField()
    order_count = serializers.SerializerMethodField()
    total_spent = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id", "email", "name", "phone", "role", "is_active", "email_verified",
            "order_count", "total_spent", "last_login", "created_at",
        ]
        read_only_fields = fields

    def get_email_verified(self, obj):
        return obj.email_verified_at is not None

    def get_order_count(self, obj):
        return int(getattr(obj, "order_count", 0) or 0)

    def get_total_spent(self, obj):
        return str(getattr(obj, "total_spent", None) or Decimal("0.00"))


class AdminUserUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, required=False,
                                 error_messages={"min_length": "Name must be at least 2 characters"})
    email = serializers.EmailField(required=False, error_messages={"invalid": "Please enter a valid email address"})
    phone = serializers.CharField(required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=User.Role.choices, required=False)
    is_active = serializers.BooleanField(required=False)

    def validate_email(self, value):
        return value.strip().lower()
