# store/models.py - users, catalog (generators/parts), cart, orders, coupons, services, notifications
from decimal import Decimal

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone


ZERO = Decimal("0.00")


# --------- Users ---------
class UserManager(BaseUserManager):
    use_in_migrations = True

    def _create_user(self, email, password, **extra):
        if not email:
            raise ValueError("Email is required")
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra):
        extra.setdefault("role", User.Role.USER)
        return self._create_user(email, password, **extra)

    def create_superuser(self, email, password=None, **extra):
        extra.setdefault("role", User.Role.ADMIN)
        extra.setdefault("is_superuser", True)
        extra.setdefault("email_verified_at", timezone.now())
        return self._create_user(email, password, **extra)


class User(AbstractBaseUser, PermissionsMixin):
    class Role(models.TextChoices):
        USER = "USER", "Customer"
        STAFF = "STAFF", "Staff"
        ADMIN = "ADMIN", "Admin"

    email = models.EmailField(max_length=255, unique=True)
    name = models.CharField(max_length=255, blank=True, default="")
    phone = models.CharField(max_length=20, blank=True, default="")
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.USER, db_index=True)
    is_active = models.BooleanField(default=True)

    email_verified_at = models.DateTimeField(null=True, blank=True)
    email_verification_token = models.CharField(max_length=120, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} <{self.email}>" if self.name else self.email

    # Django admin site access follows the role
    @property
    def is_staff(self):
        return self.role in (self.Role.STAFF, self.Role.ADMIN)

    @property
    def is_staff_member(self):
        return self.is_staff

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    def email_token_is_valid(self, token: str) -> bool:
        if not token or not self.email_verification_token:
            return False
        return token.strip() == self.email_verification_token.strip()


# --------- Categories ---------
class Category(models.Model):
    name = models.CharField(max_length=120, unique=True)
    slug = models.SlugField(max_length=140, unique=True)
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name


# --------- Catalog ---------
class CatalogItem(models.Model):
    """Fields shared by everything that can go in a cart."""

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=280, unique=True)
    sku = models.CharField(max_length=60, unique=True, null=True, blank=True)
    description = models.TextField(blank=True, default="")
    short_description = models.CharField(max_length=300, blank=True, default="")

    # prices in PKR
    price = models.DecimalField(max_digits=12, decimal_places=2)
    compare_at_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    stock = models.PositiveIntegerField(default=0)
    low_stock_threshold = models.PositiveIntegerField(default=5)

    image_url = models.URLField(blank=True, default="")
    is_active = models.BooleanField(default=True)
    is_featured = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.sku})" if self.sku else self.name

    @property
    def is_low_stock(self):
        return self.stock <= self.low_stock_threshold


class Generator(CatalogItem):
    class FuelType(models.TextChoices):
        DIESEL = "DIESEL", "Diesel"
        PETROL = "PETROL", "Petrol"
        GAS = "GAS", "Gas"
        DUAL_FUEL = "DUAL_FUEL", "Dual fuel"
        NATURAL_GAS = "NATURAL_GAS", "Natural gas"

    class Condition(models.TextChoices):
        NEW = "NEW", "New"
        REFURBISHED = "REFURBISHED", "Refurbished"
        USED = "USED", "Used"

    category = models.ForeignKey(
        Category, related_name="generators", on_delete=models.SET_NULL, null=True, blank=True
    )
    power_kva = models.DecimalField(max_digits=8, decimal_places=2)
    power_kw = models.DecimalField(max_digits=8, decimal_places=2)
    fuel_type = models.CharField(max_length=20, choices=FuelType.choices)
    brand = models.CharField(max_length=120)
    model_name = models.CharField(max_length=120, blank=True, default="")
    condition = models.CharField(max_length=20, choices=Condition.choices, default=Condition.NEW)
    warranty = models.CharField(max_length=120, blank=True, default="")

    class Meta(CatalogItem.Meta):
        pass


class Part(CatalogItem):
    category = models.ForeignKey(
        Category, related_name="parts", on_delete=models.SET_NULL, null=True, blank=True
    )
    part_number = models.CharField(max_length=80, blank=True, default="")
    brand = models.CharField(max_length=120, blank=True, default="")
    compatibility = models.TextField(blank=True, default="")
    low_stock_threshold = models.PositiveIntegerField(default=10)

    class Meta(CatalogItem.Meta):
        pass


class ItemType(models.TextChoices):
    GENERATOR = "GENERATOR", "Generator"
    PART = "PART", "Part"


# --------- Cart ---------
class Cart(models.Model):
    user = models.OneToOneField("store.User", related_name="cart", on_delete=models.CASCADE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Cart of {self.user}"


class CartItem(models.Model):
    cart = models.ForeignKey(Cart, related_name="items", on_delete=models.CASCADE)
    item_type = models.CharField(max_length=10, choices=ItemType.choices)
    generator = models.ForeignKey(Generator, null=True, blank=True, on_delete=models.CASCADE)
    part = models.ForeignKey(Part, null=True, blank=True, on_delete=models.CASCADE)
    quantity = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "generator"], name="uniq_cart_generator"),
            models.UniqueConstraint(fields=["cart", "part"], name="uniq_cart_part"),
        ]

    @property
    def product(self):
        return self.generator if self.item_type == ItemType.GENERATOR else self.part

    @property
    def product_id(self):
        return self.generator_id if self.item_type == ItemType.GENERATOR else self.part_id


# --------- Coupons ---------
class Coupon(models.Model):
    class Type(models.TextChoices):
        PERCENTAGE = "PERCENTAGE", "Percentage"
        FIXED_AMOUNT = "FIXED_AMOUNT", "Fixed amount"
        FREE_SHIPPING = "FREE_SHIPPING", "Free shipping"

    code = models.CharField(max_length=40, unique=True)
    description = models.CharField(max_length=255, blank=True, default="")
    type = models.CharField(max_length=20, choices=Type.choices)
    value = models.DecimalField(max_digits=12, decimal_places=2)
    min_order_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    max_discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    per_user_limit = models.PositiveIntegerField(default=1)
    starts_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    applies_to_generators = models.BooleanField(default=True)
    applies_to_parts = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)


# --------- Orders ---------
class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        CONFIRMED = "CONFIRMED", "Confirmed"
        PROCESSING = "PROCESSING", "Processing"
        SHIPPED = "SHIPPED", "Shipped"
        OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY", "Out for delivery"
        DELIVERED = "DELIVERED", "Delivered"
        CANCELLED = "CANCELLED", "Cancelled"
        REFUNDED = "REFUNDED", "Refunded"

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PAID = "PAID", "Paid"
        FAILED = "FAILED", "Failed"
        REFUNDED = "REFUNDED", "Refunded"
        PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED", "Partially refunded"

    class PaymentMethod(models.TextChoices):
        CASH_ON_DELIVERY = "CASH_ON_DELIVERY", "Cash on delivery"
        STRIPE = "STRIPE", "Card (Stripe)"
        BANK_TRANSFER = "BANK_TRANSFER", "Bank transfer"

    order_number = models.CharField(max_length=40, unique=True)
    invoice_number = models.CharField(max_length=40, unique=True, null=True, blank=True)
    user = models.ForeignKey("store.User", related_name="orders", on_delete=models.PROTECT)

    # shipping snapshot
    shipping_name = models.CharField(max_length=255)
    shipping_phone = models.CharField(max_length=30)
    shipping_email = models.EmailField(max_length=255)
    shipping_address_line = models.CharField(max_length=500)
    shipping_city = models.CharField(max_length=120)
    shipping_state = models.CharField(max_length=120)
    shipping_postal_code = models.CharField(max_length=20)
    shipping_country = models.CharField(max_length=80, default="Pakistan")

    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    total = models.DecimalField(max_digits=12, decimal_places=2)

    coupon = models.ForeignKey(Coupon, related_name="orders", on_delete=models.SET_NULL, null=True, blank=True)
    coupon_code = models.CharField(max_length=40, blank=True, default="")
    coupon_discount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True
    )
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    paid_at = models.DateTimeField(null=True, blank=True)

    tracking_number = models.CharField(max_length=120, blank=True, default="")
    carrier = models.CharField(max_length=120, blank=True, default="")
    estimated_delivery = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    # set once the sold quantities have gone back on the shelf
    stock_restored = models.BooleanField(default=False)

    customer_notes = models.TextField(blank=True, default="")
    admin_notes = models.TextField(blank=True, default="")
    internal_notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Order {self.order_number}"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    item_type = models.CharField(max_length=10, choices=ItemType.choices)
    generator = models.ForeignKey(
        Generator, related_name="order_items", on_delete=models.SET_NULL, null=True, blank=True
    )
    part = models.ForeignKey(
        Part, related_name="order_items", on_delete=models.SET_NULL, null=True, blank=True
    )
    # snapshot at purchase time
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=60, blank=True, default="")
    price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField()
    total = models.DecimalField(max_digits=12, decimal_places=2)
    image_url = models.URLField(blank=True, default="")

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.quantity}x {self.name} in {self.order.order_number}"

    def save(self, *args, **kwargs):
        if self.total is None:
            self.total = self.price * self.quantity
        super().save(*args, **kwargs)


# --------- Service requests ---------
class ServiceRequest(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        REVIEWING = "REVIEWING", "Reviewing"
        QUOTED = "QUOTED", "Quoted"
        APPROVED = "APPROVED", "Approved"
        IN_PROGRESS = "IN_PROGRESS", "In progress"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    class Priority(models.TextChoices):
        LOW = "LOW", "Low"
        NORMAL = "NORMAL", "Normal"
        HIGH = "HIGH", "High"
        URGENT = "URGENT", "Urgent"

    class ServiceType(models.TextChoices):
        REPAIR = "REPAIR", "Repair"
        MAINTENANCE = "MAINTENANCE", "Maintenance"
        INSTALLATION = "INSTALLATION", "Installation"
        INSPECTION = "INSPECTION", "Inspection"
        EMERGENCY = "EMERGENCY", "Emergency"
        OTHER = "OTHER", "Other"

    request_number = models.CharField(max_length=40, unique=True)
    user = models.ForeignKey("store.User", related_name="service_requests", on_delete=models.PROTECT)

    contact_name = models.CharField(max_length=255)
    contact_phone = models.CharField(max_length=30)
    contact_email = models.EmailField(max_length=255)
    service_address = models.CharField(max_length=500)
    service_city = models.CharField(max_length=120)
    service_state = models.CharField(max_length=120)
    service_type = models.CharField(max_length=20, choices=ServiceType.choices)

    generator_brand = models.CharField(max_length=120, blank=True, default="")
    generator_model = models.CharField(max_length=120, blank=True, default="")
    generator_serial = models.CharField(max_length=120, blank=True, default="")
    problem_title = models.CharField(max_length=255)
    problem_description = models.TextField()

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.NORMAL)

    admin_notes = models.TextField(blank=True, default="")
    internal_notes = models.TextField(blank=True, default="")
    diagnosis = models.TextField(blank=True, default="")
    estimated_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    quoted_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    quoted_at = models.DateTimeField(null=True, blank=True)
    final_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    preferred_date = models.DateTimeField(null=True, blank=True)
    scheduled_date = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    assigned_to = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.request_number} - {self.problem_title}"


# --------- Notifications / audit / settings ---------
class Notification(models.Model):
    class Type(models.TextChoices):
        ORDER_PLACED = "ORDER_PLACED", "Order placed"
        ORDER_UPDATE = "ORDER_UPDATE", "Order update"
        PAYMENT_RECEIVED = "PAYMENT_RECEIVED", "Payment received"
        SERVICE_REQUEST_SUBMITTED = "SERVICE_REQUEST_SUBMITTED", "Service request submitted"
        SERVICE_UPDATE = "SERVICE_UPDATE", "Service update"
        WELCOME = "WELCOME", "Welcome"
        SYSTEM = "SYSTEM", "System"

    user = models.ForeignKey("store.User", related_name="notifications", on_delete=models.CASCADE)
    type = models.CharField(max_length=40, choices=Type.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=255, blank=True, default="")
    is_read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)
    order = models.ForeignKey(Order, null=True, blank=True, on_delete=models.SET_NULL)
    service_request = models.ForeignKey(ServiceRequest, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"[{self.type}] {self.title}"


class AuditLog(models.Model):
    actor = models.ForeignKey("store.User", null=True, blank=True, on_delete=models.SET_NULL)
    action = models.CharField(max_length=40)
    entity = models.CharField(max_length=40, db_index=True)
    entity_id = models.CharField(max_length=40, blank=True, default="")
    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.action} {self.entity}#{self.entity_id}"


class SiteSetting(models.Model):
    key = models.CharField(max_length=120, unique=True)
    value = models.TextField()
    type = models.CharField(max_length=20, default="string")
    group = models.CharField(max_length=60, default="general", db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["group", "key"]

    def __str__(self):
        return f"{self.key}={self.value}"
