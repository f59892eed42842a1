import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import store.models


def _catalog_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("name", models.CharField(max_length=255)),
        ("slug", models.SlugField(max_length=280, unique=True)),
        ("sku", models.CharField(blank=True, max_length=60, null=True, unique=True)),
        ("description", models.TextField(blank=True, default="")),
        ("short_description", models.CharField(blank=True, default="", max_length=300)),
        ("price", models.DecimalField(decimal_places=2, max_digits=12)),
        ("compare_at_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
        ("stock", models.PositiveIntegerField(default=0)),
        ("image_url", models.URLField(blank=True, default="")),
        ("is_active", models.BooleanField(default=True)),
        ("is_featured", models.BooleanField(default=False)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(
                    default=False,
                    help_text="Designates that this user has all permissions without explicitly assigning them.",
                    verbose_name="superuser status",
                )),
                ("email", models.EmailField(max_length=255, unique=True)),
                ("name", models.CharField(blank=True, default="", max_length=255)),
                ("phone", models.CharField(blank=True, default="", max_length=20)),
                ("role", models.CharField(
                    choices=[("USER", "Customer"), ("STAFF", "Staff"), ("ADMIN", "Admin")],
                    db_index=True, default="USER", max_length=10,
                )),
                ("is_active", models.BooleanField(default=True)),
                ("email_verified_at", models.DateTimeField(blank=True, null=True)),
                ("email_verification_token", models.CharField(blank=True, default="", max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("groups", models.ManyToManyField(
                    blank=True,
                    help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.",
                    related_name="user_set",
                    related_query_name="user",
                    to="auth.group",
                    verbose_name="groups",
                )),
                ("user_permissions", models.ManyToManyField(
                    blank=True,
                    help_text="Specific permissions for this user.",
                    related_name="user_set",
                    related_query_name="user",
                    to="auth.permission",
                    verbose_name="user permissions",
                )),
            ],
            options={"ordering": ["-created_at"]},
            managers=[("objects", store.models.UserManager())],
        ),
        migrations.CreateModel(
            name="Category",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120, unique=True)),
                ("slug", models.SlugField(max_length=140, unique=True)),
                ("description", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"ordering": ["name"], "verbose_name_plural": "categories"},
        ),
        migrations.CreateModel(
            name="Generator",
            fields=_catalog_fields() + [
                ("low_stock_threshold", models.PositiveIntegerField(default=5)),
                ("power_kva", models.DecimalField(decimal_places=2, max_digits=8)),
                ("power_kw", models.DecimalField(decimal_places=2, max_digits=8)),
                ("fuel_type", models.CharField(
                    choices=[
                        ("DIESEL", "Diesel"), ("PETROL", "Petrol"), ("GAS", "Gas"),
                        ("DUAL_FUEL", "Dual fuel"), ("NATURAL_GAS", "Natural gas"),
                    ],
                    max_length=20,
                )),
                ("brand", models.CharField(max_length=120)),
                ("model_name", models.CharField(blank=True, default="", max_length=120)),
                ("condition", models.CharField(
                    choices=[("NEW", "New"), ("REFURBISHED", "Refurbished"), ("USED", "Used")],
                    default="NEW", max_length=20,
                )),
                ("warranty", models.CharField(blank=True, default="", max_length=120)),
                ("category", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="generators", to="store.category",
                )),
            ],
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="Part",
            fields=_catalog_fields() + [
                ("part_number", models.CharField(blank=True, default="", max_length=80)),
                ("brand", models.CharField(blank=True, default="", max_length=120)),
                ("compatibility", models.TextField(blank=True, default="")),
                ("low_stock_threshold", models.PositiveIntegerField(default=10)),
                ("category", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="parts", to="store.category",
                )),
            ],
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="Cart",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE, related_name="cart", to=settings.AUTH_USER_MODEL,
                )),
            ],
        ),
        migrations.CreateModel(
            name="CartItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("item_type", models.CharField(choices=[("GENERATOR", "Generator"), ("PART", "Part")], max_length=10)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("cart", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="items", to="store.cart",
                )),
                ("generator", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, to="store.generator",
                )),
                ("part", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, to="store.part",
                )),
            ],
            options={
                "ordering": ["created_at", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("cart", "generator"), name="uniq_cart_generator"),
                    models.UniqueConstraint(fields=("cart", "part"), name="uniq_cart_part"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Coupon",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=40, unique=True)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("type", models.CharField(
                    choices=[
                        ("PERCENTAGE", "Percentage"), ("FIXED_AMOUNT", "Fixed amount"),
                        ("FREE_SHIPPING", "Free shipping"),
                    ],
                    max_length=20,
                )),
                ("value", models.DecimalField(decimal_places=2, max_digits=12)),
                ("min_order_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("max_discount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("usage_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("usage_count", models.PositiveIntegerField(default=0)),
                ("per_user_limit", models.PositiveIntegerField(default=1)),
                ("starts_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("applies_to_generators", models.BooleanField(default=True)),
                ("applies_to_parts", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(max_length=40, unique=True)),
                ("invoice_number", models.CharField(blank=True, max_length=40, null=True, unique=True)),
                ("shipping_name", models.CharField(max_length=255)),
                ("shipping_phone", models.CharField(max_length=30)),
                ("shipping_email", models.EmailField(max_length=255)),
                ("shipping_address_line", models.CharField(max_length=500)),
                ("shipping_city", models.CharField(max_length=120)),
                ("shipping_state", models.CharField(max_length=120)),
                ("shipping_postal_code", models.CharField(max_length=20)),
                ("shipping_country", models.CharField(default="Pakistan", max_length=80)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=12)),
                ("shipping_cost", models.DecimalField(decimal_places=2, default=store.models.ZERO, max_digits=12)),
                ("tax", models.DecimalField(decimal_places=2, default=store.models.ZERO, max_digits=12)),
                ("discount", models.DecimalField(decimal_places=2, default=store.models.ZERO, max_digits=12)),
                ("total", models.DecimalField(decimal_places=2, max_digits=12)),
                ("coupon_code", models.CharField(blank=True, default="", max_length=40)),
                ("coupon_discount", models.DecimalField(decimal_places=2, default=store.models.ZERO, max_digits=12)),
                ("status", models.CharField(
                    choices=[
                        ("PENDING", "Pending"), ("CONFIRMED", "Confirmed"), ("PROCESSING", "Processing"),
                        ("SHIPPED", "Shipped"), ("OUT_FOR_DELIVERY", "Out for delivery"),
                        ("DELIVERED", "Delivered"), ("CANCELLED", "Cancelled"), ("REFUNDED", "Refunded"),
                    ],
                    db_index=True, default="PENDING", max_length=20,
                )),
                ("payment_status", models.CharField(
                    choices=[
                        ("PENDING", "Pending"), ("PAID", "Paid"), ("FAILED", "Failed"),
                        ("REFUNDED", "Refunded"), ("PARTIALLY_REFUNDED", "Partially refunded"),
                    ],
                    db_index=True, default="PENDING", max_length=20,
                )),
                ("payment_method", models.CharField(
                    choices=[
                        ("CASH_ON_DELIVERY", "Cash on delivery"), ("STRIPE", "Card (Stripe)"),
                        ("BANK_TRANSFER", "Bank transfer"),
                    ],
                    max_length=20,
                )),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("tracking_number", models.CharField(blank=True, default="", max_length=120)),
                ("carrier", models.CharField(blank=True, default="", max_length=120)),
                ("estimated_delivery", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("stock_restored", models.BooleanField(default=False)),
                ("customer_notes", models.TextField(blank=True, default="")),
                ("admin_notes", models.TextField(blank=True, default="")),
                ("internal_notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("coupon", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="orders", to="store.coupon",
                )),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="orders", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("item_type", models.CharField(choices=[("GENERATOR", "Generator"), ("PART", "Part")], max_length=10)),
                ("name", models.CharField(max_length=255)),
                ("sku", models.CharField(blank=True, default="", max_length=60)),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("quantity", models.PositiveIntegerField()),
                ("total", models.DecimalField(decimal_places=2, max_digits=12)),
                ("image_url", models.URLField(blank=True, default="")),
                ("order", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="items", to="store.order",
                )),
                ("generator", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="order_items", to="store.generator",
                )),
                ("part", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="order_items", to="store.part",
                )),
            ],
            options={"ordering": ["id"]},
        ),
        migrations.CreateModel(
            name="ServiceRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("request_number", models.CharField(max_length=40, unique=True)),
                ("contact_name", models.CharField(max_length=255)),
                ("contact_phone", models.CharField(max_length=30)),
                ("contact_email", models.EmailField(max_length=255)),
                ("service_address", models.CharField(max_length=500)),
                ("service_city", models.CharField(max_length=120)),
                ("service_state", models.CharField(max_length=120)),
                ("service_type", models.CharField(
                    choices=[
                        ("REPAIR", "Repair"), ("MAINTENANCE", "Maintenance"), ("INSTALLATION", "Installation"),
                        ("INSPECTION", "Inspection"), ("EMERGENCY", "Emergency"), ("OTHER", "Other"),
                    ],
                    max_length=20,
                )),
                ("generator_brand", models.CharField(blank=True, default="", max_length=120)),
                ("generator_model", models.CharField(blank=True, default="", max_length=120)),
                ("generator_serial", models.CharField(blank=True, default="", max_length=120)),
                ("problem_title", models.CharField(max_length=255)),
                ("problem_description", models.TextField()),
                ("status", models.CharField(
                    choices=[
                        ("PENDING", "Pending"), ("REVIEWING", "Reviewing"), ("QUOTED", "Quoted"),
                        ("APPROVED", "Approved"), ("IN_PROGRESS", "In progress"), ("COMPLETED", "Completed"),
                        ("CANCELLED", "Cancelled"),
                    ],
                    db_index=True, default="PENDING", max_length=20,
                )),
                ("priority", models.CharField(
                    choices=[("LOW", "Low"), ("NORMAL", "Normal"), ("HIGH", "High"), ("URGENT", "Urgent")],
                    default="NORMAL", max_length=10,
                )),
                ("admin_notes", models.TextField(blank=True, default="")),
                ("internal_notes", models.TextField(blank=True, default="")),
                ("diagnosis", models.TextField(blank=True, default="")),
                ("estimated_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("quoted_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("quoted_at", models.DateTimeField(blank=True, null=True)),
                ("final_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("preferred_date", models.DateTimeField(blank=True, null=True)),
                ("scheduled_date", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("assigned_to", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="service_requests",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(
                    choices=[
                        ("ORDER_PLACED", "Order placed"), ("ORDER_UPDATE", "Order update"),
                        ("PAYMENT_RECEIVED", "Payment received"),
                        ("SERVICE_REQUEST_SUBMITTED", "Service request submitted"),
                        ("SERVICE_UPDATE", "Service update"), ("WELCOME", "Welcome"), ("SYSTEM", "System"),
                    ],
                    max_length=40,
                )),
                ("title", models.CharField(max_length=255)),
                ("message", models.TextField()),
                ("link", models.CharField(blank=True, default="", max_length=255)),
                ("is_read", models.BooleanField(db_index=True, default=False)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("order", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="store.order",
                )),
                ("service_request", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="store.servicerequest",
                )),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="notifications",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=40)),
                ("entity", models.CharField(db_index=True, max_length=40)),
                ("entity_id", models.CharField(blank=True, default="", max_length=40)),
                ("old_values", models.JSONField(blank=True, null=True)),
                ("new_values", models.JSONField(blank=True, null=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("actor", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="SiteSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=120, unique=True)),
                ("value", models.TextField()),
                ("type", models.CharField(default="string", max_length=20)),
                ("group", models.CharField(db_index=True, default="general", max_length=60)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["group", "key"]},
        ),
    ]
