# store/admin.py
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.safestring import mark_safe

from .forms import GeneratorAdminForm, PartAdminForm, StoreUserChangeForm, StoreUserCreationForm
from .models import (
    AuditLog,
    Category,
    Coupon,
    Generator,
    Notification,
    Order,
    OrderItem,
    Part,
    ServiceRequest,
    SiteSetting,
    User,
)
from .utils import format_pkr


# ===============================
# Helpers
# ===============================
def _thumb(url, size=40):
    if not url:
        return "—"
    return mark_safe(
        f'<img src="{url}" style="height:{size}px;width:{size}px;object-fit:cover;border-radius:6px;" />'
    )


# ===============================
# Users
# ===============================
@admin.register(User)
class UserAdmin(BaseUserAdmin):
    form = StoreUserChangeForm
    add_form = StoreUserCreationForm
    ordering = ("-created_at",)
    list_display = ("id", "email", "name", "role", "is_active", "email_verified_at", "created_at")
    list_filter = ("role", "is_active")
    search_fields = ("email", "name", "phone")
    readonly_fields = ("created_at", "updated_at", "last_login")
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Profile", {"fields": ("name", "phone", "role", "is_active", "email_verified_at")}),
        ("Dates", {"fields": ("last_login", "created_at", "updated_at")}),
    )
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "name", "role", "password1", "password2")}),
    )
    filter_horizontal = ()


# ===============================
# Catalog
# ===============================
@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "is_active", "created_at")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


class CatalogItemAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "sku", "price_fmt", "stock", "low_stock", "is_active", "thumb")
    list_filter = ("is_active", "is_featured", "category")
    search_fields = ("name", "sku", "brand", "description")
    prepopulated_fields = {"slug": ("name",)}
    readonly_fields = ("thumb_preview", "created_at", "updated_at")

    def price_fmt(self, obj):
        return format_pkr(obj.price)
    price_fmt.short_description = "Price"

    def low_stock(self, obj):
        return obj.is_low_stock
    low_stock.boolean = True

    def thumb(self, obj):
        return _thumb(obj.image_url)
    thumb.short_description = "Thumb"

    def thumb_preview(self, obj):
        return _thumb(obj.image_url, size=160)


@admin.register(Generator)
class GeneratorAdmin(CatalogItemAdmin):
    form = GeneratorAdminForm
    list_filter = CatalogItemAdmin.list_filter + ("fuel_type", "condition")


@admin.register(Part)
class PartAdmin(CatalogItemAdmin):
    form = PartAdminForm
    search_fields = CatalogItemAdmin.search_fields + ("part_number", "compatibility")


# ===============================
# Order / OrderItem
# ===============================
class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("item_type", "generator", "part", "name", "sku", "price", "quantity", "total")
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "order_number", "user", "status", "payment_status", "total", "created_at")
    list_filter = ("status", "payment_status", "payment_method")
    search_fields = ("order_number", "shipping_name", "shipping_phone", "shipping_email")
    readonly_fields = ("order_number", "invoice_number", "subtotal", "shipping_cost", "tax", "discount", "total",
                       "stock_restored")
    inlines = [OrderItemInline]


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ("id", "code", "type", "value", "usage_count", "usage_limit", "is_active", "expires_at")
    list_filter = ("type", "is_active")
    search_fields = ("code", "description")
    readonly_fields = ("usage_count",)


@admin.register(ServiceRequest)
class ServiceRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "request_number", "contact_name", "service_type", "status", "priority", "created_at")
    list_filter = ("status", "priority", "service_type")
    search_fields = ("request_number", "contact_name", "contact_phone", "problem_title")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "type", "title", "is_read", "created_at")
    list_filter = ("type", "is_read")


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("id", "actor", "action", "entity", "entity_id", "ip_address", "created_at")
    list_filter = ("action", "entity")
    search_fields = ("entity_id",)


@admin.register(SiteSetting)
class SiteSettingAdmin(admin.ModelAdmin):
    list_display = ("key", "value", "group", "type", "updated_at")
    list_filter = ("group",)
    search_fields = ("key",)
