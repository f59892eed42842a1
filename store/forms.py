# store/forms.py - admin forms that take prices the way the shop writes them ("Rs. 12,500")
import re
from decimal import Decimal, InvalidOperation

from django import forms
from django.contrib.auth import forms as auth_forms

from .models import Generator, Part, User
from .utils import CENT

_CURRENCY_RE = re.compile(r"^(rs\.?|pkr)\s*", re.IGNORECASE)


def parse_pkr(raw, required=True):
    """
    Accepts 'Rs. 12,500', 'PKR 1,234.50', '12500', '12500.5'.
    Commas are thousands separators, the dot is the decimal point.
    """
    s = (raw or "").strip() if isinstance(raw, str) else ("" if raw is None else str(raw))
    if not s:
        if required:
            raise forms.ValidationError("Enter a price, e.g. Rs. 12,500")
        return None
    s = _CURRENCY_RE.sub("", s).replace(",", "").replace(" ", "")

    try:
        val = Decimal(s)
    except InvalidOperation:
        raise forms.ValidationError("Invalid amount. Use something like Rs. 12,500")
    if not val.is_finite():
        raise forms.ValidationError("Invalid amount. Use something like Rs. 12,500")
    if val < 0:
        raise forms.ValidationError("Price cannot be negative.")
    return val.quantize(CENT)


class CatalogItemAdminForm(forms.ModelForm):
    """Shows price/compare-at price as free text in PKR and validates stock >= 0."""

    price = forms.CharField(label="Price (PKR)", help_text="e.g. Rs. 125,000")
    compare_at_price = forms.CharField(label="Compare-at price (PKR)", required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance.pk:
            self.initial["price"] = f"{self.instance.price:,.2f}"
            if self.instance.compare_at_price is not None:
                self.initial["compare_at_price"] = f"{self.instance.compare_at_price:,.2f}"

    def clean_price(self):
        value = parse_pkr(self.cleaned_data.get("price"))
        if value <= 0:
            raise forms.ValidationError("Price must be positive.")
        return value

    def clean_compare_at_price(self):
        return parse_pkr(self.cleaned_data.get("compare_at_price"), required=False)

    def clean_stock(self):
        v = self.cleaned_data.get("stock")
        if v is not None and v < 0:
            raise forms.ValidationError("Stock cannot be negative.")
        return v


class GeneratorAdminForm(CatalogItemAdminForm):
    class Meta:
        model = Generator
        fields = "__all__"


class PartAdminForm(CatalogItemAdminForm):
    class Meta:
        model = Part
        fields = "__all__"


# --------- Users (e-mail is the login) ---------
class StoreUserCreationForm(auth_forms.UserCreationForm):
    class Meta:
        model = User
        fields = ("email", "name", "role")


class StoreUserChangeForm(auth_forms.UserChangeForm):
    class Meta:
        model = User
        fields = ("email", "password", "name", "phone", "role", "is_active", "email_verified_at")
