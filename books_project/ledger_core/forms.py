"""
Request payload validation.

Each form turns a raw (JSON-decoded) payload into a frozen dataclass, so
services only ever see typed, already-validated values.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from django import forms
from django.core.exceptions import ValidationError
from django.utils import timezone

from .models.account import ACCOUNT_TYPES
from .models.contact import CONTACT_TYPES, mobile_validator, pincode_validator
from .models.document import ORDER_STATUS_CHOICES, PAYMENT_STATUS_CHOICES
from .models.payment import PAYMENT_METHODS
from .models.product import PRODUCT_TYPES
from .models.tax import TAX_METHODS


# ---------- Typed inputs ----------
@dataclass(frozen=True)
class LineInput:
    product_id: int
    quantity: Decimal
    unit_price: Decimal
    tax_id: Optional[int] = None


@dataclass(frozen=True)
class DocumentInput:
    contact_id: int
    date: date
    lines: Tuple[LineInput, ...]
    due_date: Optional[date] = None
    notes: Optional[str] = None
    order_id: Optional[int] = None  # bill/invoice raised against an order


@dataclass(frozen=True)
class PaymentInput:
    document_id: int
    contact_id: int
    amount: Decimal
    payment_date: date
    payment_method: str
    reference: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ConversionInput:
    date: date
    due_date: Optional[date] = None


@dataclass(frozen=True)
class AccountInput:
    name: str
    code: str
    account_type: str
    parent_id: Optional[int] = None


@dataclass(frozen=True)
class StockAdjustmentInput:
    product_id: int
    quantity: Decimal
    date: date
    notes: str = ""


@dataclass(frozen=True)
class ContactInput:
    name: str
    contact_type: str
    email: Optional[str] = None
    mobile: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class ProductInput:
    name: str
    product_type: str
    sales_price: Decimal = Decimal("0.00")
    purchase_price: Decimal = Decimal("0.00")
    sales_tax_percent: Optional[Decimal] = None
    purchase_tax_percent: Optional[Decimal] = None
    hsn_code: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class TaxInput:
    name: str
    computation_method: str
    rate: Decimal
    applicable_on_sales: bool = True
    applicable_on_purchase: bool = True


# ---------- Forms ----------
# Money: non-negative, at most 2 decimals (forms.DecimalField rejects NaN)
def money(**kwargs):
    kwargs.setdefault("max_digits", 15)
    kwargs.setdefault("decimal_places", 2)
    kwargs.setdefault("min_value", Decimal("0"))
    return forms.DecimalField(**kwargs)


class LineForm(forms.Form):
    product_id = forms.IntegerField(min_value=1)
    quantity = money(max_digits=10)
    unit_price = money(max_digits=10)
    tax_id = forms.IntegerField(min_value=1, required=False)


class DocumentForm(forms.Form):
    contact_id = forms.IntegerField(min_value=1)
    date = forms.DateField()
    due_date = forms.DateField(required=False)
    notes = forms.CharField(required=False)
    order_id = forms.IntegerField(min_value=1, required=False)

    def clean(self):
        cleaned = super().clean()
        start, due = cleaned.get("date"), cleaned.get("due_date")
        if start and due and due < start:
            self.add_error("due_date", "Due date cannot be before the document date")
        return cleaned


class PaymentForm(forms.Form):
    document_id = forms.IntegerField(min_value=1)
    contact_id = forms.IntegerField(min_value=1)
    amount = money(min_value=Decimal("0.01"))
    payment_date = forms.DateField()
    payment_method = forms.ChoiceField(choices=PAYMENT_METHODS)
    reference = forms.CharField(max_length=100, required=False)
    notes = forms.CharField(required=False)


class ConversionForm(forms.Form):
    date = forms.DateField(required=False)  # defaults to today
    due_date = forms.DateField(required=False)

    def clean(self):
        cleaned = super().clean()
        start = cleaned.get("date") or timezone.localdate()
        due = cleaned.get("due_date")
        if due and due < start:
            self.add_error("due_date", "Due date cannot be before the document date")
        return cleaned


class AccountForm(forms.Form):
    name = forms.CharField(max_length=200)
    code = forms.CharField(max_length=32)
    account_type = forms.ChoiceField(choices=ACCOUNT_TYPES)
    parent_id = forms.IntegerField(min_value=1, required=False)


class StockAdjustmentForm(forms.Form):
    product_id = forms.IntegerField(min_value=1)
    # signed: negative for write-offs
    quantity = forms.DecimalField(max_digits=12, decimal_places=2)
    date = forms.DateField()
    notes = forms.CharField(max_length=255, required=False)

    def clean_quantity(self):
        quantity = self.cleaned_data["quantity"]
        if quantity == 0:
            raise ValidationError("Quantity cannot be zero")
        return quantity


class ReportForm(forms.Form):
    as_of_date = forms.DateField(required=False)
    start_date = forms.DateField(required=False)
    end_date = forms.DateField(required=False)
    contact_id = forms.IntegerField(min_value=1, required=False)
    product_id = forms.IntegerField(min_value=1, required=False)

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get("start_date"), cleaned.get("end_date")
        if start and end and end < start:
            raise ValidationError("end_date cannot be before start_date")
        return cleaned


class ContactForm(forms.Form):
    name = forms.CharField(max_length=200)
    contact_type = forms.ChoiceField(choices=CONTACT_TYPES)
    email = forms.EmailField(required=False)
    mobile = forms.CharField(max_length=10, required=False, validators=[mobile_validator])
    city = forms.CharField(max_length=100, required=False)
    state = forms.CharField(max_length=100, required=False)
    pincode = forms.CharField(max_length=6, required=False, validators=[pincode_validator])
    address = forms.CharField(required=False)


def percent(**kwargs):
    return forms.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal("0"),
                              max_value=Decimal("100"), **kwargs)


class ProductForm(forms.Form):
    name = forms.CharField(max_length=200)
    product_type = forms.ChoiceField(choices=PRODUCT_TYPES)
    sales_price = money(max_digits=10, required=False)
    purchase_price = money(max_digits=10, required=False)
    sales_tax_percent = percent(required=False)
    purchase_tax_percent = percent(required=False)
    hsn_code = forms.CharField(max_length=16, required=False)
    category = forms.CharField(max_length=100, required=False)


class TaxForm(forms.Form):
    name = forms.CharField(max_length=100)
    computation_method = forms.ChoiceField(choices=TAX_METHODS)
    rate = money(max_digits=10)
    # missing → applies
    applicable_on_sales = forms.NullBooleanField(required=False)
    applicable_on_purchase = forms.NullBooleanField(required=False)

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("computation_method") == "PERCENTAGE" \
                and cleaned.get("rate") is not None and cleaned["rate"] > 100:
            self.add_error("rate", "Percentage tax rate cannot exceed 100")
        if cleaned.get("applicable_on_sales") is False \
                and cleaned.get("applicable_on_purchase") is False:
            raise ValidationError("Tax must apply to sales, purchases or both")
        return cleaned


# ---------- List filters (query string) ----------
class ListForm(forms.Form):
    page = forms.IntegerField(min_value=1, required=False)
    limit = forms.IntegerField(min_value=1, max_value=100, required=False)
    search = forms.CharField(max_length=200, required=False)

    def clean(self):
        cleaned = super().clean()
        cleaned["page"] = cleaned.get("page") or 1
        cleaned["limit"] = cleaned.get("limit") or 10
        cleaned["search"] = _blank_to_none(cleaned.get("search"))
        return cleaned


class OrderListForm(ListForm):
    contact_id = forms.IntegerField(min_value=1, required=False)
    status = forms.ChoiceField(choices=ORDER_STATUS_CHOICES, required=False)


class PayableListForm(ListForm):
    contact_id = forms.IntegerField(min_value=1, required=False)
    payment_status = forms.ChoiceField(choices=PAYMENT_STATUS_CHOICES, required=False)


class PaymentListForm(ListForm):
    contact_id = forms.IntegerField(min_value=1, required=False)
    payment_method = forms.ChoiceField(choices=PAYMENT_METHODS, required=False)


class ContactListForm(ListForm):
    contact_type = forms.ChoiceField(choices=CONTACT_TYPES, required=False)


class ProductListForm(ListForm):
    product_type = forms.ChoiceField(choices=PRODUCT_TYPES, required=False)
    category = forms.CharField(max_length=100, required=False)


class TaxListForm(ListForm):
    computation_method = forms.ChoiceField(choices=TAX_METHODS, required=False)
    applicable_on_sales = forms.NullBooleanField(required=False)
    applicable_on_purchase = forms.NullBooleanField(required=False)


class AccountListForm(ListForm):
    account_type = forms.ChoiceField(choices=ACCOUNT_TYPES, required=False)
    parent_id = forms.IntegerField(min_value=1, required=False)


# ---------- Parsers ----------
def form_errors(form) -> dict:
    # {field: [messages]} travels to the 400 response
    return {field: list(errors) for field, errors in form.errors.items()}


def _validated(form_class, payload) -> dict:
    form = form_class(data=payload or {})
    if not form.is_valid():
        raise ValidationError(form_errors(form))
    return form.cleaned_data


def _blank_to_none(value):
    return value if value not in ("", None) else None


def parse_document(payload) -> DocumentInput:
    data = _validated(DocumentForm, payload)
    raw_lines = (payload or {}).get("items")
    if not isinstance(raw_lines, (list, tuple)) or not raw_lines:
        raise ValidationError({"items": ["At least one item is required"]})
    lines = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError({f"items[{index}]": ["Item must be an object"]})
        form = LineForm(data=raw)
        if not form.is_valid():
            raise ValidationError({
                f"items[{index}].{field}": messages
                for field, messages in form_errors(form).items()
            })
        lines.append(LineInput(**form.cleaned_data))
    return DocumentInput(
        contact_id=data["contact_id"],
        date=data["date"],
        lines=tuple(lines),
        due_date=data.get("due_date"),
        notes=_blank_to_none(data.get("notes")),
        order_id=data.get("order_id"),
    )


def parse_payment(payload) -> PaymentInput:
    data = _validated(PaymentForm, payload)
    return PaymentInput(
        document_id=data["document_id"],
        contact_id=data["contact_id"],
        amount=data["amount"],
        payment_date=data["payment_date"],
        payment_method=data["payment_method"],
        reference=_blank_to_none(data.get("reference")),
        notes=_blank_to_none(data.get("notes")),
    )


def parse_conversion(payload) -> ConversionInput:
    data = _validated(ConversionForm, payload)
    return ConversionInput(date=data.get("date") or timezone.localdate(),
                           due_date=data.get("due_date"))


def parse_account(payload, instance=None) -> AccountInput:
    data = _validated(AccountForm, _merged(AccountForm, payload, instance))
    return AccountInput(
        name=data["name"].strip(),
        code=data["code"].strip(),
        account_type=data["account_type"],
        parent_id=data.get("parent_id"),
    )


def parse_stock_adjustment(payload) -> StockAdjustmentInput:
    data = _validated(StockAdjustmentForm, payload)
    return StockAdjustmentInput(
        product_id=data["product_id"],
        quantity=data["quantity"],
        date=data["date"],
        notes=data.get("notes") or "",
    )


def parse_report_params(params) -> dict:
    return _validated(ReportForm, params)


def parse_list(form_class, params) -> dict:
    """Query-string filters; blank values are dropped."""
    data = _validated(form_class, params)
    return {key: value for key, value in data.items() if value not in ("", None)}


def _merged(form_class, payload, instance):
    # updates are partial: unspecified fields keep their stored value
    if instance is None:
        return payload
    merged = {field: getattr(instance, field) for field in form_class.base_fields
              if getattr(instance, field) is not None}
    merged.update(payload or {})
    return merged


def parse_contact(payload, instance=None) -> ContactInput:
    data = _validated(ContactForm, _merged(ContactForm, payload, instance))
    optional = ("email", "mobile", "city", "state", "pincode", "address")
    return ContactInput(
        name=data["name"].strip(),
        contact_type=data["contact_type"],
        **{field: _blank_to_none(data.get(field)) for field in optional},
    )


def parse_product(payload, instance=None) -> ProductInput:
    data = _validated(ProductForm, _merged(ProductForm, payload, instance))
    return ProductInput(
        name=data["name"].strip(),
        product_type=data["product_type"],
        sales_price=data.get("sales_price") or Decimal("0.00"),
        purchase_price=data.get("purchase_price") or Decimal("0.00"),
        sales_tax_percent=data.get("sales_tax_percent"),
        purchase_tax_percent=data.get("purchase_tax_percent"),
        hsn_code=_blank_to_none(data.get("hsn_code")),
        category=_blank_to_none(data.get("category")),
    )


def parse_tax(payload, instance=None) -> TaxInput:
    data = _validated(TaxForm, _merged(TaxForm, payload, instance))
    return TaxInput(
        name=data["name"].strip(),
        computation_method=data["computation_method"],
        rate=data["rate"],
        applicable_on_sales=data.get("applicable_on_sales") is not False,
        applicable_on_purchase=data.get("applicable_on_purchase") is not False,
    )
