import json
import logging
from functools import wraps

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.core.paginator import EmptyPage, Paginator
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from . import forms, services
from .calculations import calculate_tax
from .exceptions import ConflictError, NotFoundError
from .models import (Account, BillPayment, Contact, CustomerInvoice,
                     InvoicePayment, Product, PurchaseOrder, SalesOrder, Tax,
                     VendorBill)
from .tasks import generate_report

logger = logging.getLogger(__name__)


# ----------------------------
# Envelope & error mapping
# ----------------------------
def respond(message, data=None, status=200, pagination=None):
    body = {"success": 200 <= status < 300, "message": message}
    if data is not None:
        body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination
    # JsonResponse encodes Decimal / date with DjangoJSONEncoder
    return JsonResponse(body, status=status)


def api_view(*methods):
    """
    JSON endpoint: method check plus the typed-error → status mapping
    (ValidationError 400, NotFound 404, Conflict/Overpayment 409).
    """
    def decorator(view):
        @csrf_exempt
        @require_http_methods(list(methods))
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                return view(request, *args, **kwargs)
            except ValidationError as exc:
                if hasattr(exc, "error_dict"):
                    return respond("Validation failed", exc.message_dict, status=400)
                return respond("; ".join(exc.messages), status=400)
            except ObjectDoesNotExist as exc:  # NotFoundError included
                return respond(str(exc) or "Not found", status=404)
            except ConflictError as exc:  # OverpaymentError included
                return respond(str(exc), status=409)
        return wrapper
    return decorator


def json_body(request) -> dict:
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def acting_user(request):
    user = getattr(request, "user", None)
    return user if user is not None and user.is_authenticated else None


def list_params(form_class, request):
    """(paging, filters) out of the query string."""
    params = forms.parse_list(form_class, request.GET)
    paging = {"page": params.pop("page"), "limit": params.pop("limit")}
    return paging, params


def paginate(qs, paging):
    paginator = Paginator(qs, paging["limit"])
    try:
        rows = list(paginator.page(paging["page"]).object_list)
    except EmptyPage:
        # past the last page: nothing, but the totals still hold
        rows = []
    return rows, {
        "page": paging["page"],
        "limit": paging["limit"],
        "total": paginator.count,
        "totalPages": paginator.num_pages if paginator.count else 0,
    }


# ----------------------------
# Serialisers
# ----------------------------
def document_data(document) -> dict:
    data = {
        "id": document.pk,
        "number": document.number,
        "date": document.date,
        "contact": {"id": document.contact_id, "name": document.contact.name},
        "subtotal": document.subtotal,
        "taxAmount": document.tax_amount,
        "total": document.total,
        "notes": document.notes,
        "items": [
            {
                "id": item.pk,
                "product": {"id": item.product_id, "name": item.product.name},
                "taxId": item.tax_id,
                "quantity": item.quantity,
                "unitPrice": item.unit_price,
                "taxAmount": item.tax_amount,
                "total": item.total,
            }
            for item in document.items.all()
        ],
    }
    if hasattr(document, "status"):
        data["status"] = document.status
    if hasattr(document, "payment_status"):
        data.update({
            "dueDate": document.due_date,
            "paidAmount": document.paid_amount,
            "paymentStatus": document.payment_status,
        })
    return data


def payment_data(payment, document) -> dict:
    return {
        "id": payment.pk,
        "documentId": document.pk,
        "documentNumber": document.number,
        "contactId": payment.contact_id,
        "amount": payment.amount,
        "paymentDate": payment.payment_date,
        "paymentMethod": payment.payment_method,
        "reference": payment.reference,
        "notes": payment.notes,
        "paidAmount": document.paid_amount,
        "paymentStatus": document.payment_status,
    }


def account_data(account) -> dict:
    return {
        "id": account.pk, "name": account.name, "code": account.code,
        "type": account.account_type, "parentId": account.parent_id,
    }


def contact_data(contact) -> dict:
    return {
        "id": contact.pk,
        "name": contact.name,
        "type": contact.contact_type,
        "email": contact.email,
        "mobile": contact.mobile,
        "city": contact.city,
        "state": contact.state,
        "pincode": contact.pincode,
        "address": contact.address,
    }


def product_data(product) -> dict:
    return {
        "id": product.pk,
        "name": product.name,
        "type": product.product_type,
        "salesPrice": product.sales_price,
        "purchasePrice": product.purchase_price,
        "salesTaxPercent": product.sales_tax_percent,
        "purchaseTaxPercent": product.purchase_tax_percent,
        "hsnCode": product.hsn_code,
        "category": product.category,
    }


def tax_data(tax) -> dict:
    return {
        "id": tax.pk,
        "name": tax.name,
        "computationMethod": tax.computation_method,
        "rate": tax.rate,
        "applicableOnSales": tax.applicable_on_sales,
        "applicableOnPurchase": tax.applicable_on_purchase,
    }


def _get(model, pk, label):
    try:
        return model.objects.select_related("contact").prefetch_related(
            "items__product").get(pk=pk)
    except model.DoesNotExist:
        raise NotFoundError(f"{label} not found")


# ----------------------------
# Orders, bills & invoices
# ----------------------------
# kind → (model, label, list filters, create, update, delete, stats)
DOCUMENTS = {
    "purchase-order": (PurchaseOrder, "Purchase order", forms.OrderListForm,
                       services.create_purchase_order, services.update_purchase_order,
                       services.delete_purchase_order, services.order_stats),
    "sales-order": (SalesOrder, "Sales order", forms.OrderListForm,
                    services.create_sales_order, services.update_sales_order,
                    services.delete_sales_order, services.order_stats),
    "vendor-bill": (VendorBill, "Vendor bill", forms.PayableListForm,
                    services.create_vendor_bill, services.update_vendor_bill,
                    services.delete_vendor_bill, services.payable_stats),
    "customer-invoice": (CustomerInvoice, "Customer invoice", forms.PayableListForm,
                         services.create_customer_invoice,
                         services.update_customer_invoice,
                         services.delete_customer_invoice, services.payable_stats),
}


def _document_list(kind):
    model, label, list_form, create, _update, _delete, _stats = DOCUMENTS[kind]

    @api_view("GET", "POST")
    def view(request):
        if request.method == "GET":
            paging, filters = list_params(list_form, request)
            qs = services.search_documents(model, **filters).prefetch_related(
                "items__product")
            rows, pagination = paginate(qs, paging)
            return respond(f"{model._meta.verbose_name_plural.capitalize()} retrieved successfully",
                           [document_data(row) for row in rows], pagination=pagination)
        data = forms.parse_document(json_body(request))
        document = create(data, user=acting_user(request))
        return respond(f"{label} created successfully", document_data(document), status=201)
    return view


def _document_detail(kind):
    model, label, _list_form, _create, update, delete, _stats = DOCUMENTS[kind]

    @api_view("GET", "PUT", "DELETE")
    def view(request, pk):
        if request.method == "GET":
            return respond(f"{label} retrieved successfully",
                           document_data(_get(model, pk, label)))
        if request.method == "PUT":
            data = forms.parse_document(json_body(request))
            document = update(pk, data, user=acting_user(request))
            return respond(f"{label} updated successfully", document_data(document))
        delete(pk, user=acting_user(request))
        return respond(f"{label} deleted successfully")
    return view


def _document_stats(kind):
    model, label, _list_form, _create, _update, _delete, stats = DOCUMENTS[kind]

    @api_view("GET")
    def view(request):
        return respond(f"{label} statistics retrieved successfully", stats(model))
    return view


purchase_orders = _document_list("purchase-order")
purchase_order_detail = _document_detail("purchase-order")
purchase_order_stats = _document_stats("purchase-order")
sales_orders = _document_list("sales-order")
sales_order_detail = _document_detail("sales-order")
sales_order_stats = _document_stats("sales-order")
vendor_bills = _document_list("vendor-bill")
vendor_bill_detail = _document_detail("vendor-bill")
vendor_bill_stats = _document_stats("vendor-bill")
customer_invoices = _document_list("customer-invoice")
customer_invoice_detail = _document_detail("customer-invoice")
customer_invoice_stats = _document_stats("customer-invoice")


@api_view("POST")
def convert_sales_order(request, pk):
    data = forms.parse_conversion(json_body(request))
    invoice = services.convert_sales_order_to_invoice(pk, data, user=acting_user(request))
    return respond("Sales order converted to invoice successfully",
                   document_data(invoice), status=201)


@api_view("POST")
def convert_purchase_order(request, pk):
    data = forms.parse_conversion(json_body(request))
    bill = services.convert_purchase_order_to_bill(pk, data, user=acting_user(request))
    return respond("Purchase order converted to bill successfully",
                   document_data(bill), status=201)


# ----------------------------
# Payments
# ----------------------------
# kind → (model, document field, label, record)
PAYMENTS = {
    "bill": (BillPayment, "vendor_bill", "Bill payment", services.record_bill_payment),
    "invoice": (InvoicePayment, "customer_invoice", "Invoice payment",
                services.record_invoice_payment),
}


def _payment_list(kind):
    model, document_field, label, record = PAYMENTS[kind]

    @api_view("GET", "POST")
    def view(request):
        if request.method == "GET":
            paging, filters = list_params(forms.PaymentListForm, request)
            rows, pagination = paginate(services.search_payments(model, **filters), paging)
            return respond(f"{label}s retrieved successfully",
                           [payment_data(row, getattr(row, document_field)) for row in rows],
                           pagination=pagination)
        data = forms.parse_payment(json_body(request))
        payment = record(data, user=acting_user(request))
        return respond(f"{label} recorded successfully",
                       payment_data(payment, getattr(payment, document_field)), status=201)
    return view


def _payment_detail(kind):
    model, document_field, label, _record = PAYMENTS[kind]

    @api_view("GET")
    def view(request, pk):
        payment = services.get_payment(model, pk)
        return respond(f"{label} retrieved successfully",
                       payment_data(payment, getattr(payment, document_field)))
    return view


bill_payments = _payment_list("bill")
bill_payment_detail = _payment_detail("bill")
invoice_payments = _payment_list("invoice")
invoice_payment_detail = _payment_detail("invoice")


@api_view("GET")
def payment_stats(request):
    return respond("Payment statistics retrieved successfully", services.payment_stats())


@api_view("GET")
def payments_by_date_range(request):
    params = forms.parse_report_params(request.GET)
    if not (params.get("start_date") and params.get("end_date")):
        raise ValidationError("start_date and end_date are required")
    return respond("Payments retrieved successfully",
                   services.payments_between(params["start_date"], params["end_date"]))


# ----------------------------
# Master data
# ----------------------------
# kind → (model, label, list filters, search, parse, create, update, delete, serialise)
MASTER_DATA = {
    "account": (Account, "Account", forms.AccountListForm, services.search_accounts,
                forms.parse_account, services.create_account, services.update_account,
                services.delete_account, account_data),
    "contact": (Contact, "Contact", forms.ContactListForm, services.search_contacts,
                forms.parse_contact, services.create_contact, services.update_contact,
                services.delete_contact, contact_data),
    "product": (Product, "Product", forms.ProductListForm, services.search_products,
                forms.parse_product, services.create_product, services.update_product,
                services.delete_product, product_data),
    "tax": (Tax, "Tax", forms.TaxListForm, services.search_taxes,
            forms.parse_tax, services.create_tax, services.update_tax,
            services.delete_tax, tax_data),
}


def _master_list(kind):
    model, label, list_form, search, parse, create, _update, _delete, serialise = \
        MASTER_DATA[kind]

    @api_view("GET", "POST")
    def view(request):
        if request.method == "GET":
            paging, filters = list_params(list_form, request)
            rows, pagination = paginate(search(**filters), paging)
            return respond(f"{model._meta.verbose_name_plural.capitalize()} retrieved successfully",
                           [serialise(row) for row in rows], pagination=pagination)
        instance = create(parse(json_body(request)), user=acting_user(request))
        return respond(f"{label} created successfully", serialise(instance), status=201)
    return view


def _master_detail(kind):
    model, label, _list_form, _search, parse, _create, update, delete, serialise = \
        MASTER_DATA[kind]

    @api_view("GET", "PUT", "DELETE")
    def view(request, pk):
        if request.method == "DELETE":
            delete(pk, user=acting_user(request))
            return respond(f"{label} deleted successfully")
        try:
            instance = model.objects.get(pk=pk)
        except model.DoesNotExist:
            raise NotFoundError(f"{label} not found")
        if request.method == "GET":
            return respond(f"{label} retrieved successfully", serialise(instance))
        data = parse(json_body(request), instance)
        instance = update(pk, data, user=acting_user(request))
        return respond(f"{label} updated successfully", serialise(instance))
    return view


accounts = _master_list("account")
account_detail = _master_detail("account")
contacts = _master_list("contact")
contact_detail = _master_detail("contact")
products = _master_list("product")
product_detail = _master_detail("product")
taxes = _master_list("tax")
tax_detail = _master_detail("tax")


@api_view("GET")
def account_hierarchy(request):
    return respond("Account hierarchy retrieved successfully", services.account_hierarchy())


@api_view("GET")
def account_stats(request):
    return respond("Account statistics retrieved successfully", services.account_stats())


@api_view("GET")
def accounts_by_type(request, account_type):
    rows = services.accounts_by_type(account_type.upper())
    return respond("Accounts retrieved successfully", [account_data(row) for row in rows])


@api_view("GET")
def contact_stats(request):
    return respond("Contact statistics retrieved successfully", services.contact_stats())


@api_view("GET")
def product_stats(request):
    return respond("Product statistics retrieved successfully", services.product_stats())


@api_view("GET")
def product_categories(request):
    return respond("Product categories retrieved successfully", services.product_categories())


@api_view("GET")
def tax_stats(request):
    return respond("Tax statistics retrieved successfully", services.tax_stats())


@api_view("GET")
def taxes_by_type(request, side):
    rows = services.taxes_for_side(side)
    return respond("Taxes retrieved successfully", [tax_data(row) for row in rows])


@api_view("POST")
def tax_calculate(request):
    payload = json_body(request)
    tax_id = payload.get("tax_id")
    if tax_id is None:
        raise ValidationError({"tax_id": ["This field is required."]})
    try:
        tax = Tax.objects.get(pk=tax_id)
    except (Tax.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Tax not found")
    return respond("Tax calculated successfully", calculate_tax(payload.get("amount"), tax))


@api_view("POST")
def stock_adjustments(request):
    data = forms.parse_stock_adjustment(json_body(request))
    try:
        product = Product.objects.get(pk=data.product_id)
    except Product.DoesNotExist:
        raise NotFoundError("Product not found")
    movement = services.adjust_stock(product, data.quantity, data.date, data.notes)
    return respond("Stock adjusted successfully", {
        "id": movement.pk, "productId": product.pk,
        "quantity": movement.quantity, "movementDate": movement.movement_date,
    }, status=201)


# ----------------------------
# Reports
# ----------------------------
def report_arguments(name, params) -> dict:
    """Pick the arguments a report takes out of validated query params."""
    if name == "balance_sheet":
        return {"as_of_date": params.get("as_of_date")}
    if name == "profit_and_loss":
        if not (params.get("start_date") and params.get("end_date")):
            raise ValidationError("start_date and end_date are required")
        return {"start_date": params["start_date"], "end_date": params["end_date"]}
    if name == "partner_ledger":
        if not params.get("contact_id"):
            raise ValidationError({"contact_id": ["This field is required."]})
        return {"contact_id": params["contact_id"],
                "start_date": params.get("start_date"),
                "end_date": params.get("end_date")}
    if name == "stock_statement":
        return {"as_of_date": params.get("as_of_date"),
                "product_id": params.get("product_id")}
    if name == "dashboard":
        return {}
    raise NotFoundError(f"Unknown report: {name}")


@api_view("GET")
def report(request, name):
    kwargs = report_arguments(name, forms.parse_report_params(request.GET))
    data = services.reports.REPORTS[name](**kwargs)
    return respond(f"{name.replace('_', ' ').capitalize()} retrieved successfully", data)


@api_view("POST")
def report_async(request, name):
    kwargs = report_arguments(name, forms.parse_report_params(json_body(request)))
    # dates travel as ISO strings through the broker
    task = generate_report.delay(
        name, {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in kwargs.items()}
    )
    logger.info("Queued %s report as task %s", name, task.id)
    return respond("Report queued", {"taskId": task.id}, status=202)
