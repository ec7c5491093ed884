from django.urls import path

from . import views

app_name = "ledger_core"

urlpatterns = [
    # Orders
    path("purchase-orders/", views.purchase_orders, name="purchase-orders"),
    path("purchase-orders/stats/", views.purchase_order_stats, name="purchase-order-stats"),
    path("purchase-orders/<int:pk>/", views.purchase_order_detail, name="purchase-order-detail"),
    path("purchase-orders/<int:pk>/convert-to-bill/", views.convert_purchase_order,
         name="purchase-order-convert"),
    path("sales-orders/", views.sales_orders, name="sales-orders"),
    path("sales-orders/stats/", views.sales_order_stats, name="sales-order-stats"),
    path("sales-orders/<int:pk>/", views.sales_order_detail, name="sales-order-detail"),
    path("sales-orders/<int:pk>/convert-to-invoice/", views.convert_sales_order,
         name="sales-order-convert"),
    # Bills & invoices
    path("vendor-bills/", views.vendor_bills, name="vendor-bills"),
    path("vendor-bills/stats/", views.vendor_bill_stats, name="vendor-bill-stats"),
    path("vendor-bills/<int:pk>/", views.vendor_bill_detail, name="vendor-bill-detail"),
    path("customer-invoices/", views.customer_invoices, name="customer-invoices"),
    path("customer-invoices/stats/", views.customer_invoice_stats,
         name="customer-invoice-stats"),
    path("customer-invoices/<int:pk>/", views.customer_invoice_detail,
         name="customer-invoice-detail"),
    # Payments
    path("payments/bill-payments/", views.bill_payments, name="bill-payments"),
    path("payments/bill-payments/<int:pk>/", views.bill_payment_detail,
         name="bill-payment-detail"),
    path("payments/invoice-payments/", views.invoice_payments, name="invoice-payments"),
    path("payments/invoice-payments/<int:pk>/", views.invoice_payment_detail,
         name="invoice-payment-detail"),
    path("payments/stats/", views.payment_stats, name="payment-stats"),
    path("payments/by-date-range/", views.payments_by_date_range, name="payments-by-date-range"),
    # Chart of accounts
    path("chart-of-accounts/", views.accounts, name="accounts"),
    path("chart-of-accounts/hierarchy/", views.account_hierarchy, name="account-hierarchy"),
    path("chart-of-accounts/stats/", views.account_stats, name="account-stats"),
    path("chart-of-accounts/by-type/<str:account_type>/", views.accounts_by_type,
         name="accounts-by-type"),
    path("chart-of-accounts/<int:pk>/", views.account_detail, name="account-detail"),
    # Contacts, products & taxes
    path("contacts/", views.contacts, name="contacts"),
    path("contacts/stats/", views.contact_stats, name="contact-stats"),
    path("contacts/<int:pk>/", views.contact_detail, name="contact-detail"),
    path("products/", views.products, name="products"),
    path("products/stats/", views.product_stats, name="product-stats"),
    path("products/categories/", views.product_categories, name="product-categories"),
    path("products/<int:pk>/", views.product_detail, name="product-detail"),
    path("taxes/", views.taxes, name="taxes"),
    path("taxes/stats/", views.tax_stats, name="tax-stats"),
    path("taxes/by-type/<slug:side>/", views.taxes_by_type, name="taxes-by-type"),
    path("taxes/calculate/", views.tax_calculate, name="tax-calculate"),
    path("taxes/<int:pk>/", views.tax_detail, name="tax-detail"),
    path("stock/adjustments/", views.stock_adjustments, name="stock-adjustments"),
    # Reports: balance_sheet, profit_and_loss, partner_ledger, stock_statement, dashboard
    path("reports/<slug:name>/", views.report, name="report"),
    path("reports/<slug:name>/async/", views.report_async, name="report-async"),
]
