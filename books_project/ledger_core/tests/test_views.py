import json
from decimal import Decimal
from unittest import mock

from django.urls import reverse

from ..models import Contact, CustomerInvoice, Product, SalesOrder, Tax, VendorBill
from .helpers import BooksTestCase


class ApiTests(BooksTestCase):
    def url(self, url_name, **kwargs):
        return reverse(f"ledger_core:{url_name}", kwargs=kwargs or None)

    def post(self, url_name, payload, **kwargs):
        return self.client.post(self.url(url_name, **kwargs),
                                data=json.dumps(payload), content_type="application/json")

    def put(self, url_name, payload, **kwargs):
        return self.client.put(self.url(url_name, **kwargs),
                               data=json.dumps(payload), content_type="application/json")

    def order_payload(self, contact=None, **overrides):
        payload = {
            "contact_id": (contact or self.customer).pk,
            "date": "2025-01-15",
            "items": [{"product_id": self.chair.pk, "quantity": "2",
                       "unit_price": "100.00", "tax_id": self.gst18.pk}],
        }
        payload.update(overrides)
        return payload

    # ---------- documents ----------
    def test_create_sales_order(self):
        response = self.post("sales-orders", self.order_payload())
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(Decimal(body["data"]["total"]), Decimal("236.00"))
        self.assertEqual(body["data"]["status"], "DRAFT")
        self.assertEqual(len(body["data"]["items"]), 1)

    def test_validation_errors_are_400(self):
        response = self.post("sales-orders", self.order_payload(items=[]))
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertIn("items", body["data"])

        bad_json = self.client.post(reverse("ledger_core:sales-orders"), data="{nope",
                                    content_type="application/json")
        self.assertEqual(bad_json.status_code, 400)

        vendor_as_customer = self.post("sales-orders", self.order_payload(self.vendor))
        self.assertEqual(vendor_as_customer.status_code, 400)

    def test_unknown_contact_is_404(self):
        payload = self.order_payload()
        payload["contact_id"] = 9999
        self.assertEqual(self.post("sales-orders", payload).status_code, 404)

    def test_wrong_method_is_405(self):
        self.assertEqual(self.client.patch(reverse("ledger_core:sales-orders")).status_code, 405)
        self.assertEqual(self.client.post(reverse("ledger_core:sales-order-stats")).status_code, 405)

    def test_order_detail_and_conversion(self):
        order_id = self.post("sales-orders", self.order_payload()).json()["data"]["id"]
        detail = self.client.get(reverse("ledger_core:sales-order-detail", kwargs={"pk": order_id}))
        self.assertEqual(detail.status_code, 200)

        first = self.post("sales-order-convert", {"date": "2025-01-20"}, pk=order_id)
        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()["data"]["paymentStatus"], "UNPAID")

        second = self.post("sales-order-convert", {}, pk=order_id)
        self.assertEqual(second.status_code, 409)
        self.assertEqual(CustomerInvoice.objects.count(), 1)

        delete = self.client.delete(reverse("ledger_core:sales-order-detail", kwargs={"pk": order_id}))
        self.assertEqual(delete.status_code, 409)

    def test_update_and_delete_order(self):
        order_id = self.post("sales-orders", self.order_payload()).json()["data"]["id"]
        url = reverse("ledger_core:sales-order-detail", kwargs={"pk": order_id})
        payload = self.order_payload(items=[{"product_id": self.chair.pk, "quantity": "1",
                                             "unit_price": "100.00"}])
        updated = self.client.put(url, data=json.dumps(payload), content_type="application/json")
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(Decimal(updated.json()["data"]["total"]), Decimal("100.00"))

        self.assertEqual(self.client.delete(url).status_code, 200)
        self.assertFalse(SalesOrder.objects.exists())
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_list_filters_and_pagination(self):
        other = Contact.objects.create(name="Riya Traders", contact_type="CUSTOMER")
        ids = [self.post("sales-orders", self.order_payload()).json()["data"]["id"]
               for _ in range(3)]
        self.post("sales-orders", self.order_payload(other))
        self.post("sales-order-convert", {}, pk=ids[0])

        page = self.client.get(self.url("sales-orders"), {"limit": 2}).json()
        self.assertEqual(len(page["data"]), 2)
        self.assertEqual(page["pagination"], {"page": 1, "limit": 2, "total": 4, "totalPages": 2})

        by_contact = self.client.get(self.url("sales-orders"), {"contact_id": other.pk}).json()
        self.assertEqual(by_contact["pagination"]["total"], 1)
        by_name = self.client.get(self.url("sales-orders"), {"search": "riya"}).json()
        self.assertEqual(by_name["data"][0]["contact"]["name"], "Riya Traders")
        converted = self.client.get(self.url("sales-orders"), {"status": "CONVERTED"}).json()
        self.assertEqual([row["id"] for row in converted["data"]], [ids[0]])

        past_the_end = self.client.get(self.url("sales-orders"), {"page": 5, "limit": 2}).json()
        self.assertEqual(past_the_end["data"], [])
        self.assertEqual(past_the_end["pagination"]["total"], 4)

        self.assertEqual(self.client.get(self.url("sales-orders"), {"limit": 500}).status_code, 400)
        self.assertEqual(self.client.get(self.url("sales-orders"),
                                         {"status": "PAID"}).status_code, 400)

    def test_invoice_list_by_payment_status(self):
        first = self.post("customer-invoices", self.order_payload()).json()["data"]
        self.post("customer-invoices", self.order_payload())
        self.post("invoice-payments", {
            "document_id": first["id"], "contact_id": self.customer.pk,
            "amount": "36.00", "payment_date": "2025-01-20", "payment_method": "CASH",
        })
        partial = self.client.get(self.url("customer-invoices"),
                                  {"payment_status": "PARTIAL"}).json()
        self.assertEqual([row["number"] for row in partial["data"]], [first["number"]])
        self.assertEqual(self.client.get(self.url("customer-invoices")).json()["pagination"]["total"], 2)

    def test_document_stats(self):
        order_id = self.post("purchase-orders", self.order_payload(self.vendor)).json()["data"]["id"]
        self.post("purchase-orders", self.order_payload(self.vendor))
        self.post("purchase-order-convert", {}, pk=order_id)

        orders = self.client.get(self.url("purchase-order-stats")).json()["data"]
        self.assertEqual(orders["totalOrders"], 2)
        self.assertEqual(orders["draftOrders"], 1)
        self.assertEqual(orders["convertedOrders"], 1)
        self.assertEqual(Decimal(orders["totalValue"]), Decimal("472.00"))

        bill = VendorBill.objects.get()
        self.post("bill-payments", {
            "document_id": bill.pk, "contact_id": self.vendor.pk,
            "amount": "200.00", "payment_date": "2025-01-20", "payment_method": "BANK",
        })
        bills = self.client.get(self.url("vendor-bill-stats")).json()["data"]
        self.assertEqual(bills["totalDocuments"], 1)
        self.assertEqual(bills["partialDocuments"], 1)
        self.assertEqual(Decimal(bills["paidValue"]), Decimal("200.00"))
        self.assertEqual(Decimal(bills["pendingValue"]), Decimal("36.00"))

        invoices = self.client.get(self.url("customer-invoice-stats")).json()["data"]
        self.assertEqual(invoices["totalDocuments"], 0)
        self.assertEqual(Decimal(invoices["totalValue"]), Decimal("0.00"))

    def test_update_vendor_bill(self):
        bill_id = self.post("vendor-bills", self.order_payload(self.vendor)).json()["data"]["id"]
        payload = self.order_payload(self.vendor, items=[
            {"product_id": self.chair.pk, "quantity": "1", "unit_price": "60.00"}])
        updated = self.put("vendor-bill-detail", payload, pk=bill_id)
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(Decimal(updated.json()["data"]["total"]), Decimal("60.00"))
        self.assertEqual(self.balance("2001"), Decimal("-60.00"))

        self.post("bill-payments", {
            "document_id": bill_id, "contact_id": self.vendor.pk,
            "amount": "10.00", "payment_date": "2025-01-20", "payment_method": "CASH",
        })
        refused = self.put("vendor-bill-detail", payload, pk=bill_id)
        self.assertEqual(refused.status_code, 409)
        self.assertEqual(self.put("vendor-bill-detail", payload, pk=9999).status_code, 404)

    # ---------- payments ----------
    def test_invoice_payment_flow(self):
        invoice = self.post("customer-invoices", self.order_payload()).json()["data"]
        payment = {
            "document_id": invoice["id"], "contact_id": self.customer.pk,
            "amount": "236.00", "payment_date": "2025-01-20", "payment_method": "BANK",
        }
        paid = self.post("invoice-payments", payment)
        self.assertEqual(paid.status_code, 201)
        self.assertEqual(paid.json()["data"]["paymentStatus"], "PAID")

        payment["amount"] = "0.01"
        over = self.post("invoice-payments", payment)
        self.assertEqual(over.status_code, 409)
        self.assertEqual(over.json()["message"], "Payment amount exceeds remaining balance")

        stats = self.client.get(reverse("ledger_core:payment-stats")).json()["data"]
        self.assertEqual(stats["totalInvoicePayments"], 1)

        window = self.client.get(reverse("ledger_core:payments-by-date-range"),
                                 {"start_date": "2025-01-01", "end_date": "2025-01-31"})
        self.assertEqual(len(window.json()["data"]["invoicePayments"]), 1)
        missing = self.client.get(reverse("ledger_core:payments-by-date-range"))
        self.assertEqual(missing.status_code, 400)

    def test_payment_list_and_detail(self):
        invoice = CustomerInvoice.objects.get(
            pk=self.post("customer-invoices", self.order_payload()).json()["data"]["id"])
        created = self.post("invoice-payments", {
            "document_id": invoice.pk, "contact_id": self.customer.pk, "amount": "100.00",
            "payment_date": "2025-01-20", "payment_method": "CHEQUE", "reference": "CHQ-0042",
        }).json()["data"]

        listed = self.client.get(self.url("invoice-payments")).json()
        self.assertEqual(listed["pagination"]["total"], 1)
        self.assertEqual(listed["data"][0]["documentNumber"], invoice.number)
        by_reference = self.client.get(self.url("invoice-payments"), {"search": "chq-00"}).json()
        self.assertEqual(len(by_reference["data"]), 1)
        cash_only = self.client.get(self.url("invoice-payments"), {"payment_method": "CASH"}).json()
        self.assertEqual(cash_only["data"], [])
        self.assertEqual(self.client.get(self.url("bill-payments")).json()["data"], [])

        detail = self.client.get(self.url("invoice-payment-detail", pk=created["id"]))
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["data"]["reference"], "CHQ-0042")
        self.assertEqual(self.client.get(self.url("bill-payment-detail",
                                                  pk=created["id"])).status_code, 404)

    # ---------- master data ----------
    def test_accounts(self):
        created = self.post("accounts", {"name": "Petty Cash", "code": "1010", "account_type": "ASSET"})
        self.assertEqual(created.status_code, 201)
        self.assertEqual(self.post("accounts", {"name": "Petty Cash", "code": "1011",
                                                "account_type": "ASSET"}).status_code, 409)
        tree = self.client.get(reverse("ledger_core:account-hierarchy")).json()["data"]
        self.assertEqual(len(tree), 11)
        stats = self.client.get(reverse("ledger_core:account-stats")).json()["data"]
        self.assertEqual(stats["totalAccounts"], 11)
        deleted = self.client.delete(reverse("ledger_core:account-detail",
                                             kwargs={"pk": created.json()["data"]["id"]}))
        self.assertEqual(deleted.status_code, 200)

    def test_contacts(self):
        created = self.post("contacts", {"name": "Riya Traders", "contact_type": "VENDOR",
                                         "email": "accounts@riya.example", "mobile": "9876543210"})
        self.assertEqual(created.status_code, 201)
        contact_id = created.json()["data"]["id"]

        duplicate = self.post("contacts", {"name": "Riya Again", "contact_type": "VENDOR",
                                           "email": "ACCOUNTS@riya.example"})
        self.assertEqual(duplicate.status_code, 409)
        bad_mobile = self.post("contacts", {"name": "X", "contact_type": "VENDOR", "mobile": "12345"})
        self.assertEqual(bad_mobile.status_code, 400)
        self.assertIn("mobile", bad_mobile.json()["data"])

        # partial update keeps everything not sent
        updated = self.put("contact-detail", {"city": "Pune"}, pk=contact_id).json()["data"]
        self.assertEqual(updated["city"], "Pune")
        self.assertEqual(updated["type"], "VENDOR")
        self.assertEqual(updated["mobile"], "9876543210")

        vendors = self.client.get(self.url("contacts"), {"contact_type": "VENDOR"}).json()
        self.assertEqual(vendors["pagination"]["total"], 2)
        stats = self.client.get(self.url("contact-stats")).json()["data"]
        self.assertEqual(stats, {"totalContacts": 3, "customers": 1, "vendors": 2, "both": 0})

        self.post("sales-orders", self.order_payload())
        switched = self.put("contact-detail", {"contact_type": "VENDOR"}, pk=self.customer.pk)
        self.assertEqual(switched.status_code, 409)
        self.assertEqual(self.put("contact-detail", {"contact_type": "BOTH"},
                                  pk=self.customer.pk).status_code, 200)
        self.assertEqual(self.client.get(self.url("contact-detail", pk=9999)).status_code, 404)

    def test_products(self):
        created = self.post("products", {"name": "Standing Desk", "product_type": "GOODS",
                                         "sales_price": "250.00", "category": "Furniture"})
        self.assertEqual(created.status_code, 201)
        desk_id = created.json()["data"]["id"]
        self.assertEqual(self.post("products", {"name": "standing desk",
                                                "product_type": "GOODS"}).status_code, 409)

        updated = self.put("product-detail", {"sales_price": "275.00"}, pk=desk_id).json()["data"]
        self.assertEqual(Decimal(updated["salesPrice"]), Decimal("275.00"))
        self.assertEqual(updated["category"], "Furniture")

        services = self.client.get(self.url("products"), {"product_type": "SERVICE"}).json()
        self.assertEqual([row["name"] for row in services["data"]], ["Consultation Service"])
        self.assertEqual(self.client.get(self.url("product-categories")).json()["data"], ["Furniture"])
        stats = self.client.get(self.url("product-stats")).json()["data"]
        self.assertEqual((stats["totalProducts"], stats["goods"], stats["services"]), (3, 2, 1))

        self.post("stock-adjustments", {"product_id": self.chair.pk, "quantity": "4",
                                        "date": "2025-01-02"})
        to_service = self.put("product-detail", {"product_type": "SERVICE"}, pk=self.chair.pk)
        self.assertEqual(to_service.status_code, 409)
        self.assertEqual(Product.objects.get(pk=self.chair.pk).product_type, "GOODS")

    def test_taxes(self):
        created = self.post("taxes", {"name": "GST 5%", "computation_method": "PERCENTAGE",
                                      "rate": "5", "applicable_on_purchase": False})
        self.assertEqual(created.status_code, 201)
        self.assertFalse(created.json()["data"]["applicableOnPurchase"])
        tax_id = created.json()["data"]["id"]

        too_high = self.post("taxes", {"name": "Bad", "computation_method": "PERCENTAGE",
                                       "rate": "150"})
        self.assertEqual(too_high.status_code, 400)
        nowhere = self.post("taxes", {"name": "Nowhere", "computation_method": "FIXED_VALUE",
                                      "rate": "10", "applicable_on_sales": False,
                                      "applicable_on_purchase": False})
        self.assertEqual(nowhere.status_code, 400)

        sales = self.client.get(self.url("taxes-by-type", side="sales")).json()["data"]
        self.assertEqual(len(sales), 2)
        purchase = self.client.get(self.url("taxes-by-type", side="purchase")).json()["data"]
        self.assertEqual([row["name"] for row in purchase], ["GST 18%"])
        self.assertEqual(self.client.get(self.url("taxes-by-type", side="import")).status_code, 400)

        sales_only = self.client.get(self.url("taxes"), {"applicable_on_purchase": "false"}).json()
        self.assertEqual(sales_only["pagination"]["total"], 1)

        updated = self.put("tax-detail", {"rate": "12"}, pk=tax_id).json()["data"]
        self.assertEqual(Decimal(updated["rate"]), Decimal("12.00"))
        self.assertFalse(Tax.objects.get(pk=tax_id).applicable_on_purchase)
        stats = self.client.get(self.url("tax-stats")).json()["data"]
        self.assertEqual((stats["totalTaxes"], stats["salesTaxes"], stats["purchaseTaxes"]), (2, 2, 1))

    def test_account_update_and_by_type(self):
        parent_id = self.post("accounts", {"name": "Petty Cash", "code": "1010",
                                           "account_type": "ASSET"}).json()["data"]["id"]
        child_id = self.post("accounts", {"name": "Petty Cash Drawer", "code": "1011",
                                          "account_type": "ASSET",
                                          "parent_id": parent_id}).json()["data"]["id"]

        renamed = self.put("account-detail", {"name": "Petty Cash Box"}, pk=parent_id)
        self.assertEqual(renamed.status_code, 200)
        self.assertEqual(renamed.json()["data"]["code"], "1010")

        cycle = self.put("account-detail", {"parent_id": child_id}, pk=parent_id)
        self.assertEqual(cycle.status_code, 400)
        with_children = self.put("account-detail", {"account_type": "EXPENSE"}, pk=parent_id)
        self.assertEqual(with_children.status_code, 409)
        control = self.put("account-detail", {"code": "1999"}, pk=self.account("1001").pk)
        self.assertEqual(control.status_code, 409)

        assets = self.client.get(self.url("accounts-by-type", account_type="asset")).json()["data"]
        self.assertIn("Petty Cash Box", [row["name"] for row in assets])
        self.assertEqual(self.client.get(self.url("accounts-by-type",
                                                  account_type="bogus")).status_code, 400)
        children = self.client.get(self.url("accounts"), {"parent_id": parent_id}).json()
        self.assertEqual([row["id"] for row in children["data"]], [child_id])
        self.assertEqual(self.client.get(self.url("account-detail", pk=child_id)).json()["data"]["parentId"],
                         parent_id)

    def test_master_data_delete(self):
        self.post("sales-orders", self.order_payload())
        self.assertEqual(self.client.delete(reverse("ledger_core:contact-detail",
                                                    kwargs={"pk": self.customer.pk})).status_code, 409)
        self.assertEqual(self.client.delete(reverse("ledger_core:product-detail",
                                                    kwargs={"pk": self.chair.pk})).status_code, 409)
        self.assertEqual(self.client.delete(reverse("ledger_core:tax-detail",
                                                    kwargs={"pk": self.gst18.pk})).status_code, 409)
        self.assertEqual(self.client.delete(reverse("ledger_core:contact-detail",
                                                    kwargs={"pk": self.vendor.pk})).status_code, 200)

    def test_tax_calculate(self):
        response = self.post("tax-calculate", {"tax_id": self.gst18.pk, "amount": "1000"})
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(Decimal(data["taxAmount"]), Decimal("180.00"))
        self.assertEqual(Decimal(data["total"]), Decimal("1180.00"))
        self.assertEqual(self.post("tax-calculate", {"tax_id": 9999, "amount": "1"}).status_code, 404)
        self.assertEqual(self.post("tax-calculate", {"tax_id": self.gst18.pk,
                                                     "amount": "-1"}).status_code, 400)

    def test_stock_adjustment(self):
        response = self.post("stock-adjustments", {"product_id": self.chair.pk,
                                                   "quantity": "4", "date": "2025-01-02"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.post("stock-adjustments", {"product_id": 9999, "quantity": "4",
                                                         "date": "2025-01-02"}).status_code, 404)

    # ---------- reports ----------
    def test_reports(self):
        self.post("customer-invoices", self.order_payload())
        sheet = self.client.get(reverse("ledger_core:report", kwargs={"name": "balance_sheet"}),
                                {"as_of_date": "2025-01-31"})
        self.assertEqual(sheet.status_code, 200)
        self.assertTrue(sheet.json()["data"]["isBalanced"])

        pnl = self.client.get(reverse("ledger_core:report", kwargs={"name": "profit_and_loss"}))
        self.assertEqual(pnl.status_code, 400)

        ledger = self.client.get(reverse("ledger_core:report", kwargs={"name": "partner_ledger"}),
                                 {"contact_id": self.customer.pk})
        self.assertEqual(len(ledger.json()["data"]["transactions"]), 1)

        unknown = self.client.get(reverse("ledger_core:report", kwargs={"name": "cash_flow"}))
        self.assertEqual(unknown.status_code, 404)

    def test_async_report_is_queued(self):
        with mock.patch("ledger_core.views.generate_report.delay",
                        return_value=mock.Mock(id="task-123")) as delay:
            response = self.post("report-async", {"as_of_date": "2025-01-31"}, name="balance_sheet")
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json()["data"]["taskId"], "task-123")
        delay.assert_called_once_with("balance_sheet", {"as_of_date": "2025-01-31"})
