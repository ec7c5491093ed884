from django.db import models

# -----------------------------------------
# Query helpers shared by bills & invoices
# -----------------------------------------
# Define subclass of Django’s QuerySet
class DocumentQuerySet(models.QuerySet):
    def for_contact(self, contact):        # Add queryset helper
        return self.filter(contact=contact)  # Apply filter

    def outstanding(self):
        # documents still waiting for (part of) their money
        return self.exclude(payment_status="PAID")

    def dated_between(self, start_date=None, end_date=None):
        qs = self
        if start_date:
            qs = qs.filter(date__gte=start_date)
        if end_date:
            qs = qs.filter(date__lte=end_date)
        return qs
    # Enables query:
    # CustomerInvoice.objects.outstanding().for_contact(customer)


# Attach DocumentQuerySet to .objects
class DocumentManager(models.Manager):
    def get_queryset(self):  # every document gets DocumentQuerySet helpers
        return DocumentQuerySet(self.model, using=self._db)

    def for_contact(self, contact):  # can call for_contact() directly on objects
        return self.get_queryset().for_contact(contact)

    def outstanding(self):
        return self.get_queryset().outstanding()

    def dated_between(self, start_date=None, end_date=None):
        return self.get_queryset().dated_between(start_date, end_date)


# ---------- Ledger entries ----------
class LedgerEntryQuerySet(models.QuerySet):
    def as_of(self, as_of_date):
        # point-in-time: everything booked up to and including the date
        return self.filter(transaction_date__lte=as_of_date)

    def between(self, start_date, end_date):
        return self.filter(
            transaction_date__gte=start_date, transaction_date__lte=end_date
        )

    def for_reference(self, reference_type, reference_id):
        return self.filter(
            reference_type=reference_type, reference_id=str(reference_id)
        )

    def chronological(self):
        # created_at/id break ties between entries booked on the same day
        return self.order_by("transaction_date", "created_at", "id")


class LedgerEntryManager(models.Manager):
    def get_queryset(self):
        return LedgerEntryQuerySet(self.model, using=self._db)

    def as_of(self, as_of_date):
        return self.get_queryset().as_of(as_of_date)

    def between(self, start_date, end_date):
        return self.get_queryset().between(start_date, end_date)

    def for_reference(self, reference_type, reference_id):
        return self.get_queryset().for_reference(reference_type, reference_id)
