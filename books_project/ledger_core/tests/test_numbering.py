import datetime
from unittest import mock

from django.test import TestCase, override_settings

from ..exceptions import ConflictError
from ..models import Contact, PurchaseOrder
from ..services.numbering import DocumentNumberGenerator


class FixedRng:
    """randint() replays the given values, then repeats the last one."""

    def __init__(self, *values):
        self.values = list(values)

    def randint(self, a, b):
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


def fixed_clock():
    return 1736900890123  # ms


class DocumentNumberGeneratorTests(TestCase):
    def setUp(self):
        self.vendor = Contact.objects.create(name="Azure Furniture", contact_type="VENDOR")
        self.day = datetime.date(2025, 1, 15)

    def taken(self, number):
        return PurchaseOrder.objects.create(number=number, contact=self.vendor, date=self.day)

    def create_po(self, generator):
        return generator.create("PO", contact=self.vendor, date=self.day)

    def test_format(self):
        generator = DocumentNumberGenerator(clock=fixed_clock, rng=FixedRng(7))
        self.assertEqual(self.create_po(generator).number, "PO-890123-007")
        self.assertEqual(generator.candidate("CI"), "CI-890123-007")

    def test_short_clock_is_zero_padded(self):
        generator = DocumentNumberGenerator(clock=lambda: 42, rng=FixedRng(0))
        self.assertEqual(generator.candidate("SO"), "SO-000042-000")

    def test_retries_past_collisions(self):
        self.taken("PO-890123-007")
        generator = DocumentNumberGenerator(clock=fixed_clock, rng=FixedRng(7, 8))
        self.assertEqual(self.create_po(generator).number, "PO-890123-008")

    def test_gives_up_after_max_attempts(self):
        self.taken("PO-890123-007")
        generator = DocumentNumberGenerator(clock=fixed_clock, rng=FixedRng(7), max_attempts=3)
        with self.assertRaises(ConflictError):
            self.create_po(generator)
        self.assertEqual(PurchaseOrder.objects.count(), 1)

    def test_number_taken_between_check_and_insert(self):
        # another request inserted 007 after our existence check said it was free
        self.taken("PO-890123-007")
        generator = DocumentNumberGenerator(clock=fixed_clock, rng=FixedRng(7, 8))
        with mock.patch.object(generator, "is_taken", side_effect=[False, True, False]):
            order = self.create_po(generator)
        self.assertEqual(order.number, "PO-890123-008")
        self.assertEqual(PurchaseOrder.objects.count(), 2)

    def test_concurrent_clash_counts_as_attempt(self):
        self.taken("PO-890123-007")
        generator = DocumentNumberGenerator(clock=fixed_clock, rng=FixedRng(7), max_attempts=2)
        with mock.patch.object(generator, "is_taken", side_effect=[False, True, False, True]):
            with self.assertRaises(ConflictError):
                self.create_po(generator)

    @override_settings(DOCUMENT_NUMBER_ATTEMPTS=2)
    def test_attempts_default_from_settings(self):
        self.assertEqual(DocumentNumberGenerator().max_attempts, 2)

    def test_series_are_independent(self):
        # a PO number does not block the same digits in another series
        self.taken("PO-890123-007")
        generator = DocumentNumberGenerator(clock=fixed_clock, rng=FixedRng(7))
        self.assertFalse(generator.is_taken(generator.series("VB"), "VB-890123-007"))
        self.assertEqual(generator.candidate("VB"), "VB-890123-007")

    def test_unknown_prefix(self):
        with self.assertRaises(ValueError):
            DocumentNumberGenerator().series("XX")
