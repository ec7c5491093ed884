import logging
import random
import time
from typing import Callable, Optional

from django.apps import apps
from django.conf import settings
from django.db import IntegrityError, transaction

from ..exceptions import ConflictError

logger = logging.getLogger(__name__)

# prefix → model whose `number` column holds the series
SERIES = {
    "PO": "ledger_core.PurchaseOrder",
    "SO": "ledger_core.SalesOrder",
    "VB": "ledger_core.VendorBill",
    "CI": "ledger_core.CustomerInvoice",
}


class DocumentNumberGenerator:
    """
    Builds document numbers like ``CI-482913-057``:
    prefix, last 6 digits of the millisecond clock, 3 random digits.

    Candidates are checked against the series' table and retried on
    collision; after ``max_attempts`` misses a ConflictError is raised.
    The clock and random source are injectable so tests can force collisions.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        rng: Optional[random.Random] = None,
        max_attempts: Optional[int] = None,
    ):
        self.clock = clock or (lambda: int(time.time() * 1000))
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts or settings.DOCUMENT_NUMBER_ATTEMPTS

    def candidate(self, prefix: str) -> str:
        stamp = str(self.clock())[-6:].zfill(6)
        suffix = f"{self.rng.randint(0, 999):03d}"
        return f"{prefix}-{stamp}-{suffix}"

    def series(self, prefix: str):
        if prefix not in SERIES:
            raise ValueError(f"Unknown document series: {prefix}")
        return apps.get_model(SERIES[prefix])

    def is_taken(self, model, number: str) -> bool:
        return model.objects.filter(number=number).exists()

    def _exhausted(self, prefix: str):
        logger.warning("Could not allocate a %s number after %d attempts",
                       prefix, self.max_attempts)
        return ConflictError(f"Could not generate a unique {prefix} number")

    def create(self, prefix: str, **fields):
        """
        Insert a document of the series under a fresh number.

        A candidate that another transaction inserts between the check and
        our insert fails on the unique index; that counts as one more miss.
        """
        model = self.series(prefix)
        for attempt in range(1, self.max_attempts + 1):
            number = self.candidate(prefix)
            if self.is_taken(model, number):
                logger.debug("Number %s taken (attempt %d)", number, attempt)
                continue
            try:
                # savepoint: the outer transaction survives a failed insert
                with transaction.atomic():
                    return model.objects.create(number=number, **fields)
            except IntegrityError:
                if not self.is_taken(model, number):
                    raise
                logger.info("Number %s was taken concurrently (attempt %d)",
                            number, attempt)
        raise self._exhausted(prefix)
