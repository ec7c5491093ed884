import json
import logging

from celery import shared_task
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.dateparse import parse_date

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def generate_report(name, params=None):
    """
    Build a report off the request cycle.
    The result goes back through the result backend, so Decimal/date values
    are flattened to JSON first (same encoding the API views use).
    """
    # import lazily to avoid circular imports at module import time
    from .services.reports import REPORTS

    if name not in REPORTS:
        raise ValueError(f"Unknown report: {name}")
    kwargs = {}
    for key, value in (params or {}).items():
        # dates arrive as ISO strings
        if key.endswith("_date") and isinstance(value, str):
            value = parse_date(value)
        kwargs[key] = value

    logger.info("Generating %s report %s", name, kwargs)
    data = REPORTS[name](**kwargs)
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))
