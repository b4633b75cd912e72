"""
orders_recurring.services -- Store, materializer, carrier export, master
data, document and scheduling services.

Architecture: orders_recurring/services.  Services flush but never commit;
the scheduler (or the caller) owns transaction boundaries.
"""

from orders_recurring.services.carriers import (
    CarrierAFormatter,
    CarrierBFormatter,
    CarrierExportWriter,
    resolve_carrier,
    split_address,
)
from orders_recurring.services.documents import (
    DocumentRenderer,
    NullDocumentRenderer,
    TimeboxedRenderer,
)
from orders_recurring.services.identifiers import (
    IdentifierGenerator,
    RandomIdentifierGenerator,
    SequentialIdentifierGenerator,
)
from orders_recurring.services.master_data import (
    CodeLookup,
    DatabaseCodeLookup,
    StaticCodeLookup,
    seed_master_codes,
)
from orders_recurring.services.materializer import Materializer
from orders_recurring.services.scheduler import RecurringOrderScheduler
from orders_recurring.services.template_store import RecurringTemplateStore, summarize

__all__ = [
    "CarrierAFormatter",
    "CarrierBFormatter",
    "CarrierExportWriter",
    "CodeLookup",
    "DatabaseCodeLookup",
    "DocumentRenderer",
    "IdentifierGenerator",
    "Materializer",
    "NullDocumentRenderer",
    "RandomIdentifierGenerator",
    "RecurringOrderScheduler",
    "RecurringTemplateStore",
    "SequentialIdentifierGenerator",
    "StaticCodeLookup",
    "TimeboxedRenderer",
    "resolve_carrier",
    "seed_master_codes",
    "split_address",
    "summarize",
]
