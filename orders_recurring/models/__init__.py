"""
orders_recurring.models -- ORM models for templates, ledger rows, carrier
exports and master codes.
"""

from orders_recurring.models.ledger import (
    CarrierExportAModel,
    CarrierExportBModel,
    LedgerRowModel,
)
from orders_recurring.models.master_data import MasterCodeModel
from orders_recurring.models.template import RecurringTemplateModel

__all__ = [
    "CarrierExportAModel",
    "CarrierExportBModel",
    "LedgerRowModel",
    "MasterCodeModel",
    "RecurringTemplateModel",
]
