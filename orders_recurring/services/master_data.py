"""
Master code lookup -- display label to carrier code.

Contract:
    ``CodeLookup.lookup(table, label, key_field, carrier)`` returns the
    machine code paired with ``label`` in master table ``table``, or ``""``
    when nothing matches.  An unresolved label is never an error; carrier
    exports leave the column blank.

Matching (first row wins, in table order):
    1. The row's ``key_field`` value has the form ``"code:label"`` and its
       label part equals ``label``.  The value is split on the FIRST colon
       only, so labels that themselves contain colons (``"12:12:00～14:00"``)
       still match.
    2. The row's display ``name`` equals ``label``; the code part of the
       value is returned (or the whole value when it has no colon).

Architecture: orders_recurring/services.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from orders_kernel.logging_config import get_logger
from orders_recurring.models.master_data import MasterCodeModel

logger = get_logger("recurring.master_data")

# Master tables referenced by the carrier formatters.
INVOICE_TYPE = "invoice_type"
COOL_CLASS = "cool_class"
DELIVERY_TIME = "delivery_time"
CARGO_HANDLING = "cargo_handling"


class CodeLookup(Protocol):
    """Resolves a display label to a carrier code."""

    def lookup(
        self,
        table: str,
        label: str,
        key_field: str = "type_value",
        carrier: str | None = None,
    ) -> str:
        ...


def match_code(
    rows: Iterable[Mapping[str, str]],
    label: str,
    key_field: str = "type_value",
) -> str:
    """Apply the matching rules above to ``rows``."""
    if not label:
        return ""

    for row in rows:
        value = row.get(key_field) or ""
        code, sep, value_label = value.partition(":")
        if sep and value_label == label:
            return code
        if row.get("name") == label:
            return code if sep else value
    return ""


def _in_scope(row_carrier: str | None, carrier: str | None) -> bool:
    return carrier is None or not row_carrier or row_carrier == carrier


class StaticCodeLookup:
    """In-memory lookup over rows grouped by table name.

    ``tables`` maps a table name to its rows; each row is a mapping with
    ``type_value``, ``name`` and an optional ``carrier``.
    """

    def __init__(self, tables: Mapping[str, Sequence[Mapping[str, str]]]):
        self._tables = {name: list(rows) for name, rows in tables.items()}

    @classmethod
    def from_seed(cls, seeds: Iterable) -> StaticCodeLookup:
        """Build from ``MasterCodeSeed`` entries (e.g. the YAML config)."""
        tables: dict[str, list[dict[str, str]]] = {}
        for seed in seeds:
            tables.setdefault(seed.table_name, []).append(
                {
                    "carrier": seed.carrier or "",
                    "type_value": seed.type_value,
                    "name": seed.name,
                }
            )
        return cls(tables)

    def lookup(
        self,
        table: str,
        label: str,
        key_field: str = "type_value",
        carrier: str | None = None,
    ) -> str:
        rows = [
            row for row in self._tables.get(table, ())
            if _in_scope(row.get("carrier"), carrier)
        ]
        return match_code(rows, label, key_field)


class DatabaseCodeLookup:
    """Lookup backed by the ``master_codes`` table.

    Rows are read once per table and carrier and cached for the lifetime
    of the instance (one daily cycle).
    """

    def __init__(self, session: Session):
        self._session = session
        self._cache: dict[tuple[str, str | None], list[dict[str, str]]] = {}

    def _rows(self, table: str, carrier: str | None) -> list[dict[str, str]]:
        key = (table, carrier)
        if key not in self._cache:
            models = self._session.execute(
                select(MasterCodeModel)
                .where(MasterCodeModel.table_name == table)
                .order_by(MasterCodeModel.sort_order)
            ).scalars().all()
            self._cache[key] = [
                m.as_row() for m in models if _in_scope(m.carrier, carrier)
            ]
        return self._cache[key]

    def lookup(
        self,
        table: str,
        label: str,
        key_field: str = "type_value",
        carrier: str | None = None,
    ) -> str:
        code = match_code(self._rows(table, carrier), label, key_field)
        if label and not code:
            logger.debug(
                "master_code_unresolved",
                extra={"table": table, "label": label, "carrier": carrier},
            )
        return code


def seed_master_codes(session: Session, seeds: Iterable, replace: bool = True) -> int:
    """Load master code rows into ``master_codes``.

    With ``replace`` (default) the tables being seeded are emptied first,
    so seeding is repeatable.  Returns the number of rows inserted.
    """
    seeds = list(seeds)
    if replace:
        tables = {seed.table_name for seed in seeds}
        if tables:
            session.execute(
                delete(MasterCodeModel).where(MasterCodeModel.table_name.in_(tables))
            )

    for index, seed in enumerate(seeds):
        session.add(
            MasterCodeModel(
                table_name=seed.table_name,
                carrier=seed.carrier,
                type_value=seed.type_value,
                name=seed.name,
                sort_order=index,
            )
        )
    session.flush()

    logger.info("master_codes_seeded", extra={"row_count": len(seeds)})
    return len(seeds)
