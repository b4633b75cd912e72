"""
Carrier export formatters and writer.

Contract:
    ``resolve_carrier()`` routes a template's delivery-method label to a
    carrier (exact alias match first, then prefix match).  Each formatter
    turns one (template, materialized order) pair into exactly one
    ``CarrierExportRow`` in that carrier's fixed column layout, and
    ``CarrierExportWriter`` appends it to the carrier's export table.

Architecture: orders_recurring/services.

Invariants enforced:
    - Address fields longer than the carrier limit are SPLIT, never
      truncated: ``primary + secondary == original``.
    - Coded columns (invoice type, cool class, delivery time, cargo
      handling) are resolved through ``CodeLookup``; an unresolved label
      leaves the column empty.
    - One append per order per carrier.  The materializer is the only
      caller.
"""

from __future__ import annotations

import csv
from datetime import date
from pathlib import Path
from typing import IO, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from orders_config.schema import CarrierConfig
from orders_kernel.logging_config import get_logger
from orders_recurring.domain.types import (
    CarrierCode,
    CarrierExportRow,
    MaterializedOrder,
    RecurringTemplate,
)
from orders_recurring.models.ledger import CarrierExportAModel, CarrierExportBModel
from orders_recurring.services.master_data import (
    CARGO_HANDLING,
    COOL_CLASS,
    DELIVERY_TIME,
    INVOICE_TYPE,
    CodeLookup,
)

logger = get_logger("recurring.carriers")


# =============================================================================
# Routing and shared helpers
# =============================================================================


def resolve_carrier(
    delivery_method: str,
    carriers: Sequence[CarrierConfig],
) -> CarrierCode | None:
    """Carrier for ``delivery_method``, or None when it maps to no carrier."""
    method = (delivery_method or "").strip()
    if not method:
        return None

    for carrier in carriers:
        if method in carrier.aliases:
            return CarrierCode(carrier.code)

    for carrier in carriers:
        if any(method.startswith(alias) for alias in carrier.aliases):
            return CarrierCode(carrier.code)

    return None


def split_address(text: str, max_len: int = 16) -> tuple[str, str]:
    """Split ``text`` into (first ``max_len`` characters, remainder)."""
    text = text or ""
    if len(text) <= max_len:
        return text, ""
    return text[:max_len], text[max_len:]


def _slash_date(value: date) -> str:
    return value.strftime("%Y/%m/%d")


def _compact_date(value: date) -> str:
    return value.strftime("%Y%m%d")


def _cargo(template: RecurringTemplate, index: int) -> str:
    cargo = template.shipping.cargo_handling
    return cargo[index] if index < len(cargo) else ""


# =============================================================================
# Formatters
# =============================================================================


class CarrierFormatter:
    """Base class: fixed column layout plus master-code resolution."""

    code: CarrierCode
    columns: tuple[str, ...] = ()

    def __init__(self, config: CarrierConfig, lookup: CodeLookup):
        self._config = config
        self._lookup = lookup

    def _code(self, table: str, label: str) -> str:
        return self._lookup.lookup(table, label, carrier=self.code.value)

    def _split(self, text: str) -> tuple[str, str]:
        return split_address(text, self._config.address_max_length)

    def _copies(self, template: RecurringTemplate) -> str:
        return template.shipping.copies or self._config.default_copies

    def build_values(
        self, template: RecurringTemplate, order: MaterializedOrder,
    ) -> dict[str, str]:
        raise NotImplementedError

    def format(
        self, template: RecurringTemplate, order: MaterializedOrder,
    ) -> CarrierExportRow:
        values = self.build_values(template, order)
        unknown = set(values) - set(self.columns)
        if unknown:
            raise KeyError(f"{self.code.value}: unknown columns {sorted(unknown)}")
        return CarrierExportRow(
            carrier=self.code,
            order_id=order.order_id,
            columns=self.columns,
            values={name: values.get(name, "") for name in self.columns},
        )


class CarrierAFormatter(CarrierFormatter):
    """Carrier A (B2 layout), 52 columns, dates as YYYY/MM/DD."""

    code = CarrierCode.CARRIER_A
    columns = (
        "発送日",
        "お客様管理番号",
        "送り状種別",
        "クール区分",
        "伝票番号",
        "出荷予定日",
        "お届け予定（指定）日",
        "配達時間帯",
        "お届け先コード",
        "お届け先電話番号",
        "お届け先電話番号枝番",
        "お届け先郵便番号",
        "お届け先住所",
        "お届け先住所（アパートマンション名）",
        "お届け先会社・部門名１",
        "お届け先会社・部門名２",
        "お届け先名",
        "お届け先名略称カナ",
        "敬称",
        "ご依頼主コード",
        "ご依頼主電話番号",
        "ご依頼主電話番号枝番",
        "ご依頼主郵便番号",
        "ご依頼主住所",
        "ご依頼主住所（アパートマンション名）",
        "ご依頼主名",
        "ご依頼主略称カナ",
        "品名コード１",
        "品名１",
        "品名コード２",
        "品名２",
        "荷扱い１",
        "荷扱い２",
        "記事",
        "コレクト代金引換額（税込）",
        "コレクト内消費税額等",
        "営業所止置き",
        "営業所コード",
        "発行枚数",
        "個数口枠の印字",
        "ご請求先顧客コード",
        "ご請求先分類コード",
        "運賃管理番号",
        "クロネコwebコレクトデータ登録",
        "クロネコwebコレクト加盟店番号",
        "クロネコwebコレクト申込受付番号１",
        "クロネコwebコレクト申込受付番号２",
        "クロネコwebコレクト申込受付番号３",
        "お届け予定ｅメール利用区分",
        "お届け予定ｅメールe-mailアドレス",
        "入力機種",
        "お届け予定eメールメッセージ",
    )

    def build_values(
        self, template: RecurringTemplate, order: MaterializedOrder,
    ) -> dict[str, str]:
        shipping = template.shipping
        ship_date = _slash_date(template.next_shipping_date)
        to_primary, to_secondary = self._split(template.ship_to.address)
        from_primary, from_secondary = self._split(template.ship_from.address)

        return {
            "発送日": ship_date,
            "お客様管理番号": order.order_id,
            "送り状種別": self._code(INVOICE_TYPE, shipping.invoice_type),
            "クール区分": self._code(COOL_CLASS, shipping.cool_class),
            "出荷予定日": ship_date,
            "お届け予定（指定）日": _slash_date(template.next_delivery_date),
            "配達時間帯": self._code(DELIVERY_TIME, shipping.delivery_time),
            "お届け先電話番号": template.ship_to.phone,
            "お届け先郵便番号": template.ship_to.postal_code,
            "お届け先住所": to_primary,
            "お届け先住所（アパートマンション名）": to_secondary,
            "お届け先名": template.ship_to.name,
            "ご依頼主電話番号": template.ship_from.phone,
            "ご依頼主郵便番号": template.ship_from.postal_code,
            "ご依頼主住所": from_primary,
            "ご依頼主住所（アパートマンション名）": from_secondary,
            "ご依頼主名": template.ship_from.name,
            "品名１": shipping.goods_description,
            "荷扱い１": self._code(CARGO_HANDLING, _cargo(template, 0)),
            "荷扱い２": self._code(CARGO_HANDLING, _cargo(template, 1)),
            "記事": shipping.slip_memo,
            "コレクト代金引換額（税込）": shipping.cod_total,
            "コレクト内消費税額等": shipping.cod_tax,
            "発行枚数": self._copies(template),
            "ご請求先顧客コード": self._config.billing_customer_code,
            "運賃管理番号": self._config.freight_management_no,
        }


class CarrierBFormatter(CarrierFormatter):
    """Carrier B, 76 columns, delivery date as YYYYMMDD."""

    code = CarrierCode.CARRIER_B
    columns = (
        "発送日",
        "お届け先コード取得区分",
        "お届け先コード",
        "お届け先電話番号",
        "お届け先郵便番号",
        "お届け先住所１",
        "お届け先住所２",
        "お届け先住所３",
        "お届け先名称１",
        "お届け先名称２",
        "お客様管理番号",
        "お客様コード",
        "部署ご担当者コード取得区分",
        "部署ご担当者コード",
        "部署ご担当者名称",
        "荷送人電話番号",
        "ご依頼主コード取得区分",
        "ご依頼主コード",
        "ご依頼主電話番号",
        "ご依頼主郵便番号",
        "ご依頼主住所１",
        "ご依頼主住所２",
        "ご依頼主名称１",
        "ご依頼主名称２",
        "荷姿",
        "品名１",
        "品名２",
        "品名３",
        "品名４",
        "品名５",
        "荷札荷姿",
        "荷札品名１",
        "荷札品名２",
        "荷札品名３",
        "荷札品名４",
        "荷札品名５",
        "荷札品名６",
        "荷札品名７",
        "荷札品名８",
        "荷札品名９",
        "荷札品名１０",
        "荷札品名１１",
        "出荷個数",
        "スピード指定",
        "クール便指定",
        "配達日",
        "配達指定時間帯",
        "配達指定時間（時分）",
        "代引金額",
        "消費税",
        "決済種別",
        "保険金額",
        "指定シール１",
        "指定シール２",
        "指定シール３",
        "営業所受取",
        "SRC区分",
        "営業所受取営業所コード",
        "元着区分",
        "メールアドレス",
        "ご不在時連絡先",
        "出荷予定日",
        "セット数",
        "お問い合せ送り状No.",
        "出荷場印字区分",
        "集約解除指定",
        "編集０１",
        "編集０２",
        "編集０３",
        "編集０４",
        "編集０５",
        "編集０６",
        "編集０７",
        "編集０８",
        "編集０９",
        "編集１０",
    )

    def _goods_description(self, template: RecurringTemplate) -> str:
        text = template.shipping.goods_description
        limit = self._config.goods_description_max_length
        return text[:limit] if limit else text

    def build_values(
        self, template: RecurringTemplate, order: MaterializedOrder,
    ) -> dict[str, str]:
        shipping = template.shipping
        to_primary, to_secondary = self._split(template.ship_to.address)
        from_primary, from_secondary = self._split(template.ship_from.address)

        return {
            "発送日": _slash_date(template.next_shipping_date),
            "お届け先電話番号": template.ship_to.phone,
            "お届け先郵便番号": template.ship_to.postal_code,
            "お届け先住所１": to_primary,
            "お届け先住所２": to_secondary,
            "お届け先名称１": template.ship_to.name,
            "お客様管理番号": order.order_id,
            "ご依頼主電話番号": template.ship_from.phone,
            "ご依頼主郵便番号": template.ship_from.postal_code,
            "ご依頼主住所１": from_primary,
            "ご依頼主住所２": from_secondary,
            "ご依頼主名称１": template.ship_from.name,
            "品名１": self._goods_description(template),
            "出荷個数": self._copies(template),
            "スピード指定": self._config.speed_designation,
            "クール便指定": self._code(COOL_CLASS, shipping.cool_class),
            "配達日": _compact_date(template.next_delivery_date),
            "配達指定時間帯": self._code(DELIVERY_TIME, shipping.delivery_time),
            "代引金額": shipping.cod_total,
            "消費税": shipping.cod_tax,
            "指定シール１": self._code(CARGO_HANDLING, _cargo(template, 0)),
            "指定シール２": self._code(CARGO_HANDLING, _cargo(template, 1)),
            "指定シール３": self._code(CARGO_HANDLING, _cargo(template, 2)),
            "元着区分": self._code(INVOICE_TYPE, shipping.invoice_type),
            "ご不在時連絡先": template.ship_to.phone,
        }


_FORMATTERS: dict[CarrierCode, type[CarrierFormatter]] = {
    CarrierCode.CARRIER_A: CarrierAFormatter,
    CarrierCode.CARRIER_B: CarrierBFormatter,
}

_MODELS = {
    CarrierCode.CARRIER_A: CarrierExportAModel,
    CarrierCode.CARRIER_B: CarrierExportBModel,
}


def build_formatter(
    code: CarrierCode, config: CarrierConfig, lookup: CodeLookup,
) -> CarrierFormatter:
    """Formatter instance for carrier ``code``."""
    return _FORMATTERS[code](config, lookup)


# =============================================================================
# Writer
# =============================================================================


class CarrierExportWriter:
    """Appends formatted rows to the carrier export tables.

    Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session, actor_id: UUID):
        self._session = session
        self._actor_id = actor_id

    def append(self, template_id: UUID, row: CarrierExportRow) -> None:
        model_cls = _MODELS[row.carrier]
        self._session.add(
            model_cls(
                order_id=row.order_id,
                template_id=template_id,
                columns=list(row.columns),
                row_data=dict(row.values),
                created_by_id=self._actor_id,
            )
        )
        self._session.flush()

        logger.info(
            "carrier_row_appended",
            extra={
                "carrier": row.carrier.value,
                "order_id": row.order_id,
                "template_id": str(template_id),
            },
        )

    def rows(self, carrier: CarrierCode, order_id: str | None = None) -> list[CarrierExportRow]:
        """Exported rows for ``carrier`` in insertion order."""
        model_cls = _MODELS[carrier]
        stmt = select(model_cls).order_by(model_cls.created_at)
        if order_id is not None:
            stmt = stmt.where(model_cls.order_id == order_id)
        return [m.to_dto() for m in self._session.execute(stmt).scalars().all()]

    def dump_csv(self, carrier: CarrierCode, stream: IO[str], header: bool = True) -> int:
        """Write every exported row for ``carrier`` as CSV.  Returns the row count."""
        writer = csv.writer(stream)
        if header:
            writer.writerow(_FORMATTERS[carrier].columns)
        rows = self.rows(carrier)
        for row in rows:
            writer.writerow(row.as_list())
        return len(rows)

    def dump_xlsx(self, carrier: CarrierCode, path: Path, header: bool = True) -> int:
        """Write every exported row for ``carrier`` to a one-sheet workbook.

        Every cell is written as text so codes and postal codes keep their
        leading zeros.  Returns the row count.
        """
        import openpyxl

        wb = openpyxl.Workbook(write_only=True)
        sheet = wb.create_sheet(title=carrier.value)
        if header:
            sheet.append(list(_FORMATTERS[carrier].columns))
        rows = self.rows(carrier)
        for row in rows:
            sheet.append(row.as_list())
        wb.save(path)

        logger.info(
            "carrier_rows_dumped",
            extra={"carrier": carrier.value, "row_count": len(rows), "path": str(path)},
        )
        return len(rows)
