"""
Tests for carrier routing, the two fixed export layouts, and the export
writer.
"""

import csv
import dataclasses
from datetime import date
from io import StringIO
from uuid import uuid4

import openpyxl
import pytest
from hypothesis import given
from hypothesis import strategies as st

from orders_recurring.domain.types import (
    CarrierCode,
    MaterializedOrder,
    Party,
    RecurringTemplate,
    TemplateStatus,
)
from orders_recurring.services.carriers import (
    CarrierAFormatter,
    CarrierBFormatter,
    CarrierExportWriter,
    build_formatter,
    resolve_carrier,
    split_address,
)


def _template(draft, **shipping_changes) -> RecurringTemplate:
    shipping = dataclasses.replace(draft.shipping, **shipping_changes)
    return RecurringTemplate(
        template_id=uuid4(),
        interval=draft.interval,
        next_shipping_date=date(2024, 3, 7),
        next_delivery_date=date(2024, 3, 8),
        status=TemplateStatus.ACTIVE,
        lines=tuple(draft.lines),
        customer=draft.customer,
        ship_to=draft.ship_to,
        ship_from=draft.ship_from,
        shipping=shipping,
        checklist=draft.checklist,
    )


def _order(template: RecurringTemplate, order_id: str = "ord00001") -> MaterializedOrder:
    return MaterializedOrder(
        order_id=order_id,
        template_id=template.template_id,
        order_date=date(2024, 3, 1),
        rows=(),
    )


@pytest.fixture
def carrier_a(default_config, code_lookup):
    return build_formatter(CarrierCode.CARRIER_A, default_config.carrier("carrier_a"), code_lookup)


@pytest.fixture
def carrier_b(default_config, code_lookup):
    return build_formatter(CarrierCode.CARRIER_B, default_config.carrier("carrier_b"), code_lookup)


# =============================================================================
# Routing and helpers
# =============================================================================


class TestResolveCarrier:

    @pytest.mark.parametrize(
        "method, expected",
        [
            ("ヤマト", CarrierCode.CARRIER_A),
            ("ヤマト伝票", CarrierCode.CARRIER_A),
            ("佐川", CarrierCode.CARRIER_B),
            ("佐川急便（飛脚宅配便）", CarrierCode.CARRIER_B),
            ("  佐川伝票 ", CarrierCode.CARRIER_B),
        ],
    )
    def test_routes_alias_and_prefix(self, default_config, method, expected):
        assert resolve_carrier(method, default_config.carriers) == expected

    @pytest.mark.parametrize("method", ["", "店頭受取", "郵便", None])
    def test_unmapped_method(self, default_config, method):
        assert resolve_carrier(method, default_config.carriers) is None


class TestSplitAddress:

    def test_short_address_untouched(self):
        assert split_address("北海道札幌市北区", 16) == ("北海道札幌市北区", "")

    def test_exact_limit_untouched(self):
        text = "あ" * 16
        assert split_address(text, 16) == (text, "")

    def test_long_address_split_without_loss(self):
        text = "北海道札幌市中央区大通西十丁目サンプルビル501号室"
        primary, secondary = split_address(text, 16)
        assert len(primary) == 16
        assert primary + secondary == text

    def test_empty(self):
        assert split_address("", 16) == ("", "")

    @given(st.text(min_size=17))
    def test_any_long_text_splits_at_limit_without_loss(self, text):
        primary, secondary = split_address(text, 16)
        assert len(primary) == 16
        assert primary + secondary == text

    @given(st.text(max_size=16))
    def test_any_short_text_kept_whole(self, text):
        assert split_address(text, 16) == (text, "")

    @pytest.mark.parametrize(
        "address",
        [
            "Sapporo札幌市中央区North1-2-3ビル501",
            "北海道ｻｯﾎﾟﾛ市 Chuo-ku Odori W10 #501",
            "〒060-0042 大通西10丁目 Sample Bldg. 5F",
        ],
    )
    def test_mixed_width_address_through_both_layouts(
        self, carrier_a, carrier_b, draft_factory, address,
    ):
        draft = draft_factory(
            ship_to=Party("山田太郎", "0600042", address, "09012345678"),
            ship_from=Party("Aozora Farm", "0010010", address, "0117654321"),
        )
        template = _template(draft)

        a = carrier_a.format(template, _order(template)).values
        b = carrier_b.format(template, _order(template)).values

        for primary, secondary in (
            (a["お届け先住所"], a["お届け先住所（アパートマンション名）"]),
            (a["ご依頼主住所"], a["ご依頼主住所（アパートマンション名）"]),
            (b["お届け先住所１"], b["お届け先住所２"]),
            (b["ご依頼主住所１"], b["ご依頼主住所２"]),
        ):
            assert len(primary) == 16
            assert primary + secondary == address


# =============================================================================
# Layouts
# =============================================================================


class TestCarrierALayout:

    def test_column_count(self):
        assert len(CarrierAFormatter.columns) == 52
        assert len(set(CarrierAFormatter.columns)) == 52

    def test_values(self, carrier_a, draft_factory):
        template = _template(draft_factory())
        row = carrier_a.format(template, _order(template))

        assert row.carrier == CarrierCode.CARRIER_A
        assert row.order_id == "ord00001"
        v = row.values
        assert v["発送日"] == "2024/03/07"
        assert v["出荷予定日"] == "2024/03/07"
        assert v["お届け予定（指定）日"] == "2024/03/08"
        assert v["お客様管理番号"] == "ord00001"
        assert v["送り状種別"] == "0"
        assert v["クール区分"] == "2"
        assert v["配達時間帯"] == "0812"
        assert v["荷扱い１"] == "ナマモノ"
        assert v["荷扱い２"] == "天地無用"
        assert v["発行枚数"] == "1"
        assert v["ご請求先顧客コード"] == "019543385101"
        assert v["運賃管理番号"] == "01"
        assert v["お届け先郵便番号"] == "0600042"
        assert v["ご依頼主名"] == "青空農園"

    def test_address_split_across_two_columns(self, carrier_a, draft_factory):
        draft = draft_factory()
        template = _template(draft)
        v = carrier_a.format(template, _order(template)).values

        assert len(v["お届け先住所"]) == 16
        assert v["お届け先住所"] + v["お届け先住所（アパートマンション名）"] == draft.ship_to.address
        assert v["ご依頼主住所"] == draft.ship_from.address
        assert v["ご依頼主住所（アパートマンション名）"] == ""

    def test_row_in_column_order(self, carrier_a, draft_factory):
        template = _template(draft_factory())
        row = carrier_a.format(template, _order(template))
        values = row.as_list()

        assert len(values) == 52
        assert values[0] == "2024/03/07"
        assert values[CarrierAFormatter.columns.index("運賃管理番号")] == "01"

    def test_unresolved_label_leaves_column_blank(self, carrier_a, draft_factory):
        template = _template(draft_factory(), cool_class="常温")
        assert carrier_a.format(template, _order(template)).values["クール区分"] == ""

    def test_explicit_copies_override_default(self, carrier_a, draft_factory):
        template = _template(draft_factory(), copies="3")
        assert carrier_a.format(template, _order(template)).values["発行枚数"] == "3"


class TestCarrierBLayout:

    def test_column_count(self):
        assert len(CarrierBFormatter.columns) == 76
        assert len(set(CarrierBFormatter.columns)) == 76

    def test_values(self, carrier_b, draft_factory):
        template = _template(draft_factory(delivery_method="佐川"), invoice_type="元払")
        v = carrier_b.format(template, _order(template)).values

        assert v["発送日"] == "2024/03/07"
        assert v["配達日"] == "20240308"
        assert v["お客様管理番号"] == "ord00001"
        assert v["クール便指定"] == "002"
        assert v["配達指定時間帯"] == "01"
        assert v["指定シール１"] == ""  # no carrier B code for ナマモノ
        assert v["指定シール２"] == "013"
        assert v["元着区分"] == "1"
        assert v["スピード指定"] == "000"
        assert v["出荷個数"] == "1"
        assert v["ご不在時連絡先"] == "09012345678"

    def test_delivery_time_label_with_colon(self, carrier_b, draft_factory):
        template = _template(draft_factory(), delivery_time="12:00～14:00")
        assert carrier_b.format(template, _order(template)).values["配達指定時間帯"] == "12"

    def test_goods_description_truncated(self, carrier_b, draft_factory):
        description = "北海道産季節の野菜と果物の詰め合わせセット"
        template = _template(draft_factory(), goods_description=description)
        v = carrier_b.format(template, _order(template)).values
        assert v["品名１"] == description[:16]

    def test_addresses_split(self, carrier_b, draft_factory):
        draft = draft_factory()
        template = _template(draft)
        v = carrier_b.format(template, _order(template)).values
        assert v["お届け先住所１"] + v["お届け先住所２"] == draft.ship_to.address
        assert v["お届け先住所３"] == ""


# =============================================================================
# Writer
# =============================================================================


class TestCarrierExportWriter:

    def test_append_and_read_back(self, session, test_actor_id, carrier_a, draft_factory):
        template = _template(draft_factory())
        row = carrier_a.format(template, _order(template))
        writer = CarrierExportWriter(session, test_actor_id)

        writer.append(template.template_id, row)

        (stored,) = writer.rows(CarrierCode.CARRIER_A)
        assert stored == row
        assert writer.rows(CarrierCode.CARRIER_B) == []
        assert writer.rows(CarrierCode.CARRIER_A, order_id="other") == []

    def test_dump_csv(self, session, test_actor_id, carrier_b, draft_factory):
        template = _template(draft_factory())
        writer = CarrierExportWriter(session, test_actor_id)
        writer.append(template.template_id, carrier_b.format(template, _order(template, "ord00042")))

        stream = StringIO()
        assert writer.dump_csv(CarrierCode.CARRIER_B, stream) == 1

        header, data = list(csv.reader(StringIO(stream.getvalue())))
        assert header == list(CarrierBFormatter.columns)
        assert data[header.index("お客様管理番号")] == "ord00042"
        assert data[header.index("配達日")] == "20240308"

    def test_append_logged(self, session, test_actor_id, carrier_a, draft_factory, captured_logs):
        template = _template(draft_factory())
        CarrierExportWriter(session, test_actor_id).append(
            template.template_id, carrier_a.format(template, _order(template)),
        )
        appended = [r for r in captured_logs() if r["message"] == "carrier_row_appended"]
        assert appended[0]["carrier"] == "carrier_a"
        assert appended[0]["order_id"] == "ord00001"

    def test_dump_xlsx_keeps_codes_as_text(self, session, test_actor_id, carrier_a, draft_factory, tmp_path):
        template = _template(draft_factory())
        writer = CarrierExportWriter(session, test_actor_id)
        writer.append(template.template_id, carrier_a.format(template, _order(template)))
        path = tmp_path / "carrier_a.xlsx"

        assert writer.dump_xlsx(CarrierCode.CARRIER_A, path) == 1

        wb = openpyxl.load_workbook(path, read_only=True)
        try:
            header, data = [list(r) for r in wb["carrier_a"].iter_rows(values_only=True)]
        finally:
            wb.close()
        assert header[0] == "発送日"
        assert data[header.index("ご請求先顧客コード")] == "019543385101"
        assert data[header.index("お届け先郵便番号")] == "0600042"
