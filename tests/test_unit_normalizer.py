from datetime import date, datetime

import pytest

from mktdash.services.normalizer import (
    SOURCE_FEED,
    SOURCE_STORE,
    normalize_feed_row,
    normalize_rows,
    normalize_shift,
    normalize_store_row,
    parse_date,
    to_number,
)


def _feed_row(**overrides):
    row = {
        "id_NS": "NS-1",
        "Tên": " Nguyen Van A ",
        "Email": "a@company.vn",
        "Team": "T1",
        "Ngày": "2024-05-01",
        "ca": "Giữa ca",
        "Sản_phẩm": "Serum A",
        "Thị_trường": "Nhật Bản",
        "TKQC": "TK-01",
        "CPQC": "1,500",
        "Số_Mess_Cmt": 10,
        "Số đơn": 2,
        "Doanh số": 1000,
        "DS sau hoàn hủy": 900,
        "Doanh số sau ship": 850,
        "KPIs": 1000,
    }
    row.update(overrides)
    return row


def test_to_number_coerces_garbage_to_zero():
    assert to_number("1,500.5") == 1500.5
    assert to_number(None) == 0.0
    assert to_number("") == 0.0
    assert to_number("abc") == 0.0
    assert to_number(float("nan")) == 0.0
    assert to_number(True) == 0.0
    assert to_number([1]) == 0.0
    assert to_number(7) == 7.0


def test_parse_date_shapes():
    assert parse_date("2024-05-01") == date(2024, 5, 1)
    assert parse_date("01/05/2024") == date(2024, 5, 1)
    # slash dates are day-first, matching the DD/MM/YYYY shape the sheet is written in
    assert parse_date("05/01/2024") == date(2024, 1, 5)
    assert parse_date("13/05/2024") == date(2024, 5, 13)
    assert parse_date("2024-05-01T10:30:00Z") == date(2024, 5, 1)
    assert parse_date(datetime(2024, 5, 1, 23, 59)) == date(2024, 5, 1)
    assert parse_date(date(2024, 5, 1)) == date(2024, 5, 1)
    # epoch milliseconds
    assert parse_date(1714521600000) == date(2024, 5, 1)
    assert parse_date("not a date") is None
    assert parse_date("") is None
    assert parse_date(None) is None


def test_normalize_shift_labels():
    assert normalize_shift("Giữa ca") == "mid-shift"
    assert normalize_shift("hết ca") == "end-shift"
    assert normalize_shift("end-shift") == "end-shift"
    assert normalize_shift("night") == "night"
    assert normalize_shift(None) == "Unknown"


def test_feed_row_mapping():
    record = normalize_feed_row(_feed_row())
    assert record is not None
    assert record.person_name == "Nguyen Van A"
    assert record.person_email == "a@company.vn"
    assert record.id == "NS-1"
    assert record.date == date(2024, 5, 1)
    assert record.shift == "mid-shift"
    assert record.ad_account == "TK-01"
    assert record.ad_spend == 1500.0
    assert record.message_count == 10
    assert record.revenue == 1000
    assert record.cancelled_revenue == 100
    assert record.kpi_target == 1000
    assert record.source == SOURCE_FEED


def test_missing_labels_become_unknown_and_bad_values_survive():
    record = normalize_feed_row(_feed_row(**{"Team": "", "Sản_phẩm": None, "Ngày": "31/31/2024", "Số đơn": "n/a"}))
    assert record.team == "Unknown"
    assert record.product == "Unknown"
    assert record.date is None
    assert record.order_count == 0.0


def test_row_without_name_is_dropped():
    assert normalize_feed_row(_feed_row(**{"Tên": "   "})) is None
    assert normalize_store_row({"email": "x@acme.io"}) is None


def test_store_row_aliases():
    record = normalize_store_row({
        "id": 12,
        "name": "B",
        "email": "b@acme.io",
        "team": "T2",
        "date": date(2024, 5, 2),
        "shift": "end-shift",
        "product": "P",
        "market": "US",
        "tkqc": "TK-9",
        "cpqc": "50",
        "mess_cmt": 4,
        "orders": 1,
        "revenue": "200",
    })
    assert record.id == "12"
    assert record.ad_account == "TK-9"
    assert record.ad_spend == 50.0
    assert record.message_count == 4
    assert record.order_count == 1
    assert record.cancelled_revenue == 0.0
    assert record.source == SOURCE_STORE


def test_normalize_rows_skips_unusable_rows():
    rows = [_feed_row(), "garbage", None, _feed_row(**{"Tên": ""}), _feed_row(**{"Tên": "B"})]
    records = normalize_rows(rows, SOURCE_FEED)
    assert [r.person_name for r in records] == ["Nguyen Van A", "B"]
    assert normalize_rows(None) == []


def test_normalize_rows_unknown_source():
    with pytest.raises(ValueError):
        normalize_rows([], "ledger")
