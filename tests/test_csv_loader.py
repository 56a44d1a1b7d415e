from __future__ import annotations

import csv
import io
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import pytest

from transaction_ingest.errors import NotFoundError, ParseError
from transaction_ingest.ingest.csv_loader import load_all, repair_description

from tests.helpers.records import make_tx, write_csv


def test_load_all_parses_typed_fields(tmp_path: Path):
    tx = make_tx(amount=Decimal("-30.25"))
    path = write_csv(tmp_path / "in.csv", [tx])

    [loaded] = load_all(path)

    assert loaded == tx
    assert loaded.date.tzinfo is not None


def test_load_all_reads_from_stream_and_blank_cells_become_none():
    tid = uuid.uuid4()
    text = (
        "TransactionId,UserId,Date,Amount,Category,Description,Merchant\n"
        f"{tid},,2024-01-02T03:04:05,,Food,,Cafe\n"
    )

    [loaded] = load_all(io.StringIO(text))

    assert loaded.transaction_id == tid
    assert loaded.user_id is None
    assert loaded.amount is None
    assert loaded.description is None
    # Naive timestamps are taken as UTC.
    assert loaded.date == datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)


def test_load_all_rejects_missing_columns(tmp_path: Path):
    path = tmp_path / "bad.csv"
    path.write_text("TransactionId,UserId,Date\n", encoding="utf-8")

    with pytest.raises(ParseError, match="Missing columns: Amount, Category"):
        load_all(path)


def test_load_all_rejects_empty_file(tmp_path: Path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")

    with pytest.raises(ParseError, match="no header row"):
        load_all(path)


def test_load_all_names_row_and_column_for_bad_values(tmp_path: Path):
    good = make_tx()
    path = write_csv(
        tmp_path / "in.csv",
        [
            good,
            {
                "TransactionId": str(uuid.uuid4()),
                "UserId": str(uuid.uuid4()),
                "Date": "2024-01-01",
                "Amount": "12,00x",
                "Category": "c",
                "Description": "d",
                "Merchant": "m",
            },
        ],
    )

    with pytest.raises(ParseError, match=r"row 2: invalid Amount"):
        load_all(path)


def test_load_all_missing_file_is_parse_error(tmp_path: Path):
    with pytest.raises(ParseError):
        load_all(tmp_path / "nope.csv")


def test_repair_description_touches_only_target_row(tmp_path: Path):
    first = make_tx(description="keep me")
    target = make_tx(description="")
    last = make_tx(description="and me")
    path = write_csv(tmp_path / "in.csv", [first, target, last])

    repair_description(path, target.transaction_id, "fixed")

    loaded = load_all(path)
    assert [r.transaction_id for r in loaded] == [
        first.transaction_id,
        target.transaction_id,
        last.transaction_id,
    ]
    assert loaded[0] == first
    assert loaded[1] == target.with_description("fixed")
    assert loaded[2] == last
    assert not (tmp_path / "in.csv.tmp").exists()


def test_repair_description_preserves_header_order_and_raw_cells(tmp_path: Path):
    tid = uuid.uuid4()
    path = tmp_path / "in.csv"
    path.write_text(
        "Merchant,Description,TransactionId,UserId,Date,Amount,Category\n"
        f"Shop,,{str(tid).upper()},{uuid.uuid4()},2024-01-01T00:00:00+02:00,1.50,Misc\n",
        encoding="utf-8",
    )
    with path.open(encoding="utf-8", newline="") as f:
        before = next(csv.DictReader(f))

    repair_description(path, tid, "New text")

    with path.open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        after = next(reader)
        assert reader.fieldnames == [
            "Merchant",
            "Description",
            "TransactionId",
            "UserId",
            "Date",
            "Amount",
            "Category",
        ]
    assert after["Description"] == "New text"
    assert {k: v for k, v in after.items() if k != "Description"} == {
        k: v for k, v in before.items() if k != "Description"
    }


def test_repair_description_unknown_id_raises_and_leaves_file(tmp_path: Path):
    path = write_csv(tmp_path / "in.csv", [make_tx()])
    original = path.read_text(encoding="utf-8")

    with pytest.raises(NotFoundError):
        repair_description(path, uuid.uuid4(), "x")

    assert path.read_text(encoding="utf-8") == original


def test_repair_description_rewrites_every_copy_of_the_id(tmp_path: Path):
    first = make_tx(description="valid")
    copy = make_tx(transaction_id=first.transaction_id, description="", amount=Decimal("50"))
    other = make_tx(description="untouched")
    path = write_csv(tmp_path / "in.csv", [first, other, copy])

    repair_description(path, first.transaction_id, "fixed")

    loaded = load_all(path)
    assert [r.description for r in loaded] == ["fixed", "untouched", "fixed"]
    assert loaded[2] == copy.with_description("fixed")


def test_load_all_skips_utf8_byte_order_mark(tmp_path: Path):
    tx = make_tx()
    plain = write_csv(tmp_path / "plain.csv", [tx])
    path = tmp_path / "bom.csv"
    path.write_bytes(b"\xef\xbb\xbf" + plain.read_bytes())

    assert load_all(path) == [tx]
    # Streams decoded as plain utf-8 keep the BOM character; it is dropped too.
    assert load_all(io.StringIO(path.read_text(encoding="utf-8"))) == [tx]


def test_repair_description_keeps_byte_order_mark(tmp_path: Path):
    tx = make_tx(description="")
    plain = write_csv(tmp_path / "plain.csv", [tx])
    path = tmp_path / "bom.csv"
    path.write_bytes(b"\xef\xbb\xbf" + plain.read_bytes())

    repair_description(path, tx.transaction_id, "fixed")

    assert path.read_bytes().startswith(b"\xef\xbb\xbfTransactionId,")
    assert load_all(path) == [tx.with_description("fixed")]


@pytest.mark.parametrize(
    ("amount", "message"),
    [
        ("10.005", "more than 2 decimal places"),
        ("0.001", "more than 2 decimal places"),
        ("10000000000000000", "out of range"),
        ("1e30", "out of range"),
    ],
)
def test_load_all_rejects_amounts_the_store_would_round(
    tmp_path: Path, amount: str, message: str
):
    row = {
        "TransactionId": str(uuid.uuid4()),
        "UserId": str(uuid.uuid4()),
        "Date": "2024-01-01T00:00:00+00:00",
        "Amount": amount,
        "Category": "c",
        "Description": "d",
        "Merchant": "m",
    }
    path = write_csv(tmp_path / "in.csv", [row])

    with pytest.raises(ParseError, match=rf"row 1: Amount .* {message}"):
        load_all(path)


def test_load_all_accepts_trailing_zero_precision(tmp_path: Path):
    tx = make_tx(amount=Decimal("-9999999999999999.990"))
    [loaded] = load_all(write_csv(tmp_path / "in.csv", [tx]))
    assert loaded.amount == Decimal("-9999999999999999.99")
