from datetime import datetime, timezone
from decimal import Decimal

from realizedtax.normalizer import normalize_transactions
from realizedtax.schemas import Transaction

START = datetime(2025, 1, 1, tzinfo=timezone.utc)
END = datetime(2025, 12, 31, 23, 59, 59, tzinfo=timezone.utc)


def test_empty_input_yields_empty_batch():
    batch = normalize_transactions([], START, END)
    assert batch.transactions == []
    assert batch.skipped == []


def test_sorted_by_timestamp_then_id(make_tx):
    rows = [
        make_tx(id="b", at="2025-03-01"),
        make_tx(id="c", at="2025-02-01"),
        make_tx(id="a", at="2025-03-01"),
    ]
    batch = normalize_transactions(rows, START, END)
    assert [t.id for t in batch.transactions] == ["c", "a", "b"]


def test_integer_ids_tie_break_numerically(make_tx):
    # database primary keys: 10 was inserted after 9
    rows = [
        make_tx(id=10, kind="SELL", quantity="1", price="150", at="2025-03-01"),
        make_tx(id=9, kind="BUY", quantity="1", price="100", at="2025-03-01"),
        make_tx(id="manual", at="2025-03-01"),
    ]
    batch = normalize_transactions(rows, START, END)
    assert [t.id for t in batch.transactions] == ["9", "10", "manual"]


def test_filters_status_kind_and_period(make_tx):
    rows = [
        make_tx(id="keep"),
        make_tx(id="pending", status="PENDING"),
        make_tx(id="transfer", kind="TRANSFER"),
        make_tx(id="before", at="2024-12-31T23:59:59"),
        make_tx(id="after", at="2026-01-01"),
        make_tx(id="edge_end", at="2025-12-31T23:59:59"),
    ]
    batch = normalize_transactions(rows, START, END)
    assert [t.id for t in batch.transactions] == ["keep", "edge_end"]
    assert batch.skipped == []


def test_malformed_rows_are_skipped_not_fatal(make_tx):
    missing_asset = make_tx(id="no_asset")
    del missing_asset["asset_id"]
    rows = [
        make_tx(id="ok"),
        make_tx(id="neg_qty", quantity="-1"),
        make_tx(id="neg_price", price="-5"),
        make_tx(id="zero_qty", quantity="0"),
        missing_asset,
        {"id": "garbage", "timestamp": "not a date"},
    ]
    batch = normalize_transactions(rows, START, END)

    assert [t.id for t in batch.transactions] == ["ok"]
    assert [s.row_number for s in batch.skipped] == [1, 2, 3, 4, 5]
    assert [s.transaction_id for s in batch.skipped] == ["neg_qty", "neg_price", "zero_qty", "no_asset", "garbage"]
    assert all(s.errors for s in batch.skipped)


def test_accepts_transaction_objects_and_lowercase_codes(make_tx):
    tx = Transaction.model_validate(make_tx(id="x", kind="buy", status="completed"))
    batch = normalize_transactions([tx], START, END)
    assert batch.transactions == [tx]
    assert tx.kind == "BUY"
    assert tx.status == "COMPLETED"


def test_floats_are_converted_exactly(make_tx):
    tx = Transaction.model_validate(make_tx(quantity=0.1, price=0.2, fee=None))
    assert tx.quantity == Decimal("0.1")
    assert tx.unit_price == Decimal("0.2")
    assert tx.fee == Decimal("0")
    assert tx.total_value == Decimal("0.02")


def test_naive_timestamps_are_utc():
    tx = Transaction(
        id=7, asset_id="A", kind="SELL", quantity="1", unit_price="1",
        timestamp=datetime(2025, 5, 1, 12, 0),
    )
    assert tx.id == "7"
    assert tx.timestamp.tzinfo is not None
    assert tx.timestamp == datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
