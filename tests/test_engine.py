"""
End-to-end checks of compute_tax_summary: the reference scenarios plus the
invariants every summary must satisfy.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from realizedtax import InvalidPeriodError, TaxConfig, compute_tax_summary
from realizedtax.schemas import BuyLine, SellLine, TaxBracket

Y_START = date(2025, 1, 1)
Y_END = date(2025, 12, 31)


def test_no_transactions_gives_zero_summary():
    result = compute_tax_summary([], Y_START, Y_END)
    assert result.total_invested == 0
    assert result.total_received == 0
    assert result.realized_gains == 0
    assert result.realized_losses == 0
    assert result.net_gain_loss == 0
    assert result.estimated_tax == 0
    assert result.tax_rate == 0
    assert result.by_asset == []
    assert result.transactions == []
    assert result.period.start == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert result.period.end.date() == date(2025, 12, 31)


def test_simple_round_trip_gain(make_tx):
    txs = [
        make_tx(id="buy1", kind="BUY", quantity="10", price="100", at="2025-01-10"),
        make_tx(id="sell1", kind="SELL", quantity="10", price="120", at="2025-02-10"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END)
    assert result.total_invested == Decimal("1000")
    assert result.total_received == Decimal("1200")
    assert result.realized_gains == Decimal("200")
    assert result.realized_losses == 0
    # minimal tier 15%
    assert result.tax_rate == Decimal("0.15")
    assert result.estimated_tax == Decimal("30")
    assert result.total_buys == 1
    assert result.total_sells == 1


def test_fifo_with_two_buys(make_tx):
    txs = [
        make_tx(id="buy1", quantity="5", price="100", at="2025-01-10"),
        make_tx(id="buy2", quantity="5", price="200", at="2025-01-20"),
        make_tx(id="sell1", kind="SELL", quantity="6", price="150", at="2025-02-10"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END)
    # 6 sold with cost basis 5x100 + 1x200 = 700; proceeds 6x150 = 900 => gain 200
    assert result.realized_gains == Decimal("200")
    assert result.realized_losses == 0

    sell = result.transactions[-1]
    assert isinstance(sell, SellLine)
    assert sell.cost_basis == Decimal("700")
    assert sell.proceeds == Decimal("900")
    (asset,) = result.by_asset
    assert asset.open_quantity == Decimal("4")


def test_pure_loss_is_not_taxed(make_tx):
    txs = [
        make_tx(id="buy1", quantity="10", price="100", at="2025-01-10"),
        make_tx(id="sell1", kind="SELL", quantity="10", price="80", at="2025-02-10"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END)
    assert result.realized_losses == Decimal("200")
    assert result.realized_gains == 0
    assert result.net_gain_loss == Decimal("-200")
    assert result.estimated_tax == 0
    assert result.tax_rate == 0


def test_mixed_assets_net_for_tax_but_report_separately(make_tx):
    txs = [
        make_tx(id="a1", asset_id="A", quantity="10", price="100", at="2025-01-10"),
        make_tx(id="b1", asset_id="B", quantity="10", price="50", at="2025-01-11"),
        make_tx(id="a2", kind="SELL", asset_id="A", quantity="10", price="150", at="2025-03-01"),
        make_tx(id="b2", kind="SELL", asset_id="B", quantity="10", price="30", at="2025-03-02"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END)
    assert result.realized_gains == Decimal("500")
    assert result.realized_losses == Decimal("200")
    assert result.net_gain_loss == Decimal("300")
    assert result.estimated_tax == Decimal("45")

    by_asset = {a.asset_id: a for a in result.by_asset}
    assert by_asset["A"].gain_loss == Decimal("500")
    assert by_asset["A"].realized_losses == 0
    assert by_asset["B"].gain_loss == Decimal("-200")
    assert by_asset["B"].realized_losses == Decimal("200")
    assert by_asset["A"].invested == Decimal("1000")
    assert by_asset["B"].received == Decimal("300")
    assert by_asset["A"].asset_title == "A"


def test_transactions_are_tagged_buy_or_sell(make_tx):
    txs = [
        make_tx(id="sell1", kind="SELL", quantity="10", price="120", at="2025-02-10"),
        make_tx(id="buy1", quantity="10", price="100", at="2025-01-10"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END)
    buy, sell = result.transactions
    assert isinstance(buy, BuyLine) and buy.gain_loss is None
    assert isinstance(sell, SellLine) and sell.gain_loss == Decimal("200")

    dumped = result.model_dump(mode="json")
    assert dumped["transactions"][0]["kind"] == "BUY"
    assert dumped["transactions"][0]["gain_loss"] is None
    assert dumped["transactions"][1]["gain_loss"] == "200"
    assert dumped["period"]["start"].startswith("2025-01-01T00:00:00")


def test_zero_result_sell_is_neither_gain_nor_loss(make_tx):
    txs = [
        make_tx(id="buy1", quantity="1", price="100", at="2025-01-10"),
        make_tx(id="sell1", kind="SELL", quantity="1", price="100", at="2025-02-10"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END)
    assert result.realized_gains == 0
    assert result.realized_losses == 0
    assert result.by_asset[0].sell_count == 1
    assert result.transactions[1].gain_loss == 0


def test_oversold_surfaces_anomaly(make_tx):
    txs = [
        make_tx(id="buy1", quantity="2", price="100", at="2025-01-10"),
        make_tx(id="sell1", kind="SELL", quantity="5", price="150", at="2025-02-10"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END)
    # only the 2 held units produce a gain
    assert result.realized_gains == Decimal("100")
    assert result.anomalies[0].shortfall == Decimal("3")
    assert result.by_asset[0].oversold_quantity == Decimal("3")
    assert result.warnings


def test_skipped_rows_do_not_abort(make_tx):
    txs = [
        make_tx(id="bad", quantity="-3"),
        make_tx(id="buy1", quantity="10", price="100", at="2025-01-10"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END)
    assert result.total_invested == Decimal("1000")
    assert [s.transaction_id for s in result.skipped] == ["bad"]


def test_period_bounds_are_inclusive_whole_days(make_tx):
    txs = [
        make_tx(id="first", at="2025-01-01T00:00:00"),
        make_tx(id="last", at="2025-12-31T23:59:59"),
        make_tx(id="outside", at="2026-01-01T00:00:00"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END)
    assert [t.id for t in result.transactions] == ["first", "last"]


def test_invalid_period_rejected():
    with pytest.raises(InvalidPeriodError):
        compute_tax_summary([], date(2025, 12, 31), date(2025, 1, 1))


def test_idempotent(make_tx):
    txs = [
        make_tx(id="buy1", quantity="5", price="100", at="2025-01-10"),
        make_tx(id="buy2", quantity="5", price="200", fee="1.5", at="2025-01-20"),
        make_tx(id="sell1", kind="SELL", quantity="6", price="150", fee="0.75", at="2025-02-10"),
        make_tx(id="sell2", kind="SELL", quantity="9", price="10", at="2025-03-10"),
    ]
    first = compute_tax_summary(txs, Y_START, Y_END)
    second = compute_tax_summary(list(reversed(txs)), Y_START, Y_END)
    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_totals_never_negative(make_tx):
    txs = [
        make_tx(id="buy1", quantity="3", price="0", at="2025-01-10"),
        make_tx(id="sell1", kind="SELL", quantity="1", price="0", fee="2", at="2025-01-11"),
        make_tx(id="sell2", kind="SELL", quantity="5", price="7", at="2025-01-12"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END)
    assert result.total_invested >= 0
    assert result.total_received >= 0
    assert result.realized_losses >= 0
    assert result.estimated_tax >= 0


def test_config_controls_brackets_and_rounding(make_tx):
    cfg = TaxConfig(
        brackets=(TaxBracket(lower_bound="0", upper_bound=None, rate="0.333"),),
        round_dp=1,
    )
    txs = [
        make_tx(id="buy1", quantity="1", price="100", at="2025-01-10"),
        make_tx(id="sell1", kind="SELL", quantity="1", price="200.5", at="2025-02-10"),
    ]
    result = compute_tax_summary(txs, Y_START, Y_END, config=cfg)
    # 100.5 * 0.333 = 33.4665
    assert result.estimated_tax == Decimal("33.5")
    assert result.tax_rate == Decimal("0.333")
