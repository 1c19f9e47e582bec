"""Tests for the balance aggregator, report derivations and report engine."""

import random
from datetime import date, timedelta
from decimal import Decimal

import pytest

from ledgerbook.errors import (
    BalanceSheetImbalanceError,
    NotFoundError,
    UnknownLedgerReferenceError,
)
from ledgerbook.models import Group, GroupNature, GroupRole, Ledger, VoucherType
from ledgerbook.reports import (
    ReportEngine,
    balance_sheet,
    balance_summary,
    cash_flow_statement,
    compute_trial_balance,
    day_book,
    financial_ratios,
    ledger_balances,
    ledger_statement,
    profit_and_loss,
    resolve_roles,
    top_by_balance,
    trial_balance_totals,
)


def _with_roles(groups):
    """Sample groups with Current Assets as cash and Capital Account as equity."""
    roles = {1: GroupRole.CASH, 2: GroupRole.EQUITY}
    return [g.model_copy(update={"role": roles.get(g.id)}) for g in groups]


class TestTrialBalance:
    """Tests for compute_trial_balance."""

    def test_sample_books(self, ledgers, vouchers, groups):
        rows = compute_trial_balance(ledgers, vouchers, groups)
        by_id = {row.ledger_id: row for row in rows}

        assert by_id[1].debit == Decimal("3000")
        assert by_id[1].credit == Decimal("1500")
        assert by_id[2].debit == Decimal("5500")
        assert by_id[2].credit == Decimal("500")
        assert by_id[3].credit == Decimal("5000")
        assert by_id[4].credit == Decimal("2000")
        assert by_id[5].debit == Decimal("500")
        assert by_id[2].group_name == "Bank Accounts"

    def test_totals_balance(self, ledgers, vouchers):
        total_debit, total_credit = trial_balance_totals(compute_trial_balance(ledgers, vouchers))
        assert total_debit == total_credit == Decimal("9000")

    def test_generated_balanced_vouchers_keep_totals_equal(self, make_voucher):
        """Any set of balanced vouchers over balanced openings gives equal totals."""
        rng = random.Random(1234)
        ledgers = [Ledger(id=i, name=f"L{i}", group_id=1) for i in range(1, 9)]
        vouchers = []
        for voucher_id in range(1, 60):
            debit_ledger, credit_ledger, other = rng.sample(range(1, 9), 3)
            first = Decimal(rng.randint(1, 500000)) / 100
            second = Decimal(rng.randint(1, 500000)) / 100
            vouchers.append(make_voucher(
                voucher_id,
                date(2024, 1, 1) + timedelta(days=voucher_id),
                [
                    (debit_ledger, first + second, "dr"),
                    (credit_ledger, first, "cr"),
                    (other, second, "cr"),
                ],
            ))

        total_debit, total_credit = trial_balance_totals(compute_trial_balance(ledgers, vouchers))
        assert abs(total_debit - total_credit) <= Decimal("0.01")

    def test_is_idempotent_and_pure(self, ledgers, vouchers):
        before = [v.model_copy(deep=True) for v in vouchers]
        first = compute_trial_balance(ledgers, vouchers)
        second = compute_trial_balance(ledgers, vouchers)
        assert first == second
        assert vouchers == before

    def test_zero_rows_dropped_and_order_kept(self, make_voucher):
        ledgers = [
            Ledger(id=3, name="C", group_id=1),
            Ledger(id=1, name="A", group_id=1),
            Ledger(id=2, name="Idle", group_id=1),
        ]
        vouchers = [make_voucher(1, date(2024, 1, 1), [(1, 10, "dr"), (3, 10, "cr")])]
        rows = compute_trial_balance(ledgers, vouchers)
        assert [row.ledger_id for row in rows] == [3, 1]

    def test_negative_opening_goes_to_credit(self):
        rows = compute_trial_balance([Ledger(id=1, name="Loan", group_id=2, opening_balance=Decimal("-75"))], [])
        assert rows[0].debit == Decimal("0")
        assert rows[0].credit == Decimal("75")

    def test_unknown_ledger_raises(self, ledgers, make_voucher):
        bad = make_voucher(9, date(2024, 1, 1), [(1, 10, "dr"), (99, 10, "cr")])
        with pytest.raises(UnknownLedgerReferenceError) as exc:
            compute_trial_balance(ledgers, [bad])
        assert exc.value.ledger_id == 99
        assert exc.value.voucher_id == 9
        assert exc.value.error_kind == "unknown_ledger_reference"


class TestProfitAndLoss:
    """Tests for the P&L derivation."""

    def test_sample_books(self, ledgers, groups, vouchers):
        pnl = profit_and_loss(ledgers, groups, vouchers)
        assert [row.name for row in pnl.income] == ["Sales"]
        assert [row.name for row in pnl.expenses] == ["Rent"]
        assert pnl.total_income == Decimal("2000")
        assert pnl.total_expenses == Decimal("500")
        assert pnl.net_profit == Decimal("1500")

    def test_net_profit_is_income_minus_expenses(self, make_voucher):
        """Holds whatever the split of groups by nature."""
        rng = random.Random(99)
        natures = list(GroupNature)
        groups = [Group(id=i, name=f"G{i}", nature=natures[i % 4]) for i in range(1, 9)]
        ledgers = [Ledger(id=i, name=f"L{i}", group_id=rng.randint(1, 8)) for i in range(1, 13)]
        vouchers = []
        for voucher_id in range(1, 40):
            a, b = rng.sample(range(1, 13), 2)
            amount = Decimal(rng.randint(1, 100000)) / 100
            vouchers.append(make_voucher(voucher_id, date(2024, 3, 1), [(a, amount, "dr"), (b, amount, "cr")]))

        pnl = profit_and_loss(ledgers, groups, vouchers)
        expected_income = sum((r.credit - r.debit for r in pnl.income), Decimal("0"))
        expected_expenses = sum((r.debit - r.credit for r in pnl.expenses), Decimal("0"))
        assert pnl.net_profit == expected_income - expected_expenses

    def test_date_range_filters_vouchers(self, ledgers, groups, vouchers):
        pnl = profit_and_loss(ledgers, groups, vouchers, date(2024, 1, 15), date(2024, 1, 31))
        assert pnl.total_income == Decimal("0")
        assert pnl.total_expenses == Decimal("500")


class TestBalanceSheet:
    """Tests for the balance sheet derivation."""

    def test_sample_books_balance(self, ledgers, groups, vouchers):
        sheet = balance_sheet(ledgers, groups, vouchers)
        assert sheet.total_assets == Decimal("6500")
        assert sheet.total_liabilities == Decimal("5000")
        assert sheet.retained_earnings == Decimal("1500")
        assert sheet.total_liabilities_and_equity == Decimal("6500")
        assert sheet.is_balanced
        assert sheet.warnings == []

    def test_as_of_excludes_later_vouchers(self, ledgers, groups, vouchers):
        sheet = balance_sheet(ledgers, groups, vouchers, as_of=date(2024, 1, 15))
        assert sheet.total_assets == Decimal("7000")
        assert sheet.retained_earnings == Decimal("2000")
        assert sheet.is_balanced

    def test_imbalance_is_reported_not_hidden(self, ledgers, groups, vouchers):
        lopsided = ledgers + [Ledger(id=6, name="Suspense", group_id=1, opening_balance=Decimal("100"))]
        sheet = balance_sheet(lopsided, groups, vouchers)
        assert not sheet.is_balanced
        assert sheet.imbalance == Decimal("100")
        assert len(sheet.warnings) == 1

    def test_strict_raises_on_imbalance(self, ledgers, groups, vouchers):
        lopsided = ledgers + [Ledger(id=6, name="Suspense", group_id=1, opening_balance=Decimal("100"))]
        with pytest.raises(BalanceSheetImbalanceError) as exc:
            balance_sheet(lopsided, groups, vouchers, strict=True)
        assert exc.value.imbalance == Decimal("100")


class TestLedgerStatement:
    """Tests for the running-balance ledger statement."""

    def test_running_balance(self, make_voucher):
        ledger = Ledger(id=1, name="X", group_id=1, opening_balance=Decimal("1000"))
        vouchers = [
            make_voucher(2, date(2024, 1, 3), [(2, 300, "dr"), (1, 300, "cr")], VoucherType.PAYMENT),
            make_voucher(1, date(2024, 1, 2), [(1, 500, "dr"), (3, 500, "cr")], VoucherType.RECEIPT),
        ]

        statement = ledger_statement(ledger, vouchers)

        assert [row.balance for row in statement.rows] == [
            Decimal("1000"), Decimal("1500"), Decimal("1200"),
        ]
        assert [row.balance_side for row in statement.rows] == ["Dr", "Dr", "Dr"]
        assert statement.rows[1].debit == Decimal("500")
        assert statement.rows[2].credit == Decimal("300")
        assert statement.closing_balance == Decimal("1200")

    def test_opening_row_includes_earlier_activity(self, ledgers, vouchers):
        statement = ledger_statement(ledgers[0], vouchers, date_from=date(2024, 2, 1))
        assert statement.opening_balance == Decimal("3000")
        assert statement.rows[0].particulars == "Opening Balance"
        assert statement.rows[0].date == date(2024, 2, 1)
        assert statement.closing_balance == Decimal("1500")
        assert len(statement.rows) == 2

    def test_credit_balance_display(self, ledgers, vouchers):
        statement = ledger_statement(ledgers[2], vouchers)
        assert statement.rows[0].balance == Decimal("-5000")
        assert statement.rows[0].balance_amount == Decimal("5000")
        assert statement.rows[0].balance_side == "Cr"

    def test_same_day_ordered_by_id(self, make_voucher):
        ledger = Ledger(id=1, name="X", group_id=1)
        day = date(2024, 5, 5)
        vouchers = [
            make_voucher(8, day, [(1, 5, "cr"), (2, 5, "dr")]),
            make_voucher(4, day, [(1, 20, "dr"), (2, 20, "cr")]),
        ]
        statement = ledger_statement(ledger, vouchers)
        assert [row.voucher_id for row in statement.rows[1:]] == [4, 8]


class TestDayBookAndBalances:
    """Tests for the day book and ledger balance projections."""

    def test_day_book_chronological(self, vouchers):
        rows = day_book(list(reversed(vouchers)))
        assert [row.voucher_id for row in rows] == [1, 2, 3]
        assert rows[0].amount == Decimal("2000")

    def test_day_book_range(self, vouchers):
        rows = day_book(vouchers, date(2024, 1, 11), date(2024, 1, 31))
        assert [row.voucher_id for row in rows] == [2]

    def test_balances_are_recomputed(self, ledgers, groups, vouchers):
        balances = {b.ledger_id: b for b in ledger_balances(ledgers, groups, vouchers)}
        assert balances[1].balance == Decimal("1500")
        assert balances[2].balance == Decimal("5000")
        assert balances[3].balance == Decimal("-5000")
        assert balances[2].nature == GroupNature.ASSETS

    def test_balance_summary(self, ledgers, groups, vouchers):
        summary = balance_summary(ledger_balances(ledgers, groups, vouchers))
        assert summary.total_assets == Decimal("6500")
        assert summary.total_liabilities == Decimal("5000")
        assert summary.net_worth == Decimal("1500")
        assert summary.count == 5

    def test_top_by_balance(self, ledgers, groups, vouchers):
        top = top_by_balance(ledger_balances(ledgers, groups, vouchers), limit=2)
        assert [b.ledger_id for b in top] == [2, 3]


@pytest.fixture
def wider_books(groups, ledgers, vouchers, make_voucher):
    """Sample books plus equipment bought from the bank and a bank loan."""
    groups = _with_roles(groups) + [
        Group(id=6, name="Fixed Assets", nature=GroupNature.ASSETS, role=GroupRole.FIXED_ASSETS),
        Group(id=7, name="Loans", nature=GroupNature.LIABILITIES, role=GroupRole.LOANS),
    ]
    ledgers = ledgers + [
        Ledger(id=6, name="Office Equipment", group_id=6),
        Ledger(id=7, name="Bank Loan", group_id=7),
    ]
    vouchers = vouchers + [
        make_voucher(4, date(2024, 2, 10), [(6, 800, "dr"), (2, 800, "cr")], VoucherType.PAYMENT),
        make_voucher(5, date(2024, 2, 15), [(1, 3000, "dr"), (7, 3000, "cr")], VoucherType.RECEIPT),
        make_voucher(6, date(2024, 2, 20), [(5, 100, "dr"), (7, 100, "cr")]),
    ]
    return ledgers, groups, vouchers


class TestCashFlow:
    """Tests for the cash flow statement."""

    def test_roles_inherited_by_sub_groups(self, groups):
        roles = resolve_roles(_with_roles(groups))
        assert roles == {
            1: GroupRole.CASH, 2: GroupRole.EQUITY, 3: None, 4: None, 5: GroupRole.CASH,
        }

    def test_sample_books(self, ledgers, groups, vouchers):
        flow = cash_flow_statement(ledgers, _with_roles(groups), vouchers)

        assert flow.cash_ledger_ids == [1, 2]
        assert flow.operating == Decimal("1500")
        assert flow.investing == flow.financing == Decimal("0")
        assert flow.opening_cash == Decimal("5000")
        assert flow.closing_cash == Decimal("6500")

    def test_activities_by_group_role(self, wider_books):
        flow = cash_flow_statement(*wider_books)

        assert flow.operating == Decimal("1500")
        assert flow.investing == Decimal("-800")
        assert flow.financing == Decimal("3000")
        assert flow.net_cash_flow == Decimal("3700")
        assert flow.closing_cash == Decimal("8700")

    def test_period_starts_from_earlier_cash(self, wider_books):
        flow = cash_flow_statement(*wider_books, date_from=date(2024, 2, 1), date_to=date(2024, 2, 29))

        assert flow.opening_cash == Decimal("6500")
        assert flow.operating == Decimal("0")
        assert flow.closing_cash == flow.opening_cash + flow.net_cash_flow == Decimal("8700")

    def test_closing_cash_matches_ledger_balances(self, wider_books):
        ledgers, groups, vouchers = wider_books
        flow = cash_flow_statement(ledgers, groups, vouchers)
        balances = {b.ledger_id: b.balance for b in ledger_balances(ledgers, groups, vouchers)}
        assert flow.closing_cash == balances[1] + balances[2]

    def test_without_cash_groups(self, ledgers, groups, vouchers):
        flow = cash_flow_statement(ledgers, groups, vouchers)
        assert flow.cash_ledger_ids == []
        assert flow.net_cash_flow == Decimal("0")


class TestFinancialRatios:
    """Tests for the balance sheet ratios."""

    def test_ratios(self, wider_books):
        ratios = financial_ratios(*wider_books)

        assert ratios.total_assets == Decimal("9500")
        assert ratios.total_liabilities == Decimal("3100")
        assert ratios.total_equity == Decimal("6400")
        assert ratios.total_assets == ratios.total_liabilities + ratios.total_equity
        assert ratios.debt_to_equity_ratio == pytest.approx(0.4844)
        assert ratios.current_ratio == pytest.approx(3.0645)
        assert ratios.equity_ratio == pytest.approx(0.6737)

    def test_as_of_date(self, wider_books):
        ratios = financial_ratios(*wider_books, as_of=date(2024, 1, 31))
        assert ratios.total_liabilities == Decimal("0")
        assert ratios.current_ratio == 0.0
        assert ratios.equity_ratio == 1.0

class TestReportEngine:
    """Tests for the report engine over live stores."""

    @pytest.mark.asyncio
    async def test_trial_balance_from_stores(self, app):
        tb = await app.reports.trial_balance()
        assert tb.is_balanced
        assert tb.total_debit == Decimal("9000")

    @pytest.mark.asyncio
    async def test_cache_invalidated_by_writes(self, app, make_voucher):
        first = await app.reports.trial_balance()
        again = await app.reports.trial_balance()
        assert first == again
        assert app.reports.cache_size == 1

        await app.vouchers.create(
            make_voucher(None, date(2024, 2, 10), [(5, 250, "dr"), (1, 250, "cr")], VoucherType.PAYMENT)
        )
        after = await app.reports.trial_balance()
        assert after.total_debit == Decimal("9250")
        assert app.reports.cache_size == 1

    @pytest.mark.asyncio
    async def test_cached_result_is_a_copy(self, app):
        first = await app.reports.trial_balance()
        first.rows.clear()
        second = await app.reports.trial_balance()
        assert len(second.rows) == 5

    @pytest.mark.asyncio
    async def test_profit_and_loss_and_balance_sheet(self, app):
        pnl = await app.reports.profit_and_loss(date(2024, 1, 1), date(2024, 12, 31))
        sheet = await app.reports.balance_sheet(date(2024, 12, 31), strict=True)
        assert pnl.net_profit == Decimal("1500")
        assert sheet.is_balanced

    @pytest.mark.asyncio
    async def test_ledger_statement_unknown_ledger(self, app):
        with pytest.raises(NotFoundError):
            await app.reports.ledger_statement(404)

    @pytest.mark.asyncio
    async def test_ledger_statement_from_stores(self, app):
        statement = await app.reports.ledger_statement(2, date(2024, 1, 1), date(2024, 1, 31))
        assert statement.opening_balance == Decimal("4000")
        assert statement.closing_balance == Decimal("3500")

    @pytest.mark.asyncio
    async def test_balance_queries(self, app):
        balance = await app.reports.get_ledger_balance(1)
        summary = await app.reports.get_balance_summary()
        top = await app.reports.get_top_by_balance(1)
        assert balance.balance == Decimal("1500")
        assert summary.net_worth == Decimal("1500")
        assert top[0].name == "HDFC Bank"

    @pytest.mark.asyncio
    async def test_day_book(self, app):
        rows = await app.reports.day_book(date(2024, 2, 1))
        assert [row.voucher_id for row in rows] == [3]

    @pytest.mark.asyncio
    async def test_cache_evicts_oldest_range(self, app):
        engine = ReportEngine(app.ledgers, app.groups, app.vouchers, cache_size=2)
        for month in (1, 2, 3):
            await engine.trial_balance(date(2024, month, 1), date(2024, month, 28))
        assert engine.cache_size == 2

        january = await engine.trial_balance(date(2024, 1, 1), date(2024, 1, 28))
        assert january.total_debit == Decimal("7500")
        assert engine.cache_size == 2

    @pytest.mark.asyncio
    async def test_cash_flow_and_ratios_from_stores(self, app):
        await app.groups.update(1, Group(name="Current Assets", nature=GroupNature.ASSETS, role=GroupRole.CASH))
        await app.groups.update(
            2, Group(name="Capital Account", nature=GroupNature.LIABILITIES, role=GroupRole.EQUITY)
        )

        flow = await app.reports.cash_flow_statement()
        ratios = await app.reports.financial_ratios()

        assert flow.cash_ledger_ids == [1, 2]
        assert flow.operating == Decimal("1500")
        assert ratios.total_equity == Decimal("6500")
        assert ratios.debt_to_equity_ratio == 0.0
        assert ratios.equity_ratio == 1.0

    @pytest.mark.asyncio
    async def test_top_transactions(self, app):
        rows = await app.reports.get_top_transactions(1)
        assert [(row.voucher_id, row.amount) for row in rows] == [(1, Decimal("2000"))]
