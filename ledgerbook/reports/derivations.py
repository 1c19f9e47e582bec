"""
Report Derivations

Profit & loss, balance sheet, ledger statement, day book, ledger
balances, cash flow and ratios, all computed from a snapshot of ledgers, groups and vouchers.

Date ranges are inclusive; a None bound is open.

DESIGN DECISION: The balance sheet carries the period result (income
minus expenses) to the liabilities-and-equity side as retained earnings.
If it still does not balance, the report says so: the imbalance is
recorded and logged, never absorbed into a plug figure.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from ledgerbook.errors import BalanceSheetImbalanceError, UnknownLedgerReferenceError
from ledgerbook.models.accounts import Group, GroupNature, GroupRole, Ledger
from ledgerbook.models.reports import (
    BalanceSheet,
    BalanceSummary,
    CashFlowStatement,
    DayBookRow,
    FinancialRatios,
    LedgerBalance,
    LedgerStatement,
    LedgerStatementRow,
    ProfitAndLoss,
    TrialBalance,
    TrialBalanceRow,
)
from ledgerbook.models.voucher import EntrySide, Voucher
from ledgerbook.reports.aggregator import (
    compute_trial_balance,
    ledger_balance,
    trial_balance_totals,
)

logger = structlog.get_logger("ledgerbook.reports")

ZERO = Decimal("0")
DEFAULT_TOLERANCE = Decimal("0.01")


def vouchers_in_range(
    vouchers: Iterable[Voucher],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[Voucher]:
    return [
        v for v in vouchers
        if (date_from is None or v.date >= date_from)
        and (date_to is None or v.date <= date_to)
    ]


def chronological(vouchers: Iterable[Voucher]) -> list[Voucher]:
    """Ascending by (date, id)."""
    return sorted(vouchers, key=lambda v: (v.date, v.id or 0))


def _natures(groups: Iterable[Group]) -> dict[int, GroupNature]:
    return {g.id: g.nature for g in groups}


def _partition(
    rows: list[TrialBalanceRow],
    natures: dict[int, GroupNature],
) -> dict[GroupNature, list[TrialBalanceRow]]:
    sections: dict[GroupNature, list[TrialBalanceRow]] = {n: [] for n in GroupNature}
    for row in rows:
        nature = natures.get(row.group_id)
        if nature is not None:
            sections[nature].append(row)
    return sections


def _credit_net(rows: list[TrialBalanceRow]) -> Decimal:
    return sum((row.credit - row.debit for row in rows), ZERO)


def _debit_net(rows: list[TrialBalanceRow]) -> Decimal:
    return sum((row.debit - row.credit for row in rows), ZERO)


# =============================================================================
# TRIAL BALANCE, P&L, BALANCE SHEET
# =============================================================================

def trial_balance(
    ledgers: Iterable[Ledger],
    groups: Iterable[Group],
    vouchers: Iterable[Voucher],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> TrialBalance:
    rows = compute_trial_balance(ledgers, vouchers_in_range(vouchers, date_from, date_to), groups)
    total_debit, total_credit = trial_balance_totals(rows)
    return TrialBalance(
        from_date=date_from,
        to_date=date_to,
        rows=rows,
        total_debit=total_debit,
        total_credit=total_credit,
        is_balanced=abs(total_debit - total_credit) <= tolerance,
    )


def profit_and_loss_from_rows(
    rows: list[TrialBalanceRow],
    groups: Iterable[Group],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> ProfitAndLoss:
    """
    Split trial balance rows into income and expenses by group nature.

    net_profit = Σ(credit - debit) over income - Σ(debit - credit) over expenses
    """
    sections = _partition(rows, _natures(groups))
    income = sections[GroupNature.INCOME]
    expenses = sections[GroupNature.EXPENSES]
    total_income = _credit_net(income)
    total_expenses = _debit_net(expenses)
    return ProfitAndLoss(
        from_date=date_from,
        to_date=date_to,
        income=income,
        expenses=expenses,
        total_income=total_income,
        total_expenses=total_expenses,
        net_profit=total_income - total_expenses,
    )


def profit_and_loss(
    ledgers: Iterable[Ledger],
    groups: Iterable[Group],
    vouchers: Iterable[Voucher],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> ProfitAndLoss:
    groups = list(groups)
    rows = compute_trial_balance(ledgers, vouchers_in_range(vouchers, date_from, date_to), groups)
    return profit_and_loss_from_rows(rows, groups, date_from, date_to)


def balance_sheet_from_rows(
    rows: list[TrialBalanceRow],
    groups: Iterable[Group],
    as_of: Optional[date] = None,
    strict: bool = False,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> BalanceSheet:
    """
    Assets against liabilities plus retained earnings.

    Raises:
        BalanceSheetImbalanceError: Only with strict=True, when the two
            sides differ by more than the tolerance
    """
    groups = list(groups)
    sections = _partition(rows, _natures(groups))
    assets = sections[GroupNature.ASSETS]
    liabilities = sections[GroupNature.LIABILITIES]

    total_assets = _debit_net(assets)
    total_liabilities = _credit_net(liabilities)
    retained = profit_and_loss_from_rows(rows, groups).net_profit
    total_liabilities_and_equity = total_liabilities + retained
    imbalance = total_assets - total_liabilities_and_equity
    is_balanced = abs(imbalance) <= tolerance

    warnings = []
    if not is_balanced:
        message = (
            f"Balance sheet is out by {imbalance}: assets {total_assets}, "
            f"liabilities and equity {total_liabilities_and_equity}"
        )
        warnings.append(message)
        logger.warning(
            "balance_sheet_imbalance",
            as_of=as_of.isoformat() if as_of else None,
            total_assets=str(total_assets),
            total_liabilities_and_equity=str(total_liabilities_and_equity),
            imbalance=str(imbalance),
        )
        if strict:
            raise BalanceSheetImbalanceError(message, imbalance=imbalance)

    return BalanceSheet(
        as_of=as_of,
        assets=assets,
        liabilities=liabilities,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        retained_earnings=retained,
        total_liabilities_and_equity=total_liabilities_and_equity,
        imbalance=imbalance,
        is_balanced=is_balanced,
        warnings=warnings,
    )


def balance_sheet(
    ledgers: Iterable[Ledger],
    groups: Iterable[Group],
    vouchers: Iterable[Voucher],
    as_of: Optional[date] = None,
    strict: bool = False,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> BalanceSheet:
    groups = list(groups)
    rows = compute_trial_balance(ledgers, vouchers_in_range(vouchers, None, as_of), groups)
    return balance_sheet_from_rows(rows, groups, as_of, strict, tolerance)


# =============================================================================
# LEDGER STATEMENT AND DAY BOOK
# =============================================================================

def ledger_statement(
    ledger: Ledger,
    vouchers: Iterable[Voucher],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> LedgerStatement:
    """
    Running balance of one ledger over a period.

    The first row is the balance brought forward: opening balance plus
    everything dated before `date_from`. Then one row per entry on the
    ledger, in (date, id) order.
    """
    ordered = chronological(v for v in vouchers if ledger.id in v.ledger_ids())

    earlier = [v for v in ordered if date_from is not None and v.date < date_from]
    balance = ledger_balance(ledger, earlier)

    rows = [LedgerStatementRow(
        date=date_from,
        particulars="Opening Balance",
        balance=balance,
    )]
    opening = balance

    for voucher in vouchers_in_range(ordered, date_from, date_to):
        for entry in voucher.entries:
            if entry.ledger_id != ledger.id:
                continue
            debit = entry.amount if entry.side == EntrySide.DEBIT else ZERO
            credit = entry.amount if entry.side == EntrySide.CREDIT else ZERO
            balance = balance + debit - credit
            rows.append(LedgerStatementRow(
                date=voucher.date,
                particulars=voucher.narration or f"{voucher.type.value.title()} voucher",
                voucher_id=voucher.id,
                voucher_type=voucher.type,
                voucher_number=voucher.number,
                debit=debit,
                credit=credit,
                balance=balance,
            ))

    return LedgerStatement(
        ledger_id=ledger.id,
        ledger_name=ledger.name,
        from_date=date_from,
        to_date=date_to,
        opening_balance=opening,
        closing_balance=balance,
        rows=rows,
    )


def day_book(
    vouchers: Iterable[Voucher],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[DayBookRow]:
    """Vouchers in range, oldest first, each with its debit total."""
    return [
        DayBookRow(
            voucher_id=v.id,
            date=v.date,
            type=v.type,
            number=v.number,
            narration=v.narration,
            amount=v.total_debit,
        )
        for v in chronological(vouchers_in_range(vouchers, date_from, date_to))
    ]


# =============================================================================
# LEDGER BALANCES
# =============================================================================

def ledger_balances(
    ledgers: Iterable[Ledger],
    groups: Iterable[Group],
    vouchers: Iterable[Voucher],
) -> list[LedgerBalance]:
    """Current signed balance of every ledger, in ledger order."""
    natures = _natures(groups)
    vouchers = list(vouchers)
    return [
        LedgerBalance(
            ledger_id=ledger.id,
            name=ledger.name,
            group_id=ledger.group_id,
            nature=natures.get(ledger.group_id),
            opening_balance=ledger.opening_balance,
            balance=ledger_balance(ledger, vouchers),
        )
        for ledger in ledgers
    ]


def balance_summary(balances: list[LedgerBalance]) -> BalanceSummary:
    """
    Assets are summed as debit balances, liabilities as credit balances.
    """
    total_assets = sum(
        (b.balance for b in balances if b.nature == GroupNature.ASSETS), ZERO
    )
    total_liabilities = sum(
        (-b.balance for b in balances if b.nature == GroupNature.LIABILITIES), ZERO
    )
    return BalanceSummary(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
        count=len(balances),
    )


def top_by_balance(balances: list[LedgerBalance], limit: int = 10) -> list[LedgerBalance]:
    """Largest balances by size, ignoring zero balances."""
    ranked = sorted(
        (b for b in balances if b.balance != 0),
        key=lambda b: (-abs(b.balance), b.ledger_id),
    )
    return ranked[:limit]


# =============================================================================
# CASH FLOW AND RATIOS
# =============================================================================

INVESTING_ROLES = (GroupRole.FIXED_ASSETS, GroupRole.INVESTMENTS)
FINANCING_ROLES = (GroupRole.LOANS, GroupRole.EQUITY)


def resolve_roles(groups: Iterable[Group]) -> dict[int, Optional[GroupRole]]:
    """Group id to role, taking the nearest role up the parent chain."""
    by_id = {g.id: g for g in groups}
    roles: dict[int, Optional[GroupRole]] = {}
    for group_id in by_id:
        seen = set()
        current = by_id.get(group_id)
        role = None
        while current is not None and current.id not in seen:
            if current.role is not None:
                role = current.role
                break
            seen.add(current.id)
            current = by_id.get(current.parent_id)
        roles[group_id] = role
    return roles


def cash_flow_statement(
    ledgers: Iterable[Ledger],
    groups: Iterable[Group],
    vouchers: Iterable[Voucher],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> CashFlowStatement:
    """
    Cash flow by activity, from ledgers in cash role groups.

    For a voucher that touches a cash ledger, every other entry adds
    its credit minus debit to the activity of its ledger's group.
    Because the voucher balances, the three activities sum to the
    change in cash. Transfers between cash ledgers add nothing.

    Raises:
        UnknownLedgerReferenceError: An entry names a ledger not in `ledgers`
    """
    ledgers = list(ledgers)
    vouchers = list(vouchers)
    roles = resolve_roles(groups)
    ledger_roles = {ledger.id: roles.get(ledger.group_id) for ledger in ledgers}
    cash_ids = [lid for lid, role in ledger_roles.items() if role == GroupRole.CASH]

    earlier = [v for v in vouchers if date_from is not None and v.date < date_from]
    opening = sum(
        (ledger_balance(ledger, earlier) for ledger in ledgers if ledger.id in cash_ids),
        ZERO,
    )

    activity = {"operating": ZERO, "investing": ZERO, "financing": ZERO}
    for voucher in vouchers_in_range(vouchers, date_from, date_to):
        for entry in voucher.entries:
            if entry.ledger_id not in ledger_roles:
                raise UnknownLedgerReferenceError(entry.ledger_id, voucher.id)
        if not any(lid in cash_ids for lid in voucher.ledger_ids()):
            continue
        for entry in voucher.entries:
            role = ledger_roles[entry.ledger_id]
            if role == GroupRole.CASH:
                continue
            if role in INVESTING_ROLES:
                bucket = "investing"
            elif role in FINANCING_ROLES:
                bucket = "financing"
            else:
                bucket = "operating"
            activity[bucket] -= entry.signed_amount

    net = activity["operating"] + activity["investing"] + activity["financing"]
    return CashFlowStatement(
        from_date=date_from,
        to_date=date_to,
        cash_ledger_ids=cash_ids,
        opening_cash=opening,
        operating=activity["operating"],
        investing=activity["investing"],
        financing=activity["financing"],
        net_cash_flow=net,
        closing_cash=opening + net,
    )


def _ratio(numerator: Decimal, denominator: Decimal) -> float:
    if denominator == 0:
        return 0.0
    return round(float(numerator / denominator), 4)


def financial_ratios(
    ledgers: Iterable[Ledger],
    groups: Iterable[Group],
    vouchers: Iterable[Voucher],
    as_of: Optional[date] = None,
) -> FinancialRatios:
    """
    Debt to equity, current and equity ratios from balances as of a date.

    Assets are the debit balances of asset groups. Liabilities are the
    credit balances of liability groups outside the equity role. Equity
    is the equity role groups plus the retained result of income and
    expenses, so assets equal liabilities plus equity in balanced books.
    """
    groups = list(groups)
    natures = _natures(groups)
    roles = resolve_roles(groups)
    rows = compute_trial_balance(ledgers, vouchers_in_range(vouchers, None, as_of), groups)

    total_assets = ZERO
    total_liabilities = ZERO
    total_equity = profit_and_loss_from_rows(rows, groups).net_profit
    for row in rows:
        nature = natures.get(row.group_id)
        if nature == GroupNature.ASSETS:
            total_assets += row.net
        elif nature == GroupNature.LIABILITIES:
            if roles.get(row.group_id) == GroupRole.EQUITY:
                total_equity -= row.net
            else:
                total_liabilities -= row.net

    return FinancialRatios(
        as_of=as_of,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        total_equity=total_equity,
        debt_to_equity_ratio=_ratio(total_liabilities, total_equity),
        current_ratio=_ratio(total_assets, total_liabilities),
        equity_ratio=_ratio(total_equity, total_assets),
    )
