"""
Balance Aggregator

Folds the voucher log onto the chart of accounts.

CRITICAL: These functions are pure. They never modify their inputs and
calling them twice on the same inputs gives the same rows. Every report
is derived from them, so a ledger's balance is always its opening
balance plus the signed sum of its entries.
"""

from decimal import Decimal
from typing import Iterable, Optional

from ledgerbook.errors import UnknownLedgerReferenceError
from ledgerbook.models.accounts import Group, Ledger
from ledgerbook.models.reports import TrialBalanceRow
from ledgerbook.models.voucher import EntrySide, Voucher

ZERO = Decimal("0")


def compute_trial_balance(
    ledgers: Iterable[Ledger],
    vouchers: Iterable[Voucher],
    groups: Optional[Iterable[Group]] = None,
) -> list[TrialBalanceRow]:
    """
    Per-ledger debit and credit totals.

    Each ledger starts from its opening balance (positive on the debit
    side, negative on the credit side), then every entry is added to the
    column of its side. Ledgers with nothing on either side are dropped.

    Args:
        ledgers: Chart of accounts; output follows this order
        vouchers: Vouchers to fold, already filtered to the wanted period
        groups: Optional, only used to fill in group names

    Raises:
        UnknownLedgerReferenceError: An entry names a ledger not in `ledgers`
    """
    ledger_list = list(ledgers)
    group_names = {g.id: g.name for g in groups or []}

    debits: dict[int, Decimal] = {}
    credits: dict[int, Decimal] = {}
    for ledger in ledger_list:
        opening = ledger.opening_balance
        debits[ledger.id] = opening if opening > 0 else ZERO
        credits[ledger.id] = -opening if opening < 0 else ZERO

    for voucher in vouchers:
        for entry in voucher.entries:
            if entry.ledger_id not in debits:
                raise UnknownLedgerReferenceError(entry.ledger_id, voucher.id)
            if entry.side == EntrySide.DEBIT:
                debits[entry.ledger_id] += entry.amount
            else:
                credits[entry.ledger_id] += entry.amount

    rows = []
    for ledger in ledger_list:
        debit = debits[ledger.id]
        credit = credits[ledger.id]
        if debit == 0 and credit == 0:
            continue
        rows.append(TrialBalanceRow(
            ledger_id=ledger.id,
            name=ledger.name,
            group_id=ledger.group_id,
            group_name=group_names.get(ledger.group_id),
            debit=debit,
            credit=credit,
        ))
    return rows


def trial_balance_totals(rows: Iterable[TrialBalanceRow]) -> tuple[Decimal, Decimal]:
    """(total debit, total credit) over trial balance rows."""
    total_debit = ZERO
    total_credit = ZERO
    for row in rows:
        total_debit += row.debit
        total_credit += row.credit
    return total_debit, total_credit


def ledger_balance(ledger: Ledger, vouchers: Iterable[Voucher]) -> Decimal:
    """Signed balance (debit positive): opening plus every entry on the ledger."""
    balance = ledger.opening_balance
    for voucher in vouchers:
        balance += voucher.net_for_ledger(ledger.id)
    return balance
