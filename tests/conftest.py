"""
Shared fixtures.

The sample books:

    Groups                       Ledgers (opening balance)
    1 Current Assets  (Assets)   1 Cash            1000 Dr
    2 Capital Account (Liab.)    2 HDFC Bank       4000 Dr
    3 Sales Accounts  (Income)   3 Owner Capital   5000 Cr
    4 Indirect Exp.   (Expenses) 4 Sales
    5 Bank Accounts   (Assets, under 1)
                                 5 Rent

    Vouchers
    1 sales    2024-01-10  Dr Cash 2000  / Cr Sales 2000
    2 payment  2024-01-20  Dr Rent 500   / Cr HDFC Bank 500
    3 receipt  2024-02-05  Dr HDFC Bank 1500 / Cr Cash 1500
"""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from ledgerbook.models import (
    Entry,
    Group,
    GroupNature,
    Ledger,
    Voucher,
    VoucherType,
)
from ledgerbook.orchestrator import create_app_components


def _entry(ledger_id, amount, side):
    return Entry(ledger_id=ledger_id, amount=Decimal(str(amount)), side=side)


@pytest.fixture
def make_voucher():
    """Factory: make_voucher(id, date, [(ledger_id, amount, 'dr'|'cr'), ...])."""

    def factory(voucher_id, day, lines, voucher_type=VoucherType.JOURNAL, narration="", number=""):
        return Voucher(
            id=voucher_id,
            type=voucher_type,
            number=number,
            date=day,
            narration=narration,
            entries=[_entry(ledger_id, amount, side) for ledger_id, amount, side in lines],
        )

    return factory


@pytest.fixture
def groups():
    return [
        Group(id=1, name="Current Assets", nature=GroupNature.ASSETS),
        Group(id=2, name="Capital Account", nature=GroupNature.LIABILITIES),
        Group(id=3, name="Sales Accounts", nature=GroupNature.INCOME),
        Group(id=4, name="Indirect Expenses", nature=GroupNature.EXPENSES),
        Group(id=5, name="Bank Accounts", nature=GroupNature.ASSETS, parent_id=1),
    ]


@pytest.fixture
def ledgers():
    return [
        Ledger(id=1, name="Cash", group_id=1, opening_balance=Decimal("1000")),
        Ledger(id=2, name="HDFC Bank", group_id=5, opening_balance=Decimal("4000")),
        Ledger(id=3, name="Owner Capital", group_id=2, opening_balance=Decimal("-5000")),
        Ledger(id=4, name="Sales", group_id=3),
        Ledger(id=5, name="Rent", group_id=4),
    ]


@pytest.fixture
def vouchers(make_voucher):
    return [
        make_voucher(1, date(2024, 1, 10), [(1, 2000, "dr"), (4, 2000, "cr")],
                     VoucherType.SALES, "Cash sales", "1"),
        make_voucher(2, date(2024, 1, 20), [(5, 500, "dr"), (2, 500, "cr")],
                     VoucherType.PAYMENT, "Office rent January", "1"),
        make_voucher(3, date(2024, 2, 5), [(2, 1500, "dr"), (1, 1500, "cr")],
                     VoucherType.RECEIPT, "Cash deposited", "1"),
    ]


@pytest.fixture
def app(groups, ledgers, vouchers):
    """All components wired together over the sample books."""
    return create_app_components(
        latency_ms=0,
        seed={"groups": groups, "ledgers": ledgers, "vouchers": vouchers},
    )


@pytest_asyncio.fixture
async def empty_app():
    """Components with nothing in them."""
    return create_app_components(latency_ms=0)
