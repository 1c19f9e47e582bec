"""
Tests for Ledgerbook models

Test strategy:
1. Unit tests for individual components (models, validators, reports)
2. Store tests run against the in-memory repositories
3. No network or filesystem access (statement files are built in memory)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from ledgerbook.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditOperation,
    AuditSeverity,
    Currency,
    CustomFieldDefinition,
    CustomFieldEntity,
    Entry,
    EntrySide,
    Group,
    GroupNature,
    Ledger,
    LedgerStatementRow,
    MatchProposal,
    TrialBalanceRow,
    ValidationIssue,
    ValidationResult,
    Voucher,
    VoucherStatus,
    VoucherType,
)


class TestAccountModels:
    """Tests for groups, ledgers and currencies."""

    def test_group_strips_whitespace(self):
        """Test that whitespace is stripped from group names."""
        group = Group(name="  Sundry Debtors  ", nature=GroupNature.ASSETS)
        assert group.name == "Sundry Debtors"

    def test_group_requires_explicit_nature(self):
        """A group cannot be created without a nature."""
        with pytest.raises(PydanticValidationError):
            Group(name="Sales Accounts")

    def test_debit_natured_groups(self):
        assert GroupNature.ASSETS.is_debit_natured
        assert GroupNature.EXPENSES.is_debit_natured
        assert not GroupNature.LIABILITIES.is_debit_natured
        assert not GroupNature.INCOME.is_debit_natured

    def test_currency_code_upper_cased(self):
        currency = Currency(code="usd", name="US Dollar", exchange_rate=Decimal("83.12"))
        assert currency.code == "USD"

    def test_currency_rejects_zero_rate(self):
        with pytest.raises(PydanticValidationError):
            Currency(code="EUR", name="Euro", exchange_rate=Decimal("0"))

    def test_ledger_has_no_current_balance_field(self):
        """Balances are derived from vouchers, never stored on the ledger."""
        ledger = Ledger(name="Cash", group_id=1, opening_balance=Decimal("250.50"))
        assert "current_balance" not in Ledger.model_fields
        assert ledger.opening_balance == Decimal("250.50")

    def test_custom_field_applies_to(self):
        field = CustomFieldDefinition(name="pan", label="PAN", entity_type=CustomFieldEntity.LEDGER)
        everywhere = CustomFieldDefinition(name="notes", label="Notes")
        assert field.applies_to("ledger")
        assert not field.applies_to("voucher")
        assert everywhere.applies_to("voucher")

    def test_custom_field_name_must_be_identifier(self):
        with pytest.raises(PydanticValidationError):
            CustomFieldDefinition(name="gst number", label="GST Number")


class TestVoucherModels:
    """Tests for vouchers and entries."""

    def test_entry_accepts_dr_cr(self):
        """Test that paper-style dr/cr sides are accepted."""
        assert Entry(ledger_id=1, amount=Decimal("10"), side="dr").side == EntrySide.DEBIT
        assert Entry(ledger_id=1, amount=Decimal("10"), side="CR").side == EntrySide.CREDIT

    def test_entry_signed_amount(self):
        assert Entry(ledger_id=1, amount=Decimal("10"), side="debit").signed_amount == Decimal("10")
        assert Entry(ledger_id=1, amount=Decimal("10"), side="credit").signed_amount == Decimal("-10")

    def test_voucher_totals(self, make_voucher):
        voucher = make_voucher(1, date(2024, 1, 1), [(1, 100, "dr"), (2, 60, "cr"), (3, 40, "cr")])
        assert voucher.total_debit == Decimal("100")
        assert voucher.total_credit == Decimal("100")
        assert voucher.is_balanced()
        assert voucher.ledger_ids() == {1, 2, 3}

    def test_voucher_balance_tolerance(self, make_voucher):
        voucher = make_voucher(1, date(2024, 1, 1), [(1, "100.01", "dr"), (2, 100, "cr")])
        assert voucher.is_balanced()
        assert not voucher.is_balanced(Decimal("0"))

    def test_net_for_ledger(self, make_voucher):
        voucher = make_voucher(1, date(2024, 1, 1), [(1, 100, "dr"), (2, 30, "cr"), (2, 70, "cr")])
        assert voucher.net_for_ledger(2) == Decimal("-100")
        assert voucher.net_for_ledger(9) == Decimal("0")

    def test_voucher_defaults(self):
        voucher = Voucher(type=VoucherType.JOURNAL, date=date(2024, 1, 1))
        assert voucher.status == VoucherStatus.POSTED
        assert voucher.number == ""
        assert voucher.entries == []

    def test_validation_result_properties(self):
        result = ValidationResult(
            structure_valid=True,
            is_balanced=True,
            issues=[
                ValidationIssue(field="date", issue_type="future_date",
                                message="In the future", severity="warning"),
            ],
        )
        assert result.is_valid
        assert not result.has_errors
        assert result.error_count == 0


class TestReportModels:
    """Tests for derived report rows."""

    def test_trial_balance_row_is_immutable(self):
        row = TrialBalanceRow(ledger_id=1, name="Cash", group_id=1, debit=Decimal("5"))
        assert row.net == Decimal("5")
        with pytest.raises(PydanticValidationError):
            row.debit = Decimal("10")

    def test_statement_row_display_fields(self):
        row = LedgerStatementRow(date=None, particulars="Opening Balance", balance=Decimal("-250"))
        assert row.balance_amount == Decimal("250")
        assert row.balance_side == "Cr"

        row = LedgerStatementRow(date=date(2024, 1, 1), particulars="x", balance=Decimal("0"))
        assert row.balance_side == "Dr"

    def test_match_proposal_accuracy_bounds(self):
        with pytest.raises(PydanticValidationError):
            MatchProposal(statement_id=1, voucher_id=1, accuracy=101)


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        correlation_id = uuid4()
        event = AuditEvent(
            entity_type="voucher",
            entity_id=7,
            operation=AuditOperation.CREATE,
            correlation_id=correlation_id,
            description="voucher 7 create",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.correlation_id == correlation_id
        assert event.id is None

    def test_audit_event_is_frozen(self):
        event = AuditEvent(entity_type="ledger", operation=AuditOperation.DELETE)
        with pytest.raises(PydanticValidationError):
            event.description = "changed"

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.operation(
            "ledger", 3, AuditOperation.UPDATE, changes={"name": "Cash"}, user_id="user1"
        )
        log_dict = event.to_log_dict()
        assert log_dict["operation"] == "update"
        assert log_dict["entity_id"] == 3
        assert log_dict["changes"] == {"name": "Cash"}
        assert log_dict["user_id"] == "user1"

    def test_audit_event_builder_system_error(self):
        """Test AuditEventBuilder for errors."""
        event = AuditEventBuilder.system_error(
            error_kind="import_parse_error",
            error_message="Row 3: Unrecognised date",
            details={"row_number": 3},
        )
        assert event.operation == AuditOperation.ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "Row 3: Unrecognised date"

    def test_audit_event_builder_matches(self):
        proposed = AuditEventBuilder.match_proposed(4, 9, 85.0)
        confirmed = AuditEventBuilder.match_confirmed(4, 9, user_id="user1")
        assert proposed.operation == AuditOperation.MATCH_PROPOSED
        assert proposed.changes == {"voucher_id": 9, "accuracy": 85.0}
        assert confirmed.changes == {"matched_voucher_id": 9}
