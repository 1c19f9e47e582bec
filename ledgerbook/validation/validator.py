"""
Two-Stage Voucher Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - STRUCTURAL VALIDATION:
- Every entry names a ledger
- Every amount is greater than zero
- At least two entries
- Total debit equals total credit (within tolerance)

STAGE 2 - SEMANTIC VALIDATION:
- Referenced ledgers exist (needs the ledger store)
- Future date detection
- Duplicate voucher numbers within a type
- Same ledger on both sides of one voucher

Stage 1 problems and missing ledgers are errors: the voucher store refuses
the voucher. Everything else is a warning for the user to review.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them, and `ensure_valid` turns errors into exceptions.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from ledgerbook.config import get_settings
from ledgerbook.errors import (
    InvalidEntryError,
    UnknownLedgerReferenceError,
    VoucherImbalanceError,
)
from ledgerbook.models.voucher import (
    EntrySide,
    ValidationIssue,
    ValidationResult,
    Voucher,
)

if TYPE_CHECKING:
    from ledgerbook.services.storage import LedgerStorageInterface


class VoucherValidator:
    """
    Validates vouchers through a two-stage pipeline.

    Stage 1: Structural validation (runs without storage)
    Stage 2: Semantic validation (uses the ledger store when given one)
    """

    def __init__(
        self,
        ledger_storage: Optional["LedgerStorageInterface"] = None,
        tolerance: Optional[Decimal] = None,
    ):
        """
        Initialize validator.

        Args:
            ledger_storage: Used to check that referenced ledgers exist.
                           If None, the check is skipped.
            tolerance: Largest debit/credit difference treated as balanced.
        """
        self._ledgers = ledger_storage
        self._settings = get_settings().app
        self._tolerance = (
            tolerance if tolerance is not None else self._settings.balance_tolerance
        )

    def _validate_structure(
        self,
        voucher: Voucher,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Structural validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        for index, entry in enumerate(voucher.entries, start=1):
            if entry.ledger_id is None:
                issues.append(ValidationIssue(
                    field=f"entries[{index}].ledger_id",
                    issue_type="invalid_entry",
                    message=f"Entry {index} has no ledger",
                    severity="error",
                    suggested_fix="Select a ledger for every entry",
                ))
            if entry.amount <= 0:
                issues.append(ValidationIssue(
                    field=f"entries[{index}].amount",
                    issue_type="invalid_entry",
                    message=f"Entry {index} amount must be greater than zero",
                    severity="error",
                    suggested_fix="Enter a positive amount and pick Dr or Cr",
                ))

        if len(voucher.entries) < 2:
            issues.append(ValidationIssue(
                field="entries",
                issue_type="invalid_entry",
                message="A voucher needs at least two entries",
                severity="error",
                suggested_fix="Add a matching debit or credit entry",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _check_balance(self, voucher: Voucher) -> tuple[bool, list[ValidationIssue]]:
        if voucher.is_balanced(self._tolerance):
            return True, []
        return False, [ValidationIssue(
            field="entries",
            issue_type="imbalance",
            message=(
                f"Debit ({voucher.total_debit}) and Credit ({voucher.total_credit}) "
                f"totals must match"
            ),
            severity="error",
            suggested_fix=f"Adjust entries by {abs(voucher.difference)}",
        )]

    async def _check_ledgers(self, voucher: Voucher) -> list[ValidationIssue]:
        """Every referenced ledger must exist. Requires storage."""
        issues = []

        if self._ledgers is None:
            return issues

        for ledger_id in sorted(voucher.ledger_ids()):
            if not await self._ledgers.exists(ledger_id):
                issues.append(ValidationIssue(
                    field="entries",
                    issue_type="unknown_ledger",
                    message=f"Ledger {ledger_id} does not exist",
                    severity="error",
                    suggested_fix="Pick an existing ledger",
                ))

        return issues

    def _validate_semantic(
        self,
        voucher: Voucher,
        existing_vouchers: Optional[list[Voucher]] = None,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic warnings.

        Checks:
        - Future dates
        - Duplicate number within the voucher type
        - Same ledger debited and credited
        """
        issues = []
        today = date.today()

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if voucher.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Voucher date ({voucher.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if voucher.number and existing_vouchers:
            for other in existing_vouchers:
                if (
                    other.id != voucher.id
                    and other.type == voucher.type
                    and other.number == voucher.number
                ):
                    issues.append(ValidationIssue(
                        field="number",
                        issue_type="potential_duplicate",
                        message=(
                            f"{voucher.type.value.title()} voucher number "
                            f"{voucher.number} is already used"
                        ),
                        severity="warning",
                        suggested_fix="Leave the number blank to assign the next one",
                    ))
                    break

        debited = {e.ledger_id for e in voucher.entries if e.side == EntrySide.DEBIT}
        credited = {e.ledger_id for e in voucher.entries if e.side == EntrySide.CREDIT}
        for ledger_id in sorted(i for i in debited & credited if i is not None):
            issues.append(ValidationIssue(
                field="entries",
                issue_type="same_ledger_both_sides",
                message=f"Ledger {ledger_id} is both debited and credited",
                severity="warning",
                suggested_fix="Please verify the entries",
            ))

        return issues

    async def validate(
        self,
        voucher: Voucher,
        existing_vouchers: Optional[list[Voucher]] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            voucher: The voucher to validate
            existing_vouchers: Stored vouchers, for duplicate number checks

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        structure_valid, structure_issues = self._validate_structure(voucher)
        all_issues.extend(structure_issues)

        is_balanced, balance_issues = self._check_balance(voucher)
        all_issues.extend(balance_issues)

        # Only run stage 2 if the entries themselves are well formed
        if structure_valid:
            all_issues.extend(await self._check_ledgers(voucher))
            all_issues.extend(self._validate_semantic(voucher, existing_vouchers))

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            voucher_number=voucher.number,
            structure_valid=structure_valid,
            is_balanced=is_balanced,
            total_debit=voucher.total_debit,
            total_credit=voucher.total_credit,
            issues=all_issues,
            warnings=warnings,
        )

    async def ensure_valid(
        self,
        voucher: Voucher,
        existing_vouchers: Optional[list[Voucher]] = None,
    ) -> ValidationResult:
        """
        Validate and raise on the first error kind found.

        Raises:
            InvalidEntryError: Missing ledger, non-positive amount, too few entries
            VoucherImbalanceError: Debit and credit totals differ
            UnknownLedgerReferenceError: An entry names a missing ledger
        """
        result = await self.validate(voucher, existing_vouchers)
        errors = [issue for issue in result.issues if issue.severity == "error"]

        entry_errors = [i.message for i in errors if i.issue_type == "invalid_entry"]
        if entry_errors:
            raise InvalidEntryError(
                "; ".join(entry_errors),
                user_message=(
                    "A voucher needs at least two entries"
                    if any("at least two" in m for m in entry_errors)
                    else None
                ),
                issues=entry_errors,
            )

        if not result.is_balanced:
            raise VoucherImbalanceError(
                f"Voucher is out of balance by {voucher.difference}",
                difference=voucher.difference,
            )

        for ledger_id in sorted(voucher.ledger_ids()):
            if self._ledgers is not None and not await self._ledgers.exists(ledger_id):
                raise UnknownLedgerReferenceError(ledger_id, voucher.id)

        return result

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show next to the voucher form.
        """
        if result.is_valid and not result.warnings:
            return "✅ Voucher is balanced and ready to post."

        lines = []

        if result.has_errors:
            lines.append("❌ This voucher cannot be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.is_valid:
            lines.append("")
            lines.append("You can still post it, but please review carefully.")
        else:
            lines.append("")
            lines.append("Please fix the issues above before posting.")

        return "\n".join(lines)
