"""
Bank Statement Store

Holds imported statement lines and their reconciliation state.

Lifecycle of a line:
    unmatched --find_matches--> potential --confirm_match--> matched
                                    |
                                    +------reject_match----> unmatched

CRITICAL: find_matches only proposes. A line is only ever marked as
matched by confirm_match.
"""

from datetime import date
from typing import Optional, TYPE_CHECKING, Union
from uuid import UUID

from ledgerbook.config import ReconciliationSettings
from ledgerbook.errors import ValidationError
from ledgerbook.importers import StatementParser
from ledgerbook.models.banking import BankStatementLine, MatchProposal, MatchStatus
from ledgerbook.reconciliation import propose_matches
from ledgerbook.services.storage import BankStatementStorageInterface, InMemoryRepository

if TYPE_CHECKING:
    from ledgerbook.audit import AuditLogger
    from ledgerbook.services.vouchers import VoucherStore


class BankStatementStore(InMemoryRepository[BankStatementLine], BankStatementStorageInterface):
    """Repository of bank statement lines."""

    model = BankStatementLine
    entity_type = "bank_statement"
    entity_label = "Bank statement"

    def __init__(
        self,
        items: Optional[list] = None,
        audit_logger: Optional["AuditLogger"] = None,
        latency_ms: Optional[int] = None,
        vouchers: Optional["VoucherStore"] = None,
        parser: Optional[StatementParser] = None,
        match_settings: Optional[ReconciliationSettings] = None,
    ):
        super().__init__(items, audit_logger, latency_ms)
        self._vouchers = vouchers
        self._parser = parser or StatementParser()
        self._match_settings = match_settings

    def _changes(self, item: BankStatementLine) -> dict:
        return {
            "date": item.date.isoformat(),
            "amount": str(item.amount),
            "match_status": item.match_status.value,
        }

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def parse_file(self, filename: str, content: Union[bytes, str]) -> list[BankStatementLine]:
        """
        Parse a CSV or XLSX statement without storing it.

        Raises:
            ImportParseError: Unsupported file type or unreadable row
        """
        return self._parser.parse(filename, content)

    async def import_statements(
        self,
        lines: list[BankStatementLine],
        ledger_id: Optional[int],
        correlation_id: Optional[UUID] = None,
    ) -> list[BankStatementLine]:
        """
        Store parsed lines for a bank ledger.

        Every line starts unmatched and is stamped with today's date.
        The import is audited as one event.
        """
        await self._delay()
        today = date.today()
        stored = []

        async with self._lock:
            for line in lines:
                line = self._coerce(line)
                new_id = self._next_id
                item = line.model_copy(
                    update={
                        "id": new_id,
                        "ledger_id": ledger_id,
                        "match_status": MatchStatus.UNMATCHED,
                        "matched_voucher_id": None,
                        "proposed_voucher_id": None,
                        "match_accuracy": None,
                        "import_date": today,
                    },
                    deep=True,
                )
                self._items[new_id] = item
                self._next_id += 1
                stored.append(item)
            self._version += 1

        if self._audit_logger is not None:
            await self._audit_logger.log_statements_imported(ledger_id, len(stored), correlation_id)
        return [self._snapshot(item) for item in stored]

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def find_matches(
        self,
        lines: Optional[list[BankStatementLine]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> dict[int, MatchProposal]:
        """
        Propose the best voucher for each line and mark it potential.

        Args:
            lines: Stored lines to match (by id). Defaults to every line.

        Already matched lines are skipped, and vouchers already matched
        to another line are not offered again.
        """
        await self._delay()
        if self._vouchers is None:
            return {}

        if lines is None:
            candidates = self._values()
        else:
            candidates = [self._require(line.id) for line in lines]
        candidates = [c for c in candidates if c.match_status != MatchStatus.MATCHED]

        claimed = {
            item.matched_voucher_id for item in self._items.values()
            if item.match_status == MatchStatus.MATCHED
        }
        vouchers = [v for v in await self._vouchers.get_all() if v.id not in claimed]

        proposals = propose_matches(candidates, vouchers, self._match_settings)

        async with self._lock:
            for statement_id, proposal in proposals.items():
                current = self._items.get(statement_id)
                if current is None or current.match_status == MatchStatus.MATCHED:
                    continue
                self._items[statement_id] = current.model_copy(update={
                    "match_status": MatchStatus.POTENTIAL,
                    "proposed_voucher_id": proposal.voucher_id,
                    "match_accuracy": proposal.accuracy,
                })
            if proposals:
                self._version += 1

        if self._audit_logger is not None:
            for proposal in proposals.values():
                await self._audit_logger.log_match_proposed(
                    proposal.statement_id,
                    proposal.voucher_id,
                    proposal.accuracy,
                    correlation_id,
                )
        return proposals

    async def confirm_match(self, statement_id: int, voucher_id: int) -> BankStatementLine:
        """
        Mark a line as matched to a voucher.

        Raises:
            NotFoundError: Unknown statement line or voucher
            ValidationError: The voucher is already matched to another line
        """
        await self._delay()
        if self._vouchers is not None:
            await self._vouchers.get_by_id(voucher_id)

        async with self._lock:
            existing = self._require(statement_id)
            for other in self._items.values():
                if (
                    other.id != statement_id
                    and other.match_status == MatchStatus.MATCHED
                    and other.matched_voucher_id == voucher_id
                ):
                    raise ValidationError(
                        f"Voucher {voucher_id} is already matched to statement line {other.id}",
                        user_message="This voucher is already matched to another statement line",
                    )
            stored = existing.model_copy(update={
                "match_status": MatchStatus.MATCHED,
                "matched_voucher_id": voucher_id,
                "proposed_voucher_id": None,
            })
            self._items[statement_id] = stored
            self._version += 1

        if self._audit_logger is not None:
            await self._audit_logger.log_match_confirmed(statement_id, voucher_id)
        return self._snapshot(stored)

    async def reject_match(self, statement_id: int) -> BankStatementLine:
        """Send a line back to unmatched, dropping any proposal or match."""
        await self._delay()
        async with self._lock:
            existing = self._require(statement_id)
            previous = existing.matched_voucher_id or existing.proposed_voucher_id
            stored = existing.model_copy(update={
                "match_status": MatchStatus.UNMATCHED,
                "matched_voucher_id": None,
                "proposed_voucher_id": None,
                "match_accuracy": None,
            })
            self._items[statement_id] = stored
            self._version += 1

        if self._audit_logger is not None:
            await self._audit_logger.log_match_rejected(statement_id, previous)
        return self._snapshot(stored)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_by_status(self, status: MatchStatus) -> list[BankStatementLine]:
        await self._delay()
        return [self._snapshot(s) for s in self._values() if s.match_status == status]

    async def get_by_ledger(self, ledger_id: int) -> list[BankStatementLine]:
        await self._delay()
        return [self._snapshot(s) for s in self._values() if s.ledger_id == ledger_id]
