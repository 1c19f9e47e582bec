"""
Statement Reconciliation Matcher

Scores every voucher against every statement line and proposes the best
candidate per line.

Scoring (weights are configurable):
- amount (0.4): how close the voucher amount is to the statement amount
- date (0.3): loses a third of its points per day apart
- description (0.3): share of words the narration and description have in common

CRITICAL: The matcher only proposes. It never marks anything as matched;
that takes an explicit confirmation through the bank statement store.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog

from ledgerbook.config import ReconciliationSettings, get_settings
from ledgerbook.models.banking import BankStatementLine, MatchProposal
from ledgerbook.models.voucher import Voucher

logger = structlog.get_logger("ledgerbook.reconciliation")


def voucher_amount_for(voucher: Voucher, ledger_id: Optional[int]) -> Decimal:
    """
    The amount a statement line is compared against.

    If the line belongs to a bank ledger the voucher posts to, this is the
    voucher's net movement on that ledger. Otherwise the debit total.
    """
    if ledger_id is not None and ledger_id in voucher.ledger_ids():
        return voucher.net_for_ledger(ledger_id)
    return voucher.total_debit


def amount_score(statement_amount: Decimal, voucher_amount: Decimal) -> float:
    stmt = abs(Decimal(statement_amount))
    other = abs(Decimal(voucher_amount))
    if stmt == 0:
        return 100.0 if other == 0 else 0.0
    score = 100 - float(abs(stmt - other) / stmt) * 100
    return max(0.0, score)


def date_score(days_apart: int, penalty_per_day: float = 33.33) -> float:
    return max(0.0, 100 - abs(days_apart) * penalty_per_day)


def tokenize(text: Optional[str], min_length: int = 3) -> list[str]:
    return [word for word in (text or "").lower().split() if len(word) >= min_length]


def description_score(
    statement_text: Optional[str],
    voucher_text: Optional[str],
    min_length: int = 3,
) -> float:
    """
    Percentage of statement words found in the narration (or vice versa).

    Words match when either contains the other. A blank text on either
    side scores zero. Two texts made only of short words are a perfect
    match.
    """
    if not (statement_text or "").strip() or not (voucher_text or "").strip():
        return 0.0

    stmt_words = tokenize(statement_text, min_length)
    voucher_words = tokenize(voucher_text, min_length)

    if not stmt_words and not voucher_words:
        return 100.0
    if not stmt_words or not voucher_words:
        return 0.0

    matches = sum(
        1 for word in stmt_words
        if any(word in other or other in word for other in voucher_words)
    )
    return matches / max(len(stmt_words), len(voucher_words)) * 100


def score_candidate(
    line: BankStatementLine,
    voucher: Voucher,
    settings: Optional[ReconciliationSettings] = None,
) -> MatchProposal:
    """Score one voucher against one statement line."""
    settings = settings or get_settings().reconciliation

    amount = amount_score(line.amount, voucher_amount_for(voucher, line.ledger_id))
    days = (line.date - voucher.date).days
    when = date_score(days, settings.date_penalty_per_day)
    words = description_score(line.description, voucher.narration, settings.min_token_length)

    total = (
        amount * settings.amount_weight
        + when * settings.date_weight
        + words * settings.description_weight
    )

    return MatchProposal(
        statement_id=line.id if line.id is not None else 0,
        voucher_id=voucher.id if voucher.id is not None else 0,
        accuracy=round(min(100.0, total), 2),
        amount_score=round(amount, 2),
        date_score=round(when, 2),
        description_score=round(words, 2),
    )


def best_match(
    line: BankStatementLine,
    vouchers: Iterable[Voucher],
    settings: Optional[ReconciliationSettings] = None,
) -> Optional[MatchProposal]:
    """
    Highest scoring voucher at or above the accuracy threshold.

    Ties go to the lowest voucher id.
    """
    settings = settings or get_settings().reconciliation
    best: Optional[MatchProposal] = None

    for voucher in vouchers:
        proposal = score_candidate(line, voucher, settings)
        if proposal.accuracy < settings.min_accuracy:
            continue
        if (
            best is None
            or proposal.accuracy > best.accuracy
            or (proposal.accuracy == best.accuracy and proposal.voucher_id < best.voucher_id)
        ):
            best = proposal

    return best


def propose_matches(
    statements: Iterable[BankStatementLine],
    vouchers: Iterable[Voucher],
    settings: Optional[ReconciliationSettings] = None,
) -> dict[int, MatchProposal]:
    """
    Best voucher per statement line.

    Lines without a candidate above the threshold are left out.
    Inputs are not modified.
    """
    settings = settings or get_settings().reconciliation
    candidates = list(vouchers)
    proposals: dict[int, MatchProposal] = {}

    for line in statements:
        proposal = best_match(line, candidates, settings)
        if proposal is not None:
            proposals[line.id] = proposal

    logger.debug(
        "matches_proposed",
        statements=len(proposals),
        vouchers=len(candidates),
    )
    return proposals
