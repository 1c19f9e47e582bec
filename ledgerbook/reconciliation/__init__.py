"""Bank reconciliation package."""

from ledgerbook.reconciliation.matcher import (
    amount_score,
    best_match,
    date_score,
    description_score,
    propose_matches,
    score_candidate,
    tokenize,
    voucher_amount_for,
)

__all__ = [
    "amount_score",
    "best_match",
    "date_score",
    "description_score",
    "propose_matches",
    "score_candidate",
    "tokenize",
    "voucher_amount_for",
]
