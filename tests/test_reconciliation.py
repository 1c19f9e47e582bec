"""Tests for the statement matcher."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerbook.config import ReconciliationSettings
from ledgerbook.models import BankStatementLine, VoucherType
from ledgerbook.reconciliation import (
    amount_score,
    best_match,
    date_score,
    description_score,
    propose_matches,
    score_candidate,
    tokenize,
    voucher_amount_for,
)


def _line(line_id, day, amount, description="", ledger_id=None):
    return BankStatementLine(
        id=line_id,
        ledger_id=ledger_id,
        date=day,
        description=description,
        amount=Decimal(str(amount)),
    )


@pytest.fixture
def salary_vouchers(make_voucher):
    return [
        make_voucher(1, date(2024, 1, 15), [(1, 5000, "dr"), (9, 5000, "cr")],
                     VoucherType.RECEIPT, "Salary payment"),
        make_voucher(2, date(2024, 2, 1), [(5, 4500, "dr"), (1, 4500, "cr")],
                     VoucherType.PAYMENT, "Rent"),
    ]


class TestScores:
    """Tests for the individual score components."""

    def test_amount_score(self):
        assert amount_score(Decimal("5000"), Decimal("5000")) == 100.0
        assert amount_score(Decimal("5000"), Decimal("4500")) == pytest.approx(90.0)
        assert amount_score(Decimal("-500"), Decimal("500")) == 100.0
        assert amount_score(Decimal("100"), Decimal("1000")) == 0.0

    def test_amount_score_zero_statement(self):
        assert amount_score(Decimal("0"), Decimal("0")) == 100.0
        assert amount_score(Decimal("0"), Decimal("10")) == 0.0

    def test_date_score(self):
        assert date_score(0) == 100.0
        assert date_score(1) == pytest.approx(66.67)
        assert date_score(-2) == pytest.approx(33.34)
        assert date_score(17) == 0.0

    def test_tokenize_drops_short_words(self):
        assert tokenize("NEFT to HDFC ac 42") == ["neft", "hdfc"]
        assert tokenize(None) == []

    def test_description_score(self):
        assert description_score("Salary Credit", "Salary payment") == 50.0
        assert description_score("ATM withdrawal", "atm withdrawal") == 100.0
        assert description_score("Rent", "") == 0.0

    def test_blank_text_scores_zero(self):
        assert description_score("", "") == 0.0
        assert description_score("  ", None) == 0.0
        assert description_score("ab", "to") == 100.0

    def test_description_words_match_by_containment(self):
        assert description_score("UPI-SWIGGY", "swiggy") == 100.0


class TestProposals:
    """Tests for proposing the best voucher per statement line."""

    def test_salary_line_proposes_salary_voucher(self, salary_vouchers):
        line = _line(1, date(2024, 1, 15), 5000, "Salary Credit")

        proposals = propose_matches([line], salary_vouchers)

        assert list(proposals) == [1]
        proposal = proposals[1]
        assert proposal.voucher_id == 1
        assert 85 <= proposal.accuracy <= 100

    def test_rent_voucher_scores_below_threshold(self, salary_vouchers):
        line = _line(1, date(2024, 1, 15), 5000, "Salary Credit")
        proposal = score_candidate(line, salary_vouchers[1])
        assert proposal.accuracy == pytest.approx(36.0)
        assert best_match(line, [salary_vouchers[1]]) is None

    def test_no_candidate_leaves_line_out(self, salary_vouchers):
        line = _line(7, date(2023, 6, 1), 12, "Coffee")
        assert propose_matches([line], salary_vouchers) == {}

    def test_is_deterministic(self, salary_vouchers):
        lines = [
            _line(1, date(2024, 1, 15), 5000, "Salary Credit"),
            _line(2, date(2024, 2, 1), -4500, "Rent February"),
        ]
        assert propose_matches(lines, salary_vouchers) == propose_matches(lines, salary_vouchers)

    def test_inputs_not_modified(self, salary_vouchers):
        lines = [_line(1, date(2024, 1, 15), 5000, "Salary Credit")]
        before = [line.model_copy() for line in lines]
        propose_matches(lines, salary_vouchers)
        assert lines == before

    def test_tie_goes_to_lowest_voucher_id(self, make_voucher):
        twins = [
            make_voucher(8, date(2024, 3, 1), [(1, 100, "dr"), (2, 100, "cr")], narration="Transfer"),
            make_voucher(3, date(2024, 3, 1), [(1, 100, "dr"), (2, 100, "cr")], narration="Transfer"),
        ]
        line = _line(1, date(2024, 3, 1), 100, "Transfer")
        assert propose_matches([line], twins)[1].voucher_id == 3

    def test_bank_ledger_uses_net_movement(self, make_voucher):
        voucher = make_voucher(
            1, date(2024, 3, 1),
            [(5, 1000, "dr"), (2, 900, "cr"), (6, 100, "cr")],
            VoucherType.PAYMENT, "Supplier payment",
        )
        assert voucher_amount_for(voucher, 2) == Decimal("-900")
        assert voucher_amount_for(voucher, 7) == Decimal("1000")

        line = _line(1, date(2024, 3, 1), -900, "Supplier payment", ledger_id=2)
        assert score_candidate(line, voucher).amount_score == 100.0

    def test_blank_line_not_matched_to_blank_narration(self, make_voucher):
        voucher = make_voucher(1, date(2024, 3, 1), [(1, 100, "dr"), (2, 100, "cr")])
        line = _line(1, date(2024, 1, 1), 100)

        proposal = score_candidate(line, voucher)

        assert proposal.description_score == 0.0
        assert proposal.accuracy == 50.0

    def test_custom_threshold(self, salary_vouchers):
        settings = ReconciliationSettings(min_accuracy=90)
        line = _line(1, date(2024, 1, 15), 5000, "Salary Credit")
        assert propose_matches([line], salary_vouchers, settings) == {}

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ReconciliationSettings(amount_weight=0.5, date_weight=0.5, description_weight=0.5)
