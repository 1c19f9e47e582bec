"""Voucher validation package."""

from ledgerbook.validation.validator import VoucherValidator

__all__ = ["VoucherValidator"]
