"""Statement import package."""

from ledgerbook.importers.statement_parser import (
    HEADER_ALIASES,
    StatementParser,
    map_headers,
    normalize_header,
    parse_amount,
    parse_date,
    parse_statement_file,
)

__all__ = [
    "HEADER_ALIASES",
    "StatementParser",
    "map_headers",
    "normalize_header",
    "parse_amount",
    "parse_date",
    "parse_statement_file",
]
