"""SQL script parsing."""

from pgvault.script.tokenizer import (
    SCHEMA_DIRECTIVE,
    ScanState,
    Statement,
    parse_script,
    schema_directive,
    split_statements,
)

__all__ = [
    "SCHEMA_DIRECTIVE",
    "ScanState",
    "Statement",
    "parse_script",
    "schema_directive",
    "split_statements",
]
