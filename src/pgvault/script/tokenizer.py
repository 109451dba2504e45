"""SQL script tokenizer.

Splits a multi-statement SQL script into executable statements in a single
forward pass.  The scanner is an explicit finite-state machine:

    NORMAL            -> statement text; ``;`` ends a statement
    IN_SINGLE_QUOTE   -> '...'   (``''`` is a literal quote; E'...' honors ``\\``)
    IN_DOUBLE_QUOTE   -> "..."   (``""`` is a literal quote)
    IN_LINE_COMMENT   -> -- ...  up to (not including) the newline
    IN_BLOCK_COMMENT  -> /* ... */, nested as in PostgreSQL
    IN_DOLLAR_QUOTE   -> $tag$ ... $tag$

Lines whose trimmed content starts with ``--`` while the scanner is in
``NORMAL`` are dropped entirely, newline included.  Comment text is never
part of an emitted statement.

Dollar quoting:
    Dollar-quoted bodies are recognized by default, so function definitions
    (``pg_get_functiondef`` output) survive as one statement.  Scripts
    written for the older splitter, which cut at every unquoted ``;``, can be
    parsed with ``dollar_quotes=False`` to reproduce that behavior exactly.

SQL-standard routine bodies:
    ``pg_get_functiondef`` writes ``LANGUAGE sql`` routines declared with
    ``BEGIN ATOMIC ... END`` without dollar quotes, and their bodies hold
    unquoted ``;``.  Once a statement opens with ``CREATE [OR REPLACE]
    FUNCTION`` or ``PROCEDURE``, each ``BEGIN ATOMIC`` raises a depth counter
    and each ``END`` not closing a ``CASE`` lowers it; ``;`` ends the
    statement only at depth 0.  ``dollar_quotes=False`` turns this off too.

Schema tags:
    A comment-only line of the form ``-- pgvault:schema=<name>`` sets the
    owning schema reported by ``parse_script`` for the statements that
    follow it.  ``-- pgvault:schema=`` (empty) clears the tag.

Usage:
    from pgvault.script import parse_script, split_statements

    split_statements("SELECT 'a;b'; SELECT 2;")
    # ["SELECT 'a;b';", "SELECT 2;"]
"""

import re
import string
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

SCHEMA_DIRECTIVE = "-- pgvault:schema="

_DIRECTIVE_RE = re.compile(r"^--\s*pgvault:schema=(.*)$")
_DOLLAR_TAG_RE = re.compile(r"\$(?:[A-Za-z_\x80-\uffff][A-Za-z0-9_\x80-\uffff]*)?\$")
_WORD_RE = re.compile(r"[A-Za-z_\x80-\uffff][A-Za-z0-9_$\x80-\uffff]*")
_BEGIN_ATOMIC_RE = re.compile(r"BEGIN\s+ATOMIC\b", re.IGNORECASE)
_NOISE = string.whitespace + string.punctuation


class ScanState(Enum):
    NORMAL = "normal"
    IN_SINGLE_QUOTE = "in_single_quote"
    IN_DOUBLE_QUOTE = "in_double_quote"
    IN_LINE_COMMENT = "in_line_comment"
    IN_BLOCK_COMMENT = "in_block_comment"
    IN_DOLLAR_QUOTE = "in_dollar_quote"


@dataclass(frozen=True)
class Statement:
    """One executable statement and its owning schema tag (if any)."""

    text: str
    schema: str | None = None

    @property
    def is_data(self) -> bool:
        """True when the statement loads rows (``INSERT`` or ``COPY``)."""
        head = self.text.lstrip()[:6].upper()
        return head.startswith("INSERT") or head.startswith("COPY")


def schema_directive(schema: str | None) -> str:
    """Render the comment line that tags following statements with ``schema``."""
    return f"{SCHEMA_DIRECTIVE}{schema or ''}"


def _is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def _has_content(text: str) -> bool:
    return bool(text.strip(_NOISE))


def _last_char(buf: list[str]) -> str:
    return buf[-1][-1] if buf else ""


def _is_routine_header(words: list[str]) -> bool:
    """True for leading words ``CREATE [OR REPLACE] FUNCTION|PROCEDURE``."""
    if words[:3] == ["CREATE", "OR", "REPLACE"]:
        rest = words[3:4]
    elif words[:1] == ["CREATE"]:
        rest = words[1:2]
    else:
        return False
    return rest in (["FUNCTION"], ["PROCEDURE"])


def _iter_statements(text: str, dollar_quotes: bool) -> Iterator[Statement]:
    state = ScanState.NORMAL
    buf: list[str] = []
    schema: str | None = None
    block_depth = 0
    backslash_escapes = False
    dollar_tag = ""
    # Leading keywords of the current statement, and BEGIN ATOMIC nesting
    head: list[str] = []
    atomic_depth = 0
    case_depth = 0

    n = len(text)
    i = 0
    while i < n:
        # Comment-only line
        if state is ScanState.NORMAL and (i == 0 or text[i - 1] == "\n"):
            end = text.find("\n", i)
            line_end = n if end == -1 else end + 1
            stripped = text[i:line_end].strip()
            if stripped.startswith("--"):
                match = _DIRECTIVE_RE.match(stripped)
                if match:
                    schema = match.group(1).strip() or None
                i = line_end
                continue

        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if state is ScanState.NORMAL:
            if ch == "-" and nxt == "-":
                state = ScanState.IN_LINE_COMMENT
                i += 2
                continue
            if ch == "/" and nxt == "*":
                state = ScanState.IN_BLOCK_COMMENT
                block_depth = 1
                i += 2
                continue
            if ch == "'":
                backslash_escapes = (
                    len(buf) > 0
                    and buf[-1] in ("e", "E")
                    and (len(buf) < 2 or not _is_identifier_char(buf[-2][-1]))
                )
                state = ScanState.IN_SINGLE_QUOTE
            elif ch == '"':
                state = ScanState.IN_DOUBLE_QUOTE
            elif ch == "$" and dollar_quotes and not _is_identifier_char(_last_char(buf)):
                match = _DOLLAR_TAG_RE.match(text, i)
                if match:
                    dollar_tag = match.group(0)
                    buf.append(dollar_tag)
                    state = ScanState.IN_DOLLAR_QUOTE
                    i = match.end()
                    continue
            elif ch == ";" and not atomic_depth:
                buf.append(ch)
                statement = "".join(buf).strip()
                buf = []
                head = []
                case_depth = 0
                if _has_content(statement):
                    yield Statement(statement, schema)
                i += 1
                continue
            elif (
                dollar_quotes
                and (ch.isalpha() or ch == "_")
                and not _is_identifier_char(_last_char(buf))
            ):
                match = _WORD_RE.match(text, i)
                if match:
                    word = match.group(0).upper()
                    if len(head) < 4:
                        head.append(word)
                    if word == "BEGIN":
                        if _BEGIN_ATOMIC_RE.match(text, i) and _is_routine_header(head):
                            atomic_depth += 1
                    elif word == "CASE" and atomic_depth:
                        case_depth += 1
                    elif word == "END" and atomic_depth:
                        if case_depth:
                            case_depth -= 1
                        else:
                            atomic_depth -= 1
                    buf.append(match.group(0))
                    i = match.end()
                    continue
            buf.append(ch)

        elif state is ScanState.IN_SINGLE_QUOTE:
            buf.append(ch)
            if ch == "\\" and backslash_escapes and nxt:
                buf.append(nxt)
                i += 2
                continue
            if ch == "'":
                if nxt == "'":
                    buf.append(nxt)
                    i += 2
                    continue
                state = ScanState.NORMAL

        elif state is ScanState.IN_DOUBLE_QUOTE:
            buf.append(ch)
            if ch == '"':
                if nxt == '"':
                    buf.append(nxt)
                    i += 2
                    continue
                state = ScanState.NORMAL

        elif state is ScanState.IN_LINE_COMMENT:
            if ch == "\n":
                buf.append(ch)
                state = ScanState.NORMAL

        elif state is ScanState.IN_BLOCK_COMMENT:
            if ch == "/" and nxt == "*":
                block_depth += 1
                i += 2
                continue
            if ch == "*" and nxt == "/":
                block_depth -= 1
                i += 2
                if block_depth == 0:
                    state = ScanState.NORMAL
                    # Keep tokens on either side of the comment apart
                    buf.append(" ")
                continue

        elif state is ScanState.IN_DOLLAR_QUOTE:
            if text.startswith(dollar_tag, i):
                buf.append(dollar_tag)
                i += len(dollar_tag)
                state = ScanState.NORMAL
                continue
            buf.append(ch)

        i += 1

    trailing = "".join(buf).strip()
    if _has_content(trailing):
        yield Statement(trailing, schema)


def parse_script(text: str, *, dollar_quotes: bool = True) -> list[Statement]:
    """Split a script into ``Statement`` records carrying schema tags.

    Args:
        text: Full script text (already decompressed).
        dollar_quotes: Recognize ``$tag$`` bodies.  ``False`` reproduces the
            legacy splitter, which cuts at every unquoted semicolon.

    Returns:
        Statements in script order.  Each keeps its terminating ``;`` when
        it had one; a trailing unterminated statement is returned as-is.
    """
    return list(_iter_statements(text, dollar_quotes))


def split_statements(text: str, *, dollar_quotes: bool = True) -> list[str]:
    """Split a script into statement strings.

    Example:
        >>> split_statements("INSERT INTO t VALUES ('it''s; fine');\\n-- note\\nSELECT 1")
        ["INSERT INTO t VALUES ('it''s; fine');", 'SELECT 1']
    """
    return [stmt.text for stmt in _iter_statements(text, dollar_quotes)]
