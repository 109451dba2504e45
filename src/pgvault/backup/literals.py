"""Python value to SQL literal rendering for INSERT statements.

Supported types:
    - None                      -> NULL
    - bool                      -> TRUE / FALSE
    - int, Decimal              -> bare number (Decimal NaN/Infinity quoted)
    - float                     -> bare number; NaN / Infinity / -Infinity quoted
    - bytes, bytearray, memoryview -> '\\x<hex>'::bytea
    - date, time, datetime, timedelta, UUID -> quoted text form
    - list, tuple               -> ARRAY[...]
    - dict                      -> quoted JSON
    - anything else             -> str(value), quoted

Single quotes are doubled.  Output assumes ``standard_conforming_strings``
is on (the server default since 9.1), so backslashes need no escaping.
"""

import datetime
import json
import math
import uuid
from decimal import Decimal
from typing import Any


def quote_literal(text: str) -> str:
    """Quote ``text`` as a standard SQL string literal.

    Example:
        >>> quote_literal("it's")
        "'it''s'"
    """
    return "'" + text.replace("'", "''") + "'"


def sql_literal(value: Any) -> str:
    """Render a Python value as an SQL literal."""
    if value is None:
        return "NULL"

    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"

    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if math.isnan(value):
            return "'NaN'"
        if math.isinf(value):
            return "'Infinity'" if value > 0 else "'-Infinity'"
        return repr(value)

    if isinstance(value, Decimal):
        if not value.is_finite():
            return quote_literal(str(value))
        return str(value)

    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"'\\x{bytes(value).hex()}'::bytea"

    if isinstance(value, datetime.datetime):
        return quote_literal(value.isoformat(sep=" "))

    if isinstance(value, (datetime.date, datetime.time, uuid.UUID)):
        return quote_literal(str(value))

    if isinstance(value, datetime.timedelta):
        return quote_literal(f"{value.days} days {value.seconds} seconds {value.microseconds} microseconds")

    if isinstance(value, (list, tuple)):
        if not value:
            return "'{}'"
        return "ARRAY[" + ", ".join(sql_literal(v) for v in value) + "]"

    if isinstance(value, dict):
        return quote_literal(json.dumps(value, ensure_ascii=False))

    return quote_literal(str(value))
