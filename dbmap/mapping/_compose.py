"""SQL text composition for the persistence engine.

Only string assembly happens here. SQL passed in by callers is never parsed or
validated; a leading ``SELECT`` and a trailing ``LIMIT`` are the only things
looked for.
"""

import re
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = (
    "compose_delete",
    "compose_insert",
    "compose_select",
    "compose_update",
    "has_limit_clause",
    "is_select",
)

_SELECT_PATTERN: Final = re.compile(r"^\s*SELECT\b", re.IGNORECASE)
_LIMIT_PATTERN: Final = re.compile(
    r"\bLIMIT\s+(?:\d+|@\d+)(?:\s*,\s*(?:\d+|@\d+)|\s+OFFSET\s+(?:\d+|@\d+))?\s*;?\s*$", re.IGNORECASE
)


def is_select(query: str) -> bool:
    return bool(_SELECT_PATTERN.match(query))


def has_limit_clause(query: str) -> bool:
    """Whether ``query`` already ends with ``LIMIT n``, ``LIMIT n,m`` or ``LIMIT n OFFSET m``."""
    return bool(_LIMIT_PATTERN.search(query))


def compose_select(query: str, columns: str, table: str, *, single: bool = False) -> str:
    """Turn a query fragment into a full SELECT.

    Args:
        query: Empty, a clause suffix such as ``"WHERE Id > @0"``, or a full SELECT.
        columns: Column list, ``*`` for dynamic records.
        table: Table the suffix applies to.
        single: Append ``LIMIT 1`` unless the query already ends with a limit clause.

    Returns:
        The composed SQL.
    """
    query = query.strip()
    if not query:
        sql = f"SELECT {columns} FROM {table}"
    elif is_select(query):
        sql = query
    else:
        sql = f"SELECT {columns} FROM {table} {query}"
    if single and not has_limit_clause(sql):
        sql = f"{sql.rstrip().rstrip(';').rstrip()} LIMIT 1"
    return sql


def compose_insert(table: str, columns: "Sequence[str]", placeholders: "Sequence[str]") -> str:
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join(placeholders)})"


def compose_update(table: str, assignments: "Sequence[str]", key: str, key_placeholder: str) -> str:
    return f"UPDATE {table} SET {', '.join(assignments)} WHERE {key} = {key_placeholder}"


def compose_delete(table: str, key: str, key_placeholder: str = "@0") -> str:
    return f"DELETE FROM {table} WHERE {key} = {key_placeholder}"
