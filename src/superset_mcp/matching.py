"""Pick a table for free-text input and build a best-effort SELECT for it.

This is keyword scanning, not parsing: filter and limit keywords are located
by substring search and values are not escaped beyond identifier quoting.
"""

import re
from typing import List, NamedTuple, Optional

from .cache import MetadataCache
from .models import Column, Database, Table

# English and Chinese ("condition", "filter")
FILTER_KEYWORDS = ("where", "filter", "条件", "筛选")
# English and Chinese ("limit", "first")
LIMIT_KEYWORDS = ("limit", "top", "限制", "前")
DEFAULT_LIMIT = 10

_LEADING_INT = re.compile(r"[+-]?\d+")
_QUOTES = re.compile(r"['\"]")


class TableMatch(NamedTuple):
    database: Database
    table: Table


def find_matching_table(cache: MetadataCache, text: str) -> Optional[TableMatch]:
    """
    Return the first cached table whose name occurs in the text.

    Databases are scanned in cache order, then tables in cache order; the
    comparison is case-insensitive. Without a match the first table of the
    first database holding tables is returned, and None only when no table
    is cached at all.
    """
    lowered = text.lower()
    for db in cache.databases:
        for table in cache.get_tables(db.id):
            if table.name and table.name.lower() in lowered:
                return TableMatch(db, table)

    for db in cache.databases:
        tables = cache.get_tables(db.id)
        if tables:
            return TableMatch(db, tables[0])
    return None


def _condition_value(condition: str, field_name: str) -> str:
    # Only a whole leading word equal to the field name is dropped
    leading = re.match(rf"{re.escape(field_name)}(\s+|$)", condition, re.IGNORECASE)
    if leading:
        remainder = condition[leading.end():].strip()
        if remainder:
            condition = remainder
    return _QUOTES.sub("", condition)


def build_where_clause(text: str, fields: List[Column]) -> str:
    """WHERE clause for the text after a filter keyword, or "" if none applies."""
    lowered = text.lower()
    clause = ""
    for keyword in FILTER_KEYWORDS:
        index = lowered.find(keyword)
        if index == -1:
            continue
        condition = text[index + len(keyword):].strip()
        if not condition:
            continue
        for field in fields:
            if field.name.lower() in condition.lower():
                value = _condition_value(condition, field.name)
                clause = f"WHERE \"{field.name}\" LIKE '%{value}%'"
                break
    return clause


def extract_limit(text: str, default: int = DEFAULT_LIMIT) -> int:
    """Row limit from the number following a limit keyword."""
    lowered = text.lower()
    limit = default
    for keyword in LIMIT_KEYWORDS:
        index = lowered.find(keyword)
        if index == -1:
            continue
        tokens = text[index + len(keyword):].split()
        if not tokens:
            continue
        match = _LEADING_INT.match(tokens[0])
        if match and int(match.group()) > 0:
            limit = int(match.group())
    return limit


def generate_sql_query(text: str, table: Table, fields: List[Column]) -> str:
    """
    Build a SELECT over every field of the table.

    Args:
        text: Free-text request
        table: Target table
        fields: Columns of the table, in select order

    Returns:
        SQL string
    """
    columns = ", ".join(f'"{field.name}"' for field in fields)
    parts = [f'SELECT {columns} FROM "{table.schema_name}"."{table.name}"']

    where = build_where_clause(text, fields)
    if where:
        parts.append(where)
    parts.append(f"LIMIT {extract_limit(text)}")
    return " ".join(parts)
