"""Join statistics queries against the customer database.

All statements are read-only SELECTs. Values are compared as VARCHAR so that
widened pairs inside one type family (INT4 -> INT8, VARCHAR(36) -> TEXT)
join without relying on implicit casts, which differ across databases.
NUMERIC-family pairs are compared as DECIMAL instead, since their text form
depends on scale ('1.00' vs '1.0').
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from relscout.analysis.relationships.models import JoinStatistics
from relscout.analysis.relationships.types import TypeFamily, get_type_family
from relscout.core.errors import StatisticsCollectionError
from relscout.core.models.base import Cardinality
from relscout.datasource.base import QueryExecutor
from relscout.schema.models import ColumnProfile

MAX_SAMPLE_VALUES = 10

# Common comparison type for NUMERIC-family joins
NUMERIC_JOIN_TYPE = "DECIMAL(38, 10)"


@dataclass
class ColumnStats:
    """Live per-column facts."""

    distinct_count: int | None = None
    null_rate: float | None = None


def quote_identifier(name: str) -> str:
    """Quote an identifier, escaping embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'


def qualified_table(column: ColumnProfile) -> str:
    """Quoted, schema-qualified table name for a column."""
    table = quote_identifier(column.table_name)
    if column.schema_name:
        return f"{quote_identifier(column.schema_name)}.{table}"
    return table


def _join_condition(source: ColumnProfile, target: ColumnProfile) -> str:
    numeric = (
        get_type_family(source.data_type) == TypeFamily.NUMERIC
        and get_type_family(target.data_type) == TypeFamily.NUMERIC
    )
    cast_type = NUMERIC_JOIN_TYPE if numeric else "VARCHAR"
    src = f"CAST(s.{quote_identifier(source.column_name)} AS {cast_type})"
    tgt = f"CAST(t.{quote_identifier(target.column_name)} AS {cast_type})"
    return f"{src} = {tgt}"


def build_join_count_sql(source: ColumnProfile, target: ColumnProfile) -> str:
    """Matched row count plus distinct matched values on each side."""
    src_col = quote_identifier(source.column_name)
    tgt_col = quote_identifier(target.column_name)
    return (
        "SELECT COUNT(*) AS join_count, "
        f"COUNT(DISTINCT s.{src_col}) AS source_matched, "
        f"COUNT(DISTINCT t.{tgt_col}) AS target_matched "
        f"FROM {qualified_table(source)} s "
        f"JOIN {qualified_table(target)} t "
        f"ON {_join_condition(source, target)}"
    )


def build_orphan_sql(source: ColumnProfile, target: ColumnProfile) -> str:
    """Distinct non-null source values with no matching target value."""
    src_col = quote_identifier(source.column_name)
    tgt_col = quote_identifier(target.column_name)
    return (
        f"SELECT COUNT(DISTINCT s.{src_col}) AS orphan_count "
        f"FROM {qualified_table(source)} s "
        f"LEFT JOIN {qualified_table(target)} t "
        f"ON {_join_condition(source, target)} "
        f"WHERE s.{src_col} IS NOT NULL AND t.{tgt_col} IS NULL"
    )


def build_reverse_orphan_sql(source: ColumnProfile, target: ColumnProfile) -> str:
    """Distinct non-null target values never referenced by the source."""
    src_col = quote_identifier(source.column_name)
    tgt_col = quote_identifier(target.column_name)
    return (
        f"SELECT COUNT(DISTINCT t.{tgt_col}) AS reverse_orphan_count "
        f"FROM {qualified_table(target)} t "
        f"LEFT JOIN {qualified_table(source)} s "
        f"ON {_join_condition(source, target)} "
        f"WHERE t.{tgt_col} IS NOT NULL AND s.{src_col} IS NULL"
    )


def build_sample_sql(column: ColumnProfile, limit: int = MAX_SAMPLE_VALUES) -> str:
    col = quote_identifier(column.column_name)
    return (
        f"SELECT DISTINCT CAST({col} AS VARCHAR) AS value "
        f"FROM {qualified_table(column)} "
        f"WHERE {col} IS NOT NULL "
        f"ORDER BY 1 LIMIT {int(limit)}"
    )


def build_column_stats_sql(column: ColumnProfile) -> str:
    col = quote_identifier(column.column_name)
    return (
        f"SELECT COUNT(DISTINCT {col}) AS distinct_count, "
        f"COUNT(*) AS total_count, "
        f"COUNT({col}) AS non_null_count "
        f"FROM {qualified_table(column)}"
    )


def _run_step(executor: QueryExecutor, sql: str, step: str, label: str) -> list[tuple[Any, ...]]:
    try:
        return executor.execute(sql)
    except Exception as e:
        raise StatisticsCollectionError(f"{step} failed for {label}: {e}", step, label) from e


def _scalar(rows: list[tuple[Any, ...]], position: int = 0) -> int | None:
    if not rows or rows[0][position] is None:
        return None
    return int(rows[0][position])


def compute_join_statistics(
    executor: QueryExecutor, source: ColumnProfile, target: ColumnProfile
) -> tuple[JoinStatistics, list[StatisticsCollectionError]]:
    """Run the three join statistics queries for one candidate.

    Each query runs independently; a failing query leaves its fields unset
    and is returned in the error list.

    Returns:
        Tuple of (statistics, errors from failed steps)
    """
    label = f"{source.qualified_name} -> {target.qualified_name}"
    stats = JoinStatistics()
    errors: list[StatisticsCollectionError] = []

    try:
        rows = _run_step(executor, build_join_count_sql(source, target), "join_count", label)
        stats.join_count = _scalar(rows, 0) or 0
        stats.source_matched = _scalar(rows, 1) or 0
        stats.target_matched = _scalar(rows, 2) or 0
    except StatisticsCollectionError as e:
        errors.append(e)

    try:
        rows = _run_step(executor, build_orphan_sql(source, target), "orphans", label)
        stats.orphan_count = _scalar(rows) or 0
    except StatisticsCollectionError as e:
        errors.append(e)

    try:
        rows = _run_step(
            executor, build_reverse_orphan_sql(source, target), "reverse_orphans", label
        )
        stats.reverse_orphan_count = _scalar(rows) or 0
    except StatisticsCollectionError as e:
        errors.append(e)

    return stats, errors


def fetch_sample_values(
    executor: QueryExecutor, column: ColumnProfile, limit: int = MAX_SAMPLE_VALUES
) -> list[str]:
    """Up to ``limit`` distinct non-null values, as text, in sorted order.

    Raises:
        StatisticsCollectionError: If the query fails
    """
    limit = min(limit, MAX_SAMPLE_VALUES)
    if limit <= 0:
        return []
    rows = _run_step(executor, build_sample_sql(column, limit), "samples", column.qualified_name)
    return [str(row[0]) for row in rows if row[0] is not None]


def fetch_column_stats(executor: QueryExecutor, column: ColumnProfile) -> ColumnStats:
    """Distinct count and null rate of one column.

    Raises:
        StatisticsCollectionError: If the query fails
    """
    rows = _run_step(
        executor, build_column_stats_sql(column), "column_stats", column.qualified_name
    )
    distinct_count = _scalar(rows, 0)
    total = _scalar(rows, 1) or 0
    non_null = _scalar(rows, 2) or 0
    null_rate = (total - non_null) / total if total > 0 else None
    return ColumnStats(distinct_count=distinct_count, null_rate=null_rate)


def infer_cardinality(stats: JoinStatistics) -> Cardinality | None:
    """Infer source:target cardinality for a reference to a unique target.

    Each matched source row joins exactly one target row, so more matched
    rows than distinct matched targets means several sources share a target.

    Returns:
        N:1 or 1:1, or None when nothing matched or stats are missing
    """
    if stats.join_count is None or stats.target_matched is None:
        return None
    if stats.join_count == 0 or stats.target_matched == 0:
        return None
    if stats.join_count > stats.target_matched:
        return Cardinality.MANY_TO_ONE
    return Cardinality.ONE_TO_ONE
