"""Shared pytest fixtures for all tests."""

from __future__ import annotations

import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import duckdb
import pytest

from relscout.analysis.relationships.models import OracleRequest, ValidationVerdict
from relscout.core.connections import ConnectionConfig, ConnectionManager
from relscout.core.models.base import Cardinality, Result
from relscout.datasource.duckdb_executor import DuckDBQueryExecutor
from relscout.schema.db_models import SchemaColumn, SchemaForeignKey, SchemaTable

PROJECT_ID = "proj-1"
DATASOURCE_ID = "ds-1"


@pytest.fixture
def customer_db_path(tmp_path):
    """Create a file-based DuckDB customer database.

    Tables:
    - users(id PK 1..10, name, email, is_active, created_at)
    - orders(id PK 1..20, user_id -> users.id, status, placed_at)
    - accounts(id VARCHAR PK 'ACC-01'..'ACC-10', owner_name)
    - transactions(id PK 1..20, account_id: half reference unknown accounts, amount)
    - payments(id PK 1..15, order_id -> orders.id, amount)
    - events(id PK 1..10, occurred_at)
    - logs(log_seq PK 1..30, id: values 500..529, never matching events.id)

    Closed after setup so executors can open it read-only.
    """
    db_path = tmp_path / "customer.duckdb"
    conn = duckdb.connect(str(db_path))

    conn.execute("""
        CREATE TABLE users AS
        SELECT
            i AS id,
            'user_' || i AS name,
            'user_' || i || '@example.com' AS email,
            i % 2 = 0 AS is_active,
            make_timestamp(2024, 1, i, 0, 0, 0) AS created_at
        FROM generate_series(1, 10) AS t(i)
    """)
    conn.execute("""
        CREATE TABLE orders AS
        SELECT
            i AS id,
            ((i - 1) % 10) + 1 AS user_id,
            CASE WHEN i % 3 = 0 THEN 'shipped' ELSE 'open' END AS status,
            make_timestamp(2024, 2, i, 12, 0, 0) AS placed_at
        FROM generate_series(1, 20) AS t(i)
    """)
    conn.execute("""
        CREATE TABLE accounts AS
        SELECT
            'ACC-' || LPAD(i::VARCHAR, 2, '0') AS id,
            'owner_' || i AS owner_name
        FROM generate_series(1, 10) AS t(i)
    """)
    conn.execute("""
        CREATE TABLE transactions AS
        SELECT
            i AS id,
            'ACC-' || LPAD((((i - 1) % 20) + 1)::VARCHAR, 2, '0') AS account_id,
            (i * 10.5)::DOUBLE AS amount
        FROM generate_series(1, 20) AS t(i)
    """)
    conn.execute("""
        CREATE TABLE payments AS
        SELECT
            i AS id,
            i AS order_id,
            (i * 3.0)::DOUBLE AS amount
        FROM generate_series(1, 15) AS t(i)
    """)
    conn.execute("""
        CREATE TABLE events AS
        SELECT
            i AS id,
            make_timestamp(2024, 3, 1, 0, i, 0) AS occurred_at
        FROM generate_series(1, 10) AS t(i)
    """)
    conn.execute("""
        CREATE TABLE logs AS
        SELECT
            i AS log_seq,
            499 + i AS id
        FROM generate_series(1, 30) AS t(i)
    """)
    conn.close()
    return db_path


@pytest.fixture
def customer_executor(customer_db_path) -> Generator[DuckDBQueryExecutor]:
    """Read-only executor over the customer database."""
    with DuckDBQueryExecutor.open(customer_db_path) as executor:
        yield executor


class StaticConnector:
    """DatasourceConnector that always yields the same executor."""

    def __init__(self, executor: Any):
        self.executor = executor
        self.connect_calls = 0

    @contextmanager
    def connect(self, project_id: str, datasource_id: str) -> Generator[Any]:
        self.connect_calls += 1
        yield self.executor


@pytest.fixture
def connector(customer_executor) -> StaticConnector:
    return StaticConnector(customer_executor)


@pytest.fixture
def manager() -> Generator[ConnectionManager]:
    """In-memory SQLite metadata store.

    Creates a fresh database for each test function.
    """
    with ConnectionManager(ConnectionConfig.in_memory()) as connection_manager:
        yield connection_manager


def column(
    name: str,
    data_type: str,
    *,
    primary_key: bool = False,
    unique: bool = False,
    joinable: bool | None = None,
    **features: Any,
) -> dict[str, Any]:
    """Column spec for MetadataSeeder.add_table."""
    return {
        "column_name": name,
        "data_type": data_type,
        "is_primary_key": primary_key,
        "is_unique": unique,
        "is_joinable": joinable,
        "features": features or None,
    }


class MetadataSeeder:
    """Writes schema metadata rows the way earlier pipeline stages would."""

    column = staticmethod(column)

    def __init__(
        self,
        manager: ConnectionManager,
        project_id: str = PROJECT_ID,
        datasource_id: str = DATASOURCE_ID,
    ):
        self.manager = manager
        self.project_id = project_id
        self.datasource_id = datasource_id

    def add_table(
        self, table_name: str, *columns: dict[str, Any], schema_name: str | None = None
    ) -> None:
        with self.manager.session_scope() as session:
            table = SchemaTable(
                project_id=self.project_id,
                datasource_id=self.datasource_id,
                schema_name=schema_name,
                table_name=table_name,
            )
            for position, spec in enumerate(columns):
                table.columns.append(SchemaColumn(column_position=position, **spec))
            session.add(table)

    def add_foreign_key(
        self, source_table: str, source_column: str, target_table: str, target_column: str
    ) -> None:
        with self.manager.session_scope() as session:
            session.add(
                SchemaForeignKey(
                    project_id=self.project_id,
                    datasource_id=self.datasource_id,
                    constraint_name=f"fk_{source_table}_{source_column}",
                    source_table=source_table,
                    source_column=source_column,
                    target_table=target_table,
                    target_column=target_column,
                )
            )


@pytest.fixture
def metadata(manager) -> MetadataSeeder:
    return MetadataSeeder(manager)


class RecordingOracle:
    """Thread-safe SemanticOracle test double.

    Verdicts are configured per "table.column" pair; unconfigured pairs are
    rejected. Every request is recorded.
    """

    def __init__(self) -> None:
        self.requests: list[OracleRequest] = []
        self.max_in_flight = 0
        self._verdicts: dict[tuple[str, str], ValidationVerdict] = {}
        self._failures: dict[tuple[str, str], str] = {}
        self._errors: dict[tuple[str, str], Exception] = {}
        self._delays: dict[tuple[str, str], float] = {}
        self._in_flight = 0
        self._lock = threading.Lock()

    def accept(
        self,
        source: str,
        target: str,
        confidence: float = 0.95,
        cardinality: Cardinality | None = Cardinality.MANY_TO_ONE,
        source_role: str | None = None,
        reasoning: str = "Values and names line up",
    ) -> None:
        self._verdicts[(source, target)] = ValidationVerdict(
            accepted=True,
            confidence=confidence,
            cardinality=cardinality,
            reasoning=reasoning,
            source_role=source_role,
        )

    def reject(
        self, source: str, target: str, reasoning: str = "Unrelated", confidence: float = 0.9
    ) -> None:
        self._verdicts[(source, target)] = ValidationVerdict(
            accepted=False, confidence=confidence, reasoning=reasoning
        )

    def fail(self, source: str, target: str, error: str = "oracle unavailable") -> None:
        self._failures[(source, target)] = error

    def raise_error(self, source: str, target: str, error: Exception) -> None:
        self._errors[(source, target)] = error

    def delay(self, source: str, target: str, seconds: float) -> None:
        self._delays[(source, target)] = seconds

    def evaluate(self, request: OracleRequest) -> Result[ValidationVerdict]:
        pair = (
            f"{request.source_table}.{request.source_column}",
            f"{request.target_table}.{request.target_column}",
        )
        with self._lock:
            self.requests.append(request)
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if pair in self._delays:
                time.sleep(self._delays[pair])
            if pair in self._errors:
                raise self._errors[pair]
            if pair in self._failures:
                return Result.fail(self._failures[pair])
            verdict = self._verdicts.get(pair)
            if verdict is None:
                verdict = ValidationVerdict(
                    accepted=False, confidence=0.9, reasoning="No verdict configured"
                )
            return Result.ok(verdict)
        finally:
            with self._lock:
                self._in_flight -= 1

    def calls_for(self, source: str, target: str | None = None) -> list[OracleRequest]:
        with self._lock:
            return [
                r
                for r in self.requests
                if f"{r.source_table}.{r.source_column}" == source
                and (target is None or f"{r.target_table}.{r.target_column}" == target)
            ]

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.requests)


@pytest.fixture
def oracle() -> RecordingOracle:
    return RecordingOracle()


class RecordingProgress:
    """Progress callback that records every (current, total, message) call."""

    def __init__(self) -> None:
        self.calls: list[tuple[int, int, str]] = []
        self.threads: set[str] = set()

    def __call__(self, current: int, total: int, message: str) -> None:
        self.calls.append((current, total, message))
        self.threads.add(threading.current_thread().name)

    @property
    def values(self) -> list[int]:
        return [current for current, _, _ in self.calls]


@pytest.fixture
def progress() -> RecordingProgress:
    return RecordingProgress()
