from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pytest

from spark_connector.clickhouse.settings import ConnectionSettings
from spark_connector.clickhouse.statement import ClickHouseConnection


class FakeClient:
    """clickhouse_driver.Client 대역. DESC 결과와 INSERT 호출을 기록한다."""

    def __init__(
        self,
        schema: Sequence[Tuple[str, str]] = (),
        errors: Iterable[BaseException] = (),
    ):
        self.schema = list(schema)
        self.errors: List[BaseException] = list(errors)
        self.queries: List[str] = []
        self.inserts: List[List[Tuple[Any, ...]]] = []
        self.insert_attempts = 0
        self.disconnected = False

    def execute(self, query: str, params: Optional[list] = None, types_check: bool = False, **kwargs):
        self.queries.append(query)
        if query.lower().startswith("desc "):
            return [(name, type_name, "", "", "", "", "") for name, type_name in self.schema]
        self.insert_attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        self.inserts.append(list(params or []))
        return len(params or [])

    def disconnect(self) -> None:
        self.disconnected = True


class FakeConnector:
    """connect() 대역. 호출마다 같은 FakeClient로 커넥션을 만든다."""

    def __init__(self, client: FakeClient):
        self.client = client
        self.calls: List[ConnectionSettings] = []

    def __call__(self, settings: ConnectionSettings) -> ClickHouseConnection:
        self.calls.append(settings)
        return ClickHouseConnection(self.client)


class FakeDataFrame:
    """foreachPartition만 흉내 내는 데이터프레임."""

    def __init__(self, columns: Sequence[str], partitions: Sequence[Sequence[Any]]):
        self.columns = list(columns)
        self.partitions = [list(p) for p in partitions]

    def foreachPartition(self, fn) -> None:
        for partition in self.partitions:
            fn(iter(partition))


TABLE_SCHEMA = [
    ("id", "UInt32"),
    ("name", "String"),
    ("score", "Nullable(Float64)"),
    ("created", "DateTime"),
    ("tags", "Array(String)"),
    ("city", "LowCardinality(String)"),
    ("amount", "Decimal(18, 2)"),
    ("point", "Tuple(Float64, Float64)"),
]


@pytest.fixture
def sink_config() -> Dict[str, Any]:
    return {
        "host": "ch-1:9000,ch-2",
        "database": "analytics",
        "table": "analytics.events",
        "username": "writer",
        "password": "secret",
    }


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient(schema=TABLE_SCHEMA)


@pytest.fixture
def fake_connector(fake_client: FakeClient) -> FakeConnector:
    return FakeConnector(fake_client)
