# -----------------------------------------------------------------------------
# file: spark_connector/plugin.py
# purpose: source/transform/sink plugin lifecycle shared by batch and stream jobs
# -----------------------------------------------------------------------------

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from pyspark.sql import DataFrame, SparkSession


@dataclass(frozen=True)
class CheckResult:
    """설정 검사 결과를 담는다."""
    success: bool
    msg: str = ""
    error: Optional[Exception] = None

    @classmethod
    def ok(cls) -> "CheckResult":
        """성공 결과를 생성한다."""
        return cls(success=True)

    @classmethod
    def fail(cls, error: Exception) -> "CheckResult":
        """실패 결과를 생성한다."""
        return cls(success=False, msg=str(error), error=error)

    def raise_for_error(self) -> None:
        """실패 결과라면 담긴 예외를 다시 던진다."""
        if self.success:
            return
        if self.error is not None:
            raise self.error
        raise RuntimeError(self.msg or "config check failed")


@dataclass
class SparkEnvironment:
    """플러그인에 전달되는 Spark 실행 환경."""
    spark: SparkSession
    config: Dict[str, Any] = field(default_factory=dict)


class BasePlugin(ABC):
    """플러그인 공통 설정 수명주기."""

    def __init__(self, config: Mapping[str, Any] | None = None):
        self.config: Dict[str, Any] = dict(config or {})

    def set_config(self, config: Mapping[str, Any]) -> None:
        """플러그인 설정을 교체한다."""
        self.config = dict(config)

    def get_config(self) -> Dict[str, Any]:
        """현재 플러그인 설정을 반환한다."""
        return self.config

    def check_config(self) -> CheckResult:
        """설정을 검사한다."""
        return CheckResult.ok()

    def prepare(self, env: SparkEnvironment) -> None:
        """실행 전 준비 작업을 수행한다."""


class BaseSparkSource(BasePlugin):
    @abstractmethod
    def get_data(self, env: SparkEnvironment) -> DataFrame:
        """입력 데이터프레임을 반환한다."""


class BaseSparkTransform(BasePlugin):
    @abstractmethod
    def process(self, df: DataFrame, env: SparkEnvironment) -> DataFrame:
        """데이터프레임을 변환한다."""


class BaseSparkSink(BasePlugin):
    @abstractmethod
    def output(self, df: DataFrame, env: SparkEnvironment) -> None:
        """데이터프레임을 외부 저장소로 내보낸다."""
