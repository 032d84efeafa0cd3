# -----------------------------------------------------------------------------
# file: spark_connector/errors.py
# purpose: sink configuration/driver error taxonomy
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Collection, Iterable, Optional


class SinkError(Exception):
    """커넥터 예외의 기본 클래스."""


class ConfigError(SinkError):
    """필수 설정 누락."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        keys = ", ".join(f"[{key}]" for key in self.missing)
        super().__init__(f"please specify {keys} as non-empty")


class ConfigRuntimeError(SinkError):
    """설정 추출 중 발생한 예외."""


class SchemaMismatchError(SinkError):
    """설정된 필드가 테이블 스키마에 없다."""

    def __init__(self, fields: Iterable[str], table: str):
        self.fields = list(fields)
        self.table = table
        names = ", ".join(f"[{field}]" for field in self.fields)
        super().__init__(f"field {names} not exist in table {table}")


class UnsupportedTypeError(SinkError):
    """지원하지 않는 ClickHouse 타입."""

    def __init__(self, types: Iterable[str]):
        self.types = list(types)
        names = ", ".join(f"[{name}]" for name in self.types)
        super().__init__(f"clickHouse data type {names} not support in current version.")


class DriverError(SinkError):
    """드라이버가 보고한 오류를 감싼다."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message if code is None else f"code={code} {message}")


class RetryableDriverError(DriverError):
    """retry_codes에 포함된 오류 코드."""


class FatalDriverError(DriverError):
    """재시도 대상이 아닌 오류 코드."""


class UnknownDriverError(DriverError):
    """오류 코드가 없는 드라이버 예외."""


def classify_driver_error(exc: BaseException, retry_codes: Collection[int]) -> DriverError:
    """드라이버 예외를 오류 코드 기준으로 분류한다."""
    code = getattr(exc, "code", None)
    message = str(exc) or exc.__class__.__name__
    if code is None:
        return UnknownDriverError(message)
    if code in retry_codes:
        return RetryableDriverError(message, code)
    return FatalDriverError(message, code)
