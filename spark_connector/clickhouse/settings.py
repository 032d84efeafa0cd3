from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple
from urllib.parse import quote, urlencode

from common.get_env import get_env_int, get_env_list, get_env_str

from ..config_utils import (
    extract_sub_config,
    get_config_int,
    get_config_int_list,
    has_sub_config,
)

REQUIRED_KEYS: Tuple[str, ...] = ("host", "table", "database", "username", "password")
CLICKHOUSE_PREFIX = "clickhouse."
DEFAULT_NATIVE_PORT = 9000

DEFAULT_BULK_SIZE = 20000
DEFAULT_RETRY = 1
# 네트워크 오류(210)를 기본 재시도 대상으로 두지 않는다. 필요하면 retry_codes로 지정한다.
DEFAULT_RETRY_CODES: Tuple[int, ...] = ()

SINK_DEFAULTS: Dict[str, Any] = {
    "bulk_size": DEFAULT_BULK_SIZE,
    "retry_codes": list(DEFAULT_RETRY_CODES),
    "retry": DEFAULT_RETRY,
}

_SINK_ENV_PREFIX = "SPARK_CLICKHOUSE_SINK_"
_SINK_OPT_ENV_PREFIX = _SINK_ENV_PREFIX + "OPT_"


def _split_host(entry: str) -> Tuple[str, int]:
    """host[:port] 문자열을 분리한다."""
    host, sep, port = entry.strip().rpartition(":")
    if not sep:
        return entry.strip(), DEFAULT_NATIVE_PORT
    try:
        return host, int(port)
    except ValueError as exc:
        raise ValueError(f"invalid ClickHouse host entry: {entry}") from exc


@dataclass(frozen=True)
class ConnectionSettings:
    """ClickHouse 접속 설정을 담는다. (파티션 워커로 그대로 전달된다)"""
    hosts: Tuple[str, ...]
    database: str
    user: Optional[str]
    password: Optional[str]
    properties: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ConnectionSettings":
        """플러그인 설정에서 접속 설정을 만든다."""
        hosts = tuple(h.strip() for h in str(config["host"]).split(",") if h.strip())
        if not hosts:
            raise ValueError("host is required")
        properties: Dict[str, str] = {}
        if has_sub_config(config, CLICKHOUSE_PREFIX):
            properties.update(extract_sub_config(config, CLICKHOUSE_PREFIX, False))
        return cls(
            hosts=hosts,
            database=str(config["database"]),
            user=config.get("username"),
            password=config.get("password"),
            properties=tuple(properties.items()),
        )

    @property
    def url(self) -> str:
        """로그용 접속 URL (인증 정보 제외)."""
        return f"clickhouse://{','.join(self.hosts)}/{self.database}"

    def build_client_url(self) -> str:
        """clickhouse_driver.Client.from_url 용 URL을 생성한다.

        clickhouse.* 속성은 쿼리 파라미터로 붙는다. from_url이 접속 옵션
        (connect_timeout, compression, secure 등)과 서버 설정을 나눈다.
        """
        host, port = _split_host(self.hosts[0])
        auth = ""
        if self.user:
            auth = quote(self.user, safe="")
            if self.password:
                auth += ":" + quote(self.password, safe="")
            auth += "@"
        query: list[Tuple[str, str]] = []
        if len(self.hosts) > 1:
            alt = []
            for entry in self.hosts[1:]:
                alt_host, alt_port = _split_host(entry)
                alt.append(f"{alt_host}:{alt_port}")
            query.append(("alt_hosts", ",".join(alt)))
        query.extend(self.properties)
        url = f"clickhouse://{auth}{host}:{port}/{self.database}"
        if query:
            url += "?" + urlencode(query)
        return url


@dataclass(frozen=True)
class RetryPolicy:
    """배치 재시도 정책."""
    retry_codes: FrozenSet[int] = field(default_factory=frozenset)
    max_retries: int = DEFAULT_RETRY

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "RetryPolicy":
        """설정에서 재시도 정책을 만든다."""
        retry = get_config_int(config, "retry", DEFAULT_RETRY)
        return cls(
            retry_codes=frozenset(get_config_int_list(config, "retry_codes")),
            max_retries=max(retry or 0, 0),
        )


def load_sink_config(env: Mapping[str, str] | None = None) -> Dict[str, Any]:
    """환경 변수에서 ClickHouse 싱크 플러그인 설정을 로드한다."""
    source = env or os.environ
    config: Dict[str, Any] = {}
    for key in ("host", "database", "table", "username", "password"):
        value = get_env_str(source, _SINK_ENV_PREFIX + key.upper())
        if value is not None:
            config[key] = value
    fields = get_env_list(source, _SINK_ENV_PREFIX + "FIELDS")
    if fields:
        config["fields"] = fields
    bulk_size = get_env_int(source, _SINK_ENV_PREFIX + "BULK_SIZE")
    if bulk_size is not None:
        config["bulk_size"] = bulk_size
    retry = get_env_int(source, _SINK_ENV_PREFIX + "RETRY")
    if retry is not None:
        config["retry"] = retry
    retry_codes = get_env_list(source, _SINK_ENV_PREFIX + "RETRY_CODES")
    if retry_codes:
        config["retry_codes"] = retry_codes
    # SPARK_CLICKHOUSE_SINK_OPT_MAX_BLOCK_SIZE -> clickhouse.max_block_size
    for key in sorted(source):
        if key.startswith(_SINK_OPT_ENV_PREFIX):
            value = get_env_str(source, key)
            if value is not None:
                name = key[len(_SINK_OPT_ENV_PREFIX):].lower()
                config[CLICKHOUSE_PREFIX + name] = value
    return config


@dataclass(frozen=True)
class BatchTimingLogSettings:
    """배치 타이밍 로그 설정을 담는다."""
    log_path: Optional[str]


def load_batch_timing_log_settings(
    env: Mapping[str, str] | None = None,
) -> BatchTimingLogSettings:
    """환경 변수에서 배치 타이밍 로그 설정을 로드한다."""
    source = env or os.environ
    return BatchTimingLogSettings(
        log_path=get_env_str(source, "SPARK_BATCH_TIMING_LOG_PATH"),
    )


_batch_log_settings_cache: BatchTimingLogSettings | None = None


def get_batch_timing_log_settings() -> BatchTimingLogSettings:
    """캐시된 배치 타이밍 로그 설정을 반환한다."""
    global _batch_log_settings_cache
    if _batch_log_settings_cache is None:
        _batch_log_settings_cache = load_batch_timing_log_settings()
    return _batch_log_settings_cache
