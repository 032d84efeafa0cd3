from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from .errors import ConfigError, ConfigRuntimeError
from .plugin import CheckResult


def has_sub_config(source: Mapping[str, Any], prefix: str) -> bool:
    """prefix로 시작하는 설정 키가 있는지 확인한다."""
    return any(key.startswith(prefix) for key in source)


def extract_sub_config(
    source: Mapping[str, Any],
    prefix: str,
    keep_prefix: bool,
) -> Dict[str, str]:
    """prefix로 시작하는 설정만 추출한다. (삽입 순서 유지)"""
    values: Dict[str, str] = {}
    for key, value in source.items():
        if not key.startswith(prefix):
            continue
        if keep_prefix:
            values[key] = str(value)
        else:
            values[key[len(prefix):]] = str(value)
    return values


def extract_sub_config_throwable(
    source: Mapping[str, Any],
    prefix: str,
    keep_prefix: bool,
) -> Dict[str, str]:
    """추출 결과가 비어 있으면 예외를 던진다."""
    values = extract_sub_config(source, prefix, keep_prefix)
    if not values:
        raise ConfigRuntimeError("config is empty")
    return values


def _is_blank(value: Any) -> bool:
    """값이 비어 있는지 확인한다."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def check_all_exists(config: Mapping[str, Any], *keys: str) -> CheckResult:
    """필수 키가 모두 있는지 검사한다."""
    missing = [key for key in keys if _is_blank(config.get(key))]
    if missing:
        return CheckResult.fail(ConfigError(missing))
    return CheckResult.ok()


def with_fallback(config: Mapping[str, Any], defaults: Mapping[str, Any]) -> Dict[str, Any]:
    """config에 없는 키만 defaults로 채운다."""
    merged = dict(defaults)
    merged.update(config)
    return merged


def get_config_int(
    config: Mapping[str, Any],
    key: str,
    default: Optional[int] = None,
) -> Optional[int]:
    """설정 값을 정수로 가져온다."""
    value = config.get(key)
    if _is_blank(value):
        return default
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer (got: {value})")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer (got: {value})") from exc


def get_config_list(config: Mapping[str, Any], key: str) -> Optional[List[str]]:
    """설정 값을 문자열 목록으로 가져온다. 키가 없으면 None."""
    value = config.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Sequence):
        return [str(item).strip() for item in value]
    raise ValueError(f"{key} must be a list (got: {value!r})")


def get_config_int_list(config: Mapping[str, Any], key: str) -> List[int]:
    """설정 값을 정수 목록으로 가져온다."""
    items = get_config_list(config, key) or []
    try:
        return [int(item) for item in items]
    except ValueError as exc:
        raise ValueError(f"{key} must be a list of integers (got: {items})") from exc
