from __future__ import annotations

from typing import Callable, Mapping, Optional, TypeVar

T = TypeVar("T")


def get_env_str(
    env: Mapping[str, str],
    key: str,
    default: Optional[str] = None,
) -> Optional[str]:
    """환경 변수 문자열을 가져온다. 공백뿐이면 default."""
    value = env.get(key)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _get_env_parsed(
    env: Mapping[str, str],
    key: str,
    parse: Callable[[str], T],
    kind: str,
    default: Optional[T],
) -> Optional[T]:
    value = get_env_str(env, key)
    if value is None:
        return default
    try:
        return parse(value)
    except ValueError as exc:
        raise ValueError(f"{key} must be {kind} (got: {value})") from exc


def get_env_int(
    env: Mapping[str, str],
    key: str,
    default: Optional[int] = None,
) -> Optional[int]:
    """환경 변수 정수를 가져온다."""
    return _get_env_parsed(env, key, int, "an integer", default)


def get_env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    """환경 변수 불리언을 가져온다."""
    value = get_env_str(env, key)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "y")


def get_env_list(env: Mapping[str, str], key: str) -> list[str]:
    """쉼표로 구분된 환경 변수 목록을 가져온다."""
    value = get_env_str(env, key)
    if value is None:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]
