"""Shared helpers for configuration loading and validation.

Loaders read every key through ``read_value`` so that errors name the dotted
config key (``search.size``, ``filters[2].kind``) and the type actually found.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, TypeVar

T = TypeVar("T")

_REQUIRED = object()


def get_section(raw: Mapping[str, Any], key: str, *, required: bool) -> Mapping[str, Any]:
    """Return a mapping section from root config.

    Args:
        raw: Root configuration mapping.
        key: Section name.
        required: Whether the section must exist.

    Returns:
        Section mapping, or empty mapping for optional missing sections.

    Raises:
        ValueError: If section is required but missing.
        TypeError: If section is not a mapping.
    """
    section = raw.get(key)
    if section is None:
        if required:
            raise ValueError(f"Missing required config: {key}")
        return {}
    if not isinstance(section, Mapping):
        raise _wrong_type(key, "an object", section)
    return section


def read_value(
    section: Mapping[str, Any],
    prefix: str,
    field: str,
    expect: Callable[[Any, str], T],
    default: Any = _REQUIRED,
) -> T:
    """Read ``section[field]`` and validate it with ``expect``.

    Args:
        section: Mapping holding the value.
        prefix: Dotted key of ``section``, used in error messages.
        field: Key inside ``section``.
        expect: Validator called with the value and its dotted key.
        default: Returned as-is when ``field`` is absent. Without it the
            field is required.

    Raises:
        ValueError: If a required field is missing.
        TypeError: If ``expect`` rejects the value.
    """
    config_key = f"{prefix}.{field}"
    if field not in section:
        if default is _REQUIRED:
            raise ValueError(f"Missing required config: {config_key}")
        return default
    return expect(section[field], config_key)


def expect_str(value: Any, config_key: str) -> str:
    if not isinstance(value, str):
        raise _wrong_type(config_key, "a string", value)
    return value


def expect_optional_str(value: Any, config_key: str) -> str | None:
    return None if value is None else expect_str(value, config_key)


def expect_bool(value: Any, config_key: str) -> bool:
    if not isinstance(value, bool):
        raise _wrong_type(config_key, "a boolean", value)
    return value


def expect_int(value: Any, config_key: str) -> int:
    # bool is an int subclass; `size: true` is a typo, not 1.
    if isinstance(value, bool) or not isinstance(value, int):
        raise _wrong_type(config_key, "an integer", value)
    return value


def expect_float(value: Any, config_key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _wrong_type(config_key, "a number", value)
    return float(value)


def expect_list(value: Any, config_key: str) -> list[Any]:
    if not isinstance(value, list):
        raise _wrong_type(config_key, "a list", value)
    return value


def _wrong_type(config_key: str, expected: str, value: Any) -> TypeError:
    return TypeError(f"{config_key} must be {expected}, got {type(value).__name__}")
