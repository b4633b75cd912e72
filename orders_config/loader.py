"""
Configuration Loader (``orders_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen dataclasses
of ``orders_config.schema``.  Callers normally go through
``orders_config.get_active_config()``; ``load_config()`` is the entry point
for an explicit file (the runner's ``--config`` flag, tests).

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or out-of-range values  -> ``InvalidConfigError`` naming the key.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from orders_config.schema import (
    CarrierConfig,
    MasterCodeSeed,
    RecurringConfig,
    WindowConfig,
)
from orders_kernel.exceptions import InvalidConfigError

_KNOWN_CARRIERS = frozenset({"carrier_a", "carrier_b"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load and return a YAML file as a dict.

    Raises:
        FileNotFoundError: if path does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _int(data: dict[str, Any], key: str, default: int, *, minimum: int = 0) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfigError(key, f"expected an integer, got {value!r}")
    if value < minimum:
        raise InvalidConfigError(key, f"must be >= {minimum}, got {value}")
    return value


def _text(data: dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key, default)
    if value is None:
        return default
    # YAML reads codes such as 019543385101 as numbers unless quoted.
    if isinstance(value, int) and not isinstance(value, bool):
        raise InvalidConfigError(key, "codes must be quoted strings")
    return str(value)


def parse_window(data: dict[str, Any]) -> WindowConfig:
    window = WindowConfig(
        min_days=_int(data, "min_days", 6),
        max_days=_int(data, "max_days", 7),
    )
    if window.min_days > window.max_days:
        raise InvalidConfigError(
            "window",
            f"min_days ({window.min_days}) > max_days ({window.max_days})",
        )
    return window


def parse_carrier(data: dict[str, Any]) -> CarrierConfig:
    code = data.get("code")
    if code not in _KNOWN_CARRIERS:
        raise InvalidConfigError("carriers.code", f"unknown carrier {code!r}")

    aliases = data.get("aliases") or []
    if not isinstance(aliases, list) or not all(isinstance(a, str) and a for a in aliases):
        raise InvalidConfigError(f"carriers.{code}.aliases", "expected a list of labels")

    goods_max = data.get("goods_description_max_length")
    if goods_max is not None:
        goods_max = _int(data, "goods_description_max_length", 0, minimum=1)

    return CarrierConfig(
        code=code,
        aliases=tuple(aliases),
        address_max_length=_int(data, "address_max_length", 16, minimum=1),
        billing_customer_code=_text(data, "billing_customer_code"),
        freight_management_no=_text(data, "freight_management_no"),
        speed_designation=_text(data, "speed_designation"),
        default_copies=_text(data, "default_copies", "1"),
        goods_description_max_length=goods_max,
    )


def parse_master_code(table_name: str, data: dict[str, Any]) -> MasterCodeSeed:
    type_value = data.get("type_value")
    if not isinstance(type_value, str):
        raise InvalidConfigError(
            f"master_codes.{table_name}.type_value",
            f"expected a 'code:label' string, got {type_value!r}",
        )
    carrier = data.get("carrier")
    if carrier is not None and carrier not in _KNOWN_CARRIERS:
        raise InvalidConfigError(
            f"master_codes.{table_name}.carrier", f"unknown carrier {carrier!r}",
        )
    return MasterCodeSeed(
        table_name=table_name,
        type_value=type_value,
        name=str(data.get("name") or ""),
        carrier=carrier,
    )


def parse_config(data: dict[str, Any]) -> RecurringConfig:
    """Parse a configuration dict (already loaded from YAML)."""
    config_id = data.get("config_id")
    if not config_id:
        raise InvalidConfigError("config_id", "required")

    carriers = tuple(parse_carrier(c) for c in data.get("carriers") or [])
    codes = [c.code for c in carriers]
    if len(codes) != len(set(codes)):
        raise InvalidConfigError("carriers", f"duplicate carrier codes: {codes}")

    timeout = data.get("document_render_timeout_seconds", 30.0)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise InvalidConfigError(
            "document_render_timeout_seconds", f"must be a positive number, got {timeout!r}",
        )

    master_codes: list[MasterCodeSeed] = []
    for table_name, rows in (data.get("master_codes") or {}).items():
        master_codes.extend(parse_master_code(table_name, row) for row in rows or [])

    return RecurringConfig(
        config_id=str(config_id),
        version=_int(data, "version", 1, minimum=1),
        window=parse_window(data.get("window") or {}),
        carriers=carriers,
        auto_memo_suffix=_text(data, "auto_memo_suffix", "(recurring auto-created)"),
        document_render_timeout_seconds=float(timeout),
        identifier_length=_int(data, "identifier_length", 12, minimum=2),
        master_codes=tuple(master_codes),
    )


def load_config(path: Path | str) -> RecurringConfig:
    """Load and validate the configuration set at ``path``."""
    return parse_config(load_yaml_file(Path(path)))
