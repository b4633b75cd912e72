"""
orders_config -- configuration entrypoint for the recurring order engine.

Responsibility:
    Provides ``get_active_config()``, which returns the ``RecurringConfig``
    built from the bundled default set (``sets/default.yaml``) or from an
    explicit path.  Services receive the config object by injection and
    never read YAML themselves.

Architecture position:
    Configuration -- sits above ``orders_kernel`` and below
    ``orders_recurring``.  The kernel MUST NEVER import from
    ``orders_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``InvalidConfigError`` -- a value is missing or out of range.
"""

from __future__ import annotations

from pathlib import Path

from orders_config.loader import load_config
from orders_config.schema import (
    CarrierConfig,
    MasterCodeSeed,
    RecurringConfig,
    WindowConfig,
)
from orders_kernel.logging_config import get_logger

logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
_DEFAULT_SET = "default.yaml"


def get_active_config(path: Path | str | None = None) -> RecurringConfig:
    """Return the active configuration.

    Loads ``path`` when given, otherwise the bundled default set.  Emits a
    ``config_loaded`` trace with the config id and version.
    """
    source = Path(path) if path is not None else _DEFAULT_CONFIG_DIR / _DEFAULT_SET
    config = load_config(source)
    logger.info(
        "config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "source": str(source),
            "carrier_count": len(config.carriers),
            "master_code_count": len(config.master_codes),
        },
    )
    return config


__all__ = [
    "CarrierConfig",
    "MasterCodeSeed",
    "RecurringConfig",
    "WindowConfig",
    "get_active_config",
    "load_config",
]
