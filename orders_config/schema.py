"""
RecurringConfig schema.

Frozen dataclasses for the recurring order engine's configuration.  YAML
sets are parsed into these types by ``orders_config.loader``; services
only ever see the dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Execution window
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WindowConfig:
    """Days-before-shipping range in which a template fires (inclusive)."""

    min_days: int = 6
    max_days: int = 7


# ---------------------------------------------------------------------------
# Carriers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CarrierConfig:
    """Export settings for one carrier.

    ``aliases`` are the delivery-method labels routed to this carrier
    (exact match first, then prefix match).
    """

    code: str  # carrier_a, carrier_b
    aliases: tuple[str, ...]
    address_max_length: int = 16
    billing_customer_code: str = ""
    freight_management_no: str = ""
    speed_designation: str = ""
    default_copies: str = "1"
    goods_description_max_length: int | None = None


# ---------------------------------------------------------------------------
# Master data seed
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MasterCodeSeed:
    """One master code row as authored in YAML."""

    table_name: str  # invoice_type, cool_class, delivery_time, cargo_handling
    type_value: str  # "code:label"
    name: str
    carrier: str | None = None


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecurringConfig:
    """Complete configuration for one deployment of the engine."""

    config_id: str
    version: int
    window: WindowConfig = field(default_factory=WindowConfig)
    carriers: tuple[CarrierConfig, ...] = ()
    auto_memo_suffix: str = "(recurring auto-created)"
    document_render_timeout_seconds: float = 30.0
    identifier_length: int = 12
    master_codes: tuple[MasterCodeSeed, ...] = ()

    def carrier(self, code: str) -> CarrierConfig | None:
        """Settings for carrier ``code``, or None if not configured."""
        for carrier in self.carriers:
            if carrier.code == code:
                return carrier
        return None
