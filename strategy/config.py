"""
strategy/config.py - Engine configuration.

Global guards and the gas model, with per-network overrides.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from core.constants import (
    DEFAULT_BRIDGE_GAS,
    DEFAULT_FLASH_LOAN_GAS,
    DEFAULT_GAS_PER_LEG,
    DEFAULT_MAX_SLIPPAGE_BPS,
    STRATEGY_BASE_GAS,
    WEI_PER_NATIVE,
    StrategyKind,
)
from core.exceptions import ConfigError
from core.math import safe_int


@dataclass
class GasModel:
    """Gas units per attempt and their price in the borrowed asset."""

    base_gas: dict[StrategyKind, int] = field(default_factory=lambda: dict(STRATEGY_BASE_GAS))
    gas_per_leg: int = DEFAULT_GAS_PER_LEG
    flash_loan_gas: int = DEFAULT_FLASH_LOAN_GAS
    bridge_gas: int = DEFAULT_BRIDGE_GAS

    # Gas price in wei
    gas_price_wei: int = 0

    # Price of one native token in the smallest unit of each asset
    native_prices: dict[str, int] = field(default_factory=dict)

    def gas_units(self, kind: StrategyKind, leg_count: int, borrowed: bool, bridge_hops: int) -> int:
        units = self.base_gas.get(kind, 0) + self.gas_per_leg * leg_count + self.bridge_gas * bridge_hops
        if borrowed:
            units += self.flash_loan_gas
        return units

    def cost_in(self, asset: str, gas_units: int) -> int:
        """Overhead of gas_units expressed in asset (rounded down)."""
        native_price = self.native_prices.get(asset, 0)
        return gas_units * self.gas_price_wei * native_price // WEI_PER_NATIVE


@dataclass
class EngineConfig:
    """Full engine configuration."""

    # Profit floor applied on top of each request's min_profit
    min_global_profit: int = 0

    # Overhead above this is unprofitable (None = no cap)
    max_accepted_cost: Optional[int] = None

    default_max_slippage_bps: int = DEFAULT_MAX_SLIPPAGE_BPS

    gas: GasModel = field(default_factory=GasModel)

    # Per-network gas overrides, e.g. {"arbitrum": {"gas_price_wei": 10_000_000}}
    network_overrides: dict[str, dict[str, Any]] = field(default_factory=dict)

    # Kill switch triggers
    kill_switch_enabled: bool = False
    max_consecutive_failures: int = 0
    # In-flight failure share since the last release, in bps (0 = off)
    max_failure_rate_bps: int = 0

    def effective_min_profit(self, request_min_profit: int) -> int:
        return max(request_min_profit, self.min_global_profit)

    def gas_for(self, network: str = "") -> GasModel:
        """Gas model for a network (with overrides applied)."""
        overrides = self.network_overrides.get(network) if network else None
        if not overrides:
            return self.gas
        known = {k: v for k, v in overrides.items() if hasattr(self.gas, k)}
        return replace(self.gas, **known)


def _parse_gas(data: dict) -> GasModel:
    base_gas = dict(STRATEGY_BASE_GAS)
    for kind_name, units in (data.get("base_gas") or {}).items():
        try:
            base_gas[StrategyKind(str(kind_name).upper())] = safe_int(units)
        except ValueError as e:
            raise ConfigError(f"Unknown strategy kind in base_gas: {kind_name}") from e

    return GasModel(
        base_gas=base_gas,
        gas_per_leg=safe_int(data.get("gas_per_leg", DEFAULT_GAS_PER_LEG)),
        flash_loan_gas=safe_int(data.get("flash_loan_gas", DEFAULT_FLASH_LOAN_GAS)),
        bridge_gas=safe_int(data.get("bridge_gas", DEFAULT_BRIDGE_GAS)),
        gas_price_wei=safe_int(data.get("gas_price_wei", 0)),
        native_prices={
            str(asset): safe_int(price)
            for asset, price in (data.get("native_prices") or {}).items()
        },
    )


def engine_config_from_dict(data: dict) -> EngineConfig:
    """Build an EngineConfig from parsed YAML."""
    guards = data.get("guards") or {}
    kill_switch = data.get("kill_switch") or {}
    max_cost = guards.get("max_accepted_cost")

    overrides = {}
    for network, values in (data.get("networks") or {}).items():
        if values:
            overrides[str(network)] = {
                key: (safe_int(v) if key != "native_prices" else {a: safe_int(p) for a, p in v.items()})
                for key, v in values.items()
            }

    return EngineConfig(
        min_global_profit=safe_int(guards.get("min_global_profit", 0)),
        max_accepted_cost=None if max_cost is None else safe_int(max_cost),
        default_max_slippage_bps=safe_int(
            guards.get("default_max_slippage_bps", DEFAULT_MAX_SLIPPAGE_BPS)
        ),
        gas=_parse_gas(data.get("gas") or {}),
        network_overrides=overrides,
        kill_switch_enabled=bool(kill_switch.get("enabled", False)),
        max_consecutive_failures=safe_int(kill_switch.get("max_consecutive_failures", 0)),
        max_failure_rate_bps=safe_int(kill_switch.get("max_failure_rate_bps", 0)),
    )

