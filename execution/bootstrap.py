"""
execution/bootstrap.py - Build an engine from the YAML configuration.

Reads venues.yaml, tokens.yaml, providers.yaml, bridges.yaml and
engine.yaml from one config directory (ENGINE_CONFIG_DIR, else the
bundled config package).
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from capital.providers import SimulatedFlashLender
from capital.registry import ProviderRegistry
from chains.bridges import BridgeRegistry, SimulatedBridge
from config import CONFIG_DIR, load_bridges, load_engine, load_providers, load_tokens, load_venues
from core.constants import PROVIDER_FEE_BPS, PricingModel
from core.exceptions import ConfigError, VenueError
from core.logging import get_logger
from core.math import safe_int
from dex.adapters.simulated import (
    ConcentratedLiquidityPool,
    ConstantProductPool,
    SimulatedPool,
    SimulatedVenue,
    StableSwapPool,
    WeightedPool,
)
from dex.pricing.concentrated import get_sqrt_ratio_at_tick
from dex.registry import AssetAllowlist, VenueRegistry
from execution.balances import BalanceBook
from execution.engine import ArbitrageEngine
from monitoring.events import EventSink
from monitoring.ledger import StatisticsLedger
from strategy.config import EngineConfig, engine_config_from_dict

logger = get_logger("engine.bootstrap")


def resolve_config_dir(config_dir: Optional[Path] = None) -> Path:
    """Explicit dir, else $ENGINE_CONFIG_DIR, else the bundled config package."""
    if config_dir is not None:
        return Path(config_dir)
    env_dir = os.environ.get("ENGINE_CONFIG_DIR")
    return Path(env_dir) if env_dir else CONFIG_DIR


def _ints(values) -> list[int]:
    return [safe_int(v) for v in values]


def build_pool(model: PricingModel, cfg: Dict[str, Any]) -> SimulatedPool:
    """Build one pool from its venues.yaml entry."""
    tokens = list(cfg.get("tokens") or [])
    pool_id = str(cfg.get("id", ""))

    if model == PricingModel.CONSTANT_PRODUCT:
        if len(tokens) != 2:
            raise ConfigError(f"Constant-product pool needs 2 tokens: {tokens}")
        r0, r1 = _ints(cfg["reserves"])
        return ConstantProductPool(tokens[0], tokens[1], r0, r1, pool_id=pool_id)

    if model == PricingModel.CONCENTRATED_LIQUIDITY:
        if len(tokens) != 2:
            raise ConfigError(f"Concentrated pool needs 2 tokens: {tokens}")
        if "sqrt_price_x96" in cfg:
            sqrt_price = safe_int(cfg["sqrt_price_x96"])
        else:
            sqrt_price = get_sqrt_ratio_at_tick(safe_int(cfg.get("tick", 0)))
        positions = [tuple(_ints(p)) for p in cfg.get("positions") or []]
        return ConcentratedLiquidityPool.from_positions(
            tokens[0], tokens[1], sqrt_price, positions, pool_id=pool_id
        )

    if model == PricingModel.STABLE_SWAP:
        multipliers = cfg.get("precision_multipliers")
        return StableSwapPool(
            tokens,
            _ints(cfg["balances"]),
            amp=safe_int(cfg["amp"]),
            precision_multipliers=_ints(multipliers) if multipliers else None,
            pool_id=pool_id,
        )

    if model == PricingModel.WEIGHTED:
        return WeightedPool(
            tokens, _ints(cfg["balances"]), _ints(cfg["weights"]), pool_id=pool_id
        )

    raise ConfigError(f"Unsupported pricing model: {model}")


def build_venues(data: Dict[str, Any]) -> VenueRegistry:
    registry = VenueRegistry()
    for venue_id, cfg in (data.get("venues") or {}).items():
        try:
            model = PricingModel(str(cfg["pricing_model"]).upper())
        except (KeyError, ValueError) as e:
            raise ConfigError(f"Venue {venue_id}: bad pricing_model") from e

        venue = SimulatedVenue(
            venue_id=venue_id,
            pricing_model=model,
            fee_bps=safe_int(cfg.get("fee_bps", 30)),
            network=str(cfg.get("network", "")),
            enabled=bool(cfg.get("enabled", True)),
        )
        try:
            for pool_cfg in cfg.get("pools") or []:
                venue.add_pool(build_pool(model, pool_cfg))
        except (KeyError, TypeError, ValueError, VenueError) as e:
            raise ConfigError(f"Venue {venue_id}: bad pool config: {e}") from e
        registry.register(venue)
    return registry


def build_allowlist(data: Dict[str, Any]) -> AssetAllowlist:
    return AssetAllowlist(str(symbol) for symbol in (data.get("tokens") or {}))


def build_providers(data: Dict[str, Any]) -> ProviderRegistry:
    registry = ProviderRegistry()
    for provider_id, cfg in (data.get("providers") or {}).items():
        family = str(cfg.get("family", provider_id))
        if "fee_bps" in cfg:
            fee_bps = safe_int(cfg["fee_bps"])
        elif family in PROVIDER_FEE_BPS:
            fee_bps = PROVIDER_FEE_BPS[family]
        else:
            raise ConfigError(f"Provider {provider_id}: fee_bps required for family {family}")

        registry.register(SimulatedFlashLender(
            provider_id=provider_id,
            fee_bps=fee_bps,
            max_loan_amount=safe_int(cfg.get("max_loan_amount", 0)),
            liquidity={str(a): safe_int(v) for a, v in (cfg.get("liquidity") or {}).items()},
            enabled=bool(cfg.get("enabled", True)),
            network=str(cfg.get("network", "")),
        ))
    return registry


def build_bridges(data: Dict[str, Any]) -> BridgeRegistry:
    registry = BridgeRegistry()
    for cfg in data.get("bridges") or []:
        try:
            registry.register(SimulatedBridge(
                bridge_id=str(cfg["id"]),
                from_network=str(cfg["from_network"]),
                to_network=str(cfg["to_network"]),
                fee_bps=safe_int(cfg.get("fee_bps", 0)),
                flat_fee=safe_int(cfg.get("flat_fee", 0)),
                confirmation_time_s=safe_int(cfg.get("confirmation_time_s", 0)),
                enabled=bool(cfg.get("enabled", True)),
            ))
        except (KeyError, ValueError) as e:
            raise ConfigError(f"Bad bridge config {cfg}: {e}") from e
    return registry


def build_balances(data: Dict[str, Any]) -> BalanceBook:
    book = BalanceBook()
    for entry in data.get("inventory") or []:
        book.credit(str(entry["asset"]), safe_int(entry["amount"]), str(entry.get("network", "")))
    return book


def build_engine(
    config_dir: Optional[Path] = None,
    ledger: Optional[StatisticsLedger] = None,
    event_sink: Optional[EventSink] = None,
) -> ArbitrageEngine:
    """
    Build a ready-to-use engine over simulated venues, providers and bridges.

    Args:
        config_dir: Directory with the YAML files
        ledger: Shared ledger (default: a fresh one)
        event_sink: Event sink (default: structured logger)
    """
    directory = resolve_config_dir(config_dir)

    engine_data = _optional(load_engine, directory)
    config: EngineConfig = engine_config_from_dict(engine_data)

    engine = ArbitrageEngine(
        venues=build_venues(load_venues(directory)),
        allowlist=build_allowlist(load_tokens(directory)),
        providers=build_providers(_optional(load_providers, directory)),
        bridges=build_bridges(_optional(load_bridges, directory)),
        config=config,
        ledger=ledger,
        balances=build_balances(engine_data),
        event_sink=event_sink,
    )

    logger.info(
        f"Engine built from {directory}",
        extra={
            "context": {
                "config_dir": str(directory),
                "venues": len(engine.venues),
                "providers": len(engine.providers),
                "bridges": len(engine.bridges),
                "assets": len(engine.allowlist),
            }
        },
    )
    return engine


def _optional(loader, directory: Path) -> Dict[str, Any]:
    try:
        return loader(directory)
    except FileNotFoundError:
        return {}
