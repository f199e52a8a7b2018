"""
Configuration settings for the position manager.
"""

import json
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.trading_mode import TradingMode
from ..pricing.tick_math import FEE_TIER_TICK_SPACING

ENV_NESTED_DELIMITER = "__"


class Web3Config(BaseModel):
    """Configuration for Web3 connections."""

    provider_url: str = Field(default="", description="Web3 provider URL")
    private_key: str = Field(default="", description="Private key for transactions")
    network: str = Field(default="mainnet", description="Network name")
    receipt_timeout: int = Field(default=120, description="Seconds to wait for a receipt")


class TokenConfig(BaseModel):
    """One of the two pool tokens."""

    address: str = Field(..., description="ERC-20 contract address")
    symbol: str = Field(..., description="Token symbol")
    decimals: int = Field(..., ge=0, le=18, description="Token decimals")


class PoolConfig(BaseModel):
    """Target pool and position manager contracts."""

    pool_address: str = Field(
        default="0x99ac8cA7087fA4A2A1FB6357269965A2014ABc35",
        description="Pool contract address"
    )
    position_manager_address: str = Field(
        default="0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
        description="NonfungiblePositionManager address"
    )
    fee_tier: int = Field(default=3000, description="Fee tier in hundredths of a bip")
    tick_spacing: Optional[int] = Field(default=None, description="Tick spacing, derived from the fee tier if unset")

    @model_validator(mode="after")
    def derive_tick_spacing(self) -> "PoolConfig":
        if self.tick_spacing is None:
            if self.fee_tier not in FEE_TIER_TICK_SPACING:
                raise ValueError(f"Unknown fee tier {self.fee_tier}; set tick_spacing explicitly")
            self.tick_spacing = FEE_TIER_TICK_SPACING[self.fee_tier]
        if self.tick_spacing <= 0:
            raise ValueError("Tick spacing must be positive")
        return self


class OracleConfig(BaseModel):
    """Price feed for token A in USD."""

    aggregator_address: str = Field(
        default="0xF4030086522a5bEEa4988F8cA5B36dbC97BeE88c",
        description="Chainlink aggregator address"
    )
    staleness_seconds: int = Field(default=3600, gt=0, description="Maximum accepted quote age")


class PositionConfig(BaseModel):
    """Position ownership, range policy and fee target."""

    owner_address: str = Field(default="", description="Owner allowed to call owner-only operations")
    range_percent: Decimal = Field(default=Decimal('15'), description="Range half-width in percent")
    target_weekly_fees: Decimal = Field(default=Decimal('600'), gt=0, description="Weekly fee target in USD")
    state_file: str = Field(default="state/position.json", description="Persisted manager state")

    @field_validator("range_percent")
    @classmethod
    def check_range(cls, value: Decimal) -> Decimal:
        if not (Decimal('0') < value < Decimal('100')):
            raise ValueError("range_percent must be between 0 and 100 (exclusive)")
        return value


class MonitoringConfig(BaseModel):
    """Alert thresholds for distance to the range bounds."""

    price_warning_percent: Decimal = Field(default=Decimal('5'), description="Warn within this distance")
    price_urgent_percent: Decimal = Field(default=Decimal('2'), description="Urgent within this distance")

    @model_validator(mode="after")
    def check_order(self) -> "MonitoringConfig":
        if self.price_urgent_percent > self.price_warning_percent:
            raise ValueError("Urgent threshold must not exceed the warning threshold")
        return self


class PaperConfig(BaseModel):
    """Starting point for the simulated collaborators."""

    current_tick: int = Field(default=0, description="Starting pool tick")
    oracle_price: Decimal = Field(default=Decimal('60000'), gt=0, description="Token A price in USD")
    owner_balance_a: int = Field(default=0, ge=0, description="Owner token A balance")
    owner_balance_b: int = Field(default=0, ge=0, description="Owner token B balance")
    manager_balance_a: int = Field(default=0, ge=0, description="Manager token A holdings")
    manager_balance_b: int = Field(default=0, ge=0, description="Manager token B holdings")


class ManagerConfig(BaseModel):
    """Main position manager configuration."""

    environment: str = Field(default="dev", description="Environment name")
    trading_mode: TradingMode = Field(default=TradingMode.PAPER)

    web3: Web3Config = Field(default_factory=Web3Config)
    token_a: TokenConfig = Field(default_factory=lambda: TokenConfig(
        address="0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", symbol="WBTC", decimals=8
    ))
    token_b: TokenConfig = Field(default_factory=lambda: TokenConfig(
        address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", symbol="USDC", decimals=6
    ))
    pool: PoolConfig = Field(default_factory=PoolConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    position: PositionConfig = Field(default_factory=PositionConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    paper: PaperConfig = Field(default_factory=PaperConfig)

    # Logging
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = None


def _env_overrides(environ: Dict[str, str]) -> Dict[str, Any]:
    """Collect ``SECTION__FIELD`` variables for known config sections."""
    overrides: Dict[str, Any] = {}
    sections = set(ManagerConfig.model_fields)

    for key, value in environ.items():
        if ENV_NESTED_DELIMITER not in key:
            continue
        section, name = key.lower().split(ENV_NESTED_DELIMITER, 1)
        if section in sections:
            overrides.setdefault(section, {})[name] = value

    for key in ("log_level", "log_file", "trading_mode"):
        if key.upper() in environ:
            overrides[key] = environ[key.upper()]

    return overrides


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(environment: str = "dev", config_path: Optional[Path] = None) -> ManagerConfig:
    """
    Load configuration for the specified environment.

    Values come from the optional JSON file, then ``config/<environment>.env``
    (or ``.env``), then the process environment, later sources winning.
    Nested fields use ``__``, e.g. ``WEB3__PROVIDER_URL``.

    Args:
        environment: Environment name (dev, test, prod)
        config_path: Optional path to a JSON configuration file

    Returns:
        ManagerConfig: Loaded configuration
    """
    env_config_path = Path(f"config/{environment}.env")
    if env_config_path.exists():
        load_dotenv(env_config_path)
    else:
        load_dotenv()

    data: Dict[str, Any] = {}
    if config_path and Path(config_path).exists():
        with Path(config_path).open("r", encoding="utf-8") as f:
            data = json.load(f)

    data = _merge(data, _env_overrides(dict(os.environ)))
    data["environment"] = environment
    return ManagerConfig(**data)
