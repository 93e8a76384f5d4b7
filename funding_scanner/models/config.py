"""
Configuration Models - Pydantic configuration with validation
=============================================================

Models holding every tunable of the scanner (endpoints, timeouts, OKX
batching, cache TTL, broadcast interval, arbitrage thresholds) with their
defaults, bounds and documentation.
"""

from typing import Any, Dict, List, Optional
from enum import Enum
import logging
import os

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .funding_rate import ExchangeName


logger = logging.getLogger(__name__)

ENV_PREFIX = "FUNDING_SCANNER_"


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# =============================================================================
# EXCHANGE CONFIGURATION
# =============================================================================

class ExchangeEndpointConfig(BaseModel):
    """Endpoints and request options of one exchange data source"""

    enabled: bool = Field(default=True, description="Source enabled")
    name: str = Field(..., description="Display name used in rates (ex: Binance)")
    rates_url: str = Field(..., description="Endpoint returning the funding rates or instrument listing")
    info_url: Optional[str] = Field(
        default=None,
        description="Companion metadata endpoint carrying settlement intervals"
    )
    method: str = Field(default="GET", description="HTTP method of the rates call")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra HTTP headers")
    body: Optional[Any] = Field(default=None, description="JSON body sent with the rates call")
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Per-call timeout in seconds"
    )

    @field_validator('method')
    @classmethod
    def validate_method(cls, v):
        v = v.upper()
        if v not in ("GET", "POST"):
            raise ValueError(f"Unsupported HTTP method: {v}")
        return v


class OKXEndpointConfig(ExchangeEndpointConfig):
    """OKX needs one extra call per instrument, issued in paced batches"""

    funding_rate_url: str = Field(
        default="https://www.okx.com/api/v5/public/funding-rate",
        description="Per-instrument funding rate endpoint (instId query parameter)"
    )
    batch_size: int = Field(default=50, ge=1, le=500, description="Instruments per batch")
    batch_delay_seconds: float = Field(
        default=0.2,
        ge=0,
        le=10,
        description="Pause between two batches"
    )
    per_call_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout of each per-instrument call"
    )


class ExchangesConfig(BaseModel):
    """Configuration of every supported exchange, in fetch order"""

    binance: ExchangeEndpointConfig = Field(
        default_factory=lambda: ExchangeEndpointConfig(
            name=ExchangeName.BINANCE.value,
            rates_url="https://fapi.binance.com/fapi/v1/premiumIndex",
            info_url="https://fapi.binance.com/fapi/v1/fundingInfo"
        )
    )

    bybit: ExchangeEndpointConfig = Field(
        default_factory=lambda: ExchangeEndpointConfig(
            name=ExchangeName.BYBIT.value,
            rates_url="https://api.bybit.com/v5/market/tickers?category=linear",
            info_url="https://api.bybit.com/v5/market/instruments-info?category=linear"
        )
    )

    bitget: ExchangeEndpointConfig = Field(
        default_factory=lambda: ExchangeEndpointConfig(
            name=ExchangeName.BITGET.value,
            rates_url="https://api.bitget.com/api/v2/mix/market/tickers?productType=USDT-FUTURES",
            info_url="https://api.bitget.com/api/v2/mix/market/contracts?productType=USDT-FUTURES",
            headers={"Content-Type": "application/json", "locale": "zh-CN"}
        )
    )

    okx: OKXEndpointConfig = Field(
        default_factory=lambda: OKXEndpointConfig(
            name=ExchangeName.OKX.value,
            rates_url="https://www.okx.com/api/v5/public/mark-price?instType=SWAP"
        )
    )

    hyperliquid: ExchangeEndpointConfig = Field(
        default_factory=lambda: ExchangeEndpointConfig(
            name=ExchangeName.HYPERLIQUID.value,
            rates_url="https://api.hyperliquid.xyz/info",
            method="POST",
            headers={"Content-Type": "application/json"},
            body={"type": "metaAndAssetCtxs"}
        )
    )

    gate: ExchangeEndpointConfig = Field(
        default_factory=lambda: ExchangeEndpointConfig(
            name=ExchangeName.GATE.value,
            rates_url="https://api.gateio.ws/api/v4/futures/usdt/contracts"
        )
    )

    def items(self) -> List[tuple]:
        """(key, config) pairs in fetch order"""
        return [(key, getattr(self, key)) for key in type(self).model_fields]


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

class ArbitrageConfig(BaseModel):
    """Profitability thresholds of the arbitrage detector (percent values)"""

    min_expected_profit: float = Field(
        default=0.005,
        ge=0,
        description="Minimum expected profit per settlement for different-period arbitrage (0.005%)"
    )

    min_annual_yield: float = Field(
        default=1.0,
        ge=0,
        description="Minimum annualized yield for same-period arbitrage (1%)"
    )

    noise_floor: float = Field(
        default=0.001,
        ge=0,
        description="Rate differences below this are ignored (0.001%)"
    )

    default_settlement_interval: float = Field(
        default=8.0,
        gt=0,
        le=24,
        description="Settlement interval in hours when the exchange does not report one"
    )


class CacheConfig(BaseModel):
    """Snapshot cache configuration"""

    ttl_seconds: float = Field(
        default=60.0,
        ge=0,
        le=3600,
        description="Age under which on-demand requests are served from cache"
    )


class DistributionConfig(BaseModel):
    """Push distribution configuration"""

    broadcast_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        le=3600,
        description="Interval of the authoritative refresh + broadcast"
    )


class ServerConfig(BaseModel):
    """HTTP/WebSocket transport configuration"""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration"""

    level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log record format"
    )
    file: Optional[str] = Field(default=None, description="Optional rotating log file")
    max_size_mb: int = Field(default=50, ge=1, le=1024, description="Log file size before rotation")
    backup_count: int = Field(default=5, ge=0, le=100, description="Rotated files kept")

    model_config = ConfigDict(use_enum_values=True)


# =============================================================================
# MAIN CONFIGURATION
# =============================================================================

class ScannerConfig(BaseModel):
    """Complete scanner configuration"""

    exchanges: ExchangesConfig = Field(default_factory=ExchangesConfig)
    arbitrage: ArbitrageConfig = Field(default_factory=ArbitrageConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    distribution: DistributionConfig = Field(default_factory=DistributionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode='after')
    def validate_consistency(self):
        """At least one exchange must be enabled"""
        if not self.get_enabled_exchanges():
            raise ValueError("At least one exchange must be enabled")
        return self

    def get_exchange_config(self, exchange_key: str) -> Optional[ExchangeEndpointConfig]:
        """Get the configuration of one exchange by key (ex: "okx")"""
        return getattr(self.exchanges, exchange_key.lower(), None)

    def get_enabled_exchanges(self) -> List[str]:
        """Keys of the enabled exchanges, in fetch order"""
        return [key for key, config in self.exchanges.items() if config.enabled]


# =============================================================================
# CONFIGURATION LOADER
# =============================================================================

def load_config_from_env() -> Dict[str, Any]:
    """Load configuration overrides from environment variables"""
    config: Dict[str, Any] = {}

    if os.getenv(f'{ENV_PREFIX}LOG_LEVEL'):
        config['logging'] = {'level': os.getenv(f'{ENV_PREFIX}LOG_LEVEL').upper()}

    if os.getenv(f'{ENV_PREFIX}CACHE_TTL'):
        config['cache'] = {'ttl_seconds': float(os.getenv(f'{ENV_PREFIX}CACHE_TTL'))}

    if os.getenv(f'{ENV_PREFIX}BROADCAST_INTERVAL'):
        config['distribution'] = {
            'broadcast_interval_seconds': float(os.getenv(f'{ENV_PREFIX}BROADCAST_INTERVAL'))
        }

    server_config = {}
    if os.getenv(f'{ENV_PREFIX}HOST'):
        server_config['host'] = os.getenv(f'{ENV_PREFIX}HOST')
    if os.getenv(f'{ENV_PREFIX}PORT'):
        server_config['port'] = int(os.getenv(f'{ENV_PREFIX}PORT'))
    if server_config:
        config['server'] = server_config

    if os.getenv(f'{ENV_PREFIX}DISABLED_EXCHANGES'):
        disabled = os.getenv(f'{ENV_PREFIX}DISABLED_EXCHANGES').split(',')
        config['exchanges'] = {
            name.strip().lower(): {'enabled': False} for name in disabled if name.strip()
        }

    return config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into base, recursing into nested dicts"""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _with_exchange_defaults(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Fill partial exchange sections with their default endpoints"""
    exchanges = config_dict.get('exchanges')
    if not isinstance(exchanges, dict):
        return config_dict

    defaults = ExchangesConfig().model_dump()
    unknown = set(exchanges) - set(defaults)
    if unknown:
        raise ValueError(f"Unknown exchanges in configuration: {sorted(unknown)}")

    filled = dict(config_dict)
    filled['exchanges'] = {
        key: _deep_merge(defaults[key], value or {}) for key, value in exchanges.items()
    }
    return filled


def create_config(config_file: Optional[str] = None,
                  env_override: bool = True) -> ScannerConfig:
    """
    Create a complete configuration

    Args:
        config_file: Path to a YAML configuration file
        env_override: If True, environment variables override the file
    """
    config_dict: Dict[str, Any] = {}

    if config_file and os.path.exists(config_file):
        with open(config_file, 'r') as f:
            file_config = yaml.safe_load(f)
            if file_config:
                config_dict = _deep_merge(config_dict, file_config)
        logger.info(f"Loaded configuration from {config_file}")
    elif config_file:
        logger.warning(f"Config file {config_file} not found, using defaults")

    if env_override:
        config_dict = _deep_merge(config_dict, load_config_from_env())

    return ScannerConfig(**_with_exchange_defaults(config_dict))


def save_sample_config(output: str) -> None:
    """Write the default configuration as YAML"""
    directory = os.path.dirname(output)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(output, 'w') as f:
        yaml.safe_dump(ScannerConfig().model_dump(mode='json'), f,
                       default_flow_style=False, sort_keys=False, indent=2)

    logger.info(f"Sample configuration saved to {output}")
