"""
Data models for the funding rate scanner.
"""

from .funding_rate import FundingRate, ExchangeName
from .opportunity import ArbitrageOpportunity, OpportunityType
from .snapshot import FundingSnapshot, error_payload
from .config import ScannerConfig, create_config

__all__ = [
    "FundingRate", "ExchangeName",
    "ArbitrageOpportunity", "OpportunityType",
    "FundingSnapshot", "error_payload",
    "ScannerConfig", "create_config"
]
