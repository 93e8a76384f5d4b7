"""
Snapshot data model.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Tuple

from .funding_rate import FundingRate
from .opportunity import ArbitrageOpportunity, OpportunityType
from funding_scanner.utils.time_utils import get_utc_datetime, to_iso_string


@dataclass(frozen=True)
class FundingSnapshot:
    """Funding rates and opportunities at one point in time"""
    rates: Tuple[FundingRate, ...]
    opportunities: Tuple[ArbitrageOpportunity, ...]
    fetched_at: datetime = field(default_factory=get_utc_datetime)
    exchange_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def age_seconds(self) -> float:
        """Age of the snapshot in seconds"""
        return (get_utc_datetime() - self.fetched_at).total_seconds()

    def opportunities_of_type(self, opportunity_type: OpportunityType) -> List[ArbitrageOpportunity]:
        return [opp for opp in self.opportunities if opp.type == opportunity_type]

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation expected by the dashboard"""
        return {
            "success": True,
            "data": [rate.to_dict() for rate in self.rates],
            "arbitrageOpportunities": [opp.to_dict() for opp in self.opportunities],
            "lastUpdate": to_iso_string(self.fetched_at),
            "debug": {
                f"{name.lower()}Count": count for name, count in self.exchange_counts.items()
            },
        }


def error_payload(message: str) -> Dict[str, Any]:
    """Wire representation of a failed pull"""
    return {
        "success": False,
        "data": [],
        "arbitrageOpportunities": [],
        "lastUpdate": to_iso_string(get_utc_datetime()),
        "error": message,
    }
