"""Quote value object: a price plus where and when it was observed."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.bo_common.enums import PriceSource


@dataclass(frozen=True)
class Quote:
    price: Decimal
    source: PriceSource
    as_of: datetime

    def skew_seconds(self, moment: datetime) -> float:
        """Absolute distance between the observation time and ``moment``."""
        return abs((moment - self.as_of).total_seconds())

    def prices(self, moment: datetime, max_age_seconds: float) -> bool:
        """True when this quote is an oracle quote observed close enough to ``moment``."""
        return self.source.from_oracle and self.skew_seconds(moment) <= max_age_seconds
