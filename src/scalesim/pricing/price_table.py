# src/scalesim/pricing/price_table.py
"""
Static instance pricing, keyed by machine type.

The table is built once by the process owner (see core.factory) and passed to
the scorer and recommenders; it is never mutated after loading.
"""

import json
import logging
from typing import Dict, List, Mapping

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class PriceDetails(BaseModel):
    pay_as_you_go: float = 0.0
    ri_1_year: float = 0.0
    ri_3_years: float = 0.0


class InstancePricing(BaseModel):
    instance_type: str
    vcpu: float = 0.0
    memory: float = 0.0
    edp_price: PriceDetails = Field(default_factory=PriceDetails)


class PricingDocument(BaseModel):
    results: List[InstancePricing] = Field(default_factory=list)


class PriceTable:
    """Read-only lookup of hourly price per machine type."""

    def __init__(self, prices: Mapping[str, float]):
        self._prices: Dict[str, float] = dict(prices)

    @classmethod
    def from_document(cls, document: PricingDocument, term: str = "ri_3_years") -> "PriceTable":
        return cls({item.instance_type: getattr(item.edp_price, term) for item in document.results})

    @classmethod
    def from_file(cls, path: str, term: str = "ri_3_years") -> "PriceTable":
        """
        Loads a pricing document of the form
        {"results": [{"instance_type": ..., "edp_price": {"ri_3_years": ...}}]}.
        """
        with open(path, "r", encoding="utf-8") as f:
            document = PricingDocument.model_validate(json.load(f))
        table = cls.from_document(document, term=term)
        logger.info("Loaded %d instance prices (%s) from %s", len(table), term, path)
        return table

    def price_of(self, machine_type: str) -> float:
        """Returns the price for the machine type, 0.0 if it is unknown."""
        if machine_type not in self._prices:
            logger.debug("No price known for machine type '%s', using 0.0", machine_type)
            return 0.0
        return self._prices[machine_type]

    def __len__(self) -> int:
        return len(self._prices)

    def __contains__(self, machine_type: str) -> bool:
        return machine_type in self._prices
