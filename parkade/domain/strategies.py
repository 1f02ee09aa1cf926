# File: parkade/domain/strategies.py
"""
Strategy Pattern Implementation for the Parkade billing engine

This module encapsulates the billing rules that can vary independently
of the facility aggregate:
1. Pricing Strategies - Hourly rate and parking fee for a session
2. Fine Strategies - Overstay penalty for each FineScheme

Benefits:
- New fine schemes or pricing models can be added without touching the facility
- Each strategy is independently testable
- The active fine scheme can be swapped at runtime
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Union
from decimal import Decimal
import logging
import math

from .models import (
    Money, SpotClass, VehicleClass, FineScheme, InvalidInput
)


# ============================================================================
# STRATEGY INTERFACES
# ============================================================================

class PricingStrategy(ABC):
    """
    Abstract base class for pricing strategies
    Defines the interface for parking fee calculation
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def hourly_rate(self, spot_class: SpotClass, vehicle_class: VehicleClass) -> Money:
        """Rate charged per billed hour for this spot/vehicle pairing"""
        pass

    def calculate_parking_fee(
        self,
        spot_class: SpotClass,
        vehicle_class: VehicleClass,
        billed_hours: int
    ) -> Money:
        """Parking fee = billed hours x hourly rate"""
        if billed_hours < 1:
            raise InvalidInput(f"Billed hours must be at least 1, got {billed_hours}")
        return self.hourly_rate(spot_class, vehicle_class) * billed_hours

    def get_strategy_name(self) -> str:
        """Get human-readable strategy name"""
        return self.__class__.__name__.replace("Strategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} Strategy"


class FineStrategy(ABC):
    """
    Abstract base class for overstay fine strategies
    A stay is overdue once billed hours exceed the threshold
    """

    scheme: FineScheme

    def __init__(self, threshold_hours: int, currency: str = "MYR"):
        if threshold_hours < 1:
            raise InvalidInput("Overstay threshold must be at least 1 hour")
        self.threshold_hours = threshold_hours
        self.currency = currency
        self.logger = logging.getLogger(self.__class__.__name__)

    def overstay_hours(self, billed_hours: int) -> int:
        """Billed hours beyond the threshold (0 when not overdue)"""
        return max(0, billed_hours - self.threshold_hours)

    def calculate_overstay_fine(self, billed_hours: int) -> Money:
        """Fine for the stay; zero when within the threshold"""
        excess = self.overstay_hours(billed_hours)
        if excess == 0:
            return Money.zero(self.currency)
        fine = self._fine_for_excess(excess)
        self.logger.debug(f"{self.scheme.value} fine for {excess}h overstay: {fine.format()}")
        return fine

    @abstractmethod
    def _fine_for_excess(self, excess_hours: int) -> Money:
        pass

    def __str__(self) -> str:
        return f"{self.scheme.value.title()} fine scheme"


# ============================================================================
# PRICING STRATEGIES
# ============================================================================

class StandardPricingStrategy(PricingStrategy):
    """
    Strategy: per-spot-class hourly rates

    Handicapped concession (when enabled):
    - Handicapped vehicle in a Handicapped spot parks free
    - Handicapped vehicle in any other spot pays the Handicapped rate
    """

    def __init__(
        self,
        base_rates: Optional[Dict[SpotClass, Money]] = None,
        handicapped_concession: bool = True,
        currency: str = "MYR"
    ):
        super().__init__()
        self.currency = currency
        self.base_rates: Dict[SpotClass, Money] = {
            spot_class: Money(spot_class.base_rate, currency) for spot_class in SpotClass
        }
        if base_rates:
            for spot_class, rate in base_rates.items():
                self.base_rates[SpotClass.parse(spot_class)] = Money.of(rate, currency)
        self.handicapped_concession = handicapped_concession

    def hourly_rate(self, spot_class: SpotClass, vehicle_class: VehicleClass) -> Money:
        if self.handicapped_concession and vehicle_class == VehicleClass.HANDICAPPED_VEHICLE:
            if spot_class == SpotClass.HANDICAPPED:
                return Money.zero(self.currency)
            return self.base_rates[SpotClass.HANDICAPPED]
        return self.base_rates[spot_class]


# ============================================================================
# FINE STRATEGIES
# ============================================================================

class FixedFineStrategy(FineStrategy):
    """Strategy: flat fine once the stay is overdue (default 50.00)"""

    scheme = FineScheme.FIXED

    def __init__(self, threshold_hours: int = 24, fine_amount: Union[Money, Decimal, float] = Decimal('50.00'),
                 currency: str = "MYR"):
        super().__init__(threshold_hours, currency)
        self.fine_amount = Money.of(fine_amount, currency)

    def _fine_for_excess(self, excess_hours: int) -> Money:
        return self.fine_amount


class ProgressiveFineStrategy(FineStrategy):
    """
    Strategy: the flat fine is charged again for every started
    threshold-length block of overstay (25h -> 1x, 48h -> 1x, 49h -> 2x)
    """

    scheme = FineScheme.PROGRESSIVE

    def __init__(self, threshold_hours: int = 24, fine_amount: Union[Money, Decimal, float] = Decimal('50.00'),
                 currency: str = "MYR"):
        super().__init__(threshold_hours, currency)
        self.fine_amount = Money.of(fine_amount, currency)

    def _fine_for_excess(self, excess_hours: int) -> Money:
        blocks = math.ceil(excess_hours / self.threshold_hours)
        return self.fine_amount * blocks


class HourlyFineStrategy(FineStrategy):
    """Strategy: a per-hour penalty for each billed hour beyond the threshold"""

    scheme = FineScheme.HOURLY

    def __init__(self, threshold_hours: int = 24, hourly_fine: Union[Money, Decimal, float] = Decimal('5.00'),
                 currency: str = "MYR"):
        super().__init__(threshold_hours, currency)
        self.hourly_fine = Money.of(hourly_fine, currency)

    def _fine_for_excess(self, excess_hours: int) -> Money:
        return self.hourly_fine * excess_hours


# ============================================================================
# OVERSTAY POLICY AND STRATEGY FACTORY
# ============================================================================

@dataclass(frozen=True)
class OverstayPolicy:
    """Value Object: parameters shared by every fine scheme"""
    threshold_hours: int = 24
    fine_amount: Decimal = Decimal('50.00')
    hourly_fine: Decimal = Decimal('5.00')
    currency: str = "MYR"

    def __post_init__(self):
        if self.threshold_hours < 1:
            raise InvalidInput("Overstay threshold must be at least 1 hour")
        if Decimal(str(self.fine_amount)) < 0 or Decimal(str(self.hourly_fine)) < 0:
            raise InvalidInput("Overstay fines cannot be negative")


class FineStrategyFactory:
    """Creates the fine strategy for a scheme from the facility's overstay policy"""

    @staticmethod
    def create(scheme: Union[FineScheme, str], policy: Optional[OverstayPolicy] = None) -> FineStrategy:
        scheme = FineScheme.parse(scheme)
        policy = policy or OverstayPolicy()

        if scheme == FineScheme.FIXED:
            return FixedFineStrategy(policy.threshold_hours, policy.fine_amount, policy.currency)
        if scheme == FineScheme.PROGRESSIVE:
            return ProgressiveFineStrategy(policy.threshold_hours, policy.fine_amount, policy.currency)
        return HourlyFineStrategy(policy.threshold_hours, policy.hourly_fine, policy.currency)
