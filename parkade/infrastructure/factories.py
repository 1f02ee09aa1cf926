# File: parkade/infrastructure/factories.py
"""
Factory Pattern Implementation for the Parkade engine

This module implements the factories that assemble the engine:
1. Time Sources - System and manual clocks, ticket-id generation
2. Domain Object Factories - Spots, floors and the facility aggregate
3. DTO Factories - Mapping domain objects to application DTOs

Key Benefits:
- Centralized object creation logic
- The facility is built once from configuration and injected, never global
- Clocks and id generators are swappable for deterministic tests
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Optional, Dict, List, Union
from datetime import datetime, timedelta
import logging
import threading

from ..domain.models import (
    ParkingSpot, SpotView, Floor, Ticket, Bill, FloorOccupancy,
    SpotClass, Money, LicensePlate
)
from ..domain.aggregates import ParkingFacility, Clock, TicketIdSource
from ..domain.strategies import StandardPricingStrategy, OverstayPolicy
from ..application.dtos import (
    FacilityConfig, SpotDTO, TicketDTO, BillDTO, FloorOccupancyDTO
)

T = TypeVar('T')


# ============================================================================
# TIME SOURCES
# ============================================================================

class SystemClock:
    """Wall clock backed by datetime.now()"""

    def now(self) -> datetime:
        return datetime.now()


class ManualClock:
    """
    Clock that only moves when told to
    Used by tests and simulations to control billing time
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, 8, 0, 0)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._now = moment

    def advance(self, delta: Optional[timedelta] = None, **kwargs) -> datetime:
        """Move forward by a timedelta or timedelta keyword arguments (minutes=61)"""
        step = delta if delta is not None else timedelta(**kwargs)
        with self._lock:
            self._now = self._now + step
            return self._now


class TicketIdGenerator:
    """
    Ticket ids of the form T-<PLATE>-<millis>

    The millisecond part is taken from the clock but never repeats: when two
    tickets are issued in the same millisecond (or the clock stands still or
    goes back) the previous value is bumped by one.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or SystemClock()
        self._last_millis = 0
        self._lock = threading.Lock()

    def next_id(self, plate: str) -> str:
        plate_value = LicensePlate.parse(plate).value
        millis = int(self._clock.now().timestamp() * 1000)
        with self._lock:
            if millis <= self._last_millis:
                millis = self._last_millis + 1
            self._last_millis = millis
        return f"T-{plate_value}-{millis}"


# ============================================================================
# FACTORY INTERFACES
# ============================================================================

class Factory(ABC, Generic[T]):
    """Base factory interface"""

    @abstractmethod
    def create(self, *args, **kwargs) -> T:
        """Create an instance of T"""
        pass


# ============================================================================
# DOMAIN OBJECT FACTORIES
# ============================================================================

class FloorFactory(Factory[Floor]):
    """Creates floors with spots laid out in spot-class order"""

    def create(self, number: int, spot_counts: Dict[SpotClass, int]) -> Floor:
        """
        Create a floor

        Spots are numbered from 1 within the floor and created class by class
        in SpotClass order: Compact, Regular, Handicapped, Reserved.
        """
        spots: List[ParkingSpot] = []
        index = 1
        for spot_class in SpotClass:
            for _ in range(spot_counts.get(spot_class, 0)):
                spots.append(ParkingSpot(number, index, spot_class))
                index += 1
        return Floor(number, spots)

    def create_many(self, count: int, spot_counts: Dict[SpotClass, int]) -> List[Floor]:
        return [self.create(number, spot_counts) for number in range(1, count + 1)]


class FacilityFactory(Factory[ParkingFacility]):
    """Builds a ParkingFacility from a FacilityConfig"""

    def __init__(self, floor_factory: Optional[FloorFactory] = None):
        self.floor_factory = floor_factory or FloorFactory()
        self.logger = logging.getLogger(self.__class__.__name__)

    def create(
        self,
        config: Optional[Union[FacilityConfig, Dict]] = None,
        clock: Optional[Clock] = None,
        id_generator: Optional[TicketIdSource] = None,
        facility_id: Optional[str] = None
    ) -> ParkingFacility:
        """
        Create a facility

        Args:
            config: FacilityConfig or plain dict; defaults when omitted
            clock: Time source (SystemClock by default)
            id_generator: Ticket-id source sharing the clock by default
            facility_id: Aggregate id (random uuid by default)
        """
        if config is None:
            config = FacilityConfig()
        elif isinstance(config, dict):
            config = FacilityConfig.from_dict(config)

        clock = clock or SystemClock()
        id_generator = id_generator or TicketIdGenerator(clock)

        floors = self.floor_factory.create_many(config.floors, config.spot_counts())
        pricing = StandardPricingStrategy(
            base_rates={sc: Money(rate, config.currency) for sc, rate in config.rates().items()},
            handicapped_concession=config.handicapped_concession,
            currency=config.currency
        )
        policy = OverstayPolicy(
            threshold_hours=config.overstay_threshold_hours,
            fine_amount=config.overstay_fine,
            hourly_fine=config.overstay_hourly_fine,
            currency=config.currency
        )

        facility = ParkingFacility(
            floors=floors,
            clock=clock,
            id_generator=id_generator,
            pricing_strategy=pricing,
            overstay_policy=policy,
            fine_scheme=config.fine_scheme,
            currency=config.currency,
            id=facility_id
        )
        self.logger.debug(
            f"Built facility {facility.id}: {config.floors} floors x "
            f"{sum(config.spots_per_floor.values())} spots, scheme {config.fine_scheme}"
        )
        return facility

    def create_default(self, clock: Optional[Clock] = None) -> ParkingFacility:
        """Standard 3-floor facility with default rates and the fixed fine scheme"""
        return self.create(FacilityConfig(), clock=clock)


# ============================================================================
# DTO FACTORIES
# ============================================================================

class DTOFactory:
    """Factory for creating DTOs from domain objects"""

    @staticmethod
    def create_spot_dto(spot: SpotView) -> SpotDTO:
        occupant = spot.occupant
        return SpotDTO(
            spot_id=spot.id,
            floor_number=spot.floor_number,
            index=spot.index,
            spot_class=spot.spot_class.value,
            is_occupied=spot.is_occupied,
            occupant_plate=occupant.license_plate.value if occupant else None
        )

    @staticmethod
    def create_ticket_dto(ticket: Ticket) -> TicketDTO:
        return TicketDTO(
            ticket_id=ticket.ticket_id,
            license_plate=ticket.license_plate.value,
            spot_id=ticket.spot_id,
            entry_time=ticket.entry_time,
            vehicle_class=ticket.vehicle_class.value
        )

    @staticmethod
    def create_bill_dto(bill: Bill) -> BillDTO:
        return BillDTO(
            ticket=DTOFactory.create_ticket_dto(bill.ticket),
            billed_hours=bill.billed_hours,
            hourly_rate=bill.hourly_rate.amount,
            parking_fee=bill.parking_fee.amount,
            overstay_fine=bill.overstay_fine.amount,
            outstanding_fines=bill.outstanding_fines.amount,
            fine=bill.fine.amount,
            total=bill.total.amount,
            currency=bill.total.currency,
            billed_at=bill.billed_at,
            duration_minutes=max(0, int(bill.duration.total_seconds() // 60))
        )

    @staticmethod
    def create_floor_occupancy_dto(occupancy: FloorOccupancy) -> FloorOccupancyDTO:
        return FloorOccupancyDTO(
            floor_number=occupancy.floor_number,
            occupied=occupancy.occupied,
            total=occupancy.total,
            occupancy_rate=round(occupancy.occupancy_rate, 2)
        )
