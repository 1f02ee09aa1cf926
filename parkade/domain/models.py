# File: parkade/domain/models.py
"""
Domain Models for the Parkade allocation and billing engine
Following Domain-Driven Design (DDD) principles with rich domain models

This module contains:
1. Domain Errors: The typed, recoverable failure taxonomy of the engine
2. Value Objects: Immutable objects with no identity, only values
3. Enums: Vehicle classes, spot classes and fine schemes
4. Entities: Spots and floors with identity and lifecycle
5. Session Records: Tickets and bills
6. Domain Events: Events representing business occurrences

All models include validation; compatibility and rate tables live on the enums.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Tuple, Union, FrozenSet
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import math
import re
import uuid
from enum import Enum


# ============================================================================
# DOMAIN ERRORS
# ============================================================================

class ParkadeError(Exception):
    """
    Base class for all recoverable engine failures
    Each subclass carries a stable error code for the calling layer
    """

    code = "parkade_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for result payloads"""
        return {
            "error_code": self.code,
            "message": self.message,
            "context": dict(self.context)
        }


class InvalidInput(ParkadeError, ValueError):
    """Malformed plate, unknown enum value or rejected argument"""

    code = "invalid_input"


class SpotNotFound(ParkadeError):
    """Spot id does not reference a spot of this facility"""

    code = "spot_not_found"

    def __init__(self, spot_id: str):
        super().__init__(f"Spot {spot_id} not found", spot_id=spot_id)
        self.spot_id = spot_id


class SpotOccupied(ParkadeError):
    """Spot is already taken by another session"""

    code = "spot_occupied"

    def __init__(self, spot_id: str):
        super().__init__(f"Spot {spot_id} is already occupied", spot_id=spot_id)
        self.spot_id = spot_id


class NoActiveTicket(ParkadeError):
    """No open parking session exists for the plate"""

    code = "no_active_ticket"

    def __init__(self, plate: str):
        super().__init__(f"No active ticket for plate {plate}", plate=plate)
        self.plate = plate


# ============================================================================
# DOMAIN PRIMITIVES / VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)  # Value objects are immutable
class LicensePlate:
    """
    Value Object: License plate number with validation
    Stored upper-cased, so plate comparisons are case-insensitive
    """
    value: str

    def __post_init__(self):
        """Validate license plate after initialization"""
        if not isinstance(self.value, str) or not self.value.strip():
            raise InvalidInput("License plate cannot be empty")

        # Remove whitespace and convert to uppercase
        object.__setattr__(self, 'value', self.value.strip().upper())

        if len(self.value) < 2 or len(self.value) > 10:
            raise InvalidInput(f"License plate must be 2-10 characters, got: {self.value}")

        # Alphanumeric with possible spaces and hyphens
        if not re.match(r'^[A-Z0-9\s\-]+$', self.value):
            raise InvalidInput(
                f"License plate can only contain letters, numbers, spaces, and hyphens: {self.value}"
            )

    @classmethod
    def parse(cls, plate: Union[str, 'LicensePlate']) -> 'LicensePlate':
        """Accept either a raw string or an existing plate"""
        if isinstance(plate, LicensePlate):
            return plate
        return cls(plate)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Money:
    """
    Value Object: Monetary amount with currency
    Amounts are quantized to cents and can never be negative
    """
    amount: Decimal
    currency: str = "MYR"

    def __post_init__(self):
        """Validate and normalize money amount"""
        try:
            amount = Decimal(str(self.amount))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidInput(f"Invalid money amount: {self.amount!r}")

        if not amount.is_finite():
            raise InvalidInput(f"Money amount must be finite: {self.amount!r}")

        if amount < Decimal('0'):
            raise InvalidInput("Money amount cannot be negative")

        if len(self.currency) != 3:
            raise InvalidInput(f"Currency must be 3-letter code: {self.currency}")

        object.__setattr__(self, 'amount', amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))
        object.__setattr__(self, 'currency', self.currency.upper())

    @classmethod
    def of(cls, value: Union['Money', Decimal, float, int, str], currency: str = "MYR") -> 'Money':
        """Coerce a plain number (or Money) into Money"""
        if isinstance(value, Money):
            return value
        if isinstance(value, bool):
            raise InvalidInput(f"Invalid money amount: {value!r}")
        return cls(value, currency)

    @classmethod
    def zero(cls, currency: str = "MYR") -> 'Money':
        return cls(Decimal('0'), currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal('0')

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money amounts (same currency only)"""
        if self.currency != other.currency:
            raise InvalidInput(f"Cannot add {self.currency} to {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract money amounts (same currency only)"""
        if self.currency != other.currency:
            raise InvalidInput(f"Cannot subtract {other.currency} from {self.currency}")
        result = self.amount - other.amount
        if result < Decimal('0'):
            raise InvalidInput("Result cannot be negative")
        return Money(result, self.currency)

    def __mul__(self, multiplier: Union[int, Decimal]) -> 'Money':
        """Multiply money by a whole number of hours or a decimal factor"""
        multiplier = Decimal(multiplier)
        if multiplier < Decimal('0'):
            raise InvalidInput("Multiplier cannot be negative")
        return Money(self.amount * multiplier, self.currency)

    def __lt__(self, other: 'Money') -> bool:
        return self.amount < other.amount

    def __gt__(self, other: 'Money') -> bool:
        return self.amount > other.amount

    def format(self) -> str:
        """Format money for receipts"""
        return f"{self.currency} {self.amount:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "amount": float(self.amount),
            "currency": self.currency
        }


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class _ParsableEnum(Enum):
    """
    Enum accepting members, values, member names or display names
    Case and separators are ignored: "SuvTruck", "suv-truck" and "SUV/Truck"
    all name SUV_TRUCK
    """

    @staticmethod
    def _normalize(text: str) -> str:
        return re.sub(r'[^a-z0-9]', '', text.lower())

    @classmethod
    def parse(cls, raw: Any):
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            key = cls._normalize(raw)
            for member in cls:
                names = (member.value, member.name, str(member))
                if key and key in {cls._normalize(name) for name in names}:
                    return member
        raise InvalidInput(f"Invalid {cls.__name__}: {raw!r}")


class SpotClass(_ParsableEnum):
    """
    Enumeration of parking spot classes
    Each class carries a fixed default hourly rate
    """
    COMPACT = "compact"
    REGULAR = "regular"
    HANDICAPPED = "handicapped"
    RESERVED = "reserved"

    @property
    def base_rate(self) -> Decimal:
        """Default hourly rate for this spot class"""
        rates = {
            SpotClass.COMPACT: Decimal('2.00'),
            SpotClass.REGULAR: Decimal('5.00'),
            SpotClass.HANDICAPPED: Decimal('2.00'),
            SpotClass.RESERVED: Decimal('10.00'),
        }
        return rates[self]

    def can_accommodate(self, vehicle_class: 'VehicleClass') -> bool:
        """Check if this spot class can take the given vehicle class"""
        return self in vehicle_class.compatible_spot_classes

    def __str__(self) -> str:
        return self.value.title()


class VehicleClass(_ParsableEnum):
    """
    Enumeration of vehicle classes
    The compatibility table is fixed policy, not runtime configuration
    """
    MOTORCYCLE = "motorcycle"
    CAR = "car"
    SUV_TRUCK = "suv_truck"
    HANDICAPPED_VEHICLE = "handicapped_vehicle"

    @property
    def compatible_spot_classes(self) -> FrozenSet[SpotClass]:
        """Spot classes this vehicle class may be parked in"""
        compatibility = {
            VehicleClass.MOTORCYCLE: frozenset({SpotClass.COMPACT}),
            VehicleClass.CAR: frozenset({SpotClass.COMPACT, SpotClass.REGULAR}),
            VehicleClass.SUV_TRUCK: frozenset({SpotClass.REGULAR}),
            VehicleClass.HANDICAPPED_VEHICLE: frozenset(SpotClass),
        }
        return compatibility[self]

    def __str__(self) -> str:
        names = {
            VehicleClass.MOTORCYCLE: "Motorcycle",
            VehicleClass.CAR: "Car",
            VehicleClass.SUV_TRUCK: "SUV/Truck",
            VehicleClass.HANDICAPPED_VEHICLE: "Handicapped Vehicle",
        }
        return names[self]


class FineScheme(_ParsableEnum):
    """
    Enumeration of overstay fine schemes
    FIXED is the default; formulas live in domain.strategies
    """
    FIXED = "fixed"
    PROGRESSIVE = "progressive"
    HOURLY = "hourly"


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

class Entity:
    """
    Base class for all domain entities
    Provides common functionality for entities with identity
    """

    def __init__(self, id: Optional[str] = None):
        self._id = id or str(uuid.uuid4())

    @property
    def id(self) -> str:
        """Get entity ID"""
        return self._id

    def __eq__(self, other: object) -> bool:
        """Entities are equal if they have the same ID and type"""
        if not isinstance(other, Entity):
            return False
        return self.id == other.id and type(self) == type(other)

    def __hash__(self) -> int:
        return hash((self.id, type(self).__name__))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"


@dataclass(frozen=True)
class Vehicle:
    """Value Object: plate plus vehicle class; owned by the parking session"""
    license_plate: LicensePlate
    vehicle_class: VehicleClass

    def can_park_in(self, spot_class: SpotClass) -> bool:
        return spot_class.can_accommodate(self.vehicle_class)

    def __str__(self) -> str:
        return f"{self.vehicle_class} [{self.license_plate}]"


class ParkingSpot(Entity):
    """
    Entity: A single allocatable parking spot
    Holds its occupant only while parked; occupancy is derived from it
    """

    def __init__(self, floor_number: int, index: int, spot_class: SpotClass):
        if floor_number < 1:
            raise InvalidInput("Floor number must be at least 1")
        if index < 1:
            raise InvalidInput("Spot index must be positive")

        super().__init__(self.make_id(floor_number, index))
        self.floor_number = floor_number
        self.index = index
        self.spot_class = spot_class
        self._occupant: Optional[Vehicle] = None

    @staticmethod
    def make_id(floor_number: int, index: int) -> str:
        """Deterministic facility-unique id, e.g. F1-S3"""
        return f"F{floor_number}-S{index}"

    @property
    def occupant(self) -> Optional[Vehicle]:
        return self._occupant

    @property
    def is_occupied(self) -> bool:
        return self._occupant is not None

    def can_accommodate(self, vehicle_class: VehicleClass) -> bool:
        return self.spot_class.can_accommodate(vehicle_class)

    def occupy(self, vehicle: Vehicle) -> None:
        """
        Occupy the spot with a vehicle
        Raises: SpotOccupied if the spot is already taken
        """
        if self.is_occupied:
            raise SpotOccupied(self.id)
        self._occupant = vehicle

    def vacate(self) -> Optional[Vehicle]:
        """Clear the occupant; returns who was parked, if anyone"""
        previous = self._occupant
        self._occupant = None
        return previous

    def snapshot(self) -> 'SpotView':
        """Immutable copy of the spot's current state"""
        return SpotView(
            id=self.id,
            floor_number=self.floor_number,
            index=self.index,
            spot_class=self.spot_class,
            occupant=self._occupant
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return self.snapshot().to_dict()

    def __str__(self) -> str:
        status = "Occupied" if self.is_occupied else "Available"
        return f"{self.id} ({self.spot_class}) - {status}"


@dataclass(frozen=True)
class SpotView:
    """
    Value Object: read-only state of a spot at query time
    Handed out by the facility instead of the live ParkingSpot entity
    """
    id: str
    floor_number: int
    index: int
    spot_class: SpotClass
    occupant: Optional[Vehicle] = None

    @property
    def is_occupied(self) -> bool:
        return self.occupant is not None

    def can_accommodate(self, vehicle_class: VehicleClass) -> bool:
        return self.spot_class.can_accommodate(vehicle_class)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "floor_number": self.floor_number,
            "index": self.index,
            "spot_class": self.spot_class.value,
            "is_occupied": self.is_occupied,
            "occupant_plate": self.occupant.license_plate.value if self.occupant else None,
        }


class Floor:
    """
    Entity: A numbered floor owning an ordered, fixed sequence of spots
    """

    def __init__(self, number: int, spots: List[ParkingSpot]):
        if number < 1:
            raise InvalidInput("Floor number must be at least 1")
        for spot in spots:
            if spot.floor_number != number:
                raise InvalidInput(f"Spot {spot.id} does not belong to floor {number}")
        self.number = number
        self._spots: Tuple[ParkingSpot, ...] = tuple(spots)

    @property
    def spots(self) -> Tuple[ParkingSpot, ...]:
        return self._spots

    @property
    def total_spots(self) -> int:
        return len(self._spots)

    @property
    def occupied_spots(self) -> int:
        return sum(1 for spot in self._spots if spot.is_occupied)

    def available_for(self, vehicle_class: VehicleClass) -> List[ParkingSpot]:
        """Unoccupied compatible spots in index order"""
        return [
            spot for spot in self._spots
            if not spot.is_occupied and spot.can_accommodate(vehicle_class)
        ]

    def __repr__(self) -> str:
        return f"Floor(number={self.number}, spots={self.total_spots})"


@dataclass(frozen=True)
class FloorOccupancy:
    """Value Object: occupancy snapshot of one floor"""
    floor_number: int
    occupied: int
    total: int

    @property
    def occupancy_rate(self) -> float:
        """Occupancy as a percentage (0-100)"""
        if self.total == 0:
            return 0.0
        return (self.occupied / self.total) * 100.0


# ============================================================================
# SESSION RECORDS
# ============================================================================

@dataclass(frozen=True)
class Ticket:
    """
    Record of one active parking session
    Keeps the vehicle class so exit pricing can apply class-based concessions
    """
    ticket_id: str
    license_plate: LicensePlate
    spot_id: str
    entry_time: datetime
    vehicle_class: VehicleClass

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "license_plate": self.license_plate.value,
            "spot_id": self.spot_id,
            "entry_time": self.entry_time.isoformat(),
            "vehicle_class": self.vehicle_class.value,
        }


@dataclass(frozen=True)
class Bill:
    """
    Immutable charge summary for ending a session; never stored
    fine = overstay fine assessed now + amount carried from the ledger
    """
    ticket: Ticket
    billed_hours: int
    hourly_rate: Money
    parking_fee: Money
    overstay_fine: Money
    outstanding_fines: Money
    billed_at: datetime

    @property
    def fine(self) -> Money:
        return self.overstay_fine + self.outstanding_fines

    @property
    def total(self) -> Money:
        return self.parking_fee + self.fine

    @property
    def duration(self) -> timedelta:
        return self.billed_at - self.ticket.entry_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticket": self.ticket.to_dict(),
            "billed_hours": self.billed_hours,
            "hourly_rate": self.hourly_rate.to_dict(),
            "parking_fee": self.parking_fee.to_dict(),
            "overstay_fine": self.overstay_fine.to_dict(),
            "outstanding_fines": self.outstanding_fines.to_dict(),
            "fine": self.fine.to_dict(),
            "total": self.total.to_dict(),
            "billed_at": self.billed_at.isoformat(),
        }


# ============================================================================
# DOMAIN EVENTS (for event-driven architecture)
# ============================================================================

class DomainEvent(ABC):
    """
    Base class for all domain events
    Events represent something that happened in the domain
    """

    event_type = "domain.event"

    def __init__(self, facility_id: str, timestamp: datetime):
        self.event_id = str(uuid.uuid4())
        self.facility_id = facility_id
        self.timestamp = timestamp
        self.version = "1.0"

    @abstractmethod
    def payload(self) -> Dict[str, Any]:
        """Event-specific data"""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization"""
        return {
            "event_type": self.event_type,
            "event_id": self.event_id,
            "facility_id": self.facility_id,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
            "data": self.payload()
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__} at {self.timestamp}"


class VehicleParkedEvent(DomainEvent):
    """Event raised when a ticket is issued"""

    event_type = "vehicle.parked"

    def __init__(self, facility_id: str, ticket: Ticket):
        super().__init__(facility_id, ticket.entry_time)
        self.ticket = ticket

    def payload(self) -> Dict[str, Any]:
        return self.ticket.to_dict()


class VehicleLeftEvent(DomainEvent):
    """Event raised when a session ends (paid, released unpaid or voided)"""

    event_type = "vehicle.left"

    def __init__(
        self,
        facility_id: str,
        ticket: Ticket,
        exit_time: datetime,
        reason: str,
        amount_paid: Optional[Money] = None
    ):
        super().__init__(facility_id, exit_time)
        self.ticket = ticket
        self.reason = reason
        self.amount_paid = amount_paid

    def payload(self) -> Dict[str, Any]:
        data = self.ticket.to_dict()
        data["exit_time"] = self.timestamp.isoformat()
        data["reason"] = self.reason
        if self.amount_paid is not None:
            data["amount_paid"] = self.amount_paid.to_dict()
        return data


class FineLedgeredEvent(DomainEvent):
    """Event raised when an amount is added to a plate's outstanding fines"""

    event_type = "fine.ledgered"

    def __init__(self, facility_id: str, plate: LicensePlate, amount: Money, balance: Money, timestamp: datetime):
        super().__init__(facility_id, timestamp)
        self.plate = plate
        self.amount = amount
        self.balance = balance

    def payload(self) -> Dict[str, Any]:
        return {
            "license_plate": self.plate.value,
            "amount": self.amount.to_dict(),
            "balance": self.balance.to_dict(),
        }


class FineSchemeChangedEvent(DomainEvent):
    """Event raised when the active fine scheme is switched"""

    event_type = "fine_scheme.changed"

    def __init__(self, facility_id: str, previous: FineScheme, current: FineScheme, timestamp: datetime):
        super().__init__(facility_id, timestamp)
        self.previous = previous
        self.current = current

    def payload(self) -> Dict[str, Any]:
        return {"previous": self.previous.value, "current": self.current.value}


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def calculate_billed_hours(entry_time: datetime, exit_time: datetime) -> int:
    """
    Billed hours for a stay: ceiling of elapsed whole minutes over 60
    Zero or negative stays (same-minute exit, clock skew) bill one hour
    """
    elapsed_minutes = math.floor((exit_time - entry_time).total_seconds() / 60)
    if elapsed_minutes <= 0:
        return 1
    return max(1, math.ceil(elapsed_minutes / 60))
