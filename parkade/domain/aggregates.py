# File: parkade/domain/aggregates.py
"""
Aggregate Root for the Parkade allocation and billing engine
Following Domain-Driven Design (DDD) Aggregate Pattern

Aggregate:
- ParkingFacility - owns every floor and spot, the active tickets,
  the outstanding-fines ledger and the revenue total

Key Concepts:
- The aggregate root is the only mutator of spot occupancy and revenue
- Every failing operation raises a typed ParkadeError before mutating anything
- Domain events are raised for important state changes
- All state is guarded by one re-entrant lock so allocation is atomic
"""

from typing import List, Optional, Dict, Tuple, Any, Union, Protocol, runtime_checkable
from datetime import datetime
from decimal import Decimal
import logging
import threading

from .models import (
    Entity, ParkingSpot, SpotView, Floor, FloorOccupancy, Vehicle, Ticket, Bill,
    LicensePlate, Money, VehicleClass, FineScheme,
    InvalidInput, SpotNotFound, SpotOccupied, NoActiveTicket,
    DomainEvent, VehicleParkedEvent, VehicleLeftEvent,
    FineLedgeredEvent, FineSchemeChangedEvent,
    calculate_billed_hours
)
from .strategies import (
    PricingStrategy, StandardPricingStrategy,
    FineStrategy, FineStrategyFactory, OverstayPolicy
)


# ============================================================================
# COLLABORATOR INTERFACES
# ============================================================================

@runtime_checkable
class Clock(Protocol):
    """Wall-clock time source"""

    def now(self) -> datetime:
        ...


@runtime_checkable
class TicketIdSource(Protocol):
    """Unique ticket-id generator"""

    def next_id(self, plate: str) -> str:
        ...


# ============================================================================
# BASE AGGREGATE ROOT
# ============================================================================

class AggregateRoot(Entity):
    """
    Base class for all aggregate roots
    Provides domain event collection and versioning
    """

    def __init__(self, id: Optional[str] = None):
        super().__init__(id)
        self._version: int = 1
        self._changes: List[DomainEvent] = []
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def version(self) -> int:
        """Get current aggregate version"""
        return self._version

    def _increment_version(self) -> None:
        """Increment version after state change"""
        self._version += 1

    def _add_domain_event(self, event: DomainEvent) -> None:
        """Add a domain event to the list of changes"""
        self._changes.append(event)
        self._logger.debug(f"Added domain event: {event.__class__.__name__}")

    def clear_events(self) -> List[DomainEvent]:
        """Clear and return all domain events"""
        events = self._changes.copy()
        self._changes.clear()
        return events

    @property
    def has_changes(self) -> bool:
        """Check if aggregate has pending domain events"""
        return len(self._changes) > 0


# ============================================================================
# PARKING FACILITY AGGREGATE
# ============================================================================

class ParkingFacility(AggregateRoot):
    """
    Aggregate Root: Multi-floor parking facility

    Invariants:
    - every occupied spot has exactly one active ticket referencing it
    - a plate has at most one active ticket
    - revenue only grows, by exactly each settled payment

    The clock and ticket-id source are always injected; FacilityFactory
    supplies the system implementations.
    """

    def __init__(
        self,
        floors: List[Floor],
        clock: Clock,
        id_generator: TicketIdSource,
        pricing_strategy: Optional[PricingStrategy] = None,
        overstay_policy: Optional[OverstayPolicy] = None,
        fine_scheme: Union[FineScheme, str] = FineScheme.FIXED,
        currency: str = "MYR",
        id: Optional[str] = None
    ):
        super().__init__(id)

        self._clock = clock
        self._id_generator = id_generator
        self.currency = currency
        self._pricing = pricing_strategy or StandardPricingStrategy(currency=currency)
        self._overstay_policy = overstay_policy or OverstayPolicy(currency=currency)
        self._fine_scheme = FineScheme.parse(fine_scheme)
        self._fine_strategy: FineStrategy = FineStrategyFactory.create(
            self._fine_scheme, self._overstay_policy
        )

        # Internal state
        self._floors: Tuple[Floor, ...] = tuple(sorted(floors, key=lambda f: f.number))
        self._spots: Dict[str, ParkingSpot] = {}          # spot_id -> spot, floor-then-index order
        self._active_tickets: Dict[str, Ticket] = {}      # normalized plate -> ticket
        self._ledger: Dict[str, Money] = {}               # normalized plate -> outstanding fine
        self._total_revenue: Money = Money.zero(currency)
        self._lock = threading.RLock()

        # Statistics
        self.total_parking_sessions: int = 0
        self.creation_date: datetime = self._clock.now()

        self._index_spots()
        self.check_invariants()

        self._logger.info(
            f"Created ParkingFacility {self.id} with {len(self._floors)} floors "
            f"and {len(self._spots)} spots"
        )

    def _index_spots(self) -> None:
        """Build the spot index, rejecting duplicate floors or spot ids"""
        seen_floors = set()
        for floor in self._floors:
            if floor.number in seen_floors:
                raise InvalidInput(f"Duplicate floor number: {floor.number}")
            seen_floors.add(floor.number)
            for spot in floor.spots:
                if spot.id in self._spots:
                    raise InvalidInput(f"Duplicate spot id: {spot.id}")
                self._spots[spot.id] = spot

    def clear_events(self) -> List[DomainEvent]:
        """Drain pending domain events atomically with respect to mutators"""
        with self._lock:
            return super().clear_events()

    def check_invariants(self) -> None:
        """
        Validate aggregate invariants
        Raises: AssertionError describing the first violation found
        """
        with self._lock:
            occupied_ids = {spot_id for spot_id, spot in self._spots.items() if spot.is_occupied}
            ticketed_ids = [ticket.spot_id for ticket in self._active_tickets.values()]

            # Invariant 1: one ticket per occupied spot and no ticket without a spot
            if sorted(occupied_ids) != sorted(ticketed_ids):
                raise AssertionError(
                    f"Occupied spots {sorted(occupied_ids)} do not match "
                    f"ticketed spots {sorted(ticketed_ids)}"
                )

            # Invariant 2: each ticket's spot holds that ticket's plate
            for plate, ticket in self._active_tickets.items():
                occupant = self._spots[ticket.spot_id].occupant
                if occupant is None or occupant.license_plate.value != plate:
                    raise AssertionError(f"Spot {ticket.spot_id} is not held by {plate}")

    # ========================================================================
    # ALLOCATION
    # ========================================================================

    def find_available(self, vehicle_class: Union[VehicleClass, str]) -> List[SpotView]:
        """
        Snapshots of unoccupied spots compatible with the vehicle class,
        in floor-then-index order
        Returns an empty list when the facility has no capacity for the class
        Raises: InvalidInput for an unknown vehicle class
        """
        vehicle_class = VehicleClass.parse(vehicle_class)
        with self._lock:
            available = [
                spot.snapshot()
                for floor in self._floors
                for spot in floor.available_for(vehicle_class)
            ]
        self._logger.debug(f"{len(available)} spots available for {vehicle_class.value}")
        return available

    def allocate(
        self,
        plate: Union[str, LicensePlate],
        vehicle_class: Union[VehicleClass, str],
        spot_id: str
    ) -> Ticket:
        """
        Park a vehicle in a chosen spot and issue its ticket
        Raises: InvalidInput, SpotNotFound, SpotOccupied
        """
        license_plate = LicensePlate.parse(plate)
        vehicle_class = VehicleClass.parse(vehicle_class)

        with self._lock:
            spot = self._spots.get(spot_id)
            if spot is None:
                self._logger.warning(f"Allocation rejected: unknown spot {spot_id}")
                raise SpotNotFound(spot_id)

            if spot.is_occupied:
                self._logger.warning(f"Allocation rejected: spot {spot_id} occupied")
                raise SpotOccupied(spot_id)

            if license_plate.value in self._active_tickets:
                existing = self._active_tickets[license_plate.value]
                raise InvalidInput(
                    f"Plate {license_plate} already has active ticket {existing.ticket_id}",
                    plate=license_plate.value,
                    ticket_id=existing.ticket_id
                )

            if not spot.can_accommodate(vehicle_class):
                raise InvalidInput(
                    f"{vehicle_class} cannot park in {spot.spot_class} spot {spot_id}",
                    spot_id=spot_id,
                    vehicle_class=vehicle_class.value
                )

            ticket = Ticket(
                ticket_id=self._id_generator.next_id(license_plate.value),
                license_plate=license_plate,
                spot_id=spot.id,
                entry_time=self._clock.now(),
                vehicle_class=vehicle_class
            )

            spot.occupy(Vehicle(license_plate, vehicle_class))
            self._active_tickets[license_plate.value] = ticket
            self.total_parking_sessions += 1
            self._increment_version()
            self._add_domain_event(VehicleParkedEvent(self.id, ticket))

        self._logger.info(
            f"Vehicle {license_plate} ({vehicle_class.value}) parked in {spot.id} "
            f"(Ticket: {ticket.ticket_id})"
        )
        return ticket

    # ========================================================================
    # BILLING AND SETTLEMENT
    # ========================================================================

    def compute_bill(self, plate: Union[str, LicensePlate]) -> Bill:
        """
        Compute the exit bill for the plate's open session without mutating state
        Raises: InvalidInput, NoActiveTicket, SpotNotFound (inconsistent session)
        """
        license_plate = LicensePlate.parse(plate)
        with self._lock:
            ticket = self._active_tickets.get(license_plate.value)
            if ticket is None:
                raise NoActiveTicket(license_plate.value)
            return self._build_bill(ticket)

    def _build_bill(self, ticket: Ticket) -> Bill:
        spot = self._spots.get(ticket.spot_id)
        if spot is None or spot.occupant is None or spot.occupant.license_plate != ticket.license_plate:
            raise SpotNotFound(ticket.spot_id)

        billed_at = self._clock.now()
        billed_hours = calculate_billed_hours(ticket.entry_time, billed_at)
        hourly_rate = self._pricing.hourly_rate(spot.spot_class, ticket.vehicle_class)
        parking_fee = self._pricing.calculate_parking_fee(spot.spot_class, ticket.vehicle_class, billed_hours)
        overstay_fine = self._fine_strategy.calculate_overstay_fine(billed_hours)

        if billed_hours > self._overstay_policy.threshold_hours:
            self._logger.warning(
                f"Vehicle {ticket.license_plate} overstayed: {billed_hours}h billed "
                f"(threshold {self._overstay_policy.threshold_hours}h)"
            )

        return Bill(
            ticket=ticket,
            billed_hours=billed_hours,
            hourly_rate=hourly_rate,
            parking_fee=parking_fee,
            overstay_fine=overstay_fine,
            outstanding_fines=self._ledger.get(ticket.license_plate.value, Money.zero(self.currency)),
            billed_at=billed_at
        )

    def settle(
        self,
        plate: Union[str, LicensePlate],
        amount_paid: Union[Money, Decimal, float, int, str]
    ) -> Optional[Ticket]:
        """
        Settle the plate's session: vacate, drop ticket, book revenue, clear fines
        Returns the settled ticket, or None (a no-op) when no session is open
        Raises: InvalidInput for a malformed plate or amount
        """
        license_plate = LicensePlate.parse(plate)
        amount = Money.of(amount_paid, self.currency)
        if amount.currency != self.currency:
            raise InvalidInput(f"Payment currency {amount.currency} does not match {self.currency}")

        with self._lock:
            ticket = self._active_tickets.get(license_plate.value)
            if ticket is None:
                self._logger.info(f"Settle for {license_plate} ignored: no active ticket")
                return None

            self._close_session(ticket)
            self._total_revenue = self._total_revenue + amount
            cleared = self._ledger.pop(license_plate.value, None)
            self._increment_version()
            self._add_domain_event(
                VehicleLeftEvent(self.id, ticket, self._clock.now(), "settled", amount)
            )

        self._logger.info(
            f"Settled {ticket.ticket_id} for {license_plate}: paid {amount.format()}"
            + (f", cleared fines {cleared.format()}" if cleared else "")
        )
        return ticket

    def _close_session(self, ticket: Ticket) -> None:
        spot = self._spots.get(ticket.spot_id)
        if spot is not None:
            spot.vacate()
        del self._active_tickets[ticket.license_plate.value]

    # ========================================================================
    # ADMINISTRATIVE OPERATIONS
    # ========================================================================

    def release_unpaid(self, plate: Union[str, LicensePlate]) -> Optional[Bill]:
        """
        Let a vehicle leave without paying (gate override)
        The unpaid bill total becomes the plate's outstanding fine
        Returns the unpaid bill, or None when no session is open
        """
        license_plate = LicensePlate.parse(plate)
        with self._lock:
            ticket = self._active_tickets.get(license_plate.value)
            if ticket is None:
                return None

            bill = self._build_bill(ticket)
            self._close_session(ticket)

            if bill.total.is_zero:
                self._ledger.pop(license_plate.value, None)
            else:
                self._ledger[license_plate.value] = bill.total
                self._add_domain_event(FineLedgeredEvent(
                    self.id, license_plate,
                    bill.parking_fee + bill.overstay_fine, bill.total, bill.billed_at
                ))

            self._increment_version()
            self._add_domain_event(VehicleLeftEvent(self.id, ticket, bill.billed_at, "released_unpaid"))

        self._logger.warning(
            f"Released {license_plate} unpaid; outstanding fines now {bill.total.format()}"
        )
        return bill

    def void_ticket(self, plate: Union[str, LicensePlate]) -> Optional[Ticket]:
        """Cancel a session opened by mistake: no charge, ledger untouched"""
        license_plate = LicensePlate.parse(plate)
        with self._lock:
            ticket = self._active_tickets.get(license_plate.value)
            if ticket is None:
                return None

            self._close_session(ticket)
            self._increment_version()
            self._add_domain_event(VehicleLeftEvent(self.id, ticket, self._clock.now(), "voided"))

        self._logger.info(f"Voided ticket {ticket.ticket_id} for {license_plate}")
        return ticket

    def record_fine(
        self,
        plate: Union[str, LicensePlate],
        amount: Union[Money, Decimal, float, int, str]
    ) -> Money:
        """
        Add an amount to the plate's outstanding fines
        Returns: the new outstanding balance
        """
        license_plate = LicensePlate.parse(plate)
        fine = Money.of(amount, self.currency)
        if fine.is_zero:
            raise InvalidInput("Fine amount must be positive")

        with self._lock:
            balance = self._ledger.get(license_plate.value, Money.zero(self.currency)) + fine
            self._ledger[license_plate.value] = balance
            self._increment_version()
            self._add_domain_event(
                FineLedgeredEvent(self.id, license_plate, fine, balance, self._clock.now())
            )

        self._logger.info(f"Recorded fine {fine.format()} for {license_plate} (balance {balance.format()})")
        return balance

    def set_fine_scheme(self, scheme: Union[FineScheme, str]) -> FineScheme:
        """
        Switch the active fine scheme
        Returns: the previous scheme
        """
        scheme = FineScheme.parse(scheme)
        with self._lock:
            previous = self._fine_scheme
            self._fine_strategy = FineStrategyFactory.create(scheme, self._overstay_policy)
            self._fine_scheme = scheme
            if previous != scheme:
                self._increment_version()
                self._add_domain_event(
                    FineSchemeChangedEvent(self.id, previous, scheme, self._clock.now())
                )

        self._logger.info(f"Fine scheme changed: {previous.value} -> {scheme.value}")
        return previous

    # ========================================================================
    # QUERY METHODS (Read-only)
    # ========================================================================

    @property
    def floor_numbers(self) -> Tuple[int, ...]:
        return tuple(floor.number for floor in self._floors)

    @property
    def fine_scheme(self) -> FineScheme:
        return self._fine_scheme

    @property
    def overstay_policy(self) -> OverstayPolicy:
        return self._overstay_policy

    @property
    def total_spots(self) -> int:
        return len(self._spots)

    @property
    def clock(self) -> Clock:
        return self._clock

    def get_spot(self, spot_id: str) -> Optional[SpotView]:
        """Snapshot of one spot, or None for an unknown id"""
        with self._lock:
            spot = self._spots.get(spot_id)
            return spot.snapshot() if spot is not None else None

    def total_revenue(self) -> Money:
        with self._lock:
            return self._total_revenue

    def active_occupancy_count(self) -> int:
        with self._lock:
            return len(self._active_tickets)

    def floor_occupancy(self) -> List[FloorOccupancy]:
        """Occupied/total spot counts for each floor in facility order"""
        with self._lock:
            return [
                FloorOccupancy(floor.number, floor.occupied_spots, floor.total_spots)
                for floor in self._floors
            ]

    def active_ticket(self, plate: Union[str, LicensePlate]) -> Optional[Ticket]:
        license_plate = LicensePlate.parse(plate)
        with self._lock:
            return self._active_tickets.get(license_plate.value)

    def active_tickets(self) -> List[Ticket]:
        with self._lock:
            return list(self._active_tickets.values())

    def outstanding_fine(self, plate: Union[str, LicensePlate]) -> Money:
        license_plate = LicensePlate.parse(plate)
        with self._lock:
            return self._ledger.get(license_plate.value, Money.zero(self.currency))

    def outstanding_fines(self) -> Dict[str, Money]:
        """Copy of the whole ledger, keyed by normalized plate"""
        with self._lock:
            return dict(self._ledger)

    def get_status_report(self) -> Dict[str, Any]:
        """Get comprehensive status report"""
        with self._lock:
            return {
                "facility_id": self.id,
                "total_spots": self.total_spots,
                "active_occupancy": len(self._active_tickets),
                "total_revenue": self._total_revenue.to_dict(),
                "fine_scheme": self._fine_scheme.value,
                "outstanding_fines": {
                    plate: amount.to_dict() for plate, amount in self._ledger.items()
                },
                "floors": [
                    {
                        "floor_number": occupancy.floor_number,
                        "occupied": occupancy.occupied,
                        "total": occupancy.total,
                    }
                    for occupancy in self.floor_occupancy()
                ],
                "total_sessions": self.total_parking_sessions,
                "version": self.version,
                "timestamp": self._clock.now().isoformat()
            }
