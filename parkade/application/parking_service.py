# File: parkade/application/parking_service.py
"""
Parkade Application Service

This module implements the application service layer of the engine.
It orchestrates the facility aggregate and handles the use cases of the system.

Responsibilities:
1. Execute use cases against the ParkingFacility aggregate
2. Convert domain failures into typed result DTOs (never raise for them)
3. Publish the domain events recorded by the aggregate
4. Provide a clean API for the presentation/interface layer

Key Principles:
- Dependency Injection for testability
- Command/Query separation
- Expected outcomes (no free spot, nothing to settle) are successes
"""

from typing import Dict, Optional, Any, Union, Callable, TypeVar, Type
from decimal import Decimal
from pathlib import Path
import logging

from ..domain.models import (
    ParkadeError, FineScheme, VehicleClass, Money
)
from ..domain.aggregates import ParkingFacility, Clock
from ..infrastructure.factories import FacilityFactory, DTOFactory
from ..infrastructure.messaging import EventBus, create_default_event_bus
from .dtos import (
    FacilityConfig, ResultDTO,
    ParkingRequestDTO, PaymentRequestDTO, ExitRequestDTO,
    AvailableSpotsResultDTO, AllocationResultDTO, BillingResultDTO,
    SettlementResultDTO, ExitResultDTO, ReleaseResultDTO, VoidResultDTO,
    FineResultDTO, FineSchemeResultDTO, FacilityStatusDTO
)

R = TypeVar('R', bound=ResultDTO)

INTERNAL_ERROR = "internal_error"


class ParkingService:
    """
    Main application service for the parking facility

    This service orchestrates the use cases of the system:
    1. Spot search and vehicle parking
    2. Exit billing and payment settlement
    3. Fine administration (fine scheme, ledger entries, unpaid releases)
    4. Status reporting
    """

    def __init__(self, facility: ParkingFacility, event_bus: Optional[EventBus] = None):
        """
        Initialize the parking service

        Args:
            facility: The facility aggregate this service operates on
            event_bus: Bus receiving the facility's domain events.
                       If not provided, a bus with the logging handlers is created.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self.facility = facility
        self.event_bus = event_bus or create_default_event_bus()
        self.logger.info(f"ParkingService initialized for facility {facility.id}")

    # ========================================================================
    # INTERNAL HELPERS
    # ========================================================================

    def _run(self, result_type: Type[R], action: str, operation: Callable[[], R]) -> R:
        """Run a use case, mapping failures to a result of the given type"""
        try:
            return operation()
        except ParkadeError as e:
            self.logger.warning(f"{action} rejected: [{e.code}] {e.message}")
            return result_type(success=False, error_code=e.code, message=e.message)
        except Exception as e:
            self.logger.error(f"Error during {action}: {e}", exc_info=True)
            return result_type(success=False, error_code=INTERNAL_ERROR, message=f"Internal error: {str(e)}")
        finally:
            self._publish_events()

    def _publish_events(self) -> None:
        events = self.facility.clear_events()
        if events:
            self.event_bus.publish_domain_events(events)

    # ========================================================================
    # USE CASES
    # ========================================================================

    def find_available_spots(self, vehicle_class: Union[VehicleClass, str]) -> AvailableSpotsResultDTO:
        """List free compatible spots; an empty list is a normal outcome"""
        def operation() -> AvailableSpotsResultDTO:
            spots = self.facility.find_available(vehicle_class)
            parsed = VehicleClass.parse(vehicle_class)
            return AvailableSpotsResultDTO(
                success=True,
                vehicle_class=parsed.value,
                spots=[DTOFactory.create_spot_dto(spot) for spot in spots],
                message=f"{len(spots)} spots available" if spots else "No spots available"
            )
        return self._run(AvailableSpotsResultDTO, "spot search", operation)

    def park_vehicle(self, request: ParkingRequestDTO) -> AllocationResultDTO:
        """
        Park a vehicle in the parking facility

        Use Case: Vehicle Entry
        1. Validate plate, vehicle class and spot choice
        2. Occupy the spot
        3. Issue the ticket

        Returns: Allocation result
        """
        self.logger.info(f"Processing parking request for {request.license_plate} at {request.spot_id}")

        def operation() -> AllocationResultDTO:
            ticket = self.facility.allocate(request.license_plate, request.vehicle_class, request.spot_id)
            return AllocationResultDTO(
                success=True,
                ticket=DTOFactory.create_ticket_dto(ticket),
                message="Vehicle parked successfully"
            )
        return self._run(AllocationResultDTO, "parking", operation)

    def compute_bill(self, license_plate: str) -> BillingResultDTO:
        """Quote the exit bill for a plate without ending the session"""
        def operation() -> BillingResultDTO:
            bill = self.facility.compute_bill(license_plate)
            return BillingResultDTO(
                success=True,
                bill=DTOFactory.create_bill_dto(bill),
                message=f"Amount due: {bill.total.format()}"
            )
        return self._run(BillingResultDTO, "billing", operation)

    def settle_payment(self, request: PaymentRequestDTO) -> SettlementResultDTO:
        """
        Settle a plate's session

        Use Case: Payment
        - no open session: success with settled=False, nothing changes
        - otherwise the spot is released, revenue booked and fines cleared
        """
        def operation() -> SettlementResultDTO:
            ticket = self.facility.settle(request.license_plate, request.amount_paid)
            if ticket is None:
                return SettlementResultDTO(
                    success=True,
                    settled=False,
                    total_revenue=self.facility.total_revenue().amount,
                    message=f"No active ticket for {request.license_plate}; nothing to settle"
                )
            return SettlementResultDTO(
                success=True,
                settled=True,
                ticket=DTOFactory.create_ticket_dto(ticket),
                amount_paid=Money.of(request.amount_paid, self.facility.currency).amount,
                total_revenue=self.facility.total_revenue().amount,
                message="Payment settled"
            )
        return self._run(SettlementResultDTO, "settlement", operation)

    def exit_vehicle(self, request: ExitRequestDTO) -> ExitResultDTO:
        """
        Bill and settle in one step

        Use Case: Vehicle Exit
        1. Compute the bill
        2. Pay the given amount, or the bill total when none is given
        3. Release the spot
        """
        self.logger.info(f"Processing exit for {request.license_plate}")

        def operation() -> ExitResultDTO:
            bill = self.facility.compute_bill(request.license_plate)
            amount = request.amount_paid if request.amount_paid is not None else bill.total
            ticket = self.facility.settle(request.license_plate, amount)
            if ticket is None:
                # Session closed by another caller between billing and settling
                return ExitResultDTO(
                    success=True,
                    settled=False,
                    bill=DTOFactory.create_bill_dto(bill),
                    total_revenue=self.facility.total_revenue().amount,
                    message=f"No active ticket for {request.license_plate}; nothing was charged"
                )
            paid = Money.of(amount, self.facility.currency)
            return ExitResultDTO(
                success=True,
                settled=True,
                ticket=DTOFactory.create_ticket_dto(ticket),
                bill=DTOFactory.create_bill_dto(bill),
                amount_paid=paid.amount,
                total_revenue=self.facility.total_revenue().amount,
                message=f"Exit complete, paid {paid.format()}"
            )
        return self._run(ExitResultDTO, "exit", operation)

    # ========================================================================
    # ADMINISTRATION
    # ========================================================================

    def release_unpaid(self, license_plate: str) -> ReleaseResultDTO:
        """Gate override: let the vehicle out and ledger what it owed"""
        def operation() -> ReleaseResultDTO:
            bill = self.facility.release_unpaid(license_plate)
            if bill is None:
                return ReleaseResultDTO(
                    success=True,
                    released=False,
                    message=f"No active ticket for {license_plate}"
                )
            return ReleaseResultDTO(
                success=True,
                released=True,
                bill=DTOFactory.create_bill_dto(bill),
                outstanding_fine=self.facility.outstanding_fine(license_plate).amount,
                message=f"Released unpaid; {bill.total.format()} carried to next exit"
            )
        return self._run(ReleaseResultDTO, "unpaid release", operation)

    def void_ticket(self, license_plate: str) -> VoidResultDTO:
        def operation() -> VoidResultDTO:
            ticket = self.facility.void_ticket(license_plate)
            return VoidResultDTO(
                success=True,
                voided=ticket is not None,
                ticket=DTOFactory.create_ticket_dto(ticket) if ticket else None,
                message="Ticket voided" if ticket else f"No active ticket for {license_plate}"
            )
        return self._run(VoidResultDTO, "ticket void", operation)

    def record_fine(self, license_plate: str, amount: Union[Decimal, float, int, str]) -> FineResultDTO:
        def operation() -> FineResultDTO:
            balance = self.facility.record_fine(license_plate, amount)
            return FineResultDTO(
                success=True,
                license_plate=license_plate.strip().upper(),
                outstanding_fine=balance.amount,
                message=f"Outstanding fines: {balance.format()}"
            )
        return self._run(FineResultDTO, "fine entry", operation)

    def get_outstanding_fine(self, license_plate: str) -> FineResultDTO:
        def operation() -> FineResultDTO:
            balance = self.facility.outstanding_fine(license_plate)
            return FineResultDTO(
                success=True,
                license_plate=license_plate.strip().upper(),
                outstanding_fine=balance.amount
            )
        return self._run(FineResultDTO, "fine lookup", operation)

    def set_fine_scheme(self, scheme: Union[FineScheme, str]) -> FineSchemeResultDTO:
        def operation() -> FineSchemeResultDTO:
            previous = self.facility.set_fine_scheme(scheme)
            current = self.facility.fine_scheme
            return FineSchemeResultDTO(
                success=True,
                previous_scheme=previous.value,
                current_scheme=current.value,
                message=f"Fine scheme set to {current.value}"
            )
        return self._run(FineSchemeResultDTO, "fine scheme change", operation)

    # ========================================================================
    # REPORTING
    # ========================================================================

    def get_facility_status(self) -> FacilityStatusDTO:
        """Admin report: revenue, occupancy, per-floor status and ledger"""
        def operation() -> FacilityStatusDTO:
            report = self.facility.get_status_report()
            floors = [
                DTOFactory.create_floor_occupancy_dto(occupancy)
                for occupancy in self.facility.floor_occupancy()
            ]
            revenue = self.facility.total_revenue()
            return FacilityStatusDTO(
                success=True,
                facility_id=self.facility.id,
                total_spots=report["total_spots"],
                active_occupancy=report["active_occupancy"],
                available_spots=report["total_spots"] - report["active_occupancy"],
                total_revenue=revenue.amount,
                currency=revenue.currency,
                fine_scheme=report["fine_scheme"],
                floors=floors,
                outstanding_fines={
                    plate: amount.amount
                    for plate, amount in self.facility.outstanding_fines().items()
                },
                generated_at=self.facility.clock.now()
            )
        return self._run(FacilityStatusDTO, "status report", operation)


# ============================================================================
# SERVICE FACTORY
# ============================================================================

class ParkingServiceFactory:
    """Factory for creating parking service instances"""

    @staticmethod
    def create_default_service(
        clock: Optional[Clock] = None,
        event_bus: Optional[EventBus] = None
    ) -> ParkingService:
        """Service over the standard 3-floor facility"""
        facility = FacilityFactory().create_default(clock=clock)
        return ParkingService(facility, event_bus)

    @staticmethod
    def create_service_with_config(
        config: Union[FacilityConfig, Dict[str, Any]],
        clock: Optional[Clock] = None,
        event_bus: Optional[EventBus] = None
    ) -> ParkingService:
        """Service over a facility built from configuration"""
        facility = FacilityFactory().create(config, clock=clock)
        return ParkingService(facility, event_bus)

    @staticmethod
    def create_service_from_file(
        path: Optional[Union[str, Path]] = None,
        clock: Optional[Clock] = None,
        event_bus: Optional[EventBus] = None
    ) -> ParkingService:
        """Service over a facility described by a YAML file (or PARKADE_CONFIG)"""
        from ..infrastructure.config import load_config

        return ParkingServiceFactory.create_service_with_config(load_config(path), clock, event_bus)
