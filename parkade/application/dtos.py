# File: parkade/application/dtos.py
"""
Data Transfer Objects (DTOs) for the Parkade engine

This module defines DTOs for data transfer between layers:
1. Configuration DTOs - Validated facility layout, rates and fine policy
2. Request DTOs - Input to the application service use cases
3. Result DTOs - Typed outcomes returned by the application service
4. Report DTOs - Occupancy and revenue snapshots

DTO Principles:
- Validation at creation
- No business logic, only data
- Serialization/deserialization support
- Amounts travel as Decimal, never float
"""

from typing import Dict, List, Optional, Any, Type, TypeVar
from datetime import datetime
from decimal import Decimal
import json
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from ..domain.models import SpotClass, FineScheme

T = TypeVar('T', bound='BaseDTO')


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        return self.model_dump(exclude_none=exclude_none, **kwargs)

    def to_json(self, **kwargs) -> str:
        """Convert DTO to JSON string"""
        return self.model_dump_json(**kwargs)

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Create DTO from dictionary"""
        return cls.model_validate(data)

    @classmethod
    def from_json(cls: Type[T], json_str: str) -> T:
        """Create DTO from JSON string"""
        return cls.model_validate(json.loads(json_str))


# ============================================================================
# CONFIGURATION DTO
# ============================================================================

DEFAULT_SPOTS_PER_FLOOR: Dict[str, int] = {
    SpotClass.COMPACT.value: 5,
    SpotClass.REGULAR.value: 5,
    SpotClass.HANDICAPPED.value: 2,
    SpotClass.RESERVED.value: 2,
}


class FacilityConfig(BaseDTO):
    """
    Facility configuration

    Defaults reproduce the standard facility: 3 floors, each with
    5 Compact, 5 Regular, 2 Handicapped and 2 Reserved spots.

    spots_per_floor describes the whole per-floor layout; spot classes
    it leaves out get no spots. base_rates overrides the default hourly
    rate of the classes it names and keeps the rest.
    """
    floors: int = Field(default=3, ge=1, le=200, description="Number of floors")
    spots_per_floor: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_SPOTS_PER_FLOOR),
        description="Spots of each class on every floor"
    )
    base_rates: Dict[str, Decimal] = Field(
        default_factory=lambda: {sc.value: sc.base_rate for sc in SpotClass},
        description="Hourly rate per spot class"
    )
    overstay_threshold_hours: int = Field(default=24, ge=1)
    overstay_fine: Decimal = Field(default=Decimal('50.00'), ge=0)
    overstay_hourly_fine: Decimal = Field(default=Decimal('5.00'), ge=0)
    fine_scheme: str = Field(default=FineScheme.FIXED.value)
    handicapped_concession: bool = True
    currency: str = Field(default="MYR", pattern=r"^[A-Za-z]{3}$")

    @field_validator('spots_per_floor', mode='before')
    @classmethod
    def normalize_spots_per_floor(cls, v: Any) -> Any:
        if v is None:
            return dict(DEFAULT_SPOTS_PER_FLOOR)
        if not isinstance(v, dict):
            raise ValueError("spots_per_floor must be a mapping of spot class to count")
        normalized = {sc.value: 0 for sc in SpotClass}
        for key, count in v.items():
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise ValueError(f"Spot count for {key!r} must be a non-negative integer")
            normalized[SpotClass.parse(key).value] = count
        return normalized

    @field_validator('base_rates', mode='before')
    @classmethod
    def merge_base_rates(cls, v: Any) -> Any:
        rates: Dict[str, Any] = {sc.value: sc.base_rate for sc in SpotClass}
        if v is None:
            return rates
        if not isinstance(v, dict):
            raise ValueError("base_rates must be a mapping of spot class to rate")
        for key, rate in v.items():
            rates[SpotClass.parse(key).value] = rate
        return rates

    @field_validator('base_rates')
    @classmethod
    def validate_rates(cls, v: Dict[str, Decimal]) -> Dict[str, Decimal]:
        for key, rate in v.items():
            if not rate.is_finite() or rate < 0:
                raise ValueError(f"Rate for {key!r} must be a non-negative number")
        return v

    @field_validator('fine_scheme', mode='before')
    @classmethod
    def normalize_fine_scheme(cls, v: Any) -> str:
        return FineScheme.parse(v).value

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode='after')
    def check_capacity(self) -> 'FacilityConfig':
        if sum(self.spots_per_floor.values()) == 0:
            raise ValueError("Facility must have at least one spot per floor")
        return self

    @property
    def total_spots(self) -> int:
        return self.floors * sum(self.spots_per_floor.values())

    def spot_counts(self) -> Dict[SpotClass, int]:
        """Per-floor spot counts in creation order (Compact, Regular, Handicapped, Reserved)"""
        return {sc: self.spots_per_floor.get(sc.value, 0) for sc in SpotClass}

    def rates(self) -> Dict[SpotClass, Decimal]:
        return {sc: self.base_rates[sc.value] for sc in SpotClass}


# ============================================================================
# REQUEST DTOs
# ============================================================================

class ParkingRequestDTO(BaseDTO):
    """Request to park a vehicle in a chosen spot"""
    license_plate: str
    vehicle_class: str
    spot_id: str


class PaymentRequestDTO(BaseDTO):
    """Request to settle a plate's open session"""
    license_plate: str
    amount_paid: Decimal


class ExitRequestDTO(BaseDTO):
    """Request to bill and settle in one step; no amount means pay the bill total"""
    license_plate: str
    amount_paid: Optional[Decimal] = None


# ============================================================================
# DOMAIN SNAPSHOT DTOs
# ============================================================================

class SpotDTO(BaseDTO):
    spot_id: str
    floor_number: int
    index: int
    spot_class: str
    is_occupied: bool
    occupant_plate: Optional[str] = None


class TicketDTO(BaseDTO):
    ticket_id: str
    license_plate: str
    spot_id: str
    entry_time: datetime
    vehicle_class: str


class BillDTO(BaseDTO):
    """Charge summary; fine = overstay_fine + outstanding_fines"""
    ticket: TicketDTO
    billed_hours: int
    hourly_rate: Decimal
    parking_fee: Decimal
    overstay_fine: Decimal
    outstanding_fines: Decimal
    fine: Decimal
    total: Decimal
    currency: str
    billed_at: datetime
    duration_minutes: int


class FloorOccupancyDTO(BaseDTO):
    floor_number: int
    occupied: int
    total: int
    occupancy_rate: float


# ============================================================================
# RESULT DTOs
# ============================================================================

class ResultDTO(BaseDTO):
    """
    Outcome of a service call
    error_code is None on success, otherwise one of invalid_input,
    spot_not_found, spot_occupied, no_active_ticket or internal_error
    """
    success: bool
    error_code: Optional[str] = None
    message: str = ""


class AvailableSpotsResultDTO(ResultDTO):
    vehicle_class: Optional[str] = None
    spots: List[SpotDTO] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.spots)


class AllocationResultDTO(ResultDTO):
    ticket: Optional[TicketDTO] = None


class BillingResultDTO(ResultDTO):
    bill: Optional[BillDTO] = None


class SettlementResultDTO(ResultDTO):
    """settled is False (with success True) when the plate had no open session"""
    settled: bool = False
    ticket: Optional[TicketDTO] = None
    amount_paid: Optional[Decimal] = None
    total_revenue: Optional[Decimal] = None


class ExitResultDTO(SettlementResultDTO):
    bill: Optional[BillDTO] = None


class ReleaseResultDTO(ResultDTO):
    released: bool = False
    bill: Optional[BillDTO] = None
    outstanding_fine: Optional[Decimal] = None


class VoidResultDTO(ResultDTO):
    voided: bool = False
    ticket: Optional[TicketDTO] = None


class FineResultDTO(ResultDTO):
    license_plate: Optional[str] = None
    outstanding_fine: Optional[Decimal] = None


class FineSchemeResultDTO(ResultDTO):
    previous_scheme: Optional[str] = None
    current_scheme: Optional[str] = None


class FacilityStatusDTO(ResultDTO):
    """Admin report: revenue, occupancy and per-floor status"""
    facility_id: Optional[str] = None
    total_spots: int = 0
    active_occupancy: int = 0
    available_spots: int = 0
    total_revenue: Decimal = Decimal('0.00')
    currency: str = "MYR"
    fine_scheme: Optional[str] = None
    floors: List[FloorOccupancyDTO] = Field(default_factory=list)
    outstanding_fines: Dict[str, Decimal] = Field(default_factory=dict)
    generated_at: Optional[datetime] = None

    @property
    def occupancy_rate(self) -> float:
        if self.total_spots == 0:
            return 0.0
        return (self.active_occupancy / self.total_spots) * 100.0
