# File: parkade/application/commands.py
"""
Command Pattern Implementation for the Parkade engine

This module implements the Command Pattern to encapsulate facility operations
as first-class objects. Each command represents a business operation that
can be executed, validated, undone (where it makes sense), and logged.

Key Benefits:
- Decouple operation invocation from execution
- Support undo/redo operations
- Provide audit trail for all operations

Command Types:
1. Parking Commands - Vehicle entry and exit
2. Billing Commands - Payment settlement, unpaid release, fine entries
3. Admin Commands - Fine scheme changes
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Tuple, Type, Union
from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging
import uuid

from ..domain.models import VehicleClass, FineScheme, InvalidInput
from .parking_service import ParkingService
from .dtos import (
    ResultDTO, ParkingRequestDTO, PaymentRequestDTO, ExitRequestDTO
)


# ============================================================================
# COMMAND INTERFACES AND BASE CLASSES
# ============================================================================

class Command(ABC):
    """
    Abstract base class for all commands

    A command represents an intent to change the system state.
    Commands are named in the imperative (e.g., ParkVehicleCommand).
    """

    def __init__(self, command_id: Optional[str] = None, executed_by: Optional[str] = None):
        self.command_id = command_id or str(uuid.uuid4())
        self.executed_at: Optional[datetime] = None
        self.executed_by = executed_by or "system"
        self.result: Optional[ResultDTO] = None
        self.logger = logging.getLogger(self.__class__.__name__)

        self.metadata = {
            "command_id": self.command_id,
            "command_type": self.__class__.__name__,
            "created_at": datetime.now().isoformat()
        }

    @abstractmethod
    def _perform(self, service: ParkingService) -> ResultDTO:
        """Call the service use case for this command"""
        pass

    @abstractmethod
    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate command parameters before execution

        Returns: (is_valid, error_messages)
        """
        pass

    def execute(self, service: ParkingService) -> Dict[str, Any]:
        """
        Execute the command using the provided service

        Returns: Execution result dictionary
        """
        self.logger.info(f"Executing {self.get_description()}")

        is_valid, errors = self.validate()
        if not is_valid:
            return {
                "success": False,
                "command_id": self.command_id,
                "error_code": "invalid_input",
                "error": f"Validation failed: {errors}"
            }

        self.result = self._perform(service)
        self.executed_at = datetime.now()
        return self._to_response(self.result)

    def _to_response(self, result: ResultDTO) -> Dict[str, Any]:
        response: Dict[str, Any] = {
            "success": result.success,
            "command_id": self.command_id,
            "message": result.message,
            "data": result.to_dict()
        }
        if not result.success:
            response["error_code"] = result.error_code
            response["error"] = result.message
        return response

    def can_undo(self) -> bool:
        """
        Check if this command can be undone

        Returns: True if command supports undo, False otherwise
        """
        return False

    def undo(self, service: ParkingService) -> Dict[str, Any]:
        """
        Undo the effects of this command

        Returns: Undo result dictionary
        """
        return {
            "success": False,
            "command_id": self.command_id,
            "error": f"{self.__class__.__name__} does not support undo"
        }

    def get_description(self) -> str:
        """Get human-readable command description"""
        return self.__class__.__name__.replace("Command", "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert command to dictionary for serialization"""
        return {
            "command_id": self.command_id,
            "command_type": self.__class__.__name__,
            "description": self.get_description(),
            "metadata": self.metadata,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "executed_by": self.executed_by
        }


def _check_plate(license_plate: Any, errors: List[str]) -> None:
    if not isinstance(license_plate, str) or not license_plate.strip():
        errors.append("License plate is required")


def _check_amount(amount: Any, errors: List[str], field_name: str = "Amount") -> None:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        errors.append(f"{field_name} must be a number: {amount!r}")
        return
    if not value.is_finite() or value < 0:
        errors.append(f"{field_name} cannot be negative: {amount!r}")


# ============================================================================
# PARKING COMMANDS
# ============================================================================

class ParkVehicleCommand(Command):
    """
    Command: Park a vehicle in a chosen spot

    Business Operation: Vehicle Entry
    Can be undone by: voiding the issued ticket (no charge)
    """

    def __init__(self, request: ParkingRequestDTO, executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.request = request
        self.ticket_id: Optional[str] = None

    def _perform(self, service: ParkingService) -> ResultDTO:
        result = service.park_vehicle(self.request)
        self.ticket_id = result.ticket.ticket_id if result.success and result.ticket else None
        return result

    def validate(self) -> Tuple[bool, List[str]]:
        errors: List[str] = []
        _check_plate(self.request.license_plate, errors)

        if not self.request.spot_id:
            errors.append("Spot ID is required")

        try:
            VehicleClass.parse(self.request.vehicle_class)
        except InvalidInput:
            errors.append(f"Invalid vehicle class: {self.request.vehicle_class}")

        return len(errors) == 0, errors

    def can_undo(self) -> bool:
        return self.ticket_id is not None

    def undo(self, service: ParkingService) -> Dict[str, Any]:
        """Undo parking by voiding the ticket it issued"""
        if not self.can_undo():
            return {
                "success": False,
                "command_id": self.command_id,
                "error": "Cannot undo: Command was not successfully executed"
            }

        active = service.facility.active_ticket(self.request.license_plate)
        if active is None or active.ticket_id != self.ticket_id:
            return {
                "success": False,
                "command_id": self.command_id,
                "error": f"Ticket {self.ticket_id} is no longer active"
            }

        result = service.void_ticket(self.request.license_plate)
        if not result.success:
            return {
                "success": False,
                "command_id": self.command_id,
                "error": f"Failed to void ticket: {result.message}"
            }

        undone_ticket = self.ticket_id
        self.ticket_id = None
        return {
            "success": True,
            "command_id": self.command_id,
            "message": "Parking undone successfully",
            "undo_action": "ticket_voided",
            "ticket_id": undone_ticket
        }

    def get_description(self) -> str:
        return f"Park Vehicle {self.request.license_plate} at {self.request.spot_id}"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["request"] = self.request.to_dict()
        data["ticket_id"] = self.ticket_id
        return data


class ExitVehicleCommand(Command):
    """
    Command: Bill and settle a vehicle's session in one step

    Business Operation: Vehicle Exit
    Cannot be undone (revenue never decreases)
    """

    def __init__(self, request: ExitRequestDTO, executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.request = request

    def _perform(self, service: ParkingService) -> ResultDTO:
        return service.exit_vehicle(self.request)

    def validate(self) -> Tuple[bool, List[str]]:
        errors: List[str] = []
        _check_plate(self.request.license_plate, errors)
        if self.request.amount_paid is not None:
            _check_amount(self.request.amount_paid, errors, "Amount paid")
        return len(errors) == 0, errors

    def get_description(self) -> str:
        return f"Exit Vehicle {self.request.license_plate}"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["request"] = self.request.to_dict()
        return data


# ============================================================================
# BILLING COMMANDS
# ============================================================================

class SettlePaymentCommand(Command):
    """Command: Settle payment for an open session"""

    def __init__(self, request: PaymentRequestDTO, executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.request = request

    def _perform(self, service: ParkingService) -> ResultDTO:
        return service.settle_payment(self.request)

    def validate(self) -> Tuple[bool, List[str]]:
        errors: List[str] = []
        _check_plate(self.request.license_plate, errors)
        _check_amount(self.request.amount_paid, errors, "Amount paid")
        return len(errors) == 0, errors

    def get_description(self) -> str:
        return f"Settle Payment {self.request.license_plate} ({self.request.amount_paid})"


class ReleaseUnpaidCommand(Command):
    """Command: Let a vehicle out unpaid; the bill is carried to its next exit"""

    def __init__(self, license_plate: str, executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.license_plate = license_plate

    def _perform(self, service: ParkingService) -> ResultDTO:
        return service.release_unpaid(self.license_plate)

    def validate(self) -> Tuple[bool, List[str]]:
        errors: List[str] = []
        _check_plate(self.license_plate, errors)
        return len(errors) == 0, errors

    def get_description(self) -> str:
        return f"Release Unpaid {self.license_plate}"


class RecordFineCommand(Command):
    """Command: Add an enforcement fine to a plate's ledger"""

    def __init__(self, license_plate: str, amount: Union[Decimal, float, int, str],
                 executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.license_plate = license_plate
        self.amount = amount

    def _perform(self, service: ParkingService) -> ResultDTO:
        return service.record_fine(self.license_plate, self.amount)

    def validate(self) -> Tuple[bool, List[str]]:
        errors: List[str] = []
        _check_plate(self.license_plate, errors)
        _check_amount(self.amount, errors, "Fine amount")
        return len(errors) == 0, errors

    def get_description(self) -> str:
        return f"Record Fine {self.license_plate} ({self.amount})"


# ============================================================================
# ADMIN COMMANDS
# ============================================================================

class ChangeFineSchemeCommand(Command):
    """
    Command: Switch the active fine scheme
    Can be undone by: restoring the previous scheme
    """

    def __init__(self, scheme: Union[FineScheme, str], executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.scheme = scheme
        self.previous_scheme: Optional[str] = None

    def _perform(self, service: ParkingService) -> ResultDTO:
        result = service.set_fine_scheme(self.scheme)
        self.previous_scheme = result.previous_scheme if result.success else None
        return result

    def validate(self) -> Tuple[bool, List[str]]:
        try:
            FineScheme.parse(self.scheme)
        except InvalidInput:
            return False, [f"Invalid fine scheme: {self.scheme}"]
        return True, []

    def can_undo(self) -> bool:
        return self.previous_scheme is not None

    def undo(self, service: ParkingService) -> Dict[str, Any]:
        if not self.can_undo():
            return super().undo(service)

        result = service.set_fine_scheme(self.previous_scheme)
        if not result.success:
            return {
                "success": False,
                "command_id": self.command_id,
                "error": result.message
            }

        restored = self.previous_scheme
        self.previous_scheme = None
        return {
            "success": True,
            "command_id": self.command_id,
            "message": f"Fine scheme restored to {restored}",
            "undo_action": "fine_scheme_restored"
        }

    def get_description(self) -> str:
        scheme = self.scheme.value if isinstance(self.scheme, FineScheme) else self.scheme
        return f"Change Fine Scheme to {scheme}"


# ============================================================================
# COMMAND FACTORY
# ============================================================================

class CommandFactory:
    """Builds commands from plain dictionaries (e.g. a UI or batch file)"""

    _COMMANDS: Dict[str, Type[Command]] = {
        "park_vehicle": ParkVehicleCommand,
        "exit_vehicle": ExitVehicleCommand,
        "settle_payment": SettlePaymentCommand,
        "release_unpaid": ReleaseUnpaidCommand,
        "record_fine": RecordFineCommand,
        "change_fine_scheme": ChangeFineSchemeCommand,
    }

    @classmethod
    def create(cls, data: Dict[str, Any]) -> Command:
        """
        Create a command from {"type": ..., **parameters}
        Raises: ValueError for an unknown type or missing parameters
        """
        data = dict(data)
        command_type = data.pop("type", None)
        executed_by = data.pop("executed_by", None)

        if command_type == "park_vehicle":
            return ParkVehicleCommand(ParkingRequestDTO.from_dict(data), executed_by)
        if command_type == "exit_vehicle":
            return ExitVehicleCommand(ExitRequestDTO.from_dict(data), executed_by)
        if command_type == "settle_payment":
            return SettlePaymentCommand(PaymentRequestDTO.from_dict(data), executed_by)
        if command_type == "release_unpaid":
            return ReleaseUnpaidCommand(data["license_plate"], executed_by)
        if command_type == "record_fine":
            return RecordFineCommand(data["license_plate"], data["amount"], executed_by)
        if command_type == "change_fine_scheme":
            return ChangeFineSchemeCommand(data["scheme"], executed_by)

        raise ValueError(f"Unknown command type: {command_type!r}")

    @classmethod
    def supported_types(cls) -> List[str]:
        return list(cls._COMMANDS)


# ============================================================================
# COMMAND PROCESSOR
# ============================================================================

class CommandProcessor:
    """
    Processes commands with features like:
    - Undo/redo support
    - Command logging
    - Bounded history
    """

    def __init__(self, service: ParkingService, max_history_size: int = 1000):
        self.service = service
        self.logger = logging.getLogger(self.__class__.__name__)

        # Command history for undo/redo
        self.command_history: List[Command] = []
        self.undone_commands: List[Command] = []

        self.max_history_size = max_history_size

    def process(self, command: Command) -> Dict[str, Any]:
        """
        Process a command

        Args:
            command: Command to execute

        Returns: Execution result
        """
        self.logger.info(f"Processing command: {command.get_description()}")

        try:
            result = command.execute(self.service)
        except Exception as e:
            self.logger.error(f"Error processing command: {e}", exc_info=True)
            return {
                "success": False,
                "command_id": command.command_id,
                "error_code": "internal_error",
                "error": str(e)
            }

        if result.get("success", False):
            self._add_to_history(command)
            # New branch of history
            self.undone_commands.clear()

        return result

    def process_batch(self, commands: List[Command], stop_on_failure: bool = False) -> List[Dict[str, Any]]:
        """Process multiple commands in order"""
        results = []
        for command in commands:
            result = self.process(command)
            results.append(result)
            if stop_on_failure and not result.get("success", False):
                break
        return results

    def undo_last(self) -> Dict[str, Any]:
        """Undo the last executed command"""
        if not self.command_history:
            return {
                "success": False,
                "error": "No commands to undo"
            }

        command = self.command_history.pop()

        if not command.can_undo():
            self.command_history.append(command)
            return {
                "success": False,
                "command_id": command.command_id,
                "error": f"Command {command.get_description()} does not support undo"
            }

        try:
            result = command.undo(self.service)
        except Exception as e:
            self.logger.error(f"Error undoing command: {e}", exc_info=True)
            self.command_history.append(command)
            return {
                "success": False,
                "command_id": command.command_id,
                "error": str(e)
            }

        if result.get("success", False):
            self.undone_commands.append(command)
        else:
            self.command_history.append(command)
        return result

    def redo_last(self) -> Dict[str, Any]:
        """Redo the last undone command"""
        if not self.undone_commands:
            return {
                "success": False,
                "error": "No commands to redo"
            }

        command = self.undone_commands.pop()

        try:
            result = command.execute(self.service)
        except Exception as e:
            self.logger.error(f"Error redoing command: {e}", exc_info=True)
            self.undone_commands.append(command)
            return {
                "success": False,
                "command_id": command.command_id,
                "error": str(e)
            }

        if result.get("success", False):
            self._add_to_history(command)
        return result

    def get_history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get command history"""
        history = self.command_history.copy()
        if limit:
            history = history[-limit:]
        return [cmd.to_dict() for cmd in history]

    def clear_history(self) -> None:
        """Clear command history"""
        self.command_history.clear()
        self.undone_commands.clear()

    def _add_to_history(self, command: Command) -> None:
        """Add command to history, respecting max size"""
        self.command_history.append(command)
        if len(self.command_history) > self.max_history_size:
            self.command_history = self.command_history[-self.max_history_size:]
