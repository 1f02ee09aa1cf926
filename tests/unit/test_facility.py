# File: tests/unit/test_facility.py
"""
ParkingFacility Aggregate Unit Tests

Covers allocation, exit billing, settlement, the fines ledger,
administrative operations and concurrent allocation.
"""

import unittest
import threading
from dataclasses import FrozenInstanceError
from unittest.mock import MagicMock, patch
from datetime import datetime
from decimal import Decimal
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.append(str(Path(__file__).parent.parent.parent))

from parkade.domain.models import (
    VehicleClass, SpotClass, FineScheme, Money,
    Vehicle, LicensePlate, InvalidInput, SpotNotFound, SpotOccupied, NoActiveTicket,
    VehicleParkedEvent, VehicleLeftEvent, FineLedgeredEvent, FineSchemeChangedEvent
)
from parkade.domain.aggregates import ParkingFacility
from parkade.infrastructure.factories import FacilityFactory, FloorFactory, ManualClock, TicketIdGenerator

# Default layout per floor: S1-S5 compact, S6-S10 regular, S11-S12 handicapped, S13-S14 reserved
REGULAR_SPOT = "F1-S6"
COMPACT_SPOT = "F1-S1"
HANDICAPPED_SPOT = "F1-S11"
RESERVED_SPOT = "F1-S13"


class FacilityTestCase(unittest.TestCase):

    def setUp(self):
        self.clock = ManualClock(datetime(2024, 1, 1, 8, 0, 0))
        self.facility = FacilityFactory().create(clock=self.clock)

    def snapshot(self):
        return (
            self.facility.active_occupancy_count(),
            self.facility.total_revenue(),
            self.facility.outstanding_fines(),
            [spot.id for spot in self.facility.find_available(VehicleClass.HANDICAPPED_VEHICLE)],
        )


class TestFindAvailable(FacilityTestCase):

    def test_default_layout(self):
        self.assertEqual(self.facility.total_spots, 42)
        self.assertEqual(self.facility.floor_numbers, (1, 2, 3))
        self.assertEqual(self.facility.get_spot(REGULAR_SPOT).spot_class, SpotClass.REGULAR)
        self.assertEqual(self.facility.get_spot(RESERVED_SPOT).spot_class, SpotClass.RESERVED)

    def test_counts_per_vehicle_class(self):
        self.assertEqual(len(self.facility.find_available(VehicleClass.MOTORCYCLE)), 15)
        self.assertEqual(len(self.facility.find_available(VehicleClass.CAR)), 30)
        self.assertEqual(len(self.facility.find_available(VehicleClass.SUV_TRUCK)), 15)
        self.assertEqual(len(self.facility.find_available(VehicleClass.HANDICAPPED_VEHICLE)), 42)

    def test_only_compatible_unoccupied_spots(self):
        self.facility.allocate("CAR1", "car", COMPACT_SPOT)
        for vehicle_class in VehicleClass:
            for spot in self.facility.find_available(vehicle_class):
                self.assertFalse(spot.is_occupied)
                self.assertTrue(spot.can_accommodate(vehicle_class))
                self.assertNotEqual(spot.id, COMPACT_SPOT)

    def test_floor_then_index_order(self):
        ids = [spot.id for spot in self.facility.find_available("suv_truck")]
        self.assertEqual(ids[:6], ["F1-S6", "F1-S7", "F1-S8", "F1-S9", "F1-S10", "F2-S6"])

    def test_no_capacity_is_empty_list(self):
        for spot in list(self.facility.find_available(VehicleClass.MOTORCYCLE)):
            self.facility.allocate(f"M{spot.floor_number}X{spot.index}", "motorcycle", spot.id)
        self.assertEqual(self.facility.find_available(VehicleClass.MOTORCYCLE), [])

    def test_returned_spots_cannot_change_facility_state(self):
        spot = self.facility.find_available(VehicleClass.CAR)[0]
        ghost = Vehicle(LicensePlate("GHOST1"), VehicleClass.CAR)

        self.assertFalse(hasattr(spot, "occupy"))
        with self.assertRaises(FrozenInstanceError):
            spot.occupant = ghost

        looked_up = self.facility.get_spot(spot.id)
        self.assertIsNot(looked_up, self.facility.get_spot(spot.id))
        self.assertFalse(hasattr(looked_up, "vacate"))

        self.assertEqual(self.facility.active_occupancy_count(), 0)
        self.assertEqual(self.facility.floor_occupancy()[0].occupied, 0)
        self.assertEqual(len(self.facility.find_available(VehicleClass.CAR)), 30)
        self.facility.check_invariants()

    def test_unknown_spot_lookup(self):
        self.assertIsNone(self.facility.get_spot("F9-S1"))

    def test_invalid_vehicle_class(self):
        with self.assertRaises(InvalidInput):
            self.facility.find_available("spaceship")


class TestAllocate(FacilityTestCase):

    def test_allocating_a_returned_spot_succeeds(self):
        spot = self.facility.find_available(VehicleClass.CAR)[0]
        ticket = self.facility.allocate("ABC123", VehicleClass.CAR, spot.id)

        self.assertEqual(ticket.spot_id, spot.id)
        self.assertEqual(ticket.license_plate.value, "ABC123")
        self.assertEqual(ticket.entry_time, self.clock.now())
        self.assertEqual(ticket.vehicle_class, VehicleClass.CAR)
        self.assertTrue(ticket.ticket_id.startswith("T-ABC123-"))
        parked = self.facility.get_spot(spot.id)
        self.assertTrue(parked.is_occupied)
        self.assertEqual(parked.occupant.license_plate.value, "ABC123")
        self.assertFalse(spot.is_occupied)
        self.assertEqual(self.facility.active_occupancy_count(), 1)
        self.facility.check_invariants()

    def test_unknown_spot(self):
        with self.assertRaises(SpotNotFound):
            self.facility.allocate("ABC123", "car", "F9-S1")

    def test_occupied_spot(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        with self.assertRaises(SpotOccupied):
            self.facility.allocate("XYZ789", "car", REGULAR_SPOT)

    def test_incompatible_spot(self):
        with self.assertRaises(InvalidInput):
            self.facility.allocate("MOTO1", "motorcycle", REGULAR_SPOT)
        with self.assertRaises(InvalidInput):
            self.facility.allocate("CAR1", "car", RESERVED_SPOT)

    def test_duplicate_plate_rejected(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        with self.assertRaises(InvalidInput):
            self.facility.allocate("abc123", "car", "F1-S7")

    def test_bad_plate_or_class(self):
        with self.assertRaises(InvalidInput):
            self.facility.allocate("!!", "car", REGULAR_SPOT)
        with self.assertRaises(InvalidInput):
            self.facility.allocate("ABC123", "bus", REGULAR_SPOT)

    def test_failed_calls_leave_state_unchanged(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.facility.clear_events()
        before = self.snapshot()
        version = self.facility.version

        attempts = [
            ("XYZ789", "car", REGULAR_SPOT),
            ("XYZ789", "car", "F7-S1"),
            ("XYZ789", "motorcycle", "F1-S7"),
            ("ABC123", "car", "F1-S7"),
            ("", "car", "F1-S7"),
        ]
        for plate, vehicle_class, spot_id in attempts:
            with self.subTest(plate=plate, spot_id=spot_id):
                with self.assertRaises(Exception):
                    self.facility.allocate(plate, vehicle_class, spot_id)

        self.assertEqual(self.snapshot(), before)
        self.assertEqual(self.facility.version, version)
        self.assertFalse(self.facility.has_changes)

    def test_ticket_ids_unique_within_same_millisecond(self):
        first = self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.facility.void_ticket("ABC123")
        second = self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.assertNotEqual(first.ticket_id, second.ticket_id)

        millis = [int(t.ticket_id.rsplit("-", 1)[1]) for t in (first, second)]
        self.assertLess(millis[0], millis[1])


class TestComputeBill(FacilityTestCase):

    def park_regular_car(self, plate="ABC123"):
        return self.facility.allocate(plate, VehicleClass.CAR, REGULAR_SPOT)

    def test_no_active_ticket(self):
        with self.assertRaises(NoActiveTicket):
            self.facility.compute_bill("ABC123")

    def test_bill_is_idempotent(self):
        self.park_regular_car()
        self.clock.advance(minutes=95)
        first = self.facility.compute_bill("ABC123")
        second = self.facility.compute_bill("ABC123")
        self.assertEqual(first, second)
        self.assertEqual(self.facility.active_occupancy_count(), 1)

    def test_sixty_one_minutes_bills_two_hours(self):
        self.park_regular_car()
        self.clock.advance(minutes=61)
        bill = self.facility.compute_bill("ABC123")
        self.assertEqual(bill.billed_hours, 2)
        self.assertEqual(bill.parking_fee.amount, Decimal('10.00'))

    def test_regular_car_130_minutes(self):
        self.park_regular_car()
        self.clock.advance(minutes=130)
        bill = self.facility.compute_bill("ABC123")
        self.assertEqual(bill.billed_hours, 3)
        self.assertEqual(bill.parking_fee.amount, Decimal('15.00'))
        self.assertEqual(bill.fine.amount, Decimal('0.00'))
        self.assertEqual(bill.total.amount, Decimal('15.00'))

    def test_same_minute_exit_bills_one_hour(self):
        self.park_regular_car()
        bill = self.facility.compute_bill("ABC123")
        self.assertEqual(bill.billed_hours, 1)
        self.assertEqual(bill.total.amount, Decimal('5.00'))

    def test_exactly_24_hours_has_no_fine(self):
        self.park_regular_car()
        self.clock.advance(hours=24)
        bill = self.facility.compute_bill("ABC123")
        self.assertEqual(bill.billed_hours, 24)
        self.assertTrue(bill.fine.is_zero)

    def test_24_hours_1_minute_is_fined(self):
        self.park_regular_car()
        self.clock.advance(hours=24, minutes=1)
        bill = self.facility.compute_bill("ABC123")
        self.assertEqual(bill.billed_hours, 25)
        self.assertEqual(bill.parking_fee.amount, Decimal('125.00'))
        self.assertEqual(bill.fine.amount, Decimal('50.00'))
        self.assertEqual(bill.total.amount, Decimal('175.00'))

    def test_progressive_scheme(self):
        self.facility.set_fine_scheme(FineScheme.PROGRESSIVE)
        self.park_regular_car()
        self.clock.advance(hours=49)
        bill = self.facility.compute_bill("ABC123")
        self.assertEqual(bill.overstay_fine.amount, Decimal('100.00'))
        self.assertEqual(bill.total.amount, Decimal('345.00'))

    def test_hourly_scheme(self):
        self.facility.set_fine_scheme("hourly")
        self.park_regular_car()
        self.clock.advance(hours=30)
        bill = self.facility.compute_bill("ABC123")
        self.assertEqual(bill.overstay_fine.amount, Decimal('30.00'))

    def test_plate_lookup_is_case_insensitive(self):
        self.facility.allocate("abc123", "car", REGULAR_SPOT)
        self.assertEqual(self.facility.compute_bill("ABC123").ticket.spot_id, REGULAR_SPOT)

    def test_handicapped_concession(self):
        self.facility.allocate("HC1", "handicapped_vehicle", HANDICAPPED_SPOT)
        self.facility.allocate("HC2", "handicapped_vehicle", RESERVED_SPOT)
        self.clock.advance(hours=2)
        self.assertTrue(self.facility.compute_bill("HC1").total.is_zero)
        self.assertEqual(self.facility.compute_bill("HC2").total.amount, Decimal('4.00'))

    def test_inconsistent_session_reports_spot_not_found(self):
        floor = FloorFactory().create(1, {SpotClass.REGULAR: 1})
        facility = ParkingFacility([floor], clock=self.clock, id_generator=TicketIdGenerator(self.clock))
        facility.allocate("ABC123", "car", "F1-S1")
        # Corrupt the session by emptying the spot through the floor built outside the aggregate
        floor.spots[0].vacate()
        with self.assertRaises(SpotNotFound):
            facility.compute_bill("ABC123")


class TestSettle(FacilityTestCase):

    def test_settle_without_ticket_is_noop(self):
        self.facility.record_fine("ABC123", 20)
        before = self.snapshot()
        self.assertIsNone(self.facility.settle("ABC123", 10))
        self.assertEqual(self.snapshot(), before)

    def test_settle_frees_spot_and_books_revenue(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.facility.record_fine("ABC123", 20)
        self.clock.advance(minutes=130)

        ticket = self.facility.settle("ABC123", Decimal('35.00'))

        self.assertEqual(ticket.spot_id, REGULAR_SPOT)
        self.assertFalse(self.facility.get_spot(REGULAR_SPOT).is_occupied)
        self.assertEqual(self.facility.active_occupancy_count(), 0)
        self.assertIsNone(self.facility.active_ticket("ABC123"))
        self.assertEqual(self.facility.total_revenue().amount, Decimal('35.00'))
        self.assertTrue(self.facility.outstanding_fine("ABC123").is_zero)
        self.facility.check_invariants()

    def test_revenue_grows_by_exact_amount_paid(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.facility.allocate("XYZ789", "car", "F1-S7")
        self.facility.settle("ABC123", 3)
        self.facility.settle("XYZ789", "12.50")
        self.assertEqual(self.facility.total_revenue().amount, Decimal('15.50'))

    def test_ledger_cleared_regardless_of_amount(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.facility.record_fine("ABC123", 100)
        self.facility.settle("ABC123", 0)
        self.assertTrue(self.facility.outstanding_fine("ABC123").is_zero)

    def test_invalid_amount_leaves_state_unchanged(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        before = self.snapshot()
        for amount in [-5, "ten", None]:
            with self.subTest(amount=amount):
                with self.assertRaises(InvalidInput):
                    self.facility.settle("ABC123", amount)
        self.assertEqual(self.snapshot(), before)

    def test_occupancy_changes_by_one(self):
        spot = self.facility.find_available("car")[0]
        self.facility.allocate("ABC123", "car", spot.id)
        self.assertEqual(self.facility.active_occupancy_count(), 1)
        self.assertTrue(self.facility.get_spot(spot.id).is_occupied)
        self.facility.settle("ABC123", 5)
        self.assertEqual(self.facility.active_occupancy_count(), 0)
        self.assertFalse(self.facility.get_spot(spot.id).is_occupied)


class TestFinesLedger(FacilityTestCase):

    def test_release_unpaid_ledgers_bill_for_next_exit(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.clock.advance(minutes=130)

        bill = self.facility.release_unpaid("ABC123")

        self.assertEqual(bill.total.amount, Decimal('15.00'))
        self.assertFalse(self.facility.get_spot(REGULAR_SPOT).is_occupied)
        self.assertTrue(self.facility.total_revenue().is_zero)
        self.assertEqual(self.facility.outstanding_fine("ABC123").amount, Decimal('15.00'))

        self.facility.allocate("ABC123", "car", "F1-S7")
        self.clock.advance(minutes=30)
        next_bill = self.facility.compute_bill("ABC123")
        self.assertEqual(next_bill.parking_fee.amount, Decimal('5.00'))
        self.assertEqual(next_bill.outstanding_fines.amount, Decimal('15.00'))
        self.assertEqual(next_bill.fine.amount, Decimal('15.00'))
        self.assertEqual(next_bill.total.amount, Decimal('20.00'))

        self.facility.settle("ABC123", next_bill.total)
        self.assertTrue(self.facility.outstanding_fine("ABC123").is_zero)
        self.assertEqual(self.facility.total_revenue().amount, Decimal('20.00'))

    def test_release_unpaid_includes_overstay_fine(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.clock.advance(hours=24, minutes=1)
        self.facility.release_unpaid("ABC123")
        self.assertEqual(self.facility.outstanding_fine("ABC123").amount, Decimal('175.00'))

    def test_release_unpaid_without_ticket(self):
        self.assertIsNone(self.facility.release_unpaid("ABC123"))

    def test_record_fine_accumulates(self):
        self.facility.record_fine("ABC123", 20)
        balance = self.facility.record_fine("abc123", "7.50")
        self.assertEqual(balance.amount, Decimal('27.50'))
        self.assertEqual(self.facility.outstanding_fine("ABC123").amount, Decimal('27.50'))

    def test_record_fine_rejects_zero_and_negative(self):
        for amount in [0, -1]:
            with self.subTest(amount=amount):
                with self.assertRaises(InvalidInput):
                    self.facility.record_fine("ABC123", amount)

    def test_void_ticket_charges_nothing(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.facility.record_fine("ABC123", 10)
        self.clock.advance(hours=5)

        ticket = self.facility.void_ticket("ABC123")

        self.assertEqual(ticket.spot_id, REGULAR_SPOT)
        self.assertEqual(self.facility.active_occupancy_count(), 0)
        self.assertTrue(self.facility.total_revenue().is_zero)
        self.assertEqual(self.facility.outstanding_fine("ABC123").amount, Decimal('10.00'))
        self.assertIsNone(self.facility.void_ticket("ABC123"))


class TestAdministration(FacilityTestCase):

    def test_set_fine_scheme_returns_previous(self):
        self.assertEqual(self.facility.fine_scheme, FineScheme.FIXED)
        self.assertEqual(self.facility.set_fine_scheme("progressive"), FineScheme.FIXED)
        self.assertEqual(self.facility.fine_scheme, FineScheme.PROGRESSIVE)

    def test_invalid_fine_scheme(self):
        with self.assertRaises(InvalidInput):
            self.facility.set_fine_scheme("weekly")
        self.assertEqual(self.facility.fine_scheme, FineScheme.FIXED)

    def test_floor_occupancy(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.facility.allocate("XYZ789", "suv_truck", "F3-S6")
        occupancy = self.facility.floor_occupancy()
        self.assertEqual(
            [(o.floor_number, o.occupied, o.total) for o in occupancy],
            [(1, 1, 14), (2, 0, 14), (3, 1, 14)]
        )

    def test_status_report(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.facility.record_fine("XYZ789", 5)
        report = self.facility.get_status_report()
        self.assertEqual(report["total_spots"], 42)
        self.assertEqual(report["active_occupancy"], 1)
        self.assertEqual(report["fine_scheme"], "fixed")
        self.assertEqual(report["outstanding_fines"]["XYZ789"]["amount"], 5.0)
        self.assertEqual(len(report["floors"]), 3)


class TestDomainEventsRaised(FacilityTestCase):

    def test_events_for_session_lifecycle(self):
        self.facility.clear_events()
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        self.facility.settle("ABC123", 5)
        self.facility.record_fine("XYZ789", 5)
        self.facility.set_fine_scheme("hourly")

        events = self.facility.clear_events()
        self.assertEqual(
            [type(e) for e in events],
            [VehicleParkedEvent, VehicleLeftEvent, FineLedgeredEvent, FineSchemeChangedEvent]
        )
        self.assertEqual(events[1].reason, "settled")
        self.assertEqual(events[1].amount_paid, Money.of(5))
        self.assertFalse(self.facility.has_changes)

    def test_reselecting_same_scheme_raises_no_event(self):
        self.facility.clear_events()
        self.facility.set_fine_scheme("fixed")
        self.assertFalse(self.facility.has_changes)

    def test_draining_events_holds_facility_lock(self):
        self.facility.allocate("ABC123", "car", REGULAR_SPOT)
        with patch.object(self.facility, '_lock', MagicMock()) as lock:
            events = self.facility.clear_events()
        lock.__enter__.assert_called_once()
        self.assertEqual([type(e) for e in events], [VehicleParkedEvent])

    def test_no_events_lost_while_draining_concurrently(self):
        self.facility.clear_events()
        spots = self.facility.find_available("handicapped_vehicle")
        drained = []
        done = threading.Event()

        def drain():
            while not done.is_set():
                drained.extend(self.facility.clear_events())

        drainer = threading.Thread(target=drain)
        drainer.start()
        parkers = [
            threading.Thread(target=self.facility.allocate, args=(f"P{i}", "handicapped_vehicle", s.id))
            for i, s in enumerate(spots)
        ]
        for t in parkers:
            t.start()
        for t in parkers:
            t.join()
        done.set()
        drainer.join()
        drained.extend(self.facility.clear_events())

        self.assertEqual(len(drained), len(spots))
        self.assertEqual(len({e.event_id for e in drained}), len(spots))


class TestFacilityConstruction(unittest.TestCase):

    def setUp(self):
        self.clock = ManualClock(datetime(2024, 1, 1, 8, 0, 0))
        self.floors = FloorFactory().create_many(2, {SpotClass.COMPACT: 1, SpotClass.REGULAR: 2})

    def test_clock_and_id_source_are_required(self):
        with self.assertRaises(TypeError):
            ParkingFacility(self.floors)
        with self.assertRaises(TypeError):
            ParkingFacility(self.floors, clock=self.clock)

    def test_injected_collaborators_are_used(self):
        ids = MagicMock()
        ids.next_id.return_value = "T-FIXED-1"
        facility = ParkingFacility(self.floors, clock=self.clock, id_generator=ids)

        ticket = facility.allocate("ABC123", "car", "F2-S2")

        ids.next_id.assert_called_once_with("ABC123")
        self.assertEqual(ticket.ticket_id, "T-FIXED-1")
        self.assertEqual(ticket.entry_time, self.clock.now())
        self.assertEqual(facility.total_spots, 6)

    def test_duplicate_floor_rejected(self):
        with self.assertRaises(InvalidInput):
            ParkingFacility(self.floors + [FloorFactory().create(1, {SpotClass.COMPACT: 1})],
                            clock=self.clock, id_generator=TicketIdGenerator(self.clock))


class TestConcurrentAllocation(FacilityTestCase):

    def test_one_spot_one_ticket(self):
        workers = 16
        barrier = threading.Barrier(workers)
        outcomes = []
        outcomes_lock = threading.Lock()

        def attempt(n):
            barrier.wait()
            try:
                self.facility.allocate(f"RACE{n}", "car", REGULAR_SPOT)
                outcome = "ok"
            except SpotOccupied:
                outcome = "occupied"
            with outcomes_lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=attempt, args=(n,)) for n in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(outcomes.count("ok"), 1)
        self.assertEqual(outcomes.count("occupied"), workers - 1)
        self.assertEqual(self.facility.active_occupancy_count(), 1)
        self.facility.check_invariants()

    def test_parallel_allocations_get_unique_ticket_ids(self):
        spots = self.facility.find_available("handicapped_vehicle")
        tickets = []
        tickets_lock = threading.Lock()

        def park(i, spot_id):
            ticket = self.facility.allocate(f"P{i}", "handicapped_vehicle", spot_id)
            with tickets_lock:
                tickets.append(ticket)

        threads = [threading.Thread(target=park, args=(i, s.id)) for i, s in enumerate(spots)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(tickets), 42)
        self.assertEqual(len({t.ticket_id for t in tickets}), 42)
        self.assertEqual(len({t.spot_id for t in tickets}), 42)


class TestTicketIdGenerator(unittest.TestCase):

    def test_strictly_increasing_on_frozen_clock(self):
        clock = ManualClock(datetime(2024, 1, 1, 8, 0, 0))
        generator = TicketIdGenerator(clock)
        ids = [generator.next_id("abc123") for _ in range(3)]
        millis = [int(i.rsplit("-", 1)[1]) for i in ids]
        self.assertTrue(all(i.startswith("T-ABC123-") for i in ids))
        self.assertEqual(millis, sorted(set(millis)))

    def test_clock_going_back_still_increases(self):
        clock = ManualClock(datetime(2024, 1, 1, 8, 0, 0))
        generator = TicketIdGenerator(clock)
        first = int(generator.next_id("ABC123").rsplit("-", 1)[1])
        clock.set(datetime(2023, 12, 31, 8, 0, 0))
        second = int(generator.next_id("ABC123").rsplit("-", 1)[1])
        self.assertGreater(second, first)


if __name__ == '__main__':
    unittest.main()
