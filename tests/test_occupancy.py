import pytest

from parkscan.config import AnalysisConfig
from parkscan.geometry import Rect, iou
from parkscan.occupancy import classify_occupancy, mark_all_available, summarize
from parkscan.types import OccupancyResult, OccupancyStatus, Slot
from parkscan.vehicles import filter_vehicle_detections

from tests.conftest import car

OCCUPIED = OccupancyStatus.OCCUPIED
AVAILABLE = OccupancyStatus.AVAILABLE

SLOT = Slot(1, Rect(0, 0, 40, 75))  # area 3000


def test_no_vehicles_means_available():
    results = classify_occupancy([SLOT], [])
    assert results == [OccupancyResult(1, AVAILABLE)]
    assert summarize(results).to_dict() == {
        "total_slots": 1,
        "occupied_slots": 0,
        "available_slots": 1,
        "occupancy_rate": 0.0,
    }


def test_vehicle_above_threshold_occupies_slot():
    vehicle = car(0, 60, 40, 40)
    assert iou(SLOT.rect, vehicle.box) == pytest.approx(0.15)
    results = classify_occupancy([SLOT], [vehicle])
    assert results == [OccupancyResult(1, OCCUPIED)]
    summary = summarize(results)
    assert (summary.total, summary.occupied, summary.available) == (1, 1, 0)
    assert summary.occupancy_rate_percent == 100.0


def test_threshold_is_strict():
    vehicle = car(0, 60, 40, 90)
    assert iou(SLOT.rect, vehicle.box) == 0.1
    assert classify_occupancy([SLOT], [vehicle])[0].status is AVAILABLE


def test_threshold_is_configurable():
    vehicle = car(0, 60, 40, 40)
    config = AnalysisConfig(occupancy_iou_threshold=0.2)
    assert classify_occupancy([SLOT], [vehicle], config)[0].status is AVAILABLE


def test_vehicle_overlapping_no_slot():
    results = classify_occupancy([SLOT], [car(500, 500, 50, 50)])
    assert results[0].status is AVAILABLE


def test_one_vehicle_across_many_slots():
    slots = [Slot(1, Rect(0, 0, 40, 100)), Slot(2, Rect(45, 0, 40, 100)), Slot(3, Rect(200, 0, 40, 100))]
    results = classify_occupancy(slots, [car(20, 0, 50, 100)])
    assert [r.status for r in results] == [OCCUPIED, OCCUPIED, AVAILABLE]
    assert [r.slot_id for r in results] == [1, 2, 3]


def test_first_match_short_circuits():
    class CountingList(list):
        def __iter__(self):
            for item in super().__iter__():
                self.seen += 1
                yield item

    vehicles = CountingList([car(0, 0, 40, 75), car(0, 0, 40, 75), car(0, 0, 40, 75)])
    vehicles.seen = 0
    classify_occupancy([SLOT], vehicles)
    assert vehicles.seen == 1


def test_summary_of_nothing_has_zero_rate():
    summary = summarize([])
    assert (summary.total, summary.occupied, summary.available) == (0, 0, 0)
    assert summary.occupancy_rate_percent == 0.0


def test_summary_counts_add_up():
    results = [OccupancyResult(i, OCCUPIED if i % 3 == 0 else AVAILABLE) for i in range(1, 8)]
    summary = summarize(results)
    assert summary.total == 7
    assert summary.occupied == 2
    assert summary.occupied + summary.available == summary.total
    assert summary.occupancy_rate_percent == pytest.approx(2 / 7 * 100)
    assert summary.to_dict()["occupancy_rate"] == 28.6


def test_mark_all_available():
    slots = [Slot(1, Rect(0, 0, 40, 100)), Slot(2, Rect(50, 0, 40, 100))]
    assert [r.status for r in mark_all_available(slots)] == [AVAILABLE, AVAILABLE]


def test_filter_vehicle_detections_keeps_allowed_classes_in_order():
    dets = [car(0, 0, 5, 5, class_id=0), car(1, 1, 5, 5, class_id=7), car(2, 2, 5, 5, class_id=2)]
    kept = filter_vehicle_detections(dets, (2, 5, 7))
    assert [d.class_id for d in kept] == [7, 2]
    assert filter_vehicle_detections([], (2,)) == []
