#!/usr/bin/env python3
"""
Tests for UAV admission control, task execution, movement and energy.
"""

import pytest

from uavedge.core.tasks import Task, TaskStatus
from uavedge.core.types import Location, UAVStatus
from uavedge.core.uavs import UAV, AdmissionResult, make_sentinel_uav


def make_task(length=1000.0, deadline=10.0) -> Task:
    task = Task(length=length, input_size=1024, output_size=256, deadline=deadline)
    task.transition_to(TaskStatus.READY)
    return task


def test_uav_requires_location():
    with pytest.raises(ValueError):
        UAV(location=None)


def test_uav_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        UAV(location=Location(0, 0, 50), mips=0)
    with pytest.raises(ValueError):
        UAV(location=Location(0, 0, 50), total_energy=0)


def test_admission_then_assignment():
    uav = UAV(location=Location(0, 0, 50))
    task = make_task()
    assert uav.check_admission(task) == AdmissionResult.ACCEPTED
    assert uav.can_process_task(task)
    assert uav.assign_task(task)
    assert task.status == TaskStatus.PROCESSING
    assert task.assigned_resource_id == uav.id
    assert uav.status == UAVStatus.PROCESSING
    assert uav.current_load == pytest.approx(1000.0 / (10000.0 * 10.0))


def test_admission_reports_deadline_first():
    uav = UAV(location=Location(0, 0, 50), mips=100.0)
    assert uav.check_admission(make_task(length=5000.0, deadline=10.0)) == AdmissionResult.DEADLINE_EXCEEDED


def test_admission_reports_energy():
    uav = UAV(location=Location(0, 0, 50), remaining_energy=5.0)
    assert uav.check_admission(make_task(length=1000.0)) == AdmissionResult.INSUFFICIENT_ENERGY


def test_admission_reports_capacity():
    uav = UAV(location=Location(0, 0, 50), mips=1000.0)
    # Occupies the whole CPU for its 10 s deadline
    assert uav.assign_task(make_task(length=10000.0, deadline=10.0))
    assert uav.current_load == pytest.approx(1.0)
    second = make_task(length=1.0, deadline=10.0)
    assert uav.check_admission(second) == AdmissionResult.CAPACITY_EXCEEDED
    assert not uav.assign_task(second)
    assert second.status == TaskStatus.READY


def test_blocking_states_reject_admission():
    uav = UAV(location=Location(0, 0, 50))
    uav.begin_maintenance()
    assert uav.check_admission(make_task()) == AdmissionResult.NOT_OPERATIONAL
    uav.end_maintenance()
    assert uav.status == UAVStatus.IDLE
    assert uav.can_process_task(make_task())


def test_complete_task_releases_load_and_charges_energy():
    uav = UAV(location=Location(0, 0, 50))
    task = make_task(length=1000.0)
    uav.assign_task(task)
    assert uav.complete_task(task)
    assert task.status == TaskStatus.COMPLETED
    assert uav.current_load == 0.0
    assert uav.status == UAVStatus.IDLE
    assert uav.completed_task_count == 1
    assert uav.remaining_energy == pytest.approx(18000.0 - (0.01 * 1000.0 + 0.5))


def test_complete_unknown_task_is_rejected():
    uav = UAV(location=Location(0, 0, 50))
    assert not uav.complete_task(make_task())
    assert uav.completed_task_count == 0


def test_energy_for_exactly_one_task():
    """A UAV charged for one task admits it once, then runs dry."""
    length = 1000.0
    required = 0.01 * length + 0.5
    uav = UAV(location=Location(0, 0, 50), remaining_energy=required)

    first = make_task(length=length)
    assert uav.assign_task(first)

    second = make_task(length=length)
    assert uav.check_admission(second) == AdmissionResult.INSUFFICIENT_ENERGY
    assert not uav.assign_task(second)

    assert uav.complete_task(first)
    assert uav.remaining_energy == 0.0
    assert uav.status == UAVStatus.OUT_OF_ENERGY

    for _ in range(3):
        assert not uav.can_process_task(make_task(length=10.0))
    assert uav.check_admission(make_task()) == AdmissionResult.NOT_OPERATIONAL


def test_can_process_implies_assign_succeeds():
    uav = UAV(location=Location(0, 0, 50), mips=2000.0, remaining_energy=200.0)
    for length in (500.0, 4000.0, 9000.0, 15000.0, 19000.0, 3000.0):
        task = make_task(length=length, deadline=10.0)
        if uav.can_process_task(task):
            assert uav.assign_task(task)
        assert 0.0 <= uav.current_load <= 1.0


def test_unsubmitted_task_is_refused_without_raising():
    uav = UAV(location=Location(0, 0, 50))
    task = Task(length=1000.0, input_size=1024, output_size=256, deadline=10.0)
    assert task.status == TaskStatus.CREATED
    assert uav.check_admission(task) == AdmissionResult.INVALID_TASK_STATE
    assert not uav.can_process_task(task)
    assert not uav.assign_task(task)
    assert task.status == TaskStatus.CREATED
    assert not uav.assigned_tasks
    assert uav.current_load == 0.0

    task.transition_to(TaskStatus.READY)
    assert uav.can_process_task(task)
    assert uav.assign_task(task)


def test_movement_reaches_target_and_costs_energy():
    uav = UAV(location=Location(0, 0, 50), max_speed=10.0)
    assert uav.set_target_location(Location(5.0, 0.0, 50.0))
    assert uav.status == UAVStatus.MOVING

    flown = uav.update_position(1.0)
    assert flown == pytest.approx(5.0)
    assert uav.location == Location(5.0, 0.0, 50.0)
    assert uav.target_location is None
    assert uav.current_speed == 0.0
    assert uav.status == UAVStatus.IDLE
    assert uav.remaining_energy == pytest.approx(18000.0 - 0.5)


def test_movement_is_capped_by_speed():
    uav = UAV(location=Location(0, 0, 50), max_speed=10.0)
    uav.set_target_location(Location(100.0, 0.0, 50.0))
    uav.update_position(0.5)
    assert uav.location.x == pytest.approx(5.0)
    assert uav.status == UAVStatus.MOVING
    assert uav.flight_time == pytest.approx(0.5)


def test_moving_uav_returns_to_processing_on_arrival():
    uav = UAV(location=Location(0, 0, 50), max_speed=10.0)
    uav.assign_task(make_task())
    uav.set_target_location(Location(1.0, 0.0, 50.0))
    assert not uav.is_operational
    uav.update_position(1.0)
    assert uav.status == UAVStatus.PROCESSING


def test_running_out_of_energy_mid_flight_stops_motion():
    uav = UAV(location=Location(0, 0, 50), max_speed=100.0, remaining_energy=1.0)
    uav.set_target_location(Location(1000.0, 0.0, 50.0))
    # 1 J buys 10 m at 0.1 J/m, well short of the 100 m step
    assert uav.update_position(1.0) == pytest.approx(10.0)
    assert uav.location.x == pytest.approx(10.0)
    assert uav.remaining_energy == 0.0
    assert uav.status == UAVStatus.OUT_OF_ENERGY
    position = uav.location
    assert uav.update_position(1.0) == 0.0
    assert uav.location == position
    assert not uav.set_target_location(Location(0.0, 0.0, 50.0))


def test_flight_time_limit_blocks_new_targets():
    uav = UAV(location=Location(0, 0, 50), max_flight_time=1.0)
    uav.set_target_location(Location(1000.0, 0.0, 50.0))
    uav.update_position(1.0)
    uav.set_target_location(None)
    assert not uav.set_target_location(Location(0.0, 0.0, 50.0))


def test_range_check():
    uav = UAV(location=Location(0, 0, 0), communication_range=100.0)
    assert uav.is_in_range_of(Location(60.0, 80.0, 0.0))
    assert not uav.is_in_range_of(Location(60.0, 81.0, 0.0))


def test_sentinel_never_admits():
    sentinel = make_sentinel_uav(Location(10.0, 10.0, 2.0))
    assert sentinel.energy_percentage == 0.0
    assert sentinel.status == UAVStatus.OUT_OF_ENERGY
    assert not sentinel.can_process_task(make_task(length=1.0))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
