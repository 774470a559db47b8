#!/usr/bin/env python3
"""
Tests for IoT devices: task generation, local execution and offloading.
"""

import numpy as np
import pytest

from uavedge.core.devices import IoTDevice, WirelessTechnology, RADIO_PROFILES, categories_for_cpu
from uavedge.core.tasks import Task, TaskCategory, TaskStatus, TASK_PROFILES
from uavedge.core.types import Location
from uavedge.core.uavs import UAV
from uavedge.models.communication import dbm_to_watts


def make_ready_task(length=1000.0, deadline=10.0, input_size=125000, output_size=12500) -> Task:
    task = Task(length=length, input_size=input_size, output_size=output_size, deadline=deadline)
    task.transition_to(TaskStatus.READY)
    return task


def test_device_validation():
    with pytest.raises(ValueError):
        IoTDevice(location=None)
    with pytest.raises(ValueError):
        IoTDevice(location=Location(0, 0), cpu_mips=0)
    with pytest.raises(ValueError):
        IoTDevice(location=Location(0, 0), battery_capacity=-1)


def test_supported_categories_follow_cpu_tier():
    assert categories_for_cpu(800) == [TaskCategory.ENVIRONMENTAL_MONITORING, TaskCategory.SMART_AGRICULTURE]
    assert TaskCategory.HEALTH_MONITORING in categories_for_cpu(1200)
    assert TaskCategory.REAL_TIME_VIDEO_ANALYTICS in categories_for_cpu(1800)
    device = IoTDevice(location=Location(0, 0), cpu_mips=1800)
    assert device.supported_categories == categories_for_cpu(1800)


def test_generate_task_without_variation_uses_profile():
    device = IoTDevice(location=Location(10, 20, 2), cpu_mips=800, task_variation=0.0,
                       supported_categories=[TaskCategory.SMART_AGRICULTURE])
    task = device.generate_task(np.random.default_rng(1), current_time=3.5)
    profile = TASK_PROFILES[TaskCategory.SMART_AGRICULTURE]
    assert task.category == TaskCategory.SMART_AGRICULTURE
    assert task.length == profile.avg_length
    assert task.input_size == profile.avg_input_size
    assert task.deadline == profile.avg_deadline
    assert task.source_device_id == device.id
    assert task.source_location == device.location
    assert task.submission_time == 3.5
    assert task.status == TaskStatus.CREATED
    assert device.tasks_generated == 1


def test_generate_task_is_reproducible_with_seed():
    device_a = IoTDevice(location=Location(0, 0), cpu_mips=1800, id="a")
    device_b = IoTDevice(location=Location(0, 0), cpu_mips=1800, id="b")
    rng_a, rng_b = np.random.default_rng(7), np.random.default_rng(7)
    for _ in range(10):
        task_a = device_a.generate_task(rng_a)
        task_b = device_b.generate_task(rng_b)
        assert task_a.category == task_b.category
        assert task_a.length == task_b.length
        assert task_a.input_size == task_b.input_size
        assert task_a.category in device_a.supported_categories
        assert task_a.length > 0


def test_process_task_locally():
    device = IoTDevice(location=Location(0, 0), cpu_mips=1000, cpu_power_consumption=2.0)
    task = make_ready_task(length=2000.0, deadline=10.0)
    assert device.estimate_local_execution_time(task) == pytest.approx(2.0)
    assert device.local_energy(task) == pytest.approx(4.0)

    assert device.process_task_locally(task)
    assert task.status == TaskStatus.COMPLETED
    assert task.assigned_resource_id == device.id
    assert device.remaining_battery == pytest.approx(18000.0 - 4.0)
    assert device.tasks_processed_locally == 1


def test_local_execution_failure_has_no_side_effects():
    device = IoTDevice(location=Location(0, 0), cpu_mips=100)
    task = make_ready_task(length=5000.0, deadline=10.0)
    assert not device.process_task_locally(task)
    assert task.status == TaskStatus.READY
    assert device.remaining_battery == device.battery_capacity
    assert device.tasks_processed_locally == 0

    drained = IoTDevice(location=Location(0, 0), cpu_mips=1000, remaining_battery=0.5)
    assert not drained.process_task_locally(make_ready_task(length=1000.0))
    assert drained.remaining_battery == 0.5


def test_unsubmitted_task_is_not_run_locally():
    device = IoTDevice(location=Location(0, 0), cpu_mips=1000)
    task = Task(length=1000.0, input_size=1024, output_size=256, deadline=10.0)
    assert not device.can_process_locally(task)
    assert not device.process_task_locally(task)
    assert task.status == TaskStatus.CREATED
    assert device.remaining_battery == device.battery_capacity
    assert device.tasks_processed_locally == 0

    uav = UAV(location=Location(0, 0, 50))
    assert not device.offload_task(task, uav)
    assert task.status == TaskStatus.CREATED
    assert device.tasks_offloaded == 0


def test_offloading_estimates():
    device = IoTDevice(location=Location(0, 0, 0), wireless_tech=WirelessTechnology.WIFI)
    uav = UAV(location=Location(0, 0, 0), mips=10000.0)
    task = make_ready_task(length=1000.0, input_size=125000, output_size=12500)

    bandwidth = RADIO_PROFILES[WirelessTechnology.WIFI].bandwidth
    assert device.effective_bandwidth(uav) == pytest.approx(bandwidth)

    transfer = device.estimate_transfer_time(task, uav)
    assert transfer == pytest.approx((125000 + 12500) * 8.0 / bandwidth)
    assert device.estimate_total_offloading_time(task, uav) == pytest.approx(transfer + 0.1)

    upload = 125000 * 8.0 / bandwidth
    assert device.calculate_offloading_energy(task, uav) == pytest.approx(dbm_to_watts(20.0) * upload)


def test_offload_task_charges_transmission_and_assigns():
    device = IoTDevice(location=Location(0, 0, 0))
    uav = UAV(location=Location(0, 0, 0))
    task = make_ready_task()
    energy = device.calculate_offloading_energy(task, uav)

    assert device.offload_task(task, uav)
    assert task.status == TaskStatus.PROCESSING
    assert TaskStatus.TRANSFERRING in task.status_history
    assert task.assigned_resource_id == uav.id
    assert task in uav.assigned_tasks
    assert device.remaining_battery == pytest.approx(device.battery_capacity - energy)
    assert device.tasks_offloaded == 1


def test_offload_rejected_by_uav_leaves_device_untouched():
    device = IoTDevice(location=Location(0, 0, 0))
    uav = UAV(location=Location(0, 0, 0), mips=10.0)
    task = make_ready_task(length=5000.0, deadline=10.0)
    assert not device.offload_task(task, uav)
    assert task.status == TaskStatus.READY
    assert device.remaining_battery == device.battery_capacity
    assert not uav.assigned_tasks


def test_battery_percentage_and_consumption_floor():
    device = IoTDevice(location=Location(0, 0), battery_capacity=1000.0)
    device.consume_battery(250.0)
    assert device.battery_percentage == pytest.approx(75.0)
    device.consume_battery(5000.0)
    assert device.remaining_battery == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
