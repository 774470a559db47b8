"""
IoT device model: task source with local execution and offload transmission.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from .tasks import Task, TaskCategory, TaskStatus, TASK_PROFILES
from .types import Location, SystemParameters
from .uavs import UAV
from ..models.communication import CommunicationModel, dbm_to_watts

logger = logging.getLogger(__name__)


class WirelessTechnology(Enum):
    """Radio technologies available to IoT devices."""
    WIFI = "wifi"
    BLUETOOTH = "bluetooth"
    ZIGBEE = "zigbee"
    LORA = "lora"
    NB_IOT = "nb_iot"
    CELLULAR_5G = "cellular_5g"


@dataclass(frozen=True)
class RadioProfile:
    bandwidth: float  # bit/s
    transmit_power_dbm: float


RADIO_PROFILES: Dict[WirelessTechnology, RadioProfile] = {
    WirelessTechnology.WIFI: RadioProfile(54e6, 20.0),
    WirelessTechnology.BLUETOOTH: RadioProfile(2e6, 4.0),
    WirelessTechnology.ZIGBEE: RadioProfile(250e3, 0.0),
    WirelessTechnology.LORA: RadioProfile(50e3, 14.0),
    WirelessTechnology.NB_IOT: RadioProfile(250e3, 23.0),
    WirelessTechnology.CELLULAR_5G: RadioProfile(100e6, 23.0),
}


def categories_for_cpu(cpu_mips: float) -> List[TaskCategory]:
    """Application categories a device of the given CPU class runs."""
    if cpu_mips < 1000:
        return [TaskCategory.ENVIRONMENTAL_MONITORING, TaskCategory.SMART_AGRICULTURE]
    if cpu_mips < 1500:
        return [TaskCategory.TRAFFIC_MONITORING, TaskCategory.HEALTH_MONITORING,
                TaskCategory.INDUSTRIAL_CONTROL]
    return [TaskCategory.REAL_TIME_VIDEO_ANALYTICS, TaskCategory.EMERGENCY_RESPONSE]


@dataclass
class IoTDevice:
    """Battery-powered task source that can execute or offload its tasks."""

    location: Optional[Location]
    id: str = field(default_factory=lambda: f"device-{uuid.uuid4().hex[:8]}")

    cpu_mips: float = 1000.0
    memory_mb: int = 512
    battery_capacity: float = 18000.0  # J
    remaining_battery: Optional[float] = None  # J, starts fully charged
    task_generation_rate: float = 0.1  # tasks/s
    wireless_tech: WirelessTechnology = WirelessTechnology.WIFI
    supported_categories: List[TaskCategory] = field(default_factory=list)
    cpu_power_consumption: float = 2.0  # W while computing
    task_variation: float = 0.2  # relative std-dev applied to profile values

    system_params: SystemParameters = field(default_factory=SystemParameters, repr=False)

    # Counters
    tasks_generated: int = 0
    tasks_processed_locally: int = 0
    tasks_offloaded: int = 0

    def __post_init__(self):
        if self.location is None:
            raise ValueError("Device location cannot be None")
        if self.cpu_mips <= 0:
            raise ValueError(f"Device CPU capacity must be positive, got {self.cpu_mips}")
        if self.battery_capacity <= 0:
            raise ValueError(f"Device battery capacity must be positive, got {self.battery_capacity}")
        if self.task_generation_rate < 0 or self.task_variation < 0:
            raise ValueError("Generation rate and task variation cannot be negative")
        if not self.supported_categories:
            self.supported_categories = categories_for_cpu(self.cpu_mips)
        if self.remaining_battery is None:
            self.remaining_battery = self.battery_capacity
        self.remaining_battery = min(max(0.0, self.remaining_battery), self.battery_capacity)
        self._comm = CommunicationModel(self.system_params)

    @property
    def radio(self) -> RadioProfile:
        return RADIO_PROFILES[self.wireless_tech]

    @property
    def battery_percentage(self) -> float:
        return (self.remaining_battery / self.battery_capacity) * 100.0

    def consume_battery(self, amount: float) -> None:
        self.remaining_battery = max(0.0, self.remaining_battery - amount)

    # ------------------------------------------------------------------
    # Task generation
    # ------------------------------------------------------------------

    def generate_task(self, rng: np.random.Generator, current_time: float = 0.0) -> Task:
        """Create a task from one of the supported application profiles."""
        index = int(rng.integers(len(self.supported_categories)))
        category = self.supported_categories[index]
        profile = TASK_PROFILES[category]

        def vary(mean: float) -> float:
            if self.task_variation <= 0:
                return float(mean)
            # Keep values strictly positive under large perturbations
            return float(max(mean * 0.1, rng.normal(mean, mean * self.task_variation)))

        task = Task(
            length=vary(profile.avg_length),
            input_size=int(vary(profile.avg_input_size)),
            output_size=int(vary(profile.avg_output_size)),
            deadline=profile.avg_deadline,
            priority=profile.default_priority,
            category=category,
            source_device_id=self.id,
            source_location=self.location,
            submission_time=current_time,
        )
        self.tasks_generated += 1
        return task

    # ------------------------------------------------------------------
    # Local execution
    # ------------------------------------------------------------------

    def estimate_local_execution_time(self, task: Task) -> float:
        return task.length / self.cpu_mips

    def local_energy(self, task: Task) -> float:
        return task.local_energy(self.cpu_power_consumption, self.cpu_mips)

    def can_process_locally(self, task: Task) -> bool:
        return (task.can_transition_to(TaskStatus.PROCESSING) and
                self.estimate_local_execution_time(task) <= task.deadline and
                self.remaining_battery >= self.local_energy(task))

    def process_task_locally(self, task: Task) -> bool:
        """Execute a task on the device; no side effects when infeasible."""
        if not self.can_process_locally(task):
            logger.debug("Device %s cannot run task %s locally", self.id, task.id)
            return False

        task.transition_to(TaskStatus.PROCESSING)
        task.assigned_resource_id = self.id
        self.consume_battery(self.local_energy(task))
        task.transition_to(TaskStatus.COMPLETED)
        self.tasks_processed_locally += 1
        return True

    # ------------------------------------------------------------------
    # Offloading
    # ------------------------------------------------------------------

    def effective_bandwidth(self, uav: UAV) -> float:
        """Achievable data rate (bit/s) towards a UAV."""
        return self._comm.calculate_effective_bandwidth(
            self.location, uav.location, self.radio.bandwidth, self.radio.transmit_power_dbm
        )

    def estimate_upload_time(self, task: Task, uav: UAV) -> float:
        return self._comm.calculate_transmission_time(task.input_size, self.effective_bandwidth(uav))

    def estimate_transfer_time(self, task: Task, uav: UAV) -> float:
        """Upload of the input plus download of the result."""
        bandwidth = self.effective_bandwidth(uav)
        return (self._comm.calculate_transmission_time(task.input_size, bandwidth) +
                self._comm.calculate_transmission_time(task.output_size, bandwidth))

    def estimate_total_offloading_time(self, task: Task, uav: UAV) -> float:
        return self.estimate_transfer_time(task, uav) + uav.estimate_task_completion_time(task)

    def calculate_offloading_energy(self, task: Task, uav: UAV) -> float:
        """Radio energy the device spends uploading the task input."""
        tx_power_w = dbm_to_watts(self.radio.transmit_power_dbm)
        return self._comm.calculate_transmission_energy(tx_power_w, self.estimate_upload_time(task, uav))

    def offload_task(self, task: Task, uav: UAV) -> bool:
        """Hand a task to a UAV, charging the device for the transmission."""
        energy = self.calculate_offloading_energy(task, uav)
        if energy > self.remaining_battery:
            logger.debug("Device %s lacks battery to offload task %s", self.id, task.id)
            return False
        if not uav.can_process_task(task):
            return False

        task.transition_to(TaskStatus.TRANSFERRING)
        if not uav.assign_task(task):
            return False
        self.consume_battery(energy)
        self.tasks_offloaded += 1
        return True

    def __str__(self) -> str:
        return (f"IoTDevice(id={self.id}, location={self.location}, cpu={self.cpu_mips:.0f} MIPS, "
                f"battery={self.battery_percentage:.2f}%, tech={self.wireless_tech.name})")
