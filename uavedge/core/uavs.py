"""
UAV model: a mobile edge server with admission control, task execution and
energy-limited movement.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .tasks import Task, TaskStatus
from .types import Location, SystemParameters, UAVStatus

logger = logging.getLogger(__name__)


BLOCKING_STATUSES = (UAVStatus.OUT_OF_ENERGY, UAVStatus.MAINTENANCE)


class AdmissionResult(Enum):
    """Outcome of a UAV admission test, in evaluation order."""
    ACCEPTED = "accepted"
    INVALID_TASK_STATE = "invalid_task_state"
    NOT_OPERATIONAL = "not_operational"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    INSUFFICIENT_ENERGY = "insufficient_energy"
    CAPACITY_EXCEEDED = "capacity_exceeded"


@dataclass
class UAV:
    """UAV equipped with edge computing capabilities."""

    location: Optional[Location]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Physical capabilities
    max_speed: float = 10.0  # m/s
    max_flight_time: float = 1800.0  # s

    # Energy system
    total_energy: float = 18000.0  # J
    remaining_energy: Optional[float] = None  # J, starts fully charged

    # Computing
    mips: float = 10000.0  # million instructions per second
    ram: int = 4096  # MB
    storage: int = 64  # GB

    # Communication
    bandwidth: float = 100 * 1024 * 1024  # bit/s
    transmit_power: float = 100.0  # mW
    communication_range: float = 1000.0  # m

    system_params: SystemParameters = field(default_factory=SystemParameters, repr=False)

    # Runtime state
    status: UAVStatus = UAVStatus.IDLE
    assigned_tasks: List[Task] = field(default_factory=list)
    current_load: float = 0.0  # fraction of CPU in use
    completed_task_count: int = 0
    target_location: Optional[Location] = None
    current_speed: float = 0.0
    flight_time: float = 0.0

    def __post_init__(self):
        if self.location is None:
            raise ValueError("UAV location cannot be None")
        if self.total_energy <= 0:
            raise ValueError(f"UAV total energy must be positive, got {self.total_energy}")
        if self.mips <= 0:
            raise ValueError(f"UAV processing capacity must be positive, got {self.mips}")
        if self.communication_range < 0 or self.max_speed < 0:
            raise ValueError("UAV range and speed cannot be negative")
        if self.remaining_energy is None:
            self.remaining_energy = self.total_energy
        self.remaining_energy = min(max(0.0, self.remaining_energy), self.total_energy)
        if self.remaining_energy <= 0:
            self.status = UAVStatus.OUT_OF_ENERGY

    # ------------------------------------------------------------------
    # Status helpers
    # ------------------------------------------------------------------

    @property
    def is_operational(self) -> bool:
        """Ready to be offered new tasks (stationary and powered)."""
        return self.status in (UAVStatus.IDLE, UAVStatus.PROCESSING)

    @property
    def energy_percentage(self) -> float:
        return (self.remaining_energy / self.total_energy) * 100.0

    @property
    def committed_energy(self) -> float:
        """Processing energy reserved by tasks already assigned."""
        return sum(self.calculate_task_processing_energy(t) for t in self.assigned_tasks)

    def consume_energy(self, amount: float) -> None:
        self.remaining_energy = max(0.0, self.remaining_energy - amount)
        if self.remaining_energy <= 0:
            self.status = UAVStatus.OUT_OF_ENERGY
            self.current_speed = 0.0
            logger.info("UAV %s is out of energy", self.id)

    def _settle_status(self) -> None:
        """Return to IDLE/PROCESSING unless movement or a blocking state applies."""
        if self.status in BLOCKING_STATUSES or self.status == UAVStatus.MOVING:
            return
        self.status = UAVStatus.PROCESSING if self.assigned_tasks else UAVStatus.IDLE

    def begin_maintenance(self) -> None:
        if self.status != UAVStatus.OUT_OF_ENERGY:
            self.status = UAVStatus.MAINTENANCE
            self.current_speed = 0.0

    def end_maintenance(self) -> None:
        if self.status != UAVStatus.MAINTENANCE:
            return
        if self.target_location is not None:
            self.status = UAVStatus.MOVING
            self.current_speed = self.max_speed
        else:
            self.status = UAVStatus.PROCESSING if self.assigned_tasks else UAVStatus.IDLE

    # ------------------------------------------------------------------
    # Processing model
    # ------------------------------------------------------------------

    def calculate_task_load(self, task: Task) -> float:
        """CPU fraction the task needs to finish by its deadline."""
        return task.length / (self.mips * task.deadline)

    def calculate_task_processing_energy(self, task: Task) -> float:
        """E = a * length + b."""
        return (self.system_params.processing_energy_per_mi * task.length
                + self.system_params.processing_base_energy)

    def estimate_task_completion_time(self, task: Task) -> float:
        """Processing time on the capacity not already in use."""
        available_mips = self.mips * (1.0 - self.current_load)
        return task.length / max(1.0, available_mips)

    def check_admission(self, task: Task) -> AdmissionResult:
        """Run the admission checks in order; the first failure wins."""
        if not task.can_transition_to(TaskStatus.PROCESSING):
            return AdmissionResult.INVALID_TASK_STATE

        if self.status in BLOCKING_STATUSES:
            return AdmissionResult.NOT_OPERATIONAL

        if self.estimate_task_completion_time(task) > task.deadline:
            return AdmissionResult.DEADLINE_EXCEEDED

        required_energy = self.calculate_task_processing_energy(task)
        if required_energy > self.remaining_energy - self.committed_energy:
            return AdmissionResult.INSUFFICIENT_ENERGY

        if self.current_load + self.calculate_task_load(task) > 1.0:
            return AdmissionResult.CAPACITY_EXCEEDED

        return AdmissionResult.ACCEPTED

    def can_process_task(self, task: Task) -> bool:
        """Check if the UAV has enough resources to process a task."""
        result = self.check_admission(task)
        if result != AdmissionResult.ACCEPTED:
            logger.debug("UAV %s rejects task %s: %s", self.id, task.id, result.value)
        return result == AdmissionResult.ACCEPTED

    def assign_task(self, task: Task) -> bool:
        """Assign a task to this UAV, returning False if admission fails."""
        if not self.can_process_task(task):
            return False

        task.transition_to(TaskStatus.PROCESSING)
        task.assigned_resource_id = self.id
        self.assigned_tasks.append(task)
        self.current_load = min(1.0, self.current_load + self.calculate_task_load(task))
        self._settle_status()

        logger.debug("UAV %s assigned task %s, load now %.2f%%",
                     self.id, task.id, self.current_load * 100)
        return True

    def complete_task(self, task: Task) -> bool:
        """Finish an assigned task and charge its processing energy."""
        if task not in self.assigned_tasks:
            logger.warning("UAV %s: task %s not found in assigned tasks", self.id, task.id)
            return False

        self.assigned_tasks.remove(task)
        self.current_load = max(0.0, self.current_load - self.calculate_task_load(task))
        if not self.assigned_tasks:
            self.current_load = 0.0
        self.completed_task_count += 1
        task.transition_to(TaskStatus.COMPLETED)

        energy_used = self.calculate_task_processing_energy(task)
        self.consume_energy(energy_used)
        self._settle_status()

        logger.debug("UAV %s completed task %s (total %d), energy used %.2f J",
                     self.id, task.id, self.completed_task_count, energy_used)
        return True

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def is_in_range_of(self, location: Location) -> bool:
        return self.location.distance_to(location) <= self.communication_range

    def set_target_location(self, target: Optional[Location]) -> bool:
        """Start flying towards a target; None cancels movement."""
        if target is None:
            self.target_location = None
            self.current_speed = 0.0
            if self.status == UAVStatus.MOVING:
                self.status = UAVStatus.IDLE
                self._settle_status()
            return True

        if self.status in BLOCKING_STATUSES or self.flight_time >= self.max_flight_time:
            return False

        self.target_location = target
        self.status = UAVStatus.MOVING
        self.current_speed = self.max_speed
        return True

    def calculate_movement_energy(self, distance: float) -> float:
        return self.system_params.movement_energy_per_meter * distance

    def update_position(self, time_step: float) -> float:
        """Advance towards the target; returns the distance flown."""
        if self.target_location is None or self.status in BLOCKING_STATUSES:
            self.current_speed = 0.0
            return 0.0

        remaining = self.location.distance_to(self.target_location)
        if remaining < self.system_params.arrival_threshold:
            self._arrive()
            return 0.0

        move_distance = min(remaining, self.current_speed * time_step)
        move_energy = self.calculate_movement_energy(move_distance)
        if move_energy > self.remaining_energy:
            # Battery runs out partway along the leg
            move_distance = self.remaining_energy / self.system_params.movement_energy_per_meter
            move_energy = self.remaining_energy
        ratio = move_distance / remaining
        self.location = Location(
            self.location.x + (self.target_location.x - self.location.x) * ratio,
            self.location.y + (self.target_location.y - self.location.y) * ratio,
            self.location.z + (self.target_location.z - self.location.z) * ratio,
        )
        self.flight_time += time_step
        self.consume_energy(move_energy)

        if (self.status == UAVStatus.MOVING and
                self.location.distance_to(self.target_location) < self.system_params.arrival_threshold):
            self._arrive()

        return move_distance

    def _arrive(self) -> None:
        self.location = self.target_location
        self.target_location = None
        self.current_speed = 0.0
        self.status = UAVStatus.PROCESSING if self.assigned_tasks else UAVStatus.IDLE

    def get_state(self) -> dict:
        """Get current UAV state for inspection."""
        return {
            'id': self.id,
            'position': self.location.as_tuple(),
            'status': self.status.value,
            'energy_percentage': self.energy_percentage,
            'current_load': self.current_load,
            'assigned_tasks': len(self.assigned_tasks),
            'completed_tasks': self.completed_task_count,
        }

    def __str__(self) -> str:
        return (f"UAV(id={self.id}, location={self.location}, status={self.status.name}, "
                f"energy={self.energy_percentage:.2f}%, load={self.current_load * 100:.2f}%, "
                f"tasks={len(self.assigned_tasks)})")


def make_sentinel_uav(location: Location, system_params: Optional[SystemParameters] = None) -> UAV:
    """Placeholder UAV with minimal capacity and no usable energy."""
    return UAV(
        location=location,
        id=f"sentinel-{uuid.uuid4().hex[:8]}",
        mips=1.0,
        total_energy=1.0,
        remaining_energy=0.0,
        communication_range=0.0,
        system_params=system_params or SystemParameters(),
    )
