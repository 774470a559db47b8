"""
Task model, application profiles and lifecycle management.
"""

import uuid
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, FrozenSet, List, Optional

from .types import Location, SystemParameters


class TaskCategory(Enum):
    """Types of IoT applications that generate tasks."""
    REAL_TIME_VIDEO_ANALYTICS = "real_time_video_analytics"
    ENVIRONMENTAL_MONITORING = "environmental_monitoring"
    EMERGENCY_RESPONSE = "emergency_response"
    INDUSTRIAL_CONTROL = "industrial_control"
    SMART_AGRICULTURE = "smart_agriculture"
    TRAFFIC_MONITORING = "traffic_monitoring"
    HEALTH_MONITORING = "health_monitoring"


class TaskStatus(Enum):
    """Task execution status."""
    CREATED = "created"
    READY = "ready"
    WAITING = "waiting"
    TRANSFERRING = "transferring"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    DROPPED = "dropped"
    RETURNED = "returned"


TERMINAL_STATUSES: FrozenSet[TaskStatus] = frozenset({
    TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.DROPPED, TaskStatus.RETURNED
})

_ABORT = {TaskStatus.FAILED, TaskStatus.DROPPED}

ALLOWED_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.CREATED: frozenset({TaskStatus.READY} | _ABORT),
    TaskStatus.READY: frozenset({TaskStatus.WAITING, TaskStatus.TRANSFERRING,
                                 TaskStatus.PROCESSING} | _ABORT),
    TaskStatus.WAITING: frozenset({TaskStatus.TRANSFERRING, TaskStatus.PROCESSING} | _ABORT),
    TaskStatus.TRANSFERRING: frozenset({TaskStatus.PROCESSING} | _ABORT),
    TaskStatus.PROCESSING: frozenset({TaskStatus.COMPLETED} | _ABORT),
    # Results of a completed task may still be marked as returned
    TaskStatus.COMPLETED: frozenset({TaskStatus.RETURNED}),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.DROPPED: frozenset(),
    TaskStatus.RETURNED: frozenset(),
}


class InvalidTransitionError(ValueError):
    """Raised when a task is moved against its lifecycle."""


@dataclass(frozen=True)
class TaskProfile:
    """Representative characteristics of an application category."""
    avg_length: float  # million instructions
    avg_input_size: int  # bytes
    avg_output_size: int  # bytes
    avg_deadline: float  # seconds
    default_priority: int


KB = 1024

TASK_PROFILES: Dict[TaskCategory, TaskProfile] = {
    TaskCategory.REAL_TIME_VIDEO_ANALYTICS: TaskProfile(5000, 2048 * KB, 256 * KB, 600.0, 10),
    TaskCategory.ENVIRONMENTAL_MONITORING: TaskProfile(1000, 100 * KB, 20 * KB, 800.0, 4),
    TaskCategory.EMERGENCY_RESPONSE: TaskProfile(3000, 500 * KB, 200 * KB, 400.0, 10),
    TaskCategory.INDUSTRIAL_CONTROL: TaskProfile(2000, 50 * KB, 30 * KB, 500.0, 8),
    TaskCategory.SMART_AGRICULTURE: TaskProfile(800, 150 * KB, 30 * KB, 1000.0, 3),
    TaskCategory.TRAFFIC_MONITORING: TaskProfile(1500, 1024 * KB, 100 * KB, 700.0, 6),
    TaskCategory.HEALTH_MONITORING: TaskProfile(2500, 200 * KB, 50 * KB, 550.0, 9),
}


def clamp_priority(priority: int, params: Optional[SystemParameters] = None) -> int:
    params = params or SystemParameters()
    return int(min(params.max_priority, max(params.min_priority, priority)))


@dataclass
class Task:
    """Computational task with all required attributes."""
    length: float  # million instructions
    input_size: int  # bytes sent to the executing node
    output_size: int  # bytes returned to the source
    deadline: float  # seconds from submission
    priority: int = 5
    category: TaskCategory = TaskCategory.ENVIRONMENTAL_MONITORING
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Origin
    source_device_id: Optional[str] = None
    source_location: Optional[Location] = None
    max_energy: float = 0.0  # J budget, 0 means unbounded

    # Lifecycle
    submission_time: float = 0.0
    status: TaskStatus = TaskStatus.CREATED
    assigned_resource_id: Optional[str] = None
    status_history: List[TaskStatus] = field(default_factory=list)

    def __post_init__(self):
        if self.length <= 0:
            raise ValueError(f"Task length must be positive, got {self.length}")
        if self.deadline <= 0:
            raise ValueError(f"Task deadline must be positive, got {self.deadline}")
        if self.input_size < 0 or self.output_size < 0:
            raise ValueError("Task data sizes cannot be negative")
        self.priority = clamp_priority(self.priority)
        if not self.status_history:
            self.status_history.append(self.status)

    @classmethod
    def from_profile(cls, category: TaskCategory, **overrides) -> 'Task':
        """Create a task using the defaults of an application category."""
        profile = TASK_PROFILES[category]
        values = {
            'length': profile.avg_length,
            'input_size': profile.avg_input_size,
            'output_size': profile.avg_output_size,
            'deadline': profile.avg_deadline,
            'priority': profile.default_priority,
            'category': category,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_completed(self) -> bool:
        """Check if task finished successfully (results may be returned)."""
        return self.status in (TaskStatus.COMPLETED, TaskStatus.RETURNED)

    def can_transition_to(self, new_status: TaskStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, new_status: TaskStatus) -> None:
        """Move the task forward through its lifecycle."""
        if new_status == self.status:
            return
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(
                f"Task {self.id}: illegal transition {self.status.name} -> {new_status.name}"
            )
        self.status = new_status
        self.status_history.append(new_status)

    def utility(self) -> float:
        """Task utility from priority, length and deadline."""
        return self.priority * (1000.0 / self.length) * (1.0 / self.deadline)

    def local_energy(self, cpu_power_w: float, mips: float) -> float:
        """Energy to execute on a CPU drawing cpu_power_w at the given speed."""
        return cpu_power_w * (self.length / max(mips, 1.0))

    def transmission_energy(self, tx_power_w: float, bandwidth_bps: float) -> float:
        """Energy to upload the input payload."""
        return tx_power_w * (self.input_size * 8.0 / max(bandwidth_bps, 1.0))

    def __str__(self) -> str:
        return (f"Task(id={self.id}, category={self.category.name}, length={self.length:.0f} MI, "
                f"in={self.input_size} B, out={self.output_size} B, deadline={self.deadline:.1f}s, "
                f"priority={self.priority}, status={self.status.name}, "
                f"assigned_to={self.assigned_resource_id or 'unassigned'})")


class TaskQueue:
    """FIFO queue of submitted tasks awaiting dispatch."""

    def __init__(self, max_size: Optional[int] = None):
        self._queue: Deque[Task] = deque()
        self.max_size = max_size
        self.rejected_tasks = 0

    def add_task(self, task: Task) -> bool:
        """Add a task to the queue."""
        if self.max_size and len(self._queue) >= self.max_size:
            self.rejected_tasks += 1
            return False
        self._queue.append(task)
        return True

    def get_next_task(self) -> Optional[Task]:
        """Get the oldest task."""
        if not self._queue:
            return None
        return self._queue.popleft()

    def peek_next_task(self) -> Optional[Task]:
        if not self._queue:
            return None
        return self._queue[0]

    def drain(self, max_tasks: int) -> List[Task]:
        """Pop up to max_tasks tasks in submission order."""
        tasks = []
        while self._queue and len(tasks) < max_tasks:
            tasks.append(self._queue.popleft())
        return tasks

    def size(self) -> int:
        return len(self._queue)

    def is_empty(self) -> bool:
        return len(self._queue) == 0

    def clear(self) -> None:
        self._queue.clear()

    def get_all_tasks(self) -> List[Task]:
        """Get all tasks in the queue (for inspection)."""
        return list(self._queue)

    def __len__(self) -> int:
        return len(self._queue)
