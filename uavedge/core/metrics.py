"""
Aggregate counters and derived statistics for a simulation run.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class MetricsSnapshot:
    """Read-only view of the metrics at one instant."""
    total_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    dropped_tasks: int = 0
    success_rate: float = 0.0
    failure_rate: float = 0.0
    drop_rate: float = 0.0

    average_latency: float = 0.0  # s
    min_latency: float = 0.0
    max_latency: float = 0.0

    total_energy: float = 0.0  # J
    average_energy_per_task: float = 0.0
    device_energy: float = 0.0
    uav_energy: float = 0.0

    total_data_transferred: int = 0  # bytes

    deadlines_met: int = 0
    deadlines_missed: int = 0
    deadline_meet_rate: float = 0.0

    average_uav_utilization: float = 0.0  # percent
    uav_utilization: Dict[str, float] = field(default_factory=dict)
    offloading_decisions: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Flat key/value map; offloading_decisions is the only nested map."""
        values = {key: value for key, value in self.__dict__.items() if key != 'uav_utilization'}
        values['offloading_decisions'] = dict(self.offloading_decisions)
        return values

    def generate_report(self) -> str:
        """Human-readable summary of the run."""
        total = max(1, self.total_tasks)
        lines = [
            "=== SIMULATION METRICS REPORT ===",
            "",
            "TASK STATISTICS:",
            f"  Total Tasks: {self.total_tasks}",
            f"  Completed Tasks: {self.completed_tasks} ({self.success_rate:.2f}%)",
            f"  Failed Tasks: {self.failed_tasks} ({self.failure_rate:.2f}%)",
            f"  Dropped Tasks: {self.dropped_tasks} ({self.drop_rate:.2f}%)",
            "",
            "DEADLINE STATISTICS:",
            f"  Deadlines Met: {self.deadlines_met} ({self.deadline_meet_rate:.2f}%)",
            f"  Deadlines Missed: {self.deadlines_missed}",
            "",
            "LATENCY STATISTICS:",
            f"  Average Latency: {self.average_latency:.3f} s",
            f"  Minimum Latency: {self.min_latency:.3f} s",
            f"  Maximum Latency: {self.max_latency:.3f} s",
            "",
            "ENERGY STATISTICS:",
            f"  Total Energy Consumption: {self.total_energy:.2f} J",
            f"  Average Energy per Task: {self.average_energy_per_task:.2f} J",
            f"  Device Energy Consumption: {self.device_energy:.2f} J",
            f"  UAV Energy Consumption: {self.uav_energy:.2f} J",
            "",
            "NETWORK STATISTICS:",
            f"  Total Data Transferred: {self.total_data_transferred / (1024.0 * 1024.0):.2f} MB",
            "",
            "OFFLOADING STATISTICS:",
        ]
        for kind, count in sorted(self.offloading_decisions.items()):
            lines.append(f"  {kind}: {count} ({count * 100.0 / total:.2f}%)")
        lines.extend([
            "",
            "RESOURCE UTILIZATION:",
            f"  Average UAV Utilization: {self.average_uav_utilization:.2f}%",
        ])
        return "\n".join(lines)


class SimulationMetrics:
    """Mutable collector owned by the simulation thread."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.total_tasks = 0
        self.completed_tasks = 0
        self.failed_tasks = 0
        self.dropped_tasks = 0

        self.total_latency = 0.0
        self.min_latency = math.inf
        self.max_latency = 0.0

        self.total_energy = 0.0
        self.device_energy = 0.0
        self.uav_energy = 0.0

        self.total_data_transferred = 0

        self.deadlines_met = 0
        self.deadlines_missed = 0

        self.offloading_decisions: Dict[str, int] = {}
        # uav_id -> (sample count, running mean)
        self._utilization: Dict[str, tuple] = {}

    # Recording

    def record_task_creation(self) -> None:
        self.total_tasks += 1

    def record_task_completion(self, latency: float, energy: float, met_deadline: bool) -> None:
        """Record a finished task with its latency (s) and energy (J)."""
        self.completed_tasks += 1
        self.total_latency += latency
        self.min_latency = min(self.min_latency, latency)
        self.max_latency = max(self.max_latency, latency)
        self.total_energy += energy
        if met_deadline:
            self.deadlines_met += 1
        else:
            self.deadlines_missed += 1

    def record_task_failure(self) -> None:
        self.failed_tasks += 1

    def record_task_dropped(self) -> None:
        self.dropped_tasks += 1

    def record_device_energy_consumption(self, energy: float) -> None:
        self.device_energy += energy

    def record_uav_energy_consumption(self, energy: float) -> None:
        self.uav_energy += energy

    def record_data_transfer(self, num_bytes: int) -> None:
        self.total_data_transferred += int(num_bytes)

    def record_offloading_decision(self, kind: str) -> None:
        self.offloading_decisions[kind] = self.offloading_decisions.get(kind, 0) + 1

    def update_uav_utilization(self, uav_id: str, utilization: float) -> None:
        """Fold a utilization sample (percent) into the UAV's running mean."""
        count, mean = self._utilization.get(uav_id, (0, 0.0))
        count += 1
        mean += (utilization - mean) / count
        self._utilization[uav_id] = (count, mean)

    # Derived statistics

    def _rate(self, count: int) -> float:
        if self.total_tasks == 0:
            return 0.0
        return count * 100.0 / self.total_tasks

    @property
    def success_rate(self) -> float:
        return self._rate(self.completed_tasks)

    @property
    def failure_rate(self) -> float:
        return self._rate(self.failed_tasks)

    @property
    def drop_rate(self) -> float:
        return self._rate(self.dropped_tasks)

    @property
    def average_latency(self) -> float:
        if self.completed_tasks == 0:
            return 0.0
        return self.total_latency / self.completed_tasks

    @property
    def average_energy_per_task(self) -> float:
        if self.completed_tasks == 0:
            return 0.0
        return self.total_energy / self.completed_tasks

    @property
    def deadline_meet_rate(self) -> float:
        finished = self.deadlines_met + self.deadlines_missed
        if finished == 0:
            return 0.0
        return self.deadlines_met * 100.0 / finished

    @property
    def uav_utilization(self) -> Dict[str, float]:
        return {uav_id: mean for uav_id, (_, mean) in self._utilization.items()}

    @property
    def average_uav_utilization(self) -> float:
        if not self._utilization:
            return 0.0
        return sum(mean for _, mean in self._utilization.values()) / len(self._utilization)

    def snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            total_tasks=self.total_tasks,
            completed_tasks=self.completed_tasks,
            failed_tasks=self.failed_tasks,
            dropped_tasks=self.dropped_tasks,
            success_rate=self.success_rate,
            failure_rate=self.failure_rate,
            drop_rate=self.drop_rate,
            average_latency=self.average_latency,
            min_latency=0.0 if math.isinf(self.min_latency) else self.min_latency,
            max_latency=self.max_latency,
            total_energy=self.total_energy,
            average_energy_per_task=self.average_energy_per_task,
            device_energy=self.device_energy,
            uav_energy=self.uav_energy,
            total_data_transferred=self.total_data_transferred,
            deadlines_met=self.deadlines_met,
            deadlines_missed=self.deadlines_missed,
            deadline_meet_rate=self.deadline_meet_rate,
            average_uav_utilization=self.average_uav_utilization,
            uav_utilization=self.uav_utilization,
            offloading_decisions=dict(self.offloading_decisions),
        )
