"""
Core simulation components
"""

from .types import SystemParameters, Location, OffloadingDecision, OffloadingTarget, SimulationState
from .tasks import Task, TaskCategory, TaskStatus, TaskQueue, InvalidTransitionError
from .uavs import UAV, UAVStatus, AdmissionResult
from .devices import IoTDevice, WirelessTechnology
from .metrics import SimulationMetrics, MetricsSnapshot
from .environment import SimulationEnvironment

__all__ = [
    "SystemParameters",
    "Location",
    "OffloadingDecision",
    "OffloadingTarget",
    "SimulationState",
    "Task",
    "TaskCategory",
    "TaskStatus",
    "TaskQueue",
    "InvalidTransitionError",
    "UAV",
    "UAVStatus",
    "AdmissionResult",
    "IoTDevice",
    "WirelessTechnology",
    "SimulationMetrics",
    "MetricsSnapshot",
    "SimulationEnvironment"
]
