"""
UAV Edge - task offloading from IoT devices to UAV edge servers
"""

from .core.environment import SimulationEnvironment
from .core.types import SystemParameters, Location, OffloadingDecision, OffloadingTarget
from .core.tasks import Task, TaskCategory, TaskStatus
from .core.devices import IoTDevice, WirelessTechnology
from .core.uavs import UAV, UAVStatus
from .core.metrics import SimulationMetrics, MetricsSnapshot
from .rl.agents import OffloadingDecisionEngine

__version__ = "0.1.0"
__author__ = "UAV Edge Development Team"

__all__ = [
    "SimulationEnvironment",
    "SystemParameters",
    "Location",
    "OffloadingDecision",
    "OffloadingTarget",
    "Task",
    "TaskCategory",
    "TaskStatus",
    "IoTDevice",
    "WirelessTechnology",
    "UAV",
    "UAVStatus",
    "SimulationMetrics",
    "MetricsSnapshot",
    "OffloadingDecisionEngine"
]
