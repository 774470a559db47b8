"""
Core data structures and types for the UAV edge offloading system.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Any, Tuple
import math

import numpy as np


# Log-distance path loss model constants
REFERENCE_DISTANCE = 1.0  # m
REFERENCE_PATH_LOSS = 40.0  # dB at the reference distance
PATH_LOSS_EXPONENT = 3.0  # urban environment


class OffloadingTarget(Enum):
    """Where a task ends up being executed."""
    LOCAL = "local"
    UAV = "uav"
    CLOUD = "cloud"  # reserved, never produced by the engine


class UAVStatus(Enum):
    """UAV operational status."""
    IDLE = "idle"
    PROCESSING = "processing"
    MOVING = "moving"
    OUT_OF_ENERGY = "out_of_energy"
    MAINTENANCE = "maintenance"


class SimulationState(Enum):
    """Lifecycle of a simulation run."""
    INITIALIZED = "initialized"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Location:
    """Immutable 3D point in meters."""
    x: float
    y: float
    z: float = 0.0

    def distance_to(self, other: 'Location') -> float:
        """Calculate Euclidean distance to another location."""
        return distance(self, other)

    def path_loss_to(self, other: 'Location') -> float:
        """Log-distance path loss to another location in dB."""
        return path_loss(self, other)

    def snr_to(self, other: 'Location', tx_power_dbm: float, noise_power_dbm: float) -> float:
        """Signal-to-noise ratio in dB for a link to another location."""
        return snr(self, other, tx_power_dbm, noise_power_dbm)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def __str__(self) -> str:
        return f"Location(x={self.x:.2f}, y={self.y:.2f}, z={self.z:.2f})"


def distance(a: Location, b: Location) -> float:
    """Euclidean distance between two locations."""
    return math.sqrt((a.x - b.x)**2 + (a.y - b.y)**2 + (a.z - b.z)**2)


def path_loss(a: Location, b: Location) -> float:
    """Path loss in dB: PL = PL0 + 10 * n * log10(max(d, d0) / d0)."""
    d = max(distance(a, b), REFERENCE_DISTANCE)
    return REFERENCE_PATH_LOSS + 10 * PATH_LOSS_EXPONENT * np.log10(d / REFERENCE_DISTANCE)


def snr(a: Location, b: Location, tx_power_dbm: float, noise_power_dbm: float) -> float:
    """SNR in dB given transmit and noise power in dBm."""
    received_power_dbm = tx_power_dbm - path_loss(a, b)
    return received_power_dbm - noise_power_dbm


@dataclass(frozen=True, eq=False)
class OffloadingDecision:
    """One placement choice produced by the decision engine.

    ``features`` and ``action_index`` capture the decision-time state so the
    outcome can be fed back as experience once it is known. ``fallback`` is set
    when the raw policy output was overridden by a feasibility rule, in which
    case ``policy_action`` keeps the overridden choice.
    """
    target: OffloadingTarget
    selected_uav: Optional[Any] = None
    estimated_latency: float = 0.0  # seconds
    estimated_energy: float = 0.0  # joules
    features: Optional[np.ndarray] = None
    action_index: int = -1
    fallback: bool = False
    policy_action: int = -1

    @property
    def is_local(self) -> bool:
        return self.target == OffloadingTarget.LOCAL

    def __str__(self) -> str:
        if self.target == OffloadingTarget.LOCAL:
            return (f"OffloadingDecision(target=LOCAL, latency={self.estimated_latency:.2f}s, "
                    f"energy={self.estimated_energy:.2f}J)")
        uav_id = self.selected_uav.id if self.selected_uav is not None else None
        return (f"OffloadingDecision(target={self.target.name}, uav={uav_id}, "
                f"latency={self.estimated_latency:.2f}s, energy={self.estimated_energy:.2f}J)")


# System-wide constants and parameters
@dataclass
class SystemParameters:
    """Physical constants shared by all entities."""
    # Time parameters
    time_step: float = 0.1  # seconds

    # Communication parameters
    noise_power_dbm: float = -100.0  # dBm
    reference_spectral_efficiency: float = 10.0  # bit/s/Hz mapped to full bandwidth
    min_bandwidth_fraction: float = 0.01

    # UAV energy parameters
    processing_energy_per_mi: float = 0.01  # J per million instructions
    processing_base_energy: float = 0.5  # J per task
    movement_energy_per_meter: float = 0.1  # J/m
    arrival_threshold: float = 0.1  # m

    # Task priority bounds
    min_priority: int = 1
    max_priority: int = 10
