"""
Configuration for UAV edge offloading simulations.
"""

import copy
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def _check_range(name: str, low: float, high: float, allow_zero: bool = False) -> None:
    if low < 0 or (low == 0 and not allow_zero):
        raise ValueError(f"{name}: lower bound must be positive, got {low}")
    if high < low:
        raise ValueError(f"{name}: upper bound {high} is below lower bound {low}")


@dataclass
class UAVConfig:
    """Randomized UAV fleet."""

    num_uavs: int = 5

    # Physical ranges
    min_speed: float = 10.0  # m/s
    max_speed: float = 20.0
    min_flight_time: float = 1800.0  # s
    max_flight_time: float = 3600.0
    min_altitude: float = 50.0  # m
    max_altitude: float = 100.0

    # Computing and energy ranges
    min_mips: float = 8000.0
    max_mips: float = 16000.0
    min_energy: float = 36000.0  # J
    max_energy: float = 72000.0

    # Communication
    min_range: float = 800.0  # m
    max_range: float = 1200.0

    # Mobility: seconds between random repositioning rounds, 0 disables
    reposition_interval: float = 0.0

    def __post_init__(self):
        if self.num_uavs < 0:
            raise ValueError(f"num_uavs cannot be negative, got {self.num_uavs}")
        _check_range("speed", self.min_speed, self.max_speed)
        _check_range("flight_time", self.min_flight_time, self.max_flight_time)
        _check_range("altitude", self.min_altitude, self.max_altitude, allow_zero=True)
        _check_range("mips", self.min_mips, self.max_mips)
        _check_range("energy", self.min_energy, self.max_energy)
        _check_range("range", self.min_range, self.max_range)
        if self.reposition_interval < 0:
            raise ValueError("reposition_interval cannot be negative")


@dataclass
class DeviceConfig:
    """Randomized IoT device population."""

    num_devices: int = 20

    min_mips: float = 500.0
    max_mips: float = 2000.0
    min_memory: int = 256  # MB
    max_memory: int = 1024
    min_battery: float = 18000.0  # J
    max_battery: float = 36000.0
    min_task_rate: float = 0.05  # tasks/s
    max_task_rate: float = 0.25

    altitude: float = 2.0  # m
    cpu_power_consumption: float = 2.0  # W

    def __post_init__(self):
        if self.num_devices < 0:
            raise ValueError(f"num_devices cannot be negative, got {self.num_devices}")
        _check_range("mips", self.min_mips, self.max_mips)
        _check_range("memory", self.min_memory, self.max_memory)
        _check_range("battery", self.min_battery, self.max_battery)
        _check_range("task_rate", self.min_task_rate, self.max_task_rate, allow_zero=True)
        if self.cpu_power_consumption <= 0:
            raise ValueError("cpu_power_consumption must be positive")


@dataclass
class TaskConfig:
    """Task generation and dispatch."""

    task_variation: float = 0.2  # relative std-dev around the category profile
    max_tasks_per_step: int = 20
    max_queue_size: Optional[int] = None  # None means unbounded

    def __post_init__(self):
        if self.task_variation < 0:
            raise ValueError("task_variation cannot be negative")
        if self.max_tasks_per_step < 1:
            raise ValueError("max_tasks_per_step must be at least 1")
        if self.max_queue_size is not None and self.max_queue_size < 1:
            raise ValueError("max_queue_size must be at least 1 when set")


@dataclass
class EngineConfig:
    """Offloading decision engine and its learning loop."""

    max_uavs: int = 5  # UAV slots in the feature vector
    scorer: str = "heuristic"  # heuristic or neural
    local_execution_enabled: bool = True
    epsilon: float = 0.0
    local_preference: float = 0.25

    # Learning
    hidden_dim: int = 128
    buffer_size: int = 10000
    retrain_interval: int = 200  # experiences between refits, 0 disables
    batch_size: int = 32
    learning_rate: float = 0.001
    train_epochs: int = 4

    # Reward weights
    deadline_weight: float = 0.5
    latency_weight: float = 0.3
    energy_weight: float = 0.2
    energy_reference: float = 100.0  # J

    def __post_init__(self):
        if self.max_uavs < 1:
            raise ValueError(f"max_uavs must be at least 1, got {self.max_uavs}")
        if self.scorer not in ("heuristic", "neural"):
            raise ValueError(f"Unknown scorer '{self.scorer}'")
        if not 0.0 <= self.epsilon <= 1.0:
            raise ValueError(f"epsilon must be within [0, 1], got {self.epsilon}")
        if self.buffer_size < 1 or self.batch_size < 1:
            raise ValueError("buffer_size and batch_size must be at least 1")
        if self.batch_size > self.buffer_size:
            raise ValueError("batch_size cannot exceed buffer_size")
        if self.retrain_interval < 0:
            raise ValueError("retrain_interval cannot be negative")

    def to_agent_config(self) -> Dict[str, Any]:
        """Plain dict consumed by OffloadingDecisionEngine."""
        return asdict(self)

    def get_reward_weights(self):
        """Convert to RewardWeights object."""
        from uavedge.rl.trainers import RewardWeights
        return RewardWeights(
            deadline=self.deadline_weight,
            latency=self.latency_weight,
            energy=self.energy_weight,
            energy_reference=self.energy_reference,
        )


@dataclass
class SimulationConfig:
    """Simulation area, clock and reproducibility."""

    area_width: float = 1000.0  # m
    area_height: float = 1000.0
    area_max_altitude: float = 150.0

    time_step: float = 0.1  # s
    duration: float = 300.0  # s
    seed: Optional[int] = 42

    noise_power_dbm: float = -100.0

    # Logging
    progress_interval: float = 60.0  # simulated seconds between progress logs, 0 disables

    def __post_init__(self):
        if self.area_width <= 0 or self.area_height <= 0 or self.area_max_altitude <= 0:
            raise ValueError("Simulation area dimensions must be positive")
        if self.time_step <= 0:
            raise ValueError(f"time_step must be positive, got {self.time_step}")
        if self.duration < 0:
            raise ValueError("duration cannot be negative")


@dataclass
class OffloadConfig:
    """Complete offloading simulation configuration."""

    name: str = "default"
    description: str = "Default offloading configuration"

    # Component configurations
    uavs: UAVConfig = None
    devices: DeviceConfig = None
    tasks: TaskConfig = None
    engine: EngineConfig = None
    simulation: SimulationConfig = None

    def __post_init__(self):
        """Initialize default configurations if not provided."""
        if self.uavs is None:
            self.uavs = UAVConfig()
        if self.devices is None:
            self.devices = DeviceConfig()
        if self.tasks is None:
            self.tasks = TaskConfig()
        if self.engine is None:
            self.engine = EngineConfig()
        if self.simulation is None:
            self.simulation = SimulationConfig()

    def get_system_parameters(self):
        """Convert to SystemParameters object."""
        from uavedge.core.types import SystemParameters
        return SystemParameters(
            time_step=self.simulation.time_step,
            noise_power_dbm=self.simulation.noise_power_dbm,
        )


# Predefined configurations
OFFLOAD_CONFIGS = {
    "small_test": OffloadConfig(
        name="small_test",
        description="Small configuration for quick validation",
        uavs=UAVConfig(num_uavs=2),
        devices=DeviceConfig(num_devices=5),
        engine=EngineConfig(max_uavs=2),
        simulation=SimulationConfig(duration=30.0, progress_interval=10.0),
    ),

    "default": OffloadConfig(),

    "dense_uavs": OffloadConfig(
        name="dense_uavs",
        description="Many UAVs over a busy device field",
        uavs=UAVConfig(num_uavs=10, reposition_interval=60.0),
        devices=DeviceConfig(num_devices=40, min_task_rate=0.1, max_task_rate=0.5),
        engine=EngineConfig(max_uavs=10),
        simulation=SimulationConfig(duration=600.0),
    ),

    "learning": OffloadConfig(
        name="learning",
        description="Neural scorer refitted in the background from recorded outcomes",
        uavs=UAVConfig(num_uavs=5, reposition_interval=120.0),
        devices=DeviceConfig(num_devices=30),
        engine=EngineConfig(scorer="neural", epsilon=0.1, retrain_interval=100),
        simulation=SimulationConfig(duration=900.0),
    ),
}


def get_offload_config(config_name: str = "default") -> OffloadConfig:
    """Get a copy of a predefined configuration."""
    if config_name not in OFFLOAD_CONFIGS:
        logger.warning("Unknown config '%s', using 'default'", config_name)
        config_name = "default"
    return copy.deepcopy(OFFLOAD_CONFIGS[config_name])


def list_available_configs() -> List[str]:
    """List all available configuration names."""
    return list(OFFLOAD_CONFIGS.keys())


def create_custom_offload_config(name: str, base: str = "default", **kwargs) -> OffloadConfig:
    """
    Create a configuration from a preset with individual fields overridden.

    Keyword arguments naming a top-level field replace it; any other key is
    applied to the first component config that has an attribute of that name.
    Components are re-validated afterwards.
    """
    config = get_offload_config(base)
    config.name = name
    config.description = f"Custom configuration: {name}"

    components = ['uavs', 'devices', 'tasks', 'engine', 'simulation']
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
            continue
        for component in components:
            component_obj = getattr(config, component)
            if hasattr(component_obj, key):
                setattr(component_obj, key, value)
                break
        else:
            raise ValueError(f"Unknown configuration option '{key}'")

    for component in components:
        getattr(config, component).__post_init__()
    return config
