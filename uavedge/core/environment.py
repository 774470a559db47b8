"""
Discrete-time simulation environment.

Each step runs, in order: UAV mobility, task generation, dispatch of queued
tasks through the decision engine, and a completion sweep over tasks in
flight on UAVs, then advances the clock by one time step.
"""

import copy
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .devices import IoTDevice, WirelessTechnology, categories_for_cpu
from .metrics import MetricsSnapshot, SimulationMetrics
from .tasks import Task, TaskQueue, TaskStatus
from .types import Location, OffloadingDecision, SimulationState
from .uavs import UAV
from ..rl.agents import OffloadingDecisionEngine, Scorer
from ..rl.trainers import compute_reward

logger = logging.getLogger(__name__)


@dataclass
class InFlightTask:
    """Bookkeeping for a task executing on a UAV."""
    task: Task
    device: IoTDevice
    uav: UAV
    decision: OffloadingDecision
    start_time: float
    expected_processing_time: float  # fixed at assignment
    transfer_time: float
    transmission_energy: float


class SimulationEnvironment:
    """Owns all entities and advances them on a single timeline."""

    def __init__(self, config=None, scorer: Optional[Scorer] = None):
        """
        Initialize the environment.

        Args:
            config: OffloadConfig, defaults to OffloadConfig()
            scorer: Optional scoring function overriding the configured one
        """
        if config is None:
            from config.offload_config import OffloadConfig
            config = OffloadConfig()
        self.config = config
        self.system_params = config.get_system_parameters()
        self.time_step = self.system_params.time_step
        self.rng = np.random.default_rng(config.simulation.seed)

        self.metrics = SimulationMetrics()
        self.engine = OffloadingDecisionEngine(
            self.metrics, config.engine.to_agent_config(), scorer=scorer, rng=self.rng
        )
        self.reward_weights = config.engine.get_reward_weights()

        self.devices: List[IoTDevice] = []
        self.uavs: List[UAV] = []
        self._device_index: Dict[str, IoTDevice] = {}
        self.task_queue = TaskQueue(config.tasks.max_queue_size)
        self.in_flight: Dict[str, InFlightTask] = {}

        self.current_time = 0.0
        self.state = SimulationState.INITIALIZED
        self._next_reposition = config.uavs.reposition_interval
        self._next_progress = config.simulation.progress_interval

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def initialize(self, device_count: Optional[int] = None, uav_count: Optional[int] = None,
                   devices: Optional[List[IoTDevice]] = None,
                   uavs: Optional[List[UAV]] = None) -> None:
        """Populate entities (randomized unless supplied) and reset metrics."""
        if device_count is None:
            device_count = self.config.devices.num_devices
        if uav_count is None:
            uav_count = self.config.uavs.num_uavs

        self.metrics.reset()
        self.task_queue.clear()
        self.in_flight.clear()
        self.current_time = 0.0
        self._next_reposition = self.config.uavs.reposition_interval
        self._next_progress = self.config.simulation.progress_interval

        if devices is not None:
            self.devices = list(devices)
        else:
            self.devices = [self._create_random_device(i) for i in range(device_count)]
        if uavs is not None:
            self.uavs = list(uavs)
        else:
            self.uavs = [self._create_random_uav(i) for i in range(uav_count)]

        self._device_index = {device.id: device for device in self.devices}
        if len(self._device_index) != len(self.devices):
            raise ValueError("Device identifiers must be unique")

        self.state = SimulationState.INITIALIZED
        logger.info("Environment initialized with %d devices and %d UAVs",
                    len(self.devices), len(self.uavs))

    def _random_location(self, z_low: float, z_high: float) -> Location:
        sim = self.config.simulation
        return Location(
            float(self.rng.uniform(0.0, sim.area_width)),
            float(self.rng.uniform(0.0, sim.area_height)),
            float(self.rng.uniform(z_low, z_high)),
        )

    def _create_random_device(self, index: int) -> IoTDevice:
        cfg = self.config.devices
        cpu_mips = float(self.rng.uniform(cfg.min_mips, cfg.max_mips))
        technologies = list(WirelessTechnology)
        return IoTDevice(
            location=self._random_location(cfg.altitude, cfg.altitude),
            id=f"device-{index}",
            cpu_mips=cpu_mips,
            memory_mb=int(self.rng.integers(cfg.min_memory, cfg.max_memory + 1)),
            battery_capacity=float(self.rng.uniform(cfg.min_battery, cfg.max_battery)),
            task_generation_rate=float(self.rng.uniform(cfg.min_task_rate, cfg.max_task_rate)),
            wireless_tech=technologies[int(self.rng.integers(len(technologies)))],
            supported_categories=categories_for_cpu(cpu_mips),
            cpu_power_consumption=cfg.cpu_power_consumption,
            task_variation=self.config.tasks.task_variation,
            system_params=self.system_params,
        )

    def _create_random_uav(self, index: int) -> UAV:
        cfg = self.config.uavs
        return UAV(
            location=self._random_location(cfg.min_altitude, cfg.max_altitude),
            id=f"uav-{index}",
            max_speed=float(self.rng.uniform(cfg.min_speed, cfg.max_speed)),
            max_flight_time=float(self.rng.uniform(cfg.min_flight_time, cfg.max_flight_time)),
            total_energy=float(self.rng.uniform(cfg.min_energy, cfg.max_energy)),
            mips=float(self.rng.uniform(cfg.min_mips, cfg.max_mips)),
            communication_range=float(self.rng.uniform(cfg.min_range, cfg.max_range)),
            system_params=self.system_params,
        )

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    def step(self) -> None:
        """Advance the simulation by one time step."""
        if self.state == SimulationState.INITIALIZED:
            self.state = SimulationState.RUNNING

        self._update_uavs()
        self._reposition_uavs()
        self._generate_tasks()
        self._dispatch_tasks()
        self._sweep_completions()

        self.current_time += self.time_step
        self._log_progress()

    def run(self, duration: Optional[float] = None) -> MetricsSnapshot:
        """Step until `duration` simulated seconds elapse or stop() is called."""
        if duration is None:
            duration = self.config.simulation.duration
        steps = int(math.ceil(duration / self.time_step - 1e-9))

        self.state = SimulationState.RUNNING
        logger.info("Running simulation for %.1f s (%d steps)", duration, steps)
        for _ in range(steps):
            if self.state != SimulationState.RUNNING:
                break
            self.step()
        self.state = SimulationState.STOPPED

        logger.info("Simulation stopped at t=%.1f s: %d tasks, %d completed, %d failed, %d dropped",
                    self.current_time, self.metrics.total_tasks, self.metrics.completed_tasks,
                    self.metrics.failed_tasks, self.metrics.dropped_tasks)
        return self.get_metrics()

    def stop(self) -> None:
        """Request the run to stop before the next step."""
        self.state = SimulationState.STOPPED

    def close(self) -> None:
        """Release the background training worker."""
        self.engine.close()

    # ------------------------------------------------------------------
    # Step phases
    # ------------------------------------------------------------------

    def _update_uavs(self) -> None:
        for uav in self.uavs:
            uav.update_position(self.time_step)
            self.metrics.update_uav_utilization(uav.id, uav.current_load * 100.0)

    def _reposition_uavs(self) -> None:
        interval = self.config.uavs.reposition_interval
        if interval <= 0 or self.current_time < self._next_reposition:
            return
        self._next_reposition += interval
        sim = self.config.simulation
        for uav in self.uavs:
            if uav.is_operational and uav.target_location is None:
                target = Location(
                    float(self.rng.uniform(0.0, sim.area_width)),
                    float(self.rng.uniform(0.0, sim.area_height)),
                    uav.location.z,
                )
                if uav.set_target_location(target):
                    logger.debug("UAV %s repositioning to %s", uav.id, target)

    def _generate_tasks(self) -> None:
        for device in self.devices:
            probability = device.task_generation_rate * self.time_step
            if self.rng.random() < probability:
                task = device.generate_task(self.rng, self.current_time)
                self.submit_task(task)
                logger.debug("Device %s generated task %s", device.id, task.id)

    def submit_task(self, task: Task) -> bool:
        """Enqueue a task; counted as created, dropped if the queue is full."""
        task.transition_to(TaskStatus.READY)
        task.submission_time = self.current_time
        self.metrics.record_task_creation()
        if not self.task_queue.add_task(task):
            task.transition_to(TaskStatus.DROPPED)
            self.metrics.record_task_dropped()
            logger.debug("Task queue full, dropped task %s", task.id)
            return False
        return True

    def get_available_uavs(self, device: IoTDevice) -> List[UAV]:
        """UAVs in range of the device and operational, in fleet order."""
        return [uav for uav in self.uavs
                if uav.is_operational and uav.is_in_range_of(device.location)]

    def _dispatch_tasks(self) -> None:
        for task in self.task_queue.drain(self.config.tasks.max_tasks_per_step):
            self._dispatch(task)

    def _dispatch(self, task: Task) -> None:
        device = self._device_index.get(task.source_device_id)
        if device is None:
            logger.warning("Could not find source device for task %s", task.id)
            self._fail(task)
            return

        available = self.get_available_uavs(device)
        if not available:
            if device.estimate_local_execution_time(task) <= task.deadline:
                self._execute_locally(task, device)
            else:
                task.transition_to(TaskStatus.DROPPED)
                self.metrics.record_task_dropped()
                logger.debug("Task %s dropped: no UAV reachable and local deadline missed", task.id)
            return

        decision = self.engine.make_decision(task, device, available)
        if decision.is_local:
            self._execute_locally(task, device, decision)
        else:
            self._offload(task, device, decision)

    def _reward(self, task: Task, success: bool, latency: float, energy: float) -> float:
        return compute_reward(success, latency, energy, task.deadline, self.reward_weights,
                              energy_budget=task.max_energy)

    def _fail(self, task: Task) -> None:
        task.transition_to(TaskStatus.FAILED)
        self.metrics.record_task_failure()

    def _execute_locally(self, task: Task, device: IoTDevice,
                         decision: Optional[OffloadingDecision] = None) -> None:
        energy = device.local_energy(task)
        latency = device.estimate_local_execution_time(task)

        if device.process_task_locally(task):
            self.metrics.record_device_energy_consumption(energy)
            self.metrics.record_task_completion(latency, energy, latency <= task.deadline)
            task.transition_to(TaskStatus.RETURNED)
            reward = self._reward(task, True, latency, energy)
            logger.debug("Task %s processed locally on device %s", task.id, device.id)
        else:
            self._fail(task)
            reward = self._reward(task, False, latency, energy)
            logger.debug("Device %s failed to process task %s locally", device.id, task.id)

        if decision is not None:
            self.engine.record_experience(decision, reward)

    def _offload(self, task: Task, device: IoTDevice, decision: OffloadingDecision) -> None:
        uav = decision.selected_uav
        expected_processing_time = uav.estimate_task_completion_time(task)
        transfer_time = device.estimate_transfer_time(task, uav)
        transmission_energy = device.calculate_offloading_energy(task, uav)

        if not device.offload_task(task, uav):
            self._fail(task)
            self.engine.record_experience(
                decision, self._reward(task, False, 0.0, 0.0))
            logger.debug("Failed to offload task %s from device %s to UAV %s",
                         task.id, device.id, uav.id)
            return

        self.metrics.record_device_energy_consumption(transmission_energy)
        self.metrics.record_data_transfer(task.input_size + task.output_size)
        self.in_flight[task.id] = InFlightTask(
            task=task,
            device=device,
            uav=uav,
            decision=decision,
            start_time=self.current_time,
            expected_processing_time=expected_processing_time,
            transfer_time=transfer_time,
            transmission_energy=transmission_energy,
        )
        logger.debug("Task %s offloaded from device %s to UAV %s", task.id, device.id, uav.id)

    def _sweep_completions(self) -> None:
        for task_id, record in list(self.in_flight.items()):
            elapsed = self.current_time - record.start_time
            if elapsed < record.expected_processing_time:
                continue
            del self.in_flight[task_id]
            task, uav = record.task, record.uav

            if not uav.complete_task(task):
                self._fail(task)
                continue

            processing_energy = uav.calculate_task_processing_energy(task)
            self.metrics.record_uav_energy_consumption(processing_energy)

            latency = record.transfer_time + elapsed
            energy = record.transmission_energy + processing_energy
            self.metrics.record_task_completion(latency, energy, latency <= task.deadline)
            task.transition_to(TaskStatus.RETURNED)

            self.engine.record_experience(
                record.decision,
                self._reward(task, True, latency, energy))
            logger.debug("Task %s completed on UAV %s after %.2f s", task.id, uav.id, elapsed)

    def _log_progress(self) -> None:
        interval = self.config.simulation.progress_interval
        if interval <= 0 or self.current_time + 1e-9 < self._next_progress:
            return
        self._next_progress += interval
        logger.info("t=%.1f s: %d tasks, %d completed, %d in flight, %d queued",
                    self.current_time, self.metrics.total_tasks, self.metrics.completed_tasks,
                    len(self.in_flight), len(self.task_queue))

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def tasks_in_flight(self) -> int:
        return len(self.in_flight)

    @property
    def queued_tasks(self) -> int:
        return len(self.task_queue)

    def get_metrics(self) -> MetricsSnapshot:
        return self.metrics.snapshot()

    def get_devices(self) -> List[IoTDevice]:
        """Deep copies of the devices."""
        return copy.deepcopy(self.devices)

    def get_uavs(self) -> List[UAV]:
        """Deep copies of the UAVs."""
        return copy.deepcopy(self.uavs)
