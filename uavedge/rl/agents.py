"""
Offloading decision engine.

The engine turns a (task, device, reachable UAVs) triple into a fixed-length
feature vector, asks a scorer for a probability distribution over the
placement actions (one per UAV slot, local execution last), picks the
arg-max and then re-validates it against the UAV admission rules before
handing the decision to the environment.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Union

import numpy as np
import torch

from ..core.devices import IoTDevice
from ..core.metrics import SimulationMetrics
from ..core.tasks import Task
from ..core.types import OffloadingDecision, OffloadingTarget
from ..core.uavs import UAV, make_sentinel_uav
from .models import PolicyNetwork
from .trainers import Experience, PolicyTrainer

logger = logging.getLogger(__name__)


TASK_FEATURES = 5
DEVICE_FEATURES = 3
UAV_FEATURES = 3

# Normalization constants
LENGTH_SCALE = 10000.0  # MI
SIZE_SCALE = 1024.0 * 1024.0  # bytes
DEADLINE_SCALE = 10.0  # s
PRIORITY_SCALE = 10.0
POSITION_SCALE = 1000.0  # m


def feature_dim(max_uavs: int) -> int:
    return TASK_FEATURES + DEVICE_FEATURES + UAV_FEATURES * max_uavs


class OffloadingScorer(ABC):
    """Maps a feature vector to action probabilities (LOCAL is the last action)."""

    @abstractmethod
    def __call__(self, features: np.ndarray) -> np.ndarray:
        pass


class HeuristicScorer(OffloadingScorer):
    """
    Fixed scoring rule: UAVs score by remaining energy discounted by distance,
    local execution by battery level times a preference factor.
    """

    def __init__(self, max_uavs: int, local_preference: float = 0.25):
        self.max_uavs = max_uavs
        self.local_preference = local_preference

    def __call__(self, features: np.ndarray) -> np.ndarray:
        device_x, device_y, battery = features[TASK_FEATURES:TASK_FEATURES + DEVICE_FEATURES]
        slots = features[TASK_FEATURES + DEVICE_FEATURES:].reshape(self.max_uavs, UAV_FEATURES)

        # Positions are already in km after normalization
        distances_km = np.hypot(slots[:, 0] - device_x, slots[:, 1] - device_y)
        uav_scores = slots[:, 2] * np.exp(-distances_km)
        local_score = self.local_preference * battery

        scores = np.append(uav_scores, local_score).astype(np.float64)
        total = scores.sum()
        if total <= 0:
            return np.full(len(scores), 1.0 / len(scores))
        return scores / total


class NeuralScorer(OffloadingScorer):
    """
    Policy network scorer.

    Until the first refit installs a trained network, decisions are delegated
    to the warm-start scorer so an untrained network never drives placement.
    """

    def __init__(self, max_uavs: int, hidden_dim: int = 128,
                 warm_start: Optional[OffloadingScorer] = None):
        self.max_uavs = max_uavs
        self.network = PolicyNetwork(feature_dim(max_uavs), max_uavs + 1, hidden_dim=hidden_dim)
        self.network.eval()
        self.warm_start = warm_start or HeuristicScorer(max_uavs)
        self.trained = False

    def install(self, network: PolicyNetwork) -> None:
        """Swap in a refitted network."""
        self.network = network
        self.trained = True

    def __call__(self, features: np.ndarray) -> np.ndarray:
        if not self.trained:
            return self.warm_start(features)
        network = self.network
        with torch.no_grad():
            state = torch.as_tensor(features, dtype=torch.float32).unsqueeze(0)
            return network(state).cpu().numpy()[0]


Scorer = Union[OffloadingScorer, Callable[[np.ndarray], np.ndarray]]


class OffloadingDecisionEngine:
    """
    Produces exactly one OffloadingDecision per task and records it in metrics.

    Config keys (all optional): max_uavs, scorer ('heuristic' or 'neural'),
    local_execution_enabled, epsilon, local_preference, hidden_dim,
    buffer_size, retrain_interval, batch_size, learning_rate, train_epochs,
    deadline_weight.
    """

    def __init__(self, metrics: SimulationMetrics, config: Optional[Dict[str, Any]] = None,
                 scorer: Optional[Scorer] = None, rng: Optional[np.random.Generator] = None):
        config = config or {}
        self.metrics = metrics
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng()

        self.max_uavs = config.get('max_uavs', 5)
        if self.max_uavs < 1:
            raise ValueError(f"Decision engine needs at least one UAV slot, got {self.max_uavs}")
        self.state_dim = feature_dim(self.max_uavs)
        self.local_action = self.max_uavs

        self.local_execution_enabled = config.get('local_execution_enabled', True)
        self.epsilon = config.get('epsilon', 0.0)

        self.trainer: Optional[PolicyTrainer] = None
        if scorer is None:
            heuristic = HeuristicScorer(self.max_uavs, config.get('local_preference', 0.25))
            if config.get('scorer', 'heuristic') == 'neural':
                scorer = NeuralScorer(self.max_uavs, config.get('hidden_dim', 128), heuristic)
                self.trainer = PolicyTrainer(config, seed=int(self.rng.integers(2**31)))
            else:
                scorer = heuristic
        self.scorer = scorer

        # Experience ring buffer, oldest evicted first
        self.experiences: Deque[Experience] = deque(maxlen=config.get('buffer_size', 10000))
        self.retrain_interval = config.get('retrain_interval', 200)
        # Same as the reward of a failed task
        self.infeasible_penalty = -float(config.get('deadline_weight', 0.5))
        self._since_refit = 0

        self.fallback_count = 0

    # ------------------------------------------------------------------
    # Feature extraction
    # ------------------------------------------------------------------

    def _fill_slots(self, device: IoTDevice, uavs: List[UAV]) -> List[UAV]:
        if len(uavs) > self.max_uavs:
            logger.warning("%d UAVs reachable from device %s, considering only the first %d",
                           len(uavs), device.id, self.max_uavs)
            return list(uavs[:self.max_uavs])
        slots = list(uavs)
        if len(slots) < self.max_uavs:
            logger.warning("%d UAVs reachable from device %s, padding %d empty slots with sentinels",
                           len(uavs), device.id, self.max_uavs - len(slots))
            while len(slots) < self.max_uavs:
                slots.append(make_sentinel_uav(device.location, device.system_params))
        return slots

    def extract_features(self, task: Task, device: IoTDevice, slots: List[UAV]) -> np.ndarray:
        """Fixed-length float32 vector: task, device, then one triple per UAV slot."""
        features = [
            task.length / LENGTH_SCALE,
            task.input_size / SIZE_SCALE,
            task.output_size / SIZE_SCALE,
            task.deadline / DEADLINE_SCALE,
            task.priority / PRIORITY_SCALE,
            device.location.x / POSITION_SCALE,
            device.location.y / POSITION_SCALE,
            device.battery_percentage / 100.0,
        ]
        for uav in slots:
            features.extend([
                uav.location.x / POSITION_SCALE,
                uav.location.y / POSITION_SCALE,
                uav.energy_percentage / 100.0,
            ])
        return np.asarray(features, dtype=np.float32)

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def select_action(self, features: np.ndarray) -> int:
        if self.epsilon > 0 and self.rng.random() < self.epsilon:
            return int(self.rng.integers(self.max_uavs + 1))
        probabilities = np.asarray(self.scorer(features), dtype=np.float64)
        return int(np.argmax(probabilities))

    def _local_decision(self, task: Task, device: IoTDevice, features: np.ndarray,
                        fallback: bool, policy_action: int) -> OffloadingDecision:
        return OffloadingDecision(
            target=OffloadingTarget.LOCAL,
            estimated_latency=device.estimate_local_execution_time(task),
            estimated_energy=device.local_energy(task),
            features=features,
            action_index=self.local_action,
            fallback=fallback,
            policy_action=policy_action,
        )

    def _uav_decision(self, task: Task, device: IoTDevice, uav: UAV, features: np.ndarray,
                      action: int, fallback: bool, policy_action: int) -> OffloadingDecision:
        return OffloadingDecision(
            target=OffloadingTarget.UAV,
            selected_uav=uav,
            estimated_latency=device.estimate_total_offloading_time(task, uav),
            estimated_energy=(device.calculate_offloading_energy(task, uav) +
                              uav.calculate_task_processing_energy(task)),
            features=features,
            action_index=action,
            fallback=fallback,
            policy_action=policy_action,
        )

    def make_decision(self, task: Task, device: IoTDevice, available_uavs: List[UAV]) -> OffloadingDecision:
        """
        Decide where a task runs.

        Args:
            task: Task to place
            device: Source device of the task
            available_uavs: UAVs in range and operational, in discovery order

        Returns:
            A feasible decision; the UAV target is only returned when the
            UAV admits the task.
        """
        slots = self._fill_slots(device, available_uavs)
        features = self.extract_features(task, device, slots)
        action = self.select_action(features)

        if action == self.local_action:
            if self.local_execution_enabled:
                decision = self._local_decision(task, device, features, False, action)
            else:
                first = slots[0]
                if first.can_process_task(task):
                    decision = self._uav_decision(task, device, first, features, 0, True, action)
                else:
                    decision = self._local_decision(task, device, features, True, action)
        else:
            selected = slots[action]
            if selected.can_process_task(task):
                decision = self._uav_decision(task, device, selected, features, action, False, action)
            else:
                logger.debug("UAV %s selected for task %s cannot admit it, falling back to local",
                             selected.id, task.id)
                decision = self._local_decision(task, device, features, True, action)

        if decision.fallback:
            self.fallback_count += 1
        self.metrics.record_offloading_decision(decision.target.value)
        return decision

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def record_experience(self, decision: OffloadingDecision, reward: float) -> None:
        """
        Store a decision outcome and trigger a background refit when due.

        When a feasibility rule overrode the policy, the overridden action is
        also stored with the failure penalty, so the policy learns to avoid
        infeasible choices while metrics keep the actual placement.
        """
        if decision.features is None or decision.action_index < 0:
            return
        if decision.fallback and 0 <= decision.policy_action != decision.action_index:
            self.experiences.append(
                Experience(decision.features, decision.policy_action, self.infeasible_penalty))
            self._since_refit += 1
        self.experiences.append(Experience(decision.features, decision.action_index, float(reward)))
        self._since_refit += 1

        if (self.trainer is not None and self.retrain_interval > 0 and
                self._since_refit >= self.retrain_interval):
            # Snapshot taken here, on the simulation thread
            if self.trainer.submit(self.scorer, list(self.experiences)):
                self._since_refit = 0

    def close(self) -> None:
        if self.trainer is not None:
            self.trainer.shutdown(wait=True)
