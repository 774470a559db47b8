"""
Reward shaping and background training for the offloading policy.

Refits run on a single worker thread. Each refit trains a copy of the
current policy network on a frozen batch of experiences and installs the
result with one attribute assignment, so decisions made on the simulation
thread see either the old or the new network and never wait for training.
"""

import copy
import logging
from collections import namedtuple
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import torch
import torch.optim as optim

logger = logging.getLogger(__name__)


Experience = namedtuple('Experience', ['features', 'action', 'reward'])


@dataclass
class RewardWeights:
    """Weights of the reward terms."""
    deadline: float = 0.5
    latency: float = 0.3
    energy: float = 0.2
    energy_reference: float = 100.0  # J mapped to zero energy efficiency


def compute_reward(success: bool, latency: float, energy: float, deadline: float,
                   weights: Optional[RewardWeights] = None, energy_budget: float = 0.0) -> float:
    """
    Scalar reward for one placement outcome.

    Args:
        success: Whether the task completed
        latency: End-to-end latency in seconds
        energy: Energy spent on the task in joules
        deadline: Task deadline in seconds
        weights: Term weights, defaults to RewardWeights()
        energy_budget: Per-task energy budget in joules; when positive it
            replaces weights.energy_reference

    Returns:
        Weighted sum of deadline satisfaction, latency efficiency and
        energy efficiency. Failed tasks only receive the deadline penalty.
    """
    weights = weights or RewardWeights()
    if not success:
        return -weights.deadline

    met_deadline = latency <= deadline
    deadline_term = 1.0 if met_deadline else -1.0
    latency_term = 1.0 - min(1.0, latency / deadline) if deadline > 0 else 0.0
    reference = energy_budget if energy_budget > 0 else weights.energy_reference
    if reference > 0:
        energy_term = 1.0 - min(1.0, energy / reference)
    else:
        energy_term = 0.0

    return (weights.deadline * deadline_term +
            weights.latency * latency_term +
            weights.energy * energy_term)


class PolicyTrainer:
    """
    Asynchronous REINFORCE trainer for a NeuralScorer.

    At most one refit is in flight at a time; submissions made while one is
    running are declined.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, seed: Optional[int] = None):
        config = config or {}
        self.learning_rate = config.get('learning_rate', 0.001)
        self.batch_size = config.get('batch_size', 32)
        self.epochs = config.get('train_epochs', 4)
        self.rng = np.random.default_rng(seed)

        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="PolicyTrainer")
        self._future: Optional[Future] = None

        # Performance tracking
        self.training_losses: List[float] = []
        self.refits_completed = 0
        self.refits_failed = 0

    @property
    def is_training(self) -> bool:
        return self._future is not None and not self._future.done()

    def submit(self, scorer, experiences: List[Experience]) -> bool:
        """Start a refit on a frozen batch; False if one is already running."""
        if self.is_training or len(experiences) < self.batch_size:
            return False

        batch = list(experiences)
        self._future = self.executor.submit(self._refit, scorer, batch)
        self._future.add_done_callback(self._on_done)
        logger.debug("Policy refit submitted with %d experiences", len(batch))
        return True

    def _refit(self, scorer, experiences: List[Experience]) -> float:
        network = copy.deepcopy(scorer.network)
        network.train()
        optimizer = optim.Adam(network.parameters(), lr=self.learning_rate)

        states = torch.as_tensor(np.stack([exp.features for exp in experiences]), dtype=torch.float32)
        actions = torch.as_tensor([exp.action for exp in experiences], dtype=torch.long)
        rewards = torch.as_tensor([exp.reward for exp in experiences], dtype=torch.float32)

        loss_value = 0.0
        for _ in range(self.epochs):
            indices = self.rng.choice(len(experiences), size=self.batch_size, replace=False)
            index_tensor = torch.as_tensor(indices, dtype=torch.long)

            optimizer.zero_grad()
            probs = network(states[index_tensor])
            log_probs = torch.log(probs.clamp_min(1e-8))
            selected_log_probs = log_probs.gather(1, actions[index_tensor].unsqueeze(1)).squeeze(1)
            loss = -(selected_log_probs * rewards[index_tensor]).mean()
            loss.backward()
            optimizer.step()

            loss_value = loss.item()
            self.training_losses.append(loss_value)

        network.eval()
        scorer.install(network)
        return loss_value

    def _on_done(self, future: Future) -> None:
        error = future.exception()
        if error is not None:
            self.refits_failed += 1
            logger.error("Policy refit failed: %s", error)
            return
        self.refits_completed += 1
        logger.debug("Policy refit finished, loss %.4f", future.result())

    def wait(self, timeout: Optional[float] = None) -> Optional[float]:
        """Block until the current refit finishes and return its final loss."""
        if self._future is None:
            return None
        return self._future.result(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
