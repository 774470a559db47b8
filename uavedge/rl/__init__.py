"""
Offloading decision engine with an optionally learned scoring policy.

The engine scores local execution against each reachable UAV; a neural
policy can be refitted in the background from recorded task outcomes.
"""

from .agents import OffloadingDecisionEngine, HeuristicScorer, NeuralScorer, OffloadingScorer
from .models import PolicyNetwork
from .trainers import PolicyTrainer, RewardWeights, compute_reward

__all__ = [
    "OffloadingDecisionEngine",
    "HeuristicScorer",
    "NeuralScorer",
    "OffloadingScorer",
    "PolicyNetwork",
    "PolicyTrainer",
    "RewardWeights",
    "compute_reward"
]
