"""
Neural network models for the offloading policy.
"""

import torch
import torch.nn as nn


class PolicyNetwork(nn.Module):
    """
    Policy network used by the offloading decision engine.

    Maps a feature vector to a probability distribution over the
    placement actions (one per UAV slot, local execution last).
    """

    def __init__(self, state_dim: int, action_dim: int, hidden_dim: int = 128):
        """
        Initialize the policy network.

        Args:
            state_dim: Length of the feature vector
            action_dim: Number of placement actions
            hidden_dim: Size of hidden layers
        """
        super(PolicyNetwork, self).__init__()

        self.state_dim = state_dim
        self.action_dim = action_dim

        self.model = nn.Sequential(
            nn.Linear(state_dim, hidden_dim),
            nn.ReLU(),
            nn.Linear(hidden_dim, hidden_dim),
            nn.ReLU(),
            nn.Linear(hidden_dim, action_dim),
            nn.Softmax(dim=-1)
        )

    def forward(self, state: torch.Tensor) -> torch.Tensor:
        """
        Forward pass through the network.

        Args:
            state: State tensor [batch_size, state_dim]

        Returns:
            Action probability distribution [batch_size, action_dim]
        """
        return self.model(state)
