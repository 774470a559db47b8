"""
Basic example of a UAV edge offloading simulation.
Runs a preset configuration and prints the metrics report and final entity state.
"""

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

import logging
from typing import List

from config.offload_config import get_offload_config, list_available_configs
from uavedge.core.environment import SimulationEnvironment
from uavedge.core.uavs import UAV


def print_uav_summary(uavs: List[UAV]):
    """Print final state of each UAV."""
    print("\nUAV SUMMARY:")
    for uav in uavs:
        state = uav.get_state()
        print(f"  {state['id']:8} status={state['status']:14} "
              f"energy={state['energy_percentage']:6.2f}%  "
              f"completed={state['completed_tasks']}")


def main():
    config_name = sys.argv[1] if len(sys.argv) > 1 else "small_test"
    if config_name not in list_available_configs():
        print(f"Unknown configuration '{config_name}'. Available: {', '.join(list_available_configs())}")
        return 1

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    config = get_offload_config(config_name)
    print(f"Running '{config.name}': {config.description}")

    env = SimulationEnvironment(config)
    env.initialize()
    try:
        snapshot = env.run()
    finally:
        env.close()

    print()
    print(snapshot.generate_report())
    print_uav_summary(env.get_uavs())
    return 0


if __name__ == "__main__":
    sys.exit(main())
