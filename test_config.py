#!/usr/bin/env python3
"""
Tests for configuration presets and validation.
"""

import pytest

from config.offload_config import (
    DeviceConfig, EngineConfig, OffloadConfig, SimulationConfig, TaskConfig, UAVConfig,
    create_custom_offload_config, get_offload_config, list_available_configs
)
from uavedge.core.types import SystemParameters
from uavedge.rl.trainers import RewardWeights


def test_presets_are_listed_and_loadable():
    names = list_available_configs()
    assert {"small_test", "default", "dense_uavs", "learning"} <= set(names)
    for name in names:
        config = get_offload_config(name)
        assert config.name == name
        assert isinstance(config.engine, EngineConfig)


def test_unknown_preset_falls_back_to_default():
    assert get_offload_config("no-such-config").name == "default"


def test_presets_are_returned_as_copies():
    config = get_offload_config("small_test")
    config.devices.num_devices = 999
    assert get_offload_config("small_test").devices.num_devices != 999


def test_defaults_are_filled_in():
    config = OffloadConfig()
    assert isinstance(config.uavs, UAVConfig)
    assert isinstance(config.devices, DeviceConfig)
    assert isinstance(config.tasks, TaskConfig)
    assert isinstance(config.simulation, SimulationConfig)


def test_system_parameters_follow_simulation_config():
    config = OffloadConfig(simulation=SimulationConfig(time_step=0.5, noise_power_dbm=-90.0))
    params = config.get_system_parameters()
    assert isinstance(params, SystemParameters)
    assert params.time_step == 0.5
    assert params.noise_power_dbm == -90.0


def test_engine_config_conversions():
    engine = EngineConfig(max_uavs=3, scorer="neural", deadline_weight=0.7)
    agent_config = engine.to_agent_config()
    assert agent_config['max_uavs'] == 3
    assert agent_config['scorer'] == "neural"
    weights = engine.get_reward_weights()
    assert isinstance(weights, RewardWeights)
    assert weights.deadline == 0.7


@pytest.mark.parametrize("factory", [
    lambda: UAVConfig(num_uavs=-1),
    lambda: UAVConfig(min_mips=2000.0, max_mips=1000.0),
    lambda: DeviceConfig(min_battery=0.0),
    lambda: TaskConfig(max_tasks_per_step=0),
    lambda: EngineConfig(max_uavs=0),
    lambda: EngineConfig(scorer="oracle"),
    lambda: EngineConfig(epsilon=1.5),
    lambda: EngineConfig(batch_size=64, buffer_size=32),
    lambda: SimulationConfig(time_step=0.0),
])
def test_invalid_values_fail_fast(factory):
    with pytest.raises(ValueError):
        factory()


def test_custom_config_overrides_nested_fields():
    config = create_custom_offload_config("mine", num_uavs=7, epsilon=0.2, seed=99)
    assert config.name == "mine"
    assert config.uavs.num_uavs == 7
    assert config.engine.epsilon == 0.2
    assert config.simulation.seed == 99


def test_custom_config_rejects_unknown_or_invalid_options():
    with pytest.raises(ValueError):
        create_custom_offload_config("bad", warp_drive=True)
    with pytest.raises(ValueError):
        create_custom_offload_config("bad", time_step=-1.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
