#!/usr/bin/env python3
"""
Tests for locations, the log-distance path loss model and the radio link model.
"""

import math

import pytest

from uavedge.core.types import Location, distance, path_loss, snr, SystemParameters
from uavedge.models.communication import CommunicationModel, dbm_to_watts, milliwatts_to_dbm


def test_distance_is_euclidean_and_symmetric():
    a = Location(0.0, 0.0, 0.0)
    b = Location(3.0, 4.0, 12.0)
    assert distance(a, b) == pytest.approx(13.0)
    assert a.distance_to(b) == b.distance_to(a)


def test_location_is_a_value_type():
    assert Location(1.0, 2.0, 3.0) == Location(1.0, 2.0, 3.0)
    assert len({Location(1.0, 2.0), Location(1.0, 2.0)}) == 1
    with pytest.raises(Exception):
        Location(1.0, 2.0).x = 5.0


def test_path_loss_clamps_to_reference_distance():
    """Coincident points must not produce log10(0)."""
    p = Location(5.0, 5.0, 5.0)
    assert path_loss(p, p) == pytest.approx(40.0)
    assert path_loss(p, Location(5.5, 5.0, 5.0)) == pytest.approx(40.0)


def test_path_loss_grows_thirty_db_per_decade():
    origin = Location(0.0, 0.0)
    assert path_loss(origin, Location(10.0, 0.0)) == pytest.approx(70.0)
    assert path_loss(origin, Location(100.0, 0.0)) == pytest.approx(100.0)
    assert origin.path_loss_to(Location(1000.0, 0.0)) == pytest.approx(130.0)


def test_snr_subtracts_path_loss_and_noise():
    origin = Location(0.0, 0.0)
    target = Location(100.0, 0.0)
    assert snr(origin, target, 20.0, -100.0) == pytest.approx(20.0 - 100.0 + 100.0)
    assert origin.snr_to(target, 20.0, -100.0) == pytest.approx(20.0)


def test_power_conversions():
    assert dbm_to_watts(30.0) == pytest.approx(1.0)
    assert dbm_to_watts(20.0) == pytest.approx(0.1)
    assert milliwatts_to_dbm(100.0) == pytest.approx(20.0)
    assert milliwatts_to_dbm(0.0) == -math.inf


def test_effective_bandwidth_is_clipped_between_floor_and_nominal():
    model = CommunicationModel(SystemParameters())
    device = Location(0.0, 0.0)

    near = model.calculate_effective_bandwidth(device, Location(0.0, 0.0), 54e6, 20.0)
    assert near == pytest.approx(54e6)

    far = model.calculate_effective_bandwidth(device, Location(10000.0, 0.0), 54e6, 20.0)
    assert far == pytest.approx(54e6 * 0.01)

    mid = model.calculate_effective_bandwidth(device, Location(600.0, 0.0), 54e6, 20.0)
    assert far < mid <= near


def test_transmission_time_and_energy():
    assert CommunicationModel.calculate_transmission_time(0, 1e6) == 0.0
    assert CommunicationModel.calculate_transmission_time(125000, 1e6) == pytest.approx(1.0)
    assert CommunicationModel.calculate_transmission_energy(0.1, 2.0) == pytest.approx(0.2)


def test_link_quality_metrics_report():
    model = CommunicationModel(SystemParameters())
    metrics = model.get_link_quality_metrics(Location(0.0, 0.0), Location(10.0, 0.0), 1e6, 20.0)
    assert metrics['distance'] == pytest.approx(10.0)
    assert metrics['path_loss_db'] == pytest.approx(70.0)
    assert metrics['snr_db'] == pytest.approx(50.0)
    assert 0.01 <= metrics['spectral_factor'] <= 1.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
