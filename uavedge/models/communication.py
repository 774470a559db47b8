"""
Radio link model for device-to-UAV transfers.

Transfers use a Shannon-style spectral efficiency derived from the
log-distance SNR of the link, scaled onto the nominal bandwidth of the
device's radio technology.
"""

import math
from typing import Dict

import numpy as np

from ..core.types import Location, SystemParameters


def dbm_to_watts(power_dbm: float) -> float:
    """Convert dBm to watts."""
    return 10 ** ((power_dbm - 30.0) / 10.0)


def milliwatts_to_dbm(power_mw: float) -> float:
    """Convert milliwatts to dBm."""
    if power_mw <= 0:
        return -math.inf
    return 10.0 * math.log10(power_mw)


def db_to_linear(value_db: float) -> float:
    return 10 ** (value_db / 10.0)


class CommunicationModel:
    """Link budget and transfer cost calculations."""

    def __init__(self, system_params: SystemParameters):
        self.system_params = system_params

    def calculate_snr(self, tx_pos: Location, rx_pos: Location, tx_power_dbm: float) -> float:
        """SNR in dB using the configured noise floor."""
        return tx_pos.snr_to(rx_pos, tx_power_dbm, self.system_params.noise_power_dbm)

    def spectral_factor(self, snr_db: float) -> float:
        """Fraction of nominal bandwidth usable at a given SNR."""
        spectral_efficiency = np.log2(1.0 + db_to_linear(snr_db))
        factor = spectral_efficiency / self.system_params.reference_spectral_efficiency
        return float(np.clip(factor, self.system_params.min_bandwidth_fraction, 1.0))

    def calculate_effective_bandwidth(self, tx_pos: Location, rx_pos: Location,
                                      nominal_bandwidth: float, tx_power_dbm: float) -> float:
        """Effective data rate in bit/s for a link."""
        snr_db = self.calculate_snr(tx_pos, rx_pos, tx_power_dbm)
        return nominal_bandwidth * self.spectral_factor(snr_db)

    @staticmethod
    def calculate_transmission_time(data_size_bytes: float, bandwidth_bps: float) -> float:
        """Time in seconds to push a payload through a link."""
        if data_size_bytes <= 0:
            return 0.0
        return (data_size_bytes * 8.0) / max(bandwidth_bps, 1.0)

    @staticmethod
    def calculate_transmission_energy(tx_power_w: float, transmission_time: float) -> float:
        """E = P * t."""
        return tx_power_w * transmission_time

    def get_link_quality_metrics(self, tx_pos: Location, rx_pos: Location,
                                 nominal_bandwidth: float, tx_power_dbm: float) -> Dict[str, float]:
        """Get link quality summary for inspection."""
        snr_db = self.calculate_snr(tx_pos, rx_pos, tx_power_dbm)
        return {
            'distance': tx_pos.distance_to(rx_pos),
            'path_loss_db': tx_pos.path_loss_to(rx_pos),
            'snr_db': snr_db,
            'spectral_factor': self.spectral_factor(snr_db),
            'effective_bandwidth_bps': nominal_bandwidth * self.spectral_factor(snr_db),
        }
