"""
Communication models
"""

from .communication import CommunicationModel, dbm_to_watts, milliwatts_to_dbm

__all__ = [
    "CommunicationModel",
    "dbm_to_watts",
    "milliwatts_to_dbm"
]
