"""
Initialisation des entités du domaine
"""

from .user import GarminAuth, UserSyncStatus
from .activity import GarminActivity
from .telemetry import (
    ActivityRecord,
    PacePoint,
    AltitudePoint,
    HeartRatePoint,
    GPSPoint,
    TelemetrySeries,
    TelemetryRead,
    DecodedFit,
)

__all__ = [
    "GarminAuth", "UserSyncStatus",
    "GarminActivity",
    "ActivityRecord", "PacePoint", "AltitudePoint", "HeartRatePoint", "GPSPoint",
    "TelemetrySeries", "TelemetryRead", "DecodedFit",
]
