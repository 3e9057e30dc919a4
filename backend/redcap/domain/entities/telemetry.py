"""
Entités télémétrie - Domain Layer
Records FIT décodés et séries dérivées (allure, altitude, FC, trace GPS).
Objets transitoires : calculés à chaque requête, jamais persistés.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from redcap.core.clock import as_naive_utc


class ActivityRecord(BaseModel):
    """Un message 'record' FIT décodé (un échantillon capteur).

    Les champs non exploités (cadence, power, temperature, champs inconnus)
    sont conservés tels quels.
    """
    model_config = ConfigDict(extra="allow")

    timestamp: Optional[datetime] = None
    speed: Optional[float] = None  # m/s
    enhanced_speed: Optional[float] = None
    distance: Optional[float] = None  # m, cumulée
    enhanced_distance: Optional[float] = None
    altitude: Optional[float] = None  # m
    enhanced_altitude: Optional[float] = None
    heart_rate: Optional[float] = None  # bpm
    enhanced_heart_rate: Optional[float] = None
    position_lat: Optional[float] = None  # degrés décimaux
    position_long: Optional[float] = None
    cadence: Optional[float] = None
    power: Optional[float] = None
    temperature: Optional[float] = None

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Meme convention que fitparse : UTC sans tzinfo
        return as_naive_utc(value) if value is not None else None


RecordInput = Union[ActivityRecord, Dict[str, Any]]


class PacePoint(BaseModel):
    distance_km: float
    pace_seconds_per_km: float
    speed_mps: float


class AltitudePoint(BaseModel):
    distance_km: float
    altitude_m: float


class HeartRatePoint(BaseModel):
    distance_km: float
    bpm: float


class GPSPoint(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    time: datetime
    elevation: Optional[float] = None


class TelemetrySeries(BaseModel):
    """Séries indexées par distance pour les graphiques d'analyse."""
    pace_series: List[PacePoint] = Field(default_factory=list)
    altitude_series: List[AltitudePoint] = Field(default_factory=list)
    heart_rate_series: List[HeartRatePoint] = Field(default_factory=list)


class DecodedFit(BaseModel):
    """Sortie du décodeur FIT : records + résumés de session (non exploités)."""
    records: List[ActivityRecord] = Field(default_factory=list)
    sessions: List[Dict[str, Any]] = Field(default_factory=list)


class TelemetryRead(TelemetrySeries):
    """Réponse API : séries + chemin du fichier utilisé."""
    activity_id: str
    source_path: str
    record_count: int
