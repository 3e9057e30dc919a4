"""
Adaptateur du decodeur FIT (fitparse).

Transforme les bytes d'un fichier FIT en ActivityRecord normalises :
unites configurables, positions GPS converties en degres decimaux.
Le reste du pipeline ne depend que de decode_fit().
"""
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Dict, Optional

from redcap.domain.entities.telemetry import ActivityRecord, DecodedFit
from redcap.domain.errors import DecodeError

logger = logging.getLogger(__name__)

# Conversion semicircles -> degrees (FIT GPS encoding)
SEMICIRCLE_TO_DEG = 180.0 / (2 ** 31)

# Facteurs appliques aux valeurs FIT natives (m/s et m)
SPEED_UNIT_FACTORS: Dict[str, float] = {
    "m/s": 1.0,
    "km/h": 3.6,
    "mph": 3600.0 / 1609.344,
}
LENGTH_UNIT_FACTORS: Dict[str, float] = {
    "m": 1.0,
    "km": 0.001,
    "mi": 1.0 / 1609.344,
}

SPEED_FIELDS = ("speed", "enhanced_speed")
LENGTH_FIELDS = ("distance", "enhanced_distance", "altitude", "enhanced_altitude")
POSITION_FIELDS = ("position_lat", "position_long")


@dataclass(frozen=True)
class FitDecoderConfig:
    force_parsing: bool = True  # ignore les erreurs de CRC
    speed_unit: str = "m/s"
    length_unit: str = "m"
    position_unit: str = "semicircles"  # ou "degrees" si deja convertis

    def __post_init__(self):
        if self.speed_unit not in SPEED_UNIT_FACTORS:
            raise ValueError(f"Unite de vitesse non supportee: {self.speed_unit}")
        if self.length_unit not in LENGTH_UNIT_FACTORS:
            raise ValueError(f"Unite de longueur non supportee: {self.length_unit}")
        if self.position_unit not in ("semicircles", "degrees"):
            raise ValueError(f"Unite de position non supportee: {self.position_unit}")


DEFAULT_CONFIG = FitDecoderConfig()


def semicircles_to_degrees(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return value * SEMICIRCLE_TO_DEG


def to_activity_record(values: Dict[str, Any], config: FitDecoderConfig = DEFAULT_CONFIG) -> ActivityRecord:
    """Normalise les valeurs brutes d'un message 'record'."""
    data = dict(values)

    speed_factor = SPEED_UNIT_FACTORS[config.speed_unit]
    for key in SPEED_FIELDS:
        if data.get(key) is not None:
            data[key] = float(data[key]) * speed_factor

    length_factor = LENGTH_UNIT_FACTORS[config.length_unit]
    for key in LENGTH_FIELDS:
        if data.get(key) is not None:
            data[key] = float(data[key]) * length_factor

    if config.position_unit == "semicircles":
        for key in POSITION_FIELDS:
            data[key] = semicircles_to_degrees(data.get(key))

    return ActivityRecord.model_validate(data)


def decode_fit(fit_bytes: bytes, config: FitDecoderConfig = DEFAULT_CONFIG) -> DecodedFit:
    """
    Decode un fichier FIT complet.

    Returns:
        DecodedFit avec records (ordre du fichier) et sessions

    Raises:
        DecodeError si fitparse rejette le contenu
    """
    import fitparse

    logger.info(f"Debut du decodage du fichier FIT, taille: {len(fit_bytes)} bytes")

    try:
        fitfile = fitparse.FitFile(BytesIO(fit_bytes), check_crc=not config.force_parsing)
        raw_records = [record.get_values() for record in fitfile.get_messages("record")]
        sessions = [dict(session.get_values()) for session in fitfile.get_messages("session")]
    except fitparse.FitParseError as e:
        logger.error(f"Erreur lors du parsing du fichier FIT: {e}")
        raise DecodeError(f"Erreur lors de l'analyse du fichier FIT: {e}") from e

    records = [to_activity_record(values, config) for values in raw_records]
    logger.info(f"Nombre de records trouves: {len(records)}, sessions: {len(sessions)}")

    return DecodedFit(records=records, sessions=sessions)
