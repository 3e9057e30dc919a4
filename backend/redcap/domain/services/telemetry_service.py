"""
Derivation des series de telemetrie a partir des records FIT.

- derive_telemetry_series : allure / altitude / FC indexees par distance (km)
- derive_gps_track : trace GPS pour l'export GPX

Fonctions pures : aucune I/O, aucune erreur pour des donnees vides ou
clairsemees (series vides).
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from redcap.domain.entities.activity import GarminActivity
from redcap.domain.entities.telemetry import (
    ActivityRecord,
    AltitudePoint,
    GPSPoint,
    HeartRatePoint,
    PacePoint,
    RecordInput,
    TelemetryRead,
    TelemetrySeries,
)
from redcap.domain.services.fit_decoder import DEFAULT_CONFIG, FitDecoderConfig, decode_fit
from redcap.domain.services.fit_locator import FitFileLocator

logger = logging.getLogger(__name__)

METERS_PER_KM = 1000.0
MAX_PACE_S_PER_KM = 1800.0  # 30 min/km
MAX_HEART_RATE = 250
DEFAULT_SAMPLE_INTERVAL_S = 1.0


def pick_preferred(enhanced, standard):
    """Valeur 'enhanced' si presente, sinon la valeur standard."""
    return enhanced if enhanced is not None else standard


def _as_record(record: RecordInput) -> ActivityRecord:
    if isinstance(record, ActivityRecord):
        return record
    if isinstance(record, dict):
        return ActivityRecord.model_validate(record)
    raise TypeError(f"Record FIT invalide: {type(record).__name__}")


def pace_from_speed(speed: Optional[float]) -> Optional[float]:
    """Allure en s/km si elle est realiste (0 < allure < 30 min/km), sinon None."""
    if speed is None or speed <= 0:
        return None
    pace = METERS_PER_KM / speed
    if 0 < pace < MAX_PACE_S_PER_KM:
        return pace
    return None


def is_valid_heart_rate(bpm: Optional[float]) -> bool:
    return bpm is not None and 0 < bpm < MAX_HEART_RATE


def derive_telemetry_series(records: Iterable[RecordInput]) -> TelemetrySeries:
    """
    Construit les series allure / altitude / FC en fonction de la distance.

    Distance de chaque echantillon, choisie record par record :
    1. distance cumulee du record si > 0 (methode principale)
    2. sinon, si vitesse > 0 : integration vitesse x intervalle de temps
       (ecart entre timestamps consecutifs, 1 s par defaut) ajoutee a la
       derniere distance connue

    La distance de reference n'est recalee que par la methode 1 : un long
    trou dans les distances cumulees laisse l'integration deriver.
    """
    series = TelemetrySeries()
    last_distance = 0.0  # metres
    last_timestamp: Optional[datetime] = None
    record_count = 0

    for raw in records:
        record = _as_record(raw)
        record_count += 1

        speed = pick_preferred(record.enhanced_speed, record.speed)
        distance = pick_preferred(record.enhanced_distance, record.distance)
        altitude = pick_preferred(record.enhanced_altitude, record.altitude)
        heart_rate = pick_preferred(record.enhanced_heart_rate, record.heart_rate)
        timestamp = record.timestamp

        distance_km: Optional[float] = None

        # Methode 1 : distance cumulee
        if distance is not None and distance > 0:
            distance_km = distance / METERS_PER_KM
            last_distance = distance
        # Methode 2 : estimation par la vitesse
        elif speed is not None and speed > 0:
            interval = DEFAULT_SAMPLE_INTERVAL_S
            if timestamp is not None and last_timestamp is not None:
                interval = (timestamp - last_timestamp).total_seconds()
            last_distance += speed * interval
            distance_km = last_distance / METERS_PER_KM

        if distance_km is not None:
            pace = pace_from_speed(speed)
            if pace is not None:
                series.pace_series.append(
                    PacePoint(distance_km=distance_km, pace_seconds_per_km=pace, speed_mps=speed)
                )

            if altitude is not None:
                series.altitude_series.append(
                    AltitudePoint(distance_km=distance_km, altitude_m=altitude)
                )

            if is_valid_heart_rate(heart_rate):
                series.heart_rate_series.append(
                    HeartRatePoint(distance_km=distance_km, bpm=heart_rate)
                )

        if timestamp is not None:
            last_timestamp = timestamp

    logger.info(
        f"{record_count} records: {len(series.pace_series)} points d'allure, "
        f"{len(series.altitude_series)} points d'altitude, "
        f"{len(series.heart_rate_series)} points de frequence cardiaque"
    )
    return series


def is_valid_position(lat: Optional[float], lon: Optional[float]) -> bool:
    if lat is None or lon is None:
        return False
    if lat == 0 or lon == 0:
        return False
    return abs(lat) <= 90 and abs(lon) <= 180


def derive_gps_track(records: Iterable[RecordInput]) -> List[GPSPoint]:
    """
    Trace GPS (degres decimaux) : un point par record horodate dont les
    coordonnees sont non nulles et dans les bornes valides.
    """
    points: List[GPSPoint] = []
    with_position = 0

    for raw in records:
        record = _as_record(raw)
        lat, lon = record.position_lat, record.position_long
        if lat is not None or lon is not None:
            with_position += 1

        if record.timestamp is None or not is_valid_position(lat, lon):
            continue

        points.append(GPSPoint(
            latitude=lat,
            longitude=lon,
            time=record.timestamp,
            elevation=pick_preferred(record.enhanced_altitude, record.altitude),
        ))

    logger.info(f"Records avec lat/lon: {with_position}, points GPS valides: {len(points)}")
    return points


def load_fit_records(
    locator: FitFileLocator,
    user_id: str,
    activity: GarminActivity,
    config: FitDecoderConfig = DEFAULT_CONFIG,
) -> Tuple[List[ActivityRecord], str]:
    """Telecharge (chemins de repli) puis decode le FIT d'une activite."""
    logger.info(f"Activite: {activity.activity_name}, ID: {activity.activity_id}")
    fit_bytes, used_path = locator.resolve(user_id, activity.activity_id, activity.fit_file_path)
    logger.info(f"Analyse du fichier FIT recupere via le chemin: {used_path}")
    decoded = decode_fit(fit_bytes, config)
    return decoded.records, used_path


def load_activity_telemetry(
    locator: FitFileLocator,
    user_id: str,
    activity: GarminActivity,
    config: FitDecoderConfig = DEFAULT_CONFIG,
) -> TelemetryRead:
    """Flux d'analyse : FIT -> series pour les graphiques."""
    records, used_path = load_fit_records(locator, user_id, activity, config)
    series = derive_telemetry_series(records)
    return TelemetryRead(
        activity_id=str(activity.id),
        source_path=used_path,
        record_count=len(records),
        **series.model_dump(),
    )
