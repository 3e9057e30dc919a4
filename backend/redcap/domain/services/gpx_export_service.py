"""
Export GPX d'une activite Garmin.

Genere un GPX classique (une trace, un segment) a partir de la trace GPS
derivee du fichier FIT. Transformation sans perte : ni lissage ni
dedoublonnage, ordre des points conserve.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

import gpxpy
import gpxpy.gpx

from redcap.core.clock import as_utc
from redcap.domain.entities.activity import GarminActivity
from redcap.domain.entities.telemetry import GPSPoint
from redcap.domain.errors import NoGpsDataError
from redcap.domain.services.fit_decoder import DEFAULT_CONFIG, FitDecoderConfig
from redcap.domain.services.fit_locator import FitFileLocator
from redcap.domain.services.telemetry_service import derive_gps_track, load_fit_records

logger = logging.getLogger(__name__)

GPX_CREATOR = "RedCap"
GPX_DESCRIPTION = "Activité exportée depuis RedCap"
GPX_MEDIA_TYPE = "application/gpx+xml"
INDOOR_KEYWORDS = ("treadmill", "indoor", "trainer")


@dataclass
class GpxExport:
    filename: str
    content: str
    point_count: int


def format_track_description(activity: GarminActivity) -> str:
    duration = int(activity.duration or 0)
    distance_km = (activity.distance or 0) / 1000
    return (
        f"Type: {activity.activity_type} - Distance: {distance_km:.2f} km"
        f" - Durée: {duration // 60}:{duration % 60:02d}"
    )


def build_gpx(activity: GarminActivity, points: List[GPSPoint]) -> str:
    """Construit le document GPX (metadonnees + une trace + un segment)."""
    gpx = gpxpy.gpx.GPX()
    gpx.creator = GPX_CREATOR
    gpx.name = activity.activity_name
    gpx.description = GPX_DESCRIPTION
    gpx.time = as_utc(activity.start_time)

    track = gpxpy.gpx.GPXTrack(name=activity.activity_name, description=format_track_description(activity))
    gpx.tracks.append(track)

    segment = gpxpy.gpx.GPXTrackSegment()
    track.segments.append(segment)

    for point in points:
        segment.points.append(gpxpy.gpx.GPXTrackPoint(
            latitude=point.latitude,
            longitude=point.longitude,
            elevation=point.elevation,
            time=as_utc(point.time),
        ))

    return gpx.to_xml()


def is_indoor_activity(sport_type: Optional[str]) -> bool:
    sport = (sport_type or "").lower()
    return any(keyword in sport for keyword in INDOOR_KEYWORDS)


def gpx_filename(activity: GarminActivity) -> str:
    safe_name = re.sub(r"[^a-z0-9]", "_", activity.activity_name, flags=re.IGNORECASE).lower()
    return f"{safe_name}_{activity.id}.gpx"


def export_activity_gpx(
    locator: FitFileLocator,
    user_id: str,
    activity: GarminActivity,
    config: FitDecoderConfig = DEFAULT_CONFIG,
) -> GpxExport:
    """
    Flux d'export : FIT -> trace GPS -> GPX.

    Raises:
        ResolutionError / DecodeError depuis le telechargement et le decodage
        NoGpsDataError si aucune coordonnee exploitable (message different
        pour les activites en interieur)
    """
    logger.info(
        f"Export GPX - Activite: {activity.activity_name}, ID: {activity.activity_id}, "
        f"Type: {activity.activity_type}"
    )
    records, _ = load_fit_records(locator, user_id, activity, config)
    points = derive_gps_track(records)

    if not points:
        raise NoGpsDataError(activity.activity_type, is_indoor_activity(activity.activity_type))

    export = GpxExport(
        filename=gpx_filename(activity),
        content=build_gpx(activity, points),
        point_count=len(points),
    )
    logger.info(f"Fichier GPX genere: {export.filename} avec {export.point_count} points GPS")
    return export
