#!/usr/bin/env python3
"""
Analyse hors ligne d'un fichier FIT (ou de l'archive ZIP Garmin qui le contient).

Affiche le nombre de points des series allure / altitude / FC et de la
trace GPS, et ecrit optionnellement la trace au format GPX.
"""
import argparse
import logging
import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parent.parent))

from redcap.domain.entities.activity import GarminActivity
from redcap.domain.errors import TelemetryError
from redcap.domain.services.fit_archive_service import extract_zip, find_file_by_extension, is_zip_archive
from redcap.domain.services.fit_decoder import FitDecoderConfig, decode_fit
from redcap.domain.services.gpx_export_service import build_gpx, is_indoor_activity
from redcap.domain.services.telemetry_service import derive_gps_track, derive_telemetry_series

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def read_fit_bytes(input_path: str) -> bytes:
    """Contenu FIT du fichier donne ; une archive ZIP est extraite au prealable."""
    with open(input_path, "rb") as f:
        raw_bytes = f.read()

    if not is_zip_archive(raw_bytes):
        return raw_bytes

    with tempfile.TemporaryDirectory(prefix="fit-to-gpx-") as temp_dir:
        extract_zip(raw_bytes, temp_dir)
        fit_path = find_file_by_extension(temp_dir, ".fit")
        if not fit_path:
            raise TelemetryError(f"Aucun fichier .fit dans l'archive {input_path}")
        logger.info(f"Fichier FIT extrait: {os.path.basename(fit_path)}")
        with open(fit_path, "rb") as f:
            return f.read()


def activity_from_session(session: dict, name: str, sport: str) -> GarminActivity:
    """Activite non persistee construite depuis le message 'session' du FIT."""
    return GarminActivity(
        activity_id=0,
        activity_name=name,
        activity_type=sport or str(session.get("sport") or "running"),
        start_time=session.get("start_time") or datetime.utcnow(),
        duration=float(session.get("total_elapsed_time") or 0),
        distance=float(session.get("total_distance") or 0),
    )


def main():
    parser = argparse.ArgumentParser(
        description="Analyse d'un fichier FIT et export de la trace GPS en GPX",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exemples d'utilisation:
  python fit_to_gpx.py activity.fit
  python fit_to_gpx.py 123456789.zip --gpx sortie.gpx --name "Sortie longue"
        """
    )
    parser.add_argument('input', help='Fichier .fit ou archive .zip Garmin')
    parser.add_argument('--gpx', help='Chemin du fichier GPX a ecrire')
    parser.add_argument('--name', default='Activite', help='Nom de la trace GPX (défaut: Activite)')
    parser.add_argument('--sport', default='', help='Type de sport (défaut: celui du fichier FIT)')
    parser.add_argument(
        '--check-crc',
        action='store_true',
        help='Refuser les fichiers dont le CRC est invalide (par défaut: ignoré)'
    )
    parser.add_argument('--speed-unit', default='m/s', choices=['m/s', 'km/h', 'mph'])
    parser.add_argument('--length-unit', default='m', choices=['m', 'km', 'mi'])

    args = parser.parse_args()

    config = FitDecoderConfig(
        force_parsing=not args.check_crc,
        speed_unit=args.speed_unit,
        length_unit=args.length_unit,
    )

    try:
        decoded = decode_fit(read_fit_bytes(args.input), config)
    except (OSError, TelemetryError) as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    series = derive_telemetry_series(decoded.records)
    points = derive_gps_track(decoded.records)

    print(f"Records:            {len(decoded.records)}")
    print(f"Points d'allure:    {len(series.pace_series)}")
    print(f"Points d'altitude:  {len(series.altitude_series)}")
    print(f"Points de FC:       {len(series.heart_rate_series)}")
    print(f"Points GPS:         {len(points)}")

    if not args.gpx:
        return

    session = decoded.sessions[0] if decoded.sessions else {}
    activity = activity_from_session(session, args.name, args.sport)
    if not points:
        where = "en intérieur" if is_indoor_activity(activity.activity_type) else "sans GPS"
        logger.error(f"❌ Aucun point GPS : activité {activity.activity_type} réalisée {where}")
        sys.exit(1)

    with open(args.gpx, "w", encoding="utf-8") as f:
        f.write(build_gpx(activity, points))
    logger.info(f"✅ GPX ecrit: {args.gpx} ({len(points)} points)")


if __name__ == "__main__":
    main()
