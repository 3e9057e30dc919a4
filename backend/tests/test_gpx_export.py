"""
Tests pour l'export GPX : synthese du document (relu avec gpxpy), nom de
fichier, messages d'erreur interieur / exterieur, flux complet.
"""
import sys
import pytest
import gpxpy
from unittest.mock import MagicMock, patch
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from redcap.domain.entities.activity import GarminActivity
from redcap.domain.entities.telemetry import GPSPoint
from redcap.domain.errors import NoGpsDataError, ResolutionError
from redcap.domain.services.fit_decoder import SEMICIRCLE_TO_DEG
from redcap.domain.services.fit_locator import FitFileLocator
from redcap.domain.services.gpx_export_service import (
    GPX_DESCRIPTION,
    build_gpx,
    export_activity_gpx,
    format_track_description,
    gpx_filename,
    is_indoor_activity,
)


START = datetime(2026, 2, 7, 7, 0, 0)


def _activity(**overrides) -> GarminActivity:
    fields = {
        "id": uuid4(),
        "user_id": uuid4(),
        "activity_id": 111,
        "activity_name": "Sortie Longue #3",
        "activity_type": "running",
        "start_time": START,
        "duration": 3725.0,
        "distance": 12350.0,
        "fit_file_path": None,
    }
    fields.update(overrides)
    return GarminActivity(**fields)


def _points(n=3, with_elevation=True):
    return [
        GPSPoint(
            latitude=48.85 + i * 0.0001,
            longitude=2.35 + i * 0.0001,
            time=START + timedelta(seconds=i),
            elevation=(35.0 + i) if with_elevation else None,
        )
        for i in range(n)
    ]


class TestBuildGpx:
    def test_round_trip(self):
        points = _points(4)
        gpx = gpxpy.parse(build_gpx(_activity(), points))

        assert len(gpx.tracks) == 1
        assert len(gpx.tracks[0].segments) == 1
        parsed = gpx.tracks[0].segments[0].points
        assert len(parsed) == 4
        for src, out in zip(points, parsed):
            assert out.latitude == pytest.approx(src.latitude)
            assert out.longitude == pytest.approx(src.longitude)
            assert out.elevation == pytest.approx(src.elevation)
            assert out.time == src.time.replace(tzinfo=timezone.utc)

    def test_metadata(self):
        gpx = gpxpy.parse(build_gpx(_activity(), _points(1)))

        assert gpx.name == "Sortie Longue #3"
        assert gpx.description == GPX_DESCRIPTION
        assert gpx.time == START.replace(tzinfo=timezone.utc)
        assert gpx.tracks[0].name == "Sortie Longue #3"
        assert gpx.tracks[0].description == "Type: running - Distance: 12.35 km - Durée: 62:05"

    def test_elevation_omitted_when_absent(self):
        xml = build_gpx(_activity(), _points(2, with_elevation=False))
        assert "<ele>" not in xml
        parsed = gpxpy.parse(xml).tracks[0].segments[0].points
        assert all(p.elevation is None for p in parsed)

    def test_empty_point_list_gives_empty_segment(self):
        gpx = gpxpy.parse(build_gpx(_activity(), []))
        assert gpx.get_track_points_no() == 0


class TestHelpers:
    def test_track_description_short_activity(self):
        activity = _activity(duration=59.0, distance=150.0, activity_type="trail_running")
        assert format_track_description(activity) == "Type: trail_running - Distance: 0.15 km - Durée: 0:59"

    def test_filename(self):
        activity = _activity()
        assert gpx_filename(activity) == f"sortie_longue__3_{activity.id}.gpx"

    @pytest.mark.parametrize("sport,expected", [
        ("treadmill_running", True),
        ("indoor_running", True),
        ("Indoor_Cycling", True),
        ("trainer", True),
        ("running", False),
        ("trail_running", False),
        (None, False),
    ])
    def test_is_indoor(self, sport, expected):
        assert is_indoor_activity(sport) is expected


class TestNoGpsMessages:
    def test_indoor_message(self):
        error = NoGpsDataError("treadmill_running", indoor=True)
        assert "réalisée en intérieur" in str(error)
        assert '"treadmill_running"' in str(error)

    def test_generic_message(self):
        error = NoGpsDataError("running", indoor=False)
        assert "sans GPS activé" in str(error)


class TestExportActivityGpx:
    def _locator(self, data=b"fit"):
        storage = MagicMock()
        storage.download.return_value = data
        return FitFileLocator(storage, "database")

    def _fitparse(self, records):
        fit_file = MagicMock()
        fit_file.get_messages.side_effect = lambda kind: (
            [MagicMock(get_values=MagicMock(return_value=r)) for r in records] if kind == "record" else []
        )
        module = MagicMock()
        module.FitFile.return_value = fit_file
        return module

    def test_outdoor_export(self):
        records = [
            {
                "timestamp": START + timedelta(seconds=i),
                "position_lat": int(45.0 / SEMICIRCLE_TO_DEG),
                "position_long": int(6.0 / SEMICIRCLE_TO_DEG),
                "enhanced_altitude": 1000.0 + i,
            }
            for i in range(5)
        ]
        activity = _activity(fit_file_path="u/111.fit")

        with patch.dict(sys.modules, {"fitparse": self._fitparse(records)}):
            export = export_activity_gpx(self._locator(), str(activity.user_id), activity)

        assert export.point_count == 5
        assert export.filename.endswith(f"_{activity.id}.gpx")
        parsed = gpxpy.parse(export.content).tracks[0].segments[0].points
        assert parsed[0].latitude == pytest.approx(45.0, abs=1e-6)
        assert parsed[4].elevation == pytest.approx(1004.0)

    def test_indoor_activity_without_gps(self):
        records = [{"timestamp": START, "speed": 3.0, "distance": 10.0}]
        activity = _activity(activity_type="treadmill_running")

        with patch.dict(sys.modules, {"fitparse": self._fitparse(records)}):
            with pytest.raises(NoGpsDataError) as exc_info:
                export_activity_gpx(self._locator(), str(activity.user_id), activity)

        assert exc_info.value.indoor is True
        assert exc_info.value.sport_type == "treadmill_running"

    def test_outdoor_activity_without_gps(self):
        records = [{"timestamp": START, "speed": 3.0}]
        activity = _activity(activity_type="running")

        with patch.dict(sys.modules, {"fitparse": self._fitparse(records)}):
            with pytest.raises(NoGpsDataError) as exc_info:
                export_activity_gpx(self._locator(), str(activity.user_id), activity)

        assert exc_info.value.indoor is False

    def test_missing_fit_file(self):
        storage = MagicMock()
        storage.download.side_effect = Exception("Object not found")
        activity = _activity()

        with pytest.raises(ResolutionError):
            export_activity_gpx(FitFileLocator(storage, "database"), str(activity.user_id), activity)
