"""
Tests pour l'import des activites Garmin : listing pagine, filtrage course,
telechargement + extraction du FIT, stockage, enregistrement en base.
"""
import asyncio
import zipfile
import pytest
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass
from io import BytesIO
from typing import Optional
from unittest.mock import MagicMock, patch

from sqlmodel import select

from redcap.domain.entities.activity import GarminActivity
from redcap.domain.entities.user import GarminAuth, UserSyncStatus
from redcap.domain.errors import ExtractionError, NotFoundError
from redcap.domain.services.garmin_sync_service import (
    _map_garmin_activity,
    extract_fit_from_download,
    fetch_running_activities,
    get_garmin_client,
    is_running_activity,
    sync_garmin_activities,
)


# ============================================================
# Mock garth.Activity
# ============================================================

@dataclass
class MockActivityType:
    type_key: str = "running"


@dataclass
class MockGarminActivity:
    activity_id: int = 12345678901
    activity_name: Optional[str] = "Morning Run"
    activity_type: Optional[MockActivityType] = None
    start_time_local: Optional[datetime] = None
    start_time_gmt: Optional[datetime] = None
    distance: Optional[float] = 10000.0  # 10km en metres
    duration: Optional[float] = 3000.0  # 50min
    elevation_gain: Optional[float] = 150.0

    def __post_init__(self):
        if self.activity_type is None:
            self.activity_type = MockActivityType()
        if self.start_time_gmt is None:
            self.start_time_gmt = datetime(2026, 2, 7, 7, 0, 0)
        if self.start_time_local is None:
            self.start_time_local = datetime(2026, 2, 7, 8, 0, 0)


def _zip_with(entries: dict) -> bytes:
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def _run(coro):
    return asyncio.run(coro)


BUCKET = "database"


# ============================================================
# Tests filtrage / mapping
# ============================================================

class TestRunningFilter:
    @pytest.mark.parametrize("type_key,expected", [
        ("running", True),
        ("trail_running", True),
        ("TREADMILL_RUNNING", True),
        ("virtual_run", True),
        ("cycling", False),
        ("hiking", False),
    ])
    def test_type_keys(self, type_key, expected):
        act = MockGarminActivity(activity_type=MockActivityType(type_key=type_key))
        assert is_running_activity(act) is expected

    def test_no_activity_type(self):
        act = MockGarminActivity()
        act.activity_type = None
        assert is_running_activity(act) is False


class TestMapGarminActivity:
    def test_basic_mapping(self):
        result = _map_garmin_activity(MockGarminActivity(), "u/12345678901.fit")

        assert result["activity_id"] == 12345678901
        assert result["activity_name"] == "Morning Run"
        assert result["activity_type"] == "running"
        assert result["start_time"] == datetime(2026, 2, 7, 8, 0, 0, tzinfo=timezone.utc)
        assert result["duration"] == 3000.0
        assert result["distance"] == 10000.0
        assert result["elevation_gain"] == 150.0
        assert result["fit_file_path"] == "u/12345678901.fit"

    def test_missing_values_default(self):
        act = MockGarminActivity(activity_name=None, distance=None, duration=None)
        result = _map_garmin_activity(act, "p.fit")
        assert result["activity_name"] == "Garmin Activity"
        assert result["distance"] == 0.0
        assert result["duration"] == 0.0

    def test_start_time_already_aware_converted_to_utc(self):
        paris = timezone(timedelta(hours=1))
        act = MockGarminActivity(start_time_local=datetime(2026, 2, 7, 8, 0, 0, tzinfo=paris))
        result = _map_garmin_activity(act, "p.fit")
        assert result["start_time"] == datetime(2026, 2, 7, 7, 0, 0, tzinfo=timezone.utc)
        assert result["start_time"].utcoffset() == timedelta(0)

    def test_no_start_time_falls_back_to_now_utc(self):
        act = MockGarminActivity()
        act.start_time_local = None
        act.start_time_gmt = None
        result = _map_garmin_activity(act, "p.fit")
        assert result["start_time"].tzinfo is not None


class TestPersistence:
    def test_mapped_activity_is_saved(self, session, user_id):
        fields = _map_garmin_activity(MockGarminActivity(), f"{user_id}/12345678901.fit")
        activity = GarminActivity(user_id=user_id, **fields)
        assert activity.created_at.tzinfo is not None
        assert activity.updated_at.tzinfo is not None

        session.add(activity)
        session.commit()

        saved = session.exec(select(GarminActivity).where(GarminActivity.user_id == user_id)).one()
        assert saved.activity_id == 12345678901
        assert saved.start_time.replace(tzinfo=None) == datetime(2026, 2, 7, 8, 0, 0)

    def test_sync_status_and_auth_saved_with_utc_dates(self, session, user_id):
        auth = GarminAuth(user_id=user_id, oauth_token_encrypted="enc")
        status = UserSyncStatus(user_id=user_id, last_sync_date=datetime.now(timezone.utc))
        assert auth.token_created_at.tzinfo is not None

        session.add(auth)
        session.add(status)
        session.commit()

        assert session.get(UserSyncStatus, user_id) is not None


# ============================================================
# Tests listing pagine
# ============================================================

class TestFetchRunningActivities:
    @patch("redcap.domain.services.garmin_sync_service.garth")
    def test_pages_until_empty(self, mock_garth):
        page1 = [MockGarminActivity(activity_id=1),
                 MockGarminActivity(activity_id=2, activity_type=MockActivityType("cycling"))]
        page2 = [MockGarminActivity(activity_id=3, activity_type=MockActivityType("trail_running"))]
        mock_garth.Activity.list.side_effect = [page1, page2, []]
        client = MagicMock()

        result = _run(fetch_running_activities(client, page_size=2, max_pages=10, page_delay_s=0))

        assert [a.activity_id for a in result] == [1, 3]
        starts = [c.kwargs["start"] for c in mock_garth.Activity.list.call_args_list]
        assert starts == [0, 2, 4]
        assert all(c.kwargs["client"] is client for c in mock_garth.Activity.list.call_args_list)

    @patch("redcap.domain.services.garmin_sync_service.garth")
    def test_max_pages(self, mock_garth):
        mock_garth.Activity.list.return_value = [MockGarminActivity()]

        _run(fetch_running_activities(MagicMock(), page_size=20, max_pages=3, page_delay_s=0))

        assert mock_garth.Activity.list.call_count == 3


# ============================================================
# Tests extraction du telechargement
# ============================================================

class TestExtractFitFromDownload:
    def test_zip_archive(self, tmp_path):
        raw = _zip_with({"notes.txt": b"x", "123_ACTIVITY.FIT": b"fitdata"})
        path = extract_fit_from_download(raw, str(tmp_path), 123)
        assert path.endswith("123_ACTIVITY.FIT")

    def test_raw_fit_payload(self, tmp_path):
        path = extract_fit_from_download(b"\x0e\x10raw-fit", str(tmp_path / "x"), 456)
        assert path.endswith("456.fit")
        with open(path, "rb") as f:
            assert f.read() == b"\x0e\x10raw-fit"

    def test_zip_without_fit(self, tmp_path):
        with pytest.raises(NotFoundError):
            extract_fit_from_download(_zip_with({"notes.txt": b"x"}), str(tmp_path), 1)

    def test_empty_download(self, tmp_path):
        with pytest.raises(ExtractionError):
            extract_fit_from_download(b"", str(tmp_path), 1)


# ============================================================
# Tests sync_garmin_activities
# ============================================================

class TestSyncGarminActivities:
    def _client(self, payloads: dict):
        client = MagicMock()

        def fake_download(path):
            activity_id = int(path.rsplit("/", 1)[1])
            payload = payloads[activity_id]
            if isinstance(payload, Exception):
                raise payload
            return payload

        client.download.side_effect = fake_download
        return client

    @patch("redcap.domain.services.garmin_sync_service.garth")
    def test_imports_new_activities(self, mock_garth, session, storage, user_id):
        mock_garth.Activity.list.side_effect = [
            [MockGarminActivity(activity_id=111), MockGarminActivity(activity_id=222)],
            [],
        ]
        client = self._client({
            111: _zip_with({"111_ACTIVITY.fit": b"fit-111"}),
            222: _zip_with({"222_ACTIVITY.fit": b"fit-222"}),
        })

        result = _run(sync_garmin_activities(session, user_id, client, storage, BUCKET, page_delay_s=0))

        assert result["new_activities"] == 2
        assert storage.download(BUCKET, f"{user_id}/111.fit") == b"fit-111"
        assert storage.download(BUCKET, f"{user_id}/222.fit") == b"fit-222"
        assert ".keep" in storage.list(BUCKET, str(user_id))

        rows = session.exec(select(GarminActivity).order_by(GarminActivity.activity_id)).all()
        assert [r.activity_id for r in rows] == [111, 222]
        assert rows[0].fit_file_path == f"{user_id}/111.fit"
        assert rows[0].user_id == user_id

        status = session.get(UserSyncStatus, user_id)
        assert status.last_sync_date is not None

    @patch("redcap.domain.services.garmin_sync_service.garth")
    def test_skips_existing_activities(self, mock_garth, session, storage, user_id, make_activity):
        make_activity(activity_id=111)
        mock_garth.Activity.list.side_effect = [[MockGarminActivity(activity_id=111)], []]
        client = self._client({})

        result = _run(sync_garmin_activities(session, user_id, client, storage, BUCKET, page_delay_s=0))

        assert result == {"message": "Aucune nouvelle activité à télécharger", "new_activities": 0}
        client.download.assert_not_called()

    @patch("redcap.domain.services.garmin_sync_service.garth")
    def test_failing_activity_does_not_block_others(self, mock_garth, session, storage, user_id):
        mock_garth.Activity.list.side_effect = [
            [MockGarminActivity(activity_id=111), MockGarminActivity(activity_id=222),
             MockGarminActivity(activity_id=333)],
            [],
        ]
        client = self._client({
            111: ConnectionError("timeout"),
            222: _zip_with({"readme.txt": b"no fit here"}),
            333: _zip_with({"333.fit": b"fit-333"}),
        })

        result = _run(sync_garmin_activities(session, user_id, client, storage, BUCKET, page_delay_s=0))

        assert result["new_activities"] == 1
        rows = session.exec(select(GarminActivity)).all()
        assert [r.activity_id for r in rows] == [333]

    @patch("redcap.domain.services.garmin_sync_service.garth")
    def test_upload_failure_still_records_activity(self, mock_garth, session, user_id):
        mock_garth.Activity.list.side_effect = [[MockGarminActivity(activity_id=111)], []]
        client = self._client({111: _zip_with({"111.fit": b"fit"})})

        from redcap.core.storage import StorageError
        failing_storage = MagicMock()
        failing_storage.list.return_value = []
        failing_storage.upload.side_effect = StorageError("quota exceeded")

        result = _run(sync_garmin_activities(session, user_id, client, failing_storage, BUCKET, page_delay_s=0))

        assert result["new_activities"] == 1
        assert session.exec(select(GarminActivity)).first().fit_file_path == f"{user_id}/111.fit"

    @patch("redcap.domain.services.garmin_sync_service.garth")
    def test_updates_last_sync_on_garmin_auth(self, mock_garth, session, user_id):
        session.add(GarminAuth(user_id=user_id, oauth_token_encrypted="enc"))
        session.commit()
        mock_garth.Activity.list.side_effect = [[]]

        _run(sync_garmin_activities(session, user_id, MagicMock(), MagicMock(), BUCKET, page_delay_s=0))

        auth = session.exec(select(GarminAuth).where(GarminAuth.user_id == user_id)).first()
        assert auth.last_sync_at is not None

    @patch("redcap.domain.services.garmin_sync_service.garth")
    def test_listing_error_propagates(self, mock_garth, session, user_id):
        mock_garth.Activity.list.side_effect = RuntimeError("Garmin indisponible")

        with pytest.raises(RuntimeError):
            _run(sync_garmin_activities(session, user_id, MagicMock(), MagicMock(), BUCKET, page_delay_s=0))


class TestGetGarminClient:
    def test_no_auth_raises(self, session, user_id):
        with pytest.raises(ValueError, match="Aucune authentification Garmin"):
            get_garmin_client(session, user_id, MagicMock())

    def test_restores_client_from_token(self, session, user_id):
        session.add(GarminAuth(user_id=user_id, oauth_token_encrypted="enc"))
        session.commit()
        garmin_auth = MagicMock()

        client = get_garmin_client(session, user_id, garmin_auth)

        garmin_auth.get_client.assert_called_once_with("enc")
        assert client is garmin_auth.get_client.return_value
