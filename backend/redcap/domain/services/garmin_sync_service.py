"""
Service de sync Garmin : import des activites de course.

Liste les activites via garth, telecharge l'archive originale de chaque
nouvelle activite, en extrait le fichier FIT et le depose dans le stockage
sous {user_id}/{activity_id}.fit, puis enregistre l'activite en base.
"""
from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from datetime import datetime
from typing import Any, Dict, List, Optional, Set
from uuid import UUID

import garth
from sqlmodel import Session, select

from redcap.auth.garmin_auth import GarminAuthManager
from redcap.core.clock import as_utc, utc_now
from redcap.core.storage import BlobStorage, StorageError
from redcap.domain.entities.activity import GarminActivity
from redcap.domain.entities.user import GarminAuth, UserSyncStatus
from redcap.domain.errors import ExtractionError, NotFoundError
from redcap.domain.services.fit_archive_service import (
    extract_zip,
    find_file_by_extension,
    is_zip_archive,
)

logger = logging.getLogger(__name__)

RUNNING_ACTIVITY_TYPES = {
    "running",
    "trail_running",
    "treadmill_running",
    "track_running",
    "indoor_running",
    "virtual_run",
}

ARCHIVE_DOWNLOAD_URL = "/download-service/files/activity/{activity_id}"


def get_garmin_client(session: Session, user_id: UUID, garmin_auth: GarminAuthManager) -> garth.Client:
    """Client garth restaure depuis le token chiffre de l'utilisateur."""
    garmin_auth_record = session.exec(
        select(GarminAuth).where(GarminAuth.user_id == user_id)
    ).first()

    if not garmin_auth_record:
        raise ValueError(f"Aucune authentification Garmin pour user_id={user_id}")

    return garmin_auth.get_client(garmin_auth_record.oauth_token_encrypted)


def _type_key(garmin_act: garth.Activity) -> Optional[str]:
    activity_type = getattr(garmin_act, "activity_type", None)
    type_key = getattr(activity_type, "type_key", None)
    return type_key.lower() if type_key else None


def is_running_activity(garmin_act: garth.Activity) -> bool:
    return _type_key(garmin_act) in RUNNING_ACTIVITY_TYPES


async def fetch_running_activities(
    client: garth.Client,
    page_size: int = 20,
    max_pages: int = 10,
    page_delay_s: float = 0.5,
) -> List[garth.Activity]:
    """Pagine le listing Garmin (plus recentes d'abord) et garde la course a pied."""
    running: List[garth.Activity] = []
    start = 0

    for _ in range(max_pages):
        page = garth.Activity.list(limit=page_size, start=start, client=client)
        if not page:
            break

        batch = [act for act in page if is_running_activity(act)]
        logger.info(f"Lot d'activites: {len(page)}, activites de course filtrees: {len(batch)}")
        running.extend(batch)
        start += page_size

        await asyncio.sleep(page_delay_s)  # rate limit

    return running


def _start_time(garmin_act: garth.Activity) -> datetime:
    # Heure locale Garmin en priorite, enregistree telle quelle en UTC
    start = garmin_act.start_time_local or garmin_act.start_time_gmt
    return as_utc(start) if start else utc_now()


def _map_garmin_activity(garmin_act: garth.Activity, fit_file_path: str) -> Dict[str, Any]:
    """Convertit une activite garth en champs GarminActivity."""
    return {
        "activity_id": garmin_act.activity_id,
        "activity_name": garmin_act.activity_name or "Garmin Activity",
        "activity_type": _type_key(garmin_act) or "running",
        "start_time": _start_time(garmin_act),
        "duration": float(garmin_act.duration or 0),
        "distance": float(garmin_act.distance or 0),
        "elevation_gain": garmin_act.elevation_gain,
        "fit_file_path": fit_file_path,
    }


def _update_sync_status(session: Session, user_id: UUID) -> None:
    now = utc_now()
    status = session.get(UserSyncStatus, user_id)
    if status:
        logger.info(f"Derniere synchronisation: {status.last_sync_date or 'Jamais'}")
        status.last_sync_date = now
    else:
        status = UserSyncStatus(user_id=user_id, last_sync_date=now)
    session.add(status)

    garmin_auth_record = session.exec(
        select(GarminAuth).where(GarminAuth.user_id == user_id)
    ).first()
    if garmin_auth_record:
        garmin_auth_record.last_sync_at = now
        session.add(garmin_auth_record)

    session.commit()


def _existing_activity_ids(session: Session, user_id: UUID) -> Set[int]:
    return set(session.exec(
        select(GarminActivity.activity_id).where(GarminActivity.user_id == user_id)
    ).all())


def _ensure_user_folder(storage: BlobStorage, bucket: str, user_id: UUID) -> None:
    """Cree le dossier utilisateur (fichier .keep) s'il n'existe pas encore."""
    if storage.list(bucket, str(user_id)) is not None:
        return
    try:
        storage.upload(bucket, f"{user_id}/.keep", b"")
    except StorageError as e:
        if str(e) != "The resource already exists":
            logger.error(f"Erreur lors de la creation du dossier utilisateur: {e}")


def extract_fit_from_download(raw_bytes: bytes, extract_dir: str, garmin_activity_id: int) -> str:
    """
    Extrait le FIT du telechargement Garmin (ZIP, ou FIT brut) et retourne son chemin.

    Raises:
        ExtractionError si l'archive est vide ou illisible
        NotFoundError si l'archive ne contient aucun .fit
    """
    if not raw_bytes:
        raise ExtractionError(f"Telechargement vide pour l'activite {garmin_activity_id}")

    if is_zip_archive(raw_bytes):
        extracted = extract_zip(raw_bytes, extract_dir)
        logger.info(f"Fichiers extraits: {len(extracted)}")
    else:
        # Si ce n'est pas un ZIP, c'est peut-etre du FIT brut
        logger.info(f"FIT brut (non-ZIP) pour activite {garmin_activity_id} ({len(raw_bytes)} bytes)")
        os.makedirs(extract_dir, exist_ok=True)
        with open(os.path.join(extract_dir, f"{garmin_activity_id}.fit"), "wb") as f:
            f.write(raw_bytes)

    fit_file_path = find_file_by_extension(extract_dir, ".fit")
    if not fit_file_path:
        raise NotFoundError(f"Aucun fichier .fit trouve pour l'activite {garmin_activity_id}")
    return fit_file_path


def _import_activity(
    session: Session,
    user_id: UUID,
    client: garth.Client,
    storage: BlobStorage,
    bucket: str,
    garmin_act: garth.Activity,
    temp_dir: str,
) -> None:
    """Telecharge, extrait, stocke et enregistre une activite."""
    garmin_activity_id = garmin_act.activity_id
    logger.info(f"Traitement de l'activite {garmin_activity_id}...")

    raw_bytes = client.download(ARCHIVE_DOWNLOAD_URL.format(activity_id=garmin_activity_id))
    logger.info(f"Download activite {garmin_activity_id}: {len(raw_bytes or b'')} bytes")

    extract_dir = os.path.join(temp_dir, str(garmin_activity_id), "extracted")
    local_fit_path = extract_fit_from_download(raw_bytes, extract_dir, garmin_activity_id)
    logger.info(f"Fichier FIT trouve: {local_fit_path}")

    _ensure_user_folder(storage, bucket, user_id)

    existing = session.exec(
        select(GarminActivity).where(
            GarminActivity.user_id == user_id,
            GarminActivity.activity_id == garmin_activity_id,
        )
    ).first()

    fit_storage_path = f"{user_id}/{garmin_activity_id}.fit"
    if existing:
        storage.remove(bucket, [fit_storage_path])

    with open(local_fit_path, "rb") as f:
        fit_bytes = f.read()
    try:
        storage.upload(bucket, fit_storage_path, fit_bytes, overwrite=True)
        logger.info(f"Fichier FIT uploade: {fit_storage_path}")
    except StorageError as e:
        logger.error(f"Erreur lors de l'upload du fichier FIT: {e}")

    fields = _map_garmin_activity(garmin_act, fit_storage_path)
    if existing:
        for key, value in fields.items():
            setattr(existing, key, value)
        existing.updated_at = utc_now()
        session.add(existing)
        logger.info(f"Activite {garmin_activity_id} mise a jour avec succes")
    else:
        session.add(GarminActivity(user_id=user_id, **fields))
        logger.info(f"Activite {garmin_activity_id} enregistree avec succes")
    session.commit()


async def sync_garmin_activities(
    session: Session,
    user_id: UUID,
    client: garth.Client,
    storage: BlobStorage,
    bucket: str,
    page_size: int = 20,
    max_pages: int = 10,
    page_delay_s: float = 0.5,
) -> Dict[str, Any]:
    """
    Importe les nouvelles activites de course Garmin avec leur fichier FIT.

    Une activite en echec est journalisee puis ignoree ; les autres
    continuent d'etre traitees.

    Returns:
        dict avec message, new_activities
    """
    try:
        activities = await fetch_running_activities(client, page_size, max_pages, page_delay_s)
    except Exception as e:
        logger.error(f"Erreur lors de la recuperation des activites Garmin: {e}")
        raise

    logger.info(f"{len(activities)} activites de course recuperees")
    _update_sync_status(session, user_id)

    existing_ids = _existing_activity_ids(session, user_id)
    new_activities = [act for act in activities if act.activity_id not in existing_ids]
    logger.info(f"{len(new_activities)} nouvelles activites a telecharger")

    if not new_activities:
        return {"message": "Aucune nouvelle activité à télécharger", "new_activities": 0}

    temp_dir = tempfile.mkdtemp(prefix="garmin-activities-")
    processed = 0
    try:
        for garmin_act in new_activities:
            try:
                _import_activity(session, user_id, client, storage, bucket, garmin_act, temp_dir)
                processed += 1
            except Exception as e:
                session.rollback()
                logger.warning(f"Erreur lors du traitement de l'activite {garmin_act.activity_id}: {e}")
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)
        logger.info(f"Dossier temporaire supprime: {temp_dir}")

    return {"message": "Activités téléchargées avec succès", "new_activities": processed}
