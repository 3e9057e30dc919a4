"""
Routes des activites : liste, series de telemetrie, export GPX.
Routes = validation + delegation au service. Pas de logique metier ici.
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlmodel import Session

from redcap.core.database import get_session
from redcap.domain.entities import TelemetryRead
from redcap.domain.errors import DecodeError, NoGpsDataError, NotFoundError, ResolutionError
from redcap.domain.services.activity_service import activity_service
from redcap.domain.services.fit_locator import FitFileLocator
from redcap.domain.services.gpx_export_service import GPX_MEDIA_TYPE, export_activity_gpx
from redcap.domain.services.telemetry_service import load_activity_telemetry
from redcap.api.routers._shared import current_user_id, get_fit_locator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["activities"])


def _raise_http_error(e: Exception) -> None:
    """Traduit les erreurs du pipeline FIT en HTTPException."""
    if isinstance(e, ResolutionError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": str(e), "paths": e.paths, "errors": e.errors},
        )
    if isinstance(e, (NotFoundError, ValueError)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, (DecodeError, NoGpsDataError)):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    raise e


@router.get("/activities")
async def get_activities(
    user_id: UUID = Depends(current_user_id),
    session: Session = Depends(get_session),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=50, ge=1, le=200),
    activity_type: Optional[str] = None,
):
    """Recupere les activites Garmin de l'utilisateur avec pagination"""
    return activity_service.get_activities_paginated(session, user_id, page, per_page, activity_type)


@router.get("/activities/{activity_id}/telemetry", response_model=TelemetryRead)
async def get_activity_telemetry(
    activity_id: UUID,
    user_id: UUID = Depends(current_user_id),
    session: Session = Depends(get_session),
    locator: FitFileLocator = Depends(get_fit_locator),
):
    """Series allure / altitude / FC indexees par distance, depuis le fichier FIT."""
    try:
        activity = activity_service.get_activity(session, user_id, activity_id)
        return load_activity_telemetry(locator, str(user_id), activity)
    except (ValueError, NotFoundError, DecodeError) as e:
        _raise_http_error(e)


@router.get("/activities/{activity_id}/export.gpx")
async def export_activity_gpx_file(
    activity_id: UUID,
    user_id: UUID = Depends(current_user_id),
    session: Session = Depends(get_session),
    locator: FitFileLocator = Depends(get_fit_locator),
):
    """Telecharge la trace GPS de l'activite au format GPX."""
    try:
        activity = activity_service.get_activity(session, user_id, activity_id)
        export = export_activity_gpx(locator, str(user_id), activity)
    except (ValueError, NotFoundError, DecodeError, NoGpsDataError) as e:
        _raise_http_error(e)

    return Response(
        content=export.content,
        media_type=GPX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )
