"""
Routes Garmin Connect : liaison du compte (login/status/disconnect), import des activites.
Routes = validation + delegation au service. Pas de logique metier ici.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, EmailStr
from sqlmodel import Session

from redcap.core.database import get_session
from redcap.core.settings import get_settings
from redcap.core.storage import BlobStorage, get_storage
from redcap.auth.garmin_auth import GarminAuthManager, get_garmin_auth
from redcap.domain.errors import NotFoundError
from redcap.domain.services.garmin_account_service import (
    GarminLinkStatus,
    garmin_link_status,
    link_garmin_account,
    unlink_garmin_account,
)
from redcap.domain.services.garmin_sync_service import get_garmin_client, sync_garmin_activities
from redcap.api.routers._shared import current_user_id, limiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["garmin"])


class GarminLoginRequest(BaseModel):
    email: EmailStr
    password: str


class GarminSyncResult(BaseModel):
    message: str
    new_activities: int


# ============ COMPTE GARMIN ============

@router.post("/auth/garmin/login", response_model=GarminLinkStatus)
@limiter.limit("3/hour")
async def garmin_login(
    request: Request,
    response: Response,
    body: GarminLoginRequest,
    user_id: UUID = Depends(current_user_id),
    session: Session = Depends(get_session),
    garmin_auth: GarminAuthManager = Depends(get_garmin_auth),
):
    """Login Garmin one-time. Email/password ne sont JAMAIS stockes."""
    try:
        return link_garmin_account(session, garmin_auth, user_id, body.email, body.password)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Erreur login Garmin: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erreur lors de la connexion Garmin",
        )


@router.get("/auth/garmin/status", response_model=GarminLinkStatus, response_model_exclude_none=True)
async def garmin_status(
    user_id: UUID = Depends(current_user_id),
    session: Session = Depends(get_session),
):
    return garmin_link_status(session, user_id)


@router.delete("/auth/garmin/disconnect", response_model=GarminLinkStatus)
async def garmin_disconnect(
    user_id: UUID = Depends(current_user_id),
    session: Session = Depends(get_session),
):
    try:
        return unlink_garmin_account(session, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# ============ IMPORT DES ACTIVITES ============

@router.post("/sync/garmin/activities", response_model=GarminSyncResult)
@limiter.limit("10/hour")
async def sync_garmin_act(
    request: Request,
    response: Response,
    user_id: UUID = Depends(current_user_id),
    session: Session = Depends(get_session),
    storage: BlobStorage = Depends(get_storage),
    garmin_auth: GarminAuthManager = Depends(get_garmin_auth),
):
    """Importe les nouvelles activites de course Garmin et leurs fichiers FIT."""
    settings = get_settings()
    try:
        client = get_garmin_client(session, user_id, garmin_auth)
        return await sync_garmin_activities(
            session,
            user_id,
            client,
            storage,
            settings.STORAGE_BUCKET,
            page_size=settings.GARMIN_PAGE_SIZE,
            max_pages=settings.GARMIN_MAX_PAGES,
            page_delay_s=settings.GARMIN_PAGE_DELAY_S,
        )
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Erreur sync activites Garmin: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Erreur sync activites Garmin: {str(e)}",
        )
