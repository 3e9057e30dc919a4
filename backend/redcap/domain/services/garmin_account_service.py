"""
Liaison du compte Garmin Connect d'un utilisateur.

Seul le token garth chiffre est conserve (table GarminAuth), une ligne
par utilisateur. La date de derniere synchro est tenue par le service
d'import.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from sqlmodel import Session, select

from redcap.auth.garmin_auth import GarminAuthManager
from redcap.core.clock import utc_now
from redcap.domain.entities import GarminAuth
from redcap.domain.errors import NotFoundError

logger = logging.getLogger(__name__)


class GarminLinkStatus(BaseModel):
    connected: bool
    message: Optional[str] = None
    garmin_display_name: Optional[str] = None
    token_created_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None


def find_garmin_auth(session: Session, user_id: UUID) -> Optional[GarminAuth]:
    return session.exec(select(GarminAuth).where(GarminAuth.user_id == user_id)).first()


def link_garmin_account(
    session: Session,
    garmin_auth: GarminAuthManager,
    user_id: UUID,
    email: str,
    password: str,
) -> GarminLinkStatus:
    """
    Login garth puis enregistrement (ou remplacement) du token chiffre.

    Les identifiants ne font que transiter : garmin_auth.login les consomme
    et leve une HTTPException 401 s'ils sont refuses.
    """
    encrypted_token = garmin_auth.login(email, password)
    now = utc_now()

    record = find_garmin_auth(session, user_id)
    if record is None:
        record = GarminAuth(user_id=user_id, oauth_token_encrypted=encrypted_token, token_created_at=now)
    else:
        record.oauth_token_encrypted = encrypted_token
        record.token_created_at = now
        record.updated_at = now
    session.add(record)
    session.commit()

    logger.info(f"Compte Garmin lie pour user {user_id}")
    return GarminLinkStatus(connected=True, message="Garmin Connect lie avec succes", token_created_at=now)


def garmin_link_status(session: Session, user_id: UUID) -> GarminLinkStatus:
    record = find_garmin_auth(session, user_id)
    if record is None:
        return GarminLinkStatus(connected=False)
    return GarminLinkStatus(
        connected=True,
        garmin_display_name=record.garmin_display_name,
        token_created_at=record.token_created_at,
        last_sync_at=record.last_sync_at,
    )


def unlink_garmin_account(session: Session, user_id: UUID) -> GarminLinkStatus:
    """Supprime le token. Les activites deja importees restent en base."""
    record = find_garmin_auth(session, user_id)
    if record is None:
        raise NotFoundError("Aucune connexion Garmin trouvee")

    session.delete(record)
    session.commit()
    logger.info(f"Compte Garmin delie pour user {user_id}")
    return GarminLinkStatus(connected=False, message="Garmin Connect deconnecte")
