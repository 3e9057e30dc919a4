"""
Entités liées au compte utilisateur - Domain Layer
L'utilisateur lui-même est géré par le service d'authentification externe :
on ne stocke ici que son user_id (claim 'sub' du JWT).
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4

from redcap.core.clock import utc_now


class GarminAuth(SQLModel, table=True):
    """Authentification Garmin Connect d'un utilisateur"""
    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(unique=True, index=True)
    garmin_display_name: Optional[str] = None
    oauth_token_encrypted: str
    token_created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    last_sync_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class UserSyncStatus(SQLModel, table=True):
    """Date de la dernière synchronisation Garmin d'un utilisateur"""
    user_id: UUID = Field(primary_key=True)
    last_sync_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
