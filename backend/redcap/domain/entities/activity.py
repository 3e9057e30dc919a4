"""
Entité GarminActivity - Domain Layer
Activité importée depuis Garmin Connect, avec le chemin de son fichier FIT stocké.
"""
from sqlmodel import SQLModel, Field, Column, UniqueConstraint
from sqlalchemy import BigInteger, DateTime
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4

from redcap.core.clock import utc_now


class GarminActivityBase(SQLModel):
    """Modèle de base pour GarminActivity"""
    activity_id: int  # ID Garmin Connect
    activity_name: str
    activity_type: str  # typeKey Garmin (running, treadmill_running...)
    start_time: datetime = Field(sa_type=DateTime(timezone=True))  # UTC
    duration: float  # en secondes
    distance: float  # en mètres
    elevation_gain: Optional[float] = None  # en mètres
    fit_file_path: Optional[str] = None  # chemin dans le bucket


class GarminActivity(GarminActivityBase, table=True):
    """Entité GarminActivity complète pour la base de données"""
    __table_args__ = (
        UniqueConstraint("user_id", "activity_id", name="uq_garmin_activity_user_activity"),
    )

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    activity_id: int = Field(sa_column=Column(BigInteger, nullable=False, index=True))

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

