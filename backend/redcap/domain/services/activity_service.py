"""
Lecture des activites Garmin importees (liste paginee, acces unitaire).
"""
from typing import Optional
from uuid import UUID

from sqlmodel import Session, func, select

from redcap.domain.entities.activity import GarminActivity


class ActivityService:

    def get_activities_paginated(
        self,
        session: Session,
        user_id: UUID,
        page: int,
        per_page: int,
        activity_type: Optional[str] = None,
    ) -> dict:
        base_query = select(GarminActivity).where(GarminActivity.user_id == user_id)

        if activity_type:
            base_query = base_query.where(GarminActivity.activity_type == activity_type)

        total = session.exec(select(func.count()).select_from(base_query.subquery())).one()
        offset = (page - 1) * per_page
        query = base_query.order_by(GarminActivity.start_time.desc()).offset(offset).limit(per_page)
        activities = session.exec(query).all()
        total_pages = (total + per_page - 1) // per_page if total > 0 else 1

        return {
            "items": activities,
            "total": total,
            "page": page,
            "per_page": per_page,
            "pages": total_pages,
        }

    def get_activity(self, session: Session, user_id: UUID, activity_id: UUID) -> GarminActivity:
        """Activite de l'utilisateur, ValueError si absente ou appartenant a un autre."""
        activity = session.get(GarminActivity, activity_id)
        if not activity or activity.user_id != user_id:
            raise ValueError("Activité non trouvée")
        return activity


activity_service = ActivityService()
