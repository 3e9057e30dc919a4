"""
Localisation du fichier FIT d'une activite dans le stockage.

Le chemin sous lequel le FIT a ete stocke a change au fil des versions :
on essaie les chemins connus dans un ordre fixe et le premier qui repond gagne.
"""
import logging
from typing import List, Optional, Tuple

from redcap.core.storage import BlobStorage
from redcap.domain.errors import ResolutionError

logger = logging.getLogger(__name__)


def candidate_fit_paths(user_id: str, activity_id: int, hint_path: Optional[str] = None) -> List[str]:
    """Chemins possibles, dans l'ordre de priorite."""
    paths = [
        f"{user_id}/fitFiles/{activity_id}.fit",
        f"{user_id}/{activity_id}.fit",
        f"{user_id}/files/{activity_id}.fit",
        f"{user_id}/activities/{activity_id}.fit",
    ]
    if hint_path:
        paths.insert(0, hint_path)
    return paths


class FitFileLocator:
    """Telecharge le fichier FIT d'une activite depuis un bucket."""

    def __init__(self, storage: BlobStorage, bucket: str):
        self.storage = storage
        self.bucket = bucket

    def resolve(
        self,
        user_id: str,
        activity_id: int,
        hint_path: Optional[str] = None,
    ) -> Tuple[bytes, str]:
        """
        Essaie chaque chemin candidat jusqu'au premier telechargement reussi.

        Returns:
            (contenu du fichier, chemin utilise)

        Raises:
            ResolutionError avec une erreur par chemin si tous echouent
        """
        paths = candidate_fit_paths(user_id, activity_id, hint_path)
        logger.info(f"Recherche du FIT de l'activite {activity_id} ({len(paths)} chemins possibles)")

        attempts: List[Tuple[str, str]] = []
        for path in paths:
            try:
                data = self.storage.download(self.bucket, path)
            except Exception as e:
                logger.info(f"Echec avec le chemin {path}: {e}")
                attempts.append((path, str(e) or type(e).__name__))
                continue

            if not data:
                logger.info(f"Echec avec le chemin {path}: fichier vide")
                attempts.append((path, "fichier vide"))
                continue

            logger.info(f"Fichier FIT trouve avec le chemin: {path}, taille: {len(data)} bytes")
            return data, path

        logger.error(f"Tous les chemins ont echoue pour l'activite {activity_id}: {attempts}")
        raise ResolutionError(attempts)
