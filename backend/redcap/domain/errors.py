"""
Erreurs du pipeline telemetrie (localisation, extraction, decodage, export).
"""
from typing import List, Optional, Tuple


class TelemetryError(Exception):
    """Base des erreurs du pipeline telemetrie."""


class NotFoundError(TelemetryError):
    """Fichier attendu absent (ex: pas de .fit dans l'archive extraite)."""


class ResolutionError(NotFoundError):
    """Aucun chemin candidat n'a permis de telecharger le fichier FIT.

    Attributes:
        attempts: (chemin, message d'erreur) dans l'ordre des tentatives
    """

    def __init__(self, attempts: List[Tuple[str, str]]):
        self.attempts = list(attempts)
        super().__init__(
            f"Impossible de télécharger le fichier FIT après {len(self.attempts)} tentatives."
        )

    @property
    def paths(self) -> List[str]:
        return [path for path, _ in self.attempts]

    @property
    def errors(self) -> List[str]:
        return [f"{path}: {message}" for path, message in self.attempts]


class DecodeError(TelemetryError):
    """Le decodeur FIT a rejete le contenu."""


class ExtractionError(TelemetryError):
    """Archive illisible ou entree impossible a ecrire."""


class NoGpsDataError(TelemetryError):
    """Aucun point GPS exploitable pour l'export."""

    def __init__(self, sport_type: Optional[str], indoor: bool):
        self.sport_type = sport_type
        self.indoor = indoor
        if indoor:
            message = (
                f'Cette activité "{sport_type}" ne contient pas de données GPS car elle a été '
                "réalisée en intérieur. L'export GPX n'est possible que pour les activités extérieures."
            )
        else:
            message = (
                f'Aucune donnée GPS trouvée dans le fichier FIT de cette activité "{sport_type}". '
                "L'activité pourrait avoir été réalisée sans GPS activé."
            )
        super().__init__(message)
