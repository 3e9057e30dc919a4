"""
Stockage des fichiers (bucket + chemin -> bytes).
Le coeur telemetrie ne depend que de l'interface BlobStorage ; l'instance
est construite par l'appelant (routeur, script) puis injectee.
"""
import logging
from pathlib import Path
from typing import List, Optional, Protocol

from redcap.core.settings import get_settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Echec d'une operation de stockage (objet absent, ecriture refusee...)."""


class BlobStorage(Protocol):
    """Contrat minimal attendu d'un stockage objet."""

    def download(self, bucket: str, path: str) -> bytes:
        ...

    def upload(self, bucket: str, path: str, data: bytes, overwrite: bool = False) -> None:
        ...

    def remove(self, bucket: str, paths: List[str]) -> None:
        ...

    def list(self, bucket: str, prefix: str) -> Optional[List[str]]:
        ...


class LocalBlobStorage:
    """Stockage sur disque : <root>/<bucket>/<path>."""

    def __init__(self, root_dir: str):
        self.root = Path(root_dir).resolve()

    def _resolve(self, bucket: str, path: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        target = (bucket_dir / path.lstrip("/")).resolve()
        if target != bucket_dir and bucket_dir not in target.parents:
            raise StorageError(f"Chemin hors du bucket: {path}")
        return target

    def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise StorageError("Object not found")
        return target.read_bytes()

    def upload(self, bucket: str, path: str, data: bytes, overwrite: bool = False) -> None:
        target = self._resolve(bucket, path)
        if target.exists() and not overwrite:
            raise StorageError("The resource already exists")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug(f"Objet ecrit: {bucket}/{path} ({len(data)} bytes)")

    def remove(self, bucket: str, paths: List[str]) -> None:
        """Suppression best-effort : les objets absents sont ignores."""
        for path in paths:
            try:
                self._resolve(bucket, path).unlink(missing_ok=True)
            except (OSError, StorageError) as e:
                logger.debug(f"Suppression ignoree pour {bucket}/{path}: {e}")

    def list(self, bucket: str, prefix: str) -> Optional[List[str]]:
        """Liste les entrees sous un prefixe, None si le prefixe n'existe pas."""
        target = self._resolve(bucket, prefix)
        if not target.is_dir():
            return None
        return sorted(entry.name for entry in target.iterdir())


def get_storage() -> BlobStorage:
    """Fournit le stockage configure (dependance FastAPI)."""
    settings = get_settings()
    return LocalBlobStorage(settings.STORAGE_DIR)
