"""
Extraction des archives d'activite Garmin.
Garmin Connect livre un ZIP contenant le fichier .fit de l'activite.
"""
import logging
import os
import zipfile
from io import BytesIO
from typing import List, Optional

from redcap.domain.errors import ExtractionError

logger = logging.getLogger(__name__)


def is_zip_archive(raw_bytes: bytes) -> bool:
    return raw_bytes[:2] == b"PK"


def extract_zip(archive_bytes: bytes, destination_dir: str) -> List[str]:
    """
    Extrait toutes les entrees (hors dossiers) d'une archive ZIP.

    Le dossier de destination est cree s'il n'existe pas. Les fichiers
    existants sont ecrases et le chemin relatif de chaque entree est conserve.

    Returns:
        Chemins ecrits, dans l'ordre de l'archive

    Raises:
        ExtractionError si l'archive est illisible ou une entree non ecrivable
    """
    os.makedirs(destination_dir, exist_ok=True)
    root = os.path.realpath(destination_dir)
    extracted_files: List[str] = []

    try:
        with zipfile.ZipFile(BytesIO(archive_bytes)) as zf:
            for entry in zf.infolist():
                if entry.is_dir():
                    continue

                file_path = os.path.join(destination_dir, entry.filename)
                # Refuser les entrees qui sortent du dossier (../)
                if not os.path.realpath(file_path).startswith(root + os.sep):
                    raise ExtractionError(f"Entree hors du dossier d'extraction: {entry.filename}")

                os.makedirs(os.path.dirname(file_path), exist_ok=True)
                with zf.open(entry) as source, open(file_path, "wb") as target:
                    target.write(source.read())

                extracted_files.append(file_path)
                logger.info(f"Fichier extrait: {file_path}")
    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Archive ZIP invalide: {e}") from e
    except OSError as e:
        raise ExtractionError(f"Ecriture impossible pendant l'extraction: {e}") from e

    return extracted_files


def find_file_by_extension(directory: str, extension: str = ".fit") -> Optional[str]:
    """
    Cherche (non recursif) le premier fichier du dossier se terminant par
    l'extension donnee, sans tenir compte de la casse.
    """
    extension = extension.lower()
    for name in sorted(os.listdir(directory)):
        if name.lower().endswith(extension):
            return os.path.join(directory, name)
    return None
