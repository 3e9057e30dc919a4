"""
Gestion de l'authentification Garmin Connect via Garth
Email et mot de passe ne sont JAMAIS stockes : login one-time, token Garth chiffre.
"""
import logging
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from fastapi import HTTPException, status

import garth

from redcap.core.settings import get_settings

logger = logging.getLogger(__name__)


class GarminAuthManager:
    """Gestionnaire d'authentification Garmin Connect"""

    def __init__(self, encryption_key: str):
        self.cipher: Optional[Fernet] = None
        if encryption_key:
            try:
                self.cipher = Fernet(encryption_key.encode())
            except ValueError as e:
                logger.error(f"Erreur initialisation Fernet: {e}")
        else:
            logger.error("ENCRYPTION_KEY manquante")

    def login(self, email: str, password: str) -> str:
        """
        Authentification Garmin via Garth.
        Retourne le token Garth serialise et chiffre.

        Raises:
            HTTPException 401 si login echoue
            HTTPException 500 si erreur interne
        """
        client = garth.Client(domain="garmin.com")
        try:
            client.login(email, password)
        except Exception as e:
            logger.warning(f"Echec login Garmin: {type(e).__name__}: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Identifiants Garmin invalides",
            )

        try:
            token_data = client.dumps()
        except Exception as e:
            logger.error(f"Echec serialisation token Garth: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Erreur lors de la serialisation du token Garmin",
            )

        return self.encrypt_token(token_data)

    def get_client(self, encrypted_token: str) -> garth.Client:
        """Reconstruit un client Garth a partir d'un token chiffre, sans re-login."""
        token_data = self.decrypt_token(encrypted_token)
        client = garth.Client(domain="garmin.com")
        try:
            client.loads(token_data)
        except Exception as e:
            logger.error(f"Echec restauration client Garth: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token Garmin invalide ou expire, reconnexion necessaire",
            )
        return client

    def _require_cipher(self) -> Fernet:
        if not self.cipher:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Encryption non configuree: ENCRYPTION_KEY manquante",
            )
        return self.cipher

    def encrypt_token(self, token: str) -> str:
        """Chiffre un token Garth pour le stockage"""
        cipher = self._require_cipher()
        if not token:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Token vide fourni pour le chiffrement",
            )
        return cipher.encrypt(token.encode()).decode()

    def decrypt_token(self, encrypted_token: str) -> str:
        """Dechiffre un token Garth stocke"""
        cipher = self._require_cipher()
        if not encrypted_token:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Token chiffre vide fourni pour le dechiffrement",
            )
        try:
            return cipher.decrypt(encrypted_token.encode()).decode()
        except InvalidToken as e:
            logger.error(f"Erreur dechiffrement token: {e!r}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Echec du dechiffrement du token Garmin",
            )


@lru_cache()
def get_garmin_auth() -> GarminAuthManager:
    """Gestionnaire construit une fois par processus (dependance FastAPI)."""
    return GarminAuthManager(get_settings().ENCRYPTION_KEY)
