"""
Verification des tokens JWT emis par le service d'authentification
"""
from datetime import datetime
from typing import Optional
from jose import JWTError, jwt
from fastapi import HTTPException, status
from pydantic import BaseModel

from redcap.core.settings import get_settings


class TokenData(BaseModel):
    """Données contenues dans un token"""
    user_id: str
    email: Optional[str] = None
    exp: Optional[datetime] = None


class JWTManager:
    """Verification des tokens JWT"""

    def __init__(self, secret_key: str, algorithm: str):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def verify_token(self, token: str, token_type: str = "access") -> TokenData:
        """Vérifie et décode un token JWT"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials"
            )

        # Vérifier le type de token (absent = access)
        if payload.get("type", "access") != token_type:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token type. Expected {token_type}"
            )

        user_id = payload.get("sub")
        if user_id is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token payload"
            )

        exp = payload.get("exp")
        return TokenData(
            user_id=str(user_id),
            email=payload.get("email"),
            exp=datetime.fromtimestamp(exp) if exp else None,
        )


def get_current_user_id(token: str) -> str:
    """Extrait l'ID utilisateur du token"""
    settings = get_settings()
    return JWTManager(settings.JWT_SECRET_KEY, settings.JWT_ALGORITHM).verify_token(token).user_id
