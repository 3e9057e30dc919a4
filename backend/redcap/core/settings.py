"""
Configuration centralisée pour le backend RedCap
Utilise pydantic-settings pour la gestion des variables d'environnement
"""
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Configuration de l'application"""

    # Database
    DATABASE_URL: str = Field(
        default="sqlite:///./redcap.db",
        description="URL de la base de données (PostgreSQL en production)"
    )

    # JWT (verification des sessions emises par le service d'authentification)
    JWT_SECRET_KEY: str = Field(
        default="",
        description="Clé secrète pour vérifier les JWT (obligatoire en production)"
    )
    JWT_ALGORITHM: str = Field(default="HS256")

    # Chiffrement des tokens Garmin stockés
    ENCRYPTION_KEY: str = Field(
        default="",
        description="Clé Fernet pour chiffrer les tokens Garmin"
    )

    # Stockage des fichiers FIT
    STORAGE_DIR: str = Field(
        default="storage",
        description="Racine du stockage local des fichiers (un dossier par bucket)"
    )
    STORAGE_BUCKET: str = Field(
        default="database",
        description="Bucket contenant les fichiers FIT des utilisateurs"
    )

    # Garmin Connect
    GARMIN_PAGE_SIZE: int = Field(default=20, description="Activités par page de listing")
    GARMIN_MAX_PAGES: int = Field(
        default=10,
        description="Nombre maximum de pages par synchronisation (10 x 20 = 200 activités)"
    )
    GARMIN_PAGE_DELAY_S: float = Field(default=0.5, description="Pause entre deux pages")

    # URLs de l'application
    FRONTEND_URL: str = Field(
        default="http://localhost:3000",
        description="URL du frontend (utilisée pour CORS)"
    )

    # CORS
    ALLOWED_ORIGINS: List[str] = Field(
        default=[],
        description="Origines autorisées pour CORS (configuré automatiquement selon ENVIRONMENT si vide)"
    )

    # Monitoring (Sentry)
    SENTRY_DSN: str = Field(
        default="",
        description="DSN Sentry pour le error tracking (vide = Sentry desactive)"
    )

    # Application
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")
    LOG_LEVEL: str = Field(
        default="",
        description="Niveau de logging (auto-configuré selon ENVIRONMENT si vide)"
    )

    @model_validator(mode="after")
    def _configure_environment(self) -> "Settings":
        """Configure DEBUG et LOG_LEVEL selon ENVIRONMENT."""
        is_prod = self.ENVIRONMENT == "production"
        # En production, forcer DEBUG=False
        if is_prod:
            self.DEBUG = False
            if not self.JWT_SECRET_KEY:
                raise ValueError("JWT_SECRET_KEY est obligatoire en production")
        # LOG_LEVEL par défaut selon ENVIRONMENT
        if not self.LOG_LEVEL:
            self.LOG_LEVEL = "WARNING" if is_prod else "INFO"
        return self

    @model_validator(mode="after")
    def _set_default_origins(self) -> "Settings":
        """Définit les origines CORS par défaut selon ENVIRONMENT si non configurées."""
        if not self.ALLOWED_ORIGINS:
            if self.ENVIRONMENT == "production":
                self.ALLOWED_ORIGINS = []
            else:
                self.ALLOWED_ORIGINS = [
                    "http://localhost:3000",
                    "http://127.0.0.1:3000",
                ]
        # Toujours inclure FRONTEND_URL dans les origines autorisees
        frontend = self.FRONTEND_URL.rstrip("/")
        if frontend and frontend not in self.ALLOWED_ORIGINS:
            self.ALLOWED_ORIGINS.append(frontend)
        return self

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Récupère la configuration"""
    return Settings()
