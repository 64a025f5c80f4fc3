"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Grupos de configuracion:
    - Servidor y base de datos (DATABASE_URL se puede especificar completa o por componentes)
    - Gateway del SAT (servicio que firma con la FIEL y habla con descarga masiva)
    - Politica de sincronizacion (cuota, rate limit, debounce)
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="SAT Sync - Descarga Masiva de CFDI")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados (recomendado para flexibilidad)
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="satsync_user")
    DATABASE_PASSWORD: str = Field(default="satsync_pass")
    DATABASE_NAME: str = Field(default="satsync_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")
    AUDIT_LOG_DIR: str = Field(default="logs/sat_audit")

    # Gateway del SAT (validarFiel / verificarSolicitud / descargarPaquete)
    SAT_GATEWAY_URL: str = Field(default="http://localhost:8080")
    SAT_GATEWAY_TOKEN: str = Field(default="")
    SAT_TIMEOUT_SECONDS: float = Field(default=60.0)
    SAT_MAX_RETRIES: int = Field(default=3)

    # Politica de sincronizacion
    # El SAT solo permite 2 solicitudes simultaneas por tipo; excederlo bloquea 24-72h.
    SAT_MAX_ACTIVE_REQUESTS: int = Field(default=2)
    SAT_RATE_PER_SECOND: float = Field(default=0.5)
    SAT_RATE_BURST: int = Field(default=1)
    SAT_SYNC_DEBOUNCE_SECONDS: float = Field(default=2.0)
    # Mes-dia de inicio para la primera sincronizacion (inicio del ejercicio fiscal)
    SAT_FIRST_SYNC_MONTH_DAY: str = Field(default="01-01")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",  # Ignorar campos extra del .env
    }


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuracion
settings = Settings()
