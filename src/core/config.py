"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/caché/render) lean config de forma consistente.
- No hay credenciales ni servidores por defecto en el código: se pasan
  explícitamente (env, `.env` o flags de la CLI).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class HttpCredentials:
    """Credenciales HTTP basic para el servidor de schemas."""

    username: str
    password: str


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters/servicios.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEMA_DIFFER_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    base_url: str | None = Field(
        default=None,
        description="Base URL del servidor; los locators relativos se resuelven contra ella.",
    )
    schemas_endpoint: str = Field(
        default="/api/schemas.json",
        min_length=1,
        description="Endpoint (relativo al locator) que devuelve el documento de schemas.",
    )
    info_endpoint: str = Field(
        default="/api/system/info.json",
        min_length=1,
        description="Endpoint (relativo al locator) con version/revision del servidor.",
    )

    cache_dir: Path = Field(
        default=Path("cache"),
        description="Directorio de snapshots cacheados ({version}_{revision}.json).",
    )
    use_cache: bool = Field(
        default=True,
        description="Consultar/escribir la caché de schemas.",
    )

    http_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout por request (segundos). Los documentos de schemas son grandes.",
    )
    user_agent: str = Field(
        default="schema-differ/0.1",
        min_length=1,
        description="User-Agent para las peticiones.",
    )
    auth_username: str | None = Field(
        default=None,
        description="Usuario HTTP basic (opcional).",
    )
    auth_password: SecretStr | None = Field(
        default=None,
        description="Password HTTP basic (opcional).",
    )

    identity_fields: tuple[str, ...] = Field(
        default=("singular", "singularName", "type"),
        min_length=1,
        description="Campos candidatos (en orden) para la identidad de un nodo de schema.",
    )
    excluded_properties: tuple[str, ...] = Field(
        default=("href", "apiEndpoint"),
        description="Propiedades ignoradas al comparar (dependen del host, no del schema).",
    )

    assets_base_url: str = Field(
        default="https://cdn.jsdelivr.net/npm/jsondiffpatch@0.4.1/dist",
        min_length=8,
        description=(
            "Origen de descarga de los assets (JS/CSS) de jsondiffpatch. Se descargan una vez "
            "a <cache_dir>/assets y se incrustan en el HTML."
        ),
    )

    def credentials(self) -> HttpCredentials | None:
        if not self.auth_username or self.auth_password is None:
            return None
        return HttpCredentials(
            username=self.auth_username,
            password=self.auth_password.get_secret_value(),
        )
