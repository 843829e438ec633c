"""Configuração da aplicação."""
import os
from dataclasses import dataclass, field
from typing import Optional


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else default


@dataclass
class HttpConfig:
    """Configuração do cliente HTTP de fontes."""

    timeout: int = 30
    user_agent: str = "jsonmap/0.1.0"
    auth_token: str = ""  # Lê de .env

    @classmethod
    def from_env(cls) -> "HttpConfig":
        """Carrega config de variáveis de ambiente."""
        return cls(
            timeout=_int_env("JSONMAP_HTTP_TIMEOUT", 30),
            user_agent=os.getenv("JSONMAP_USER_AGENT", "jsonmap/0.1.0"),
            auth_token=os.getenv("JSONMAP_AUTH_TOKEN", ""),
        )


@dataclass
class AppConfig:
    """Configuração da aplicação."""

    output_dir: str = "./output"
    config_dir: str = "./config"
    log_level: str = "WARNING"
    automap_threshold: float = 0.7
    max_depth: int = 10
    max_array_indices: int = 3
    preview_limit: Optional[int] = None
    http: HttpConfig = field(default_factory=HttpConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Carrega config de variáveis de ambiente."""
        return cls(
            output_dir=os.getenv("JSONMAP_OUTPUT_DIR", "./output"),
            config_dir=os.getenv("JSONMAP_CONFIG_DIR", "./config"),
            log_level=os.getenv("JSONMAP_LOG_LEVEL", "WARNING").upper(),
            automap_threshold=float(os.getenv("JSONMAP_AUTOMAP_THRESHOLD", "0.7")),
            max_depth=_int_env("JSONMAP_MAX_DEPTH", 10),
            max_array_indices=_int_env("JSONMAP_MAX_ARRAY_INDICES", 3),
            preview_limit=_int_env("JSONMAP_PREVIEW_LIMIT", None),
            http=HttpConfig.from_env(),
        )


# Instância global
app_config = AppConfig.from_env()
