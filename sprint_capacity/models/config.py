import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv
from loguru import logger
from pydantic import BaseModel, Field

DEFAULT_DATABASE_URL = "sqlite:///data/sprint_capacity.db"

# Variáveis de ambiente que sobrescrevem o arquivo de configuração
ENV_OVERRIDES = {
    "DATABASE_URL": "database_url",
    "LOG_LEVEL": "log_level",
    "LOG_DIR": "log_dir",
    "OUTPUT_DIR": "output_dir",
}


class AppConfig(BaseModel):
    """Configuração principal do sistema"""

    database_url: str = Field(default=DEFAULT_DATABASE_URL)
    log_dir: str = Field(default="logs")
    output_dir: str = Field(default="output")
    log_level: str = Field(
        default="INFO",
        pattern="^(TRACE|DEBUG|INFO|SUCCESS|WARNING|ERROR|CRITICAL)$",
    )

    @property
    def is_sqlite(self) -> bool:
        """Indica se o backend escolhido é SQLite"""
        return self.database_url.startswith("sqlite")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "AppConfig":
        """
        Carrega a configuração do arquivo JSON e do ambiente

        O arquivo é opcional. Variáveis de ambiente (e o .env) têm
        precedência sobre o arquivo.

        Args:
            config_file: Caminho do setup.json

        Returns:
            AppConfig: Configuração validada
        """
        load_dotenv(find_dotenv(usecwd=True))

        data: Dict[str, Any] = {}
        if config_file is not None and config_file.exists():
            data = json.loads(config_file.read_text(encoding="utf-8"))
            logger.debug(f"Configuração carregada de {config_file}")

        for env_name, field_name in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                data[field_name] = value

        return cls(**data)
