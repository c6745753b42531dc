from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine, make_url

from ..models.config import AppConfig
from .schema import metadata


class RowStore:
    """
    Acesso ao banco por linhas com SQL parametrizado

    O mesmo SQL roda em SQLite e PostgreSQL. Fora de uma transação cada
    chamada abre e confirma sua própria conexão; dentro de transaction() todas
    as chamadas compartilham a mesma conexão e são confirmadas ou desfeitas
    juntas.
    """

    def __init__(self, engine: Engine, connection: Optional[Connection] = None):
        self.engine = engine
        self._connection = connection

    @property
    def dialect(self) -> str:
        """Nome do dialeto em uso (sqlite ou postgresql)"""
        return self.engine.dialect.name

    @contextmanager
    def transaction(self) -> Iterator["RowStore"]:
        """
        Abre uma unidade de trabalho atômica

        Chamadas aninhadas reutilizam a transação já aberta.
        """
        if self._connection is not None:
            yield self
            return
        with self.engine.begin() as connection:
            yield RowStore(self.engine, connection)

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        if self._connection is not None:
            yield self._connection
        else:
            with self.engine.begin() as connection:
                yield connection

    def fetch_all(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Executa um SELECT e retorna todas as linhas"""
        with self._connect() as connection:
            result = connection.execute(text(query), params or {})
            return [dict(row) for row in result.mappings()]

    def fetch_one(self, query: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Executa um SELECT e retorna a primeira linha, se houver"""
        with self._connect() as connection:
            row = connection.execute(text(query), params or {}).mappings().first()
            return dict(row) if row is not None else None

    def execute(self, query: str, params: Optional[Dict[str, Any]] = None) -> int:
        """
        Executa INSERT/UPDATE/DELETE

        Returns:
            int: Número de linhas afetadas
        """
        with self._connect() as connection:
            result = connection.execute(text(query), params or {})
            return result.rowcount

    def insert_returning(self, query: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Executa um INSERT e retorna a linha inserida

        Returns:
            A linha completa, ou None se o INSERT não gravou nada
            (ex.: ON CONFLICT DO NOTHING)
        """
        with self._connect() as connection:
            row = connection.execute(text(f"{query} RETURNING *"), params or {}).mappings().first()
            return dict(row) if row is not None else None


def create_db_engine(database_url: str) -> Engine:
    """
    Cria o engine do SQLAlchemy para a URL configurada

    O backend é escolhido uma única vez, no início do processo.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=False,
        )

        # Habilita foreign keys no SQLite para que os cascades funcionem
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        engine = create_engine(url, pool_pre_ping=True, echo=False)

    return engine


def create_store(config: AppConfig) -> RowStore:
    """Cria o RowStore a partir da configuração"""
    engine = create_db_engine(config.database_url)
    logger.info(f"Usando banco de dados {engine.dialect.name}")
    return RowStore(engine)


def init_schema(store: RowStore) -> None:
    """Cria as tabelas que ainda não existem"""
    metadata.create_all(store.engine)
    logger.info("Tabelas do banco de dados inicializadas")
