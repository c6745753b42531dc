"""
Fixtures compartilhadas pelos testes

Cada teste usa um banco SQLite novo em um diretório temporário.
"""
from datetime import date
from typing import Callable, List

import pytest
from loguru import logger

from sprint_capacity.models.entities import Team, TeamMember
from sprint_capacity.services.teams import MemberService, TeamService
from sprint_capacity.storage.row_store import RowStore, create_db_engine, init_schema


@pytest.fixture
def store(tmp_path) -> RowStore:
    """Fixture para um RowStore com o esquema criado"""
    engine = create_db_engine(f"sqlite:///{tmp_path}/test.db")
    row_store = RowStore(engine)
    init_schema(row_store)
    yield row_store
    engine.dispose()


@pytest.fixture
def team(store) -> Team:
    """Fixture para um time"""
    return TeamService(store).create_team({"name": "Plataforma"})


@pytest.fixture
def other_team(store) -> Team:
    """Fixture para um segundo time"""
    return TeamService(store).create_team({"name": "Pagamentos"})


@pytest.fixture
def add_member(store) -> Callable[..., TeamMember]:
    """Fixture que cria um membro e o associa ao time informado"""

    def _add_member(team: Team, name: str, default_capacity: int, role: str = "Developer") -> TeamMember:
        member = MemberService(store).create_member(
            {"name": name, "role": role, "default_capacity": default_capacity}
        )
        TeamService(store).add_member(team.id, member.id)
        return member

    return _add_member


@pytest.fixture
def log_messages() -> List[str]:
    """Fixture que captura as mensagens de WARNING do loguru"""
    messages: List[str] = []
    handler_id = logger.add(lambda msg: messages.append(msg.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def monday() -> date:
    """Segunda-feira, 18/03/2024"""
    return date(2024, 3, 18)
