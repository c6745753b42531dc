import pytest

from sqlalchemy.exc import IntegrityError

from sprint_capacity.errors import InvalidInputError, NotFoundError
from sprint_capacity.services.sprints import SprintService
from sprint_capacity.services.teams import MemberService, TeamService


@pytest.fixture
def teams(store):
    """Fixture para o serviço de times"""
    return TeamService(store)


@pytest.fixture
def members(store):
    """Fixture para o serviço de membros"""
    return MemberService(store)


def test_create_and_list_teams(teams):
    """Testa a criação e a listagem ordenada por nome"""
    teams.create_team({"name": "Zeta"})
    alpha = teams.create_team({"name": "Alpha", "logo_url": "https://img.example.com/alpha.png"})

    assert [t.name for t in teams.list_teams()] == ["Alpha", "Zeta"]
    assert teams.get_team(alpha.id).logo_url == "https://img.example.com/alpha.png"
    assert teams.get_team(alpha.id).created_at is not None


def test_create_team_requires_name(teams):
    """Testa que o nome do time é obrigatório"""
    with pytest.raises(InvalidInputError):
        teams.create_team({"name": ""})
    with pytest.raises(InvalidInputError):
        teams.create_team({})


def test_team_name_is_unique(teams):
    """Testa que não existem dois times com o mesmo nome"""
    teams.create_team({"name": "Alpha"})
    with pytest.raises(IntegrityError):
        teams.create_team({"name": "Alpha"})


def test_update_team_partial_and_clear_logo(teams):
    """Testa o patch do time, incluindo a remoção do logo"""
    team = teams.create_team({"name": "Alpha", "logo_url": "https://img.example.com/a.png"})

    renamed = teams.update_team(team.id, {"name": "Beta"})
    assert renamed.name == "Beta"
    assert renamed.logo_url == "https://img.example.com/a.png"

    cleared = teams.update_team(team.id, {"logo_url": None})
    assert cleared.logo_url is None
    assert cleared.name == "Beta"

    with pytest.raises(InvalidInputError):
        teams.update_team(team.id, {"name": None})
    with pytest.raises(NotFoundError):
        teams.update_team(999, {"name": "X"})


def test_membership(teams, members, team):
    """Testa a associação e a remoção de membros do time"""
    bruno = members.create_member({"name": "Bruno", "role": "QA", "default_capacity": 5})
    ana = members.create_member({"name": "Ana", "role": "Developer", "default_capacity": 8})

    assert teams.add_member(team.id, bruno.id) is True
    assert teams.add_member(team.id, ana.id) is True
    assert teams.add_member(team.id, ana.id) is False

    assert [m.name for m in teams.list_members(team.id)] == ["Ana", "Bruno"]
    assert [t.id for t in teams.teams_of_member(ana.id)] == [team.id]

    teams.remove_member(team.id, ana.id)
    assert [m.name for m in teams.list_members(team.id)] == ["Bruno"]
    with pytest.raises(NotFoundError):
        teams.remove_member(team.id, ana.id)


def test_member_in_multiple_teams(teams, team, other_team, add_member):
    """Testa um membro que pertence a dois times"""
    ana = add_member(team, "Ana", 8)
    teams.add_member(other_team.id, ana.id)

    assert [t.name for t in teams.teams_of_member(ana.id)] == ["Pagamentos", "Plataforma"]


def test_add_member_unknown_references(teams, members, team):
    """Testa a associação com time ou membro inexistentes"""
    ana = members.create_member({"name": "Ana", "role": "Developer", "default_capacity": 8})
    with pytest.raises(NotFoundError):
        teams.add_member(999, ana.id)
    with pytest.raises(NotFoundError):
        teams.add_member(team.id, 999)


def test_delete_team_cascades(store, teams, team, add_member):
    """Testa que remover o time remove suas sprints e associações"""
    ana = add_member(team, "Ana", 8)
    sprint = SprintService(store).create_sprint(
        {"team_id": team.id, "name": "S1", "start_date": "2024-03-17", "end_date": "2024-03-30"}
    )

    teams.delete_team(team.id)

    assert SprintService(store).list_sprints() == []
    assert teams.teams_of_member(ana.id) == []
    with pytest.raises(NotFoundError):
        SprintService(store).get_sprint(sprint.id)
    with pytest.raises(NotFoundError):
        teams.delete_team(team.id)


def test_member_crud(members):
    """Testa o CRUD de membros"""
    member = members.create_member({"name": "Ana", "role": "Developer", "default_capacity": 8})
    assert members.get_member(member.id).default_capacity == 8

    updated = members.update_member(member.id, {"default_capacity": 10})
    assert updated.default_capacity == 10
    assert updated.role == "Developer"

    members.delete_member(member.id)
    assert members.list_members() == []
    with pytest.raises(NotFoundError):
        members.get_member(member.id)


def test_member_validation(members):
    """Testa a validação dos campos de membro"""
    with pytest.raises(InvalidInputError) as exc_info:
        members.create_member({"name": "Ana", "role": "Developer", "default_capacity": -1})
    assert "default_capacity" in str(exc_info.value)
    with pytest.raises(InvalidInputError):
        members.create_member({"name": "Ana", "default_capacity": 8})
