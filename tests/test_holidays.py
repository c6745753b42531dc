import pytest
from datetime import date

from sprint_capacity.errors import InvalidInputError, NotFoundError
from sprint_capacity.services.holidays import HolidayService
from sprint_capacity.services.sprints import SprintService


@pytest.fixture
def service(store):
    """Fixture para o serviço de feriados"""
    return HolidayService(store)


@pytest.fixture
def sprint(store, team):
    """Fixture para uma sprint de duas semanas (17/03 a 30/03/2024)"""
    return SprintService(store).create_sprint(
        {"team_id": team.id, "name": "Sprint 1", "start_date": "2024-03-17", "end_date": "2024-03-30"}
    )


@pytest.fixture
def ana(team, add_member):
    return add_member(team, "Ana", 8)


def test_create_and_list(service, sprint, ana, add_member, team):
    """Testa o registro e a listagem de ausências"""
    bruno = add_member(team, "Bruno", 5)
    service.create_holiday({"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-19"})
    service.create_holiday({"sprint_id": sprint.id, "member_id": bruno.id, "date": "2024-03-18"})
    service.create_holiday({"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-18"})

    holidays = service.list_by_sprint(sprint.id)
    assert [(h.date, h.member_id) for h in holidays] == [
        (date(2024, 3, 18), ana.id),
        (date(2024, 3, 18), bruno.id),
        (date(2024, 3, 19), ana.id),
    ]
    assert [h.date for h in service.list_by_sprint_and_member(sprint.id, ana.id)] == [
        date(2024, 3, 18),
        date(2024, 3, 19),
    ]


def test_create_with_unknown_references(service, sprint, ana):
    """Testa o registro com sprint ou membro inexistentes"""
    with pytest.raises(NotFoundError):
        service.create_holiday({"sprint_id": 999, "member_id": ana.id, "date": "2024-03-18"})
    with pytest.raises(NotFoundError):
        service.create_holiday({"sprint_id": sprint.id, "member_id": 999, "date": "2024-03-18"})
    with pytest.raises(InvalidInputError):
        service.create_holiday({"sprint_id": sprint.id, "member_id": ana.id, "date": "18/03/2024"})


def test_outside_window_and_weekend_are_accepted_with_warning(service, sprint, ana, log_messages):
    """Testa que datas fora da sprint ou em fim de semana geram apenas aviso"""
    outside = service.create_holiday({"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-04-10"})
    friday = service.create_holiday({"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-22"})

    assert outside.id is not None
    assert friday.id is not None
    assert any("fora da sprint" in message for message in log_messages)
    assert any("fim de semana" in message for message in log_messages)


def test_toggle_adds_then_removes(service, sprint, ana):
    """Testa que o toggle alterna a ausência"""
    payload = {"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-18"}

    added = service.toggle_holiday(payload)
    assert added["action"] == "added"
    assert added["date"] == "2024-03-18"
    assert added["id"] is not None
    assert len(service.list_by_sprint(sprint.id)) == 1

    removed = service.toggle_holiday(payload)
    assert removed == {"action": "removed", "sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-18"}
    assert service.list_by_sprint(sprint.id) == []


def test_delete(service, sprint, ana):
    """Testa a remoção por id"""
    holiday = service.create_holiday({"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-18"})

    service.delete_holiday(holiday.id)

    assert service.list_by_sprint(sprint.id) == []
    with pytest.raises(NotFoundError):
        service.delete_holiday(holiday.id)


def test_bulk_create_ignores_existing(service, sprint, ana):
    """Testa que o registro em lote ignora ausências já existentes"""
    service.create_holiday({"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-18"})

    created = service.bulk_create([
        {"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-18"},
        {"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-19"},
        {"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-20"},
    ])

    assert created == 2
    assert len(service.list_by_sprint(sprint.id)) == 3


def test_bulk_create_is_atomic(service, sprint, ana):
    """Testa que um item inválido impede a gravação do lote inteiro"""
    with pytest.raises(NotFoundError):
        service.bulk_create([
            {"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-18"},
            {"sprint_id": sprint.id, "member_id": 999, "date": "2024-03-19"},
        ])

    with pytest.raises(InvalidInputError):
        service.bulk_create([
            {"sprint_id": sprint.id, "member_id": ana.id, "date": "2024-03-18"},
            {"sprint_id": sprint.id, "member_id": ana.id},
        ])

    assert service.list_by_sprint(sprint.id) == []
