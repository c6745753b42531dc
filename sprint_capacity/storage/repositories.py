"""
Repositórios de acesso ao banco de dados

Cada repositório traduz pedidos semânticos ("membros do time X", "feriados da
sprint Y") em SQL parametrizado sobre o RowStore e devolve entidades.
"""
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..models.entities import (
    Holiday,
    QuarterSummary,
    RetroItem,
    Sprint,
    SprintTemplate,
    Team,
    TeamMember,
)
from .row_store import RowStore


def to_params(values: Dict[str, Any]) -> Dict[str, Any]:
    """Converte datas e enums para o formato gravado no banco"""
    params = {}
    for key, value in values.items():
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        params[key] = value
    return params


def build_update(table: str, fields: Iterable[str]) -> str:
    """
    Monta um UPDATE parametrizado para os campos informados

    Os nomes de campo vêm dos modelos de patch, nunca da entrada do usuário.
    """
    assignments = ", ".join(f"{field} = :{field}" for field in fields)
    return f"UPDATE {table} SET {assignments} WHERE id = :id"


def build_insert(table: str, fields: Iterable[str]) -> str:
    """Monta um INSERT parametrizado para os campos informados"""
    fields = list(fields)
    columns = ", ".join(fields)
    placeholders = ", ".join(f":{field}" for field in fields)
    return f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"


class _Repository:
    table: str = ""

    def __init__(self, store: RowStore):
        self.store = store

    def _insert(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return self.store.insert_returning(build_insert(self.table, values), to_params(values))

    def _update(self, entity_id: int, changes: Dict[str, Any]) -> bool:
        if not changes:
            return False
        params = to_params(changes)
        params["id"] = entity_id
        return self.store.execute(build_update(self.table, changes), params) > 0

    def _delete(self, entity_id: int) -> bool:
        return self.store.execute(f"DELETE FROM {self.table} WHERE id = :id", {"id": entity_id}) > 0


class TeamRepository(_Repository):
    """Repositório de times e da relação de membros"""

    table = "teams"

    def get_all(self) -> List[Team]:
        rows = self.store.fetch_all("SELECT * FROM teams ORDER BY name")
        return [Team(**row) for row in rows]

    def get_by_id(self, team_id: int) -> Optional[Team]:
        row = self.store.fetch_one("SELECT * FROM teams WHERE id = :id", {"id": team_id})
        return Team(**row) if row else None

    def create(self, values: Dict[str, Any]) -> Team:
        return Team(**self._insert(values))

    def update(self, team_id: int, changes: Dict[str, Any]) -> bool:
        return self._update(team_id, changes)

    def delete(self, team_id: int) -> bool:
        return self._delete(team_id)

    def get_members(self, team_id: int) -> List[TeamMember]:
        """Membros do time, ordenados por nome"""
        rows = self.store.fetch_all(
            """
            SELECT tm.* FROM team_members tm
            INNER JOIN team_members_teams tmt ON tm.id = tmt.member_id
            WHERE tmt.team_id = :team_id
            ORDER BY tm.name
            """,
            {"team_id": team_id},
        )
        return [TeamMember(**row) for row in rows]

    def add_member(self, team_id: int, member_id: int) -> bool:
        """Associa o membro ao time; retorna False se já estava associado"""
        inserted = self.store.execute(
            """
            INSERT INTO team_members_teams (team_id, member_id) VALUES (:team_id, :member_id)
            ON CONFLICT (team_id, member_id) DO NOTHING
            """,
            {"team_id": team_id, "member_id": member_id},
        )
        return inserted > 0

    def remove_member(self, team_id: int, member_id: int) -> bool:
        removed = self.store.execute(
            "DELETE FROM team_members_teams WHERE team_id = :team_id AND member_id = :member_id",
            {"team_id": team_id, "member_id": member_id},
        )
        return removed > 0

    def get_teams_by_member(self, member_id: int) -> List[Team]:
        rows = self.store.fetch_all(
            """
            SELECT t.* FROM teams t
            INNER JOIN team_members_teams tmt ON t.id = tmt.team_id
            WHERE tmt.member_id = :member_id
            ORDER BY t.name
            """,
            {"member_id": member_id},
        )
        return [Team(**row) for row in rows]


class MemberRepository(_Repository):
    """Repositório de membros"""

    table = "team_members"

    def get_all(self) -> List[TeamMember]:
        rows = self.store.fetch_all("SELECT * FROM team_members ORDER BY name")
        return [TeamMember(**row) for row in rows]

    def get_by_id(self, member_id: int) -> Optional[TeamMember]:
        row = self.store.fetch_one("SELECT * FROM team_members WHERE id = :id", {"id": member_id})
        return TeamMember(**row) if row else None

    def create(self, values: Dict[str, Any]) -> TeamMember:
        return TeamMember(**self._insert(values))

    def update(self, member_id: int, changes: Dict[str, Any]) -> bool:
        return self._update(member_id, changes)

    def delete(self, member_id: int) -> bool:
        return self._delete(member_id)


class SprintRepository(_Repository):
    """Repositório de sprints"""

    table = "sprints"

    def get_all(self, team_id: Optional[int] = None) -> List[Sprint]:
        if team_id is None:
            rows = self.store.fetch_all("SELECT * FROM sprints ORDER BY start_date DESC")
        else:
            rows = self.store.fetch_all(
                "SELECT * FROM sprints WHERE team_id = :team_id ORDER BY start_date DESC",
                {"team_id": team_id},
            )
        return [Sprint(**row) for row in rows]

    def get_by_id(self, sprint_id: int) -> Optional[Sprint]:
        row = self.store.fetch_one("SELECT * FROM sprints WHERE id = :id", {"id": sprint_id})
        return Sprint(**row) if row else None

    def get_current(self, team_id: Optional[int] = None) -> Optional[Sprint]:
        if team_id is None:
            row = self.store.fetch_one(
                "SELECT * FROM sprints WHERE is_current = :flag ORDER BY start_date DESC LIMIT 1",
                {"flag": True},
            )
        else:
            row = self.store.fetch_one(
                "SELECT * FROM sprints WHERE team_id = :team_id AND is_current = :flag LIMIT 1",
                {"team_id": team_id, "flag": True},
            )
        return Sprint(**row) if row else None

    def get_previous(self, sprint: Sprint) -> Optional[Sprint]:
        """Sprint do mesmo time que começa imediatamente antes da informada"""
        row = self.store.fetch_one(
            """
            SELECT * FROM sprints
            WHERE team_id = :team_id AND id != :id AND start_date < :start_date
            ORDER BY start_date DESC, id DESC
            LIMIT 1
            """,
            to_params({"team_id": sprint.team_id, "id": sprint.id, "start_date": sprint.start_date}),
        )
        return Sprint(**row) if row else None

    def create(self, values: Dict[str, Any]) -> Sprint:
        return Sprint(**self._insert(values))

    def update(self, sprint_id: int, changes: Dict[str, Any]) -> bool:
        return self._update(sprint_id, changes)

    def clear_current(self, team_id: int, except_id: Optional[int] = None) -> int:
        """Desmarca is_current em todas as sprints do time, exceto except_id"""
        return self.store.execute(
            """
            UPDATE sprints SET is_current = :flag
            WHERE team_id = :team_id AND is_current = :current AND id != :except_id
            """,
            {"flag": False, "current": True, "team_id": team_id, "except_id": except_id or 0},
        )

    def delete(self, sprint_id: int) -> bool:
        return self._delete(sprint_id)


class TemplateRepository(_Repository):
    """Repositório de templates de sprint"""

    table = "sprint_templates"

    def get_all(self) -> List[SprintTemplate]:
        rows = self.store.fetch_all(
            "SELECT * FROM sprint_templates ORDER BY year DESC, quarter DESC, sprint_number ASC"
        )
        return [SprintTemplate(**row) for row in rows]

    def get_by_id(self, template_id: int) -> Optional[SprintTemplate]:
        row = self.store.fetch_one("SELECT * FROM sprint_templates WHERE id = :id", {"id": template_id})
        return SprintTemplate(**row) if row else None

    def get_by_quarter(self, year: int, quarter: int) -> List[SprintTemplate]:
        rows = self.store.fetch_all(
            """
            SELECT * FROM sprint_templates
            WHERE year = :year AND quarter = :quarter
            ORDER BY sprint_number ASC
            """,
            {"year": year, "quarter": quarter},
        )
        return [SprintTemplate(**row) for row in rows]

    def get_available_quarters(self) -> List[QuarterSummary]:
        rows = self.store.fetch_all(
            "SELECT DISTINCT year, quarter FROM sprint_templates ORDER BY year DESC, quarter DESC"
        )
        return [QuarterSummary(**row) for row in rows]

    def create(self, values: Dict[str, Any]) -> SprintTemplate:
        return SprintTemplate(**self._insert(values))

    def update(self, template_id: int, changes: Dict[str, Any]) -> bool:
        return self._update(template_id, changes)

    def delete(self, template_id: int) -> bool:
        """Remove o template, desvinculando as sprints que o referenciam"""
        self.store.execute(
            "UPDATE sprints SET template_id = NULL WHERE template_id = :id",
            {"id": template_id},
        )
        return self._delete(template_id)


class HolidayRepository(_Repository):
    """Repositório de feriados/ausências"""

    table = "holidays"

    def get_by_sprint(self, sprint_id: int) -> List[Holiday]:
        rows = self.store.fetch_all(
            "SELECT * FROM holidays WHERE sprint_id = :sprint_id ORDER BY date, member_id",
            {"sprint_id": sprint_id},
        )
        return [Holiday(**row) for row in rows]

    def get_by_sprint_and_member(self, sprint_id: int, member_id: int) -> List[Holiday]:
        rows = self.store.fetch_all(
            """
            SELECT * FROM holidays
            WHERE sprint_id = :sprint_id AND member_id = :member_id
            ORDER BY date
            """,
            {"sprint_id": sprint_id, "member_id": member_id},
        )
        return [Holiday(**row) for row in rows]

    def create(self, values: Dict[str, Any]) -> Holiday:
        return Holiday(**self._insert(values))

    def delete(self, holiday_id: int) -> bool:
        return self._delete(holiday_id)

    def delete_by_key(self, sprint_id: int, member_id: int, day: date) -> bool:
        removed = self.store.execute(
            """
            DELETE FROM holidays
            WHERE sprint_id = :sprint_id AND member_id = :member_id AND date = :date
            """,
            to_params({"sprint_id": sprint_id, "member_id": member_id, "date": day}),
        )
        return removed > 0

    def insert_ignore(self, values: Dict[str, Any]) -> bool:
        """Insere o feriado se ainda não existir; retorna True se gravou"""
        inserted = self.store.execute(
            """
            INSERT INTO holidays (sprint_id, member_id, date) VALUES (:sprint_id, :member_id, :date)
            ON CONFLICT (sprint_id, member_id, date) DO NOTHING
            """,
            to_params(values),
        )
        return inserted > 0


class RetroRepository(_Repository):
    """Repositório de itens de retrospectiva"""

    table = "retro_items"

    def get_by_sprint(self, sprint_id: int) -> List[RetroItem]:
        rows = self.store.fetch_all(
            "SELECT * FROM retro_items WHERE sprint_id = :sprint_id ORDER BY created_at DESC, id DESC",
            {"sprint_id": sprint_id},
        )
        return [RetroItem(**row) for row in rows]

    def get_by_team(self, team_id: int) -> List[RetroItem]:
        rows = self.store.fetch_all(
            "SELECT * FROM retro_items WHERE team_id = :team_id ORDER BY created_at DESC, id DESC",
            {"team_id": team_id},
        )
        return [RetroItem(**row) for row in rows]

    def get_by_id(self, item_id: int) -> Optional[RetroItem]:
        row = self.store.fetch_one("SELECT * FROM retro_items WHERE id = :id", {"id": item_id})
        return RetroItem(**row) if row else None

    def create(self, values: Dict[str, Any]) -> RetroItem:
        return RetroItem(**self._insert(values))

    def update(self, item_id: int, changes: Dict[str, Any]) -> bool:
        return self._update(item_id, changes)

    def delete(self, item_id: int) -> bool:
        return self._delete(item_id)

    def delete_by_sprint(self, sprint_id: int) -> int:
        return self.store.execute(
            "DELETE FROM retro_items WHERE sprint_id = :sprint_id",
            {"sprint_id": sprint_id},
        )
