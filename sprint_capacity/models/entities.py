from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

DEFAULT_LOAD_FACTOR = 0.8


class RetroItemType(str, Enum):
    """Tipos de item de retrospectiva"""
    WHAT_WENT_WELL = "what_went_well"
    WHAT_WENT_WRONG = "what_went_wrong"
    LESSON_LEARNED = "lesson_learned"
    TODO = "todo"


class Team(BaseModel):
    """Modelo de um time"""
    id: int
    name: str
    logo_url: Optional[str] = None
    created_at: Optional[datetime] = None


class TeamMember(BaseModel):
    """Modelo de um membro de time"""
    id: int
    name: str
    role: str
    default_capacity: int
    created_at: Optional[datetime] = None


class Sprint(BaseModel):
    """Representa uma sprint de um time"""
    id: int
    team_id: int
    template_id: Optional[int] = None
    name: str
    year: Optional[int] = None
    quarter: Optional[int] = None
    start_date: date
    end_date: date
    is_current: bool = False
    load_factor: Optional[float] = DEFAULT_LOAD_FACTOR
    created_at: Optional[datetime] = None

    @property
    def effective_load_factor(self) -> float:
        """Load factor da sprint, com 0.8 quando não definido"""
        return self.load_factor if self.load_factor else DEFAULT_LOAD_FACTOR

    def contains(self, day: date) -> bool:
        """Verifica se a data está dentro da janela da sprint"""
        return self.start_date <= day <= self.end_date


class SprintTemplate(BaseModel):
    """Janela de sprint reutilizável, independente de time"""
    id: Optional[int] = None
    name: str
    year: int
    quarter: int
    sprint_number: int
    start_date: date
    end_date: date
    duration_weeks: int
    load_factor: float = DEFAULT_LOAD_FACTOR
    created_at: Optional[datetime] = None


class Holiday(BaseModel):
    """Dia de ausência de um membro dentro de uma sprint"""
    id: int
    sprint_id: int
    member_id: int
    date: date


class RetroItem(BaseModel):
    """Item de retrospectiva"""
    id: int
    sprint_id: int
    member_id: int
    team_id: int
    type: RetroItemType
    content: str
    created_at: Optional[datetime] = None


class MemberCapacity(BaseModel):
    """Capacity calculada de um membro na sprint"""
    member_id: int
    member_name: str
    default_capacity: int
    total_working_days: int
    holidays: int
    available_days: int
    capacity: float


class CapacityReport(BaseModel):
    """Relatório de capacity de uma sprint"""
    sprint_id: int
    sprint_name: str
    total_working_days: int
    load_factor: float
    member_capacities: List[MemberCapacity] = Field(default_factory=list)
    total_capacity: float = 0.0


class QuarterSummary(BaseModel):
    """Par (ano, quarter) com templates gerados"""
    year: int
    quarter: int


class RetroInsights(BaseModel):
    """Itens de retro da sprint anterior, agrupados por tipo"""
    sprint_id: int
    previous_sprint: Optional[Sprint] = None
    what_went_well: List[RetroItem] = Field(default_factory=list)
    what_went_wrong: List[RetroItem] = Field(default_factory=list)
    lesson_learned: List[RetroItem] = Field(default_factory=list)
    todo: List[RetroItem] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Indica se não há nenhum item para exibir"""
        return not (self.what_went_well or self.what_went_wrong or self.lesson_learned or self.todo)
