from datetime import date, datetime
from typing import Any, ClassVar, Dict, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .entities import DEFAULT_LOAD_FACTOR, RetroItemType


def parse_iso_date(v: Any) -> Any:
    """Converte uma string YYYY-MM-DD para date"""
    if v is None or isinstance(v, date):
        return v.date() if isinstance(v, datetime) else v
    try:
        return datetime.strptime(str(v), "%Y-%m-%d").date()
    except ValueError as e:
        raise ValueError(f"Data inválida: {v}. Formato esperado: YYYY-MM-DD") from e


class PayloadModel(BaseModel):
    """Base dos payloads de entrada"""

    model_config = ConfigDict(extra="forbid")


class PatchModel(PayloadModel):
    """
    Base para atualizações parciais

    Campos omitidos não são alterados; campos informados sobrescrevem o valor
    atual. Apenas os campos em NULLABLE_FIELDS aceitam null explícito.
    """

    NULLABLE_FIELDS: ClassVar[Set[str]] = set()

    @model_validator(mode="after")
    def reject_explicit_null(self) -> "PatchModel":
        for field in self.model_fields_set:
            if getattr(self, field) is None and field not in self.NULLABLE_FIELDS:
                raise ValueError(f"{field} não pode ser nulo")
        return self

    def changes(self) -> Dict[str, Any]:
        """Retorna apenas os campos informados"""
        return self.model_dump(exclude_unset=True)


class TeamCreate(PayloadModel):
    """Criação de time"""

    name: str = Field(..., min_length=1)
    logo_url: Optional[str] = None


class TeamPatch(PatchModel):
    """Atualização parcial de time"""

    NULLABLE_FIELDS: ClassVar[Set[str]] = {"logo_url"}

    name: Optional[str] = Field(default=None, min_length=1)
    logo_url: Optional[str] = None


class MemberCreate(PayloadModel):
    """Criação de membro"""

    name: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    default_capacity: int = Field(..., ge=0)


class MemberPatch(PatchModel):
    """Atualização parcial de membro"""

    name: Optional[str] = Field(default=None, min_length=1)
    role: Optional[str] = Field(default=None, min_length=1)
    default_capacity: Optional[int] = Field(default=None, ge=0)


class SprintCreate(PayloadModel):
    """Criação de sprint"""

    team_id: int
    name: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    is_current: bool = False
    load_factor: float = Field(default=DEFAULT_LOAD_FACTOR, gt=0, le=1)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_iso_date(v)

    @model_validator(mode="after")
    def validate_window(self) -> "SprintCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date deve ser anterior ou igual a end_date")
        return self


class SprintPatch(PatchModel):
    """Atualização parcial de sprint"""

    name: Optional[str] = Field(default=None, min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: Optional[bool] = None
    load_factor: Optional[float] = Field(default=None, gt=0, le=1)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_iso_date(v)

    @field_validator("is_current")
    @classmethod
    def only_set_current(cls, v: Optional[bool]) -> Optional[bool]:
        # Uma sprint só deixa de ser a atual quando outra assume ou quando é removida
        if v is False:
            raise ValueError("is_current só pode ser alterado para true; use set-current em outra sprint")
        return v


class TemplateCreate(PayloadModel):
    """Criação individual de template"""

    name: str = Field(..., min_length=1)
    year: int = Field(..., ge=1)
    quarter: int = Field(..., ge=1, le=4)
    sprint_number: int = Field(..., ge=1)
    start_date: date
    end_date: date
    duration_weeks: int = Field(..., ge=1, le=8)
    load_factor: float = Field(default=DEFAULT_LOAD_FACTOR, gt=0, le=1)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_iso_date(v)

    @model_validator(mode="after")
    def validate_window(self) -> "TemplateCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date deve ser anterior ou igual a end_date")
        return self


class TemplatePatch(PatchModel):
    """Atualização parcial de template"""

    name: Optional[str] = Field(default=None, min_length=1)
    year: Optional[int] = Field(default=None, ge=1)
    quarter: Optional[int] = Field(default=None, ge=1, le=4)
    sprint_number: Optional[int] = Field(default=None, ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration_weeks: Optional[int] = Field(default=None, ge=1, le=8)
    load_factor: Optional[float] = Field(default=None, gt=0, le=1)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_iso_date(v)


class TemplateGenerationRequest(PayloadModel):
    """Parâmetros de geração dos templates de um quarter"""

    year: int = Field(..., ge=1)
    quarter: int = Field(..., ge=1, le=4)
    duration_weeks: int = Field(..., ge=1, le=8)
    first_sprint_start: date

    @field_validator("first_sprint_start", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_iso_date(v)


class TemplateAdoption(PayloadModel):
    """Adoção de um template por um time, com datas opcionais"""

    team_id: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_iso_date(v)


class HolidayCreate(PayloadModel):
    """Feriado/ausência de um membro em uma sprint"""

    sprint_id: int
    member_id: int
    date: date

    @field_validator("date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_iso_date(v)


class RetroItemCreate(PayloadModel):
    """Criação de item de retrospectiva"""

    sprint_id: int
    member_id: int
    team_id: int
    type: RetroItemType
    content: str = Field(..., min_length=1)


class RetroItemPatch(PatchModel):
    """Atualização parcial de item de retrospectiva"""

    type: Optional[RetroItemType] = None
    content: Optional[str] = Field(default=None, min_length=1)
