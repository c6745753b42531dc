from collections import Counter
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator, List

from loguru import logger

from ..errors import NotFoundError
from ..models.entities import CapacityReport, Holiday, MemberCapacity, Sprint, TeamMember
from ..storage.repositories import HolidayRepository, SprintRepository, TeamRepository
from ..storage.row_store import RowStore

# Semana de trabalho de domingo a quinta: sexta (4) e sábado (5) são fim de semana
WEEKEND_DAYS = frozenset({4, 5})

# default_capacity é expresso em story points a cada 10 dias úteis
CAPACITY_BASELINE_DAYS = 10


def round1(value: float) -> float:
    """Arredonda para uma casa decimal, com metade para longe do zero"""
    # Soma 0.0 para não devolver -0.0
    return float(Decimal(repr(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)) + 0.0


def iter_dates(start_date: date, end_date: date) -> Iterator[date]:
    """Percorre todas as datas do intervalo fechado [start_date, end_date]"""
    current_date = start_date
    while current_date <= end_date:
        yield current_date
        current_date += timedelta(days=1)


def is_working_day(day: date) -> bool:
    """Verifica se a data é dia útil na semana de trabalho"""
    return day.weekday() not in WEEKEND_DAYS


def count_working_days(start_date: date, end_date: date) -> int:
    """
    Conta o número de dias úteis entre duas datas (excluindo finais de semana)

    Args:
        start_date: Data inicial
        end_date: Data final

    Returns:
        int: Número de dias úteis
    """
    return sum(1 for day in iter_dates(start_date, end_date) if is_working_day(day))


class CapacityCalculator:
    """Cálculo de capacity de uma sprint a partir do calendário e das ausências"""

    def calculate(
        self,
        sprint: Sprint,
        members: List[TeamMember],
        holidays: List[Holiday],
    ) -> CapacityReport:
        """
        Calcula a capacity de cada membro e a capacity total da sprint

        A capacity total é a soma das capacities já arredondadas de cada
        membro, arredondada novamente.

        Args:
            sprint: Sprint a ser calculada
            members: Membros do time da sprint
            holidays: Ausências registradas na sprint

        Returns:
            CapacityReport: Relatório de capacity
        """
        total_working_days = count_working_days(sprint.start_date, sprint.end_date)
        load_factor = sprint.effective_load_factor
        holidays_by_member = Counter(h.member_id for h in holidays)

        member_capacities = []
        for member in members:
            holiday_count = holidays_by_member.get(member.id, 0)
            # Sem clamp: mais ausências que dias úteis resulta em valores negativos
            available_days = total_working_days - holiday_count
            if available_days < 0:
                logger.warning(
                    f"Membro {member.name} tem {holiday_count} ausências para "
                    f"{total_working_days} dias úteis na sprint {sprint.name}"
                )
            capacity = member.default_capacity * available_days * load_factor / CAPACITY_BASELINE_DAYS

            member_capacities.append(
                MemberCapacity(
                    member_id=member.id,
                    member_name=member.name,
                    default_capacity=member.default_capacity,
                    total_working_days=total_working_days,
                    holidays=holiday_count,
                    available_days=available_days,
                    capacity=round1(capacity),
                )
            )

        total_capacity = round1(sum(m.capacity for m in member_capacities))

        return CapacityReport(
            sprint_id=sprint.id,
            sprint_name=sprint.name,
            total_working_days=total_working_days,
            load_factor=load_factor,
            member_capacities=member_capacities,
            total_capacity=total_capacity,
        )


class CapacityService:
    """Serviço que carrega os dados da sprint e calcula a capacity"""

    def __init__(self, store: RowStore, calculator: CapacityCalculator = None):
        self.store = store
        self.calculator = calculator or CapacityCalculator()

    def get_sprint_capacity(self, sprint_id: int) -> CapacityReport:
        """
        Calcula o relatório de capacity de uma sprint

        Args:
            sprint_id: ID da sprint

        Returns:
            CapacityReport: Relatório de capacity

        Raises:
            NotFoundError: Se a sprint não existir
        """
        with self.store.transaction() as tx:
            sprint = SprintRepository(tx).get_by_id(sprint_id)
            if sprint is None:
                raise NotFoundError("Sprint", sprint_id)
            members = TeamRepository(tx).get_members(sprint.team_id)
            holidays = HolidayRepository(tx).get_by_sprint(sprint_id)

        report = self.calculator.calculate(sprint, members, holidays)
        logger.info(
            f"Capacity da sprint {sprint.name}: {report.total_capacity} pontos "
            f"({len(members)} membros, {report.total_working_days} dias úteis)"
        )
        return report
