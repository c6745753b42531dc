from typing import Any, Dict, List

from loguru import logger

from ..errors import NotFoundError, validate_payload
from ..models.entities import Holiday, Sprint
from ..models.requests import HolidayCreate
from ..storage.repositories import HolidayRepository, MemberRepository, SprintRepository
from ..storage.row_store import RowStore
from .capacity import is_working_day


class HolidayService:
    """Serviço de feriados e ausências dos membros nas sprints"""

    def __init__(self, store: RowStore):
        self.store = store

    def list_by_sprint(self, sprint_id: int) -> List[Holiday]:
        return HolidayRepository(self.store).get_by_sprint(sprint_id)

    def list_by_sprint_and_member(self, sprint_id: int, member_id: int) -> List[Holiday]:
        return HolidayRepository(self.store).get_by_sprint_and_member(sprint_id, member_id)

    def _check_references(self, tx: RowStore, payload: HolidayCreate) -> Sprint:
        sprint = SprintRepository(tx).get_by_id(payload.sprint_id)
        if sprint is None:
            raise NotFoundError("Sprint", payload.sprint_id)
        if MemberRepository(tx).get_by_id(payload.member_id) is None:
            raise NotFoundError("Membro", payload.member_id)

        # Aceito, mas não deveria acontecer pelo uso normal do calendário
        if not sprint.contains(payload.date):
            logger.warning(
                f"Feriado em {payload.date} fora da sprint {sprint.name} "
                f"({sprint.start_date} a {sprint.end_date})"
            )
        elif not is_working_day(payload.date):
            logger.warning(f"Feriado em {payload.date} cai em fim de semana (sprint {sprint.name})")
        return sprint

    def create_holiday(self, data: Dict[str, Any]) -> Holiday:
        """
        Registra um dia de ausência de um membro em uma sprint

        Raises:
            NotFoundError: Se a sprint ou o membro não existirem
        """
        payload = validate_payload(HolidayCreate, data)

        with self.store.transaction() as tx:
            self._check_references(tx, payload)
            holiday = HolidayRepository(tx).create(payload.model_dump())

        logger.info(f"Feriado registrado: membro {holiday.member_id} em {holiday.date} (sprint {holiday.sprint_id})")
        return holiday

    def delete_holiday(self, holiday_id: int) -> None:
        if not HolidayRepository(self.store).delete(holiday_id):
            raise NotFoundError("Feriado", holiday_id)
        logger.info(f"Feriado {holiday_id} removido")

    def toggle_holiday(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Alterna a ausência de um membro em uma data da sprint

        Args:
            data: sprint_id, member_id e date

        Returns:
            Dict[str, Any]: action "removed" com a chave removida, ou action
            "added" com o feriado criado
        """
        payload = validate_payload(HolidayCreate, data)

        with self.store.transaction() as tx:
            repository = HolidayRepository(tx)
            if repository.delete_by_key(payload.sprint_id, payload.member_id, payload.date):
                logger.info(f"Feriado desmarcado: membro {payload.member_id} em {payload.date}")
                return {"action": "removed", **payload.model_dump(mode="json")}

            self._check_references(tx, payload)
            holiday = repository.create(payload.model_dump())

        logger.info(f"Feriado marcado: membro {holiday.member_id} em {holiday.date}")
        return {"action": "added", **holiday.model_dump(mode="json")}

    def bulk_create(self, items: List[Dict[str, Any]]) -> int:
        """
        Registra vários feriados de uma vez, ignorando os que já existem

        Todos os itens são validados antes da gravação, e a gravação ocorre em
        uma única transação.

        Args:
            items: Lista de {sprint_id, member_id, date}

        Returns:
            int: Quantidade de feriados efetivamente criados
        """
        payloads = [validate_payload(HolidayCreate, item) for item in items]

        with self.store.transaction() as tx:
            repository = HolidayRepository(tx)
            created = 0
            for payload in payloads:
                self._check_references(tx, payload)
                if repository.insert_ignore(payload.model_dump()):
                    created += 1

        logger.info(f"{created} de {len(payloads)} feriado(s) criados em lote")
        return created
