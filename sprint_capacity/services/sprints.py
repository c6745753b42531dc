from typing import Any, Dict, List, Optional

from loguru import logger

from ..errors import InvalidInputError, NotFoundError, validate_payload
from ..models.entities import Sprint
from ..models.requests import SprintCreate, SprintPatch
from ..storage.repositories import SprintRepository, TeamRepository
from ..storage.row_store import RowStore


class SprintService:
    """Serviço de ciclo de vida das sprints"""

    def __init__(self, store: RowStore):
        self.store = store

    def list_sprints(self, team_id: Optional[int] = None) -> List[Sprint]:
        """Lista as sprints, da mais recente para a mais antiga"""
        return SprintRepository(self.store).get_all(team_id)

    def get_sprint(self, sprint_id: int) -> Sprint:
        sprint = SprintRepository(self.store).get_by_id(sprint_id)
        if sprint is None:
            raise NotFoundError("Sprint", sprint_id)
        return sprint

    def get_current(self, team_id: Optional[int] = None) -> Sprint:
        """
        Retorna a sprint atual do time (ou de qualquer time)

        Raises:
            NotFoundError: Se não houver sprint marcada como atual
        """
        sprint = SprintRepository(self.store).get_current(team_id)
        if sprint is None:
            raise NotFoundError("Sprint atual", team_id if team_id is not None else "todos os times")
        return sprint

    def create_sprint(self, data: Dict[str, Any]) -> Sprint:
        """
        Cria uma sprint avulsa

        Se for criada como atual, as demais sprints do time deixam de ser
        atuais na mesma transação.

        Args:
            data: team_id, name, start_date, end_date, is_current e load_factor

        Returns:
            Sprint: Sprint criada
        """
        payload = validate_payload(SprintCreate, data)

        with self.store.transaction() as tx:
            if TeamRepository(tx).get_by_id(payload.team_id) is None:
                raise NotFoundError("Time", payload.team_id)

            repository = SprintRepository(tx)
            if payload.is_current:
                repository.clear_current(payload.team_id)
            sprint = repository.create(payload.model_dump())

        logger.info(f"Sprint criada: {sprint.name} ({sprint.start_date} a {sprint.end_date})")
        return sprint

    def update_sprint(self, sprint_id: int, data: Dict[str, Any]) -> Sprint:
        """
        Atualiza parcialmente uma sprint

        Args:
            sprint_id: ID da sprint
            data: Campos a alterar

        Returns:
            Sprint: Sprint atualizada

        Raises:
            NotFoundError: Se a sprint não existir
            InvalidInputError: Se o patch for inválido ou as datas ficarem invertidas
        """
        patch = validate_payload(SprintPatch, data)
        changes = patch.changes()

        with self.store.transaction() as tx:
            repository = SprintRepository(tx)
            current = repository.get_by_id(sprint_id)
            if current is None:
                raise NotFoundError("Sprint", sprint_id)

            start_date = changes.get("start_date", current.start_date)
            end_date = changes.get("end_date", current.end_date)
            if start_date > end_date:
                raise InvalidInputError(f"start_date {start_date} é posterior a end_date {end_date}")

            if changes.get("is_current"):
                repository.clear_current(current.team_id, except_id=sprint_id)
            repository.update(sprint_id, changes)
            updated = repository.get_by_id(sprint_id)

        logger.info(f"Sprint {sprint_id} atualizada: {sorted(changes)}")
        return updated

    def set_current(self, sprint_id: int) -> Sprint:
        """
        Marca a sprint como atual do seu time

        As outras sprints do mesmo time são desmarcadas na mesma transação;
        sprints de outros times não são afetadas.
        """
        with self.store.transaction() as tx:
            repository = SprintRepository(tx)
            sprint = repository.get_by_id(sprint_id)
            if sprint is None:
                raise NotFoundError("Sprint", sprint_id)

            cleared = repository.clear_current(sprint.team_id, except_id=sprint_id)
            repository.update(sprint_id, {"is_current": True})
            updated = repository.get_by_id(sprint_id)

        logger.info(f"Sprint {updated.name} marcada como atual do time {updated.team_id} ({cleared} desmarcada(s))")
        return updated

    def delete_sprint(self, sprint_id: int) -> None:
        """Remove a sprint junto com seus feriados e itens de retro"""
        with self.store.transaction() as tx:
            if not SprintRepository(tx).delete(sprint_id):
                raise NotFoundError("Sprint", sprint_id)
        logger.info(f"Sprint {sprint_id} removida")
