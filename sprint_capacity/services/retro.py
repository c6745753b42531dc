from typing import Any, Dict, List

from loguru import logger

from ..errors import InvalidInputError, NotFoundError, validate_payload
from ..models.entities import RetroInsights, RetroItem, RetroItemType
from ..models.requests import RetroItemCreate, RetroItemPatch
from ..storage.repositories import MemberRepository, RetroRepository, SprintRepository, TeamRepository
from ..storage.row_store import RowStore

INSIGHTS_PER_TYPE = 3


class RetroService:
    """Serviço de itens de retrospectiva"""

    def __init__(self, store: RowStore):
        self.store = store

    def list_by_sprint(self, sprint_id: int) -> List[RetroItem]:
        return RetroRepository(self.store).get_by_sprint(sprint_id)

    def list_by_team(self, team_id: int) -> List[RetroItem]:
        return RetroRepository(self.store).get_by_team(team_id)

    def get_item(self, item_id: int) -> RetroItem:
        item = RetroRepository(self.store).get_by_id(item_id)
        if item is None:
            raise NotFoundError("Item de retro", item_id)
        return item

    def create_item(self, data: Dict[str, Any]) -> RetroItem:
        """
        Registra um item de retro de um membro em uma sprint

        Raises:
            NotFoundError: Se a sprint, o membro ou o time não existirem
            InvalidInputError: Se o time não for o time da sprint
        """
        payload = validate_payload(RetroItemCreate, data)

        with self.store.transaction() as tx:
            sprint = SprintRepository(tx).get_by_id(payload.sprint_id)
            if sprint is None:
                raise NotFoundError("Sprint", payload.sprint_id)
            if MemberRepository(tx).get_by_id(payload.member_id) is None:
                raise NotFoundError("Membro", payload.member_id)
            if TeamRepository(tx).get_by_id(payload.team_id) is None:
                raise NotFoundError("Time", payload.team_id)
            if sprint.team_id != payload.team_id:
                raise InvalidInputError(
                    f"Sprint {sprint.id} pertence ao time {sprint.team_id}, não ao time {payload.team_id}"
                )
            item = RetroRepository(tx).create(payload.model_dump())

        logger.info(f"Item de retro criado na sprint {item.sprint_id}: {item.type.value}")
        return item

    def update_item(self, item_id: int, data: Dict[str, Any]) -> RetroItem:
        changes = validate_payload(RetroItemPatch, data).changes()

        with self.store.transaction() as tx:
            repository = RetroRepository(tx)
            if repository.get_by_id(item_id) is None:
                raise NotFoundError("Item de retro", item_id)
            repository.update(item_id, changes)
            updated = repository.get_by_id(item_id)

        logger.info(f"Item de retro {item_id} atualizado: {sorted(changes)}")
        return updated

    def delete_item(self, item_id: int) -> None:
        if not RetroRepository(self.store).delete(item_id):
            raise NotFoundError("Item de retro", item_id)
        logger.info(f"Item de retro {item_id} removido")

    def delete_by_sprint(self, sprint_id: int) -> int:
        removed = RetroRepository(self.store).delete_by_sprint(sprint_id)
        logger.info(f"{removed} item(ns) de retro removidos da sprint {sprint_id}")
        return removed

    def previous_sprint_insights(self, sprint_id: int) -> RetroInsights:
        """
        Resume a retro da sprint anterior do mesmo time

        Args:
            sprint_id: ID da sprint atual

        Returns:
            RetroInsights: Até três itens por tipo da sprint anterior; vazio
            quando não há sprint anterior

        Raises:
            NotFoundError: Se a sprint não existir
        """
        with self.store.transaction() as tx:
            sprint = SprintRepository(tx).get_by_id(sprint_id)
            if sprint is None:
                raise NotFoundError("Sprint", sprint_id)

            previous = SprintRepository(tx).get_previous(sprint)
            if previous is None:
                logger.debug(f"Sprint {sprint.name} não tem sprint anterior")
                return RetroInsights(sprint_id=sprint_id)

            items = RetroRepository(tx).get_by_sprint(previous.id)

        grouped: Dict[str, List[RetroItem]] = {item_type.value: [] for item_type in RetroItemType}
        for item in items:
            if len(grouped[item.type.value]) < INSIGHTS_PER_TYPE:
                grouped[item.type.value].append(item)

        return RetroInsights(sprint_id=sprint_id, previous_sprint=previous, **grouped)
