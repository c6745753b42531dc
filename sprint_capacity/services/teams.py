from typing import Any, Dict, List

from loguru import logger

from ..errors import NotFoundError, validate_payload
from ..models.entities import Team, TeamMember
from ..models.requests import MemberCreate, MemberPatch, TeamCreate, TeamPatch
from ..storage.repositories import MemberRepository, TeamRepository
from ..storage.row_store import RowStore


class TeamService:
    """Serviço de times e da associação time-membro"""

    def __init__(self, store: RowStore):
        self.store = store

    def list_teams(self) -> List[Team]:
        return TeamRepository(self.store).get_all()

    def get_team(self, team_id: int) -> Team:
        team = TeamRepository(self.store).get_by_id(team_id)
        if team is None:
            raise NotFoundError("Time", team_id)
        return team

    def create_team(self, data: Dict[str, Any]) -> Team:
        payload = validate_payload(TeamCreate, data)
        team = TeamRepository(self.store).create(payload.model_dump())
        logger.info(f"Time criado: {team.name} (id {team.id})")
        return team

    def update_team(self, team_id: int, data: Dict[str, Any]) -> Team:
        """
        Atualiza parcialmente um time

        Campos omitidos permanecem inalterados; logo_url aceita null para
        remover o logo.
        """
        changes = validate_payload(TeamPatch, data).changes()

        with self.store.transaction() as tx:
            repository = TeamRepository(tx)
            if repository.get_by_id(team_id) is None:
                raise NotFoundError("Time", team_id)
            repository.update(team_id, changes)
            updated = repository.get_by_id(team_id)

        logger.info(f"Time {team_id} atualizado: {sorted(changes)}")
        return updated

    def delete_team(self, team_id: int) -> None:
        """Remove o time e, em cascata, suas sprints e associações"""
        if not TeamRepository(self.store).delete(team_id):
            raise NotFoundError("Time", team_id)
        logger.info(f"Time {team_id} removido")

    def list_members(self, team_id: int) -> List[TeamMember]:
        """
        Lista os membros do time

        Raises:
            NotFoundError: Se o time não existir
        """
        repository = TeamRepository(self.store)
        if repository.get_by_id(team_id) is None:
            raise NotFoundError("Time", team_id)
        return repository.get_members(team_id)

    def add_member(self, team_id: int, member_id: int) -> bool:
        """
        Associa um membro a um time

        Args:
            team_id: ID do time
            member_id: ID do membro

        Returns:
            bool: False se o membro já fazia parte do time
        """
        with self.store.transaction() as tx:
            if TeamRepository(tx).get_by_id(team_id) is None:
                raise NotFoundError("Time", team_id)
            if MemberRepository(tx).get_by_id(member_id) is None:
                raise NotFoundError("Membro", member_id)
            added = TeamRepository(tx).add_member(team_id, member_id)

        if added:
            logger.info(f"Membro {member_id} adicionado ao time {team_id}")
        else:
            logger.debug(f"Membro {member_id} já pertence ao time {team_id}")
        return added

    def remove_member(self, team_id: int, member_id: int) -> None:
        if not TeamRepository(self.store).remove_member(team_id, member_id):
            raise NotFoundError("Associação time/membro", f"{team_id}/{member_id}")
        logger.info(f"Membro {member_id} removido do time {team_id}")

    def teams_of_member(self, member_id: int) -> List[Team]:
        """Times dos quais o membro faz parte"""
        if MemberRepository(self.store).get_by_id(member_id) is None:
            raise NotFoundError("Membro", member_id)
        return TeamRepository(self.store).get_teams_by_member(member_id)


class MemberService:
    """Serviço de membros"""

    def __init__(self, store: RowStore):
        self.store = store

    def list_members(self) -> List[TeamMember]:
        return MemberRepository(self.store).get_all()

    def get_member(self, member_id: int) -> TeamMember:
        member = MemberRepository(self.store).get_by_id(member_id)
        if member is None:
            raise NotFoundError("Membro", member_id)
        return member

    def create_member(self, data: Dict[str, Any]) -> TeamMember:
        payload = validate_payload(MemberCreate, data)
        member = MemberRepository(self.store).create(payload.model_dump())
        logger.info(f"Membro criado: {member.name} ({member.role}, capacity {member.default_capacity})")
        return member

    def update_member(self, member_id: int, data: Dict[str, Any]) -> TeamMember:
        changes = validate_payload(MemberPatch, data).changes()

        with self.store.transaction() as tx:
            repository = MemberRepository(tx)
            if repository.get_by_id(member_id) is None:
                raise NotFoundError("Membro", member_id)
            repository.update(member_id, changes)
            updated = repository.get_by_id(member_id)

        logger.info(f"Membro {member_id} atualizado: {sorted(changes)}")
        return updated

    def delete_member(self, member_id: int) -> None:
        if not MemberRepository(self.store).delete(member_id):
            raise NotFoundError("Membro", member_id)
        logger.info(f"Membro {member_id} removido")
