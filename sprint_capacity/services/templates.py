from datetime import date, timedelta
from typing import Any, Dict, List, Tuple

from loguru import logger

from ..errors import InvalidInputError, NotFoundError, validate_payload
from ..models.entities import DEFAULT_LOAD_FACTOR, QuarterSummary, Sprint, SprintTemplate
from ..models.requests import (
    TemplateAdoption,
    TemplateCreate,
    TemplateGenerationRequest,
    TemplatePatch,
)
from ..storage.repositories import SprintRepository, TeamRepository, TemplateRepository
from ..storage.row_store import RowStore


def quarter_bounds(year: int, quarter: int) -> Tuple[date, date]:
    """
    Retorna o primeiro e o último dia de calendário do quarter

    Args:
        year: Ano
        quarter: Quarter (1 a 4)

    Returns:
        Tuple[date, date]: (início, fim) do quarter
    """
    if quarter < 1 or quarter > 4:
        raise InvalidInputError(f"Quarter deve estar entre 1 e 4: {quarter}")
    quarter_start = date(year, (quarter - 1) * 3 + 1, 1)
    if quarter == 4:
        quarter_end = date(year, 12, 31)
    else:
        quarter_end = date(year, quarter * 3 + 1, 1) - timedelta(days=1)
    return quarter_start, quarter_end


def template_name(year: int, quarter: int, sprint_number: int) -> str:
    """Nome padrão de um template gerado"""
    return f"{year} Q{quarter} Sprint {sprint_number}"


class SprintTemplateEngine:
    """Geração das janelas de sprint de um quarter em cadência fixa"""

    def plan_quarter(self, request: TemplateGenerationRequest) -> List[SprintTemplate]:
        """
        Divide o quarter em sprints consecutivas de duration_weeks semanas

        Começa em first_sprint_start e para no fim do quarter. A última sprint
        que ultrapassaria o fim do quarter é descartada, não truncada.

        Args:
            request: Ano, quarter, duração e início da primeira sprint

        Returns:
            List[SprintTemplate]: Templates ainda não persistidos, em ordem
        """
        quarter_start, quarter_end = quarter_bounds(request.year, request.quarter)
        step = timedelta(weeks=request.duration_weeks)

        if not quarter_start <= request.first_sprint_start <= quarter_end:
            logger.warning(
                f"Início da primeira sprint {request.first_sprint_start} fora do "
                f"Q{request.quarter}/{request.year} ({quarter_start} a {quarter_end})"
            )

        templates = []
        sprint_number = 1
        current_start = request.first_sprint_start

        while current_start < quarter_end:
            end_date = current_start + step - timedelta(days=1)

            # Não cria sprints que terminam depois do quarter
            if end_date > quarter_end:
                break

            templates.append(
                SprintTemplate(
                    name=template_name(request.year, request.quarter, sprint_number),
                    year=request.year,
                    quarter=request.quarter,
                    sprint_number=sprint_number,
                    start_date=current_start,
                    end_date=end_date,
                    duration_weeks=request.duration_weeks,
                    load_factor=DEFAULT_LOAD_FACTOR,
                )
            )
            current_start += step
            sprint_number += 1

        return templates

    def adoption_values(
        self, template: SprintTemplate, adoption: TemplateAdoption
    ) -> Dict[str, Any]:
        """
        Monta a linha da sprint criada a partir de um template

        Cada data informada na adoção substitui apenas a data correspondente
        do template; o load factor é sempre o do template.
        """
        start_date = adoption.start_date or template.start_date
        end_date = adoption.end_date or template.end_date
        if start_date > end_date:
            raise InvalidInputError(
                f"Datas inválidas para adoção: {start_date} é posterior a {end_date}"
            )

        return {
            "team_id": adoption.team_id,
            "template_id": template.id,
            "name": template.name,
            "year": template.year,
            "quarter": template.quarter,
            "start_date": start_date,
            "end_date": end_date,
            "is_current": False,
            "load_factor": template.load_factor,
        }


class TemplateService:
    """Serviço de templates de sprint: CRUD, geração por quarter e adoção"""

    def __init__(self, store: RowStore, engine: SprintTemplateEngine = None):
        self.store = store
        self.engine = engine or SprintTemplateEngine()

    def list_templates(self) -> List[SprintTemplate]:
        return TemplateRepository(self.store).get_all()

    def get_template(self, template_id: int) -> SprintTemplate:
        template = TemplateRepository(self.store).get_by_id(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    def list_by_quarter(self, year: int, quarter: int) -> List[SprintTemplate]:
        if quarter < 1 or quarter > 4:
            raise InvalidInputError(f"Quarter deve estar entre 1 e 4: {quarter}")
        return TemplateRepository(self.store).get_by_quarter(year, quarter)

    def available_quarters(self) -> List[QuarterSummary]:
        return TemplateRepository(self.store).get_available_quarters()

    def create_template(self, data: Dict[str, Any]) -> SprintTemplate:
        payload = validate_payload(TemplateCreate, data)
        template = TemplateRepository(self.store).create(payload.model_dump())
        logger.info(f"Template criado: {template.name} (id {template.id})")
        return template

    def update_template(self, template_id: int, data: Dict[str, Any]) -> SprintTemplate:
        """
        Atualiza parcialmente um template

        Raises:
            NotFoundError: Se o template não existir
            InvalidInputError: Se o patch for inválido ou as datas ficarem invertidas
        """
        patch = validate_payload(TemplatePatch, data)
        changes = patch.changes()

        with self.store.transaction() as tx:
            repository = TemplateRepository(tx)
            current = repository.get_by_id(template_id)
            if current is None:
                raise NotFoundError("Template", template_id)

            start_date = changes.get("start_date", current.start_date)
            end_date = changes.get("end_date", current.end_date)
            if start_date > end_date:
                raise InvalidInputError(f"start_date {start_date} é posterior a end_date {end_date}")

            repository.update(template_id, changes)
            updated = repository.get_by_id(template_id)

        logger.info(f"Template {template_id} atualizado: {sorted(changes)}")
        return updated

    def delete_template(self, template_id: int) -> None:
        """Remove o template; sprints adotadas perdem apenas o vínculo"""
        with self.store.transaction() as tx:
            if not TemplateRepository(tx).delete(template_id):
                raise NotFoundError("Template", template_id)
        logger.info(f"Template {template_id} removido")

    def generate_quarter_templates(self, data: Dict[str, Any]) -> List[SprintTemplate]:
        """
        Gera e persiste os templates de um quarter

        A gravação é feita em uma única transação: uma falha no meio do lote
        não deixa um quarter parcialmente gerado.

        Args:
            data: year, quarter, duration_weeks e first_sprint_start

        Returns:
            List[SprintTemplate]: Templates gravados, em ordem de sprint_number
        """
        request = validate_payload(TemplateGenerationRequest, data)
        planned = self.engine.plan_quarter(request)

        with self.store.transaction() as tx:
            repository = TemplateRepository(tx)
            created = [
                repository.create(template.model_dump(exclude={"id", "created_at"}))
                for template in planned
            ]

        logger.info(
            f"Gerados {len(created)} templates para Q{request.quarter}/{request.year} "
            f"com sprints de {request.duration_weeks} semana(s)"
        )
        return created

    def adopt_template(self, template_id: int, data: Dict[str, Any]) -> Sprint:
        """
        Cria a sprint de um time a partir de um template

        A sprint já é gravada com template_id, year e quarter em um único INSERT.

        Args:
            template_id: ID do template
            data: team_id e, opcionalmente, start_date/end_date

        Returns:
            Sprint: Sprint criada

        Raises:
            NotFoundError: Se o template ou o time não existirem
        """
        adoption = validate_payload(TemplateAdoption, data)

        with self.store.transaction() as tx:
            template = TemplateRepository(tx).get_by_id(template_id)
            if template is None:
                raise NotFoundError("Template", template_id)
            if TeamRepository(tx).get_by_id(adoption.team_id) is None:
                raise NotFoundError("Time", adoption.team_id)

            sprint = SprintRepository(tx).create(self.engine.adoption_values(template, adoption))

        logger.info(f"Template {template.name} adotado pelo time {adoption.team_id} (sprint {sprint.id})")
        return sprint
