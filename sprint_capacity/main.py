import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from loguru import logger
from pydantic import BaseModel
from rich.console import Console
from sqlalchemy.exc import SQLAlchemyError

from .errors import InvalidInputError, SprintCapacityError
from .models.config import AppConfig
from .services.capacity import CapacityService
from .services.holidays import HolidayService
from .services.report import CapacityReportGenerator
from .services.retro import RetroService
from .services.sprints import SprintService
from .services.teams import MemberService, TeamService
from .services.templates import TemplateService
from .storage.row_store import RowStore, create_store, init_schema

app = typer.Typer(help="Planejamento de Sprints e Capacity dos Times")
teams_app = typer.Typer(help="Gerenciamento de times")
members_app = typer.Typer(help="Gerenciamento de membros")
sprints_app = typer.Typer(help="Gerenciamento de sprints")
templates_app = typer.Typer(help="Templates de sprint por quarter")
holidays_app = typer.Typer(help="Feriados e ausências")
retro_app = typer.Typer(help="Itens de retrospectiva")

app.add_typer(teams_app, name="teams")
app.add_typer(members_app, name="members")
app.add_typer(sprints_app, name="sprints")
app.add_typer(templates_app, name="templates")
app.add_typer(holidays_app, name="holidays")
app.add_typer(retro_app, name="retro")

console = Console()
log_console = Console(stderr=True)


def configurar_logger(output_dir: Path = Path("logs"), level: str = "INFO"):
    """Configura o sistema de logs"""
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()  # Remove handlers padrão
    logger.add(
        output_dir / "sprint_capacity_{time}.log",
        rotation="1 day",
        retention="7 days",
        level=level,
        encoding="utf-8",
    )
    logger.add(lambda msg: log_console.print(msg, style="blue", markup=False, highlight=False, end=""), level=level)


def verificar_diretorios(config: AppConfig):
    """Verifica e cria diretórios necessários"""
    for dir_name in (config.log_dir, config.output_dir):
        Path(dir_name).mkdir(parents=True, exist_ok=True)


def load_json_file(path: Path) -> Any:
    """
    Carrega um arquivo JSON

    Args:
        path: Caminho do arquivo

    Returns:
        Conteúdo do arquivo
    """
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error(f"Erro ao carregar arquivo {path}: {str(e)}")
        raise typer.Exit(1)


def get_store(ctx: typer.Context) -> RowStore:
    return ctx.obj["store"]


def imprimir(result: Any) -> None:
    """Imprime o resultado de um comando como JSON"""
    if isinstance(result, BaseModel):
        data = result.model_dump(mode="json")
    elif isinstance(result, list):
        data = [item.model_dump(mode="json") if isinstance(item, BaseModel) else item for item in result]
    else:
        data = result
    console.print_json(data=data)


def somente_informados(**fields: Any) -> Dict[str, Any]:
    """Monta o payload de um patch apenas com as opções informadas"""
    return {name: value for name, value in fields.items() if value is not None}


@contextmanager
def tratar_erros():
    """Converte erros de domínio e de banco em mensagem e código de saída 1"""
    try:
        yield
    except SprintCapacityError as e:
        logger.error(str(e))
        log_console.print(f"Erro: {e}", style="red", markup=False, highlight=False)
        raise typer.Exit(1)
    except SQLAlchemyError as e:
        logger.error(f"Erro de banco de dados: {str(e)}")
        log_console.print(f"Erro de banco de dados: {e.__class__.__name__}", style="red", markup=False)
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Path = typer.Option(
        Path("config/setup.json"),
        "--config",
        help="Arquivo de configuração (opcional)",
        dir_okay=False,
    ),
):
    """Carrega a configuração, os logs e o banco de dados"""
    config = AppConfig.load(config_file)
    verificar_diretorios(config)
    configurar_logger(Path(config.log_dir), config.log_level)
    ctx.obj = {"config": config, "store": create_store(config)}


@app.command("init-db")
def init_db(ctx: typer.Context):
    """Cria as tabelas do banco de dados"""
    with tratar_erros():
        init_schema(get_store(ctx))
    console.print("Banco de dados inicializado")


@app.command()
def capacity(
    ctx: typer.Context,
    sprint_id: int = typer.Argument(..., help="ID da sprint"),
    export: Optional[Path] = typer.Option(
        None, "--export", help="Diretório onde exportar CSV, Markdown, HTML, PDF e Excel"
    ),
):
    """Calcula a capacity da sprint"""
    store = get_store(ctx)
    with tratar_erros():
        report = CapacityService(store).get_sprint_capacity(sprint_id)
        imprimir(report)

        if export is not None:
            sprint = SprintService(store).get_sprint(sprint_id)
            holidays = HolidayService(store).list_by_sprint(sprint_id)
            team = TeamService(store).get_team(sprint.team_id)
            generator = CapacityReportGenerator(report, sprint, holidays, str(export), team.name)
            for path in generator.generate():
                console.print(f"Gerado: {path}", markup=False)


# Times

@teams_app.command("list")
def teams_list(ctx: typer.Context):
    """Lista os times"""
    with tratar_erros():
        imprimir(TeamService(get_store(ctx)).list_teams())


@teams_app.command("show")
def teams_show(ctx: typer.Context, team_id: int):
    with tratar_erros():
        imprimir(TeamService(get_store(ctx)).get_team(team_id))


@teams_app.command("create")
def teams_create(
    ctx: typer.Context,
    name: str,
    logo_url: Optional[str] = typer.Option(None, "--logo-url"),
):
    """Cria um time"""
    with tratar_erros():
        imprimir(TeamService(get_store(ctx)).create_team({"name": name, "logo_url": logo_url}))


@teams_app.command("update")
def teams_update(
    ctx: typer.Context,
    team_id: int,
    name: Optional[str] = typer.Option(None, "--name"),
    logo_url: Optional[str] = typer.Option(None, "--logo-url"),
    clear_logo: bool = typer.Option(False, "--clear-logo", help="Remove o logo do time"),
):
    """Atualiza um time"""
    data = somente_informados(name=name, logo_url=logo_url)
    if clear_logo:
        data["logo_url"] = None
    with tratar_erros():
        imprimir(TeamService(get_store(ctx)).update_team(team_id, data))


@teams_app.command("delete")
def teams_delete(ctx: typer.Context, team_id: int):
    """Remove um time com suas sprints"""
    with tratar_erros():
        TeamService(get_store(ctx)).delete_team(team_id)
    console.print(f"Time {team_id} removido")


@teams_app.command("members")
def teams_members(ctx: typer.Context, team_id: int):
    """Lista os membros do time"""
    with tratar_erros():
        imprimir(TeamService(get_store(ctx)).list_members(team_id))


@teams_app.command("add-member")
def teams_add_member(ctx: typer.Context, team_id: int, member_id: int):
    with tratar_erros():
        added = TeamService(get_store(ctx)).add_member(team_id, member_id)
    imprimir({"team_id": team_id, "member_id": member_id, "added": added})


@teams_app.command("remove-member")
def teams_remove_member(ctx: typer.Context, team_id: int, member_id: int):
    with tratar_erros():
        TeamService(get_store(ctx)).remove_member(team_id, member_id)
    console.print(f"Membro {member_id} removido do time {team_id}")


# Membros

@members_app.command("list")
def members_list(
    ctx: typer.Context,
    team_id: Optional[int] = typer.Option(None, "--team-id", help="Filtra pelos membros do time"),
):
    """Lista os membros"""
    store = get_store(ctx)
    with tratar_erros():
        if team_id is None:
            imprimir(MemberService(store).list_members())
        else:
            imprimir(TeamService(store).list_members(team_id))


@members_app.command("show")
def members_show(ctx: typer.Context, member_id: int):
    store = get_store(ctx)
    with tratar_erros():
        member = MemberService(store).get_member(member_id)
        teams = TeamService(store).teams_of_member(member_id)
    imprimir({**member.model_dump(mode="json"), "teams": [t.model_dump(mode="json") for t in teams]})


@members_app.command("create")
def members_create(
    ctx: typer.Context,
    name: str,
    role: str = typer.Option(..., "--role"),
    default_capacity: int = typer.Option(..., "--capacity", help="Story points a cada 10 dias úteis"),
):
    """Cria um membro"""
    with tratar_erros():
        imprimir(MemberService(get_store(ctx)).create_member(
            {"name": name, "role": role, "default_capacity": default_capacity}
        ))


@members_app.command("update")
def members_update(
    ctx: typer.Context,
    member_id: int,
    name: Optional[str] = typer.Option(None, "--name"),
    role: Optional[str] = typer.Option(None, "--role"),
    default_capacity: Optional[int] = typer.Option(None, "--capacity"),
):
    """Atualiza um membro"""
    data = somente_informados(name=name, role=role, default_capacity=default_capacity)
    with tratar_erros():
        imprimir(MemberService(get_store(ctx)).update_member(member_id, data))


@members_app.command("delete")
def members_delete(ctx: typer.Context, member_id: int):
    with tratar_erros():
        MemberService(get_store(ctx)).delete_member(member_id)
    console.print(f"Membro {member_id} removido")


# Sprints

@sprints_app.command("list")
def sprints_list(
    ctx: typer.Context,
    team_id: Optional[int] = typer.Option(None, "--team-id"),
):
    """Lista as sprints, da mais recente para a mais antiga"""
    with tratar_erros():
        imprimir(SprintService(get_store(ctx)).list_sprints(team_id))


@sprints_app.command("show")
def sprints_show(ctx: typer.Context, sprint_id: int):
    with tratar_erros():
        imprimir(SprintService(get_store(ctx)).get_sprint(sprint_id))


@sprints_app.command("current")
def sprints_current(
    ctx: typer.Context,
    team_id: Optional[int] = typer.Option(None, "--team-id"),
):
    """Mostra a sprint atual"""
    with tratar_erros():
        imprimir(SprintService(get_store(ctx)).get_current(team_id))


@sprints_app.command("create")
def sprints_create(
    ctx: typer.Context,
    name: str,
    team_id: int = typer.Option(..., "--team-id"),
    start_date: str = typer.Option(..., "--start", help="YYYY-MM-DD"),
    end_date: str = typer.Option(..., "--end", help="YYYY-MM-DD"),
    is_current: bool = typer.Option(False, "--current", help="Marca como sprint atual do time"),
    load_factor: float = typer.Option(0.8, "--load-factor"),
):
    """Cria uma sprint avulsa"""
    with tratar_erros():
        imprimir(SprintService(get_store(ctx)).create_sprint({
            "team_id": team_id,
            "name": name,
            "start_date": start_date,
            "end_date": end_date,
            "is_current": is_current,
            "load_factor": load_factor,
        }))


@sprints_app.command("update")
def sprints_update(
    ctx: typer.Context,
    sprint_id: int,
    name: Optional[str] = typer.Option(None, "--name"),
    start_date: Optional[str] = typer.Option(None, "--start"),
    end_date: Optional[str] = typer.Option(None, "--end"),
    load_factor: Optional[float] = typer.Option(None, "--load-factor"),
):
    """Atualiza uma sprint"""
    data = somente_informados(name=name, start_date=start_date, end_date=end_date, load_factor=load_factor)
    with tratar_erros():
        imprimir(SprintService(get_store(ctx)).update_sprint(sprint_id, data))


@sprints_app.command("set-current")
def sprints_set_current(ctx: typer.Context, sprint_id: int):
    """Marca a sprint como atual do seu time"""
    with tratar_erros():
        imprimir(SprintService(get_store(ctx)).set_current(sprint_id))


@sprints_app.command("delete")
def sprints_delete(ctx: typer.Context, sprint_id: int):
    with tratar_erros():
        SprintService(get_store(ctx)).delete_sprint(sprint_id)
    console.print(f"Sprint {sprint_id} removida")


# Templates

@templates_app.command("list")
def templates_list(ctx: typer.Context):
    with tratar_erros():
        imprimir(TemplateService(get_store(ctx)).list_templates())


@templates_app.command("show")
def templates_show(ctx: typer.Context, template_id: int):
    with tratar_erros():
        imprimir(TemplateService(get_store(ctx)).get_template(template_id))


@templates_app.command("quarter")
def templates_quarter(ctx: typer.Context, year: int, quarter: int):
    """Lista os templates de um quarter"""
    with tratar_erros():
        imprimir(TemplateService(get_store(ctx)).list_by_quarter(year, quarter))


@templates_app.command("quarters")
def templates_quarters(ctx: typer.Context):
    """Lista os quarters que já têm templates"""
    with tratar_erros():
        imprimir(TemplateService(get_store(ctx)).available_quarters())


@templates_app.command("create")
def templates_create(
    ctx: typer.Context,
    name: str,
    year: int = typer.Option(..., "--year"),
    quarter: int = typer.Option(..., "--quarter"),
    sprint_number: int = typer.Option(..., "--sprint-number"),
    start_date: str = typer.Option(..., "--start"),
    end_date: str = typer.Option(..., "--end"),
    duration_weeks: int = typer.Option(2, "--weeks"),
    load_factor: float = typer.Option(0.8, "--load-factor"),
):
    """Cria um template avulso"""
    with tratar_erros():
        imprimir(TemplateService(get_store(ctx)).create_template({
            "name": name,
            "year": year,
            "quarter": quarter,
            "sprint_number": sprint_number,
            "start_date": start_date,
            "end_date": end_date,
            "duration_weeks": duration_weeks,
            "load_factor": load_factor,
        }))


@templates_app.command("generate")
def templates_generate(
    ctx: typer.Context,
    year: int,
    quarter: int,
    first_sprint_start: str = typer.Option(..., "--start", help="Início da primeira sprint (YYYY-MM-DD)"),
    duration_weeks: int = typer.Option(2, "--weeks", help="Duração de cada sprint em semanas"),
):
    """Gera os templates de sprint de um quarter"""
    with tratar_erros():
        imprimir(TemplateService(get_store(ctx)).generate_quarter_templates({
            "year": year,
            "quarter": quarter,
            "duration_weeks": duration_weeks,
            "first_sprint_start": first_sprint_start,
        }))


@templates_app.command("adopt")
def templates_adopt(
    ctx: typer.Context,
    template_id: int,
    team_id: int = typer.Option(..., "--team-id"),
    start_date: Optional[str] = typer.Option(None, "--start", help="Substitui a data de início do template"),
    end_date: Optional[str] = typer.Option(None, "--end", help="Substitui a data de término do template"),
):
    """Cria a sprint de um time a partir de um template"""
    data = somente_informados(team_id=team_id, start_date=start_date, end_date=end_date)
    with tratar_erros():
        imprimir(TemplateService(get_store(ctx)).adopt_template(template_id, data))


@templates_app.command("update")
def templates_update(
    ctx: typer.Context,
    template_id: int,
    name: Optional[str] = typer.Option(None, "--name"),
    start_date: Optional[str] = typer.Option(None, "--start"),
    end_date: Optional[str] = typer.Option(None, "--end"),
    load_factor: Optional[float] = typer.Option(None, "--load-factor"),
):
    data = somente_informados(name=name, start_date=start_date, end_date=end_date, load_factor=load_factor)
    with tratar_erros():
        imprimir(TemplateService(get_store(ctx)).update_template(template_id, data))


@templates_app.command("delete")
def templates_delete(ctx: typer.Context, template_id: int):
    """Remove um template, desvinculando as sprints adotadas"""
    with tratar_erros():
        TemplateService(get_store(ctx)).delete_template(template_id)
    console.print(f"Template {template_id} removido")


# Feriados

@holidays_app.command("list")
def holidays_list(
    ctx: typer.Context,
    sprint_id: int,
    member_id: Optional[int] = typer.Option(None, "--member-id"),
):
    """Lista os feriados da sprint"""
    service = HolidayService(get_store(ctx))
    with tratar_erros():
        if member_id is None:
            imprimir(service.list_by_sprint(sprint_id))
        else:
            imprimir(service.list_by_sprint_and_member(sprint_id, member_id))


@holidays_app.command("add")
def holidays_add(ctx: typer.Context, sprint_id: int, member_id: int, date: str):
    """Registra uma ausência (DATE no formato YYYY-MM-DD)"""
    with tratar_erros():
        imprimir(HolidayService(get_store(ctx)).create_holiday(
            {"sprint_id": sprint_id, "member_id": member_id, "date": date}
        ))


@holidays_app.command("toggle")
def holidays_toggle(ctx: typer.Context, sprint_id: int, member_id: int, date: str):
    """Marca ou desmarca uma ausência"""
    with tratar_erros():
        imprimir(HolidayService(get_store(ctx)).toggle_holiday(
            {"sprint_id": sprint_id, "member_id": member_id, "date": date}
        ))


@holidays_app.command("bulk")
def holidays_bulk(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON com a lista de feriados"),
):
    """Registra vários feriados a partir de um arquivo JSON"""
    items = load_json_file(file)
    with tratar_erros():
        if not isinstance(items, list):
            raise InvalidInputError(f"O arquivo {file} deve conter uma lista de feriados")
        created = HolidayService(get_store(ctx)).bulk_create(items)
    imprimir({"created": created, "total": len(items)})


@holidays_app.command("delete")
def holidays_delete(ctx: typer.Context, holiday_id: int):
    with tratar_erros():
        HolidayService(get_store(ctx)).delete_holiday(holiday_id)
    console.print(f"Feriado {holiday_id} removido")


# Retrospectiva

@retro_app.command("list")
def retro_list(
    ctx: typer.Context,
    sprint_id: Optional[int] = typer.Option(None, "--sprint-id"),
    team_id: Optional[int] = typer.Option(None, "--team-id"),
):
    """Lista os itens de retro de uma sprint ou de um time"""
    service = RetroService(get_store(ctx))
    with tratar_erros():
        if sprint_id is not None:
            imprimir(service.list_by_sprint(sprint_id))
        elif team_id is not None:
            imprimir(service.list_by_team(team_id))
        else:
            raise InvalidInputError("Informe --sprint-id ou --team-id")


@retro_app.command("add")
def retro_add(
    ctx: typer.Context,
    content: str,
    sprint_id: int = typer.Option(..., "--sprint-id"),
    member_id: int = typer.Option(..., "--member-id"),
    team_id: int = typer.Option(..., "--team-id"),
    item_type: str = typer.Option(..., "--type", help="what_went_well, what_went_wrong, lesson_learned ou todo"),
):
    """Adiciona um item de retro"""
    with tratar_erros():
        imprimir(RetroService(get_store(ctx)).create_item({
            "sprint_id": sprint_id,
            "member_id": member_id,
            "team_id": team_id,
            "type": item_type,
            "content": content,
        }))


@retro_app.command("update")
def retro_update(
    ctx: typer.Context,
    item_id: int,
    content: Optional[str] = typer.Option(None, "--content"),
    item_type: Optional[str] = typer.Option(None, "--type"),
):
    data = somente_informados(content=content, type=item_type)
    with tratar_erros():
        imprimir(RetroService(get_store(ctx)).update_item(item_id, data))


@retro_app.command("delete")
def retro_delete(ctx: typer.Context, item_id: int):
    with tratar_erros():
        RetroService(get_store(ctx)).delete_item(item_id)
    console.print(f"Item {item_id} removido")


@retro_app.command("clear")
def retro_clear(ctx: typer.Context, sprint_id: int):
    """Remove todos os itens de retro da sprint"""
    with tratar_erros():
        removed = RetroService(get_store(ctx)).delete_by_sprint(sprint_id)
    imprimir({"sprint_id": sprint_id, "removed": removed})


@retro_app.command("insights")
def retro_insights(ctx: typer.Context, sprint_id: int):
    """Mostra os principais itens da retro da sprint anterior"""
    with tratar_erros():
        insights = RetroService(get_store(ctx)).previous_sprint_insights(sprint_id)
    if insights.is_empty:
        logger.info(f"Nenhum item de retro anterior para a sprint {sprint_id}")
    imprimir(insights)


if __name__ == "__main__":
    app()
