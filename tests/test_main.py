import json

import pytest
from typer.testing import CliRunner

from sprint_capacity.main import app, somente_informados
from sprint_capacity.models.config import AppConfig
from sprint_capacity.services.holidays import HolidayService
from sprint_capacity.services.sprints import SprintService
from sprint_capacity.services.templates import TemplateService
from sprint_capacity.storage.row_store import create_store

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Fixture que aponta a CLI para um banco temporário já inicializado"""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path}/cli.db")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "output"))

    result = runner.invoke(app, ["init-db"])
    assert result.exit_code == 0, result.output
    return tmp_path


@pytest.fixture
def store(cli_env):
    """Fixture para o RowStore do mesmo banco usado pela CLI"""
    row_store = create_store(AppConfig.load())
    yield row_store
    row_store.engine.dispose()


def invoke(*args):
    result = runner.invoke(app, [str(arg) for arg in args])
    return result


def seed_team(*capacities):
    """Cria o time 1 com membros de capacity informada"""
    assert invoke("teams", "create", "Plataforma").exit_code == 0
    for n, capacity in enumerate(capacities, start=1):
        assert invoke("members", "create", f"Membro {n}", "--role", "Developer", "--capacity", capacity).exit_code == 0
        assert invoke("teams", "add-member", 1, n).exit_code == 0


def test_init_db(cli_env):
    """Testa a criação do banco e dos diretórios"""
    result = invoke("init-db")

    assert result.exit_code == 0
    assert "Banco de dados inicializado" in result.output
    assert (cli_env / "cli.db").exists()
    assert (cli_env / "logs").is_dir()
    assert (cli_env / "output").is_dir()


def test_capacity_end_to_end(cli_env):
    """Testa o cálculo de capacity pela linha de comando"""
    seed_team(8, 5)
    result = invoke("sprints", "create", "Sprint 10", "--team-id", 1, "--start", "2024-03-18", "--end", "2024-03-26")
    assert result.exit_code == 0, result.output

    result = invoke("capacity", 1)

    assert result.exit_code == 0, result.output
    assert '"total_working_days": 7' in result.output
    assert '"capacity": 4.5' in result.output
    assert '"capacity": 2.8' in result.output
    assert '"total_capacity": 7.3' in result.output


def test_capacity_export(cli_env):
    """Testa a exportação do relatório de capacity"""
    seed_team(8)
    invoke("sprints", "create", "Sprint 10", "--team-id", 1, "--start", "2024-03-17", "--end", "2024-03-23")
    invoke("holidays", "add", 1, 1, "2024-03-18")
    export_dir = cli_env / "relatorios"

    result = invoke("capacity", 1, "--export", export_dir)

    assert result.exit_code == 0, result.output
    assert (export_dir / "Sprint 10_capacity.csv").exists()
    assert (export_dir / "relatorio_capacity_Sprint_10.md").exists()
    assert (export_dir / "relatorio_capacity_Sprint_10.html").exists()
    assert (export_dir / "relatorio_capacity_Sprint_10.pdf").exists()
    assert (export_dir / "relatorio_capacity_Sprint_10.xlsx").exists()
    lines = (export_dir / "Sprint 10_capacity.csv").read_text(encoding="utf-8").splitlines()
    assert lines[1] == "Membro 1,8,5,1,4,2.6"


def test_unknown_sprint_exits_with_error(cli_env):
    """Testa que um erro de domínio encerra com código 1"""
    result = invoke("capacity", 999)

    assert result.exit_code == 1
    assert "Sprint não encontrado: 999" in result.output


def test_errors_go_to_stderr(cli_env):
    """Testa que a mensagem de erro não se mistura ao JSON da saída padrão"""
    result = invoke("sprints", "show", 999)

    assert result.exit_code == 1
    assert "Erro:" in result.stderr
    assert "Erro:" not in result.stdout


def test_retro_add_unknown_sprint(cli_env):
    """Testa que um item de retro de sprint inexistente gera erro de domínio"""
    seed_team(8)
    result = invoke(
        "retro", "add", "Deploy tranquilo",
        "--sprint-id", 999, "--member-id", 1, "--team-id", 1, "--type", "todo",
    )

    assert result.exit_code == 1
    assert "Sprint não encontrado: 999" in result.output
    assert "IntegrityError" not in result.output


def test_invalid_input_exits_with_error(cli_env):
    """Testa que uma data inválida encerra com código 1"""
    seed_team()
    result = invoke("sprints", "create", "Sprint 1", "--team-id", 1, "--start", "18/03/2024", "--end", "2024-03-26")

    assert result.exit_code == 1
    assert "YYYY-MM-DD" in result.output


def test_generate_and_adopt_templates(cli_env, store):
    """Testa a geração de templates e a adoção por um time"""
    seed_team(8)

    result = invoke("templates", "generate", 2024, 2, "--start", "2024-04-01", "--weeks", 1)
    assert result.exit_code == 0, result.output
    assert len(TemplateService(store).list_by_quarter(2024, 2)) == 13

    result = invoke("templates", "adopt", 2, "--team-id", 1, "--end", "2024-04-09")
    assert result.exit_code == 0, result.output

    sprint = SprintService(store).list_sprints(1)[0]
    assert sprint.template_id == 2
    assert sprint.name == "2024 Q2 Sprint 2"
    assert sprint.end_date.isoformat() == "2024-04-09"


def test_set_current(cli_env, store):
    """Testa a troca da sprint atual do time"""
    seed_team()
    invoke("sprints", "create", "S1", "--team-id", 1, "--start", "2024-03-03", "--end", "2024-03-16", "--current")
    invoke("sprints", "create", "S2", "--team-id", 1, "--start", "2024-03-17", "--end", "2024-03-30")

    result = invoke("sprints", "set-current", 2)

    assert result.exit_code == 0, result.output
    assert SprintService(store).get_current(1).id == 2
    assert SprintService(store).get_sprint(1).is_current is False


def test_holiday_toggle(cli_env, store):
    """Testa o toggle de ausência pela linha de comando"""
    seed_team(8)
    invoke("sprints", "create", "S1", "--team-id", 1, "--start", "2024-03-17", "--end", "2024-03-30")

    added = invoke("holidays", "toggle", 1, 1, "2024-03-18")
    assert added.exit_code == 0, added.output
    assert '"action": "added"' in added.output
    assert len(HolidayService(store).list_by_sprint(1)) == 1

    removed = invoke("holidays", "toggle", 1, 1, "2024-03-18")
    assert '"action": "removed"' in removed.output
    assert HolidayService(store).list_by_sprint(1) == []


def test_holiday_bulk(cli_env, store):
    """Testa o registro de ausências em lote a partir de um arquivo"""
    seed_team(8)
    invoke("sprints", "create", "S1", "--team-id", 1, "--start", "2024-03-17", "--end", "2024-03-30")
    bulk_file = cli_env / "feriados.json"
    bulk_file.write_text(json.dumps([
        {"sprint_id": 1, "member_id": 1, "date": "2024-03-18"},
        {"sprint_id": 1, "member_id": 1, "date": "2024-03-19"},
    ]), encoding="utf-8")

    result = invoke("holidays", "bulk", bulk_file)

    assert result.exit_code == 0, result.output
    assert '"created": 2' in result.output
    assert len(HolidayService(store).list_by_sprint(1)) == 2


def test_retro_insights(cli_env):
    """Testa os insights da retro anterior pela linha de comando"""
    seed_team(8)
    invoke("sprints", "create", "S1", "--team-id", 1, "--start", "2024-03-03", "--end", "2024-03-16")
    invoke("sprints", "create", "S2", "--team-id", 1, "--start", "2024-03-17", "--end", "2024-03-30")
    result = invoke(
        "retro", "add", "Deploy tranquilo",
        "--sprint-id", 1, "--member-id", 1, "--team-id", 1, "--type", "what_went_well",
    )
    assert result.exit_code == 0, result.output

    result = invoke("retro", "insights", 2)

    assert result.exit_code == 0, result.output
    assert "Deploy tranquilo" in result.output


def test_retro_list_requires_filter(cli_env):
    """Testa que a listagem de retro exige sprint ou time"""
    result = invoke("retro", "list")
    assert result.exit_code == 1


def test_somente_informados():
    """Testa a montagem do payload de patch"""
    assert somente_informados(name="A", role=None, default_capacity=0) == {"name": "A", "default_capacity": 0}
