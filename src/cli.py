import json
import sys

import click

from pathlib import Path
from typing import Optional, Tuple

import settings
from exception import CLIException
from utils import async_click
from provision.core import Pipe2CloudCore
from provision.models import BackendConfig, Plan, ProvisionResponse
from provision.paths import flatten, format_path
from provision.renders import plan as plan_render
from provision.renders.plan import format_value
from provision.services.git_module import GitExceptions, discover_source
from provision.variables import load_variables


def _stack_options(func):
    options = [
        click.option("--var-file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                     help="JSON-файл со значениями переменных стека"),
        click.option("--var", "cli_vars", multiple=True, metavar="NAME=VALUE",
                     help="Значение переменной стека (можно указывать несколько раз)"),
        click.option("--repo-path", type=click.Path(file_okay=False, path_type=Path),
                     help="Локальный git-репозиторий: github_user/repository/branch по умолчанию"),
        click.option("--backend-bucket", help="Бакет для состояния"),
        click.option("--backend-key", help="Ключ состояния внутри бакета"),
        click.option("--workdir", type=click.Path(file_okay=False, path_type=Path),
                     envvar="PIPE2CLOUD_WORKDIR", help="Рабочий каталог (состояние и симулированное облако)"),
        click.option("--no-animate", is_flag=True, help="Не показывать спиннер во время apply/destroy"),
        click.option("-v", "--verbose", is_flag=True, help="Печатать подробные логи"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _fail(code: int = 1):
    # описание ошибки уже напечатано в CLIException
    click.get_current_context().exit(code)


def _build_core(
    var_file: Optional[Path],
    cli_vars: Tuple[str, ...],
    repo_path: Optional[Path],
    backend_bucket: Optional[str],
    backend_key: Optional[str],
    workdir: Optional[Path],
    no_animate: bool,
) -> Pipe2CloudCore:
    defaults = {}
    if repo_path is not None:
        try:
            source = discover_source(repo_path)
        except GitExceptions as e:
            for line in e.logs:
                click.echo(line, err=True)
            _fail()
        click.echo(
            f"Найден репозиторий {source.owner}/{source.repository}, ветка {source.branch}",
            err=True,
        )
        defaults.update(source.as_variables())

    try:
        variables = load_variables(defaults=defaults, var_file=var_file, cli_vars=cli_vars)
    except CLIException:
        _fail()

    backend_config = None
    if backend_bucket or backend_key:
        default = BackendConfig.for_application(
            bucket=f"pipe2cloud-state-{variables.region}",
            application_name=variables.application_name,
            region=variables.region,
        )
        backend_config = BackendConfig(
            bucket=backend_bucket or default.bucket,
            key=backend_key or default.key,
            region=variables.region,
        )

    animate = not no_animate and sys.stdout.isatty()

    try:
        return Pipe2CloudCore(
            variables,
            backend_config=backend_config,
            workdir=workdir,
            animate=animate,
        )
    except CLIException:
        _fail()


def _report(response: ProvisionResponse, verbose: bool, plan: Optional[Plan] = None) -> None:
    if verbose:
        for line in response.logs:
            click.echo(line)
    elif plan is not None:
        click.echo(plan_render.render(plan))

    if response.summary is not None:
        click.echo(response.summary.description)

    for violation in response.violations:
        click.echo(f"Нарушение: {violation}", err=True)
    for warning in response.warnings:
        click.echo(f"Предупреждение: {warning}", err=True)

    if response.outputs:
        click.echo("\nOutputs:")
        for name, value in response.outputs.items():
            click.echo(f"  {name} = {format_value(value)}")

    if response.status == "error":
        _fail()


def _confirm(question: str):
    def confirm(plan: Plan) -> bool:
        click.echo(plan_render.render(plan))
        return click.confirm(question, default=False)
    return confirm


@click.group()
def main():
    """pipe2cloud: пайплайн Source → Build для GitHub-репозитория."""


@main.command()
@_stack_options
@async_click
async def plan(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate, verbose):
    """Показать, что изменит apply."""
    click.echo(settings.LOGO + "\n")

    core = _build_core(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate)
    response = await core.plan()
    _report(response, verbose, plan=core.last_plan)


@main.command()
@_stack_options
@click.option("--auto-approve", is_flag=True, help="Не спрашивать подтверждение")
@async_click
async def apply(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate, verbose, auto_approve):
    """Привести инфраструктуру к конфигурации."""
    click.echo(settings.LOGO + "\n")

    core = _build_core(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate)
    confirm = None if auto_approve else _confirm("Применить план?")
    response = await core.apply(confirm=confirm)
    _report(response, verbose, plan=core.last_plan if auto_approve else None)


@main.command()
@_stack_options
@click.option("--auto-approve", is_flag=True, help="Не спрашивать подтверждение")
@async_click
async def destroy(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate, verbose, auto_approve):
    """Удалить все ресурсы из состояния."""
    click.echo(settings.LOGO + "\n")

    core = _build_core(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate)
    confirm = None if auto_approve else _confirm("Удалить все ресурсы?")
    response = await core.destroy(confirm=confirm)
    _report(response, verbose, plan=core.last_plan if auto_approve else None)


@main.command()
@_stack_options
def validate(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate, verbose):
    """Проверить стек на least-privilege и детерминированные имена."""
    core = _build_core(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate)
    response = core.validate()
    if response.status == "ok":
        click.echo("Стек корректен.")
    _report(response, verbose)


@main.command()
@_stack_options
@click.option("-o", "--output", type=click.Path(file_okay=False, path_type=Path),
              help="Директория, куда сохранить main.tf.json")
def render(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate, verbose, output):
    """Сгенерировать конфигурацию Terraform JSON."""
    core = _build_core(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate)
    document = core.render()

    if output is None:
        click.echo(document)
        return

    target = output / "main.tf.json"
    try:
        output.mkdir(parents=True, exist_ok=True)
        target.write_text(document, encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Не удалось сохранить конфигурацию в '{target}': {e}")
    click.echo(f"Конфигурация сохранена в файл: {target}", err=True)


@main.command()
@_stack_options
@click.argument("name", required=False)
def output(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate, verbose, name):
    """Показать выходные значения из состояния."""
    core = _build_core(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate)
    try:
        outputs = core.outputs()
    except CLIException:
        _fail()

    if name is None:
        click.echo(json.dumps(outputs, indent=2, ensure_ascii=False))
        return
    if name not in outputs:
        raise click.ClickException(f"Output {name!r} не найден. Доступные: {sorted(outputs)}")
    click.echo(outputs[name])


@main.group()
def state():
    """Работа с состоянием."""


@state.command("list")
@_stack_options
def state_list(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate, verbose):
    """Адреса ресурсов в состоянии."""
    core = _build_core(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate)
    try:
        resources = core.state_resources()
    except CLIException:
        _fail()
    for address in resources:
        click.echo(address)


@state.command("show")
@_stack_options
@click.argument("address")
def state_show(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate, verbose, address):
    """Атрибуты одного ресурса (секреты скрыты)."""
    core = _build_core(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate)
    try:
        resources = core.state_resources()
    except CLIException:
        _fail()
    if address not in resources:
        raise click.ClickException(f"Ресурс {address} отсутствует в состоянии.")

    rs = resources[address]
    click.echo(f"# {address}")
    click.echo(f"id = {rs.id}")
    for path, value in flatten(rs.attributes).items():
        click.echo(f"{format_path(path)} = {format_value(value)}")


@main.command("force-unlock")
@_stack_options
@click.argument("lock_id", required=False)
def force_unlock(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate, verbose, lock_id):
    """Снять зависшую блокировку состояния."""
    core = _build_core(var_file, cli_vars, repo_path, backend_bucket, backend_key, workdir, no_animate)
    try:
        released = core.force_unlock(lock_id)
    except CLIException:
        _fail()

    if released:
        click.echo("Блокировка снята.")
    else:
        click.echo("Состояние не заблокировано.")


if __name__ == "__main__":
    main()
