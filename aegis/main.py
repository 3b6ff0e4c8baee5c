"""CLI entrypoint for aegis."""

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import rich_click as click

from aegis.config.settings import Settings
from aegis.logging.logger import Log
from aegis.services import Services, build_services
from aegis.tasks.exceptions import TaskNotFoundError
from aegis.tasks.models import FileDescriptor, TaskRecord

click.rich_click.USE_MARKDOWN = True


@contextmanager
def _services() -> Iterator[Services]:
    settings = Settings()
    Log.configure(settings.log_level)
    services = build_services(settings)
    try:
        yield services
    finally:
        services.close()


@click.group()
@click.version_option(package_name="aegis-cdr", prog_name="aegis")
def aegis() -> None:
    """Content Disarm & Reconstruction pipeline."""


@aegis.command()
@click.argument(
    "paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("sanitized"),
    show_default=True,
    help="Where reconstructed artifacts are written.",
)
def sanitize(paths: tuple[Path, ...], output_dir: Path) -> None:
    """Run files through the pipeline and write their artifacts."""
    descriptors = [FileDescriptor.from_path(path) for path in paths]
    with _services() as services:
        records = asyncio.run(_run_batch(services, descriptors))
        for record in records:
            click.echo(_format_record(record))
            artifact = services.exporter.export(record)
            click.echo(f"  -> {artifact.write_to(output_dir)}")


@aegis.command()
def history() -> None:
    """List persisted tasks, newest first."""
    with _services() as services:
        records = services.orchestrator.history()
        if not records:
            click.echo("No tasks recorded.")
        for record in records:
            click.echo(_format_record(record))


@aegis.command()
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=50,
    show_default=True,
    help="How many latest entries to display.",
)
@click.option(
    "--search",
    default=None,
    help="Only entries whose message or module contains this text (case-insensitive).",
)
def logs(limit: int, search: str | None) -> None:
    """Show the audit log, newest first."""
    with _services() as services:
        for entry in services.audit_log.query(search)[:limit]:
            click.echo(
                f"{entry.timestamp} [{entry.level.value}] {entry.module.value}: {entry.message}"
            )


@aegis.command("export")
@click.argument("task_id")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("sanitized"),
    show_default=True,
    help="Where the artifact is written.",
)
def export_task(task_id: str, output_dir: Path) -> None:
    """Regenerate the artifact of a finished task."""
    with _services() as services:
        try:
            record = services.orchestrator.get(task_id)
        except TaskNotFoundError as exc:
            raise click.ClickException(str(exc)) from exc
        if not record.status.is_terminal:
            raise click.ClickException(f"Task {task_id} is still {record.status.value}.")
        artifact = services.exporter.export(record)
        click.echo(str(artifact.write_to(output_dir)))


@aegis.command("clear-history")
def clear_history() -> None:
    """Delete the persisted task history."""
    with _services() as services:
        services.orchestrator.clear_history()
        click.echo("Task history cleared.")


@aegis.command("clear-logs")
def clear_logs() -> None:
    """Delete every audit log entry."""
    with _services() as services:
        services.audit_log.clear()
        click.echo("Audit log cleared.")


async def _run_batch(services: Services, descriptors: list[FileDescriptor]) -> list[TaskRecord]:
    submitted = services.orchestrator.submit(descriptors)
    await services.orchestrator.wait_all()
    return [services.orchestrator.get(record.id) for record in submitted]


def _format_record(record: TaskRecord) -> str:
    line = (
        f"{record.id} {record.status.value:<10} {record.progress:>3}% "
        f"{record.file_type.value:<8} {record.filename}"
    )
    if record.result_filename:
        line += f" -> {record.result_filename}"
    if record.error_message:
        line += f" ({record.error_message})"
    return line


if __name__ == "__main__":  # pragma: no cover
    aegis()
