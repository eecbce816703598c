"""Command line entry point for the report engine."""

import json
import logging
import sys
from typing import Any, Dict, Optional

import click

from .config_manager import ConfigManager
from .exporters import ExportResult, ReportExporter
from .payload import load_export_payload, load_template
from .utils.exceptions import ReportEngineError

logger = logging.getLogger(__name__)

_HANDLER_NAME = "report_engine_console"


def setup_logging(log_level: Optional[str] = None, verbose_logging: Optional[bool] = None) -> None:
    """Setup logging configuration."""
    config_manager = ConfigManager()
    app_config = config_manager.get_app_config()

    log_level = (log_level or app_config.get("log_level", "INFO")).upper()
    if verbose_logging is None:
        verbose_logging = app_config.get("verbose_logging", True)

    # If verbose logging is disabled, increase the default log level
    if not verbose_logging and log_level in ["DEBUG", "INFO"]:
        log_level = "WARNING"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    if not any(h.get_name() == _HANDLER_NAME for h in root_logger.handlers):
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        console_handler = logging.StreamHandler()
        console_handler.set_name(_HANDLER_NAME)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Suppress verbose loggers when VERBOSE_LOGGING is false
    if not verbose_logging:
        logging.getLogger("PIL").setLevel(logging.WARNING)


def load_report_settings(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Report settings from an explicit file, or defaults plus environment."""
    config_manager = ConfigManager()
    if config_file:
        return config_manager.load_config_file(config_file)["report_settings"]
    return config_manager.get_report_settings()


def build_exporter(config_file: Optional[str] = None) -> ReportExporter:
    return ReportExporter(load_report_settings(config_file))


def _echo_result(result: ExportResult) -> None:
    click.echo(f"Report written to: {result.path}")
    click.echo(f"Sheets: {', '.join(result.sheet_names)}")
    click.echo(
        f"Rows: {result.rows_written}, pictures: {result.pictures_embedded}, "
        f"decode failures: {result.decode_failures}"
    )


@click.group()
@click.option(
    "--config-file",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON configuration file with report_settings",
)
@click.option("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], log_level: Optional[str]) -> None:
    """TechAssist report engine CLI."""
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file


def _run(ctx: click.Context, action: str, export: Any) -> None:
    obj: Dict[str, Any] = ctx.obj or {}
    try:
        exporter = build_exporter(obj.get("config_file"))
        result = export(exporter)
    except ReportEngineError as e:
        logger.error(f"{action} failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _echo_result(result)


@cli.command("general-control")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output-dir", "-o", default=None, help="Directory for the report file")
@click.pass_context
def general_control_cli(ctx: click.Context, payload_file: str, output_dir: Optional[str]) -> None:
    """Export control checks to the combined general control report."""

    def export(exporter: ReportExporter) -> ExportResult:
        payload = load_export_payload(payload_file)
        return exporter.export_general_control(
            payload.records,
            operator_names=payload.operator_names,
            signatures=payload.signatures,
            output_dir=output_dir,
        )

    _run(ctx, "General control export", export)


@cli.command("work-orders")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output-dir", "-o", default=None, help="Directory for the report file")
@click.pass_context
def work_orders_cli(ctx: click.Context, payload_file: str, output_dir: Optional[str]) -> None:
    """Export work orders to the two-sheet work order report."""

    def export(exporter: ReportExporter) -> ExportResult:
        payload = load_export_payload(payload_file)
        return exporter.export_work_orders(
            payload.records,
            machines=payload.machines,
            operators=payload.operators,
            output_dir=output_dir,
        )

    _run(ctx, "Work order export", export)


@cli.command("template")
@click.argument("template_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output-dir", "-o", default=None, help="Directory for the report file")
@click.pass_context
def template_cli(ctx: click.Context, template_file: str, output_dir: Optional[str]) -> None:
    """Export a user-authored template sheet."""

    def export(exporter: ReportExporter) -> ExportResult:
        template = load_template(template_file)
        return exporter.export_template(template, output_dir=output_dir)

    _run(ctx, "Template export", export)


@cli.command("config")
@click.option("--pretty", is_flag=True, help="Pretty print JSON output")
@click.pass_context
def config_cli(ctx: click.Context, pretty: bool) -> None:
    """Print the effective report settings."""
    obj: Dict[str, Any] = ctx.obj or {}
    try:
        settings = load_report_settings(obj.get("config_file"))
    except ReportEngineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(settings, indent=2 if pretty else None, ensure_ascii=False))


if __name__ == "__main__":
    cli()
