from __future__ import annotations

from datetime import date
from typing import Optional

import click
from flask import Flask, jsonify
from flask.cli import AppGroup

from ..common.datetime_utils import parse_iso_date
from ..common.http import arg_date, arg_int, arg_text, current_actor, json_body, manager_required, parse_enum
from ..core.enums import ProcessingMode
from ..core.exceptions import DomainError, ValidationError
from ..container import Container


def _required_int(name: str, data: dict) -> int:
    value = arg_int(name, data)
    if value is None:
        raise ValidationError(f"{name} is required")
    return value


def _required_date(name: str, data: dict) -> date:
    value = arg_date(name, data)
    if value is None:
        raise ValidationError(f"{name} is required")
    return value


def register(app: Flask, container: Container) -> None:
    scheduler = container.scheduler

    @app.route("/api/auto-clock/trigger", methods=["POST"], endpoint="api_auto_clock_trigger")
    @manager_required
    def trigger():
        actor = current_actor()
        data = json_body()
        outcome = scheduler.trigger_contractor(
            tenant_id=actor.tenant_id,
            contractor_id=_required_int("contractor_id", data),
            day=arg_date("date", data),
        )
        return jsonify({"success": True, **outcome.to_dict()})

    @app.route("/api/auto-clock/regenerate", methods=["POST"], endpoint="api_auto_clock_regenerate")
    @manager_required
    def regenerate():
        actor = current_actor()
        data = json_body()
        result = scheduler.regenerate(
            tenant_id=actor.tenant_id,
            contractor_id=_required_int("contractor_id", data),
            start_date=_required_date("start_date", data),
            end_date=_required_date("end_date", data),
        )
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/api/auto-clock/run", methods=["POST"], endpoint="api_auto_clock_run")
    @manager_required
    def run_cycle():
        actor = current_actor()
        data = json_body()
        mode = parse_enum(ProcessingMode, arg_text("mode", data), "processing mode") or ProcessingMode.PROACTIVE
        day = arg_date("date", data)
        if mode == ProcessingMode.WEEKLY_BATCH:
            report = scheduler.run_weekly_cycle(day, tenant_id=actor.tenant_id)
        else:
            report = scheduler.run_daily_cycle(mode, day, tenant_id=actor.tenant_id)
        return jsonify(report.to_dict())

    @app.route("/api/auto-clock/statistics", methods=["GET"], endpoint="api_auto_clock_statistics")
    @manager_required
    def statistics():
        actor = current_actor()
        return jsonify(scheduler.statistics(tenant_id=actor.tenant_id).to_dict())

    @app.route("/api/auto-clock/health", methods=["GET"], endpoint="api_auto_clock_health")
    def health():
        status = scheduler.health()
        return jsonify(status.to_dict()), 200 if status.status == "healthy" else 503

    register_cli(app, container)


def _parse_cli_date(value: Optional[str]) -> Optional[date]:
    try:
        return parse_iso_date(value) if value else None
    except ValidationError as e:
        raise click.BadParameter(str(e))


def register_cli(app: Flask, container: Container) -> None:
    scheduler = container.scheduler
    group = AppGroup("autoclock", help="Auto-clocking maintenance commands.")

    @group.command("daily")
    @click.option(
        "--mode",
        type=click.Choice([ProcessingMode.PROACTIVE.value, ProcessingMode.REACTIVE.value]),
        default=ProcessingMode.PROACTIVE.value,
        show_default=True,
    )
    @click.option("--date", "day", default=None, help="Target date (YYYY-MM-DD), defaults to today.")
    @click.option("--tenant-id", type=int, default=None)
    def daily(mode: str, day: Optional[str], tenant_id: Optional[int]):
        """Run one daily cycle."""
        report = scheduler.run_daily_cycle(ProcessingMode(mode), _parse_cli_date(day), tenant_id=tenant_id)
        click.echo(
            f"{mode}: {report.contractors} contractors, {report.created} created, "
            f"{report.skipped} skipped, {len(report.failures)} failed"
        )

    @group.command("weekly")
    @click.option("--date", "day", default=None, help="Any date in the target week (YYYY-MM-DD).")
    @click.option("--tenant-id", type=int, default=None)
    def weekly(day: Optional[str], tenant_id: Optional[int]):
        """Run the weekly batch cycle."""
        report = scheduler.run_weekly_cycle(_parse_cli_date(day), tenant_id=tenant_id)
        click.echo(
            f"weekly_batch: {report.contractors} contractors, {report.created} created, "
            f"{report.skipped} skipped, {len(report.failures)} failed"
        )

    @group.command("trigger")
    @click.argument("tenant_id", type=int)
    @click.argument("contractor_id", type=int)
    @click.option("--date", "day", default=None)
    def trigger(tenant_id: int, contractor_id: int, day: Optional[str]):
        """Process one contractor for one date."""
        try:
            outcome = scheduler.trigger_contractor(
                tenant_id=tenant_id, contractor_id=contractor_id, day=_parse_cli_date(day)
            )
        except DomainError as e:
            raise click.ClickException(str(e))
        click.echo(outcome.message)

    @group.command("regenerate")
    @click.argument("tenant_id", type=int)
    @click.argument("contractor_id", type=int)
    @click.argument("start_date")
    @click.argument("end_date")
    def regenerate(tenant_id: int, contractor_id: int, start_date: str, end_date: str):
        """Delete and recreate auto-generated entries in a date range."""
        try:
            result = scheduler.regenerate(
                tenant_id=tenant_id,
                contractor_id=contractor_id,
                start_date=_parse_cli_date(start_date),
                end_date=_parse_cli_date(end_date),
            )
        except DomainError as e:
            raise click.ClickException(str(e))
        click.echo(
            f"{result.deleted} deleted, {result.processed} created, {result.skipped} skipped, "
            f"{len(result.failed_dates)} failed"
        )

    app.cli.add_command(group)
