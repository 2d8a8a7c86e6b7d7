from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, NoReturn, Optional

import typer
import uvicorn

from cli.config import CLIConfig, load_config
from cli.render import render_result, render_scenarios
from harness.client import GraphQLClient
from harness.convergence import ConvergenceGate
from harness.errors import HarnessError
from harness.liveness import wait_all_healthy
from harness.query import SUMMARY, EventType, StormReportFilter, TimeRange
from harness.scenarios import SCENARIOS, ScenarioContext, run_scenarios
from logging_config import configure_logging


@dataclass
class CLIState:
    config: CLIConfig
    client: GraphQLClient
    gate: ConvergenceGate


app = typer.Typer(
    help="Verify that the storm report pipeline converges on the fixture dataset.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _fail(exc: HarnessError) -> NoReturn:
    typer.secho(str(exc), fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    api_url: Optional[str] = typer.Option(
        None,
        "--api-url",
        "-a",
        help="Query API base URL (defaults to API_URL env or http://localhost:8080).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Maximum seconds to wait for the pipeline to converge.",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Seconds between convergence probes.",
    ),
    expected_total: Optional[int] = typer.Option(
        None,
        "--expected-total",
        help="Record count that marks the pipeline as converged.",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    config = load_config(
        api_url=api_url,
        convergence_timeout=timeout,
        convergence_interval=interval,
        expected_total=expected_total,
    )
    settings = config.settings
    client = GraphQLClient(settings.api_url, timeout=settings.query_timeout)
    gate = ConvergenceGate(
        client=client,
        expected_total=config.expectations.total,
        health_url=settings.api_url,
        timeout=settings.convergence_timeout,
        interval=settings.convergence_interval,
        health_timeout=settings.health_timeout,
        health_interval=settings.health_interval,
        request_timeout=settings.request_timeout,
    )
    ctx.obj = CLIState(config=config, client=client, gate=gate)
    ctx.call_on_close(client.close)


@app.command("serve")
def serve_command(ctx: typer.Context) -> None:
    """Run the fixture server in the foreground."""
    settings = _get_state(ctx).config.settings
    typer.echo(f"Serving fixtures from {settings.data_dir} on {settings.host}:{settings.port}")
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)


@app.command("wait")
def wait_command(
    ctx: typer.Context,
    all_services: bool = typer.Option(
        True,
        "--all-services/--api-only",
        help="Probe collector and ETL liveness as well as the API.",
    ),
) -> None:
    """Wait for service liveness and for the pipeline to converge."""
    state = _get_state(ctx)
    settings = state.config.settings
    try:
        if all_services:
            wait_all_healthy(
                settings.service_urls(),
                timeout=settings.health_timeout,
                interval=settings.health_interval,
                request_timeout=settings.request_timeout,
            )
        outcome = state.gate.ensure()
    except HarnessError as exc:
        _fail(exc)
    typer.secho(
        f"Data propagated: {outcome.observed_count}/{outcome.expected_count} records "
        f"after {outcome.attempts} attempt(s) in {outcome.elapsed_s:.1f}s",
        fg=typer.colors.GREEN,
    )


@app.command("query")
def query_command(
    ctx: typer.Context,
    day: Optional[datetime] = typer.Option(
        None,
        "--date",
        formats=["%Y-%m-%d"],
        help="Report day to query (defaults to the fixture date).",
    ),
    event_types: List[EventType] = typer.Option(
        [],
        "--event-type",
        "-e",
        case_sensitive=False,
        help="Restrict to an event type; repeatable.",
    ),
    counties: List[str] = typer.Option([], "--county", help="Restrict to a county; repeatable."),
) -> None:
    """Query aggregations for one report day and print them."""
    state = _get_state(ctx)
    target = day.date() if day is not None else state.config.expectations.fixture_date
    report_filter = StormReportFilter(
        time_range=TimeRange.for_day(target),
        event_types=tuple(event_types),
        counties=tuple(counties),
    )
    try:
        result = state.client.storm_reports(report_filter, SUMMARY)
    except HarnessError as exc:
        _fail(exc)
    render_result(result)


@app.command("verify")
def verify_command(
    ctx: typer.Context,
    scenarios: List[str] = typer.Option(
        [],
        "--scenario",
        "-s",
        help=f"Scenario to run; repeatable. Available: {', '.join(SCENARIOS)}.",
    ),
) -> None:
    """Run verification scenarios against the live pipeline."""
    state = _get_state(ctx)
    unknown = sorted(set(scenarios) - set(SCENARIOS))
    if unknown:
        raise typer.BadParameter(f"Unknown scenario(s): {', '.join(unknown)}")

    context = ScenarioContext(
        client=state.client,
        gate=state.gate,
        expectations=state.config.expectations,
    )
    results = run_scenarios(context, scenarios or None)
    render_scenarios(results)
    if not all(result.passed for result in results):
        raise typer.Exit(code=1)
