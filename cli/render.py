from __future__ import annotations

from typing import Any, Iterable, Sequence

import typer

from harness.scenarios import ScenarioResult
from models.reports import StormReportsResult


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_result(result: StormReportsResult) -> None:
    echo_heading("Storm Reports")
    echo_key_values(
        [
            ("total_count", result.total_count),
            ("has_more", result.has_more),
            ("reports", len(result.reports)),
        ]
    )

    aggregations = result.aggregations
    typer.echo()
    echo_heading("Aggregations")
    if aggregations is None:
        typer.echo("No aggregations available.")
    else:
        if aggregations.by_event_type:
            typer.echo("by_event_type:")
            for group in aggregations.by_event_type:
                maximum = group.max_measurement
                suffix = f" (max {maximum.magnitude} {maximum.unit})" if maximum else ""
                typer.echo(f"  - {group.event_type}: {group.count}{suffix}")
        if aggregations.by_state:
            typer.echo("by_state:")
            for state in aggregations.by_state:
                typer.echo(f"  - {state.state}: {state.count} ({len(state.counties)} counties)")
        if aggregations.by_hour:
            typer.echo("by_hour:")
            for bucket in aggregations.by_hour:
                typer.echo(f"  - {bucket.bucket}: {bucket.count}")

    if result.meta is not None:
        typer.echo()
        echo_heading("Meta")
        echo_key_values(
            [
                ("last_updated", result.meta.last_updated),
                ("data_lag_minutes", result.meta.data_lag_minutes),
            ]
        )


def render_scenarios(results: Sequence[ScenarioResult]) -> None:
    echo_heading("Scenarios")
    for result in results:
        if result.passed:
            typer.secho(f"PASS {result.name}", fg=typer.colors.GREEN)
            continue
        typer.secho(f"FAIL {result.name}", fg=typer.colors.RED)
        if result.error is not None:
            typer.echo(f"  ! {result.error}")
        for violation in result.violations:
            typer.echo(f"  - [{violation.check}] {violation.message}")
    failed = sum(1 for result in results if not result.passed)
    typer.echo()
    typer.echo(f"{len(results) - failed} passed, {failed} failed")
