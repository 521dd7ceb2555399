from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from eere_engine.displacement import APPORTIONMENT_METHODS, PROPORTIONAL
from eere_engine.errors import DatasetValidationError, InvalidInputError, MissingDatasetError
from eere_engine.inputs import EereInputs
from eere_engine.orchestrate import run_region
from eere_engine.outputs import DisplacementResult
from eere_engine.regions import normalize_region_id
from eere_engine.settings import configure_data_root

LOGGER = logging.getLogger(__name__)

EXIT_MISSING_DATASET = 1
EXIT_INVALID_INPUT = 2
EXIT_HARD_LIMIT = 3


app = typer.Typer(help='Estimate displaced generation and emissions for an EERE program.')


def configure_logging(debug: bool = False) -> None:
    """Configure root logging for command-line runs."""

    logging.basicConfig(
        format='%(asctime)s | %(name)s | %(levelname)s :: %(message)s',
        datefmt='%d-%b-%y %H:%M:%S',
        level=logging.DEBUG if debug else logging.INFO,
        force=True,
    )
    logging.getLogger('pandas').setLevel(logging.WARNING)


def _echo_validation(result: DisplacementResult) -> None:
    for limit in (result.profile.soft, result.profile.hard):
        if limit.valid:
            typer.secho(f'{limit.limit_type.title()} limit: valid', fg=typer.colors.GREEN)
            continue
        color = typer.colors.RED if limit.limit_type == 'hard' else typer.colors.YELLOW
        typer.secho(
            (
                f'{limit.limit_type.title()} limit: exceeded (worst hour '
                f'{limit.top_exceedance_index}, severity {limit.top_exceedance_value:.2f})'
            ),
            fg=color,
        )


def _echo_summary(result: DisplacementResult) -> None:
    title = f'Annual displacement for {result.region_id}'
    if result.year is not None:
        title += f' ({result.year})'
    typer.secho(f'{title}:', fg=typer.colors.BLUE)
    typer.echo(result.annual_frame().to_string(index=False))

    if not result.state_changes.empty:
        typer.secho('Annual impact by state:', fg=typer.colors.BLUE)
        typer.echo(result.state_changes.to_string())

    for message in result.warnings:
        typer.secho(message, fg=typer.colors.YELLOW)


@app.command()
def main(
    region: str = typer.Option(..., '--region', '-r', help='AVERT region identifier (e.g. NE).'),
    data_root: Path | None = typer.Option(
        None,
        '--data-root',
        help='Directory holding rdf_<REGION>.json and eere_defaults_<REGION>.json files.',
    ),
    year: int | None = typer.Option(None, '--year', help='Dataset year to load.'),
    annual_gwh: float = typer.Option(0.0, '--annual-gwh', help='Annual energy reduction (GWh).'),
    constant_mw: float = typer.Option(0.0, '--constant-mw', help='Constant hourly reduction (MW).'),
    broad_program: float = typer.Option(
        0.0, '--broad-program', help='Percent reduction applied in every hour.'
    ),
    reduction: float = typer.Option(
        0.0, '--reduction', help='Percent reduction applied to the top hours.'
    ),
    top_hours: float = typer.Option(
        0.0, '--top-hours', help='Percent of highest-load hours targeted by --reduction.'
    ),
    onshore_wind: float = typer.Option(0.0, '--onshore-wind', help='Onshore wind capacity (MW).'),
    offshore_wind: float = typer.Option(
        0.0, '--offshore-wind', help='Offshore wind capacity (MW).'
    ),
    utility_solar: float = typer.Option(
        0.0, '--utility-solar', help='Utility-scale solar capacity (MW).'
    ),
    rooftop_solar: float = typer.Option(
        0.0, '--rooftop-solar', help='Distributed rooftop solar capacity (MW).'
    ),
    method: str = typer.Option(
        PROPORTIONAL,
        '--method',
        help=f"Unit apportionment method ({', '.join(APPORTIONMENT_METHODS)}).",
    ),
    json_out: Path | None = typer.Option(
        None, '--json', help='Write the full nested result to this JSON file.'
    ),
    fail_on_hard_limit: bool = typer.Option(
        False,
        '--fail-on-hard-limit',
        help='Exit with status 3 when the profile exceeds the hard limit.',
    ),
    debug: bool = typer.Option(False, '--debug', help='Enable debug logging.'),
) -> None:
    """Run the displacement pipeline for one region and print the annual summary."""

    configure_logging(debug)
    if data_root is not None:
        configure_data_root(data_root)

    try:
        region_id = normalize_region_id(region)
        inputs = EereInputs(
            annual_gwh=annual_gwh,
            constant_mwh=constant_mw,
            broad_program=broad_program,
            reduction=reduction,
            top_hours=top_hours,
            onshore_wind=onshore_wind,
            offshore_wind=offshore_wind,
            utility_solar=utility_solar,
            rooftop_solar=rooftop_solar,
        )
    except ValueError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(EXIT_INVALID_INPUT)

    try:
        result = run_region(region_id, inputs, year=year, method=method)
    except DatasetValidationError as exc:
        typer.secho(f'Failed to load dataset: {exc}', err=True, fg=typer.colors.RED)
        raise typer.Exit(EXIT_MISSING_DATASET)
    except MissingDatasetError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(EXIT_MISSING_DATASET)
    except InvalidInputError as exc:
        typer.secho(f'Invalid EERE inputs: {exc}', err=True, fg=typer.colors.RED)
        raise typer.Exit(EXIT_INVALID_INPUT)

    _echo_validation(result)
    _echo_summary(result)

    if json_out is not None:
        json_out.parent.mkdir(parents=True, exist_ok=True)
        json_out.write_text(json.dumps(result.to_dict(), indent=2), encoding='utf-8')
        typer.secho(f'Saved nested results to {json_out.resolve()}', fg=typer.colors.GREEN)

    if fail_on_hard_limit and result.hard_limit_exceeded:
        raise typer.Exit(EXIT_HARD_LIMIT)


if __name__ == '__main__':  # pragma: no cover - CLI entry point
    app()
