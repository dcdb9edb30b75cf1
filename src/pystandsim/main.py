"""
Command-line interface for pystandsim.

Subcommands:
    project        Project a stand and print stand metrics by year
    finance        Project a stand under a prescription and analyze the rotation
    validate       Score the model against published yield-table benchmarks
    prescriptions  List the bundled silvicultural prescriptions

Stand input is a YAML, TOML or JSON file with ``trees`` and ``species``
(and optionally ``site_index``, ``area_acres`` and ``prescription``), or
one of the bundled benchmark stands via ``--benchmark``.
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config_loader import get_config_loader
from .exceptions import StandSimError
from .finance import analyze_investment
from .harvest import Prescription, get_prescription, get_prescriptions_by_category
from .logging_config import setup_logging
from .species import MappingSpeciesLookup
from .stand import project_stand, project_stand_time_series
from .validation import (
    METRIC_KEYS,
    accuracy_grade,
    build_species_lookup,
    deviation_band,
    generate_synthetic_trees,
    load_benchmarks,
    overall_accuracy_score,
    run_validation,
)

console = Console()

BAND_STYLES = {
    'close': 'green',
    'good': 'chartreuse3',
    'fair': 'yellow',
    'poor': 'dark_orange',
    'bad': 'red',
    'n/a': 'dim',
}


# =============================================================================
# Stand input
# =============================================================================

def _benchmark_stand(benchmark_id: str) -> Dict[str, Any]:
    benchmarks = {b.id: b for b in load_benchmarks()}
    if benchmark_id not in benchmarks:
        raise StandSimError(f"Unknown benchmark '{benchmark_id}'. "
                            f"Available: {', '.join(benchmarks)}")
    benchmark = benchmarks[benchmark_id]
    return {
        'trees': generate_synthetic_trees(benchmark),
        'species': build_species_lookup(benchmark),
        'site_index': benchmark.site_index,
        'area_acres': 1.0,
        'prescription': None,
    }


def _file_stand(path: Path) -> Dict[str, Any]:
    data = get_config_loader().load_file(path)
    return {
        'trees': list(data.get('trees', [])),
        'species': MappingSpeciesLookup(data.get('species', {})),
        'site_index': float(data.get('site_index', 1.0)),
        'area_acres': data.get('area_acres'),
        'prescription': data.get('prescription'),
    }


def load_stand_input(args: argparse.Namespace) -> Dict[str, Any]:
    """Resolve the stand described by the command-line arguments."""
    if args.benchmark:
        stand = _benchmark_stand(args.benchmark)
    elif args.input:
        stand = _file_stand(args.input)
    else:
        raise StandSimError("Provide a stand input file or --benchmark")

    if args.site_index is not None:
        stand['site_index'] = args.site_index
    if args.area is not None:
        stand['area_acres'] = args.area
    if getattr(args, 'prescription', None):
        stand['prescription'] = args.prescription
    if isinstance(stand['prescription'], str):
        stand['prescription'] = get_prescription(stand['prescription'])
    return stand


# =============================================================================
# Subcommands
# =============================================================================

def cmd_project(args: argparse.Namespace) -> int:
    stand = load_stand_input(args)
    points = list(project_stand_time_series(
        stand['trees'], stand['species'], args.years,
        site_index=stand['site_index'], area_acres=stand['area_acres'],
        prescription=stand['prescription'], step_years=args.step,
    ))
    if points and points[-1].year != args.years:
        points.append(project_stand(
            stand['trees'], stand['species'], args.years,
            site_index=stand['site_index'], area_acres=stand['area_acres'],
            prescription=stand['prescription'],
        ))

    if args.json:
        print(json.dumps([p.to_dict(include_trees=False) for p in points], indent=2))
        return 0

    final = points[-1]
    title = stand['prescription'].name if isinstance(stand['prescription'], Prescription) else None
    console.print(Panel.fit(
        "[bold blue]pystandsim Stand Projection[/bold blue]\n"
        f"Trees: {final.stand.total_trees}  Area: {final.stand.area_acres:.2f} ac  "
        f"Region: {final.region or 'n/a'}  Context: {final.stand.context_label}"
        + (f"\nPrescription: {title}" if title else ""),
        border_style="blue"
    ))

    table = Table(title="Stand Metrics", show_header=True)
    table.add_column("Year", style="cyan", justify="right")
    table.add_column("TPA", justify="right")
    table.add_column("BA (ft²/ac)", justify="right")
    table.add_column("QMD (in)", justify="right")
    table.add_column("SDI", justify="right")
    table.add_column("RD", justify="right")
    table.add_column("Volume (BF)", justify="right")
    table.add_column("CO₂ (lbs)", justify="right")
    table.add_column("Stocking")
    for p in points:
        s = p.stand.to_dict()
        table.add_row(
            str(p.year),
            f"{s['trees_per_acre']:.1f}",
            f"{s['basal_area_sqft']:.1f}",
            f"{s['qmd']:.1f}",
            str(s['sdi']),
            f"{s['rel_density']:.2f}",
            f"{s['total_volume_bf']:,}",
            f"{s['total_co2_lbs']:,}",
            s['stocking_level'],
        )
    console.print(table)

    if final.harvest_events:
        _print_harvest_events(final.harvest_events)
    if final.fallbacks.any:
        console.print(f"[yellow]⚠ Defaults used: {final.fallbacks.to_dict()}[/yellow]")
    return 0


def _print_harvest_events(events) -> None:
    table = Table(title="Harvest Events", show_header=True)
    table.add_column("Year", style="cyan", justify="right")
    table.add_column("Action")
    table.add_column("Trees", justify="right")
    table.add_column("Volume (BF)", justify="right")
    table.add_column("Biomass (lbs)", justify="right")
    table.add_column("Revenue ($)", style="green", justify="right")
    for e in events:
        table.add_row(
            str(e.year),
            e.label,
            str(e.trees_removed),
            f"{e.volume_bf:,.0f}",
            f"{e.biomass_lbs:,.0f}",
            f"{e.revenue:,.2f}" if e.revenue is not None else "-",
        )
    console.print(table)


def cmd_finance(args: argparse.Namespace) -> int:
    stand = load_stand_input(args)
    projection = project_stand(
        stand['trees'], stand['species'], args.rotation,
        site_index=stand['site_index'], area_acres=stand['area_acres'],
        prescription=stand['prescription'],
    )
    summary = analyze_investment(
        projection.harvest_events, projection.stand.area_acres, args.rotation,
        discount_rate=args.rate,
    )

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2))
        return 0

    _print_harvest_events(summary.harvest_events)

    table = Table(title="Investment Analysis", show_header=True)
    table.add_column("Measure", style="cyan")
    table.add_column("Value", justify="right")
    data = summary.to_dict()
    table.add_row("Discount rate", f"{summary.discount_rate:.1%}")
    table.add_row("Rotation (years)", str(summary.rotation_length))
    table.add_row("Establishment cost", f"${data['establishment_cost']:,}")
    table.add_row("Total revenue", f"${data['total_revenue']:,}")
    table.add_row("Total costs", f"${data['total_costs']:,}")
    table.add_row("Net income", f"${data['net_income']:,}")
    table.add_row("NPV", f"${data['npv']:,}")
    table.add_row("NPV per acre", f"${data['npv_per_acre']:,}")
    table.add_row("LEV per acre", f"${data['lev_per_acre']:,}")
    irr = summary.irr_percent
    table.add_row("IRR", f"{irr:.1f}%" if irr is not None else "n/a")
    console.print(table)

    style = "green" if summary.npv >= 0 else "red"
    console.print(f"\n[bold {style}]NPV at {summary.discount_rate:.1%}: "
                  f"${data['npv']:,}[/bold {style}]")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    benchmarks = load_benchmarks()
    if args.benchmark:
        benchmarks = [b for b in benchmarks if b.id in args.benchmark]
        if not benchmarks:
            raise StandSimError(f"No benchmarks match {args.benchmark}")

    console.print(Panel.fit(
        "[bold blue]pystandsim Benchmark Validation[/bold blue]\n"
        f"Benchmarks: {len(benchmarks)}"
        + (f"  Through year: {args.max_year}" if args.max_year is not None else ""),
        border_style="blue"
    ))

    results = run_validation(max_year=args.max_year, benchmarks=benchmarks)

    if args.detail:
        for r in results:
            _print_benchmark_detail(r)

    table = Table(title="Validation Summary", show_header=True)
    table.add_column("Benchmark", style="cyan")
    table.add_column("Region")
    for key in METRIC_KEYS:
        table.add_column(f"{key} |dev| %", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Grade", justify="center")
    for r in results:
        grade = r.grade
        table.add_row(
            r.benchmark.name,
            r.benchmark.region.upper(),
            *[_format_dev(r.by_metric[k], absolute=True) for k in METRIC_KEYS],
            f"{r.overall_score:.1f}",
            f"[{grade.color}]{grade.letter}[/{grade.color}]",
        )
    console.print(table)

    score = overall_accuracy_score(results)
    grade = accuracy_grade(score)
    console.print(f"\n[bold {grade.color}]Overall accuracy: {score:.1f} "
                  f"({grade.letter}, {grade.label})[/bold {grade.color}]")
    return 0 if score >= args.min_score else 1


def _format_dev(dev: Optional[float], absolute: bool = False) -> str:
    if dev is None:
        return "[dim]n/a[/dim]"
    style = BAND_STYLES[deviation_band(dev)]
    text = f"{dev:.1f}" if absolute else f"{dev:+.1f}"
    return f"[{style}]{text}[/{style}]"


def _print_benchmark_detail(result) -> None:
    b = result.benchmark
    table = Table(title=f"{b.name} ({b.species_label})", show_header=True)
    table.add_column("Year", style="cyan", justify="right")
    for key in METRIC_KEYS:
        table.add_column(f"{key} pub/model", justify="right")
        table.add_column("dev %", justify="right")
    for d in result.decades:
        cells: List[str] = []
        for key in METRIC_KEYS:
            cells.append(f"{d.published[key]:g} / {d.modeled[key]:g}")
            cells.append(_format_dev(d.deviation[key]))
        table.add_row(str(d.year), *cells)
    console.print(table)


def cmd_prescriptions(args: argparse.Namespace) -> int:
    prescriptions = get_prescriptions_by_category(args.category)

    if args.json:
        print(json.dumps([{
            'id': p.id,
            'name': p.name,
            'category': p.category,
            'description': p.description,
            'actions': [a.to_dict() for a in p.actions],
        } for p in prescriptions], indent=2))
        return 0

    table = Table(title="Prescriptions", show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Actions")
    for p in prescriptions:
        actions = ", ".join(f"yr {a.year} {a.display_label} ({a.remove_pct:.0%})"
                            for a in p.actions) or "-"
        table.add_row(p.id, p.name, p.category, actions)
    console.print(table)
    return 0


# =============================================================================
# Argument parsing
# =============================================================================

def _add_stand_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="Stand input file (YAML, TOML or JSON)"
    )
    parser.add_argument(
        "--benchmark",
        help="Use a bundled benchmark stand instead of an input file"
    )
    parser.add_argument(
        "--site-index",
        type=float,
        help="Site productivity multiplier (overrides the input file)"
    )
    parser.add_argument(
        "--area",
        type=float,
        help="Stand area in acres (default: estimated from tree positions)"
    )
    parser.add_argument(
        "--prescription",
        help="Prescription id from the bundled catalog"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print JSON instead of tables"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pystandsim",
        description="Deterministic planted-stand growth, harvest and finance projections",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pystandsim project --benchmark loblolly-300 --years 30
  pystandsim project stand.yaml --prescription even-aged-sawtimber --years 40
  pystandsim finance stand.yaml --prescription even-aged-pulpwood --rotation 30
  pystandsim validate --max-year 30 --detail
  pystandsim prescriptions --category even-aged
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress (-v) or per-year detail (-vv)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    project = subparsers.add_parser("project", help="Project a stand over time")
    _add_stand_arguments(project)
    project.add_argument("--years", type=int, default=50, help="Projection horizon (default: 50)")
    project.add_argument("--step", type=int, default=5, help="Years between rows (default: 5)")
    project.set_defaults(func=cmd_project)

    finance = subparsers.add_parser("finance", help="Analyze a rotation's cash flows")
    _add_stand_arguments(finance)
    finance.add_argument("--rotation", type=int, default=40, help="Rotation length in years (default: 40)")
    finance.add_argument("--rate", type=float, default=0.04, help="Real discount rate (default: 0.04)")
    finance.set_defaults(func=cmd_finance)

    validate = subparsers.add_parser("validate", help="Run benchmark validation")
    validate.add_argument("--max-year", type=int, help="Only compare decades up to this year")
    validate.add_argument(
        "--benchmark",
        action="append",
        help="Benchmark id to run (repeatable; default: all)"
    )
    validate.add_argument("--detail", action="store_true", help="Print per-decade comparisons")
    validate.add_argument(
        "--min-score",
        type=float,
        default=0.0,
        help="Exit non-zero when the overall score is below this value"
    )
    validate.set_defaults(func=cmd_validate)

    prescriptions = subparsers.add_parser("prescriptions", help="List bundled prescriptions")
    prescriptions.add_argument("--category", help="Only list this category")
    prescriptions.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    prescriptions.set_defaults(func=cmd_prescriptions)

    return parser


def _log_level(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the pystandsim command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(_log_level(args.verbose))

    try:
        return args.func(args)
    except StandSimError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        return 2


if __name__ == "__main__":
    sys.exit(main())
