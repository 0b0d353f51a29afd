"""
Command-line interface for qsearch.

Provides commands for running Grover searches over simple index predicates,
inspecting iteration counts, and managing settings.
"""

from __future__ import annotations

import json
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from qsearch import __version__

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="qsearch")
def main():
    """
    qsearch - Grover search on a state-vector simulator

    Amplifies basis indices that satisfy a classical predicate and reports
    the decided solutions with confidence diagnostics.
    """
    pass


@main.command()
@click.option("--qubits", "-n", type=int, required=True, help="Register width (space is 0..2^n-1)")
@click.option("--target", "-t", type=int, multiple=True, help="Mark this index (repeatable)")
@click.option("--divisible-by", type=int, help="Mark indices divisible by K")
@click.option("--range", "index_range", type=(int, int), help="Mark indices in [LO, HI]")
@click.option("--even", "parity", flag_value="even", help="Mark even indices")
@click.option("--odd", "parity", flag_value="odd", help="Mark odd indices")
@click.option("--shots", "-s", type=int, help="Measurement shots")
@click.option("--iterations", "-k", type=int, help="Pin the Grover iteration count")
@click.option("--seed", type=int, help="Random seed for sampling")
@click.option("--solution-threshold", type=float, help="Per-index frequency to count as a solution")
@click.option("--success-threshold", type=float, help="Required probability mass on solutions")
@click.option("--rule", type=click.Choice(["threshold", "wilson"]), help="Solution decision rule")
@click.option("--backend", "-b", type=click.Choice(["statevector", "qiskit"]), help="Execution backend")
@click.option("--format", "-f", "output_format", type=click.Choice(["text", "json"]), default="text")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Settings file")
def search(
    qubits: int,
    target: tuple[int, ...],
    divisible_by: int | None,
    index_range: tuple[int, int] | None,
    parity: str | None,
    shots: int | None,
    iterations: int | None,
    seed: int | None,
    solution_threshold: float | None,
    success_threshold: float | None,
    rule: str | None,
    backend: str | None,
    output_format: str,
    config_path: str | None,
):
    """
    Run a Grover search over a simple index predicate.

    Exactly one of --target, --divisible-by, --range, --even or --odd
    selects the marked indices.
    """
    from qsearch.core.config import QsearchConfig
    from qsearch.exceptions import SearchError
    from qsearch.quantum import oracle as oracles
    from qsearch.quantum.grover import GroverSearch

    chosen = [bool(target), divisible_by is not None, index_range is not None, parity is not None]
    if sum(chosen) != 1:
        raise click.UsageError(
            "Choose exactly one of --target, --divisible-by, --range, --even, --odd"
        )

    settings = QsearchConfig.load(config_path)
    if backend:
        settings.quantum.backend = backend
    settings.setup_logging()

    try:
        config = settings.to_grover_config().with_overrides(
            shots=shots,
            iterations=iterations,
            random_seed=seed,
            solution_threshold=solution_threshold,
            success_threshold=success_threshold,
            decision_rule=rule,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    if target:
        wanted = set(target)
        predicate = wanted.__contains__
        description = f"index in {sorted(wanted)}"
    elif divisible_by is not None:
        predicate = oracles.divisible_by(divisible_by)
        description = f"index divisible by {divisible_by}"
    elif index_range is not None:
        predicate = oracles.in_range(*index_range)
        description = f"{index_range[0]} <= index <= {index_range[1]}"
    else:
        predicate = oracles.even if parity == "even" else oracles.odd
        description = f"{parity} index"

    try:
        searcher = GroverSearch(settings.make_backend())
        result = searcher.search(predicate, qubits, config)
    except (SearchError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(result.to_dict(), indent=settings.output.json_indent))
        return

    console.print(Panel.fit(
        f"[bold blue]qsearch[/bold blue] - {description} over {result.search_space_size} states",
        border_style="blue"
    ))
    _print_result(result)


@main.command()
@click.argument("search_space_size", type=int)
@click.argument("marked_count", type=int)
def iterations(search_space_size: int, marked_count: int):
    """Show the optimal iteration count for N states with M marked."""
    from qsearch.quantum.iteration import optimal_iterations, theoretical_success_probability

    try:
        k = optimal_iterations(search_space_size, marked_count)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    p = theoretical_success_probability(search_space_size, marked_count, k)
    console.print(f"[bold]Optimal iterations:[/bold] {k}")
    console.print(f"[bold]Success probability:[/bold] {p:.4f}")


@main.command()
def backends():
    """List available execution backends."""
    from qsearch.quantum.engine import available_backends

    console.print(Panel.fit(
        "[bold blue]qsearch[/bold blue] - Backends",
        border_style="blue"
    ))

    table = Table()
    table.add_column("Backend", style="cyan")
    table.add_column("Status", style="yellow")

    for name, available in available_backends().items():
        status = "[green]Available[/green]" if available else "[red]Not Available[/red]"
        table.add_row(name, status)

    console.print(table)


@main.command()
@click.option("--init", "init_path", type=click.Path(), help="Write a default settings file here")
@click.option("--show", is_flag=True, help="Print the effective settings")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Settings file to load")
def config(init_path: str | None, show: bool, config_path: str | None):
    """Create or inspect qsearch settings."""
    from qsearch.core.config import QsearchConfig, generate_default_config

    if init_path:
        path = generate_default_config(init_path)
        console.print(f"Settings written to [green]{path}[/green]")

    if show or not init_path:
        settings = QsearchConfig.load(config_path)
        click.echo(settings.to_json(indent=settings.output.json_indent))
        for warning in settings.validate():
            console.print(f"[yellow]Warning:[/yellow] {warning}")


def _print_result(result) -> None:
    """Print a search result as tables."""
    summary = Table(title="Search Summary", show_header=False)
    summary.add_column("Property", style="cyan")
    summary.add_column("Value", style="green")

    summary.add_row("Backend", result.backend)
    summary.add_row("Marked states", str(result.marked_count))
    summary.add_row("Iterations", str(result.iterations_used))
    summary.add_row("Shots", str(result.shots))
    summary.add_row("Success probability", f"{result.success_probability:.3f}")
    summary.add_row("Expected probability", f"{result.expected_success_probability:.3f}")
    summary.add_row("Speedup (N / iterations)", f"{result.quantum_speedup:.1f}x")
    console.print(summary)

    if not result.solutions:
        console.print("[yellow]No solutions decided.[/yellow]")
        return

    table = Table(title="Solutions")
    table.add_column("Index", style="cyan")
    table.add_column("Bits", style="magenta")
    table.add_column("Count", style="yellow")
    table.add_column("Frequency", style="green")

    for index in result.ranked_solutions()[:20]:
        table.add_row(
            str(index),
            format(index, f"0{result.num_qubits}b"),
            str(result.histogram.get(index, 0)),
            f"{result.frequency(index):.1%}",
        )

    console.print(table)

    if not result.success:
        console.print("[yellow]Low confidence: consider a classical fallback.[/yellow]")


if __name__ == "__main__":
    main()
