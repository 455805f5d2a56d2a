"""
Command-line interface for Decomp Lab.

Usage:
    decomp-lab info           Show supported scalar fields
    decomp-lab eig            Run an eigen-decomposition on a generated matrix
    decomp-lab lstsq          Compare least-squares solvers on a generated problem
"""

import logging
from typing import Annotated

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from decomp_lab import __version__
from decomp_lab.algorithms import (
    DEFAULT_SEED,
    EigenSolverKind,
    LeastSquaresKind,
    create_band_matrix,
    create_least_squares_problem,
    create_linear_spectrum_matrix,
    create_solver,
    create_strategy,
)
from decomp_lab.data import ScalarField, get_spec, get_tolerance, list_available_fields
from decomp_lab.errors import DecompositionError

app = typer.Typer(
    name="decomp-lab",
    help="Symmetric/Hermitian eigen-decomposition, QR and least squares",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"decomp-lab version {__version__}")
        raise typer.Exit()


def _parse_field(name: str) -> ScalarField:
    try:
        return get_spec(name).field
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.callback()  # type: ignore[misc]
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
) -> None:
    """Decomp Lab - dense and banded matrix decompositions."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


@app.command()  # type: ignore[misc]
def info() -> None:
    """Display information about supported scalar fields."""
    table = Table(title="Supported Scalar Fields")

    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("LAPACK", justify="center")
    table.add_column("Bits", justify="right")
    table.add_column("Norm type", justify="right")
    table.add_column("Machine ε", justify="right")
    table.add_column("Reconstruction tol", justify="right")

    for field in list_available_fields():
        spec = get_spec(field)
        table.add_row(
            field.value,
            spec.lapack_prefix,
            str(spec.bits),
            spec.norm_field.value,
            f"{spec.machine_epsilon:.2e}",
            f"{get_tolerance(field, 'reconstruction_tol'):.0e}",
        )

    console.print(table)


@app.command()  # type: ignore[misc]
def eig(
    size: Annotated[
        int,
        typer.Option("--size", "-n", help="Matrix dimension", min=1),
    ] = 8,
    field: Annotated[
        str,
        typer.Option("--field", "-f", help="Scalar field (float64, complex64, ...)"),
    ] = "float64",
    strategy: Annotated[
        str,
        typer.Option("--strategy", "-s", help="Solver: " + ", ".join(k.value for k in EigenSolverKind)),
    ] = EigenSolverKind.FULL_QR.value,
    bandwidth: Annotated[
        int | None,
        typer.Option("--bandwidth", "-b", help="Generate a band matrix with this half-bandwidth", min=0),
    ] = None,
    seed: Annotated[
        int,
        typer.Option("--seed", help="Random seed"),
    ] = DEFAULT_SEED,
) -> None:
    """Decompose a generated symmetric/Hermitian matrix."""
    scalar_field = _parse_field(field)
    try:
        solver = create_strategy(strategy)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if bandwidth is None:
        a = create_linear_spectrum_matrix(size, 100.0, scalar_field, seed=seed)
    else:
        a = create_band_matrix(size, bandwidth, scalar_field, seed=seed)

    try:
        result = solver(a, half_bandwidth=bandwidth)
    except DecompositionError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(f"[bold]Eigen-decomposition[/] ({solver!r})")
    band = "" if bandwidth is None else f", half-bandwidth {bandwidth}"
    console.print(f"  Matrix: {size}×{size} {scalar_field.value}{band}")

    table = Table(title="Eigenvalues")
    table.add_column("i", justify="right")
    table.add_column("λ", justify="right")
    table.add_column("‖Av - λv‖", justify="right")
    for i in range(result.num_eigenvalues):
        residual = "-"
        if i < result.num_eigenvectors:
            v = result.eigenvector(i)
            residual = f"{np.linalg.norm(a @ v - result.eigenvalue(i) * v):.2e}"
        table.add_row(str(i), f"{result.eigenvalue(i):.8g}", residual)
    console.print(table)

    if result.good():
        console.print("[green]Status: good[/]")
    elif result.inaccurate():
        console.print("[yellow]Status: inaccurate[/]")
    else:
        console.print(
            f"[red]Status: fail[/] ({result.num_eigenvalues} of {result.n} eigenvalues)"
        )


@app.command()  # type: ignore[misc]
def lstsq(
    rows: Annotated[
        int,
        typer.Option("--rows", "-m", help="Number of equations", min=1),
    ] = 20,
    cols: Annotated[
        int,
        typer.Option("--cols", "-n", help="Number of unknowns", min=1),
    ] = 5,
    field: Annotated[
        str,
        typer.Option("--field", "-f", help="Scalar field (float64, complex64, ...)"),
    ] = "float64",
    seed: Annotated[
        int,
        typer.Option("--seed", help="Random seed"),
    ] = DEFAULT_SEED,
) -> None:
    """Compare the least-squares solvers on a generated problem."""
    scalar_field = _parse_field(field)
    try:
        problem = create_least_squares_problem(rows, cols, scalar_field, seed=seed)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    table = Table(title=f"Least Squares ({rows}×{cols} {scalar_field.value})")
    table.add_column("Solver", style="cyan")
    table.add_column("Rank", justify="right")
    table.add_column("‖b - Ax‖", justify="right")
    table.add_column("‖x - x_true‖", justify="right")

    for kind in LeastSquaresKind:
        solver = create_solver(kind, problem.a)
        try:
            x = solver.solve(problem.b)
        except DecompositionError as exc:
            table.add_row(kind.value, str(solver.rank), "-", f"[red]{exc}[/]")
            continue
        table.add_row(
            kind.value,
            str(solver.rank),
            f"{solver.residual_norm(problem.b):.3e}",
            f"{np.linalg.norm(x - problem.x_true):.3e}",
        )

    console.print(table)


if __name__ == "__main__":
    app()
