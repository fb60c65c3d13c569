"""CLI entry point for Gig Match."""

import json
import logging
from pathlib import Path
from typing import Annotated, Any

from dotenv import load_dotenv

# Load environment variables from .env.local
# Path: main.py -> gig_match/ -> src/ -> project root
load_dotenv(Path(__file__).parent.parent.parent / ".env.local")

import typer  # noqa: E402
from pydantic import TypeAdapter, ValidationError  # noqa: E402
from rich.console import Console  # noqa: E402
from rich.logging import RichHandler  # noqa: E402
from rich.panel import Panel  # noqa: E402
from rich.table import Table  # noqa: E402

from gig_match.config import get_settings  # noqa: E402
from gig_match.errors import InvalidSpecification  # noqa: E402
from gig_match.matching.gale_shapley import GaleShapleySolver  # noqa: E402
from gig_match.matching.orchestrator import MatchOrchestrator  # noqa: E402
from gig_match.matching.stability import verify_stability  # noqa: E402
from gig_match.models.entities import Proposer, Reviewer  # noqa: E402
from gig_match.models.matching import AlgorithmKind, MatchResponse  # noqa: E402
from gig_match.scoring.hybrid import HybridScoringEngine  # noqa: E402

app = typer.Typer(
    name="gig-match",
    help="Gig Match - hybrid scoring and stable matching of gigs to creative talent",
    add_completion=False,
)
console = Console()


def configure_logging(level: str) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def read_json(path: Path) -> Any:
    """Read and parse a JSON file."""
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] Invalid JSON in {path}: {e}")
        raise typer.Exit(1) from e


def load_entities(path: Path, adapter: TypeAdapter) -> list:
    """Parse a JSON list (or single object) of entities."""
    data = read_json(path)
    if isinstance(data, dict):
        data = [data]
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {path} is not valid: {e}")
        raise typer.Exit(1) from e


def score_style(score: int) -> str:
    return "green" if score >= 70 else "yellow" if score >= 50 else "red"


def print_response(response: MatchResponse) -> None:
    """Render matches and run metadata."""
    meta = response.metadata

    if response.matches:
        table = Table(title="Matches", show_lines=False)
        table.add_column("Proposer")
        table.add_column("Reviewer")
        table.add_column("Rank", justify="right")
        table.add_column("Score", justify="right")
        table.add_column("Rule", justify="right")
        table.add_column("Semantic", justify="right")
        table.add_column("Strong match in")

        for match in response.matches:
            color = score_style(match.score)
            table.add_row(
                match.proposer_id,
                match.reviewer_id,
                str(match.rank),
                f"[{color}]{match.score}[/{color}]",
                f"{match.breakdown.rule_based_total:.1f}",
                "n/a"
                if match.breakdown.semantic_unavailable
                else f"{match.breakdown.semantic_total:.1f}",
                ", ".join(match.reasons) or "-",
            )
        console.print(table)
    else:
        console.print("[yellow]No matches found.[/yellow]")

    algorithm = meta.algorithm.value if meta.algorithm else "none"
    console.print(
        f"\n[bold]Algorithm:[/bold] {algorithm} "
        f"[dim](requested {meta.requested_algorithm.value}, "
        f"stability {meta.stability.value})[/dim]"
    )
    console.print(
        f"[bold]Candidates:[/bold] {meta.total_candidates}  "
        f"[bold]Matched:[/bold] {meta.matched_proposers}/{meta.total_proposers} proposers, "
        f"{meta.matched_reviewers}/{meta.total_reviewers} reviewers  "
        f"[dim][{meta.processing_time_ms:.0f}ms][/dim]"
    )
    if meta.iterations is not None:
        console.print(
            f"[dim]Proposals: {meta.iterations}, blocking pairs: {meta.blocking_pairs}[/dim]"
        )
    if not meta.semantic_available:
        console.print("[yellow]Semantic similarity unavailable; rule-based scores only[/yellow]")
    for fallback in meta.fallbacks:
        next_name = fallback.next.value if fallback.next else "none"
        console.print(
            f"[yellow]Fallback:[/yellow] {fallback.failed.value} -> {next_name} ({fallback.reason})"
        )
    for warning in meta.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


@app.command()
def match(
    proposers: Annotated[Path, typer.Argument(help="JSON file with gigs to staff")],
    reviewers: Annotated[Path, typer.Argument(help="JSON file with the talent pool")],
    algorithm: Annotated[
        AlgorithmKind,
        typer.Option("--algorithm", "-a", help="Matching algorithm"),
    ] = AlgorithmKind.AUTO,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", min=1, max=100, help="Ranked matches per gig"),
    ] = None,
    deadline: Annotated[
        float | None,
        typer.Option("--deadline", "-d", min=0.1, help="Run deadline in seconds"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write match records as JSON"),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show detailed progress")
    ] = False,
) -> None:
    """Match gigs against a talent pool."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)

    console.print(
        Panel.fit(
            "[bold blue]Gig Match[/bold blue] - Matching gigs to talent",
            border_style="blue",
        )
    )

    gigs = load_entities(proposers, TypeAdapter(list[Proposer]))
    pool = load_entities(reviewers, TypeAdapter(list[Reviewer]))

    if verbose:
        console.print(f"[dim]Gigs:[/dim] {len(gigs)} from {proposers}")
        console.print(f"[dim]Talent:[/dim] {len(pool)} from {reviewers}")
        console.print(f"[dim]Similarity:[/dim] {settings.similarity_provider}")
        console.print()

    config = settings.algorithm_config
    with settings.create_similarity_service() as service:
        orchestrator = MatchOrchestrator(HybridScoringEngine(service, config), config)
        try:
            response = orchestrator.find_matches(
                gigs,
                pool,
                limit=limit or settings.default_limit,
                algorithm=algorithm,
                deadline_seconds=deadline,
            )
        except InvalidSpecification as e:
            console.print(f"\n[red]Error:[/red] {e.message}")
            raise typer.Exit(1) from e

    print_response(response)

    if response.error is not None:
        console.print(f"[red]Error:[/red] {response.error.message}")
        raise typer.Exit(1)

    if output is not None:
        records = [m.to_record() for m in response.matches]
        output.write_text(json.dumps(records, indent=2), encoding="utf-8")
        console.print(f"\n[green]Match records saved to:[/green] {output}")


@app.command()
def stable(
    preferences: Annotated[
        Path,
        typer.Argument(help='JSON file: {"proposers": {id: [...]}, "reviewers": {id: [...]}}'),
    ],
    max_iterations: Annotated[
        int | None,
        typer.Option("--max-iterations", min=1, help="Proposal bound"),
    ] = None,
) -> None:
    """Run deferred acceptance on raw preference lists."""
    settings = get_settings()
    configure_logging(settings.log_level)

    data = read_json(preferences)
    if not isinstance(data, dict) or not {"proposers", "reviewers"} <= data.keys():
        console.print("[red]Error:[/red] Expected 'proposers' and 'reviewers' objects")
        raise typer.Exit(1)

    solver = GaleShapleySolver(max_iterations or settings.max_iterations)
    try:
        result = solver.solve(data["proposers"], data["reviewers"])
        report = verify_stability(result.matching, data["proposers"], data["reviewers"])
    except InvalidSpecification as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e

    table = Table(title="Stable Matching")
    table.add_column("Proposer")
    table.add_column("Reviewer")
    for proposer_id in sorted(data["proposers"]):
        table.add_row(proposer_id, result.matching.get(proposer_id, "[dim]unmatched[/dim]"))
    console.print(table)

    console.print(f"\n[bold]Proposals:[/bold] {result.iterations}")
    if result.warning is not None:
        console.print(f"[yellow]Warning:[/yellow] {result.warning.message}")

    if report.is_stable:
        console.print("[green]Stable:[/green] no blocking pairs")
    else:
        console.print(f"[red]Unstable:[/red] {report.total_blocking_pairs} blocking pairs")
        for pair in report.blocking_pairs:
            console.print(f"  - {pair.proposer_id} / {pair.reviewer_id} ({pair.reason})")


@app.command()
def version() -> None:
    """Show version information."""
    from gig_match import __version__

    console.print(f"Gig Match v{__version__}")


if __name__ == "__main__":
    app()
