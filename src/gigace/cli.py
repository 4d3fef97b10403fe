"""Command line interface for gig generation."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import ConfigError, ProjectConfig
from .gig import GigData, GigService
from .llm.provider import OfflineProvider
from .tasks.graph import GraphConfigurationError, TaskGraph

app = typer.Typer(help="Gig listing generator")
console = Console()

STATUS_STYLES = {
    "pending": "[yellow]pending",
    "running": "[cyan]thinking...",
    "completed": "[green]completed ✅",
    "repaired": "[magenta]repaired 🛠",
}


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show engine logs")) -> None:
    """Generate marketplace gig listings from a single keyword."""

    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
            force=True,
        )


def _load_config(config_path: Optional[Path]) -> ProjectConfig:
    if config_path is None:
        return ProjectConfig.default()
    try:
        return ProjectConfig.from_file(config_path)
    except ConfigError as exc:
        console.print(f"[bold red]Error:[/] {exc}")
        raise typer.Exit(code=1)


def _service(config_path: Optional[Path], seed: Optional[int], offline: bool) -> GigService:
    config = _load_config(config_path)
    try:
        return GigService(config, provider=OfflineProvider() if offline else None, seed=seed)
    except ConfigError as exc:
        console.print(f"[bold red]Error:[/] {exc}")
        raise typer.Exit(code=1)


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/] {message}")
    raise typer.Exit(code=1)


def _render_plan(graph: TaskGraph, title: str = "Execution Plan") -> None:
    plan = Table(title=title, show_lines=True)
    plan.add_column("Wave")
    plan.add_column("Task ID")
    plan.add_column("Depends on")
    plan.add_column("Tools")
    plan.add_column("Description")
    for wave, task_ids in enumerate(graph.levels(), start=1):
        for task_id in task_ids:
            spec = graph.specs[task_id]
            plan.add_row(
                str(wave),
                task_id,
                ", ".join(spec.depends_on) or "-",
                ", ".join(spec.tools) or "-",
                spec.description,
            )
    console.print(plan)


def _progress(task_ids: List[str], graph: TaskGraph) -> tuple:
    progress = Progress(
        SpinnerColumn(style="cyan"),
        TextColumn("[progress.description]{task.description}"),
        TextColumn("{task.fields[status]}"),
        transient=False,
    )
    rows = {
        task_id: progress.add_task(
            f"{task_id} - {graph.specs[task_id].description}", status=STATUS_STYLES["pending"], start=False
        )
        for task_id in task_ids
    }

    def on_event(event: Dict[str, Any]) -> None:
        if event.get("type") != "status" or event.get("task_id") not in rows:
            return
        row = rows[event["task_id"]]
        status = event["status"]
        if status == "running":
            progress.start_task(row)
        progress.update(row, status=STATUS_STYLES.get(status, status))

    return progress, on_event


def _render_gig(gig: GigData) -> None:
    console.rule(f"[bold green]{gig.title}")
    console.print(f"[bold]Category:[/] {gig.category} > {gig.subcategory}")
    console.print(f"[bold]Tags:[/] {', '.join(gig.search_tags)}")

    packages = Table(title="Packages", show_lines=True)
    packages.add_column("Tier")
    packages.add_column("Title")
    packages.add_column("Price")
    packages.add_column("Delivery")
    packages.add_column("Revisions")
    packages.add_column("Description")
    if gig.pricing is not None:
        for tier in ("basic", "standard", "premium"):
            package = getattr(gig.pricing, tier)
            packages.add_row(
                tier,
                package.title,
                f"${package.price}",
                f"{package.delivery_days}d",
                str(package.revisions),
                package.description,
            )
    console.print(packages)
    console.print(Markdown(gig.description or ""))

    console.print("[bold]FAQ[/]")
    for faq in gig.faqs:
        console.print(f"- [bold]{faq.question}[/] {faq.answer}")
    console.print("[bold]Buyer requirements[/]")
    for item in gig.requirements:
        console.print(f"- {item}")
    if gig.image_prompt:
        console.print(f"[bold]Image prompt:[/] {gig.image_prompt}")
    if gig.repaired_tasks:
        console.print(f"[magenta]Repaired tasks:[/] {', '.join(gig.repaired_tasks)}")


@app.command()
def generate(
    keyword: str = typer.Argument(..., help="Main keyword of the gig"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML configuration"),
    seed: Optional[int] = typer.Option(None, help="Seed for reproducible fallback content"),
    offline: bool = typer.Option(False, help="Skip the generation backend entirely"),
    tone: Optional[str] = typer.Option(None, help="Tone of the title"),
    angle: Optional[str] = typer.Option(None, help="Copywriting framework for the description"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Generate a complete gig listing for KEYWORD."""

    service = _service(config_path, seed, offline)
    graph = service.plan()
    if as_json:
        gig = asyncio.run(service.generate_gig(keyword, tone=tone, angle=angle))
    else:
        console.print(f"[bold green]Generating gig[/] for '{keyword}'")
        progress, on_event = _progress(graph.order(), graph)
        with progress:
            gig = asyncio.run(service.generate_gig(keyword, tone=tone, angle=angle, on_event=on_event))
    if gig.error:
        _fail(gig.error)
    if as_json:
        console.print_json(gig.model_dump_json())
    else:
        _render_gig(gig)


@app.command()
def plan(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML configuration"),
) -> None:
    """Show the gig task graph in execution waves."""

    service = _service(config_path, None, True)
    _render_plan(service.plan())


def _parse_inputs(pairs: List[str]) -> Dict[str, Any]:
    request: Dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            _fail(f"Input '{pair}' must look like key=value")
        key, value = pair.split("=", 1)
        request[key.strip()] = value
    return request


@app.command()
def run(
    config_path: Path = typer.Argument(..., help="Path to YAML configuration declaring tasks"),
    inputs: List[str] = typer.Option([], "--input", "-i", help="Request value as key=value"),
    seed: Optional[int] = typer.Option(None, help="Seed for reproducible fallback content"),
    offline: bool = typer.Option(False, help="Skip the generation backend entirely"),
) -> None:
    """Execute the task graph declared in the given config file."""

    service = _service(config_path, seed, offline)
    if not service.config.tasks:
        _fail(f"{config_path} declares no tasks")
    request = _parse_inputs(inputs)
    try:
        graph = TaskGraph(service.config.tasks)
    except GraphConfigurationError as exc:
        _fail(str(exc))
    console.print(f"[bold green]Running project[/] {service.config.name}")
    _render_plan(graph)

    progress, on_event = _progress(graph.order(), graph)
    try:
        with progress:
            result = asyncio.run(service.run_tasks(request, on_event=on_event))
    except GraphConfigurationError as exc:
        _fail(str(exc))

    table = Table(title="Task outputs", show_lines=True)
    table.add_column("Task ID")
    table.add_column("Status")
    table.add_column("Output")
    for task_id, value in result.outputs.items():
        status = "repaired" if task_id in result.repaired_tasks else "completed"
        table.add_row(task_id, status, json.dumps(value, indent=2, ensure_ascii=False))
    console.print(table)


@app.command()
def market(
    keyword: str = typer.Argument(..., help="Main keyword of the gig"),
    concept: Optional[str] = typer.Option(None, help="Your gig concept or angle"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML configuration"),
    seed: Optional[int] = typer.Option(None, help="Seed for reproducible fallback content"),
    offline: bool = typer.Option(False, help="Skip the generation backend entirely"),
) -> None:
    """Analyze the competitive market for KEYWORD."""

    service = _service(config_path, seed, offline)
    strategy = asyncio.run(service.analyze_market(keyword, concept))
    if strategy.error:
        _fail(strategy.error)
    console.rule(f"[bold green]Market for {keyword}")
    console.print(strategy.market_summary)
    table = Table(title="Competitors", show_lines=True)
    table.add_column("Gig")
    table.add_column("Offering")
    table.add_column("Selling points")
    table.add_column("Price range")
    for profile in strategy.competitor_profiles:
        table.add_row(
            profile.gig_title,
            profile.primary_offering,
            "\n".join(profile.key_selling_points),
            profile.estimated_price_range,
        )
    console.print(table)
    console.print("[bold]Success factors[/]")
    for item in strategy.success_factors:
        console.print(f"- {item}")
    console.print("[bold]Recommendations[/]")
    for item in strategy.recommendations:
        console.print(f"- {item}")
    console.print(f"[bold]Outreach tip:[/] {strategy.outreach_tip}")
    console.print(f"[bold]Winning approach:[/] {strategy.winning_approach}")


@app.command()
def video(
    keyword: str = typer.Argument(..., help="Main keyword of the gig"),
    title: str = typer.Argument(..., help="Gig title"),
    description: str = typer.Argument(..., help="Gig description"),
    audience: Optional[str] = typer.Option(None, help="Target audience"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML configuration"),
    seed: Optional[int] = typer.Option(None, help="Seed for reproducible fallback content"),
    offline: bool = typer.Option(False, help="Skip the generation backend entirely"),
) -> None:
    """Plan an intro video for a gig."""

    service = _service(config_path, seed, offline)
    assets = asyncio.run(service.generate_video_assets(keyword, title, description, audience))
    if assets.error:
        _fail(assets.error)
    console.rule(f"[bold green]{assets.video_concept}")
    console.print(f"[bold]Script:[/] {assets.script}")
    for index, prompt in enumerate(assets.visual_prompts, start=1):
        console.print(f"[bold]Scene {index}:[/] {prompt}")
    console.print(f"[bold]Audio:[/] {assets.audio_suggestion}")
    console.print(f"[bold]Duration:[/] {assets.duration_seconds}s")
    console.print(f"[bold]Call to action:[/] {assets.call_to_action}")


if __name__ == "__main__":  # pragma: no cover
    app()
