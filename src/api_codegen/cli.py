"""CLI entry point for api-codegen."""

import logging
from pathlib import Path

import click

from api_codegen.config import CodegenConfig, Source, Target
from api_codegen.engine import new_engine
from api_codegen.log import CATEGORIES, configure_logging
from api_codegen.sources import detect_source_type


def _parse_target(value: str) -> Target:
    """name[:variant[:type]] -> Target."""
    name, _, rest = value.partition(":")
    variant, _, type_ = rest.partition(":")
    if not name:
        raise click.BadParameter(f"target {value!r} has no name")
    return Target(name=name, variant=variant, type=type_)


def _sources(locations: tuple[str, ...]) -> list[Source]:
    return [Source(type=detect_source_type(loc), path=loc) for loc in locations]


def _load_config(config_path: Path | None, bespoke: bool) -> CodegenConfig:
    config = CodegenConfig.from_file(config_path) if config_path else CodegenConfig()
    if bespoke:
        config.bespoke_workflow = True
    return config


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output.")
@click.option("--log", "log_categories", multiple=True, type=click.Choice(CATEGORIES), help="Only log these categories.")
def main(verbose: bool, log_categories: tuple[str, ...]):
    """API Codegen: unify API descriptions and generate code from them."""
    configure_logging(
        level=logging.DEBUG if verbose else logging.INFO,
        categories=list(log_categories) or None,
    )


@main.command()
@click.argument("sources", nargs=-1, required=True)
@click.option("-t", "--target", "targets", multiple=True, default=("snapshot",), help="Target as name[:variant[:type]].")
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output directory.")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, path_type=Path), help="YAML config file.")
@click.option("--bespoke", is_flag=True, help="Only generate what workflows use.")
def generate(sources: tuple[str, ...], targets: tuple[str, ...], output: Path, config_path: Path | None, bespoke: bool):
    """Load SOURCES, unify them and run each target."""
    config = _load_config(config_path, bespoke)
    engine = new_engine(config=config)
    parsed_targets = [_parse_target(t) for t in targets]

    click.echo(f"Loading {len(sources)} source(s)...")
    report = engine.generate(_sources(sources), parsed_targets, str(output))
    click.echo(
        f"Unified {len(engine.resources)} resources, {len(engine.components)} components, "
        f"{len(engine.workflows)} workflows."
    )

    for path in report.generated:
        click.echo(f"  Generated {path}")
    for error in report.load_errors:
        click.echo(f"  Load error: {error}", err=True)
    for error in report.generate_errors:
        click.echo(f"  Generate error ({error.target}): {error}", err=True)

    if not report.ok:
        raise SystemExit(1)
    click.echo(f"Done! Generated {len(report.generated)} target(s) in {output}")


@main.command()
@click.argument("sources", nargs=-1, required=True)
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, path_type=Path), help="YAML config file.")
@click.option("--bespoke", is_flag=True, help="Reduce to what workflows use before listing.")
def inspect(sources: tuple[str, ...], config_path: Path | None, bespoke: bool):
    """Load SOURCES and list the unified resources."""
    config = _load_config(config_path, bespoke)
    engine = new_engine(config=config)

    failed = False
    for source in _sources(sources):
        for error in engine.load(source):
            click.echo(f"Load error: {error}", err=True)
            failed = True

    if config.bespoke_workflow and len(engine.workflows) > 0:
        engine.reduce_to_workflows()

    click.echo(f"Resources ({len(engine.resources)}):")
    for resource in engine.resources:
        latest = " (latest)" if resource.latest else ""
        click.echo(f"  {resource.method.upper():7} {resource.path}  [{resource.owner or '-'}] {resource.version}{latest}")
    roots = engine.resources.get_resources_by_hierarchy()
    click.echo(f"Roots: {', '.join(roots) or '-'}")
    click.echo(f"Components ({len(engine.components)}):")
    for component in engine.components:
        click.echo(f"  {component.name} ({component.source})")
    click.echo(f"Workflows ({len(engine.workflows)}):")
    for workflow in engine.workflows:
        click.echo(f"  {workflow.id}: {len(workflow.steps)} step(s)")

    if failed:
        raise SystemExit(1)
