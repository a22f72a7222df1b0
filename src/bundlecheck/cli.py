"""CLI interface for bundlecheck using Typer framework."""

import json as jsonlib
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bundlecheck import __description__, __version__
from bundlecheck.config import (
    BundleCheckConfig,
    OutputFormat,
    ReferencePolicy,
    ValidationMode,
    ValidationOptions,
    load_config,
)
from bundlecheck.document.parser import parse_document
from bundlecheck.errors import ConfigurationError, DocumentMalformedError, SchemaLoadError
from bundlecheck.explain import FindingFormatter, explain_code
from bundlecheck.logging_setup import setup_logging
from bundlecheck.models.finding import Authority
from bundlecheck.rules import load_rules_file
from bundlecheck.schemas import load_schema_file
from bundlecheck.suggestions import SuggestionEngine
from bundlecheck.validation import (
    JsonSchemaObjectModelValidator,
    ValidationPipeline,
    ValidationResult,
    load_hint_catalog,
)

logger = logging.getLogger(__name__)

CONFIG_ERROR_EXIT_CODE = 2

app = typer.Typer(
    name="bundlecheck",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        console.print(f"bundlecheck version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True, help="Show version and exit")
    ] = False,
) -> None:
    """bundlecheck - Multi-authority validation for health-data bundles."""


def _load_config_or_exit(config_path: Path | None) -> BundleCheckConfig:
    try:
        return load_config(config_path)
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(CONFIG_ERROR_EXIT_CODE)


def _pick(option: Path | None, configured: str | None) -> Path | None:
    """Command-line path wins over the configured one."""
    if option is not None:
        return option
    return Path(configured) if configured else None


def _read_document(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        console.print(f"[red]Error:[/red] Cannot read {escape(str(path))}: {escape(str(e))}")
        raise typer.Exit(CONFIG_ERROR_EXIT_CODE)


def _emit_json(data: dict | list) -> None:
    typer.echo(jsonlib.dumps(data, indent=2, default=str))


def _output_markdown(result: ValidationResult) -> None:
    lines = [
        "# Validation Report",
        f"**Status:** {result.status.value}",
        f"**Exit Code:** {result.exit_code}",
        "",
    ]

    if result.fatal_errors:
        lines.append("## Fatal Errors")
        for finding in result.fatal_errors:
            what = finding.explanation.what if finding.explanation else ""
            lines.append(f"- **{finding.code}** `{finding.pointer or '/'}`: {what}")
        lines.append("")

    if result.counters:
        lines.append("## Counters")
        for key, value in sorted(result.counters.items()):
            lines.append(f"- {key}: {value}")
        lines.append("")

    if result.findings:
        lines.append("## Findings")
        for finding in result.findings:
            what = finding.explanation.what if finding.explanation else ""
            lines.append(
                f"- **{finding.severity.value.upper()}** {finding.authority.value}/{finding.code} "
                f"`{finding.pointer or '/'}`: {what}"
            )
        lines.append("")

    if result.suggestions:
        lines.append("## Rule Suggestions")
        for suggestion in result.suggestions:
            lines.append(
                f"- {suggestion.rule.type} on {suggestion.rule.resource_type}.{suggestion.rule.field_path} "
                f"({suggestion.confidence.value}, {suggestion.evidence.sample_count} samples)"
            )

    console.print("\n".join(lines), markup=False, highlight=False, soft_wrap=True)


@app.command()
def validate(
    document: Annotated[
        Path,
        typer.Argument(help="Path to the JSON document to validate", exists=True, dir_okay=False)
    ],
    schema: Annotated[
        Optional[Path],
        typer.Option("--schema", "-s", help="Schema metadata file")
    ] = None,
    rules: Annotated[
        Optional[Path],
        typer.Option("--rules", "-r", help="Rule file")
    ] = None,
    hints: Annotated[
        Optional[Path],
        typer.Option("--hints", help="Spec hint catalog (default: built-in catalog)")
    ] = None,
    object_model_schema: Annotated[
        Optional[Path],
        typer.Option("--object-model-schema", help="JSON Schema used as object-model validator")
    ] = None,
    mode: Annotated[
        Optional[ValidationMode],
        typer.Option("--mode", "-m", help="Validation mode: standard, debug")
    ] = None,
    format: Annotated[
        Optional[OutputFormat],
        typer.Option("--format", "-f", help="Output format: table, json, markdown")
    ] = None,
    suggest: Annotated[
        bool,
        typer.Option("--suggest", help="Also propose rules from repeated patterns")
    ] = False,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Deadline in seconds, checked between stages")
    ] = None,
    references: Annotated[
        Optional[ReferencePolicy],
        typer.Option("--references", help="Bundle reference check: off, in_bundle, allow_external")
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .bundlecheck.json)")
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging")
    ] = False,
) -> None:
    """Validate a document against schema metadata, rules and spec hints."""
    cfg = _load_config_or_exit(config)
    setup_logging(cfg.logging.level, verbose)

    overrides = {}
    if mode is not None:
        overrides["mode"] = mode
    if timeout is not None:
        overrides["timeout_seconds"] = timeout
    if references is not None:
        overrides["references"] = references
    if suggest:
        overrides["suggestions"] = True

    try:
        options = ValidationOptions(**{**ValidationOptions.from_config(cfg).model_dump(), **overrides})
        schema_path = _pick(schema, cfg.sources.schema_path)
        rules_path = _pick(rules, cfg.sources.rules_path)
        hints_path = _pick(hints, cfg.sources.hints_path)
        object_model_path = _pick(object_model_schema, cfg.sources.object_model_schema)

        provider = load_schema_file(schema_path) if schema_path else None
        rule_list = load_rules_file(rules_path) if rules_path else []
        catalog = load_hint_catalog(hints_path) if hints_path else None
        object_model = JsonSchemaObjectModelValidator.from_file(object_model_path) if object_model_path else None
    except (ConfigurationError, SchemaLoadError, ValueError) as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(CONFIG_ERROR_EXIT_CODE)

    pipeline = ValidationPipeline(object_model=object_model, hints=catalog)
    result = pipeline.validate(_read_document(document), provider, rule_list, options)

    output_format = OutputFormat(format or cfg.output.format)
    if output_format == OutputFormat.JSON:
        _emit_json(result.to_dict())
    elif output_format == OutputFormat.MARKDOWN:
        _output_markdown(result)
    else:
        console.print(f"[green]Validating:[/green] {escape(str(document))}")
        FindingFormatter(console).format_result(result)

    raise typer.Exit(result.exit_code)


@app.command()
def suggest(
    document: Annotated[
        Path,
        typer.Argument(help="Path to the JSON document to sample", exists=True, dir_okay=False)
    ],
    rules: Annotated[
        Optional[Path],
        typer.Option("--rules", "-r", help="Existing rule file; covered paths are not re-suggested")
    ] = None,
    schema: Annotated[
        Optional[Path],
        typer.Option("--schema", "-s", help="Schema metadata file; enforced constraints are not re-suggested")
    ] = None,
    format: Annotated[
        Optional[OutputFormat],
        typer.Option("--format", "-f", help="Output format: table, json")
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .bundlecheck.json)")
    ] = None,
) -> None:
    """Propose rules from patterns repeated across resource instances."""
    cfg = _load_config_or_exit(config)
    setup_logging(cfg.logging.level)

    try:
        schema_path = _pick(schema, cfg.sources.schema_path)
        rules_path = _pick(rules, cfg.sources.rules_path)
        hints_path = _pick(None, cfg.sources.hints_path)
        provider = load_schema_file(schema_path) if schema_path else None
        rule_list = load_rules_file(rules_path) if rules_path else []
        catalog = load_hint_catalog(hints_path) if hints_path else None
    except (ConfigurationError, SchemaLoadError) as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(CONFIG_ERROR_EXIT_CODE)

    try:
        root = parse_document(_read_document(document))
    except DocumentMalformedError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    engine = SuggestionEngine(cfg.suggestions.max_examples)
    suggestions = engine.suggest(root, rule_list, catalog, provider)

    if OutputFormat(format or cfg.output.format) == OutputFormat.JSON:
        _emit_json([s.to_dict() for s in suggestions])
    elif suggestions:
        FindingFormatter(console).format_suggestions(suggestions)
    else:
        console.print("[yellow]No rule suggestions: not enough repeated evidence.[/yellow]")


@app.command()
def explain(
    authority: Annotated[
        str,
        typer.Argument(help="Authority: Structure, Rule, ObjectModel, Lint, Hint")
    ],
    code: Annotated[
        str,
        typer.Argument(help="Finding code, e.g. INVALID_ENUM_VALUE")
    ],
    detail: Annotated[
        Optional[list[str]],
        typer.Option("--detail", "-d", help="Detail value as key=value (repeatable)")
    ] = None,
) -> None:
    """Show the explanation for a finding code."""
    by_name = {a.value.lower(): a for a in Authority}
    resolved = by_name.get(authority.lower())
    if resolved is None:
        valid = ", ".join(a.value for a in Authority)
        console.print(f"[red]Error:[/red] Invalid authority '{escape(authority)}'. Must be one of: {valid}")
        raise typer.Exit(CONFIG_ERROR_EXIT_CODE)

    details = {}
    for item in detail or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            console.print(f"[red]Error:[/red] Invalid detail '{escape(item)}'. Expected key=value")
            raise typer.Exit(CONFIG_ERROR_EXIT_CODE)
        details[key] = value

    explanation = explain_code(resolved, code, details)
    FindingFormatter(console).format_explanation(f"{resolved.value}:{code}", explanation)


@app.command("check-rules")
def check_rules(
    rules_file: Annotated[
        Path,
        typer.Argument(help="Rule file to check", exists=True, dir_okay=False)
    ],
) -> None:
    """Load a rule file and report configuration errors."""
    try:
        rule_list = load_rules_file(rules_file)
    except ConfigurationError as e:
        console.print(f"[red]Invalid rules:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    table = Table(title=f"{len(rule_list)} rule(s) in {escape(rules_file.name)}")
    table.add_column("Id", style="cyan")
    table.add_column("Type", style="white")
    table.add_column("Resource", style="white")
    table.add_column("Field", style="white")
    table.add_column("Scope", style="dim")
    table.add_column("Severity", style="white")

    for rule in rule_list:
        table.add_row(
            escape(rule.id),
            rule.type,
            rule.resource_type,
            escape(rule.field_path),
            rule.instance_scope.kind,
            rule.severity.value,
        )
    console.print(table)
    console.print("[green]Rules are valid[/green]")


if __name__ == "__main__":
    app()
