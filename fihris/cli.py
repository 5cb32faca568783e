"""
Command-line interface for Fihris.

Commands: generate, show, edit, regenerate, export, score, delete
"""

import click
import sys
from fihris.config import load_config, ConfigError
from fihris.audit.logger import get_audit_logger
from fihris.generation.client import (
    GenerationParams,
    GenerationError,
    ValidationError,
    UpstreamUnavailableError,
    CITATION_STYLES,
    MODELS,
    get_generation_client,
)
from fihris.lifecycle import IndexController, LifecycleError
from fihris.outline.export import EXPORT_FORMATS, ExportError
from fihris.quality.scorer import score_outline, quality_band
from fihris.storage import IndexStore, StorageError


BAND_COLORS = {'good': 'green', 'fair': 'yellow', 'poor': 'red'}


def _build_controller(config_path):
    cfg = load_config(config_path)
    audit_logger = get_audit_logger(cfg.get_audit_config())
    client = get_generation_client(cfg.get_generation_config(), audit_logger=audit_logger)
    store = IndexStore(cfg.get_state_dir())
    return cfg, IndexController(store, client, audit_logger=audit_logger)


def _open(controller):
    """Load the stored outline or exit when there is none."""
    if not controller.load():
        click.echo(click.style("⚠ No outline yet. Run: fihris generate --title ...", fg="yellow"))
        sys.exit(1)


def _fail(message):
    click.echo(click.style(f"✗ {message}", fg="red"), err=True)
    sys.exit(1)


def _echo_scores(scores):
    click.echo(click.style("[Quality]", fg="cyan"))
    labels = [
        ("Language purity", scores.language_purity),
        ("Structure", scores.structural_conformance),
        ("Academic completeness", scores.academic_completeness),
    ]
    for label, value in labels:
        color = BAND_COLORS[quality_band(value)]
        click.echo(f"  {label:<22} " + click.style(f"{value}%", fg=color))


def _echo_document(document):
    click.echo(click.style("\n[Outline]", fg="cyan"))
    click.echo(document.raw_text)
    click.echo()

    if document.estimated_pages:
        click.echo(click.style("[Estimated pages]", fg="cyan"))
        for section, pages in document.estimated_pages.items():
            click.echo(f"  {section}: {pages}")
        click.echo()

    if document.academic_requirements:
        req = document.academic_requirements
        click.echo(click.style("[Academic requirements]", fg="cyan"))
        click.echo(f"  Literature review: {'yes' if req.has_literature_review else 'no'}")
        click.echo(f"  Methodology:       {'yes' if req.has_methodology else 'no'}")
        click.echo(f"  Citations:         {'yes' if req.has_citations else 'no'}")
        click.echo()

    _echo_scores(document.quality_scores)


def _echo_generation_error(error):
    if isinstance(error, UpstreamUnavailableError):
        _fail(f"Model backend unreachable: {error}")
    _fail(f"Generation failed: {error}")


@click.group()
@click.version_option()
def cli():
    """Fihris - academic research outline assistant."""
    pass


@cli.command()
@click.option('--title', required=True, help='Research title')
@click.option('--pages', type=int, default=None, help='Target page count')
@click.option('--citation-style', type=click.Choice(CITATION_STYLES), default=None,
              help='Citation style')
@click.option('--academic/--no-academic', default=None,
              help='Request academic requirements and page breakdown')
@click.option('--model', type=click.Choice(MODELS), default=None,
              help='Generation backend')
@click.option('--config', type=click.Path(exists=True), help='Config file path')
def generate(title, pages, citation_style, academic, model, config):
    """
    Generate a new research outline.

    Example:
        fihris generate --title "تأثير الذكاء الاصطناعي على العملية التعليمية" --academic
    """
    try:
        cfg, controller = _build_controller(config)
        defaults = cfg.get_generation_defaults()
        params = GenerationParams(
            title=title,
            pages=pages if pages is not None else defaults.get('pages', 10),
            citation_style=citation_style or defaults.get('citation_style', 'APA'),
            is_academic=academic if academic is not None else defaults.get('is_academic', False),
            model=model or defaults.get('model', 'ollama'),
        )

        controller.load()

        click.echo(click.style(f"\n[Generating outline: {title}]", fg="blue", bold=True))
        click.echo(click.style(f"Model: {params.model}  Pages: {params.pages}  "
                               f"Citations: {params.citation_style}", fg="cyan"))

        document = controller.create(params)
        click.echo(click.style("✓ Outline generated", fg="green"))
        if controller.last_persistence_error:
            click.echo(click.style(f"⚠ Not saved: {controller.last_persistence_error}", fg="yellow"))
        _echo_document(document)

    except ConfigError as e:
        _fail(f"Config error: {e}")
    except ValidationError as e:
        _fail(str(e))
    except GenerationError as e:
        _echo_generation_error(e)
    except LifecycleError as e:
        _fail(str(e))


@cli.command()
@click.option('--config', type=click.Path(exists=True), help='Config file path')
def show(config):
    """Show the current outline with its quality scores."""
    try:
        _, controller = _build_controller(config)
        _open(controller)
        _echo_document(controller.document)
    except ConfigError as e:
        _fail(f"Config error: {e}")


@cli.command()
@click.option('--config', type=click.Path(exists=True), help='Config file path')
def edit(config):
    """Edit the current outline in $EDITOR and save it."""
    try:
        _, controller = _build_controller(config)
        _open(controller)

        draft = controller.begin_edit()
        edited = click.edit(draft, extension='.md')

        if edited is None:
            controller.cancel_edit()
            click.echo(click.style("Edit cancelled, outline unchanged", fg="yellow"))
            return

        controller.update_draft(edited.rstrip('\n'))
        if controller.save():
            click.echo(click.style("✓ Outline saved", fg="green"))
        else:
            click.echo(click.style(f"⚠ Outline updated but not saved: "
                                   f"{controller.last_persistence_error}", fg="yellow"))
        _echo_scores(controller.scores)

    except ConfigError as e:
        _fail(f"Config error: {e}")
    except LifecycleError as e:
        _fail(str(e))


@cli.command()
@click.option('--config', type=click.Path(exists=True), help='Config file path')
def regenerate(config):
    """Replace the outline with a new one from the last-used parameters."""
    try:
        _, controller = _build_controller(config)
        _open(controller)

        click.echo(click.style("[Regenerating outline...]", fg="blue"))
        document = controller.regenerate()
        click.echo(click.style("✓ Outline regenerated", fg="green"))
        _echo_document(document)

    except ConfigError as e:
        _fail(f"Config error: {e}")
    except ValidationError as e:
        _fail(str(e))
    except GenerationError as e:
        _echo_generation_error(e)
    except LifecycleError as e:
        _fail(str(e))


@cli.command()
@click.option('--format', 'fmt', type=click.Choice(EXPORT_FORMATS), default='markdown',
              help='Output format')
@click.option('--output', type=click.Path(), default='.', help='Output directory')
@click.option('--config', type=click.Path(exists=True), help='Config file path')
def export(fmt, output, config):
    """Export the current outline as a file."""
    try:
        _, controller = _build_controller(config)
        _open(controller)
        artifact = controller.export(fmt)
        path = artifact.save(output)
        click.echo(click.style(f"✓ Exported {path} ({artifact.mime_type})", fg="green"))
    except ConfigError as e:
        _fail(f"Config error: {e}")
    except (ExportError, LifecycleError) as e:
        _fail(str(e))
    except OSError as e:
        _fail(f"Could not write export: {e}")


@cli.command()
@click.argument('source', type=click.File('r', encoding='utf-8'), default='-')
def score(source):
    """Score outline text from a file (or stdin)."""
    _echo_scores(score_outline(source.read()))


@cli.command()
@click.option('--config', type=click.Path(exists=True), help='Config file path')
@click.confirmation_option(prompt='Delete the stored outline?')
def delete(config):
    """Delete the stored outline."""
    try:
        cfg = load_config(config)
        IndexStore(cfg.get_state_dir()).clear_document()
        click.echo(click.style("✓ Stored outline deleted", fg="green"))
    except ConfigError as e:
        _fail(f"Config error: {e}")
    except StorageError as e:
        _fail(str(e))


if __name__ == '__main__':
    cli()
