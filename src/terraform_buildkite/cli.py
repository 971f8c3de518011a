# src/terraform_buildkite/cli.py
"""Command line entry point of the Terraform Buildkite plugin.

Buildkite runs ``terraform-buildkite-plugin run`` from the plugin hook; the
process exit status is the plugin's ExitStatus.
"""

import typer

from terraform_buildkite import PLUGIN_NAME, __version__
from terraform_buildkite.buildkite import LogGroups
from terraform_buildkite.contracts import ConfigError
from terraform_buildkite.core.config import DEFAULT_PLUGINS_ENV, load_settings
from terraform_buildkite.core.env import parse_log_level
from terraform_buildkite.core.logging import configure_logging, get_logger
from terraform_buildkite.engine import Handler, PluginContext, PluginInitiator
from terraform_buildkite.plugins.manager import default_manager

app = typer.Typer(
    name="terraform-buildkite-plugin",
    help="Plan, validate and apply Terraform working directories in Buildkite.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"{PLUGIN_NAME} version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Plan, validate and apply Terraform working directories in Buildkite."""
    pass


@app.command()
def run(
    plugin_name: str = typer.Option(
        PLUGIN_NAME,
        "--plugin-name",
        help="Plugin repository name used to find the configuration entry.",
    ),
    plugins_env: str = typer.Option(
        DEFAULT_PLUGINS_ENV,
        "--plugins-env",
        help="Environment variable holding the plugins JSON array.",
    ),
    terraform_path: str | None = typer.Option(
        None,
        "--terraform-path",
        help="Path to the terraform executable (defaults to configuration, then PATH).",
    ),
) -> None:
    """Run the plugin for every resolved working directory."""
    configure_logging(parse_log_level())
    log = get_logger(__name__)

    groups = LogGroups()
    groups.closed(f"running {plugin_name} version {__version__}")

    handler = Handler(
        initiator=PluginInitiator(plugins_env=plugins_env),
        terraform_path=terraform_path,
        groups=groups,
    )
    status = handler.handle(PluginContext(name=plugin_name, version=__version__))
    log.info("plugin exiting with status", status=status.label)
    raise typer.Exit(code=int(status))


@app.command()
def validate(
    plugin_name: str = typer.Option(
        PLUGIN_NAME,
        "--plugin-name",
        help="Plugin repository name used to find the configuration entry.",
    ),
    plugins_env: str = typer.Option(
        DEFAULT_PLUGINS_ENV,
        "--plugins-env",
        help="Environment variable holding the plugins JSON array.",
    ),
) -> None:
    """Validate the plugin configuration without running terraform."""
    configure_logging(parse_log_level(default="warning"))
    try:
        settings = load_settings(plugin_name, plugins_env=plugins_env)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        for error in e.details or []:
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    typer.echo("Configuration valid.")
    typer.echo(f"  Mode: {settings.mode.value}")
    typer.echo(f"  Validations: {len(settings.validations)}")
    typer.echo(f"  Outputs: {len(settings.outputs)}")


plugins_app = typer.Typer(help="Inspect available adapters.")
app.add_typer(plugins_app, name="plugins")


@plugins_app.command("list")
def plugins_list() -> None:
    """List registered validator and output adapters."""
    manager = default_manager()
    typer.echo("VALIDATORS:")
    for cls in manager.get_validators():
        typer.echo(f"  {cls.name}")
    typer.echo("OUTPUTS:")
    for cls in manager.get_outputers():
        typer.echo(f"  {cls.name}")


if __name__ == "__main__":
    app()
