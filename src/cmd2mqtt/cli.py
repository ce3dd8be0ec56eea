"""CLI interface for cmd2mqtt"""

import logging
import signal
import sys

import click

from cmd2mqtt.core.config import Config, DEFAULT_CONFIG_FILE
from cmd2mqtt.core.log import configure_logging
from cmd2mqtt.core.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug logging (overrides --log-level)",
)
@click.version_option(package_name="cmd2mqtt")
@click.pass_context
def cli(ctx, debug):
    """cmd2mqtt - Command output to MQTT

    Run shell commands locally or over SSH on a schedule and publish their
    output as Home Assistant sensors.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option(
    "-c",
    "--config",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    envvar="HA_MQTT_CONFIG",
    help="Path to configuration YAML file (falls back to environment variables if missing)",
)
@click.option(
    "-l",
    "--log-level",
    default="info",
    show_default=True,
    envvar="HA_MQTT_LOG_LEVEL",
    help="Log level: critical, error, warn, info, debug",
)
@click.option(
    "-f",
    "--log-format",
    default="text",
    show_default=True,
    envvar="HA_MQTT_LOG_FORMAT",
    help="Log format: text, json, logfmt",
)
@click.option(
    "-e",
    "--env-file",
    multiple=True,
    type=click.Path(exists=True),
    help="Load environment variables from file (can be used multiple times)",
)
@click.pass_context
def run(ctx, config: str, log_level: str, log_format: str, env_file: tuple):
    """Run all configured commands until interrupted

    Examples:
        cmd2mqtt run -c config.yaml
        cmd2mqtt run -c config.yaml -l debug -f json
        cmd2mqtt run -e .env.secrets
    """
    if ctx.obj.get("debug"):
        log_level = "debug"
    configure_logging(log_level, log_format)

    try:
        cfg = Config(config, env_files=list(env_file) if env_file else None)
    except Exception as e:
        logger.critical(f"Failed to load configuration: {e}")
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(1)

    orchestrator = Orchestrator(cfg)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signal.Signals(signum).name}")
        orchestrator.shutdown()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    if orchestrator.run():
        sys.exit(0)

    click.echo("✗ Startup failed", err=True)
    sys.exit(1)


@cli.command()
@click.option(
    "-c",
    "--config",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    envvar="HA_MQTT_CONFIG",
    help="Path to configuration YAML file",
)
@click.option(
    "-e",
    "--env-file",
    multiple=True,
    type=click.Path(exists=True),
    help="Load environment variables from file (can be used multiple times)",
)
def validate(config: str, env_file: tuple):
    """Validate configuration

    Examples:
        cmd2mqtt validate -c config.yaml
        cmd2mqtt validate -c config.yaml -e .env.prod
    """
    try:
        cfg = Config(config, env_files=list(env_file) if env_file else None)

        if not cfg.validate():
            click.echo("✗ Configuration validation failed")
            sys.exit(1)

        click.echo("✓ Configuration is valid")
        click.echo(f"  Source: {cfg.source}")
        click.echo(f"  Commands: {len(cfg.commands)}")
        click.echo(f"  SSH hosts: {len(cfg.ssh_hosts)}")
        click.echo(f"  MQTT broker: {cfg.mqtt.broker}:{cfg.mqtt.port}")

        sys.exit(0)

    except Exception as e:
        click.echo(f"✗ Error: {e}")
        sys.exit(1)


def main():
    """Entry point for CLI"""
    cli()


if __name__ == "__main__":
    main()
