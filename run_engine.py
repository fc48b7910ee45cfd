#!/usr/bin/env python3
"""
run_engine.py - CLI entrypoint: replay opportunity requests through the engine.

Usage:
    python run_engine.py
    python run_engine.py --requests config/requests.yaml --log-level DEBUG
    ENGINE_CONFIG_DIR=/etc/engine python run_engine.py --no-json-logs
"""

import os
import sys
from pathlib import Path

import click
import yaml
from dotenv import load_dotenv

from core.exceptions import ConfigError
from core.logging import get_logger, set_global_context, setup_logging
from core.models import ArbitrageRequest
from execution.bootstrap import build_engine, resolve_config_dir

logger = get_logger("engine.cli")


def load_requests(path: Path) -> list[dict]:
    """Read the `requests:` list from a YAML file."""
    if not path.exists():
        raise ConfigError(f"Requests file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    requests = data.get("requests") if isinstance(data, dict) else None
    if not isinstance(requests, list):
        raise ConfigError(f"Expected a 'requests' list in {path}")
    return requests


@click.command()
@click.option(
    "--config-dir",
    "-c",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory with venues/tokens/providers/bridges/engine YAML (default: $ENGINE_CONFIG_DIR or bundled)",
)
@click.option(
    "--requests",
    "-r",
    "requests_file",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML file with a 'requests' list (default: <config-dir>/requests.yaml)",
)
@click.option(
    "--log-level",
    "-l",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level (default: $ENGINE_LOG_LEVEL or INFO)",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON log format",
)
def main(
    config_dir: Path | None,
    requests_file: Path | None,
    log_level: str | None,
    json_logs: bool,
) -> None:
    """
    Flash-loan arbitrage engine replay.

    Builds the engine over the simulated market and attempts each request
    in order, then prints per-strategy statistics.
    """
    load_dotenv()

    setup_logging(level=log_level or os.environ.get("ENGINE_LOG_LEVEL", "INFO"), json_output=json_logs)
    set_global_context(service="arb-engine", version="0.1.0")

    directory = resolve_config_dir(config_dir)
    requests_path = requests_file or directory / "requests.yaml"

    try:
        engine = build_engine(directory)
        raw_requests = load_requests(requests_path)
    except (ConfigError, FileNotFoundError) as e:
        logger.error(
            f"Cannot start engine: {e}",
            extra={"context": {"config_dir": str(directory), "requests": str(requests_path)}},
        )
        sys.exit(1)

    logger.info(
        "Replaying requests",
        extra={"context": {"count": len(raw_requests), "requests": str(requests_path)}},
    )

    results = []
    malformed = 0
    for raw in raw_requests:
        try:
            request = ArbitrageRequest.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            malformed += 1
            logger.error(
                f"Malformed request skipped: {e}",
                extra={"context": {"request_id": raw.get("request_id", "") if isinstance(raw, dict) else ""}},
            )
            continue
        results.append(engine.attempt_arbitrage(request))

    # Print human-readable summary
    click.echo("\n" + "=" * 72)
    click.echo("ENGINE REPLAY SUMMARY")
    click.echo("=" * 72)
    for result in results:
        status = "SETTLED" if result.succeeded else f"ABORTED {result.failure_reason}"
        click.echo(
            f"{result.attempt_id:<24} {result.strategy_kind:<26} {status:<32} profit={result.profit}"
        )
    if malformed:
        click.echo(f"Malformed requests skipped: {malformed}")

    click.echo("-" * 72)
    for kind, stats in sorted(engine.ledger.snapshot().items()):
        click.echo(
            f"{kind:<26} attempts={stats.execution_count:<4} settled={stats.success_count:<4} "
            f"profit={stats.cumulative_profit} rate={stats.success_rate}"
        )
    click.echo("=" * 72)


if __name__ == "__main__":
    main()
