from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from ..core.config import Config
from ..core.environment import Environment
from ..core.errors import ConfigException

app = typer.Typer(help="Strata CLI")


def _config(files: Optional[List[Path]], env: Optional[str]) -> Config:
    """Environment sources first, then the files in order."""
    config = Environment(env).get_config() if env else Config()
    for file in files or []:
        config = config.from_.file(file)
    return config


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@app.command()
def get(
    key: str,
    file: Optional[List[Path]] = typer.Option(None, "--file", "-f"),
    env: Optional[str] = typer.Option(None, "--env"),
):
    """Print the merged value at KEY and the source it came from."""
    try:
        cfg = _config(file, env)
        value = cfg.get(key)
    except ConfigException as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)
    prov = cfg.provenance(key)
    typer.echo(json.dumps({"key": key, "value": value, "source": prov.source_id if prov else None}, indent=2, default=str))


@app.command()
def dump(
    file: Optional[List[Path]] = typer.Option(None, "--file", "-f"),
    env: Optional[str] = typer.Option(None, "--env"),
    format: str = typer.Option("json", "--format", help="json, yaml, toml, ini, properties, xml or env"),
):
    """Print the merged configuration."""
    try:
        cfg = _config(file, env)
        typer.echo(cfg.writer(format).to_text(), nl=False)
    except ConfigException as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)


@app.command()
def sources(env: str = typer.Option("development", "--env")):
    """List the sources an environment declares."""
    e = Environment(env)
    typer.echo(json.dumps([
        {
            "source": rs.label,
            "prefix": rs.prefix,
            "scope": rs.scope,
            "watch": rs.watch,
            "optional": rs.optional,
        }
        for rs in e.sources
    ], indent=2))


if __name__ == "__main__":
    app()
