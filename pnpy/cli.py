from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import click

from pnpy.pn.exceptions import PetriNetError
from pnpy.pn.exporter import export_net_to_json
from pnpy.pn.importer import load_net
from pnpy.pn.pn_imp import PetriNet
from pnpy.simulation.history import AnimationHistory
from pnpy.util.logging_config import setup_logging

LOGGER = logging.getLogger("pnpy.cli")


def _load(path: str, parameters: Optional[Dict[str, Any]] = None) -> PetriNet:
    try:
        net, _ = load_net(path, parameters=parameters)
    except PetriNetError as e:
        raise click.ClickException(str(e)) from e
    return net


@click.group()
@click.option("--log-level", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.option("--json-logs", is_flag=True, help="Emit log records as JSON lines.")
def main(log_level: str, json_logs: bool) -> None:
    """Inspect and animate Petri nets stored as JSON."""
    setup_logging(level=getattr(logging, log_level.upper()), json_output=json_logs)


@main.command()
@click.argument("net_path", type=click.Path(exists=True, dir_okay=False))
def show(net_path: str) -> None:
    """Print the structure and marking of a net."""
    net = _load(net_path)
    click.echo(repr(net))
    click.echo(repr(net.marking))


@main.command()
@click.argument("net_path", type=click.Path(exists=True, dir_okay=False))
def enabled(net_path: str) -> None:
    """List the transitions that may fire in the initial marking."""
    net = _load(net_path)
    for transition in net.get_enabled_transitions():
        click.echo(transition.id)


@main.command()
@click.argument("net_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--steps", default=10, show_default=True, type=click.IntRange(min=0))
@click.option("--seed", default=None, type=int, help="Seed for transition selection.")
@click.option("--legacy-selection", is_flag=True,
              help="Use the legacy random selection (first transition favoured, last never picked).")
@click.option("--unconstrained-zero-weights", is_flag=True,
              help="Ignore zero inbound weights when computing enabling degrees.")
@click.option("--rewind", is_flag=True, help="Step every fired transition backwards afterwards.")
@click.option("--output", default=None, type=click.Path(dir_okay=False),
              help="Write the final net and marking to this JSON file.")
def simulate(net_path: str, steps: int, seed: Optional[int], legacy_selection: bool,
             unconstrained_zero_weights: bool, rewind: bool, output: Optional[str]) -> None:
    """Fire randomly chosen enabled transitions."""
    parameters: Dict[str, Any] = {}
    if seed is not None:
        parameters["random_seed"] = seed
    if legacy_selection:
        parameters["random_selection"] = "legacy"
    if unconstrained_zero_weights:
        parameters["zero_weight_degree"] = "unconstrained"

    net = _load(net_path, parameters=parameters)
    history = AnimationHistory(net)
    try:
        fired = history.random_fire(steps)
        for transition in fired:
            click.echo(f"fired {transition.id}")
        if rewind:
            while history.can_step_backward:
                transition = history.step_backward()
                click.echo(f"undone {transition.id}")
    except PetriNetError as e:
        raise click.ClickException(str(e)) from e

    LOGGER.info("simulation finished after %d step(s)", len(fired))
    click.echo(repr(net.marking))
    if output is not None:
        export_net_to_json(net, output_json_path=output)


if __name__ == "__main__":
    main()
