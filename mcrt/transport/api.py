"""
High-Level API for mcrt Photoionization Simulations

This module provides a convenient Python API and CLI interface for running
Monte Carlo radiative transfer simulations.

This is the recommended entry point for users who want to:
- Run simulations with simple function calls
- Use command-line interface for batch processing
- Save results and diagnostic figures

Import Policy:
    from mcrt.transport.api import run_simulation, run_from_config
    # Or use CLI: python -m mcrt.transport.api --config params.yaml

DO NOT use: from mcrt.transport.api import *
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Union

import numpy as np
import yaml

from mcrt.config import SimulationConfig, apply_overrides, create_validated_config, validate_config
from mcrt.transport.simulation import (
    RadiativeTransferSimulation,
    SimulationResult,
    create_simulation,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def run_simulation(
    config: Optional[SimulationConfig] = None,
    dry_run: bool = False,
    **overrides,
) -> Optional[SimulationResult]:
    """Run a photoionization simulation with sensible defaults.

    This is the main high-level API for running simulations.

    Args:
        config: Optional SimulationConfig (uses defaults if None)
        dry_run: Build and log the setup, but do not shoot photons
        **overrides: Parameters to override by name (e.g. threads=2)

    Returns:
        SimulationResult with all outputs, or None for a dry run

    Example:
        >>> from mcrt.transport.api import run_simulation
        >>> result = run_simulation(number_of_photons=10000, max_iterations=3)
        >>> print(f"Final escape fraction: {result.records[-1].escape_fraction:.1f}%")
    """
    if config is None:
        config = create_validated_config(**overrides)
    elif overrides:
        apply_overrides(config, **overrides)
        validate_config(config)

    sim = create_simulation(config=config)

    if dry_run:
        sim.dry_run()
        return None

    result = sim.run()

    logger.info(
        f"Simulation finished in {result.runtime_seconds:.3f} seconds after "
        f"{result.number_of_iterations} iterations ({result.status.value})."
    )
    return result


def load_config_file(config_path: Union[str, Path]) -> SimulationConfig:
    """Read a YAML or JSON parameter file.

    Args:
        config_path: Path to the parameter file

    Returns:
        SimulationConfig (not yet validated)
    """
    return SimulationConfig.from_file(config_path)


def run_from_config(
    config_path: Union[str, Path],
    dry_run: bool = False,
    **overrides,
) -> Optional[SimulationResult]:
    """Run simulation from a configuration file.

    Args:
        config_path: Path to YAML or JSON configuration file
        dry_run: Build and log the setup, but do not shoot photons
        **overrides: Parameters to override by name

    Returns:
        SimulationResult with all outputs, or None for a dry run

    Example:
        >>> from mcrt.transport.api import run_from_config
        >>> result = run_from_config("params.yaml", threads=8)
    """
    config = load_config_file(config_path)
    return run_simulation(config=config, dry_run=dry_run, **overrides)


def save_result(
    result: SimulationResult,
    output_path: Union[str, Path],
    format: str = "yaml",
) -> None:
    """Save simulation results to file.

    Args:
        result: SimulationResult to save
        output_path: Output file path
        format: Output format ("yaml", "json", "npz")

    Example:
        >>> from mcrt.transport.api import run_simulation, save_result
        >>> result = run_simulation(max_iterations=2)
        >>> save_result(result, "output/result.yaml")
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if format == "yaml":
        with open(output_path, 'w') as f:
            yaml.safe_dump(result.to_dict(), f, sort_keys=False)
    elif format == "json":
        with open(output_path, 'w') as f:
            json.dump(result.to_dict(), f, indent=2)
    elif format == "npz":
        np.savez_compressed(
            output_path,
            neutral_fraction_H=result.neutral_fraction_H,
            neutral_fraction_He=result.neutral_fraction_He,
            escape_fraction=np.array([record.escape_fraction for record in result.records]),
            weight_shot=np.array([record.weight_shot for record in result.records]),
            runtime_seconds=result.runtime_seconds,
            status=result.status.value,
        )
    else:
        raise ValueError(f"Unsupported format: {format}")


def save_figures(result: SimulationResult, output_dir: Union[str, Path]) -> list[Path]:
    """Save the convergence history and mid-plane neutral fraction figures.

    Returns:
        Paths of the written figures
    """
    from mcrt.utils.visualization import save_convergence_figure, save_neutral_fraction_slice

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    grid = result.config.grid

    paths = [output_dir / "convergence.png"]
    save_convergence_figure(result, save_path=str(paths[0]))
    for name, field in (("H", result.neutral_fraction_H), ("He", result.neutral_fraction_He)):
        path = output_dir / f"neutral_fraction_{name}.png"
        save_neutral_fraction_slice(
            field,
            box_anchor=grid.box_anchor,
            box_sides=grid.box_sides,
            title=f"{name} neutral fraction",
            save_path=str(path),
        )
        paths.append(path)
    return paths


def create_cli_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="mcrt Monte Carlo Photoionization Simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default parameters
  python -m mcrt.transport.api

  # Run from a parameter file on 8 threads
  python -m mcrt.transport.api --config params.yaml --threads 8

  # Check a parameter file without shooting photons
  python -m mcrt.transport.api --config params.yaml --dry-run

  # Run and save results and figures
  python -m mcrt.transport.api --config params.yaml --output-dir output
        """
    )

    parser.add_argument('--config', type=str,
                       help='Path to parameter file (YAML/JSON)')
    parser.add_argument('--dry-run', action='store_true', dest='dry_run',
                       help='Set up the simulation and stop before shooting photons')
    parser.add_argument('--threads', type=int,
                       help='Number of worker threads (overrides the parameter file)')
    parser.add_argument('--output-dir', type=str, dest='output_dir',
                       help='Directory for result file and figures')
    parser.add_argument('--format', type=str, default='yaml',
                       choices=['yaml', 'json', 'npz'],
                       help='Result file format (default: yaml)')
    parser.add_argument('--no-figures', action='store_true', dest='no_figures',
                       help='Do not write figures to the output directory')
    parser.add_argument('--log-level', type=str, default='INFO', dest='log_level',
                       choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                       help='Logging level (default: INFO)')
    parser.add_argument('--version', action='version', version='mcrt v0.1.0')

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point."""
    parser = create_cli_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    overrides = {}
    if args.threads is not None:
        overrides['threads'] = args.threads

    try:
        if args.config:
            result = run_from_config(args.config, dry_run=args.dry_run, **overrides)
        else:
            result = run_simulation(dry_run=args.dry_run, **overrides)

        if result is None:
            return 0

        if args.output_dir:
            output_dir = Path(args.output_dir)
            result_path = output_dir / f"result.{args.format}"
            save_result(result, result_path, format=args.format)
            logger.info(f"Results saved to: {result_path}")
            if not args.no_figures:
                save_figures(result, output_dir)

        if not all(record.weight_closure_valid for record in result.records):
            logger.warning("Weight closure check failed in at least one iteration!")
            return 1

        return 0

    except Exception:
        logger.exception("Simulation failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())


__all__ = [
    "RadiativeTransferSimulation",
    "run_simulation",
    "run_from_config",
    "load_config_file",
    "save_result",
    "save_figures",
    "create_cli_parser",
    "main",
]
