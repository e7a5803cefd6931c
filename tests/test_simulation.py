"""End-to-end tests for the iterative simulation driver and its API."""

import json
import logging

import numpy as np
import pytest
import yaml

from conftest import make_small_config
from mcrt.config.enums import IterationStatus, SubstepCheckerType
from mcrt.config.validation import ConfigurationError
from mcrt.core.cross_sections import ConstantCrossSections
from mcrt.transport.api import (
    load_config_file,
    main,
    run_from_config,
    run_simulation,
    save_figures,
    save_result,
)
from mcrt.transport.simulation import RadiativeTransferSimulation, create_simulation


@pytest.fixture(scope="module")
def absorbing_result():
    """Result of a small run through absorbing gas."""
    return RadiativeTransferSimulation(make_small_config()).run()


class TestRadiativeTransferSimulation:
    """Tests for complete simulation runs."""

    def test_vacuum(self, vacuum_config):
        """Test that nothing is absorbed without gas."""
        result = RadiativeTransferSimulation(vacuum_config).run()

        assert result.status == IterationStatus.EXHAUSTED
        assert result.number_of_iterations == 2
        for record in result.records:
            assert record.type_counts["absorbed"]["weight"] == 0.0
            assert record.escape_fraction == pytest.approx(100.0)
            assert record.weight_closure_valid
            assert record.weight_shot == pytest.approx(1.0e20, rel=1e-12)

    def test_absorbing(self, absorbing_result):
        """Test a run with absorption and re-emission."""
        assert absorbing_result.neutral_fraction_H.shape == (4, 4, 4)
        assert np.all((absorbing_result.neutral_fraction_H >= 0.0) & (absorbing_result.neutral_fraction_H <= 1.0))
        assert np.all((absorbing_result.neutral_fraction_He >= 0.0) & (absorbing_result.neutral_fraction_He <= 1.0))
        for record in absorbing_result.records:
            assert record.weight_closure_valid
            assert record.escape_fraction < 100.0
            assert record.type_counts["absorbed"]["number"] > 0
            assert record.number_of_photons == 2000

    def test_reproducible(self, absorbing_result):
        """Test that a fixed seed gives bit-identical neutral fractions."""
        again = RadiativeTransferSimulation(make_small_config()).run()
        assert np.array_equal(again.neutral_fraction_H, absorbing_result.neutral_fraction_H)
        assert np.array_equal(again.neutral_fraction_He, absorbing_result.neutral_fraction_He)

    def test_chi_squared_substeps(self):
        """Test that the chi-squared substep checker shoots beyond the first chunk."""
        config = make_small_config(
            substep_checker=SubstepCheckerType.CHI_SQUARED,
            substep_tolerance=1e-12,
            max_substeps=3,
            max_iterations=1,
        )
        result = RadiativeTransferSimulation(config).run()
        record = result.records[0]
        assert record.number_of_substeps == 3
        assert record.number_of_photons > 2000
        assert record.weight_closure_valid

    def test_constant_cross_sections(self, vacuum_config):
        """Test that a custom cross section provider is accepted."""
        sim = create_simulation(vacuum_config, cross_sections=ConstantCrossSections(1.0e-22))
        assert sim.photon_source.cross_sections.get_cross_section(0, 20.0) == 1.0e-22

    def test_invalid_config(self):
        """Test that an invalid configuration is rejected before shooting."""
        with pytest.raises(ConfigurationError):
            RadiativeTransferSimulation(make_small_config(threads=0))

    def test_to_dict(self, absorbing_result):
        """Test the plain dictionary export."""
        data = absorbing_result.to_dict()
        assert data["status"] == "exhausted"
        assert data["number_of_iterations"] == 2
        assert len(data["records"]) == 2
        assert data["config"]["source"]["spectrum"] == "monochromatic"


class TestApi:
    """Tests for the high-level API and CLI."""

    def test_dry_run(self, caplog):
        """Test that a dry run sets up and stops before shooting."""
        config = make_small_config()
        with caplog.at_level(logging.INFO):
            assert run_simulation(config, dry_run=True) is None
        assert "Dry run requested" in caplog.text

    def test_overrides(self):
        """Test that keyword overrides reach the configuration."""
        config = make_small_config()
        result = run_simulation(config, max_iterations=1, number_density=0.0)
        assert result.number_of_iterations == 1
        assert result.records[0].escape_fraction == pytest.approx(100.0)

    @pytest.mark.parametrize("format", ["yaml", "json", "npz"])
    def test_save_result(self, absorbing_result, tmp_path, format):
        """Test writing results in every supported format."""
        path = tmp_path / f"result.{format}"
        save_result(absorbing_result, path, format=format)
        assert path.exists()

        if format == "yaml":
            data = yaml.safe_load(path.read_text())
            assert data["status"] == "exhausted"
        elif format == "json":
            data = json.loads(path.read_text())
            assert len(data["neutral_fraction_H"]) == 4
        else:
            with np.load(path) as data:
                assert data["neutral_fraction_H"].shape == (4, 4, 4)
                assert data["escape_fraction"].shape == (2,)

    def test_save_unknown_format(self, absorbing_result, tmp_path):
        """Test that unknown formats are rejected."""
        with pytest.raises(ValueError):
            save_result(absorbing_result, tmp_path / "result.txt", format="txt")

    def test_save_figures(self, absorbing_result, tmp_path):
        """Test that the diagnostic figures are written."""
        paths = save_figures(absorbing_result, tmp_path / "figures")
        assert len(paths) == 3
        assert all(path.exists() for path in paths)

    def test_config_file_round_trip(self, tmp_path):
        """Test running from a parameter file."""
        config = make_small_config(number_density=0.0, max_iterations=1)
        path = tmp_path / "params.yaml"
        path.write_text(yaml.safe_dump(config.to_dict()))

        assert load_config_file(path) == config
        result = run_from_config(path)
        assert result.number_of_iterations == 1

    def test_unsupported_config_file(self, tmp_path):
        """Test that unknown parameter file types are rejected."""
        path = tmp_path / "params.ini"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported config format"):
            load_config_file(path)

    def test_cli(self, tmp_path):
        """Test the command line entry point."""
        config = make_small_config(max_iterations=1)
        config_path = tmp_path / "params.json"
        config_path.write_text(json.dumps(config.to_dict()))
        output_dir = tmp_path / "output"

        exit_code = main([
            "--config", str(config_path),
            "--threads", "1",
            "--output-dir", str(output_dir),
            "--no-figures",
            "--log-level", "WARNING",
        ])

        assert exit_code == 0
        data = yaml.safe_load((output_dir / "result.yaml").read_text())
        assert data["config"]["parallel"]["threads"] == 1
        assert not (output_dir / "convergence.png").exists()

    def test_cli_failure(self, tmp_path):
        """Test that a failing run gives a non-zero exit code."""
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 1
