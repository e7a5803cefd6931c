"""Tests for photon type accounting and the weight closure check."""

import pytest
from numpy.testing import assert_array_equal

from mcrt.core.accounting import PhotonTypeCounts, WeightClosureReport
from mcrt.core.photon import Photon, PhotonType


def finished_photon(photon_type, weight):
    photon = Photon((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), 13.6, weight)
    photon.type = photon_type
    return photon


@pytest.fixture
def counts():
    """Counts of five photons with known types and weights."""
    counts = PhotonTypeCounts()
    for photon_type, weight in [
        (PhotonType.PRIMARY, 1.0),
        (PhotonType.PRIMARY, 2.0),
        (PhotonType.DIFFUSE_HI, 3.0),
        (PhotonType.DIFFUSE_HEI, 4.0),
        (PhotonType.ABSORBED, 10.0),
    ]:
        counts.record(finished_photon(photon_type, weight))
    return counts


class TestPhotonTypeCounts:
    """Tests for PhotonTypeCounts."""

    def test_totals(self, counts):
        """Test number and weight totals."""
        assert_array_equal(counts.number, [2, 1, 1, 1])
        assert counts.total_number == 5
        assert counts.total_weight == 20.0
        assert counts.escaped_number == 4
        assert counts.escaped_weight == 10.0

    def test_weight_fraction(self, counts):
        """Test per-type weight fractions."""
        assert counts.weight_fraction(PhotonType.ABSORBED, 20.0) == 0.5
        assert counts.weight_fraction(PhotonType.ABSORBED, 0.0) == 0.0

    def test_merge(self, counts):
        """Test that += sums counts, as for a reduction across jobs."""
        other = PhotonTypeCounts()
        other.record(finished_photon(PhotonType.DIFFUSE_HI, 5.0))
        counts += other
        assert counts.number[PhotonType.DIFFUSE_HI] == 2
        assert counts.weight[PhotonType.DIFFUSE_HI] == 8.0
        assert counts.total_number == 6

    def test_reset(self, counts):
        """Test that reset clears all counts."""
        counts.reset()
        assert counts.total_number == 0
        assert counts.total_weight == 0.0

    def test_to_dict(self, counts):
        """Test the export keyed by type name."""
        data = counts.to_dict()
        assert set(data) == {'primary', 'diffuse_HI', 'diffuse_HeI', 'absorbed'}
        assert data['primary'] == {'number': 2, 'weight': 3.0}
        assert isinstance(data['absorbed']['number'], int)


class TestWeightClosureReport:
    """Tests for WeightClosureReport."""

    def test_closure_holds(self, counts):
        """Test a balanced iteration."""
        report = WeightClosureReport.from_counts(counts, 20.0, iteration=3)
        assert report.is_valid
        assert report.residual == 0.0
        assert report.iteration == 3
        assert "OK" in str(report)

    def test_closure_violated(self, counts):
        """Test that missing weight is detected."""
        report = WeightClosureReport.from_counts(counts, 21.0)
        assert not report.is_valid
        assert report.residual == pytest.approx(1.0)
        assert report.relative_error == pytest.approx(1.0 / 21.0)
        assert "VIOLATED" in str(report)
