"""Unit tests for feature scaling and range file parsing."""

import numpy as np
import pytest

from src.perception.errors import ScaleRangeError
from src.perception.scaling import ScaleRange, load_scale_range


def make_range(lower, upper, target=(-1.0, 1.0)):
    return ScaleRange(
        lower=np.asarray(lower, dtype=float),
        upper=np.asarray(upper, dtype=float),
        target_lower=target[0],
        target_upper=target[1],
    )


class TestScaleRange:
    """Test suite for ScaleRange.scale."""

    def test_bounds_snap_exactly(self):
        """Test values equal to a bound map exactly onto the target bound."""
        scale_range = make_range([0.1, 0.3], [0.7, 2.9], target=(-1.0, 1.0))

        scaled = scale_range.scale(np.array([0.1, 2.9]))

        assert scaled[0] == -1.0
        assert scaled[1] == 1.0

    def test_linear_interpolation(self):
        """Test values inside the range are interpolated."""
        scale_range = make_range([0.0, 10.0], [4.0, 20.0], target=(0.0, 1.0))

        scaled = scale_range.scale(np.array([1.0, 15.0]))

        assert scaled[0] == pytest.approx(0.25)
        assert scaled[1] == pytest.approx(0.5)

    def test_values_outside_range_extrapolate(self):
        """Test no clipping is applied outside the learned range."""
        scale_range = make_range([0.0], [2.0], target=(-1.0, 1.0))

        assert scale_range.scale(np.array([4.0]))[0] == pytest.approx(3.0)

    def test_degenerate_range_is_skipped(self):
        """Test equal bounds leave the value untouched."""
        scale_range = make_range([5.0, 0.0], [5.0, 0.0])

        scaled = scale_range.scale(np.array([7.5, -3.0]))

        assert scaled.tolist() == [7.5, -3.0]

    def test_input_not_modified(self):
        """Test scale returns a copy."""
        scale_range = make_range([0.0], [2.0])
        values = np.array([1.0])

        scale_range.scale(values)

        assert values[0] == 1.0

    def test_wrong_length(self):
        """Test a vector of the wrong length is rejected."""
        with pytest.raises(ValueError):
            make_range([0.0, 0.0], [1.0, 1.0]).scale(np.zeros(3))

    def test_default_is_identity(self):
        """Test the default range scales nothing."""
        values = np.linspace(-5, 5, 34)

        assert np.array_equal(ScaleRange().scale(values), values)

    def test_ranges_are_read_only(self):
        """Test bounds cannot be mutated after construction."""
        scale_range = make_range([0.0], [1.0])

        with pytest.raises(ValueError):
            scale_range.lower[0] = 3.0


class TestLoadScaleRange:
    """Test suite for load_scale_range."""

    def test_parse_range_file(self, tmp_path):
        """Test header, target bounds and 1-based rows are read."""
        path = tmp_path / "range"
        path.write_text("x\n-1 1\n1 5 2931\n2 1.02 1597.3\n34 0 0.85\n")

        scale_range = load_scale_range(path)

        assert scale_range.size == 34
        assert scale_range.target_lower == -1.0
        assert scale_range.target_upper == 1.0
        assert scale_range.lower[0] == 5.0 and scale_range.upper[0] == 2931.0
        assert scale_range.lower[1] == 1.02 and scale_range.upper[1] == 1597.3
        assert scale_range.upper[33] == 0.85
        assert np.all(scale_range.lower[2:33] == 0.0)
        assert np.all(scale_range.upper[2:33] == 0.0)

    def test_unlisted_dimensions_pass_through(self, tmp_path):
        """Test dimensions missing from the file are not scaled."""
        path = tmp_path / "range"
        path.write_text("x\n0 1\n1 0 10\n")
        values = np.arange(34, dtype=float)

        scaled = load_scale_range(path).scale(values)

        assert scaled[0] == 0.0
        assert np.array_equal(scaled[1:], values[1:])

    def test_missing_header(self, tmp_path):
        """Test a file without the 'x' header is rejected."""
        path = tmp_path / "range"
        path.write_text("-1 1\n1 0 1\n")

        with pytest.raises(ScaleRangeError):
            load_scale_range(path)

    def test_bad_target_line(self, tmp_path):
        """Test malformed target bounds are rejected."""
        path = tmp_path / "range"
        path.write_text("x\n-1\n")

        with pytest.raises(ScaleRangeError):
            load_scale_range(path)

    def test_index_out_of_range(self, tmp_path):
        """Test feature indices beyond the descriptor are rejected."""
        path = tmp_path / "range"
        path.write_text("x\n-1 1\n35 0 1\n")

        with pytest.raises(ScaleRangeError):
            load_scale_range(path)

    def test_bad_row(self, tmp_path):
        """Test a non-numeric row is rejected."""
        path = tmp_path / "range"
        path.write_text("x\n-1 1\n1 low high\n")

        with pytest.raises(ScaleRangeError):
            load_scale_range(path)

    def test_missing_file(self, tmp_path):
        """Test a missing file raises OSError."""
        with pytest.raises(OSError):
            load_scale_range(tmp_path / "missing")
