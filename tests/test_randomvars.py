import random

import pytest

from dcsim.randomvars import (
    CDFRandomVariable,
    ConstantVariable,
    EmpiricalBytesRandomVariable,
    EmpiricalRandomVariable,
    ExponentialRandomVariable,
    GaussianRandomVariable,
    NAryRandomVariable,
    UniformRandomVariable,
)


class FixedRng:
    def __init__(self, u=0.0, index=0):
        self.u = u
        self.index = index

    def random(self):
        return self.u

    def randrange(self, n):
        return self.index % n


@pytest.fixture
def cdf_file(tmp_path):
    path = tmp_path / "sizes.cdf"
    path.write_text("1 1 0.0\n10 1 0.5\n20 1 1.0\n")
    return str(path)


def test_uniform_within_bounds():
    rv = UniformRandomVariable(2.0, 5.0, rng=random.Random(1))
    samples = [rv.value() for _ in range(200)]
    assert all(2.0 <= s <= 5.0 for s in samples)


def test_uniform_endpoints():
    assert UniformRandomVariable(2.0, 5.0, rng=FixedRng(0.0)).value() == 2.0
    assert UniformRandomVariable(2.0, 5.0, rng=FixedRng(1.0)).value() == 5.0


def test_exponential_nonnegative_and_zero_at_one():
    assert ExponentialRandomVariable(3.0, rng=FixedRng(1.0)).value() == 0.0
    rv = ExponentialRandomVariable(3.0, rng=random.Random(7))
    assert all(rv.value() >= 0 for _ in range(100))


def test_load_cdf_count(cdf_file):
    rv = EmpiricalRandomVariable(cdf_file, smooth=False)
    assert rv.num_entries == 3
    assert rv.load_cdf(cdf_file) == 3


def test_mean_flow_size_in_packets_scaled(cdf_file):
    rv = EmpiricalRandomVariable(cdf_file, smooth=False)
    assert rv.mean_flow_size == pytest.approx(15 * 1460)


def test_smoothing_changes_mean(cdf_file):
    rough = EmpiricalRandomVariable(cdf_file, smooth=False)
    smooth = EmpiricalRandomVariable(cdf_file, smooth=True)
    assert smooth.mean_flow_size < rough.mean_flow_size


def test_lookup_returns_index_covering_u(cdf_file):
    rv = EmpiricalRandomVariable(cdf_file)
    for u in (0.0, 0.1, 0.5, 0.7, 1.0):
        idx = rv.lookup(u)
        assert rv.table[idx].cdf >= u
        if idx > 0:
            assert rv.table[idx - 1].cdf < u


def test_empirical_value_at_table_points(cdf_file):
    assert EmpiricalRandomVariable(cdf_file, rng=FixedRng(0.0)).value() == 1
    assert EmpiricalRandomVariable(cdf_file, rng=FixedRng(0.5)).value() == 10
    assert EmpiricalRandomVariable(cdf_file, rng=FixedRng(1.0)).value() == 20


def test_empirical_value_interpolates(cdf_file):
    rv = EmpiricalRandomVariable(cdf_file, rng=FixedRng(0.25))
    v = rv.value()
    assert v == rv.interpolate(0.25, 0.0, 1.0, 0.5, 10.0)
    assert 1 < v < 10


def test_interpolate_endpoints():
    rv = ConstantVariable(0)
    assert rv.interpolate(2.0, 2.0, 7.0, 4.0, 9.0) == 7.0
    assert rv.interpolate(4.0, 2.0, 7.0, 4.0, 9.0) == 9.0


def test_empty_table_returns_zero():
    assert EmpiricalRandomVariable().value() == 0


def test_decreasing_cdf_rejected(tmp_path):
    path = tmp_path / "bad.cdf"
    path.write_text("1 1 0.6\n2 1 0.3\n")
    with pytest.raises(ValueError):
        EmpiricalRandomVariable(str(path))


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        EmpiricalRandomVariable("/nonexistent/dir/file.cdf")


def test_bytes_variant_mean_and_header(cdf_file):
    rv = EmpiricalBytesRandomVariable(cdf_file, smooth=False)
    packets = EmpiricalRandomVariable(cdf_file, smooth=False)
    assert rv.mean_flow_size * 1460 == pytest.approx(packets.mean_flow_size)
    assert rv.size_with_header > rv.mean_flow_size


def test_cdf_random_variable_steps(cdf_file):
    assert CDFRandomVariable(cdf_file, rng=FixedRng(0.3)).value() == 10
    assert CDFRandomVariable(cdf_file, rng=FixedRng(0.9)).value() == 20


def test_nary_picks_listed_sizes(cdf_file):
    rv = NAryRandomVariable(cdf_file, rng=FixedRng(index=1))
    assert rv.flow_sizes == [1.0, 10.0, 20.0]
    assert rv.value() == 10.0


def test_constant_variable():
    assert ConstantVariable(42.5).value() == 42.5


def test_gaussian_zero_std_returns_mean():
    rv = GaussianRandomVariable(3.5, 0.0, rng=random.Random(0))
    assert rv.value() == 3.5