"""
Tests for seeded randomness and tree utility arithmetic.
"""
import math
from dataclasses import dataclass

import pytest

from pystandsim.seeding import (
    hash_string,
    mix_seed,
    seeded_random,
    sort_by_dbh_with_tiebreaker,
    tiebreak_value,
    vigor_multiplier,
)
from pystandsim.tree_utils import (
    basal_area,
    quadratic_mean_diameter,
    round_half_up,
    round_to,
    stand_basal_area,
    stand_density_index,
)


@dataclass
class _Stem:
    tree_id: str
    dbh: float


class TestHashString:

    def test_empty_string_is_seed(self):
        assert hash_string("") == 5381

    def test_single_character(self):
        assert hash_string("a") == 5381 * 33 + 97

    def test_stays_32_bit(self):
        h = hash_string("x" * 500)
        assert 0 <= h <= 0xFFFFFFFF

    def test_non_bmp_characters_hash_as_utf16_pairs(self):
        # U+1F332 is the surrogate pair D83C DF32
        expected = ((5381 * 33 + 0xD83C) * 33 + 0xDF32) & 0xFFFFFFFF
        assert hash_string("\U0001F332") == expected

    def test_non_strings_hash_their_text(self):
        assert hash_string(42) == hash_string("42")


class TestSeededRandom:

    @pytest.mark.parametrize("seed", [0, 1, 12345, 2 ** 31, 2 ** 32 - 1])
    def test_unit_interval(self, seed):
        value = seeded_random(seed)
        assert 0.0 <= value < 1.0

    def test_deterministic(self):
        assert seeded_random(987654) == seeded_random(987654)

    def test_roughly_uniform(self):
        values = [seeded_random(i) for i in range(5000)]
        assert sum(values) / len(values) == pytest.approx(0.5, abs=0.03)

    def test_mix_seed_uses_stride(self):
        assert mix_seed("tree-1", 3, 31) == hash_string("tree-1") + 93

    def test_tiebreak_varies_by_epoch(self):
        keys = {tiebreak_value("tree-1", year) for year in range(1, 20)}
        assert len(keys) > 15


class TestVigorMultiplier:

    def test_clamped(self):
        values = [vigor_multiplier(f"t-{i}") for i in range(2000)]
        assert min(values) >= 0.65
        assert max(values) <= 1.35

    def test_centered_near_one(self):
        values = [vigor_multiplier(f"t-{i}") for i in range(2000)]
        assert sum(values) / len(values) == pytest.approx(1.0, abs=0.02)

    def test_persistent_per_tree(self):
        assert vigor_multiplier("oak-17") == vigor_multiplier("oak-17")


class TestSortByDbhWithTiebreaker:

    def test_orders_distinct_diameters(self):
        stems = [_Stem("a", 5.0), _Stem("b", 3.0), _Stem("c", 4.0)]
        ordered = sort_by_dbh_with_tiebreaker(stems, 1)
        assert [s.tree_id for s in ordered] == ["b", "c", "a"]

    def test_descending(self):
        stems = [_Stem("a", 5.0), _Stem("b", 3.0), _Stem("c", 4.0)]
        ordered = sort_by_dbh_with_tiebreaker(stems, 1, ascending=False)
        assert [s.tree_id for s in ordered] == ["a", "c", "b"]

    def test_ties_follow_seeded_key(self):
        stems = [_Stem(f"t-{i}", 4.0) for i in range(10)]
        ordered = sort_by_dbh_with_tiebreaker(stems, 7)
        keys = [tiebreak_value(s.tree_id, 7) for s in ordered]
        assert keys == sorted(keys)

    def test_tie_order_changes_between_years(self):
        stems = [_Stem(f"t-{i}", 4.0) for i in range(20)]
        first = [s.tree_id for s in sort_by_dbh_with_tiebreaker(stems, 1)]
        second = [s.tree_id for s in sort_by_dbh_with_tiebreaker(stems, 2)]
        assert first != second

    def test_does_not_modify_input(self):
        stems = [_Stem("a", 5.0), _Stem("b", 3.0)]
        sort_by_dbh_with_tiebreaker(stems, 1)
        assert [s.tree_id for s in stems] == ["a", "b"]


class TestTreeUtils:

    def test_basal_area_of_one_foot_stem(self):
        assert basal_area(12.0) == pytest.approx(math.pi / 4)

    def test_stand_basal_area_sums(self):
        assert stand_basal_area([12.0, 12.0]) == pytest.approx(math.pi / 2)

    def test_stand_basal_area_empty(self):
        assert stand_basal_area([]) == 0.0

    def test_quadratic_mean_diameter(self):
        assert quadratic_mean_diameter([3.0, 4.0]) == pytest.approx(math.sqrt(12.5))

    def test_quadratic_mean_diameter_empty(self):
        assert quadratic_mean_diameter([]) == 0.0

    def test_sdi_at_reference_diameter(self):
        assert stand_density_index(100, 10.0) == pytest.approx(100.0)

    @pytest.mark.parametrize("tpa,qmd", [
        pytest.param(0, 5.0, id="no_trees"),
        pytest.param(100, 0.0, id="no_diameter"),
    ])
    def test_sdi_zero(self, tpa, qmd):
        assert stand_density_index(tpa, qmd) == 0.0

    @pytest.mark.parametrize("value,expected", [
        pytest.param(2.5, 3, id="half_rounds_up"),
        pytest.param(0.5, 1, id="half_to_one"),
        pytest.param(2.49, 2, id="below_half"),
        pytest.param(-0.5, 0, id="negative_half_toward_infinity"),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_round_to(self):
        assert round_to(1.25, 1) == pytest.approx(1.3)
        assert round_to(12.5) == 13.0
