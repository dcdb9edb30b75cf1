"""
Tests for the stand projection engine.
"""
from types import SimpleNamespace

import pytest

from pystandsim.allometry import get_allometric_model
from pystandsim.crown_ratio import canopy_ranks, update_crown_ratio
from pystandsim.exceptions import InvalidParameterError
from pystandsim.harvest import get_prescription, removal_count
from pystandsim.species import MappingSpeciesLookup, PlantedTree, SpeciesRecord
from pystandsim.stand import (
    StandSimulator,
    carbon_over_time,
    estimate_area_acres,
    project_stand,
    project_stand_time_series,
    site_index_from_soil,
    site_index_to_multiplier,
    time_series_dataframe,
)

from conftest import make_grid


THIN_AT_15 = {
    'id': 'thin-15',
    'name': 'Thin at 15',
    'actions': [{'year': 15, 'type': 'thin-below', 'remove_pct': 0.3, 'label': 'Thin'}],
}


class TestSiteHelpers:

    @pytest.mark.parametrize("si,multiplier", [
        pytest.param(70, 1.0, id="base"),
        pytest.param(80, 1.15, id="good_site"),
        pytest.param(60, 0.85, id="poor_site"),
    ])
    def test_site_index_to_multiplier(self, si, multiplier):
        assert site_index_to_multiplier(si) == pytest.approx(multiplier)

    @pytest.mark.parametrize("texture,multiplier", [
        pytest.param(None, 1.0, id="unknown"),
        pytest.param('Loam', 1.2, id="loam"),
        pytest.param('silty clay', 1.15, id="silty"),
        pytest.param('sandy loam', 1.05, id="sandy_loam"),
        pytest.param('heavy clay', 0.85, id="clay"),
        pytest.param('sand', 0.80, id="sand"),
        pytest.param('rocky', 0.70, id="rocky"),
        pytest.param('peat', 0.90, id="peat"),
    ])
    def test_site_index_from_soil(self, texture, multiplier):
        assert site_index_from_soil(texture) == pytest.approx(multiplier)

    def test_single_tree_area(self):
        assert estimate_area_acres([PlantedTree('loblolly', 33.0, -85.0)]) == 0.25

    def test_area_has_floor(self):
        trees = [PlantedTree('loblolly', 33.0, -85.0, 'a'), PlantedTree('loblolly', 33.0, -85.0, 'b')]
        assert estimate_area_acres(trees) >= 0.05

    def test_area_grows_with_extent(self):
        small = estimate_area_acres(make_grid(25, area_acres=0.5))
        large = estimate_area_acres(make_grid(25, area_acres=4.0))
        assert large > small


class TestInputHandling:

    def test_empty_stand(self, species_lookup):
        result = project_stand([], species_lookup, 20)
        assert result.trees == []
        assert result.stand.trees_per_acre == 0.0
        assert result.stand.max_sdi == 400.0
        assert result.stand.context_label == 'urban'
        assert result.region is None

    def test_negative_year(self, species_lookup, small_plantation):
        with pytest.raises(InvalidParameterError):
            project_stand(small_plantation, species_lookup, -1)

    def test_rejects_non_sequence(self, species_lookup):
        with pytest.raises(InvalidParameterError):
            project_stand("trees", species_lookup, 5)

    def test_rejects_duplicate_ids(self, species_lookup):
        trees = [PlantedTree('loblolly', 33.0, -85.0, 'dup'),
                 PlantedTree('loblolly', 33.0, -85.0001, 'dup')]
        with pytest.raises(InvalidParameterError):
            StandSimulator(trees, species_lookup)

    def test_rejects_non_positive_area(self, species_lookup, small_plantation):
        with pytest.raises(InvalidParameterError):
            StandSimulator(small_plantation, species_lookup, area_acres=0)

    def test_mapping_inputs(self):
        trees = [{'id': f"m-{i}", 'speciesId': 'pine', 'lat': 33.0, 'lng': -85.0 + i * 1e-4}
                 for i in range(5)]
        species = {'pine': {'name': 'Pine', 'speciesGroup': 'pine-hard', 'maxDbhInches': 36}}
        result = project_stand(trees, species, 5, area_acres=0.1)
        assert [t.tree_id for t in result.trees] == [f"m-{i}" for i in range(5)]
        assert result.trees[0].group_code == 'pine-hard'

    def test_missing_ids_are_generated(self, species_lookup):
        trees = [PlantedTree('loblolly', 33.0, -85.0), PlantedTree('loblolly', 33.0, -85.0001)]
        result = project_stand(trees, species_lookup, 1, area_acres=0.1)
        assert [t.tree_id for t in result.trees] == ['tree-0', 'tree-1']

    def test_missing_species_falls_back(self, species_lookup):
        trees = make_grid(10, species_id='unknown-species', area_acres=0.1)
        result = project_stand(trees, species_lookup, 10)
        assert result.fallbacks.missing_species == ['unknown-species']
        assert result.trees[0].species_name == 'Unknown'
        assert result.trees[0].group_code == 'default'

    def test_unknown_group_reported(self):
        species = {'odd': SpeciesRecord(id='odd', species_group='no-such-group')}
        trees = make_grid(4, species_id='odd', area_acres=0.1)
        result = project_stand(trees, species, 3)
        assert result.fallbacks.default_profile_groups == ['no-such-group']
        assert result.fallbacks.any


class TestProjection:

    def test_year_zero_is_planting(self, species_lookup, small_plantation):
        result = project_stand(small_plantation, species_lookup, 0)
        assert all(t.dbh == 1.0 for t in result.trees)
        assert all(t.crown_ratio == pytest.approx(0.6) for t in result.trees)
        assert result.mortality_events == []

    def test_deterministic(self, species_lookup, small_plantation):
        first = project_stand(small_plantation, species_lookup, 25, prescription=THIN_AT_15)
        second = project_stand(small_plantation, species_lookup, 25, prescription=THIN_AT_15)
        assert first.trees == second.trees
        assert first.stand == second.stand
        assert first.mortality_events == second.mortality_events
        assert first.harvest_events == second.harvest_events

    def test_region_from_first_tree(self, species_lookup, small_plantation):
        assert project_stand(small_plantation, species_lookup, 1).region == 'sn'

    def test_dbh_never_decreases(self, species_lookup, small_plantation):
        sim = StandSimulator(small_plantation, species_lookup)
        previous = {t.tree_id: t.dbh for t in sim.result().trees}
        for year in range(1, 31):
            current = {t.tree_id: t.dbh for t in sim.run_to(year).result().trees}
            assert all(current[k] >= previous[k] for k in current)
            previous = current

    def test_dbh_capped_at_species_max(self):
        species = {'tiny': SpeciesRecord(id='tiny', species_group='fruit', max_dbh=4,
                                         typical_dbh_increment=0.8, mortality_rate=0.0)}
        trees = make_grid(4, species_id='tiny', area_acres=1.0)
        result = project_stand(trees, species, 40)
        assert all(t.dbh <= 4.0 for t in result.trees)

    def test_tree_counts_conserved_every_year(self, species_lookup, plantation_300):
        sim = StandSimulator(plantation_300, species_lookup, area_acres=1.0,
                             prescription=get_prescription('even-aged-pulpwood'))
        for year in range(0, 41):
            result = sim.run_to(year).result()
            s = result.stand
            assert s.alive_trees + s.dead_trees + s.harvested_trees == s.total_trees == 300
            assert s.harvested_trees == sum(e.trees_removed for e in result.harvest_events)
            assert s.dead_trees == len(result.mortality_events)

    def test_dead_and_harvested_are_disjoint(self, species_lookup, small_plantation):
        result = project_stand(small_plantation, species_lookup, 30, prescription=THIN_AT_15)
        for t in result.trees:
            assert not (t.harvested and t.died_year is not None)
            if t.harvested:
                assert not t.alive

    def test_harvest_removes_expected_count(self, species_lookup, small_plantation):
        sim = StandSimulator(small_plantation, species_lookup, prescription=THIN_AT_15)
        alive_before = len(sim.run_to(14).standing())
        result = sim.run_to(15).result()
        (event,) = result.harvest_events
        assert event.year == 15
        assert event.trees_removed == removal_count(alive_before, 0.3)

    def test_harvested_trees_are_smallest(self, species_lookup, small_plantation):
        sim = StandSimulator(small_plantation, species_lookup, prescription=THIN_AT_15)
        sim.run_to(14)
        before = {t.tree_id: t.dbh for t in sim.standing()}
        result = sim.run_to(15).result()
        removed = {d.tree_id for d in result.harvest_events[0].tree_details}
        kept = [dbh for tid, dbh in before.items() if tid not in removed]
        cut = [before[tid] for tid in removed]
        assert max(cut) <= min(kept) + 0.01

    def test_crown_ranks_taken_among_harvest_survivors(self, species_lookup, small_plantation):
        sim = StandSimulator(small_plantation, species_lookup, prescription=THIN_AT_15)
        sim.run_to(14)
        before = {t.tree_id: (t.dbh, t.crown_ratio) for t in sim.standing()}
        sim.run_to(15)
        removed = {d.tree_id for d in sim.result().harvest_events[0].tree_details}
        survivors = [SimpleNamespace(tree_id=tid, dbh=dbh)
                     for tid, (dbh, _) in before.items() if tid not in removed]
        ranks = canopy_ranks(survivors, 15)
        for ts in sim.standing():
            expected = update_crown_ratio(before[ts.tree_id][1], ranks[ts.tree_id],
                                          sim.rel_density)
            assert ts.crown_ratio == pytest.approx(expected)

    def test_no_volume_before_sawlog_size(self, species_lookup, small_plantation):
        result = project_stand(small_plantation, species_lookup, 3)
        assert result.stand.total_volume_bf == 0.0

    def test_snapshot_rounding_only_in_to_dict(self, species_lookup, small_plantation):
        result = project_stand(small_plantation, species_lookup, 12)
        data = result.to_dict()
        assert data['stand']['qmd'] == pytest.approx(result.stand.qmd, abs=0.05)
        assert isinstance(data['stand']['total_volume_bf'], int)
        assert len(data['trees']) == 40

    def test_run_to_is_forward_only(self, species_lookup, small_plantation):
        sim = StandSimulator(small_plantation, species_lookup).run_to(10)
        with pytest.raises(InvalidParameterError):
            sim.run_to(5)


class TestMixedStand:
    """Alternating loblolly pine and red oak share one density calculation."""

    def test_planting_uses_mean_group_max_sdi(self, species_lookup, mixed_planting):
        result = project_stand(mixed_planting, species_lookup, 0)
        expected = (get_allometric_model('pine-hard').max_sdi
                    + get_allometric_model('oak').max_sdi) / 2
        assert result.stand.max_sdi == pytest.approx(expected)

    def test_relative_density_over_standing_groups(self, species_lookup, mixed_planting):
        result = project_stand(mixed_planting, species_lookup, 25)
        standing = result.standing_trees()
        assert {t.group_code for t in standing} == {'pine-hard', 'oak'}
        max_sdi = sum(get_allometric_model(t.group_code).max_sdi for t in standing) / len(standing)
        assert result.stand.max_sdi == pytest.approx(max_sdi)
        assert result.stand.rel_density == pytest.approx(result.stand.sdi / max_sdi)

    def test_species_keep_their_records(self, species_lookup, mixed_planting, red_oak):
        result = project_stand(mixed_planting, species_lookup, 30)
        oaks = [t for t in result.trees if t.species_id == 'red-oak']
        assert len(oaks) == 30
        assert all(t.species_name == red_oak.name for t in oaks)
        assert all(t.dbh <= red_oak.max_dbh for t in oaks)

    def test_rerun_is_identical(self, species_lookup, mixed_planting):
        first = project_stand(mixed_planting, species_lookup, 30)
        second = project_stand(mixed_planting, species_lookup, 30)
        assert first == second


class TestTimeSeries:

    def test_points_match_single_projections(self, species_lookup, small_plantation):
        series = list(project_stand_time_series(small_plantation, species_lookup, 30,
                                                prescription=THIN_AT_15, step_years=10))
        assert [p.year for p in series] == [0, 10, 20, 30]
        for point in series:
            single = project_stand(small_plantation, species_lookup, point.year,
                                   prescription=THIN_AT_15)
            assert point.to_dict() == single.to_dict()

    def test_invalid_step(self, species_lookup, small_plantation):
        with pytest.raises(InvalidParameterError):
            list(project_stand_time_series(small_plantation, species_lookup, 10, step_years=0))

    def test_negative_max_year(self, species_lookup, small_plantation):
        with pytest.raises(InvalidParameterError):
            list(project_stand_time_series(small_plantation, species_lookup, -5))

    def test_dataframe(self, species_lookup, small_plantation):
        pytest.importorskip("pandas")
        points = list(project_stand_time_series(small_plantation, species_lookup, 20))
        df = time_series_dataframe(points)
        assert list(df['year']) == [0, 5, 10, 15, 20]
        assert 'basal_area_sqft' in df.columns

    def test_trees_dataframe(self, species_lookup, small_plantation):
        pytest.importorskip("pandas")
        df = project_stand(small_plantation, species_lookup, 5).trees_dataframe()
        assert len(df) == 40
        assert 'dbh' in df.columns


class TestCarbon:

    def test_carbon_accumulates(self, species_lookup, small_plantation):
        series = carbon_over_time(small_plantation, species_lookup, decades=(10, 20, 30))
        assert [p['year'] for p in series] == [10, 20, 30]
        cumulative = [p['cumulative_kg'] for p in series]
        assert cumulative == sorted(cumulative)
        assert series[0]['annual_kg'] == pytest.approx(series[0]['cumulative_kg'] / 10, abs=1)


@pytest.mark.slow
class TestPlantationScenario:
    """300 loblolly pines per acre on a good site, projected 30 years."""

    @pytest.fixture(scope="class")
    def result(self):
        species = MappingSpeciesLookup({'loblolly': SpeciesRecord(
            id='loblolly', name='Loblolly Pine', species_group='pine-hard',
            max_dbh=40, typical_dbh_increment=0.60, mortality_rate=0.006)})
        return project_stand(make_grid(300), species, 30, site_index=0.925, area_acres=1.0)

    def test_qmd_near_yield_table(self, result):
        assert result.stand.qmd == pytest.approx(11.0, rel=0.25)

    def test_self_thinning(self, result):
        assert result.stand.trees_per_acre < 300

    def test_natural_forest_context(self, result):
        assert result.stand.context_label == 'natural forest'

    def test_merchantable_volume(self, result):
        assert result.stand.total_volume_bf > 0
