"""
Tests for benchmark validation against published yield tables.
"""
import math

import pytest

from pystandsim.validation import (
    METRIC_KEYS,
    Benchmark,
    accuracy_grade,
    build_species_lookup,
    deviation_band,
    extract_metrics,
    generate_synthetic_trees,
    load_benchmarks,
    overall_accuracy_score,
    pct_deviation,
    results_dataframe,
    run_benchmark,
    run_validation,
)


@pytest.fixture
def loblolly_benchmark():
    return next(b for b in load_benchmarks() if b.id == 'loblolly-300')


class TestBenchmarkData:

    def test_bundled_benchmarks(self):
        ids = [b.id for b in load_benchmarks()]
        assert ids == ['loblolly-300', 'df-250', 'oak-hickory-200', 'ponderosa-200']

    def test_regions_are_lowercase_codes(self):
        assert {b.region for b in load_benchmarks()} == {'sn', 'pn', 'ne', 'ci'}

    def test_decades_carry_every_metric(self):
        for benchmark in load_benchmarks():
            for decade in benchmark.decades:
                assert set(METRIC_KEYS) <= set(decade)

    def test_region_normalized(self):
        b = Benchmark.from_dict({
            'id': 'x', 'name': 'X', 'region': 'SN', 'species_id': 's',
            'species_group': 'oak', 'initial_tpa': 10, 'site_index': 1.0, 'decades': [],
        })
        assert b.region == 'sn'


class TestSyntheticStand:

    def test_tree_count_and_ids(self, loblolly_benchmark):
        trees = generate_synthetic_trees(loblolly_benchmark)
        assert len(trees) == 300
        assert trees[0].tree_id == 'loblolly-300-0'
        assert trees[-1].tree_id == 'loblolly-300-299'

    def test_grid_anchored_at_region(self, loblolly_benchmark):
        trees = generate_synthetic_trees(loblolly_benchmark)
        assert (trees[0].lat, trees[0].lng) == (33.0, -85.0)
        cols = math.ceil(math.sqrt(300))
        assert trees[cols].lat > trees[0].lat
        assert trees[cols].lng == trees[0].lng

    def test_species_lookup_merges_overrides(self, loblolly_benchmark):
        record = build_species_lookup(loblolly_benchmark).get_species('loblolly-pine')
        assert record.species_group == 'pine-hard'
        assert record.typical_dbh_increment == 0.60
        assert record.leaf_area_index == 3.5
        assert record.name == loblolly_benchmark.species_label


class TestScoring:

    @pytest.mark.parametrize("model,published,expected", [
        pytest.param(110, 100, 10.0, id="over"),
        pytest.param(90, 100, -10.0, id="under"),
        pytest.param(0, 0, 0.0, id="both_zero"),
        pytest.param(50, 0, None, id="published_zero"),
    ])
    def test_pct_deviation(self, model, published, expected):
        assert pct_deviation(model, published) == expected

    @pytest.mark.parametrize("dev,band", [
        pytest.param(5.0, 'close', id="close"),
        pytest.param(-15.0, 'good', id="good"),
        pytest.param(30.0, 'fair', id="fair"),
        pytest.param(-45.0, 'poor', id="poor"),
        pytest.param(80.0, 'bad', id="bad"),
        pytest.param(None, 'n/a', id="missing"),
    ])
    def test_deviation_band(self, dev, band):
        assert deviation_band(dev) == band

    @pytest.mark.parametrize("score,letter,label", [
        pytest.param(95.0, 'A', 'Excellent', id="A"),
        pytest.param(85.0, 'B', 'Good', id="B"),
        pytest.param(72.0, 'C', 'Fair', id="C"),
        pytest.param(65.0, 'D', 'Below Average', id="D"),
        pytest.param(10.0, 'F', 'Poor', id="F"),
    ])
    def test_accuracy_grade(self, score, letter, label):
        grade = accuracy_grade(score)
        assert (grade.letter, grade.label) == (letter, label)

    def test_overall_score_empty(self):
        assert overall_accuracy_score([]) == 0.0


class TestRunBenchmark:

    @pytest.fixture
    def result(self, loblolly_benchmark):
        return run_benchmark(loblolly_benchmark, max_year=20)

    def test_only_decades_through_max_year(self, result):
        assert [d.year for d in result.decades] == [10, 20]

    def test_metric_means_are_absolute(self, result):
        for key in METRIC_KEYS:
            devs = [abs(d.deviation[key]) for d in result.decades if d.deviation[key] is not None]
            if devs:
                assert result.by_metric[key] == pytest.approx(sum(devs) / len(devs), abs=0.051)

    def test_score_bounds(self, result):
        assert 0.0 <= result.overall_score <= 100.0

    def test_extract_metrics_rounding(self, loblolly_benchmark):
        from pystandsim.stand import project_stand
        projection = project_stand(generate_synthetic_trees(loblolly_benchmark),
                                   build_species_lookup(loblolly_benchmark), 10,
                                   site_index=loblolly_benchmark.site_index, area_acres=1.0)
        metrics = extract_metrics(projection, 1.0)
        assert set(metrics) == set(METRIC_KEYS)
        assert metrics['vol_bf'] == round(metrics['vol_bf'])

    def test_dataframe(self, result):
        pytest.importorskip("pandas")
        df = results_dataframe([result])
        assert len(df) == 2 * len(METRIC_KEYS)
        assert set(df['metric']) == set(METRIC_KEYS)


@pytest.mark.slow
class TestBenchmarkRuns:
    """Every bundled benchmark through its first three decades."""

    @pytest.fixture(scope="class")
    def results(self):
        return run_validation(max_year=30)

    def test_every_benchmark_scored(self, results):
        assert len(results) == 4
        assert all(len(r.decades) == 3 for r in results)

    def test_unmanaged_stands_only_lose_trees(self, results):
        for r in results:
            tpa = [d.modeled['tpa'] for d in r.decades]
            assert tpa == sorted(tpa, reverse=True)
            assert tpa[0] <= r.benchmark.initial_tpa

    def test_stands_grow(self, results):
        for r in results:
            ba = [d.modeled['ba'] for d in r.decades]
            assert ba[-1] > ba[0]

    def test_overall_score_is_mean(self, results):
        scores = [r.overall_score for r in results]
        assert overall_accuracy_score(results) == pytest.approx(sum(scores) / len(scores), abs=0.051)

    def test_overall_accuracy_at_least_fair(self, results):
        score = overall_accuracy_score(results)
        assert score >= 70.0
        assert accuracy_grade(score).letter in 'ABC'
