"""
Tests for the pystandsim command-line interface.
"""
import json

import pytest

from pystandsim.main import build_parser, main


STAND_YAML = """
site_index: 1.0
area_acres: 0.1
species:
  pine:
    name: Loblolly Pine
    speciesGroup: pine-hard
    maxDbhInches: 40
trees:
""" + "".join(
    f"  - {{id: p-{i}, speciesId: pine, lat: 33.0, lng: {-85.0 + i * 1e-4:.4f}}}\n"
    for i in range(10)
)


@pytest.fixture
def stand_file(tmp_path):
    path = tmp_path / 'stand.yaml'
    path.write_text(STAND_YAML)
    return path


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args(['project', '--benchmark', 'df-250'])
        assert args.years == 50
        assert args.step == 5
        assert args.verbose == 0

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:

    def test_prescriptions_json(self, capsys):
        assert main(['prescriptions', '--category', 'passive', '--json']) == 0
        data = json.loads(capsys.readouterr().out)
        assert [p['id'] for p in data] == ['no-management']
        assert data[0]['actions'] == []

    def test_project_json_from_file(self, stand_file, capsys):
        assert main(['project', str(stand_file), '--years', '12', '--json']) == 0
        points = json.loads(capsys.readouterr().out)
        assert [p['year'] for p in points] == [0, 5, 10, 12]
        assert points[-1]['stand']['total_trees'] == 10

    def test_finance_json(self, stand_file, capsys):
        code = main(['finance', str(stand_file), '--prescription', 'no-management',
                     '--rotation', '10', '--json'])
        assert code == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary['total_revenue'] == 0

    def test_missing_input_is_an_error(self):
        assert main(['project']) == 2

    def test_unknown_benchmark(self):
        assert main(['project', '--benchmark', 'redwood-9000']) == 2

    def test_validate_min_score(self):
        args = ['validate', '--benchmark', 'loblolly-300', '--max-year', '10']
        assert main(args + ['--min-score', '0']) == 0
        assert main(args + ['--min-score', '101']) == 1

    def test_inline_prescription_without_id(self, tmp_path, capsys):
        path = tmp_path / 'thinned.yaml'
        path.write_text(STAND_YAML + """
prescription:
  name: Early thin
  actions:
    - {year: 3, type: pct, remove_pct: 0.3}
""")
        assert main(['project', str(path), '--years', '5', '--json']) == 0
        points = json.loads(capsys.readouterr().out)
        (event,) = points[-1]['harvest_events']
        assert event['year'] == 3
        assert event['trees_removed'] > 0
