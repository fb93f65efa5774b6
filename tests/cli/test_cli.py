"""
Tests for cli/

Commands run through main() against a library in a temp directory
selected with BOOK_STORAGE_ROOT.
"""

import json

import pytest
import yaml

from cli import create_parser, main
from tests.conftest import make_page


@pytest.fixture
def library_root(tmp_path, monkeypatch):
    root = tmp_path / "library"
    monkeypatch.setenv("BOOK_STORAGE_ROOT", str(root))
    return root


def run_json(capsys, argv):
    capsys.readouterr()
    main(argv)
    return json.loads(capsys.readouterr().out)


class TestParser:

    def test_command_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_pipeline_step_choices(self):
        args = create_parser().parse_args(['pipeline', 'step', 'b', 'ocr'])
        assert args.step == 'ocr'

        with pytest.raises(SystemExit):
            create_parser().parse_args(['pipeline', 'step', 'b', 'bind'])

    def test_job_action_choices(self):
        args = create_parser().parse_args(['job', 'action', 'abc', 'retry'])
        assert args.action == 'retry'


class TestConfigCommands:

    def test_init_and_set(self, library_root, capsys):
        main(['init'])
        main(['config', 'set', 'defaults.ocr_limit', '25'])

        data = yaml.safe_load((library_root / "config.yaml").read_text())
        assert data['defaults']['ocr_limit'] == 25

    def test_set_key(self, library_root):
        main(['config', 'set-key', 'gemini', '${MY_KEY}'])

        data = yaml.safe_load((library_root / "config.yaml").read_text())
        assert data['api_keys']['gemini'] == '${MY_KEY}'


class TestLibraryCommands:

    def test_add_pages_and_list(self, library_root, tmp_path, capsys):
        photos = [str(make_page(tmp_path / f"p{i}.png")) for i in range(3)]

        main(['library', 'add', 'de-natura', '--title', 'De Natura', '--author', 'Lucretius'])
        main(['library', 'pages', 'de-natura', *photos])

        rows = run_json(capsys, ['library', 'list', '--json'])
        assert rows[0]['book_id'] == 'de-natura'
        assert rows[0]['pages'] == 3
        assert rows[0]['pipeline'] == 'idle'

        stats = run_json(capsys, ['library', 'stats', 'de-natura', '--json'])
        assert stats == {'book_id': 'de-natura', 'pages': 3, 'ocr': 0, 'translated': 0}

    def test_errors_exit_nonzero(self, library_root, capsys):
        """Domain errors print a message and exit with status 1."""
        with pytest.raises(SystemExit) as exc:
            main(['library', 'stats', 'ghost'])

        assert exc.value.code == 1
        assert "Book 'ghost' not found" in capsys.readouterr().out


class TestPipelineCommands:

    def test_status_and_start(self, library_root, capsys):
        main(['library', 'add', 'empty', '--title', 'Empty'])

        state = run_json(capsys, ['pipeline', 'status', 'empty', '--json'])
        assert state['status'] == 'idle'

        main(['pipeline', 'start', 'empty', '--target-language', 'French'])
        state = run_json(capsys, ['pipeline', 'status', 'empty', '--json'])
        assert state['status'] == 'running'
        assert state['config']['target_language'] == 'French'

    def test_pause_resume(self, library_root, capsys):
        main(['library', 'add', 'empty', '--title', 'Empty'])
        main(['pipeline', 'start', 'empty'])
        main(['pipeline', 'pause', 'empty'])

        assert "pipeline is now paused" in capsys.readouterr().out
        with pytest.raises(SystemExit):
            main(['pipeline', 'pause', 'empty'])


class TestJobCommands:

    def test_empty_job_list(self, library_root, capsys):
        main(['library', 'add', 'empty', '--title', 'Empty'])
        assert run_json(capsys, ['job', 'list', '--book', 'empty', '--json']) == []
