import importlib.util
from pathlib import Path

import pytest

SCRIPT = Path(__file__).parent.parent / "scripts" / "run_pipeline.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("run_pipeline", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_scene_ids_are_parsed(cli):
    args = cli.parse_args(["-m", "model.png", "-p", "dress.png", "--video", "0", "--video", "8", "--upscale", "4"])

    assert args.video == [0, 8]
    assert args.upscale == [4]
    assert args.output == "./output"


@pytest.mark.parametrize("flag,value", [("--video", "12"), ("--upscale", "9"), ("--video", "-1")])
def test_out_of_range_scene_id_is_a_usage_error(cli, capsys, flag, value):
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["-m", "model.png", "-p", "dress.png", flag, value])

    assert exc_info.value.code == 2
    assert "invalid choice" in capsys.readouterr().err
