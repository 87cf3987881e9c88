import sys

import pytest

from services.pipeline import PIPELINE_SCRIPTS
from scripts.rerun_pipeline import main


@pytest.fixture
def home_root(tmp_path, monkeypatch):
    monkeypatch.setenv("PROCESSING_ROOT", str(tmp_path))
    monkeypatch.setenv("PIPELINE_PYTHON", sys.executable)
    monkeypatch.setenv("PIPELINE_STEP_TIMEOUT", "30")
    home_dir = tmp_path / "banwell"
    (home_dir / "downloads").mkdir(parents=True)
    (home_dir / "downloads" / "week1.pdf").write_bytes(b"%PDF")
    for _, script, _ in PIPELINE_SCRIPTS:
        (home_dir / script).write_text(
            "with open('ran.log', 'a') as f:\n"
            f"    f.write('{script}\\n')\n"
        )
    return home_dir


def test_reruns_every_script_in_order(home_root, capsys):
    assert main(["banwell", "--skip-install"]) == 0
    ran = (home_root / "ran.log").read_text().split()
    assert ran == [script for _, script, _ in PIPELINE_SCRIPTS]
    assert "week1.pdf" in capsys.readouterr().out


def test_failing_script_stops_rerun(home_root):
    (home_root / "getPdfInfo.py").write_text("raise SystemExit(4)\n")
    assert main(["banwell", "--skip-install"]) == 1
    assert (home_root / "ran.log").read_text().split() == ["getExcelInfo.py"]


def test_unknown_home_folder(home_root):
    assert main(["nowhere"]) == 2
    assert main(["../banwell"]) == 2
