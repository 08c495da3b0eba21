import sys

from start import find_interpreter


def test_falls_back_to_running_interpreter(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert find_interpreter() == sys.executable


def test_prefers_project_venv(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "platform", "linux")
    python = tmp_path / ".venv" / "bin" / "python"
    python.parent.mkdir(parents=True)
    python.write_text("")
    assert find_interpreter() == str(python.relative_to(tmp_path))
