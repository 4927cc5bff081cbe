import json
from pathlib import Path

import pytest

from cli.main import main


def test_cli_basic_preset(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    main(["--preset", "xor-batch", "--max-epochs", "5"])
    run_dir = Path("runs/xor-batch")
    assert (run_dir / "metrics.jsonl").exists()
    assert (run_dir / "manifest.json").exists()
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload["epochs"] == 5
    assert payload["stop_reason"] == "max_epochs"


def test_cli_yaml_override_and_dump(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "override.yaml"
    override.write_text("train:\n  max_epochs: 3\n  worker_count: 2\n")
    main(
        [
            "--preset",
            "xor-batch",
            "--config",
            str(override),
            "--run-dir",
            "runs/override",
            "--dump-config",
            "resolved.json",
        ]
    )
    resolved = json.loads(Path("resolved.json").read_text())
    assert resolved["train"]["max_epochs"] == 3
    assert resolved["train"]["worker_count"] == 2
    assert resolved["network"]["hidden"] == [3]
    lines = Path("runs/override/metrics.jsonl").read_text().splitlines()
    assert len(lines) == 3


def test_cli_error_threshold_flag(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    main(["--preset", "xor-error-average", "--error-threshold", "5.0"])
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload["stop_reason"] == "error_threshold"
    assert payload["epochs"] == 1


def test_cli_reports_configuration_errors(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit, match="Training failed"):
        main(["--preset", "sine-per-example", "--workers", "2", "--max-epochs", "2"])


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--list-presets"])
    assert info.value.code == 0
    names = capsys.readouterr().out.split()
    assert "xor-parallel" in names
    assert "sine-batch-parallel" in names
