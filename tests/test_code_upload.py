import asyncio
import os
import stat
import tempfile

import pytest

from device_control import code_upload
from device_control.code_upload import SketchUploader

SKETCH = "void setup() {}\nvoid loop() {}\n"


def write_fake_cli(tmp_path, compile_exit=0):
    """Shell script standing in for arduino-cli; logs its arguments"""
    log_file = tmp_path / "calls.log"
    script = tmp_path / "fake-arduino-cli"
    script.write_text(
        "#!/bin/sh\n"
        f"echo \"$@\" >> '{log_file}'\n"
        "case \"$1\" in\n"
        "  version) echo 'arduino-cli Version: 1.0.0' ;;\n"
        f"  compile) echo 'Sketch uses 1024 bytes'; echo 'compile error' >&2; exit {compile_exit} ;;\n"
        "  upload) echo 'Upload done' ;;\n"
        "esac\n"
    )
    script.chmod(script.stat().st_mode | stat.S_IEXEC | stat.S_IXGRP | stat.S_IXOTH)
    return str(script), log_file


@pytest.fixture
def sketch_root(tmp_path, monkeypatch):
    root = tmp_path / "sketches"
    root.mkdir()
    real_mkdtemp = tempfile.mkdtemp
    monkeypatch.setattr(code_upload.tempfile, "mkdtemp",
                        lambda prefix="": real_mkdtemp(prefix=prefix, dir=str(root)))
    return root


def test_simulated_when_cli_missing(sketch_root):
    uploader = SketchUploader({"cli_path": "definitely-not-arduino-cli"})

    result = asyncio.run(uploader.upload(SKETCH))

    assert result["success"] is True
    assert result["simulated"] is True
    assert os.listdir(sketch_root) == []


def test_compile_only_without_port(tmp_path, sketch_root):
    cli, log_file = write_fake_cli(tmp_path)
    uploader = SketchUploader({"cli_path": cli, "board": "arduino:avr:uno"})

    result = asyncio.run(uploader.upload(SKETCH))

    assert result["success"] is True
    assert "no upload" in result["message"]
    assert "Sketch uses 1024 bytes" in result["compilation"]
    calls = log_file.read_text().splitlines()
    assert calls[0] == "version"
    assert calls[1].startswith("compile --fqbn arduino:avr:uno ")
    assert calls[1].endswith("arduino_sketch")
    assert len(calls) == 2
    assert os.listdir(sketch_root) == []


def test_compile_and_upload_with_port(tmp_path, sketch_root):
    cli, log_file = write_fake_cli(tmp_path)
    uploader = SketchUploader({"cli_path": cli, "board": "arduino:avr:uno", "port": "/dev/ttyACM0"})

    result = asyncio.run(uploader.upload(SKETCH))

    assert result["success"] is True
    assert result["upload"].strip() == "Upload done"
    calls = log_file.read_text().splitlines()
    assert calls[2].startswith("upload --fqbn arduino:avr:uno --port /dev/ttyACM0 ")


def test_compile_failure_reports_stderr(tmp_path, sketch_root):
    cli, log_file = write_fake_cli(tmp_path, compile_exit=1)
    uploader = SketchUploader({"cli_path": cli, "port": "/dev/ttyACM0"})

    result = asyncio.run(uploader.upload(SKETCH))

    assert result["success"] is False
    assert "exited with code 1" in result["error"]
    assert "compile error" in result["stderr"]
    assert not any(line.startswith("upload") for line in log_file.read_text().splitlines())
    assert os.listdir(sketch_root) == []
