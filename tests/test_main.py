import json
import logging

import pytest

import main
from core.config import SearchConfig
from core.report import format_report
from core.utils import load_image
from tools.base_address_search import run_analysis


@pytest.fixture(autouse=True)
def small_search(monkeypatch):
    monkeypatch.setenv("BASEFIND_SEARCH_CEILING", "0x10000")
    monkeypatch.setenv("BASEFIND_SEARCH_STEP", "0x1000")
    monkeypatch.delenv("BASEFIND_JSON", raising=False)
    monkeypatch.delenv("EXPLAIN", raising=False)


@pytest.mark.parametrize("argv", [["basefind"], ["basefind", "a.bin", "b.bin"]])
def test_wrong_argument_count_prints_usage(argv, capsys):
    assert main.main(argv) == main.EXIT_USAGE
    assert "Usage: basefind FIRMWARE_FILE" in capsys.readouterr().out


def test_missing_file_is_an_error(tmp_path, capsys):
    assert main.main(["basefind", str(tmp_path / "missing.bin")]) == main.EXIT_ERROR
    assert "Error: File not found" in capsys.readouterr().err


def test_bad_config_is_an_error(firmware_file, monkeypatch, capsys):
    monkeypatch.setenv("BASEFIND_TOP_K", "0")

    assert main.main(["basefind", firmware_file(bytes(8))]) == main.EXIT_ERROR
    assert "top_k" in capsys.readouterr().err


def test_reports_ranked_candidates(relocated_image, firmware_file, caplog):
    caplog.set_level(logging.INFO)
    path = firmware_file(relocated_image)

    assert main.main(["basefind", path]) == main.EXIT_OK

    messages = [r.getMessage() for r in caplog.records]
    assert f"File size = {len(relocated_image)}" in messages
    assert "Number of strings: 1" in messages
    assert "Base address: 00002000, matches: 3" in messages
    assert sum(m.startswith("Base address:") for m in messages) == 5


def test_json_output(relocated_image, firmware_file, monkeypatch, capsys):
    monkeypatch.setenv("BASEFIND_JSON", "1")

    assert main.main(["basefind", firmware_file(relocated_image)]) == main.EXIT_OK

    report = json.loads(capsys.readouterr().out)
    assert report["candidates"][0] == {"address": "0x00002000", "matches": 3}
    assert report["string_count"] == 1


def test_format_report_orders_lines(relocated_image, firmware_file):
    config = SearchConfig(search_ceiling=0x10000, search_step=0x1000)
    report = run_analysis(load_image(firmware_file(relocated_image)), config)
    lines = format_report(report)

    assert lines[0] == f"File size = {len(relocated_image)}"
    assert lines[1] == f"Buffer size = {len(relocated_image)}"
    assert lines[5] == "Best base address candidates:"
    assert lines[6] == "Base address: 00002000, matches: 3"


def test_explain_without_api_key_is_an_error(relocated_image, firmware_file, monkeypatch, capsys):
    monkeypatch.setenv("EXPLAIN", "1")
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

    assert main.main(["basefind", firmware_file(relocated_image)]) == main.EXIT_ERROR

    err = capsys.readouterr().err
    assert err.startswith("Error: ")
    assert "Traceback" not in err
