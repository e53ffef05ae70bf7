"""
Tests for the command line entry point.
"""

import json

from p1telegram.__main__ import main


class TestParseCommand:
    def test_prints_reading(self, tmp_path, capsys, standard_telegram: str) -> None:
        path = tmp_path / "telegram.raw"
        path.write_bytes(standard_telegram.encode("ascii"))

        assert main(["parse", str(path)]) == 0

        reading = json.loads(capsys.readouterr().out)
        assert reading["timestamp"] == "2023-06-15T10:00:00+00:00"
        assert reading["power"]["import"]["t1"] == {"value": 1234.567, "unit": "kWh"}

    def test_timezone_option(self, tmp_path, capsys, standard_telegram: str) -> None:
        path = tmp_path / "telegram.raw"
        path.write_bytes(standard_telegram.encode("ascii"))

        assert main(["parse", str(path), "--timezone", "UTC"]) == 0

        reading = json.loads(capsys.readouterr().out)
        assert reading["timestamp"] == "2023-06-15T11:00:00+00:00"

    def test_strict_option(self, tmp_path, standard_telegram: str) -> None:
        path = tmp_path / "telegram.raw"
        path.write_bytes(standard_telegram.encode("ascii"))

        assert main(["parse", str(path), "--strict"]) == 1

    def test_parse_failure_exit_code(self, tmp_path, capsys, build_telegram) -> None:
        path = tmp_path / "telegram.raw"
        path.write_text(build_telegram(checksum="0000"))

        assert main(["parse", str(path)]) == 1
        assert "power" not in capsys.readouterr().out
