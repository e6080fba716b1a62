"""
Unit tests for the admin CLI, run against an in-memory service.
"""

import json

import pytest

from orion_discard.cli import admin_cli


class FakePool:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def pool(monkeypatch, service):
    pool = FakePool()
    monkeypatch.setattr(admin_cli, "connect", lambda args: (pool, service))
    return pool


def run(argv):
    with pytest.raises(SystemExit) as exc_info:
        admin_cli.main(argv)
    return exc_info.value.code


class TestParser:

    def test_scope_arguments(self):
        args = admin_cli.build_parser().parse_args(
            ["check-status", "--barcode", "AB-100", "--site", "MXSA", "--record-type", "T2"]
        )
        assert args.command == "check-status"
        assert args.site == "MXSA"
        assert args.year is None
        assert args.record_type == "T2"

    def test_bulk_source_required(self):
        with pytest.raises(SystemExit):
            admin_cli.build_parser().parse_args(["bulk-validate"])

    def test_no_command_prints_help(self, capsys):
        assert run([]) == 1
        assert "check-status" in capsys.readouterr().out


def test_check_status(pool, capsys):
    assert run(["check-status", "--barcode", "ab-102"]) == 0

    out = capsys.readouterr().out
    assert "Discarded: yes" in out
    assert "2024-05-01 09:30:00 by 7" in out
    assert pool.closed


def test_check_status_unknown(pool, capsys):
    assert run(["check-status", "--barcode", "ZZ-1"]) == 0
    assert "Not found in scope" in capsys.readouterr().out


def test_validate(pool, capsys, record_store, scope):
    assert run(["validate", "--barcode", " ab-101\r\n", "--actor", "3"]) == 0

    assert "Discarded AB-101" in capsys.readouterr().out
    assert record_store.get(scope, "2").discarded_by == "3"


def test_validate_rejects_bad_format(pool, capsys, record_store, scope):
    assert run(["validate", "--barcode", "a!"]) == 1
    assert "--force" in capsys.readouterr().out


def test_validate_already_discarded(pool, capsys):
    assert run(["validate", "--barcode", "AB-102"]) == 1
    assert "Barcode already discarded" in capsys.readouterr().out
    assert pool.closed


def test_unmark(pool, capsys, record_store, scope):
    assert run(["unmark", "--barcode", "AB-102"]) == 0
    assert not record_store.get(scope, "3").is_discarded


def test_bulk_validate_from_file(pool, capsys, tmp_path):
    source = tmp_path / "codes.txt"
    source.write_text("AB-100\n\nAB-102\nZZ-9\n")
    output = tmp_path / "result.json"

    assert run(["bulk-validate", "--file", str(source), "--output", str(output)]) == 0

    out = capsys.readouterr().out
    assert "Total:             3" in out
    assert "ZZ-9" in out
    result = json.loads(output.read_text())
    assert result["succeeded"] == ["AB-100"]
    assert result["already_discarded"] == ["AB-102"]


def test_bulk_validate_inline(pool, capsys):
    assert run(["bulk-validate", "--barcodes", "AB-100, AB-101"]) == 0
    assert "Discarded:         2" in capsys.readouterr().out


def test_stats(pool, capsys):
    assert run(["stats", "--field", "AB-RA"]) == 0

    out = capsys.readouterr().out
    assert "Scope: PRSA / 2024 / T1" in out
    assert "Total records: 3" in out
    assert "Discarded:     1" in out


def test_entries(pool, capsys, service):
    assert run(["entries"]) == 0
    assert "No discard entries recorded." in capsys.readouterr().out

    service.submit_discard(
        {
            "farm_id": "1",
            "section_id": "10",
            "field_id": "AB-RA",
            "field_name": "AB-RA",
            "scanned_code": "AB-100",
            "actor": "4",
        }
    )
    assert run(["entries", "--limit", "5"]) == 0
    out = capsys.readouterr().out
    assert "AB-100" in out
    assert "AB-RA" in out


def test_unexpected_error_exit_code(monkeypatch, capsys):
    def broken(args):
        raise RuntimeError("database unreachable")

    monkeypatch.setattr(admin_cli, "connect", broken)

    assert run(["stats"]) == 1
    assert "database unreachable" in capsys.readouterr().out
