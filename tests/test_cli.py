"""Command-line interface against a file-backed ledger."""

import hashlib
import json

import pytest

from pdc import __version__
from pdc.cli import CLIError, OutputFormat, format_output, main, parse_transient

PUBLIC_M1 = '{"doctype":"MOBILE","name":"m1","color":"red","size":5}'
PRIVATE_M1 = b'{"doctype":"MOBILE_PRIVATE","name":"m1","owner":"alice","price":100}'


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "m1.private.json").write_bytes(PRIVATE_M1)
    return tmp_path


def _run(capsys, *argv):
    code = main(list(argv))
    out, err = capsys.readouterr()
    return code, out, err


def _error(err):
    return json.loads(err.strip().splitlines()[-1])


def _create_m1(capsys):
    return _run(
        capsys,
        "invoke", "CreateMobile", PUBLIC_M1,
        "--org", "Org1MSP",
        "--transient", "mobile_properties=@m1.private.json",
    )


class TestInvoke:

    def test_create_then_read(self, workdir, capsys):
        code, out, _ = _create_m1(capsys)
        assert code == 0
        assert json.loads(out)["function"] == "CreateMobile"
        assert (workdir / ".pdc" / "ledger.json").is_file()

        code, out, _ = _run(capsys, "invoke", "GetMobilePublicData", "m1", "--org", "Org2MSP")
        assert code == 0
        assert json.loads(out)["result"] == {"doctype": "MOBILE", "name": "m1", "color": "red", "size": 5}

    def test_private_details_for_creator(self, workdir, capsys):
        _create_m1(capsys)
        code, out, _ = _run(capsys, "invoke", "GetMobilePrivateDetails", "m1", "--org", "Org1MSP")
        assert code == 0
        assert json.loads(out)["result"]["owner"] == "alice"

    def test_verify_commitment(self, workdir, capsys):
        _create_m1(capsys)
        code, out, _ = _run(
            capsys,
            "invoke", "IsMobilePrivateDataExist", "Org1MSP",
            "--org", "Org2MSP",
            "--transient", "mobile_properties=@m1.private.json",
        )
        assert code == 0
        assert json.loads(out)["result"] is True

    def test_not_found_exit_code(self, workdir, capsys):
        code, out, err = _run(capsys, "invoke", "GetMobilePublicData", "ghost", "--org", "Org1MSP")
        assert code == 1
        assert out == ""
        assert _error(err)["error"] == "NOT_FOUND"

    def test_commitment_mismatch_reports_hashes(self, workdir, capsys):
        _create_m1(capsys)
        code, _, err = _run(
            capsys,
            "invoke", "IsMobilePrivateDataExist", "Org1MSP",
            "--org", "Org2MSP",
            "--transient", 'mobile_properties={"name":"m1","owner":"eve","price":100}',
        )
        assert code == 1
        error = _error(err)
        assert error["error"] == "COMMITMENT_MISMATCH"
        assert error["expected_hash"] == hashlib.sha256(PRIVATE_M1).hexdigest()
        assert "eve" not in err

    def test_explicit_state_file(self, workdir, capsys):
        state = workdir / "other" / "state.json"
        code, _, _ = _run(
            capsys,
            "--state", str(state),
            "invoke", "CreateMobile", PUBLIC_M1,
            "--org", "Org1MSP",
            "--transient", "mobile_properties=@m1.private.json",
        )
        assert code == 0
        assert state.is_file()
        assert not (workdir / ".pdc").exists()

    def test_tx_id_in_output(self, workdir, capsys):
        _, out, _ = _create_m1(capsys)
        assert len(json.loads(out)["tx_id"]) == 32

    def test_unknown_function_rejected_by_parser(self, workdir, capsys):
        with pytest.raises(SystemExit):
            main(["invoke", "TransferMobile", "m1", "--org", "Org1MSP"])


class TestUtilityCommands:

    def test_key(self, workdir, capsys):
        code, out, _ = _run(capsys, "key", "m1", "--private")
        assert code == 0
        assert json.loads(out) == {
            "name": "m1",
            "doctype": "MOBILE_PRIVATE",
            "key": "\\x00name~doctype\\x00m1\\x00MOBILE_PRIVATE\\x00",
        }

    def test_partition(self, workdir, capsys):
        code, out, _ = _run(capsys, "partition", "Org1MSP")
        assert code == 0
        assert json.loads(out)["partition"] == "_implicit_org_Org1MSP"

    def test_hash(self, workdir, capsys):
        code, out, _ = _run(capsys, "hash", "m1.private.json")
        assert code == 0
        assert json.loads(out) == {"sha256": hashlib.sha256(PRIVATE_M1).hexdigest(), "bytes": len(PRIVATE_M1)}

    def test_hash_missing_file(self, workdir, capsys):
        code, _, err = _run(capsys, "hash", "absent.json")
        assert code == 2
        assert err.startswith("Error: file not found")

    def test_config_get_from_file(self, workdir, capsys):
        (workdir / "custom.yaml").write_text("contract:\n  partition_prefix: _org_\n", encoding="utf-8")
        code, out, _ = _run(capsys, "--config", "custom.yaml", "config", "get", "contract.partition_prefix")
        assert code == 0
        assert json.loads(out) == {"contract.partition_prefix": "_org_"}

    def test_config_show_yaml(self, workdir, capsys):
        code, out, _ = _run(capsys, "--format", "yaml", "config", "show")
        assert code == 0
        assert "sentinel_compat: true" in out

    def test_config_set_writes_file(self, workdir, capsys):
        code, out, _ = _run(capsys, "config", "set", "ledger.atomic_transactions", "false")
        assert code == 0
        assert json.loads(out)["ledger.atomic_transactions"] is False
        assert "atomic_transactions: false" in (workdir / "pdc.yaml").read_text(encoding="utf-8")

        code, out, _ = _run(capsys, "config", "get", "ledger.atomic_transactions")
        assert json.loads(out) == {"ledger.atomic_transactions": False}

    def test_config_set_rejects_invalid_value(self, workdir, capsys):
        code, _, err = _run(capsys, "config", "set", "observability.log_level", "loud")
        assert code == 2
        assert "Invalid value" in err
        assert not (workdir / "pdc.yaml").exists()

    def test_invalid_environment_value(self, workdir, capsys, monkeypatch):
        monkeypatch.setenv("PDC_LOG_LEVEL", "verbose")
        code, out, err = _run(capsys, "partition", "Org1MSP")
        assert code == 2
        assert out == ""
        assert err.startswith("Error: Invalid value for PDC_LOG_LEVEL")

    def test_wrong_type_in_config_file(self, workdir, capsys):
        (workdir / "custom.yaml").write_text("contract:\n  partition_prefix: 5\n", encoding="utf-8")
        code, _, err = _run(capsys, "--config", "custom.yaml", "partition", "Org1MSP")
        assert code == 2
        assert "expected str, got int" in err

    def test_missing_config_file(self, workdir, capsys):
        code, _, err = _run(capsys, "--config", "absent.yaml", "config", "show")
        assert code == 2
        assert "not found" in err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        code, out, _ = _run(capsys)
        assert code == 0
        assert "usage: pdc" in out


class TestHelpers:

    def test_parse_transient_inline_and_file(self, tmp_path):
        payload = tmp_path / "p.json"
        payload.write_bytes(b'{"a":1}')
        parsed = parse_transient(["x=plain", f"y=@{payload}"])
        assert parsed == {"x": b"plain", "y": b'{"a":1}'}

    def test_parse_transient_keeps_equals_in_value(self):
        assert parse_transient(["x=a=b"]) == {"x": b"a=b"}

    @pytest.mark.parametrize("item", ["novalue", "=v"])
    def test_parse_transient_rejects_malformed(self, item):
        with pytest.raises(CLIError):
            parse_transient([item])

    def test_format_text(self):
        assert format_output({"a": 1, "b": "x"}, OutputFormat.TEXT) == "a: 1\nb: x"
