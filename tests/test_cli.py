import json

from lvnet.cli import main


def _write(tmp_path, data, name="case.json"):
    p = tmp_path / name
    p.write_text(json.dumps(data))
    return str(p)


def test_run_writes_results(tmp_path, case_dict, capsys):
    out = tmp_path / "out.json"

    rc = main(["--input", _write(tmp_path, case_dict), "--output", str(out)])

    results = json.loads(out.read_text())
    assert set(results) == {"network", "baseline", "compensators", "placement", "screening"}
    (comp,) = results["compensators"]
    assert comp["compensator_id"] == "EQ1"
    assert comp["applied"] is True
    assert rc == (0 if comp["succeeded"] else 1)
    assert results["screening"] is None
    assert "EQ1 @ N2" in capsys.readouterr().out


def test_run_with_screening(tmp_path, case_dict):
    out = tmp_path / "out.json"

    main(["--input", _write(tmp_path, case_dict), "--output", str(out), "--screen"])

    screening = json.loads(out.read_text())["screening"]
    assert screening["compliant"] is True
    assert set(screening["bus"]) == {"SRC", "N1", "N2"}


def test_no_compensator_exits_zero(tmp_path, case_dict):
    case_dict["compensators"] = []

    assert main(["--input", _write(tmp_path, case_dict)]) == 0


def test_disabled_compensator_exits_zero(tmp_path, case_dict):
    case_dict["compensators"][0]["enabled"] = False

    assert main(["--input", _write(tmp_path, case_dict)]) == 0


def test_aborted_compensator_exits_one(tmp_path, case_dict, capsys):
    case_dict["compensators"][0].update({"zph_ohm": 0.05, "zn_ohm": 0.05})

    assert main(["--input", _write(tmp_path, case_dict)]) == 1
    assert "Impedance too low" in capsys.readouterr().err


def test_missing_file_exits_two(tmp_path):
    assert main(["--input", str(tmp_path / "missing.json")]) == 2


def test_invalid_json_exits_two(tmp_path):
    p = tmp_path / "bad.json"
    p.write_text("{not json")

    assert main(["--input", str(p)]) == 2


def test_validation_error_exits_two(tmp_path, case_dict, capsys):
    case_dict["nodes"][0]["is_source"] = False

    assert main(["--input", _write(tmp_path, case_dict)]) == 2
    assert "validation" in capsys.readouterr().err
