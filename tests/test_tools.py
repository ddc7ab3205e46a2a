import json
import sys
from importlib import util
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]

from helpdesk_triage.errors import ModelUnavailableError


def _load_tool(name):
    module_path = PROJECT_ROOT / "tools" / f"{name}.py"
    spec = util.spec_from_file_location(f"helpdesk_tools.{name}", module_path)
    assert spec and spec.loader
    module = util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


classify_tool = _load_tool("classify_text")
search_tool = _load_tool("search_articles")
retrain_tool = _load_tool("retrain_model")
evaluate_tool = _load_tool("evaluate_classifier")

QUIET_CONFIG = {"logging": {"console": {"enabled": False}, "file": {"enabled": False}}}


@pytest.fixture(autouse=True)
def quiet_tools(monkeypatch: pytest.MonkeyPatch):
    for tool in (classify_tool, search_tool, retrain_tool, evaluate_tool):
        monkeypatch.setattr(tool, "load_config", lambda path=None: dict(QUIET_CONFIG))
        monkeypatch.setattr(tool, "configure_logging", lambda *args, **kwargs: None)


def test_classify_tool_prints_table(capsys):
    classify_tool.main(["I forgot my password and cannot login", "laptop not booting"])

    output = capsys.readouterr().out.strip().splitlines()
    assert output[0].split() == ["Text", "Category", "Priority", "Confidence", "Team", "Method"]
    assert set(output[1].replace("-", "")) == {" "}
    assert "Password Reset" in output[2] and "IT Support" in output[2]
    assert "Hardware Issues" in output[3] and "keyword-strong" in output[3]


def test_classify_tool_json_and_input_file(tmp_path, capsys):
    input_path = tmp_path / "tickets.txt"
    input_path.write_text("Emails not syncing\n\nVPN connection timeout error\n", encoding="utf-8")

    classify_tool.main(["--json", "--input", str(input_path)])

    payload = json.loads(capsys.readouterr().out)
    assert [item["category"] for item in payload] == ["Email Issues", "VPN Issues"]
    assert payload[0]["text"] == "Emails not syncing"
    assert "assignedTeam" in payload[0]


def test_classify_tool_requires_text():
    with pytest.raises(SystemExit) as excinfo:
        classify_tool.main([])
    assert excinfo.value.code == 2


def test_classify_tool_exits_when_model_unavailable(monkeypatch: pytest.MonkeyPatch):
    def _fail(*args, **kwargs):
        raise ModelUnavailableError("no vocabulary")

    monkeypatch.setattr(classify_tool, "initialize", _fail)
    with pytest.raises(SystemExit) as excinfo:
        classify_tool.main(["vpn down"])
    assert excinfo.value.code == 1


def test_search_tool_lists_articles(capsys):
    search_tool.main(["laptop not booting"])

    output = capsys.readouterr().out.strip().splitlines()
    assert output[0].startswith("Suggested category: Hardware Issues")
    assert "Laptop Not Starting or Booting" in output[3]


def test_search_tool_json(tmp_path, capsys):
    articles_path = tmp_path / "articles.json"
    articles_path.write_text(
        json.dumps([{"id": "a1", "title": "Outlook sync fixes", "category": "Email Issues",
                     "keywords": ["outlook", "sync"], "problem": "Emails not syncing"}]),
        encoding="utf-8",
    )
    search_tool.main(["--json", "--articles", str(articles_path), "emails not syncing"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["suggestedCategory"] == "Email Issues"
    assert payload["results"][0]["id"] == "a1"


def test_retrain_tool_appends_examples(tmp_path, monkeypatch: pytest.MonkeyPatch, capsys):
    config = dict(QUIET_CONFIG, model={"snapshot_path": str(tmp_path / "model.json")})
    monkeypatch.setattr(retrain_tool, "load_config", lambda path=None: config)
    examples = tmp_path / "examples.csv"
    examples.write_text(
        "text,category\nzyxel widget frobnicates,Network Issues\nbadge reader,Facilities\n",
        encoding="utf-8",
    )

    retrain_tool.main([str(examples)])

    lines = capsys.readouterr().out.strip().splitlines()
    before = int(lines[0].split(":")[1])
    after = int(lines[1].split(":")[1])
    assert after == before + 1
    assert (tmp_path / "model.json").exists()


def test_evaluate_tool_prints_summary_and_report(tmp_path, capsys):
    evaluate_tool.main(["--report-dir", str(tmp_path)])

    output = capsys.readouterr().out.strip().splitlines()
    assert output[0].split()[-1] == "10"
    assert any(line.startswith("Accuracy") for line in output)
    assert output[-1].startswith("Overall status")
    reports = list(tmp_path.glob("classification_report_*.csv"))
    assert len(reports) == 1


def test_retrain_tool_skips_malformed_yaml_entries(tmp_path, capsys):
    examples = tmp_path / "examples.yaml"
    examples.write_text(
        "- just a string\n"
        "- null\n"
        "- {text: null, category: VPN Issues}\n"
        "- {text: zyxel widget frobnicates, category: Network Issues}\n",
        encoding="utf-8",
    )

    retrain_tool.main([str(examples)])

    lines = capsys.readouterr().out.strip().splitlines()
    assert int(lines[1].split(":")[1]) == int(lines[0].split(":")[1]) + 1
