import csv

import pytest

from helpdesk_triage.decision import ClassificationResult
from helpdesk_triage.evaluation import (
    load_labelled_queries,
    overall_status,
    render_summary,
    summarize,
)
from helpdesk_triage.reporting import ClassificationReportWriter


def _result(category, confidence, method):
    return ClassificationResult(
        category=category,
        priority="medium",
        confidence=confidence,
        assigned_team="Support",
        method=method,
        keyword_matches=("vpn", "tunnel"),
        top_predictions=(("VPN Issues", 70),),
    )


@pytest.fixture(name="results")
def fixture_results():
    return [
        _result("VPN Issues", 90, "keyword-strong"),
        _result("Email Issues", 60, "ml"),
        _result("Other", 48, "fallback"),
        _result("VPN Issues", 80, "keyword-strong"),
    ]


def test_summarize_counts_confidence_bands(results):
    summary = summarize(results)
    assert summary.total == 4
    assert summary.average_confidence == 69.5
    assert (summary.high_confidence, summary.medium_confidence, summary.low_confidence) == (2, 1, 1)
    assert summary.fallback_count == 1
    assert summary.method_counts == {"keyword-strong": 2, "fallback": 1, "ml": 1}
    assert summary.accuracy is None
    assert summary.status == "GOOD"


def test_summarize_scores_only_labelled_queries(results):
    summary = summarize(results, ["VPN Issues", "Network Issues", None, ""])
    assert summary.labelled == 2
    assert summary.correct == 1
    assert summary.accuracy == 0.5


def test_summarize_rejects_misaligned_labels(results):
    with pytest.raises(ValueError):
        summarize(results, ["VPN Issues"])


@pytest.mark.parametrize(
    "average, fallbacks, expected",
    [(75, 1, "EXCELLENT"), (75, 3, "GOOD"), (65, 5, "ACCEPTABLE"), (40, 0, "NEEDS IMPROVEMENT")],
)
def test_overall_status(average, fallbacks, expected):
    assert overall_status(average, fallbacks) == expected


def test_render_summary_aligns_columns(results):
    lines = render_summary(summarize(results, ["VPN Issues", "Email Issues", "Other", "VPN Issues"]))
    assert lines[0].split()[-1] == "4"
    assert any(line.startswith("Accuracy") and line.endswith("4/4 (100.0%)") for line in lines)
    assert lines[-1].split()[-1] == "GOOD"


def test_load_labelled_queries(tmp_path):
    path = tmp_path / "queries.csv"
    path.write_text("text,category\nVPN down,VPN Issues\n,Other\nprinter jam,\n", encoding="utf-8")
    queries = load_labelled_queries(path)
    assert [(q.text, q.category) for q in queries] == [("VPN down", "VPN Issues"), ("printer jam", "")]


def test_load_labelled_queries_requires_text_column(tmp_path):
    path = tmp_path / "queries.csv"
    path.write_text("query,category\nVPN down,VPN Issues\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_labelled_queries(path)


def test_report_writer_outputs_one_row_per_query(tmp_path, results):
    writer = ClassificationReportWriter(output_directory=tmp_path / "reports", report_name="run.csv")
    texts = ["vpn broken", "outlook", "???", "tunnel down"]
    path = writer.write_results(texts, results, ["VPN Issues", "VPN Issues", None, "VPN Issues"])

    with path.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert len(rows) == 4
    assert rows[0]["keyword_matches"] == "vpn; tunnel"
    assert rows[0]["top_predictions"] == "VPN Issues 70%"
    assert [row["correct"] for row in rows] == ["yes", "no", "", "yes"]


def test_report_writer_rejects_mismatched_lengths(tmp_path, results):
    writer = ClassificationReportWriter(output_directory=tmp_path, report_name="run.csv")
    with pytest.raises(ValueError):
        writer.write_results(["only one"], results)
