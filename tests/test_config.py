import logging
from pathlib import Path

import pytest

from helpdesk_triage.articles import articles_from_payload, load_articles
from helpdesk_triage.config import ConfigError, load_config, resolve_path
from helpdesk_triage.logging_setup import configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_load_config_reads_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("model:\n  snapshot_path: state/model.json\n", encoding="utf-8")
    assert load_config(path) == {"model": {"snapshot_path": "state/model.json"}}


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_load_config_wraps_parse_errors(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("model: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


def test_resolve_path_relative_to_base(tmp_path):
    assert resolve_path("logs/app.log", base=tmp_path) == tmp_path / "logs" / "app.log"
    assert resolve_path(str(tmp_path / "x"), base=Path("/elsewhere")) == tmp_path / "x"
    assert resolve_path(None, base=tmp_path) == tmp_path


def test_configure_logging_writes_file(tmp_path):
    config = {
        "logging": {
            "console": {"enabled": False},
            "file": {"enabled": True, "path": "logs/triage.log", "level": "INFO"},
        }
    }
    configure_logging(config, base_dir=tmp_path)
    logging.getLogger("helpdesk_triage.test").info("hello from the tests")
    for handler in logging.getLogger().handlers:
        handler.flush()
    log_text = (tmp_path / "logs" / "triage.log").read_text(encoding="utf-8")
    assert "hello from the tests" in log_text


def test_configure_logging_console_only_by_default(tmp_path):
    configure_logging({}, base_dir=tmp_path)
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert not (tmp_path / "logs").exists()


def test_configure_logging_rich_console(tmp_path):
    from rich.logging import RichHandler

    configure_logging({"logging": {"console": {"rich_format": True}}}, base_dir=tmp_path)
    assert isinstance(logging.getLogger().handlers[0], RichHandler)


def test_bundled_articles_load():
    articles = load_articles()
    assert [article.id for article in articles] == [f"kb-00{index}" for index in range(1, 7)]
    assert sum(1 for article in articles if article.category == "Hardware Issues") == 2


def test_articles_from_json_file(tmp_path):
    path = tmp_path / "articles.json"
    path.write_text('[{"_id": "x1", "title": "VPN help", "category": "VPN Issues"}]', encoding="utf-8")
    articles = load_articles(path)
    assert articles[0].id == "x1"


def test_articles_payload_validation():
    assert articles_from_payload({"articles": [{"title": "", "category": "Other"}]}) == []
    with pytest.raises(ValueError):
        articles_from_payload({"items": []})
    with pytest.raises(ValueError):
        articles_from_payload(["not a mapping"])
