import pytest

from helpdesk_triage.vocabulary import build_vocabulary


def _minimal_config(**overrides):
    config = {
        "labels": ["Password Reset", "VPN Issues", "Other"],
        "fallback_label": "Other",
        "teams": {"Password Reset": "IT Support", "VPN Issues": "Network Team"},
        "categories": {
            "Password Reset": {
                "phrases": ["Can't Login"],
                "strong": ["password", "Password"],
                "examples": ["forgot my password", "  "],
            },
            "VPN Issues": {"strong": ["vpn"], "examples": ["vpn is down"]},
        },
        "priorities": {"urgent": {"strong": ["urgent"]}},
    }
    config.update(overrides)
    return config


def test_bundled_vocabulary_covers_every_category(vocabulary):
    assert vocabulary.labels == (
        "Password Reset",
        "VPN Issues",
        "Software Installation",
        "Hardware Issues",
        "Network Issues",
        "Email Issues",
        "Other",
    )
    assert vocabulary.fallback_label == "Other"
    assert "Other" not in vocabulary.trainable_labels
    trained = {example.category for example in vocabulary.examples}
    assert trained == set(vocabulary.trainable_labels)
    assert [tier.label for tier in vocabulary.priority_tiers] == ["urgent", "high", "medium", "low"]


def test_team_lookup(vocabulary):
    assert vocabulary.team_for("VPN Issues") == "Network Team"
    assert vocabulary.team_for("Hardware Issues") == "Hardware Team"
    assert vocabulary.team_for("Email Issues") == "IT Support"
    assert vocabulary.team_for("Other") == "Support"
    assert vocabulary.team_for("Facilities") == "Support"


def test_terms_are_normalised_and_deduplicated():
    vocabulary = build_vocabulary(_minimal_config())
    tiers = vocabulary.keyword_tiers["Password Reset"]
    assert tiers.phrases == ("cant login",)
    assert tiers.strong == ("password",)
    assert len(vocabulary.examples) == 2


@pytest.mark.parametrize(
    "overrides",
    [
        {"categories": {"Printers": {"strong": ["printer"]}}},
        {"categories": {"Other": {"strong": ["misc"]}}},
        {"labels": ["VPN Issues", "VPN Issues", "Other"]},
        {"fallback_label": "General"},
        {"priorities": {"blocker": {"strong": ["now"]}}},
        {"default_priority": "whenever"},
        {"categories": {}},
    ],
)
def test_invalid_vocabulary_raises(overrides):
    with pytest.raises(ValueError):
        build_vocabulary(_minimal_config(**overrides))


def test_term_lists_must_be_lists():
    config = _minimal_config()
    config["categories"]["VPN Issues"]["strong"] = "vpn"
    with pytest.raises(ValueError):
        build_vocabulary(config)


def test_empty_vocabulary_raises():
    with pytest.raises(ValueError):
        build_vocabulary({})
