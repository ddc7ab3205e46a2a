import pytest

from helpdesk_triage.classifier import ClassifierModel, query_features, train_model
from helpdesk_triage.vocabulary import TrainingExample

LABELS = ("Password Reset", "VPN Issues", "Other")


@pytest.fixture(name="examples")
def fixture_examples():
    return [
        TrainingExample("I forgot my password", "Password Reset"),
        TrainingExample("Please reset password for my account", "Password Reset"),
        TrainingExample("VPN not connecting from home", "VPN Issues"),
        TrainingExample("VPN tunnel keeps dropping", "VPN Issues"),
    ]


def test_training_counts_raw_and_stemmed_documents(examples):
    model = train_model(examples, labels=LABELS)
    assert model.sample_count == 4
    assert model.doc_counts == {"Password Reset": 4, "VPN Issues": 4, "Other": 0}
    assert "connect" in model.term_counts["VPN Issues"]
    assert "connecting" in model.term_counts["VPN Issues"]


def test_query_features_include_stems():
    assert query_features("VPN connecting") == ["vpn", "connecting", "vpn", "connect"]


def test_predict_ranks_matching_category_first(examples):
    model = train_model(examples, labels=LABELS)
    predictions = model.predict("my vpn is dropping")
    assert predictions[0].label == "VPN Issues"
    assert sum(p.probability for p in predictions) == pytest.approx(1.0)
    assert {p.label for p in predictions} == set(LABELS)
    other = next(p for p in predictions if p.label == "Other")
    assert other.probability == 0.0


def test_predict_is_uniform_when_nothing_is_known(examples):
    model = train_model(examples, labels=LABELS)
    for text in ("zebra quantum", "", None):
        predictions = model.predict(text)
        assert [p.label for p in predictions] == list(LABELS)
        assert all(p.probability == pytest.approx(1 / 3) for p in predictions)


def test_training_is_deterministic(examples):
    first = train_model(examples, labels=LABELS)
    second = train_model(list(examples), labels=LABELS)
    assert first.to_dict() == second.to_dict()
    assert first.predict("reset vpn password") == second.predict("reset vpn password")


def test_model_round_trips_through_dict(examples):
    model = train_model(examples, labels=LABELS)
    restored = ClassifierModel.from_dict(model.to_dict())
    assert restored.predict("forgot password") == model.predict("forgot password")
    assert restored.vocabulary_size == model.vocabulary_size


def test_from_dict_rejects_unknown_labels(examples):
    payload = train_model(examples, labels=LABELS).to_dict()
    payload["labels"] = ["Password Reset", "Other"]
    with pytest.raises(ValueError):
        ClassifierModel.from_dict(payload)


def test_unknown_training_category_raises(examples):
    with pytest.raises(ValueError):
        train_model(examples + [TrainingExample("printer jam", "Printers")], labels=LABELS)


def test_training_without_usable_examples_raises():
    with pytest.raises(ValueError):
        train_model([TrainingExample("!!!", "VPN Issues")], labels=LABELS)
