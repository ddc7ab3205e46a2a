import pytest

from helpdesk_triage.text import (
    dice_coefficient,
    extract_keywords,
    jaro_winkler,
    ngrams,
    normalize,
    stem,
    tokenize,
)


def test_tokenize_lowercases_and_collapses_contractions():
    assert tokenize("Can't connect to VPN!") == ["cant", "connect", "to", "vpn"]
    assert tokenize("Outlook   crashed; error 0x80") == ["outlook", "crashed", "error", "0x80"]


@pytest.mark.parametrize("value", [None, "", 42, ["password"]])
def test_tokenize_rejects_non_text(value):
    assert tokenize(value) == []


def test_normalize_joins_tokens_with_single_spaces():
    assert normalize("  Wi-Fi   NOT working ") == "wi fi not working"


def test_stem_reduces_inflections():
    assert stem("booting") == "boot"
    assert stem("connecting") == stem("connection") == "connect"
    assert stem("") == ""


def test_extract_keywords_skips_stop_words_and_short_tokens():
    assert extract_keywords("The printer is not printing my documents") == [
        "printer",
        "not",
        "printing",
        "documents",
    ]
    assert extract_keywords("vpn vpn VPN down") == ["vpn", "down"]
    assert extract_keywords(None) == []


def test_extract_keywords_honours_limit():
    text = "alpha bravo charlie delta echo foxtrot"
    assert extract_keywords(text, limit=3) == ["alpha", "bravo", "charlie"]


def test_ngrams_windows():
    assert ngrams(["reset", "my", "password"], 2) == ["reset my", "my password"]
    assert ngrams(["reset", "my", "password"], 3) == ["reset my password"]
    assert ngrams(["reset"], 2) == []


def test_dice_coefficient_bounds():
    assert dice_coefficient("Printer", "printer") == 1.0
    assert dice_coefficient("", "printer") == 0.0
    assert dice_coefficient("night", "nacht") == pytest.approx(0.25)
    assert 0.7 < dice_coefficient("vpn conection failed", "vpn connection failed") < 1.0


def test_jaro_winkler_similarity():
    assert jaro_winkler("VPN Issues", "vpn issues") == pytest.approx(1.0)
    assert jaro_winkler("", "vpn") == 0.0
    assert jaro_winkler("laptop not booting", "laptop not starting") > jaro_winkler(
        "laptop not booting", "reset your password"
    )
