import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from helpdesk_triage.articles import load_articles  # noqa: E402
from helpdesk_triage.engine import initialize  # noqa: E402
from helpdesk_triage.vocabulary import load_vocabulary  # noqa: E402


@pytest.fixture(name="vocabulary", scope="session")
def fixture_vocabulary():
    return load_vocabulary()


@pytest.fixture(name="engine")
def fixture_engine(vocabulary):
    return initialize({}, vocabulary=vocabulary)


@pytest.fixture(name="articles", scope="session")
def fixture_articles():
    return load_articles()
