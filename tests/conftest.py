"""Test configuration utilities and shared fixtures."""

import sys
from pathlib import Path

# Ensure the ``src`` directory is importable when tests are executed without an
# editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import pytest  # noqa: E402
from flask import Flask  # noqa: E402
from flask.testing import FlaskClient  # noqa: E402

from naijatax.backend.app import create_app  # noqa: E402
from naijatax.backend.config.rate_table import RateTable, load_base_rates  # noqa: E402
from naijatax.backend.rules import EngineSettings, TaxRuleEngine, build_engine  # noqa: E402

THREE_BANDS = [
    {"label": "First", "lowerBound": 0, "upperBound": 300000, "rate": 0.07},
    {"label": "Second", "lowerBound": 300000, "upperBound": 600000, "rate": 0.11},
    {"label": "Top", "lowerBound": 600000, "upperBound": None, "rate": 0.15},
]


@pytest.fixture()
def base_rates() -> RateTable:
    return load_base_rates()


@pytest.fixture()
def three_band_rates(base_rates: RateTable) -> RateTable:
    """Base table with the three-band PIT scale used in worked examples."""

    document = base_rates.as_document()
    document["pitBands"] = [dict(band) for band in THREE_BANDS]
    return RateTable.model_validate(document)


@pytest.fixture()
def engine() -> TaxRuleEngine:
    """Return an engine with no remote authority configured."""

    return build_engine(EngineSettings())


@pytest.fixture()
def app(engine: TaxRuleEngine) -> Flask:
    """Return a configured Flask application for integration tests."""

    application = create_app(engine)
    application.config.update(TESTING=True)
    return application


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Provide a test client bound to the configured Flask app."""

    return app.test_client()
