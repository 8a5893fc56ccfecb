from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from pricewatch.db.repository import PriceRepository
from pricewatch.db.session import enable_sqlite_foreign_keys
from pricewatch.db.tables import metadata
from pricewatch.ingest.models import CompetitorDraft
from pricewatch.ingest.settings import ScrapeSettings
from pricewatch.utils.dates import utcnow


@pytest.fixture()
def engine():
    # executor threads must see the same in-memory database
    engine = create_engine(
        "sqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def repository(engine):
    return PriceRepository(engine)


@pytest.fixture()
def settings():
    return ScrapeSettings.immediate()


@pytest.fixture()
def seeded_repository(repository):
    repository.create_competitor(
        CompetitorDraft(
            name="Cost Plus Drugs",
            url="https://costplusdrugs.com/medications/sildenafil",
            selector=".price",
            product="ED Medication",
        )
    )
    repository.create_competitor(
        CompetitorDraft(
            name="RxSaver",
            url="https://www.rxsaver.com/drugs/sildenafil",
            selector=".drug-price-value",
            product="ED Medication",
            alert_threshold=15.0,
        )
    )
    repository.set_our_price("ED Medication", 9.99)
    repository.set_our_price("Hair Loss Treatment", 12.00)
    return repository


@pytest.fixture()
def priced_repository(seeded_repository):
    """Seeded competitors with one day-old observation each."""
    yesterday = utcnow() - timedelta(days=1)
    seeded_repository.insert_price_observation(1, "ED Medication", 7.20, yesterday)
    seeded_repository.insert_price_observation(2, "ED Medication", 11.50, yesterday)
    return seeded_repository
