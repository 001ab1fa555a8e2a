"""Shared fixtures: configuration and freshly wired services for each test."""

from pathlib import Path

import pytest
import pytest_asyncio

from trivial_drive.config import Config
from trivial_drive.models import GameConfig
from trivial_drive.repositories.game_state_store import GameStateStore
from trivial_drive.repositories.product_repository import ProductRepository
from trivial_drive.repositories.purchase_store import PurchaseStore
from trivial_drive.services.billing_source import LocalBillingSource
from trivial_drive.services.entitlement_aggregator import EntitlementAggregator
from trivial_drive.services.message_channel import MessageChannel

CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "products.yaml"


@pytest.fixture
def config():
    """Configuration loaded from the repository's products.yaml."""
    return Config(str(CONFIG_PATH))


@pytest.fixture
def product_repository(config):
    return ProductRepository(config)


@pytest.fixture
def purchase_store():
    return PurchaseStore()


@pytest.fixture
def billing_source(product_repository, purchase_store, config):
    """Local billing source; flows stay pending until completed explicitly."""
    return LocalBillingSource(
        product_repository=product_repository,
        purchase_store=purchase_store,
        settings=config.billing_settings,
    )


@pytest.fixture
def game_state_store():
    """In-memory store starting with a full tank."""
    return GameStateStore(GameConfig(initial_gas_level=4))


@pytest.fixture
def message_channel():
    return MessageChannel()


@pytest_asyncio.fixture
async def aggregator(billing_source, game_state_store, message_channel, config):
    """Started aggregator, shut down after the test."""
    instance = EntitlementAggregator(
        billing_source=billing_source,
        game_state_store=game_state_store,
        message_channel=message_channel,
        messages=config.messages,
        game_settings=config.game_settings,
    )
    await instance.start()
    yield instance
    await instance.shutdown()
