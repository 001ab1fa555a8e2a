"""Composition root - builds and owns every service for one application lifetime."""

from dataclasses import dataclass

from trivial_drive.config import Config
from trivial_drive.logging_config import get_logger
from trivial_drive.repositories.game_state_store import GameStateStore
from trivial_drive.repositories.product_repository import ProductRepository
from trivial_drive.repositories.purchase_store import PurchaseStore
from trivial_drive.services.billing_source import LocalBillingSource
from trivial_drive.services.entitlement_aggregator import EntitlementAggregator
from trivial_drive.services.message_channel import MessageChannel
from trivial_drive.services.purchase_view_model import PurchaseViewModel

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """All services of a running application, wired together."""

    config: Config
    product_repository: ProductRepository
    purchase_store: PurchaseStore
    billing_source: LocalBillingSource
    game_state_store: GameStateStore
    message_channel: MessageChannel
    aggregator: EntitlementAggregator
    view_model: PurchaseViewModel

    @classmethod
    def build(cls, config: Config) -> "ServiceContainer":
        """Wire the services from configuration. Nothing is started yet."""
        product_repository = ProductRepository(config)
        purchase_store = PurchaseStore()
        billing_source = LocalBillingSource(
            product_repository=product_repository,
            purchase_store=purchase_store,
            settings=config.billing_settings,
        )
        game_state_store = GameStateStore(settings=config.game_settings)
        message_channel = MessageChannel()
        aggregator = EntitlementAggregator(
            billing_source=billing_source,
            game_state_store=game_state_store,
            message_channel=message_channel,
            messages=config.messages,
            game_settings=config.game_settings,
            deduplicate_purchases=config.billing_settings.deduplicate_purchases,
            deduplication_window=config.billing_settings.deduplication_window,
        )
        return cls(
            config=config,
            product_repository=product_repository,
            purchase_store=purchase_store,
            billing_source=billing_source,
            game_state_store=game_state_store,
            message_channel=message_channel,
            aggregator=aggregator,
            view_model=PurchaseViewModel(aggregator),
        )

    async def start(self) -> None:
        await self.aggregator.start()
        logger.info(
            "services_started",
            products=len(self.product_repository),
            state_path=str(self.game_state_store.state_path) if self.game_state_store.state_path else None,
        )

    async def shutdown(self) -> None:
        await self.aggregator.shutdown()
        self.billing_source.shutdown()
        self.message_channel.close()
        logger.info("services_stopped")
