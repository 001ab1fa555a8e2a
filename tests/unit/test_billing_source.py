"""Tests for the local billing source."""

import asyncio

import pytest

from trivial_drive.models import BillingConfig, PurchaseState
from trivial_drive.repositories.product_repository import ProductNotFoundError
from trivial_drive.services.billing_source import LocalBillingSource


async def next_event(subscription, timeout=1.0):
    return await asyncio.wait_for(subscription.__anext__(), timeout)


class TestObservables:
    """Test per-SKU observables."""

    def test_nothing_owned_initially(self, billing_source):
        """Test that a fresh source owns nothing and can buy everything."""
        for sku in ("gas", "premium", "infinite_gas_monthly", "infinite_gas_yearly"):
            assert billing_source.is_purchased(sku).value is False
            assert billing_source.can_purchase(sku).value is True

    def test_sku_details(self, billing_source):
        """Test title, price and description."""
        assert billing_source.get_sku_price("premium").value == "$2.99"
        assert billing_source.get_sku_title("gas").value
        assert billing_source.get_sku_description("infinite_gas_yearly").value

    def test_unknown_sku_raises(self, billing_source):
        """Test that SKUs outside the catalog are rejected."""
        with pytest.raises(ProductNotFoundError):
            billing_source.is_purchased("mystery_box")
        with pytest.raises(ProductNotFoundError):
            billing_source.get_sku_title("mystery_box")


class TestBillingFlow:
    """Test launching, completing and cancelling flows."""

    @pytest.mark.asyncio
    async def test_launch_creates_pending_purchase(self, billing_source, purchase_store):
        """Test that launching records a pending purchase."""
        assert await billing_source.launch_billing_flow("screen", "premium") is True

        pending = billing_source.pending_purchase
        assert pending is not None
        assert pending.purchase_state == PurchaseState.PENDING
        assert pending.token.startswith("trivialdrive_purchase_")
        assert pending.order_id.startswith("GPA.")
        assert purchase_store.count() == 1
        assert purchase_store.get_active_by_product_id("premium") == []
        assert billing_source.billing_flow_in_process().value is True

    @pytest.mark.asyncio
    async def test_complete_grants_entitlement(self, billing_source):
        """Test that completing the flow grants the SKU and emits an event."""
        async with billing_source.new_purchases() as events:
            await billing_source.launch_billing_flow(None, "premium")
            purchase = await billing_source.complete_pending_purchase()

            event = await next_event(events)

        assert event.product_id == "premium"
        assert event.purchase_token == purchase.token
        assert purchase.purchase_state == PurchaseState.PURCHASED
        assert billing_source.is_purchased("premium").value is True
        assert billing_source.can_purchase("premium").value is False
        assert billing_source.billing_flow_in_process().value is False

    @pytest.mark.asyncio
    async def test_cancel_discards_flow(self, billing_source):
        """Test that a cancelled flow grants nothing."""
        await billing_source.launch_billing_flow(None, "premium")
        purchase = await billing_source.cancel_pending_purchase()

        assert purchase.purchase_state == PurchaseState.CANCELED
        assert billing_source.is_purchased("premium").value is False
        assert billing_source.billing_flow_in_process().value is False

    @pytest.mark.asyncio
    async def test_complete_without_flow(self, billing_source):
        """Test completing and cancelling with nothing pending."""
        assert await billing_source.complete_pending_purchase() is None
        assert await billing_source.cancel_pending_purchase() is None

    @pytest.mark.asyncio
    async def test_one_flow_at_a_time(self, billing_source):
        """Test that a second flow is refused while one is running."""
        assert await billing_source.launch_billing_flow(None, "premium") is True
        assert await billing_source.launch_billing_flow(None, "gas") is False

    @pytest.mark.asyncio
    async def test_owned_sku_refused(self, billing_source):
        """Test that an owned SKU cannot be bought again."""
        await billing_source.launch_billing_flow(None, "premium")
        await billing_source.complete_pending_purchase()
        assert await billing_source.launch_billing_flow(None, "premium") is False

    @pytest.mark.asyncio
    async def test_unknown_sku_refused(self, billing_source):
        """Test that launching for an unknown SKU fails."""
        assert await billing_source.launch_billing_flow(None, "mystery_box") is False
        assert billing_source.billing_flow_in_process().value is False

    @pytest.mark.asyncio
    async def test_upgrade_sku_must_be_subscription(self, billing_source):
        """Test that only subscriptions can be replaced."""
        assert await billing_source.launch_billing_flow(None, "infinite_gas_yearly", "premium") is False

    @pytest.mark.asyncio
    async def test_auto_complete(self, product_repository, purchase_store):
        """Test that flows complete immediately when configured."""
        source = LocalBillingSource(
            product_repository, purchase_store, BillingConfig(auto_complete_purchases=True)
        )
        assert await source.launch_billing_flow(None, "premium") is True
        assert source.is_purchased("premium").value is True
        assert source.billing_flow_in_process().value is False


class TestSubscriptionReplacement:
    """Test upgrades and downgrades between subscription tiers."""

    @pytest.mark.asyncio
    async def test_upgrade_revokes_old_tier(self, billing_source, purchase_store):
        """Test that completing an upgrade cancels the replaced tier."""
        await billing_source.launch_billing_flow(None, "infinite_gas_monthly")
        monthly = await billing_source.complete_pending_purchase()

        await billing_source.launch_billing_flow(None, "infinite_gas_yearly", "infinite_gas_monthly")
        yearly = await billing_source.complete_pending_purchase()

        assert yearly.replaced_product_id == "infinite_gas_monthly"
        assert monthly.purchase_state == PurchaseState.CANCELED
        assert billing_source.is_purchased("infinite_gas_monthly").value is False
        assert billing_source.is_purchased("infinite_gas_yearly").value is True
        assert purchase_store.get_active_by_product_id("infinite_gas_monthly") == []

    @pytest.mark.asyncio
    async def test_replacement_of_unowned_tier_is_ignored(self, billing_source):
        """Test that an upgrade SKU which is not held is not recorded."""
        await billing_source.launch_billing_flow(None, "infinite_gas_yearly", "infinite_gas_monthly")
        purchase = await billing_source.complete_pending_purchase()
        assert purchase.replaced_product_id is None


class TestConsumption:
    """Test consuming in-app purchases."""

    @pytest.mark.asyncio
    async def test_gas_consumed_automatically(self, billing_source):
        """Test that a gas purchase is consumed right after completing."""
        async with billing_source.consumed_purchases() as consumed:
            await billing_source.launch_billing_flow(None, "gas")
            purchase = await billing_source.complete_pending_purchase()

            event = await next_event(consumed)

        assert event.product_id == "gas"
        assert event.purchase_token == purchase.token
        assert billing_source.is_purchased("gas").value is False
        assert billing_source.can_purchase("gas").value is True

    @pytest.mark.asyncio
    async def test_consume_premium(self, billing_source):
        """Test that consuming premium makes it purchasable again."""
        await billing_source.launch_billing_flow(None, "premium")
        await billing_source.complete_pending_purchase()

        async with billing_source.consumed_purchases() as consumed:
            await billing_source.consume_inapp_purchase("premium")
            event = await next_event(consumed)

        assert event.product_id == "premium"
        assert billing_source.is_purchased("premium").value is False

    @pytest.mark.asyncio
    async def test_consume_subscription_refused(self, billing_source):
        """Test that subscriptions cannot be consumed."""
        await billing_source.launch_billing_flow(None, "infinite_gas_monthly")
        await billing_source.complete_pending_purchase()

        await billing_source.consume_inapp_purchase("infinite_gas_monthly")

        assert billing_source.is_purchased("infinite_gas_monthly").value is True

    @pytest.mark.asyncio
    async def test_consume_unowned_is_noop(self, billing_source):
        """Test consuming something that is not owned."""
        async with billing_source.consumed_purchases() as consumed:
            await billing_source.consume_inapp_purchase("premium")
            with pytest.raises(asyncio.TimeoutError):
                await next_event(consumed, timeout=0.05)


class TestMaintenance:
    """Test refresh, reset and shutdown."""

    @pytest.mark.asyncio
    async def test_refresh_reads_store(self, billing_source, purchase_store):
        """Test that refresh re-derives ownership from the store."""
        await billing_source.launch_billing_flow(None, "premium")
        await billing_source.complete_pending_purchase()
        purchase_store.clear()

        await billing_source.refresh_purchases()

        assert billing_source.is_purchased("premium").value is False

    @pytest.mark.asyncio
    async def test_reset(self, billing_source, purchase_store):
        """Test that reset forgets purchases and the running flow."""
        await billing_source.launch_billing_flow(None, "premium")
        await billing_source.complete_pending_purchase()
        await billing_source.launch_billing_flow(None, "infinite_gas_monthly")

        await billing_source.reset()

        assert len(purchase_store) == 0
        assert billing_source.pending_purchase is None
        assert billing_source.billing_flow_in_process().value is False
        assert billing_source.is_purchased("premium").value is False

    @pytest.mark.asyncio
    async def test_shutdown_ends_streams(self, billing_source):
        """Test that shutdown ends every event stream."""
        events = billing_source.new_purchases()
        billing_source.shutdown()
        with pytest.raises(StopAsyncIteration):
            await events.__anext__()
