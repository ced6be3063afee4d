"""Tests for proportional feed rebalancing on head-count changes."""

import asyncio
import logging
from decimal import Decimal

import pytest

from app.services.inventory_rebalancer import (
    InventoryRebalanceError,
    parse_quantity,
    rebalance_feeds,
    scale_quantity,
    update_livestock_with_rebalance,
)


def _setup(storage, count=10, quantities=("50.00",)):
    async def build():
        herd = await storage.create_livestock("user-1", {"type": "Коровы", "count": count, "status": "active"})
        feeds = [
            await storage.create_feed(herd["id"], {"name": f"Корм {i}", "quantity": Decimal(q), "unit": "кг"})
            for i, q in enumerate(quantities)
        ]
        return herd, feeds
    return asyncio.run(build())


def _quantity(storage, feed_id):
    return storage.collections["feeds"][feed_id]["quantity"]


class TestQuantityHelpers:
    """Parsing and scaling of stored quantities."""

    @pytest.mark.parametrize("raw", ["abc", "-3", "NaN", "Infinity", None, ""])
    def test_invalid_quantities(self, raw):
        """Unreadable, negative and non-finite values are rejected."""
        assert parse_quantity(raw) is None

    def test_scale_half_up(self):
        """Scaled values round half-up to two places."""
        assert scale_quantity(Decimal("12.35"), 10, 5) == "6.18"
        assert scale_quantity(Decimal("10"), 3, 2) == "6.67"

    def test_scale_to_zero(self):
        """An emptied group zeroes the feed."""
        assert scale_quantity(Decimal("50.00"), 10, 0) == "0"


class TestRebalanceFeeds:
    """Feed scaling for a single livestock group."""

    def test_halving_the_herd(self, storage):
        """10 -> 5 head halves each feed."""
        herd, feeds = _setup(storage, quantities=("50.00", "12.35"))
        result = asyncio.run(rebalance_feeds(storage, herd["id"], 10, 5))

        assert _quantity(storage, feeds[0]["id"]) == "25.00"
        assert _quantity(storage, feeds[1]["id"]) == "6.18"
        assert len(result.updated) == 2
        assert result.errors == [] and result.corrected == []

    def test_emptied_herd(self, storage):
        """Dropping to zero head sets every feed to "0"."""
        herd, feeds = _setup(storage, quantities=("50.00", "7.00"))
        asyncio.run(rebalance_feeds(storage, herd["id"], 10, 0))
        assert [_quantity(storage, f["id"]) for f in feeds] == ["0", "0"]

    @pytest.mark.parametrize("new_count", [10, 15])
    def test_no_decrease_reads_nothing(self, storage, new_count):
        """Equal or larger counts never load feeds."""
        herd, feeds = _setup(storage)
        result = asyncio.run(rebalance_feeds(storage, herd["id"], 10, new_count))

        assert "list_feeds" not in storage.calls
        assert _quantity(storage, feeds[0]["id"]) == "50.00"
        assert result.updated == []

    def test_corrupt_quantity_is_zeroed(self, storage, caplog):
        """A corrupt record is forced to "0" and the rest are still scaled."""
        herd, feeds = _setup(storage, quantities=("50.00", "10.00"))
        storage.collections["feeds"][feeds[0]["id"]]["quantity"] = "много"

        with caplog.at_level(logging.WARNING):
            result = asyncio.run(rebalance_feeds(storage, herd["id"], 10, 5))

        assert _quantity(storage, feeds[0]["id"]) == "0"
        assert _quantity(storage, feeds[1]["id"]) == "5.00"
        assert result.corrected == [feeds[0]["id"]]
        assert result.errors == []
        assert "Invalid feed quantity" in caplog.text

    def test_write_returning_nothing_is_an_error(self, storage):
        """A feed that vanished mid-update counts as a failed write."""
        herd, feeds = _setup(storage)
        storage.vanished_feed_ids.add(feeds[0]["id"])
        result = asyncio.run(rebalance_feeds(storage, herd["id"], 10, 5))
        assert result.errors == [f"Failed to update feed {feeds[0]['id']}"]


class TestUpdateLivestockWithRebalance:
    """Livestock update with compensating rollback."""

    def test_success(self, storage):
        """A decrease updates the herd and scales feeds."""
        herd, feeds = _setup(storage)
        updated = asyncio.run(update_livestock_with_rebalance(storage, herd, {"count": 5}))

        assert updated["count"] == 5
        assert _quantity(storage, feeds[0]["id"]) == "25.00"

    def test_increase_leaves_feeds(self, storage):
        """An increase only updates the herd."""
        herd, feeds = _setup(storage)
        updated = asyncio.run(update_livestock_with_rebalance(storage, herd, {"count": 20, "status": "sold"}))

        assert updated["count"] == 20
        assert updated["status"] == "sold"
        assert "list_feeds" not in storage.calls
        assert _quantity(storage, feeds[0]["id"]) == "50.00"

    def test_missing_livestock_touches_no_feeds(self, storage):
        """A record deleted before the update returns None and leaves feeds alone."""
        herd, feeds = _setup(storage)
        storage.collections["livestock"].pop(herd["id"])

        assert asyncio.run(update_livestock_with_rebalance(storage, herd, {"count": 5})) is None
        assert "list_feeds" not in storage.calls
        assert "update_feed" not in storage.calls
        assert _quantity(storage, feeds[0]["id"]) == "50.00"

    def test_failed_feed_write_rolls_back(self, storage):
        """A failed feed write restores the old count and reports the feed."""
        herd, feeds = _setup(storage, quantities=("50.00", "20.00"))
        storage.failing_feed_ids.add(feeds[1]["id"])

        with pytest.raises(InventoryRebalanceError) as exc_info:
            asyncio.run(update_livestock_with_rebalance(storage, herd, {"count": 5}))

        assert exc_info.value.errors == [f"Failed to update feed {feeds[1]['id']}"]
        assert exc_info.value.rolled_back is True
        assert storage.collections["livestock"][herd["id"]]["count"] == 10

    def test_failed_feed_load_rolls_back(self, storage):
        """Failing to load feeds also restores the old count."""
        herd, _ = _setup(storage)
        storage.fail_list_feeds = True

        with pytest.raises(InventoryRebalanceError) as exc_info:
            asyncio.run(update_livestock_with_rebalance(storage, herd, {"count": 2}))

        assert exc_info.value.rolled_back is True
        assert "Failed to load feeds" in exc_info.value.errors[0]
        assert storage.collections["livestock"][herd["id"]]["count"] == 10

    def test_failed_rollback_is_critical(self, storage, caplog):
        """A failed compensating write is logged as critical and reported."""
        herd, feeds = _setup(storage)
        storage.failing_feed_ids.add(feeds[0]["id"])
        storage.fail_livestock_update_on_call = 2

        with caplog.at_level(logging.CRITICAL):
            with pytest.raises(InventoryRebalanceError) as exc_info:
                asyncio.run(update_livestock_with_rebalance(storage, herd, {"count": 5}))

        assert exc_info.value.rolled_back is False
        assert storage.collections["livestock"][herd["id"]]["count"] == 5
        assert any(r.levelno == logging.CRITICAL for r in caplog.records)
