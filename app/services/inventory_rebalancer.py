"""
Keep feed inventories proportional to head count.

When a livestock group shrinks, every feed record attached to it is scaled by
new_count / old_count (or zeroed when the group is emptied). Growth never
touches feeds. The livestock row and the feed rows live in separate documents
with no transaction around them, so a failed feed write is compensated by
writing the old head count back and reporting the per-feed errors.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass
class RebalanceResult:
    updated: List[Dict[str, Any]] = field(default_factory=list)
    # ids of feeds whose stored quantity was unreadable and got forced to "0"
    corrected: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


class InventoryRebalanceError(Exception):
    def __init__(self, errors: List[str], rolled_back: bool):
        self.errors = errors
        self.rolled_back = rolled_back
        state = "rolled back" if rolled_back else "rollback failed"
        super().__init__(f"Failed to adjust feed quantities ({state}): {'; '.join(errors)}")


def parse_quantity(value: Any) -> Optional[Decimal]:
    """Stored quantity as a Decimal, or None if it is missing, malformed, negative or non-finite."""
    try:
        quantity = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not quantity.is_finite() or quantity < 0:
        return None
    return quantity


def scale_quantity(quantity: Decimal, old_count: int, new_count: int) -> str:
    if new_count == 0:
        return "0"
    scaled = quantity * Decimal(new_count) / Decimal(old_count)
    return str(scaled.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


async def rebalance_feeds(storage, livestock_id: str, old_count: int, new_count: int) -> RebalanceResult:
    result = RebalanceResult()
    if new_count >= old_count:
        return result

    feeds = await storage.list_feeds(livestock_id)
    logger.info(f"Rebalancing {len(feeds)} feed(s) for livestock {livestock_id}: {old_count} -> {new_count} head")

    for feed in feeds:
        quantity = parse_quantity(feed.get("quantity"))
        if quantity is None:
            logger.warning(f"Invalid feed quantity for feed {feed['id']}: {feed.get('quantity')!r}, setting to 0")
            new_quantity = "0"
            error = f"Failed to zero invalid feed {feed['id']}"
            result.corrected.append(feed["id"])
        else:
            new_quantity = scale_quantity(quantity, old_count, new_count)
            error = f"Failed to update feed {feed['id']}"

        try:
            updated = await storage.update_feed(feed["id"], {"quantity": new_quantity})
        except Exception as e:
            logger.error(f"{error}: {e}")
            result.errors.append(error)
            continue
        if updated is None:
            logger.error(f"{error}: record disappeared")
            result.errors.append(error)
            continue
        result.updated.append(updated)

    return result


async def update_livestock_with_rebalance(
    storage,
    livestock: Dict[str, Any],
    changes: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Apply `changes` to a livestock record and scale its feeds on a head-count decrease.

    Returns the updated livestock document, or None when the record no longer
    exists (feeds are then left alone). Raises InventoryRebalanceError after
    restoring the old count if any feed could not be adjusted.
    """
    livestock_id = livestock["id"]
    old_count = livestock["count"]
    new_count = changes.get("count", old_count)

    updated = await storage.update_livestock(livestock_id, changes)
    if updated is None:
        # deleted in the meantime; its feeds went with it
        return None
    if new_count >= old_count:
        return updated

    try:
        result = await rebalance_feeds(storage, livestock_id, old_count, new_count)
        errors = result.errors
    except Exception as e:
        logger.error(f"Error adjusting feeds after livestock count change: {e}", exc_info=True)
        errors = [f"Failed to load feeds for livestock {livestock_id}: {e}"]

    if not errors:
        return updated

    logger.error(f"Feed adjustment failed, rolling back livestock update. Errors: {'; '.join(errors)}")
    try:
        restored = await storage.update_livestock(livestock_id, {"count": old_count})
        rolled_back = restored is not None
    except Exception as e:
        logger.critical(f"CRITICAL: Failed to rollback livestock {livestock_id} to count {old_count}: {e}")
        rolled_back = False
    else:
        if not rolled_back:
            logger.critical(f"CRITICAL: Failed to rollback livestock {livestock_id}: record not found")
    raise InventoryRebalanceError(errors, rolled_back)
