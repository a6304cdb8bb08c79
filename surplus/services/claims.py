"""Claim workflow: turn a recipient's claim into a listing state transition.

A claim reads the listing, checks it is still available and that the requested
quantity fits, then writes the new status, the remaining quantity and the claim
metadata in a single document update.

Two guards keep concurrent claims from double-allocating a listing:

* claims for the same listing id are serialized in-process by `KeyedLock`;
* the write is conditional on `status == available`, so a claim that lost a
  race against another process fails with `StaleStateError` instead of
  overwriting the winner.
"""

import asyncio
import math
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import AsyncIterator, Dict

from surplus.core.errors import NotFoundError, StaleStateError, ValidationError
from surplus.core.logging import get_logger
from surplus.core.states import AVAILABLE, PARTIALLY_REQUESTED, REQUESTED, is_claimable
from surplus.db import LISTINGS
from surplus.repos.base import DocumentStore
from surplus.schemas import ClaimResult

log = get_logger(__name__)

# requested quantities are kept to three decimal places
QUANTUM = Decimal("0.001")


class KeyedLock:
    """One asyncio.Lock per key; a key's lock is dropped once nobody holds or awaits it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def parse_quantity(raw) -> Decimal:
    """Parse a requested quantity (int, float, Decimal or numeric string) into a positive Decimal.

    The result is rounded to `QUANTUM`; amounts that round to zero are rejected.
    """
    if isinstance(raw, bool) or raw is None:
        raise ValidationError("Please enter a valid quantity")
    if isinstance(raw, float) and not math.isfinite(raw):
        raise ValidationError("Please enter a valid quantity")
    try:
        q = Decimal(str(raw).strip())
        if q.is_finite():
            q = q.quantize(QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError("Please enter a valid quantity") from None
    if not q.is_finite() or q <= 0:
        raise ValidationError("Please enter a valid quantity")
    return q


def _num(value: Decimal):
    # whole amounts go back to the store as ints, the rest as floats
    return int(value) if value == value.to_integral_value() else float(value)


class ClaimWorkflow:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.locks = KeyedLock()

    async def submit_claim(
        self,
        listing_id: str,
        requester_id: str,
        requester_org_name: str,
        requested_quantity,
        notes: str = "",
    ) -> ClaimResult:
        """Claim some or all of a listing's remaining quantity.

        Raises:
            ValidationError: quantity is non-numeric, not positive, or exceeds what is left.
            NotFoundError: the listing does not exist.
            StaleStateError: the listing is no longer available.
            StoreError: the store failed; nothing was written.
        """
        clog = log.bind(listing_id=listing_id, requester_id=requester_id)
        try:
            async with self.locks.hold(listing_id):
                result = await self._claim(
                    listing_id, requester_id, requester_org_name, requested_quantity, notes
                )
        except (ValidationError, NotFoundError, StaleStateError) as ex:
            clog.info("claim.rejected", reason=type(ex).__name__, detail=ex.detail)
            raise
        clog.info(
            "claim.accepted",
            status=result.status,
            requested=result.requested_quantity,
            remaining=result.remaining_quantity,
        )
        return result

    async def _claim(
        self,
        listing_id: str,
        requester_id: str,
        requester_org_name: str,
        requested_quantity,
        notes: str,
    ) -> ClaimResult:
        listing = await self.store.get_by_id(LISTINGS, listing_id)
        if not listing:
            raise NotFoundError("Listing not found")

        status = listing.get("status")
        if not is_claimable(status):
            raise StaleStateError("This listing is no longer available")

        q = parse_quantity(requested_quantity)
        available = Decimal(str(listing["quantity"]))
        if q > available:
            raise ValidationError("Requested quantity cannot exceed available quantity")

        full = q == available
        new_status = REQUESTED if full else PARTIALLY_REQUESTED
        remaining = Decimal(0) if full else available - q

        now = datetime.now(timezone.utc)
        fields = {
            "status": new_status,
            "requested_by": requester_id,
            "requested_by_org": requester_org_name,
            "requested_quantity": _num(q),
            "request_notes": (notes or "").strip(),
            "requested_at": now,
            "updated_at": now,
        }
        if not full:
            fields["quantity"] = _num(remaining)

        ok = await self.store.update_fields(LISTINGS, listing_id, fields, expect={"status": AVAILABLE})
        if not ok:
            raise StaleStateError("This listing is no longer available")

        unit = listing.get("unit", "portions")
        if full:
            message = "Donation requested successfully! The donor will be notified of your request."
        else:
            message = f"Successfully requested {_num(q)} {unit}. {_num(remaining)} {unit} remain."
        return ClaimResult(
            listing_id=listing_id,
            status=new_status,
            remaining_quantity=float(remaining),
            requested_quantity=float(q),
            unit=unit,
            message=message,
        )
