"""Fixed waits used where the host gives no completion signal.

- navigation settle: after a batched navigation, before cookies/local entries
- propagation: between a retried write and its second verification

Both go through one ``Waiter`` so an event-based wait can replace them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum


class WaitReason(StrEnum):
    NAVIGATION_SETTLE = "navigation_settle"
    PROPAGATION = "propagation"


@dataclass
class Waiter:
    navigation_settle_ms: int = 200
    propagation_delay_ms: int = 100

    @classmethod
    def from_config(cls, timing) -> Waiter:
        return cls(
            navigation_settle_ms=timing.navigation_settle_ms,
            propagation_delay_ms=timing.propagation_delay_ms,
        )

    def delay_for(self, reason: WaitReason) -> float:
        if reason == WaitReason.NAVIGATION_SETTLE:
            return self.navigation_settle_ms / 1000
        return self.propagation_delay_ms / 1000

    async def wait(self, reason: WaitReason) -> None:
        delay = self.delay_for(reason)
        if delay > 0:
            await asyncio.sleep(delay)
