"""
Abstract host capability interface.

A host (browser extension bridge, automation driver, test fake) implements
this interface; the parameter engine never talks to tabs, cookies or page
storage any other way.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum

TabId = int | str


class LocalEntryOp(StrEnum):
    """Operations the injected page-storage script understands."""

    APPLY = "APPLY_LS"
    REMOVE = "REMOVE_LS"
    GET = "GET_LS"


@dataclass
class LocalEntryResult:
    """Result of one injected page-storage operation."""

    success: bool
    value: str | None = None
    error: str | None = None


class TargetCapabilities(ABC):
    """
    Host-side primitives for one browser-like target.

    Implementations may raise on any failure (closed tab, permission denied);
    the parameter type registry converts those into ``False``/``None``.
    """

    # ==================== Tabs ====================

    @abstractmethod
    async def get_address(self, tab_id: TabId) -> str | None:
        """Current address of the tab, or None if it cannot be resolved."""

    @abstractmethod
    async def set_address(self, tab_id: TabId, address: str) -> None:
        """Navigate the tab. May reload the page."""

    # ==================== Cookies ====================

    @abstractmethod
    async def get_cookie(self, origin: str, name: str) -> str | None:
        """Read a cookie value for an origin."""

    @abstractmethod
    async def set_cookie(self, origin: str, name: str, value: str) -> None:
        """Write a cookie at path ``/`` for an origin."""

    @abstractmethod
    async def delete_cookie(self, origin: str, name: str) -> None:
        """Delete a cookie for an origin."""

    # ==================== Page storage ====================

    @abstractmethod
    async def run_local_entry_op(
        self,
        tab_id: TabId,
        op: LocalEntryOp,
        key: str,
        value: str | None = None,
    ) -> LocalEntryResult:
        """Run a page-storage operation inside the tab's page context."""
