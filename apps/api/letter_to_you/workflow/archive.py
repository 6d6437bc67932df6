"""Letter archive: cached listing, two-letter comparison selection."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from letter_to_you.core.errors import LetterError, ValidationError
from letter_to_you.db.enums import LetterSort
from letter_to_you.workflow.api_client import LetterApiClient

logger = logging.getLogger(__name__)

MAX_COMPARE = 2


class ComparisonSelection:
    """At most two letter ids; a third pick is rejected, never evicts."""

    def __init__(self) -> None:
        self._ids: list[str] = []

    @property
    def selected(self) -> tuple[str, ...]:
        return tuple(self._ids)

    @property
    def ready(self) -> bool:
        return len(self._ids) == MAX_COMPARE

    def toggle(self, letter_id: str) -> bool:
        """
        Select or deselect a letter. Returns whether it is now selected.

        Raises:
            ValidationError: two letters are already selected
        """
        letter_id = str(letter_id)
        if letter_id in self._ids:
            self._ids.remove(letter_id)
            return False
        if len(self._ids) >= MAX_COMPARE:
            raise ValidationError("You can compare two letters at a time")
        self._ids.append(letter_id)
        return True

    def discard(self, letter_id: str) -> None:
        if str(letter_id) in self._ids:
            self._ids.remove(str(letter_id))

    def clear(self) -> None:
        self._ids.clear()


class LetterCache:
    """Last good letter list per sort order; served stale when a refresh fails."""

    def __init__(self) -> None:
        self._lists: dict[str, list[dict[str, Any]]] = {}
        self.stale = False

    async def get(
        self, sort: str, fetch: Callable[[], Awaitable[list[dict[str, Any]]]]
    ) -> list[dict[str, Any]]:
        try:
            letters = await fetch()
        except LetterError as exc:
            cached = self._lists.get(sort)
            if cached is None:
                raise
            logger.warning("Letter refresh failed, serving cached list: %s", exc.message)
            self.stale = True
            return cached
        self._lists[sort] = letters
        self.stale = False
        return letters

    def find(self, letter_id: str) -> dict[str, Any] | None:
        for letters in self._lists.values():
            for letter in letters:
                if str(letter["id"]) == str(letter_id):
                    return letter
        return None

    def remove(self, letter_id: str) -> None:
        for sort, letters in self._lists.items():
            self._lists[sort] = [l for l in letters if str(l["id"]) != str(letter_id)]


class LetterArchive:
    def __init__(self, api: LetterApiClient):
        self.api = api
        self.cache = LetterCache()
        self.selection = ComparisonSelection()
        self.comparing = False

    async def load(self, sort: LetterSort | str = LetterSort.NEWEST) -> list[dict[str, Any]]:
        sort_value = LetterSort(sort).value
        return await self.cache.get(sort_value, lambda: self.api.list_letters(sort_value))

    async def delete(self, letter_id: str) -> None:
        await self.api.delete_letter(letter_id)
        self.cache.remove(letter_id)
        self.selection.discard(letter_id)

    async def compare(self) -> str:
        """Comparison narrative for the two selected letters."""
        if not self.selection.ready:
            raise ValidationError("Select two letters to compare")
        if self.comparing:
            raise ValidationError("Comparison already in progress")

        letters = [self.cache.find(letter_id) for letter_id in self.selection.selected]
        if any(letter is None for letter in letters):
            raise ValidationError("Missing letter data")

        payloads = [
            {"content": l["letter_content"], "mode": l["mode"], "date": l["created_at"]}
            for l in letters
        ]
        self.comparing = True
        try:
            return await self.api.compare_letters(payloads[0], payloads[1])
        finally:
            self.comparing = False
