"""Selection range tracker for bulk actions over the visible game list."""

from __future__ import annotations

from collections.abc import Hashable, Sequence


class SelectionTracker:
    """Click / shift-click selection over an externally supplied ordering.

    The anchor is the most recently clicked id.  An extending select
    unions the range between the anchor and the clicked id into the
    set, then moves the anchor, so repeated shift-clicks walk the range.
    """

    def __init__(self) -> None:
        self._selected: set[str] = set()
        self._anchor: str | None = None
        self._view_key: Hashable | None = None

    @property
    def selected(self) -> frozenset[str]:
        return frozenset(self._selected)

    @property
    def anchor(self) -> str | None:
        return self._anchor

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._selected

    def select(
        self,
        game_id: str,
        extend: bool,
        ordered_ids: Sequence[str],
    ) -> frozenset[str]:
        if not extend or self._anchor is None:
            self._selected = {game_id}
            self._anchor = game_id
            return self.selected

        try:
            start = ordered_ids.index(self._anchor)
            end = ordered_ids.index(game_id)
        except ValueError:
            # The view changed under us; no meaningful range
            self._selected.add(game_id)
        else:
            lo, hi = sorted((start, end))
            self._selected.update(ordered_ids[lo:hi + 1])
        self._anchor = game_id
        return self.selected

    def clear(self) -> frozenset[str]:
        self._selected.clear()
        self._anchor = None
        return self.selected

    def set_view(self, view_key: Hashable) -> bool:
        """Record the active filter/sort; clear the selection if it changed.

        Returns True when the selection was cleared.
        """
        if view_key == self._view_key:
            return False
        self._view_key = view_key
        if self._selected or self._anchor is not None:
            self.clear()
            return True
        return False

    def selected_ids(self, ordered_ids: Sequence[str]) -> list[str]:
        """Selected ids in view order — the working set for a batch job."""
        return [gid for gid in ordered_ids if gid in self._selected]

    def prune(self, existing_ids: set[str]) -> None:
        """Drop ids that no longer exist (e.g. after a bulk delete)."""
        self._selected &= existing_ids
        if self._anchor is not None and self._anchor not in existing_ids:
            self._anchor = None
