"""Undo/redo snapshot stack.

- Entries are deep copies, so no two snapshots share mutable state
- A push after an undo drops everything past the cursor
- undo/redo at the boundary do nothing
"""

import copy


class History:
    """Truncating stack of document snapshots with a cursor."""

    def __init__(self, initial):
        self._entries = [copy.deepcopy(initial)]
        self._cursor = 0

    @property
    def cursor(self):
        return self._cursor

    @property
    def current(self):
        """Copy of the active snapshot"""
        return copy.deepcopy(self._entries[self._cursor])

    def push(self, snapshot):
        """Record a new state and clear redo history."""
        del self._entries[self._cursor + 1:]
        self._entries.append(copy.deepcopy(snapshot))
        self._cursor = len(self._entries) - 1

    def can_undo(self):
        return self._cursor > 0

    def can_redo(self):
        return self._cursor < len(self._entries) - 1

    def undo(self):
        """Step back one entry. Returns the restored snapshot or None."""
        if not self.can_undo():
            return None
        self._cursor -= 1
        return self.current

    def redo(self):
        """Step forward one entry. Returns the restored snapshot or None."""
        if not self.can_redo():
            return None
        self._cursor += 1
        return self.current

    def reset(self, initial):
        """Start over with a single entry (used when a template is loaded)."""
        self._entries = [copy.deepcopy(initial)]
        self._cursor = 0

    def __len__(self):
        return len(self._entries)
