"""
Block Document
==============

The editor's in-memory document: an ordered list of typed blocks plus
document-wide styles and settings. Every successful mutation records one
history snapshot, so every structural change can be undone and redone.

    doc = BlockDocument()
    heading = doc.add_block('heading')
    doc.add_block('text')
    doc.move_block(heading['id'], 'down')
    doc.undo()

UI layers bind with subscribe() instead of owning the state:

    unsubscribe = doc.subscribe(lambda event, payload: ...)
"""

import copy

from .blocks import DEFAULT_GLOBAL_STYLES, DEFAULT_SETTINGS, make_block
from .errors import BlockNotFound
from .history import History
from .structure import from_structure, normalize_block, to_structure

DIRECTIONS = ('up', 'down')


def empty_document():
    return {
        'blocks': [],
        'styles': dict(DEFAULT_GLOBAL_STYLES),
        'settings': dict(DEFAULT_SETTINGS),
    }


class BlockDocument:
    """Blocks + global styles + settings, with undo/redo history."""

    def __init__(self, blocks=None, styles=None, settings=None):
        state = empty_document()
        if blocks:
            state['blocks'] = [normalize_block(b) for b in blocks]
        if styles:
            state['styles'].update(styles)
        if settings:
            state['settings'].update(settings)
        self._state = state
        self._history = History(state)
        self._listeners = []
        # Id of the stored template this document was opened from, if any
        self.template_id = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data):
        """Load from {'blocks', 'styles', 'settings'}"""
        data = data or {}
        return cls(data.get('blocks'), data.get('styles'), data.get('settings'))

    @classmethod
    def from_structure(cls, structure):
        """Load from a persisted template structure ({'blocks', 'settings'})"""
        return cls.from_dict(from_structure(structure))

    def to_dict(self):
        return copy.deepcopy(self._state)

    def to_structure(self):
        return to_structure(self._state)

    snapshot = to_dict

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def blocks(self):
        return copy.deepcopy(self._state['blocks'])

    @property
    def styles(self):
        return dict(self._state['styles'])

    @property
    def settings(self):
        return dict(self._state['settings'])

    @property
    def history(self):
        return self._history

    def __len__(self):
        return len(self._state['blocks'])

    def __iter__(self):
        return iter(self.blocks)

    def index_of(self, block_id):
        for i, block in enumerate(self._state['blocks']):
            if block['id'] == block_id:
                return i
        raise BlockNotFound(block_id)

    def get_block(self, block_id):
        return copy.deepcopy(self._state['blocks'][self.index_of(block_id)])

    def can_undo(self):
        return self._history.can_undo()

    def can_redo(self):
        return self._history.can_redo()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback):
        """Register callback(event, payload). Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, event, payload=None):
        for callback in list(self._listeners):
            callback(event, payload)

    def _commit(self, state, event, payload=None):
        self._state = state
        self._history.push(state)
        self._notify(event, payload)

    def _working_copy(self):
        return copy.deepcopy(self._state)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_block(self, block_type, position=None):
        """Insert a new block of block_type; appends when position is None or -1."""
        block = make_block(block_type)
        state = self._working_copy()
        blocks = state['blocks']
        if position is None or position < 0:
            blocks.append(block)
        else:
            blocks.insert(min(position, len(blocks)), block)
        self._commit(state, 'added', copy.deepcopy(block))
        return copy.deepcopy(block)

    def update_block(self, block_id, content=None, styles=None):
        """Shallow-merge partial content/styles into a block."""
        index = self.index_of(block_id)
        state = self._working_copy()
        block = state['blocks'][index]
        if content:
            block['content'].update(copy.deepcopy(content))
        if styles:
            block['styles'].update(copy.deepcopy(styles))
        self._commit(state, 'updated', copy.deepcopy(block))
        return copy.deepcopy(block)

    def delete_block(self, block_id):
        """Remove a block and return it; listeners get a 'deleted' event."""
        index = self.index_of(block_id)
        state = self._working_copy()
        removed = state['blocks'].pop(index)
        self._commit(state, 'deleted', copy.deepcopy(removed))
        return removed

    def duplicate_block(self, block_id):
        """Copy a block under a new id directly after the original."""
        index = self.index_of(block_id)
        state = self._working_copy()
        source = state['blocks'][index]
        clone = make_block(source['type'])
        clone['content'] = copy.deepcopy(source['content'])
        clone['styles'] = copy.deepcopy(source['styles'])
        state['blocks'].insert(index + 1, clone)
        self._commit(state, 'duplicated', copy.deepcopy(clone))
        return copy.deepcopy(clone)

    def move_block(self, block_id, direction):
        """Swap a block with its neighbour. Returns False at the boundary."""
        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        index = self.index_of(block_id)
        target = index - 1 if direction == 'up' else index + 1
        if target < 0 or target >= len(self._state['blocks']):
            return False

        state = self._working_copy()
        blocks = state['blocks']
        blocks[index], blocks[target] = blocks[target], blocks[index]
        self._commit(state, 'moved', {'id': block_id, 'index': target})
        return True

    def reorder(self, block_id, new_index):
        """Drop-completion move: reinsert a block at new_index (clamped)."""
        index = self.index_of(block_id)
        state = self._working_copy()
        blocks = state['blocks']
        block = blocks.pop(index)
        new_index = max(0, min(int(new_index), len(blocks)))
        blocks.insert(new_index, block)
        self._commit(state, 'reordered', {'id': block_id, 'index': new_index})

    def update_styles(self, **styles):
        """Change document-wide styles (backgroundColor, containerWidth, ...)."""
        state = self._working_copy()
        state['styles'].update(styles)
        self._commit(state, 'styles', dict(state['styles']))

    def update_settings(self, **settings):
        state = self._working_copy()
        state['settings'].update(settings)
        self._commit(state, 'settings', dict(state['settings']))

    def update_globals(self, styles=None, settings=None):
        """Apply style and setting changes as one undoable edit.

        Returns False (and records nothing) when both are empty.
        """
        if not styles and not settings:
            return False
        state = self._working_copy()
        state['styles'].update(styles or {})
        state['settings'].update(settings or {})
        self._commit(state, 'globals', {
            'styles': dict(state['styles']),
            'settings': dict(state['settings']),
        })
        return True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self):
        snapshot = self._history.undo()
        if snapshot is None:
            return False
        self._state = snapshot
        self._notify('undo', self.to_dict())
        return True

    def redo(self):
        snapshot = self._history.redo()
        if snapshot is None:
            return False
        self._state = snapshot
        self._notify('redo', self.to_dict())
        return True

    def load(self, data):
        """Replace the whole document; history restarts from the loaded state."""
        fresh = BlockDocument.from_dict(data)
        self._state = fresh._state
        self._history.reset(self._state)
        self._notify('loaded', self.to_dict())
