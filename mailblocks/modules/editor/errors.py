"""
Editor Errors
=============

Exceptions raised by the block document model, the registry and the save
gate. The Flask layer turns them into JSON responses; nothing in the core
catches them.
"""


class EditorError(Exception):
    """Base class for editor errors"""
    status_code = 400

    def to_dict(self):
        return {'error': type(self).__name__, 'message': str(self)}


class UnknownBlockType(EditorError, ValueError):
    """Requested block type is not one of the registered types"""

    def __init__(self, block_type):
        self.block_type = block_type
        super().__init__(f"Unknown block type: {block_type!r}")


class BlockNotFound(EditorError, KeyError):
    """A mutation referenced a block id that is not in the document"""
    status_code = 404

    def __init__(self, block_id):
        self.block_id = block_id
        super().__init__(f"Block not found: {block_id!r}")

    def __str__(self):
        # KeyError repr-quotes its argument otherwise
        return self.args[0]


class MissingUnsubscribeLink(EditorError):
    """Save refused: no footer block carries the {{unsubscribeUrl}} token"""
    status_code = 422

    def __init__(self, message=None):
        super().__init__(
            message or
            'Template must include a Footer block with an unsubscribe link ({{unsubscribeUrl}}).'
        )


class SessionNotFound(EditorError):
    status_code = 404

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Editor session not found: {session_id!r}")
