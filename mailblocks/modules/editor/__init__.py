"""
Editor Module
=============

Provides:
- Block document model with undo/redo history
- Deterministic block-to-HTML email compiler
- Unsubscribe-link save gate
- JSON routes for editor sessions, live preview, templates and test sends
"""

from flask import Blueprint

editor_bp = Blueprint(
    'editor',
    __name__,
    url_prefix='/admin/editor',
)

from .blocks import BLOCK_TYPES, defaults_for
from .compiler import compile_document, render_block, style_to_css, substitute_variables
from .document import BlockDocument
from .errors import (
    EditorError, UnknownBlockType, BlockNotFound, MissingUnsubscribeLink, SessionNotFound
)
from .validation import check_unsubscribe_link, save_document
from . import routes

__all__ = [
    'editor_bp', 'BLOCK_TYPES', 'defaults_for', 'BlockDocument',
    'compile_document', 'render_block', 'style_to_css', 'substitute_variables',
    'check_unsubscribe_link', 'save_document',
    'EditorError', 'UnknownBlockType', 'BlockNotFound', 'MissingUnsubscribeLink',
    'SessionNotFound',
]
