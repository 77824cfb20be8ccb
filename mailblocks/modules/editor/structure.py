"""
Template Structure
==================

Conversion between the editor's in-memory document and the persisted
template structure:

    {
        "blocks": [{"id", "type", "content", "styles"}, ...],
        "settings": {"backgroundColor", "contentWidth", "fontFamily", "fontSize",
                     "lineHeight", "textColor", "linkColor", "preheader"}
    }

In memory, sizes are CSS strings ("600px", "16px", "1.6"). On the wire they
are numbers (600, 16, 1.6).
"""

import copy
import re

from .blocks import DEFAULT_GLOBAL_STYLES, DEFAULT_SETTINGS, new_block_id

_NUMBER = re.compile(r'^\s*(-?\d+(?:\.\d+)?)')

DEFAULT_CONTENT_WIDTH = 600
DEFAULT_FONT_SIZE = 16
DEFAULT_LINE_HEIGHT = 1.6


def _leading_number(value):
    """'600px' -> 600.0, 16 -> 16.0, 'abc' -> None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _NUMBER.match(value)
        if match:
            return float(match.group(1))
    return None


def _as_int(value, default):
    number = _leading_number(value)
    if not number:
        return default
    return int(number)


def _as_float(value, default):
    number = _leading_number(value)
    if not number:
        return default
    return number


def _as_dict(value):
    return dict(value) if isinstance(value, dict) else {}


def _format_number(value):
    """Drop a trailing .0 so 16.0 renders as '16'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_block(block):
    """Coerce a loaded block into {id, type, content, styles}.

    Missing ids are replaced with fresh ones and ids are kept as strings so
    lookups from URLs and JSON bodies compare equal.
    """
    block = _as_dict(block)
    block_id = block.get('id')
    return {
        'id': str(block_id) if block_id not in (None, '') else new_block_id(),
        'type': block.get('type'),
        'content': copy.deepcopy(_as_dict(block.get('content'))),
        'styles': copy.deepcopy(_as_dict(block.get('styles'))),
    }


def to_structure(document):
    """Convert a document (BlockDocument or plain dict) to the persisted shape"""
    if hasattr(document, 'to_dict'):
        document = document.to_dict()
    styles = _as_dict(document.get('styles'))
    settings = _as_dict(document.get('settings'))

    content_width = styles.get('containerWidth', styles.get('contentWidth'))

    return {
        'blocks': copy.deepcopy(list(document.get('blocks') or [])),
        'settings': {
            'backgroundColor': styles.get('backgroundColor') or DEFAULT_GLOBAL_STYLES['backgroundColor'],
            'contentWidth': _as_int(content_width, DEFAULT_CONTENT_WIDTH),
            'fontFamily': styles.get('fontFamily') or DEFAULT_GLOBAL_STYLES['fontFamily'],
            'fontSize': _as_int(styles.get('fontSize'), DEFAULT_FONT_SIZE),
            'lineHeight': _as_float(styles.get('lineHeight'), DEFAULT_LINE_HEIGHT),
            'textColor': styles.get('textColor') or DEFAULT_GLOBAL_STYLES['textColor'],
            'linkColor': styles.get('linkColor') or DEFAULT_GLOBAL_STYLES['linkColor'],
            'preheader': settings.get('preheader') or '',
        },
    }


def from_structure(structure):
    """Convert a persisted structure into the in-memory document dict"""
    structure = _as_dict(structure)
    settings = _as_dict(structure.get('settings'))

    width = settings.get('contentWidth', settings.get('containerWidth'))
    width = _as_int(width, DEFAULT_CONTENT_WIDTH)
    font_size = _as_int(settings.get('fontSize'), DEFAULT_FONT_SIZE)
    line_height = _as_float(settings.get('lineHeight'), DEFAULT_LINE_HEIGHT)

    styles = dict(DEFAULT_GLOBAL_STYLES)
    styles.update({
        'containerWidth': f'{width}px',
        'fontSize': f'{font_size}px',
        'lineHeight': _format_number(line_height),
    })
    for key in ('backgroundColor', 'fontFamily', 'textColor', 'linkColor'):
        if settings.get(key):
            styles[key] = settings[key]

    doc_settings = dict(DEFAULT_SETTINGS)
    doc_settings['preheader'] = settings.get('preheader') or ''

    return {
        'blocks': [normalize_block(b) for b in structure.get('blocks') or []],
        'styles': styles,
        'settings': doc_settings,
    }
