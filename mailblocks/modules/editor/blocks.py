"""
Block Type Registry
===================

Default content and style payloads for every block type the editor offers.
New blocks are initialised from these; the compiler falls back to the same
values when a field is missing.
"""

import copy
import uuid

from .errors import UnknownBlockType

BLOCK_TYPES = (
    'text',
    'heading',
    'image',
    'button',
    'divider',
    'spacer',
    'social',
    'footer',
)

DEFAULT_FONT = 'Arial, sans-serif'

_DEFAULT_CONTENT = {
    'text': {'text': 'Enter your text here...'},
    'heading': {'text': 'Your Heading', 'level': 'h2'},
    'image': {'src': '', 'alt': 'Image', 'width': '100%', 'link': ''},
    'button': {'text': 'Click Here', 'link': '#', 'align': 'center'},
    'divider': {'style': 'solid', 'color': '#cccccc', 'width': '100%'},
    'spacer': {'height': '20px'},
    'social': {
        'links': [
            {'platform': 'facebook', 'url': '#'},
            {'platform': 'twitter', 'url': '#'},
            {'platform': 'instagram', 'url': '#'},
        ],
        'align': 'center',
    },
    'footer': {
        'text': 'Copyright © 2024 Your Company. All rights reserved.',
        'unsubscribeText': 'Unsubscribe from this list',
        'align': 'center',
    },
}

_DEFAULT_STYLES = {
    'text': {
        'fontSize': '16px',
        'fontFamily': DEFAULT_FONT,
        'color': '#333333',
        'lineHeight': '1.6',
        'textAlign': 'left',
        'padding': '10px 0',
    },
    'heading': {
        'fontSize': '24px',
        'fontFamily': DEFAULT_FONT,
        'color': '#333333',
        'fontWeight': 'bold',
        'textAlign': 'left',
        'padding': '20px 0 10px 0',
    },
    'button': {
        'backgroundColor': '#007cba',
        'color': '#ffffff',
        'fontSize': '16px',
        'fontFamily': DEFAULT_FONT,
        'padding': '12px 24px',
        'borderRadius': '4px',
        'textDecoration': 'none',
        'display': 'inline-block',
        'margin': '10px 0',
    },
}

# Document-level styles applied to <body> and .container
DEFAULT_GLOBAL_STYLES = {
    'backgroundColor': '#ffffff',
    'fontFamily': DEFAULT_FONT,
    'fontSize': '16px',
    'lineHeight': '1.6',
    'textColor': '#333333',
    'linkColor': '#007cba',
    'containerWidth': '600px',
}

DEFAULT_SETTINGS = {
    'preheader': '',
}

BLOCK_LABELS = {
    'text': 'Text',
    'heading': 'Heading',
    'image': 'Image',
    'button': 'Button',
    'divider': 'Divider',
    'spacer': 'Spacer',
    'social': 'Social Links',
    'footer': 'Footer',
}


def is_block_type(block_type):
    return block_type in BLOCK_TYPES


def defaults_for(block_type):
    """Return fresh {'content': ..., 'styles': ...} defaults for a block type.

    Raises UnknownBlockType for anything outside BLOCK_TYPES.
    """
    if not is_block_type(block_type):
        raise UnknownBlockType(block_type)
    return {
        'content': copy.deepcopy(_DEFAULT_CONTENT[block_type]),
        'styles': copy.deepcopy(_DEFAULT_STYLES.get(block_type, {})),
    }


def new_block_id():
    return uuid.uuid4().hex


def make_block(block_type, block_id=None):
    """Build a new block dict initialised from the registry defaults"""
    defaults = defaults_for(block_type)
    return {
        'id': block_id or new_block_id(),
        'type': block_type,
        'content': defaults['content'],
        'styles': defaults['styles'],
    }


def describe_block_types():
    """Registry listing for the editor's block library panel"""
    return [
        {
            'type': block_type,
            'label': BLOCK_LABELS[block_type],
            **defaults_for(block_type),
        }
        for block_type in BLOCK_TYPES
    ]
