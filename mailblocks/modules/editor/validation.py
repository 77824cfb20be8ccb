"""
Save Gate
=========

Every commercial email must offer an unsubscribe link, so a template can only
be persisted when one of its footer blocks carries the {{unsubscribeUrl}}
placeholder (any case, whitespace inside the braces allowed).
"""

import re

from .errors import MissingUnsubscribeLink
from .structure import to_structure

UNSUBSCRIBE_TOKEN = re.compile(r'\{\{\s*unsubscribeUrl\s*\}\}', re.IGNORECASE)


def _blocks_of(document):
    if hasattr(document, 'to_dict'):
        document = document.to_dict()
    if not isinstance(document, dict):
        return []
    blocks = document.get('blocks')
    return blocks if isinstance(blocks, (list, tuple)) else []


def has_unsubscribe_link(document):
    for block in _blocks_of(document):
        if not isinstance(block, dict) or block.get('type') != 'footer':
            continue
        content = block.get('content')
        text = content.get('text') if isinstance(content, dict) else None
        if text and UNSUBSCRIBE_TOKEN.search(str(text)):
            return True
    return False


def check_unsubscribe_link(document):
    """Raise MissingUnsubscribeLink unless a footer carries the token."""
    if not has_unsubscribe_link(document):
        raise MissingUnsubscribeLink()


def save_document(document, persist, **metadata):
    """Run the save gate, then hand the template payload to persist().

    persist receives {name, description, category, tags, structure} and its
    return value (usually the stored id) is passed back. When the gate fails
    persist is never called.
    """
    check_unsubscribe_link(document)

    payload = {
        'name': metadata.get('name', ''),
        'description': metadata.get('description', ''),
        'category': metadata.get('category', 'custom'),
        'tags': list(metadata.get('tags') or []),
        'structure': to_structure(document),
    }
    if metadata.get('id'):
        payload['id'] = metadata['id']
    return persist(payload)
