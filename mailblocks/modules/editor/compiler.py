"""
Email Compiler
==============

Converts a block document into a complete HTML email with inline CSS.
Compilation is pure: the same document always yields the same string, the
input is never modified, and malformed blocks degrade to defaults instead of
raising (an unknown block type renders as nothing).
"""

import re
from markupsafe import escape

from .blocks import DEFAULT_GLOBAL_STYLES

# Numeric values for these properties are unitless
_UNITLESS = ('color', 'opacity', 'z-index', 'font-weight', 'line-height')

_HEADING_LEVELS = ('h1', 'h2', 'h3', 'h4', 'h5', 'h6')

_CAMEL_BOUNDARY = re.compile(r'([A-Z])')

_PLACEHOLDER = re.compile(r'\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}')


def _as_dict(value):
    return value if isinstance(value, dict) else {}


def _attr(value):
    """Escape a value for use inside a double-quoted attribute"""
    return str(escape('' if value is None else value))


def _kebab(name):
    return _CAMEL_BOUNDARY.sub(r'-\1', str(name)).lower()


def _css_value(prop, value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not any(token in prop for token in _UNITLESS):
            return f'{value}px'
    return str(value)


def style_to_css(styles):
    """Serialize a camelCase style mapping to an inline CSS string.

    {'fontSize': 16, 'textAlign': 'left', 'color': None}
        -> 'font-size: 16px; text-align: left;'
    """
    pairs = []
    for key, value in _as_dict(styles).items():
        if value is None or value == '':
            continue
        prop = _kebab(key)
        pairs.append(f'{prop}: {_css_value(prop, value)};')
    return ' '.join(pairs)


def _join_css(*parts):
    return ' '.join(p for p in parts if p)


# ----------------------------------------------------------------------
# Block renderers
# ----------------------------------------------------------------------

def _render_text(content, styles):
    return f'<p style="{_attr(style_to_css(styles))}">{content.get("text") or ""}</p>'


def _render_heading(content, styles):
    level = str(content.get('level') or 'h2').lower()
    if level not in _HEADING_LEVELS:
        level = 'h2'
    return f'<{level} style="{_attr(style_to_css(styles))}">{content.get("text") or ""}</{level}>'


def _render_image(content, styles):
    width = content.get('width') or '100%'
    img_style = _join_css(
        f'width: {_css_value("width", width)}; height: auto; display: block;',
        style_to_css(styles),
    )
    img = f'<img src="{_attr(content.get("src") or "")}" alt="{_attr(content.get("alt") or "")}" style="{_attr(img_style)}">'
    link = content.get('link')
    if link:
        return f'<a href="{_attr(link)}">{img}</a>'
    return img


def _render_button(content, styles):
    align = content.get('align') or 'center'
    return (
        f'<div style="text-align: {_attr(align)};">'
        f'<a href="{_attr(content.get("link") or "#")}" style="{_attr(style_to_css(styles))}" target="_blank">'
        f'{content.get("text") or "Button"}</a>'
        f'</div>'
    )


def _render_divider(content, styles):
    line_style = content.get('style') or 'solid'
    color = content.get('color') or '#cccccc'
    width = _css_value('width', content.get('width') or '100%')
    hr_style = _join_css(
        f'border: none; border-top: 1px {line_style} {color}; width: {width}; margin: 20px auto;',
        style_to_css(styles),
    )
    return f'<hr style="{_attr(hr_style)}">'


def _render_spacer(content, styles):
    height = _css_value('height', content.get('height') or '20px')
    return f'<div style="{_attr(_join_css(f"height: {height};", style_to_css(styles)))}"></div>'


def _render_social(content, styles):
    links = content.get('links')
    if not isinstance(links, list):
        links = []
    align = content.get('align') or 'center'
    anchors = []
    for link in links:
        if not isinstance(link, dict):
            continue
        platform = str(link.get('platform') or 'link')
        anchors.append(
            f'<a href="{_attr(link.get("url") or "#")}" '
            f'style="display: inline-block; margin: 0 10px; text-decoration: none;">'
            f'{escape(platform.capitalize())}</a>'
        )
    div_style = _join_css(f'text-align: {align};', style_to_css(styles))
    return f'<div style="{_attr(div_style)}">{"".join(anchors)}</div>'


def _render_footer(content, styles):
    align = content.get('align') or 'center'
    div_style = _join_css(f'text-align: {align};', style_to_css(styles))
    return f'<div style="{_attr(div_style)}">{content.get("text") or ""}</div>'


BLOCK_RENDERERS = {
    'text': _render_text,
    'heading': _render_heading,
    'image': _render_image,
    'button': _render_button,
    'divider': _render_divider,
    'spacer': _render_spacer,
    'social': _render_social,
    'footer': _render_footer,
}


def render_block(block):
    """Render a single block to HTML; unknown types render as ''."""
    block = _as_dict(block)
    renderer = BLOCK_RENDERERS.get(block.get('type'))
    if renderer is None:
        return ''
    return renderer(_as_dict(block.get('content')), _as_dict(block.get('styles')))


# ----------------------------------------------------------------------
# Document
# ----------------------------------------------------------------------

def _global_styles(styles):
    merged = dict(DEFAULT_GLOBAL_STYLES)
    for key, value in _as_dict(styles).items():
        if value is not None and value != '':
            merged[key] = value
    # Wire-format documents carry contentWidth instead of containerWidth
    if 'containerWidth' not in _as_dict(styles) and _as_dict(styles).get('contentWidth'):
        merged['containerWidth'] = styles['contentWidth']
    return {key: _css_value(_kebab(key), value) for key, value in merged.items()}


def _preheader_html(settings):
    preheader = _as_dict(settings).get('preheader')
    if not preheader:
        return ''
    return (
        '<div style="display:none; max-height:0; overflow:hidden; opacity:0;">'
        f'{escape(preheader)}</div>'
    )


def compile_document(document, title=''):
    """Compile a document into a complete HTML email.

    Args:
        document: BlockDocument or dict with 'blocks', 'styles', 'settings'
        title: optional <title> text

    Returns:
        HTML string from <!DOCTYPE html> to </html>
    """
    if hasattr(document, 'to_dict'):
        document = document.to_dict()
    document = _as_dict(document)

    blocks = document.get('blocks')
    if not isinstance(blocks, (list, tuple)):
        blocks = []
    styles = _global_styles(document.get('styles'))

    block_html = '\n    '.join(render_block(b) for b in blocks)

    return f'''<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title or '')}</title>
  <style>
    body {{
      margin: 0;
      padding: 0;
      background-color: {styles['backgroundColor']};
      font-family: {styles['fontFamily']};
      font-size: {styles['fontSize']};
      line-height: {styles['lineHeight']};
      color: {styles['textColor']};
    }}
    .container {{
      max-width: {styles['containerWidth']};
      margin: 0 auto;
      padding: 20px;
    }}
    a {{
      color: {styles['linkColor']};
    }}
    @media only screen and (max-width: 600px) {{
      .container {{
        width: 100% !important;
        padding: 10px !important;
      }}
    }}
  </style>
</head>
<body>
  {_preheader_html(document.get('settings'))}
  <div class="container">
    {block_html}
  </div>
</body>
</html>'''


def substitute_variables(html, variables):
    """Replace {{NAME}} placeholders with per-recipient values.

    Placeholders without a value are left in place.
    """
    if not html:
        return html
    variables = variables or {}

    def _replace(match):
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        return match.group(0)

    return _PLACEHOLDER.sub(_replace, html)
