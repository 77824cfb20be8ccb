"""
Editor Routes
=============

JSON API for the block editor. Editing sessions hold one document each;
every mutation route returns the updated document with its undo/redo state.
All routes require an admin session except the CORS preview endpoint's
preflight.
"""

import logging
from functools import wraps
from flask import request, jsonify, session, current_app
from flask_cors import cross_origin

from mailblocks.core.config import Config
from mailblocks.core.logging_service import LoggingService
from . import editor_bp
from .blocks import describe_block_types
from .compiler import compile_document, substitute_variables
from .document import BlockDocument
from .errors import EditorError, MissingUnsubscribeLink
from .models import (
    init_templates_db, get_template, get_all_templates, save_template, delete_template
)
from .sessions import sessions
from .structure import from_structure
from .validation import save_document

logger = logging.getLogger(__name__)


def _db_log(level, message, details=None):
    """Log to framework's persistent DB logger"""
    try:
        from mailblocks.core import db_log
        db_log(level, 'editor', message, details)
    except Exception:
        pass


def require_admin(f):
    """Decorator to require an admin session"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'admin_id' not in session:
            return jsonify({'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function


def _get_email_service():
    ext = current_app.extensions.get('mailblocks')
    return getattr(ext, 'email_service', None)


def _session_payload(session_id, document):
    return {
        'session_id': session_id,
        'template_id': document.template_id,
        'document': document.to_dict(),
        'can_undo': document.can_undo(),
        'can_redo': document.can_redo(),
    }


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@editor_bp.errorhandler(EditorError)
def handle_editor_error(error):
    return jsonify(error.to_dict()), error.status_code


# ===================
# REGISTRY
# ===================

@editor_bp.route('/block-types')
@require_admin
def block_types():
    """Block library: every type with its default content and styles"""
    return jsonify({'block_types': describe_block_types()}), 200


# ===================
# SESSIONS
# ===================

@editor_bp.route('/sessions', methods=['POST'])
@require_admin
def open_session():
    """Open an editor session, empty or loaded from a template/structure"""
    data = _json_body()
    template_id = data.get('template_id')
    structure = data.get('structure')

    if template_id:
        init_templates_db()
        template = get_template(template_id)
        if not template:
            return jsonify({'error': 'Template not found'}), 404
        structure = template['structure']

    session_id, document = sessions.create(structure, template_id=template_id)
    logger.info(f"Editor session {session_id} opened (template: {template_id})")
    return jsonify(_session_payload(session_id, document)), 201


@editor_bp.route('/sessions/<session_id>')
@require_admin
def show_session(session_id):
    document = sessions.get(session_id)
    return jsonify(_session_payload(session_id, document)), 200


@editor_bp.route('/sessions/<session_id>', methods=['DELETE'])
@require_admin
def close_session(session_id):
    sessions.discard(session_id)
    return jsonify({'message': 'Session closed'}), 200


@editor_bp.route('/sessions/<session_id>/blocks', methods=['POST'])
@require_admin
def add_block(session_id):
    document = sessions.get(session_id)
    data = _json_body()
    position = data.get('position')
    if position is not None:
        try:
            position = int(position)
        except (TypeError, ValueError):
            return jsonify({'error': 'position must be an integer'}), 400

    block = document.add_block(data.get('type'), position)
    payload = _session_payload(session_id, document)
    payload['block'] = block
    return jsonify(payload), 201


@editor_bp.route('/sessions/<session_id>/blocks/<block_id>', methods=['PATCH'])
@require_admin
def update_block(session_id, block_id):
    document = sessions.get(session_id)
    data = _json_body()
    content, styles = data.get('content'), data.get('styles')
    if not isinstance(content, (dict, type(None))) or not isinstance(styles, (dict, type(None))):
        return jsonify({'error': 'content and styles must be objects'}), 400

    document.update_block(block_id, content, styles)
    return jsonify(_session_payload(session_id, document)), 200


@editor_bp.route('/sessions/<session_id>/blocks/<block_id>', methods=['DELETE'])
@require_admin
def delete_block(session_id, block_id):
    document = sessions.get(session_id)
    removed = document.delete_block(block_id)
    payload = _session_payload(session_id, document)
    payload['deleted'] = removed['id']
    return jsonify(payload), 200


@editor_bp.route('/sessions/<session_id>/blocks/<block_id>/duplicate', methods=['POST'])
@require_admin
def duplicate_block(session_id, block_id):
    document = sessions.get(session_id)
    block = document.duplicate_block(block_id)
    payload = _session_payload(session_id, document)
    payload['block'] = block
    return jsonify(payload), 201


@editor_bp.route('/sessions/<session_id>/blocks/<block_id>/move', methods=['POST'])
@require_admin
def move_block(session_id, block_id):
    document = sessions.get(session_id)
    direction = _json_body().get('direction')
    if direction not in ('up', 'down'):
        return jsonify({'error': "direction must be 'up' or 'down'"}), 400

    moved = document.move_block(block_id, direction)
    payload = _session_payload(session_id, document)
    payload['moved'] = moved
    return jsonify(payload), 200


@editor_bp.route('/sessions/<session_id>/blocks/<block_id>/reorder', methods=['POST'])
@require_admin
def reorder_block(session_id, block_id):
    document = sessions.get(session_id)
    try:
        new_index = int(_json_body().get('index'))
    except (TypeError, ValueError):
        return jsonify({'error': 'index must be an integer'}), 400

    document.reorder(block_id, new_index)
    return jsonify(_session_payload(session_id, document)), 200


@editor_bp.route('/sessions/<session_id>/styles', methods=['PATCH'])
@require_admin
def update_styles(session_id):
    document = sessions.get(session_id)
    data = _json_body()
    styles, settings = data.get('styles'), data.get('settings')
    if not isinstance(styles, (dict, type(None))) or not isinstance(settings, (dict, type(None))):
        return jsonify({'error': 'styles and settings must be objects'}), 400

    document.update_globals(styles, settings)
    return jsonify(_session_payload(session_id, document)), 200


@editor_bp.route('/sessions/<session_id>/undo', methods=['POST'])
@require_admin
def undo(session_id):
    document = sessions.get(session_id)
    document.undo()
    return jsonify(_session_payload(session_id, document)), 200


@editor_bp.route('/sessions/<session_id>/redo', methods=['POST'])
@require_admin
def redo(session_id):
    document = sessions.get(session_id)
    document.redo()
    return jsonify(_session_payload(session_id, document)), 200


@editor_bp.route('/sessions/<session_id>/preview')
@require_admin
def session_preview(session_id):
    """Compiled HTML for the session's current document"""
    document = sessions.get(session_id)
    html = compile_document(document, title=request.args.get('title', ''))
    return jsonify({'html': html}), 200


@editor_bp.route('/sessions/<session_id>/save', methods=['POST'])
@require_admin
def save_session(session_id):
    """Persist the session's document as a template (save gate applies)"""
    document = sessions.get(session_id)
    data = _json_body()

    if not (data.get('name') or '').strip():
        return jsonify({'error': 'Please enter a template name'}), 400

    init_templates_db()
    if document.template_id and not get_template(document.template_id):
        return jsonify({'error': 'Template not found'}), 404

    try:
        template_id = save_document(
            document, save_template,
            id=document.template_id,
            name=data['name'].strip(),
            description=data.get('description', ''),
            category=data.get('category', 'custom'),
            tags=data.get('tags'),
        )
    except MissingUnsubscribeLink:
        logger.info(f"Save refused for session {session_id}: missing unsubscribe link")
        raise

    if not template_id:
        return jsonify({'error': 'Failed to save template'}), 500

    document.template_id = template_id
    _db_log('info', f'Template saved: {data["name"]}', {'id': template_id})
    return jsonify({'id': template_id, 'message': 'Template saved successfully'}), 200


# ===================
# STATELESS PREVIEW
# ===================

@editor_bp.route('/preview', methods=['POST', 'OPTIONS'])
@cross_origin(origins=Config.EDITOR_PREVIEW_ORIGINS, supports_credentials=True)
@require_admin
def preview():
    """Render a posted {blocks, settings} structure to HTML for live preview"""
    data = _json_body()
    structure = data.get('structure') or {'blocks': data.get('blocks', []), 'settings': data.get('settings', {})}
    html = compile_document(from_structure(structure), title=data.get('name', ''))
    return jsonify({'html': html}), 200


# ===================
# TEMPLATES
# ===================

@editor_bp.route('/templates')
@require_admin
def list_templates():
    init_templates_db()
    templates = get_all_templates(request.args.get('category'))
    return jsonify({'templates': templates}), 200


@editor_bp.route('/templates/<int:template_id>')
@require_admin
def show_template(template_id):
    init_templates_db()
    template = get_template(template_id)
    if not template:
        return jsonify({'error': 'Template not found'}), 404
    return jsonify(template), 200


@editor_bp.route('/templates', methods=['POST'])
@require_admin
def create_or_update_template():
    """Save {name, description, category, tags, structure} (save gate applies)"""
    data = _json_body()
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    if not (data.get('name') or '').strip():
        return jsonify({'error': 'Please enter a template name'}), 400

    init_templates_db()
    if data.get('id') and not get_template(data['id']):
        return jsonify({'error': 'Template not found'}), 404

    document = BlockDocument.from_structure(data.get('structure'))
    template_id = save_document(
        document, save_template,
        id=data.get('id'),
        name=data['name'].strip(),
        description=data.get('description', ''),
        category=data.get('category', 'custom'),
        tags=data.get('tags'),
    )
    if not template_id:
        return jsonify({'error': 'Failed to save template'}), 500

    logger.info(f"Template saved: {template_id}")
    _db_log('info', f'Template saved: {data.get("name")}', {'id': template_id})
    return jsonify({'id': template_id, 'message': 'Template saved successfully'}), 200


@editor_bp.route('/templates/<int:template_id>', methods=['DELETE'])
@require_admin
def remove_template(template_id):
    init_templates_db()
    if delete_template(template_id):
        logger.info(f"Template {template_id} deleted")
        _db_log('info', 'Template deleted', {'id': template_id})
        return jsonify({'message': 'Template deleted'}), 200
    return jsonify({'error': 'Template not found'}), 404


@editor_bp.route('/templates/<int:template_id>/send-test', methods=['POST'])
@require_admin
def send_test(template_id):
    """Compile a stored template and send it to the admin address"""
    init_templates_db()
    template = get_template(template_id)
    if not template:
        return jsonify({'error': 'Template not found'}), 404

    svc = _get_email_service()
    if not svc or not svc.configured:
        return jsonify({'error': 'Email service not configured'}), 500

    recipient = _json_body().get('email') or svc.admin_email or svc.sender_email
    if not recipient:
        return jsonify({'error': 'Admin email not configured'}), 500

    try:
        html = compile_document(from_structure(template['structure']), title=template['name'])
        html = substitute_variables(html, {'unsubscribeUrl': '#', 'email': recipient})
        success = svc.send_email([recipient], f"[TEST] {template['name']}", html)

        if success:
            logger.info(f"Test email sent for template {template_id} to {recipient}")
            _db_log('info', f'Test email sent for template {template_id}')
            return jsonify({'message': f'Test email sent to {recipient}'}), 200
        return jsonify({'error': 'Failed to send test email'}), 500

    except Exception as e:
        logger.error(f"Error sending test email: {e}")
        LoggingService.log_error_with_traceback('editor', e, {'template_id': template_id})
        return jsonify({'error': str(e)}), 500
