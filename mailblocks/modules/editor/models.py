"""
Template Models
===============

Database schema and CRUD operations for saved email templates.
Tables live in TEMPLATES_DB (falls back to USER_DB).
"""

import json
import sqlite3
import logging

from mailblocks.core.database import Database

logger = logging.getLogger(__name__)


def _db_log(level, message, details=None):
    """Log to framework's persistent DB logger"""
    try:
        from mailblocks.core import db_log
        db_log(level, 'templates', message, details)
    except Exception:
        pass


def get_db_config():
    """Get the database path from config or environment (3-tier pattern)"""
    return Database.resolve_path('TEMPLATES_DB', 'USER_DB') or 'templates.db'


def init_templates_db():
    """Create the email_templates table"""
    try:
        db_path = get_db_config()
        Database.ensure_parent_dir(db_path)

        with sqlite3.connect(db_path) as conn:
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS email_templates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL DEFAULT 'custom',
                    tags TEXT NOT NULL DEFAULT '[]',
                    structure TEXT NOT NULL DEFAULT '{}',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

            cursor.execute('''
                CREATE INDEX IF NOT EXISTS idx_email_templates_category
                ON email_templates(category)
            ''')

            conn.commit()
            logger.info("Templates database table created/verified successfully")

    except Exception as e:
        logger.error(f"Error initializing templates database: {e}")
        _db_log('error', 'Failed to init templates DB', {'error': str(e)})
        raise


def get_template(template_id):
    """Get a single template by ID"""
    try:
        db_path = get_db_config()
        with sqlite3.connect(db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.cursor()
            cursor.execute('SELECT * FROM email_templates WHERE id = ?', (template_id,))
            row = cursor.fetchone()
            if row:
                return _row_to_dict(row)
            return None
    except Exception as e:
        logger.error(f"Error getting template {template_id}: {e}")
        _db_log('error', f'Error getting template {template_id}', {'error': str(e)})
        return None


def get_all_templates(category=None):
    """Get all templates ordered by most recently updated first"""
    try:
        db_path = get_db_config()
        with sqlite3.connect(db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.cursor()
            if category:
                cursor.execute(
                    'SELECT * FROM email_templates WHERE category = ? ORDER BY updated_at DESC, id DESC',
                    (category,)
                )
            else:
                cursor.execute('SELECT * FROM email_templates ORDER BY updated_at DESC, id DESC')
            return [_row_to_dict(row) for row in cursor.fetchall()]
    except Exception as e:
        logger.error(f"Error getting all templates: {e}")
        _db_log('error', 'Error getting all templates', {'error': str(e)})
        return []


def save_template(data):
    """Create or update a template. Returns the template ID.

    Callers are expected to have run the save gate first; this layer only
    stores what it is given.
    """
    try:
        db_path = get_db_config()
        init_templates_db()

        with sqlite3.connect(db_path) as conn:
            cursor = conn.cursor()
            template_id = data.get('id')

            tags_json = json.dumps(list(data.get('tags') or []))
            structure_json = json.dumps(data.get('structure') or {})

            if template_id:
                cursor.execute('''
                    UPDATE email_templates
                    SET name = ?, description = ?, category = ?, tags = ?,
                        structure = ?, updated_at = CURRENT_TIMESTAMP
                    WHERE id = ?
                ''', (
                    data.get('name', ''),
                    data.get('description', ''),
                    data.get('category', 'custom'),
                    tags_json,
                    structure_json,
                    template_id
                ))
                if cursor.rowcount == 0:
                    logger.warning(f"Template {template_id} not found for update")
                    return None
            else:
                cursor.execute('''
                    INSERT INTO email_templates (name, description, category, tags, structure)
                    VALUES (?, ?, ?, ?, ?)
                ''', (
                    data.get('name', ''),
                    data.get('description', ''),
                    data.get('category', 'custom'),
                    tags_json,
                    structure_json
                ))
                template_id = cursor.lastrowid

            conn.commit()
            logger.info(f"Saved template {template_id}: {data.get('name')}")
            return template_id

    except Exception as e:
        logger.error(f"Error saving template: {e}")
        _db_log('error', 'Error saving template', {'error': str(e)})
        return None


def delete_template(template_id):
    """Delete a template. Returns False if it did not exist."""
    try:
        db_path = get_db_config()
        with sqlite3.connect(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM email_templates WHERE id = ?', (template_id,))
            conn.commit()
            if cursor.rowcount == 0:
                return False
            logger.info(f"Deleted template {template_id}")
            return True
    except Exception as e:
        logger.error(f"Error deleting template {template_id}: {e}")
        _db_log('error', f'Error deleting template {template_id}', {'error': str(e)})
        return False


def _row_to_dict(row):
    """Convert a sqlite3.Row to a dict with parsed tags/structure JSON"""
    d = dict(row)
    for key, fallback in (('tags', []), ('structure', {})):
        if key in d and isinstance(d[key], str):
            try:
                d[key] = json.loads(d[key])
            except (json.JSONDecodeError, TypeError):
                d[key] = fallback
    return d
