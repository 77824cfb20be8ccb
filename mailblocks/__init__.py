"""
mailblocks - Block-Based Email Template Editor
==============================================

A Flask-pluggable email editor core with:
- Block document model with undo/redo history
- Deterministic HTML email compiler with inlined styles
- Unsubscribe-link save gate
- Template storage and test sends

Usage:
    from flask import Flask
    from mailblocks import MailBlocks

    app = Flask(__name__)
    MailBlocks(app)

Or as a plain library:
    from mailblocks.modules.editor import BlockDocument, compile_document
"""

import os
import logging

__version__ = '0.1.0'

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'EMAIL_PROVIDER': 'resend',
}


class MailBlocks:
    """Flask extension registering the editor blueprint and its services."""

    def __init__(self, app=None, config=None):
        self._config = dict(config or {})
        self._registered = []
        self.email_service = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        from .core.config import Config

        # App config wins, then the config dict, then Config/env defaults
        if app.config.get('DB_DIR') is None:
            app.config['DB_DIR'] = self._config.get('DB_DIR', Config.DB_DIR)
        db_files = {'USER_DB': 'users.db', 'TEMPLATES_DB': 'templates.db', 'ANALYTICS_DB': 'analytics_log.db'}
        for key, filename in db_files.items():
            if app.config.get(key) is None:
                app.config[key] = self._config.get(key) or os.getenv(key) or \
                    os.path.join(app.config['DB_DIR'], filename)

        for key in ('EMAIL_PROVIDER', 'EMAIL_ADDRESS', 'EMAIL_ADMIN_EMAIL',
                    'EMAIL_HOST', 'EMAIL_PORT', 'EMAIL_PASSWORD', 'RESEND_API_KEY'):
            if app.config.get(key) is None:
                value = self._config.get(key, getattr(Config, key, DEFAULT_CONFIG.get(key)))
                if value is not None:
                    app.config[key] = value
        if not app.config.get('SECRET_KEY') and Config.SECRET_KEY:
            app.config['SECRET_KEY'] = Config.SECRET_KEY

        self._setup_database_dir(app)
        self._register_modules(app)

        app.extensions['mailblocks'] = self
        logger.info(f"mailblocks initialised with modules: {', '.join(self._registered)}")

    def _setup_database_dir(self, app):
        db_dir = app.config.get('DB_DIR')
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def _register_modules(self, app):
        from .modules.editor import editor_bp
        from .modules.editor.email_service import EmailService
        from .modules.editor.models import init_templates_db

        self.email_service = EmailService(app)
        app.register_blueprint(editor_bp)
        self._registered.append('editor')

        with app.app_context():
            init_templates_db()

    def get_registered_modules(self):
        return list(self._registered)


__all__ = ['MailBlocks', '__version__']
