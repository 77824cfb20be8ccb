import os
import sqlite3
from flask import current_app
from .config import Config


class Database:

    @staticmethod
    def connect(path):
        return sqlite3.connect(path)

    @staticmethod
    def resolve_path(key, fallback_key=None):
        """
        Resolve a database path using the framework's lookup order:
        Flask app config, then the Config class, then the environment.
        """
        for name in filter(None, (key, fallback_key)):
            try:
                val = current_app.config.get(name)
                if val:
                    return val
            except RuntimeError:
                pass
            val = getattr(Config, name, None) or os.getenv(name)
            if val:
                return val
        return None

    @staticmethod
    def ensure_parent_dir(path):
        """Create the directory holding a database file if it is missing."""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
