import os
from dotenv import load_dotenv

load_dotenv(override=True)

class Config:
    """
    Base configuration for the mailblocks editor.
    Projects should provide database paths via environment variables.
    """
    # Flask settings
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY')

    # Get DB_DIR from environment, or use a default if not set
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))

    # Database paths - use environment variables or fallback to DB_DIR
    USER_DB = os.getenv('USER_DB', os.path.join(DB_DIR, "users.db"))
    TEMPLATES_DB = os.getenv('TEMPLATES_DB', os.path.join(DB_DIR, "templates.db"))
    ANALYTICS_DB = os.getenv('ANALYTICS_DB', os.path.join(DB_DIR, "analytics_log.db"))

    # Email settings
    # 'resend' (HTTP API) or 'smtp'
    EMAIL_PROVIDER = os.getenv('EMAIL_PROVIDER', 'resend')
    EMAIL_ADDRESS = os.getenv("EMAIL_ADDRESS", "onboarding@resend.dev")
    EMAIL_PASSWORD = os.getenv("EMAIL_PASSWORD")
    EMAIL_HOST = os.getenv("EMAIL_HOST", "smtp.gmail.com")
    EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
    EMAIL_ADMIN_EMAIL = os.getenv("EMAIL_ADMIN_EMAIL")

    # Resend API settings
    RESEND_API_KEY = os.getenv('RESEND_API_KEY') or os.getenv('RESEND')

    # Origins allowed to call the stateless preview endpoint (comma separated)
    EDITOR_PREVIEW_ORIGINS = [
        origin.strip()
        for origin in os.getenv('EDITOR_PREVIEW_ORIGINS', 'http://localhost:3000').split(',')
        if origin.strip()
    ]

    # Open editor sessions: idle seconds before expiry, and the most kept in memory
    EDITOR_SESSION_TIMEOUT = int(os.getenv('EDITOR_SESSION_TIMEOUT', '3600'))
    EDITOR_MAX_SESSIONS = int(os.getenv('EDITOR_MAX_SESSIONS', '200'))
