# utils/config.py - environment driven settings
import os
from dotenv import load_dotenv
from typing import Optional
import logging

logger = logging.getLogger(__name__)

SQLITE_URL_PREFIX = "sqlite:///"


class AppConfig:
    """⚙️ Application settings read from the environment"""

    def __init__(self):
        """Load .env and validate"""
        self.load_environment()
        self.validate_critical_settings()

    def load_environment(self):
        """Load environment variables"""
        env_loaded = load_dotenv()

        if env_loaded:
            logger.info("✅ .env file loaded")
        else:
            logger.debug(".env file not found, using process environment")

        self.environment = os.getenv('ENVIRONMENT', 'development')
        self.debug = os.getenv('DEBUG', 'False').lower() == 'true'

    def validate_critical_settings(self):
        """🔒 Reject settings the server cannot start with"""
        errors = []

        if self.environment == 'production' and self.debug:
            errors.append("DEBUG must be False in production.")

        database_url = self.get_database_url()
        if not database_url.startswith(SQLITE_URL_PREFIX):
            errors.append(f"Unsupported DATABASE_URL: {database_url}")

        try:
            port = self.get_port()
            if not 0 < port < 65536:
                errors.append(f"PORT out of range: {port}")
        except ValueError:
            errors.append(f"PORT is not a number: {os.getenv('PORT')}")

        if errors:
            logger.error("❌ Configuration errors:")
            for error in errors:
                logger.error(f"   - {error}")
            raise ValueError("Invalid configuration: " + "; ".join(errors))

        logger.debug("Configuration validated")

    # 🗄️ Database
    def get_database_url(self) -> str:
        """Store connection string"""
        return os.getenv('DATABASE_URL', 'sqlite:///./campus_connect.db')

    def get_database_path(self) -> str:
        """Filesystem path of the sqlite store"""
        return self.get_database_url()[len(SQLITE_URL_PREFIX):]

    def get_database_timeout(self) -> int:
        """Connection timeout (seconds)"""
        return int(os.getenv('DATABASE_TIMEOUT', '30'))

    # 🌐 Server
    def get_host(self) -> str:
        return os.getenv('HOST', '0.0.0.0')

    def get_port(self) -> int:
        return int(os.getenv('PORT', '8080'))

    def get_reload(self) -> bool:
        return os.getenv('RELOAD', 'False').lower() == 'true'

    # 💬 Realtime
    def get_client_origin(self) -> str:
        """The one browser origin allowed on the realtime channel"""
        return os.getenv('CLIENT_ORIGIN', 'http://localhost:3000')

    # 🖼️ Uploads
    def get_upload_dir(self) -> str:
        return os.getenv('UPLOAD_DIR', 'uploads')

    def get_max_upload_mb(self) -> float:
        return float(os.getenv('MAX_UPLOAD_MB', '5'))

    # 📊 Logging
    def get_log_level(self) -> str:
        return os.getenv('LOG_LEVEL', 'INFO')

    def get_log_file(self) -> Optional[str]:
        """Log file path, None when file logging is disabled"""
        log_file = os.getenv('LOG_FILE', 'logs/app.log')
        return log_file or None

    # 🎨 App metadata
    def get_app_name(self) -> str:
        return os.getenv('APP_NAME', 'Campus Connect')

    def get_app_version(self) -> str:
        return os.getenv('APP_VERSION', '1.0.0')

    def get_status_summary(self) -> dict:
        """Settings worth printing at startup"""
        return {
            'environment': self.environment,
            'debug_mode': self.debug,
            'database_url': self.get_database_url(),
            'port': self.get_port(),
            'client_origin': self.get_client_origin(),
            'upload_dir': self.get_upload_dir(),
        }


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide config instance"""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config

