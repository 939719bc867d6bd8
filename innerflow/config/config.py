import os
from typing import List


def _env_flag(name: str, default: str = 'False') -> bool:
    return os.environ.get(name, default).lower() == 'true'


def get_local_store_url():
    """Get the SQLAlchemy URL of the on-device key-value store."""
    url = os.environ.get('LOCAL_STORE_URL')

    if not url:
        return 'sqlite:///innerflow.db'

    # SQLAlchemy 1.4+ requires 'postgresql://' instead of 'postgres://'
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)

    return url


class Config:
    """Base configuration."""
    # Remote store (Supabase). Both values must be set for remote sync.
    SUPABASE_URL = os.environ.get('SUPABASE_URL')
    SUPABASE_KEY = os.environ.get('SUPABASE_KEY')

    # Direct Postgres URL, only used to create the remote tables
    DATABASE_URL = os.environ.get('DATABASE_URL')

    # Local store
    LOCAL_STORE_URL = get_local_store_url()
    ENTRIES_STORAGE_KEY = 'innerflow_entries'
    USER_ID_STORAGE_KEY = 'innerflow_user_id'

    # Identity creation lock
    IDENTITY_LOCK_KEY = 'innerflow_user_id_lock'
    IDENTITY_LOCK_POLL_INTERVAL = float(os.environ.get('IDENTITY_LOCK_POLL_INTERVAL', '0.1'))
    IDENTITY_LOCK_TIMEOUT = float(os.environ.get('IDENTITY_LOCK_TIMEOUT', '3.0'))

    # Push local entries to the remote store when the app starts
    SYNC_ON_STARTUP = _env_flag('SYNC_ON_STARTUP', 'True')

    # Insight generation
    HUGGINGFACE_API_KEY = os.environ.get('HUGGINGFACE_API_KEY')
    GENERATION_MODEL_NAME = os.environ.get('GENERATION_MODEL_NAME', 'mistralai/Mistral-7B-Instruct-v0.3')
    INSIGHT_LOCALE = os.environ.get('INSIGHT_LOCALE', 'en')

    # CORS settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    # In-memory local store, no remote, no startup sync
    LOCAL_STORE_URL = 'sqlite://'
    SUPABASE_URL = None
    SUPABASE_KEY = None
    SYNC_ON_STARTUP = False
    IDENTITY_LOCK_POLL_INTERVAL = 0.01
    IDENTITY_LOCK_TIMEOUT = 0.05
    HUGGINGFACE_API_KEY = None


def _production_cors_origins() -> List[str]:
    origins = [origin.strip() for origin in os.environ.get('CORS_ORIGINS', '').split(',') if origin.strip()]
    if not origins:
        # Fallback to the deployed front end if not configured
        return ['https://innerflow.netlify.app']
    return origins


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    CORS_ORIGINS = _production_cors_origins()


# Configuration dictionary
config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config() -> Config:
    env = os.environ.get('FLASK_ENV', 'default')
    return config_by_name.get(env, config_by_name['default'])
