"""
Flask configuration for the reservation API.
Values come from environment variables with local-development defaults.
"""

import os


class Config:
    """Settings shared by every environment."""

    # Directory holding reservations.yaml, the id sequence and the event log
    DATA_DIR = os.environ.get('RESERVATION_DATA_DIR') or 'data'

    # Application log directory (used outside debug/testing)
    LOG_DIR = os.environ.get('RESERVATION_LOG_DIR') or 'logs'

    # The calendar front end may be served from another origin
    CORS_ALLOW_ORIGIN = os.environ.get('CORS_ALLOW_ORIGIN') or '*'

    APP_NAME = 'house-reservation'


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False

    @classmethod
    def validate(cls) -> None:
        """Require an explicit data directory in production."""
        if not os.environ.get('RESERVATION_DATA_DIR'):
            raise ValueError("RESERVATION_DATA_DIR environment variable must be set in production")


class TestConfig(Config):
    DEBUG = True
    TESTING = True


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'test': TestConfig,
    'default': DevelopmentConfig,
}
