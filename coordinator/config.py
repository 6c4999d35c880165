import os


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-prod')

    # Matchmaking
    QUEUE_QUOTA = int(os.getenv('QUEUE_QUOTA', '100'))
    SESSION_RETENTION_SECONDS = float(os.getenv('SESSION_RETENTION_SECONDS', '60'))

    # Payout service
    PAYOUT_SERVICE_URL = os.getenv('PAYOUT_SERVICE_URL', '')
    PAYOUT_TIMEOUT_SECONDS = float(os.getenv('PAYOUT_TIMEOUT_SECONDS', '60'))
    PAYOUT_WORKERS = int(os.getenv('PAYOUT_WORKERS', '4'))
    PAYOUT_HISTORY_SIZE = int(os.getenv('PAYOUT_HISTORY_SIZE', '10000'))
    ALLOW_DECLARED_WINNERS = os.getenv('ALLOW_DECLARED_WINNERS', 'true').lower() == 'true'
    TOTAL_POT_SOL = float(os.getenv('TOTAL_POT_SOL', '69'))
    ENTRY_FEE_SOL = float(os.getenv('ENTRY_FEE_SOL', '0.69'))

    # Redis relay (disabled when empty)
    REDIS_URL = os.getenv('REDIS_URL', '')
    EVENT_LOG_SIZE = int(os.getenv('EVENT_LOG_SIZE', '1000'))

    # Push channel
    CORS_ALLOWED_ORIGINS = os.getenv('CORS_ALLOWED_ORIGINS', '*')
    SOCKETIO_ASYNC_MODE = os.getenv('SOCKETIO_ASYNC_MODE', 'threading')


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    QUEUE_QUOTA = 4
    SESSION_RETENTION_SECONDS = 0.2
    PAYOUT_SERVICE_URL = ''
    REDIS_URL = ''
    ALLOW_DECLARED_WINNERS = True


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
