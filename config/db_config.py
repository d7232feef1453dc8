from config.settings import settings

POSTGRES_DSN = settings.postgres_dsn
POOL_MIN_SIZE = settings.pool_min_size
POOL_MAX_SIZE = settings.pool_max_size
