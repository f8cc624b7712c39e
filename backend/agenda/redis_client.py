# backend/agenda/redis_client.py

from redis import Redis

from .config import settings

# Connection is opened lazily on first command
redis_client = Redis.from_url(settings.redis_url, decode_responses=True)
