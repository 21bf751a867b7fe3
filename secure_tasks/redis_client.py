import redis

from secure_tasks.config import settings

redis_client = redis.Redis.from_url(
    settings.redis_url,
    decode_responses=True,
    socket_connect_timeout=1,
    socket_timeout=1,
)

# redis connectivity check
def redis_ping() -> bool:
    try:
        return bool(redis_client.ping())
    except redis.RedisError:
        return False
