import json
import logging

import redis
from fastapi.encoders import jsonable_encoder

from .config import settings

logger = logging.getLogger(__name__)

PRODUCTS_LIST_KEY = "products_list"

# No REDIS_URL means caching is off
client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True, socket_connect_timeout=1) if settings.REDIS_URL else None


def get_json(key):
    if client is None:
        return None
    try:
        cached = client.get(key)
    except redis.RedisError as e:
        logger.warning("Cache read failed for %s: %s", key, e)
        return None
    return json.loads(cached) if cached else None


def set_json(key, value, ttl=settings.PRODUCTS_CACHE_TTL):
    if client is None:
        return
    try:
        client.set(key, json.dumps(jsonable_encoder(value)), ex=ttl)
    except redis.RedisError as e:
        logger.warning("Cache write failed for %s: %s", key, e)


def invalidate(*keys):
    if client is None:
        return
    try:
        client.delete(*keys)
    except redis.RedisError as e:
        logger.warning("Cache invalidation failed for %s: %s", keys, e)


def invalidate_products():
    invalidate(PRODUCTS_LIST_KEY)
