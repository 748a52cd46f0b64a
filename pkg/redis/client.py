from typing import Optional, Any, Union, AsyncIterator
from redis.exceptions import RedisError
import json
import logging
from datetime import timedelta
import redis.asyncio as aioredis


class RedisClient:
    """
    Async Redis client used for the hotel context cache and for
    publish/subscribe of service-request events.
    """

    def __init__(
        self,
        logger: logging.Logger,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None,
        ssl: bool = False,
    ):
        self.logger = logger
        self.host = host
        self.port = port
        self.password = password
        self.ssl = ssl

        self._async_redis: Optional[aioredis.Redis] = None
        self._async_pool: Optional[aioredis.ConnectionPool] = None

    async def _get_async_redis(self) -> aioredis.Redis:
        """Get or create async Redis client"""
        if self._async_redis is None:
            connection_class = aioredis.SSLConnection if self.ssl else aioredis.Connection
            self._async_pool = aioredis.ConnectionPool(
                host=self.host,
                port=self.port,
                password=self.password,
                decode_responses=True,
                max_connections=20,
                socket_connect_timeout=5.0,
                connection_class=connection_class,
            )
            self._async_redis = aioredis.Redis(connection_pool=self._async_pool)
        return self._async_redis

    async def ping(self) -> bool:
        try:
            redis = await self._get_async_redis()
            return bool(await redis.ping())
        except (RedisError, OSError) as e:
            self.logger.error(f"Failed to ping Redis at {self.host}:{self.port}: {e}")
            return False

    async def async_close(self) -> None:
        """Close async Redis connection pool"""
        if self._async_redis is not None:
            await self._async_redis.aclose()
            self._async_redis = None
        if self._async_pool is not None:
            await self._async_pool.disconnect()
            self._async_pool = None
            self.logger.info("Async Redis connection pool closed")

    @staticmethod
    def _serialize(value: Any) -> Any:
        if not isinstance(value, (str, int, float, bool)):
            return json.dumps(value, default=str)
        return value

    @staticmethod
    def _deserialize(value: Optional[str]) -> Any:
        if isinstance(value, str) and (value.startswith("{") or value.startswith("[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return value

    async def async_get_value(self, key: str, default: Any = None) -> Any:
        """
        Get a value, deserialized from JSON when it looks like a JSON document.

        Returns ``default`` when the key does not exist.
        """
        try:
            redis = await self._get_async_redis()
            value = await redis.get(key)
            if value is None:
                return default
            return self._deserialize(value)
        except RedisError as e:
            self.logger.error(f"Error async getting key {key}: {str(e)}")
            raise

    async def async_set_value(self, key: str, value: Any, expiry: Optional[Union[int, timedelta]] = None) -> bool:
        """Set a key-value pair (JSON serialized if not a scalar), optionally with expiry in seconds."""
        try:
            redis = await self._get_async_redis()
            if isinstance(expiry, timedelta):
                expiry = int(expiry.total_seconds())
            value = self._serialize(value)
            if expiry:
                return await redis.setex(key, expiry, value)
            return await redis.set(key, value)
        except RedisError as e:
            self.logger.error(f"Error async setting key {key}: {str(e)}")
            raise

    # Pub/Sub Operations
    async def publish(self, channel: str, message: Any) -> int:
        """Publish message to a channel"""
        try:
            redis = await self._get_async_redis()
            return await redis.publish(channel, self._serialize(message))
        except RedisError as e:
            self.logger.error(f"Error publishing to channel {channel}: {str(e)}")
            raise

    async def subscribe(self, channel: str, idle_timeout: float = 10.0) -> AsyncIterator[Any]:
        """
        Yield messages published on ``channel``.

        Yields ``None`` whenever ``idle_timeout`` seconds pass without a
        message so callers can emit keep-alives. The subscription is released
        when the consumer stops iterating.
        """
        redis = await self._get_async_redis()
        pubsub = redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=idle_timeout)
                if message is None:
                    yield None
                    continue
                yield self._deserialize(message.get("data"))
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
