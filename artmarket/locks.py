import logging
import time
import uuid

import redis
from django.conf import settings

from .exceptions import BidLockTimeout

logger = logging.getLogger(__name__)

# Redis 연결 풀
redis_pool = redis.ConnectionPool.from_url(
    settings.REDIS_URL,
    decode_responses=True,
    max_connections=50
)
redis_client = redis.StrictRedis(connection_pool=redis_pool)

# 내가 잡은 락만 해제
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class CircuitBreakerOpen(Exception):
    pass


class LockBackendUnavailable(Exception):
    """Redis 장애로 락을 잡을 수 없음 (DB 락만으로 처리)"""


class CircuitBreaker:
    """Redis 장애 대응"""
    def __init__(self, failure_threshold=5, timeout=60):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.failures = 0
        self.last_failure_time = None
        self.state = 'closed'  # closed, open, half_open

    def call(self, func, *args, **kwargs):
        if self.state == 'open':
            if time.time() - self.last_failure_time > self.timeout:
                self.state = 'half_open'
            else:
                raise CircuitBreakerOpen("Circuit breaker open - Redis unavailable")

        try:
            result = func(*args, **kwargs)
        except redis.exceptions.RedisError:
            self.failures += 1
            self.last_failure_time = time.time()
            if self.failures >= self.failure_threshold or self.state == 'half_open':
                self.state = 'open'
                logger.error(f"Circuit breaker opened: {self.failures} failures")
            raise

        if self.state == 'half_open':
            logger.info("Circuit breaker closed: Redis recovered")
        self.state = 'closed'
        self.failures = 0
        return result

    def reset(self):
        self.failures = 0
        self.last_failure_time = None
        self.state = 'closed'


redis_circuit_breaker = CircuitBreaker()


class ArtworkBidLock:
    """
    작품 단위 입찰 락

    같은 작품에 대한 입찰만 직렬화하고, 다른 작품 입찰과는 경합하지 않음.
    대기 시간은 wait 초로 제한되며 초과 시 BidLockTimeout.
    락 키에는 TTL 이 걸려 있어 보유자가 죽어도 영구 대기하지 않음.
    """

    RETRY_DELAY = 0.05  # 50ms 부터 선형 증가

    def __init__(self, artwork_id, timeout=None, wait=None, client=None):
        self.key = f"bid_lock:artwork:{artwork_id}"
        self.token = str(uuid.uuid4())
        self.timeout = timeout if timeout is not None else settings.ARTMARKET_BID_LOCK_TIMEOUT
        self.wait = wait if wait is not None else settings.ARTMARKET_BID_LOCK_WAIT
        self.client = client
        self.acquired = False

    def _client(self):
        return self.client or redis_client

    def acquire(self):
        deadline = time.monotonic() + self.wait
        attempt = 0

        while True:
            try:
                acquired = redis_circuit_breaker.call(
                    self._client().set,
                    self.key,
                    self.token,
                    nx=True,
                    px=int(self.timeout * 1000)
                )
            except (CircuitBreakerOpen, redis.exceptions.RedisError) as e:
                raise LockBackendUnavailable(str(e)) from e

            if acquired:
                self.acquired = True
                return self.token

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(f"Bid lock wait exceeded: key={self.key}, wait={self.wait}s")
                raise BidLockTimeout()

            attempt += 1
            time.sleep(min(self.RETRY_DELAY * attempt, remaining))

    def release(self):
        if not self.acquired:
            return

        self.acquired = False
        try:
            redis_circuit_breaker.call(
                self._client().eval,
                RELEASE_SCRIPT,
                1,
                self.key,
                self.token
            )
        except (CircuitBreakerOpen, redis.exceptions.RedisError) as e:
            # TTL 이 지나면 자동 해제됨
            logger.error(f"Lock release failed: key={self.key}, error={e}")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
