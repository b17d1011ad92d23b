import asyncio
import random
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

OnRetry = Callable[[int, BaseException, float], Optional[Awaitable[None]]]


async def retry_async(
    func: Callable[[], Awaitable[T]],
    retries: int = 5,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter: float = 0.1,
    retry_on: Iterable[type[BaseException]] = (Exception,),
    on_retry: Optional[OnRetry] = None,
) -> T:
    """Await func until it succeeds, backing off exponentially with jitter.

    The last failure is re-raised once `retries` attempts are used up.
    """
    retry_exceptions = tuple(retry_on)
    delay = base_delay
    for attempt in range(1, retries + 1):
        try:
            return await func()
        except retry_exceptions as exc:
            if attempt == retries:
                raise
            sleep_for = min(delay, max_delay) + random.uniform(0, delay * jitter)
            if on_retry:
                result = on_retry(attempt, exc, sleep_for)
                if result is not None:
                    await result  # support async callback
            await asyncio.sleep(sleep_for)
            delay = min(delay * 2, max_delay)
    raise RuntimeError("async retry exhausted")
