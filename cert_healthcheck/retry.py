import asyncio
import logging
import time

logger = logging.getLogger(__name__)


async def poll(check, policy, sleep=asyncio.sleep, clock=time.monotonic):
    """Await ``check()`` until it returns something truthy.

    Gives up when ``policy.max_attempts`` checks have been made or, if the
    policy has a deadline, once that many seconds have passed since the first
    check. Returns the last value seen either way.
    """
    start = clock()
    value = None
    for attempt in range(1, policy.max_attempts + 1):
        value = await check()
        if value:
            return value
        if attempt == policy.max_attempts:
            break
        if policy.deadline is not None and clock() - start + policy.interval > policy.deadline:
            break
        await sleep(policy.interval)
    return value


async def run_with_retry(func, *args, name="Step", retries=1, delay=10, sleep=asyncio.sleep):
    """Run an async step up to ``retries`` times. Returns ``(result, attempts_used)``."""
    for attempt in range(1, retries + 1):
        logger.info("[EXEC] Starting %s (Attempt %d/%d)...", name, attempt, retries)
        try:
            return await func(*args), attempt
        except Exception as e:
            logger.warning("[FAIL] %s failed on attempt %d: %s", name, attempt, e)

            if attempt == retries:
                logger.error("[CRITICAL] %s failed permanently after %d attempts.", name, retries)
                raise

            logger.info("[RETRY] Waiting %s seconds before retrying %s...", delay, name)
            await sleep(delay)
