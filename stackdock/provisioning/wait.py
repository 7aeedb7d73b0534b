"""Bounded-retry polling used wherever the cloud converges asynchronously."""

import asyncio
import logging

from stackdock.provisioning.errors import NoIpFoundError, WaitTimeoutError
from stackdock.provisioning.types import InstanceState, normalize_state

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 200
INTERVAL = 2


async def wait_until(poll, ready, description, max_attempts=MAX_ATTEMPTS, interval=INTERVAL, sleep=asyncio.sleep):
    """Poll until ready(value) holds, sleeping a fixed interval between attempts.

    Args:
        poll: async callable returning the current observed value. Errors it
            raises propagate immediately and are never retried.
        ready: predicate over the observed value.
        description: what is being waited for, used in log and error messages.
        max_attempts: number of polls before giving up.
        interval: seconds slept between two polls.
        sleep: async sleep function, injectable for tests.

    Returns:
        The first observed value for which ready() is true.

    Raises:
        WaitTimeoutError: after max_attempts polls without success.
    """
    value = None
    for attempt in range(1, max_attempts + 1):
        value = await poll()
        if ready(value):
            return value
        logger.debug(f"Waiting for {description} (attempt {attempt}/{max_attempts}, last: {value!r})")
        if attempt < max_attempts:
            await sleep(interval)

    logger.debug(f"Gave up waiting for {description} (last: {value!r})")
    raise WaitTimeoutError(description, max_attempts, interval)


async def wait_for_instance_state(
    client, spec, state, target: InstanceState, max_attempts=MAX_ATTEMPTS, interval=INTERVAL, sleep=asyncio.sleep
):
    """Wait until the instance's normalized state equals target."""

    async def poll():
        return normalize_state(await client.get_instance_state(spec, state))

    return await wait_until(
        poll,
        lambda current: current == target,
        f"instance {state.instance_id} to be {target.value}",
        max_attempts=max_attempts,
        interval=interval,
        sleep=sleep,
    )


async def wait_for_ip_address(client, spec, state, max_attempts=MAX_ATTEMPTS, interval=INTERVAL, sleep=asyncio.sleep):
    """Wait for an address of the spec's address type to be attached to the instance.

    Raises:
        NoIpFoundError: when the budget runs out.
    """
    address_type = spec.address_type

    async def poll():
        addresses = await client.get_instance_ip_addresses(spec, state)
        return next((a.address for a in addresses if a.address_type == address_type), None)

    try:
        return await wait_until(
            poll,
            lambda address: address is not None,
            f"a {address_type.value} IP address on instance {state.instance_id}",
            max_attempts=max_attempts,
            interval=interval,
            sleep=sleep,
        )
    except WaitTimeoutError:
        raise NoIpFoundError(max_attempts, interval) from None
