"""Exclusive access to the shared Modbus transport.

A serial line or a single TCP session to a gateway carries exactly one
request/response pair at a time.  :class:`BusCoordinator` owns the one
``asyncio.Lock`` that every transaction must hold, from selecting the unit
identifier until the last response of the transaction has been received,
whichever task (poll cycle or command dispatch) started it.

Transport errors raised inside a transaction go through the
:class:`~smamqtt.transports.faults.FaultPolicy` on the way out: connection
level faults become :class:`~smamqtt.transports.exceptions.TransportFatalError`
and close the bus for good, everything else propagates unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Protocol, TypeVar

from smamqtt.transports.exceptions import TransportError
from smamqtt.transports.faults import FaultPolicy

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class RegisterTransport(Protocol):
    """Register-level operations the coordinator serializes."""

    unit_id: int

    async def read_holding_registers(self, address: int, count: int) -> list[int]: ...

    async def write_register(self, address: int, value: int) -> None: ...


class BusCoordinator:
    """Run Modbus transactions one at a time.

    Ordering between waiting callers is whatever ``asyncio.Lock`` gives;
    only mutual exclusion is guaranteed.

    Example:
        bus = BusCoordinator(transport)
        registers = await bus.with_bus(
            3, lambda t: t.read_holding_registers(30005, 4)
        )

        async with bus.acquire() as transport:
            transport.unit_id = 3
            await transport.write_register(47546, 1200)
    """

    def __init__(
        self,
        transport: RegisterTransport,
        fault_policy: FaultPolicy | None = None,
    ) -> None:
        self._transport = transport
        self._fault_policy = fault_policy if fault_policy is not None else FaultPolicy()
        self._lock = asyncio.Lock()

    @property
    def fault_policy(self) -> FaultPolicy:
        return self._fault_policy

    @property
    def is_locked(self) -> bool:
        """True while a transaction holds the bus."""
        return self._lock.locked()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[RegisterTransport]:
        """Hold the bus for the duration of the ``async with`` block.

        Raises:
            TransportFatalError: If a fatal fault was already observed, or
                the block raised a connection-level transport error.
        """
        self._fault_policy.ensure_healthy()
        async with self._lock:
            # A transaction that finished while we waited may have tripped it.
            self._fault_policy.ensure_healthy()
            try:
                yield self._transport
            except TransportError as err:
                self._fault_policy.check(err)
                raise

    async def with_bus(
        self,
        address: int,
        fn: Callable[[RegisterTransport], Awaitable[T]],
    ) -> T:
        """Select ``address`` and run ``fn`` as one exclusive transaction.

        Args:
            address: Modbus unit identifier of the target device
            fn: Coroutine function performing the transaction

        Returns:
            Whatever ``fn`` returns
        """
        async with self.acquire() as transport:
            transport.unit_id = address
            _LOGGER.debug("Bus acquired for unit %d", address)
            return await fn(transport)
