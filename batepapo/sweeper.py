"""
Liveness sweeper.

Evicts participants whose last heartbeat is older than the inactivity
timeout and announces each departure with a status message.

Each eviction runs in its own transaction: the participant row is deleted
only if its ``last_status`` still holds the value read by the sweep, and the
departure message is inserted before the commit. A heartbeat that lands
between the read and the delete therefore keeps the participant, and a
failure leaves both the row and the log untouched until the next tick.
"""
import asyncio
import logging
from typing import Callable, List, Optional

from sqlalchemy import delete
from sqlmodel import select

from .database import Database
from .models import BROADCAST, LEAVE_TEXT, STATUS, Message, Participant, format_time, now_ms

logger = logging.getLogger(__name__)


class LivenessSweeper:
    def __init__(
        self,
        db: Database,
        interval: float = 15.0,
        timeout: float = 10.0,
        clock: Callable[[], int] = now_ms,
    ):
        self.db = db
        self.interval = interval
        self.timeout = timeout
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> List[str]:
        """Run one pass and return the names that were evicted."""
        cutoff = self.clock() - int(self.timeout * 1000)
        async with self.db.session() as session:
            stale = (await session.exec(
                select(Participant)
                .where(Participant.last_status <= cutoff)
                .order_by(Participant.id)
            )).all()

        evicted = []
        for participant in stale:
            async with self.db.session() as session:
                result = await session.exec(
                    delete(Participant).where(
                        Participant.id == participant.id,
                        Participant.last_status == participant.last_status,
                    )
                )
                if result.rowcount != 1:
                    await session.rollback()
                    logger.debug("Participant %r refreshed during sweep, kept", participant.name)
                    continue
                session.add(Message(
                    sender=participant.name,
                    to=BROADCAST,
                    text=LEAVE_TEXT,
                    type=STATUS,
                    time=format_time(self.clock()),
                ))
                await session.commit()
            evicted.append(participant.name)
            logger.info("Participant %r removed after inactivity", participant.name)
        return evicted

    async def _run(self) -> None:
        while True:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Sweep failed, retrying in %ss", self.interval)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            logger.warning("Sweeper already running")
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Sweeper started (every %ss, timeout %ss)", self.interval, self.timeout)

    async def stop(self) -> None:
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Sweeper stopped")
