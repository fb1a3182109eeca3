import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from .database import Database
from .errors import BadRequest, Conflict, NotFound
from .models import BROADCAST, JOIN_TEXT, STATUS, Message, Participant, format_time, now_ms
from .sanitize import clean, require_text

logger = logging.getLogger(__name__)


class ParticipantRegistry:
    def __init__(self, db: Database, clock: Callable[[], int] = now_ms):
        self.db = db
        self.clock = clock

    async def register(self, name: Optional[str]) -> Participant:
        """Add a participant and announce the arrival to everyone."""
        name = require_text(name, "name")
        now = self.clock()
        participant = Participant(name=name, last_status=now)
        try:
            async with self.db.session() as session:
                taken = (await session.exec(
                    select(Participant).where(Participant.name == name)
                )).first()
                if taken:
                    raise Conflict("Nome já em uso.")
                session.add(participant)
                session.add(Message(
                    sender=name,
                    to=BROADCAST,
                    text=JOIN_TEXT,
                    type=STATUS,
                    time=format_time(now),
                ))
                await session.commit()
        except IntegrityError:
            # lost a concurrent registration race on the unique index
            raise Conflict("Nome já em uso.")
        logger.info("Participant %r joined", name)
        return participant

    async def heartbeat(self, name: Optional[str]) -> None:
        name = clean(name)
        if not name:
            raise BadRequest("Cabeçalho 'user' ausente.")
        async with self.db.session() as session:
            participant = (await session.exec(
                select(Participant).where(Participant.name == name)
            )).first()
            if not participant:
                raise NotFound("Participante não encontrado.")
            participant.last_status = self.clock()
            session.add(participant)
            await session.commit()

    async def list(self) -> List[Participant]:
        async with self.db.session() as session:
            return list((await session.exec(
                select(Participant).order_by(Participant.id)
            )).all())
