import logging
from typing import Callable, List, Optional, Union

from sqlmodel import or_, select

from .database import Database
from .errors import NotFound, Unauthorized, UnprocessableEntity, ValidationError
from .models import BROADCAST, Message, Participant, format_time, now_ms
from .sanitize import MAX_SQL_INT, clean, parse_limit, require_message_type, require_text

logger = logging.getLogger(__name__)


def _parse_id(message_id: Union[int, str]) -> Optional[int]:
    if isinstance(message_id, int):
        key = message_id
    else:
        text = str(message_id).strip()
        if not (text.isascii() and text.isdigit()):
            return None
        key = int(text)
    # ids past the column range cannot exist
    return key if 0 <= key <= MAX_SQL_INT else None


class MessageStore:
    """Chat log. Only the sender of a message may change or remove it."""

    def __init__(self, db: Database, clock: Callable[[], int] = now_ms):
        self.db = db
        self.clock = clock

    async def post(self, sender: Optional[str], to: Optional[str],
                   text: Optional[str], type: Optional[str]) -> Message:
        to = require_text(to, "to")
        text = require_text(text, "text")
        type = require_message_type(type)
        sender = clean(sender)

        async with self.db.session() as session:
            registered = sender and (await session.exec(
                select(Participant.id).where(Participant.name == sender)
            )).first()
            if not registered:
                raise UnprocessableEntity("Remetente não está na sala.")
            message = Message(
                sender=sender,
                to=to,
                text=text,
                type=type,
                time=format_time(self.clock()),
            )
            session.add(message)
            await session.commit()
        return message

    async def list(self, viewer: Optional[str],
                   limit: Union[str, int, None] = None) -> List[Message]:
        """
        Messages visible to ``viewer``: broadcasts, plus anything sent by
        or addressed to them.

        Always oldest first. With ``limit`` only the latest ``limit``
        visible messages are returned.
        """
        limit = parse_limit(limit)
        viewer = clean(viewer)
        if not viewer:
            raise ValidationError("Cabeçalho 'user' ausente.")

        query = select(Message).where(or_(
            Message.to == BROADCAST,
            Message.to == viewer,
            Message.sender == viewer,
        ))
        async with self.db.session() as session:
            if limit is None:
                return list((await session.exec(query.order_by(Message.id))).all())
            latest = (await session.exec(
                query.order_by(Message.id.desc()).limit(limit)
            )).all()
        return list(reversed(latest))

    async def _owned(self, session, message_id: Union[int, str],
                     requester: Optional[str]) -> Message:
        key = _parse_id(message_id)
        message = await session.get(Message, key) if key is not None else None
        if message is None:
            raise NotFound("Mensagem não encontrada.")
        if clean(requester) != message.sender:
            raise Unauthorized("Apenas o autor pode alterar esta mensagem.")
        return message

    async def delete(self, message_id: Union[int, str], requester: Optional[str]) -> None:
        async with self.db.session() as session:
            message = await self._owned(session, message_id, requester)
            await session.delete(message)
            await session.commit()
        logger.info("Message %s deleted by %r", message_id, message.sender)

    async def update(self, message_id: Union[int, str], requester: Optional[str],
                     to: Optional[str], text: Optional[str], type: Optional[str]) -> Message:
        to = require_text(to, "to")
        text = require_text(text, "text")
        type = require_message_type(type)

        async with self.db.session() as session:
            message = await self._owned(session, message_id, requester)
            message.to = to
            message.text = text
            message.type = type
            session.add(message)
            await session.commit()
        return message
