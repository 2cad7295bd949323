# models.py
import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    JSON,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from db import Base

# Границы BigInteger: всё, что не влезает, в базу не отправляем
BIGINT_MIN = -(2**63)
BIGINT_MAX = 2**63 - 1


def is_storable_id(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return BIGINT_MIN <= value <= BIGINT_MAX


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


class RequestSource(str, enum.Enum):
    SEARCH = "search"
    MUTUAL_CONNECTION = "mutual_connection"
    PROFILE_VIEW = "profile_view"
    OTHER = "other"


class PendingDirection(str, enum.Enum):
    SENT = "sent"
    RECEIVED = "received"


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class ConnectionRequest(Base):
    __tablename__ = "connection_requests"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    requester_id: Mapped[int] = mapped_column(BigInteger, index=True)
    recipient_id: Mapped[int] = mapped_column(BigInteger, index=True)

    # Каноническая пара (меньший id первым) - по ней ищем и блокируем дубли
    user_low: Mapped[int] = mapped_column(BigInteger)
    user_high: Mapped[int] = mapped_column(BigInteger)

    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[RequestSource] = mapped_column(
        SAEnum(
            RequestSource,
            native_enum=False,
            length=32,
            values_callable=_enum_values,
        ),
        default=RequestSource.OTHER,
    )

    status: Mapped[RequestStatus] = mapped_column(
        SAEnum(
            RequestStatus,
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        default=RequestStatus.PENDING,
    )

    # Заметка получателя при принятии
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("requester_id <> recipient_id", name="ck_request_not_self"),
        CheckConstraint("user_low < user_high", name="ck_request_pair_order"),
        # Не больше одной висящей заявки на неупорядоченную пару
        Index(
            "uq_connection_requests_pending_pair",
            "user_low",
            "user_high",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
        Index("ix_connection_requests_recipient_status", "recipient_id", "status"),
        Index("ix_connection_requests_requester_status", "requester_id", "status"),
    )

    def other_party(self, user_id: int) -> int:
        return self.recipient_id if self.requester_id == user_id else self.requester_id

    def __repr__(self) -> str:
        return (
            f"<ConnectionRequest id={self.id} from={self.requester_id} "
            f"to={self.recipient_id} status={getattr(self.status, 'value', self.status)}>"
        )


class ConnectionEdge(Base):
    __tablename__ = "connection_edges"

    user_low: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_high: Mapped[int] = mapped_column(BigInteger, primary_key=True, index=True)

    # Заявка, из-за которой появилась связь (история заявок не трогается)
    request_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Общие для обеих сторон заметка и теги (как в карточке контакта)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, server_default=text("'[]'"))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("user_low < user_high", name="ck_edge_pair_order"),
    )

    def peer_of(self, user_id: int) -> int:
        return self.user_high if self.user_low == user_id else self.user_low

    def __repr__(self) -> str:
        return f"<ConnectionEdge {self.user_low}<->{self.user_high}>"


class ConnectionBlock(Base):
    """
    Блокировка внутри пары. Одна строка на неупорядоченную пару,
    blocked_by - кто заблокировал (только он может снять).
    """

    __tablename__ = "connection_blocks"

    user_low: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_high: Mapped[int] = mapped_column(BigInteger, primary_key=True)

    blocked_by: Mapped[int] = mapped_column(BigInteger, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("user_low < user_high", name="ck_block_pair_order"),
        CheckConstraint(
            "blocked_by = user_low OR blocked_by = user_high",
            name="ck_block_by_member",
        ),
    )

    def blocked_user(self) -> int:
        return self.user_high if self.blocked_by == self.user_low else self.user_low

    def __repr__(self) -> str:
        return f"<ConnectionBlock {self.user_low}<->{self.user_high} by={self.blocked_by}>"
