import uuid
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from .database import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


class UserAccount(Base):
    __tablename__ = "user_account"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    email = Column(String, nullable=False, unique=True)
    display_name = Column(String, nullable=True)
    profile_active = Column(Boolean, nullable=False, default=True)
    disabled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CompatibilityProfile(Base):
    __tablename__ = "compatibility_profile"

    user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), primary_key=True)
    religious_background = Column(String, nullable=True)
    answers = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ConnectionRequest(Base):
    __tablename__ = "connection_request"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    sender_id = Column(String(36), ForeignKey("user_account.id"), nullable=False)
    receiver_id = Column(String(36), ForeignKey("user_account.id"), nullable=False)
    message = Column(Text, nullable=True)
    request_status = Column(String, nullable=False, default="pending")
    connection_stage = Column(String, nullable=False, default="none")
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "(request_status = 'pending' AND connection_stage = 'none')"
            " OR (request_status = 'approved' AND connection_stage IN"
            " ('accepted', 'questionnaire_sent', 'questionnaire_completed', 'connected'))"
            " OR (request_status = 'rejected' AND connection_stage = 'rejected')",
            name="ck_connection_request_state",
        ),
        Index("idx_connection_request_sender_id", "sender_id"),
        Index("idx_connection_request_receiver_id", "receiver_id"),
    )


class CustomQuestionnaire(Base):
    __tablename__ = "custom_questionnaire"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    request_id = Column(String(36), ForeignKey("connection_request.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(String(36), nullable=False)
    receiver_id = Column(String(36), nullable=False)
    questions = Column(JSON, nullable=False)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("request_id", "sender_id", name="uq_questionnaire_request_sender"),
        Index("idx_custom_questionnaire_request_id", "request_id"),
    )


class ConnectionEvent(Base):
    __tablename__ = "connection_event"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    request_id = Column(String(36), nullable=False, index=True)
    actor_user_id = Column(String(36), nullable=True)
    event_type = Column(String, nullable=False)
    from_stage = Column(String, nullable=True)
    to_stage = Column(String, nullable=True)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Notification(Base):
    __tablename__ = "notification"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(String(36), nullable=False)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String, nullable=True)
    payload = Column(JSON, nullable=False)
    dedupe_key = Column(String, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "dedupe_key", name="uq_notification_user_dedupe"),
        Index("idx_notification_user_created", "user_id", "created_at"),
    )


class ChatMessage(Base):
    __tablename__ = "chat_message"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    request_id = Column(String(36), ForeignKey("connection_request.id"), nullable=False)
    sender_id = Column(String(36), nullable=False)
    receiver_id = Column(String(36), nullable=False)
    body = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_chat_message_request_created", "request_id", "created_at"),
    )
