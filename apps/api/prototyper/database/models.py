"""SQLModel database tables.

Tables:
- User: owners of prompts
- Prompt: one request to generate a UI component, with its build state
- PromptEvent: append-only lifecycle events per prompt
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Text
from sqlmodel import Field, SQLModel

from prototyper.schemas import PromptStatus


# Maximum stored length of a failure reason
FAILURE_REASON_MAX_LENGTH = 2000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


# =============================================================================
# User Model
# =============================================================================

class User(SQLModel, table=True):
    """Authenticated owner of prompts."""

    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(sa_column=Column(String(255), unique=True, index=True, nullable=False))
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))


# =============================================================================
# Prompt Model
# =============================================================================

class Prompt(SQLModel, table=True):
    """A submitted prompt and everything its builds produced."""

    __tablename__ = "prompts"
    __table_args__ = (
        Index("ix_prompts_user_updated", "user_id", "updated_at"),
        Index("ix_prompts_status_updated", "status", "updated_at"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(
        sa_column=Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    )

    # Request
    prompt_text: str = Field(sa_column=Column(Text, nullable=False))
    title: str = Field(sa_column=Column(String(255), nullable=False))

    # Status
    status: str = Field(default=PromptStatus.PENDING.value, sa_column=Column(String(32), nullable=False))
    generation_handle: Optional[str] = Field(default=None, sa_column=Column(String(255)))
    failure_reason: Optional[str] = Field(default=None, sa_column=Column(Text))

    # Build output
    generated_source: Optional[str] = Field(default=None, sa_column=Column(Text))
    compiled_artifact: Optional[str] = Field(default=None, sa_column=Column(Text))
    preview_slug: Optional[str] = Field(default=None, sa_column=Column(String(128), index=True))
    sandbox_config: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))


# =============================================================================
# PromptEvent Model
# =============================================================================

class PromptEvent(SQLModel, table=True):
    """Append-only lifecycle event. Never updated after insertion."""

    __tablename__ = "prompt_events"
    __table_args__ = (
        Index("ix_prompt_events_prompt_created", "prompt_id", "created_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    prompt_id: str = Field(
        sa_column=Column(String, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False)
    )
    level: str = Field(sa_column=Column(String(16), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    context: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
