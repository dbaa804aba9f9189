"""User-related Pydantic schemas."""

from pydantic import BaseModel, Field

from .conversation import CurrentConversation


class UserProfile(BaseModel):
    """Relay account keyed by the Telegram user id."""

    user_id: int = Field(..., description="Stable Telegram user id")
    uuid: str = Field(..., description="Opaque public identifier used in share links")
    display_name: str = Field("", description="First name shown to link visitors")
    block_list: list[int] = Field(
        default_factory=list, description="Telegram ids this user refuses messages from"
    )
    current_conversation: CurrentConversation | None = Field(
        None, description="Pending outbound target, if any"
    )
    last_message: float | None = Field(
        None, description="Unix timestamp of the last captured outbound message"
    )
