from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LineSource(BaseModel):
    type: str  # user, group, room
    user_id: Optional[str] = Field(default=None, alias="userId")
    group_id: Optional[str] = Field(default=None, alias="groupId")
    room_id: Optional[str] = Field(default=None, alias="roomId")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @property
    def is_direct(self) -> bool:
        return self.type == "user"


class LineMentionee(BaseModel):
    index: Optional[int] = None
    length: Optional[int] = None
    type: Optional[str] = None  # user, all
    user_id: Optional[str] = Field(default=None, alias="userId")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class LineMention(BaseModel):
    mentionees: list[LineMentionee] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")


class LineMessage(BaseModel):
    id: Optional[str] = None
    type: str  # text, image, sticker, ...
    text: str = ""
    mention: Optional[LineMention] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("text", mode="before")
    @classmethod
    def _text_never_none(cls, value):
        return value or ""

    @property
    def is_text(self) -> bool:
        return self.type == "text"


class LineEvent(BaseModel):
    type: str  # message, follow, unfollow, join, postback, ...
    reply_token: Optional[str] = Field(default=None, alias="replyToken")
    source: Optional[LineSource] = None
    message: Optional[LineMessage] = None
    timestamp: Optional[int] = None
    mode: Optional[str] = None
    webhook_event_id: Optional[str] = Field(default=None, alias="webhookEventId")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @property
    def is_text_message(self) -> bool:
        return self.type == "message" and self.message is not None and self.message.is_text


class LineWebhookRequest(BaseModel):
    destination: Optional[str] = None
    events: list[LineEvent] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class LineProfile(BaseModel):
    user_id: Optional[str] = Field(default=None, alias="userId")
    display_name: str = Field(alias="displayName")
    picture_url: Optional[str] = Field(default=None, alias="pictureUrl")
    status_message: Optional[str] = Field(default=None, alias="statusMessage")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class OutboundTextMessage(BaseModel):
    type: Literal["text"] = "text"
    text: str

    model_config = ConfigDict(frozen=True)
