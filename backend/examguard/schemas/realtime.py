"""
Frames exchanged over the ``/ws`` channel.

Inbound frames are parsed into one of the ``*Message`` models through the
``type`` discriminator; outbound events are built with the ``*Event`` models
and sent as ``model_dump(by_alias=True, mode="json")``.
"""
from pydantic import Field, TypeAdapter
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from .base import CamelModel
from .violation import Violation


class JoinExamMessage(CamelModel):
    type: Literal["join_exam"]
    session_id: str = Field(min_length=1)
    student_session_id: Optional[str] = None


class AdminConnectMessage(CamelModel):
    type: Literal["admin_connect"]


class ViolationMessage(CamelModel):
    type: Literal["violation"]
    violation_type: str
    details: Optional[str] = None
    warning_count: int = Field(default=0, ge=0)


InboundMessage = Annotated[
    Union[JoinExamMessage, AdminConnectMessage, ViolationMessage],
    Field(discriminator="type"),
]

inbound_message_adapter = TypeAdapter(InboundMessage)


class ViolationAlertEvent(CamelModel):
    type: Literal["violation_alert"] = "violation_alert"
    session_id: str
    student_session_id: Optional[str] = None
    violation_type: str
    details: Optional[str] = None
    warning_count: int
    timestamp: datetime


class ViolationCreatedEvent(CamelModel):
    type: Literal["violation_created"] = "violation_created"
    violation: Violation
    warning_count: int
    terminated: bool


class ForceLogoutEvent(CamelModel):
    type: Literal["force_logout"] = "force_logout"
    reason: str
