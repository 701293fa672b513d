from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Literal
from datetime import datetime


NotificationKind = Literal["success", "info", "warning", "error"]


class Notification(BaseModel):
    id: int
    user_id: int
    title: str
    body: str
    type: NotificationKind = "info"
    tag: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    read: bool = False
