from pydantic import BaseModel, Field
from typing import Optional, List, Dict


class PrioritySetting(BaseModel):
    enabled: bool = True
    frequency: int = Field(..., ge=1, le=3)
    times: List[str] = []  # slot labels: inicio, meio, fim


class PrioritySettingUpdate(BaseModel):
    enabled: Optional[bool] = None
    frequency: Optional[int] = Field(None, ge=1, le=3)


class ReminderSettingsUpdate(BaseModel):
    ALTA: Optional[PrioritySettingUpdate] = None
    MEDIA: Optional[PrioritySettingUpdate] = None
    BAIXA: Optional[PrioritySettingUpdate] = None


class ReminderPreview(BaseModel):
    inicio: str
    fim: str
    frequency: int
    times: List[str]


class ProcessResult(BaseModel):
    success: bool
    message: str
    processed: int = 0
    errors: int = 0
    total: int = 0


class ReminderStatus(BaseModel):
    pending_reminders: int
    future_reminders: int
    current_time: str


class ReminderResponse(BaseModel):
    id: str
    task_id: str
    user_id: str
    reminder_type: str
    scheduled_time: str
    sent: bool = False
    sent_at: Optional[str] = None

    class Config:
        from_attributes = True


ReminderSettings = Dict[str, PrioritySetting]
