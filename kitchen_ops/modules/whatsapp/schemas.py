from pydantic import BaseModel, Field
from typing import Optional


class TaskNotificationData(BaseModel):
    """Task fields carried into a WhatsApp message. Accepts the camelCase keys the frontend sends."""
    task_id: Optional[str] = Field(None, alias="taskId")
    task_title: str = Field("Tarefa", alias="taskTitle")
    task_description: Optional[str] = Field(None, alias="taskDescription")
    project_name: str = Field("Projeto", alias="projectName")
    priority: str = "MEDIA"
    deadline: Optional[str] = None
    assigned_user_id: Optional[str] = Field(None, alias="assignedUserId")
    assigned_by_name: str = Field("Sistema", alias="assignedByName")
    reminder_type: Optional[str] = Field(None, alias="reminderType")

    class Config:
        populate_by_name = True


class SendNotificationRequest(BaseModel):
    task_data: Optional[TaskNotificationData] = Field(None, alias="taskData")

    class Config:
        populate_by_name = True


class ManualNotificationRequest(BaseModel):
    task_id: Optional[str] = Field(None, alias="taskId")
    assigned_user_id: Optional[str] = Field(None, alias="assignedUserId")
    assigned_by_name: Optional[str] = Field(None, alias="assignedByName")

    class Config:
        populate_by_name = True


class SendTestMessageRequest(BaseModel):
    user_id: Optional[str] = Field(None, alias="userId")

    class Config:
        populate_by_name = True


class SendTestNotificationRequest(BaseModel):
    task_id: Optional[str] = Field(None, alias="taskId")
    user_id: Optional[str] = Field(None, alias="userId")

    class Config:
        populate_by_name = True
