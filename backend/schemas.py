from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime
from typing import Annotated, Optional, List
from enum import Enum


class TaskStatus(str, Enum):
    """
    Closed set of task states.

    ToDo -> InProgress -> Done is the intended flow, but any authorized
    caller may set any of the three values at any time.
    """
    ToDo = "ToDo"
    InProgress = "InProgress"
    Done = "Done"


def _reject_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_reject_blank)]


# Auth schemas
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=4, max_length=50, pattern=r"^[A-Za-z0-9_]+$")
    email: EmailStr
    password: NonBlankStr = Field(..., min_length=5, max_length=200)

    @field_validator("email", mode="wrap")
    @classmethod
    def email_as_submitted(cls, value, handler):
        # EmailStr lowercases the domain; store the address exactly as sent
        handler(value)
        if not 5 <= len(value) <= 100:
            raise ValueError("Email must be between 5 and 100 characters")
        return value


class RegisterResponse(BaseModel):
    username: str
    message: str = "User registered successfully"


class LoginRequest(BaseModel):
    username: NonBlankStr = Field(..., min_length=4, max_length=50)
    password: NonBlankStr = Field(..., min_length=5, max_length=200)


class TokenResponse(BaseModel):
    token: str


class MessageResponse(BaseModel):
    message: str


# User schemas
class UserSummary(BaseModel):
    """Directory entry: never carries email or password hash."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str


class UserProfile(UserSummary):
    email: str


# Comment schemas
class CommentCreate(BaseModel):
    text: NonBlankStr = Field(..., min_length=1, max_length=500)
    task_id: int


class Comment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    text: str
    task_id: int
    user_id: int
    username: Optional[str] = None
    created_date: datetime


# Task schemas
class TaskCreate(BaseModel):
    title: NonBlankStr = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    status: TaskStatus = TaskStatus.ToDo
    due_date: Optional[datetime] = None
    project_id: int
    assigned_user_id: Optional[int] = None


class TaskUpdate(BaseModel):
    title: Optional[NonBlankStr] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    assigned_user_id: Optional[int] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskAssign(BaseModel):
    user_id: int = Field(..., gt=0)


class TaskSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    project_id: int
    status: TaskStatus
    created_date: datetime
    due_date: Optional[datetime] = None
    created_by_user_id: int
    assigned_user_id: Optional[int] = None


class Task(TaskSummary):
    description: Optional[str] = None
    created_by_username: Optional[str] = None
    assigned_username: Optional[str] = None
    project_owner_id: int


class TaskDetails(Task):
    project_name: Optional[str] = None
    assigned_user_email: Optional[str] = None
    comments: List[Comment] = Field(default_factory=list)


# Project schemas
class ProjectCreate(BaseModel):
    name: NonBlankStr = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class ProjectUpdate(BaseModel):
    name: Optional[NonBlankStr] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class Project(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_date: datetime
    owner_id: int
    tasks: List[TaskSummary] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    message: str
    errors: List[ErrorDetail] = Field(default_factory=list)
