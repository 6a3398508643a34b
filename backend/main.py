from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List
import logging
import os

from database import get_db, engine, Base
import models
import schemas
from auth.routes import router as auth_router
from auth.dependencies import get_current_user
from services.project_service import ProjectService
from services.task_service import TaskService
from services.comment_service import CommentService
from services.user_service import UserService

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Task Management API",
    description="Multi-user task tracking with projects, tasks, assignments and comments",
    version="1.0.0"
)

# CORS middleware for the browser client
cors_origins = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials="*" not in cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register authentication router
app.include_router(auth_router)


@app.on_event("startup")
def create_tables():
    """Create any missing tables on the configured database."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Report every invalid field of a request in one 400 response.

    Body: {"message": "<field>: <msg>; ...", "errors": [{"field", "message"}, ...]}
    """
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        errors.append(schemas.ErrorDetail(field=field, message=error.get("msg", "Invalid value")))

    logger.info(f"Validation failed for {request.method} {request.url.path}: {len(errors)} error(s)")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=schemas.ValidationErrorResponse(
            message="; ".join(f"{e.field}: {e.message}" if e.field else e.message for e in errors),
            errors=errors,
        ).model_dump(),
    )


def get_project_service(db: Session = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    return TaskService(db)


def get_comment_service(db: Session = Depends(get_db)) -> CommentService:
    return CommentService(db)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


@app.get("/health")
def health_check():
    return {"status": "healthy"}


# ============== Users ==============

@app.get("/api/user", response_model=List[schemas.UserSummary])
def list_users(
    current_user: models.User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """List every registered user (id and username only)."""
    logger.debug(f"User {current_user.id} listing users")
    return user_service.list_all()


# ============== Projects ==============

@app.get("/api/project", response_model=List[schemas.Project])
def list_projects(
    current_user: models.User = Depends(get_current_user),
    project_service: ProjectService = Depends(get_project_service)
):
    """List projects owned by the current user."""
    return project_service.list_owned(current_user.id)


@app.get("/api/project/visible", response_model=List[schemas.Project])
def list_visible_projects(
    current_user: models.User = Depends(get_current_user),
    project_service: ProjectService = Depends(get_project_service)
):
    """List owned projects plus projects where the user created or is assigned a task."""
    return project_service.list_visible(current_user.id)


@app.get("/api/project/{project_id}", response_model=schemas.Project)
def get_project(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    project_service: ProjectService = Depends(get_project_service)
):
    project = project_service.get_by_id(project_id, current_user.id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found or access denied.")
    return project


@app.post("/api/project", response_model=schemas.Project, status_code=status.HTTP_201_CREATED)
def create_project(
    project: schemas.ProjectCreate,
    current_user: models.User = Depends(get_current_user),
    project_service: ProjectService = Depends(get_project_service)
):
    """Create a new project owned by the current user."""
    return project_service.create(project, current_user.id)


@app.put("/api/project/{project_id}", response_model=schemas.MessageResponse)
def update_project(
    project_id: int,
    project_update: schemas.ProjectUpdate,
    current_user: models.User = Depends(get_current_user),
    project_service: ProjectService = Depends(get_project_service)
):
    """Update project (owner only)."""
    if not project_service.update(project_id, project_update, current_user.id):
        raise HTTPException(status_code=404, detail="Project not found or access denied.")
    return {"message": "Project successfully updated."}


@app.delete("/api/project/{project_id}", response_model=schemas.MessageResponse)
def delete_project(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    project_service: ProjectService = Depends(get_project_service)
):
    """Delete project with its tasks and comments (owner only)."""
    if not project_service.delete(project_id, current_user.id):
        raise HTTPException(status_code=404, detail="Project not found or access denied.")
    return {"message": "Project successfully deleted."}


# ============== Tasks ==============

@app.get("/api/task/project/{project_id}", response_model=List[schemas.Task])
def list_tasks_by_project(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service)
):
    logger.debug(f"User {current_user.id} listing tasks of project {project_id}")
    tasks = task_service.list_by_project(project_id)
    if tasks is None:
        raise HTTPException(status_code=404, detail="Project not found.")
    return tasks


@app.get("/api/task/{task_id}", response_model=schemas.TaskDetails)
def get_task(
    task_id: int,
    current_user: models.User = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service)
):
    task = task_service.get_by_id(task_id, current_user.id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found or no access.")
    return task


@app.post("/api/task", response_model=schemas.TaskDetails, status_code=status.HTTP_201_CREATED)
def create_task(
    task: schemas.TaskCreate,
    current_user: models.User = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service)
):
    """Create a new task; the current user becomes its creator."""
    created = task_service.create(task, current_user.id)
    if created is None:
        raise HTTPException(status_code=400, detail="Project not found or no access.")
    return created


@app.put("/api/task/{task_id}", response_model=schemas.MessageResponse)
def update_task(
    task_id: int,
    task_update: schemas.TaskUpdate,
    current_user: models.User = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service)
):
    if not task_service.update(task_id, task_update, current_user.id):
        raise HTTPException(status_code=404, detail="Task not found or no access.")
    return {"message": "Task updated successfully."}


@app.patch("/api/task/{task_id}/status", response_model=schemas.MessageResponse)
def update_task_status(
    task_id: int,
    status_update: schemas.TaskStatusUpdate,
    current_user: models.User = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service)
):
    if not task_service.update_status(task_id, status_update.status, current_user.id):
        raise HTTPException(status_code=404, detail="Task not found or no access.")
    return {"message": f"Task status updated to '{status_update.status.value}'."}


@app.patch("/api/task/{task_id}/assign", response_model=schemas.MessageResponse)
def assign_task(
    task_id: int,
    assignment: schemas.TaskAssign,
    current_user: models.User = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service)
):
    if not task_service.assign_user(task_id, assignment.user_id, current_user.id):
        raise HTTPException(status_code=404, detail="Task not found or user does not exist.")
    return {"message": "Task assigned to user successfully."}


@app.delete("/api/task/{task_id}", response_model=schemas.MessageResponse)
def delete_task(
    task_id: int,
    current_user: models.User = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service)
):
    if not task_service.delete(task_id, current_user.id):
        raise HTTPException(status_code=404, detail="Task not found or no access.")
    return {"message": "Task deleted successfully."}


# ============== Comments ==============

@app.get("/api/comment/task/{task_id}", response_model=List[schemas.Comment])
def list_comments(
    task_id: int,
    current_user: models.User = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    comments = comment_service.list_by_task(task_id, current_user.id)
    if comments is None:
        raise HTTPException(status_code=404, detail="Task not found, or you don't have access to this task.")
    return comments


@app.post("/api/comment", response_model=schemas.Comment, status_code=status.HTTP_201_CREATED)
def create_comment(
    comment: schemas.CommentCreate,
    current_user: models.User = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    created = comment_service.create(comment, current_user.id)
    if created is None:
        raise HTTPException(status_code=400, detail="Task not found or access denied.")
    return created


@app.delete("/api/comment/{comment_id}", response_model=schemas.MessageResponse)
def delete_comment(
    comment_id: int,
    current_user: models.User = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    """Delete a comment (author only)."""
    if not comment_service.delete(comment_id, current_user.id):
        raise HTTPException(status_code=404, detail="Comment not found or access denied.")
    return {"message": "Comment deleted."}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.environ.get("API_HOST", "0.0.0.0"),
        port=int(os.environ.get("API_PORT", "8000")),
    )
