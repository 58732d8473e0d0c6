from __future__ import annotations

import math

from flask import Blueprint, g, jsonify, request
from sqlalchemy import func

from models import storage
from models.schemas.task import TaskCreateSchema, TaskOutSchema, TaskQuerySchema, TaskUpdateSchema
from models.task import Task
from utils.decorators import jwt_required
from utils.errors import NotFound

bp = Blueprint("tasks", __name__, url_prefix="/tasks")

# Schemas
task_create_schema = TaskCreateSchema()
task_update_schema = TaskUpdateSchema()
task_query_schema = TaskQuerySchema()
task_out_schema = TaskOutSchema()
tasks_out_schema = TaskOutSchema(many=True)


def owned_task(task_id: str) -> Task:
    """A task owned by someone else is reported exactly like a missing one."""
    session = storage.get_session()
    task = session.query(Task).filter(Task.id == task_id, Task.user_id == g.current_user.user_id).first()
    if not task:
        raise NotFound("Task not found")
    return task


def apply_filters(query, status: str, search: str | None):
    if status == "completed":
        query = query.filter(Task.completed.is_(True))
    elif status == "pending":
        query = query.filter(Task.completed.is_(False))

    term = (search or "").strip()
    if term:
        # Case-insensitive substring match on the title; % and _ match literally
        query = query.filter(func.lower(Task.title).contains(term.lower(), autoescape=True))
    return query


@bp.get("")
@jwt_required()
def list_tasks():
    """
    List the caller's tasks with pagination, status filter and search
    ---
    tags:
      - Tasks
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 10
        maximum: 100
      - in: query
        name: status
        type: string
        enum: [all, completed, pending]
        default: all
      - in: query
        name: search
        type: string
        description: "Case-insensitive substring search on title"
    responses:
      200:
        description: Tasks, newest first, with pagination metadata
      400:
        description: Invalid query parameters
    """
    params = task_query_schema.load(request.args)
    page, limit = params["page"], params["limit"]

    session = storage.get_session()
    query = session.query(Task).filter(Task.user_id == g.current_user.user_id)
    query = apply_filters(query, params["status"], params["search"])

    total = query.count()
    rows = (
        query.order_by(Task.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return jsonify(
        {
            "tasks": tasks_out_schema.dump(rows),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit),
            },
        }
    )


@bp.post("")
@jwt_required()
def create_task():
    """
    Create a task
    ---
    tags:
      - Tasks
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [title]
          properties:
            title: { type: string, maxLength: 500 }
    responses:
      201:
        description: Created
      400:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = task_create_schema.load(payload)

    task = Task(title=data["title"], completed=False, user_id=g.current_user.user_id)
    task.save()
    return jsonify(task_out_schema.dump(task)), 201


@bp.get("/<task_id>")
@jwt_required()
def get_task(task_id: str):
    """
    Get a single task by id
    ---
    tags:
      - Tasks
    security:
      - Bearer: []
    parameters:
      - in: path
        name: task_id
        type: string
        required: true
    responses:
      200:
        description: Task found
      404:
        description: Not found
    """
    return jsonify(task_out_schema.dump(owned_task(task_id)))


@bp.patch("/<task_id>")
@jwt_required()
def update_task(task_id: str):
    """
    Update a task (partial)
    ---
    tags:
      - Tasks
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: path
        name: task_id
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            title: { type: string, maxLength: 500 }
            completed: { type: boolean }
    responses:
      200:
        description: Updated
      400:
        description: Validation error
      404:
        description: Not found
    """
    payload = request.get_json(silent=True) or {}
    data = task_update_schema.load(payload)
    task = owned_task(task_id)

    for field in ["title", "completed"]:
        if field in data:
            setattr(task, field, data[field])

    task.save()
    return jsonify(task_out_schema.dump(task))


@bp.delete("/<task_id>")
@jwt_required()
def delete_task(task_id: str):
    """
    Delete a task
    ---
    tags:
      - Tasks
    security:
      - Bearer: []
    parameters:
      - in: path
        name: task_id
        type: string
        required: true
    responses:
      204:
        description: Deleted
      404:
        description: Not found
    """
    task = owned_task(task_id)
    task.delete()
    storage.save()
    return ("", 204)


@bp.patch("/<task_id>/toggle")
@jwt_required()
def toggle_task(task_id: str):
    """
    Flip a task's completed flag
    ---
    tags:
      - Tasks
    security:
      - Bearer: []
    parameters:
      - in: path
        name: task_id
        type: string
        required: true
    responses:
      200:
        description: Toggled
      404:
        description: Not found
    """
    task = owned_task(task_id)
    task.completed = not task.completed
    task.save()
    return jsonify(task_out_schema.dump(task))
