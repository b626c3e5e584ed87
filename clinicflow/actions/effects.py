"""Effect records produced by actions and the collaborator stores holding them."""
import asyncio
import orjson
import structlog
from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field
from ..adapters.base import BlobStore
from ..event_models import utcnow
from ..rules.models import new_id

log = structlog.get_logger()

NOTIFICATIONS_KEY = "workflow_notifications"
TASKS_KEY = "workflow_tasks"
FLAGS_KEY = "workflow_flags"
REMINDERS_KEY = "workflow_reminders"
EMAILS_KEY = "workflow_emails"
ROOM_ASSIGNMENTS_KEY = "room_assignments"
FILE_CATEGORIES_KEY = "workflow_file_categories"

# Public names of the readable collections
EFFECT_KEYS = {
    "notifications": NOTIFICATIONS_KEY,
    "tasks": TASKS_KEY,
    "flags": FLAGS_KEY,
    "reminders": REMINDERS_KEY,
    "emails": EMAILS_KEY,
    "room_assignments": ROOM_ASSIGNMENTS_KEY,
    "file_categories": FILE_CATEGORIES_KEY,
}

CREATED_BY = "workflow_automation"


class Notification(BaseModel):
    id: str = Field(default_factory=new_id)
    type: str = "workflow_notification"
    title: str = "Workflow Notification"
    message: str
    recipient: str | None = None
    method: str = "app_notification"
    priority: str = "medium"
    timestamp: datetime = Field(default_factory=utcnow)
    read: bool = False


class Task(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    description: str = ""
    assignee: str | None = None
    due_date: datetime | None = None
    priority: str = "medium"
    category: str = "workflow"
    status: str = "pending"
    created_at: datetime = Field(default_factory=utcnow)
    created_by: str = CREATED_BY


class Flag(BaseModel):
    id: str = Field(default_factory=new_id)
    record_id: str | None = None
    record_type: str
    flag: str
    color: str = "orange"
    message: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    created_by: str = CREATED_BY


class Reminder(BaseModel):
    id: str = Field(default_factory=new_id)
    type: str | None = None
    title: str = ""
    message: str = ""
    due_date: datetime | None = None
    assignee: str | None = None
    related_record_id: str | None = None
    status: str = "pending"
    created_at: datetime = Field(default_factory=utcnow)


class Email(BaseModel):
    id: str = Field(default_factory=new_id)
    to: str
    subject: str = ""
    body: str = ""
    template: str | None = None
    scheduled_for: datetime = Field(default_factory=utcnow)


class EffectStore:
    """
    Collaborator stores for produced effects.

    List-shaped collections (notifications, tasks, ...) are appended to;
    room assignments and file categories are maps keyed by record/file id.
    """

    def __init__(self, blob: BlobStore):
        self._blob = blob
        self._lock = asyncio.Lock()

    async def _read(self, key: str, default: Any) -> Any:
        raw = await self._blob.get(key)
        if raw is None:
            return default
        try:
            value = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            log.warning("effects.load_failed", key=key, error=str(e))
            return default
        if not isinstance(value, type(default)):
            log.warning("effects.load_failed", key=key, error="unexpected shape")
            return default
        return value

    async def append(self, key: str, record: BaseModel) -> None:
        """Append a record to a list-shaped collection."""
        async with self._lock:
            records = await self._read(key, [])
            records.append(record.model_dump(mode="json"))
            await self._blob.set(key, orjson.dumps(records))
        log.info("effect.stored", key=key, record_id=getattr(record, "id", None))

    async def assign_room(self, record_id: str, room_id: str) -> None:
        async with self._lock:
            assignments = await self._read(ROOM_ASSIGNMENTS_KEY, {})
            assignments[record_id] = room_id
            await self._blob.set(ROOM_ASSIGNMENTS_KEY, orjson.dumps(assignments))
        log.info("room.assigned", record_id=record_id, room_id=room_id)

    async def categorize_file(self, file_id: str, category: str, folder: str | None) -> None:
        async with self._lock:
            categories = await self._read(FILE_CATEGORIES_KEY, {})
            categories[file_id] = {"category": category, "folder": folder}
            await self._blob.set(FILE_CATEGORIES_KEY, orjson.dumps(categories))
        log.info("file.categorized", file_id=file_id, category=category, folder=folder)

    async def read(self, key: str) -> Any:
        """Read a collection as stored (list or map)."""
        default: Any = {} if key in (ROOM_ASSIGNMENTS_KEY, FILE_CATEGORIES_KEY) else []
        async with self._lock:
            return await self._read(key, default)
