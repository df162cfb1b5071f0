from datetime import datetime, timedelta

from utils.db import mongo
from utils.errors import BadRequest, NotFound
from utils.ids import optional_object_id, to_object_id

TASK_TYPES = ["assignment", "project", "quiz", "presentation", "research", "coding", "other"]
PRIORITIES = ["low", "medium", "high", "urgent"]
STATUSES = ["draft", "active", "not_started", "in_progress", "review", "completed", "done", "archived"]

UNSCHEDULED = "unscheduled"

# Fields of the task form that make a draft worth keeping
DRAFT_CONTENT_FIELDS = ("title", "description", "category")


class Task:

    @staticmethod
    def collection():
        return mongo.db.tasks

    def __init__(self, title, description, category, due_date, cohort_id=None,
                 task_type="assignment", priority="medium", status="active",
                 assignment_type="cohort", assigned_to=None, week_number=None, points=10,
                 start_date=None, estimated_hours=0, requirements=None, resources=None,
                 created_by=None, created_by_role=None, assigned_by=None,
                 created_at=None, updated_at=None):
        self.title = title.strip()
        self.description = description.strip()
        self.category = category.strip()
        self.due_date = due_date
        self.cohort_id = optional_object_id(cohort_id, "cohort ID")
        self.type = task_type or "assignment"
        self.priority = priority or "medium"
        self.status = status or "active"
        self.assignment_type = assignment_type
        self.assigned_to = [to_object_id(u, "user ID") for u in (assigned_to or [])]
        self.week_number = parse_week(week_number)
        self.points = int(points or 0)
        self.start_date = start_date or datetime.utcnow()
        self.estimated_hours = float(estimated_hours or 0)
        self.requirements = requirements or []
        self.resources = resources or []
        self.created_by = created_by
        self.created_by_role = created_by_role
        self.assigned_by = assigned_by
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def to_dict(self):
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "type": self.type,
            "status": self.status,
            "priority": self.priority,
            "assignmentType": self.assignment_type,
            "cohortId": self.cohort_id,
            "assignedTo": self.assigned_to,
            "weekNumber": self.week_number,
            "points": self.points,
            "dueDate": self.due_date,
            "startDate": self.start_date,
            "estimatedHours": self.estimated_hours,
            "actualHours": 0,
            "progress": 0,
            "requirements": self.requirements,
            "resources": self.resources,
            "createdBy": self.created_by,
            "createdByRole": self.created_by_role,
            "assignedBy": self.assigned_by,
            "isActive": True,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def save(self):
        return self.collection().insert_one(self.to_dict())

    @staticmethod
    def find_by_id(task_id, active_only=True):
        query = {"_id": to_object_id(task_id, "task ID")}
        if active_only:
            query["isActive"] = True
        return Task.collection().find_one(query)

    @staticmethod
    def group_by_week(tasks):
        """
        Sort tasks into week folders.

        Returns a list of folders ordered by week number, with tasks that have
        no week collected in a trailing "unscheduled" folder.
        """
        folders = {}
        for task in tasks:
            key = task.get("weekNumber")
            if key is None:
                key = UNSCHEDULED
            folder = folders.setdefault(key, {"week": key, "tasks": [], "taskCount": 0, "totalPoints": 0})
            folder["tasks"].append(task)
            folder["taskCount"] += 1
            folder["totalPoints"] += task.get("points") or 0

        numbered = sorted((k for k in folders if k != UNSCHEDULED))
        ordered = [folders[k] for k in numbered]
        if UNSCHEDULED in folders:
            ordered.append(folders[UNSCHEDULED])
        return ordered

    @staticmethod
    def move_to_week(task_id, week_number):
        """Drop a task into another week folder (None = unscheduled)."""
        task = Task.find_by_id(task_id)
        if not task:
            raise NotFound("Task not found")

        new_week = parse_week(week_number)
        old_week = task.get("weekNumber")
        if new_week == old_week:
            return task, False

        update = {"weekNumber": new_week, "updatedAt": datetime.utcnow()}
        update.update(week_dates(task, old_week, new_week))

        Task.collection().update_one({"_id": task["_id"]}, {"$set": update})
        task.update(update)
        return task, True


def parse_week(value):
    if value in (None, "", UNSCHEDULED):
        return None
    try:
        week = int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"Invalid week number: {value}")
    if week < 1:
        raise BadRequest("Week number must be 1 or greater")
    return week


def week_dates(task, old_week, new_week):
    """Date fields to change when a task moves between weeks."""
    if new_week is None:
        return {"weekStartDate": None, "weekEndDate": None}

    # dates only move when the cohort calendar is known
    cohort = None
    if task.get("cohortId"):
        cohort = mongo.db.cohorts.find_one({"_id": task["cohortId"]})
    if not cohort or not isinstance(cohort.get("startDate"), datetime):
        return {}

    due = task.get("dueDate")
    if old_week is not None and isinstance(due, datetime):
        shift = timedelta(weeks=new_week - old_week)
        changes = {"dueDate": due + shift}
        if isinstance(task.get("weekStartDate"), datetime):
            changes["weekStartDate"] = task["weekStartDate"] + shift
            changes["weekEndDate"] = task["weekStartDate"] + shift + timedelta(days=6)
        return changes

    start = cohort["startDate"] + timedelta(weeks=new_week - 1)
    return {"weekStartDate": start, "weekEndDate": start + timedelta(days=6), "dueDate": start + timedelta(days=6)}


class TaskDraft:
    """Unsaved task form contents, one per user."""

    @staticmethod
    def collection():
        return mongo.db.task_drafts

    @staticmethod
    def has_content(draft):
        return any(str(draft.get(field) or "").strip() for field in DRAFT_CONTENT_FIELDS)

    @staticmethod
    def get(user_id):
        doc = TaskDraft.collection().find_one({"userId": str(user_id)})
        if not doc:
            return None
        return {"draft": doc.get("draft", {}), "savedAt": doc.get("savedAt")}

    @staticmethod
    def save(user_id, draft):
        draft = {k: v for k, v in draft.items() if not k.startswith("_")}
        if not TaskDraft.has_content(draft):
            return None
        saved_at = datetime.utcnow()
        TaskDraft.collection().update_one(
            {"userId": str(user_id)},
            {"$set": {"draft": draft, "savedAt": saved_at}},
            upsert=True,
        )
        return saved_at

    @staticmethod
    def clear(user_id):
        TaskDraft.collection().delete_one({"userId": str(user_id)})
