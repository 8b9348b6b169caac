"""
Message Generator.

Builds notification text for reminder, overdue and completion events from a
task's type and priority. Three formats are produced:

- ``short``: one line, suitable for a push body or SMS-length preview
- ``full``: multi-line body used for email
- ``push``: title only

Template choice is delegated to a ``chooser`` callable so production can pick
at random while tests stay deterministic.
"""
import random
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from taskmanager.utils.time import format_local, to_naive_utc, utcnow

Chooser = Callable[[Sequence[str]], str]

TASK_TYPE_CONFIGS: Dict[str, Dict[str, Any]] = {
    "work": {
        "icon": "💼",
        "reminder_prefix": "Work Reminder",
        "overdue_prefix": "Work Task Overdue",
        "completion_prefix": "Work Completed",
        "reminder_templates": [
            'Time to focus on your work task: "{title}"',
            'Your work deadline is approaching: "{title}"',
            "Don't forget your work commitment: \"{title}\"",
            'Professional reminder: "{title}" needs attention',
        ],
        "overdue_templates": [
            'Work deadline missed! "{title}" requires immediate attention',
            'Professional priority: "{title}" is overdue',
            'Work task "{title}" needs urgent completion',
        ],
    },
    "personal": {
        "icon": "🏠",
        "reminder_prefix": "Personal Reminder",
        "overdue_prefix": "Personal Task Overdue",
        "completion_prefix": "Personal Goal Achieved",
        "reminder_templates": [
            "Personal reminder: Don't forget \"{title}\"",
            'Time for your personal task: "{title}"',
            'Your personal goal "{title}" is due soon',
            'Personal commitment reminder: "{title}"',
        ],
        "overdue_templates": [
            'Personal task overdue: "{title}" needs your attention',
            'Your personal commitment "{title}" is past due',
            'Personal reminder: "{title}" is waiting for completion',
        ],
    },
    "health": {
        "icon": "🏥",
        "reminder_prefix": "Health Reminder",
        "overdue_prefix": "Health Priority",
        "completion_prefix": "Health Goal Completed",
        "reminder_templates": [
            'Health reminder: Time for "{title}"',
            'Your wellness task "{title}" is due',
            "Health priority: Don't miss \"{title}\"",
            'Take care of yourself: "{title}" is scheduled now',
        ],
        "overdue_templates": [
            'Health priority overdue: "{title}" needs immediate attention',
            'Your wellness task "{title}" is past due - prioritize your health!',
            'Health reminder: "{title}" was missed - reschedule soon',
        ],
    },
    "finance": {
        "icon": "💰",
        "reminder_prefix": "Financial Reminder",
        "overdue_prefix": "Financial Urgent",
        "completion_prefix": "Financial Task Completed",
        "reminder_templates": [
            'Financial reminder: "{title}" is due',
            "Money matters: Don't forget \"{title}\"",
            'Financial deadline approaching: "{title}"',
            'Budget reminder: Time to handle "{title}"',
        ],
        "overdue_templates": [
            'Financial deadline missed! "{title}" needs immediate action',
            'Money matters: "{title}" is overdue - act now!',
            'Financial priority: "{title}" requires urgent attention',
        ],
    },
    "education": {
        "icon": "📚",
        "reminder_prefix": "Study Reminder",
        "overdue_prefix": "Study Task Overdue",
        "completion_prefix": "Learning Achievement",
        "reminder_templates": [
            'Study time: "{title}" is scheduled now',
            "Learning reminder: Don't miss \"{title}\"",
            'Educational goal: "{title}" is due',
            'Knowledge building: Time for "{title}"',
        ],
        "overdue_templates": [
            'Study deadline passed: "{title}" needs attention',
            'Learning goal overdue: Catch up on "{title}"',
            'Educational priority: "{title}" is past due',
        ],
    },
    "shopping": {
        "icon": "🛒",
        "reminder_prefix": "Shopping Reminder",
        "overdue_prefix": "Shopping Task Overdue",
        "completion_prefix": "Shopping Completed",
        "reminder_templates": [
            'Shopping reminder: Time to get "{title}"',
            "Don't forget to buy: \"{title}\"",
            'Shopping list alert: "{title}" is needed',
            'Purchase reminder: "{title}" is on your list',
        ],
        "overdue_templates": [
            'Shopping task overdue: Still need to get "{title}"',
            'Purchase reminder: "{title}" is still pending',
            'Shopping alert: "{title}" was supposed to be bought',
        ],
    },
    "meeting": {
        "icon": "🤝",
        "reminder_prefix": "Meeting Reminder",
        "overdue_prefix": "Meeting Missed",
        "completion_prefix": "Meeting Completed",
        "reminder_templates": [
            'Meeting alert: "{title}" is starting soon',
            'Conference reminder: "{title}" is scheduled now',
            "Don't miss your meeting: \"{title}\"",
            'Appointment alert: "{title}" is coming up',
        ],
        "overdue_templates": [
            'Meeting missed! "{title}" was scheduled earlier',
            'Appointment overdue: "{title}" needs rescheduling',
            'Conference alert: "{title}" was missed',
        ],
    },
    "deadline": {
        "icon": "⏰",
        "reminder_prefix": "Deadline Alert",
        "overdue_prefix": "DEADLINE MISSED",
        "completion_prefix": "Deadline Met",
        "reminder_templates": [
            'DEADLINE ALERT: "{title}" is due now!',
            'Critical deadline: "{title}" must be completed',
            'Time sensitive: "{title}" deadline approaching',
            'URGENT: "{title}" deadline is here',
        ],
        "overdue_templates": [
            'DEADLINE MISSED! "{title}" is overdue - URGENT ACTION REQUIRED',
            'CRITICAL: "{title}" deadline has passed!',
            'URGENT: "{title}" is past deadline - immediate action needed',
        ],
    },
    "appointment": {
        "icon": "📅",
        "reminder_prefix": "Appointment Reminder",
        "overdue_prefix": "Appointment Missed",
        "completion_prefix": "Appointment Completed",
        "reminder_templates": [
            'Appointment reminder: "{title}" is scheduled now',
            "Don't miss your appointment: \"{title}\"",
            'Upcoming appointment: "{title}"',
            'Scheduled appointment: "{title}" is starting',
        ],
        "overdue_templates": [
            'Appointment missed: "{title}" was scheduled earlier',
            'Missed appointment: "{title}" needs rescheduling',
            'Appointment alert: "{title}" was not attended',
        ],
    },
    "project": {
        "icon": "📋",
        "reminder_prefix": "Project Update",
        "overdue_prefix": "Project Behind Schedule",
        "completion_prefix": "Project Milestone",
        "reminder_templates": [
            'Project reminder: "{title}" milestone due',
            'Project alert: Time to work on "{title}"',
            'Project deadline: "{title}" needs attention',
            'Project progress: "{title}" is scheduled now',
        ],
        "overdue_templates": [
            'Project behind schedule: "{title}" is overdue',
            'Project deadline missed: "{title}" needs immediate focus',
            'Project alert: "{title}" milestone was missed',
        ],
    },
    "exercise": {
        "icon": "💪",
        "reminder_prefix": "Workout Reminder",
        "overdue_prefix": "Workout Missed",
        "completion_prefix": "Workout Completed",
        "reminder_templates": [
            'Workout time: "{title}" is scheduled now',
            'Fitness reminder: Time for "{title}"',
            "Exercise alert: Don't skip \"{title}\"",
            'Health goal: "{title}" workout is due',
        ],
        "overdue_templates": [
            'Workout missed: "{title}" was scheduled earlier',
            'Fitness goal behind: "{title}" was skipped',
            'Exercise reminder: Catch up on "{title}"',
        ],
    },
    "social": {
        "icon": "👥",
        "reminder_prefix": "Social Reminder",
        "overdue_prefix": "Social Commitment Missed",
        "completion_prefix": "Social Activity Completed",
        "reminder_templates": [
            'Social reminder: "{title}" is planned now',
            "Don't forget: \"{title}\" with friends/family",
            'Social commitment: "{title}" is scheduled',
            'Personal time: "{title}" is coming up',
        ],
        "overdue_templates": [
            'Social commitment missed: "{title}" was planned',
            'Social reminder: "{title}" was supposed to happen',
            'Personal time missed: "{title}" needs rescheduling',
        ],
    },
    "travel": {
        "icon": "✈️",
        "reminder_prefix": "Travel Reminder",
        "overdue_prefix": "Travel Task Overdue",
        "completion_prefix": "Travel Prepared",
        "reminder_templates": [
            'Travel reminder: "{title}" needs attention',
            "Trip preparation: Don't forget \"{title}\"",
            'Travel alert: "{title}" is due now',
            'Journey prep: Time for "{title}"',
        ],
        "overdue_templates": [
            'Travel task overdue: "{title}" still needs completion',
            'Trip preparation behind: "{title}" was missed',
            'Travel alert: "{title}" should have been done',
        ],
    },
    "maintenance": {
        "icon": "🔧",
        "reminder_prefix": "Maintenance Reminder",
        "overdue_prefix": "Maintenance Overdue",
        "completion_prefix": "Maintenance Completed",
        "reminder_templates": [
            'Maintenance due: "{title}" needs attention',
            'Upkeep reminder: Time for "{title}"',
            'Maintenance alert: "{title}" is scheduled',
            'Service reminder: "{title}" is due now',
        ],
        "overdue_templates": [
            'Maintenance overdue: "{title}" needs immediate attention',
            'Service alert: "{title}" is past due',
            'Maintenance behind: "{title}" was missed',
        ],
    },
    "other": {
        "icon": "📝",
        "reminder_prefix": "Task Reminder",
        "overdue_prefix": "Task Overdue",
        "completion_prefix": "Task Completed",
        "reminder_templates": [
            'Reminder: "{title}" is due now',
            "Don't forget: \"{title}\"",
            'Task alert: "{title}" needs completion',
            'Scheduled task: "{title}" is ready',
        ],
        "overdue_templates": [
            'Task overdue: "{title}" needs attention',
            'Missed task: "{title}" is past due',
            'Overdue alert: "{title}" requires completion',
        ],
    },
}

PRIORITY_MODIFIERS: Dict[str, Dict[str, str]] = {
    "urgent": {"prefix": "🚨 URGENT", "suffix": "- ACT NOW!", "emphasis": "⚠️⚠️⚠️"},
    "high": {"prefix": "⚡ HIGH PRIORITY", "suffix": "- Important!", "emphasis": "⚠️⚠️"},
    "medium": {"prefix": "", "suffix": "", "emphasis": "⚠️"},
    "low": {"prefix": "📌", "suffix": "- When convenient", "emphasis": ""},
}

COMPLETION_TEMPLATES: List[str] = [
    'Congratulations! "{title}" has been completed successfully! 🎉',
    'Well done! "{title}" is now complete! ✅',
    'Task accomplished! "{title}" has been finished! 👏',
    'Success! "{title}" is checked off your list! 🌟',
    'Great job! "{title}" has been completed! 💪',
]


def _field(task: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a model instance or a plain mapping."""
    if isinstance(task, dict):
        value = task.get(name, default)
    else:
        value = getattr(task, name, default)
    return default if value is None else value


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_time_until(due_date: datetime, now: datetime) -> str:
    """Breakdown of the time left until ``due_date``; ``Overdue`` once it has passed."""
    seconds = int((to_naive_utc(due_date) - now).total_seconds())
    if seconds <= 0:
        return "Overdue"

    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60

    if days > 0:
        return f"{_plural(days, 'day')}, {_plural(hours, 'hour')}"
    if hours > 0:
        return f"{_plural(hours, 'hour')}, {_plural(minutes, 'minute')}"
    return _plural(minutes, "minute")


def format_overdue_duration(due_date: datetime, now: datetime) -> str:
    """How long ago ``due_date`` passed; ``Not overdue`` if it is still ahead."""
    seconds = int((now - to_naive_utc(due_date)).total_seconds())
    if seconds <= 0:
        return "Not overdue"

    days, rest = divmod(seconds, 86400)
    hours = rest // 3600

    if days > 0:
        return f"{_plural(days, 'day')} and {_plural(hours, 'hour')}"
    return _plural(hours, "hour")


class MessageGenerator:
    """Generates notification text based on task type and priority."""

    def __init__(
        self,
        chooser: Optional[Chooser] = None,
        clock: Callable[[], datetime] = utcnow,
        tz=None,
    ):
        self.choose = chooser or random.choice
        self.clock = clock
        self.tz = tz

    def get_task_type_config(self, task_type: Optional[str]) -> Dict[str, Any]:
        return TASK_TYPE_CONFIGS.get(task_type or "other", TASK_TYPE_CONFIGS["other"])

    def get_available_task_types(self) -> List[str]:
        return list(TASK_TYPE_CONFIGS.keys())

    def _priority(self, task: Any) -> Dict[str, str]:
        return PRIORITY_MODIFIERS.get(_field(task, "priority", "medium"), PRIORITY_MODIFIERS["medium"])

    def _render(self, templates: Sequence[str], task: Any) -> str:
        return self.choose(templates).replace("{title}", str(_field(task, "title", "Untitled task")))

    def _display_due(self, task: Any) -> Optional[str]:
        due_date = _field(task, "due_date")
        return format_local(due_date, self.tz) if due_date else None

    def generate_reminder_message(self, task: Any, message_type: str = "full") -> str:
        """Generate reminder message for a task."""
        config = self.get_task_type_config(_field(task, "type"))
        priority = self._priority(task)
        basic_message = self._render(config["reminder_templates"], task)

        priority_prefix = f"{priority['prefix']} " if priority["prefix"] else ""
        priority_suffix = f" {priority['suffix']}" if priority["suffix"] else ""
        due_display = self._display_due(task)

        if message_type == "short":
            due_part = f" Due: {due_display}" if due_display else ""
            return f"{config['icon']} {priority_prefix}{basic_message}{priority_suffix}{due_part}"
        if message_type == "push":
            return f"{config['icon']} {priority_prefix}{config['reminder_prefix']}"

        lines = [f"{config['icon']} {priority_prefix}{config['reminder_prefix']}", "", basic_message, ""]
        description = _field(task, "description")
        if description:
            lines += [f"Description: {description}", ""]
        if due_display:
            lines.append(f"Due Date: {due_display}")
            lines.append(f"Time Remaining: {format_time_until(_field(task, 'due_date'), self.clock())}")
        lines.append(f"Priority: {str(_field(task, 'priority', 'medium')).upper()}")
        tags = _field(task, "tags", [])
        if tags:
            lines.append(f"Tags: {', '.join(tags)}")
        lines += ["", f"{priority['emphasis']}{priority_suffix}"]
        return "\n".join(lines).strip()

    def generate_overdue_message(self, task: Any, message_type: str = "full") -> str:
        """Generate overdue alert message for a task."""
        config = self.get_task_type_config(_field(task, "type"))
        priority = self._priority(task)
        basic_message = self._render(config["overdue_templates"], task)

        due_date = _field(task, "due_date")
        due_display = self._display_due(task)
        overdue_by = format_overdue_duration(due_date, self.clock()) if due_date else None

        if message_type == "short":
            if due_display:
                return f"{config['icon']} 🚨 {basic_message} Was due: {due_display}. {overdue_by} overdue!"
            return f"{config['icon']} 🚨 {basic_message}"
        if message_type == "push":
            return f"{config['icon']} 🚨 {config['overdue_prefix']}"

        lines = [f"{config['icon']} 🚨 {config['overdue_prefix']}", "", basic_message, ""]
        description = _field(task, "description")
        if description:
            lines += [f"Description: {description}", ""]
        if due_display:
            lines.append(f"Was Due: {due_display}")
            lines.append(f"Overdue By: {overdue_by}")
        lines.append(f"Priority: {str(_field(task, 'priority', 'medium')).upper()}")
        tags = _field(task, "tags", [])
        if tags:
            lines.append(f"Tags: {', '.join(tags)}")
        lines += ["", "🚨 This task requires immediate attention! 🚨"]
        if priority["suffix"]:
            lines.append(f"{priority['emphasis']} {priority['suffix']}")
        return "\n".join(lines).strip()

    def generate_completion_message(self, task: Any, message_type: str = "full") -> str:
        """Generate completion message for a task."""
        task_type = _field(task, "type", "other")
        config = self.get_task_type_config(task_type)
        basic_message = self._render(COMPLETION_TEMPLATES, task)

        if message_type == "short":
            return f"{config['icon']} ✅ {basic_message}"
        if message_type == "push":
            return f"{config['icon']} ✅ {config['completion_prefix']}"

        lines = [f"{config['icon']} ✅ {config['completion_prefix']}", "", basic_message, ""]
        description = _field(task, "description")
        if description:
            lines += [f"Task: {description}", ""]
        completed_at = _field(task, "completed_at") or self.clock()
        lines.append(f"Completed: {format_local(completed_at, self.tz)}")
        lines.append(f"Type: {task_type}")
        lines.append(f"Priority: {str(_field(task, 'priority', 'medium')).upper()}")
        lines += ["", "Keep up the great work! 🎯"]
        return "\n".join(lines).strip()

    def generate(self, event_type: str, task: Any, message_type: str = "full") -> str:
        """Dispatch to the generator for ``event_type``; unknown events read as reminders."""
        if event_type == "overdue":
            return self.generate_overdue_message(task, message_type)
        if event_type == "completion":
            return self.generate_completion_message(task, message_type)
        return self.generate_reminder_message(task, message_type)
