"""
FILE: lumina/core/constants.py
PURPOSE: Constants used throughout the application
EXPORTS:
  - CATEGORIES, PRIORITIES, PROJECT_STATUSES, PROJECT_COLORS
  - DEFAULT_PRIORITY, DEFAULT_COLOR, DEFAULT_STATUS
  - DATE_RANGES: Valid task due-date filters
  - Durable store keys (TASKS_KEY, PROJECTS_KEY, DB_STORAGE_KEY, ...)
  - THEMES, timer modes and durations, DEFAULT_WHEEL_OPTIONS
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - Centralized constants to avoid magic strings
  - Single source of truth for category/status values
"""

# Task category constants (temporal buckets)
CATEGORY_TODAY = "today"
CATEGORY_WEEK = "week"
CATEGORY_BACKLOG = "backlog"
CATEGORIES = (CATEGORY_TODAY, CATEGORY_WEEK, CATEGORY_BACKLOG)

# Task priority constants
PRIORITY_LOW = "low"
PRIORITY_MEDIUM = "medium"
PRIORITY_HIGH = "high"
PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)
DEFAULT_PRIORITY = PRIORITY_MEDIUM

# Project status constants
STATUS_ACTIVE = "active"
STATUS_ON_HOLD = "on-hold"
STATUS_COMPLETED = "completed"
PROJECT_STATUSES = (STATUS_ACTIVE, STATUS_ON_HOLD, STATUS_COMPLETED)
DEFAULT_STATUS = STATUS_ACTIVE

# Project colors (presentation only)
PROJECT_COLORS = ("slate", "sage", "amber", "rose")
DEFAULT_COLOR = "slate"

# Due-date filter ranges
DATE_RANGES = ("all", "overdue", "today", "week", "no-date")

# Durable store keys
TASKS_KEY = "lumina-tasks"
PROJECTS_KEY = "lumina-projects"
DB_STORAGE_KEY = "luminanote-sqlite-db"
THEME_KEY = "lumina-theme"
WHEEL_KEY = "lumina-wheel-options"
TIMER_KEY = "zen-timer"

# Theme
THEME_LIGHT = "light"
THEME_DARK = "dark"
THEMES = (THEME_LIGHT, THEME_DARK)

# Focus timer modes and their lengths in seconds
TIMER_FOCUS = "focus"
TIMER_BREAK = "break"
FOCUS_DURATION = 25 * 60
BREAK_DURATION = 5 * 60

# Decision wheel defaults: (id, label, color)
DEFAULT_WHEEL_OPTIONS = (
    ("opt-1", "Study", "#475569"),
    ("opt-2", "Exercise", "#64748b"),
    ("opt-3", "Read", "#6b7280"),
    ("opt-4", "Code", "#78716c"),
    ("opt-5", "Rest", "#84a98c"),
    ("opt-6", "Create", "#52525b"),
)

# ID prefixes for generated entity ids
TASK_ID_PREFIX = "task"
PROJECT_ID_PREFIX = "project"
