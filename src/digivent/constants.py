"""Constants shared across the digivent resource layer."""

from __future__ import annotations

STATE_DIR_NAME = ".digivent"
CONFIG_FILE = "config.yaml"
STORE_DIR_NAME = "store"
WINDOWS_LOCK_BYTES = 1024

# Durable key naming: "<prefix>:<entity>" or "<prefix>:<entity>:<identity-id>".
STORAGE_KEY_PREFIX = "digivent"
SESSION_KEY = "session"

TASKS = "tasks"
EXPENSES = "expenses"
FEEDBACK = "feedback"
NOTIFICATIONS = "notifications"
EVENTS = "events"

ENTITY_TYPES = (EVENTS, TASKS, EXPENSES, FEEDBACK, NOTIFICATIONS)

# Navigation targets handed to the presentation layer.
SIGN_IN_PATH = "/login"
REGISTER_PATH = "/register"
FORBIDDEN_PATH = "/403"
MANAGEMENT_LANDING_PATH = "/admin/dashboard"
VOLUNTEER_LANDING_PATH = "/dashboard/volunteer"
AUTH_ONLY_SURFACES = frozenset({SIGN_IN_PATH, REGISTER_PATH})

DEFAULT_REMOTE_TIMEOUT = 15.0  # seconds
DEFAULT_AVATAR_URL = (
    "https://images.pexels.com/photos/415829/pexels-photo-415829.jpeg"
    "?auto=compress&cs=tinysrgb&w=100&h=100&fit=crop"
)

MIN_PASSWORD_LENGTH = 6
PROGRESS_IN_MOTION = 50
PROGRESS_DONE = 100
