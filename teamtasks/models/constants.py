"""Constants for teamtasks.

This module centralizes the field names and bounds shared by the engine and the API.
"""

# Priority bounds (inclusive)
PRIORITY_MIN = 1
PRIORITY_MAX = 10

# Mutable task fields, as named in update payloads
FIELD_TITLE = "title"
FIELD_DESCRIPTION = "description"
FIELD_PRIORITY = "priority"
FIELD_STATUS = "status"
FIELD_DUE_DATE = "due_date"
FIELD_COLLABORATORS = "collaborators"
FIELD_FILE = "file"

TASK_FIELDS = frozenset({
    FIELD_TITLE,
    FIELD_DESCRIPTION,
    FIELD_PRIORITY,
    FIELD_STATUS,
    FIELD_DUE_DATE,
    FIELD_COLLABORATORS,
    FIELD_FILE,
})

COLLABORATOR_FIELDS = frozenset({FIELD_STATUS})

# Subtasks carry no attachment
SUBTASK_FIELDS = TASK_FIELDS - {FIELD_FILE}

# Bounded re-read attempts when a write loses an optimistic-concurrency race
DEFAULT_UPDATE_CONFLICT_RETRIES = 3
