"""Error taxonomy for board operations.

Services raise these at the point of detection; the app-level error
handler in create_app() rolls back the session and turns them into
``{"error": message}`` JSON with the class's status code.

All errors subclass ValueError so callers that only care about
"the input was rejected" can keep catching ValueError.
"""


class BoardError(ValueError):
    """Base class for user-facing board errors."""

    status_code = 400
    default_message = "The request could not be completed."

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    @property
    def message(self):
        return self.args[0]


# ─── Validation (400) ────────────────────────────────────────────

class ValidationError(BoardError):
    status_code = 400
    default_message = "Invalid input."


class InvalidLaneId(ValidationError):
    default_message = (
        "Lane ids must use letters, numbers, and underscore, "
        "and start with a letter."
    )


class EmptyLaneList(ValidationError):
    default_message = "At least one lane is required."


class LaneNameRequired(ValidationError):
    default_message = "Lane name is required."


class DuplicateLaneId(ValidationError):
    default_message = "Lane ids must be unique."


class DuplicateLaneName(ValidationError):
    default_message = "Lane names must be unique."


class MissingCoreLane(ValidationError):
    default_message = "A required lane is missing."


class CoreLaneRenamed(ValidationError):
    default_message = "Required lanes cannot be renamed."


class MissingDestinationMapping(ValidationError):
    default_message = "Choose a destination lane for tasks in removed lanes."


class InvalidDestination(ValidationError):
    default_message = "Tasks must be moved to a lane that is being kept."


# ─── Authorization (403) ─────────────────────────────────────────

class AuthorizationError(BoardError):
    status_code = 403
    default_message = "You are not allowed to do that."


class NotAMember(AuthorizationError):
    default_message = "You do not have access to this project."


class Forbidden(AuthorizationError):
    default_message = "Only project owners or admins can do that."


class LastOwner(AuthorizationError):
    default_message = "A project must keep at least one owner."


# ─── Not found (404) ─────────────────────────────────────────────

class NotFoundError(BoardError):
    status_code = 404
    default_message = "Not found."


class ProjectNotFound(NotFoundError):
    default_message = "Project not found."


class TaskNotFound(NotFoundError):
    default_message = "Task not found."


class MemberNotFound(NotFoundError):
    default_message = "Target member does not exist."


class UserNotFound(NotFoundError):
    default_message = "No registered user was found for that email address."


# ─── State (409) ─────────────────────────────────────────────────

class StateError(BoardError):
    status_code = 409
    default_message = "The request conflicts with the current state."


class InvalidLane(StateError):
    default_message = "The selected lane is not configured for this project."


class DuplicateMapping(StateError):
    default_message = "Each removed lane can only be mapped once."


class AlreadyMember(StateError):
    default_message = "This user is already a project member."
