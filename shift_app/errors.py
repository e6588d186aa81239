class SchedulerError(ValueError):
    """Base for every error surfaced to the UI. The message is shown as-is."""
    kind = "error"


class NotFound(SchedulerError):
    kind = "not_found"


class PermissionDenied(SchedulerError):
    kind = "permission_denied"


class MalformedInput(SchedulerError):
    kind = "malformed"


class Conflict(SchedulerError):
    kind = "conflict"


class StoreError(SchedulerError):
    kind = "store"
