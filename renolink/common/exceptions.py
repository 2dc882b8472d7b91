from fastapi import HTTPException, status


class RenoLinkException(HTTPException):
    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(RenoLinkException):
    def __init__(self, resource: str, resource_id: str | None = None):
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} '{resource_id}' not found"
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class PermissionDeniedError(RenoLinkException):
    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class BadRequestError(RenoLinkException):
    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_400_BAD_REQUEST)


class ConflictError(RenoLinkException):
    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_409_CONFLICT)


# ---------- Ledger ----------


class AlreadyUnlockedError(ConflictError):
    def __init__(self, project_id: str | None = None):
        detail = "You have already unlocked this project."
        if project_id:
            detail = f"You have already unlocked project '{project_id}'."
        super().__init__(detail)


class InsufficientCreditsError(RenoLinkException):
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            detail=f"Insufficient credits. You need {required} credits but have {available}.",
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
        )


class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: str | None = None):
        super().__init__("Project", project_id)


class StoreUnavailableError(RenoLinkException):
    def __init__(self, detail: str = "Data store is temporarily unavailable"):
        super().__init__(detail=detail, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class InvalidTransitionError(BadRequestError):
    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"Cannot transition {entity} from '{current}' to '{target}'")


class ContractorNotVerifiedError(PermissionDeniedError):
    def __init__(self):
        super().__init__("Your account must be verified to perform this action")
