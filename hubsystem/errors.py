class HubSystemError(Exception):
    """Base error for domain failures raised by the service layer."""
    status_code = 400

    def __init__(self, message, status_code=None, details=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self):
        payload = {"success": False, "error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(HubSystemError):
    status_code = 400


class NotFoundError(HubSystemError):
    status_code = 404


class ForbiddenError(HubSystemError):
    status_code = 403


class ConflictError(HubSystemError):
    # Duplicate memberships/requests are reported as 400 like other bad requests
    status_code = 400
