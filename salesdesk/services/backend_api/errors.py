class ApiError(Exception):
    """Base class for anything that went wrong talking to the REST backend."""

    default_message = "The server could not complete the request."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BackendUnavailable(ApiError):
    default_message = "The server is unreachable. Please try again."


class BackendResponseError(ApiError):
    def __init__(self, status_code, message=None):
        self.status_code = status_code
        super().__init__(message or f"The server responded with status {status_code}.")

    @property
    def is_client_error(self):
        return 400 <= self.status_code < 500
