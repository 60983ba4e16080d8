# error taxonomy shared by the orchestrator, the dialects and the HTTP layer
# every error carries the envelope code it is reported with

CODE_SUCCESS = 0
CODE_ERROR = 1
CODE_INVALID_PARAMS = 400
CODE_UNAUTHORIZED = 401
CODE_FORBIDDEN = 403
CODE_NOT_FOUND = 404
CODE_SERVER_ERROR = 500


class GenerationError(Exception):
    code = CODE_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidParams(GenerationError):
    code = CODE_INVALID_PARAMS


class Unauthorized(GenerationError):
    code = CODE_UNAUTHORIZED


class Forbidden(GenerationError):
    code = CODE_FORBIDDEN


class NotFound(GenerationError):
    code = CODE_NOT_FOUND


class InternalError(GenerationError):
    pass


class BuildError(InternalError):
    """Request body could not be serialized."""


# upstream-side faults, so the api can tell provider faults from user errors
class ProviderError(GenerationError):
    pass


class UpstreamError(ProviderError):
    def __init__(self, message: str, *, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class TransportError(ProviderError):
    pass


class ParseError(ProviderError):
    NO_CONTENT = "no_content"
    MALFORMED = "malformed"
    UPSTREAM = "upstream"

    def __init__(self, message: str, *, reason: str = NO_CONTENT) -> None:
        super().__init__(message)
        self.reason = reason


class ClientDisconnected(GenerationError):
    # the caller went away; the reply is never delivered
    code = CODE_ERROR
