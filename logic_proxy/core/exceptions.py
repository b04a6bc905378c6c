"""Authorization outcomes returned by the TMF API controllers."""


class ProxyError(Exception):
    """Denial of a proxied request.

    Controllers return instances of this class as the outcome of a check
    (``None`` meaning the request is allowed). It is raised internally to
    short-circuit a chain of checks and caught again at the entry points.

    Attributes:
        status: HTTP status code sent back to the caller
        message: Human-readable reason
    """

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"status": self.status, "message": self.message}

    def __eq__(self, other):
        if not isinstance(other, ProxyError):
            return NotImplemented
        return (self.status, self.message) == (other.status, other.message)

    def __hash__(self):
        return hash((self.status, self.message))

    def __repr__(self) -> str:
        return f"ProxyError({self.status}, {self.message!r})"
