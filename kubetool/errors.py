"""Error taxonomy for kubetool operations."""

from typing import Optional


class KubetoolError(Exception):
    """Base class for every error surfaced to the operator."""


class TransportError(KubetoolError):
    """A cluster call failed at the network or API level."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class DecodeError(KubetoolError):
    """A cluster response could not be decoded.

    The message is the raw response text so the operator sees what the
    cluster actually returned.
    """

    def __init__(self, raw: str):
        super().__init__(raw.strip())
        self.raw = raw


class NotFoundError(KubetoolError):
    """A named object does not exist."""


class ControllerNotFoundError(NotFoundError):
    """Replication controller not found."""

    def __init__(self, name: str, namespace: Optional[str] = None):
        where = f" in namespace {namespace}" if namespace else ""
        super().__init__(f"replication controller not found: {name}{where}")
        self.name = name
        self.namespace = namespace


class ContainerNotFoundError(NotFoundError):
    """Container not present in the controller's pod template."""

    def __init__(self, name: str):
        super().__init__(f"container not found: {name}")
        self.name = name


class EmptySetError(KubetoolError):
    """No pod matched the replication controller's selector."""

    def __init__(self, name: str):
        super().__init__(f"no pod found for replication controller {name}")
        self.name = name


class StabilityTimeoutError(KubetoolError):
    """The controller did not regain enough stable pods in time."""

    def __init__(self, name: str, available: int, required: int, attempts: int):
        super().__init__(
            f"RC {name} does not have enough stable pods "
            f"({available} available, more than {required} required "
            f"after {attempts} checks). Use --force to reload pods anyway"
        )
        self.name = name
        self.available = available
        self.required = required
        self.attempts = attempts


class UserAbortError(KubetoolError):
    """The operator declined the confirmation prompt."""

    def __init__(self, message: str = "aborted"):
        super().__init__(message)
