class ScaleSimError(Exception):
    """Base exception for scalesim."""

    pass


class ClusterStateError(ScaleSimError):
    """Raised when a call to the cluster state store fails."""

    pass


class NotFoundError(ScaleSimError):
    """Raised when a pool, template unit or workload cannot be found."""

    pass


class ScoringMismatchError(NotFoundError):
    """Raised when a trial unit cannot be matched against any declared pool."""

    pass


class ConvergenceTimeoutError(ScaleSimError):
    """
    Raised when placement did not settle before the deadline.

    Carries the number of workload units still failing to place at the last poll.
    """

    def __init__(self, message: str, unscheduled: int, timeout: float):
        super().__init__(message)
        self.unscheduled = unscheduled
        self.timeout = timeout
