"""Deployment lifecycle.

    pending -> building -> success
                        -> failed

success and failed are terminal. A pending record may fail directly when the
attempt dies before the build starts.
"""

from app.core.exceptions import InvalidStateError
from app.modules.deployments.schemas import DeploymentStatus


class TransitionNotAllowed(InvalidStateError):
    def __init__(self, current: DeploymentStatus, target: DeploymentStatus):
        super().__init__(f"Deployment cannot move from '{current.value}' to '{target.value}'")
        self.current = current
        self.target = target


TERMINAL = {
    DeploymentStatus.SUCCESS,
    DeploymentStatus.FAILED,
}

# target status -> statuses it may be entered from
TRANSITIONS: dict[DeploymentStatus, set[DeploymentStatus]] = {
    DeploymentStatus.BUILDING: {DeploymentStatus.PENDING},
    DeploymentStatus.SUCCESS: {DeploymentStatus.BUILDING},
    DeploymentStatus.FAILED: {DeploymentStatus.PENDING, DeploymentStatus.BUILDING},
}


def check_transition(current: DeploymentStatus, target: DeploymentStatus) -> None:
    if current not in TRANSITIONS.get(target, set()):
        raise TransitionNotAllowed(current, target)


def is_terminal(status: DeploymentStatus) -> bool:
    return status in TERMINAL
