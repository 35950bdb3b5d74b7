class KannaDeploymentError(Exception):
    """Base class for every failure raised while deploying or verifying contracts."""


class DeploymentError(KannaDeploymentError):
    """Raised when a contract-creation (or wiring) transaction cannot be completed."""


class MockSetupError(KannaDeploymentError):
    """Raised when a mock contract cannot be deployed or programmed."""


class VerificationError(KannaDeploymentError):
    """Raised when the explorer rejects, or cannot be asked to accept, a verification."""


class VerificationPending(VerificationError):
    """The explorer has not indexed the contract yet; the request may be retried."""


class ConfirmationTimeout(VerificationError):
    """The deployment transaction did not reach the required confirmations in time."""
