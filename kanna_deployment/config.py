import typing
from collections import namedtuple
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional

from kanna_deployment.constants import (
    ARTIFACTS_DIR,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_CONFIRMATIONS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_VERIFICATION_BACKOFF,
    DEFAULT_VERIFICATION_RETRIES,
    MAX_VERIFICATION_BACKOFF,
)
from kanna_deployment.exceptions import KannaDeploymentError
from kanna_deployment.utils import _load_yaml


class VerificationSettings(NamedTuple):
    """How long to wait for a deployment to settle and how hard to push the explorer."""

    enabled: bool = True
    confirmations: int = DEFAULT_CONFIRMATIONS
    timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    retries: int = DEFAULT_VERIFICATION_RETRIES
    backoff: float = DEFAULT_VERIFICATION_BACKOFF
    max_backoff: float = MAX_VERIFICATION_BACKOFF


def _parse_verification(data: Optional[Dict]) -> VerificationSettings:
    data = data or dict()
    if not isinstance(data, dict):
        raise DeploymentConfig.Invalid("'verification' must be a mapping.")

    unknown = set(data) - set(VerificationSettings._fields)
    if unknown:
        raise DeploymentConfig.Invalid(
            f"Unknown verification setting(s): {', '.join(sorted(unknown))}"
        )

    settings = VerificationSettings(**data)
    if settings.confirmations < 1:
        raise DeploymentConfig.Invalid("'confirmations' must be at least 1.")
    if settings.timeout <= 0 or settings.poll_interval <= 0:
        raise DeploymentConfig.Invalid("'timeout' and 'poll_interval' must be positive.")
    if settings.retries < 1:
        raise DeploymentConfig.Invalid("'retries' must be at least 1.")
    if settings.backoff <= 0 or settings.max_backoff < settings.backoff:
        raise DeploymentConfig.Invalid("'backoff' must be positive and at most 'max_backoff'.")
    return settings


class DeploymentConfig:
    """
    Parameters of a deployment run on one network, loaded from a YAML params file:

        deployment:
          name: kanna-sepolia
          chain_id: 11155111
        artifacts:
          dir: ./kanna_deployment/artifacts/
          filename: sepolia.json
        verification:
          confirmations: 5
        constants:
          YIELD_REWARDS: 400000000000000000000000
    """

    class Invalid(KannaDeploymentError, ValueError):
        """Raised when the params file is malformed"""

    def __init__(
        self,
        name: str,
        chain_id: int,
        ledger_filepath: Path,
        verification: VerificationSettings = VerificationSettings(),
        constants: typing.Optional[Dict[str, Any]] = None,
        path: typing.Optional[Path] = None,
    ):
        self.name = name
        self.chain_id = chain_id
        self.ledger_filepath = ledger_filepath
        self.verification = verification
        self.path = path

        # Little trick to expose constants as attributes (e.g., config.constants.FOO)
        constants = constants or dict()
        for key in constants:
            if not key.isupper():
                raise self.Invalid(f"Constant '{key}' must be upper case.")
        self._constants = dict(constants)
        _Constants = namedtuple("_Constants", list(constants))
        self.constants = _Constants(**constants)

    def get_constant(self, name: str, default: Any = None) -> Any:
        return self._constants.get(name, default)

    def _copy(self, **kwargs) -> "DeploymentConfig":
        params = dict(
            name=self.name,
            chain_id=self.chain_id,
            ledger_filepath=self.ledger_filepath,
            verification=self.verification,
            constants=self._constants,
            path=self.path,
        )
        params.update(kwargs)
        return DeploymentConfig(**params)

    def with_constants(self, **overrides) -> "DeploymentConfig":
        """A copy of this config with some constants replaced (e.g. from command line options)."""
        constants = dict(self._constants)
        constants.update(overrides)
        return self._copy(constants=constants)

    def with_verification(self, **overrides) -> "DeploymentConfig":
        try:
            verification = _parse_verification({**self.verification._asdict(), **overrides})
        except TypeError as e:
            raise self.Invalid(f"Malformed verification settings: {e}")
        return self._copy(verification=verification)

    @classmethod
    def from_dict(cls, config: typing.Dict, path: typing.Optional[Path] = None) -> "DeploymentConfig":
        if not isinstance(config, dict):
            raise cls.Invalid("Params file must contain a mapping.")

        deployment = config.get("deployment")
        if not deployment:
            raise cls.Invalid("deployment is not set in params file.")

        name = deployment.get("name")
        if not name:
            raise cls.Invalid("deployment name is not set in params file.")

        chain_id = deployment.get("chain_id")
        if chain_id is None:
            raise cls.Invalid("chain_id is not set in params file.")
        try:
            chain_id = int(chain_id)
        except (TypeError, ValueError):
            raise cls.Invalid(f"chain_id '{chain_id}' is not an integer.")

        artifact_config = config.get("artifacts") or dict()
        artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
        filename = artifact_config.get("filename", f"{name}.json")

        try:
            verification = _parse_verification(config.get("verification"))
        except TypeError as e:
            raise cls.Invalid(f"Malformed verification settings: {e}")

        constants = config.get("constants") or dict()
        if not isinstance(constants, dict):
            raise cls.Invalid("'constants' must be a mapping.")

        return cls(
            name=name,
            chain_id=chain_id,
            ledger_filepath=artifact_dir / filename,
            verification=verification,
            constants=constants,
            path=path,
        )

    @classmethod
    def from_yaml(cls, filepath: Path) -> "DeploymentConfig":
        config = _load_yaml(filepath)
        return cls.from_dict(config, path=filepath)

    def validate_network(self, chain_id: int, is_local: bool) -> None:
        """Rejects a live run against a network other than the one the params file targets."""
        if chain_id != self.chain_id and not is_local:
            raise self.Invalid(
                f"chain_id in params file ({self.chain_id}) does not match "
                f"chain_id of current network ({chain_id})."
            )
