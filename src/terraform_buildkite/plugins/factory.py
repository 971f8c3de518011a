"""Turn configuration entries into live adapter instances."""

from collections.abc import Sequence
from typing import Any

from terraform_buildkite.contracts import AdapterConfigError
from terraform_buildkite.core.config import OutputSettings, ValidationSettings
from terraform_buildkite.core.logging import get_logger
from terraform_buildkite.plugins.manager import PluginManager, default_manager
from terraform_buildkite.plugins.protocols import OutputerProtocol, ValidatorProtocol

logger = get_logger(__name__)


def to_validators(
    specs: Sequence[ValidationSettings],
    *,
    manager: PluginManager | None = None,
) -> list[ValidatorProtocol]:
    """Build one validator per validation entry, in order.

    Raises:
        AdapterConfigError: If an entry selects no known validator
    """
    pm = manager or default_manager()
    validators: list[ValidatorProtocol] = []
    for index, spec in enumerate(specs):
        kind = spec.kind
        if kind is None:
            logger.error("no validator type specified", index=index)
            raise AdapterConfigError(f"no validator type specified for validation #{index}")
        cls: Any = pm.get_validator_by_name(kind)
        if cls is None:
            raise AdapterConfigError(f"unknown validator type: {kind}")
        validators.append(cls.from_settings(getattr(spec, kind)))
        logger.debug("created validator", index=index, type=kind)
    return validators


def to_outputers(
    specs: Sequence[OutputSettings],
    *,
    agent: Any = None,
    manager: PluginManager | None = None,
) -> list[OutputerProtocol]:
    """Build one outputer per output entry, in order.

    Raises:
        AdapterConfigError: If an entry selects no known outputer
    """
    pm = manager or default_manager()
    outputers: list[OutputerProtocol] = []
    for index, spec in enumerate(specs):
        kind = spec.kind
        if kind is None:
            logger.error("no output type specified", index=index)
            raise AdapterConfigError(f"no output type specified for output #{index}")
        cls: Any = pm.get_outputer_by_name(kind)
        if cls is None:
            raise AdapterConfigError(f"unknown output type: {kind}")
        outputers.append(cls.from_settings(getattr(spec, kind), agent=agent))
        logger.debug("created outputer", index=index, type=kind)
    return outputers
