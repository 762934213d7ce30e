"""Installer configuration read from the environment."""

import os
from collections.abc import Mapping

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError

from .exceptions import InstallerError

DEBUG_ENV = "DEBUG"
TIMEOUT_ENV = "TYPST_INSTALL_TIMEOUT"

_FALSE_VALUES = {"", "0", "false", "no", "off"}


class InstallerConfig(BaseModel):
    """Process-level settings (immutable)."""

    model_config = ConfigDict(frozen=True)

    debug: bool = False
    timeout: float = Field(default=30.0, gt=0)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "InstallerConfig":
        """
        Build configuration from environment variables.

        DEBUG enables diagnostic logging when set to anything but an empty or
        false-like value. TYPST_INSTALL_TIMEOUT sets the HTTP timeout in seconds.

        Raises:
            InstallerError: If TYPST_INSTALL_TIMEOUT is not a positive number
        """
        environ = os.environ if environ is None else environ

        values: dict[str, object] = {
            "debug": environ.get(DEBUG_ENV, "").strip().lower() not in _FALSE_VALUES,
        }
        if environ.get(TIMEOUT_ENV):
            values["timeout"] = environ[TIMEOUT_ENV]

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise InstallerError(
                f"Invalid {TIMEOUT_ENV}={environ.get(TIMEOUT_ENV)!r}: expected a positive number of seconds",
                context={"variable": TIMEOUT_ENV},
            ) from e
