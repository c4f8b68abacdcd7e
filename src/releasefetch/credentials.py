"""
Bearer credential handling.

Only the outermost entry point reads the environment; everything below it
receives a Credential explicitly.
"""

import os
from typing import Mapping, Optional

from releasefetch.constants import TOKEN_ENV_VAR
from releasefetch.exceptions import MissingCredentialError
from releasefetch.log_utils import logger
from releasefetch.models import Credential


def credential_from_env(
    env_var: str = TOKEN_ENV_VAR,
    environ: Optional[Mapping[str, str]] = None,
) -> Credential:
    """
    Read the bearer credential from the environment.

    Parameters:
        env_var (str): Name of the variable holding the token.
        environ (Optional[Mapping[str, str]]): Mapping to read instead of os.environ.

    Returns:
        Credential: The token with surrounding whitespace removed.

    Raises:
        MissingCredentialError: If the variable is unset, empty or whitespace-only.
    """
    source = os.environ if environ is None else environ
    token = (source.get(env_var) or "").strip()
    if not token:
        raise MissingCredentialError(env_var)
    logger.debug(f"Using credential from {env_var}")
    return Credential(token=token, source=env_var)


def require_credential(
    credential: Optional[Credential], env_var: str = TOKEN_ENV_VAR
) -> Credential:
    """
    Ensure a usable credential was supplied before any network call.

    Raises:
        MissingCredentialError: If `credential` is None or blank.
    """
    if not credential:
        env_name = env_var
        if credential is not None and credential.source != "explicit":
            env_name = credential.source
        raise MissingCredentialError(env_name)
    return credential
