"""
Script: apppack_deploy/registry_auth.py
What: Gets a short-lived ECR login and hands it to CLI tools.
Doing: Calls `get_authorization_token`, decodes `user:password`, and runs `<tool> login --password-stdin`.
Why: Passwords in argv are visible to anyone who can list processes on the runner.
Goal: Log `docker` and `crane` into the registry once per run without exposing the secret.
"""

from __future__ import annotations

import base64
import binascii
from typing import Sequence

from botocore.exceptions import BotoCoreError, ClientError

from apppack_deploy.common import DeployError, PushError, run_cmd
from apppack_deploy.models import RegistryCredential


def decode_authorization_token(token: str, registry: str) -> RegistryCredential:
    """
    Split an ECR token into username and password.

    The token is base64 of `username:password`. Only the first `:` separates
    the two, so a password containing `:` survives.
    """
    try:
        decoded = base64.b64decode(token, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise PushError(f"Registry authorization token for {registry} is not valid base64") from exc

    username, separator, password = decoded.partition(":")
    if not separator or not username or not password:
        raise PushError(f"Registry authorization token for {registry} is not in user:password form")
    return RegistryCredential(registry=registry, username=username, password=password)


def get_registry_credential(ecr, registry: str) -> RegistryCredential:
    try:
        response = ecr.get_authorization_token()
    except (ClientError, BotoCoreError) as exc:
        raise PushError(f"Failed to get registry authorization for {registry}: {exc}") from exc

    authorization_data = response.get("authorizationData") or []
    token = str((authorization_data[0] if authorization_data else {}).get("authorizationToken") or "")
    if not token:
        raise PushError(f"Registry authorization response for {registry} has no token")
    return decode_authorization_token(token, registry)


def login(tool_args: Sequence[str], credential: RegistryCredential) -> None:
    """
    Log one CLI tool into the registry.

    `tool_args` is the login command without credentials, for example
    `["docker", "login"]` or `["/tmp/crane/crane", "auth", "login"]`.
    """
    command = [
        *tool_args,
        "--username",
        credential.username,
        "--password-stdin",
        credential.registry,
    ]
    try:
        run_cmd(command, input_text=credential.password)
    except DeployError as exc:
        raise PushError(f"Failed to log in to {credential.registry} with {tool_args[0]}: {exc}") from exc
    print(f"Logged in to {credential.registry} with {tool_args[0]}")
