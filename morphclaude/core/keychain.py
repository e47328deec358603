# morphclaude/core/keychain.py
"""
Credential lookup. Environment variables win over the OS keychain, which is
accessed through `keyring` under the service name "morphllm".
"""

import getpass
import os
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

SERVICE = "morphllm"
ENV_KEYS = ("MORPH_LLM_API_KEY", "MORPH_API_KEY")


def env_api_key() -> Optional[str]:
    for name in ENV_KEYS:
        value = os.environ.get(name)
        if value:
            return value
    return None


def get_api_key(account: str) -> Optional[str]:
    """
    Return the API key for `account`, or None when nothing is stored.

    A keyring backend that is missing or broken counts as "nothing stored";
    the caller decides whether a missing key is fatal.
    """
    key = env_api_key()
    if key:
        return key
    if not account:
        return None
    try:
        return keyring.get_password(SERVICE, account)
    except KeyringError:
        return None


def set_api_key(account: str, key: str) -> None:
    """Store the key in the keychain. No-op while an env override is active."""
    if env_api_key():
        return
    keyring.set_password(SERVICE, account, key)


def delete_api_key(account: str) -> None:
    if env_api_key():
        return
    try:
        keyring.delete_password(SERVICE, account)
    except PasswordDeleteError:
        pass


def default_account() -> str:
    return getpass.getuser()
