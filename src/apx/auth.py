"""Look up API tokens for atom.io and GitHub from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from .constants import ApxError


class Token(str, Enum):
    ATOMIO = "atomio"
    GITHUB = "github"


@dataclass(frozen=True)
class TokenDetails:
    env: str
    service: str


_TOKENS: dict[Token, TokenDetails] = {
    Token.ATOMIO: TokenDetails(env="ATOM_ACCESS_TOKEN", service="atom.io"),
    Token.GITHUB: TokenDetails(env="GITHUB_AUTH_TOKEN", service="GitHub"),
}


def token_details(token: Token) -> TokenDetails:
    return _TOKENS[token]


def token_in_env(token: Token, environ: Optional[Mapping[str, str]] = None) -> bool:
    environ = os.environ if environ is None else environ
    return isinstance(environ.get(token_details(token).env), str)


def get_token(token: Token, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    environ = os.environ if environ is None else environ
    value = environ.get(token_details(token).env)
    return value or None


def unsafe_get_token(token: Token, environ: Optional[Mapping[str, str]] = None) -> str:
    value = get_token(token, environ)
    if value is not None:
        return value
    details = token_details(token)
    raise ApxError(
        f"Token for {details.service} is unexpectedly missing. "
        f"Please set it in the environment variable {details.env}"
    )
