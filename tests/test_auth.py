from __future__ import annotations

import pytest

from apx.auth import Token, get_token, token_details, token_in_env, unsafe_get_token
from apx.constants import ApxError


def test_token_details():
    assert token_details(Token.ATOMIO).env == "ATOM_ACCESS_TOKEN"
    assert token_details(Token.GITHUB).service == "GitHub"


def test_token_lookup_from_mapping():
    environ = {"ATOM_ACCESS_TOKEN": "abc"}
    assert token_in_env(Token.ATOMIO, environ)
    assert not token_in_env(Token.GITHUB, environ)
    assert get_token(Token.ATOMIO, environ) == "abc"
    assert get_token(Token.GITHUB, environ) is None


def test_empty_token_is_missing():
    assert get_token(Token.ATOMIO, {"ATOM_ACCESS_TOKEN": ""}) is None


def test_token_lookup_defaults_to_process_env(monkeypatch):
    monkeypatch.setenv("GITHUB_AUTH_TOKEN", "gh")
    assert get_token(Token.GITHUB) == "gh"


def test_unsafe_get_token_names_variable():
    with pytest.raises(ApxError, match="ATOM_ACCESS_TOKEN"):
        unsafe_get_token(Token.ATOMIO, {})
