import os
import pytest
from unittest.mock import MagicMock

import requests

import autotag.config
import autotag.dispatcher
from autotag.config import ExtractionConfig, ExtractionMethod


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep tests away from real config files, env vars and shared state."""
    home = tmp_path / "home"
    home.mkdir()
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(workdir)
    for key in list(os.environ):
        if key.startswith("AUTOTAG_"):
            monkeypatch.delenv(key)

    monkeypatch.setattr(autotag.config, "_config", None)
    monkeypatch.setattr(autotag.dispatcher, "_default_dispatcher", None)
    yield


@pytest.fixture
def sample_post():
    """A blog post body with markup."""
    return (
        "<h1>Python testing guide</h1>"
        "<p>Testing Python code is easier with pytest. "
        "Fixtures make testing setup reusable, and pytest fixtures compose well.</p>"
        "<p>Python projects should run tests on every change.</p>"
    )


@pytest.fixture
def builtin_config():
    return ExtractionConfig(method=ExtractionMethod.BUILTIN)


@pytest.fixture
def remote_config():
    return ExtractionConfig(method=ExtractionMethod.REMOTE, api_key="sk-test")


@pytest.fixture
def make_response():
    """Build a mock HTTP response returning the given JSON body."""
    def _make(body=None, status_code=200, json_error=None):
        response = MagicMock()
        response.status_code = status_code
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.exceptions.HTTPError(
                f"{status_code} Error", response=response
            )
        else:
            response.raise_for_status = MagicMock()
        if json_error is not None:
            response.json.side_effect = json_error
        else:
            response.json.return_value = body
        return response
    return _make
