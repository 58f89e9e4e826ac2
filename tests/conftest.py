"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest
import yaml

# Add the src directory to Python path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from mcp_sync.clients import ClientAdapter, ConfigParseError, ConfigWriteError, get_all_client_types  # noqa: E402
from mcp_sync.config import CONFIG_FILE_NAME  # noqa: E402
from mcp_sync.models import ClientConfig  # noqa: E402
from mcp_sync.vault import reset_default_session  # noqa: E402


class ScriptedPrompt:
    """Password prompt that replays canned answers and counts calls.

    An answer that is an exception (class or instance) is raised instead.
    Running out of answers fails the test.
    """

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = 0

    def __call__(self, message: str) -> str:
        self.calls += 1
        if not self.answers:
            raise AssertionError(f"Unexpected password prompt: {message}")
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException) or (
            isinstance(answer, type) and issubclass(answer, BaseException)
        ):
            raise answer
        return answer


class FakeAdapter(ClientAdapter):
    """In-memory client adapter."""

    def __init__(self, client_type, servers=None, fail_read=False, fail_write=False, log=None):
        self.client_type = client_type
        self.config = ClientConfig(servers=servers or {})
        self.fail_read = fail_read
        self.fail_write = fail_write
        self.log = log if log is not None else []

    def get_config_path(self) -> Path:
        return Path(f"/fake/{self.client_type}.json")

    async def is_installed(self) -> bool:
        return True

    async def read_config(self) -> ClientConfig:
        if self.fail_read:
            raise ConfigParseError(self.get_config_path(), ValueError("bad json"))
        return self.config.model_copy(deep=True)

    async def write_config(self, config: ClientConfig) -> None:
        if self.fail_write:
            raise ConfigWriteError(self.get_config_path(), PermissionError("denied"))
        self.config = config.model_copy(deep=True)
        self.log.append(self.client_type)


@pytest.fixture
def scripted_prompt():
    """Factory for scripted password prompts."""
    return ScriptedPrompt


@pytest.fixture
def fake_adapter():
    """Factory for in-memory client adapters."""
    return FakeAdapter


@pytest.fixture
def home_dir(tmp_path):
    """MCP Sync home directory (MCP_SYNC_HOME)."""
    home = tmp_path / "home"
    home.mkdir(exist_ok=True)
    return home


@pytest.fixture
def client_paths(tmp_path, home_dir):
    """Point every client at a config file under tmp_path via config.yaml.

    Parent directories are not created, so no client counts as installed
    until a test creates its directory.
    """
    paths = {
        kind: tmp_path / "clients" / kind / "config.json"
        for kind in get_all_client_types()
    }
    (home_dir / CONFIG_FILE_NAME).write_text(
        yaml.safe_dump({"client_paths": {kind: str(path) for kind, path in paths.items()}})
    )
    return paths


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch, tmp_path):
    """Isolate every test from the real home directory and vault."""
    monkeypatch.setenv("MCP_SYNC_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("MCP_SYNC_VAULT", raising=False)
    monkeypatch.chdir(tmp_path)

    reset_default_session()
    yield
    reset_default_session()
