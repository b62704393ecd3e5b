import time
from unittest.mock import MagicMock

import platformdirs
import pytest
import requests

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)

SAMPLE_CATALOG = b"""<?xml version="1.0" encoding="utf-8"?>
<ModLinks xmlns="https://github.com/HollowKnight-Modding/HollowKnight.ModLinks/HollowKnight.ModManager">
    <Manifest>
        <Name>Randomizer 4</Name>
        <Description>Item randomizer</Description>
        <Version>4.1.0.0</Version>
        <Link SHA256="aa00000000000000000000000000000000000000000000000000000000000000">
            <![CDATA[https://example.com/v4.1/Randomizer4.zip]]>
        </Link>
        <Dependencies>
            <Dependency>MenuChanger</Dependency>
            <Dependency>ItemChanger</Dependency>
        </Dependencies>
        <Repository><![CDATA[https://example.com/rando]]></Repository>
    </Manifest>
    <!-- keep this comment -->
    <Manifest>
        <Name>MenuChanger</Name>
        <Description>Menu library</Description>
        <Version>1.0.0.0</Version>
        <Link SHA256="bb00000000000000000000000000000000000000000000000000000000000000">https://example.com/MenuChanger.dll</Link>
        <Dependencies />
    </Manifest>
    <Manifest>
        <Name>ItemChanger</Name>
        <Description>Item library</Description>
        <Version>2.0.0.0</Version>
        <Links>
            <Windows SHA256="cc00000000000000000000000000000000000000000000000000000000000000">https://example.com/win/ItemChanger.zip</Windows>
            <Mac SHA256="dd00000000000000000000000000000000000000000000000000000000000000">https://example.com/mac/ItemChanger.zip</Mac>
            <Linux SHA256="ee00000000000000000000000000000000000000000000000000000000000000">https://example.com/linux/ItemChanger.zip</Linux>
        </Links>
    </Manifest>
</ModLinks>
"""


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used to group modkeeper tests.

    Parameters:
        config: pytest.Config
            The pytest configuration object used to register markers.
    """
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line(
        "markers", "configuration: configuration and logging tests"
    )
    config.addinivalue_line("markers", "core_downloads: cache and transport tests")
    config.addinivalue_line("markers", "user_interface: command-line tests")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Create an isolated temporary directory layout and patch platformdirs and configuration to use it for tests.

    Also clears the environment variables modkeeper reads so the developer's own
    settings never leak into a test.
    """
    base = tmp_path_factory.mktemp("modkeeper")
    cache_dir = base / "cache"
    config_dir = base / "config"
    log_dir = base / "log"

    for path in (cache_dir, config_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.delenv("HK15PATH", raising=False)
    monkeypatch.delenv("MODLINKSURL", raising=False)
    monkeypatch.delenv("MODKEEPER_LOG_LEVEL", raising=False)

    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )

    import modkeeper.config as config

    monkeypatch.setattr(config, "CONFIG_DIR", str(config_dir))
    monkeypatch.setattr(
        config, "CONFIG_FILE", str(config_dir / "modkeeper.yaml")
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.head = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """
    Make time.sleep instant for all tests to prevent delays.
    """
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


def _make_response(content=b"", status_code=200, chunk_size=4):
    """
    Build a mocked streaming `requests.Response`.

    The body is served by `iter_content` in chunks of `chunk_size` bytes.
    """
    response = MagicMock()
    response.status_code = status_code
    response.iter_content.return_value = [
        content[i : i + chunk_size] for i in range(0, len(content), chunk_size)
    ]
    return response


@pytest.fixture
def make_response():
    """Provide the factory for mocked streaming responses."""
    return _make_response


@pytest.fixture
def mock_session(mocker):
    """
    Patch `requests.Session` as seen by the transport module.

    Returns the session instance every new Transport will use; set
    `mock_session.get.return_value` (or `side_effect`) to control responses.
    """
    session_cls = mocker.patch("modkeeper.transport.requests.Session")
    session = session_cls.return_value
    session.headers = {}
    return session


@pytest.fixture
def sample_catalog():
    return SAMPLE_CATALOG
