import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def disable_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("time.sleep", lambda *_args, **_kwargs: None)


@pytest.fixture(autouse=True)
def block_external_http(monkeypatch: pytest.MonkeyPatch) -> None:
    import httpx

    def _deny_external_http(self, request, *args, **kwargs):
        if isinstance(self._transport, httpx.MockTransport):
            return _original_send(self, request, *args, **kwargs)
        raise RuntimeError(f"External HTTP disabled during tests: {request.url}")

    _original_send = httpx.Client.send
    monkeypatch.setattr(httpx.Client, "send", _deny_external_http)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "REVSTORM_DATABASE_URL",
        "REVSTORM_NARRATIVE_URL",
        "REVSTORM_SEED",
        "REVSTORM_CHEAT_MODE",
        "REVSTORM_MONTHS_PER_TURN",
    ):
        monkeypatch.delenv(name, raising=False)
