"""The assembled FastAPI app: lifespan wiring and HTTP surface."""

from __future__ import annotations

from pathlib import Path

import pytest
import respx
from fastapi.testclient import TestClient

from resolvarr.infrastructure.config import load_config
from resolvarr.interfaces.composition import read_credentials
from resolvarr.interfaces.main import build_app

pytestmark = pytest.mark.integration

SHIPPED_REGISTRY = Path(__file__).parents[2] / "providers" / "providers.yaml"


@pytest.fixture()
def client(tmp_path: Path) -> TestClient:
    config = load_config(
        cli_overrides={
            "providers_path": str(SHIPPED_REGISTRY),
            "cache_backend": "diskcache",
            "cache_dir": str(tmp_path / "cache"),
            "http_rate_limit_rps": 0,
        }
    )
    with TestClient(build_app(config)) as test_client:
        yield test_client


class TestAppLifespan:
    def test_healthz(self, client: TestClient) -> None:
        assert client.get("/healthz").json() == {"status": "ok"}

    def test_providers_loaded_from_registry(self, client: TestClient) -> None:
        body = client.get("/providers").json()
        assert [(p["id"], p["requires_browser"]) for p in body["providers"]] == [
            ("vidsrc-embed", False),
            ("vidsrc-embed-browser", True),
        ]

    def test_browser_built_but_not_launched(self, client: TestClient) -> None:
        browser = client.app.state.browser
        assert browser is not None
        assert not browser.is_running
        assert client.get("/stats/metrics").json()["browser"] == {
            "active_sessions": 0
        }

    def test_failed_resolution_is_counted(self, client: TestClient) -> None:
        with respx.mock(assert_all_called=False) as router:
            router.get("https://vidsrc-embed.ru/embed/movie/tt0000001").respond(404)
            resp = client.get("/resolve/movie/tt0000001")

        assert resp.status_code == 502
        assert [r["kind"] for r in resp.json()["reasons"]] == ["NotFound", "NotFound"]
        metrics = client.get("/stats/metrics").json()
        assert metrics["resolutions"]["failed"] == 1
        assert metrics["providers"]["vidsrc-embed"]["failure_kinds"] == {"NotFound": 1}
        assert client.app.state.browser.active_sessions == 0


class TestBrowserDisabled:
    def test_no_adapter_when_disabled(self, tmp_path: Path) -> None:
        config = load_config(
            cli_overrides={
                "providers_path": str(SHIPPED_REGISTRY),
                "cache_dir": str(tmp_path / "cache"),
                "browser_enabled": False,
            }
        )
        with TestClient(build_app(config)) as test_client:
            assert test_client.app.state.browser is None
            assert "browser" not in test_client.get("/stats/metrics").json()


class TestReadCredentials:
    def test_reads_named_env_vars(
        self, make_spec, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ALPHA_KEY", "s3cret")
        monkeypatch.delenv("BETA_KEY", raising=False)
        specs = [
            make_spec("alpha", credential_env="ALPHA_KEY"),
            make_spec("beta", credential_env="BETA_KEY"),
            make_spec("gamma"),
        ]
        assert read_credentials(specs) == {"alpha": "s3cret"}
