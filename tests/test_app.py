"""
Tests for the connectid command line.
"""

import json

import pytest

from connectid import __version__, app
from connectid.optout import OPT_OUT_KEY
from connectid.storage import JsonFileStore
from conftest import HASHED_EMAIL, PIXEL_ID, PROD_ENDPOINT, OVERRIDE_ENDPOINT, RecordingTransport, query_params


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    for name in ("CONNECTID_STORE", "CONNECTID_TIMEOUT", "CONNECTID_MAX_RETRIES", "CONNECTID_LOG_DIR"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def store_path(workdir):
    return workdir / "store.json"


@pytest.fixture
def fake_transport(monkeypatch):
    transport = RecordingTransport(body='{"connectid": "4567"}')
    monkeypatch.setattr(app, "RequestsTransport", lambda **kwargs: transport)
    return transport


def last_line(capsys) -> str:
    return capsys.readouterr().out.strip().splitlines()[-1]


class TestFetch:
    """connectid fetch"""

    def test_fetch_prints_and_caches(self, store_path, fake_transport, capsys):
        app.main(["fetch", "--he", HASHED_EMAIL, "--pixel-id", PIXEL_ID, "--store", str(store_path)])

        assert last_line(capsys) == '{"connectId": "4567"}'
        assert JsonFileStore(store_path).get_item(app.CACHE_KEY) == {"connectid": "4567"}
        assert fake_transport.last_url.startswith(f"{PROD_ENDPOINT}?")

    def test_fetch_passes_consent_and_flags(self, store_path, fake_transport):
        app.main([
            "fetch", "--he", HASHED_EMAIL, "--endpoint", OVERRIDE_ENDPOINT,
            "--first-party", "--gdpr-applies", "--gdpr-consent", "CS", "--us-privacy", "1YNN",
            "--store", str(store_path),
        ])

        assert fake_transport.last_url.startswith(f"{OVERRIDE_ENDPOINT}?")
        assert query_params(fake_transport.last_url) == {
            "1p": "1",
            "he": HASHED_EMAIL,
            "gdpr": "1",
            "gdpr_consent": "CS",
            "us_privacy": "1YNN",
        }

    def test_fetch_without_pixel_or_endpoint(self, store_path, fake_transport, capsys):
        app.main(["fetch", "--he", HASHED_EMAIL, "--store", str(store_path)])

        assert last_line(capsys) == "No request made (opted out or invalid configuration)."
        assert fake_transport.call_count == 0

    def test_fetch_when_opted_out(self, store_path, fake_transport, capsys):
        JsonFileStore(store_path).set_item(OPT_OUT_KEY, "1")

        app.main(["fetch", "--he", HASHED_EMAIL, "--pixel-id", PIXEL_ID, "--store", str(store_path)])

        assert last_line(capsys) == "No request made (opted out or invalid configuration)."
        assert fake_transport.call_count == 0

    def test_fetch_transport_error(self, store_path, monkeypatch, capsys):
        transport = RecordingTransport(error="Request failed (500)")
        monkeypatch.setattr(app, "RequestsTransport", lambda **kwargs: transport)

        app.main(["fetch", "--he", HASHED_EMAIL, "--pixel-id", PIXEL_ID, "--store", str(store_path)])

        assert last_line(capsys) == "No identifier."
        assert JsonFileStore(store_path).get_item(app.CACHE_KEY) is None

    def test_store_from_environment(self, workdir, fake_transport, monkeypatch, capsys):
        env_store = workdir / "env-store.json"
        monkeypatch.setenv("CONNECTID_STORE", str(env_store))

        app.main(["fetch", "--he", HASHED_EMAIL, "--pixel-id", PIXEL_ID])

        assert JsonFileStore(env_store).get_item(app.CACHE_KEY) == {"connectid": "4567"}


class TestDecode:
    """connectid decode"""

    def test_decode_cached_value(self, store_path, capsys):
        JsonFileStore(store_path).set_item(app.CACHE_KEY, {"connectid": "4567"})

        app.main(["decode", "--store", str(store_path)])

        assert last_line(capsys) == '{"connectId": "4567"}'

    def test_decode_nothing_cached(self, store_path, capsys):
        app.main(["decode", "--store", str(store_path)])
        assert last_line(capsys) == "No identifier."

    def test_decode_input_file(self, workdir, store_path, capsys):
        payload = workdir / "payload.json"
        payload.write_text(json.dumps({"connectid": "9999"}))

        app.main(["decode", "--input", str(payload), "--store", str(store_path)])

        assert last_line(capsys) == '{"connectId": "9999"}'

    def test_decode_missing_input(self, store_path):
        with pytest.raises(SystemExit, match="Input file not found"):
            app.main(["decode", "--input", "nope.json", "--store", str(store_path)])

    def test_opt_out_revokes_cached_id(self, store_path, capsys):
        JsonFileStore(store_path).set_item(app.CACHE_KEY, {"connectid": "4567"})

        app.main(["opt-out", "--store", str(store_path)])
        app.main(["decode", "--store", str(store_path)])
        assert last_line(capsys) == "No identifier."

        app.main(["opt-in", "--store", str(store_path)])
        app.main(["decode", "--store", str(store_path)])
        assert last_line(capsys) == '{"connectId": "4567"}'

    def test_corrupt_store(self, store_path):
        store_path.write_text("{broken")
        with pytest.raises(SystemExit, match="not valid JSON"):
            app.main(["decode", "--store", str(store_path)])


class TestValidate:
    """connectid validate"""

    def test_valid_config(self, workdir, capsys):
        config = workdir / "config.json"
        config.write_text(json.dumps({"name": "connectId", "params": {"he": "abc", "pixelId": "1"}}))

        app.main(["validate", "--input", str(config)])

        assert last_line(capsys) == "Configuration is valid."

    def test_invalid_config(self, workdir, capsys):
        config = workdir / "config.json"
        config.write_text(json.dumps({"name": "connectId", "params": {"pixelId": "1"}}))

        with pytest.raises(SystemExit) as excinfo:
            app.main(["validate", "--input", str(config)])

        assert excinfo.value.code == 1
        assert "Missing required field: he" in capsys.readouterr().out


class TestMain:
    """Top-level options."""

    def test_version(self, workdir, capsys):
        app.main(["--version"])
        assert last_line(capsys) == __version__

    def test_no_command_prints_help(self, workdir, capsys):
        app.main([])
        assert "usage: connectid" in capsys.readouterr().out

    def test_bad_setting(self, workdir, monkeypatch):
        monkeypatch.setenv("CONNECTID_TIMEOUT", "never")
        with pytest.raises(SystemExit, match="Invalid CONNECTID_"):
            app.main(["decode"])
