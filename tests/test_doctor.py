import pytest
import requests

import doctor

URL = "http://localhost:11434/api/generate"


class FakeResp:
    def __init__(self, status=200, models=()):
        self.status_code = status
        self.ok = status < 400
        self._models = models

    def json(self):
        return {"models": [{"name": m} for m in self._models]}


def test_tags_url():
    assert doctor.tags_url(URL) == "http://localhost:11434/api/tags"


def test_ollama_ready(monkeypatch, capsys):
    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResp(models=["mistral", "phi3:mini"]))
    assert doctor.check_ollama(URL, "phi3:mini")
    assert "Model 'phi3:mini' available" in capsys.readouterr().out


def test_ollama_missing_model(monkeypatch, capsys):
    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResp(models=["mistral"]))
    assert not doctor.check_ollama(URL, "phi3:mini")
    assert "ollama pull phi3:mini" in capsys.readouterr().out


def test_ollama_bad_status(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResp(status=500))
    assert not doctor.check_ollama(URL, "mistral")


def test_ollama_unreachable(monkeypatch):
    def refuse(url, timeout):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "get", refuse)
    assert not doctor.check_ollama(URL, "mistral")


def test_check_package():
    assert doctor.check_package("requests", "requests")
    assert not doctor.check_package("definitely_not_a_module_xyz", "nothing")


def test_main_passes_without_ollama():
    with pytest.raises(SystemExit) as info:
        doctor.main(["--no-ollama"])
    assert info.value.code == 0


def test_main_fails_when_ollama_down(monkeypatch):
    def refuse(url, timeout):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "get", refuse)
    with pytest.raises(SystemExit) as info:
        doctor.main(["--url", URL, "--model", "mistral"])
    assert info.value.code == 1
