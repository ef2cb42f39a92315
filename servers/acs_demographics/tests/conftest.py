import pytest


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep real API keys, credential files and proxies out of the tests."""
    for name in (
        "CENSUS_API_KEY",
        "ACS_DEMOGRAPHICS_CENSUS_API_KEY",
        "ACS_DEMOGRAPHICS_CREDENTIAL_STORE_PATH",
        "HTTP_PROXY",
        "HTTPS_PROXY",
        "ALL_PROXY",
        "http_proxy",
        "https_proxy",
        "all_proxy",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
