import pytest

from nxapi.config.config import ClientConfig, ConfigurationError, load_config

ENV_VARS = [
    "NXOS_URL",
    "NXOS_USERNAME",
    "NXOS_PASSWORD",
    "NXOS_CONFIG_FILE",
    "NXOS_INSECURE",
    "NXOS_REQUEST_TIMEOUT",
    "NXOS_MAX_RETRIES",
    "NXOS_BACKOFF_MIN_DELAY",
    "NXOS_BACKOFF_MAX_DELAY",
    "NXOS_BACKOFF_DELAY_FACTOR",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def device_env(monkeypatch):
    monkeypatch.setenv("NXOS_URL", "https://10.0.0.1/")
    monkeypatch.setenv("NXOS_USERNAME", "admin")
    monkeypatch.setenv("NXOS_PASSWORD", "secret")


def test_missing_required(monkeypatch):
    monkeypatch.setenv("NXOS_URL", "https://10.0.0.1")
    with pytest.raises(ConfigurationError) as excinfo:
        load_config()
    assert "NXOS_PASSWORD, NXOS_USERNAME" in str(excinfo.value)


def test_defaults(device_env):
    cfg = load_config()
    assert cfg.url == "https://10.0.0.1"
    assert cfg.username == "admin"
    assert cfg.client == ClientConfig()


def test_env_overrides(device_env, monkeypatch):
    monkeypatch.setenv("NXOS_INSECURE", "true")
    monkeypatch.setenv("NXOS_MAX_RETRIES", "5")
    monkeypatch.setenv("NXOS_BACKOFF_DELAY_FACTOR", "2.5")
    cfg = load_config()
    assert cfg.client.insecure is True
    assert cfg.client.max_retries == 5
    assert cfg.client.backoff_delay_factor == 2.5
    assert cfg.client.backoff_min_delay == 4


def test_yaml_file(device_env, monkeypatch, tmp_path):
    path = tmp_path / "nxapi.yaml"
    path.write_text("client:\n  request_timeout: 120\n  max_retries: 1\n  insecure: yes\n")
    monkeypatch.setenv("NXOS_MAX_RETRIES", "2")
    cfg = load_config(str(path))
    assert cfg.client.request_timeout == 120
    assert cfg.client.insecure is True
    # environment wins over the file
    assert cfg.client.max_retries == 2


def test_yaml_file_from_env(device_env, monkeypatch, tmp_path):
    path = tmp_path / "nxapi.yaml"
    path.write_text("client:\n  backoff_max_delay: 30\n")
    monkeypatch.setenv("NXOS_CONFIG_FILE", str(path))
    assert load_config().client.backoff_max_delay == 30


def test_yaml_unknown_key(device_env, tmp_path):
    path = tmp_path / "nxapi.yaml"
    path.write_text("client:\n  retries: 1\n")
    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_invalid_value(device_env, monkeypatch):
    monkeypatch.setenv("NXOS_MAX_RETRIES", "many")
    with pytest.raises(ConfigurationError):
        load_config()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"backoff_min_delay": 10, "backoff_max_delay": 5},
        {"backoff_delay_factor": 0.5},
        {"pool_maxsize": 0},
    ],
)
def test_validate(kwargs):
    with pytest.raises(ConfigurationError):
        ClientConfig(**kwargs).validate()
