import sys
import threading
from datetime import timedelta
from pathlib import Path
import typing as t

import pytest

# Ensure project root is on path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.config.loader import ConfigLoader
from src.config.manager import ConfigManager
from src.config.models import (
    AppConfig,
    Config,
    DatabaseConfig,
    EmailConfig,
    JWTConfig,
    LogConfig,
    RedisConfig,
    ServerConfig,
)


LONG_SECRET = "test-secret-that-is-long-enough-for-validation"

VALID_YAML = """
server:
  port: "8080"
  host: "0.0.0.0"
  read_timeout: "30s"
  write_timeout: "30s"
  idle_timeout: "60s"

database:
  host: "localhost"
  port: "5432"
  user: "postgres"
  password: "password"
  dbname: "testdb"
  sslmode: "disable"
  max_conns: 10

redis:
  host: "localhost"
  port: "6379"
  password: ""
  db: 0

log:
  level: "info"
  format: "json"
  output_path: ""

jwt:
  secret: "test-secret-that-is-long-enough-for-validation"
  expiration: "24h"
  issuer: "testapp"

email:
  host: "smtp.test.com"
  port: 587
  username: "test@test.com"
  password: "password"
  from: "noreply@test.com"

app:
  name: "Test Application"
  environment: "test"
  version: "1.0.0"
  debug: true
"""


@pytest.fixture(scope="session")
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture()
def valid_env() -> t.Dict[str, str]:
    """Minimal environment that passes validation (other keys use defaults)."""
    return {
        "SERVER_PORT": "8080",
        "SERVER_HOST": "127.0.0.1",
        "DB_HOST": "test-db",
        "DB_USER": "testuser",
        "DB_NAME": "testdb",
        "JWT_SECRET": LONG_SECRET,
        "APP_NAME": "Test App",
        "APP_ENVIRONMENT": "test",
        "APP_VERSION": "1.0.0",
    }


@pytest.fixture()
def env_loader(valid_env: t.Dict[str, str], tmp_path: Path) -> ConfigLoader:
    # Point CONFIG_PATH at a file that does not exist so hybrid loads fall back.
    valid_env.setdefault("CONFIG_PATH", str(tmp_path / "missing.yaml"))
    return ConfigLoader(environ=valid_env)


@pytest.fixture()
def manager(env_loader: ConfigLoader) -> ConfigManager:
    return ConfigManager(loader=env_loader)


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(VALID_YAML, encoding="utf-8")
    return path


@pytest.fixture()
def valid_config() -> Config:
    return Config(
        server=ServerConfig(
            port="8080",
            host="0.0.0.0",
            read_timeout=timedelta(seconds=30),
            write_timeout=timedelta(seconds=30),
            idle_timeout=timedelta(seconds=60),
        ),
        database=DatabaseConfig(
            host="localhost",
            port="5432",
            user="postgres",
            password="password",
            dbname="testdb",
            sslmode="disable",
            max_conns=10,
        ),
        redis=RedisConfig(host="localhost", port="6379", password="", db=0),
        log=LogConfig(level="info", format="json", output_path=""),
        jwt=JWTConfig(secret=LONG_SECRET, expiration=timedelta(hours=24), issuer="testapp"),
        email=EmailConfig(),
        app=AppConfig(name="Test App", environment="development", version="1.0.0", debug=False),
    )


class RecordingWatcher:
    """Collects (old, new) pairs and signals an event on each call."""

    def __init__(self, expected_calls: int = 1):
        self.calls: t.List[t.Tuple[Config, Config]] = []
        self.expected_calls = expected_calls
        self.done = threading.Event()
        self._lock = threading.Lock()

    def on_config_changed(self, old_config: Config, new_config: Config) -> None:
        with self._lock:
            self.calls.append((old_config, new_config))
            if len(self.calls) >= self.expected_calls:
                self.done.set()


@pytest.fixture()
def recording_watcher() -> RecordingWatcher:
    return RecordingWatcher()
