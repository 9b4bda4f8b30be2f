"""Loading of ``pdbctl.yaml``: connection parameters and lifecycle settings."""
import dataclasses
import logging
import os

import oracledb
import yaml

LOG = logging.getLogger(__name__)

CONFIG_FILE_NAME = "pdbctl.yaml"
CONFIG_ENV_VAR = "PDBCTL_CONFIG"

DEFAULT_KILL_MAX_ATTEMPTS = 100
DEFAULT_KILL_DELAY_SECONDS = 0.3


@dataclasses.dataclass(frozen=True)
class LifecycleSettings:
    """Tunables for session eviction and close behaviour."""

    kill_max_attempts: int = DEFAULT_KILL_MAX_ATTEMPTS
    kill_delay_seconds: float = DEFAULT_KILL_DELAY_SECONDS
    instances_all: bool = False

    def __post_init__(self):
        if self.kill_max_attempts <= 0:
            raise ValueError("kill_max_attempts must be positive")
        if self.kill_delay_seconds < 0:
            raise ValueError("kill_delay_seconds must not be negative")

    @classmethod
    def from_mapping(cls, data):
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise TypeError("'lifecycle' section must be a mapping")
        unknown = set(data) - {f.name for f in dataclasses.fields(cls)}
        if unknown:
            raise TypeError(f"Unknown lifecycle settings: {', '.join(sorted(unknown))}")
        attempts = data.get("kill_max_attempts", DEFAULT_KILL_MAX_ATTEMPTS)
        delay = data.get("kill_delay_seconds", DEFAULT_KILL_DELAY_SECONDS)
        instances_all = data.get("instances_all", False)
        if isinstance(attempts, bool) or not isinstance(attempts, int):
            raise TypeError("lifecycle.kill_max_attempts must be an integer")
        if isinstance(delay, bool) or not isinstance(delay, (int, float)):
            raise TypeError("lifecycle.kill_delay_seconds must be a number")
        if not isinstance(instances_all, bool):
            raise TypeError("lifecycle.instances_all must be a boolean")
        return cls(kill_max_attempts=attempts, kill_delay_seconds=float(delay),
                   instances_all=instances_all)


def search_paths():
    """Directories searched for ``pdbctl.yaml``, in order."""
    return [
        os.getenv("TNS_ADMIN"),
        os.path.join(os.getenv("ORACLE_HOME", ""), "network", "admin"),
        os.path.dirname(os.path.abspath(__file__)),
    ]


def find_config(explicit_path=None):
    explicit_path = explicit_path or os.getenv(CONFIG_ENV_VAR)
    if explicit_path:
        if not os.path.exists(explicit_path):
            raise FileNotFoundError(f"Configuration file not found: {explicit_path}")
        return explicit_path
    for path in search_paths():
        if path and os.path.exists(path):
            config_path = os.path.join(path, CONFIG_FILE_NAME)
            if os.path.exists(config_path):
                return config_path
    raise FileNotFoundError(f"No {CONFIG_FILE_NAME} found in expected locations.")


def load_config(path=None):
    config_path = find_config(path)
    LOG.debug("Loading configuration from %s", config_path)
    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise TypeError(f"{config_path} must contain a mapping at the top level")
    return config


def _auth_mode(value):
    if isinstance(value, int):
        return value
    mode = getattr(oracledb, f"AUTH_MODE_{str(value).upper()}", None)
    if mode is None:
        raise ValueError(f"Unknown authentication mode: {value}")
    return mode


def connect_params(db_name, config=None):
    """Build ``oracledb.ConnectParams`` for ``db_name`` from the configuration."""
    if config is None:
        config = load_config()

    db_params = (config.get("databases") or {}).get(db_name)
    if not db_params:
        raise ValueError(f"No configuration found for database: {db_name}")

    valid_params = {k: v for k, v in db_params.items() if v is not None and k != "connection_string"}
    if "mode" in valid_params:
        valid_params["mode"] = _auth_mode(valid_params["mode"])
    params = oracledb.ConnectParams(**valid_params)

    if db_params.get("connection_string"):
        params.parse_connect_string(db_params["connection_string"])

    # Local bequeath connections pick the instance from ORACLE_SID.
    if params.sid and os.getenv("ORACLE_SID") != params.sid:
        LOG.debug("Setting ORACLE_SID=%s", params.sid)
        os.environ["ORACLE_SID"] = params.sid
        os.environ["ORAENV_ASK"] = "NO"

    return params


def lifecycle_settings(config=None):
    if config is None:
        config = load_config()
    return LifecycleSettings.from_mapping(config.get("lifecycle"))
