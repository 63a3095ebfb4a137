import json
import os
from dataclasses import dataclass
from pathlib import Path

from getlogs_invariants.driver import BATCH_SIZE, PROGRESS_INTERVAL
from getlogs_invariants.execution import almost_all_cpus

# -----------------------------
# Environment Variables
# -----------------------------
DEFAULT_RPC_CONFIG_PATH = "/etc/ingestion/rpc_providers.json"


def _env_int(env, name, default=None, minimum=None):
    raw = env.get(name)
    if raw is None or raw == "":
        if default is None:
            raise ValueError(f"Missing required env var: {name}")
        return default
    try:
        value = int(raw, 16) if raw.lower().startswith("0x") else int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(env, name, default, minimum=None):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    chain: str
    rpc_config_path: str
    block_from: int
    block_to: int
    batch_size: int = BATCH_SIZE
    max_workers: int = 1
    progress_interval: float = PROGRESS_INTERVAL
    rpc_timeout: float = 10
    penalize_seconds: float = 15
    metrics_port: int = 8000

    def __post_init__(self):
        if self.block_from > self.block_to:
            raise ValueError(
                f"BLOCK_FROM {self.block_from} > BLOCK_TO {self.block_to}"
            )

    @classmethod
    def from_env(cls, env=None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            chain=env.get("CHAIN", "eth").lower(),  # eth, bsc, base ... from rpc_providers.json
            rpc_config_path=env.get("RPC_CONFIG_PATH", DEFAULT_RPC_CONFIG_PATH),
            block_from=_env_int(env, "BLOCK_FROM", minimum=0),
            block_to=_env_int(env, "BLOCK_TO", minimum=0),
            batch_size=_env_int(env, "BATCH_SIZE", BATCH_SIZE, minimum=1),
            max_workers=_env_int(env, "MAX_WORKERS", almost_all_cpus(), minimum=1),
            progress_interval=_env_float(env, "PROGRESS_INTERVAL", PROGRESS_INTERVAL, minimum=0.001),
            rpc_timeout=_env_float(env, "RPC_TIMEOUT", 10, minimum=0.001),
            penalize_seconds=_env_float(env, "PENALIZE_SECONDS", 15, minimum=0),
            metrics_port=_env_int(env, "METRICS_PORT", 8000, minimum=0),
        )


def load_rpc_configs(path: str) -> dict:
    return json.loads(Path(path).read_text())
