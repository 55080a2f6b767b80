"""
Configuration management for the coin flip service.
Supports config.json with environment variable overrides.
All paths are resolved relative to the project root.
"""

import json
import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()

# Project root directory (parent of 'app' folder)
PROJECT_ROOT = Path(__file__).parent.parent

ZERO_ADDRESS = "0x" + "0" * 40
ONE_ETHER = 10**18


def get_env(key: str, default: str = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes", "on")


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val, 0)
    except ValueError:
        return default


# ==================== Configuration Models ====================

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = True
    name: str = "Coin Flip"


class WagerConfig(BaseModel):
    owner: str = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"
    max_deposit: int = ONE_ETHER // 20  # 0.05 ETH
    prize_multiplier: int = 190  # percent


class VRFConfig(BaseModel):
    """Randomness coordinator settings (mirrors the local deploy script)."""
    key_hash: str = "0xd89b2bf150e3b9e13446986e571fb9cab24b13cea0a43ea20a6049a85cc807cc"
    subscription_id: int = 0  # 0 = create one at startup
    minimum_request_confirmations: int = 3
    callback_gas_limit: int = 100_000
    num_words: int = 1
    base_fee: int = 100_000_000_000_000_000  # 0.1 LINK
    gas_price_link: int = 1_000_000_000  # 0.000000001 LINK per gas
    fund_amount: int = ONE_ETHER
    auto_fulfill: bool = False
    fulfill_interval_seconds: int = 5
    word_source: str = "deterministic"  # or "secure"


class RateLimitConfig(BaseModel):
    enabled: bool = True
    wager_requests: str = "30/minute"  # deposit/receive/pick/flip/withdraw


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_to_file: bool = False
    formatter: str = "color"


class PathsConfig(BaseModel):
    """All paths are relative to PROJECT_ROOT."""
    config_file: str = "config.json"
    log_file: str = "data/app.log"

    def get_config_path(self) -> Path:
        return PROJECT_ROOT / self.config_file

    def get_log_path(self) -> Path:
        return PROJECT_ROOT / self.log_file


class AppConfig(BaseModel):
    """Main application configuration."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    wager: WagerConfig = Field(default_factory=WagerConfig)
    vrf: VRFConfig = Field(default_factory=VRFConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)


# ==================== Configuration Loading ====================

def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from config.json with environment variable overrides.
    Environment variables take precedence over config.json values.
    """
    if config_path is None:
        config_path = PathsConfig().get_config_path()

    data = {}

    if config_path.exists():
        with open(config_path, "r") as f:
            data = json.load(f)

    # Apply environment variable overrides
    if get_env("SERVER_HOST"):
        data.setdefault("server", {})["host"] = get_env("SERVER_HOST")
    if get_env("SERVER_PORT"):
        data.setdefault("server", {})["port"] = get_env_int("SERVER_PORT", 8000)
    if get_env("DEBUG"):
        data.setdefault("server", {})["debug"] = get_env_bool("DEBUG")

    if get_env("WAGER_OWNER"):
        data.setdefault("wager", {})["owner"] = get_env("WAGER_OWNER").lower()
    if get_env("WAGER_MAX_DEPOSIT"):
        data.setdefault("wager", {})["max_deposit"] = get_env_int("WAGER_MAX_DEPOSIT")

    if get_env("VRF_KEY_HASH"):
        data.setdefault("vrf", {})["key_hash"] = get_env("VRF_KEY_HASH")
    if get_env("VRF_SUBSCRIPTION_ID"):
        data.setdefault("vrf", {})["subscription_id"] = get_env_int("VRF_SUBSCRIPTION_ID")
    if get_env("VRF_AUTO_FULFILL"):
        data.setdefault("vrf", {})["auto_fulfill"] = get_env_bool("VRF_AUTO_FULFILL")

    if get_env("LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = get_env("LOG_LEVEL")
    if get_env("LOG_TO_FILE"):
        data.setdefault("logging", {})["log_to_file"] = get_env_bool("LOG_TO_FILE")
    if get_env("LOG_FORMATTER"):
        data.setdefault("logging", {})["formatter"] = get_env("LOG_FORMATTER")

    if get_env("RATE_LIMIT_ENABLED"):
        data.setdefault("rate_limit", {})["enabled"] = get_env_bool("RATE_LIMIT_ENABLED", True)
    if get_env("RATE_LIMIT_WAGER_REQUESTS"):
        data.setdefault("rate_limit", {})["wager_requests"] = get_env("RATE_LIMIT_WAGER_REQUESTS")

    return AppConfig(**data)


# Global config instance
settings = load_config()
