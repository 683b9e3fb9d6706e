"""Configuration management for PhishGuard."""

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .analyzer.invoker import DEFAULT_TIMEOUT_SECONDS, GEMINI_BASE_URL
from .analyzer.tiers import DEFAULT_TIERS, ModelTier, TierChain
from .analyzer.verdict import DEFAULT_CAUTION, DEFAULT_SAFE, ThresholdConfig
from .errors import CredentialInvalid, CredentialMissing

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "AIza"
API_KEY_MIN_LENGTH = 30


def validate_api_key(api_key: Optional[str]) -> str:
    """Return the stripped key or raise CredentialMissing/CredentialInvalid."""
    key = (api_key or "").strip()
    if not key:
        raise CredentialMissing("No Gemini API key configured")
    if len(key) < API_KEY_MIN_LENGTH:
        raise CredentialInvalid("API key too short")
    if not key.startswith(API_KEY_PREFIX):
        raise CredentialInvalid("Invalid API key format")
    if any(ch.isspace() for ch in key):
        raise CredentialInvalid("API key contains invalid characters")
    return key


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # Gemini
    gemini_api_key: str = ""
    gemini_base_url: str = GEMINI_BASE_URL
    gemini_default_tier: str = DEFAULT_TIERS[0].key
    gemini_timeout: float = DEFAULT_TIMEOUT_SECONDS
    model_tiers: list[ModelTier] = field(default_factory=lambda: list(DEFAULT_TIERS))

    # Verdict thresholds
    safe_threshold: int = DEFAULT_SAFE
    caution_threshold: int = DEFAULT_CAUTION

    # Host API server
    host_api_host: str = "127.0.0.1"
    host_api_port: int = 8765

    # Browser
    browser_headless: bool = True
    page_load_timeout: int = 30

    # Paths
    config_dir: Path = field(default_factory=lambda: Path("./config"))

    def __post_init__(self):
        self.config_dir = Path(self.config_dir)

    @property
    def thresholds(self) -> ThresholdConfig:
        return ThresholdConfig(safe=self.safe_threshold, caution=self.caution_threshold)

    def tier_chain(self) -> TierChain:
        return TierChain(self.model_tiers, default_key=self.gemini_default_tier)


def _load_overrides(config_dir: Path) -> dict:
    """Load overrides from config/phishguard.yaml (optional)."""
    path = Path(config_dir or ".") / "phishguard.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.warning("Failed to parse phishguard.yaml: %s", exc)
        return {}
    if not isinstance(data, dict):
        return {}

    def _coerce_tiers(raw):
        tiers: list[ModelTier] = []
        for index, entry in enumerate(raw or [], start=1):
            if not isinstance(entry, dict):
                continue
            key = str(entry.get("key") or "").strip()
            model = str(entry.get("model") or "").strip()
            if not key or not model:
                continue
            label = str(entry.get("label") or model).strip()
            try:
                rank = int(entry.get("rank", index))
            except Exception:
                rank = index
            tiers.append(ModelTier(key=key, model=model, label=label, rank=rank))
        return tiers or None

    def _coerce_int(raw):
        try:
            return int(raw)
        except Exception:
            return None

    thresholds_cfg = data.get("thresholds", {}) if isinstance(data.get("thresholds"), dict) else {}
    models_cfg = data.get("models", {}) if isinstance(data.get("models"), dict) else {}

    overrides = {
        "safe_threshold": _coerce_int(thresholds_cfg.get("safe")),
        "caution_threshold": _coerce_int(thresholds_cfg.get("caution")),
        "gemini_default_tier": str(models_cfg.get("default") or "").strip() or None,
        "model_tiers": _coerce_tiers(models_cfg.get("tiers")),
    }
    return {key: value for key, value in overrides.items() if value is not None}


def load_config() -> Config:
    """Load configuration from environment variables, then YAML overrides."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    overrides = _load_overrides(config_dir)

    return Config(
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_base_url=os.getenv("GEMINI_BASE_URL", GEMINI_BASE_URL),
        gemini_default_tier=os.getenv("GEMINI_DEFAULT_TIER")
        or overrides.get("gemini_default_tier", DEFAULT_TIERS[0].key),
        gemini_timeout=float(os.getenv("GEMINI_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS))),
        model_tiers=overrides.get("model_tiers", list(DEFAULT_TIERS)),
        safe_threshold=int(os.getenv("SAFE_THRESHOLD") or overrides.get("safe_threshold", DEFAULT_SAFE)),
        caution_threshold=int(
            os.getenv("CAUTION_THRESHOLD") or overrides.get("caution_threshold", DEFAULT_CAUTION)
        ),
        host_api_host=os.getenv("HOST_API_HOST", "127.0.0.1"),
        host_api_port=int(os.getenv("HOST_API_PORT", "8765")),
        browser_headless=os.getenv("BROWSER_HEADLESS", "true").lower() == "true",
        page_load_timeout=int(os.getenv("PAGE_LOAD_TIMEOUT", "30")),
        config_dir=config_dir,
    )


def validate_config(config: Config, require_api_key: bool = True) -> list[str]:
    """Validate configuration and return list of error messages.

    With ``require_api_key=False`` a missing or malformed key is only logged,
    since the host can still install one at runtime.
    """
    errors: list[str] = []
    try:
        validate_api_key(config.gemini_api_key)
    except (CredentialMissing, CredentialInvalid) as exc:
        if require_api_key:
            errors.append(f"GEMINI_API_KEY: {exc}")
        else:
            logger.warning("GEMINI_API_KEY: %s; scans will fail until a key is configured", exc)

    try:
        config.tier_chain()
    except ValueError as exc:
        errors.append(f"Model tiers: {exc}")

    if config.gemini_timeout <= 0:
        errors.append("GEMINI_TIMEOUT must be positive")

    normalized = config.thresholds
    if (normalized.safe, normalized.caution) != (config.safe_threshold, config.caution_threshold):
        logger.info(
            "Thresholds safe=%s caution=%s normalized to safe=%s caution=%s",
            config.safe_threshold,
            config.caution_threshold,
            normalized.safe,
            normalized.caution,
        )

    return errors


class Settings:
    """Live, read-mostly settings shared by concurrent scans.

    Values are frozen objects swapped whole under a lock, so readers always
    see a consistent pair of thresholds and a valid tier chain.
    """

    def __init__(self, api_key: str, thresholds: ThresholdConfig, chain: TierChain):
        self._lock = threading.Lock()
        self._api_key = api_key
        self._thresholds = thresholds
        self._chain = chain

    @classmethod
    def from_config(cls, config: Config) -> "Settings":
        return cls(config.gemini_api_key, config.thresholds, config.tier_chain())

    @property
    def api_key(self) -> str:
        with self._lock:
            return self._api_key

    @property
    def thresholds(self) -> ThresholdConfig:
        with self._lock:
            return self._thresholds

    @property
    def chain(self) -> TierChain:
        with self._lock:
            return self._chain

    def update_thresholds(self, *, safe: Optional[int] = None, caution: Optional[int] = None) -> ThresholdConfig:
        with self._lock:
            self._thresholds = self._thresholds.update(safe=safe, caution=caution)
            return self._thresholds

    def reset_thresholds(self) -> ThresholdConfig:
        with self._lock:
            self._thresholds = ThresholdConfig()
            return self._thresholds

    def set_default_tier(self, key: str) -> TierChain:
        with self._lock:
            if self._chain.get(key) is None:
                raise ValueError(f"Unknown model tier: {key}")
            self._chain = self._chain.with_default(key)
            return self._chain

    def set_api_key(self, api_key: str) -> None:
        key = validate_api_key(api_key)
        with self._lock:
            self._api_key = key
