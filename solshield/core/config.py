"""Core configuration for the sol-shield analyzer."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Analyzer settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SOLSHIELD_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "WARNING"

    # ── Solidity compiler ────────────────────────────────────────────────
    solc_version: str = ""  # empty = detect from pragma
    solc_default_version: str = "0.8.28"

    # ── Output ───────────────────────────────────────────────────────────
    analyze_output_dir: str = "."
    generate_output_dir: str = "./test"
    output_format: Literal["terminal", "md"] = "terminal"

    # ── Detector calibration ─────────────────────────────────────────────
    # A function is flagged when its external call count exceeds this.
    dos_external_call_threshold: int = 1
    frontrun_approve_min_params: int = 2

    # ── Test synthesis ───────────────────────────────────────────────────
    test_pragma: str = "^0.8.20"
    source_import_prefix: str = "../src"
    handler_actor_count: int = 3
    handler_uint_ceiling: str = "type(uint96).max"
    handler_payable_ceiling: str = "10 ether"
    attacker_max_reentries: int = 3
    poc_victim_deposit: str = "5 ether"
    poc_attacker_funding: str = "1 ether"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
