"""Validation schema for the Judgement engine configuration."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from .cards import TRUMP_CYCLE, Trump, parse_trump

CONFIG_ENV_VAR = "JUDGEMENT_CONFIG"
TRUMP_SYMBOLS = tuple(trump.value for trump in Trump)


class EngineConfig(BaseModel):
    deck_size: int = Field(52, gt=0, description="Cards in the deck; the first hand is deck_size // players.")
    min_players: int = Field(3, ge=2, description="Players required before the game can start.")
    trump_cycle: list[str] = Field(
        default_factory=lambda: [trump.value for trump in TRUMP_CYCLE],
        description="Trump symbols assigned to rounds in order, cycling.",
    )
    default_operators: list[str] = Field(
        default_factory=list,
        description="Emails allowed to act on every game in addition to its owner.",
    )

    @field_validator("trump_cycle")
    @classmethod
    def validate_trump_cycle(cls, value: list[str]) -> list[str]:
        normalized = [symbol.upper() for symbol in value]
        for symbol in normalized:
            if symbol not in TRUMP_SYMBOLS:
                raise ValueError(f"Unknown trump symbol: {symbol!r}")
        if sorted(normalized) != sorted(TRUMP_SYMBOLS):
            raise ValueError("Trump cycle must list each of S, D, C, H, NT exactly once.")
        return normalized

    @field_validator("default_operators")
    @classmethod
    def normalize_operators(cls, value: list[str]) -> list[str]:
        return [email.strip().lower() for email in value if email.strip()]

    def trumps(self) -> list[Trump]:
        return [parse_trump(symbol) for symbol in self.trump_cycle]


def load_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """Load configuration from ``path`` or ``$JUDGEMENT_CONFIG``; defaults otherwise."""
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return EngineConfig()
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return EngineConfig.model_validate(payload)
