"""
Chasement — Run Configuration

Named profiles, in the same spirit as a target table: pick one by name,
override individual fields from the command line.

  extended   full alphabet, including arithmetic / logic (default)
  pda        "pure PDA" subset: extended characters fail to load
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .machine import ACCEPTANCE_PREDICATES, DEFAULT_ACCEPTANCE


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Config:
    extended_instructions: bool = True
    step_limit: Optional[int] = None
    acceptance: str = DEFAULT_ACCEPTANCE
    trace: bool = False

    def validate(self) -> "Config":
        if self.step_limit is not None and self.step_limit < 0:
            raise ConfigError(f"step_limit must be >= 0, got {self.step_limit}")
        if self.acceptance not in ACCEPTANCE_PREDICATES:
            raise ConfigError(
                f"Unknown acceptance predicate {self.acceptance!r} "
                f"(choose from {', '.join(ACCEPTANCE_PREDICATES)})")
        return self


PROFILES: Dict[str, Dict[str, Any]] = {
    "extended": {
        "extended_instructions": True,
        "description": "Two-stack automaton plus arithmetic / logic instructions",
    },
    "pda": {
        "extended_instructions": False,
        "description": "Pure two-stack automaton; extended instructions rejected at load",
    },
}

DEFAULT_PROFILE = "extended"


def get_config(profile: str = DEFAULT_PROFILE, **overrides) -> Config:
    """Config for a named profile, with ``None`` overrides ignored."""
    if profile not in PROFILES:
        raise ConfigError(
            f"Unknown profile {profile!r} (choose from {', '.join(PROFILES)})")
    base = Config(extended_instructions=PROFILES[profile]["extended_instructions"])
    fields = {k: v for k, v in overrides.items() if v is not None}
    try:
        config = replace(base, **fields)
    except TypeError as e:
        raise ConfigError(str(e)) from None
    return config.validate()
