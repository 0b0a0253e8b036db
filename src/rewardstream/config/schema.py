"""Pydantic schema for configuration validation."""

import hashlib
import json
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class EngineSettings(BaseModel):
    """Fixed-point and storage parameters of the accrual engine."""
    precision_factor: int = Field(default=10**18, gt=0, description="Fixed-point scale of the accumulator")
    time_bits: int = Field(default=32, gt=0, le=256, description="Storage width of program instants")
    accumulator_bits: int = Field(default=160, gt=0, le=256, description="Storage width of accumulator and checkpoints")
    history_size: int = Field(default=1000, gt=0, description="Committed events kept in memory")


class AssetSettings(BaseModel):
    """Assets moved by the engine and their opening balances."""
    staked_asset: Optional[str] = Field(default="STAKE", description="Staked asset; null for a balance-weighted token")
    reward_asset: str = Field(default="REWARD", description="Asset paid out by claims")
    initial_balances: Dict[str, Dict[str, int]] = Field(
        default_factory=dict,
        description="Opening balances: {asset: {holder: amount}}"
    )

    @field_validator("initial_balances")
    @classmethod
    def validate_balances(cls, v):
        """Opening balances must be non-negative."""
        for asset, holders in v.items():
            for holder, amount in holders.items():
                if amount < 0:
                    raise ValueError(f"negative opening balance for {holder} in {asset}: {amount}")
        return v


class ProgramSettings(BaseModel):
    """Initial reward program."""
    start: int = Field(ge=0, description="Program start instant")
    end: int = Field(ge=0, description="Program end instant")
    total_budget: int = Field(ge=0, description="Total reward to distribute")
    funder: Optional[str] = Field(default=None, description="Holder that funds the budget")

    @model_validator(mode="after")
    def validate_interval(self):
        """Ensure start < end."""
        if self.start >= self.end:
            raise ValueError(f"program start ({self.start}) must be before end ({self.end})")
        return self


ActionName = Literal["configure", "increase", "decrease", "transfer", "claim", "claim_all"]

_REQUIRED_FIELDS = {
    "configure": ("start", "end", "total_budget"),
    "increase": ("participant", "amount"),
    "decrease": ("participant", "amount"),
    "transfer": ("participant", "recipient", "amount"),
    "claim": ("participant", "amount"),
    "claim_all": ("participant",),
}


class ScenarioAction(BaseModel):
    """One scripted engine call at a given instant."""
    at: int = Field(ge=0, description="Instant the action runs at")
    action: ActionName
    participant: Optional[str] = None
    recipient: Optional[str] = None
    amount: Optional[int] = Field(default=None, ge=0)
    start: Optional[int] = Field(default=None, ge=0)
    end: Optional[int] = Field(default=None, ge=0)
    total_budget: Optional[int] = Field(default=None, ge=0)
    caller: Optional[str] = None

    @model_validator(mode="after")
    def validate_required_fields(self):
        """Each action needs its own arguments."""
        missing = [name for name in _REQUIRED_FIELDS[self.action] if getattr(self, name) is None]
        if missing:
            raise ValueError(f"action '{self.action}' at t={self.at} is missing {', '.join(missing)}")
        return self


class Simulation(BaseModel):
    """Randomized scenario parameters."""
    random_runs: int = Field(default=20, gt=0, description="Number of random scenarios")
    random_seed: int = Field(default=42, description="Random seed for reproducibility")
    random_actions: int = Field(default=50, gt=0, description="Actions per random scenario")
    random_participants: int = Field(default=4, gt=0, description="Participants per random scenario")


class Logging(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class Config(BaseModel):
    """Complete configuration for a reward program scenario."""
    engine: EngineSettings = Field(default_factory=EngineSettings)
    assets: AssetSettings = Field(default_factory=AssetSettings)
    admins: List[str] = Field(default_factory=list, description="Callers allowed to configure; empty allows anyone")
    program: Optional[ProgramSettings] = None
    actions: List[ScenarioAction] = Field(default_factory=list)
    simulation: Simulation = Field(default_factory=Simulation)
    logging: Logging = Field(default_factory=Logging)

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
