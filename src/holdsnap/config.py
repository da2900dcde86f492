from __future__ import annotations

import json
import os
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .domain.decoding import normalize_address
from .domain.errors import ConfigError, ParseError
from .domain.models import TokenTarget
from .domain.value_types import Address

RPC_URL_ENV = "ETHEREUM_RPC_URL"


class SnapshotConfig(BaseModel):
    """Run configuration; field aliases match the keys of config.json."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    contract_creation_block: int = Field(alias="contractCreation", ge=0)
    contract_address: str = Field(alias="contractAddress")
    block_height: int = Field(alias="blockHeight", ge=0)
    token_addresses: list[str] = Field(alias="tokenAddresses")
    token_names: list[str] = Field(alias="tokenNames")
    batch_size: int = Field(alias="batchSize", gt=0)
    lp_token_address: str | None = Field(default=None, alias="lpTokenAddress")
    lp_reserve_index: int = Field(default=1, alias="lpReserveIndex", ge=0, le=1)
    concurrency: int | None = Field(default=None, alias="concurrency", gt=0)

    @field_validator("contract_address", "lp_token_address")
    @classmethod
    def _address(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            return normalize_address(v)
        except ParseError as e:
            raise ValueError(str(e)) from e

    @field_validator("token_addresses")
    @classmethod
    def _addresses(cls, v: list[str]) -> list[str]:
        try:
            return [normalize_address(a) for a in v]
        except ParseError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def _same_length(self) -> "SnapshotConfig":
        if len(self.token_addresses) != len(self.token_names):
            raise ValueError("Token addresses and names must be the same length")
        return self

    def tokens(self) -> Iterator[TokenTarget]:
        for addr, name in zip(self.token_addresses, self.token_names):
            yield TokenTarget(Address(addr), name)

    def is_lp_token(self, token: Address) -> bool:
        return self.lp_token_address is not None and token == self.lp_token_address


def parse_config(doc: object) -> SnapshotConfig:
    try:
        return SnapshotConfig.model_validate(doc)
    except ValidationError as e:
        raise ConfigError(f"invalid config: {e}") from e


def load_config(path: str = "config.json") -> SnapshotConfig:
    try:
        with open(path, "r") as f:
            doc = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    return parse_config(doc)


def rpc_url_from_env() -> str:
    from dotenv import load_dotenv
    load_dotenv()
    url = os.getenv(RPC_URL_ENV, "").strip()
    if not url:
        raise ConfigError(f"{RPC_URL_ENV} must be set")
    return url
