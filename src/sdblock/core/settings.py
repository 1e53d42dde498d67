"""Lock client settings loader."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from sdblock.utils.env import get_bool_env, get_str_env


Backend = Literal["memory", "redis", "simpledb"]


class RedisSettings(BaseModel):
    url: str = "redis://localhost:6379/0"
    key_prefix: str = "sdblock"


class SimpleDBSettings(BaseModel):
    region_name: Optional[str] = None
    endpoint_url: Optional[str] = None  # e.g. "https://sdb.ap-northeast-1.amazonaws.com"


class LockSettings(BaseModel):
    domain: str = Field(min_length=1)
    backend: Backend = "simpledb"
    create_domain: bool = False
    initial_wait_seconds: float = Field(default=0.5, gt=0)
    max_wait_seconds: float = Field(default=2.0, gt=0)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    simpledb: SimpleDBSettings = Field(default_factory=SimpleDBSettings)

    @model_validator(mode="after")
    def _check_waits(self) -> "LockSettings":
        if self.max_wait_seconds < self.initial_wait_seconds:
            raise ValueError("max_wait_seconds must not be below initial_wait_seconds")
        return self

    @classmethod
    def from_file(cls, path: Path) -> "LockSettings":
        data = yaml.safe_load(path.read_text()) or {}
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid lock settings: {exc}") from exc

    @classmethod
    def from_env(cls) -> "LockSettings":
        data = {
            "domain": get_str_env("SDBLOCK_DOMAIN", default=""),
            "backend": get_str_env("SDBLOCK_BACKEND", default="simpledb"),
            "create_domain": get_bool_env("SDBLOCK_CREATE_DOMAIN"),
            "redis": {"url": get_str_env("REDIS_URL", default=RedisSettings().url)},
            "simpledb": {
                "region_name": get_str_env("AWS_REGION", "AWS_DEFAULT_REGION"),
                "endpoint_url": get_str_env("SDBLOCK_SDB_ENDPOINT"),
            },
        }
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid lock settings: {exc}") from exc
