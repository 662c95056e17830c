from pydantic import BaseModel, ValidationError, confloat, conint, constr
from typing import Optional

class GlobalConfig(BaseModel):
    log_level: constr(strict=True) = "INFO"
    log_path: constr(strict=True) = "logs/"

class PoolConfig(BaseModel):
    max_connections: conint(gt=0) = 5
    acquire_timeout: Optional[confloat(gt=0)] = None

class TargetConfig(BaseModel):
    host: constr(strict=True, min_length=1)
    port: conint(gt=0, lt=65536)
    connect_timeout: Optional[confloat(gt=0)] = None

class ProbeConfig(BaseModel):
    workers: conint(gt=0) = 1
    rounds: conint(gt=0) = 1
    payload: Optional[str] = None

class Config(BaseModel):
    global_config: GlobalConfig = GlobalConfig()
    pool: PoolConfig = PoolConfig()
    target: TargetConfig
    probe: ProbeConfig = ProbeConfig()

def validate_config(config: dict) -> Config:
    """
    Validate the configuration dictionary using Pydantic.
    """
    try:
        return Config(**config)
    except ValidationError as e:
        raise ValueError(f"Configuration validation error: {e}")
